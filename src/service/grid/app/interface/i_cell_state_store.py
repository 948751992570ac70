"""
Cell State Store Interface

Durable mapping cell id -> {free, held, occupied}. Only non-free cells are
stored; a missing cell is free. Every mutation is all-or-nothing for the
cells passed in, inside the caller's unit of work.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from uuid_utils import UUID

from src.service.grid.app.dto.claim_dto import ClaimResult
from src.service.shared_kernel.domain.enum.cell_state import CellState


class ICellStateStore(ABC):
    @abstractmethod
    async def get_states(self, *, cell_ids: Sequence[str]) -> Dict[str, CellState]:
        """
        Read-only snapshot of the requested cells

        Returns:
            Mapping for every requested cell id (free included)
        """
        pass

    @abstractmethod
    async def try_claim(self, *, cell_ids: Sequence[str], hold_id: UUID) -> ClaimResult:
        """
        Claim every cell for hold_id, or none of them

        Succeeds only if every cell is free at the instant of the check; then all
        become `held` by hold_id. On conflict nothing is written and the blocking
        subset is returned. Concurrent overlapping claims: first commit wins.

        Note:
            Must be the first write of its unit of work; a lost race rolls the
            transaction back before the blocking cells are re-read.
        """
        pass

    @abstractmethod
    async def release(self, *, cell_ids: Sequence[str], hold_id: UUID) -> int:
        """
        Free the cells currently held by exactly hold_id

        Cells owned by anything else (another hold, a submission) are untouched.
        Idempotent.

        Returns:
            Number of cells freed
        """
        pass

    @abstractmethod
    async def release_holds(self, *, hold_ids: Sequence[UUID]) -> List[str]:
        """
        Free every cell held by any of hold_ids (batched reaping)

        Returns:
            Ids of the cells actually freed
        """
        pass

    @abstractmethod
    async def occupy(
        self, *, cell_ids: Sequence[str], hold_id: UUID, submission_id: UUID
    ) -> None:
        """
        held-by-hold_id -> occupied-by-submission_id

        Raises:
            StaleHoldError: any cell is not currently held by hold_id
                (nothing is changed in that case)
        """
        pass

    @abstractmethod
    async def vacate(self, *, cell_ids: Sequence[str], submission_id: UUID) -> int:
        """
        occupied-by-submission_id -> free

        Returns:
            Number of cells freed
        """
        pass

    @abstractmethod
    async def list_non_free(self) -> Dict[str, CellState]:
        """Every held or occupied cell (feed snapshot)"""
        pass

    @abstractmethod
    async def release_orphaned_holds(self, *, limit: Optional[int] = None) -> int:
        """
        Repair: free held cells whose hold record no longer exists

        Returns:
            Number of cells freed
        """
        pass
