"""
Grid State Feed Interface

Ordered cell-state deltas for viewport clients. Sequence numbers are assigned
in publish order; a bounded replay buffer serves `changes since seq`, and
clients that fall behind it resync from a full snapshot.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence, Tuple

from anyio.streams.memory import MemoryObjectReceiveStream

from src.service.grid.app.dto.feed_dto import CellDelta, FeedChanges
from src.service.shared_kernel.domain.enum.cell_state import CellState


class IGridFeed(ABC):
    @property
    @abstractmethod
    def current_seq(self) -> int:
        """Sequence number of the latest published delta (0 before any)"""
        pass

    @abstractmethod
    async def publish(self, *, changes: Sequence[Tuple[str, CellState]]) -> List[CellDelta]:
        """
        Record and fan out cell changes

        Call right after the unit of work that made the change commits.

        Returns:
            The deltas with their assigned sequence numbers
        """
        pass

    @abstractmethod
    def changes_since(self, *, since: int) -> FeedChanges:
        pass

    @abstractmethod
    async def subscribe(self) -> MemoryObjectReceiveStream[dict]:
        pass

    @abstractmethod
    async def unsubscribe(self, *, stream: MemoryObjectReceiveStream[dict]) -> None:
        pass
