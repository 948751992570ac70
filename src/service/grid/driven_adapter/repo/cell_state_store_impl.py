"""
Cell State Store - SQLAlchemy implementation

Only held/occupied cells have a row. Claiming is an INSERT of one row per cell
into a table keyed by cell id, so the database's primary key decides overlapping
claims: the first transaction to commit wins, the other one fails as a whole.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from opentelemetry import trace
from sqlalchemy import delete, exists, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from uuid_utils import UUID

from src.platform.logging.loguru_io import Logger
from src.service.grid.app.dto.claim_dto import ClaimResult
from src.service.grid.app.interface.i_cell_state_store import ICellStateStore
from src.service.grid.driven_adapter.model.grid_cell_model import GridCellModel
from src.service.grid.driven_adapter.model.hold_model import HoldModel
from src.service.grid.driven_adapter.repo.id_chunk_helper import chunked, unique_in_order
from src.service.shared_kernel.domain.enum.cell_state import CellState
from src.service.shared_kernel.domain.grid_error import StaleHoldError
from src.service.shared_kernel.domain.value_object.grid_address import parse_cell_id


class CellStateStoreImpl(ICellStateStore):
    def __init__(self, *, session: AsyncSession) -> None:
        self.session = session
        self.tracer = trace.get_tracer(__name__)

    async def _non_free_subset(self, cell_ids: Sequence[str]) -> List[str]:
        found: List[str] = []
        for chunk in chunked(cell_ids):
            result = await self.session.execute(
                select(GridCellModel.cell_id).where(GridCellModel.cell_id.in_(chunk))
            )
            found.extend(result.scalars().all())
        return found

    @Logger.io(truncate_content=True)
    async def get_states(self, *, cell_ids: Sequence[str]) -> Dict[str, CellState]:
        ids = unique_in_order(cell_ids)
        states = {cell_id: CellState.FREE for cell_id in ids}
        for chunk in chunked(ids):
            result = await self.session.execute(
                select(GridCellModel.cell_id, GridCellModel.state).where(
                    GridCellModel.cell_id.in_(chunk)
                )
            )
            for cell_id, state in result.all():
                states[cell_id] = CellState(state)
        return states

    @Logger.io(truncate_content=True)
    async def try_claim(self, *, cell_ids: Sequence[str], hold_id: UUID) -> ClaimResult:
        ids = unique_in_order(cell_ids)
        with self.tracer.start_as_current_span(
            'cell_store.try_claim', attributes={'hold.id': str(hold_id), 'cells': len(ids)}
        ):
            # Cheap pre-check: explains most conflicts without a failed write
            blocking = await self._non_free_subset(ids)
            if blocking:
                return ClaimResult.conflict(blocking)

            now = datetime.now(timezone.utc)
            rows = []
            for cell_id in ids:
                position = parse_cell_id(cell_id)
                rows.append(
                    {
                        'cell_id': cell_id,
                        'row': position.row,
                        'col': position.col,
                        'state': CellState.HELD.value,
                        'hold_id': str(hold_id),
                        'submission_id': None,
                        'updated_at': now,
                    }
                )

            try:
                for chunk in chunked(rows):
                    await self.session.execute(insert(GridCellModel), chunk)
                await self.session.flush()
            except IntegrityError:
                # Lost the race to a concurrent claim between pre-check and insert
                await self.session.rollback()
                blocking = await self._non_free_subset(ids)
                Logger.base.warning(
                    f'⚔️ [CELL_STORE] Concurrent claim won over hold {hold_id}, '
                    f'{len(blocking)} cells blocking'
                )
                return ClaimResult.conflict(blocking)

            return ClaimResult.claimed()

    @Logger.io(truncate_content=True)
    async def release(self, *, cell_ids: Sequence[str], hold_id: UUID) -> int:
        freed = 0
        for chunk in chunked(unique_in_order(cell_ids)):
            result = await self.session.execute(
                delete(GridCellModel)
                .where(
                    GridCellModel.cell_id.in_(chunk),
                    GridCellModel.state == CellState.HELD.value,
                    GridCellModel.hold_id == str(hold_id),
                )
                .execution_options(synchronize_session=False)
            )
            freed += result.rowcount or 0
        return freed

    @Logger.io(truncate_content=True)
    async def release_holds(self, *, hold_ids: Sequence[UUID]) -> List[str]:
        freed: List[str] = []
        for chunk in chunked([str(h) for h in hold_ids]):
            result = await self.session.execute(
                delete(GridCellModel)
                .where(
                    GridCellModel.state == CellState.HELD.value,
                    GridCellModel.hold_id.in_(chunk),
                )
                .returning(GridCellModel.cell_id)
                .execution_options(synchronize_session=False)
            )
            freed.extend(result.scalars().all())
        return freed

    @Logger.io(truncate_content=True)
    async def occupy(
        self, *, cell_ids: Sequence[str], hold_id: UUID, submission_id: UUID
    ) -> None:
        ids = unique_in_order(cell_ids)
        now = datetime.now(timezone.utc)
        occupied = 0
        for chunk in chunked(ids):
            result = await self.session.execute(
                update(GridCellModel)
                .where(
                    GridCellModel.cell_id.in_(chunk),
                    GridCellModel.state == CellState.HELD.value,
                    GridCellModel.hold_id == str(hold_id),
                )
                .values(
                    state=CellState.OCCUPIED.value,
                    hold_id=None,
                    submission_id=str(submission_id),
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            occupied += result.rowcount or 0

        if occupied != len(ids):
            # Caller's unit of work rolls back the partial update
            raise StaleHoldError(
                f'Hold {hold_id} no longer holds all of its cells ({occupied}/{len(ids)})'
            )

    @Logger.io(truncate_content=True)
    async def vacate(self, *, cell_ids: Sequence[str], submission_id: UUID) -> int:
        freed = 0
        for chunk in chunked(unique_in_order(cell_ids)):
            result = await self.session.execute(
                delete(GridCellModel)
                .where(
                    GridCellModel.cell_id.in_(chunk),
                    GridCellModel.state == CellState.OCCUPIED.value,
                    GridCellModel.submission_id == str(submission_id),
                )
                .execution_options(synchronize_session=False)
            )
            freed += result.rowcount or 0
        return freed

    async def list_non_free(self) -> Dict[str, CellState]:
        result = await self.session.execute(
            select(GridCellModel.cell_id, GridCellModel.state).order_by(
                GridCellModel.row, GridCellModel.col
            )
        )
        return {cell_id: CellState(state) for cell_id, state in result.all()}

    @Logger.io
    async def release_orphaned_holds(self, *, limit: Optional[int] = None) -> int:
        orphaned = select(GridCellModel.cell_id).where(
            GridCellModel.state == CellState.HELD.value,
            ~exists().where(HoldModel.id == GridCellModel.hold_id),
        )
        if limit:
            orphaned = orphaned.limit(limit)
        orphan_ids = list((await self.session.execute(orphaned)).scalars().all())
        if not orphan_ids:
            return 0

        freed = 0
        for chunk in chunked(orphan_ids):
            result = await self.session.execute(
                delete(GridCellModel)
                .where(
                    GridCellModel.cell_id.in_(chunk),
                    GridCellModel.state == CellState.HELD.value,
                    ~exists().where(HoldModel.id == GridCellModel.hold_id),
                )
                .execution_options(synchronize_session=False)
            )
            freed += result.rowcount or 0

        Logger.base.warning(f'🧹 [CELL_STORE] Freed {freed} orphaned held cells')
        return freed
