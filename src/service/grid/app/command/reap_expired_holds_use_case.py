from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from opentelemetry import trace

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.grid_metrics import metrics
from src.service.grid.app.dto.reap_dto import ReapResult
from src.service.grid.app.interface.i_grid_feed import IGridFeed
from src.service.shared_kernel.domain.enum.cell_state import CellState


class ReapExpiredHoldsUseCase:
    """
    Return cells of expired holds to free

    Each batch is one transaction: release held cells, then delete the hold rows.
    A second sweep (or a concurrent one) finds nothing left to free, so reaping
    is idempotent. Converted holds no longer exist and are never reaped.
    After the expiry sweep, held cells without a hold record are repaired.
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[..., AbstractUnitOfWork],
        grid_feed: IGridFeed,
        batch_size: int = 200,
    ) -> None:
        self.uow_factory = uow_factory
        self.grid_feed = grid_feed
        self.batch_size = batch_size
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(
        self, *, now: Optional[datetime] = None, batch_size: Optional[int] = None
    ) -> ReapResult:
        cutoff = now or datetime.now(timezone.utc)
        limit = batch_size or self.batch_size

        with self.tracer.start_as_current_span(
            'use_case.reap_expired_holds', attributes={'reap.batch_size': limit}
        ):
            holds_reaped = 0
            cells_freed = 0
            while True:
                reaped, freed = await self._reap_batch(cutoff=cutoff, limit=limit)
                if not reaped:
                    break
                holds_reaped += reaped
                cells_freed += freed
                if reaped < limit:
                    break

            orphaned_cells_freed = await self._repair_orphans()

            result = ReapResult(
                holds_reaped=holds_reaped,
                cells_freed=cells_freed,
                orphaned_cells_freed=orphaned_cells_freed,
            )
            if holds_reaped or orphaned_cells_freed:
                metrics.holds_released.labels(reason='expired').inc(holds_reaped)
                Logger.base.info(
                    f'🧹 [REAPER] Reaped {holds_reaped} holds, '
                    f'freed {result.total_cells_freed} cells'
                )
            return result

    async def _reap_batch(self, *, cutoff: datetime, limit: int) -> Tuple[int, int]:
        async with self.uow_factory() as uow:
            hold_ids = await uow.hold_repo.list_expired_ids(now=cutoff, limit=limit)
            if not hold_ids:
                return 0, 0

            freed_cell_ids = await uow.cell_store.release_holds(hold_ids=hold_ids)
            reaped = await uow.hold_repo.delete_many(hold_ids=hold_ids)
            await uow.commit()

            # Published under the write lock: deltas follow commit order
            await self.grid_feed.publish(
                changes=[(cell_id, CellState.FREE) for cell_id in freed_cell_ids]
            )
            return reaped, len(freed_cell_ids)

    async def _repair_orphans(self) -> int:
        async with self.uow_factory() as uow:
            freed = await uow.cell_store.release_orphaned_holds(limit=None)
            await uow.commit()
        # Orphaned cell ids are unknown to the feed; clients converge via snapshot
        return freed
