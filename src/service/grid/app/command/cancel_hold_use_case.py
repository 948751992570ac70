from typing import Callable, Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from uuid_utils import UUID

from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import ForbiddenError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.grid_metrics import metrics
from src.service.grid.app.interface.i_grid_feed import IGridFeed
from src.service.shared_kernel.domain.enum.cell_state import CellState


class CancelHoldUseCase:
    """
    Release a hold before it expires.

    A hold that no longer exists (reaped or already converted) is a no-op,
    so cancelling twice is safe.
    """

    def __init__(
        self, *, uow_factory: Callable[..., AbstractUnitOfWork], grid_feed: IGridFeed
    ) -> None:
        self.uow_factory = uow_factory
        self.grid_feed = grid_feed

    @classmethod
    @inject
    def depends(
        cls,
        uow_factory: Callable[..., AbstractUnitOfWork] = Depends(
            Provide[Container.unit_of_work.provider]
        ),
        grid_feed: IGridFeed = Depends(Provide[Container.grid_feed]),
    ) -> Self:
        return cls(uow_factory=uow_factory, grid_feed=grid_feed)

    @Logger.io
    async def execute(self, *, hold_id: UUID, contact: Optional[str] = None) -> int:
        """
        Returns:
            Number of cells returned to free (0 when the hold was already gone)
        """
        async with self.uow_factory() as uow:
            hold = await uow.hold_repo.get_by_id(hold_id=hold_id)
            if not hold:
                Logger.base.info(f'🔓 [HOLD] {hold_id} already gone, nothing to cancel')
                return 0

            if contact is not None and not hold.is_owned_by(contact):
                raise ForbiddenError('Only the purchaser can cancel this hold')

            freed = await uow.cell_store.release(cell_ids=hold.cell_ids, hold_id=hold.id)
            await uow.hold_repo.delete(hold_id=hold.id)
            await uow.commit()

            await self.grid_feed.publish(
                changes=[(cell_id, CellState.FREE) for cell_id in hold.cell_ids]
            )

        metrics.holds_released.labels(reason='cancelled').inc()
        Logger.base.info(f'🔓 [HOLD] {hold_id} cancelled, {freed} cells freed')
        return freed
