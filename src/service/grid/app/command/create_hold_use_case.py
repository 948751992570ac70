import time
from datetime import timedelta
from typing import Callable, Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.core_setting import settings
from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.grid_metrics import metrics
from src.service.grid.app.interface.i_grid_feed import IGridFeed
from src.service.grid.domain.entity.hold_entity import Hold
from src.service.shared_kernel.domain.enum.cell_state import CellState
from src.service.shared_kernel.domain.grid_error import SlotUnavailableError
from src.service.shared_kernel.domain.value_object.grid_address import Rectangle


class CreateHoldUseCase:
    """
    Hold Manager - claim a rectangle of free cells pending payment

    Flow:
    1. Expand the rectangle into cell ids (row-major)
    2. try_claim: every cell free → all become held by the new hold, else nothing changes
    3. Persist the hold record in the same transaction
    4. After commit: publish `held` deltas

    A conflict is reported with the blocking cells so the client can re-select;
    it is never retried automatically.
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[..., AbstractUnitOfWork],
        grid_feed: IGridFeed,
    ) -> None:
        self.uow_factory = uow_factory
        self.grid_feed = grid_feed
        self.tracer = trace.get_tracer(__name__)

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
    async def execute(
        self, *, rectangle: Rectangle, contact: str, ttl: Optional[timedelta] = None
    ) -> Hold:
        """
        Create a hold

        Args:
            rectangle: Inclusive cell rectangle (already bounds-checked)
            contact: Purchaser email
            ttl: Hold lifetime, defaults to HOLD_TTL_MINUTES

        Returns:
            The hold with its expiry

        Raises:
            SlotUnavailableError: Any cell is held or occupied (carries the blocking cells)
        """
        start = time.perf_counter()
        hold = Hold.create(
            contact=contact.strip(),
            rectangle=rectangle,
            ttl=ttl or timedelta(minutes=settings.HOLD_TTL_MINUTES),
        )

        with self.tracer.start_as_current_span(
            'use_case.create_hold',
            attributes={'hold.id': str(hold.id), 'hold.cells': hold.cell_count},
        ):
            async with self.uow_factory() as uow:
                claim = await uow.cell_store.try_claim(cell_ids=hold.cell_ids, hold_id=hold.id)
                if not claim.success:
                    metrics.record_hold(
                        result='slot_unavailable',
                        cell_count=hold.cell_count,
                        duration=time.perf_counter() - start,
                    )
                    raise SlotUnavailableError(blocking_cell_ids=claim.blocking_cell_ids)

                await uow.hold_repo.create(hold=hold)
                await uow.commit()

                await self.grid_feed.publish(
                    changes=[(cell_id, CellState.HELD) for cell_id in hold.cell_ids]
                )

            metrics.record_hold(
                result='created', cell_count=hold.cell_count, duration=time.perf_counter() - start
            )
            Logger.base.info(
                f'🔒 [HOLD] {hold.id} holds {hold.cell_count} cells '
                f'{rectangle.top_left.cell_id}..{rectangle.bottom_right.cell_id} '
                f'until {hold.expires_at.isoformat()}'
            )
            return hold
