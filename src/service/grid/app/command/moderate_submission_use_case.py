from typing import Awaitable, Callable, Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace
from uuid_utils import UUID

from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import ConflictError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.grid_metrics import metrics
from src.service.grid.app.interface.i_grid_feed import IGridFeed
from src.service.grid.app.interface.i_notification_sender import INotificationSender
from src.service.grid.app.interface.i_payment_gateway import IRefundGateway
from src.service.grid.domain.entity.submission_entity import Submission, SubmissionStatus
from src.service.shared_kernel.domain.enum.cell_state import CellState


class ModerateSubmissionUseCase:
    """
    Admin decisions on a submission

    - approve: under_review → approved, content becomes visible in occupancy
    - reject:  → rejected, cells vacated, refund requested (non-zero amounts)
    - remove:  → removed, cells vacated, no refund

    Repeating a decision already taken is a no-op (no second refund, no second email).
    Each decision is a conditional status write: of two concurrent decisions only
    one changes the row, so side effects run once.
    Refund and email failures are logged and never undo the decision.
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[..., AbstractUnitOfWork],
        grid_feed: IGridFeed,
        notification_sender: INotificationSender,
        refund_gateway: IRefundGateway,
    ) -> None:
        self.uow_factory = uow_factory
        self.grid_feed = grid_feed
        self.notification_sender = notification_sender
        self.refund_gateway = refund_gateway
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        uow_factory: Callable[..., AbstractUnitOfWork] = Depends(
            Provide[Container.unit_of_work.provider]
        ),
        grid_feed: IGridFeed = Depends(Provide[Container.grid_feed]),
        notification_sender: INotificationSender = Depends(
            Provide[Container.notification_sender]
        ),
        refund_gateway: IRefundGateway = Depends(Provide[Container.refund_gateway]),
    ) -> Self:
        return cls(
            uow_factory=uow_factory,
            grid_feed=grid_feed,
            notification_sender=notification_sender,
            refund_gateway=refund_gateway,
        )

    @Logger.io
    async def approve(self, *, submission_id: UUID, notes: Optional[str] = None) -> Submission:
        with self.tracer.start_as_current_span(
            'use_case.approve_submission', attributes={'submission.id': str(submission_id)}
        ):
            async with self.uow_factory() as uow:
                submission = await self._get(uow, submission_id)
                if submission.status == SubmissionStatus.APPROVED:
                    return submission

                approved = submission.approve(notes=notes)
                if not await uow.submission_repo.transition(
                    submission=approved, from_status=submission.status
                ):
                    return await self._decided_concurrently(uow, approved)
                await uow.commit()

            metrics.moderation_actions.labels(action='approve').inc()
            Logger.base.info(f'✅ [MODERATION] Submission {submission_id} approved')
            await self._notify(self.notification_sender.send_submission_approved, approved)
            return approved

    @Logger.io
    async def reject(self, *, submission_id: UUID, notes: Optional[str] = None) -> Submission:
        with self.tracer.start_as_current_span(
            'use_case.reject_submission', attributes={'submission.id': str(submission_id)}
        ):
            async with self.uow_factory() as uow:
                submission = await self._get(uow, submission_id)
                if submission.status == SubmissionStatus.REJECTED:
                    return submission

                rejected = submission.reject(notes=notes)
                if not await self._vacate(uow, before=submission, after=rejected):
                    return await self._decided_concurrently(uow, rejected)

            metrics.moderation_actions.labels(action='reject').inc()
            Logger.base.info(f'🚫 [MODERATION] Submission {submission_id} rejected')
            await self._refund(rejected)
            await self._notify(self.notification_sender.send_submission_rejected, rejected)
            return rejected

    @Logger.io
    async def remove(self, *, submission_id: UUID, notes: Optional[str] = None) -> Submission:
        with self.tracer.start_as_current_span(
            'use_case.remove_submission', attributes={'submission.id': str(submission_id)}
        ):
            async with self.uow_factory() as uow:
                submission = await self._get(uow, submission_id)
                if submission.status == SubmissionStatus.REMOVED:
                    return submission

                removed = submission.remove(notes=notes)
                if not await self._vacate(uow, before=submission, after=removed):
                    return await self._decided_concurrently(uow, removed)

            metrics.moderation_actions.labels(action='remove').inc()
            Logger.base.info(f'🗑️ [MODERATION] Submission {submission_id} removed')
            await self._notify(self.notification_sender.send_submission_removed, removed)
            return removed

    @staticmethod
    async def _get(uow: AbstractUnitOfWork, submission_id: UUID) -> Submission:
        submission = await uow.submission_repo.get_by_id(submission_id=submission_id)
        if not submission:
            raise NotFoundError('Submission not found')
        return submission

    async def _vacate(
        self, uow: AbstractUnitOfWork, *, before: Submission, after: Submission
    ) -> bool:
        if not await uow.submission_repo.transition(submission=after, from_status=before.status):
            return False
        freed = await uow.cell_store.vacate(cell_ids=after.cell_ids, submission_id=after.id)
        await uow.commit()

        await self.grid_feed.publish(
            changes=[(cell_id, CellState.FREE) for cell_id in after.cell_ids]
        )
        Logger.base.info(f'🧹 [MODERATION] {freed} cells of {after.id} vacated')
        return True

    @staticmethod
    async def _decided_concurrently(uow: AbstractUnitOfWork, wanted: Submission) -> Submission:
        current = await uow.submission_repo.get_by_id(submission_id=wanted.id)
        if not current:
            raise NotFoundError('Submission not found')
        if current.status != wanted.status:
            raise ConflictError(f'Submission was {current.status} concurrently')
        Logger.base.info(f'🔁 [MODERATION] {wanted.id} already {current.status}, nothing to do')
        return current

    async def _refund(self, submission: Submission) -> None:
        if submission.amount <= 0:
            return
        try:
            await self.refund_gateway.refund(
                payment_ref=submission.payment_ref,
                amount=submission.amount,
                currency=submission.currency,
            )
        except Exception as e:
            metrics.refund_failures.inc()
            Logger.base.error(f'💸 [MODERATION] Refund failed for {submission.payment_ref}: {e}')

    @staticmethod
    async def _notify(send: Callable[..., Awaitable[None]], submission: Submission) -> None:
        try:
            await send(submission=submission)
        except Exception as e:
            Logger.base.error(f'📧 [MODERATION] Email failed for submission {submission.id}: {e}')
