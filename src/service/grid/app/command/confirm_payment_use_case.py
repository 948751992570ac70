from typing import Callable, Optional

from opentelemetry import trace
from sqlalchemy.exc import IntegrityError

from src.platform.config.core_setting import settings
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.grid_metrics import metrics
from src.service.grid.app.dto.checkout_dto import PaymentConfirmation
from src.service.grid.app.interface.i_grid_feed import IGridFeed
from src.service.grid.app.interface.i_notification_sender import INotificationSender
from src.service.grid.app.interface.i_payment_gateway import IRefundGateway
from src.service.grid.domain.entity.hold_entity import Hold
from src.service.grid.domain.entity.submission_entity import Submission
from src.service.shared_kernel.domain.enum.cell_state import CellState
from src.service.shared_kernel.domain.grid_error import StaleHoldError
from src.service.shared_kernel.domain.value_object.pricing import price_for_cells


class ConfirmPaymentUseCase:
    """
    Occupancy Reconciler - payment confirmed → Submission + occupied cells

    Flow (at-least-once delivery safe):
    1. Submission already recorded for payment_ref → return it
    2. No hold for the checkout session → already converted, reaped or unrelated → None
    3. One transaction: insert Submission, held → occupied, delete Hold
    4. After commit: publish `occupied` deltas, send confirmation email

    Idempotency comes from the unique payment_ref column: a concurrent duplicate
    delivery loses at commit and is answered with the winner's Submission.

    Dependencies:
    - uow_factory: Creates the unit of work (cell store, hold repo, submission repo)
    - grid_feed: Publishes cell-state deltas to viewport clients
    - notification_sender: Payment confirmation email
    - refund_gateway: Refunds a payment whose hold was reaped before it arrived
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

    @Logger.io
    async def execute(self, *, confirmation: PaymentConfirmation) -> Optional[Submission]:
        with self.tracer.start_as_current_span(
            'use_case.confirm_payment',
            attributes={
                'payment.checkout_session_id': confirmation.checkout_session_id,
                'payment.ref': confirmation.payment_ref,
            },
        ):
            hold: Optional[Hold] = None
            try:
                async with self.uow_factory() as uow:
                    existing = await uow.submission_repo.get_by_payment_ref(
                        payment_ref=confirmation.payment_ref
                    )
                    if existing:
                        metrics.payment_events.labels(result='duplicate').inc()
                        Logger.base.info(
                            f'🔁 [RECONCILE] {confirmation.payment_ref} already converted '
                            f'into submission {existing.id}'
                        )
                        return existing

                    hold = await uow.hold_repo.get_by_checkout_session_id(
                        checkout_session_id=confirmation.checkout_session_id
                    )
                    if not hold:
                        raise StaleHoldError(
                            f'No hold for checkout session {confirmation.checkout_session_id}'
                        )

                    submission = Submission.from_paid_hold(
                        hold=hold,
                        payment_ref=confirmation.payment_ref,
                        amount=self._resolve_amount(confirmation, hold),
                        currency=self._resolve_currency(confirmation, hold),
                    )
                    await uow.submission_repo.create(submission=submission)
                    await uow.cell_store.occupy(
                        cell_ids=hold.cell_ids, hold_id=hold.id, submission_id=submission.id
                    )
                    await uow.hold_repo.delete(hold_id=hold.id)
                    await uow.commit()

                    await self.grid_feed.publish(
                        changes=[(cell_id, CellState.OCCUPIED) for cell_id in submission.cell_ids]
                    )
            except IntegrityError as e:
                return await self._existing_after_duplicate(confirmation, error=e)
            except StaleHoldError as e:
                metrics.payment_events.labels(result='stale').inc()
                Logger.base.warning(
                    f'⚠️ [RECONCILE] Ignoring {confirmation.payment_ref}: {e.message}'
                )
                if hold is not None:
                    await self._refund_orphaned_payment(confirmation, hold)
                return None

            metrics.payment_events.labels(result='converted').inc()
            Logger.base.info(
                f'✅ [RECONCILE] Hold {hold.id} → submission {submission.id} '
                f'({submission.cell_count} cells occupied)'
            )

            try:
                await self.notification_sender.send_payment_confirmed(submission=submission)
            except Exception as e:
                Logger.base.error(
                    f'📧 [RECONCILE] Confirmation email failed for {submission.id}: {e}'
                )

            return submission

    @staticmethod
    def _resolve_amount(confirmation: PaymentConfirmation, hold: Hold) -> int:
        if confirmation.amount is not None:
            return confirmation.amount
        if hold.amount is not None:
            return hold.amount
        return price_for_cells(hold.cell_count)

    @staticmethod
    def _resolve_currency(confirmation: PaymentConfirmation, hold: Hold) -> str:
        return (confirmation.currency or hold.currency or settings.CURRENCY).lower()

    async def _existing_after_duplicate(
        self, confirmation: PaymentConfirmation, *, error: IntegrityError
    ) -> Submission:
        async with self.uow_factory(read_only=True) as uow:
            existing = await uow.submission_repo.get_by_payment_ref(
                payment_ref=confirmation.payment_ref
            )
        if existing is None:
            raise error
        metrics.payment_events.labels(result='duplicate').inc()
        Logger.base.info(
            f'🔁 [RECONCILE] Concurrent delivery of {confirmation.payment_ref} '
            f'already produced submission {existing.id}'
        )
        return existing

    async def _refund_orphaned_payment(
        self, confirmation: PaymentConfirmation, hold: Hold
    ) -> None:
        """Hold was found but its cells were reaped mid-flight: money in, no cells"""
        amount = self._resolve_amount(confirmation, hold)
        if amount <= 0:
            return
        currency = self._resolve_currency(confirmation, hold)
        try:
            await self.refund_gateway.refund(
                payment_ref=confirmation.payment_ref, amount=amount, currency=currency
            )
        except Exception as e:
            metrics.refund_failures.inc()
            Logger.base.error(f'💸 [RECONCILE] Refund failed for {confirmation.payment_ref}: {e}')
