import secrets
from datetime import datetime, timezone
from typing import Callable, Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace
from uuid_utils import UUID

from src.platform.config.core_setting import settings
from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import ForbiddenError
from src.platform.logging.loguru_io import Logger
from src.service.grid.app.command.confirm_payment_use_case import ConfirmPaymentUseCase
from src.service.grid.app.dto.checkout_dto import CheckoutResult, PaymentConfirmation
from src.service.grid.app.interface.i_payment_gateway import IPaymentGateway
from src.service.grid.domain.entity.hold_entity import Hold
from src.service.shared_kernel.domain.grid_error import StaleHoldError
from src.service.shared_kernel.domain.value_object.pricing import price_for_cells


class StartCheckoutUseCase:
    """
    Start payment for a live hold

    Flow:
    1. Load the hold (gone or expired → StaleHoldError)
    2. Price it server side with price_for_cells
    3. Promo code matches → zero-amount checkout reconciled immediately
       Otherwise → payment collaborator creates a checkout session
    4. Record session id and amount on the hold (the webhook looks the hold up by session id)

    A hold that already has a session returns it again instead of starting a new one.
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[..., AbstractUnitOfWork],
        payment_gateway: IPaymentGateway,
        confirm_payment_use_case: ConfirmPaymentUseCase,
    ) -> None:
        self.uow_factory = uow_factory
        self.payment_gateway = payment_gateway
        self.confirm_payment_use_case = confirm_payment_use_case
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        uow_factory: Callable[..., AbstractUnitOfWork] = Depends(
            Provide[Container.unit_of_work.provider]
        ),
        payment_gateway: IPaymentGateway = Depends(Provide[Container.payment_gateway]),
        confirm_payment_use_case: ConfirmPaymentUseCase = Depends(
            Provide[Container.confirm_payment_use_case]
        ),
    ) -> Self:
        return cls(
            uow_factory=uow_factory,
            payment_gateway=payment_gateway,
            confirm_payment_use_case=confirm_payment_use_case,
        )

    @Logger.io
    async def execute(
        self, *, hold_id: UUID, contact: str, promo_code: Optional[str] = None
    ) -> CheckoutResult:
        with self.tracer.start_as_current_span(
            'use_case.start_checkout', attributes={'hold.id': str(hold_id)}
        ):
            async with self.uow_factory(read_only=True) as uow:
                hold = await uow.hold_repo.get_by_id(hold_id=hold_id)

            if not hold or hold.is_expired(now=datetime.now(timezone.utc)):
                raise StaleHoldError()
            if not hold.is_owned_by(contact):
                raise ForbiddenError('Only the purchaser can check out this hold')

            # A hold keeps its first session: a payment in it must still find the hold
            if hold.has_checkout:
                return await self._resume_checkout(hold)

            if self._is_free_promo(promo_code):
                return await self._free_checkout(hold)

            amount = price_for_cells(hold.cell_count)
            currency = settings.CURRENCY
            checkout = await self.payment_gateway.create_checkout(
                hold_id=hold.id, amount=amount, currency=currency, contact=hold.contact
            )
            recorded = await self._record_checkout(
                hold=hold.with_checkout(
                    checkout_session_id=checkout.session_id,
                    checkout_url=checkout.url,
                    amount=amount,
                    currency=currency,
                )
            )
            if recorded.checkout_session_id != checkout.session_id:
                Logger.base.info(
                    f'💳 [CHECKOUT] Hold {hold.id} got a session concurrently, '
                    f'abandoning {checkout.session_id}'
                )
                return await self._resume_checkout(recorded)

            Logger.base.info(
                f'💳 [CHECKOUT] Hold {hold.id}: {hold.cell_count} cells, {amount} {currency}, '
                f'session {checkout.session_id}'
            )
            return CheckoutResult(
                hold_id=hold.id,
                amount=amount,
                currency=currency,
                session_id=checkout.session_id,
                checkout_url=checkout.url,
            )

    @staticmethod
    def _is_free_promo(promo_code: Optional[str]) -> bool:
        if not promo_code or settings.PROMO_CODE_FREE is None:
            return False
        expected = settings.PROMO_CODE_FREE.get_secret_value()
        return bool(expected) and secrets.compare_digest(
            promo_code.strip().encode(), expected.encode()
        )

    async def _record_checkout(self, *, hold: Hold) -> Hold:
        """
        Returns:
            The hold as stored; its session differs from `hold`'s when another
            checkout recorded one first
        """
        async with self.uow_factory() as uow:
            recorded = await uow.hold_repo.set_checkout(
                hold_id=hold.id,
                checkout_session_id=hold.checkout_session_id,
                checkout_url=hold.checkout_url,
                amount=hold.amount,
                currency=hold.currency,
            )
            if recorded:
                await uow.commit()
                return hold

            # Re-check under the write transaction: the reaper may have run meanwhile
            stored = await uow.hold_repo.get_by_id(hold_id=hold.id)
            if not stored or not stored.has_checkout:
                raise StaleHoldError()
            return stored

    async def _resume_checkout(self, hold: Hold) -> CheckoutResult:
        if hold.checkout_session_id == self._free_session_id(hold):
            # Free conversion was interrupted; confirming again is idempotent
            return await self._confirm_free(hold)

        Logger.base.info(
            f'💳 [CHECKOUT] Hold {hold.id} resumes session {hold.checkout_session_id}'
        )
        return CheckoutResult(
            hold_id=hold.id,
            amount=hold.amount or 0,
            currency=hold.currency or settings.CURRENCY,
            session_id=hold.checkout_session_id,
            checkout_url=hold.checkout_url,
        )

    @staticmethod
    def _free_session_id(hold: Hold) -> str:
        return f'free_{hold.id}'

    async def _free_checkout(self, hold: Hold) -> CheckoutResult:
        recorded = await self._record_checkout(
            hold=hold.with_checkout(
                checkout_session_id=self._free_session_id(hold),
                amount=0,
                currency=settings.CURRENCY,
            )
        )
        if recorded.checkout_session_id != self._free_session_id(hold):
            return await self._resume_checkout(recorded)
        return await self._confirm_free(recorded)

    async def _confirm_free(self, hold: Hold) -> CheckoutResult:
        currency = hold.currency or settings.CURRENCY
        submission = await self.confirm_payment_use_case.execute(
            confirmation=PaymentConfirmation(
                checkout_session_id=self._free_session_id(hold),
                payment_ref=f'FREE-{hold.id}',
                amount=0,
                currency=currency,
            )
        )
        if submission is None:
            raise StaleHoldError()

        Logger.base.info(f'🎟️ [CHECKOUT] Hold {hold.id} converted with promo code')
        return CheckoutResult(
            hold_id=hold.id,
            amount=0,
            currency=currency,
            session_id=self._free_session_id(hold),
            free=True,
            submission_id=submission.id,
        )
