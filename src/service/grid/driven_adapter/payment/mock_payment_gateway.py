"""
Mock Payment Collaborators

Stand-ins for the hosted checkout provider. A started checkout gets a provider-style
session id; the confirmation arrives later through the payment webhook.
"""

from typing import List, Optional

from uuid_utils import UUID, uuid7

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import ExternalServiceUnavailableError
from src.platform.logging.loguru_io import Logger
from src.service.grid.app.dto.checkout_dto import CheckoutHandle
from src.service.grid.app.interface.i_payment_gateway import IPaymentGateway, IRefundGateway


class MockPaymentGateway(IPaymentGateway):
    def __init__(self, *, base_url: Optional[str] = None) -> None:
        self.base_url = (base_url or settings.CHECKOUT_BASE_URL).rstrip('/')
        self.available = True

    @Logger.io
    async def create_checkout(
        self, *, hold_id: UUID, amount: int, currency: str, contact: str
    ) -> CheckoutHandle:
        if not self.available:
            raise ExternalServiceUnavailableError(
                'Payment provider is unavailable', service='payment'
            )

        session_id = f'cs_mock_{uuid7().hex}'
        Logger.base.info(
            f'💳 [MOCK_PAYMENT] Checkout {session_id} for hold {hold_id}: {amount} {currency}'
        )
        return CheckoutHandle(session_id=session_id, url=f'{self.base_url}/{session_id}')


class MockRefundGateway(IRefundGateway):
    def __init__(self) -> None:
        self.refunds: List[dict] = []
        self.available = True

    @Logger.io
    async def refund(self, *, payment_ref: str, amount: int, currency: str) -> None:
        if not self.available:
            raise ExternalServiceUnavailableError(
                'Refund provider is unavailable', service='refund'
            )

        self.refunds.append({'payment_ref': payment_ref, 'amount': amount, 'currency': currency})
        Logger.base.info(f'💸 [MOCK_REFUND] Refunded {amount} {currency} for {payment_ref}')
