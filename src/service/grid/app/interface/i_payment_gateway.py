"""
Payment Collaborator Interfaces

The engine only consumes "create a charge for N cells" and "refund a charge";
confirmations arrive asynchronously through the payment webhook.
"""

from abc import ABC, abstractmethod

from uuid_utils import UUID

from src.service.grid.app.dto.checkout_dto import CheckoutHandle


class IPaymentGateway(ABC):
    @abstractmethod
    async def create_checkout(
        self, *, hold_id: UUID, amount: int, currency: str, contact: str
    ) -> CheckoutHandle:
        """
        Start a checkout session for a hold

        Args:
            hold_id: Hold being paid for (echoed back in the confirmation metadata)
            amount: Server-computed amount in minor units
            currency: ISO currency code (lowercase)
            contact: Purchaser email

        Returns:
            CheckoutHandle with the provider session id and redirect url

        Raises:
            ExternalServiceUnavailableError: provider unreachable
        """
        pass


class IRefundGateway(ABC):
    @abstractmethod
    async def refund(self, *, payment_ref: str, amount: int, currency: str) -> None:
        """
        Refund a captured payment (best effort, never retried by the engine)

        Raises:
            ExternalServiceUnavailableError: provider unreachable or refund declined
        """
        pass
