"""Checkout DTOs shared by the hold use cases and the payment collaborator."""

from typing import Optional

import attrs
from uuid_utils import UUID


@attrs.define(frozen=True)
class CheckoutHandle:
    """Returned by the payment collaborator for a started checkout"""

    session_id: str
    url: str


@attrs.define(frozen=True)
class CheckoutResult:
    hold_id: UUID
    amount: int
    currency: str
    session_id: str
    checkout_url: Optional[str] = None
    free: bool = False
    submission_id: Optional[UUID] = None  # set when a free checkout was reconciled immediately


@attrs.define(frozen=True)
class PaymentConfirmation:
    """Inbound 'payment confirmed' event from the payment collaborator"""

    checkout_session_id: str
    payment_ref: str
    amount: Optional[int] = None
    currency: Optional[str] = None
