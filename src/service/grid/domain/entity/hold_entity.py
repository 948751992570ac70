from datetime import datetime, timedelta, timezone
from typing import List, Optional

import attrs
from uuid_utils import UUID, uuid7

from src.service.shared_kernel.domain.value_object.grid_address import Rectangle


@attrs.define
class Hold:
    """
    Time-boxed exclusive claim on a rectangle of cells pending payment.

    The hold row and the `held` cell rows are written in one transaction;
    deleting the hold always releases its cells in the same transaction.
    """

    id: UUID
    contact: str
    rectangle: Rectangle
    cell_ids: List[str]
    created_at: datetime
    expires_at: datetime
    checkout_session_id: Optional[str] = None
    checkout_url: Optional[str] = None
    amount: Optional[int] = None
    currency: Optional[str] = None

    @classmethod
    def create(
        cls,
        *,
        contact: str,
        rectangle: Rectangle,
        ttl: timedelta,
        now: Optional[datetime] = None,
    ) -> 'Hold':
        created_at = now or datetime.now(timezone.utc)
        return cls(
            id=uuid7(),
            contact=contact,
            rectangle=rectangle,
            cell_ids=rectangle.cell_ids(),
            created_at=created_at,
            expires_at=created_at + ttl,
        )

    @property
    def cell_count(self) -> int:
        return len(self.cell_ids)

    def is_expired(self, *, now: Optional[datetime] = None) -> bool:
        return self.expires_at <= (now or datetime.now(timezone.utc))

    def is_owned_by(self, contact: str) -> bool:
        return self.contact.strip().lower() == contact.strip().lower()

    @property
    def has_checkout(self) -> bool:
        return self.checkout_session_id is not None

    def with_checkout(
        self,
        *,
        checkout_session_id: str,
        amount: int,
        currency: str,
        checkout_url: Optional[str] = None,
    ) -> 'Hold':
        return attrs.evolve(
            self,
            checkout_session_id=checkout_session_id,
            checkout_url=checkout_url,
            amount=amount,
            currency=currency,
        )
