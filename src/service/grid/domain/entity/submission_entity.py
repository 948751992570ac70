from datetime import datetime, timezone
from enum import StrEnum
from typing import List, Optional

import attrs
from uuid_utils import UUID, uuid7

from src.platform.exception.exceptions import DomainError
from src.service.grid.domain.entity.hold_entity import Hold
from src.service.shared_kernel.domain.value_object.grid_address import Rectangle
from src.service.shared_kernel.domain.value_object.pricing import max_video_duration


class SubmissionStatus(StrEnum):
    AWAITING_UPLOAD = 'awaiting_upload'
    UNDER_REVIEW = 'under_review'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    REMOVED = 'removed'


# Statuses whose cells have been returned to free
VACATED_STATUSES = frozenset({SubmissionStatus.REJECTED, SubmissionStatus.REMOVED})


@attrs.define(frozen=True)
class ContentRef:
    """Durable reference handed over by the content storage collaborator"""

    video_url: str
    duration_seconds: float
    poster_url: Optional[str] = None


@attrs.define
class Submission:
    id: UUID
    contact: str
    rectangle: Rectangle
    cell_ids: List[str]
    amount: int
    currency: str
    payment_ref: str
    checkout_session_id: Optional[str] = None
    status: SubmissionStatus = SubmissionStatus.AWAITING_UPLOAD
    admin_notes: Optional[str] = None
    content: Optional[ContentRef] = None
    created_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    removed_at: Optional[datetime] = None

    @classmethod
    def from_paid_hold(
        cls, *, hold: Hold, payment_ref: str, amount: int, currency: str
    ) -> 'Submission':
        if not payment_ref:
            raise DomainError('payment_ref is required')
        if amount < 0:
            raise DomainError('amount must not be negative')
        return cls(
            id=uuid7(),
            contact=hold.contact,
            rectangle=hold.rectangle,
            cell_ids=list(hold.cell_ids),
            amount=amount,
            currency=currency,
            payment_ref=payment_ref,
            checkout_session_id=hold.checkout_session_id,
            created_at=datetime.now(timezone.utc),
        )

    @property
    def cell_count(self) -> int:
        return len(self.cell_ids)

    @property
    def is_vacated(self) -> bool:
        return self.status in VACATED_STATUSES

    def is_owned_by(self, contact: str) -> bool:
        return self.contact.strip().lower() == contact.strip().lower()

    def attach_content(self, content: ContentRef) -> 'Submission':
        if self.status not in (SubmissionStatus.AWAITING_UPLOAD, SubmissionStatus.UNDER_REVIEW):
            raise DomainError(f'Cannot upload content to a {self.status} submission', 409)
        limit = max_video_duration(self.cell_count)
        if content.duration_seconds <= 0:
            raise DomainError('Video duration must be positive')
        if content.duration_seconds > limit:
            raise DomainError(
                f'Video must be {limit} seconds or less for {self.cell_count} cell(s)'
            )
        return attrs.evolve(
            self,
            content=content,
            status=SubmissionStatus.UNDER_REVIEW,
            submitted_at=datetime.now(timezone.utc),
        )

    def approve(self, *, notes: Optional[str] = None) -> 'Submission':
        if self.status != SubmissionStatus.UNDER_REVIEW:
            raise DomainError(
                f'Only submissions under review can be approved (is {self.status})', 409
            )
        return attrs.evolve(
            self,
            status=SubmissionStatus.APPROVED,
            admin_notes=notes if notes is not None else self.admin_notes,
            approved_at=datetime.now(timezone.utc),
        )

    def reject(self, *, notes: Optional[str] = None) -> 'Submission':
        if self.status == SubmissionStatus.REMOVED:
            raise DomainError('Submission has already been removed', 409)
        return attrs.evolve(
            self,
            status=SubmissionStatus.REJECTED,
            admin_notes=notes if notes is not None else self.admin_notes,
            rejected_at=datetime.now(timezone.utc),
        )

    def remove(self, *, notes: Optional[str] = None) -> 'Submission':
        if self.status == SubmissionStatus.REJECTED:
            raise DomainError('Submission has already been rejected', 409)
        return attrs.evolve(
            self,
            status=SubmissionStatus.REMOVED,
            admin_notes=notes if notes is not None else self.admin_notes,
            removed_at=datetime.now(timezone.utc),
        )
