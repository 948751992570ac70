from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from uuid_utils import UUID

from src.platform.logging.loguru_io import Logger
from src.service.grid.app.interface.i_submission_repo import ISubmissionRepo
from src.service.grid.domain.entity.submission_entity import (
    ContentRef,
    Submission,
    SubmissionStatus,
)
from src.service.grid.driven_adapter.model.submission_model import SubmissionModel
from src.service.shared_kernel.domain.value_object.grid_address import (
    Rectangle,
    parse_cell_id,
)


class SubmissionRepoImpl(ISubmissionRepo):
    def __init__(self, *, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _to_entity(db_submission: SubmissionModel) -> Submission:
        content = None
        if db_submission.video_url:
            content = ContentRef(
                video_url=db_submission.video_url,
                poster_url=db_submission.poster_url,
                duration_seconds=db_submission.duration_seconds or 0.0,
            )
        return Submission(
            id=UUID(db_submission.id),
            contact=db_submission.contact,
            rectangle=Rectangle(
                top_left=parse_cell_id(db_submission.top_left),
                bottom_right=parse_cell_id(db_submission.bottom_right),
            ),
            cell_ids=list(db_submission.cell_ids),
            amount=db_submission.amount,
            currency=db_submission.currency,
            payment_ref=db_submission.payment_ref,
            checkout_session_id=db_submission.checkout_session_id,
            status=SubmissionStatus(db_submission.status),
            admin_notes=db_submission.admin_notes,
            content=content,
            created_at=db_submission.created_at,
            submitted_at=db_submission.submitted_at,
            approved_at=db_submission.approved_at,
            rejected_at=db_submission.rejected_at,
            removed_at=db_submission.removed_at,
        )

    @staticmethod
    def _mutable_values(submission: Submission) -> Dict[str, Any]:
        content = submission.content
        return {
            'status': submission.status.value,
            'admin_notes': submission.admin_notes,
            'video_url': content.video_url if content else None,
            'poster_url': content.poster_url if content else None,
            'duration_seconds': content.duration_seconds if content else None,
            'submitted_at': submission.submitted_at,
            'approved_at': submission.approved_at,
            'rejected_at': submission.rejected_at,
            'removed_at': submission.removed_at,
        }

    @classmethod
    def _apply(cls, db_submission: SubmissionModel, submission: Submission) -> None:
        for column, value in cls._mutable_values(submission).items():
            setattr(db_submission, column, value)

    @Logger.io(truncate_content=True)
    async def create(self, *, submission: Submission) -> Submission:
        db_submission = SubmissionModel(
            id=str(submission.id),
            contact=submission.contact,
            top_left=submission.rectangle.top_left.cell_id,
            bottom_right=submission.rectangle.bottom_right.cell_id,
            cell_ids=list(submission.cell_ids),
            amount=submission.amount,
            currency=submission.currency,
            payment_ref=submission.payment_ref,
            checkout_session_id=submission.checkout_session_id,
            created_at=submission.created_at,
        )
        self._apply(db_submission, submission)
        self.session.add(db_submission)
        await self.session.flush()
        return submission

    @Logger.io(truncate_content=True)
    async def get_by_id(self, *, submission_id: UUID) -> Optional[Submission]:
        db_submission = await self.session.get(
            SubmissionModel, str(submission_id), populate_existing=True
        )
        return self._to_entity(db_submission) if db_submission else None

    @Logger.io(truncate_content=True)
    async def get_by_payment_ref(self, *, payment_ref: str) -> Optional[Submission]:
        result = await self.session.execute(
            select(SubmissionModel).where(SubmissionModel.payment_ref == payment_ref)
        )
        db_submission = result.scalar_one_or_none()
        return self._to_entity(db_submission) if db_submission else None

    @Logger.io(truncate_content=True)
    async def get_by_checkout_session_id(self, *, checkout_session_id: str) -> Optional[Submission]:
        result = await self.session.execute(
            select(SubmissionModel).where(
                SubmissionModel.checkout_session_id == checkout_session_id
            )
        )
        db_submission = result.scalar_one_or_none()
        return self._to_entity(db_submission) if db_submission else None

    @Logger.io(truncate_content=True)
    async def transition(
        self, *, submission: Submission, from_status: SubmissionStatus
    ) -> bool:
        result = await self.session.execute(
            update(SubmissionModel)
            .where(
                SubmissionModel.id == str(submission.id),
                SubmissionModel.status == from_status.value,
            )
            .values(**self._mutable_values(submission))
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)

    @Logger.io(truncate_content=True)
    async def list_by_status(self, *, statuses: List[SubmissionStatus]) -> List[Submission]:
        result = await self.session.execute(
            select(SubmissionModel)
            .where(SubmissionModel.status.in_([s.value for s in statuses]))
            .order_by(SubmissionModel.created_at)
        )
        return [self._to_entity(row) for row in result.scalars().all()]
