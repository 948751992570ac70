from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from src.platform.logging.loguru_io import Logger
from src.platform.types.uuid7_utils_types import UtilsUUID7
from src.service.grid.app.command.attach_content_use_case import AttachContentUseCase
from src.service.grid.app.query.get_submission_use_case import GetSubmissionUseCase
from src.service.grid.domain.entity.submission_entity import ContentRef, Submission
from src.service.grid.driving_adapter.http_controller.schema.submission_schema import (
    ContentAttachRequest,
    SubmissionResponse,
)


router = APIRouter()


def submission_response(submission: Submission) -> SubmissionResponse:
    content = submission.content
    return SubmissionResponse(
        id=submission.id,
        contact=submission.contact,
        top_left=submission.rectangle.top_left.cell_id,
        bottom_right=submission.rectangle.bottom_right.cell_id,
        cell_count=submission.cell_count,
        amount=submission.amount,
        currency=submission.currency,
        status=submission.status.value,
        admin_notes=submission.admin_notes,
        video_url=content.video_url if content else None,
        poster_url=content.poster_url if content else None,
        duration_seconds=content.duration_seconds if content else None,
        created_at=submission.created_at,
        submitted_at=submission.submitted_at,
        approved_at=submission.approved_at,
        rejected_at=submission.rejected_at,
        removed_at=submission.removed_at,
    )


@router.post('/{submission_id}/content', status_code=status.HTTP_200_OK)
@Logger.io
async def attach_content(
    submission_id: UtilsUUID7,
    request: ContentAttachRequest,
    use_case: AttachContentUseCase = Depends(AttachContentUseCase.depends),
) -> SubmissionResponse:
    submission = await use_case.execute(
        submission_id=submission_id,
        contact=request.contact,
        content=ContentRef(
            video_url=request.video_url,
            poster_url=request.poster_url,
            duration_seconds=request.duration_seconds,
        ),
    )
    return submission_response(submission)


@router.get('/by-session/{checkout_session_id}', status_code=status.HTTP_200_OK)
@Logger.io
async def get_submission_by_session(
    checkout_session_id: str,
    contact: Optional[str] = Query(default=None),
    use_case: GetSubmissionUseCase = Depends(GetSubmissionUseCase.depends),
) -> SubmissionResponse:
    submission = await use_case.execute_by_session(
        checkout_session_id=checkout_session_id, contact=contact
    )
    return submission_response(submission)


@router.get('/{submission_id}', status_code=status.HTTP_200_OK)
@Logger.io
async def get_submission(
    submission_id: UtilsUUID7,
    contact: Optional[str] = Query(default=None),
    use_case: GetSubmissionUseCase = Depends(GetSubmissionUseCase.depends),
) -> SubmissionResponse:
    submission = await use_case.execute(submission_id=submission_id, contact=contact)
    return submission_response(submission)
