from typing import Optional

import attrs
from uuid_utils import UUID

from src.service.grid.domain.entity.submission_entity import Submission, SubmissionStatus


@attrs.define(frozen=True)
class OccupancyRecord:
    """
    Occupied rectangle as shown on the public grid; content urls are only
    exposed once the submission is approved
    """

    submission_id: UUID
    status: SubmissionStatus
    top_left: str
    bottom_right: str
    cell_count: int
    video_url: Optional[str] = None
    poster_url: Optional[str] = None

    @classmethod
    def from_submission(cls, submission: Submission) -> 'OccupancyRecord':
        visible = submission.status == SubmissionStatus.APPROVED and submission.content
        return cls(
            submission_id=submission.id,
            status=submission.status,
            top_left=submission.rectangle.top_left.cell_id,
            bottom_right=submission.rectangle.bottom_right.cell_id,
            cell_count=submission.cell_count,
            video_url=submission.content.video_url if visible else None,
            poster_url=submission.content.poster_url if visible else None,
        )
