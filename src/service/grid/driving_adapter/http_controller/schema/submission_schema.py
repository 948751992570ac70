from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from src.platform.types.uuid7_utils_types import UtilsUUID7


class ContentAttachRequest(BaseModel):
    contact: EmailStr
    video_url: str = Field(..., min_length=1)
    poster_url: Optional[str] = None
    duration_seconds: float = Field(..., gt=0)

    class Config:
        json_schema_extra = {
            'example': {
                'contact': 'buyer@mail.com',
                'video_url': 'https://cdn.example.org/videos/abc.mp4',
                'poster_url': 'https://cdn.example.org/posters/abc.jpg',
                'duration_seconds': 12.5,
            }
        }


class SubmissionResponse(BaseModel):
    id: UtilsUUID7
    contact: str
    top_left: str
    bottom_right: str
    cell_count: int
    amount: int
    currency: str
    status: str
    admin_notes: Optional[str] = None
    video_url: Optional[str] = None
    poster_url: Optional[str] = None
    duration_seconds: Optional[float] = None
    created_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    removed_at: Optional[datetime] = None


class ModerationRequest(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=2000)


class ReapResponse(BaseModel):
    holds_reaped: int
    cells_freed: int
    orphaned_cells_freed: int
