from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.platform.database.orm_db_setting import Base, UtcDateTime


class SubmissionModel(Base):
    __tablename__ = 'grid_submission'

    id: Mapped[str] = mapped_column(String(36), primary_key=True)  # UUID7
    contact: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    top_left: Mapped[str] = mapped_column(String(9), nullable=False)
    bottom_right: Mapped[str] = mapped_column(String(9), nullable=False)
    cell_ids: Mapped[list] = mapped_column(JSON, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    # Idempotency key for at-least-once payment confirmations
    payment_ref: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    # Lets the buyer find the submission after paying (the hold is gone by then)
    checkout_session_id: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True, unique=True, index=True
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    video_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    poster_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    duration_seconds: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(UtcDateTime, nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(UtcDateTime, nullable=True)
    rejected_at: Mapped[Optional[datetime]] = mapped_column(UtcDateTime, nullable=True)
    removed_at: Mapped[Optional[datetime]] = mapped_column(UtcDateTime, nullable=True)
