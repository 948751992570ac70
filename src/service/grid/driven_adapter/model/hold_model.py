from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.platform.database.orm_db_setting import Base, UtcDateTime


class HoldModel(Base):
    __tablename__ = 'grid_hold'

    id: Mapped[str] = mapped_column(String(36), primary_key=True)  # UUID7
    contact: Mapped[str] = mapped_column(String(320), nullable=False)
    top_left: Mapped[str] = mapped_column(String(9), nullable=False)
    bottom_right: Mapped[str] = mapped_column(String(9), nullable=False)
    cell_ids: Mapped[list] = mapped_column(JSON, nullable=False)
    cell_count: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False, index=True)
    checkout_session_id: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True, unique=True, index=True
    )
    checkout_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    amount: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    currency: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)
