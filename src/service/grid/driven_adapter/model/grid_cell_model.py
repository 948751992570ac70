from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from src.platform.database.orm_db_setting import Base, UtcDateTime


class GridCellModel(Base):
    """
    One row per NON-free cell; a missing row means free.

    The primary key on cell_id makes a multi-row claim all-or-nothing:
    two overlapping claims cannot both insert the shared cell.
    """

    __tablename__ = 'grid_cell'

    cell_id: Mapped[str] = mapped_column(String(9), primary_key=True)  # "row-col"
    row: Mapped[int] = mapped_column(Integer, nullable=False)
    col: Mapped[int] = mapped_column(Integer, nullable=False)
    state: Mapped[str] = mapped_column(String(10), nullable=False)  # held/occupied
    hold_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    submission_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        UtcDateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "(state = 'held' AND hold_id IS NOT NULL AND submission_id IS NULL) OR "
            "(state = 'occupied' AND submission_id IS NOT NULL AND hold_id IS NULL)",
            name='ck_grid_cell_state_ref',
        ),
        Index('ix_grid_cell_row_col', 'row', 'col'),
    )
