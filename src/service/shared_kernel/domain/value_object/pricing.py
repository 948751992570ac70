"""
Purchase pricing and content limits - Shared Kernel

Single source for values derived from a rectangle's cell count. The viewport
shows these as estimates; the amount actually charged is always computed
server side with the same functions.
"""

from typing import Optional

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import DomainError


def price_for_cells(cell_count: int, *, price_per_cell: Optional[int] = None) -> int:
    """Total price in minor currency units (cents)"""
    if cell_count < 1:
        raise DomainError('A purchase must contain at least one cell')
    unit = settings.PRICE_PER_CELL_CENTS if price_per_cell is None else price_per_cell
    return cell_count * unit


def max_video_duration(cell_count: int) -> int:
    """Longest accepted video in seconds: 15s for one cell, +5s per extra cell, capped at 150s"""
    if cell_count < 1:
        raise DomainError('A purchase must contain at least one cell')
    return min(
        settings.MAX_VIDEO_DURATION_SECONDS,
        settings.BASE_VIDEO_DURATION_SECONDS
        + settings.VIDEO_SECONDS_PER_EXTRA_CELL * (cell_count - 1),
    )
