"""Shared Kernel Value Objects"""

from src.service.shared_kernel.domain.value_object.grid_address import (
    GRID_SIZE,
    CellPosition,
    Rectangle,
    cell_id,
    expand_rectangle,
    parse_cell_id,
)
from src.service.shared_kernel.domain.value_object.pricing import (
    max_video_duration,
    price_for_cells,
)

__all__ = [
    'GRID_SIZE',
    'CellPosition',
    'Rectangle',
    'cell_id',
    'expand_rectangle',
    'max_video_duration',
    'parse_cell_id',
    'price_for_cells',
]
