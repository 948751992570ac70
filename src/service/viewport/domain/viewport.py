"""
Viewport - scroll/zoom window over the grid

Coordinates:
- screen pixels: (x, y) relative to the viewport's top-left corner
- grid pixels:   screen pixels + scroll offset; one cell is `cell_size` grid pixels
"""

import math
from typing import Optional, Tuple

import attrs

from src.service.shared_kernel.domain.value_object.grid_address import (
    GRID_SIZE,
    CellPosition,
    Rectangle,
)


DEFAULT_CELL_SIZE = 10.0
MIN_CELL_SIZE = 2.0
MAX_CELL_SIZE = 64.0


@attrs.define
class Viewport:
    width: float
    height: float
    cell_size: float = DEFAULT_CELL_SIZE
    offset_x: float = 0.0
    offset_y: float = 0.0
    min_cell_size: float = MIN_CELL_SIZE
    max_cell_size: float = MAX_CELL_SIZE

    def __attrs_post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError('Viewport width and height must be positive')
        if not 0 < self.min_cell_size <= self.max_cell_size:
            raise ValueError('Invalid cell size bounds')
        self.cell_size = self._clamp_cell_size(self.cell_size)
        self._clamp_offsets()

    @property
    def grid_pixels(self) -> float:
        return GRID_SIZE * self.cell_size

    def visible_window(self) -> Rectangle:
        """Cells at least partly visible; at most (width/cell_size + 1) x (height/cell_size + 1)"""
        first_col = int(self.offset_x // self.cell_size)
        first_row = int(self.offset_y // self.cell_size)
        last_col = math.ceil((self.offset_x + self.width) / self.cell_size) - 1
        last_row = math.ceil((self.offset_y + self.height) / self.cell_size) - 1
        return Rectangle(
            top_left=CellPosition(row=first_row, col=first_col),
            bottom_right=CellPosition(
                row=max(first_row, min(GRID_SIZE - 1, last_row)),
                col=max(first_col, min(GRID_SIZE - 1, last_col)),
            ),
        )

    def cell_at(self, x: float, y: float) -> Optional[CellPosition]:
        """Cell under a screen point, or None outside the viewport or the grid"""
        if not (0 <= x < self.width and 0 <= y < self.height):
            return None
        col = int((self.offset_x + x) // self.cell_size)
        row = int((self.offset_y + y) // self.cell_size)
        if not (0 <= row < GRID_SIZE and 0 <= col < GRID_SIZE):
            return None
        return CellPosition(row=row, col=col)

    def clamped_cell_at(self, x: float, y: float) -> CellPosition:
        """Like cell_at, but points dragged past an edge snap to the nearest cell"""
        x = min(max(x, 0.0), self.width - 1e-6)
        y = min(max(y, 0.0), self.height - 1e-6)
        col = int((self.offset_x + x) // self.cell_size)
        row = int((self.offset_y + y) // self.cell_size)
        return CellPosition(
            row=min(max(row, 0), GRID_SIZE - 1), col=min(max(col, 0), GRID_SIZE - 1)
        )

    def screen_origin(self, position: CellPosition) -> Tuple[float, float]:
        return (
            position.col * self.cell_size - self.offset_x,
            position.row * self.cell_size - self.offset_y,
        )

    def scroll_by(self, dx: float, dy: float) -> None:
        self.offset_x += dx
        self.offset_y += dy
        self._clamp_offsets()

    def scroll_to(self, offset_x: float, offset_y: float) -> None:
        self.offset_x = offset_x
        self.offset_y = offset_y
        self._clamp_offsets()

    def zoom_at(self, x: float, y: float, factor: float) -> None:
        """Scale cell size by `factor`, keeping the grid point under (x, y) in place"""
        if factor <= 0:
            raise ValueError('Zoom factor must be positive')
        grid_x = (self.offset_x + x) / self.cell_size
        grid_y = (self.offset_y + y) / self.cell_size

        self.cell_size = self._clamp_cell_size(self.cell_size * factor)
        self.offset_x = grid_x * self.cell_size - x
        self.offset_y = grid_y * self.cell_size - y
        self._clamp_offsets()

    def _clamp_cell_size(self, size: float) -> float:
        return min(max(size, self.min_cell_size), self.max_cell_size)

    def _clamp_offsets(self) -> None:
        max_x = max(0.0, self.grid_pixels - self.width)
        max_y = max(0.0, self.grid_pixels - self.height)
        self.offset_x = min(max(self.offset_x, 0.0), max_x)
        self.offset_y = min(max(self.offset_y, 0.0), max_y)
