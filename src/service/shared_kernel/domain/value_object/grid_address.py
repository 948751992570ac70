"""
Grid Address Value Objects - Shared Kernel

Canonical cell addressing for the 1000x1000 grid, shared by the grid service
(holds, occupancy) and the viewport client (selection, rendering).

Cell id format: "row-col", e.g. "0-0", "999-999"
"""

import re
from typing import Iterable, Iterator, List

import attrs

from src.service.shared_kernel.domain.grid_error import InvalidRectangleError


GRID_SIZE = 1000

_CELL_ID_PATTERN = re.compile(r'^(\d{1,4})-(\d{1,4})$')


def _check_bounds(row: int, col: int) -> None:
    if isinstance(row, bool) or isinstance(col, bool):
        raise InvalidRectangleError(f'Cell coordinates must be integers: ({row}, {col})')
    if not isinstance(row, int) or not isinstance(col, int):
        raise InvalidRectangleError(f'Cell coordinates must be integers: ({row}, {col})')
    if not (0 <= row < GRID_SIZE and 0 <= col < GRID_SIZE):
        raise InvalidRectangleError(
            f'Cell ({row}, {col}) is outside the grid [0, {GRID_SIZE - 1}]'
        )


def cell_id(row: int, col: int) -> str:
    """Canonical id for (row, col)"""
    _check_bounds(row, col)
    return f'{row}-{col}'


def parse_cell_id(value: str) -> 'CellPosition':
    match = _CELL_ID_PATTERN.match(value) if isinstance(value, str) else None
    if not match:
        raise InvalidRectangleError(f'Invalid cell id format: {value!r}. Expected: row-col')
    return CellPosition(row=int(match.group(1)), col=int(match.group(2)))


@attrs.define(frozen=True, order=True)
class CellPosition:
    """Cell Position (Value Object); ordering is row-major"""

    row: int
    col: int

    def __attrs_post_init__(self) -> None:
        _check_bounds(self.row, self.col)

    @property
    def cell_id(self) -> str:
        return f'{self.row}-{self.col}'

    @classmethod
    def from_cell_id(cls, value: str) -> 'CellPosition':
        return parse_cell_id(value)


def expand_rectangle(top_left: CellPosition, bottom_right: CellPosition) -> List[str]:
    """
    Expand an inclusive rectangle into cell ids, row-major.

    Raises:
        InvalidRectangleError: bottom_right above or left of top_left
    """
    if bottom_right.row < top_left.row or bottom_right.col < top_left.col:
        raise InvalidRectangleError(
            f'bottom_right {bottom_right.cell_id} must not be above or left of '
            f'top_left {top_left.cell_id}'
        )
    return [
        f'{row}-{col}'
        for row in range(top_left.row, bottom_right.row + 1)
        for col in range(top_left.col, bottom_right.col + 1)
    ]


@attrs.define(frozen=True)
class Rectangle:
    """Inclusive cell rectangle [top_left, bottom_right]"""

    top_left: CellPosition
    bottom_right: CellPosition

    def __attrs_post_init__(self) -> None:
        if self.bottom_right.row < self.top_left.row or self.bottom_right.col < self.top_left.col:
            raise InvalidRectangleError(
                f'bottom_right {self.bottom_right.cell_id} must not be above or left of '
                f'top_left {self.top_left.cell_id}'
            )

    @classmethod
    def from_corners(cls, a: CellPosition, b: CellPosition) -> 'Rectangle':
        """Normalize two arbitrary corners (e.g. drag start/end) with min/max"""
        return cls(
            top_left=CellPosition(row=min(a.row, b.row), col=min(a.col, b.col)),
            bottom_right=CellPosition(row=max(a.row, b.row), col=max(a.col, b.col)),
        )

    @classmethod
    def bounding(cls, cell_ids: Iterable[str]) -> 'Rectangle':
        positions = [parse_cell_id(c) for c in cell_ids]
        if not positions:
            raise InvalidRectangleError('Cannot bound an empty cell set')
        return cls(
            top_left=CellPosition(
                row=min(p.row for p in positions), col=min(p.col for p in positions)
            ),
            bottom_right=CellPosition(
                row=max(p.row for p in positions), col=max(p.col for p in positions)
            ),
        )

    @property
    def height(self) -> int:
        return self.bottom_right.row - self.top_left.row + 1

    @property
    def width(self) -> int:
        return self.bottom_right.col - self.top_left.col + 1

    @property
    def cell_count(self) -> int:
        return self.width * self.height

    def contains(self, position: CellPosition) -> bool:
        return (
            self.top_left.row <= position.row <= self.bottom_right.row
            and self.top_left.col <= position.col <= self.bottom_right.col
        )

    def intersects(self, other: 'Rectangle') -> bool:
        return not (
            other.top_left.row > self.bottom_right.row
            or other.bottom_right.row < self.top_left.row
            or other.top_left.col > self.bottom_right.col
            or other.bottom_right.col < self.top_left.col
        )

    def positions(self) -> Iterator[CellPosition]:
        for row in range(self.top_left.row, self.bottom_right.row + 1):
            for col in range(self.top_left.col, self.bottom_right.col + 1):
                yield CellPosition(row=row, col=col)

    def cell_ids(self) -> List[str]:
        return expand_rectangle(self.top_left, self.bottom_right)
