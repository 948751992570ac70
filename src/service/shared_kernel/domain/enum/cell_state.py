from enum import StrEnum


class CellState(StrEnum):
    FREE = 'free'
    HELD = 'held'
    OCCUPIED = 'occupied'
