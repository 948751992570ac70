"""Shared Kernel Domain Layer"""

from src.service.shared_kernel.domain.enum import CellState
from src.service.shared_kernel.domain.value_object import CellPosition, Rectangle

__all__ = ['CellPosition', 'CellState', 'Rectangle']
