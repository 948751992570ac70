"""Shared Kernel Enums"""

from src.service.shared_kernel.domain.enum.cell_state import CellState

__all__ = ['CellState']
