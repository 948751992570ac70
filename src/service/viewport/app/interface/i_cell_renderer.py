from abc import ABC, abstractmethod

from src.service.shared_kernel.domain.enum.cell_state import CellState
from src.service.shared_kernel.domain.value_object.grid_address import CellPosition


class ICellRenderer(ABC):
    """Drawing surface (canvas, terminal, test recorder) driven by SelectionController.render"""

    @abstractmethod
    def draw_cell(
        self,
        *,
        position: CellPosition,
        x: float,
        y: float,
        size: float,
        state: CellState,
        selected: bool,
    ) -> None:
        pass

    @abstractmethod
    def draw_selection_outline(self, *, x: float, y: float, width: float, height: float) -> None:
        """Outline of the rectangle currently being dragged"""
        pass
