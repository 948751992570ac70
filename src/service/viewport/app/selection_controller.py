"""
Selection Controller

Turns pointer gestures over a Viewport into a set of selected free cells.

Gestures:
- drag (down on one cell, up on another): selection becomes the rectangle
  spanned by both corners minus every non-free cell
- click (down/up on the same cell): toggles that cell if it is free
- double click (second click on the same cell within `double_click_window`):
  "view content" for that cell; the first click's toggle is undone

The snapshot is the only source of cell states. Nothing here marks a cell
held or occupied; after a purchase the feed delivers the new states.
"""

import time
from enum import StrEnum
from typing import Callable, List, Optional, Set

import attrs

from src.platform.logging.loguru_io import Logger
from src.service.shared_kernel.domain.grid_error import InvalidRectangleError
from src.service.shared_kernel.domain.value_object.grid_address import (
    CellPosition,
    Rectangle,
    parse_cell_id,
)
from src.service.shared_kernel.domain.value_object.pricing import (
    max_video_duration,
    price_for_cells,
)
from src.service.viewport.app.interface.i_cell_renderer import ICellRenderer
from src.service.viewport.app.interface.i_selection_storage import ISelectionStorage
from src.service.viewport.domain.cell_snapshot import CellSnapshot
from src.service.viewport.domain.viewport import Viewport


DEFAULT_DOUBLE_CLICK_WINDOW = 0.3


class PointerAction(StrEnum):
    NONE = 'none'
    SELECT_RECTANGLE = 'select_rectangle'
    TOGGLE_CELL = 'toggle_cell'
    VIEW_CONTENT = 'view_content'


@attrs.define(frozen=True)
class PointerResult:
    action: PointerAction
    cell: Optional[CellPosition] = None
    rectangle: Optional[Rectangle] = None
    changed: bool = False


@attrs.define
class _LastClick:
    cell_id: str
    at: float
    toggled: bool


class SelectionController:
    def __init__(
        self,
        *,
        viewport: Viewport,
        snapshot: CellSnapshot,
        storage: ISelectionStorage,
        session_id: str,
        clock: Callable[[], float] = time.monotonic,
        double_click_window: float = DEFAULT_DOUBLE_CLICK_WINDOW,
    ) -> None:
        self.viewport = viewport
        self.snapshot = snapshot
        self.storage = storage
        self.session_id = session_id
        self.clock = clock
        self.double_click_window = double_click_window

        self._selected: Set[str] = self._restore()
        self._drag_start: Optional[CellPosition] = None
        self._drag_end: Optional[CellPosition] = None
        self._dragging = False
        self._preview: Set[str] = set()
        self._last_click: Optional[_LastClick] = None

    @property
    def selected_cell_ids(self) -> List[str]:
        """Current selection, row-major"""
        return sorted(self._selected, key=parse_cell_id)

    @property
    def is_dragging(self) -> bool:
        return self._dragging

    @property
    def drag_rectangle(self) -> Optional[Rectangle]:
        if not self._dragging or self._drag_start is None or self._drag_end is None:
            return None
        return Rectangle.from_corners(self._drag_start, self._drag_end)

    # Pointer gestures

    def pointer_down(self, x: float, y: float) -> None:
        cell = self.viewport.cell_at(x, y)
        self._reset_gesture()
        if cell is None:
            return
        self._drag_start = cell
        self._drag_end = cell

    def pointer_move(self, x: float, y: float) -> List[str]:
        """
        Returns:
            Drag preview: free cells of the rectangle under the pointer (empty before a drag)
        """
        if self._drag_start is None:
            return []
        cell = self.viewport.clamped_cell_at(x, y)
        if cell != self._drag_start:
            self._dragging = True
        if self._dragging:
            self._drag_end = cell
            self._preview = set(self._free_cells_in(self.drag_rectangle))
        return sorted(self._preview, key=parse_cell_id)

    def pointer_up(self, x: float, y: float) -> PointerResult:
        start = self._drag_start
        if start is None:
            return PointerResult(action=PointerAction.NONE)

        end = self.viewport.clamped_cell_at(x, y)
        dragging = self._dragging or end != start
        self._reset_gesture()

        if dragging:
            return self._select_rectangle(Rectangle.from_corners(start, end))
        return self._click(start)

    def pointer_cancel(self) -> None:
        self._reset_gesture()

    # Selection lifecycle

    def clear_selection(self) -> None:
        self._selected.clear()
        self._persist()

    def reconcile(self) -> List[str]:
        """
        Drop selected cells the feed reports as no longer free

        Returns:
            The dropped cell ids
        """
        dropped = [cell_id for cell_id in self._selected if not self.snapshot.is_free(cell_id)]
        if dropped:
            self._selected.difference_update(dropped)
            self._persist()
            Logger.base.info(f'🔄 [SELECTION] {len(dropped)} selected cells taken by others')
        return sorted(dropped, key=parse_cell_id)

    def selection_rectangle(self) -> Optional[Rectangle]:
        """The selection as a rectangle a hold can claim, None when it has gaps"""
        if not self._selected:
            return None
        bounds = Rectangle.bounding(self._selected)
        if bounds.cell_count != len(self._selected):
            return None
        return bounds

    def estimated_price(self) -> int:
        """Display estimate in cents; the server computes the charged amount"""
        return price_for_cells(len(self._selected)) if self._selected else 0

    def max_video_seconds(self) -> int:
        return max_video_duration(len(self._selected)) if self._selected else 0

    def complete_purchase(self) -> None:
        self._finish_purchase()
        Logger.base.info(f'🛒 [SELECTION] Purchase completed for session {self.session_id}')

    def cancel_purchase(self) -> None:
        self._finish_purchase()
        Logger.base.info(f'↩️ [SELECTION] Purchase cancelled for session {self.session_id}')

    # Rendering

    def render(self, renderer: ICellRenderer) -> int:
        """
        Draw the visible window only

        Returns:
            Number of cells drawn
        """
        window = self.viewport.visible_window()
        marked = self._preview if self._dragging else self._selected
        size = self.viewport.cell_size
        drawn = 0

        for position in window.positions():
            cell_id = position.cell_id
            x, y = self.viewport.screen_origin(position)
            renderer.draw_cell(
                position=position,
                x=x,
                y=y,
                size=size,
                state=self.snapshot.state_of(cell_id),
                selected=cell_id in marked,
            )
            drawn += 1

        rectangle = self.drag_rectangle
        if rectangle is not None:
            x, y = self.viewport.screen_origin(rectangle.top_left)
            renderer.draw_selection_outline(
                x=x, y=y, width=rectangle.width * size, height=rectangle.height * size
            )
        return drawn

    # Internals

    def _select_rectangle(self, rectangle: Rectangle) -> PointerResult:
        self._selected = set(self._free_cells_in(rectangle))
        self._last_click = None
        self._persist()
        return PointerResult(
            action=PointerAction.SELECT_RECTANGLE, rectangle=rectangle, changed=True
        )

    def _click(self, cell: CellPosition) -> PointerResult:
        now = self.clock()
        last = self._last_click
        if (
            last is not None
            and last.cell_id == cell.cell_id
            and now - last.at <= self.double_click_window
        ):
            self._last_click = None
            if last.toggled:
                self._toggle(cell.cell_id)
                self._persist()
            return PointerResult(
                action=PointerAction.VIEW_CONTENT, cell=cell, changed=last.toggled
            )

        toggled = self._toggle(cell.cell_id)
        self._last_click = _LastClick(cell_id=cell.cell_id, at=now, toggled=toggled)
        if toggled:
            self._persist()
        return PointerResult(action=PointerAction.TOGGLE_CELL, cell=cell, changed=toggled)

    def _toggle(self, cell_id: str) -> bool:
        if cell_id in self._selected:
            self._selected.discard(cell_id)
            return True
        if self.snapshot.is_free(cell_id):
            self._selected.add(cell_id)
            return True
        return False

    def _free_cells_in(self, rectangle: Optional[Rectangle]) -> List[str]:
        if rectangle is None:
            return []
        taken = set(self.snapshot.non_free_in(rectangle))
        return [cell_id for cell_id in rectangle.cell_ids() if cell_id not in taken]

    def _reset_gesture(self) -> None:
        self._drag_start = None
        self._drag_end = None
        self._dragging = False
        self._preview = set()

    def _finish_purchase(self) -> None:
        self._reset_gesture()
        self._selected.clear()
        self._last_click = None
        self.storage.clear(session_id=self.session_id)

    def _persist(self) -> None:
        self.storage.save(session_id=self.session_id, cell_ids=self.selected_cell_ids)

    def _restore(self) -> Set[str]:
        restored = set()
        for cell_id in self.storage.load(session_id=self.session_id):
            try:
                restored.add(parse_cell_id(cell_id).cell_id)
            except InvalidRectangleError:
                Logger.base.warning(f'⚠️ [SELECTION] Dropping invalid stored id {cell_id!r}')
        return restored
