"""
Cell Snapshot - client-local mirror of the grid state feed

Only non-free cells are stored, so memory follows the number of sold/held
cells rather than the 1,000,000 addressable ones. The mirror never changes a
cell on its own: every state comes from a server snapshot or an ordered delta.
"""

from typing import Dict, Iterable, List, Mapping, Union

import attrs

from src.service.shared_kernel.domain.enum.cell_state import CellState
from src.service.shared_kernel.domain.value_object.grid_address import Rectangle


@attrs.define
class CellSnapshot:
    seq: int = 0
    cells: Dict[str, CellState] = attrs.field(factory=dict)
    resync_needed: bool = False

    def apply_snapshot(self, *, seq: int, cells: Mapping[str, Union[CellState, str]]) -> None:
        self.cells = {
            cell_id: CellState(state)
            for cell_id, state in cells.items()
            if CellState(state) != CellState.FREE
        }
        self.seq = seq
        self.resync_needed = False

    def apply_delta(self, *, seq: int, cell_id: str, state: Union[CellState, str]) -> bool:
        """
        Apply one ordered delta

        Returns:
            True when applied. Stale or duplicate deltas are ignored; a gap
            sets `resync_needed` and leaves the mirror untouched until the
            next snapshot.
        """
        if self.resync_needed or seq <= self.seq:
            return False
        if seq != self.seq + 1:
            self.resync_needed = True
            return False

        new_state = CellState(state)
        if new_state == CellState.FREE:
            self.cells.pop(cell_id, None)
        else:
            self.cells[cell_id] = new_state
        self.seq = seq
        return True

    def apply_deltas(self, deltas: Iterable[Mapping]) -> int:
        applied = 0
        for delta in deltas:
            if self.apply_delta(seq=delta['seq'], cell_id=delta['cell_id'], state=delta['state']):
                applied += 1
        return applied

    def state_of(self, cell_id: str) -> CellState:
        return self.cells.get(cell_id, CellState.FREE)

    def is_free(self, cell_id: str) -> bool:
        # Held by someone else counts as unavailable, same as occupied
        return cell_id not in self.cells

    def non_free_in(self, rectangle: Rectangle) -> List[str]:
        """Non-free cells inside the rectangle, scanning whichever side is smaller"""
        if rectangle.cell_count <= len(self.cells):
            return [c for c in rectangle.cell_ids() if c in self.cells]
        found = []
        for cell_id in self.cells:
            row, col = cell_id.split('-')
            if (
                rectangle.top_left.row <= int(row) <= rectangle.bottom_right.row
                and rectangle.top_left.col <= int(col) <= rectangle.bottom_right.col
            ):
                found.append(cell_id)
        return found
