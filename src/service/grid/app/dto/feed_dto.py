"""State feed DTOs: full snapshot on (re)connect, ordered deltas afterwards."""

from typing import Dict, List

import attrs

from src.service.shared_kernel.domain.enum.cell_state import CellState


@attrs.define(frozen=True)
class CellDelta:
    seq: int
    cell_id: str
    state: CellState

    def to_dict(self) -> dict:
        return {'seq': self.seq, 'cell_id': self.cell_id, 'state': self.state.value}


@attrs.define(frozen=True)
class FeedSnapshot:
    """Every non-free cell as of `seq`; cells not listed are free"""

    seq: int
    cells: Dict[str, CellState] = attrs.field(factory=dict)

    def to_dict(self) -> dict:
        return {
            'seq': self.seq,
            'cells': {cell_id: state.value for cell_id, state in self.cells.items()},
        }


@attrs.define(frozen=True)
class FeedChanges:
    """
    Deltas after `since`. When the replay buffer no longer reaches back to
    `since`, `resync_required` is set and the caller must fetch a snapshot.
    """

    since: int
    seq: int
    deltas: List[CellDelta] = attrs.field(factory=list)
    resync_required: bool = False
