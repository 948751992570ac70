"""Cell claim DTOs for the cell state store."""

from typing import List

import attrs


@attrs.define(frozen=True)
class ClaimResult:
    """All-or-nothing claim outcome; blocking_cell_ids is empty on success"""

    success: bool
    blocking_cell_ids: List[str] = attrs.field(factory=list)

    @classmethod
    def claimed(cls) -> 'ClaimResult':
        return cls(success=True)

    @classmethod
    def conflict(cls, blocking_cell_ids: List[str]) -> 'ClaimResult':
        return cls(success=False, blocking_cell_ids=sorted(blocking_cell_ids))
