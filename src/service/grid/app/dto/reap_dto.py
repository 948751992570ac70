import attrs


@attrs.define(frozen=True)
class ReapResult:
    holds_reaped: int = 0
    cells_freed: int = 0
    orphaned_cells_freed: int = 0

    @property
    def total_cells_freed(self) -> int:
        return self.cells_freed + self.orphaned_cells_freed
