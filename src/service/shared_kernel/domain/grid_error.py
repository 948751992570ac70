"""
Grid domain errors

InvalidRectangleError   -> 400, rejected before touching the store
SlotUnavailableError    -> 409, carries the blocking cell ids for re-selection
StaleHoldError          -> 409 at the checkout boundary; swallowed during payment reconciliation
"""

from typing import Sequence

from src.platform.exception.exceptions import ConflictError, DomainError


class InvalidRectangleError(DomainError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 400)


class SlotUnavailableError(ConflictError):
    def __init__(self, *, blocking_cell_ids: Sequence[str]) -> None:
        self.blocking_cell_ids = list(blocking_cell_ids)
        preview = ', '.join(self.blocking_cell_ids[:10])
        more = len(self.blocking_cell_ids) - 10
        suffix = f' (+{more} more)' if more > 0 else ''
        super().__init__(f'Cells no longer available: {preview}{suffix}')

    def extra_content(self) -> dict:
        return {'blocking_cells': self.blocking_cell_ids}


class StaleHoldError(ConflictError):
    def __init__(self, message: str = 'Hold no longer exists or has expired') -> None:
        super().__init__(message)
