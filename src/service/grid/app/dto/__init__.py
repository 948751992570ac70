"""Grid Application DTOs"""

from src.service.grid.app.dto.checkout_dto import (
    CheckoutHandle,
    CheckoutResult,
    PaymentConfirmation,
)
from src.service.grid.app.dto.claim_dto import ClaimResult
from src.service.grid.app.dto.feed_dto import CellDelta, FeedChanges, FeedSnapshot
from src.service.grid.app.dto.occupancy_dto import OccupancyRecord
from src.service.grid.app.dto.reap_dto import ReapResult


__all__ = [
    'CellDelta',
    'CheckoutHandle',
    'CheckoutResult',
    'ClaimResult',
    'FeedChanges',
    'FeedSnapshot',
    'OccupancyRecord',
    'PaymentConfirmation',
    'ReapResult',
]
