"""Grid Service Interfaces"""

from src.service.grid.app.interface.i_cell_state_store import ICellStateStore
from src.service.grid.app.interface.i_grid_feed import IGridFeed
from src.service.grid.app.interface.i_hold_repo import IHoldRepo
from src.service.grid.app.interface.i_notification_sender import INotificationSender
from src.service.grid.app.interface.i_payment_gateway import IPaymentGateway, IRefundGateway
from src.service.grid.app.interface.i_submission_repo import ISubmissionRepo

__all__ = [
    'ICellStateStore',
    'IGridFeed',
    'IHoldRepo',
    'INotificationSender',
    'IPaymentGateway',
    'IRefundGateway',
    'ISubmissionRepo',
]
