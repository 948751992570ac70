"""
Wire Modules Configuration

Defines the modules that need dependency injection wiring.
Shared between production and test environments.
"""

from types import ModuleType

from src.service.grid.app.command import (
    attach_content_use_case,
    cancel_hold_use_case,
    create_hold_use_case,
    moderate_submission_use_case,
    start_checkout_use_case,
)
from src.service.grid.app.query import (
    get_cell_states_use_case,
    get_hold_use_case,
    get_occupancy_use_case,
    get_submission_use_case,
    stream_grid_state_use_case,
)
from src.service.grid.driving_adapter.http_controller import admin_controller, payment_controller
from src.service.grid.driving_adapter.http_controller.auth import role_auth


WIRE_MODULES: list[ModuleType] = [
    create_hold_use_case,
    cancel_hold_use_case,
    start_checkout_use_case,
    attach_content_use_case,
    moderate_submission_use_case,
    get_cell_states_use_case,
    get_hold_use_case,
    get_submission_use_case,
    get_occupancy_use_case,
    stream_grid_state_use_case,
    payment_controller,
    admin_controller,
    role_auth,
]
