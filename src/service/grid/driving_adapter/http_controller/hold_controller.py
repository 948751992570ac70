from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from opentelemetry import trace

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger
from src.platform.types.uuid7_utils_types import UtilsUUID7
from src.service.grid.app.command.cancel_hold_use_case import CancelHoldUseCase
from src.service.grid.app.command.create_hold_use_case import CreateHoldUseCase
from src.service.grid.app.command.start_checkout_use_case import StartCheckoutUseCase
from src.service.grid.app.query.get_hold_use_case import GetHoldUseCase
from src.service.grid.domain.entity.hold_entity import Hold
from src.service.grid.driving_adapter.http_controller.schema.hold_schema import (
    CheckoutRequest,
    CheckoutResponse,
    HoldCancelResponse,
    HoldCreateRequest,
    HoldResponse,
)
from src.service.shared_kernel.domain.value_object.grid_address import Rectangle, parse_cell_id
from src.service.shared_kernel.domain.value_object.pricing import price_for_cells


router = APIRouter()
tracer = trace.get_tracer(__name__)


def _hold_response(hold: Hold) -> HoldResponse:
    return HoldResponse(
        id=hold.id,
        contact=hold.contact,
        top_left=hold.rectangle.top_left.cell_id,
        bottom_right=hold.rectangle.bottom_right.cell_id,
        cell_count=hold.cell_count,
        price=hold.amount if hold.amount is not None else price_for_cells(hold.cell_count),
        currency=hold.currency or settings.CURRENCY,
        created_at=hold.created_at,
        expires_at=hold.expires_at,
        checkout_session_id=hold.checkout_session_id,
    )


@router.post('', status_code=status.HTTP_201_CREATED)
@Logger.io
async def create_hold(
    request: HoldCreateRequest,
    use_case: CreateHoldUseCase = Depends(CreateHoldUseCase.depends),
) -> HoldResponse:
    with tracer.start_as_current_span('controller.create_hold') as span:
        span.set_attribute('top_left', request.top_left)
        span.set_attribute('bottom_right', request.bottom_right)

        rectangle = Rectangle(
            top_left=parse_cell_id(request.top_left),
            bottom_right=parse_cell_id(request.bottom_right),
        )
        hold = await use_case.execute(rectangle=rectangle, contact=request.contact)
        return _hold_response(hold)


@router.get('/{hold_id}', status_code=status.HTTP_200_OK)
@Logger.io
async def get_hold(
    hold_id: UtilsUUID7,
    use_case: GetHoldUseCase = Depends(GetHoldUseCase.depends),
) -> HoldResponse:
    hold = await use_case.execute(hold_id=hold_id)
    return _hold_response(hold)


@router.delete('/{hold_id}', status_code=status.HTTP_200_OK)
@Logger.io
async def cancel_hold(
    hold_id: UtilsUUID7,
    contact: Optional[str] = Query(default=None),
    use_case: CancelHoldUseCase = Depends(CancelHoldUseCase.depends),
) -> HoldCancelResponse:
    freed = await use_case.execute(hold_id=hold_id, contact=contact)
    return HoldCancelResponse(hold_id=hold_id, cells_freed=freed)


@router.post('/{hold_id}/checkout', status_code=status.HTTP_200_OK)
@Logger.io
async def start_checkout(
    hold_id: UtilsUUID7,
    request: CheckoutRequest,
    use_case: StartCheckoutUseCase = Depends(StartCheckoutUseCase.depends),
) -> CheckoutResponse:
    with tracer.start_as_current_span('controller.start_checkout') as span:
        span.set_attribute('hold_id', str(hold_id))

        result = await use_case.execute(
            hold_id=hold_id, contact=request.contact, promo_code=request.promo_code
        )
        return CheckoutResponse(
            hold_id=result.hold_id,
            amount=result.amount,
            currency=result.currency,
            session_id=result.session_id,
            checkout_url=result.checkout_url,
            free=result.free,
            submission_id=result.submission_id,
        )
