import secrets

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Header, Request, status
from opentelemetry import trace

from src.platform.config.core_setting import settings
from src.platform.config.di import Container
from src.platform.exception.exceptions import AuthenticationError
from src.platform.logging.loguru_io import Logger
from src.platform.observability.tracing import extract_trace_context
from src.service.grid.app.command.confirm_payment_use_case import ConfirmPaymentUseCase
from src.service.grid.app.dto.checkout_dto import PaymentConfirmation
from src.service.grid.driving_adapter.http_controller.schema.payment_schema import (
    PaymentWebhookRequest,
    PaymentWebhookResponse,
)


router = APIRouter()
tracer = trace.get_tracer(__name__)


def verify_webhook_secret(x_webhook_secret: str = Header(default='')) -> None:
    expected = settings.PAYMENT_WEBHOOK_SECRET.get_secret_value()
    if not x_webhook_secret or not secrets.compare_digest(
        x_webhook_secret.encode(), expected.encode()
    ):
        raise AuthenticationError('Invalid webhook secret')


@inject
def get_confirm_payment_use_case(
    use_case: ConfirmPaymentUseCase = Depends(Provide[Container.confirm_payment_use_case]),
) -> ConfirmPaymentUseCase:
    return use_case


@router.post(
    '/webhook',
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(verify_webhook_secret)],
)
@Logger.io
async def payment_webhook(
    request: Request,
    body: PaymentWebhookRequest,
    use_case: ConfirmPaymentUseCase = Depends(get_confirm_payment_use_case),
) -> PaymentWebhookResponse:
    """
    Payment confirmed → occupancy. Delivered at least once by the provider;
    duplicates and stale sessions are acknowledged with 200 so they are not redelivered.
    """
    parent_context = extract_trace_context(headers=request.headers)
    with tracer.start_as_current_span('controller.payment_webhook', context=parent_context) as span:
        span.set_attribute('checkout_session_id', body.checkout_session_id)

        submission = await use_case.execute(
            confirmation=PaymentConfirmation(
                checkout_session_id=body.checkout_session_id,
                payment_ref=body.payment_ref,
                amount=body.amount,
                currency=body.currency,
            )
        )
        if submission is None:
            return PaymentWebhookResponse(status='ignored')
        return PaymentWebhookResponse(status='converted', submission_id=submission.id)
