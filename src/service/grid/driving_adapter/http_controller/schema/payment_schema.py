from typing import Literal, Optional

from pydantic import BaseModel, Field

from src.platform.types.uuid7_utils_types import UtilsUUID7


class PaymentWebhookRequest(BaseModel):
    """Payment confirmed event as delivered by the payment collaborator (at least once)"""

    checkout_session_id: str = Field(..., min_length=1)
    payment_ref: str = Field(..., min_length=1)
    amount: Optional[int] = Field(default=None, ge=0)
    currency: Optional[str] = None

    class Config:
        json_schema_extra = {
            'example': {
                'checkout_session_id': 'cs_mock_0123456789abcdef',
                'payment_ref': 'pi_0123456789',
                'amount': 1600,
                'currency': 'usd',
            }
        }


class PaymentWebhookResponse(BaseModel):
    status: Literal['converted', 'ignored']
    submission_id: Optional[UtilsUUID7] = None
