from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from src.platform.types.uuid7_utils_types import UtilsUUID7


class HoldCreateRequest(BaseModel):
    top_left: str = Field(..., description='Cell id "row-col" of the top-left corner')
    bottom_right: str = Field(..., description='Cell id "row-col" of the bottom-right corner')
    contact: EmailStr

    class Config:
        json_schema_extra = {
            'example': {'top_left': '10-20', 'bottom_right': '11-23', 'contact': 'buyer@mail.com'}
        }


class HoldResponse(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            'example': {
                'id': '01234567-89ab-7def-0123-456789abcdef',
                'contact': 'buyer@mail.com',
                'top_left': '10-20',
                'bottom_right': '11-23',
                'cell_count': 8,
                'price': 1600,
                'currency': 'usd',
                'created_at': '2025-01-10T10:30:00Z',
                'expires_at': '2025-01-10T10:45:00Z',
                'checkout_session_id': None,
            }
        }
    )

    id: UtilsUUID7
    contact: str
    top_left: str
    bottom_right: str
    cell_count: int
    price: int
    currency: str
    created_at: datetime
    expires_at: datetime
    checkout_session_id: Optional[str] = None


class CheckoutRequest(BaseModel):
    contact: EmailStr
    promo_code: Optional[str] = None

    class Config:
        json_schema_extra = {'example': {'contact': 'buyer@mail.com', 'promo_code': None}}


class CheckoutResponse(BaseModel):
    hold_id: UtilsUUID7
    amount: int
    currency: str
    session_id: str
    checkout_url: Optional[str] = None
    free: bool = False
    submission_id: Optional[UtilsUUID7] = None


class HoldCancelResponse(BaseModel):
    hold_id: UtilsUUID7
    cells_freed: int
