from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, Literal


class PurchaseCreate(BaseModel):
    course_id: int
    tx_hash: str = Field(..., pattern=r"^0x[a-fA-F0-9]{64}$")
    paid_amount: Decimal = Field(..., ge=0, max_digits=20, decimal_places=8)
    payment_token: Literal["ETH", "USDC"]
    referral_code: Optional[str] = Field(None, max_length=16)


class PurchaseResponse(BaseModel):
    id: int
    user_id: int
    course_id: int
    tx_hash: str
    paid_amount: Decimal
    payment_token: str
    referrer_id: Optional[int] = None
    referral_earning: Optional[Decimal] = None
    purchased_at: datetime

    class Config:
        from_attributes = True


class PurchaseVerifyResponse(BaseModel):
    has_access: bool
    is_creator: Optional[bool] = None
    on_chain: Optional[bool] = None
    purchase: Optional[PurchaseResponse] = None
