from pydantic import BaseModel
from datetime import datetime
from decimal import Decimal
from typing import Optional, List


class ReferredUser(BaseModel):
    id: int
    address: str
    username: Optional[str] = None
    avatar: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ReferralStatsResponse(BaseModel):
    referral_code: Optional[str] = None
    total_referrals: int
    total_earnings_usd: Decimal
    recent_referrals: List[ReferredUser] = []


class EarningCourse(BaseModel):
    id: int
    title: str

    class Config:
        from_attributes = True


class EarningBuyer(BaseModel):
    id: int
    address: str
    username: Optional[str] = None

    class Config:
        from_attributes = True


class ReferralEarning(BaseModel):
    id: int
    course: EarningCourse
    buyer: EarningBuyer
    earning: Optional[Decimal] = None
    purchased_at: datetime


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ReferralEarningsResponse(BaseModel):
    data: List[ReferralEarning]
    pagination: Pagination


class ReferrerInfo(BaseModel):
    id: int
    username: Optional[str] = None
    avatar: Optional[str] = None

    class Config:
        from_attributes = True


class ReferralCodeResponse(BaseModel):
    valid: bool
    referrer: ReferrerInfo


class RegenerateCodeResponse(BaseModel):
    referral_code: str
