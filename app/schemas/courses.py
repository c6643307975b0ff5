from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional


class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    price_usd: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    is_free: bool = False
    on_chain_id: Optional[int] = Field(None, gt=0)


class CourseResponse(BaseModel):
    id: int
    creator_id: int
    title: str
    description: Optional[str] = None
    price_usd: Decimal
    is_free: bool
    on_chain_id: Optional[int] = None
    is_published: bool
    created_at: datetime

    class Config:
        from_attributes = True


class EntitlementResponse(BaseModel):
    course_id: int
    has_access: bool
