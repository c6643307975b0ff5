from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from app.models.user import UserRole


class UserResponse(BaseModel):
    id: int
    address: str
    username: Optional[str] = None
    avatar: Optional[str] = None
    role: UserRole
    is_creator: bool
    referral_code: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CreatorSyncResponse(BaseModel):
    is_creator: bool
    registered_at: Optional[datetime] = None
