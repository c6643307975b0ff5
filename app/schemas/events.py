from pydantic import BaseModel
from datetime import datetime
from typing import Optional, Any, Dict, List
from app.models.event import EventStatus


class EventResponse(BaseModel):
    id: int
    type: str
    purchase_id: Optional[int] = None
    actor_id: Optional[int] = None
    target_id: Optional[int] = None
    payload: Dict[str, Any] = {}
    status: EventStatus
    error_message: Optional[str] = None
    attempts: int = 1
    created_at: datetime
    resolved_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EventListResponse(BaseModel):
    items: List[EventResponse]
    total: int
    failed_total: Optional[int] = None
