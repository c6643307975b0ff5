"""
Admin view of the purchase side-effect log, with manual retry of failed
referral credits.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.event import Event, EventStatus
from app.models.user import User
from app.schemas.events import EventResponse, EventListResponse
from app.services.purchases import EVENT_REFERRAL_CREDIT
from app.auth.dependencies import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/events", tags=["Admin Events"])

RETRY_EVENT = "admin.manual_retry"


def _parse_status(value: Optional[str]) -> Optional[EventStatus]:
    if not value:
        return None
    try:
        return EventStatus(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid status: {value}")


@router.get("", response_model=EventListResponse)
def list_events(
    status: Optional[str] = Query(None, description="processed, failed or ignored"),
    event_type: Optional[str] = Query(None, description="e.g. ledger.referral_credit"),
    target_id: Optional[int] = Query(None, description="User credited by the side-effect"),
    purchase_id: Optional[int] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    """Side-effect events, newest first. `failed_total` counts every FAILED event regardless of filters."""
    wanted_status = _parse_status(status)

    query = db.query(Event)
    if wanted_status:
        query = query.filter(Event.status == wanted_status)
    if event_type:
        query = query.filter(Event.type == event_type)
    if target_id:
        query = query.filter(Event.target_id == target_id)
    if purchase_id:
        query = query.filter(Event.purchase_id == purchase_id)

    total = query.count()
    items = query.order_by(Event.created_at.desc()).offset(offset).limit(limit).all()
    failed_total = db.query(Event).filter(Event.status == EventStatus.FAILED).count()

    return EventListResponse(items=items, total=total, failed_total=failed_total)


@router.post("/{event_id}/retry", response_model=EventResponse)
def retry_event(
    event_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """
    Queue a failed referral credit for another attempt.
    Creator stats need no retry: the nightly leaderboard rebuild repairs them.
    """
    event = db.query(Event).filter(Event.id == event_id).first()
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    if event.type != EVENT_REFERRAL_CREDIT:
        raise HTTPException(status_code=400, detail=f"Events of type {event.type} cannot be retried")
    if event.status != EventStatus.FAILED:
        raise HTTPException(status_code=400, detail="Only failed events can be retried")

    db.add(Event(
        type=RETRY_EVENT,
        purchase_id=event.purchase_id,
        actor_id=admin.id,
        target_id=event.target_id,
        payload={"original_event_id": event.id},
    ))
    db.commit()

    from app.tasks import credit_referral_for_event
    credit_referral_for_event.delay(event.id)
    logger.info("Admin %s queued retry of event %s (purchase %s)", admin.id, event.id, event.purchase_id)

    db.refresh(event)
    return event
