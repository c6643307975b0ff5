"""
Purchase recording and verification.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.course import Course
from app.models.user import User
from app.schemas.purchases import PurchaseCreate, PurchaseResponse, PurchaseVerifyResponse
from app.services.entitlement import resolve_access
from app.services.purchases import record_purchase
from app.auth.dependencies import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/purchases", tags=["Purchases"])


@router.post("/record", response_model=PurchaseResponse, status_code=status.HTTP_201_CREATED)
def record(
    data: PurchaseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Record a settled on-chain payment for the caller.
    409 with code already_purchased / duplicate_transaction on conflicts.
    """
    return record_purchase(
        db,
        buyer_id=current_user.id,
        course_id=data.course_id,
        tx_hash=data.tx_hash,
        paid_amount=data.paid_amount,
        payment_token=data.payment_token,
        referral_code=data.referral_code,
    )


@router.get("/verify/{course_id}", response_model=PurchaseVerifyResponse)
def verify(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    course = db.query(Course).filter(Course.id == course_id).first()
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")

    decision = resolve_access(db, course, viewer_id=current_user.id, viewer_address=current_user.address)
    return PurchaseVerifyResponse(
        has_access=decision.has_access,
        is_creator=True if decision.reason == "creator" else None,
        on_chain=True if decision.reason == "on_chain" else None,
        purchase=PurchaseResponse.model_validate(decision.purchase) if decision.purchase else None,
    )
