"""
Course creation and entitlement checks.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.course import Course
from app.models.user import User
from app.schemas.courses import CourseCreate, CourseResponse, EntitlementResponse
from app.services import courses as course_service
from app.services.entitlement import has_access
from app.auth.dependencies import get_current_user, get_optional_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/courses", tags=["Courses"])


@router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
def create_course(
    data: CourseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return course_service.create_course(
        db,
        current_user,
        title=data.title,
        price_usd=data.price_usd,
        is_free=data.is_free,
        description=data.description,
        on_chain_id=data.on_chain_id,
    )


@router.get("/{course_id}/entitlement", response_model=EntitlementResponse)
def get_entitlement(
    course_id: int,
    viewer_address: Optional[str] = Query(None, description="Wallet to check on-chain; defaults to the caller's"),
    db: Session = Depends(get_db),
    viewer: Optional[User] = Depends(get_optional_user),
):
    """
    Whether the caller (anonymous allowed) may access the course's paid content.
    Never fails for infrastructure reasons: an unanswerable check denies access.
    """
    course = db.query(Course).filter(Course.id == course_id).first()
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")

    viewer_id = viewer.id if viewer else None
    address = viewer.address if viewer else viewer_address
    return EntitlementResponse(
        course_id=course.id,
        has_access=has_access(db, course, viewer_id=viewer_id, viewer_address=address),
    )
