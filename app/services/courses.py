"""
Course creation with creator-tier limits and the leaderboard course event.
"""
import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.models.course import Course
from app.models.user import User
from app.services import creator_stats
from app.services.errors import ConflictError, CourseCreationForbidden

logger = logging.getLogger(__name__)


def create_course(
    db: Session,
    creator: User,
    title: str,
    price_usd: Decimal,
    is_free: bool = False,
    description: Optional[str] = None,
    on_chain_id: Optional[int] = None,
) -> Course:
    existing = db.query(Course.is_free).filter(Course.creator_id == creator.id).all()
    total_courses = len(existing)
    free_courses = sum(1 for row in existing if row[0])

    # Non-creators get a single free trial course
    if not creator.is_creator:
        if not is_free:
            raise CourseCreationForbidden(
                "Become a creator to create paid courses", "creator_required_for_paid",
            )
        if total_courses >= settings.free_trial_course_limit:
            raise CourseCreationForbidden(
                "Become a creator to create more courses", "free_trial_limit_reached",
            )

    if creator.is_creator and is_free and free_courses >= settings.max_free_courses:
        raise CourseCreationForbidden(
            f"You have reached the maximum of {settings.max_free_courses} free courses",
            "free_course_limit_reached",
        )

    course = Course(
        creator_id=creator.id,
        title=title,
        description=description,
        price_usd=Decimal("0") if is_free else price_usd,
        is_free=is_free,
        on_chain_id=on_chain_id,
    )
    try:
        with db.begin_nested():
            db.add(course)
    except IntegrityError:
        raise ConflictError("On-chain course id already registered")

    creator_stats.apply_event(db, creator.id, creator_stats.course_created())
    db.commit()
    db.refresh(course)
    logger.info("Creator %s created course %s (free=%s)", creator.id, course.id, is_free)
    return course
