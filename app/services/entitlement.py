"""
Course entitlement resolution.

Order, first match wins:
  free course -> viewer is the creator -> local purchase -> on-chain ownership

Pure read. Never raises for infrastructure reasons: if the chain oracle
cannot answer, access is denied.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from app.integrations import chain
from app.models.course import Course
from app.models.purchase import Purchase

logger = logging.getLogger(__name__)


@dataclass
class AccessDecision:
    has_access: bool
    reason: Optional[str] = None  # free | creator | purchase | on_chain
    purchase: Optional[Purchase] = None

    def __bool__(self) -> bool:
        return self.has_access


def find_purchase(db: Session, user_id: int, course_id: int) -> Optional[Purchase]:
    return db.query(Purchase).filter(
        Purchase.user_id == user_id,
        Purchase.course_id == course_id,
    ).first()


def resolve_access(
    db: Session,
    course: Course,
    viewer_id: Optional[int] = None,
    viewer_address: Optional[str] = None,
) -> AccessDecision:
    if course.is_free:
        return AccessDecision(True, "free")

    if viewer_id is not None and viewer_id == course.creator_id:
        return AccessDecision(True, "creator")

    if viewer_id is not None:
        purchase = find_purchase(db, viewer_id, course.id)
        if purchase:
            return AccessDecision(True, "purchase", purchase)

    if course.on_chain_id is not None and viewer_address:
        try:
            if chain.has_on_chain_access(course.on_chain_id, viewer_address):
                return AccessDecision(True, "on_chain")
        except Exception as e:
            logger.warning("On-chain access check failed for course %s: %s", course.id, e)

    return AccessDecision(False)


def has_access(
    db: Session,
    course: Course,
    viewer_id: Optional[int] = None,
    viewer_address: Optional[str] = None,
) -> bool:
    """Whether the viewer (possibly anonymous) may see the course's paid content."""
    return resolve_access(db, course, viewer_id, viewer_address).has_access
