"""
Referral ledger: per-referrer cumulative counters and referral code handling.
"""
import logging
import secrets
import string
from decimal import Decimal
from typing import Optional, List, Tuple

from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.models.course import Course
from app.models.purchase import Purchase
from app.models.referral_stats import ReferralStats
from app.models.user import User
from app.services.creator_stats import quantize_earning
from app.services.errors import CodeAllocationError

logger = logging.getLogger(__name__)

REFERRAL_CODE_ALPHABET = string.ascii_uppercase + string.digits
REFERRAL_CODE_LENGTH = 8
RECENT_REFERRALS_LIMIT = 10
CODE_ATTEMPTS = 5


def generate_referral_code() -> str:
    return "".join(secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(REFERRAL_CODE_LENGTH))


def normalize_code(code: str) -> str:
    return code.strip().upper()


def find_referrer(db: Session, code: Optional[str]) -> Optional[User]:
    if not code or not code.strip():
        return None
    return db.query(User).filter(User.referral_code == normalize_code(code)).first()


def referral_earning(course: Course) -> Decimal:
    """Referrer's cut, based on the course list price (not the amount paid)."""
    return quantize_earning(course.effective_price * settings.referral_rate)


def resolve_referral(db: Session, code: Optional[str], buyer_id: int, course: Course) -> Tuple[Optional[User], Optional[Decimal]]:
    """
    Resolve a referral code supplied with a purchase.

    Unknown codes and codes belonging to the buyer or the course creator are
    ignored: the purchase proceeds without a referrer.
    """
    if not code:
        return None, None

    referrer = find_referrer(db, code)
    if referrer is None:
        logger.info("Referral code %s not found; purchase proceeds without referrer", code)
        return None, None
    if referrer.id == buyer_id:
        logger.info("Ignoring self-referral by user %s", buyer_id)
        return None, None
    if referrer.id == course.creator_id:
        logger.info("Ignoring creator referral on own course %s", course.id)
        return None, None

    return referrer, referral_earning(course)


def credit_referral(db: Session, referrer_id: int, earning: Decimal) -> None:
    """Atomically add one referral and its earning to the referrer's row (insert if missing)."""
    earning = quantize_earning(earning)
    stmt = insert(ReferralStats).values(
        user_id=referrer_id,
        total_referrals=1,
        total_earnings_usd=earning,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[ReferralStats.user_id],
        set_={
            "total_referrals": ReferralStats.total_referrals + 1,
            "total_earnings_usd": ReferralStats.total_earnings_usd + stmt.excluded.total_earnings_usd,
            "updated_at": func.now(),
        },
    )
    db.execute(stmt)
    logger.info("Credited referral to user %s: %s USD", referrer_id, earning)


def get_stats(db: Session, user: User) -> dict:
    stats = db.query(ReferralStats).filter(ReferralStats.user_id == user.id).first()
    recent = (
        db.query(User)
        .filter(User.referred_by == user.id)
        .order_by(User.created_at.desc())
        .limit(RECENT_REFERRALS_LIMIT)
        .all()
    )
    return {
        "referral_code": user.referral_code,
        "total_referrals": stats.total_referrals if stats else 0,
        "total_earnings_usd": stats.total_earnings_usd if stats else Decimal("0"),
        "recent_referrals": recent,
    }


def list_earnings(db: Session, user_id: int, page: int, limit: int) -> Tuple[List[Purchase], int]:
    query = db.query(Purchase).filter(Purchase.referrer_id == user_id)
    total = query.count()
    items = (
        query.order_by(Purchase.purchased_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def regenerate_code(db: Session, user: User) -> str:
    """Give `user` a fresh code, retrying on the rare collision with another user's code."""
    for _ in range(CODE_ATTEMPTS):
        code = generate_referral_code()
        try:
            with db.begin_nested():
                user.referral_code = code
                db.flush()
        except IntegrityError:
            logger.warning("Referral code collision for user %s; retrying", user.id)
            continue
        db.commit()
        return code
    raise CodeAllocationError()


def refresh_all(db: Session) -> int:
    """
    Rebuild every referrer's row from purchases carrying a referrer.
    Overwrites counters; returns the number of referrers refreshed.
    """
    rows = (
        db.query(
            Purchase.referrer_id,
            func.count(Purchase.id),
            func.coalesce(func.sum(Purchase.referral_earning), 0),
        )
        .filter(Purchase.referrer_id.isnot(None))
        .group_by(Purchase.referrer_id)
        .all()
    )
    for referrer_id, count, earnings in rows:
        stmt = insert(ReferralStats).values(
            user_id=referrer_id,
            total_referrals=count,
            total_earnings_usd=earnings,
        )
        db.execute(stmt.on_conflict_do_update(
            index_elements=[ReferralStats.user_id],
            set_={
                "total_referrals": count,
                "total_earnings_usd": earnings,
                "updated_at": func.now(),
            },
        ))
    db.commit()
    logger.info("Refreshed referral stats for %d referrers", len(rows))
    return len(rows)
