"""
Creator leaderboard aggregator.

Two write paths feed creator_stats:
- apply_event(): atomic additive upsert on each course creation / purchase
- refresh_all(): batch rebuild of every creator's row from courses + purchases

Both derive `points` from compute_points(), so replaying the same history
through either path yields the same row.
"""
import logging
import math
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import Integer, cast, func, or_
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from app.config import settings
from app.models.course import Course
from app.models.creator_stats import CreatorStats
from app.models.purchase import Purchase
from app.models.user import User

logger = logging.getLogger(__name__)

POINTS_PER_COURSE = 10
POINTS_PER_STUDENT = 1
POINTS_PER_EARNINGS_STEP = 5
EARNINGS_STEP_USD = 100


def _floor(value) -> int:
    return math.floor(value)


def compute_points(courses_count, students_count, total_earnings, floor=_floor):
    """
    Leaderboard score.

    Works on plain numbers and on SQL column expressions (pass
    floor=func.floor) so the upsert and the batch rebuild share one formula.
    """
    return (
        courses_count * POINTS_PER_COURSE
        + students_count * POINTS_PER_STUDENT
        + floor(total_earnings / EARNINGS_STEP_USD) * POINTS_PER_EARNINGS_STEP
    )


def quantize_earning(amount: Decimal) -> Decimal:
    exp = Decimal(1).scaleb(-settings.earnings_decimal_places)
    return Decimal(amount).quantize(exp)


def creator_earning(paid_amount: Decimal) -> Decimal:
    """Creator's share of the amount actually paid (92% by default)."""
    return quantize_earning(Decimal(paid_amount) * settings.creator_share)


@dataclass(frozen=True)
class StatsDelta:
    courses: int = 0
    students: int = 0
    earnings: Decimal = Decimal("0")


def course_created() -> StatsDelta:
    return StatsDelta(courses=1)


def purchase_recorded(earning: Decimal, new_student: bool = True) -> StatsDelta:
    return StatsDelta(students=1 if new_student else 0, earnings=quantize_earning(earning))


@dataclass(frozen=True)
class CreatorTotals:
    courses_count: int = 0
    students_count: int = 0
    total_earnings_usd: Decimal = Decimal("0")

    @property
    def points(self) -> int:
        return compute_points(self.courses_count, self.students_count, self.total_earnings_usd)

    def apply(self, delta: StatsDelta) -> "CreatorTotals":
        return replace(
            self,
            courses_count=self.courses_count + delta.courses,
            students_count=self.students_count + delta.students,
            total_earnings_usd=self.total_earnings_usd + delta.earnings,
        )


def _upsert_statement(creator_id: int, delta: StatsDelta):
    initial = CreatorTotals().apply(delta)
    stmt = insert(CreatorStats).values(
        user_id=creator_id,
        courses_count=initial.courses_count,
        students_count=initial.students_count,
        total_earnings_usd=initial.total_earnings_usd,
        points=initial.points,
    )
    new_courses = CreatorStats.courses_count + stmt.excluded.courses_count
    new_students = CreatorStats.students_count + stmt.excluded.students_count
    new_earnings = CreatorStats.total_earnings_usd + stmt.excluded.total_earnings_usd
    return stmt.on_conflict_do_update(
        index_elements=[CreatorStats.user_id],
        set_={
            "courses_count": new_courses,
            "students_count": new_students,
            "total_earnings_usd": new_earnings,
            "points": cast(compute_points(new_courses, new_students, new_earnings, floor=func.floor), Integer),
            "updated_at": func.now(),
        },
    )


def apply_event(db: Session, creator_id: int, delta: StatsDelta) -> None:
    """Atomically add `delta` to the creator's row, creating it if missing."""
    db.execute(_upsert_statement(creator_id, delta))
    logger.info(
        "Creator %s stats += courses:%s students:%s earnings:%s",
        creator_id, delta.courses, delta.students, delta.earnings,
    )


def is_new_student(db: Session, creator_id: int, buyer_id: int, exclude_purchase_id: Optional[int] = None) -> bool:
    """True if the buyer has no other purchase of any course by this creator."""
    query = (
        db.query(Purchase.id)
        .join(Course, Purchase.course_id == Course.id)
        .filter(Course.creator_id == creator_id, Purchase.user_id == buyer_id)
    )
    if exclude_purchase_id is not None:
        query = query.filter(Purchase.id != exclude_purchase_id)
    return query.first() is None


def rebuild_totals(
    course_creators: Iterable[int],
    purchase_rows: Iterable[Tuple[int, int, Decimal]],
) -> Dict[int, CreatorTotals]:
    """
    Rebuild totals from source rows.

    course_creators: creator_id per course.
    purchase_rows: (creator_id, buyer_id, paid_amount) per purchase.
    """
    courses: Dict[int, int] = {}
    for creator_id in course_creators:
        courses[creator_id] = courses.get(creator_id, 0) + 1

    buyers: Dict[int, set] = {}
    earnings: Dict[int, Decimal] = {}
    for creator_id, buyer_id, paid_amount in purchase_rows:
        buyers.setdefault(creator_id, set()).add(buyer_id)
        earnings[creator_id] = earnings.get(creator_id, Decimal("0")) + creator_earning(paid_amount)

    result = {}
    for creator_id in set(courses) | set(buyers):
        result[creator_id] = CreatorTotals(
            courses_count=courses.get(creator_id, 0),
            students_count=len(buyers.get(creator_id, ())),
            total_earnings_usd=earnings.get(creator_id, Decimal("0")),
        )
    return result


def _creator_ids(db: Session) -> List[int]:
    owners = db.query(Course.creator_id)
    rows = db.query(User.id).filter(or_(User.is_creator.is_(True), User.id.in_(owners))).all()
    return [row[0] for row in rows]


def refresh_all(db: Session) -> int:
    """
    Overwrite every creator's stats row from courses and purchases.
    Safe to re-run at any time; returns the number of creators refreshed.
    """
    creator_ids = _creator_ids(db)

    course_creators = (row[0] for row in db.query(Course.creator_id).yield_per(1000))
    purchase_rows = (
        (row[0], row[1], row[2])
        for row in db.query(Course.creator_id, Purchase.user_id, Purchase.paid_amount)
        .join(Course, Purchase.course_id == Course.id)
        .yield_per(1000)
    )
    totals = rebuild_totals(course_creators, purchase_rows)

    for creator_id in creator_ids:
        t = totals.get(creator_id, CreatorTotals())
        stmt = insert(CreatorStats).values(
            user_id=creator_id,
            courses_count=t.courses_count,
            students_count=t.students_count,
            total_earnings_usd=t.total_earnings_usd,
            points=t.points,
        )
        db.execute(stmt.on_conflict_do_update(
            index_elements=[CreatorStats.user_id],
            set_={
                "courses_count": t.courses_count,
                "students_count": t.students_count,
                "total_earnings_usd": t.total_earnings_usd,
                "points": t.points,
                "updated_at": func.now(),
            },
        ))

    db.commit()
    logger.info("Refreshed creator stats for %d creators", len(creator_ids))
    return len(creator_ids)


def list_leaderboard(db: Session, limit: int, offset: int) -> Tuple[List[CreatorStats], int]:
    """Creators by points desc, ties broken by user id asc so pages never overlap."""
    total = db.query(CreatorStats).count()
    items = (
        db.query(CreatorStats)
        .order_by(CreatorStats.points.desc(), CreatorStats.user_id.asc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, total


def get_creator_rank(db: Session, user_id: int) -> Optional[Tuple[CreatorStats, int]]:
    stats = db.query(CreatorStats).filter(CreatorStats.user_id == user_id).first()
    if not stats:
        return None
    ahead = db.query(CreatorStats).filter(CreatorStats.points > stats.points).count()
    return stats, ahead + 1
