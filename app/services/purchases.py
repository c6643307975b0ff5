"""
Purchase recorder.

Records an already-settled on-chain payment exactly once and distributes
its earnings:

1. insert the purchase (unique per buyer+course and per tx hash)
2. notify the creator
3. credit the referrer, if a valid one was supplied
4. add the creator's share to the leaderboard stats

The insert is the atomicity boundary. Steps 2-4 each run in their own
savepoint; a failure there is logged to the event log and does not lose
the purchase (creator stats are reconciled by the nightly refresh, failed
referral credits can be retried from the admin event log).
"""
import logging
import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.course import Course
from app.models.event import Event, EventStatus
from app.models.notification import NotificationType
from app.models.purchase import Purchase
from app.services import creator_stats, notifications, referrals
from app.services.errors import (
    AlreadyPurchased,
    CourseNotFound,
    DuplicateTransaction,
    ValidationError,
)

logger = logging.getLogger(__name__)

TX_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")
PAYMENT_TOKENS = ("ETH", "USDC")

EVENT_REFERRAL_CREDIT = "ledger.referral_credit"
EVENT_CREATOR_STATS = "ledger.creator_stats"


def normalize_tx_hash(tx_hash: str) -> str:
    if not isinstance(tx_hash, str) or not TX_HASH_RE.match(tx_hash):
        raise ValidationError("Invalid transaction hash")
    return tx_hash.lower()


def parse_amount(value) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("Invalid paid amount")
    if not amount.is_finite() or amount < 0:
        raise ValidationError("Invalid paid amount")
    return amount


def _conflict_from(error: IntegrityError) -> Exception:
    message = str(error.orig)
    if "uq_purchases_tx_hash" in message:
        return DuplicateTransaction()
    if "uq_purchases_user_course" in message:
        return AlreadyPurchased()
    return error


def _log_event(
    db: Session,
    event_type: str,
    purchase: Purchase,
    target_id: Optional[int],
    payload: Dict[str, Any],
    status: EventStatus = EventStatus.PROCESSED,
    error_message: Optional[str] = None,
) -> Optional[Event]:
    try:
        with db.begin_nested():
            event = Event(
                type=event_type,
                actor_id=purchase.user_id,
                target_id=target_id,
                purchase_id=purchase.id,
                payload=payload,
                status=status,
                error_message=error_message,
            )
            db.add(event)
        return event
    except SQLAlchemyError as e:
        logger.error("Failed to log %s event for purchase %s: %s", event_type, purchase.id, e)
        return None


def _run_side_effect(
    db: Session,
    name: str,
    fn: Callable[[], None],
    purchase: Purchase,
    target_id: int,
    payload: Dict[str, Any],
) -> bool:
    """Run one post-insert step in a savepoint. Failures are recorded, not raised."""
    try:
        with db.begin_nested():
            fn()
    except SQLAlchemyError as e:
        logger.error("Side-effect %s failed for purchase %s: %s", name, purchase.id, e)
        _log_event(db, name, purchase, target_id, payload, EventStatus.FAILED, str(e))
        return False
    _log_event(db, name, purchase, target_id, payload)
    return True


def record_purchase(
    db: Session,
    buyer_id: int,
    course_id: int,
    tx_hash: str,
    paid_amount,
    payment_token: str,
    referral_code: Optional[str] = None,
) -> Purchase:
    """
    Record a purchase claim.

    Raises ValidationError, CourseNotFound, AlreadyPurchased or
    DuplicateTransaction without touching the store's state.
    """
    tx_hash = normalize_tx_hash(tx_hash)
    amount = parse_amount(paid_amount)
    if payment_token not in PAYMENT_TOKENS:
        raise ValidationError(f"Unsupported payment token: {payment_token}")

    course = db.query(Course).filter(Course.id == course_id).first()
    if not course:
        raise CourseNotFound()

    existing = db.query(Purchase).filter(
        Purchase.user_id == buyer_id,
        Purchase.course_id == course_id,
    ).first()
    if existing:
        raise AlreadyPurchased()

    if db.query(Purchase).filter(Purchase.tx_hash == tx_hash).first():
        raise DuplicateTransaction()

    referrer, referral_earning = referrals.resolve_referral(db, referral_code, buyer_id, course)

    purchase = Purchase(
        user_id=buyer_id,
        course_id=course.id,
        tx_hash=tx_hash,
        paid_amount=amount,
        payment_token=payment_token,
        referrer_id=referrer.id if referrer else None,
        referral_earning=referral_earning,
    )
    # The pre-checks above leave a race window; the unique constraints close it.
    try:
        with db.begin_nested():
            db.add(purchase)
    except IntegrityError as e:
        raise _conflict_from(e)

    logger.info(
        "Recorded purchase %s: user %s bought course %s (tx %s, %s %s)",
        purchase.id, buyer_id, course.id, tx_hash, amount, payment_token,
    )

    notifications.enqueue(
        db,
        course.creator_id,
        NotificationType.PURCHASE,
        "New course sale!",
        f'Someone purchased "{course.title}"',
        {"course_id": course.id, "purchase_id": purchase.id},
    )

    if referrer is not None:
        earning = str(referral_earning)
        credited = _run_side_effect(
            db,
            EVENT_REFERRAL_CREDIT,
            lambda: referrals.credit_referral(db, referrer.id, referral_earning),
            purchase,
            referrer.id,
            {"referrer_id": referrer.id, "earning": earning},
        )
        if credited:
            notifications.enqueue(
                db,
                referrer.id,
                NotificationType.REFERRAL_EARNING,
                "Referral earning!",
                f"You earned ${earning} from a referral purchase",
                {"course_id": course.id, "purchase_id": purchase.id, "earning": earning},
            )

    share = creator_stats.creator_earning(amount)
    # Concurrent purchases by one buyer from the same creator can both count as new; refresh_all corrects it
    _run_side_effect(
        db,
        EVENT_CREATOR_STATS,
        lambda: creator_stats.apply_event(
            db,
            course.creator_id,
            creator_stats.purchase_recorded(
                share,
                new_student=creator_stats.is_new_student(
                    db, course.creator_id, buyer_id, exclude_purchase_id=purchase.id,
                ),
            ),
        ),
        purchase,
        course.creator_id,
        {"creator_id": course.creator_id, "earning": str(share)},
    )

    db.commit()
    db.refresh(purchase)
    return purchase


def retry_referral_credit(db: Session, event: Event) -> bool:
    """
    Re-apply a referral credit whose original attempt failed.

    The event is claimed with a conditional UPDATE (FAILED -> PROCESSED) in
    the same transaction as the credit, so concurrent or repeated retries of
    one event credit the referrer at most once.
    """
    if event.type != EVENT_REFERRAL_CREDIT or event.status != EventStatus.FAILED:
        return False

    purchase = db.query(Purchase).filter(Purchase.id == event.purchase_id).first()
    if not purchase or purchase.referrer_id is None or purchase.referral_earning is None:
        logger.warning("Event %s has no creditable purchase; skipping", event.id)
        return False

    claimed = (
        db.query(Event)
        .filter(Event.id == event.id, Event.status == EventStatus.FAILED)
        .update(
            {
                Event.status: EventStatus.PROCESSED,
                Event.error_message: None,
                Event.attempts: Event.attempts + 1,
                Event.resolved_at: datetime.now(timezone.utc),
            },
            synchronize_session=False,
        )
    )
    if claimed != 1:
        db.rollback()
        logger.info("Event %s already retried elsewhere; skipping", event.id)
        return False

    referrals.credit_referral(db, purchase.referrer_id, purchase.referral_earning)
    db.commit()
    logger.info("Re-credited referrer %s for purchase %s (event %s)", purchase.referrer_id, purchase.id, event.id)
    return True
