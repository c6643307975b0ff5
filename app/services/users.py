"""
User provisioning: every new wallet gets a referral code, an empty
referral stats row and, when signed up through a valid code, its referrer.
"""
import logging
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.referral_stats import ReferralStats
from app.models.user import User, UserRole
from app.services import referrals
from app.services.errors import CodeAllocationError

logger = logging.getLogger(__name__)


def normalize_address(address: str) -> str:
    return address.strip().lower()


def find_by_address(db: Session, address: str) -> Optional[User]:
    return db.query(User).filter(User.address == normalize_address(address)).first()


def get_or_create(
    db: Session,
    address: str,
    referral_code: Optional[str] = None,
    role: UserRole = UserRole.MEMBER,
) -> Tuple[User, bool]:
    """
    Return (user, created). Existing users are returned untouched; the
    referral code only applies at sign-up. Unknown codes and the wallet's
    own code are ignored.
    """
    address = normalize_address(address)
    user = find_by_address(db, address)
    if user:
        return user, False

    referrer = referrals.find_referrer(db, referral_code)
    if referrer is not None and referrer.address == address:
        referrer = None
    if referral_code and referrer is None:
        logger.info("Sign-up referral code %s ignored for %s", referral_code, address)

    for _ in range(referrals.CODE_ATTEMPTS):
        user = User(
            address=address,
            role=role,
            referral_code=referrals.generate_referral_code(),
            referred_by=referrer.id if referrer else None,
        )
        try:
            with db.begin_nested():
                db.add(user)
                db.flush()
                db.add(ReferralStats(user_id=user.id))
        except IntegrityError:
            # Either the wallet was created concurrently or the code collided
            existing = find_by_address(db, address)
            if existing:
                return existing, False
            logger.warning("Referral code collision provisioning %s; retrying", address)
            continue

        db.commit()
        db.refresh(user)
        logger.info("Provisioned user %s (%s), referred_by=%s", user.id, address, user.referred_by)
        return user, True

    raise CodeAllocationError()
