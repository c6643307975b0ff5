import logging
from datetime import datetime, timezone
from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.auth.dependencies import get_current_user
from app.schemas.users import UserResponse, CreatorSyncResponse
from app.integrations import chain

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _registration_time(paid_at: Optional[int]) -> datetime:
    """Registry timestamp as a datetime; missing or out-of-range values fall back to now"""
    if paid_at:
        try:
            return datetime.fromtimestamp(paid_at, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.warning("Ignoring out-of-range registry timestamp %s", paid_at)
    return datetime.now(timezone.utc)


@router.get("/me", response_model=UserResponse)
def get_current_user_profile(current_user: User = Depends(get_current_user)):
    """Get current user profile"""
    return current_user


@router.post("/me/sync-creator", response_model=CreatorSyncResponse)
def sync_creator_status(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Align the local creator flag with the on-chain creator registry.
    An unreachable registry reads as "not registered".
    """
    if not chain.is_registered_creator(current_user.address):
        if current_user.is_creator:
            logger.info("User %s no longer registered on-chain; clearing creator flag", current_user.id)
            current_user.is_creator = False
            current_user.creator_registered_at = None
            db.commit()
        return CreatorSyncResponse(is_creator=False)

    info = chain.get_creator_info(current_user.address)
    registered_at = _registration_time(info.paid_at if info else None)

    current_user.is_creator = True
    current_user.creator_registered_at = registered_at
    db.commit()
    return CreatorSyncResponse(is_creator=True, registered_at=registered_at)
