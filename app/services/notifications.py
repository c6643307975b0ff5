"""
Notification sink: in-app inbox rows.

Failures are logged and never roll back the caller's transaction.
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.models.notification import Notification, NotificationType

logger = logging.getLogger(__name__)


def enqueue(
    db: Session,
    user_id: int,
    type: NotificationType,
    title: str,
    body: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
) -> Optional[Notification]:
    """Queue a notification for `user_id`. Returns None if disabled or on failure."""
    if not settings.notifications_enabled:
        logger.info("Notifications disabled. Skipping %s for user %s", type.value, user_id)
        return None

    try:
        with db.begin_nested():
            notification = Notification(
                user_id=user_id,
                type=type,
                title=title,
                body=body,
                data=data,
            )
            db.add(notification)
        return notification
    except SQLAlchemyError as e:
        logger.error("Failed to enqueue %s notification for user %s: %s", type.value, user_id, e)
        return None
