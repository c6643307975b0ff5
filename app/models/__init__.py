# Database models
from .base import Base
from .user import User, UserRole
from .course import Course
from .purchase import Purchase
from .referral_stats import ReferralStats
from .creator_stats import CreatorStats
from .notification import Notification, NotificationType
from .event import Event, EventStatus

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Course",
    "Purchase",
    "ReferralStats",
    "CreatorStats",
    "Notification",
    "NotificationType",
    "Event",
    "EventStatus",
]
