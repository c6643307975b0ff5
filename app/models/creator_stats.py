from decimal import Decimal

from sqlalchemy import Column, Integer, DateTime, ForeignKey, Numeric
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .base import Base


class CreatorStats(Base):
    """Materialized leaderboard row per creator, rebuildable from courses and purchases"""
    __tablename__ = "creator_stats"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False, index=True)
    courses_count = Column(Integer, nullable=False, default=0)
    students_count = Column(Integer, nullable=False, default=0)
    total_earnings_usd = Column(Numeric(20, 8), nullable=False, default=Decimal("0"))
    points = Column(Integer, nullable=False, default=0, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", back_populates="creator_stats")
