"""
Append-only purchase ledger.

One row per (buyer, course) and one row per on-chain transaction hash,
both enforced by named unique constraints.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .base import Base


class Purchase(Base):
    __tablename__ = "purchases"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)
    tx_hash = Column(String(66), nullable=False)
    paid_amount = Column(Numeric(20, 8), nullable=False)
    payment_token = Column(String(16), nullable=False)
    referrer_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    referral_earning = Column(Numeric(20, 8), nullable=True)
    purchased_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    buyer = relationship("User", back_populates="purchases", foreign_keys=[user_id])
    referrer = relationship("User", foreign_keys=[referrer_id])
    course = relationship("Course", back_populates="purchases")

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_purchases_user_course"),
        UniqueConstraint("tx_hash", name="uq_purchases_tx_hash"),
    )
