from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from .base import Base


class UserRole(str, enum.Enum):
    """User role enumeration"""
    ADMIN = "admin"
    MEMBER = "member"


class User(Base):
    """Wallet-identified marketplace user (buyer, creator and/or referrer)"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    address = Column(String(42), unique=True, nullable=False, index=True)
    username = Column(String(255), nullable=True)
    avatar = Column(String(512), nullable=True)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.MEMBER)
    is_creator = Column(Boolean, nullable=False, default=False)
    creator_registered_at = Column(DateTime(timezone=True), nullable=True)

    # Referral program
    referral_code = Column(String(16), unique=True, nullable=True, index=True)
    referred_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    courses = relationship("Course", back_populates="creator")
    purchases = relationship("Purchase", back_populates="buyer", foreign_keys="Purchase.user_id")
    referral_stats = relationship("ReferralStats", back_populates="user", uselist=False)
    creator_stats = relationship("CreatorStats", back_populates="user", uselist=False)
