from decimal import Decimal

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Numeric
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .base import Base


class Course(Base):
    """A paid or free course published by a creator"""
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    # Course id on the marketplace contract, when the course is listed on-chain
    on_chain_id = Column(Integer, unique=True, nullable=True, index=True)
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price_usd = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    is_free = Column(Boolean, nullable=False, default=False)
    is_published = Column(Boolean, nullable=False, default=False)
    is_hidden = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    creator = relationship("User", back_populates="courses")
    purchases = relationship("Purchase", back_populates="course")

    @property
    def effective_price(self) -> Decimal:
        """Price used for entitlement and earnings; free courses always count as 0."""
        if self.is_free:
            return Decimal("0")
        return Decimal(self.price_usd or 0)
