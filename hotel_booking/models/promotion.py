import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, Numeric, Text, Boolean, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship
import enum

from ..database import Base


class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class PromotionalCode(Base):
    __tablename__ = "promotional_codes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code = Column(String(50), nullable=False, unique=True, index=True)  # stored upper case
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    discount_type = Column(String(20), nullable=False)
    discount_value = Column(Numeric(12, 2), nullable=False)
    min_amount = Column(Numeric(12, 2), default=0)
    max_discount = Column(Numeric(12, 2), nullable=True)
    usage_limit = Column(Integer, nullable=True)  # NULL = unlimited
    used_count = Column(Integer, default=0, nullable=False)
    per_user_limit = Column(Integer, nullable=True)  # NULL = unlimited
    valid_from = Column(DateTime, nullable=False)
    valid_to = Column(DateTime, nullable=False)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    usages = relationship("PromotionalCodeUsage", back_populates="promotional_code")

    @property
    def remaining_uses(self):
        if self.usage_limit is None:
            return None
        return max(self.usage_limit - (self.used_count or 0), 0)

    def __repr__(self):
        return f"<PromotionalCode {self.code} {self.used_count}/{self.usage_limit}>"


class PromotionalCodeUsage(Base):
    """Append-only record of each redemption"""
    __tablename__ = "promotional_code_usage"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code_id = Column(String(36), ForeignKey("promotional_codes.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True)
    discount_amount = Column(Numeric(12, 2), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    promotional_code = relationship("PromotionalCode", back_populates="usages")

    __table_args__ = (
        UniqueConstraint("code_id", "booking_id", name="uq_promo_usage_code_booking"),
        Index("ix_promo_usage_code_user", "code_id", "user_id"),
    )

    def __repr__(self):
        return f"<PromotionalCodeUsage code={self.code_id} booking={self.booking_id}>"
