"""
Loyalty models

LoyaltyPoints is a materialized fold over PointTransaction: its ``points``
must always equal the signed sum of that user's transactions. The membership
level is never stored, it is derived from points with ``level_for``.
"""
import uuid
from datetime import datetime
from typing import Optional, Tuple
from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship
import enum

from ..database import Base


class LoyaltyLevel(str, enum.Enum):
    BRONZE = "Bronze"
    SILVER = "Silver"
    GOLD = "Gold"
    PLATINUM = "Platinum"


# (level, lower bound inclusive, upper bound exclusive); contiguous and ascending
LEVEL_BANDS = (
    (LoyaltyLevel.BRONZE, 0, 1000),
    (LoyaltyLevel.SILVER, 1000, 3000),
    (LoyaltyLevel.GOLD, 3000, 5000),
    (LoyaltyLevel.PLATINUM, 5000, None),
)


def level_for(points: int) -> LoyaltyLevel:
    """Map a point balance to its level band."""
    if points < 0:
        raise ValueError("points cannot be negative")
    for level, lower, upper in LEVEL_BANDS:
        if points >= lower and (upper is None or points < upper):
            return level
    raise AssertionError("level bands must cover every non-negative value")


def next_level_for(points: int) -> Tuple[Optional[LoyaltyLevel], Optional[int]]:
    """Return (next level, points still missing), or (None, None) at the top band."""
    current = level_for(points)
    for level, lower, upper in LEVEL_BANDS:
        if level == current:
            if upper is None:
                return None, None
            return level_for(upper), upper - points
    return None, None


class TransactionType(str, enum.Enum):
    EARNED = "earned"
    REDEEMED = "redeemed"


class LoyaltyPoints(Base):
    __tablename__ = "loyalty_points"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    points = Column(Integer, default=0, nullable=False)
    total_earned = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="loyalty_account")

    @property
    def level(self) -> LoyaltyLevel:
        return level_for(self.points or 0)

    def __repr__(self):
        return f"<LoyaltyPoints user={self.user_id} {self.points} ({self.level.value})>"


class PointTransaction(Base):
    """Append-only point log entry. ``points`` is always positive; ``type`` gives the sign."""
    __tablename__ = "point_transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True)
    reward_id = Column(String(64), nullable=True)
    type = Column(String(20), nullable=False)
    points = Column(Integer, nullable=False)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        # A booking earns at most once; NULL booking ids never collide
        UniqueConstraint("booking_id", "type", name="uq_point_tx_booking_type"),
        Index("ix_point_tx_user", "user_id", "created_at"),
    )

    @property
    def signed_points(self) -> int:
        if self.type == TransactionType.REDEEMED.value:
            return -self.points
        return self.points

    def __repr__(self):
        return f"<PointTransaction {self.type} {self.points} user={self.user_id}>"
