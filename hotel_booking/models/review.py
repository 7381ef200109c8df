import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, Text, Boolean, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from ..database import Base


class Review(Base):
    __tablename__ = "reviews"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    room_id = Column(String(36), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    rating = Column(Integer, nullable=False)  # 1..5
    title = Column(String(255), nullable=True)
    comment = Column(Text, nullable=True)

    # Detailed ratings, 1..5
    cleanliness = Column(Integer, default=5)
    service = Column(Integer, default=5)
    amenities = Column(Integer, default=5)
    value_for_money = Column(Integer, default=5)
    location = Column(Integer, default=5)
    would_recommend = Column(Boolean, default=True)
    guest_type = Column(String(50), default="Individual")
    stay_purpose = Column(String(50), default="Leisure")

    created_at = Column(DateTime, default=datetime.utcnow)

    room = relationship("Room", back_populates="reviews")
    booking = relationship("Booking", back_populates="review")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint("booking_id", name="uq_reviews_booking"),
        Index("ix_reviews_room", "room_id"),
    )

    def __repr__(self):
        return f"<Review {self.rating}/5 room={self.room_id}>"
