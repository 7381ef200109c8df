import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, Numeric, Text, DateTime, JSON, Date, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
import enum

from ..database import Base


class RoomStatus(str, enum.Enum):
    AVAILABLE = "available"
    BOOKED = "booked"
    MAINTENANCE = "maintenance"


class Room(Base):
    __tablename__ = "rooms"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    number = Column(String(20), nullable=False, unique=True, index=True)
    type = Column(String(50), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)  # per night
    capacity = Column(Integer, nullable=False)
    status = Column(String(20), default=RoomStatus.AVAILABLE.value, index=True)
    description = Column(Text, nullable=True)
    amenities = Column(JSON, default=list)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    bookings = relationship("Booking", back_populates="room")
    reviews = relationship("Review", back_populates="room")

    def __repr__(self):
        return f"<Room {self.number} ({self.type}) {self.status}>"


class RoomNight(Base):
    """
    One row per occupied night of a non-cancelled booking.

    The (room_id, night) unique constraint is what keeps two bookings from
    holding the same room on the same night, whichever process inserts them.
    Rows are removed when their booking is cancelled.
    """
    __tablename__ = "room_nights"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    room_id = Column(String(36), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    night = Column(Date, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    booking = relationship("Booking", back_populates="nights")

    __table_args__ = (
        UniqueConstraint('room_id', 'night', name='uq_room_nights_room_night'),
        Index('ix_room_nights_room_night', 'room_id', 'night'),
    )

    def __repr__(self):
        return f"<RoomNight {self.room_id} {self.night}>"
