import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, Numeric, Text, ForeignKey, DateTime, Index, Boolean
from sqlalchemy.orm import relationship
from ..database import Base
import enum


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    DEPOSIT_PAID = "deposit_paid"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that hold the room
ACTIVE_STATUSES = (
    BookingStatus.PENDING.value,
    BookingStatus.DEPOSIT_PAID.value,
    BookingStatus.CONFIRMED.value,
)


class PaymentMethod(str, enum.Enum):
    """How the guest intends to pay"""
    CASH = "cash"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    STRIPE = "stripe"
    PAY_LATER = "pay_later"  # room is held only once a payment lands


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    room_id = Column(String(36), ForeignKey("rooms.id", ondelete="SET NULL"), nullable=True)
    check_in = Column(DateTime, nullable=False)
    check_out = Column(DateTime, nullable=False)
    guests = Column(Integer, nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(String(30), default=BookingStatus.PENDING.value, nullable=False)
    special_requests = Column(Text, nullable=True)

    # Payment metadata
    payment_method = Column(String(50), nullable=True)
    payment_intent_id = Column(String(255), nullable=True)
    deposit_amount = Column(Numeric(12, 2), nullable=True)
    remaining_amount = Column(Numeric(12, 2), nullable=True)
    discount_amount = Column(Numeric(12, 2), default=0)

    check_in_time = Column(String(10), default="14:00")
    check_out_time = Column(String(10), default="12:00")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    cancelled_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    user = relationship("User", back_populates="bookings")
    room = relationship("Room", back_populates="bookings")
    services = relationship("BookingService", back_populates="booking", cascade="all, delete-orphan")
    nights = relationship("RoomNight", back_populates="booking", cascade="all, delete-orphan")
    review = relationship("Review", back_populates="booking", uselist=False)
    invoice = relationship("Invoice", back_populates="booking", uselist=False)

    __table_args__ = (
        Index("ix_booking_room_window", "room_id", "check_in", "check_out"),
        Index("ix_booking_status", "status"),
        Index("ix_booking_user", "user_id"),
    )

    @property
    def nights_count(self) -> int:
        return (self.check_out.date() - self.check_in.date()).days

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def __repr__(self):
        return f"<Booking {self.id} room={self.room_id} {self.check_in} {self.status}>"


class Service(Base):
    """Priced add-on (breakfast, airport pickup, spa...)"""
    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    category = Column(String(100), nullable=False, default="general")
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Service {self.name} {self.price}>"


class BookingService(Base):
    __tablename__ = "booking_services"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = Column(String(36), ForeignKey("services.id", ondelete="SET NULL"), nullable=True)
    quantity = Column(Integer, default=1, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)  # price snapshot at booking time
    total_price = Column(Numeric(12, 2), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    booking = relationship("Booking", back_populates="services")
    service = relationship("Service")

    def __repr__(self):
        return f"<BookingService {self.service_id} x{self.quantity}>"
