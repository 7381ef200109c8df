import uuid
from datetime import datetime
from sqlalchemy import Column, String, Numeric, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
import enum

from ..database import Base


class InvoicePaymentStatus(str, enum.Enum):
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


class Invoice(Base):
    """Derived financial summary of a booking"""
    __tablename__ = "invoices"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, unique=True)
    invoice_number = Column(String(100), nullable=False, unique=True)
    room_total = Column(Numeric(12, 2), nullable=False)
    services_total = Column(Numeric(12, 2), default=0)
    discount_amount = Column(Numeric(12, 2), default=0)
    tax_amount = Column(Numeric(12, 2), default=0)
    total_amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(String(50), nullable=True)
    payment_status = Column(String(20), default=InvoicePaymentStatus.UNPAID.value)
    paid_amount = Column(Numeric(12, 2), default=0)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    booking = relationship("Booking", back_populates="invoice")

    def __repr__(self):
        return f"<Invoice {self.invoice_number} {self.total_amount} {self.payment_status}>"
