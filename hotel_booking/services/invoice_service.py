"""
Invoice Service

Builds the financial summary of a booking:
    total = room + services - discount + tax
    tax   = (room + services - discount) * INVOICE_TAX_RATE

Room total is derived from the booking's own price snapshot, so later room
price changes never alter an invoice.
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..exceptions import BookingEngineError, NotFoundError, ValidationError
from ..models.booking import Booking, BookingService, BookingStatus
from ..models.invoice import Invoice, InvoicePaymentStatus
from ..utils.db_helpers import acquire_row_lock_or_fail
from ..utils.logging_config import get_logger
from ..utils.time_utils import utc_now

logger = get_logger(__name__)

CENT = Decimal("0.01")


def invoice_number_for(booking_id: str, issued_at: datetime) -> str:
    return f"INV-{issued_at:%Y%m%d}-{booking_id[:8]}"


def payment_status_for(paid: Decimal, total: Decimal) -> str:
    if paid <= 0:
        return InvoicePaymentStatus.UNPAID.value
    if paid < total:
        return InvoicePaymentStatus.PARTIAL.value
    return InvoicePaymentStatus.PAID.value


class InvoiceService:

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()

    def get_invoice_for_booking(self, booking_id: str) -> Optional[Invoice]:
        return self.db.query(Invoice).filter(Invoice.booking_id == booking_id).first()

    def generate_invoice(self, booking_id: str, issued_at: Optional[datetime] = None) -> Invoice:
        """Create the booking's invoice, or return the one already issued."""
        existing = self.get_invoice_for_booking(booking_id)
        if existing is not None:
            return existing

        issued_at = utc_now(issued_at)
        booking = self.db.get(Booking, booking_id)
        if booking is None:
            raise NotFoundError("Booking not found", {"booking_id": booking_id})
        if booking.status == BookingStatus.CANCELLED.value:
            raise ValidationError("Cancelled bookings are not invoiced", {"booking_id": booking_id})

        services_total = Decimal(str(
            self.db.query(func.coalesce(func.sum(BookingService.total_price), 0)).filter(
                BookingService.booking_id == booking_id
            ).scalar() or 0
        ))
        discount = Decimal(str(booking.discount_amount or 0))
        # total_price already has the discount taken off
        room_total = Decimal(str(booking.total_price)) + discount - services_total

        taxable = room_total + services_total - discount
        tax = (taxable * Decimal(str(self.settings.invoice_tax_rate))).quantize(CENT, rounding=ROUND_HALF_UP)
        total = taxable + tax

        remaining = booking.remaining_amount
        paid = Decimal("0")
        if remaining is not None:
            paid = max(Decimal(str(booking.total_price)) - Decimal(str(remaining)), Decimal("0"))

        invoice = Invoice(
            booking_id=booking.id,
            invoice_number=invoice_number_for(booking.id, issued_at),
            room_total=room_total,
            services_total=services_total,
            discount_amount=discount,
            tax_amount=tax,
            total_amount=total,
            payment_method=booking.payment_method,
            payment_status=payment_status_for(paid, total),
            paid_amount=paid,
        )
        self.db.add(invoice)
        try:
            self.db.commit()
        except IntegrityError:
            # Issued concurrently; hand back the winner
            self.db.rollback()
            existing = self.get_invoice_for_booking(booking_id)
            if existing is None:
                raise
            return existing

        self.db.refresh(invoice)
        logger.info(f"Invoice {invoice.invoice_number} issued for booking {booking_id}: {invoice.total_amount}")
        return invoice

    def record_invoice_payment(self, invoice_id: str, amount) -> Invoice:
        amount = Decimal(str(amount))
        if amount <= 0:
            raise ValidationError("Payment amount must be positive", {"amount": str(amount)})

        try:
            invoice = acquire_row_lock_or_fail(
                self.db, Invoice, Invoice.id == invoice_id, "Invoice is being updated by another request"
            )

            total = Decimal(str(invoice.total_amount))
            paid = Decimal(str(invoice.paid_amount or 0)) + amount
            if paid > total:
                raise ValidationError(
                    "Payment exceeds the invoice balance",
                    {"amount": str(amount), "outstanding": str(total - Decimal(str(invoice.paid_amount or 0)))}
                )

            invoice.paid_amount = paid
            invoice.payment_status = payment_status_for(paid, total)
            self.db.commit()
        except BookingEngineError:
            self.db.rollback()
            raise

        self.db.refresh(invoice)
        return invoice
