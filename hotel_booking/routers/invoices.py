from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.invoice import InvoiceResponse, InvoicePaymentCreate
from ..services.booking_engine import BookingEngine
from ..services.invoice_service import InvoiceService
from ..utils.dependencies import SessionContext, get_session_context, require_admin
from .bookings import ensure_booking_access

router = APIRouter(prefix="/api/invoices", tags=["Invoices"])


@router.post("/bookings/{booking_id}", response_model=InvoiceResponse)
async def generate_invoice(
    booking_id: str,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context)
):
    """Issue (or fetch) the invoice of a booking"""
    ensure_booking_access(BookingEngine(db).get_booking(booking_id), ctx)
    return InvoiceService(db).generate_invoice(booking_id)


@router.get("/bookings/{booking_id}", response_model=InvoiceResponse)
async def get_invoice(
    booking_id: str,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context)
):
    ensure_booking_access(BookingEngine(db).get_booking(booking_id), ctx)
    invoice = InvoiceService(db).get_invoice_for_booking(booking_id)
    if invoice is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No invoice has been issued for this booking"
        )
    return invoice


@router.post("/{invoice_id}/payments", response_model=InvoiceResponse)
async def record_invoice_payment(
    invoice_id: str,
    payment: InvoicePaymentCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_admin)
):
    return InvoiceService(db).record_invoice_payment(invoice_id, payment.amount)
