from fastapi import APIRouter, Depends, HTTPException, Request, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime

from ..database import get_db
from ..models.booking import Booking
from ..schemas.booking import (
    BookingCreate,
    BookingStatusUpdate,
    PaymentCreate,
    BookingResponse,
    BookingCancelResponse,
    RefundQuoteResponse,
    AvailabilityResponse,
    OccupancyResponse,
)
from ..services.booking_engine import BookingEngine
from ..utils.dependencies import SessionContext, get_session_context, require_admin
from ..utils.rate_limiter import limiter, get_rate_limit

router = APIRouter(prefix="/api/bookings", tags=["Bookings"])


def ensure_booking_access(booking: Booking, ctx: SessionContext) -> None:
    """Guests only see their own bookings; admins see all"""
    if not ctx.is_admin and booking.user_id != ctx.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this booking"
        )


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("booking_create"))
async def create_booking(
    request: Request,
    booking_data: BookingCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context)
):
    """Create a pending booking for the caller"""
    engine = BookingEngine(db)
    return engine.create_booking(
        user_id=ctx.user_id,
        room_id=booking_data.room_id,
        check_in=booking_data.check_in,
        check_out=booking_data.check_out,
        guests=booking_data.guests,
        special_requests=booking_data.special_requests,
        payment_method=booking_data.payment_method.value if booking_data.payment_method else None,
        services=[s.model_dump() for s in booking_data.services],
    )


@router.get("", response_model=List[BookingResponse])
async def list_bookings(
    status_filter: Optional[str] = Query(None, alias="status"),
    user_id: Optional[str] = None,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context)
):
    """The caller's bookings; admins may list anyone's"""
    owner = user_id if ctx.is_admin else ctx.user_id
    return BookingEngine(db).list_bookings(user_id=owner, status=status_filter)


@router.get("/check-availability", response_model=AvailabilityResponse)
@limiter.limit(get_rate_limit("availability"))
async def check_availability(
    request: Request,
    room_id: str,
    check_in: datetime,
    check_out: datetime,
    db: Session = Depends(get_db)
):
    available = BookingEngine(db).check_availability(room_id, check_in, check_out)
    return AvailabilityResponse(room_id=room_id, check_in=check_in, check_out=check_out, available=available)


@router.get("/occupancy", response_model=OccupancyResponse)
async def current_occupancy(
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_admin)
):
    """Guests currently in house (confirmed stays covering now)"""
    now = datetime.utcnow()
    return OccupancyResponse(at=now, current_guests=BookingEngine(db).current_guest_count(now))


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context)
):
    booking = BookingEngine(db).get_booking(booking_id)
    ensure_booking_access(booking, ctx)
    return booking


@router.patch("/{booking_id}/status", response_model=BookingResponse)
@limiter.limit(get_rate_limit("booking_update"))
async def update_booking_status(
    request: Request,
    booking_id: str,
    status_data: BookingStatusUpdate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_admin)
):
    """Move a booking along the status graph (admin)"""
    return BookingEngine(db).transition_status(booking_id, status_data.status.value)


@router.post("/{booking_id}/payments", response_model=BookingResponse)
@limiter.limit(get_rate_limit("payment"))
async def record_payment(
    request: Request,
    booking_id: str,
    payment: PaymentCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context)
):
    engine = BookingEngine(db)
    ensure_booking_access(engine.get_booking(booking_id), ctx)
    return engine.record_payment(
        booking_id,
        payment_method=payment.payment_method.value,
        amount=payment.amount,
        is_deposit=payment.is_deposit,
        payment_intent_id=payment.payment_intent_id,
    )


@router.post("/{booking_id}/cancel", response_model=BookingCancelResponse)
@limiter.limit(get_rate_limit("booking_update"))
async def cancel_booking(
    request: Request,
    booking_id: str,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context)
):
    """Cancel a booking and return the refund the policy allows"""
    engine = BookingEngine(db)
    ensure_booking_access(engine.get_booking(booking_id), ctx)
    booking, quote = engine.cancel_booking(booking_id)
    return BookingCancelResponse(
        booking=BookingResponse.model_validate(booking),
        refund=RefundQuoteResponse(
            hours_before_check_in=quote.hours_before_check_in,
            refund_percent=quote.refund_percent,
            paid_amount=quote.paid_amount,
            refund_amount=quote.refund_amount,
        ),
    )
