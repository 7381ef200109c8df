"""
Booking Engine

Owns the booking lifecycle:
- create_booking: validate, check the room-night window and insert in one transaction
- transition_status: the pending -> deposit_paid -> confirmed -> completed graph
- record_payment / cancel_booking: payment-driven transitions and refund quotes
- check_availability / find_available_rooms: read-only views of the same overlap rule

Double-booking is prevented by the database, not by this process: the room
row is locked where the dialect supports it, and every occupied night is a
``RoomNight`` row under ``UNIQUE(room_id, night)``. A racing insert that
slips past the availability check fails at commit and is reported as
``ConflictError``.
"""

import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import and_, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..exceptions import (
    BookingEngineError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from ..models.booking import (
    ACTIVE_STATUSES,
    Booking,
    BookingService,
    BookingStatus,
    PaymentMethod,
    Service,
)
from ..models.room import Room, RoomNight, RoomStatus
from ..models.user import User
from ..utils.db_helpers import acquire_row_lock, guarded_update
from ..utils.logging_config import get_logger
from ..utils.time_utils import to_naive_utc, utc_now
from .loyalty_ledger import LoyaltyLedger

logger = get_logger(__name__)

CENT = Decimal("0.01")

# Allowed status edges; anything not listed is an invalid transition
TRANSITIONS = {
    BookingStatus.PENDING.value: {BookingStatus.DEPOSIT_PAID.value, BookingStatus.CANCELLED.value},
    BookingStatus.DEPOSIT_PAID.value: {BookingStatus.CONFIRMED.value, BookingStatus.CANCELLED.value},
    BookingStatus.CONFIRMED.value: {BookingStatus.COMPLETED.value, BookingStatus.CANCELLED.value},
}

# (hours before check-in, refund percent), checked in order
REFUND_POLICY = (
    (48, 100),
    (24, 50),
)


@dataclass
class RefundQuote:
    booking_id: str
    hours_before_check_in: float
    refund_percent: int
    paid_amount: Decimal
    refund_amount: Decimal


def stay_nights(check_in: datetime, check_out: datetime) -> List[date]:
    """Calendar nights covered by the half-open window [check_in, check_out)."""
    first = check_in.date()
    count = (check_out.date() - first).days
    return [first + timedelta(days=i) for i in range(count)]


def quote_refund(booking: Booking, now: datetime) -> RefundQuote:
    hours = (booking.check_in - now).total_seconds() / 3600
    percent = 0
    for threshold, pct in REFUND_POLICY:
        if hours > threshold:
            percent = pct
            break

    total = Decimal(str(booking.total_price or 0))
    remaining = total if booking.remaining_amount is None else Decimal(str(booking.remaining_amount))
    paid = max(total - remaining, Decimal("0"))
    refund = (paid * percent / 100).quantize(CENT, rounding=ROUND_HALF_UP)

    return RefundQuote(
        booking_id=booking.id,
        hours_before_check_in=round(hours, 2),
        refund_percent=percent,
        paid_amount=paid,
        refund_amount=refund,
    )


class BookingEngine:
    """
    Booking lifecycle operations on one database session.

    Every public method is one transaction: it commits on success and rolls
    back before raising a BookingEngineError.
    """

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        ledger: Optional[LoyaltyLedger] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.ledger = ledger or LoyaltyLedger(db, self.settings)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_booking(self, booking_id: str) -> Booking:
        booking = self.db.get(Booking, booking_id)
        if booking is None:
            raise NotFoundError("Booking not found", {"booking_id": booking_id})
        return booking

    def list_bookings(
        self,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        room_id: Optional[str] = None,
    ) -> List[Booking]:
        query = self.db.query(Booking)
        if user_id:
            query = query.filter(Booking.user_id == user_id)
        if status:
            query = query.filter(Booking.status == status)
        if room_id:
            query = query.filter(Booking.room_id == room_id)
        return query.order_by(Booking.check_in.desc()).all()

    def _validate_window(self, check_in, check_out) -> Tuple[datetime, datetime, List[date]]:
        check_in = to_naive_utc(check_in)
        check_out = to_naive_utc(check_out)
        if check_in >= check_out:
            raise ValidationError(
                "check_in must be before check_out",
                {"check_in": check_in.isoformat(), "check_out": check_out.isoformat()}
            )
        nights = stay_nights(check_in, check_out)
        if not nights:
            raise ValidationError("A booking must cover at least one night")
        return check_in, check_out, nights

    def _occupied_nights(
        self,
        room_id: str,
        nights: List[date],
        exclude_booking_id: Optional[str] = None,
    ):
        query = self.db.query(RoomNight).filter(
            RoomNight.room_id == room_id,
            RoomNight.night >= nights[0],
            RoomNight.night <= nights[-1],
        )
        if exclude_booking_id:
            query = query.filter(RoomNight.booking_id != exclude_booking_id)
        return query

    def check_availability(self, room_id: str, check_in, check_out) -> bool:
        """True when no non-cancelled booking holds any night of [check_in, check_out)."""
        _, _, nights = self._validate_window(check_in, check_out)
        return self._occupied_nights(room_id, nights).first() is None

    def find_available_rooms(self, check_in, check_out, guests: Optional[int] = None) -> List[Room]:
        _, _, nights = self._validate_window(check_in, check_out)

        taken = select(RoomNight.room_id).where(
            RoomNight.night >= nights[0],
            RoomNight.night <= nights[-1],
        )
        query = self.db.query(Room).filter(
            Room.status == RoomStatus.AVAILABLE.value,
            ~Room.id.in_(taken),
        )
        if guests:
            query = query.filter(Room.capacity >= guests)
        return query.order_by(Room.price, Room.number).all()

    def current_guest_count(self, now: Optional[datetime] = None) -> int:
        """Guests of confirmed bookings whose stay window contains ``now``."""
        now = utc_now(now)
        total = self.db.query(func.coalesce(func.sum(Booking.guests), 0)).filter(
            Booking.status == BookingStatus.CONFIRMED.value,
            Booking.check_in <= now,
            Booking.check_out > now,
        ).scalar()
        return int(total or 0)

    def has_active_overlap(self, booking: Booking) -> bool:
        """Another pending/paid/confirmed booking holds a night of this booking's window."""
        nights = stay_nights(booking.check_in, booking.check_out)
        if not nights:
            return False
        return self.db.query(RoomNight.id).join(
            Booking, Booking.id == RoomNight.booking_id
        ).filter(
            RoomNight.room_id == booking.room_id,
            RoomNight.night >= nights[0],
            RoomNight.night <= nights[-1],
            RoomNight.booking_id != booking.id,
            Booking.status.in_(ACTIVE_STATUSES),
        ).first() is not None

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def _build_services(self, services: Optional[Iterable[Dict[str, Any]]]) -> List[BookingService]:
        lines = []
        for item in services or []:
            service_id = item.get("service_id")
            quantity = int(item.get("quantity", 1))
            if quantity < 1:
                raise ValidationError("Service quantity must be at least 1", {"service_id": service_id})

            service = self.db.get(Service, service_id)
            if service is None or not service.is_active:
                raise NotFoundError("Service not found", {"service_id": service_id})

            unit_price = Decimal(str(service.price))
            lines.append(BookingService(
                service_id=service.id,
                quantity=quantity,
                unit_price=unit_price,
                total_price=unit_price * quantity,
            ))
        return lines

    def create_booking(
        self,
        user_id: str,
        room_id: str,
        check_in,
        check_out,
        guests: int,
        special_requests: Optional[str] = None,
        payment_method: Optional[str] = None,
        services: Optional[Iterable[Dict[str, Any]]] = None,
    ) -> Booking:
        """
        Create a pending booking.

        Raises:
            ValidationError: bad window, guest count or payment method
            NotFoundError: unknown user, room or service
            ConflictError: room not available (booked or under maintenance)
                or any night already taken
        """
        start_time = time.perf_counter()

        check_in, check_out, nights = self._validate_window(check_in, check_out)
        if guests is None or guests < 1:
            raise ValidationError("At least one guest is required", {"guests": guests})
        if payment_method is not None:
            valid_methods = {m.value for m in PaymentMethod}
            if payment_method not in valid_methods:
                raise ValidationError("Unknown payment method", {"payment_method": payment_method})

        try:
            if self.db.get(User, user_id) is None:
                raise NotFoundError("User not found", {"user_id": user_id})

            # Serialize bookings on the same room (PostgreSQL); no-op on SQLite
            room = acquire_row_lock(self.db, Room, Room.id == room_id)
            if room is None:
                raise NotFoundError("Room not found", {"room_id": room_id})

            if room.status == RoomStatus.MAINTENANCE.value:
                raise ConflictError("Room is under maintenance", {"room_id": room_id})
            if room.status != RoomStatus.AVAILABLE.value:
                raise ConflictError(
                    f"Room {room.number} is not available",
                    {"room_id": room_id, "status": room.status}
                )

            if guests > room.capacity:
                raise ValidationError(
                    f"Room {room.number} holds at most {room.capacity} guests",
                    {"guests": guests, "capacity": room.capacity}
                )

            if self._occupied_nights(room.id, nights).first() is not None:
                raise ConflictError(
                    "Room is already booked for the selected dates",
                    {"room_id": room.id, "check_in": check_in.isoformat(), "check_out": check_out.isoformat()}
                )

            service_lines = self._build_services(services)
            room_total = Decimal(str(room.price)) * len(nights)
            services_total = sum((line.total_price for line in service_lines), Decimal("0"))
            total_price = room_total + services_total

            booking = Booking(
                user_id=user_id,
                room_id=room.id,
                check_in=check_in,
                check_out=check_out,
                guests=guests,
                total_price=total_price,
                status=BookingStatus.PENDING.value,
                special_requests=special_requests,
                payment_method=payment_method,
                remaining_amount=total_price,
                discount_amount=Decimal("0"),
                check_in_time=self.settings.default_check_in_time,
                check_out_time=self.settings.default_check_out_time,
            )
            booking.services = service_lines
            booking.nights = [RoomNight(room_id=room.id, night=night) for night in nights]

            # Deferred payment holds the room only once a payment lands
            if payment_method != PaymentMethod.PAY_LATER.value:
                room.status = RoomStatus.BOOKED.value

            self.db.add(booking)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning(f"Room-night conflict on commit for room {room_id}")
            raise ConflictError(
                "Room is already booked for the selected dates",
                {"room_id": room_id}
            )
        except BookingEngineError:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.booking_created(booking.id, booking.room_id, float(booking.total_price), duration_ms)
        return booking

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _hold_room(self, booking: Booking) -> None:
        if not booking.room_id:
            return
        room = acquire_row_lock(self.db, Room, Room.id == booking.room_id)
        if room is not None and room.status == RoomStatus.AVAILABLE.value:
            room.status = RoomStatus.BOOKED.value

    def _release_room(self, booking: Booking) -> None:
        if not booking.room_id:
            return
        room = acquire_row_lock(self.db, Room, Room.id == booking.room_id)
        if room is None or room.status != RoomStatus.BOOKED.value:
            return
        if not self.has_active_overlap(booking):
            room.status = RoomStatus.AVAILABLE.value
            logger.info(f"Room {room.number} released by booking {booking.id}")

    def _apply_transition(self, booking: Booking, target: str, now: Optional[datetime] = None) -> None:
        """
        Compare-and-set the status from its current value to ``target`` and run
        the side effects of the new state. Does not commit.
        """
        current = booking.status
        now = utc_now(now)

        values = {"status": target, "updated_at": now}
        if target == BookingStatus.CANCELLED.value:
            values["cancelled_at"] = now
        elif target == BookingStatus.COMPLETED.value:
            values["completed_at"] = now

        self.db.flush()
        updated = guarded_update(
            self.db, Booking,
            and_(Booking.id == booking.id, Booking.status == current),
            values,
        )
        if updated == 0:
            raise ConflictError(
                "Booking was modified concurrently",
                {"booking_id": booking.id, "expected_status": current}
            )

        if target == BookingStatus.CANCELLED.value:
            # Free the nights; delete-orphan removes the rows on flush
            booking.nights.clear()
            self.db.flush()

        self.db.refresh(booking)

        if target in (BookingStatus.DEPOSIT_PAID.value, BookingStatus.CONFIRMED.value):
            self._hold_room(booking)
        elif target == BookingStatus.CANCELLED.value:
            self._release_room(booking)
        elif target == BookingStatus.COMPLETED.value:
            self._release_room(booking)
            if booking.user_id:
                self.ledger.earn_points(
                    booking.user_id,
                    booking.id,
                    booking.total_price,
                    description=f"Stay completed (booking {booking.id[:8]})",
                    commit=False,
                )

        logger.booking_status_changed(booking.id, current, target)

    def transition_status(self, booking_id: str, target_status: str) -> Booking:
        """
        Move a booking along the status graph.

        Completing an already completed booking is a no-op, so points are
        never earned twice.
        """
        try:
            target = BookingStatus(target_status).value
        except ValueError:
            raise ValidationError("Unknown booking status", {"status": target_status})

        try:
            booking = self.get_booking(booking_id)
            current = booking.status

            if current == BookingStatus.COMPLETED.value and target == BookingStatus.COMPLETED.value:
                return booking

            if target not in TRANSITIONS.get(current, set()):
                raise InvalidTransitionError(
                    f"Cannot change booking status from {current} to {target}",
                    {"booking_id": booking_id, "from": current, "to": target}
                )

            self._apply_transition(booking, target)
            self.db.commit()
        except BookingEngineError:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        return booking

    def record_payment(
        self,
        booking_id: str,
        payment_method: str,
        amount=None,
        is_deposit: bool = False,
        payment_intent_id: Optional[str] = None,
    ) -> Booking:
        """
        Record a deposit (pending -> deposit_paid) or the full outstanding
        amount (-> confirmed).

        The deposit defaults to DEPOSIT_RATIO of the total. A full payment
        must cover the remaining amount.
        """
        valid_methods = {m.value for m in PaymentMethod}
        if payment_method not in valid_methods:
            raise ValidationError("Unknown payment method", {"payment_method": payment_method})

        try:
            booking = acquire_row_lock(self.db, Booking, Booking.id == booking_id)
            if booking is None:
                raise NotFoundError("Booking not found", {"booking_id": booking_id})

            total = Decimal(str(booking.total_price))
            remaining = total if booking.remaining_amount is None else Decimal(str(booking.remaining_amount))

            if is_deposit:
                if booking.status != BookingStatus.PENDING.value:
                    raise InvalidTransitionError(
                        "A deposit can only be paid on a pending booking",
                        {"booking_id": booking_id, "status": booking.status}
                    )
                if amount is None:
                    deposit = (total * Decimal(str(self.settings.deposit_ratio))).quantize(CENT, rounding=ROUND_HALF_UP)
                else:
                    deposit = Decimal(str(amount))
                if deposit <= 0 or deposit > total:
                    raise ValidationError("Deposit must be between 0 and the booking total", {"amount": str(deposit)})

                booking.deposit_amount = deposit
                booking.remaining_amount = total - deposit
                booking.payment_method = payment_method
                if payment_intent_id:
                    booking.payment_intent_id = payment_intent_id
                self._apply_transition(booking, BookingStatus.DEPOSIT_PAID.value)
            else:
                if booking.status not in (BookingStatus.PENDING.value, BookingStatus.DEPOSIT_PAID.value):
                    raise InvalidTransitionError(
                        "Booking is not awaiting payment",
                        {"booking_id": booking_id, "status": booking.status}
                    )
                paid = remaining if amount is None else Decimal(str(amount))
                if paid < remaining:
                    raise ValidationError(
                        "Payment does not cover the remaining amount",
                        {"amount": str(paid), "remaining": str(remaining)}
                    )
                if paid > remaining:
                    raise ValidationError(
                        "Payment exceeds the remaining amount",
                        {"amount": str(paid), "remaining": str(remaining)}
                    )

                booking.remaining_amount = Decimal("0")
                booking.payment_method = payment_method
                if payment_intent_id:
                    booking.payment_intent_id = payment_intent_id
                if booking.status == BookingStatus.PENDING.value:
                    self._apply_transition(booking, BookingStatus.DEPOSIT_PAID.value)
                self._apply_transition(booking, BookingStatus.CONFIRMED.value)

            self.db.commit()
        except BookingEngineError:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        logger.info(f"Payment recorded for booking {booking.id} ({payment_method}, deposit={is_deposit})")
        return booking

    def cancel_booking(self, booking_id: str, now: Optional[datetime] = None) -> Tuple[Booking, RefundQuote]:
        """Cancel and quote the refund: >48h before check-in 100%, >24h 50%, otherwise nothing."""
        now = utc_now(now)

        try:
            booking = self.get_booking(booking_id)
            if BookingStatus.CANCELLED.value not in TRANSITIONS.get(booking.status, set()):
                raise InvalidTransitionError(
                    f"Cannot cancel a {booking.status} booking",
                    {"booking_id": booking_id, "from": booking.status, "to": BookingStatus.CANCELLED.value}
                )

            quote = quote_refund(booking, now)
            self._apply_transition(booking, BookingStatus.CANCELLED.value, now=now)
            self.db.commit()
        except BookingEngineError:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        logger.info(
            f"Booking {booking.id} cancelled, refund {quote.refund_percent}% ({quote.refund_amount})"
        )
        return booking, quote
