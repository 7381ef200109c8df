"""
Booking Status Auto-Update Service

Moves bookings along by the clock:
- confirmed bookings whose check-out has passed -> completed (earns points)
- pending bookings never paid within PENDING_BOOKING_TTL_HOURS -> cancelled

Every change goes through the BookingEngine so the same transition rules and
side effects apply as for a manual change.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import and_

from ..exceptions import BookingEngineError
from ..models.booking import Booking, BookingStatus
from ..utils.db_helpers import get_pending_with_skip_locked
from ..utils.time_utils import utc_now
from .booking_engine import BookingEngine

logger = logging.getLogger(__name__)


class BookingStatusUpdater:
    """
    Periodic booking status sweep.

    Runs as a background job; see status_scheduler.
    """

    def __init__(self, db: Session, engine: Optional[BookingEngine] = None, batch_size: int = 100):
        self.db = db
        self.engine = engine or BookingEngine(db)
        self.batch_size = batch_size

    def _transition_all(self, booking_ids: List[str], target: str) -> List[str]:
        updated_ids = []
        for booking_id in booking_ids:
            try:
                self.engine.transition_status(booking_id, target)
                updated_ids.append(booking_id)
            except BookingEngineError as e:
                # Changed by someone else since the sweep read it
                logger.warning(f"Skipping booking {booking_id} ({target}): {e.message}")
        return updated_ids

    def auto_complete_finished_bookings(self, now: Optional[datetime] = None) -> Tuple[int, List[str]]:
        """
        Complete confirmed bookings whose check-out time has passed.

        Returns:
            Tuple of (count_updated, list_of_booking_ids)
        """
        now = utc_now(now)

        finished = get_pending_with_skip_locked(
            self.db, Booking,
            and_(
                Booking.status == BookingStatus.CONFIRMED.value,
                Booking.check_out <= now
            ),
            order_by=Booking.check_out,
            limit=self.batch_size
        )
        booking_ids = [b.id for b in finished]

        updated_ids = self._transition_all(booking_ids, BookingStatus.COMPLETED.value)
        if updated_ids:
            logger.info(f"Auto-completed {len(updated_ids)} finished bookings")
        return len(updated_ids), updated_ids

    def cancel_stale_pending_bookings(self, now: Optional[datetime] = None) -> Tuple[int, List[str]]:
        """Cancel pending bookings older than the configured TTL."""
        now = utc_now(now)
        cutoff = now - timedelta(hours=self.engine.settings.pending_booking_ttl_hours)

        stale = get_pending_with_skip_locked(
            self.db, Booking,
            and_(
                Booking.status == BookingStatus.PENDING.value,
                Booking.created_at < cutoff
            ),
            order_by=Booking.created_at,
            limit=self.batch_size
        )
        booking_ids = [b.id for b in stale]

        updated_ids = self._transition_all(booking_ids, BookingStatus.CANCELLED.value)
        if updated_ids:
            logger.info(f"Auto-cancelled {len(updated_ids)} stale pending bookings")
        return len(updated_ids), updated_ids

    def get_overdue_confirmed_bookings(self, now: Optional[datetime] = None) -> List[Booking]:
        """
        Confirmed bookings past their check-in that are still inside the stay.

        Reported only; nothing is changed.
        """
        now = utc_now(now)
        return self.db.query(Booking).filter(
            and_(
                Booking.status == BookingStatus.CONFIRMED.value,
                Booking.check_in < now,
                Booking.check_out > now
            )
        ).all()

    def run_all_auto_updates(self, now: Optional[datetime] = None) -> dict:
        """
        Run every automatic update.

        Returns:
            Dict with results for each update type
        """
        now = utc_now(now)

        completed_count, completed_ids = self.auto_complete_finished_bookings(now)
        cancelled_count, cancelled_ids = self.cancel_stale_pending_bookings(now)
        in_house = len(self.get_overdue_confirmed_bookings(now))

        return {
            "completed_count": completed_count,
            "completed_ids": completed_ids,
            "cancelled_count": cancelled_count,
            "cancelled_ids": cancelled_ids,
            "in_house_count": in_house,
        }
