"""
Review Aggregator

One review per completed booking, and per-room rating summaries.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..exceptions import (
    BookingEngineError,
    DuplicateReviewError,
    NotEligibleError,
    NotFoundError,
    ValidationError,
)
from ..models.booking import Booking, BookingStatus
from ..models.review import Review
from ..models.room import Room
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

# Optional 1..5 ratings a guest may give besides the overall one
SUB_RATINGS = ("cleanliness", "service", "amenities", "value_for_money", "location")
EXTRA_FIELDS = ("would_recommend", "guest_type", "stay_purpose")


@dataclass
class RoomRating:
    room_id: str
    average_rating: float
    total_reviews: int
    distribution: Dict[int, int] = field(default_factory=dict)


def _check_rating(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        raise ValidationError(f"{name} must be an integer between 1 and 5", {name: value})
    return value


class ReviewAggregator:

    def __init__(self, db: Session):
        self.db = db

    def submit_review(
        self,
        booking_id: str,
        rating: int,
        title: Optional[str] = None,
        comment: Optional[str] = None,
        user_id: Optional[str] = None,
        **details,
    ) -> Review:
        """
        Attach a review to a completed booking.

        ``details`` may carry the sub-ratings (cleanliness, service, amenities,
        value_for_money, location) and would_recommend / guest_type /
        stay_purpose. When ``user_id`` is given it must own the booking.
        """
        _check_rating("rating", rating)
        unknown = set(details) - set(SUB_RATINGS) - set(EXTRA_FIELDS)
        if unknown:
            raise ValidationError("Unknown review fields", {"fields": sorted(unknown)})
        for name in SUB_RATINGS:
            if details.get(name) is not None:
                _check_rating(name, details[name])

        try:
            booking = self.db.get(Booking, booking_id)
            if booking is None:
                raise NotFoundError("Booking not found", {"booking_id": booking_id})

            if user_id and booking.user_id != user_id:
                raise NotEligibleError("Only the guest who stayed can review this booking", {"booking_id": booking_id})

            if booking.status != BookingStatus.COMPLETED.value:
                raise NotEligibleError(
                    "Only completed stays can be reviewed",
                    {"booking_id": booking_id, "status": booking.status}
                )

            existing = self.db.query(Review.id).filter(Review.booking_id == booking_id).first()
            if existing:
                raise DuplicateReviewError("This booking has already been reviewed", {"booking_id": booking_id})

            review = Review(
                booking_id=booking.id,
                room_id=booking.room_id,
                user_id=booking.user_id,
                rating=rating,
                title=title,
                comment=comment,
                **{k: v for k, v in details.items() if v is not None},
            )
            self.db.add(review)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateReviewError("This booking has already been reviewed", {"booking_id": booking_id})
        except BookingEngineError:
            self.db.rollback()
            raise

        self.db.refresh(review)
        logger.log_with_context(
            logging.INFO, f"Review submitted for booking {booking_id}",
            entity_type="review", entity_id=review.id, rating=rating
        )
        return review

    def get_room_rating(self, room_id: str) -> RoomRating:
        """Average and count over the room's reviews; (0, 0) when there are none."""
        if self.db.get(Room, room_id) is None:
            raise NotFoundError("Room not found", {"room_id": room_id})

        rows = self.db.query(Review.rating, func.count(Review.id)).filter(
            Review.room_id == room_id
        ).group_by(Review.rating).all()

        distribution = {star: 0 for star in range(1, 6)}
        for star, count in rows:
            distribution[int(star)] = int(count)

        total = sum(distribution.values())
        if total == 0:
            return RoomRating(room_id=room_id, average_rating=0.0, total_reviews=0, distribution=distribution)

        average = sum(star * count for star, count in distribution.items()) / total
        return RoomRating(
            room_id=room_id,
            average_rating=round(average, 2),
            total_reviews=total,
            distribution=distribution,
        )

    def list_reviews(
        self,
        room_id: Optional[str] = None,
        user_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Review]:
        query = self.db.query(Review)
        if room_id:
            query = query.filter(Review.room_id == room_id)
        if user_id:
            query = query.filter(Review.user_id == user_id)
        query = query.order_by(Review.created_at.desc())
        if limit:
            query = query.limit(limit)
        return query.all()
