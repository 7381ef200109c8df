"""
Tests for review submission and room rating summaries
"""

import pytest
from datetime import datetime

from hotel_booking.exceptions import (
    DuplicateReviewError,
    NotEligibleError,
    NotFoundError,
    ValidationError,
)
from hotel_booking.services.review_aggregator import ReviewAggregator


@pytest.fixture()
def aggregator(db_session):
    return ReviewAggregator(db_session)


@pytest.fixture()
def completed_stay(guest, room, make_booking):
    return make_booking(guest, room, status="completed")


class TestSubmitReview:

    def test_review_completed_stay(self, aggregator, completed_stay, guest, room):
        review = aggregator.submit_review(
            completed_stay.id, 5, title="Great", comment="Lovely view",
            user_id=guest.id, cleanliness=4, would_recommend=True
        )

        assert review.room_id == room.id
        assert review.user_id == guest.id
        assert review.rating == 5
        assert review.cleanliness == 4
        assert review.would_recommend is True

    def test_duplicate_review(self, aggregator, completed_stay):
        aggregator.submit_review(completed_stay.id, 4)
        with pytest.raises(DuplicateReviewError):
            aggregator.submit_review(completed_stay.id, 5)

    def test_stay_not_completed(self, aggregator, guest, room, make_booking):
        booking = make_booking(guest, room, status="confirmed")
        with pytest.raises(NotEligibleError):
            aggregator.submit_review(booking.id, 5)

    def test_other_user_cannot_review(self, aggregator, completed_stay, make_user):
        stranger = make_user()
        with pytest.raises(NotEligibleError):
            aggregator.submit_review(completed_stay.id, 5, user_id=stranger.id)

    @pytest.mark.parametrize("rating", [0, 6, 4.5, True])
    def test_rating_out_of_range(self, aggregator, completed_stay, rating):
        with pytest.raises(ValidationError):
            aggregator.submit_review(completed_stay.id, rating)

    def test_sub_rating_out_of_range(self, aggregator, completed_stay):
        with pytest.raises(ValidationError):
            aggregator.submit_review(completed_stay.id, 5, service=9)

    def test_unknown_field(self, aggregator, completed_stay):
        with pytest.raises(ValidationError):
            aggregator.submit_review(completed_stay.id, 5, wifi=3)

    def test_unknown_booking(self, aggregator):
        with pytest.raises(NotFoundError):
            aggregator.submit_review("missing", 5)


class TestRoomRating:

    def test_room_without_reviews(self, aggregator, room):
        rating = aggregator.get_room_rating(room.id)
        assert rating.average_rating == 0.0
        assert rating.total_reviews == 0

    def test_single_review(self, aggregator, completed_stay, room):
        aggregator.submit_review(completed_stay.id, 5)

        rating = aggregator.get_room_rating(room.id)
        assert rating.average_rating == 5.0
        assert rating.total_reviews == 1
        assert rating.distribution[5] == 1

    def test_average_of_several_reviews(self, aggregator, guest, room, make_booking):
        first = make_booking(guest, room, status="completed")
        second = make_booking(
            guest, room,
            check_in=datetime(2025, 6, 3), check_out=datetime(2025, 6, 5),
            status="completed"
        )
        aggregator.submit_review(first.id, 4)
        aggregator.submit_review(second.id, 5)

        rating = aggregator.get_room_rating(room.id)
        assert rating.average_rating == 4.5
        assert rating.total_reviews == 2
        assert len(aggregator.list_reviews(room_id=room.id)) == 2

    def test_unknown_room(self, aggregator):
        with pytest.raises(NotFoundError):
            aggregator.get_room_rating("missing")
