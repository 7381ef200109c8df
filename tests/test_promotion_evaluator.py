"""
Tests for promotional code validation and redemption
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from hotel_booking.exceptions import (
    ConflictError,
    ExpiredError,
    InactiveError,
    MinimumNotMetError,
    NotFoundError,
    UsageLimitError,
    ValidationError,
)
from hotel_booking.models import PromotionalCode, PromotionalCodeUsage
from hotel_booking.services.promotion_evaluator import PromotionEvaluator, calculate_discount


NOW = datetime(2025, 5, 15, 12, 0)


@pytest.fixture()
def evaluator(db_session):
    return PromotionEvaluator(db_session)


@pytest.fixture()
def make_code(evaluator):
    def _make_code(code="SUMMER10", discount_type="percentage", discount_value=10, **kwargs):
        kwargs.setdefault("valid_from", datetime(2025, 1, 1))
        kwargs.setdefault("valid_to", datetime(2025, 12, 31))
        return evaluator.create_code(
            code=code,
            name=kwargs.pop("name", code.title()),
            discount_type=discount_type,
            discount_value=discount_value,
            **kwargs,
        )
    return _make_code


class TestCalculateDiscount:

    def test_percentage_capped_by_max_discount(self):
        assert calculate_discount("percentage", 10, Decimal("2000000"), Decimal("100000")) == Decimal("100000.00")

    def test_percentage_without_cap(self):
        assert calculate_discount("percentage", 10, Decimal("2000000")) == Decimal("200000.00")

    def test_fixed_clamped_to_subtotal(self):
        assert calculate_discount("fixed", 500000, Decimal("300000")) == Decimal("300000.00")

    def test_rounds_to_cents(self):
        assert calculate_discount("percentage", 15, Decimal("10.01")) == Decimal("1.50")

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            calculate_discount("bogo", 1, Decimal("10"))


class TestValidateCode:
    """Failures surface in a fixed order"""

    def test_valid_code(self, evaluator, make_code):
        make_code(max_discount=Decimal("100000"))

        result = evaluator.validate_code("summer10", Decimal("2000000"), now=NOW)

        assert result.valid is True
        assert result.code == "SUMMER10"
        assert result.discount_amount == Decimal("100000.00")
        assert result.final_amount == Decimal("1900000.00")

    def test_unknown_code(self, evaluator):
        with pytest.raises(NotFoundError):
            evaluator.validate_code("NOPE", Decimal("100"), now=NOW)

    def test_outside_window(self, evaluator, make_code):
        make_code(valid_from=datetime(2024, 1, 1), valid_to=datetime(2024, 12, 31))
        with pytest.raises(ExpiredError):
            evaluator.validate_code("SUMMER10", Decimal("100"), now=NOW)

    def test_not_yet_started(self, evaluator, make_code):
        make_code(valid_from=datetime(2025, 6, 1), valid_to=datetime(2025, 12, 31))
        with pytest.raises(ExpiredError):
            evaluator.validate_code("SUMMER10", Decimal("100"), now=NOW)

    def test_expired_reported_before_inactive(self, evaluator, make_code):
        make_code(valid_from=datetime(2024, 1, 1), valid_to=datetime(2024, 12, 31), is_active=False)
        with pytest.raises(ExpiredError):
            evaluator.validate_code("SUMMER10", Decimal("100"), now=NOW)

    def test_inactive(self, evaluator, make_code):
        make_code(is_active=False)
        with pytest.raises(InactiveError):
            evaluator.validate_code("SUMMER10", Decimal("100"), now=NOW)

    def test_usage_limit_reported_before_minimum(self, evaluator, make_code, db_session):
        promo = make_code(usage_limit=1, min_amount=Decimal("1000000"))
        promo.used_count = 1
        db_session.commit()

        with pytest.raises(UsageLimitError):
            evaluator.validate_code("SUMMER10", Decimal("100"), now=NOW)

    def test_minimum_not_met(self, evaluator, make_code):
        make_code(min_amount=Decimal("1000000"))
        with pytest.raises(MinimumNotMetError):
            evaluator.validate_code("SUMMER10", Decimal("999999"), now=NOW)

    def test_per_user_limit(self, evaluator, make_code, guest):
        promo = make_code(per_user_limit=1)
        evaluator.redeem_code(promo.id, guest.id, None, Decimal("10"))

        with pytest.raises(UsageLimitError):
            evaluator.validate_code("SUMMER10", Decimal("100"), now=NOW, user_id=guest.id)

    def test_aware_now_is_compared_in_utc(self, evaluator, make_code):
        make_code(valid_from=datetime(2025, 1, 1), valid_to=datetime(2025, 5, 15, 12, 0))

        result = evaluator.validate_code("SUMMER10", Decimal("100"), now=datetime(2025, 5, 15, 11, 0, tzinfo=timezone.utc))
        assert result.valid is True

        # 13:30 at UTC+2 is 11:30 UTC, still inside the window
        plus_two = timezone(timedelta(hours=2))
        assert evaluator.validate_code("SUMMER10", Decimal("100"), now=datetime(2025, 5, 15, 13, 30, tzinfo=plus_two)).valid

        with pytest.raises(ExpiredError):
            evaluator.validate_code("SUMMER10", Decimal("100"), now=datetime(2025, 5, 15, 12, 30, tzinfo=timezone.utc))


class TestRedeemCode:

    def test_redeem_applies_discount_to_booking(self, evaluator, make_code, engine, guest, room, make_booking):
        make_code(max_discount=Decimal("50000"))
        booking = make_booking(guest, room)

        usage = evaluator.apply_code("SUMMER10", booking.id, user_id=guest.id, now=NOW)

        assert usage.discount_amount == Decimal("50000.00")
        booking = engine.get_booking(booking.id)
        assert booking.discount_amount == Decimal("50000.00")
        assert booking.total_price == Decimal("950000.00")
        assert booking.remaining_amount == Decimal("950000.00")

    def test_second_code_on_same_booking_conflicts(self, evaluator, make_code, guest, room, make_booking):
        make_code()
        make_code("WELCOME", discount_type="fixed", discount_value=1000)
        booking = make_booking(guest, room)
        evaluator.apply_code("SUMMER10", booking.id, user_id=guest.id, now=NOW)

        with pytest.raises(ConflictError):
            evaluator.apply_code("WELCOME", booking.id, user_id=guest.id, now=NOW)

    def test_confirmed_booking_rejected(self, evaluator, make_code, guest, room, make_booking):
        promo = make_code()
        booking = make_booking(guest, room, status="confirmed")

        with pytest.raises(ValidationError):
            evaluator.redeem_code(promo.id, guest.id, booking.id, Decimal("100"))
        assert evaluator.get_code("SUMMER10").used_count == 0

    def test_usage_limit_caps_redemptions(self, evaluator, make_code, db_session):
        """5 redemption attempts against a limit of 3"""
        promo = make_code(usage_limit=3)

        successes = 0
        failures = 0
        for _ in range(5):
            try:
                evaluator.redeem_code(promo.id, None, None, Decimal("10"))
                successes += 1
            except UsageLimitError:
                failures += 1

        assert successes == 3
        assert failures == 2
        db_session.refresh(promo)
        assert promo.used_count == 3
        assert db_session.query(PromotionalCodeUsage).count() == 3

    def test_cap_enforced_without_prior_validation(self, evaluator, make_code, db_session):
        promo = make_code(usage_limit=2)
        promo.used_count = 2
        db_session.commit()

        with pytest.raises(UsageLimitError):
            evaluator.redeem_code(promo.id, None, None, Decimal("10"))

    def test_unknown_code_id(self, evaluator):
        with pytest.raises(NotFoundError):
            evaluator.redeem_code("missing", None, None, Decimal("10"))


class TestManageCodes:

    def test_codes_stored_upper_case(self, make_code):
        assert make_code(" spring5 ").code == "SPRING5"

    def test_duplicate_code(self, make_code):
        make_code("SUMMER10")
        with pytest.raises(ConflictError):
            make_code("summer10")

    @pytest.mark.parametrize("kwargs", [
        {"discount_value": 0},
        {"discount_value": 150},
        {"discount_type": "bogo"},
        {"valid_from": datetime(2025, 12, 31), "valid_to": datetime(2025, 1, 1)},
        {"usage_limit": 0},
    ])
    def test_invalid_definitions(self, make_code, kwargs):
        with pytest.raises(ValidationError):
            make_code(**kwargs)

    def test_list_available_codes(self, evaluator, make_code, db_session):
        make_code("OPEN")
        make_code("OFF", is_active=False)
        make_code("OLD", valid_from=datetime(2024, 1, 1), valid_to=datetime(2024, 2, 1))
        used_up = make_code("GONE", usage_limit=1)
        used_up.used_count = 1
        db_session.commit()

        codes = [p.code for p in evaluator.list_available_codes(now=NOW)]
        assert codes == ["OPEN"]
        assert db_session.query(PromotionalCode).count() == 4

    def test_aware_window_stored_as_utc(self, evaluator, make_code):
        plus_two = timezone(timedelta(hours=2))
        promo = make_code(
            valid_from=datetime(2025, 1, 1, 2, 0, tzinfo=plus_two),
            valid_to=datetime(2025, 12, 31, tzinfo=timezone.utc),
        )

        assert promo.valid_from == datetime(2025, 1, 1, 0, 0)
        assert promo.valid_to.tzinfo is None
        assert [p.code for p in evaluator.list_available_codes(now=datetime(2025, 5, 15, tzinfo=timezone.utc))] == ["SUMMER10"]
