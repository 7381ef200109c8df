"""
Tests for the loyalty ledger: level bands, accrual, redemption and
the balance/log consistency rule.
"""

import pytest
from decimal import Decimal

from hotel_booking.exceptions import InsufficientPointsError, NotFoundError, ValidationError
from hotel_booking.models import LoyaltyPoints, PointTransaction
from hotel_booking.models.loyalty import LEVEL_BANDS, LoyaltyLevel, level_for, next_level_for
from hotel_booking.services.loyalty_ledger import LoyaltyLedger


@pytest.fixture()
def ledger(db_session):
    return LoyaltyLedger(db_session)


class TestLevels:

    @pytest.mark.parametrize("points, level", [
        (0, LoyaltyLevel.BRONZE),
        (999, LoyaltyLevel.BRONZE),
        (1000, LoyaltyLevel.SILVER),
        (2999, LoyaltyLevel.SILVER),
        (3000, LoyaltyLevel.GOLD),
        (4999, LoyaltyLevel.GOLD),
        (5000, LoyaltyLevel.PLATINUM),
        (10 ** 9, LoyaltyLevel.PLATINUM),
    ])
    def test_band_boundaries(self, points, level):
        assert level_for(points) == level

    def test_bands_are_contiguous(self):
        assert LEVEL_BANDS[0][1] == 0
        for (_, _, upper), (_, lower, _) in zip(LEVEL_BANDS, LEVEL_BANDS[1:]):
            assert upper == lower
        assert LEVEL_BANDS[-1][2] is None

    def test_negative_points_rejected(self):
        with pytest.raises(ValueError):
            level_for(-1)

    def test_next_level(self):
        assert next_level_for(400) == (LoyaltyLevel.SILVER, 600)
        assert next_level_for(5000) == (None, None)


class TestEarn:

    def test_points_for_amount_floors(self, ledger):
        assert ledger.points_for_amount(Decimal("1000000")) == 100
        assert ledger.points_for_amount(Decimal("19999")) == 1
        assert ledger.points_for_amount(Decimal("0")) == 0

    def test_earn_creates_account_and_log(self, ledger, db_session, guest):
        tx = ledger.earn_points(guest.id, None, Decimal("250000"))

        assert tx.points == 25
        account = db_session.query(LoyaltyPoints).filter(LoyaltyPoints.user_id == guest.id).one()
        assert account.points == 25
        assert account.total_earned == 25

    def test_zero_point_earn_is_skipped(self, ledger, db_session, guest):
        assert ledger.earn_points(guest.id, None, Decimal("5000")) is None
        assert db_session.query(PointTransaction).count() == 0

    def test_earn_once_per_booking(self, ledger, guest, room, make_booking):
        booking = make_booking(guest, room)

        first = ledger.earn_points(guest.id, booking.id, Decimal("1000000"))
        second = ledger.earn_points(guest.id, booking.id, Decimal("1000000"))

        assert first is not None
        assert second is None
        assert ledger.get_balance(guest.id).current_points == 100

    def test_unknown_user(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.earn_points("missing", None, Decimal("100000"))


class TestRedeem:

    def test_redeem_without_points(self, ledger, guest):
        with pytest.raises(InsufficientPointsError):
            ledger.redeem_points(guest.id, "free-night", 500)

    def test_redeem_more_than_balance(self, ledger, guest):
        ledger.earn_points(guest.id, None, None, points=300)
        with pytest.raises(InsufficientPointsError):
            ledger.redeem_points(guest.id, "free-night", 500)
        assert ledger.get_balance(guest.id).current_points == 300

    @pytest.mark.parametrize("points", [0, -5])
    def test_non_positive_redeem(self, ledger, guest, points):
        with pytest.raises(ValidationError):
            ledger.redeem_points(guest.id, "free-night", points)

    def test_level_drops_after_redeem(self, ledger, guest):
        ledger.earn_points(guest.id, None, None, points=1200)
        assert ledger.get_balance(guest.id).current_level == LoyaltyLevel.SILVER

        ledger.redeem_points(guest.id, "upgrade", 500)

        balance = ledger.get_balance(guest.id)
        assert balance.current_points == 700
        assert balance.total_earned == 1200
        assert balance.current_level == LoyaltyLevel.BRONZE
        assert balance.points_to_next_level == 300


class TestBalance:

    def test_balance_matches_log(self, ledger, guest):
        ledger.earn_points(guest.id, None, None, points=800)
        ledger.earn_points(guest.id, None, None, points=400)
        ledger.redeem_points(guest.id, "spa", 350)

        assert ledger.get_balance(guest.id).current_points == 850
        assert ledger.balance_from_log(guest.id) == 850

    def test_balance_for_new_member(self, ledger, guest):
        balance = ledger.get_balance(guest.id)
        assert balance.current_points == 0
        assert balance.current_level == LoyaltyLevel.BRONZE
        assert balance.next_level == LoyaltyLevel.SILVER

    def test_balance_for_unknown_user(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.get_balance("missing")

    def test_rebuild_account_from_log(self, ledger, db_session, guest):
        ledger.earn_points(guest.id, None, None, points=600)
        ledger.redeem_points(guest.id, "spa", 100)

        account = db_session.query(LoyaltyPoints).filter(LoyaltyPoints.user_id == guest.id).one()
        account.points = 9999
        account.total_earned = 0
        db_session.commit()

        rebuilt = ledger.rebuild_account(guest.id)
        assert rebuilt.points == 500
        assert rebuilt.total_earned == 600

    def test_transactions_newest_first(self, ledger, guest):
        ledger.earn_points(guest.id, None, None, points=100)
        ledger.redeem_points(guest.id, "drink", 40)

        txs = ledger.list_transactions(guest.id)
        assert len(txs) == 2
        assert {tx.type for tx in txs} == {"earned", "redeemed"}
        assert sum(tx.signed_points for tx in txs) == 60
