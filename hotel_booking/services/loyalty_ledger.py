"""
Loyalty Ledger

Append-only point log with a materialized balance per user:
- earn_points: one ``earned`` transaction per completed booking
- redeem_points: conditional decrement, never overdraws
- get_balance: points, lifetime total and the level derived from points

``LoyaltyPoints.points`` is kept equal to the signed sum of the user's
``PointTransaction`` rows; every mutation writes both in one transaction.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_FLOOR
from typing import List, Optional

from sqlalchemy import and_, case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..exceptions import (
    BookingEngineError,
    ConflictError,
    InsufficientPointsError,
    NotFoundError,
    ValidationError,
)
from ..models.loyalty import (
    LoyaltyLevel,
    LoyaltyPoints,
    PointTransaction,
    TransactionType,
    level_for,
    next_level_for,
)
from ..models.user import User
from ..utils.db_helpers import acquire_row_lock, guarded_update
from ..utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class LoyaltyBalance:
    user_id: str
    current_points: int
    total_earned: int
    current_level: LoyaltyLevel
    next_level: Optional[LoyaltyLevel] = None
    points_to_next_level: Optional[int] = None


class LoyaltyLedger:
    """Point accrual and redemption for a single database session."""

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()

    def points_for_amount(self, amount) -> int:
        """floor(amount / LOYALTY_CURRENCY_PER_POINT); never negative."""
        value = Decimal(str(amount or 0))
        if value <= 0:
            return 0
        rate = Decimal(str(self.settings.loyalty_currency_per_point))
        return int((value / rate).to_integral_value(rounding=ROUND_FLOOR))

    def _require_user(self, user_id: str) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found", {"user_id": user_id})
        return user

    def _get_or_create_account(self, user_id: str) -> LoyaltyPoints:
        account = acquire_row_lock(self.db, LoyaltyPoints, LoyaltyPoints.user_id == user_id)
        if account is not None:
            return account

        self._require_user(user_id)
        try:
            with self.db.begin_nested():
                account = LoyaltyPoints(user_id=user_id, points=0, total_earned=0)
                self.db.add(account)
        except IntegrityError:
            # UNIQUE(user_id): another request opened the account first
            account = acquire_row_lock(self.db, LoyaltyPoints, LoyaltyPoints.user_id == user_id)
            if account is None:
                raise ConflictError("Loyalty account could not be opened", {"user_id": user_id})
        return account

    def has_earned_for_booking(self, booking_id: str) -> bool:
        return self.db.query(PointTransaction.id).filter(
            PointTransaction.booking_id == booking_id,
            PointTransaction.type == TransactionType.EARNED.value
        ).first() is not None

    def earn_points(
        self,
        user_id: str,
        booking_id: Optional[str],
        amount,
        description: Optional[str] = None,
        points: Optional[int] = None,
        commit: bool = True,
    ) -> Optional[PointTransaction]:
        """
        Credit points for ``amount`` spent (or an explicit ``points`` value).

        Returns the new transaction, or None when nothing was credited:
        the booking already earned, or the amount is worth zero points.

        With ``commit=False`` the caller owns the transaction (booking
        completion runs inside the status change).
        """
        if points is None:
            points = self.points_for_amount(amount)
        if points < 0:
            raise ValidationError("points cannot be negative", {"points": points})

        try:
            if booking_id and self.has_earned_for_booking(booking_id):
                logger.info(f"Points already earned for booking {booking_id}, skipping")
                return None
            if points == 0:
                return None

            account = self._get_or_create_account(user_id)

            tx = PointTransaction(
                user_id=user_id,
                booking_id=booking_id,
                type=TransactionType.EARNED.value,
                points=points,
                description=description or "Points earned",
            )
            try:
                with self.db.begin_nested():
                    self.db.add(tx)
            except IntegrityError:
                if booking_id and self.has_earned_for_booking(booking_id):
                    # UNIQUE(booking_id, type): a concurrent earn for this booking won
                    logger.info(f"Concurrent earn for booking {booking_id} detected, skipping")
                    if commit:
                        self.db.rollback()
                    return None
                raise ConflictError("Point transaction could not be recorded", {"user_id": user_id, "booking_id": booking_id})

            guarded_update(
                self.db, LoyaltyPoints, LoyaltyPoints.id == account.id,
                {
                    "points": LoyaltyPoints.points + points,
                    "total_earned": LoyaltyPoints.total_earned + points,
                },
            )
            if commit:
                self.db.commit()
            self.db.refresh(account)
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Points could not be credited", {"user_id": user_id, "booking_id": booking_id})
        except BookingEngineError:
            if commit:
                self.db.rollback()
            raise

        logger.points_changed(user_id, TransactionType.EARNED.value, points, account.points)
        return tx

    def redeem_points(
        self,
        user_id: str,
        reward_id: Optional[str],
        points: int,
        description: Optional[str] = None,
    ) -> PointTransaction:
        """Debit ``points`` for a reward. Raises InsufficientPointsError when the balance is short."""
        if not isinstance(points, int) or points <= 0:
            raise ValidationError("points must be a positive integer", {"points": points})

        try:
            account = acquire_row_lock(self.db, LoyaltyPoints, LoyaltyPoints.user_id == user_id)
            if account is None:
                self._require_user(user_id)
                raise InsufficientPointsError(
                    "Not enough points",
                    {"requested": points, "available": 0}
                )

            if points > account.points:
                raise InsufficientPointsError(
                    "Not enough points",
                    {"requested": points, "available": account.points}
                )

            # Guard re-evaluated by the database; a concurrent redemption may have won
            updated = guarded_update(
                self.db, LoyaltyPoints,
                and_(LoyaltyPoints.id == account.id, LoyaltyPoints.points >= points),
                {"points": LoyaltyPoints.points - points},
            )
            if updated == 0:
                raise InsufficientPointsError("Not enough points", {"requested": points})

            tx = PointTransaction(
                user_id=user_id,
                reward_id=reward_id,
                type=TransactionType.REDEEMED.value,
                points=points,
                description=description or "Points redeemed",
            )
            self.db.add(tx)
            self.db.commit()
        except BookingEngineError:
            self.db.rollback()
            raise

        self.db.refresh(account)
        logger.points_changed(user_id, TransactionType.REDEEMED.value, points, account.points)
        return tx

    def get_balance(self, user_id: str) -> LoyaltyBalance:
        account = self.db.query(LoyaltyPoints).filter(LoyaltyPoints.user_id == user_id).first()
        if account is None:
            self._require_user(user_id)
            current, total_earned = 0, 0
        else:
            current, total_earned = account.points, account.total_earned

        next_level, missing = next_level_for(current)
        return LoyaltyBalance(
            user_id=user_id,
            current_points=current,
            total_earned=total_earned,
            current_level=level_for(current),
            next_level=next_level,
            points_to_next_level=missing,
        )

    def list_transactions(self, user_id: str, limit: Optional[int] = None) -> List[PointTransaction]:
        query = self.db.query(PointTransaction).filter(
            PointTransaction.user_id == user_id
        ).order_by(PointTransaction.created_at.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    def balance_from_log(self, user_id: str) -> int:
        """Signed sum of the user's transaction log."""
        signed = case(
            (PointTransaction.type == TransactionType.REDEEMED.value, -PointTransaction.points),
            else_=PointTransaction.points,
        )
        total = self.db.query(func.coalesce(func.sum(signed), 0)).filter(
            PointTransaction.user_id == user_id
        ).scalar()
        return int(total or 0)

    def rebuild_account(self, user_id: str) -> LoyaltyPoints:
        """Re-materialize the balance row from the transaction log."""
        try:
            account = self._get_or_create_account(user_id)
            earned = self.db.query(func.coalesce(func.sum(PointTransaction.points), 0)).filter(
                PointTransaction.user_id == user_id,
                PointTransaction.type == TransactionType.EARNED.value
            ).scalar()

            account.points = self.balance_from_log(user_id)
            account.total_earned = int(earned or 0)
            self.db.commit()
        except BookingEngineError:
            self.db.rollback()
            raise

        self.db.refresh(account)
        logger.info(f"Rebuilt loyalty account for user {user_id}: {account.points} points")
        return account
