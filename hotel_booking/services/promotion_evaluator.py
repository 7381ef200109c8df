"""
Promotion Evaluator

Validates promotional codes against a booking subtotal and redeems them.

Validation order: unknown code, outside validity window, inactive, usage cap
reached, subtotal below minimum. Redemption increments ``used_count`` with a
single conditional UPDATE so the cap holds across processes.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..exceptions import (
    BookingEngineError,
    ConflictError,
    ExpiredError,
    InactiveError,
    MinimumNotMetError,
    NotFoundError,
    UsageLimitError,
    ValidationError,
)
from ..models.booking import Booking, BookingStatus
from ..models.promotion import DiscountType, PromotionalCode, PromotionalCodeUsage
from ..utils.db_helpers import acquire_row_lock, guarded_update
from ..utils.logging_config import get_logger
from ..utils.time_utils import to_naive_utc, utc_now

logger = get_logger(__name__)

CENT = Decimal("0.01")


@dataclass
class PromotionValidation:
    valid: bool
    code_id: str
    code: str
    discount_type: str
    discount_amount: Decimal
    subtotal: Decimal
    final_amount: Decimal


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def calculate_discount(
    discount_type: str,
    discount_value,
    subtotal,
    max_discount=None,
) -> Decimal:
    """
    Discount for a subtotal.

    fixed: the value itself; percentage: subtotal * value / 100, capped by
    max_discount. Never more than the subtotal.
    """
    subtotal = Decimal(str(subtotal))
    value = Decimal(str(discount_value))

    if discount_type == DiscountType.FIXED.value:
        discount = value
    elif discount_type == DiscountType.PERCENTAGE.value:
        discount = subtotal * value / Decimal("100")
        if max_discount is not None:
            discount = min(discount, Decimal(str(max_discount)))
    else:
        raise ValidationError("Unknown discount type", {"discount_type": discount_type})

    discount = max(min(discount, subtotal), Decimal("0"))
    return discount.quantize(CENT, rounding=ROUND_HALF_UP)


class PromotionEvaluator:

    def __init__(self, db: Session):
        self.db = db

    def get_code(self, code: str) -> PromotionalCode:
        promo = self.db.query(PromotionalCode).filter(
            PromotionalCode.code == normalize_code(code)
        ).first()
        if promo is None:
            raise NotFoundError("Promotional code not found", {"code": normalize_code(code)})
        return promo

    def _user_usage_count(self, code_id: str, user_id: str) -> int:
        return self.db.query(PromotionalCodeUsage).filter(
            PromotionalCodeUsage.code_id == code_id,
            PromotionalCodeUsage.user_id == user_id
        ).count()

    def validate_code(
        self,
        code: str,
        booking_subtotal,
        now: Optional[datetime] = None,
        user_id: Optional[str] = None,
    ) -> PromotionValidation:
        """Check a code against a subtotal. Raises the first failing rule's error."""
        now = utc_now(now)
        subtotal = Decimal(str(booking_subtotal))
        if subtotal < 0:
            raise ValidationError("Subtotal cannot be negative", {"subtotal": str(subtotal)})

        promo = self.get_code(code)

        if now < promo.valid_from or now > promo.valid_to:
            raise ExpiredError(
                "Promotional code is not valid at this time",
                {"code": promo.code, "valid_from": promo.valid_from.isoformat(), "valid_to": promo.valid_to.isoformat()}
            )

        if not promo.is_active:
            raise InactiveError("Promotional code is inactive", {"code": promo.code})

        if promo.usage_limit is not None and (promo.used_count or 0) >= promo.usage_limit:
            raise UsageLimitError(
                "Promotional code usage limit reached",
                {"code": promo.code, "usage_limit": promo.usage_limit}
            )

        if user_id and promo.per_user_limit is not None:
            if self._user_usage_count(promo.id, user_id) >= promo.per_user_limit:
                raise UsageLimitError(
                    "You have already used this promotional code",
                    {"code": promo.code, "per_user_limit": promo.per_user_limit}
                )

        min_amount = Decimal(str(promo.min_amount or 0))
        if subtotal < min_amount:
            raise MinimumNotMetError(
                f"Minimum order amount is {min_amount}",
                {"code": promo.code, "min_amount": str(min_amount), "subtotal": str(subtotal)}
            )

        discount = calculate_discount(promo.discount_type, promo.discount_value, subtotal, promo.max_discount)
        return PromotionValidation(
            valid=True,
            code_id=promo.id,
            code=promo.code,
            discount_type=promo.discount_type,
            discount_amount=discount,
            subtotal=subtotal,
            final_amount=subtotal - discount,
        )

    def redeem_code(
        self,
        code_id: str,
        user_id: Optional[str],
        booking_id: Optional[str],
        discount_amount,
    ) -> PromotionalCodeUsage:
        """
        Record one redemption and bump ``used_count``.

        The increment is conditional on ``used_count < usage_limit`` and runs
        in the database, so concurrent redemptions cannot exceed the cap.
        When a booking is given, its total and remaining amount are reduced
        by the discount in the same transaction.
        """
        discount = Decimal(str(discount_amount)).quantize(CENT, rounding=ROUND_HALF_UP)
        if discount < 0:
            raise ValidationError("Discount cannot be negative", {"discount_amount": str(discount)})

        try:
            promo = self.db.get(PromotionalCode, code_id)
            if promo is None:
                raise NotFoundError("Promotional code not found", {"code_id": code_id})

            booking = None
            if booking_id:
                booking = acquire_row_lock(self.db, Booking, Booking.id == booking_id)
                if booking is None:
                    raise NotFoundError("Booking not found", {"booking_id": booking_id})
                if booking.status != BookingStatus.PENDING.value:
                    raise ValidationError(
                        "Discounts can only be applied to pending bookings",
                        {"booking_id": booking_id, "status": booking.status}
                    )
                if Decimal(str(booking.discount_amount or 0)) > 0:
                    raise ConflictError("Booking already has a discount applied", {"booking_id": booking_id})

            if user_id and promo.per_user_limit is not None:
                if self._user_usage_count(promo.id, user_id) >= promo.per_user_limit:
                    raise UsageLimitError(
                        "You have already used this promotional code",
                        {"code": promo.code, "per_user_limit": promo.per_user_limit}
                    )

            updated = guarded_update(
                self.db, PromotionalCode,
                and_(
                    PromotionalCode.id == code_id,
                    or_(
                        PromotionalCode.usage_limit.is_(None),
                        PromotionalCode.used_count < PromotionalCode.usage_limit,
                    ),
                ),
                {"used_count": PromotionalCode.used_count + 1},
            )
            if updated == 0:
                raise UsageLimitError(
                    "Promotional code usage limit reached",
                    {"code": promo.code, "usage_limit": promo.usage_limit}
                )

            usage = PromotionalCodeUsage(
                code_id=code_id,
                user_id=user_id,
                booking_id=booking_id,
                discount_amount=discount,
            )
            self.db.add(usage)

            if booking is not None:
                total = Decimal(str(booking.total_price))
                applied = min(discount, total)
                booking.discount_amount = applied
                booking.total_price = total - applied
                if booking.remaining_amount is not None:
                    booking.remaining_amount = max(Decimal(str(booking.remaining_amount)) - applied, Decimal("0"))

            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError(
                "Promotional code already applied to this booking",
                {"code_id": code_id, "booking_id": booking_id}
            )
        except BookingEngineError:
            self.db.rollback()
            raise

        self.db.refresh(usage)
        logger.promo_redeemed(promo.code, booking_id, float(discount))
        return usage

    def apply_code(
        self,
        code: str,
        booking_id: str,
        user_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PromotionalCodeUsage:
        """Validate a code against a booking's total and redeem it on that booking."""
        booking = self.db.get(Booking, booking_id)
        if booking is None:
            raise NotFoundError("Booking not found", {"booking_id": booking_id})

        validation = self.validate_code(code, booking.total_price, now=now, user_id=user_id)
        return self.redeem_code(validation.code_id, user_id, booking_id, validation.discount_amount)

    def list_available_codes(self, now: Optional[datetime] = None) -> List[PromotionalCode]:
        """Active codes inside their validity window with uses left."""
        now = utc_now(now)
        return self.db.query(PromotionalCode).filter(
            PromotionalCode.is_active == True,
            PromotionalCode.valid_from <= now,
            PromotionalCode.valid_to >= now,
            or_(
                PromotionalCode.usage_limit.is_(None),
                PromotionalCode.used_count < PromotionalCode.usage_limit,
            ),
        ).order_by(PromotionalCode.valid_to).all()

    def create_code(
        self,
        code: str,
        name: str,
        discount_type: str,
        discount_value,
        valid_from: datetime,
        valid_to: datetime,
        description: Optional[str] = None,
        min_amount=0,
        max_discount=None,
        usage_limit: Optional[int] = None,
        per_user_limit: Optional[int] = None,
        is_active: bool = True,
    ) -> PromotionalCode:
        normalized = normalize_code(code)
        if not normalized:
            raise ValidationError("Code cannot be empty")
        if discount_type not in {t.value for t in DiscountType}:
            raise ValidationError("Unknown discount type", {"discount_type": discount_type})

        value = Decimal(str(discount_value))
        if value <= 0:
            raise ValidationError("Discount value must be positive", {"discount_value": str(value)})
        if discount_type == DiscountType.PERCENTAGE.value and value > 100:
            raise ValidationError("Percentage discount cannot exceed 100", {"discount_value": str(value)})
        valid_from = to_naive_utc(valid_from)
        valid_to = to_naive_utc(valid_to)
        if valid_from >= valid_to:
            raise ValidationError("valid_from must be before valid_to")
        if usage_limit is not None and usage_limit < 1:
            raise ValidationError("usage_limit must be at least 1", {"usage_limit": usage_limit})
        if per_user_limit is not None and per_user_limit < 1:
            raise ValidationError("per_user_limit must be at least 1", {"per_user_limit": per_user_limit})

        promo = PromotionalCode(
            code=normalized,
            name=name,
            description=description,
            discount_type=discount_type,
            discount_value=value,
            min_amount=Decimal(str(min_amount or 0)),
            max_discount=Decimal(str(max_discount)) if max_discount is not None else None,
            usage_limit=usage_limit,
            used_count=0,
            per_user_limit=per_user_limit,
            valid_from=valid_from,
            valid_to=valid_to,
            is_active=is_active,
        )
        self.db.add(promo)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Promotional code already exists", {"code": normalized})

        self.db.refresh(promo)
        logger.info(f"Promotional code created: {promo.code}")
        return promo
