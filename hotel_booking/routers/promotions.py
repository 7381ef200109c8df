from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session
from typing import List
from dataclasses import asdict

from ..database import get_db
from ..schemas.promotion import (
    PromotionalCodeCreate,
    PromotionalCodeResponse,
    PromoValidateRequest,
    PromoValidateResponse,
    PromoApplyRequest,
    PromoUsageResponse,
)
from ..services.booking_engine import BookingEngine
from ..services.promotion_evaluator import PromotionEvaluator
from ..utils.dependencies import SessionContext, get_session_context, require_admin
from ..utils.rate_limiter import limiter, get_rate_limit
from .bookings import ensure_booking_access

router = APIRouter(prefix="/api/promotions", tags=["Promotions"])


@router.get("", response_model=List[PromotionalCodeResponse])
async def list_available_codes(db: Session = Depends(get_db)):
    """Codes usable right now"""
    return PromotionEvaluator(db).list_available_codes()


@router.post("", response_model=PromotionalCodeResponse, status_code=status.HTTP_201_CREATED)
async def create_code(
    data: PromotionalCodeCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_admin)
):
    payload = data.model_dump()
    payload["discount_type"] = data.discount_type.value
    return PromotionEvaluator(db).create_code(**payload)


@router.post("/validate", response_model=PromoValidateResponse)
@limiter.limit(get_rate_limit("search"))
async def validate_code(
    request: Request,
    data: PromoValidateRequest,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context)
):
    result = PromotionEvaluator(db).validate_code(data.code, data.subtotal, user_id=ctx.user_id)
    return PromoValidateResponse(**asdict(result))


@router.post("/apply", response_model=PromoUsageResponse)
@limiter.limit(get_rate_limit("promo_redeem"))
async def apply_code(
    request: Request,
    data: PromoApplyRequest,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context)
):
    """Redeem a code on one of the caller's pending bookings"""
    ensure_booking_access(BookingEngine(db).get_booking(data.booking_id), ctx)
    return PromotionEvaluator(db).apply_code(data.code, data.booking_id, user_id=ctx.user_id)
