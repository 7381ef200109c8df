from fastapi import APIRouter, Depends, Request, Query
from sqlalchemy.orm import Session
from typing import List

from ..database import get_db
from ..schemas.loyalty import LoyaltyBalanceResponse, RedeemPointsRequest, PointTransactionResponse
from ..services.loyalty_ledger import LoyaltyBalance, LoyaltyLedger
from ..utils.dependencies import SessionContext, get_session_context
from ..utils.rate_limiter import limiter, get_rate_limit

router = APIRouter(prefix="/api/loyalty", tags=["Loyalty"])


def to_balance_response(balance: LoyaltyBalance) -> LoyaltyBalanceResponse:
    return LoyaltyBalanceResponse(
        user_id=balance.user_id,
        current_points=balance.current_points,
        total_earned=balance.total_earned,
        current_level=balance.current_level.value,
        next_level=balance.next_level.value if balance.next_level else None,
        points_to_next_level=balance.points_to_next_level,
    )


@router.get("/me", response_model=LoyaltyBalanceResponse)
async def my_balance(
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context)
):
    return to_balance_response(LoyaltyLedger(db).get_balance(ctx.user_id))


@router.get("/me/transactions", response_model=List[PointTransactionResponse])
async def my_transactions(
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context)
):
    return LoyaltyLedger(db).list_transactions(ctx.user_id, limit=limit)


@router.post("/redeem", response_model=LoyaltyBalanceResponse)
@limiter.limit(get_rate_limit("points_redeem"))
async def redeem_points(
    request: Request,
    data: RedeemPointsRequest,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context)
):
    """Spend points on a reward and return the new balance"""
    ledger = LoyaltyLedger(db)
    ledger.redeem_points(ctx.user_id, data.reward_id, data.points, description=data.description)
    return to_balance_response(ledger.get_balance(ctx.user_id))
