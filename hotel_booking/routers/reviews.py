from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.review import ReviewCreate, ReviewResponse
from ..services.review_aggregator import ReviewAggregator
from ..utils.dependencies import SessionContext, get_session_context
from ..utils.rate_limiter import limiter, get_rate_limit

router = APIRouter(prefix="/api/reviews", tags=["Reviews"])


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("review_submit"))
async def submit_review(
    request: Request,
    data: ReviewCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context)
):
    """Review one of the caller's completed stays"""
    details = data.model_dump(exclude={"booking_id", "rating", "title", "comment"}, exclude_none=True)
    return ReviewAggregator(db).submit_review(
        data.booking_id,
        data.rating,
        title=data.title,
        comment=data.comment,
        user_id=ctx.user_id,
        **details,
    )
