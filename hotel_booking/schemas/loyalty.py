from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class LoyaltyBalanceResponse(BaseModel):
    user_id: str
    current_points: int
    total_earned: int
    current_level: str
    next_level: Optional[str] = None
    points_to_next_level: Optional[int] = None


class RedeemPointsRequest(BaseModel):
    reward_id: str = Field(..., min_length=1, max_length=64)
    points: int = Field(..., gt=0)
    description: Optional[str] = Field(None, max_length=500)


class PointTransactionResponse(BaseModel):
    id: str
    user_id: str
    booking_id: Optional[str] = None
    reward_id: Optional[str] = None
    type: str
    points: int
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
