from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Literal
from decimal import Decimal


class RoomResponse(BaseModel):
    id: str
    number: str
    type: str
    price: Decimal
    capacity: int
    status: str
    description: Optional[str] = None
    amenities: Optional[List[str]] = None

    class Config:
        from_attributes = True


class RoomRatingResponse(BaseModel):
    room_id: str
    average_rating: float
    total_reviews: int
    distribution: Dict[int, int] = {}


class RoomCreate(BaseModel):
    number: str = Field(..., min_length=1, max_length=20)
    type: str = Field(..., min_length=1, max_length=50)
    price: Decimal = Field(..., gt=0)
    capacity: int = Field(..., ge=1)
    description: Optional[str] = None
    amenities: List[str] = []
    status: Literal["available", "maintenance"] = "available"


class RoomUpdate(BaseModel):
    type: Optional[str] = Field(None, min_length=1, max_length=50)
    price: Optional[Decimal] = Field(None, gt=0)
    capacity: Optional[int] = Field(None, ge=1)
    description: Optional[str] = None
    amenities: Optional[List[str]] = None
