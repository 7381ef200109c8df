from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime

from .booking import strip_markup


class ReviewCreate(BaseModel):
    booking_id: str
    rating: int = Field(..., ge=1, le=5)
    title: Optional[str] = Field(None, max_length=255)
    comment: Optional[str] = Field(None, max_length=5000)
    cleanliness: Optional[int] = Field(None, ge=1, le=5)
    service: Optional[int] = Field(None, ge=1, le=5)
    amenities: Optional[int] = Field(None, ge=1, le=5)
    value_for_money: Optional[int] = Field(None, ge=1, le=5)
    location: Optional[int] = Field(None, ge=1, le=5)
    would_recommend: Optional[bool] = None
    guest_type: Optional[str] = Field(None, max_length=50)
    stay_purpose: Optional[str] = Field(None, max_length=50)

    @field_validator('title', 'comment', mode='before')
    @classmethod
    def sanitize_text_fields(cls, v):
        return strip_markup(v)


class ReviewResponse(BaseModel):
    id: str
    booking_id: str
    room_id: str
    user_id: Optional[str] = None
    rating: int
    title: Optional[str] = None
    comment: Optional[str] = None
    cleanliness: Optional[int] = None
    service: Optional[int] = None
    amenities: Optional[int] = None
    value_for_money: Optional[int] = None
    location: Optional[int] = None
    would_recommend: Optional[bool] = None
    guest_type: Optional[str] = None
    stay_purpose: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
