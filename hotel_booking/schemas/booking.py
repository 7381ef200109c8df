from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
import re

from ..models.booking import BookingStatus, PaymentMethod


def strip_markup(v):
    """Remove script tags and inline event handlers from free text"""
    if isinstance(v, str):
        v = re.sub(r'<script[^>]*>.*?</script>', '', v, flags=re.IGNORECASE | re.DOTALL)
        v = re.sub(r'on\w+\s*=', '', v, flags=re.IGNORECASE)
    return v


class BookingServiceRequest(BaseModel):
    service_id: str
    quantity: int = Field(1, ge=1, le=100)


class BookingCreate(BaseModel):
    room_id: str = Field(..., min_length=1, max_length=36)
    check_in: datetime
    check_out: datetime
    guests: int = Field(..., ge=1, le=50)
    special_requests: Optional[str] = Field(None, max_length=2000)
    payment_method: Optional[PaymentMethod] = None
    services: List[BookingServiceRequest] = Field(default_factory=list)

    @field_validator('special_requests', mode='before')
    @classmethod
    def sanitize_text_fields(cls, v):
        return strip_markup(v)

    @model_validator(mode='after')
    def validate_dates(self):
        """check_out must be after check_in"""
        if self.check_out <= self.check_in:
            raise ValueError('check_out must be after check_in')
        return self


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class PaymentCreate(BaseModel):
    payment_method: PaymentMethod
    amount: Optional[Decimal] = Field(None, gt=0)
    is_deposit: bool = False
    payment_intent_id: Optional[str] = Field(None, max_length=255)


class BookingServiceResponse(BaseModel):
    service_id: Optional[str] = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal

    class Config:
        from_attributes = True


class BookingResponse(BaseModel):
    id: str
    user_id: Optional[str] = None
    room_id: Optional[str] = None
    check_in: datetime
    check_out: datetime
    guests: int
    total_price: Decimal
    status: str
    special_requests: Optional[str] = None
    payment_method: Optional[str] = None
    deposit_amount: Optional[Decimal] = None
    remaining_amount: Optional[Decimal] = None
    discount_amount: Optional[Decimal] = None
    check_in_time: Optional[str] = None
    check_out_time: Optional[str] = None
    services: List[BookingServiceResponse] = []
    created_at: datetime
    updated_at: datetime
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RefundQuoteResponse(BaseModel):
    hours_before_check_in: float
    refund_percent: int
    paid_amount: Decimal
    refund_amount: Decimal


class BookingCancelResponse(BaseModel):
    booking: BookingResponse
    refund: RefundQuoteResponse


class AvailabilityResponse(BaseModel):
    room_id: str
    check_in: datetime
    check_out: datetime
    available: bool


class OccupancyResponse(BaseModel):
    at: datetime
    current_guests: int
