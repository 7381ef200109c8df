from pydantic import BaseModel, Field, model_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal

from ..models.promotion import DiscountType


class PromotionalCodeCreate(BaseModel):
    code: str = Field(..., min_length=2, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    discount_type: DiscountType
    discount_value: Decimal = Field(..., gt=0)
    min_amount: Decimal = Field(Decimal("0"), ge=0)
    max_discount: Optional[Decimal] = Field(None, gt=0)
    usage_limit: Optional[int] = Field(None, ge=1)
    per_user_limit: Optional[int] = Field(None, ge=1)
    valid_from: datetime
    valid_to: datetime
    is_active: bool = True

    @model_validator(mode='after')
    def validate_window(self):
        if self.valid_to <= self.valid_from:
            raise ValueError('valid_to must be after valid_from')
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value > 100:
            raise ValueError('percentage discount cannot exceed 100')
        return self


class PromotionalCodeResponse(BaseModel):
    id: str
    code: str
    name: str
    description: Optional[str] = None
    discount_type: str
    discount_value: Decimal
    min_amount: Optional[Decimal] = None
    max_discount: Optional[Decimal] = None
    usage_limit: Optional[int] = None
    used_count: int
    per_user_limit: Optional[int] = None
    remaining_uses: Optional[int] = None
    valid_from: datetime
    valid_to: datetime
    is_active: bool

    class Config:
        from_attributes = True


class PromoValidateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    subtotal: Decimal = Field(..., ge=0)


class PromoValidateResponse(BaseModel):
    valid: bool
    code_id: str
    code: str
    discount_type: str
    discount_amount: Decimal
    subtotal: Decimal
    final_amount: Decimal


class PromoApplyRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    booking_id: str


class PromoUsageResponse(BaseModel):
    id: str
    code_id: str
    user_id: Optional[str] = None
    booking_id: Optional[str] = None
    discount_amount: Decimal
    created_at: datetime

    class Config:
        from_attributes = True
