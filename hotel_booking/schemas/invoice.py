from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal


class InvoicePaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0)


class InvoiceResponse(BaseModel):
    id: str
    booking_id: str
    invoice_number: str
    room_total: Decimal
    services_total: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    payment_method: Optional[str] = None
    payment_status: str
    paid_amount: Decimal
    created_at: datetime

    class Config:
        from_attributes = True
