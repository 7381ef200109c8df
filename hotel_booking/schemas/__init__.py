# Schemas package
from .booking import (
    BookingCreate, BookingStatusUpdate, PaymentCreate, BookingResponse,
    BookingCancelResponse, RefundQuoteResponse, AvailabilityResponse, OccupancyResponse,
)
from .room import RoomResponse, RoomRatingResponse, RoomCreate, RoomUpdate
from .service import ServiceCreate, ServiceUpdate, ServiceResponse
from .promotion import (
    PromotionalCodeCreate, PromotionalCodeResponse, PromoValidateRequest,
    PromoValidateResponse, PromoApplyRequest, PromoUsageResponse,
)
from .loyalty import LoyaltyBalanceResponse, RedeemPointsRequest, PointTransactionResponse
from .review import ReviewCreate, ReviewResponse
from .invoice import InvoiceResponse, InvoicePaymentCreate
