# Models package
from .user import User, UserRole
from .room import Room, RoomStatus, RoomNight
from .booking import Booking, BookingStatus, PaymentMethod, Service, BookingService, ACTIVE_STATUSES
from .review import Review
from .loyalty import (
    LoyaltyPoints,
    PointTransaction,
    TransactionType,
    LoyaltyLevel,
    LEVEL_BANDS,
    level_for,
    next_level_for,
)
from .promotion import PromotionalCode, PromotionalCodeUsage, DiscountType
from .invoice import Invoice, InvoicePaymentStatus

__all__ = [
    "User", "UserRole",
    "Room", "RoomStatus", "RoomNight",
    "Booking", "BookingStatus", "PaymentMethod", "Service", "BookingService", "ACTIVE_STATUSES",
    "Review",
    "LoyaltyPoints", "PointTransaction", "TransactionType",
    "LoyaltyLevel", "LEVEL_BANDS", "level_for", "next_level_for",
    "PromotionalCode", "PromotionalCodeUsage", "DiscountType",
    "Invoice", "InvoicePaymentStatus",
]
