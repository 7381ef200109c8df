# Services package
from .loyalty_ledger import LoyaltyLedger, LoyaltyBalance
from .booking_engine import BookingEngine, RefundQuote, TRANSITIONS
from .promotion_evaluator import PromotionEvaluator, PromotionValidation, calculate_discount
from .review_aggregator import ReviewAggregator, RoomRating
from .invoice_service import InvoiceService
from .booking_status_updater import BookingStatusUpdater
from .catalogue_service import CatalogueService

__all__ = [
    "LoyaltyLedger", "LoyaltyBalance",
    "BookingEngine", "RefundQuote", "TRANSITIONS",
    "PromotionEvaluator", "PromotionValidation", "calculate_discount",
    "ReviewAggregator", "RoomRating",
    "InvoiceService",
    "BookingStatusUpdater",
    "CatalogueService",
]
