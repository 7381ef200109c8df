"""
Booking engine error taxonomy.

Every engine operation either completes or raises one of these. Each error
carries a machine-readable ``code`` and the HTTP status the API layer maps it
to, so handlers never need to translate them one by one.
"""

from typing import Any, Dict, Optional


class BookingEngineError(Exception):
    """Base class for all domain errors raised by the engines."""

    code = "engine_error"
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code, "details": self.details}


class ValidationError(BookingEngineError):
    """Malformed or out-of-range input."""
    code = "validation_error"
    status_code = 400


class NotFoundError(BookingEngineError):
    code = "not_found"
    status_code = 404


class ConflictError(BookingEngineError):
    """Overlapping booking, unavailable room, or a lost race."""
    code = "conflict"
    status_code = 409


class InvalidTransitionError(BookingEngineError):
    code = "invalid_transition"
    status_code = 409


# Promotional codes
class ExpiredError(BookingEngineError):
    code = "promo_expired"
    status_code = 400


class InactiveError(BookingEngineError):
    code = "promo_inactive"
    status_code = 400


class UsageLimitError(BookingEngineError):
    code = "promo_usage_limit"
    status_code = 409


class MinimumNotMetError(BookingEngineError):
    code = "promo_minimum_not_met"
    status_code = 400


# Loyalty
class InsufficientPointsError(BookingEngineError):
    code = "insufficient_points"
    status_code = 400


# Reviews
class DuplicateReviewError(BookingEngineError):
    code = "duplicate_review"
    status_code = 409


class NotEligibleError(BookingEngineError):
    code = "not_eligible"
    status_code = 400
