"""
Rate Limiter Configuration

Supports both in-memory and Redis storage for rate limiting.
Redis is recommended for production (multiple instances).
"""

import logging
from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from ..config import get_settings

logger = logging.getLogger(__name__)


def get_real_client_ip(request: Request) -> str:
    """Get real client IP behind a reverse proxy"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP (original client)
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


def create_limiter() -> Limiter:
    """
    Create a rate limiter with appropriate storage backend.
    Uses Redis when REDIS_URL is set, otherwise in-memory.
    """
    settings = get_settings()

    if settings.redis_url:
        logger.info("Using Redis rate limiter storage")
        return Limiter(
            key_func=get_real_client_ip,
            storage_uri=settings.redis_url,
            default_limits=["100/minute"],
            enabled=settings.rate_limiting_enabled,
        )

    # In-memory storage (for development or single instance)
    logger.info("Using in-memory rate limiter storage")
    return Limiter(
        key_func=get_real_client_ip,
        default_limits=["100/minute"],
        enabled=settings.rate_limiting_enabled,
    )


# Global rate limiter instance
limiter = create_limiter()


# ================================
# RATE LIMIT CONFIGURATIONS
# ================================

RATE_LIMITS = {
    # Writes that take locks
    "booking_create": "30/minute",
    "booking_update": "60/minute",
    "payment": "30/minute",
    "promo_redeem": "30/minute",
    "points_redeem": "20/minute",
    "review_submit": "10/minute",

    # Read Operations - relaxed limits
    "booking_get": "200/minute",
    "availability": "120/minute",
    "search": "60/minute",
}


def get_rate_limit(operation: str) -> str:
    """Get rate limit for a specific operation."""
    return RATE_LIMITS.get(operation, "100/minute")
