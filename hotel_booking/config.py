from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from functools import lru_cache
from decimal import Decimal
from typing import List


class Settings(BaseSettings):
    # Environment
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # Database - PostgreSQL for production, SQLite for development
    database_url: str = Field(
        default="sqlite:///./hotel_booking.db",
        alias="DATABASE_URL"
    )

    # Security
    secret_key: str = Field(default="dev-secret-key-at-least-32-characters-long-for-development", alias="SECRET_KEY")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # CORS - Frontend URLs from environment (comma-separated)
    allowed_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
        alias="ALLOWED_ORIGINS"
    )

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    # Rate limiting
    rate_limiting_enabled: bool = Field(default=True, alias="RATE_LIMITING_ENABLED")
    redis_url: str = Field(default="", alias="REDIS_URL")

    # ==============================================
    # Booking rules
    # ==============================================
    # Currency units needed to earn one loyalty point (floor(total / rate))
    loyalty_currency_per_point: Decimal = Field(default=Decimal("10000"), alias="LOYALTY_CURRENCY_PER_POINT")

    # Share of the total charged as a deposit when none is given
    deposit_ratio: Decimal = Field(default=Decimal("0.30"), alias="DEPOSIT_RATIO")

    # Tax applied on invoices after discount
    invoice_tax_rate: Decimal = Field(default=Decimal("0.10"), alias="INVOICE_TAX_RATE")

    # Pending bookings older than this are cancelled by the status updater
    pending_booking_ttl_hours: int = Field(default=48, alias="PENDING_BOOKING_TTL_HOURS")

    # Hourly status sweep (auto-complete / stale pending)
    status_scheduler_enabled: bool = Field(default=False, alias="STATUS_SCHEDULER_ENABLED")

    default_check_in_time: str = Field(default="14:00", alias="DEFAULT_CHECK_IN_TIME")
    default_check_out_time: str = Field(default="12:00", alias="DEFAULT_CHECK_OUT_TIME")

    @field_validator('loyalty_currency_per_point')
    @classmethod
    def validate_points_rate(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("LOYALTY_CURRENCY_PER_POINT must be positive")
        return v

    @field_validator('deposit_ratio', 'invoice_tax_rate')
    @classmethod
    def validate_ratio(cls, v: Decimal) -> Decimal:
        if v < 0 or v > 1:
            raise ValueError("ratio must be between 0 and 1")
        return v

    @field_validator('secret_key')
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Validate SECRET_KEY is strong enough"""
        if not v:
            raise ValueError("SECRET_KEY is required and cannot be empty")
        if len(v) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters long")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cors_origins(self) -> List[str]:
        """
        Parse allowed origins from comma-separated string.
        Returns a list suitable for CORSMiddleware.
        """
        origins = []
        for origin in self.allowed_origins.split(","):
            origin = origin.strip().rstrip("/")
            if origin and origin not in origins:
                origins.append(origin)

        return origins if origins else ["http://localhost:5173"]

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


def reset_settings_cache() -> None:
    """Drop the cached Settings (tests change the environment)."""
    get_settings.cache_clear()


# Initialize settings on module load
settings = get_settings()
