"""Application configuration

Values come from ``HOTEL_*`` environment variables and fall back to the
defaults below.
"""
import logging
import os
from decimal import Decimal
from functools import lru_cache

from pydantic import BaseModel, Field

ENV_PREFIX = "HOTEL_"

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class Settings(BaseModel):
    """Scheduler settings"""

    # Pricing
    tax_rate: Decimal = Field(default=Decimal("0.10"), ge=0)
    extra_guest_fee: Decimal = Field(default=Decimal("25.00"), ge=0)
    base_occupancy: int = Field(default=2, ge=1)

    # Booking rules
    max_stay_nights: int = Field(default=30, ge=1)
    min_guests: int = Field(default=1, ge=1)
    max_guests: int = Field(default=10, ge=1)

    # System actor for automatic room status changes
    system_user_email: str = "system@hotel.com"
    system_user_name: str = "System User"

    # Store / transactions
    lock_timeout_seconds: float = Field(default=5.0, gt=0)
    conflict_retry_attempts: int = Field(default=3, ge=1)
    conflict_retry_backoff_seconds: float = Field(default=0.05, ge=0)
    store_latency_seconds: float = Field(default=0.0, ge=0)

    # Auth (In production, set these through the environment)
    secret_key: str = "your-secret-key-keep-it-secret"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        """Build settings from HOTEL_<FIELD> environment variables"""
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is not None:
                values[name] = raw
        return cls(**values)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
