"""Application configuration via pydantic-settings."""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CommissionTier(BaseModel):
    """Commission rate for room fees in [min_amount, max_amount] kobo."""

    min_amount: int
    max_amount: Optional[int] = None
    rate: Decimal


class VolumeDiscount(BaseModel):
    """Commission reduction once a host's monthly room-fee volume reaches ``volume`` kobo."""

    volume: int
    reduction_rate: Decimal


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = "Shortlet Escrow"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "shortlet"
    postgres_password: str = Field(default="shortlet_secret")
    postgres_db: str = "shortlet"
    db_pool_size: int = 10
    db_max_overflow: int = 5
    database_url_override: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")

    @computed_field
    @property
    def database_url(self) -> str:
        """Async database URL (DATABASE_URL wins over the postgres_* parts)."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @computed_field
    @property
    def sync_database_url(self) -> str:
        """Sync PostgreSQL connection URL for Alembic."""
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Redis (Celery broker)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    @computed_field
    @property
    def redis_url(self) -> str:
        """Redis connection URL."""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # JWT Authentication (tokens are issued by the external auth service)
    jwt_secret_key: str = Field(default="your-super-secret-key-change-in-production")
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15

    # Encryption (payout account numbers)
    encryption_key: str = Field(default="your-32-byte-encryption-key-here")

    # Canonical calendar for every date comparison
    canonical_timezone: str = "Africa/Lagos"

    # Live finance configuration (frozen onto bookings at confirmation)
    commission_rate: Decimal = Decimal("0.10")
    host_share_percent: Decimal = Decimal("0.90")
    service_fee_rate: Decimal = Decimal("0.02")
    currency: str = "NGN"
    finance_config_version: str = "v1"

    # Tiered commission by room fee (JSON list); empty means the flat
    # commission_rate above
    commission_tiers: list[CommissionTier] = []
    monthly_volume_discounts: list[VolumeDiscount] = []
    monthly_discount_cap_rate: Decimal = Decimal("0.02")

    # Scheduled check-out time on the check-out day (canonical hour); a guest
    # still checked in after it is checked out automatically
    check_out_hour: int = 12

    # Dispute windows (calendar days)
    guest_dispute_window_days: int = 3
    host_dispute_window_days: int = 3
    dispute_writeup_min_length: int = 20

    # Escrow release (calendar days after the actual check-in day)
    room_fee_release_delay_days: int = 3
    cleaning_fee_release_delay_days: int = 3

    # Payout
    minimum_payout_amount: int = 100000  # 1,000 NGN in kobo
    payout_webhook_secret: str = Field(default="change-me-payout-webhook-secret")

    # Settlement scheduler
    settlement_interval_minutes: int = 5
    storage_retry_attempts: int = 3
    storage_retry_base_delay: float = 0.5
    storage_retry_max_delay: float = 8.0

    # Notifications
    notification_webhook_url: Optional[str] = None
    notification_timeout: float = 5.0

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
