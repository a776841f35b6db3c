from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.exceptions import PersistenceError
from .core.retry import RetryConfig


class PricingSettings(BaseSettings):
    rate_card_path: str | None = Field(
        default=None,
        description="JSON rate card published at startup when the store is empty",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["text", "json"] = "text"
    environment: str = "development"

    model_config = SettingsConfigDict(env_prefix="PRICING_")

    @field_validator("rate_card_path")
    @classmethod
    def validate_path(cls, v: str | None) -> str | None:
        if v is not None and not v.endswith(".json"):
            raise ValueError("Rate card path must point to a .json file")
        return v


class DatabaseSettings(BaseSettings):
    path: str = "data/pricing.db"
    busy_timeout_seconds: float = Field(
        default=30.0,
        ge=0.0,
        le=300.0,
        description="How long SQLite waits on a locked database before failing a statement",
    )

    model_config = SettingsConfigDict(env_prefix="DB_")


class ReservationSettings(BaseSettings):
    """Storage-level retry of lock contention during coupon reservation."""

    max_attempts: int = Field(default=5, ge=1, le=20)
    base_delay: float = Field(default=0.05, ge=0.0, le=5.0)
    multiplier: float = Field(default=2.0, ge=1.0, le=5.0)
    max_delay: float = Field(default=1.0, ge=0.0, le=30.0)

    model_config = SettingsConfigDict(env_prefix="RESERVATION_")

    def to_retry_config(self) -> RetryConfig:
        return RetryConfig(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            multiplier=self.multiplier,
            max_delay=self.max_delay,
            retryable_exceptions=(PersistenceError,),
        )


class Settings(BaseSettings):
    pricing: PricingSettings = Field(default_factory=PricingSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    reservation: ReservationSettings = Field(default_factory=ReservationSettings)

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        case_sensitive=False,
    )


def get_settings() -> Settings:
    """Load and validate settings from environment variables."""
    return Settings()
