"""Shared error types, retry and money helpers."""

from .exceptions import (
    ConfigError,
    DuplicateCouponError,
    InvalidInputError,
    NotFoundError,
    PermanentError,
    PersistenceError,
    PricingError,
    ReservationFailed,
    TransientError,
)
from .money import format_cents, multiply_cents, round_half_up, to_decimal
from .retry import RetryConfig, with_retry_sync

__all__ = [
    "ConfigError",
    "DuplicateCouponError",
    "InvalidInputError",
    "NotFoundError",
    "PermanentError",
    "PersistenceError",
    "PricingError",
    "ReservationFailed",
    "TransientError",
    "RetryConfig",
    "with_retry_sync",
    "format_cents",
    "multiply_cents",
    "round_half_up",
    "to_decimal",
]
