"""Standardized exception hierarchy for the pricing core.

Routine coupon outcomes (expired, below minimum, cap exceeded, ...) are not
exceptions; they are returned as ``CouponRejection`` values. Only
configuration problems, bad caller input and storage malfunctions raise.
"""

from typing import Any


class PricingError(Exception):
    """Base exception for all pricing errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TransientError(PricingError):
    """Errors that may succeed on retry."""

    pass


class PersistenceError(TransientError):
    """Database write contended or failed; safe to retry."""

    pass


class ReservationFailed(TransientError):
    """Coupon reservation could not be completed by the storage layer.

    The caller must not apply the discount and decides its own retry policy.
    """

    pass


class PermanentError(PricingError):
    """Errors that will not succeed on retry."""

    pass


class InvalidInputError(PermanentError):
    """Invalid caller input (negative distance, negative amount, ...)."""

    pass


class NotFoundError(PermanentError):
    """Requested entity does not exist."""

    pass


class DuplicateCouponError(PermanentError):
    """A coupon with the same normalized code already exists."""

    pass


class ConfigError(PermanentError):
    """Missing or malformed rate-card configuration."""

    pass
