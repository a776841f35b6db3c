"""Database persistence module."""

from .database import init_database
from .schema import CouponRedemptionRow, CouponRow, PricingMetadata, RateCardRow
from .transaction import session_scope, transaction

__all__ = [
    "init_database",
    "CouponRow",
    "CouponRedemptionRow",
    "PricingMetadata",
    "RateCardRow",
    "transaction",
    "session_scope",
]
