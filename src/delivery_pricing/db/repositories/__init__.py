"""Repository layer for database CRUD operations."""

from .coupon_repository import CouponRepository
from .coupon_store import SqlCouponStore
from .rate_card_repository import RateCardRepository, SqlRateCardStore

__all__ = [
    "CouponRepository",
    "RateCardRepository",
    "SqlCouponStore",
    "SqlRateCardStore",
]
