"""Coupon eligibility, discount calculation and redemption."""

from .discount import DiscountCalculator
from .models import (
    AccountType,
    Coupon,
    CouponRedemption,
    CouponRejection,
    CouponValidationResult,
    DiscountType,
    RedemptionOutcome,
    ReservationResult,
    ReservationStatus,
    normalize_code,
)
from .redemption import RedemptionController
from .store import CouponStore, InMemoryCouponStore
from .validator import CouponValidator

__all__ = [
    "AccountType",
    "Coupon",
    "CouponRedemption",
    "CouponRejection",
    "CouponStore",
    "CouponValidationResult",
    "CouponValidator",
    "DiscountCalculator",
    "DiscountType",
    "InMemoryCouponStore",
    "RedemptionController",
    "RedemptionOutcome",
    "ReservationResult",
    "ReservationStatus",
    "normalize_code",
]
