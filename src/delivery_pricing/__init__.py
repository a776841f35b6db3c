"""Delivery fare computation and coupon redemption."""

from .service import PricingService, create_service

__all__ = ["PricingService", "create_service"]
