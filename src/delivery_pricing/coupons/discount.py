"""Turns a valid coupon into a bounded discount."""

from collections.abc import Callable

from ..core.exceptions import InvalidInputError
from ..core.money import multiply_cents, to_decimal
from .models import Coupon, DiscountType

DiscountRule = Callable[[Coupon, int, int], int]


def _percentage(coupon: Coupon, order_amount_cents: int, base_fare_cents: int) -> int:
    return multiply_cents(order_amount_cents, to_decimal(coupon.discount_value) / 100)


def _fixed_amount(coupon: Coupon, order_amount_cents: int, base_fare_cents: int) -> int:
    return coupon.discount_value


def _free_delivery(coupon: Coupon, order_amount_cents: int, base_fare_cents: int) -> int:
    return base_fare_cents


DISCOUNT_RULES: dict[DiscountType, DiscountRule] = {
    DiscountType.PERCENTAGE: _percentage,
    DiscountType.FIXED_AMOUNT: _fixed_amount,
    DiscountType.FREE_DELIVERY: _free_delivery,
}


class DiscountCalculator:
    """Computes the discount in cents, clamped to ``[0, order_amount_cents]``."""

    def __init__(self, rules: dict[DiscountType, DiscountRule] | None = None) -> None:
        self.rules = rules or DISCOUNT_RULES

    def calculate(self, coupon: Coupon, order_amount_cents: int, base_fare_cents: int = 0) -> int:
        if order_amount_cents < 0:
            raise InvalidInputError(
                "Order amount must be non-negative",
                details={"order_amount_cents": order_amount_cents},
            )
        if base_fare_cents < 0:
            raise InvalidInputError(
                "Base fare must be non-negative", details={"base_fare_cents": base_fare_cents}
            )

        rule = self.rules.get(coupon.discount_type)
        if rule is None:
            raise InvalidInputError(f"Unsupported discount type: {coupon.discount_type}")

        discount = rule(coupon, order_amount_cents, base_fare_cents)
        discount = min(discount, order_amount_cents)
        return max(discount, 0)
