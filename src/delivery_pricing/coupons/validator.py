"""Read-only coupon eligibility checks.

Usage caps are not checked here; they are enforced only by the store's
atomic reservation. Validation never consumes quota.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from ..core.clock import utc_now
from ..core.exceptions import InvalidInputError
from .models import Coupon, CouponRejection, CouponValidationResult
from .store import CouponStore

logger = logging.getLogger(__name__)

MSG_NOT_FOUND = "Invalid coupon code"
MSG_INACTIVE = "This coupon is no longer active"
MSG_EXPIRED = "This coupon has expired"
MSG_ACCOUNT_TYPE = "This coupon is not available for your account type"
MSG_USER = "This coupon is not available for your account"


def below_minimum_message(min_order_amount_cents: int) -> str:
    dollars, cents = divmod(min_order_amount_cents, 100)
    return f"Minimum order amount of ${dollars}.{cents:02d} required"


class CouponValidator:
    def __init__(self, store: CouponStore, clock: Callable[[], datetime] = utc_now) -> None:
        self.store = store
        self.clock = clock

    def validate(
        self,
        code: str,
        user_id: str,
        order_amount_cents: int,
        account_type: str | None = None,
        now: datetime | None = None,
    ) -> CouponValidationResult:
        """Check a code against the order; the first failing rule wins."""
        if order_amount_cents < 0:
            raise InvalidInputError(
                "Order amount must be non-negative",
                details={"order_amount_cents": order_amount_cents},
            )

        coupon = self.store.get_by_code(code)
        if coupon is None:
            return CouponValidationResult.rejected(CouponRejection.NOT_FOUND, MSG_NOT_FOUND)
        if not coupon.is_active:
            return CouponValidationResult.rejected(CouponRejection.NOT_FOUND, MSG_INACTIVE)

        result = self.check_rules(
            coupon, user_id, order_amount_cents, account_type, now or self.clock()
        )
        if not result.valid:
            logger.debug("Coupon %s rejected: %s", coupon.code, result.reason)
        return result

    def check_rules(
        self,
        coupon: Coupon,
        user_id: str,
        order_amount_cents: int,
        account_type: str | None,
        now: datetime,
    ) -> CouponValidationResult:
        if coupon.is_expired(now):
            return CouponValidationResult.rejected(CouponRejection.EXPIRED, MSG_EXPIRED, coupon)

        if order_amount_cents < coupon.min_order_amount_cents:
            return CouponValidationResult.rejected(
                CouponRejection.BELOW_MINIMUM,
                below_minimum_message(coupon.min_order_amount_cents),
                coupon,
            )

        if coupon.applicable_account_types:
            normalized = account_type.strip().lower() if account_type else None
            if normalized not in coupon.applicable_account_types:
                return CouponValidationResult.rejected(
                    CouponRejection.NOT_ELIGIBLE, MSG_ACCOUNT_TYPE, coupon
                )

        if coupon.applicable_user_ids and user_id not in coupon.applicable_user_ids:
            return CouponValidationResult.rejected(CouponRejection.NOT_ELIGIBLE, MSG_USER, coupon)

        return CouponValidationResult.ok(coupon)
