"""Coupon redemption: validate, price and atomically reserve a use.

RedemptionController is the only writer of the redemption ledger. It holds
no locks of its own; the store's ``reserve`` is the single atomic step.
"""

import logging
from datetime import datetime

from ..core.correlation import with_correlation
from ..core.exceptions import (
    InvalidInputError,
    PermanentError,
    PricingError,
    ReservationFailed,
)
from ..pricing_logging import log_redemption_context
from .discount import DiscountCalculator
from .models import (
    Coupon,
    CouponRejection,
    CouponValidationResult,
    DiscountType,
    RedemptionOutcome,
    ReservationResult,
    ReservationStatus,
)
from .store import PER_USER_CAP, CouponStore
from .validator import MSG_USER, CouponValidator

logger = logging.getLogger(__name__)

MSG_CAP_TOTAL = "This coupon has reached its usage limit"
MSG_CAP_PER_USER = "You have already used this coupon the maximum number of times"


class RedemptionController:
    def __init__(
        self,
        store: CouponStore,
        validator: CouponValidator | None = None,
        discount_calculator: DiscountCalculator | None = None,
    ) -> None:
        self.store = store
        self.validator = validator or CouponValidator(store)
        self.discount_calculator = discount_calculator or DiscountCalculator()

    def reserve(
        self,
        coupon_id: str,
        user_id: str,
        order_id: str,
        discount_applied_cents: int,
    ) -> ReservationResult:
        """Consume one use of the coupon for this order.

        Retrying with the same ``(coupon_id, order_id)`` returns the original
        ledger entry. A full cap is returned as ``CAP_EXCEEDED``; storage
        malfunctions raise ``ReservationFailed``.
        """
        if discount_applied_cents < 0:
            raise InvalidInputError(
                "Discount must be non-negative",
                details={"discount_applied_cents": discount_applied_cents},
            )

        try:
            existing = self.store.find_redemption(coupon_id, order_id)
            if existing is not None:
                logger.info("Order %s already holds coupon %s, replaying", order_id, coupon_id)
                return ReservationResult(
                    status=ReservationStatus.RESERVED,
                    redemption=existing,
                    replayed=True,
                )
            result = self.store.reserve(coupon_id, user_id, order_id, discount_applied_cents)
        except (ReservationFailed, PermanentError):
            raise
        except PricingError as e:
            raise ReservationFailed(
                f"Reservation failed for coupon {coupon_id}: {e.message}",
                details={"coupon_id": coupon_id, "order_id": order_id, **e.details},
            ) from e
        except Exception as e:
            logger.exception("Unexpected storage failure reserving coupon %s", coupon_id)
            raise ReservationFailed(
                f"Reservation failed for coupon {coupon_id}",
                details={"coupon_id": coupon_id, "order_id": order_id},
            ) from e

        if result.reserved:
            logger.info(
                "Reserved coupon %s for order %s (replayed=%s)",
                coupon_id,
                order_id,
                result.replayed,
            )
        else:
            logger.info(
                "Coupon %s cap exceeded (%s) for order %s",
                coupon_id,
                result.exceeded_cap,
                order_id,
            )
        return result

    def quote(
        self,
        code: str,
        user_id: str,
        order_amount_cents: int,
        account_type: str | None = None,
        base_fare_cents: int | None = None,
        now: datetime | None = None,
    ) -> RedemptionOutcome:
        """Price a coupon against an order without consuming quota.

        Free-delivery coupons waive the base fare, so they require
        ``base_fare_cents``; without it ``InvalidInputError`` is raised.
        """
        validation = self.validator.validate(code, user_id, order_amount_cents, account_type, now)
        if not validation.valid:
            return self._rejected(order_amount_cents, validation)

        coupon = validation.coupon
        assert coupon is not None
        if base_fare_cents is None:
            if coupon.discount_type == DiscountType.FREE_DELIVERY:
                raise InvalidInputError(
                    "Free delivery coupons need the order's base fare",
                    details={"coupon_code": coupon.code},
                )
            base_fare_cents = 0
        discount = self.discount_calculator.calculate(coupon, order_amount_cents, base_fare_cents)
        return RedemptionOutcome(
            valid=True,
            order_amount_cents=order_amount_cents,
            discount_cents=discount,
            new_total_cents=order_amount_cents - discount,
            message=validation.message,
            coupon=coupon,
        )

    def redeem(
        self,
        code: str,
        user_id: str,
        order_id: str,
        order_amount_cents: int,
        account_type: str | None = None,
        base_fare_cents: int | None = None,
        now: datetime | None = None,
    ) -> RedemptionOutcome:
        """Validate, price and reserve a coupon for an order."""
        with with_correlation(order_id), log_redemption_context(code, order_id, user_id=user_id):
            replay = self._replay_existing(code, user_id, order_id, order_amount_cents)
            if replay is not None:
                return replay

            quote = self.quote(
                code, user_id, order_amount_cents, account_type, base_fare_cents, now
            )
            if not quote.valid:
                logger.info("Coupon rejected: %s", quote.reason.value if quote.reason else "-")
                return quote

            coupon = quote.coupon
            assert coupon is not None
            result = self.reserve(coupon.coupon_id, user_id, order_id, quote.discount_cents)
            if not result.reserved:
                message = MSG_CAP_PER_USER if result.exceeded_cap == PER_USER_CAP else MSG_CAP_TOTAL
                return RedemptionOutcome(
                    valid=False,
                    order_amount_cents=order_amount_cents,
                    new_total_cents=order_amount_cents,
                    reason=CouponRejection.CAP_EXCEEDED,
                    message=message,
                    coupon=coupon,
                )

            return self._applied(coupon, order_amount_cents, result)

    def _replay_existing(
        self, code: str, user_id: str, order_id: str, order_amount_cents: int
    ) -> RedemptionOutcome | None:
        coupon = self.store.get_by_code(code)
        if coupon is None:
            return None
        existing = self.store.find_redemption(coupon.coupon_id, order_id)
        if existing is None:
            return None
        # Only the user who made the redemption may replay it.
        if existing.user_id != user_id:
            logger.warning(
                "Order %s holds coupon %s for another user, refusing replay",
                order_id,
                coupon.code,
            )
            return RedemptionOutcome(
                valid=False,
                order_amount_cents=order_amount_cents,
                new_total_cents=order_amount_cents,
                reason=CouponRejection.NOT_ELIGIBLE,
                message=MSG_USER,
                coupon=coupon,
            )
        logger.info("Replaying earlier redemption %s", existing.redemption_id)
        return self._applied(
            coupon,
            order_amount_cents,
            ReservationResult(
                status=ReservationStatus.RESERVED,
                redemption=existing,
                replayed=True,
            ),
        )

    def _applied(
        self, coupon: Coupon, order_amount_cents: int, result: ReservationResult
    ) -> RedemptionOutcome:
        assert result.redemption is not None
        discount = min(result.redemption.discount_applied_cents, order_amount_cents)
        return RedemptionOutcome(
            valid=True,
            order_amount_cents=order_amount_cents,
            discount_cents=discount,
            new_total_cents=order_amount_cents - discount,
            message="Coupon applied",
            coupon=coupon,
            redemption=result.redemption,
            replayed=result.replayed,
        )

    def _rejected(
        self, order_amount_cents: int, validation: CouponValidationResult
    ) -> RedemptionOutcome:
        return RedemptionOutcome(
            valid=False,
            order_amount_cents=order_amount_cents,
            new_total_cents=order_amount_cents,
            reason=validation.reason,
            message=validation.message,
            coupon=validation.coupon,
        )
