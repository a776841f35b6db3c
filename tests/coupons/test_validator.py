from datetime import timedelta

import pytest

from delivery_pricing.core.exceptions import InvalidInputError
from delivery_pricing.coupons import CouponRejection, CouponValidator
from tests.conftest import FIXED_NOW


@pytest.fixture
def validator(coupon_store):
    return CouponValidator(coupon_store, clock=lambda: FIXED_NOW)


@pytest.mark.unit
class TestCouponValidator:
    def test_valid_coupon(self, validator, coupon_store, make_coupon):
        coupon = coupon_store.add(make_coupon())

        result = validator.validate("SAVE20", "user-1", 1000)

        assert result.valid is True
        assert result.coupon == coupon
        assert result.reason is None

    def test_code_lookup_is_case_insensitive(self, validator, coupon_store, make_coupon):
        coupon_store.add(make_coupon(code="Spring10"))

        assert validator.validate("  spring10 ", "user-1", 1000).valid is True

    def test_unknown_code(self, validator):
        result = validator.validate("NOPE", "user-1", 1000)

        assert result.valid is False
        assert result.reason == CouponRejection.NOT_FOUND
        assert result.message == "Invalid coupon code"

    def test_inactive_coupon_looks_unknown(self, validator, coupon_store, make_coupon):
        coupon_store.add(make_coupon(is_active=False))

        result = validator.validate("SAVE20", "user-1", 1000)

        assert result.reason == CouponRejection.NOT_FOUND
        assert result.message == "This coupon is no longer active"

    def test_expired_coupon(self, validator, coupon_store, make_coupon):
        coupon_store.add(make_coupon(expiry_date=FIXED_NOW - timedelta(seconds=1)))

        result = validator.validate("SAVE20", "user-1", 1000)

        assert result.reason == CouponRejection.EXPIRED
        assert result.message == "This coupon has expired"

    def test_coupon_valid_at_exact_expiry(self, validator, coupon_store, make_coupon):
        coupon_store.add(make_coupon(expiry_date=FIXED_NOW))

        assert validator.validate("SAVE20", "user-1", 1000).valid is True

    def test_explicit_now_overrides_clock(self, validator, coupon_store, make_coupon):
        coupon_store.add(make_coupon(expiry_date=FIXED_NOW))

        result = validator.validate("SAVE20", "user-1", 1000, now=FIXED_NOW + timedelta(days=1))

        assert result.reason == CouponRejection.EXPIRED

    def test_below_minimum(self, validator, coupon_store, make_coupon):
        coupon_store.add(make_coupon(min_order_amount_cents=1500))

        result = validator.validate("SAVE20", "user-1", 1499)

        assert result.reason == CouponRejection.BELOW_MINIMUM
        assert result.message == "Minimum order amount of $15.00 required"

    def test_minimum_is_inclusive(self, validator, coupon_store, make_coupon):
        coupon_store.add(make_coupon(min_order_amount_cents=1500))

        assert validator.validate("SAVE20", "user-1", 1500).valid is True

    def test_account_type_restriction(self, validator, coupon_store, make_coupon):
        coupon_store.add(make_coupon(applicable_account_types=frozenset({"Business"})))

        assert validator.validate("SAVE20", "user-1", 1000, account_type="business").valid
        rejected = validator.validate("SAVE20", "user-1", 1000, account_type="individual")
        missing = validator.validate("SAVE20", "user-1", 1000)

        assert rejected.reason == CouponRejection.NOT_ELIGIBLE
        assert rejected.message == "This coupon is not available for your account type"
        assert missing.reason == CouponRejection.NOT_ELIGIBLE

    def test_user_allow_list(self, validator, coupon_store, make_coupon):
        coupon_store.add(make_coupon(applicable_user_ids=frozenset({"vip-1"})))

        assert validator.validate("SAVE20", "vip-1", 1000).valid is True
        result = validator.validate("SAVE20", "user-1", 1000)
        assert result.reason == CouponRejection.NOT_ELIGIBLE
        assert result.message == "This coupon is not available for your account"

    def test_first_failing_rule_wins(self, validator, coupon_store, make_coupon):
        coupon_store.add(
            make_coupon(
                expiry_date=FIXED_NOW - timedelta(days=1),
                min_order_amount_cents=5000,
                applicable_user_ids=frozenset({"vip-1"}),
            )
        )

        assert validator.validate("SAVE20", "user-1", 100).reason == CouponRejection.EXPIRED

    def test_validation_ignores_caps(self, validator, coupon_store, make_coupon):
        coupon = coupon_store.add(make_coupon(max_uses_total=1))
        coupon_store.reserve(coupon.coupon_id, "user-1", "order-1", 200)

        assert validator.validate("SAVE20", "user-2", 1000).valid is True

    def test_validation_does_not_consume_quota(self, validator, coupon_store, make_coupon):
        coupon = coupon_store.add(make_coupon(max_uses_total=1))

        for _ in range(5):
            validator.validate("SAVE20", "user-1", 1000)

        assert coupon_store.count_redemptions(coupon.coupon_id) == 0

    def test_negative_order_amount_rejected(self, validator, coupon_store, make_coupon):
        coupon_store.add(make_coupon())

        with pytest.raises(InvalidInputError):
            validator.validate("SAVE20", "user-1", -1)
