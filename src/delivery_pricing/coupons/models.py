"""Coupon, redemption ledger and outcome models."""

from datetime import datetime
from enum import Enum
from typing import Self
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..core.clock import as_utc, utc_now


def normalize_code(code: str) -> str:
    return code.strip().upper()


def new_id() -> str:
    return uuid4().hex


class DiscountType(str, Enum):
    """How a coupon's ``discount_value`` is interpreted."""

    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    FREE_DELIVERY = "free_delivery"


class AccountType(str, Enum):
    INDIVIDUAL = "individual"
    BUSINESS = "business"


class CouponRejection(str, Enum):
    """Routine reasons a coupon does not apply. Returned, never raised."""

    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    BELOW_MINIMUM = "below_minimum"
    NOT_ELIGIBLE = "not_eligible"
    CAP_EXCEEDED = "cap_exceeded"


class ReservationStatus(str, Enum):
    RESERVED = "reserved"
    CAP_EXCEEDED = "cap_exceeded"


class Coupon(BaseModel):
    """Operator-defined promotion. Deactivated rather than deleted."""

    model_config = ConfigDict(frozen=True)

    coupon_id: str = Field(default_factory=new_id)
    code: str = Field(min_length=1)
    discount_type: DiscountType
    discount_value: int = Field(default=0, ge=0)
    expiry_date: datetime | None = None
    max_uses_total: int | None = Field(default=None, ge=0)
    max_uses_per_user: int | None = Field(default=None, ge=0)
    applicable_account_types: frozenset[str] = frozenset()
    applicable_user_ids: frozenset[str] = frozenset()
    min_order_amount_cents: int = Field(default=0, ge=0)
    is_active: bool = True
    description: str | None = None
    created_by: str | None = None
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("code")
    @classmethod
    def normalize(cls, v: str) -> str:
        v = normalize_code(v)
        if not v:
            raise ValueError("Coupon code must not be blank")
        return v

    @field_validator("expiry_date", "created_at")
    @classmethod
    def utc(cls, v: datetime | None) -> datetime | None:
        return as_utc(v) if v is not None else None

    @field_validator("applicable_account_types")
    @classmethod
    def check_account_types(cls, v: frozenset[str]) -> frozenset[str]:
        return frozenset(AccountType(t.strip().lower()).value for t in v)

    @model_validator(mode="after")
    def check_percentage(self) -> Self:
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return self

    @property
    def is_capped(self) -> bool:
        return self.max_uses_total is not None or self.max_uses_per_user is not None

    def is_expired(self, now: datetime) -> bool:
        return self.expiry_date is not None and as_utc(now) > self.expiry_date


class CouponRedemption(BaseModel):
    """Ledger entry; one per successful reservation, append-only."""

    model_config = ConfigDict(frozen=True)

    redemption_id: str = Field(default_factory=new_id)
    coupon_id: str
    user_id: str
    order_id: str
    discount_applied_cents: int = Field(ge=0)
    redeemed_at: datetime = Field(default_factory=utc_now)

    @field_validator("redeemed_at")
    @classmethod
    def utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class CouponValidationResult(BaseModel):
    valid: bool
    coupon: Coupon | None = None
    reason: CouponRejection | None = None
    message: str | None = None

    @classmethod
    def ok(cls, coupon: Coupon) -> "CouponValidationResult":
        return cls(valid=True, coupon=coupon, message="Coupon is valid")

    @classmethod
    def rejected(
        cls, reason: CouponRejection, message: str, coupon: Coupon | None = None
    ) -> "CouponValidationResult":
        return cls(valid=False, coupon=coupon, reason=reason, message=message)


class ReservationResult(BaseModel):
    """Outcome of one atomic reservation attempt.

    ``replayed`` is set when the order already held a reservation for the
    coupon and the existing ledger entry is returned unchanged.
    """

    status: ReservationStatus
    redemption: CouponRedemption | None = None
    replayed: bool = False
    exceeded_cap: str | None = None

    @property
    def reserved(self) -> bool:
        return self.status == ReservationStatus.RESERVED


class RedemptionOutcome(BaseModel):
    """What checkout receives: the discount to apply and the new total."""

    valid: bool
    order_amount_cents: int
    discount_cents: int = 0
    new_total_cents: int
    reason: CouponRejection | None = None
    message: str | None = None
    coupon: Coupon | None = None
    redemption: CouponRedemption | None = None
    replayed: bool = False
