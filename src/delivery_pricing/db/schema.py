"""SQLAlchemy ORM models for coupon and rate-card persistence."""

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .utils import utc_now


class Base(DeclarativeBase):
    pass


class CouponRow(Base):
    __tablename__ = "coupons"

    coupon_id: Mapped[str] = mapped_column(String, primary_key=True)
    code: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    discount_type: Mapped[str] = mapped_column(String, nullable=False)
    discount_value: Mapped[int] = mapped_column(Integer, default=0)
    expiry_date: Mapped[datetime | None] = mapped_column(nullable=True)
    max_uses_total: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_uses_per_user: Mapped[int | None] = mapped_column(Integer, nullable=True)
    applicable_account_types_json: Mapped[str] = mapped_column(Text, default="[]")
    applicable_user_ids_json: Mapped[str] = mapped_column(Text, default="[]")
    min_order_amount_cents: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=lambda: utc_now())
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: utc_now(),
        onupdate=lambda: utc_now(),
    )

    __table_args__ = (
        Index("idx_coupon_active", "code", "is_active"),
        Index("idx_coupon_expiry", "expiry_date", "is_active"),
    )


class CouponRedemptionRow(Base):
    __tablename__ = "coupon_redemptions"

    redemption_id: Mapped[str] = mapped_column(String, primary_key=True)
    coupon_id: Mapped[str] = mapped_column(
        String, ForeignKey("coupons.coupon_id"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    order_id: Mapped[str] = mapped_column(String, nullable=False)
    discount_applied_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    redeemed_at: Mapped[datetime] = mapped_column(nullable=False)

    __table_args__ = (
        UniqueConstraint("coupon_id", "order_id", name="uq_redemption_coupon_order"),
        Index("idx_redemption_coupon_user", "coupon_id", "user_id"),
    )


class RateCardRow(Base):
    __tablename__ = "rate_cards"

    version: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    effective_from: Mapped[datetime] = mapped_column(nullable=False)
    payload_json: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=lambda: utc_now())

    __table_args__ = (Index("idx_rate_card_effective", "effective_from"),)


class PricingMetadata(Base):
    __tablename__ = "pricing_metadata"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[str] = mapped_column(String, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: utc_now(),
        onupdate=lambda: utc_now(),
    )
