"""Coupon repository for operator CRUD and ledger queries."""

import json
from typing import Any

from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ...core.exceptions import DuplicateCouponError, InvalidInputError, NotFoundError
from ...coupons.models import Coupon, CouponRedemption, DiscountType, normalize_code
from ..schema import CouponRedemptionRow, CouponRow
from ..utils import from_db, to_db, utc_now

UPDATABLE_FIELDS = {
    "discount_type",
    "discount_value",
    "expiry_date",
    "max_uses_total",
    "max_uses_per_user",
    "applicable_account_types",
    "applicable_user_ids",
    "min_order_amount_cents",
    "is_active",
    "description",
}


class CouponRepository:
    """Repository for coupon CRUD operations.

    Coupons are never deleted; ``set_active`` is the lifecycle switch.
    """

    def __init__(self, session: Session):
        self.session = session

    def create(self, coupon: Coupon) -> Coupon:
        """Stage a new coupon; raises DuplicateCouponError on a taken code."""
        if self._row_by_code(coupon.code) is not None:
            raise DuplicateCouponError(f"Coupon code already exists: {coupon.code}")
        row = CouponRow(coupon_id=coupon.coupon_id, code=coupon.code)
        self._apply(row, coupon)
        row.created_at = to_db(coupon.created_at)
        self.session.add(row)
        self.session.flush()
        return coupon

    def get(self, coupon_id: str) -> Coupon | None:
        row = self.session.get(CouponRow, coupon_id)
        return self._to_domain(row) if row is not None else None

    def get_by_code(self, code: str) -> Coupon | None:
        row = self._row_by_code(normalize_code(code))
        return self._to_domain(row) if row is not None else None

    def list_coupons(
        self,
        is_active: bool | None = None,
        discount_type: DiscountType | None = None,
    ) -> list[Coupon]:
        """List coupons, newest first."""
        stmt = select(CouponRow).order_by(CouponRow.created_at.desc())
        if is_active is not None:
            stmt = stmt.where(CouponRow.is_active == is_active)
        if discount_type is not None:
            stmt = stmt.where(CouponRow.discount_type == DiscountType(discount_type).value)
        result = self.session.execute(stmt)
        return [self._to_domain(row) for row in result.scalars().all()]

    def update(self, coupon_id: str, **changes: Any) -> Coupon:
        """Apply field changes; the code and identity are immutable."""
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise InvalidInputError(
                f"Cannot update coupon fields: {sorted(unknown)}",
                details={"coupon_id": coupon_id, "fields": sorted(unknown)},
            )
        row = self.session.get(CouponRow, coupon_id)
        if row is None:
            raise NotFoundError(f"Coupon {coupon_id} not found")
        # Re-validate the merged coupon before touching the row.
        merged = self._to_domain(row).model_copy(update=changes)
        try:
            updated = Coupon.model_validate(merged.model_dump())
        except ValidationError as e:
            errors = [
                f"{'.'.join(str(part) for part in err['loc']) or 'coupon'}: {err['msg']}"
                for err in e.errors()
            ]
            raise InvalidInputError(
                f"Invalid coupon update: {'; '.join(errors)}",
                details={"coupon_id": coupon_id, "errors": errors},
            ) from e
        self._apply(row, updated)
        row.updated_at = utc_now()
        self.session.flush()
        return updated

    def set_active(self, coupon_id: str, is_active: bool) -> Coupon:
        return self.update(coupon_id, is_active=is_active)

    def count_redemptions(self, coupon_id: str, user_id: str | None = None) -> int:
        stmt = (
            select(func.count())
            .select_from(CouponRedemptionRow)
            .where(CouponRedemptionRow.coupon_id == coupon_id)
        )
        if user_id is not None:
            stmt = stmt.where(CouponRedemptionRow.user_id == user_id)
        return self.session.execute(stmt).scalar() or 0

    def find_redemption(self, coupon_id: str, order_id: str) -> CouponRedemption | None:
        stmt = select(CouponRedemptionRow).where(
            CouponRedemptionRow.coupon_id == coupon_id,
            CouponRedemptionRow.order_id == order_id,
        )
        row = self.session.execute(stmt).scalar_one_or_none()
        return redemption_to_domain(row) if row is not None else None

    def list_redemptions(
        self, coupon_id: str, user_id: str | None = None
    ) -> list[CouponRedemption]:
        stmt = (
            select(CouponRedemptionRow)
            .where(CouponRedemptionRow.coupon_id == coupon_id)
            .order_by(CouponRedemptionRow.redeemed_at)
        )
        if user_id is not None:
            stmt = stmt.where(CouponRedemptionRow.user_id == user_id)
        result = self.session.execute(stmt)
        return [redemption_to_domain(row) for row in result.scalars().all()]

    def _row_by_code(self, code: str) -> CouponRow | None:
        stmt = select(CouponRow).where(CouponRow.code == code)
        return self.session.execute(stmt).scalar_one_or_none()

    def _apply(self, row: CouponRow, coupon: Coupon) -> None:
        row.discount_type = coupon.discount_type.value
        row.discount_value = coupon.discount_value
        row.expiry_date = to_db(coupon.expiry_date)
        row.max_uses_total = coupon.max_uses_total
        row.max_uses_per_user = coupon.max_uses_per_user
        row.applicable_account_types_json = json.dumps(sorted(coupon.applicable_account_types))
        row.applicable_user_ids_json = json.dumps(sorted(coupon.applicable_user_ids))
        row.min_order_amount_cents = coupon.min_order_amount_cents
        row.is_active = coupon.is_active
        row.description = coupon.description
        row.created_by = coupon.created_by

    def _to_domain(self, row: CouponRow) -> Coupon:
        """Convert ORM model to domain model."""
        return Coupon(
            coupon_id=row.coupon_id,
            code=row.code,
            discount_type=DiscountType(row.discount_type),
            discount_value=row.discount_value,
            expiry_date=from_db(row.expiry_date),
            max_uses_total=row.max_uses_total,
            max_uses_per_user=row.max_uses_per_user,
            applicable_account_types=frozenset(json.loads(row.applicable_account_types_json)),
            applicable_user_ids=frozenset(json.loads(row.applicable_user_ids_json)),
            min_order_amount_cents=row.min_order_amount_cents,
            is_active=row.is_active,
            description=row.description,
            created_by=row.created_by,
            created_at=from_db(row.created_at),
        )


def redemption_to_domain(row: CouponRedemptionRow) -> CouponRedemption:
    return CouponRedemption(
        redemption_id=row.redemption_id,
        coupon_id=row.coupon_id,
        user_id=row.user_id,
        order_id=row.order_id,
        discount_applied_cents=row.discount_applied_cents,
        redeemed_at=from_db(row.redeemed_at),
    )
