"""Coupon storage contract and an in-process implementation.

Implementations must make ``reserve`` a single indivisible step: the cap
checks, the idempotency check and the ledger insert happen together or not
at all.
"""

import threading
from typing import Protocol

from ..core.exceptions import DuplicateCouponError, NotFoundError
from .models import (
    Coupon,
    CouponRedemption,
    ReservationResult,
    ReservationStatus,
    normalize_code,
)

TOTAL_CAP = "total"
PER_USER_CAP = "per_user"


class CouponStore(Protocol):
    def get(self, coupon_id: str) -> Coupon | None: ...

    def get_by_code(self, code: str) -> Coupon | None: ...

    def find_redemption(self, coupon_id: str, order_id: str) -> CouponRedemption | None: ...

    def count_redemptions(self, coupon_id: str, user_id: str | None = None) -> int: ...

    def reserve(
        self, coupon_id: str, user_id: str, order_id: str, discount_applied_cents: int
    ) -> ReservationResult:
        """Insert a ledger entry only if both caps still allow it.

        Returns the existing entry (``replayed=True``) when the order already
        holds one, ``CAP_EXCEEDED`` when a cap is full, and raises
        ``NotFoundError`` for an unknown coupon.
        """
        ...


def exceeded_cap(coupon: Coupon, total_uses: int, user_uses: int) -> str | None:
    """Name the cap that blocks one more use, if any."""
    if coupon.max_uses_total is not None and total_uses >= coupon.max_uses_total:
        return TOTAL_CAP
    if coupon.max_uses_per_user is not None and user_uses >= coupon.max_uses_per_user:
        return PER_USER_CAP
    return None


class InMemoryCouponStore:
    """Thread-safe in-process coupon store.

    Thread-safe: the whole check-and-insert of ``reserve`` runs under one lock.
    """

    def __init__(self, coupons: list[Coupon] | None = None) -> None:
        self._lock = threading.Lock()
        self._coupons: dict[str, Coupon] = {}
        self._ids_by_code: dict[str, str] = {}
        self._ledger: list[CouponRedemption] = []
        self._by_order: dict[tuple[str, str], CouponRedemption] = {}
        for coupon in coupons or []:
            self.add(coupon)

    def add(self, coupon: Coupon) -> Coupon:
        with self._lock:
            if coupon.code in self._ids_by_code:
                raise DuplicateCouponError(f"Coupon code already exists: {coupon.code}")
            self._coupons[coupon.coupon_id] = coupon
            self._ids_by_code[coupon.code] = coupon.coupon_id
        return coupon

    def set_active(self, coupon_id: str, is_active: bool) -> Coupon:
        with self._lock:
            coupon = self._coupons.get(coupon_id)
            if coupon is None:
                raise NotFoundError(f"Coupon {coupon_id} not found")
            updated = coupon.model_copy(update={"is_active": is_active})
            self._coupons[coupon_id] = updated
        return updated

    def get(self, coupon_id: str) -> Coupon | None:
        with self._lock:
            return self._coupons.get(coupon_id)

    def get_by_code(self, code: str) -> Coupon | None:
        with self._lock:
            coupon_id = self._ids_by_code.get(normalize_code(code))
            return self._coupons.get(coupon_id) if coupon_id else None

    def find_redemption(self, coupon_id: str, order_id: str) -> CouponRedemption | None:
        with self._lock:
            return self._by_order.get((coupon_id, order_id))

    def count_redemptions(self, coupon_id: str, user_id: str | None = None) -> int:
        with self._lock:
            return self._count(coupon_id, user_id)

    def list_redemptions(self, coupon_id: str) -> list[CouponRedemption]:
        with self._lock:
            return [r for r in self._ledger if r.coupon_id == coupon_id]

    def reserve(
        self, coupon_id: str, user_id: str, order_id: str, discount_applied_cents: int
    ) -> ReservationResult:
        with self._lock:
            coupon = self._coupons.get(coupon_id)
            if coupon is None:
                raise NotFoundError(f"Coupon {coupon_id} not found")

            existing = self._by_order.get((coupon_id, order_id))
            if existing is not None:
                return ReservationResult(
                    status=ReservationStatus.RESERVED, redemption=existing, replayed=True
                )

            blocked_by = exceeded_cap(
                coupon, self._count(coupon_id), self._count(coupon_id, user_id)
            )
            if blocked_by is not None:
                return ReservationResult(
                    status=ReservationStatus.CAP_EXCEEDED, exceeded_cap=blocked_by
                )

            redemption = CouponRedemption(
                coupon_id=coupon_id,
                user_id=user_id,
                order_id=order_id,
                discount_applied_cents=discount_applied_cents,
            )
            self._ledger.append(redemption)
            self._by_order[(coupon_id, order_id)] = redemption
            return ReservationResult(status=ReservationStatus.RESERVED, redemption=redemption)

    def _count(self, coupon_id: str, user_id: str | None = None) -> int:
        return sum(
            1
            for r in self._ledger
            if r.coupon_id == coupon_id and (user_id is None or r.user_id == user_id)
        )
