"""SQL-backed coupon store with an atomic conditional reservation."""

import logging
from typing import Any

from sqlalchemy import exists, func, insert, literal, or_, select
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ...core.exceptions import NotFoundError, PersistenceError, ReservationFailed
from ...core.retry import RetryConfig, with_retry_sync
from ...coupons.models import (
    Coupon,
    CouponRedemption,
    ReservationResult,
    ReservationStatus,
)
from ...coupons.store import exceeded_cap
from ..schema import CouponRedemptionRow, CouponRow
from ..transaction import session_scope
from ..utils import to_db
from .coupon_repository import CouponRepository

logger = logging.getLogger(__name__)

R = CouponRedemptionRow


def _is_lock_contention(error: OperationalError) -> bool:
    message = str(error.orig).lower()
    return "locked" in message or "busy" in message


class SqlCouponStore:
    """CouponStore over SQLAlchemy.

    ``reserve`` issues one ``INSERT ... SELECT ... WHERE`` whose predicate
    re-counts the ledger, so the cap check and the insert are one statement.
    On SQLite that statement holds the database write lock; on server
    databases the coupon row is locked with ``SELECT ... FOR UPDATE`` first.
    The unique ``(coupon_id, order_id)`` constraint backs the idempotency check.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Any],
        retry_config: RetryConfig | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.retry_config = retry_config or RetryConfig(
            retryable_exceptions=(PersistenceError,)
        )

    def create(self, coupon: Coupon) -> Coupon:
        with session_scope(self.session_factory) as session:
            return CouponRepository(session).create(coupon)

    def set_active(self, coupon_id: str, is_active: bool) -> Coupon:
        with session_scope(self.session_factory) as session:
            return CouponRepository(session).set_active(coupon_id, is_active)

    def get(self, coupon_id: str) -> Coupon | None:
        with self.session_factory() as session:
            return CouponRepository(session).get(coupon_id)

    def get_by_code(self, code: str) -> Coupon | None:
        with self.session_factory() as session:
            return CouponRepository(session).get_by_code(code)

    def find_redemption(self, coupon_id: str, order_id: str) -> CouponRedemption | None:
        with self.session_factory() as session:
            return CouponRepository(session).find_redemption(coupon_id, order_id)

    def count_redemptions(self, coupon_id: str, user_id: str | None = None) -> int:
        with self.session_factory() as session:
            return CouponRepository(session).count_redemptions(coupon_id, user_id)

    def list_redemptions(self, coupon_id: str) -> list[CouponRedemption]:
        with self.session_factory() as session:
            return CouponRepository(session).list_redemptions(coupon_id)

    def reserve(
        self, coupon_id: str, user_id: str, order_id: str, discount_applied_cents: int
    ) -> ReservationResult:
        redemption = CouponRedemption(
            coupon_id=coupon_id,
            user_id=user_id,
            order_id=order_id,
            discount_applied_cents=discount_applied_cents,
        )
        try:
            return with_retry_sync(
                lambda: self._reserve_once(redemption),
                config=self.retry_config,
                operation_name=f"reserve coupon {coupon_id}",
            )
        except PersistenceError as e:
            raise ReservationFailed(
                f"Database stayed locked while reserving coupon {coupon_id}",
                details={"coupon_id": coupon_id, "order_id": order_id},
            ) from e

    def _reserve_once(self, redemption: CouponRedemption) -> ReservationResult:
        try:
            with session_scope(self.session_factory) as session:
                return self._reserve_in(session, redemption)
        except IntegrityError:
            # A concurrent request for the same order won the unique constraint.
            existing = self.find_redemption(redemption.coupon_id, redemption.order_id)
            if existing is None:
                raise
            return ReservationResult(
                status=ReservationStatus.RESERVED, redemption=existing, replayed=True
            )
        except OperationalError as e:
            if _is_lock_contention(e):
                raise PersistenceError(f"Database busy: {e.orig}") from e
            raise ReservationFailed(f"Database error during reservation: {e.orig}") from e
        except SQLAlchemyError as e:
            raise ReservationFailed(f"Database error during reservation: {e}") from e

    def _reserve_in(self, session: Session, redemption: CouponRedemption) -> ReservationResult:
        coupon_id = redemption.coupon_id

        if session.get_bind().dialect.name != "sqlite":
            session.execute(
                select(CouponRow.coupon_id)
                .where(CouponRow.coupon_id == coupon_id)
                .with_for_update()
            )

        inserted = session.execute(self._conditional_insert(redemption)).rowcount
        if inserted == 1:
            return ReservationResult(status=ReservationStatus.RESERVED, redemption=redemption)

        repo = CouponRepository(session)
        existing = repo.find_redemption(coupon_id, redemption.order_id)
        if existing is not None:
            return ReservationResult(
                status=ReservationStatus.RESERVED, redemption=existing, replayed=True
            )

        coupon = repo.get(coupon_id)
        if coupon is None:
            raise NotFoundError(f"Coupon {coupon_id} not found")

        blocked_by = exceeded_cap(
            coupon,
            repo.count_redemptions(coupon_id),
            repo.count_redemptions(coupon_id, redemption.user_id),
        )
        return ReservationResult(status=ReservationStatus.CAP_EXCEEDED, exceeded_cap=blocked_by)

    def _conditional_insert(self, redemption: CouponRedemption) -> Any:
        coupon_id = redemption.coupon_id
        total_uses = (
            select(func.count()).select_from(R).where(R.coupon_id == coupon_id).scalar_subquery()
        )
        user_uses = (
            select(func.count())
            .select_from(R)
            .where(R.coupon_id == coupon_id, R.user_id == redemption.user_id)
            .scalar_subquery()
        )
        already_redeemed = exists().where(
            R.coupon_id == coupon_id, R.order_id == redemption.order_id
        )

        source = select(
            literal(redemption.redemption_id, R.redemption_id.type),
            CouponRow.coupon_id,
            literal(redemption.user_id, R.user_id.type),
            literal(redemption.order_id, R.order_id.type),
            literal(redemption.discount_applied_cents, R.discount_applied_cents.type),
            literal(to_db(redemption.redeemed_at), R.redeemed_at.type),
        ).where(
            CouponRow.coupon_id == coupon_id,
            or_(CouponRow.max_uses_total.is_(None), total_uses < CouponRow.max_uses_total),
            or_(CouponRow.max_uses_per_user.is_(None), user_uses < CouponRow.max_uses_per_user),
            ~already_redeemed,
        )
        return insert(R).from_select(
            [
                R.redemption_id,
                R.coupon_id,
                R.user_id,
                R.order_id,
                R.discount_applied_cents,
                R.redeemed_at,
            ],
            source,
        )
