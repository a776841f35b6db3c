from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from delivery_pricing.coupons import Coupon, DiscountType, InMemoryCouponStore
from delivery_pricing.db import init_database
from delivery_pricing.pricing import DistanceBand, RateCardConfig

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def fixtures_path() -> Path:
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def scenario_rate_card() -> RateCardConfig:
    """Literal rate card used by the pinned fare regression scenarios."""
    return RateCardConfig(
        version=1,
        effective_from=datetime(2025, 10, 1, tzinfo=UTC),
        currency="CAD",
        base_fare_cents=299,
        per_km_cents=120,
        per_min_cents=30,
        min_fare_cents=699,
        size_multiplier={"M": 1.15},
        bands=(
            DistanceBand(km_max=5, multiplier=1.00, label="0-5 km"),
            DistanceBand(km_max=999, multiplier=1.55, label=">5 km"),
        ),
        tax_enabled=False,
        tax_rate=0.0,
    )


@pytest.fixture
def taxed_rate_card() -> RateCardConfig:
    """Three bands, four sizes, 5% tax."""
    return RateCardConfig(
        version=2,
        effective_from=datetime(2025, 11, 1, tzinfo=UTC),
        currency="CAD",
        base_fare_cents=299,
        per_km_cents=120,
        per_min_cents=30,
        min_fare_cents=699,
        size_multiplier={"XS": 0.9, "S": 1.0, "M": 1.15, "L": 1.35},
        bands=(
            DistanceBand(km_max=5, multiplier=1.0, label="0-5 km"),
            DistanceBand(km_max=10, multiplier=1.25, label="5-10 km"),
            DistanceBand(km_max=999, multiplier=1.55, label=">10 km"),
        ),
        tax_enabled=True,
        tax_rate=0.05,
    )


@pytest.fixture
def make_coupon() -> Callable[..., Coupon]:
    """Factory for coupons with sensible defaults."""

    def _make(**overrides: Any) -> Coupon:
        data: dict[str, Any] = {
            "code": "SAVE20",
            "discount_type": DiscountType.PERCENTAGE,
            "discount_value": 20,
            "created_by": "admin-1",
        }
        data.update(overrides)
        return Coupon(**data)

    return _make


@pytest.fixture
def coupon_store() -> InMemoryCouponStore:
    return InMemoryCouponStore()


@pytest.fixture
def temp_sqlite_db(tmp_path: Path) -> Path:
    """Temporary SQLite database for persistence tests."""
    return tmp_path / "test_pricing.db"


@pytest.fixture
def session_factory(temp_sqlite_db: Path):
    return init_database(temp_sqlite_db, busy_timeout_seconds=30.0)
