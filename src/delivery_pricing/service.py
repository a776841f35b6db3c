"""Wiring of the fare engine and coupon redemption behind one facade."""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from .coupons import (
    CouponStore,
    CouponValidator,
    DiscountCalculator,
    RedemptionController,
    RedemptionOutcome,
)
from .db import init_database
from .db.repositories import SqlCouponStore, SqlRateCardStore
from .pricing import FareBreakdown, FareCalculator, FareRange, RateCardStore, load_rate_card
from .pricing_logging import log_context, setup_logging
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class PricingService:
    """Resolves the effective rate card for fares and redeems coupons."""

    rate_cards: RateCardStore
    coupons: CouponStore
    fare_calculator: FareCalculator = field(default_factory=FareCalculator)
    redemption: RedemptionController | None = None

    def __post_init__(self) -> None:
        if self.redemption is None:
            self.redemption = RedemptionController(
                self.coupons, CouponValidator(self.coupons), DiscountCalculator()
            )

    def estimate_fare(
        self,
        distance_km: float,
        duration_minutes: float,
        package_size: str,
        at: datetime | None = None,
        version: int | None = None,
    ) -> FareBreakdown:
        """Price a trip against a pinned version or the card effective at ``at``."""
        rate_card = (
            self.rate_cards.get(version) if version is not None else self.rate_cards.get_active(at)
        )
        with log_context(rate_card_version=rate_card.version):
            breakdown = self.fare_calculator.calculate(
                distance_km, duration_minutes, package_size, rate_card
            )
            logger.debug(
                "Fare %s for %.2f km / %.1f min (%s)",
                breakdown.display_total(),
                distance_km,
                duration_minutes,
                breakdown.band_label,
            )
        return breakdown

    def estimate_fare_range(
        self, distance_km: float, duration_minutes: float, at: datetime | None = None
    ) -> FareRange:
        rate_card = self.rate_cards.get_active(at)
        return self.fare_calculator.estimate_range(distance_km, duration_minutes, rate_card)

    def quote_coupon(
        self,
        code: str,
        user_id: str,
        order_amount_cents: int,
        account_type: str | None = None,
        base_fare_cents: int | None = None,
    ) -> RedemptionOutcome:
        assert self.redemption is not None
        return self.redemption.quote(
            code, user_id, order_amount_cents, account_type, base_fare_cents
        )

    def redeem_coupon(
        self,
        code: str,
        user_id: str,
        order_id: str,
        order_amount_cents: int,
        account_type: str | None = None,
        base_fare_cents: int | None = None,
    ) -> RedemptionOutcome:
        assert self.redemption is not None
        return self.redemption.redeem(
            code, user_id, order_id, order_amount_cents, account_type, base_fare_cents
        )


def create_service(settings: Settings | None = None) -> PricingService:
    """Build a SQLite-backed PricingService from settings."""
    if settings is None:
        settings = get_settings()

    setup_logging(
        level=settings.pricing.log_level,
        json_output=settings.pricing.log_format == "json",
        environment=settings.pricing.environment,
    )

    session_factory = init_database(
        settings.database.path, busy_timeout_seconds=settings.database.busy_timeout_seconds
    )
    rate_cards = SqlRateCardStore(session_factory)
    coupons = SqlCouponStore(session_factory, settings.reservation.to_retry_config())

    if settings.pricing.rate_card_path and not rate_cards.list_versions():
        rate_card = load_rate_card(settings.pricing.rate_card_path)
        rate_cards.publish(rate_card)
        logger.info(
            "Seeded rate card version %d from %s",
            rate_card.version,
            settings.pricing.rate_card_path,
        )

    logger.info("Pricing service ready (database=%s)", settings.database.path)
    return PricingService(rate_cards=rate_cards, coupons=coupons)
