"""Fare assembly from trip geometry and a rate card."""

import logging
import math

from pydantic import BaseModel, Field

from ..core.exceptions import InvalidInputError
from ..core.money import format_cents, multiply_cents
from .bands import DistanceBandClassifier
from .rate_card import DEFAULT_SIZE, RateCardConfig

logger = logging.getLogger(__name__)


class FareBreakdown(BaseModel):
    """Detailed breakdown of fare components, all money in integer cents."""

    base_fare: int = Field(ge=0)
    distance_fare: int = Field(ge=0)
    time_fare: int = Field(ge=0)
    band_multiplier: float = Field(gt=0)
    band_label: str
    size_multiplier: float = Field(gt=0)
    package_size: str
    subtotal: int = Field(ge=0)
    tax: int = Field(ge=0)
    total: int = Field(ge=0)
    currency: str
    rate_card_version: int
    distance_km: float
    duration_minutes: float

    def display_total(self) -> str:
        return format_cents(self.total, self.currency)


class FareRange(BaseModel):
    """Cheapest and most expensive fare for a trip across package sizes."""

    min_fare: FareBreakdown
    max_fare: FareBreakdown

    @property
    def currency(self) -> str:
        return self.min_fare.currency

    def display(self) -> tuple[str, str]:
        return self.min_fare.display_total(), self.max_fare.display_total()


def _check_non_negative(name: str, value: float) -> None:
    if not math.isfinite(value) or value < 0:
        raise InvalidInputError(f"{name} must be non-negative", details={name: value})


class FareCalculator:
    """Calculates delivery fares from distance, duration and package size.

    Stateless: one instance may be shared across threads. The same inputs
    against the same rate-card version always produce the same breakdown.
    """

    def __init__(self, classifier: DistanceBandClassifier | None = None) -> None:
        self.classifier = classifier or DistanceBandClassifier()

    def calculate(
        self,
        distance_km: float,
        duration_minutes: float,
        package_size: str,
        rate_card: RateCardConfig,
    ) -> FareBreakdown:
        """
        Calculate fare for a trip.

        Each derived term is rounded half-up exactly once; the minimum fare is
        a floor on the taxed total.
        """
        _check_non_negative("distance_km", distance_km)
        _check_non_negative("duration_minutes", duration_minutes)

        band = self.classifier.classify(distance_km, rate_card.bands)
        size, size_multiplier = self._resolve_size(package_size, rate_card)

        base_fare = rate_card.base_fare_cents
        distance_fare = multiply_cents(distance_km, rate_card.per_km_cents)
        time_fare = multiply_cents(duration_minutes, rate_card.per_min_cents)

        subtotal = multiply_cents(
            base_fare + distance_fare + time_fare, band.multiplier, size_multiplier
        )
        tax = multiply_cents(subtotal, rate_card.tax_rate) if rate_card.tax_enabled else 0
        total = max(subtotal + tax, rate_card.min_fare_cents)

        return FareBreakdown(
            base_fare=base_fare,
            distance_fare=distance_fare,
            time_fare=time_fare,
            band_multiplier=band.multiplier,
            band_label=band.label,
            size_multiplier=size_multiplier,
            package_size=size,
            subtotal=subtotal,
            tax=tax,
            total=total,
            currency=rate_card.currency,
            rate_card_version=rate_card.version,
            distance_km=distance_km,
            duration_minutes=duration_minutes,
        )

    def estimate_range(
        self,
        distance_km: float,
        duration_minutes: float,
        rate_card: RateCardConfig,
    ) -> FareRange:
        """Price the trip at the cheapest and dearest configured package sizes."""
        by_factor = sorted(rate_card.size_multiplier.items(), key=lambda item: (item[1], item[0]))
        smallest, largest = by_factor[0][0], by_factor[-1][0]
        return FareRange(
            min_fare=self.calculate(distance_km, duration_minutes, smallest, rate_card),
            max_fare=self.calculate(distance_km, duration_minutes, largest, rate_card),
        )

    def _resolve_size(self, package_size: str, rate_card: RateCardConfig) -> tuple[str, float]:
        size = (package_size or "").strip().upper()
        factor = rate_card.size_multiplier.get(size)
        if factor is None:
            logger.warning(
                "Unknown package size %r, pricing as %s",
                package_size,
                DEFAULT_SIZE,
                extra={"rate_card_version": rate_card.version},
            )
            return DEFAULT_SIZE, rate_card.size_multiplier[DEFAULT_SIZE]
        return size, factor
