import logging

import pytest

from delivery_pricing.core.exceptions import InvalidInputError
from delivery_pricing.pricing import FareBreakdown, FareCalculator


class TestFareCalculator:
    @pytest.fixture
    def calculator(self):
        return FareCalculator()

    def test_fare_short_trip_scenario(self, calculator, scenario_rate_card):
        breakdown = calculator.calculate(
            distance_km=3, duration_minutes=10, package_size="M", rate_card=scenario_rate_card
        )

        assert breakdown.base_fare == 299
        assert breakdown.distance_fare == 360
        assert breakdown.time_fare == 300
        assert breakdown.band_multiplier == pytest.approx(1.00)
        assert breakdown.band_label == "0-5 km"
        assert breakdown.size_multiplier == pytest.approx(1.15)
        # (299 + 360 + 300) * 1.00 * 1.15 = 1102.85
        assert breakdown.subtotal == 1103
        assert breakdown.tax == 0
        assert breakdown.total == 1103

    def test_fare_long_trip_uses_overflow_band(self, calculator, scenario_rate_card):
        breakdown = calculator.calculate(25, 10, "M", scenario_rate_card)

        assert breakdown.distance_fare == 3000
        assert breakdown.band_multiplier == pytest.approx(1.55)
        assert breakdown.band_label == ">5 km"
        # (299 + 3000 + 300) * 1.55 * 1.15 = 6415.2175
        assert breakdown.subtotal == 6415
        assert breakdown.total == 6415
        assert breakdown.total > scenario_rate_card.min_fare_cents

    def test_fare_minimum_enforced(self, calculator, scenario_rate_card):
        breakdown = calculator.calculate(0, 0, "M", scenario_rate_card)

        assert breakdown.subtotal == 344
        assert breakdown.total == 699

    def test_band_upper_bound_is_inclusive(self, calculator, scenario_rate_card):
        at_edge = calculator.calculate(5, 10, "M", scenario_rate_card)
        past_edge = calculator.calculate(5.01, 10, "M", scenario_rate_card)

        assert at_edge.band_multiplier == pytest.approx(1.00)
        assert at_edge.subtotal == 1379
        assert past_edge.band_multiplier == pytest.approx(1.55)
        assert past_edge.distance_fare == 601
        assert past_edge.subtotal == 2139

    def test_fractional_distance_rounds_half_up(self, calculator, scenario_rate_card):
        breakdown = calculator.calculate(2.345, 0.5, "M", scenario_rate_card)

        assert breakdown.distance_fare == 281
        assert breakdown.time_fare == 15

    def test_fare_with_tax(self, calculator, taxed_rate_card):
        breakdown = calculator.calculate(7, 20, "S", taxed_rate_card)

        assert breakdown.distance_fare == 840
        assert breakdown.time_fare == 600
        assert breakdown.band_label == "5-10 km"
        # 1739 * 1.25 * 1.0 = 2173.75
        assert breakdown.subtotal == 2174
        # 2174 * 0.05 = 108.7
        assert breakdown.tax == 109
        assert breakdown.total == 2283
        assert breakdown.display_total() == "CAD $22.83"

    def test_unknown_size_priced_as_medium(self, calculator, taxed_rate_card, caplog):
        with caplog.at_level(logging.WARNING, logger="delivery_pricing.pricing.fare"):
            breakdown = calculator.calculate(3, 10, "XXL", taxed_rate_card)

        assert breakdown.package_size == "M"
        assert breakdown.size_multiplier == pytest.approx(1.15)
        assert "Unknown package size" in caplog.text

    def test_size_tag_is_case_insensitive(self, calculator, taxed_rate_card):
        breakdown = calculator.calculate(3, 10, " l ", taxed_rate_card)

        assert breakdown.package_size == "L"
        assert breakdown.size_multiplier == pytest.approx(1.35)

    def test_breakdown_records_inputs(self, calculator, taxed_rate_card):
        breakdown = calculator.calculate(7.5, 18.25, "S", taxed_rate_card)

        assert isinstance(breakdown, FareBreakdown)
        assert breakdown.distance_km == 7.5
        assert breakdown.duration_minutes == 18.25
        assert breakdown.rate_card_version == 2
        assert breakdown.currency == "CAD"

    @pytest.mark.parametrize(
        ("distance_km", "duration_minutes"),
        [(-1, 10), (5, -0.5), (float("nan"), 10), (5, float("inf"))],
    )
    def test_invalid_inputs_rejected(
        self, calculator, scenario_rate_card, distance_km, duration_minutes
    ):
        with pytest.raises(InvalidInputError):
            calculator.calculate(distance_km, duration_minutes, "M", scenario_rate_card)


@pytest.mark.critical
class TestFareInvariants:
    @pytest.fixture
    def calculator(self):
        return FareCalculator()

    def test_fare_deterministic(self, calculator, taxed_rate_card):
        first = calculator.calculate(12.34, 27.5, "L", taxed_rate_card)

        for _ in range(50):
            assert calculator.calculate(12.34, 27.5, "L", taxed_rate_card) == first

    def test_total_never_below_minimum(self, calculator, taxed_rate_card):
        for tenths in range(0, 400, 7):
            for minutes in (0, 1, 5, 30):
                breakdown = calculator.calculate(tenths / 10, minutes, "XS", taxed_rate_card)
                assert breakdown.total >= taxed_rate_card.min_fare_cents

    def test_total_is_subtotal_plus_tax_above_minimum(self, calculator, taxed_rate_card):
        for km in (1, 4.2, 9.9, 30):
            breakdown = calculator.calculate(km, 25, "M", taxed_rate_card)
            assert breakdown.total == max(
                breakdown.subtotal + breakdown.tax, taxed_rate_card.min_fare_cents
            )

    def test_band_multiplier_monotonic_in_distance(self, calculator, taxed_rate_card):
        previous = 0.0
        for tenths in range(0, 300):
            breakdown = calculator.calculate(tenths / 10, 10, "M", taxed_rate_card)
            assert breakdown.band_multiplier >= previous
            previous = breakdown.band_multiplier


class TestFareRange:
    def test_range_uses_smallest_and_largest_size(self, taxed_rate_card):
        fare_range = FareCalculator().estimate_range(7, 20, taxed_rate_card)

        assert fare_range.min_fare.package_size == "XS"
        assert fare_range.max_fare.package_size == "L"
        # 1739 * 1.25 * 0.9 = 1956.375, tax 97.8
        assert fare_range.min_fare.total == 2054
        # 1739 * 1.25 * 1.35 = 2934.5625, tax 146.75
        assert fare_range.max_fare.total == 3082
        assert fare_range.display() == ("CAD $20.54", "CAD $30.82")
        assert fare_range.currency == "CAD"
