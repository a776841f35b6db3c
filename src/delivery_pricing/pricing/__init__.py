"""Fare computation: rate cards, distance bands and fare assembly."""

from .bands import DistanceBandClassifier
from .fare import FareBreakdown, FareCalculator, FareRange
from .rate_card import DistanceBand, RateCardConfig, load_rate_card, parse_rate_card
from .store import InMemoryRateCardStore, RateCardStore

__all__ = [
    "DistanceBandClassifier",
    "FareBreakdown",
    "FareCalculator",
    "FareRange",
    "DistanceBand",
    "RateCardConfig",
    "load_rate_card",
    "parse_rate_card",
    "InMemoryRateCardStore",
    "RateCardStore",
]
