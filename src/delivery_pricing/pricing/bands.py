"""Distance band classification."""

import math
from collections.abc import Sequence

from ..core.exceptions import ConfigError, InvalidInputError
from .rate_card import DistanceBand


class DistanceBandClassifier:
    """Maps a trip distance onto the rate card's band table."""

    def classify(self, distance_km: float, bands: Sequence[DistanceBand]) -> DistanceBand:
        """Return the first band whose ``km_max`` covers the distance.

        Distances beyond the last band fall into the last band.
        """
        if not bands:
            raise ConfigError("At least one distance band is required")
        for previous, band in zip(bands, bands[1:], strict=False):
            if band.km_max <= previous.km_max:
                raise ConfigError(
                    "Distance bands must be sorted by km_max",
                    details={"km_max": [b.km_max for b in bands]},
                )
        if math.isnan(distance_km) or distance_km < 0:
            raise InvalidInputError(
                "Distance must be non-negative", details={"distance_km": distance_km}
            )

        for band in bands:
            if distance_km <= band.km_max:
                return band
        return bands[-1]
