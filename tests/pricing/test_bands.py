import pytest

from delivery_pricing.core.exceptions import ConfigError, InvalidInputError
from delivery_pricing.pricing import DistanceBand, DistanceBandClassifier

BANDS = [
    DistanceBand(km_max=5, multiplier=1.0, label="0-5 km"),
    DistanceBand(km_max=10, multiplier=1.05, label="5-10 km"),
    DistanceBand(km_max=999, multiplier=1.08, label=">10 km"),
]


@pytest.mark.unit
class TestDistanceBandClassifier:
    @pytest.fixture
    def classifier(self):
        return DistanceBandClassifier()

    @pytest.mark.parametrize(
        ("distance_km", "label"),
        [
            (0, "0-5 km"),
            (4.99, "0-5 km"),
            (5, "0-5 km"),
            (5.0001, "5-10 km"),
            (10, "5-10 km"),
            (10.5, ">10 km"),
            (999, ">10 km"),
        ],
    )
    def test_first_band_covering_distance(self, classifier, distance_km, label):
        assert classifier.classify(distance_km, BANDS).label == label

    def test_distance_beyond_last_band_uses_last_band(self, classifier):
        assert classifier.classify(5000, BANDS) is BANDS[-1]

    def test_empty_bands_rejected(self, classifier):
        with pytest.raises(ConfigError):
            classifier.classify(3, [])

    def test_unsorted_bands_rejected(self, classifier):
        with pytest.raises(ConfigError, match="sorted"):
            classifier.classify(3, [BANDS[1], BANDS[0]])

    def test_duplicate_bounds_rejected(self, classifier):
        with pytest.raises(ConfigError):
            classifier.classify(3, [BANDS[0], BANDS[0]])

    def test_negative_distance_rejected(self, classifier):
        with pytest.raises(InvalidInputError):
            classifier.classify(-0.1, BANDS)

    def test_single_band_covers_everything(self, classifier):
        only = [DistanceBand(km_max=1, multiplier=1.2, label="flat")]
        assert classifier.classify(0, only) is only[0]
        assert classifier.classify(50, only) is only[0]
