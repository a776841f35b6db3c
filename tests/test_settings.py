import pytest
from pydantic import ValidationError

from delivery_pricing.core.exceptions import PersistenceError, ReservationFailed
from delivery_pricing.settings import (
    DatabaseSettings,
    PricingSettings,
    ReservationSettings,
    Settings,
    get_settings,
)


@pytest.mark.unit
class TestPricingSettings:
    def test_defaults(self):
        settings = PricingSettings()
        assert settings.rate_card_path is None
        assert settings.log_level == "INFO"
        assert settings.log_format == "text"

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("PRICING_RATE_CARD_PATH", "config/rate_card.json")
        monkeypatch.setenv("PRICING_LOG_FORMAT", "json")

        settings = PricingSettings()
        assert settings.rate_card_path == "config/rate_card.json"
        assert settings.log_format == "json"

    def test_rate_card_path_must_be_json(self):
        with pytest.raises(ValidationError):
            PricingSettings(rate_card_path="rates.yaml")

    def test_log_level_validated(self):
        with pytest.raises(ValidationError):
            PricingSettings(log_level="TRACE")


@pytest.mark.unit
class TestDatabaseSettings:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("DB_PATH", "/tmp/other.db")
        monkeypatch.setenv("DB_BUSY_TIMEOUT_SECONDS", "5")

        settings = DatabaseSettings()
        assert settings.path == "/tmp/other.db"
        assert settings.busy_timeout_seconds == 5.0

    def test_validation(self):
        with pytest.raises(ValidationError):
            DatabaseSettings(busy_timeout_seconds=-1)


@pytest.mark.unit
class TestReservationSettings:
    def test_to_retry_config(self):
        config = ReservationSettings(max_attempts=4, base_delay=0.01).to_retry_config()

        assert config.max_attempts == 4
        assert config.base_delay == 0.01
        assert config.retryable_exceptions == (PersistenceError,)
        assert not issubclass(ReservationFailed, config.retryable_exceptions)

    def test_validation(self):
        with pytest.raises(ValidationError):
            ReservationSettings(max_attempts=0)


@pytest.mark.unit
def test_get_settings_aggregates(monkeypatch):
    monkeypatch.setenv("RESERVATION_MAX_ATTEMPTS", "7")

    settings = get_settings()

    assert isinstance(settings, Settings)
    assert settings.reservation.max_attempts == 7
    assert settings.database.path == "data/pricing.db"
