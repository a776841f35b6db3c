"""Rate-card version storage contract and an in-process implementation."""

import logging
import threading
from datetime import UTC, datetime
from typing import Protocol

from ..core.exceptions import ConfigError, NotFoundError
from .rate_card import RateCardConfig

logger = logging.getLogger(__name__)


class RateCardStore(Protocol):
    """Supplies published rate-card versions. Versions are append-only."""

    def publish(self, config: RateCardConfig) -> None: ...

    def get(self, version: int) -> RateCardConfig: ...

    def get_active(self, at: datetime | None = None) -> RateCardConfig: ...

    def list_versions(self) -> list[int]: ...


def select_active(configs: list[RateCardConfig], at: datetime | None) -> RateCardConfig:
    """Pick the highest version already effective at ``at`` (default: now)."""
    if at is None:
        at = datetime.now(UTC)
    effective = [c for c in configs if c.is_effective_at(at)]
    if not effective:
        raise ConfigError(
            "No rate card is effective at the requested time",
            details={"at": at.isoformat()},
        )
    return max(effective, key=lambda c: c.version)


class InMemoryRateCardStore:
    """Thread-safe in-process rate-card store."""

    def __init__(self, configs: list[RateCardConfig] | None = None) -> None:
        self._lock = threading.Lock()
        self._configs: dict[int, RateCardConfig] = {}
        for config in configs or []:
            self.publish(config)

    def publish(self, config: RateCardConfig) -> None:
        with self._lock:
            latest = max(self._configs, default=0)
            if config.version <= latest:
                raise ConfigError(
                    f"Rate card version {config.version} is not newer than {latest}",
                    details={"version": config.version, "latest": latest},
                )
            self._configs[config.version] = config
        logger.info(
            "Published rate card version %d effective %s",
            config.version,
            config.effective_from.isoformat(),
        )

    def get(self, version: int) -> RateCardConfig:
        with self._lock:
            config = self._configs.get(version)
        if config is None:
            raise NotFoundError(f"Rate card version {version} not found")
        return config

    def get_active(self, at: datetime | None = None) -> RateCardConfig:
        with self._lock:
            configs = list(self._configs.values())
        return select_active(configs, at)

    def list_versions(self) -> list[int]:
        with self._lock:
            return sorted(self._configs)
