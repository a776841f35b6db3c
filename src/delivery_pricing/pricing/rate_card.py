"""Versioned rate-card models and loaders."""

import json
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..core.exceptions import ConfigError

DEFAULT_SIZE = "M"


class DistanceBand(BaseModel):
    """A distance tier; applies to distances up to and including ``km_max``."""

    model_config = ConfigDict(frozen=True)

    km_max: float = Field(ge=0)
    multiplier: float = Field(gt=0)
    label: str = ""


class RateCardConfig(BaseModel):
    """One published version of the pricing configuration.

    Immutable once built. The last band is the overflow band: distances beyond
    its ``km_max`` are still priced with it.
    """

    model_config = ConfigDict(frozen=True)

    version: int = Field(ge=1)
    effective_from: datetime
    currency: str = Field(min_length=3, max_length=3)
    base_fare_cents: int = Field(ge=0)
    per_km_cents: int = Field(ge=0)
    per_min_cents: int = Field(ge=0)
    min_fare_cents: int = Field(default=0, ge=0)
    size_multiplier: dict[str, float]
    bands: tuple[DistanceBand, ...]
    tax_enabled: bool = False
    tax_rate: float = Field(default=0.0, ge=0.0, lt=1.0)
    created_by: str | None = None

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()

    @field_validator("effective_from")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @field_validator("size_multiplier")
    @classmethod
    def check_size_multiplier(cls, v: dict[str, float]) -> dict[str, float]:
        normalized = {size.strip().upper(): factor for size, factor in v.items()}
        if DEFAULT_SIZE not in normalized:
            raise ValueError(f"size_multiplier must define the default size '{DEFAULT_SIZE}'")
        for size, factor in normalized.items():
            if factor <= 0:
                raise ValueError(f"Invalid size multiplier for {size}: {factor}")
        return normalized

    @model_validator(mode="after")
    def check_bands(self) -> Self:
        if not self.bands:
            raise ValueError("At least one distance band is required")
        previous: DistanceBand | None = None
        for band in self.bands:
            if previous is not None:
                if band.km_max <= previous.km_max:
                    raise ValueError("Distance bands must be sorted by km_max")
                if band.multiplier < previous.multiplier:
                    raise ValueError(
                        f"Band multiplier decreases from {previous.multiplier} "
                        f"to {band.multiplier} at km_max={band.km_max}"
                    )
            previous = band
        return self

    def is_effective_at(self, at: datetime) -> bool:
        if at.tzinfo is None:
            at = at.replace(tzinfo=UTC)
        return self.effective_from <= at


def _from_envelope(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Flatten the operator export format into RateCardConfig fields.

    The export nests prices under ``payload.rateCard`` with ``*_cents`` keys
    and tax under ``payload.tax``.
    """
    body = payload.get("payload", {})
    rate_card = body.get("rateCard", {})
    tax = body.get("tax", {})
    return {
        "version": payload.get("version"),
        "effective_from": payload.get("effective_from"),
        "created_by": payload.get("created_by"),
        "currency": rate_card.get("currency"),
        "base_fare_cents": rate_card.get("base_cents"),
        "per_km_cents": rate_card.get("per_km_cents"),
        "per_min_cents": rate_card.get("per_min_cents"),
        "min_fare_cents": rate_card.get("min_fare_cents", 0),
        "size_multiplier": rate_card.get("size_multiplier"),
        "bands": body.get("bands"),
        "tax_enabled": tax.get("enabled", False),
        "tax_rate": tax.get("rate", 0.0),
    }


def parse_rate_card(payload: Mapping[str, Any]) -> RateCardConfig:
    """Build a RateCardConfig, reporting every problem as one ConfigError."""
    data = _from_envelope(payload) if "payload" in payload else dict(payload)
    try:
        return RateCardConfig.model_validate(data)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc']) or 'rate_card'}: {err['msg']}"
            for err in e.errors()
        ]
        raise ConfigError(
            f"Invalid rate card: {'; '.join(errors)}",
            details={"errors": errors, "version": data.get("version")},
        ) from e


def load_rate_card(path: str | Path) -> RateCardConfig:
    """Read and validate a rate card from a JSON file."""
    path = Path(path)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigError(f"Rate card file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Rate card file is not valid JSON: {path}: {e}") from e
    if not isinstance(payload, dict):
        raise ConfigError(f"Rate card file must contain a JSON object: {path}")
    return parse_rate_card(payload)
