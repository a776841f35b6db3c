"""Log formatters for JSON and human-readable output."""

import json
import logging
from datetime import UTC, datetime

CONTEXT_FIELDS = (
    "coupon_code",
    "order_id",
    "user_id",
    "rate_card_version",
    "correlation_id",
)

# Shown after the message by DevFormatter; the order ID is already the correlation ID.
DEV_FIELDS = ("coupon_code", "user_id", "rate_card_version")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log shipping."""

    def __init__(self, environment: str = "development"):
        super().__init__()
        self.environment = environment

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "env": self.environment,
        }
        log_data.update(
            (field, getattr(record, field))
            for field in CONTEXT_FIELDS
            if getattr(record, field, "-") != "-"
        )

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class DevFormatter(logging.Formatter):
    """Single-line format for terminals, with the correlation ID up front."""

    def __init__(self) -> None:
        super().__init__(
            fmt=(
                "%(asctime)s [%(levelname)8s] [corr=%(correlation_id)s] "
                "%(name)s: %(message)s%(context_suffix)s"
            ),
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = "-"
        pairs = [
            f"{field}={getattr(record, field)}" for field in DEV_FIELDS if hasattr(record, field)
        ]
        record.context_suffix = f" [{' '.join(pairs)}]" if pairs else ""
        return super().format(record)
