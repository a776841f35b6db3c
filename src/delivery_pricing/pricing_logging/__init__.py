"""Structured logging for the pricing core."""

from .context import ContextFilter, current_fields, log_context, log_redemption_context
from .filters import PIIFilter, mask_pii
from .formatters import DevFormatter, JSONFormatter
from .setup import setup_logging

__all__ = [
    "ContextFilter",
    "current_fields",
    "log_context",
    "log_redemption_context",
    "PIIFilter",
    "mask_pii",
    "DevFormatter",
    "JSONFormatter",
    "setup_logging",
]
