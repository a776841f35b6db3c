"""Per-request logging fields carried in a context variable.

Fields set with ``log_context`` follow the code that set them, including
into nested calls, and never leak into other threads.
"""

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from types import MappingProxyType
from typing import Any

_fields: ContextVar[Mapping[str, Any]] = ContextVar("log_fields", default=MappingProxyType({}))


def current_fields() -> Mapping[str, Any]:
    return _fields.get()


class ContextFilter(logging.Filter):
    """Copies the active context fields onto records that don't set them."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _fields.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Attach ``fields`` to every record logged inside the block.

    Nested blocks see the union of their fields; leaving a block restores the
    enclosing set.
    """
    token = _fields.set(MappingProxyType({**_fields.get(), **fields}))
    try:
        yield
    finally:
        _fields.reset(token)


@contextmanager
def log_redemption_context(coupon_code: str, order_id: str, **fields: Any) -> Iterator[None]:
    fields.setdefault("correlation_id", order_id)
    with log_context(coupon_code=coupon_code, order_id=order_id, **fields):
        yield
