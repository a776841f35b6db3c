"""PII masking for log output."""

import logging
import re

PII_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+"), "[EMAIL]"),
    (re.compile(r"(?<!\d)\d{3}[-.\s]?\d{3}[-.\s]?\d{4}(?!\d)"), "[PHONE]"),
)


def mask_pii(text: str) -> str:
    for pattern, replacement in PII_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class PIIFilter(logging.Filter):
    """Masks e-mail addresses and phone numbers in the rendered message.

    Masking runs on the message after ``%`` interpolation, so values passed as
    arguments are covered too. A masked record keeps the rendered text and
    drops its arguments.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = mask_pii(message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True
