"""Logging filters that keep bearer credentials out of log output."""

from __future__ import annotations

import logging
import re

_REDACTION = "**REDACTED**"

_SENSITIVE_PATTERN = re.compile(
    r"(Authorization:\s*Bearer\s+[\w\.-]+"
    r"|\"?access_token\"?\s*[:=]\s*\"?[\w\.-]+\"?"
    r"|eyJ[\w-]+\.[\w-]+\.[\w-]+)",
    re.IGNORECASE,
)


def scrub(text: str) -> str:
    """Replace bearer tokens and raw JWTs in ``text``."""
    return _SENSITIVE_PATTERN.sub(_REDACTION, text)


class SensitiveFilter(logging.Filter):
    """Scrub the message and any string arguments of a log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = scrub(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(
                scrub(arg) if isinstance(arg, str) else arg for arg in record.args
            )
        return True


__all__ = ["SensitiveFilter", "scrub"]
