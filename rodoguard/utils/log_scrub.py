"""Logging filter that strips personal data from log output.

Diagnostic logs end up in files and terminals outside the protected store,
so messages and their arguments are passed through PII redaction before any
handler formats them.
"""

from __future__ import annotations

import logging
from typing import Any

from rodoguard.app.adapters.pii_regex import redact_text

_MAX_DEPTH = 3


def scrub_value(value: Any, depth: int = 0) -> Any:
    """Redact PII from strings nested in lists, tuples and dicts."""
    if depth > _MAX_DEPTH:
        return value
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, int) and not isinstance(value, bool):
        text = str(value)
        redacted = redact_text(text)
        return value if redacted == text else redacted
    if isinstance(value, list):
        return [scrub_value(item, depth + 1) for item in value]
    if isinstance(value, tuple):
        return tuple(scrub_value(item, depth + 1) for item in value)
    if isinstance(value, dict):
        return {key: scrub_value(item, depth + 1) for key, item in value.items()}
    return value


class PiiScrubbingFilter(logging.Filter):
    """Redact PII from the formatted log message; never drops records.

    The message is rendered with its arguments first, so numeric arguments
    such as ``%d`` are covered. Records whose arguments do not fit the format
    string keep their format error, with message and arguments scrubbed.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError, KeyError):
            if isinstance(record.msg, str):
                record.msg = redact_text(record.msg)
            record.args = scrub_value(record.args)
            return True
        record.msg = redact_text(message)
        record.args = None
        return True


def install_pii_scrubbing(target: logging.Logger | logging.Handler | None = None) -> PiiScrubbingFilter:
    """Attach a :class:`PiiScrubbingFilter` to ``target``.

    With no target, the filter is added to every handler of the root logger,
    which also covers records propagated from child loggers. Targets that
    already carry a scrubbing filter are left as they are.
    """
    scrubber = PiiScrubbingFilter()
    targets = logging.getLogger().handlers if target is None else [target]
    for item in targets:
        if not any(isinstance(f, PiiScrubbingFilter) for f in item.filters):
            item.addFilter(scrubber)
    return scrubber
