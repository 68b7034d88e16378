"""
Structured logging setup for the series API.

Configures the root logger once with either a JSON formatter or a plain text
formatter writing to stderr. Selected ``extra=`` keys passed by the pipeline
(variable, company_id, ...) are carried into the output.

CHANGELOG:
- 2026-10-18: Initial creation, adapted from the edge daemon JSON formatter
  (STORY-029)

TODO:
- None
"""

import json
import logging
import sys
from datetime import UTC, datetime

_EXTRA_KEYS = (
    "variable",
    "company_id",
    "hierarchy_id",
    "device_id",
    "rows",
    "duration_ms",
)

_configured = False


class JsonFormatter(logging.Formatter):
    """Minimal JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in _EXTRA_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


class TextFormatter(logging.Formatter):
    """Line formatter appending extra context as ``key=value`` pairs."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = [
            f"{key}={getattr(record, key)}"
            for key in _EXTRA_KEYS
            if getattr(record, key, None) is not None
        ]
        if context:
            return f"{message} | {' '.join(context)}"
        return message


def configure_logging(level: str = "INFO", fmt: str = "json", force: bool = False) -> None:
    """Configure root logging for the API process.

    Args:
        level: Root log level name.
        fmt: ``json`` or ``text``.
        force: Reconfigure even if logging was already set up.
    """
    global _configured  # noqa: PLW0603
    if _configured and not force:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if fmt == "json" else TextFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    _configured = True
