"""
Parsing of widget time range expressions.

Two forms are accepted:

- relative: ``<n><unit>`` ending now, with unit m (minutes), h (hours),
  d (days) or w (weeks), e.g. ``24h`` or ``7d``;
- explicit: ``<start>/<end>`` with ISO 8601 timestamps. Naive timestamps are
  taken as UTC.

CHANGELOG:
- 2026-10-18: Reject oversized relative amounts and out-of-range offsets as
  validation errors (STORY-034)
- 2026-10-18: Initial creation (STORY-024)

TODO:
- None
"""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta

from src.errors import QueryValidationError
from src.metrics.models import TimeRange

_RELATIVE_PATTERN = re.compile(r"^(\d{1,9})\s*([mhdw])$")

_UNIT_SECONDS = {
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 7 * 86400,
}

# Upper bound for relative ranges, roughly ten years.
_MAX_RELATIVE = timedelta(days=3660)


def _parse_timestamp(raw: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        raise QueryValidationError(f"Invalid timestamp '{raw}' in time range.") from None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    try:
        return parsed.astimezone(UTC)
    except OverflowError:
        raise QueryValidationError(f"Timestamp '{raw}' is out of range.") from None


def parse_time_range(expression: str, now: datetime | None = None) -> TimeRange:
    """Parse a time range expression.

    Args:
        expression: Relative (``24h``) or explicit (``start/end``) range.
        now: Reference instant for relative ranges. Defaults to the current
            UTC time.

    Returns:
        TimeRange: The resolved half-open interval.

    Raises:
        QueryValidationError: If the expression is malformed, empty, or its
            start is not before its end.
    """
    text = (expression or "").strip()
    if not text:
        raise QueryValidationError("Time range must not be empty.")

    if "/" in text:
        start_raw, _, end_raw = text.partition("/")
        start = _parse_timestamp(start_raw)
        end = _parse_timestamp(end_raw)
    else:
        match = _RELATIVE_PATTERN.match(text)
        if match is None:
            raise QueryValidationError(
                f"Invalid time range '{expression}'. Use e.g. '24h', '7d' or "
                f"'<ISO start>/<ISO end>'."
            )
        seconds = int(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        if seconds > _MAX_RELATIVE.total_seconds():
            raise QueryValidationError(f"Time range '{expression}' is too long.")
        span = timedelta(seconds=seconds)
        end = now if now is not None else datetime.now(UTC)
        start = end - span

    if start >= end:
        raise QueryValidationError(
            f"Time range '{expression}' must have its start before its end."
        )
    return TimeRange(start=start, end=end)
