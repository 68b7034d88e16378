"""
Domain types for the derived metric evaluation core.

These are plain frozen dataclasses, built fresh per request and discarded once
the response is assembled. ORM entities live in src/db/models.py; the fetcher
converts rows into Reading instances before evaluation.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-021)

TODO:
- None
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class VariableRequest:
    """One requested variable of a widget query.

    Attributes:
        variable_name: Caller-chosen output key.
        variable_tag: Raw field name or registered formula tag.
        unit: Display unit, passed through unmodified.
    """

    variable_name: str
    variable_tag: str
    unit: str = ""


@dataclass(frozen=True)
class TimeRange:
    """Half-open UTC interval ``[start, end)``."""

    start: datetime
    end: datetime


@dataclass(frozen=True)
class Reading:
    """A stored device reading with its raw field map.

    Attributes:
        device_id: Identifier of the reporting device.
        timestamp: Measurement timestamp (UTC).
        serial_number: Device serial number, used as ordering tie-breaker.
        fields: Mapping of field name to value. Values may be missing or null.
    """

    device_id: str
    timestamp: datetime
    serial_number: str
    fields: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ResultPoint:
    """One output value of a series."""

    timestamp: datetime
    serial_number: str
    value: float


@dataclass(frozen=True)
class SeriesError:
    """Marker attached to a variable that failed in isolation."""

    type: str
    message: str


@dataclass(frozen=True)
class SeriesResult:
    """Ordered value sequence for one requested variable.

    Attributes:
        property_name: The variable_name of the originating request.
        unit: Display unit from the request.
        data: Points sorted by timestamp, then serial number.
        error: Set when the variable failed; data is empty in that case.
    """

    property_name: str
    unit: str
    data: tuple[ResultPoint, ...] = ()
    error: SeriesError | None = None
