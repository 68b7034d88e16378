"""
Test helpers shared across test modules.

Builders for reading rows and mocked AsyncSession objects, plus a session
factory stand-in for the concurrent series pipeline.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-028)
"""

from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

from src.metrics.models import Reading, TimeRange

AUTH_HEADER = {"Authorization": "Bearer test-token-abc"}
COMPANY_ID = "company-001"
DEVICE_TYPE_ID = "mpfm"

T0 = datetime(2026, 10, 18, 12, 0, 0, tzinfo=UTC)
RANGE = TimeRange(start=T0 - timedelta(days=1), end=T0 + timedelta(days=1))


def make_reading_row(
    device_id: str = "dev-1",
    ts: datetime = T0,
    serial_number: str = "SN-1",
    **fields: object,
) -> dict:
    """Build a reading row dict mimicking a DB result mapping."""
    return {
        "device_id": device_id,
        "ts": ts,
        "serial_number": serial_number,
        "fields": dict(fields),
    }


def make_reading(
    device_id: str = "dev-1",
    ts: datetime = T0,
    serial_number: str = "SN-1",
    **fields: object,
) -> Reading:
    """Build a domain Reading."""
    return Reading(
        device_id=device_id,
        timestamp=ts,
        serial_number=serial_number,
        fields=dict(fields),
    )


def mock_db_with_rows(rows: list[dict]) -> AsyncMock:
    """Create a mock AsyncSession whose execute returns the given mapping rows."""
    session = AsyncMock()
    result = MagicMock()
    result.mappings.return_value.all.return_value = rows
    result.mappings.return_value.first.return_value = rows[0] if rows else None
    session.execute = AsyncMock(return_value=result)
    return session


def mock_db_with_results(*row_sets: list[tuple]) -> AsyncMock:
    """Create a mock AsyncSession whose successive execute calls return tuples."""
    session = AsyncMock()
    results = []
    for rows in row_sets:
        result = MagicMock()
        result.all.return_value = rows
        results.append(result)
    session.execute = AsyncMock(side_effect=results)
    return session


def session_factory_for(*sessions: AsyncMock) -> Callable:
    """Build a session factory handing out the given sessions in order.

    The last session is reused once the others are used up.
    """
    queue = list(sessions)

    @asynccontextmanager
    async def _factory():
        session = queue.pop(0) if len(queue) > 1 else queue[0]
        yield session

    return _factory


def override_session_factory(factory: Callable) -> Callable:
    """Create a dependency override for get_session_factory."""

    def _override():
        return factory

    return _override


def override_db(mock_session: AsyncMock) -> Callable:
    """Create a dependency override for get_db that yields mock_session."""

    async def _override():
        yield mock_session

    return _override
