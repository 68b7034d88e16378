"""
Time-series fetcher for raw device readings.

Builds one range query over device_readings joined to devices, enforcing
company and device type isolation, the optional hierarchy device filter, and a
presence filter requiring at least one of the needed fields in a JSON object
field map. Rows are ordered
by timestamp, then serial number, then device id, before the limit applies, so
the limit is global across the device set rather than per device.

CHANGELOG:
- 2026-10-18: Restrict to object field maps; non-object JSON reads as empty
  (STORY-034)
- 2026-10-18: Initial creation (STORY-027)

TODO:
- None
"""

import logging
from collections.abc import Collection, Mapping
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.dialects.postgresql import array
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models import Device, DeviceReading
from src.errors import DataSourceError
from src.metrics.models import Reading, TimeRange

logger = logging.getLogger(__name__)


def _field_map(value: Any) -> Mapping[str, Any]:
    """Return the stored field map, or an empty one for non-object JSON."""
    return value if isinstance(value, Mapping) else {}


def build_readings_query(
    device_ids: Collection[str] | None,
    company_id: str,
    device_type_id: str,
    required_fields: Collection[str],
    time_range: TimeRange,
    limit: int,
) -> Select:
    """Build the ordered, limited range query for readings.

    Args:
        device_ids: Device filter from the hierarchy, or None for all devices
            of the company and device type.
        company_id: Authenticated company.
        device_type_id: Device type to restrict to.
        required_fields: Fields of which at least one must be present.
        time_range: Half-open time window.
        limit: Maximum number of rows across all devices.

    Returns:
        Select: The SQLAlchemy statement.
    """
    stmt = (
        select(
            DeviceReading.device_id,
            DeviceReading.ts,
            DeviceReading.serial_number,
            DeviceReading.fields,
        )
        .join(Device, Device.id == DeviceReading.device_id)
        .where(Device.company_id == company_id)
        .where(Device.device_type_id == device_type_id)
        .where(DeviceReading.ts >= time_range.start)
        .where(DeviceReading.ts < time_range.end)
    )
    if device_ids is not None:
        stmt = stmt.where(DeviceReading.device_id.in_(sorted(device_ids)))
    if required_fields:
        # ?| also matches array elements, so only JSON objects qualify.
        stmt = stmt.where(func.jsonb_typeof(DeviceReading.fields) == "object").where(
            DeviceReading.fields.has_any(array(sorted(required_fields)))
        )
    return stmt.order_by(
        DeviceReading.ts.asc(),
        DeviceReading.serial_number.asc(),
        DeviceReading.device_id.asc(),
    ).limit(limit)


async def fetch_readings(
    db: AsyncSession,
    device_ids: Collection[str] | None,
    company_id: str,
    device_type_id: str,
    required_fields: Collection[str],
    time_range: TimeRange,
    limit: int,
) -> list[Reading]:
    """Fetch ordered raw readings for evaluation.

    Field maps are returned unmodified; no computation happens here.

    Args:
        db: Async database session.
        device_ids: Device filter, or None for no hierarchy restriction. An
            empty collection short-circuits to an empty result.
        company_id: Authenticated company.
        device_type_id: Device type to restrict to.
        required_fields: Presence filter fields.
        time_range: Half-open time window.
        limit: Global row limit.

    Returns:
        list[Reading]: Readings ordered by (timestamp, serial number, device id).

    Raises:
        DataSourceError: If the reading store is unreachable or the query fails.
    """
    if device_ids is not None and not device_ids:
        return []

    stmt = build_readings_query(
        device_ids, company_id, device_type_id, required_fields, time_range, limit
    )
    try:
        result = await db.execute(stmt)
        rows = result.mappings().all()
    except (SQLAlchemyError, OSError) as exc:
        raise DataSourceError(f"Reading query failed: {exc}") from exc

    logger.debug(
        "Fetched %d reading(s) for company=%s device_type=%s fields=%s",
        len(rows),
        company_id,
        device_type_id,
        sorted(required_fields),
    )
    return [
        Reading(
            device_id=row["device_id"],
            timestamp=row["ts"],
            serial_number=row["serial_number"],
            fields=_field_map(row["fields"]),
        )
        for row in rows
    ]
