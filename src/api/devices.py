"""
GET /v1/devices/{device_id}/latest endpoint for a device's most recent reading.

Serves the newest stored reading of one device of the caller's company, using
a company-scoped Redis cache with configurable TTL to spare the reading store
when dashboards poll. Raw field maps are returned as stored.

CHANGELOG:
- 2026-10-18: Pass the configured Redis URL to the cache (STORY-034)
- 2026-10-18: Serve company-scoped latest reading of flow devices (STORY-031)
- 2026-02-14: Initial creation (STORY-011)

TODO:
- None
"""

import json
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_company_id, get_db, get_settings
from src.cache.redis_client import latest_cache_key, read_cached, write_cached
from src.config import ServiceSettings
from src.db.models import Device, DeviceReading

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["devices"])


def _reading_to_dict(row: Any) -> dict:
    """Serialise a latest-reading row to a JSON-compatible dict."""
    return {
        "deviceId": row["device_id"],
        "timestamp": row["ts"].isoformat(),
        "serialNumber": row["serial_number"],
        "fields": dict(row["fields"] or {}),
    }


@router.get("/devices/{device_id}/latest")
async def latest_reading(
    device_id: Annotated[str, Path(min_length=1)],
    company_id: Annotated[str, Depends(get_company_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[ServiceSettings, Depends(get_settings)],
) -> dict:
    """Return the most recent reading for a device of the caller's company.

    Args:
        device_id: The device to query.
        company_id: Authenticated company from the bearer token.
        db: Async database session.
        settings: Service settings (Redis URL, cache TTL).

    Returns:
        dict: deviceId, timestamp, serialNumber and the raw field map.

    Raises:
        HTTPException: 404 if the device is not the company's or has no data.
        HTTPException: 503 if the reading store query fails.
    """
    cache_key = latest_cache_key(company_id, device_id)
    cached = await read_cached(settings.redis_url, cache_key)
    if cached is not None:
        return json.loads(cached)

    stmt = (
        select(
            DeviceReading.device_id,
            DeviceReading.ts,
            DeviceReading.serial_number,
            DeviceReading.fields,
        )
        .join(Device, Device.id == DeviceReading.device_id)
        .where(Device.company_id == company_id)
        .where(DeviceReading.device_id == device_id)
        .order_by(DeviceReading.ts.desc())
        .limit(1)
    )
    try:
        result = await db.execute(stmt)
        row = result.mappings().first()
    except SQLAlchemyError as exc:
        logger.warning(
            "Latest reading query failed",
            extra={"device_id": device_id, "company_id": company_id},
            exc_info=True,
        )
        raise HTTPException(status_code=503, detail="Reading store unavailable.") from exc

    if row is None:
        raise HTTPException(
            status_code=404,
            detail=f"No data found for device_id '{device_id}'.",
        )

    reading = _reading_to_dict(row)
    await write_cached(
        settings.redis_url, cache_key, json.dumps(reading), settings.cache_ttl_s
    )
    return reading
