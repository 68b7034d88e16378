"""
Health endpoints for the series API.

GET /health is a liveness check returning {"status": "ok"} without touching
any backend. GET /health/ready additionally runs ``SELECT 1`` against the
reading store and answers 503 when it is unreachable. Neither requires
authentication.

CHANGELOG:
- 2026-10-18: Add readiness check against the reading store (STORY-033)
- 2026-02-14: Initial creation (STORY-015)

TODO:
- None
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    """Return a simple liveness status."""
    return {"status": "ok"}


@router.get("/health/ready")
async def ready(db: Annotated[AsyncSession, Depends(get_db)]) -> JSONResponse:
    """Report whether the reading store answers queries."""
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        logger.warning("Readiness check failed", exc_info=True)
        return JSONResponse(status_code=503, content={"status": "unavailable"})
    return JSONResponse(status_code=200, content={"status": "ok"})
