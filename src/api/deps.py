"""
FastAPI dependency injection providers.

Provides database sessions, the session factory for concurrent pipelines,
service settings, and the authenticated company for route handlers.

CHANGELOG:
- 2026-10-18: Add session factory, settings and company auth providers
  (STORY-028)
- 2026-02-14: Initial creation (STORY-007)
"""

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import ServiceSettings
from src.db.session import get_async_session
from src.db.session import get_session_factory as _get_session_factory
from src.metrics.formulas import FormulaRegistry
from src.services.series import SessionFactory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session.

    Yields:
        AsyncSession: An async SQLAlchemy session.
    """
    async for session in get_async_session():
        yield session


def get_session_factory() -> SessionFactory:
    """Return the factory used to open one session per pipeline task."""
    return _get_session_factory()


def get_settings(request: Request) -> ServiceSettings:
    """Return the settings validated at startup."""
    return request.app.state.settings


async def get_company_id(request: Request) -> str:
    """Extract the authenticated company_id via CompanyBearerAuth on app.state.

    Args:
        request: The incoming FastAPI request.

    Returns:
        str: The authenticated company_id.
    """
    return await request.app.state.auth.verify(request)


def get_registry(request: Request) -> FormulaRegistry:
    """Return the formula registry installed at startup."""
    return request.app.state.registry
