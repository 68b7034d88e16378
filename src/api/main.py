"""
FastAPI application entry point for the flow-meter series API.

Provides the root health endpoint and serves as the application factory.
Settings are validated at startup; COMPANY_TOKENS are parsed into a
CompanyBearerAuth instance and the formula registry is installed on app.state
for route handlers.

CHANGELOG:
- 2026-10-18: Validate ServiceSettings, configure logging, install formula
  registry and company auth; register series, formulas and devices routers
  (STORY-028)
- 2026-02-14: Register health router (STORY-015)
- 2026-02-14: Initial creation (STORY-007)
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from src.api.devices import router as devices_router
from src.api.formulas import router as formulas_router
from src.api.health import router as health_router
from src.api.series import router as series_router
from src.auth.bearer import CompanyBearerAuth, parse_company_tokens
from src.config import ServiceSettings
from src.db.session import dispose_engine, init_engine
from src.logging_config import configure_logging
from src.metrics.formulas import DEFAULT_REGISTRY

logger = logging.getLogger(__name__)


def _load_settings() -> ServiceSettings:
    """Load and validate service settings at startup.

    Returns:
        ServiceSettings: Validated configuration.

    Raises:
        RuntimeError: If a required variable is missing or a value is invalid.
    """
    try:
        return ServiceSettings()
    except ValidationError as exc:
        problems = sorted(
            {str(error["loc"][0]).upper() for error in exc.errors() if error["loc"]}
        )
        raise RuntimeError(
            f"Invalid service configuration: {', '.join(problems) or exc}"
        ) from exc


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup validation and engine teardown."""
    settings = _load_settings()
    configure_logging(settings.log_level, settings.log_format)
    app.state.settings = settings

    token_map = parse_company_tokens(settings.company_tokens)
    if not token_map:
        raise RuntimeError(
            "COMPANY_TOKENS parsed but contains no valid token:company_id entries"
        )
    app.state.auth = CompanyBearerAuth(token_map)
    app.state.registry = DEFAULT_REGISTRY
    init_engine(settings.database_url)

    logger.info(
        "Series API ready: %d company token(s), formulas=%s",
        len(token_map),
        ",".join(DEFAULT_REGISTRY.tags()),
    )
    yield
    await dispose_engine()
    logger.info("Series API shutting down")


app = FastAPI(
    title="Flow-Meter Series API",
    description="Raw and derived time series of flow-measurement devices for dashboards.",
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(health_router)
app.include_router(series_router)
app.include_router(formulas_router)
app.include_router(devices_router)


@app.get("/")
async def root() -> dict:
    """Root health check endpoint.

    Returns:
        dict: JSON object with application status.
    """
    return {"status": "ok"}
