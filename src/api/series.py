"""
POST /v1/series endpoint for dashboard widget time series.

Accepts a widget request listing raw or derived variables, an optional
hierarchy selector, a time range and a row limit, and returns one ordered
series per variable keyed by variable name in request order. A variable whose
fetch failed carries an ``error`` marker next to an empty ``data`` list.

CHANGELOG:
- 2026-10-18: Replace frame rollups with widget series over raw and derived
  variables (STORY-028)
- 2026-02-14: Initial creation (STORY-012)

TODO:
- None
"""

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from src.api.deps import get_company_id, get_registry, get_session_factory, get_settings
from src.config import ServiceSettings
from src.errors import (
    DataSourceError,
    HierarchyNotFoundError,
    QueryTimeoutError,
    QueryValidationError,
    SeriesQueryError,
)
from src.metrics.formulas import FormulaRegistry
from src.metrics.models import SeriesResult, VariableRequest
from src.services.series import SeriesQuery, SessionFactory, query_widget_series
from src.services.time_range import parse_time_range

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["series"])


# ---------------------------------------------------------------------------
# Pydantic request / response models
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class VariableIn(_CamelModel):
    """One requested variable."""

    variable_name: str = Field(alias="variableName", min_length=1)
    variable_tag: str = Field(alias="variableTag")
    unit: str = ""


class SeriesRequest(_CamelModel):
    """Widget series request body.

    Attributes:
        widget_id: Requesting widget, echoed back.
        variables: Variables to return, in output order.
        hierarchy_id: Optional hierarchy node restricting the devices.
        time_range: ``24h``-style relative range or ``start/end`` ISO pair.
        limit: Global row limit; defaults to DEFAULT_SERIES_LIMIT.
    """

    widget_id: str = Field(alias="widgetId")
    variables: list[VariableIn]
    hierarchy_id: str | None = Field(default=None, alias="hierarchyId")
    time_range: str = Field(alias="timeRange")
    limit: int | None = None


class PointOut(_CamelModel):
    """Single series value."""

    timestamp: datetime
    serial_number: str = Field(alias="serialNumber")
    value: float


class ErrorOut(BaseModel):
    """Per-variable failure marker."""

    type: str
    message: str


class SeriesOut(_CamelModel):
    """Ordered values for one variable."""

    data: list[PointOut]
    unit: str
    property_name: str = Field(alias="propertyName")
    error: ErrorOut | None = None


class SeriesResponse(_CamelModel):
    """Response model for the series endpoint."""

    widget_id: str = Field(alias="widgetId")
    series_data: dict[str, SeriesOut] = Field(alias="seriesData")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _series_out(result: SeriesResult) -> SeriesOut:
    return SeriesOut(
        data=[
            PointOut(
                timestamp=point.timestamp,
                serial_number=point.serial_number,
                value=point.value,
            )
            for point in result.data
        ],
        unit=result.unit,
        property_name=result.property_name,
        error=(
            ErrorOut(type=result.error.type, message=result.error.message)
            if result.error is not None
            else None
        ),
    )


def _http_error(exc: SeriesQueryError) -> HTTPException:
    """Translate a pipeline error into the client-facing HTTP error."""
    if isinstance(exc, QueryValidationError):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, HierarchyNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, DataSourceError):
        return HTTPException(status_code=503, detail=str(exc))
    if isinstance(exc, QueryTimeoutError):
        return HTTPException(status_code=504, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


# ---------------------------------------------------------------------------
# Route
# ---------------------------------------------------------------------------


@router.post(
    "/series",
    response_model=SeriesResponse,
    response_model_exclude_none=True,
)
async def post_series(
    payload: SeriesRequest,
    company_id: Annotated[str, Depends(get_company_id)],
    session_factory: Annotated[SessionFactory, Depends(get_session_factory)],
    settings: Annotated[ServiceSettings, Depends(get_settings)],
    registry: Annotated[FormulaRegistry, Depends(get_registry)],
    device_type_id: Annotated[
        str, Query(min_length=1, description="Validated device type identifier.")
    ],
) -> SeriesResponse:
    """Return one ordered series per requested variable.

    Args:
        payload: Widget request body.
        company_id: Authenticated company from the bearer token.
        session_factory: Opens one DB session per variable task.
        settings: Service settings validated at startup.
        registry: Formula registry.
        device_type_id: Device type the widget targets.

    Returns:
        SeriesResponse: Widget id and series keyed by variable name.

    Raises:
        HTTPException: 422 for malformed requests, 404 for an unknown
            hierarchy, 503 when the hierarchy cannot be loaded, 504 on timeout.
    """
    try:
        query = SeriesQuery(
            variables=tuple(
                VariableRequest(
                    variable_name=variable.variable_name,
                    variable_tag=variable.variable_tag,
                    unit=variable.unit,
                )
                for variable in payload.variables
            ),
            time_range=parse_time_range(payload.time_range),
            limit=payload.limit if payload.limit is not None else settings.default_series_limit,
            hierarchy_id=payload.hierarchy_id,
        )
        results = await query_widget_series(
            session_factory,
            query,
            company_id=company_id,
            device_type_id=device_type_id,
            registry=registry,
            known_raw_fields=settings.known_raw_field_set,
            max_limit=settings.max_series_limit,
            timeout_s=settings.query_timeout_s,
        )
    except SeriesQueryError as exc:
        logger.info(
            "Series request for widget %s rejected: %s",
            payload.widget_id,
            exc,
            extra={"company_id": company_id, "hierarchy_id": payload.hierarchy_id},
        )
        raise _http_error(exc) from exc

    return SeriesResponse(
        widget_id=payload.widget_id,
        series_data={name: _series_out(result) for name, result in results.items()},
    )
