"""
Widget series pipeline: resolve, fetch, evaluate and assemble.

Each requested variable flows independently through the field resolver, the
reading fetcher and, for computed variables, the evaluator. Variables run as
concurrent asyncio tasks with one database session each; the hierarchy is
expanded once beforehand and shared read-only.

Error policy is per-variable isolation: validation and not-found errors abort
the request before any fetch, while a DataSourceError only marks the variable
it happened in. The whole request is bounded by a timeout that cancels every
in-flight fetch, so a variable is either complete or not delivered at all.

CHANGELOG:
- 2026-10-18: Replace continuous-aggregate frame queries with widget series
  pipeline (STORY-028)
- 2026-02-14: Initial creation (STORY-012)

TODO:
- None
"""

import asyncio
import logging
import time
from collections.abc import Callable, Collection, Iterable, Mapping, Sequence
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from src.errors import DataSourceError, QueryTimeoutError, QueryValidationError
from src.metrics.evaluator import evaluate, raw_value
from src.metrics.formulas import DEFAULT_REGISTRY, FormulaRegistry
from src.metrics.models import (
    Reading,
    ResultPoint,
    SeriesError,
    SeriesResult,
    TimeRange,
    VariableRequest,
)
from src.metrics.resolver import ComputedField, ResolvedField, resolve
from src.services.hierarchy import expand_hierarchy
from src.services.readings import fetch_readings

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


@dataclass(frozen=True)
class SeriesQuery:
    """A validated widget series request.

    Attributes:
        variables: Requested variables, in output order.
        time_range: Half-open time window.
        limit: Global row limit per variable.
        hierarchy_id: Optional hierarchy node restricting the device set.
    """

    variables: tuple[VariableRequest, ...]
    time_range: TimeRange
    limit: int
    hierarchy_id: str | None = None


def validate_query(query: SeriesQuery, max_limit: int | None = None) -> None:
    """Reject malformed queries before anything is fetched.

    Raises:
        QueryValidationError: On an empty variable list, duplicate variable
            names, or a limit outside ``1..max_limit``.
    """
    if not query.variables:
        raise QueryValidationError("At least one variable is required.")
    if query.limit <= 0:
        raise QueryValidationError(f"Limit must be positive, got {query.limit}.")
    if max_limit is not None and query.limit > max_limit:
        raise QueryValidationError(
            f"Limit {query.limit} exceeds the maximum of {max_limit}."
        )
    names = [variable.variable_name for variable in query.variables]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise QueryValidationError(f"Duplicate variable names: {duplicates}.")


def _ordering_key(reading: Reading) -> tuple:
    return (reading.timestamp, reading.serial_number, reading.device_id)


def build_series(
    variable: VariableRequest,
    resolved: ResolvedField,
    readings: Iterable[Reading],
) -> SeriesResult:
    """Turn fetched readings into one variable's ordered series.

    Computed variables produce a point for every reading. Raw variables skip
    readings where the field is missing or not numeric.
    """
    points: list[ResultPoint] = []
    for reading in sorted(readings, key=_ordering_key):
        if isinstance(resolved, ComputedField):
            value: float | None = evaluate(resolved.formula, reading.fields)
        else:
            value = raw_value(reading.fields, resolved.field_name)
        if value is None:
            continue
        points.append(
            ResultPoint(
                timestamp=reading.timestamp,
                serial_number=reading.serial_number,
                value=value,
            )
        )
    return SeriesResult(
        property_name=variable.variable_name,
        unit=variable.unit,
        data=tuple(points),
    )


def assemble(
    requests: Sequence[VariableRequest],
    results: Mapping[str, SeriesResult],
) -> dict[str, SeriesResult]:
    """Key results by variable name, in request order."""
    return {request.variable_name: results[request.variable_name] for request in requests}


async def _query_variable(
    session_factory: SessionFactory,
    variable: VariableRequest,
    resolved: ResolvedField,
    device_ids: frozenset[str] | None,
    company_id: str,
    device_type_id: str,
    query: SeriesQuery,
) -> SeriesResult:
    """Fetch and evaluate one variable, isolating data-source failures."""
    try:
        async with session_factory() as db:
            readings = await fetch_readings(
                db,
                device_ids,
                company_id,
                device_type_id,
                resolved.required_fields,
                query.time_range,
                query.limit,
            )
    except DataSourceError as exc:
        logger.warning(
            "Data source failure for variable %s",
            variable.variable_name,
            extra={"variable": variable.variable_name, "company_id": company_id},
            exc_info=True,
        )
        return SeriesResult(
            property_name=variable.variable_name,
            unit=variable.unit,
            error=SeriesError(type=exc.error_type, message=str(exc)),
        )

    series = build_series(variable, resolved, readings)
    logger.debug(
        "Variable %s (%s): %d reading(s) -> %d point(s)",
        variable.variable_name,
        variable.variable_tag,
        len(readings),
        len(series.data),
    )
    return series


async def query_widget_series(
    session_factory: SessionFactory,
    query: SeriesQuery,
    *,
    company_id: str,
    device_type_id: str,
    registry: FormulaRegistry = DEFAULT_REGISTRY,
    known_raw_fields: Collection[str] = (),
    max_limit: int | None = None,
    timeout_s: float | None = None,
) -> dict[str, SeriesResult]:
    """Run a widget series query end to end.

    Args:
        session_factory: Produces one AsyncSession per unit of work.
        query: The widget request.
        company_id: Authenticated company.
        device_type_id: Validated device type.
        registry: Formula registry used by the resolver.
        known_raw_fields: Optional allow-list for raw variable tags.
        max_limit: Upper bound for ``query.limit``.
        timeout_s: Budget for the whole request, or None for no bound.

    Returns:
        dict[str, SeriesResult]: Results keyed by variable name, in request order.

    Raises:
        QueryValidationError: If the request is malformed.
        HierarchyNotFoundError: If the hierarchy node does not exist.
        DataSourceError: If the hierarchy cannot be loaded.
        QueryTimeoutError: If the request exceeds ``timeout_s``.
    """
    validate_query(query, max_limit)
    resolved = [
        resolve(variable.variable_tag, registry, known_raw_fields)
        for variable in query.variables
    ]

    started = time.perf_counter()
    try:
        async with asyncio.timeout(timeout_s):
            device_ids: frozenset[str] | None = None
            if query.hierarchy_id is not None:
                async with session_factory() as db:
                    device_ids = await expand_hierarchy(db, query.hierarchy_id, company_id)

            async with asyncio.TaskGroup() as group:
                tasks = [
                    group.create_task(
                        _query_variable(
                            session_factory,
                            variable,
                            field,
                            device_ids,
                            company_id,
                            device_type_id,
                            query,
                        )
                    )
                    for variable, field in zip(query.variables, resolved, strict=True)
                ]
    except TimeoutError:
        raise QueryTimeoutError(
            f"Series query exceeded the {timeout_s}s time budget."
        ) from None

    results = {task.result().property_name: task.result() for task in tasks}
    duration_ms = round((time.perf_counter() - started) * 1000, 1)
    logger.info(
        "Series query completed: %d variable(s) in %.1f ms",
        len(results),
        duration_ms,
        extra={
            "company_id": company_id,
            "hierarchy_id": query.hierarchy_id,
            "duration_ms": duration_ms,
        },
    )
    return assemble(query.variables, results)
