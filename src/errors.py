"""
Error taxonomy for widget series queries.

Every failure the series pipeline can surface derives from SeriesQueryError so
route handlers can translate them to HTTP responses in one place. Validation
and not-found errors abort a request before any fetch; data-source errors are
isolated per variable by the pipeline.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-021)

TODO:
- None
"""


class SeriesQueryError(Exception):
    """Base class for all series query failures.

    Attributes:
        error_type: Stable machine-readable identifier used in responses.
    """

    error_type = "series_query_error"


class QueryValidationError(SeriesQueryError):
    """Malformed request: bad time range, bad limit, or unresolvable tag."""

    error_type = "validation_error"


class HierarchyNotFoundError(SeriesQueryError):
    """The requested hierarchy node does not exist for the company."""

    error_type = "not_found"

    def __init__(self, hierarchy_id: str) -> None:
        super().__init__(f"Hierarchy '{hierarchy_id}' not found.")
        self.hierarchy_id = hierarchy_id


class DataSourceError(SeriesQueryError):
    """The reading store is unreachable or a range query failed.

    Safe to retry by the caller.
    """

    error_type = "data_source_error"


class QueryTimeoutError(SeriesQueryError):
    """The request exceeded its time budget and in-flight fetches were cancelled."""

    error_type = "timeout"


class ComputationError(SeriesQueryError):
    """A derived metric could not be computed.

    The built-in evaluator coerces every anomaly to 0 and never raises this;
    it exists for callers that plug in stricter evaluation.
    """

    error_type = "computation_error"
