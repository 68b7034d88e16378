"""
Service configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
Connection URLs and the company token map are required; everything else has a
default suited to a single-node deployment.

CHANGELOG:
- 2026-10-18: Initial creation, replaces ad-hoc env dict in main (STORY-029)

TODO:
- None
"""

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


class ServiceSettings(BaseSettings):
    """Series API configuration.

    Attributes:
        database_url: Async SQLAlchemy URL of the reading store.
        redis_url: Redis URL for the latest-reading cache.
        company_tokens: Comma-separated ``token:company_id`` pairs.
        default_series_limit: Row limit used when a request omits one.
        max_series_limit: Largest accepted row limit.
        query_timeout_s: Time budget for one series request.
        cache_ttl_s: TTL of cached latest readings.
        known_raw_fields: Optional comma-separated allow-list of raw field
            tags. Empty accepts any valid field name.
        log_level: Root log level.
        log_format: ``json`` or ``text``.
    """

    database_url: str
    redis_url: str
    company_tokens: str
    default_series_limit: int = 1000
    max_series_limit: int = 10000
    query_timeout_s: float = 30.0
    cache_ttl_s: int = 5
    known_raw_fields: str = ""
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("default_series_limit", "max_series_limit")
    @classmethod
    def limits_must_be_positive(cls, v: int) -> int:
        """Validate that series limits are at least 1."""
        if v < 1:
            raise ValueError("Series limits must be >= 1")
        return v

    @field_validator("query_timeout_s")
    @classmethod
    def timeout_must_be_positive(cls, v: float) -> float:
        """Validate that the query timeout is strictly positive."""
        if v <= 0:
            raise ValueError("QUERY_TIMEOUT_S must be > 0")
        return v

    @field_validator("cache_ttl_s")
    @classmethod
    def cache_ttl_must_be_positive(cls, v: int) -> int:
        """Validate that the cache TTL is at least one second."""
        if v < 1:
            raise ValueError("CACHE_TTL_S must be >= 1")
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_upper(cls, v: str) -> str:
        return v.strip().upper() or "INFO"

    @field_validator("log_format")
    @classmethod
    def log_format_must_be_known(cls, v: str) -> str:
        """Validate that the log format is json or text."""
        value = v.strip().lower()
        if value not in ("json", "text"):
            raise ValueError("LOG_FORMAT must be 'json' or 'text'")
        return value

    @model_validator(mode="after")
    def _default_within_max(self) -> "ServiceSettings":
        """Validate that the default limit does not exceed the maximum."""
        if self.default_series_limit > self.max_series_limit:
            raise ValueError("DEFAULT_SERIES_LIMIT must be <= MAX_SERIES_LIMIT")
        return self

    @property
    def known_raw_field_set(self) -> frozenset[str]:
        """Parsed KNOWN_RAW_FIELDS allow-list."""
        return frozenset(
            name.strip() for name in self.known_raw_fields.split(",") if name.strip()
        )

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}
