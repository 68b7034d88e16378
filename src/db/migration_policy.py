"""
Migration settings and autogenerate filters for the reading store.

Alembic's env.py takes its database URL and object filters from here, so both
can be used and tested without an Alembic context. TimescaleDB keeps its
catalog in internal schemas, and create_hypertable adds a ts index that the
ORM models do not declare. Neither takes part in autogenerate comparisons, and
neither does the GIN index on device_readings.fields that migration 002 creates
in raw SQL.

CHANGELOG:
- 2026-10-18: Initial creation, filters moved out of env.py (STORY-034)

TODO:
- None
"""

from pydantic_settings import BaseSettings

TIMESCALE_SCHEMAS = frozenset(
    {"_timescaledb_catalog", "_timescaledb_internal", "timescaledb_information"}
)

# Indexes created by migrations outside the ORM models.
UNMODELLED_INDEXES = frozenset({"device_readings_ts_idx", "ix_device_readings_fields"})


class MigrationSettings(BaseSettings):
    """Settings needed to run migrations.

    Only the database URL is read, so migrations run without the API's Redis
    and token configuration. Other keys in ``.env`` are ignored.

    Attributes:
        database_url: Async SQLAlchemy URL of the reading store.
    """

    database_url: str

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


def include_object(obj, name, type_, reflected, compare_to) -> bool:
    """Decide whether autogenerate compares a schema object.

    Args:
        obj: The SQLAlchemy schema item.
        name: Its name.
        type_: Alembic object type (``table``, ``column``, ``index``, ...).
        reflected: True if the object was reflected from the database.
        compare_to: The matching metadata object, or None if the models
            have no counterpart.

    Returns:
        bool: False for TimescaleDB internals and for reflected indexes the
        models do not declare but migrations create directly.
    """
    if getattr(obj, "schema", None) in TIMESCALE_SCHEMAS:
        return False
    if type_ == "index" and reflected and compare_to is None:
        return name not in UNMODELLED_INDEXES
    return True
