"""
Reading query indexes: field presence and device type lookups.

Adds a GIN index on device_readings.fields so the ``?|`` presence filter used
by the series fetcher can skip rows without any required field, and a
composite index on devices (company_id, device_type_id) backing the company
and device type join.

Revision ID: 002
Revises: 001
Create Date: 2026-10-18

CHANGELOG:
- 2026-10-18: Initial creation (STORY-027)

TODO:
- None
"""

from collections.abc import Sequence

from alembic import op

# Revision identifiers used by Alembic.
revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the presence and device type indexes."""
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_device_readings_fields "
        "ON device_readings USING GIN (fields)"
    )
    op.create_index(
        "ix_devices_company_type",
        "devices",
        ["company_id", "device_type_id"],
    )


def downgrade() -> None:
    """Drop the indexes created by upgrade()."""
    op.drop_index("ix_devices_company_type", table_name="devices")
    op.execute("DROP INDEX IF EXISTS ix_device_readings_fields")
