"""
Initial schema: devices, hierarchy and device_readings hypertable.

Enables the TimescaleDB extension, creates the device registry, the
per-company hierarchy tree with its membership table, and the device_readings
table with composite primary key (device_id, ts) and a JSONB field map, then
converts device_readings to a hypertable on ts with a 7-day chunk interval.

Revision ID: 001
Revises: None
Create Date: 2026-10-18

CHANGELOG:
- 2026-10-18: Initial creation (STORY-025)

TODO:
- None
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

# Revision identifiers used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the registry, hierarchy and readings tables."""
    op.execute("CREATE EXTENSION IF NOT EXISTS timescaledb")

    op.create_table(
        "devices",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("company_id", sa.Text(), nullable=False),
        sa.Column("device_type_id", sa.Text(), nullable=False),
        sa.Column("serial_number", sa.Text(), nullable=False),
    )
    op.create_index("ix_devices_company_id", "devices", ["company_id"])

    op.create_table(
        "hierarchy_nodes",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("company_id", sa.Text(), nullable=False),
        sa.Column(
            "parent_id",
            sa.Text(),
            sa.ForeignKey("hierarchy_nodes.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("name", sa.Text(), nullable=False, server_default=""),
    )
    op.create_index("ix_hierarchy_nodes_company_id", "hierarchy_nodes", ["company_id"])

    op.create_table(
        "hierarchy_members",
        sa.Column(
            "node_id",
            sa.Text(),
            sa.ForeignKey("hierarchy_nodes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "device_id",
            sa.Text(),
            sa.ForeignKey("devices.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("node_id", "device_id"),
    )

    op.create_table(
        "device_readings",
        sa.Column(
            "device_id",
            sa.Text(),
            sa.ForeignKey("devices.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("ts", sa.DateTime(timezone=True), nullable=False),
        sa.Column("serial_number", sa.Text(), nullable=False),
        sa.Column("fields", JSONB(), nullable=False),
        sa.PrimaryKeyConstraint("device_id", "ts"),
    )

    op.execute(
        "SELECT create_hypertable("
        "'device_readings', 'ts', "
        "chunk_time_interval => INTERVAL '7 days', "
        "if_not_exists => TRUE"
        ")"
    )


def downgrade() -> None:
    """Drop all tables in dependency order.

    Does not drop the timescaledb extension as other tables may use it.
    """
    op.drop_table("device_readings")
    op.drop_table("hierarchy_members")
    op.drop_index("ix_hierarchy_nodes_company_id", table_name="hierarchy_nodes")
    op.drop_table("hierarchy_nodes")
    op.drop_index("ix_devices_company_id", table_name="devices")
    op.drop_table("devices")
