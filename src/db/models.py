"""
SQLAlchemy ORM models for the flow-meter series database.

Devices belong to a company and a device type. Hierarchy nodes form a
per-company tree, with device membership held in an association table.
Readings are stored in the device_readings TimescaleDB hypertable with a JSONB
field map, since the set of reported fields varies per device type. The
composite primary key (device_id, ts) keeps ingestion idempotent.

CHANGELOG:
- 2026-10-18: Replace inverter sample model with devices, hierarchy and
  readings (STORY-025)
- 2026-02-14: Initial creation (STORY-008)

TODO:
- None
"""

import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all ORM models."""

    pass


class Device(Base):
    """A flow-measurement device registered to a company.

    Attributes:
        id: Stable device identifier.
        company_id: Owning company; all queries are scoped by it.
        device_type_id: Device type, selects the reported field set.
        serial_number: Manufacturer serial number.
    """

    __tablename__ = "devices"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    company_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    device_type_id: Mapped[str] = mapped_column(Text, nullable=False)
    serial_number: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        """Return string representation of the Device."""
        return (
            f"Device(id={self.id!r}, company_id={self.company_id!r}, "
            f"serial_number={self.serial_number!r})"
        )


class HierarchyNode(Base):
    """A node of a company's device grouping tree.

    Attributes:
        id: Node identifier.
        company_id: Owning company.
        parent_id: Parent node, or None for a root.
        name: Display name.
    """

    __tablename__ = "hierarchy_nodes"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    company_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    parent_id: Mapped[str | None] = mapped_column(
        Text,
        ForeignKey("hierarchy_nodes.id", ondelete="CASCADE"),
        nullable=True,
    )
    name: Mapped[str] = mapped_column(Text, nullable=False, default="")

    def __repr__(self) -> str:
        """Return string representation of the HierarchyNode."""
        return f"HierarchyNode(id={self.id!r}, parent_id={self.parent_id!r})"


class HierarchyMember(Base):
    """Direct membership of a device in a hierarchy node."""

    __tablename__ = "hierarchy_members"

    node_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("hierarchy_nodes.id", ondelete="CASCADE"),
        primary_key=True,
    )
    device_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("devices.id", ondelete="CASCADE"),
        primary_key=True,
    )


class DeviceReading(Base):
    """A time-stamped reading of one device.

    Stored in the device_readings hypertable with a composite primary key on
    (device_id, ts).

    Attributes:
        device_id: Reporting device.
        ts: Measurement timestamp in UTC.
        serial_number: Serial number as reported with the reading.
        fields: Field name to value map (e.g. GFR, OFR, WFR). Fields may be
            missing or null.
    """

    __tablename__ = "device_readings"

    device_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("devices.id", ondelete="CASCADE"),
        primary_key=True,
        nullable=False,
    )
    ts: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        primary_key=True,
        nullable=False,
    )
    serial_number: Mapped[str] = mapped_column(Text, nullable=False)
    fields: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)

    def __repr__(self) -> str:
        """Return string representation of the DeviceReading."""
        return f"DeviceReading(device_id={self.device_id!r}, ts={self.ts!r})"
