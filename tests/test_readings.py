"""
Tests for the time-series fetcher.

Checks the shape of the generated SQL (company isolation, device filter,
presence filter, global ordering and limit), row conversion, and error
wrapping.

CHANGELOG:
- 2026-10-18: Non-object field maps (STORY-034)
- 2026-10-18: Initial creation (STORY-027)

TODO:
- None
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from helpers import (
    COMPANY_ID,
    DEVICE_TYPE_ID,
    RANGE,
    T0,
    make_reading_row,
    mock_db_with_rows,
    session_factory_for,
)
from src.errors import DataSourceError
from src.metrics.models import Reading, VariableRequest
from src.services.readings import build_readings_query, fetch_readings
from src.services.series import SeriesQuery, query_widget_series


def _compiled(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect()))


class TestBuildReadingsQuery:
    def test_company_and_device_type_filters(self) -> None:
        sql = _compiled(
            build_readings_query(None, COMPANY_ID, DEVICE_TYPE_ID, {"GFR"}, RANGE, 10)
        )
        assert "devices.company_id" in sql
        assert "devices.device_type_id" in sql
        assert "JOIN devices" in sql

    def test_no_hierarchy_means_no_device_filter(self) -> None:
        sql = _compiled(
            build_readings_query(None, COMPANY_ID, DEVICE_TYPE_ID, {"GFR"}, RANGE, 10)
        )
        assert "device_readings.device_id IN" not in sql

    def test_device_filter_applied(self) -> None:
        sql = _compiled(
            build_readings_query(
                frozenset({"dev-1", "dev-2"}), COMPANY_ID, DEVICE_TYPE_ID, {"GFR"}, RANGE, 10
            )
        )
        assert "device_readings.device_id IN" in sql

    def test_presence_filter_uses_any_key_operator(self) -> None:
        sql = _compiled(
            build_readings_query(
                None, COMPANY_ID, DEVICE_TYPE_ID, {"GFR", "OFR", "WFR"}, RANGE, 10
            )
        )
        assert "?|" in sql

    def test_presence_filter_requires_object_field_map(self) -> None:
        sql = _compiled(
            build_readings_query(None, COMPANY_ID, DEVICE_TYPE_ID, {"GFR"}, RANGE, 10)
        )
        assert "jsonb_typeof(device_readings.fields)" in sql
        assert sql.index("jsonb_typeof") < sql.index("?|")

    def test_global_order_then_limit(self) -> None:
        sql = _compiled(
            build_readings_query(None, COMPANY_ID, DEVICE_TYPE_ID, {"GFR"}, RANGE, 10)
        )
        order_clause = sql[sql.index("ORDER BY") :]
        assert order_clause.index("device_readings.ts ASC") < order_clause.index(
            "device_readings.serial_number ASC"
        )
        assert "LIMIT" in order_clause

    def test_time_bounds_half_open(self) -> None:
        sql = _compiled(
            build_readings_query(None, COMPANY_ID, DEVICE_TYPE_ID, {"GFR"}, RANGE, 10)
        )
        assert "device_readings.ts >=" in sql
        assert "device_readings.ts <" in sql


class TestFetchReadings:
    @pytest.mark.asyncio
    async def test_rows_converted_to_readings(self) -> None:
        session = mock_db_with_rows(
            [make_reading_row("dev-1", T0, "SN-1", GFR=30, OFR=None)]
        )
        readings = await fetch_readings(
            session, None, COMPANY_ID, DEVICE_TYPE_ID, {"GFR", "OFR"}, RANGE, 100
        )
        assert readings == [
            Reading(
                device_id="dev-1",
                timestamp=T0,
                serial_number="SN-1",
                fields={"GFR": 30, "OFR": None},
            )
        ]

    @pytest.mark.asyncio
    async def test_field_map_returned_unmodified(self) -> None:
        fields = {"GFR": "12.5", "EXTRA": [1, 2]}
        session = mock_db_with_rows([make_reading_row(**fields)])
        readings = await fetch_readings(
            session, None, COMPANY_ID, DEVICE_TYPE_ID, {"GFR"}, RANGE, 100
        )
        assert readings[0].fields == fields

    @pytest.mark.asyncio
    async def test_empty_device_set_skips_query(self) -> None:
        session = mock_db_with_rows([])
        readings = await fetch_readings(
            session, frozenset(), COMPANY_ID, DEVICE_TYPE_ID, {"GFR"}, RANGE, 100
        )
        assert readings == []
        session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_limit_bound_into_query(self) -> None:
        session = mock_db_with_rows([])
        await fetch_readings(session, None, COMPANY_ID, DEVICE_TYPE_ID, {"GFR"}, RANGE, 7)
        stmt = session.execute.await_args.args[0]
        assert stmt._limit == 7

    @pytest.mark.asyncio
    async def test_database_error_wrapped(self) -> None:
        session = AsyncMock()
        session.execute = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("timeout"))
        )
        with pytest.raises(DataSourceError, match="Reading query failed"):
            await fetch_readings(
                session, None, COMPANY_ID, DEVICE_TYPE_ID, {"GFR"}, RANGE, 100
            )

    @pytest.mark.asyncio
    async def test_connection_error_wrapped(self) -> None:
        session = AsyncMock()
        session.execute = AsyncMock(side_effect=ConnectionRefusedError("refused"))
        with pytest.raises(DataSourceError):
            await fetch_readings(
                session, None, COMPANY_ID, DEVICE_TYPE_ID, {"GFR"}, RANGE, 100
            )


class TestNonObjectFieldMaps:
    """A JSON array or scalar in the fields column reads as an empty map."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stored", [["GFR", "OFR"], "GFR", 42, None])
    async def test_non_object_fields_read_as_empty(self, stored) -> None:
        row = make_reading_row()
        row["fields"] = stored
        session = mock_db_with_rows([row])

        readings = await fetch_readings(
            session, None, COMPANY_ID, DEVICE_TYPE_ID, {"GFR", "OFR"}, RANGE, 100
        )

        assert readings[0].fields == {}

    @pytest.mark.asyncio
    async def test_array_fields_do_not_break_derived_series(self) -> None:
        array_row = make_reading_row("dev-1", T0, "SN-1")
        array_row["fields"] = ["GFR", "OFR", "WFR"]
        object_row = make_reading_row("dev-2", T0, "SN-2", GFR=30, OFR=10, WFR=60)
        session = mock_db_with_rows([array_row, object_row])
        query = SeriesQuery(
            variables=(
                VariableRequest("Gas fraction", "GVF", "%"),
                VariableRequest("Gas rate", "GFR", "m3/d"),
            ),
            time_range=RANGE,
            limit=100,
        )

        results = await query_widget_series(
            session_factory_for(session),
            query,
            company_id=COMPANY_ID,
            device_type_id=DEVICE_TYPE_ID,
        )

        gvf = results["Gas fraction"]
        assert gvf.error is None
        assert [(p.serial_number, p.value) for p in gvf.data] == [("SN-1", 0.0), ("SN-2", 30.0)]
        assert [p.serial_number for p in results["Gas rate"].data] == ["SN-2"]
