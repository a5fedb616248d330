"""Tests for dialect literal, identifier and placeholder formatting."""

from decimal import Decimal

import pytest

from sqlpane.drivers import MSSQL, ClickHouse, MySQL, Postgres, SQLite
from sqlpane.drivers.base import display_cell, format_float, metadata_cell
from sqlpane.exceptions import ValidationError

ALL_DRIVERS = [MySQL, Postgres, SQLite, MSSQL, ClickHouse]


@pytest.mark.parametrize("driver_class", ALL_DRIVERS)
class TestFormatArg:
    """format_arg behaves the same for every dialect."""

    def test_integer(self, driver_class) -> None:
        assert driver_class().format_arg(42) == "42"

    def test_float_trailing_zeros_trimmed(self, driver_class) -> None:
        assert driver_class().format_arg(3.10) == "3.1"

    def test_float_whole_number_keeps_zero(self, driver_class) -> None:
        assert driver_class().format_arg(3.0) == "3.0"

    def test_float_never_scientific(self, driver_class) -> None:
        rendered = driver_class().format_arg(1e-7)
        assert "e" not in rendered.lower()
        assert rendered == "0.0000001"

    def test_single_quote_doubled(self, driver_class) -> None:
        assert driver_class().format_arg("O'Brien") == "'O''Brien'"

    def test_bytes_escaped(self, driver_class) -> None:
        assert driver_class().format_arg(b"it's") == "'it''s'"

    def test_none_is_null(self, driver_class) -> None:
        assert driver_class().format_arg(None) == "NULL"

    def test_bool(self, driver_class) -> None:
        driver = driver_class()
        assert driver.format_arg(True) == "1"
        assert driver.format_arg(False) == "0"

    def test_decimal(self, driver_class) -> None:
        assert driver_class().format_arg(Decimal("12.50")) == "12.50"

    @pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan")])
    def test_non_finite_float_rejected(self, driver_class, value: float) -> None:
        with pytest.raises(ValidationError):
            driver_class().format_arg(value)


@pytest.mark.parametrize(
    "driver_class, expected",
    [
        (MySQL, "X'FF01'"),
        (SQLite, "X'FF01'"),
        (MSSQL, "0xFF01"),
        (Postgres, "'\\xff01'::bytea"),
        (ClickHouse, "unhex('FF01')"),
    ],
)
def test_undecodable_bytes_render_as_hex_literal(driver_class, expected: str) -> None:
    assert driver_class().format_arg(b"\xff\x01") == expected


@pytest.mark.parametrize("driver_class", [MySQL, ClickHouse])
class TestBackslashEscapingDialects:
    def test_trailing_backslash(self, driver_class) -> None:
        assert driver_class().format_arg("C:\\") == "'C:\\\\'"

    def test_backslash_before_quote(self, driver_class) -> None:
        assert driver_class().format_arg("a\\'b") == "'a\\\\''b'"

    def test_bytes_text(self, driver_class) -> None:
        assert driver_class().format_arg(b"x\\y") == "'x\\\\y'"


@pytest.mark.parametrize("driver_class", [Postgres, SQLite, MSSQL])
def test_backslash_is_literal_elsewhere(driver_class) -> None:
    assert driver_class().format_arg("C:\\") == "'C:\\'"


@pytest.mark.parametrize(
    "driver_class, identifier, expected",
    [
        (MySQL, "name", "`name`"),
        (MySQL, "we`ird", "`we``ird`"),
        (Postgres, 'we"ird', '"we""ird"'),
        (SQLite, "order", '"order"'),
        (MSSQL, "we]ird", "[we]]ird]"),
        (ClickHouse, "events", "`events`"),
    ],
)
def test_format_reference(driver_class, identifier: str, expected: str) -> None:
    assert driver_class().format_reference(identifier) == expected


@pytest.mark.parametrize(
    "driver_class, expected",
    [
        (MySQL, ["%s", "%s"]),
        (Postgres, ["%s", "%s"]),
        (SQLite, ["?", "?"]),
        (MSSQL, ["%s", "%s"]),
        (ClickHouse, ["%(p1)s", "%(p2)s"]),
    ],
)
def test_format_placeholder(driver_class, expected) -> None:
    driver = driver_class()
    assert [driver.format_placeholder(1), driver.format_placeholder(2)] == expected


@pytest.mark.parametrize(
    "driver_class, database, table, expected",
    [
        (MySQL, "shop", "users", "`shop`.`users`"),
        (Postgres, "shop", "users", '"public"."users"'),
        (Postgres, "shop", "sales.orders", '"sales"."orders"'),
        (SQLite, "main", "users", '"main"."users"'),
        (MSSQL, "shop", "users", "[shop].[dbo].[users]"),
        (MSSQL, "shop", "sales.orders", "[shop].[sales].[orders]"),
        (ClickHouse, "logs", "events", "`logs`.`events`"),
    ],
)
def test_format_table_name(driver_class, database: str, table: str, expected: str) -> None:
    assert driver_class().format_table_name(database, table) == expected


class TestCellRendering:
    """Tests for record and metadata cell rendering."""

    def test_sentinels_are_distinct(self) -> None:
        assert display_cell(None) == "NULL&"
        assert display_cell("") == "EMPTY&"

    def test_plain_values(self) -> None:
        assert display_cell(7) == "7"
        assert display_cell("Ada") == "Ada"
        assert display_cell(True) == "true"

    def test_undecodable_bytes_render_as_hex(self) -> None:
        assert display_cell(b"\xff\x00") == "0xff00"

    def test_ipv4_mapped_address_renders_as_ipv4(self) -> None:
        import ipaddress

        assert display_cell(ipaddress.IPv6Address("::ffff:10.0.0.1")) == "10.0.0.1"
        assert display_cell(ipaddress.IPv4Address("192.168.1.1")) == "192.168.1.1"

    def test_json_values(self) -> None:
        assert display_cell({"a": 1}) == '{"a": 1}'

    def test_metadata_cell_renders_none_as_empty(self) -> None:
        assert metadata_cell(None) == ""
        assert metadata_cell("") == ""

    def test_format_float(self) -> None:
        assert format_float(2.5) == "2.5"
        assert format_float(100.0) == "100.0"

    def test_format_float_rejects_nan(self) -> None:
        with pytest.raises(ValidationError):
            format_float(float("nan"))
