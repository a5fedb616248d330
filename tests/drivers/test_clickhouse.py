"""Tests for ClickHouse behaviour that needs no server."""

import pytest

from sqlpane.drivers.clickhouse import ClickHouse, extract_order_by_columns
from sqlpane.exceptions import ValidationError
from sqlpane.models import CONSTRAINTS_HEADER, FOREIGN_KEYS_HEADER


class TestHeaderOnlyResults:
    def test_constraints_header_only(self) -> None:
        assert ClickHouse().get_constraints("logs", "events") == [CONSTRAINTS_HEADER]

    def test_foreign_keys_header_only(self) -> None:
        assert ClickHouse().get_foreign_keys("logs", "events") == [FOREIGN_KEYS_HEADER]

    def test_names_still_validated(self) -> None:
        with pytest.raises(ValidationError):
            ClickHouse().get_constraints("", "events")
        with pytest.raises(ValidationError):
            ClickHouse().get_foreign_keys("logs", "")


class TestOrderByExtraction:
    def test_tuple_key(self) -> None:
        query = (
            "CREATE TABLE logs.events (`id` UInt64, `ts` DateTime, `kind` String) "
            "ENGINE = MergeTree ORDER BY (id, toDate(ts), kind) SETTINGS index_granularity = 8192"
        )
        assert extract_order_by_columns(query) == ["id", "toDate(ts)", "kind"]

    def test_deeply_nested_key(self) -> None:
        query = (
            "CREATE TABLE logs.hits (`a` UInt64, `ts` String) "
            "ENGINE = MergeTree ORDER BY (a, toStartOfHour(toDateTime(ts))) SETTINGS index_granularity = 8192"
        )
        assert extract_order_by_columns(query) == ["a", "toStartOfHour(toDateTime(ts))"]

    def test_function_key_without_tuple(self) -> None:
        query = "CREATE TABLE t (`ts` DateTime) ENGINE = MergeTree ORDER BY toDate(ts) SETTINGS index_granularity = 8192"
        assert extract_order_by_columns(query) == ["toDate(ts)"]

    def test_single_column_key(self) -> None:
        query = "CREATE TABLE t (`id` UInt64) ENGINE = MergeTree ORDER BY id SETTINGS index_granularity = 8192"
        assert extract_order_by_columns(query) == ["id"]

    def test_projection_order_by_ignored(self) -> None:
        query = (
            "CREATE TABLE t (`a` UInt8, `b` UInt8, PROJECTION p (SELECT * ORDER BY b)) "
            "ENGINE = MergeTree ORDER BY a"
        )
        assert extract_order_by_columns(query) == ["a"]

    def test_empty_sorting_key(self) -> None:
        assert extract_order_by_columns("CREATE TABLE t (`a` UInt8) ENGINE = MergeTree ORDER BY tuple()") == []

    def test_no_order_by(self) -> None:
        assert extract_order_by_columns("CREATE TABLE t (`a` UInt8) ENGINE = Memory") == []


def test_pagination_clause() -> None:
    driver = ClickHouse()
    assert driver._paginate("SELECT * FROM `logs`.`events`", "ts", 20, 10) == (
        "SELECT * FROM `logs`.`events` ORDER BY ts LIMIT 20, 10"
    )
