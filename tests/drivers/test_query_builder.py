"""Tests for INSERT/UPDATE/DELETE construction and previews."""

import pytest

from sqlpane.drivers import MSSQL, ClickHouse, MySQL, Postgres, SQLite
from sqlpane.drivers.query_builder import (
    build_delete_query,
    build_insert_query,
    build_queries,
    build_query,
    build_update_query,
    render_query_string,
)
from sqlpane.exceptions import ValidationError
from sqlpane.models import CellValue, CellValueType, DBDMLChange, DMLType, PrimaryKeyInfo


def update_change() -> DBDMLChange:
    return DBDMLChange(
        type=DMLType.UPDATE,
        database="shop",
        table="users",
        values=[CellValue("name", "Ada"), CellValue("score", 3.0)],
        primary_key_info=[PrimaryKeyInfo("id", 7), PrimaryKeyInfo("tenant", "eu")],
    )


class TestMySQLStatements:
    """Statement shapes for a placeholder-style dialect."""

    def test_insert(self) -> None:
        query = build_insert_query(
            "`shop`.`users`", [CellValue("id", 1), CellValue("name", "Ada")], MySQL()
        )
        assert query.text == "INSERT INTO `shop`.`users` (`id`, `name`) VALUES (%s, %s)"
        assert query.args == (1, "Ada")

    def test_update_predicate_follows_primary_key_order(self) -> None:
        query = build_query(update_change(), MySQL())
        assert query.text == (
            "UPDATE `shop`.`users` SET `name` = %s, `score` = %s "
            "WHERE `id` = %s AND `tenant` = %s"
        )
        assert query.args == ("Ada", 3.0, 7, "eu")

    def test_delete(self) -> None:
        query = build_delete_query("`shop`.`users`", [PrimaryKeyInfo("id", 7)], MySQL())
        assert query.text == "DELETE FROM `shop`.`users` WHERE `id` = %s"
        assert query.args == (7,)

    def test_keywords_are_not_bound(self) -> None:
        change = DBDMLChange(
            type=DMLType.INSERT,
            database="shop",
            table="users",
            values=[
                CellValue("name", "Ada"),
                CellValue("email", None),
                CellValue("created_at", "", CellValueType.DEFAULT),
                CellValue("nickname", "x", CellValueType.NULL),
            ],
        )
        query = build_query(change, MySQL())
        assert query.text.endswith("VALUES (%s, NULL, DEFAULT, NULL)")
        assert query.args == ("Ada",)


class TestPercentInIdentifiers:
    """Identifiers carrying % are escaped only where the client interpolates args."""

    def change(self) -> DBDMLChange:
        return DBDMLChange(
            type=DMLType.UPDATE,
            database="shop",
            table="stats",
            values=[CellValue("pct%", 12.5)],
            primary_key_info=[PrimaryKeyInfo("id", 1)],
        )

    @pytest.mark.parametrize("driver_class", [MySQL, Postgres, MSSQL])
    def test_format_paramstyle_doubles_percent(self, driver_class) -> None:
        driver = driver_class()
        query = build_query(self.change(), driver)
        assert driver.format_reference("pct%").replace("%", "%%") in query.text
        assert query.text.count("%s") == 2
        assert query.args == (12.5, 1)

    def test_pyformat_paramstyle_doubles_percent(self) -> None:
        query = build_query(self.change(), ClickHouse())
        assert query.text == "ALTER TABLE `shop`.`stats` UPDATE `pct%%` = %(p1)s WHERE `id` = %(p2)s"

    def test_qmark_paramstyle_untouched(self) -> None:
        query = build_query(self.change(), SQLite())
        assert query.text == 'UPDATE "shop"."stats" SET "pct%" = ? WHERE "id" = ?'

    def test_statement_without_args_untouched(self) -> None:
        query = build_insert_query("`shop`.`stats`", [CellValue("pct%", "", CellValueType.DEFAULT)], MySQL())
        assert query.text == "INSERT INTO `shop`.`stats` (`pct%`) VALUES (DEFAULT)"
        assert query.args == ()

    def test_preview_untouched(self) -> None:
        assert render_query_string(self.change(), MySQL()) == (
            "UPDATE `shop`.`stats` SET `pct%` = 12.5 WHERE `id` = 1"
        )


class TestPreview:
    """Preview rendering inlines literals into the same skeleton."""

    def test_update_preview(self) -> None:
        assert render_query_string(update_change(), MySQL()) == (
            "UPDATE `shop`.`users` SET `name` = 'Ada', `score` = 3.0 "
            "WHERE `id` = 7 AND `tenant` = 'eu'"
        )

    def test_preview_escapes_quotes(self) -> None:
        change = DBDMLChange(
            type=DMLType.INSERT,
            database="main",
            table="users",
            values=[CellValue("name", "O'Brien")],
        )
        assert render_query_string(change, SQLite()) == (
            'INSERT INTO "main"."users" ("name") VALUES (\'O\'\'Brien\')'
        )

    @pytest.mark.parametrize("driver_class", [MySQL, Postgres, SQLite, MSSQL, ClickHouse])
    def test_preview_and_execution_share_the_skeleton(self, driver_class) -> None:
        driver = driver_class()
        change = update_change()

        query = build_query(change, driver)
        preview = render_query_string(change, driver)

        rendered = query.text
        for position, arg in enumerate(query.args, start=1):
            rendered = rendered.replace(driver.format_placeholder(position), driver.format_arg(arg), 1)
        assert rendered == preview


class TestClickHouseMutations:
    """ClickHouse renders row edits as ALTER TABLE mutations."""

    def test_update_mutation(self) -> None:
        change = DBDMLChange(
            type=DMLType.UPDATE,
            database="logs",
            table="events",
            values=[CellValue("kind", "view")],
            primary_key_info=[PrimaryKeyInfo("id", 3)],
        )
        query = build_query(change, ClickHouse())
        assert query.text == "ALTER TABLE `logs`.`events` UPDATE `kind` = %(p1)s WHERE `id` = %(p2)s"
        assert query.parameters(ClickHouse.paramstyle) == {"p1": "view", "p2": 3}

    def test_delete_mutation_preview(self) -> None:
        change = DBDMLChange(
            type=DMLType.DELETE,
            database="logs",
            table="events",
            primary_key_info=[PrimaryKeyInfo("id", 3)],
        )
        assert render_query_string(change, ClickHouse()) == (
            "ALTER TABLE `logs`.`events` DELETE WHERE `id` = 3"
        )

    def test_insert_keeps_standard_form(self) -> None:
        change = DBDMLChange(
            type=DMLType.INSERT,
            database="logs",
            table="events",
            values=[CellValue("id", 4)],
        )
        assert render_query_string(change, ClickHouse()) == "INSERT INTO `logs`.`events` (`id`) VALUES (4)"


class TestMSSQLStatements:
    def test_update_uses_brackets_and_schema(self) -> None:
        query = build_update_query(
            MSSQL().format_table_name("shop", "users"),
            [CellValue("name", "Ada")],
            [PrimaryKeyInfo("id", 7)],
            MSSQL(),
        )
        assert query.text == "UPDATE [shop].[dbo].[users] SET [name] = %s WHERE [id] = %s"


class TestValidation:
    """Malformed changes never produce a statement."""

    @pytest.mark.parametrize("change_type", [DMLType.UPDATE, DMLType.DELETE])
    def test_missing_primary_key_rejected(self, change_type: DMLType) -> None:
        change = DBDMLChange(
            type=change_type,
            database="shop",
            table="users",
            values=[CellValue("name", "Ada")],
        )
        with pytest.raises(ValidationError):
            build_query(change, MySQL())
        with pytest.raises(ValidationError):
            render_query_string(change, MySQL())

    def test_unpredicated_delete_rejected_by_builder(self) -> None:
        with pytest.raises(ValidationError):
            build_delete_query("`shop`.`users`", [], MySQL())

    def test_insert_without_values_rejected(self) -> None:
        change = DBDMLChange(type=DMLType.INSERT, database="shop", table="users")
        with pytest.raises(ValidationError):
            build_query(change, MySQL())

    def test_build_queries_preserves_order(self) -> None:
        changes = [
            DBDMLChange(DMLType.INSERT, "shop", "a", values=[CellValue("x", 1)]),
            DBDMLChange(DMLType.DELETE, "shop", "b", primary_key_info=[PrimaryKeyInfo("id", 2)]),
        ]
        texts = [query.text for query in build_queries(changes, Postgres())]
        assert texts[0].startswith('INSERT INTO "public"."a"')
        assert texts[1].startswith('DELETE FROM "public"."b"')
