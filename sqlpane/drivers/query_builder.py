"""Dialect-agnostic construction of INSERT, UPDATE and DELETE statements.

Every builder is parameterized over a driver acting as the formatter: it
supplies identifier quoting, literal escaping, placeholder rendering and the
statement skeletons of its dialect. The executed path and the preview path
go through the same renderer, so a previewed statement always has the shape
of the statement that is actually run.
"""

from typing import Any, Callable, List, Protocol, Sequence

from sqlpane.exceptions import ValidationError
from sqlpane.models import CellValue, DBDMLChange, DMLType, PrimaryKeyInfo, Query

# Paramstyles whose client library interpolates with the % operator.
PERCENT_PARAMSTYLES = ("format", "pyformat")

_PLACEHOLDER_MARK = "\x00{}\x00"

INSERT_TEMPLATE = "INSERT INTO {table} ({columns}) VALUES ({values})"
UPDATE_TEMPLATE = "UPDATE {table} SET {assignments} WHERE {predicate}"
DELETE_TEMPLATE = "DELETE FROM {table} WHERE {predicate}"


class Formatter(Protocol):
    """The formatting rules a driver exposes to the builders."""

    paramstyle: str
    insert_template: str
    update_template: str
    delete_template: str

    def format_arg(self, arg: Any) -> str: ...

    def format_reference(self, reference: str) -> str: ...

    def format_placeholder(self, position: int) -> str: ...

    def format_table_name(self, database: str, table: str) -> str: ...


class _ValueRenderer:
    """Renders values either as placeholders (collecting args) or as literals.

    Placeholders are marked while the statement is rendered and substituted
    by ``finish``, which first escapes any ``%`` the identifiers carry when
    the client library interpolates bound arguments with ``%``.
    """

    def __init__(self, formatter: Formatter, inline: bool) -> None:
        self.formatter = formatter
        self.inline = inline
        self.args: List[Any] = []

    def __call__(self, value: Any, keyword: Any = None) -> str:
        if keyword:
            return keyword
        if self.inline:
            return self.formatter.format_arg(value)
        self.args.append(value)
        return _PLACEHOLDER_MARK.format(len(self.args))

    def finish(self, text: str) -> Query:
        if self.args and self.formatter.paramstyle in PERCENT_PARAMSTYLES:
            text = text.replace("%", "%%")
        for position in range(1, len(self.args) + 1):
            text = text.replace(
                _PLACEHOLDER_MARK.format(position), self.formatter.format_placeholder(position), 1
            )
        return Query(text=text, args=tuple(self.args))


def _predicate(
    primary_key_info: Sequence[PrimaryKeyInfo],
    formatter: Formatter,
    render: Callable[..., str],
) -> str:
    return " AND ".join(
        f"{formatter.format_reference(pk.name)} = {render(pk.value)}"
        for pk in primary_key_info
    )


def _require_predicate(primary_key_info: Sequence[PrimaryKeyInfo], table_name: str) -> None:
    if not primary_key_info:
        raise ValidationError(
            f"Refusing to build an unpredicated statement for {table_name}",
            field="primary_key_info",
        )


def _render_insert(table_name: str, values: Sequence[CellValue], formatter: Formatter, render) -> str:
    columns = ", ".join(formatter.format_reference(value.column) for value in values)
    rendered = ", ".join(render(value.value, value.keyword) for value in values)
    return formatter.insert_template.format(table=table_name, columns=columns, values=rendered)


def _render_update(
    table_name: str,
    values: Sequence[CellValue],
    primary_key_info: Sequence[PrimaryKeyInfo],
    formatter: Formatter,
    render,
) -> str:
    _require_predicate(primary_key_info, table_name)
    assignments = ", ".join(
        f"{formatter.format_reference(value.column)} = {render(value.value, value.keyword)}"
        for value in values
    )
    predicate = _predicate(primary_key_info, formatter, render)
    return formatter.update_template.format(
        table=table_name, assignments=assignments, predicate=predicate
    )


def _render_delete(
    table_name: str,
    primary_key_info: Sequence[PrimaryKeyInfo],
    formatter: Formatter,
    render,
) -> str:
    _require_predicate(primary_key_info, table_name)
    predicate = _predicate(primary_key_info, formatter, render)
    return formatter.delete_template.format(table=table_name, predicate=predicate)


def build_insert_query(table_name: str, values: Sequence[CellValue], formatter: Formatter) -> Query:
    """Build a parameterized INSERT for an already formatted table name."""
    render = _ValueRenderer(formatter, inline=False)
    return render.finish(_render_insert(table_name, values, formatter, render))


def build_update_query(
    table_name: str,
    values: Sequence[CellValue],
    primary_key_info: Sequence[PrimaryKeyInfo],
    formatter: Formatter,
) -> Query:
    """Build a parameterized UPDATE whose WHERE clause is the primary key."""
    render = _ValueRenderer(formatter, inline=False)
    return render.finish(_render_update(table_name, values, primary_key_info, formatter, render))


def build_delete_query(
    table_name: str,
    primary_key_info: Sequence[PrimaryKeyInfo],
    formatter: Formatter,
) -> Query:
    """Build a parameterized DELETE whose WHERE clause is the primary key."""
    render = _ValueRenderer(formatter, inline=False)
    return render.finish(_render_delete(table_name, primary_key_info, formatter, render))


def build_query(change: DBDMLChange, formatter: Formatter) -> Query:
    """Build the statement executing ``change``."""
    change.validate()
    table_name = formatter.format_table_name(change.database, change.table)

    if change.type == DMLType.INSERT:
        return build_insert_query(table_name, change.values, formatter)
    if change.type == DMLType.UPDATE:
        return build_update_query(table_name, change.values, change.primary_key_info, formatter)
    return build_delete_query(table_name, change.primary_key_info, formatter)


def render_query_string(change: DBDMLChange, formatter: Formatter) -> str:
    """Render ``change`` as display text with every value inlined as a literal."""
    change.validate()
    table_name = formatter.format_table_name(change.database, change.table)
    render = _ValueRenderer(formatter, inline=True)

    if change.type == DMLType.INSERT:
        return _render_insert(table_name, change.values, formatter, render)
    if change.type == DMLType.UPDATE:
        return _render_update(table_name, change.values, change.primary_key_info, formatter, render)
    return _render_delete(table_name, change.primary_key_info, formatter, render)


def build_queries(changes: Sequence[DBDMLChange], formatter: Formatter) -> List[Query]:
    """Build one query per change, preserving order."""
    return [build_query(change, formatter) for change in changes]
