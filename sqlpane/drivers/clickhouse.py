"""ClickHouse database driver."""

import re
from typing import Any, Dict, List

from sqlalchemy.engine import URL

from sqlpane.drivers.base import Driver
from sqlpane.drivers.mysql import SYSTEM_DATABASES as MYSQL_SYSTEM_DATABASES
from sqlpane.models import (
    CONSTRAINTS_HEADER,
    FOREIGN_KEYS_HEADER,
    INDEXES_HEADER,
    Provider,
    TabularResult,
)

SYSTEM_DATABASES = ("system", "information_schema", "INFORMATION_SCHEMA") + MYSQL_SYSTEM_DATABASES

_ENGINE_CLAUSE = re.compile(r"\bENGINE\s*=", re.IGNORECASE)
_ORDER_BY_CLAUSE = re.compile(r"\bORDER\s+BY\s+", re.IGNORECASE)


def _read_expression(text: str) -> str:
    """Read one expression from the start of ``text``.

    A parenthesized expression ends at its matching ``)``; anything else ends
    at the first whitespace outside parentheses.
    """
    depth = 0
    for index, char in enumerate(text):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0 and text.startswith("("):
                return text[:index + 1]
        elif char.isspace() and depth <= 0:
            return text[:index]
    return text


def _split_top_level(expression: str) -> List[str]:
    parts = []
    depth = 0
    current = ""
    for char in expression:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            parts.append(current.strip())
            current = ""
        else:
            current += char
    parts.append(current.strip())
    return [part for part in parts if part]


def extract_order_by_columns(create_query: str) -> List[str]:
    """Extract the sorting key expressions from a CREATE TABLE statement.

    Only the ORDER BY of the engine clause is considered, so ORDER BYs
    inside projections are ignored. ``ORDER BY tuple()`` yields nothing.
    """
    engine = _ENGINE_CLAUSE.search(create_query)
    clause = create_query[engine.start():] if engine else create_query

    match = _ORDER_BY_CLAUSE.search(clause)
    if not match:
        return []

    expression = _read_expression(clause[match.end():])
    if expression.lower() == "tuple()":
        return []
    if expression.startswith("(") and expression.endswith(")"):
        expression = expression[1:-1]
    return _split_top_level(expression)


class ClickHouse(Driver):
    """ClickHouse driver (clickhouse-sqlalchemy over clickhouse-driver).

    ClickHouse has no foreign keys and no transactional rollback: pending
    changes are sent in order and a failure stops the batch, but mutations
    already accepted by the server stay applied.
    """

    provider = Provider.CLICKHOUSE
    paramstyle = "pyformat"

    update_template = "ALTER TABLE {table} UPDATE {assignments} WHERE {predicate}"
    delete_template = "ALTER TABLE {table} DELETE WHERE {predicate}"

    def _get_connect_args(self, engine_url: URL) -> Dict[str, Any]:
        """Get ClickHouse-specific connect arguments (native protocol only)."""
        if engine_url.drivername.endswith("+http"):
            return {}
        return {'connect_timeout': self.connect_timeout}

    def _escape_string(self, text: str) -> str:
        # Backslash starts an escape sequence in ClickHouse string literals.
        return text.replace("\\", "\\\\").replace("'", "''")

    def format_binary(self, data: bytes) -> str:
        return f"unhex('{data.hex().upper()}')"

    def format_reference(self, reference: str) -> str:
        escaped = reference.replace("`", "``")
        return f"`{escaped}`"

    def format_placeholder(self, position: int) -> str:
        return f"%(p{position})s"

    def format_table_name(self, database: str, table: str) -> str:
        if not database:
            return self.format_reference(table)
        return f"{self.format_reference(database)}.{self.format_reference(table)}"

    def get_databases(self) -> List[str]:
        databases = self._fetch_column("SHOW DATABASES")
        return [name for name in databases if name not in SYSTEM_DATABASES]

    def get_tables(self, database: str) -> Dict[str, List[str]]:
        self._require(database=database)
        tables = self._fetch_column(f"SHOW TABLES FROM {self.format_reference(database)}")
        return {database: tables}

    def get_table_columns(self, database: str, table: str) -> TabularResult:
        self._require(database=database, table=table)
        return self._fetch_tabular(f"DESCRIBE TABLE {self.format_table_name(database, table)}")

    def get_constraints(self, database: str, table: str) -> TabularResult:
        self._require(database=database, table=table)
        return [list(CONSTRAINTS_HEADER)]

    def get_foreign_keys(self, database: str, table: str) -> TabularResult:
        self._require(database=database, table=table)
        return [list(FOREIGN_KEYS_HEADER)]

    def get_indexes(self, database: str, table: str) -> TabularResult:
        """Approximate the table's index from its sorting key.

        Each ORDER BY expression becomes one row named after the table,
        with ``NON_UNIQUE`` 0 and the table engine as the index type.
        """
        self._require(database=database, table=table)
        query = """
        SELECT name, engine, create_table_query
        FROM system.tables
        WHERE database = %(p1)s AND name = %(p2)s
        """
        results = [list(INDEXES_HEADER)]
        for name, engine, create_query in self._fetch_tabular(query, (database, table))[1:]:
            for column in extract_order_by_columns(create_query):
                results.append([name, column, "0", engine])
        return results

    def get_primary_key_column_names(self, database: str, table: str) -> List[str]:
        self._require(database=database, table=table)
        query = """
        SELECT name
        FROM system.columns
        WHERE database = %(p1)s AND table = %(p2)s AND is_in_primary_key = 1
        ORDER BY position
        """
        return self._fetch_column(query, (database, table))

    def _paginate(self, query: str, sort: str, offset: int, limit: int) -> str:
        if sort:
            query += f" ORDER BY {sort}"
        return f"{query} LIMIT {offset}, {limit}"
