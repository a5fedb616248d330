"""SQLite database driver."""

from typing import Any, Dict, List

from sqlalchemy.engine import URL
from sqlalchemy.pool import StaticPool

from sqlpane.drivers.base import Driver
from sqlpane.models import (
    CONSTRAINTS_HEADER,
    FOREIGN_KEYS_HEADER,
    INDEXES_HEADER,
    Provider,
    TabularResult,
)

class SQLite(Driver):
    """SQLite driver (stdlib sqlite3 client).

    Databases are the schemas attached to the connection (``main``,
    ``temp`` and anything ATTACHed). Catalog lookups go through the
    table-valued PRAGMA functions so they can take bound arguments.
    """

    provider = Provider.SQLITE
    paramstyle = "qmark"

    def _get_engine_options(self, engine_url: URL) -> Dict[str, Any]:
        """Get SQLite-specific engine options."""
        return {
            'poolclass': StaticPool,
            'connect_args': {
                'check_same_thread': False,
                'timeout': self.connect_timeout,
            },
        }

    def format_reference(self, reference: str) -> str:
        escaped = reference.replace('"', '""')
        return f'"{escaped}"'

    def format_placeholder(self, position: int) -> str:
        return "?"

    def format_table_name(self, database: str, table: str) -> str:
        if not database:
            return self.format_reference(table)
        return f"{self.format_reference(database)}.{self.format_reference(table)}"

    def get_databases(self) -> List[str]:
        return self._fetch_column("SELECT name FROM pragma_database_list ORDER BY seq")

    def get_tables(self, database: str) -> Dict[str, List[str]]:
        """Get list of table names in the database."""
        self._require(database=database)
        query = f"""
        SELECT name
        FROM {self.format_reference(database)}.sqlite_master
        WHERE type = 'table' AND name NOT LIKE 'sqlite_%'
        ORDER BY name
        """
        return {database: self._fetch_column(query)}

    def get_table_columns(self, database: str, table: str) -> TabularResult:
        self._require(database=database, table=table)
        query = "SELECT cid, name, type, \"notnull\", dflt_value, pk FROM pragma_table_info(?, ?)"
        return self._fetch_tabular(query, (table, database))

    def get_constraints(self, database: str, table: str) -> TabularResult:
        """Get the primary key and foreign keys declared on the table.

        SQLite does not keep constraint names, so the primary key is
        reported as ``PRIMARY`` and foreign keys as ``fk_<table>_<id>``.
        """
        self._require(database=database, table=table)
        query = """
        SELECT 'PRIMARY', name, NULL, NULL
        FROM pragma_table_info(?, ?)
        WHERE pk > 0
        UNION ALL
        SELECT 'fk_' || ? || '_' || id, "from", "table", "to"
        FROM pragma_foreign_key_list(?, ?)
        """
        return self._fetch_tabular(
            query, (table, database, table, table, database), header=CONSTRAINTS_HEADER
        )

    def get_foreign_keys(self, database: str, table: str) -> TabularResult:
        """Get the foreign keys of other tables that reference this table."""
        self._require(database=database, table=table)
        query = f"""
        SELECT m.name, fk."from", 'fk_' || m.name || '_' || fk.id, fk."to", fk."table"
        FROM {self.format_reference(database)}.sqlite_master AS m
        JOIN pragma_foreign_key_list(m.name, ?) AS fk
        WHERE m.type = 'table' AND fk."table" = ?
        ORDER BY m.name, fk.id, fk.seq
        """
        return self._fetch_tabular(query, (database, table), header=FOREIGN_KEYS_HEADER)

    def get_indexes(self, database: str, table: str) -> TabularResult:
        self._require(database=database, table=table)
        query = """
        SELECT il.name, ii.name,
            CASE WHEN il."unique" THEN '0' ELSE '1' END,
            CASE il.origin WHEN 'pk' THEN 'PRIMARY KEY' WHEN 'u' THEN 'UNIQUE' ELSE 'INDEX' END
        FROM pragma_index_list(?, ?) AS il
        JOIN pragma_index_info(il.name, ?) AS ii
        ORDER BY il.name, ii.seqno
        """
        return self._fetch_tabular(query, (table, database, database), header=INDEXES_HEADER)

    def get_primary_key_column_names(self, database: str, table: str) -> List[str]:
        self._require(database=database, table=table)
        query = "SELECT name FROM pragma_table_info(?, ?) WHERE pk > 0 ORDER BY pk"
        return self._fetch_column(query, (table, database))

    def _paginate(self, query: str, sort: str, offset: int, limit: int) -> str:
        if sort:
            query += f" ORDER BY {sort}"
        return f"{query} LIMIT {limit} OFFSET {offset}"
