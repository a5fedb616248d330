"""PostgreSQL database driver."""

import logging
from typing import Any, Dict, List, Sequence

from sqlalchemy.engine import URL

from sqlpane.drivers.base import Driver
from sqlpane.drivers.url import render_url
from sqlpane.exceptions import DatabaseConnectionError, ValidationError
from sqlpane.models import (
    CONSTRAINTS_HEADER,
    FOREIGN_KEYS_HEADER,
    INDEXES_HEADER,
    DBDMLChange,
    Provider,
    TabularResult,
)

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA = "public"
SYSTEM_SCHEMAS = ("information_schema", "pg_catalog", "pg_toast")


class Postgres(Driver):
    """PostgreSQL driver (psycopg2 client).

    A Postgres connection is bound to one database, so tables are addressed
    as ``schema.table`` and asking for another database re-points the
    driver's single connection at it.
    """

    provider = Provider.POSTGRES
    paramstyle = "format"

    def _get_connect_args(self, engine_url: URL) -> Dict[str, Any]:
        """Get PostgreSQL-specific connect arguments."""
        return {
            'connect_timeout': self.connect_timeout,
            'application_name': 'sqlpane',
        }

    @property
    def current_database(self) -> str:
        return self._url.database if self._url is not None else ""

    def _select_database(self, database: str) -> None:
        if not database or database == self.current_database:
            return

        if self._url is None:
            raise DatabaseConnectionError("postgres driver is not connected", provider=self.provider.value)

        engine_url = self._url.set(database=database)
        engine = self._open_engine(engine_url)
        self.close()
        self._engine = engine
        self._url = engine_url
        logger.info(f"Switched connection to {render_url(engine_url)}")

    def format_binary(self, data: bytes) -> str:
        return f"'\\x{data.hex()}'::bytea"

    def format_reference(self, reference: str) -> str:
        escaped = reference.replace('"', '""')
        return f'"{escaped}"'

    def format_placeholder(self, position: int) -> str:
        return "%s"

    def format_table_name(self, database: str, table: str) -> str:
        schema, name = self._split_table(table, DEFAULT_SCHEMA)
        return f"{self.format_reference(schema)}.{self.format_reference(name)}"

    def get_databases(self) -> List[str]:
        query = "SELECT datname FROM pg_database WHERE datistemplate = false ORDER BY datname"
        return self._fetch_column(query)

    def get_tables(self, database: str) -> Dict[str, List[str]]:
        """Get table names of ``database`` grouped by schema."""
        self._require(database=database)
        self._select_database(database)

        placeholders = ", ".join(["%s"] * len(SYSTEM_SCHEMAS))
        query = f"""
        SELECT table_schema, table_name
        FROM information_schema.tables
        WHERE table_catalog = %s AND table_schema NOT IN ({placeholders})
        ORDER BY table_schema, table_name
        """
        tables: Dict[str, List[str]] = {}
        for schema, table in self._fetch_tabular(query, (database, *SYSTEM_SCHEMAS))[1:]:
            tables.setdefault(schema, []).append(table)
        return tables

    def get_table_columns(self, database: str, table: str) -> TabularResult:
        self._require(database=database, table=table)
        self._select_database(database)
        schema, name = self._split_table(table, DEFAULT_SCHEMA)
        query = """
        SELECT column_name, data_type, is_nullable, column_default
        FROM information_schema.columns
        WHERE table_catalog = %s AND table_schema = %s AND table_name = %s
        ORDER BY ordinal_position
        """
        return self._fetch_tabular(query, (database, schema, name))

    def get_constraints(self, database: str, table: str) -> TabularResult:
        self._require(database=database, table=table)
        self._select_database(database)
        schema, name = self._split_table(table, DEFAULT_SCHEMA)
        query = """
        SELECT tc.constraint_name, kcu.column_name, ccu.table_name, ccu.column_name
        FROM information_schema.table_constraints AS tc
        JOIN information_schema.key_column_usage AS kcu
            ON tc.constraint_name = kcu.constraint_name AND tc.table_schema = kcu.table_schema
        JOIN information_schema.constraint_column_usage AS ccu
            ON ccu.constraint_name = tc.constraint_name AND ccu.table_schema = tc.table_schema
        WHERE tc.table_schema = %s AND tc.table_name = %s
        ORDER BY tc.constraint_name, kcu.ordinal_position
        """
        return self._fetch_tabular(query, (schema, name), header=CONSTRAINTS_HEADER)

    def get_foreign_keys(self, database: str, table: str) -> TabularResult:
        self._require(database=database, table=table)
        self._select_database(database)
        schema, name = self._split_table(table, DEFAULT_SCHEMA)
        query = """
        SELECT tc.table_name, kcu.column_name, tc.constraint_name, ccu.column_name, ccu.table_name
        FROM information_schema.table_constraints AS tc
        JOIN information_schema.key_column_usage AS kcu
            ON tc.constraint_name = kcu.constraint_name AND tc.table_schema = kcu.table_schema
        JOIN information_schema.constraint_column_usage AS ccu
            ON ccu.constraint_name = tc.constraint_name AND ccu.table_schema = tc.table_schema
        WHERE tc.constraint_type = 'FOREIGN KEY' AND ccu.table_schema = %s AND ccu.table_name = %s
        ORDER BY tc.table_name, tc.constraint_name
        """
        return self._fetch_tabular(query, (schema, name), header=FOREIGN_KEYS_HEADER)

    def get_indexes(self, database: str, table: str) -> TabularResult:
        self._require(database=database, table=table)
        self._select_database(database)
        schema, name = self._split_table(table, DEFAULT_SCHEMA)
        query = """
        SELECT i.relname, a.attname,
            CASE WHEN ix.indisunique THEN '0' ELSE '1' END,
            am.amname
        FROM pg_class t
        JOIN pg_namespace n ON n.oid = t.relnamespace
        JOIN pg_index ix ON t.oid = ix.indrelid
        JOIN pg_class i ON i.oid = ix.indexrelid
        JOIN pg_am am ON am.oid = i.relam
        JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = ANY(ix.indkey)
        WHERE n.nspname = %s AND t.relname = %s
        ORDER BY i.relname, a.attnum
        """
        return self._fetch_tabular(query, (schema, name), header=INDEXES_HEADER)

    def get_primary_key_column_names(self, database: str, table: str) -> List[str]:
        self._require(database=database, table=table)
        self._select_database(database)
        query = """
        SELECT a.attname
        FROM pg_index i
        JOIN pg_attribute a ON a.attrelid = i.indrelid AND a.attnum = ANY(i.indkey)
        WHERE i.indrelid = %s::regclass AND i.indisprimary
        ORDER BY array_position(i.indkey::int2[], a.attnum)
        """
        return self._fetch_column(query, (self.format_table_name(database, table),))

    def _paginate(self, query: str, sort: str, offset: int, limit: int) -> str:
        if sort:
            query += f" ORDER BY {sort}"
        return f"{query} LIMIT {limit} OFFSET {offset}"

    def execute_pending_changes(self, changes: Sequence[DBDMLChange]) -> None:
        """Apply every change atomically; all changes must target one database."""
        databases = {change.database for change in changes if change.database}
        if len(databases) > 1:
            raise ValidationError(
                f"Pending changes span several databases: {sorted(databases)}",
                field="database",
            )
        if databases:
            self._select_database(databases.pop())
        super().execute_pending_changes(changes)
