"""MySQL database driver."""

from typing import Any, Dict, List

from sqlalchemy.engine import URL

from sqlpane.drivers.base import Driver
from sqlpane.models import (
    CONSTRAINTS_HEADER,
    FOREIGN_KEYS_HEADER,
    INDEXES_HEADER,
    Provider,
    TabularResult,
)

# Schemas MySQL uses for its own bookkeeping.
SYSTEM_DATABASES = ("information_schema", "mysql", "performance_schema", "sys")


class MySQL(Driver):
    """MySQL and MariaDB driver (PyMySQL client)."""

    provider = Provider.MYSQL
    paramstyle = "format"

    def _get_connect_args(self, engine_url: URL) -> Dict[str, Any]:
        """Get MySQL-specific connect arguments."""
        return {
            'connect_timeout': self.connect_timeout,
            'charset': 'utf8mb4',
        }

    def _escape_string(self, text: str) -> str:
        # Backslash starts an escape sequence in MySQL string literals.
        return text.replace("\\", "\\\\").replace("'", "''")

    def format_reference(self, reference: str) -> str:
        escaped = reference.replace("`", "``")
        return f"`{escaped}`"

    def format_placeholder(self, position: int) -> str:
        return "%s"

    def format_table_name(self, database: str, table: str) -> str:
        if not database:
            return self.format_reference(table)
        return f"{self.format_reference(database)}.{self.format_reference(table)}"

    def get_databases(self) -> List[str]:
        """Get list of database names on the MySQL server."""
        databases = self._fetch_column("SHOW DATABASES")
        return [name for name in databases if name not in SYSTEM_DATABASES]

    def get_tables(self, database: str) -> Dict[str, List[str]]:
        """Get list of table names in the database."""
        self._require(database=database)
        tables = self._fetch_column(f"SHOW TABLES FROM {self.format_reference(database)}")
        return {database: tables}

    def get_table_columns(self, database: str, table: str) -> TabularResult:
        self._require(database=database, table=table)
        return self._fetch_tabular(f"DESCRIBE {self.format_table_name(database, table)}")

    def get_constraints(self, database: str, table: str) -> TabularResult:
        self._require(database=database, table=table)
        query = """
        SELECT CONSTRAINT_NAME, COLUMN_NAME, REFERENCED_TABLE_NAME, REFERENCED_COLUMN_NAME
        FROM information_schema.KEY_COLUMN_USAGE
        WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s
        ORDER BY CONSTRAINT_NAME, ORDINAL_POSITION
        """
        return self._fetch_tabular(query, (database, table), header=CONSTRAINTS_HEADER)

    def get_foreign_keys(self, database: str, table: str) -> TabularResult:
        self._require(database=database, table=table)
        query = """
        SELECT TABLE_NAME, COLUMN_NAME, CONSTRAINT_NAME, REFERENCED_COLUMN_NAME, REFERENCED_TABLE_NAME
        FROM information_schema.KEY_COLUMN_USAGE
        WHERE REFERENCED_TABLE_SCHEMA = %s AND REFERENCED_TABLE_NAME = %s
        ORDER BY TABLE_NAME, CONSTRAINT_NAME, ORDINAL_POSITION
        """
        return self._fetch_tabular(query, (database, table), header=FOREIGN_KEYS_HEADER)

    def get_indexes(self, database: str, table: str) -> TabularResult:
        self._require(database=database, table=table)
        query = """
        SELECT INDEX_NAME, COLUMN_NAME, NON_UNIQUE, INDEX_TYPE
        FROM information_schema.STATISTICS
        WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s
        ORDER BY INDEX_NAME, SEQ_IN_INDEX
        """
        return self._fetch_tabular(query, (database, table), header=INDEXES_HEADER)

    def get_primary_key_column_names(self, database: str, table: str) -> List[str]:
        self._require(database=database, table=table)
        query = """
        SELECT COLUMN_NAME
        FROM information_schema.KEY_COLUMN_USAGE
        WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s AND CONSTRAINT_NAME = 'PRIMARY'
        ORDER BY ORDINAL_POSITION
        """
        return self._fetch_column(query, (database, table))

    def _paginate(self, query: str, sort: str, offset: int, limit: int) -> str:
        if sort:
            query += f" ORDER BY {sort}"
        return f"{query} LIMIT {offset}, {limit}"
