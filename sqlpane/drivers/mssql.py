"""Microsoft SQL Server database driver."""

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

DEFAULT_SCHEMA = "dbo"
SYSTEM_DATABASES = ("master", "tempdb", "model", "msdb")


class MSSQL(Driver):
    """SQL Server driver (pymssql client).

    Catalog views are addressed through the three-part ``[db].schema.view``
    form so any database on the server can be inspected over one connection.
    Tables outside ``dbo`` are named ``schema.table``.
    """

    provider = Provider.MSSQL
    paramstyle = "format"

    def _get_connect_args(self, engine_url: URL) -> Dict[str, Any]:
        """Get SQL Server-specific connect arguments."""
        return {
            'login_timeout': self.connect_timeout,
            'appname': 'sqlpane',
        }

    def format_binary(self, data: bytes) -> str:
        return f"0x{data.hex().upper()}"

    def format_reference(self, reference: str) -> str:
        escaped = reference.replace("]", "]]")
        return f"[{escaped}]"

    def format_placeholder(self, position: int) -> str:
        return "%s"

    def format_table_name(self, database: str, table: str) -> str:
        schema, name = self._split_table(table, DEFAULT_SCHEMA)
        qualified = f"{self.format_reference(schema)}.{self.format_reference(name)}"
        if not database:
            return qualified
        return f"{self.format_reference(database)}.{qualified}"

    def get_databases(self) -> List[str]:
        placeholders = ", ".join(["%s"] * len(SYSTEM_DATABASES))
        query = f"SELECT name FROM sys.databases WHERE name NOT IN ({placeholders}) ORDER BY name"
        return self._fetch_column(query, SYSTEM_DATABASES)

    def get_tables(self, database: str) -> Dict[str, List[str]]:
        self._require(database=database)
        query = f"""
        SELECT TABLE_SCHEMA, TABLE_NAME
        FROM {self.format_reference(database)}.INFORMATION_SCHEMA.TABLES
        ORDER BY TABLE_SCHEMA, TABLE_NAME
        """
        tables = [
            name if schema == DEFAULT_SCHEMA else f"{schema}.{name}"
            for schema, name in self._fetch_tabular(query)[1:]
        ]
        return {database: tables}

    def get_table_columns(self, database: str, table: str) -> TabularResult:
        self._require(database=database, table=table)
        schema, name = self._split_table(table, DEFAULT_SCHEMA)
        query = f"""
        SELECT COLUMN_NAME, DATA_TYPE, IS_NULLABLE, COLUMN_DEFAULT, CHARACTER_MAXIMUM_LENGTH
        FROM {self.format_reference(database)}.INFORMATION_SCHEMA.COLUMNS
        WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s
        ORDER BY ORDINAL_POSITION
        """
        return self._fetch_tabular(query, (schema, name))

    def get_constraints(self, database: str, table: str) -> TabularResult:
        self._require(database=database, table=table)
        schema, name = self._split_table(table, DEFAULT_SCHEMA)
        catalog = self.format_reference(database)
        query = f"""
        SELECT tc.CONSTRAINT_NAME, kcu.COLUMN_NAME, ccu.TABLE_NAME, ccu.COLUMN_NAME
        FROM {catalog}.INFORMATION_SCHEMA.TABLE_CONSTRAINTS AS tc
        JOIN {catalog}.INFORMATION_SCHEMA.KEY_COLUMN_USAGE AS kcu
            ON tc.CONSTRAINT_NAME = kcu.CONSTRAINT_NAME AND tc.TABLE_SCHEMA = kcu.TABLE_SCHEMA
        LEFT JOIN {catalog}.INFORMATION_SCHEMA.REFERENTIAL_CONSTRAINTS AS rc
            ON rc.CONSTRAINT_NAME = tc.CONSTRAINT_NAME AND rc.CONSTRAINT_SCHEMA = tc.TABLE_SCHEMA
        LEFT JOIN {catalog}.INFORMATION_SCHEMA.CONSTRAINT_COLUMN_USAGE AS ccu
            ON ccu.CONSTRAINT_NAME = rc.UNIQUE_CONSTRAINT_NAME
        WHERE tc.TABLE_SCHEMA = %s AND tc.TABLE_NAME = %s
        ORDER BY tc.CONSTRAINT_NAME, kcu.ORDINAL_POSITION
        """
        return self._fetch_tabular(query, (schema, name), header=CONSTRAINTS_HEADER)

    def get_foreign_keys(self, database: str, table: str) -> TabularResult:
        self._require(database=database, table=table)
        schema, name = self._split_table(table, DEFAULT_SCHEMA)
        catalog = self.format_reference(database)
        query = f"""
        SELECT pt.name, pc.name, fk.name, rc.name, rt.name
        FROM {catalog}.sys.foreign_keys AS fk
        JOIN {catalog}.sys.foreign_key_columns AS fkc ON fkc.constraint_object_id = fk.object_id
        JOIN {catalog}.sys.tables AS pt ON pt.object_id = fkc.parent_object_id
        JOIN {catalog}.sys.columns AS pc
            ON pc.object_id = fkc.parent_object_id AND pc.column_id = fkc.parent_column_id
        JOIN {catalog}.sys.tables AS rt ON rt.object_id = fkc.referenced_object_id
        JOIN {catalog}.sys.columns AS rc
            ON rc.object_id = fkc.referenced_object_id AND rc.column_id = fkc.referenced_column_id
        JOIN {catalog}.sys.schemas AS rs ON rs.schema_id = rt.schema_id
        WHERE rs.name = %s AND rt.name = %s
        ORDER BY pt.name, fk.name
        """
        return self._fetch_tabular(query, (schema, name), header=FOREIGN_KEYS_HEADER)

    def get_indexes(self, database: str, table: str) -> TabularResult:
        self._require(database=database, table=table)
        schema, name = self._split_table(table, DEFAULT_SCHEMA)
        catalog = self.format_reference(database)
        query = f"""
        SELECT i.name, c.name,
            CASE WHEN i.is_unique = 1 THEN '0' ELSE '1' END,
            i.type_desc
        FROM {catalog}.sys.indexes AS i
        JOIN {catalog}.sys.index_columns AS ic
            ON ic.object_id = i.object_id AND ic.index_id = i.index_id
        JOIN {catalog}.sys.columns AS c
            ON c.object_id = ic.object_id AND c.column_id = ic.column_id
        JOIN {catalog}.sys.tables AS t ON t.object_id = i.object_id
        JOIN {catalog}.sys.schemas AS s ON s.schema_id = t.schema_id
        WHERE s.name = %s AND t.name = %s AND i.name IS NOT NULL
        ORDER BY i.name, ic.key_ordinal
        """
        return self._fetch_tabular(query, (schema, name), header=INDEXES_HEADER)

    def get_primary_key_column_names(self, database: str, table: str) -> List[str]:
        self._require(database=database, table=table)
        schema, name = self._split_table(table, DEFAULT_SCHEMA)
        catalog = self.format_reference(database)
        query = f"""
        SELECT kcu.COLUMN_NAME
        FROM {catalog}.INFORMATION_SCHEMA.TABLE_CONSTRAINTS AS tc
        JOIN {catalog}.INFORMATION_SCHEMA.KEY_COLUMN_USAGE AS kcu
            ON tc.CONSTRAINT_NAME = kcu.CONSTRAINT_NAME AND tc.TABLE_SCHEMA = kcu.TABLE_SCHEMA
        WHERE tc.CONSTRAINT_TYPE = 'PRIMARY KEY' AND tc.TABLE_SCHEMA = %s AND tc.TABLE_NAME = %s
        ORDER BY kcu.ORDINAL_POSITION
        """
        return self._fetch_column(query, (schema, name))

    def _paginate(self, query: str, sort: str, offset: int, limit: int) -> str:
        # OFFSET ... FETCH requires an ORDER BY.
        order_by = sort or "(SELECT NULL)"
        return f"{query} ORDER BY {order_by} OFFSET {offset} ROWS FETCH NEXT {limit} ROWS ONLY"
