"""Base database driver: the capability set every dialect implements."""

import ipaddress
import json
import logging
import math
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date, datetime, time as dt_time
from decimal import Decimal
from typing import Any, Dict, Generator, List, Optional, Sequence, Tuple

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, CursorResult, Engine, URL
from sqlalchemy.exc import SQLAlchemyError

from sqlpane.drivers import query_builder
from sqlpane.drivers.transaction import TransactionExecutor
from sqlpane.drivers.url import render_url, to_engine_url
from sqlpane.exceptions import DatabaseConnectionError, QueryError, ValidationError
from sqlpane.models import (
    DEFAULT_ROW_LIMIT,
    EMPTY_SENTINEL,
    NULL_SENTINEL,
    DBDMLChange,
    Provider,
    Query,
    TabularResult,
)

logger = logging.getLogger(__name__)


def format_float(value: float) -> str:
    """Render a float without scientific notation or a bare trailing point.

    ``3.10`` renders as ``3.1``, ``3.0`` as ``3.0`` and ``1e-07`` as
    ``0.0000001``.

    Raises:
        ValidationError: If ``value`` is infinite or NaN, which have no SQL literal.
    """
    if not math.isfinite(value):
        raise ValidationError(f"Cannot render non-finite float {value!r} as a SQL literal", field="value")
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0")
        if text.endswith("."):
            text += "0"
    return text


def _decode_bytes(value: bytes) -> str:
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        return "0x" + value.hex()


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return _decode_bytes(bytes(value))
    if isinstance(value, ipaddress.IPv6Address) and value.ipv4_mapped is not None:
        return str(value.ipv4_mapped)
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, (date, dt_time)):
        return value.isoformat()
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


def display_cell(value: Any) -> str:
    """Render a record cell, applying the NULL/EMPTY sentinel convention."""
    if value is None:
        return NULL_SENTINEL
    text = _to_text(value)
    return text if text != "" else EMPTY_SENTINEL


def metadata_cell(value: Any) -> str:
    """Render a catalog cell; missing values become empty strings."""
    if value is None:
        return ""
    return _to_text(value)


class Driver(ABC):
    """Base class for database drivers.

    A driver owns exactly one live connection to one engine. Calls are
    synchronous and must not be issued concurrently on the same instance.
    """

    provider: Provider
    paramstyle: str = "format"

    insert_template = query_builder.INSERT_TEMPLATE
    update_template = query_builder.UPDATE_TEMPLATE
    delete_template = query_builder.DELETE_TEMPLATE

    def __init__(self, connect_timeout: int = 10) -> None:
        """Initialize the driver.

        Args:
            connect_timeout: Seconds to wait for the engine when connecting.
        """
        self.connect_timeout = connect_timeout
        self._engine: Optional[Engine] = None
        self._url: Optional[URL] = None

    def __enter__(self) -> "Driver":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def get_provider(self) -> Provider:
        """Get the provider this driver implements."""
        return self.provider

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    # Connection lifecycle

    def connect(self, url: str) -> None:
        """Open the connection described by ``url`` and check it is alive.

        Raises:
            DatabaseConnectionError: If the URL is malformed or the engine
                cannot be reached.
        """
        engine_url = to_engine_url(url, self.provider)
        engine = self._open_engine(engine_url)

        self.close()
        self._engine = engine
        self._url = engine_url
        logger.info(f"Connected to {self.provider.value} at {render_url(engine_url)}")

    def test_connection(self, url: str) -> None:
        """Check that ``url`` is reachable without keeping the connection.

        Raises:
            DatabaseConnectionError: If the connection or ping fails.
        """
        engine = self._open_engine(to_engine_url(url, self.provider))
        engine.dispose()

    def close(self) -> None:
        """Release the connection. Safe to call more than once."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            logger.info(f"Closed {self.provider.value} connection")

    def _open_engine(self, engine_url: URL) -> Engine:
        try:
            engine = create_engine(engine_url, **self._get_engine_options(engine_url))
        except Exception as e:
            raise DatabaseConnectionError(
                f"Failed to create {self.provider.value} engine: {e}",
                provider=self.provider.value,
            ) from e

        try:
            with engine.connect() as conn:
                conn.exec_driver_sql(self._ping_query())
        except SQLAlchemyError as e:
            engine.dispose()
            raise DatabaseConnectionError(
                f"Could not connect to {render_url(engine_url)}: {e}",
                provider=self.provider.value,
            ) from e

        return engine

    def _get_engine_options(self, engine_url: URL) -> Dict[str, Any]:
        """Get engine options pinning the engine to a single connection."""
        return {
            'pool_size': 1,
            'max_overflow': 0,
            'pool_pre_ping': True,
            'pool_recycle': 3600,
            'connect_args': self._get_connect_args(engine_url),
        }

    def _get_connect_args(self, engine_url: URL) -> Dict[str, Any]:
        return {}

    def _ping_query(self) -> str:
        return "SELECT 1"

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise DatabaseConnectionError(
                f"{self.provider.value} driver is not connected", provider=self.provider.value
            )
        return self._engine

    @contextmanager
    def _connection(self) -> Generator[Connection, None, None]:
        """Borrow the driver's connection for one read operation.

        Raises:
            QueryError: If the engine rejects a statement.
        """
        engine = self.engine
        try:
            with engine.connect() as conn:
                yield conn
        except SQLAlchemyError as e:
            raise QueryError(
                f"{self.provider.value} query failed: {e}",
                provider=self.provider.value,
                statement=getattr(e, 'statement', None),
            ) from e

    def _execute(self, conn: Connection, sql: str, args: Sequence[Any] = ()) -> CursorResult:
        logger.debug(f"Executing on {self.provider.value}: {sql}")
        if args:
            return conn.exec_driver_sql(sql, Query(sql, tuple(args)).parameters(self.paramstyle))
        return conn.exec_driver_sql(sql, execution_options={"no_parameters": True})

    def _fetch_column(self, sql: str, args: Sequence[Any] = ()) -> List[str]:
        with self._connection() as conn:
            return [metadata_cell(row[0]) for row in self._execute(conn, sql, args)]

    def _fetch_tabular(
        self,
        sql: str,
        args: Sequence[Any] = (),
        header: Optional[List[str]] = None,
    ) -> TabularResult:
        with self._connection() as conn:
            result = self._execute(conn, sql, args)
            rows: TabularResult = [list(header) if header else list(result.keys())]
            rows.extend([metadata_cell(value) for value in row] for row in result)
        return rows

    # Validation helpers

    @staticmethod
    def _require(**names: str) -> None:
        for field, value in names.items():
            if not value:
                raise ValidationError(f"{field} name is required", field=field)

    @staticmethod
    def _split_table(table: str, default_schema: str) -> Tuple[str, str]:
        """Split ``schema.table`` into its parts, using ``default_schema`` if absent."""
        if "." in table:
            schema, name = table.split(".", 1)
            return schema, name
        return default_schema, table

    def _select_database(self, database: str) -> None:
        """Make ``database`` reachable from the current connection."""
        pass

    # Formatter

    def format_arg(self, arg: Any) -> str:
        """Render ``arg`` as a SQL literal of this dialect."""
        if arg is None:
            return "NULL"
        if isinstance(arg, bool):
            return "1" if arg else "0"
        if isinstance(arg, int):
            return str(arg)
        if isinstance(arg, float):
            return format_float(arg)
        if isinstance(arg, Decimal):
            return format(arg, "f")

        if isinstance(arg, (bytes, bytearray, memoryview)):
            data = bytes(arg)
            try:
                text = data.decode("utf-8")
            except UnicodeDecodeError:
                return self.format_binary(data)
        else:
            text = str(arg)
        return f"'{self._escape_string(text)}'"

    def format_binary(self, data: bytes) -> str:
        """Render bytes that are not valid UTF-8 as a hex literal."""
        return f"X'{data.hex().upper()}'"

    def _escape_string(self, text: str) -> str:
        return text.replace("'", "''")

    @abstractmethod
    def format_reference(self, reference: str) -> str:
        """Quote an identifier."""
        pass

    @abstractmethod
    def format_placeholder(self, position: int) -> str:
        """Render the bind placeholder for the 1-based ``position``."""
        pass

    @abstractmethod
    def format_table_name(self, database: str, table: str) -> str:
        """Render the fully qualified name of ``table``."""
        pass

    # Schema introspection

    @abstractmethod
    def get_databases(self) -> List[str]:
        """Get the user databases, excluding engine-internal schemas."""
        pass

    @abstractmethod
    def get_tables(self, database: str) -> Dict[str, List[str]]:
        """Get table names grouped by database (or schema)."""
        pass

    @abstractmethod
    def get_table_columns(self, database: str, table: str) -> TabularResult:
        """Describe the columns of a table."""
        pass

    @abstractmethod
    def get_constraints(self, database: str, table: str) -> TabularResult:
        """Get constraints with the fixed constraints header."""
        pass

    @abstractmethod
    def get_foreign_keys(self, database: str, table: str) -> TabularResult:
        """Get foreign keys referencing the table, with the fixed header."""
        pass

    @abstractmethod
    def get_indexes(self, database: str, table: str) -> TabularResult:
        """Get indexes with the fixed indexes header."""
        pass

    @abstractmethod
    def get_primary_key_column_names(self, database: str, table: str) -> List[str]:
        """Get the columns defining row identity, in key order."""
        pass

    # Records

    @abstractmethod
    def _paginate(self, query: str, sort: str, offset: int, limit: int) -> str:
        """Append the dialect's ORDER BY and pagination clauses."""
        pass

    def get_records(
        self,
        database: str,
        table: str,
        where: str = "",
        sort: str = "",
        offset: int = 0,
        limit: int = 0,
    ) -> Tuple[TabularResult, int]:
        """Fetch one page of records and the total row count.

        ``where`` (including its ``WHERE`` keyword) and ``sort`` are raw SQL
        fragments appended verbatim; they must come from a trusted builder.
        The total is the table's row count and ignores ``where``.

        Returns:
            Tuple of the page (header row first) and the total row count.

        Raises:
            ValidationError: If ``database`` or ``table`` is empty.
            QueryError: If either the page or the count query fails.
        """
        self._require(database=database, table=table)
        self._select_database(database)

        if not limit:
            limit = DEFAULT_ROW_LIMIT

        table_name = self.format_table_name(database, table)
        where_clause = f" {where.strip()}" if where and where.strip() else ""
        sort = sort.strip() if sort else ""

        query = self._paginate(f"SELECT * FROM {table_name}{where_clause}", sort, int(offset), int(limit))
        count_query = f"SELECT COUNT(*) FROM {table_name}"

        with self._connection() as conn:
            result = self._execute(conn, query)
            records: TabularResult = [list(result.keys())]
            records.extend([display_cell(value) for value in row] for row in result)
            total_records = int(self._execute(conn, count_query).scalar() or 0)

        return records, total_records

    def execute_query(self, query: str) -> Tuple[TabularResult, int]:
        """Run an arbitrary read and return its rows behind a header row."""
        with self._connection() as conn:
            result = self._execute(conn, query)
            if not result.returns_rows:
                return [], 0
            records = [[display_cell(value) for value in row] for row in result]
            columns = list(result.keys())

        return [columns] + records, len(records)

    def execute_dml_statement(self, query: str) -> str:
        """Run a single write statement and report the affected rows."""
        start_time = time.time()
        try:
            with self.engine.begin() as conn:
                result = self._execute(conn, query)
                rows_affected = result.rowcount if result.rowcount and result.rowcount > 0 else 0
        except SQLAlchemyError as e:
            raise QueryError(
                f"{self.provider.value} statement failed: {e}",
                provider=self.provider.value,
                statement=query,
            ) from e

        logger.debug(f"Statement affected {rows_affected} rows in {time.time() - start_time:.2f}s")
        return f"{rows_affected} rows affected"

    # Pending changes

    def execute_pending_changes(self, changes: Sequence[DBDMLChange]) -> None:
        """Apply every change atomically, in order.

        Raises:
            ValidationError: If a change is malformed; nothing is executed.
            TransactionError: If a statement fails; nothing is applied.
        """
        queries = query_builder.build_queries(changes, self)
        executor = TransactionExecutor(self.engine, self.paramstyle, provider=self.provider.value)
        executor.execute(queries)

    def dml_change_to_query_string(self, change: DBDMLChange) -> str:
        """Render the statement ``change`` would execute, as display text."""
        return query_builder.render_query_string(change, self)
