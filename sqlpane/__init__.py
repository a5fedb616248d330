"""SQLPane: browse and edit data across SQL engines through one driver API.

SQLPane provides:
- One driver capability set for MySQL, Postgres, SQLite, MSSQL and ClickHouse
- Schema introspection and paginated record reading
- Staged row edits applied atomically as dialect-correct SQL
- YAML-based connection configuration and a command line interface
"""

__version__ = "0.1.0"

from sqlpane.exceptions import (
    ConfigurationError,
    DatabaseConnectionError,
    DatabaseError,
    QueryError,
    SQLPaneError,
    TransactionError,
    ValidationError,
)
from sqlpane.models import (
    CellValue,
    CellValueType,
    DBDMLChange,
    DMLType,
    PrimaryKeyInfo,
    Provider,
)

__all__ = [
    "__version__",
    "SQLPaneError",
    "ConfigurationError",
    "ValidationError",
    "DatabaseError",
    "DatabaseConnectionError",
    "QueryError",
    "TransactionError",
    "Provider",
    "DMLType",
    "CellValueType",
    "CellValue",
    "PrimaryKeyInfo",
    "DBDMLChange",
]
