"""Core data model shared by the drivers and their callers."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlpane.exceptions import ConfigurationError, ValidationError

# Reserved cell values used by every record reader.
NULL_SENTINEL = "NULL&"
EMPTY_SENTINEL = "EMPTY&"

# Page size used when a caller asks for limit == 0.
DEFAULT_ROW_LIMIT = 300

CONSTRAINTS_HEADER = ["CONSTRAINT_NAME", "COLUMN_NAME", "REFERENCED_TABLE_NAME", "REFERENCED_COLUMN_NAME"]
FOREIGN_KEYS_HEADER = ["TABLE_NAME", "COLUMN_NAME", "CONSTRAINT_NAME", "REFERENCED_COLUMN_NAME", "REFERENCED_TABLE_NAME"]
INDEXES_HEADER = ["INDEX_NAME", "COLUMN_NAME", "NON_UNIQUE", "INDEX_TYPE"]

TabularResult = List[List[str]]


class Provider(str, Enum):
    """Supported database engines."""
    MYSQL = "mysql"
    POSTGRES = "postgres"
    SQLITE = "sqlite"
    MSSQL = "mssql"
    CLICKHOUSE = "clickhouse"

    @classmethod
    def from_url(cls, url: str) -> "Provider":
        """Infer the provider from the scheme of a connection URL.

        Raises:
            ConfigurationError: If the scheme is missing or unknown.
        """
        scheme, separator, _ = url.strip().partition(":")
        if not separator or not scheme:
            raise ConfigurationError(f"Connection URL has no scheme: '{url}'")

        provider = _SCHEME_ALIASES.get(scheme.lower())
        if provider is None:
            raise ConfigurationError(
                f"Unsupported connection URL scheme '{scheme}'. "
                f"Supported schemes: {sorted(_SCHEME_ALIASES)}"
            )
        return provider


_SCHEME_ALIASES: Dict[str, Provider] = {
    'mysql': Provider.MYSQL,
    'mariadb': Provider.MYSQL,
    'postgres': Provider.POSTGRES,
    'postgresql': Provider.POSTGRES,
    'pg': Provider.POSTGRES,
    'pgsql': Provider.POSTGRES,
    'sqlite': Provider.SQLITE,
    'sqlite3': Provider.SQLITE,
    'file': Provider.SQLITE,
    'mssql': Provider.MSSQL,
    'sqlserver': Provider.MSSQL,
    'ms': Provider.MSSQL,
    'clickhouse': Provider.CLICKHOUSE,
    'clickhouse+native': Provider.CLICKHOUSE,
    'clickhouse+http': Provider.CLICKHOUSE,
    'ch': Provider.CLICKHOUSE,
}


class DMLType(str, Enum):
    """Kinds of row-level edits."""
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class CellValueType(str, Enum):
    """How a staged cell value is rendered into SQL."""
    STRING = "string"
    NULL = "null"
    DEFAULT = "default"


@dataclass
class CellValue:
    """One column assignment of a pending change."""
    column: str
    value: Any = None
    type: CellValueType = CellValueType.STRING

    @property
    def keyword(self) -> Optional[str]:
        """SQL keyword this value renders as, or None if it is a real value."""
        if self.type == CellValueType.DEFAULT:
            return "DEFAULT"
        if self.type == CellValueType.NULL or self.value is None:
            return "NULL"
        return None


@dataclass
class PrimaryKeyInfo:
    """A primary key column and the value identifying the edited row."""
    name: str
    value: Any


@dataclass
class DBDMLChange:
    """A staged row-level edit waiting to be executed."""
    type: DMLType
    database: str
    table: str
    values: List[CellValue] = field(default_factory=list)
    primary_key_info: List[PrimaryKeyInfo] = field(default_factory=list)

    def validate(self) -> None:
        """Check the change can be turned into a statement.

        Raises:
            ValidationError: If the target or the row predicate is missing.
        """
        if not self.table:
            raise ValidationError("table name is required", field="table")

        if self.type in (DMLType.INSERT, DMLType.UPDATE) and not self.values:
            raise ValidationError(
                f"{self.type.value} of '{self.table}' has no values", field="values"
            )

        if self.type in (DMLType.UPDATE, DMLType.DELETE) and not self.primary_key_info:
            raise ValidationError(
                f"{self.type.value} of '{self.table}' requires primary key values",
                field="primary_key_info",
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DBDMLChange":
        """Build a change from its plain mapping form (as found in YAML files).

        ``values`` and ``primary_key`` may be given either as mappings of
        column to value or as lists of ``{column, value, type}`` entries.
        """
        try:
            change_type = DMLType(str(data['type']).lower())
        except (KeyError, ValueError) as e:
            raise ValidationError(f"Invalid change type: {data.get('type')!r}", field="type") from e

        values = [
            CellValue(column=column, value=value, type=CellValueType(kind))
            for column, value, kind in _pairs(data.get('values'), 'column')
        ]
        primary_key_info = [
            PrimaryKeyInfo(name=name, value=value)
            for name, value, _ in _pairs(data.get('primary_key'), 'name')
        ]

        return cls(
            type=change_type,
            database=str(data.get('database') or ''),
            table=str(data.get('table') or ''),
            values=values,
            primary_key_info=primary_key_info,
        )


def _pairs(raw: Union[None, Dict[str, Any], List[Dict[str, Any]]], key: str) -> List[Tuple[str, Any, str]]:
    if not raw:
        return []
    if isinstance(raw, dict):
        return [(name, value, _implicit_type(value)) for name, value in raw.items()]

    pairs = []
    for entry in raw:
        name = entry.get(key) or entry.get('column') or entry.get('name')
        if not name:
            raise ValidationError(f"Entry {entry!r} has no {key}", field=key)
        value = entry.get('value')
        pairs.append((name, value, str(entry.get('type') or _implicit_type(value)).lower()))
    return pairs


def _implicit_type(value: Any) -> str:
    return CellValueType.NULL.value if value is None else CellValueType.STRING.value


@dataclass(frozen=True)
class Query:
    """A built statement and its ordered arguments."""
    text: str
    args: Tuple[Any, ...] = ()

    def parameters(self, paramstyle: str) -> Union[Tuple[Any, ...], Dict[str, Any]]:
        """Arguments shaped for a DB-API driver using ``paramstyle``."""
        if paramstyle in ("named", "pyformat"):
            return {f"p{position}": arg for position, arg in enumerate(self.args, start=1)}
        return tuple(self.args)
