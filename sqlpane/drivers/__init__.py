"""Database drivers for SQLPane."""

from sqlpane.drivers.base import Driver
from sqlpane.drivers.clickhouse import ClickHouse
from sqlpane.drivers.factory import DriverFactory
from sqlpane.drivers.mssql import MSSQL
from sqlpane.drivers.mysql import MySQL
from sqlpane.drivers.postgres import Postgres
from sqlpane.drivers.sqlite import SQLite
from sqlpane.drivers.transaction import TransactionExecutor

__all__ = [
    "Driver",
    "DriverFactory",
    "TransactionExecutor",
    "MySQL",
    "Postgres",
    "SQLite",
    "MSSQL",
    "ClickHouse",
]
