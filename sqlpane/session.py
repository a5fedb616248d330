"""Explicit working context for one database connection.

A session ties together a configured connection, the driver serving it, the
database/table currently selected and the edits staged against it. Callers
create as many sessions as they need; nothing is shared between them.
"""

import logging
from typing import List, Optional, Tuple

from sqlpane.config.models import Connection
from sqlpane.drivers.base import Driver
from sqlpane.drivers.factory import DriverFactory
from sqlpane.exceptions import TransactionError, ValidationError
from sqlpane.models import DBDMLChange

logger = logging.getLogger(__name__)


class Session:
    """A connection plus its staged row edits."""

    def __init__(
        self,
        connection: Connection,
        driver_factory: Optional[DriverFactory] = None,
        connect_timeout: int = 10,
    ) -> None:
        """Initialize the session without connecting.

        Args:
            connection: Connection to open.
            driver_factory: Factory selecting the driver; a default one if None.
            connect_timeout: Seconds the driver waits when connecting.
        """
        self.connection = connection
        self.driver_factory = driver_factory or DriverFactory()
        self.connect_timeout = connect_timeout
        self.database: Optional[str] = None
        self.table: Optional[str] = None
        self._driver: Optional[Driver] = None
        self._pending: List[DBDMLChange] = []

    def __enter__(self) -> "Session":
        self.open()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    @property
    def driver(self) -> Driver:
        if self._driver is None:
            self.open()
        return self._driver

    @property
    def is_open(self) -> bool:
        return self._driver is not None and self._driver.is_connected

    def open(self) -> Driver:
        """Connect the session's driver if it is not connected yet.

        Raises:
            ConfigurationError: If the provider has no driver.
            DatabaseConnectionError: If the connection fails.
        """
        if self.is_open:
            return self._driver

        driver = self.driver_factory.create_driver(self.connection.provider, self.connect_timeout)
        driver.connect(self.connection.url)
        self._driver = driver
        logger.info(f"Opened session '{self.connection.name}'")
        return driver

    def close(self) -> None:
        """Close the driver. Staged changes are kept."""
        if self._driver is not None:
            self._driver.close()
            self._driver = None
            logger.info(f"Closed session '{self.connection.name}'")

    def select(self, database: str, table: Optional[str] = None) -> None:
        """Select the database (and optionally table) used as defaults for staging."""
        if not database:
            raise ValidationError("database name is required", field="database")
        self.database = database
        self.table = table

    # Pending changes

    @property
    def pending_changes(self) -> Tuple[DBDMLChange, ...]:
        return tuple(self._pending)

    def stage(self, change: DBDMLChange) -> DBDMLChange:
        """Validate and stage a change.

        Empty ``database``/``table`` fields are filled from the selection.

        Raises:
            ValidationError: If the change is malformed.
        """
        if not change.database and self.database:
            change.database = self.database
        if not change.table and self.table:
            change.table = self.table

        change.validate()
        self._pending.append(change)
        logger.debug(f"Staged {change.type.value} on {change.table} ({len(self._pending)} pending)")
        return change

    def unstage(self, index: int) -> DBDMLChange:
        """Remove and return the staged change at ``index``.

        Raises:
            ValidationError: If no change is staged at ``index``.
        """
        try:
            return self._pending.pop(index)
        except IndexError as e:
            raise ValidationError(f"No pending change at index {index}", field="index") from e

    def discard_changes(self) -> int:
        """Drop every staged change, returning how many were dropped."""
        count = len(self._pending)
        self._pending.clear()
        return count

    def preview(self) -> List[str]:
        """Render the staged changes as the statements a commit would run."""
        return [self.driver.dml_change_to_query_string(change) for change in self._pending]

    def commit(self) -> int:
        """Apply every staged change atomically.

        Staged changes are cleared only when the batch commits; after a
        ``TransactionError`` they remain staged for a retry.

        Returns:
            Number of changes applied.
        """
        if not self._pending:
            return 0

        changes = list(self._pending)
        try:
            self.driver.execute_pending_changes(changes)
        except TransactionError:
            logger.error(f"Commit of {len(changes)} change(s) on '{self.connection.name}' failed")
            raise

        self._pending.clear()
        logger.info(f"Committed {len(changes)} change(s) on '{self.connection.name}'")
        return len(changes)
