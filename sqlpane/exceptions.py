"""Core exceptions for SQLPane."""

from typing import Any, Dict, Optional


class SQLPaneError(Exception):
    """Base exception for all SQLPane errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(SQLPaneError):
    """Raised when there's an error in configuration parsing or validation."""
    pass


class ValidationError(SQLPaneError):
    """Raised when a required name is missing or a pending change is malformed."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.field = field


class DatabaseError(SQLPaneError):
    """Raised when there's an error connecting to or querying a database."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.provider = provider


class DatabaseConnectionError(DatabaseError):
    """Raised when a URL is malformed or the engine cannot be reached."""
    pass


class QueryError(DatabaseError):
    """Raised when the engine rejects a statement."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        statement: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, provider, details)
        self.statement = statement


class TransactionError(QueryError):
    """Raised when a statement of a pending-changes batch fails.

    The whole batch has been rolled back when this is raised.
    """

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        statement: Optional[str] = None,
        statement_index: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, provider, statement, details)
        self.statement_index = statement_index
