"""Configuration management for SQLPane."""

from sqlpane.config.models import (
    Connection,
    ConnectionCommand,
    EnvironmentSettings,
    SQLPaneConfig,
)
from sqlpane.config.parser import ConfigParser

__all__ = [
    # Models
    "Connection",
    "ConnectionCommand",
    "EnvironmentSettings",
    "SQLPaneConfig",
    # Parser
    "ConfigParser",
]
