"""Pydantic models for SQLPane configuration."""

from typing import List, Optional

from pydantic import (
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from sqlpane.exceptions import ConfigurationError
from sqlpane.models import Provider


class ConnectionCommand(BaseModel):
    """A shell command to run before connecting (for example an SSH tunnel).

    SQLPane only reads these; running them is left to the caller.
    """
    command: str
    wait_for_port: Optional[int] = Field(default=None, ge=1, le=65535)


class Connection(BaseModel):
    """A named database connection."""

    name: str = Field(min_length=1)
    url: str = Field(min_length=1)
    provider: Optional[Provider] = None
    commands: List[ConnectionCommand] = Field(default_factory=list)

    @model_validator(mode='after')
    def infer_provider(self):
        """Infer the provider from the URL scheme when it is not given."""
        if self.provider is None:
            try:
                inferred = Provider.from_url(self.url)
            except ConfigurationError as e:
                raise ValueError(e.message) from e
            object.__setattr__(self, 'provider', inferred)
        return self


class SQLPaneConfig(BaseModel):
    """Main configuration model for SQLPane."""
    connections: List[Connection]
    default_connection: Optional[str] = None

    @field_validator('connections')
    def validate_unique_names(cls, v):
        """Ensure connection names are unique."""
        seen = set()
        for connection in v:
            if connection.name in seen:
                raise ValueError(f"Duplicate connection name '{connection.name}'")
            seen.add(connection.name)
        return v

    @model_validator(mode='after')
    def validate_default_connection(self):
        """Ensure default_connection exists, defaulting to the first connection."""
        names = [connection.name for connection in self.connections]
        if self.default_connection and self.default_connection not in names:
            raise ValueError(f"default_connection '{self.default_connection}' not found in connections")

        if not self.default_connection and names:
            self.default_connection = names[0]
        return self

    def get_connection(self, name: Optional[str] = None) -> Connection:
        """Get a connection by name, or the default connection.

        Raises:
            ConfigurationError: If the connection is not configured.
        """
        name = name or self.default_connection
        for connection in self.connections:
            if connection.name == name:
                return connection

        available = [connection.name for connection in self.connections]
        raise ConfigurationError(
            f"Connection '{name}' not found in configuration. "
            f"Available connections: {available}"
        )


class EnvironmentSettings(BaseSettings):
    """Environment-specific settings."""

    model_config = SettingsConfigDict(env_prefix="SQLPANE_", case_sensitive=False)

    log_level: str = Field(default="INFO")
    debug: bool = Field(default=False)
    config_file: Optional[str] = Field(default=None)
    connect_timeout: int = Field(default=10, ge=1, le=3600)
