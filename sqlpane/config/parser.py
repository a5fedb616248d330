"""Configuration parser for SQLPane."""

import os
import re
from pathlib import Path
from typing import Any, List, Optional, Union

import yaml
from pydantic import ValidationError

from sqlpane.config.models import EnvironmentSettings, SQLPaneConfig
from sqlpane.exceptions import ConfigurationError, ValidationError as ChangeValidationError
from sqlpane.models import DBDMLChange


class ConfigParser:
    """Configuration parser with environment variable interpolation."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([^}]+)\}')

    def __init__(self, env_settings: Optional[EnvironmentSettings] = None) -> None:
        """Initialize the configuration parser.

        Args:
            env_settings: Environment settings; read from ``SQLPANE_*`` variables if None.
        """
        self.env_settings = env_settings or EnvironmentSettings()

    def load_config(self, config_path: Optional[Union[str, Path]] = None) -> SQLPaneConfig:
        """Load and validate configuration from YAML file.

        Args:
            config_path: Path to configuration file. If None, looks for default locations.

        Returns:
            Validated SQLPaneConfig instance.

        Raises:
            ConfigurationError: If configuration is invalid or file not found.
        """
        config_file = self._find_config_file(config_path)
        raw_config = self._read_yaml(config_file)

        if not raw_config:
            raise ConfigurationError(f"Configuration file '{config_file}' is empty")
        if not isinstance(raw_config, dict):
            raise ConfigurationError(f"Configuration file '{config_file}' must contain a mapping")

        try:
            return SQLPaneConfig(**self._process_env_vars(raw_config))
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

    def load_changes(self, changes_path: Union[str, Path]) -> List[DBDMLChange]:
        """Load a YAML list of pending changes.

        The file holds either a list of changes or a mapping with a
        ``changes`` key. Environment variables are interpolated as in
        configuration files.

        Raises:
            ConfigurationError: If the file cannot be read or a change is malformed.
        """
        path = Path(changes_path)
        raw = self._process_env_vars(self._read_yaml(path))

        if isinstance(raw, dict):
            raw = raw.get('changes')
        if not isinstance(raw, list):
            raise ConfigurationError(f"Changes file '{path}' must contain a list of changes")

        changes = []
        for position, entry in enumerate(raw, start=1):
            if not isinstance(entry, dict):
                raise ConfigurationError(f"Change #{position} in '{path}' is not a mapping")
            try:
                change = DBDMLChange.from_dict(entry)
                change.validate()
            except ChangeValidationError as e:
                raise ConfigurationError(f"Change #{position} in '{path}' is invalid: {e.message}") from e
            changes.append(change)
        return changes

    def _read_yaml(self, path: Path) -> Any:
        try:
            with open(path, 'r', encoding='utf-8') as file:
                return yaml.safe_load(file)
        except FileNotFoundError as e:
            raise ConfigurationError(f"File '{path}' not found") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in '{path}': {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read '{path}': {e}") from e

    def _find_config_file(self, config_path: Optional[Union[str, Path]]) -> Path:
        """Find configuration file in default locations.

        Args:
            config_path: Explicit path to configuration file.

        Returns:
            Path to configuration file.

        Raises:
            ConfigurationError: If no configuration file is found.
        """
        if config_path:
            path = Path(config_path)
            if path.exists():
                return path
            raise ConfigurationError(f"Configuration file '{config_path}' not found")

        if self.env_settings.config_file:
            path = Path(self.env_settings.config_file)
            if path.exists():
                return path

        for location in self.default_locations():
            if location.exists():
                return location

        raise ConfigurationError(
            f"No configuration file found in default locations: {[str(p) for p in self.default_locations()]}"
        )

    @staticmethod
    def default_locations() -> List[Path]:
        return [
            Path.cwd() / "sqlpane.yaml",
            Path.cwd() / "sqlpane.yml",
            Path.home() / ".config" / "sqlpane" / "config.yaml",
        ]

    def _process_env_vars(self, config: Any) -> Any:
        """Recursively process environment variables in configuration."""
        if isinstance(config, dict):
            return {key: self._process_env_vars(value) for key, value in config.items()}
        elif isinstance(config, list):
            return [self._process_env_vars(item) for item in config]
        elif isinstance(config, str):
            return self._substitute_env_vars(config)
        else:
            return config

    def _substitute_env_vars(self, value: str) -> str:
        """Substitute ``${VAR}`` and ``${VAR:-default}`` in a string.

        Raises:
            ConfigurationError: If a required environment variable is not set.
        """
        def replace_var(match):
            var_expr = match.group(1)

            if ':-' in var_expr:
                var_name, default = var_expr.split(':-', 1)
                return os.getenv(var_name.strip(), default.strip())

            var_name = var_expr.strip()
            env_value = os.getenv(var_name)
            if env_value is None:
                raise ConfigurationError(f"Required environment variable '{var_name}' is not set")
            return env_value

        return self.ENV_VAR_PATTERN.sub(replace_var, value)

    def validate_config_file(self, config_path: Union[str, Path]) -> SQLPaneConfig:
        """Validate a configuration file, returning it when valid.

        Raises:
            ConfigurationError: If configuration is invalid.
        """
        return self.load_config(config_path)

    def create_sample_config(self, output_path: Union[str, Path]) -> None:
        """Create a sample configuration file.

        Args:
            output_path: Path where to create the sample configuration.
        """
        sample_config = {
            'connections': [
                {
                    'name': 'local-postgres',
                    'url': 'postgres://dev_user:${PG_PASSWORD:-dev_password}@localhost:5432/app_dev',
                },
                {
                    'name': 'warehouse',
                    'url': 'clickhouse://default:@localhost:9000/default?max_execution_time=60',
                },
                {
                    'name': 'reporting',
                    'url': 'mysql://report:${REPORT_PASSWORD:-secret}@127.0.0.1:3307/reports',
                    'commands': [
                        {
                            'command': 'ssh -N -L 3307:db.internal:3306 bastion',
                            'wait_for_port': 3307,
                        }
                    ],
                },
                {
                    'name': 'scratch',
                    'url': 'sqlite:./scratch.db',
                },
            ],
            'default_connection': 'local-postgres',
        }

        try:
            with open(output_path, 'w', encoding='utf-8') as file:
                yaml.safe_dump(sample_config, file, default_flow_style=False, sort_keys=False)
        except OSError as e:
            raise ConfigurationError(f"Cannot write sample configuration to '{output_path}': {e}") from e
