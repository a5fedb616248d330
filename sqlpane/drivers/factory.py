"""Selection of the driver implementing a provider."""

from typing import Dict, List, Optional, Type, Union

from sqlpane.drivers.base import Driver
from sqlpane.drivers.clickhouse import ClickHouse
from sqlpane.drivers.mssql import MSSQL
from sqlpane.drivers.mysql import MySQL
from sqlpane.drivers.postgres import Postgres
from sqlpane.drivers.sqlite import SQLite
from sqlpane.exceptions import ConfigurationError
from sqlpane.models import Provider

DEFAULT_DRIVERS: Dict[Provider, Type[Driver]] = {
    Provider.MYSQL: MySQL,
    Provider.POSTGRES: Postgres,
    Provider.SQLITE: SQLite,
    Provider.MSSQL: MSSQL,
    Provider.CLICKHOUSE: ClickHouse,
}


class DriverFactory:
    """Factory for creating database drivers.

    Each factory owns its own registry, seeded with the built-in drivers, so
    registering a custom driver never affects other factories.
    """

    def __init__(self, drivers: Optional[Dict[Provider, Type[Driver]]] = None) -> None:
        self._drivers: Dict[Provider, Type[Driver]] = dict(DEFAULT_DRIVERS)
        if drivers:
            self._drivers.update(drivers)

    def create_driver(self, provider: Union[Provider, str], connect_timeout: int = 10) -> Driver:
        """Create an unconnected driver for ``provider``.

        Args:
            provider: Provider enum member or its string value.
            connect_timeout: Seconds the driver waits when connecting.

        Returns:
            Driver instance.

        Raises:
            ConfigurationError: If the provider is not supported.
        """
        try:
            provider = Provider(provider)
        except ValueError as e:
            raise ConfigurationError(
                f"Unsupported provider: {provider}. "
                f"Supported providers: {[p.value for p in self.get_supported_providers()]}"
            ) from e

        driver_class = self._drivers.get(provider)
        if not driver_class:
            raise ConfigurationError(f"No driver registered for provider: {provider.value}")

        return driver_class(connect_timeout=connect_timeout)

    def create_driver_for_url(self, url: str, connect_timeout: int = 10) -> Driver:
        """Create the driver whose provider matches the scheme of ``url``."""
        return self.create_driver(Provider.from_url(url), connect_timeout)

    def register_driver(self, provider: Provider, driver_class: Type[Driver]) -> None:
        """Register a custom driver for a provider.

        Args:
            provider: Provider the driver implements.
            driver_class: Driver class to register.
        """
        self._drivers[provider] = driver_class

    def get_supported_providers(self) -> List[Provider]:
        """Get list of providers with a registered driver."""
        return list(self._drivers.keys())
