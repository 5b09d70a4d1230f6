"""
Dialect Factory - Create the dialect matching a driver type
"""

from typing import Dict, List, Type, Union
from .base import DatabaseDialect, DriverType

import logging
logger = logging.getLogger(__name__)


class DialectFactory:
    """
    Factory for creating database dialects.

    Usage:
        dialect = DialectFactory.create("postgres")
        dialect.placeholder(2)   # "$2"
    """

    # Registry of supported drivers
    _dialects: Dict[DriverType, Type[DatabaseDialect]] = {}

    @classmethod
    def create(cls, driver: Union[DriverType, str]) -> DatabaseDialect:
        """
        Create a dialect for the specified driver.

        Args:
            driver: DriverType or any name accepted by DriverType.parse

        Returns:
            A fresh DatabaseDialect instance

        Raises:
            ConfigurationError: If the driver is not recognized
        """
        driver_type = DriverType.parse(driver)
        return cls._dialects[driver_type]()

    @classmethod
    def supported_types(cls) -> List[DriverType]:
        """Get list of registered driver types."""
        return list(cls._dialects.keys())

    @classmethod
    def register(cls, driver: DriverType, dialect_class: Type[DatabaseDialect]):
        """
        Register a dialect for a driver type.

        Args:
            driver: Driver type identifier
            dialect_class: DatabaseDialect subclass
        """
        cls._dialects[driver] = dialect_class
        logger.debug(f"Registered dialect for: {driver.value}")


def _register_default_dialects():
    """Register built-in dialects. Called on module import."""
    from .sqlserver_dialect import SQLServerDialect
    from .postgresql_dialect import PostgreSQLDialect
    from .mysql_dialect import MySQLDialect
    from .oracle_dialect import OracleDialect
    from .sqlite_dialect import SQLiteDialect

    DialectFactory.register(DriverType.SQLSERVER, SQLServerDialect)
    DialectFactory.register(DriverType.POSTGRESQL, PostgreSQLDialect)
    DialectFactory.register(DriverType.MYSQL, MySQLDialect)
    DialectFactory.register(DriverType.ORACLE, OracleDialect)
    DialectFactory.register(DriverType.SQLITE, SQLiteDialect)


# Register on module import
_register_default_dialects()
