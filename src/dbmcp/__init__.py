"""
dbmcp - Engine-agnostic catalog queries and a read-only gate for ad-hoc SQL

Supports SQL Server, PostgreSQL, MySQL, Oracle and SQLite.
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("dbmcp")
except PackageNotFoundError:
    # Package not installed, running from a source checkout
    __version__ = "0.1.0"

from .database import CatalogReader, DataSourceContext, DriverType, Operation, QueryBuilder
from .security import SQLValidator, validate_query

__all__ = [
    "__version__",
    "CatalogReader",
    "DataSourceContext",
    "DriverType",
    "Operation",
    "QueryBuilder",
    "SQLValidator",
    "validate_query",
]
