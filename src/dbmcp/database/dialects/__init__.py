"""
Database Dialects - Engine-specific SQL fragments

One dialect per supported engine turns structural parameters into SQL:
placeholders, identifier quoting, pagination and catalog query sets.

Usage:
    from dbmcp.database.dialects import DialectFactory, DriverType

    dialect = DialectFactory.create(DriverType.SQLSERVER)
    dialect.placeholder(1)                           # "@p1"
    dialect.pagination_clause(50, 100)               # "ORDER BY (SELECT NULL) OFFSET 100 ..."
    meta = dialect.table_metadata()                  # TableMetadataSQL
"""

from .base import (
    DatabaseDialect,
    DatabaseInfoSQL,
    DialectFeature,
    DriverType,
    FunctionMetadataSQL,
    PlaceholderStyle,
    ProcedureMetadataSQL,
    TableMetadataSQL,
    TriggerMetadataSQL,
    ViewMetadataSQL,
)
from .factory import DialectFactory

from .sqlserver_dialect import SQLServerDialect
from .postgresql_dialect import PostgreSQLDialect
from .mysql_dialect import MySQLDialect
from .oracle_dialect import OracleDialect
from .sqlite_dialect import SQLiteDialect

__all__ = [
    # Base classes and enums
    "DatabaseDialect",
    "DialectFeature",
    "DriverType",
    "PlaceholderStyle",

    # Metadata query sets
    "TableMetadataSQL",
    "ProcedureMetadataSQL",
    "FunctionMetadataSQL",
    "ViewMetadataSQL",
    "TriggerMetadataSQL",
    "DatabaseInfoSQL",

    # Factory
    "DialectFactory",

    # Implementations
    "SQLServerDialect",
    "PostgreSQLDialect",
    "MySQLDialect",
    "OracleDialect",
    "SQLiteDialect",
]
