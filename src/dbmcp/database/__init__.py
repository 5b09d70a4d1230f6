"""
Database layer - Dialects, query building, catalog decoding and datasource access
"""

from .catalog import (
    ColumnInfo, ForeignKeyInfo, IndexInfo, ParameterInfo,
    column_names, decode_columns, decode_foreign_keys, decode_indexes,
    decode_parameters, decode_primary_key, format_value,
)
from .column_cache import ColumnCache
from .datasource import CatalogReader, DataSourceContext
from .dialects import DatabaseDialect, DialectFactory, DialectFeature, DriverType
from .filters import FilterOperator, RowFilter, build_where_clause
from .query_builder import BuiltQuery, Operation, QueryBuilder, SelectQueryParams

__all__ = [
    # Dialects
    'DatabaseDialect',
    'DialectFactory',
    'DialectFeature',
    'DriverType',
    # Query building
    'BuiltQuery',
    'Operation',
    'QueryBuilder',
    'SelectQueryParams',
    # Filters
    'FilterOperator',
    'RowFilter',
    'build_where_clause',
    # Catalog
    'ColumnInfo',
    'ForeignKeyInfo',
    'IndexInfo',
    'ParameterInfo',
    'column_names',
    'decode_columns',
    'decode_foreign_keys',
    'decode_indexes',
    'decode_parameters',
    'decode_primary_key',
    'format_value',
    # Datasource
    'CatalogReader',
    'ColumnCache',
    'DataSourceContext',
]
