"""
SQLite Dialect - SQLite-specific SQL fragments

SQLite has no schemas, no stored procedures and no catalog of user
functions. Column, key and index introspection goes through PRAGMA
statements whose ``{table}`` slot receives an already validated, quoted
table name; PRAGMA arguments cannot be bound.
"""

from .base import (
    DatabaseDialect, DatabaseInfoSQL, DialectFeature, DriverType,
    PlaceholderStyle, TableMetadataSQL, TriggerMetadataSQL, ViewMetadataSQL,
)

import logging
logger = logging.getLogger(__name__)


class SQLiteDialect(DatabaseDialect):
    """Dialect for SQLite databases."""

    driver = DriverType.SQLITE
    placeholder_style = PlaceholderStyle.QMARK

    UNSUPPORTED_FEATURES = frozenset({
        DialectFeature.STORED_PROCEDURES,
        DialectFeature.FUNCTIONS,
        DialectFeature.SCHEMAS,
        DialectFeature.ILIKE,
    })

    SEARCH_TYPE_CODES = (
        ("table", "table"),
        ("view", "view"),
        ("trigger", "trigger"),
    )
    SEARCH_TYPE_COLUMN = "type"
    SEARCH_CODE_CLAUSE = " OR sql LIKE '%' || ? || '%'"

    @property
    def quote_char(self) -> str:
        return '"'

    @property
    def default_schema(self) -> str:
        return "main"

    def placeholder(self, index: int) -> str:
        return "?"

    def current_database(self) -> str:
        return "'main'"

    def current_schema(self) -> str:
        return "'main'"

    def table_metadata(self) -> TableMetadataSQL:
        return TableMetadataSQL(
            list_tables="""
                SELECT
                    'main' AS table_schema,
                    name AS table_name,
                    'BASE TABLE' AS table_type
                FROM sqlite_master
                WHERE type = 'table'
                    AND name NOT LIKE 'sqlite_%'""",
            name_filter=" AND name LIKE {placeholder}",
            order_by="name",
            describe_table="PRAGMA table_info({table})",
            table_exists="SELECT COUNT(*) FROM sqlite_master WHERE type = 'table' AND name = ?",
            get_columns="PRAGMA table_info({table})",
            get_full_schema="PRAGMA table_info({table})",
            get_primary_key="PRAGMA table_info({table})",
            get_indexes="PRAGMA index_list({table})",
            get_foreign_keys="PRAGMA foreign_key_list({table})",
        )

    def view_metadata(self) -> ViewMetadataSQL:
        return ViewMetadataSQL(
            list_views="""
                SELECT
                    'main' AS view_schema,
                    name AS view_name,
                    NULL AS created,
                    NULL AS last_altered
                FROM sqlite_master
                WHERE type = 'view'""",
            name_filter=" AND name LIKE {placeholder}",
            order_by="name",
            get_definition="SELECT sql FROM sqlite_master WHERE type = 'view' AND name = ?",
        )

    def trigger_metadata(self) -> TriggerMetadataSQL:
        return TriggerMetadataSQL(
            list_triggers="""
                SELECT
                    'main' AS schema_name,
                    name AS trigger_name,
                    tbl_name AS table_name,
                    0 AS is_disabled,
                    NULL AS create_date,
                    NULL AS modify_date
                FROM sqlite_master
                WHERE type = 'trigger'""",
            table_filter=" AND tbl_name = {placeholder}",
            name_filter=" AND name LIKE {placeholder}",
            order_by="tbl_name, name",
            get_code="SELECT sql FROM sqlite_master WHERE type = 'trigger' AND name = ?",
        )

    def database_info(self) -> DatabaseInfoSQL:
        return DatabaseInfoSQL(
            version="SELECT sqlite_version()",

            object_counts="""
                SELECT
                    SUM(CASE WHEN type = 'table' THEN 1 ELSE 0 END) AS tables,
                    SUM(CASE WHEN type = 'view' THEN 1 ELSE 0 END) AS views,
                    0 AS procedures,
                    0 AS functions,
                    SUM(CASE WHEN type = 'trigger' THEN 1 ELSE 0 END) AS triggers
                FROM sqlite_master
                WHERE name NOT LIKE 'sqlite_%'""",

            search_objects="""
                SELECT
                    '' AS schema_name,
                    name AS object_name,
                    type AS object_type,
                    NULL AS create_date,
                    NULL AS modify_date,
                    CASE WHEN sql IS NOT NULL THEN 1 ELSE 0 END AS has_code
                FROM sqlite_master
                WHERE name NOT LIKE 'sqlite_%'
                  AND (name LIKE '%' || ? || '%'{code_search}){type_filter}
                ORDER BY name""",
        )
