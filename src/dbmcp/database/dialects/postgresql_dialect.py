"""
PostgreSQL Dialect - PostgreSQL-specific SQL fragments
"""

from typing import List, Tuple
from .base import (
    DatabaseDialect, DatabaseInfoSQL, DriverType, FunctionMetadataSQL,
    PlaceholderStyle, ProcedureMetadataSQL, TableMetadataSQL,
    TriggerMetadataSQL, ViewMetadataSQL,
)

import logging
logger = logging.getLogger(__name__)


class PostgreSQLDialect(DatabaseDialect):
    """Dialect for PostgreSQL databases."""

    driver = DriverType.POSTGRESQL
    placeholder_style = PlaceholderStyle.NUMBERED

    # System schemas to exclude
    SYSTEM_SCHEMAS = ('pg_catalog', 'information_schema', 'pg_toast')

    # Every feature, ILIKE included
    UNSUPPORTED_FEATURES = frozenset()

    SEARCH_TYPE_CODES = (
        ("table", "BASE TABLE"),
        ("view", "VIEW"),
    )
    SEARCH_TYPE_COLUMN = "table_type"
    SEARCH_CODE_CLAUSE = " OR view_definition LIKE '%' || $1 || '%'"

    @property
    def quote_char(self) -> str:
        return '"'

    @property
    def default_schema(self) -> str:
        return "public"

    def placeholder(self, index: int) -> str:
        return f"${index}"

    def like_operator(self, case_sensitive: bool = True) -> str:
        """ILIKE for case-insensitive matching."""
        return "LIKE" if case_sensitive else "ILIKE"

    def current_database(self) -> str:
        return "current_database()"

    def current_schema(self) -> str:
        return "current_schema()"

    def procedure_call(self, qualified_name: str, arguments: List[Tuple[str, str]]) -> str:
        markers = ", ".join(marker for _, marker in arguments)
        return f"CALL {qualified_name}({markers})"

    def table_metadata(self) -> TableMetadataSQL:
        return TableMetadataSQL(
            list_tables="""
                SELECT
                    table_schema,
                    table_name,
                    table_type
                FROM information_schema.tables
                WHERE table_type = 'BASE TABLE'
                    AND table_schema NOT IN ('pg_catalog', 'information_schema')""",
            schema_filter=" AND table_schema = {placeholder}",
            name_filter=" AND table_name ILIKE {placeholder}",
            order_by="table_schema, table_name",

            describe_table="""
                SELECT
                    column_name,
                    data_type,
                    is_nullable,
                    column_default,
                    character_maximum_length
                FROM information_schema.columns
                WHERE table_schema = $1 AND table_name = $2
                ORDER BY ordinal_position""",

            table_exists=(
                "SELECT COUNT(*) FROM information_schema.tables "
                "WHERE table_schema = $1 AND table_name = $2"
            ),

            get_columns="""
                SELECT
                    column_name,
                    data_type,
                    character_maximum_length,
                    is_nullable,
                    column_default
                FROM information_schema.columns
                WHERE table_schema = $1 AND table_name = $2
                ORDER BY ordinal_position""",

            get_full_schema="""
                SELECT
                    c.column_name,
                    c.data_type,
                    c.character_maximum_length,
                    c.numeric_precision,
                    c.numeric_scale,
                    c.is_nullable,
                    c.column_default,
                    CASE WHEN pk.column_name IS NOT NULL THEN 'YES' ELSE 'NO' END AS is_primary_key
                FROM information_schema.columns c
                LEFT JOIN (
                    SELECT ku.table_schema, ku.table_name, ku.column_name
                    FROM information_schema.table_constraints tc
                    JOIN information_schema.key_column_usage ku
                        ON tc.constraint_type = 'PRIMARY KEY'
                        AND tc.constraint_name = ku.constraint_name
                        AND tc.table_schema = ku.table_schema
                        AND tc.table_name = ku.table_name
                ) pk ON c.table_schema = pk.table_schema
                    AND c.table_name = pk.table_name
                    AND c.column_name = pk.column_name
                WHERE c.table_schema = $1 AND c.table_name = $2
                ORDER BY c.ordinal_position""",

            get_primary_key="""
                SELECT ku.column_name
                FROM information_schema.table_constraints tc
                JOIN information_schema.key_column_usage ku
                    ON tc.constraint_name = ku.constraint_name
                    AND tc.table_schema = ku.table_schema
                    AND tc.table_name = ku.table_name
                WHERE tc.constraint_type = 'PRIMARY KEY'
                    AND tc.table_schema = $1
                    AND tc.table_name = $2
                ORDER BY ku.ordinal_position""",

            get_indexes="""
                SELECT
                    i.indexname AS index_name,
                    a.amname AS index_type,
                    ix.indisunique AS is_unique,
                    a2.attname AS column_name
                FROM pg_indexes i
                JOIN pg_class c ON i.indexname = c.relname
                JOIN pg_index ix ON c.oid = ix.indexrelid
                JOIN pg_class t ON ix.indrelid = t.oid
                JOIN pg_namespace n ON t.relnamespace = n.oid
                JOIN pg_am a ON c.relam = a.oid
                JOIN pg_attribute a2 ON a2.attrelid = t.oid AND a2.attnum = ANY(ix.indkey)
                WHERE n.nspname = $1 AND t.relname = $2
                ORDER BY i.indexname""",

            get_foreign_keys="""
                SELECT
                    tc.constraint_name,
                    kcu.column_name,
                    ccu.table_schema AS referenced_schema,
                    ccu.table_name AS referenced_table,
                    ccu.column_name AS referenced_column
                FROM information_schema.table_constraints tc
                JOIN information_schema.key_column_usage kcu
                    ON tc.constraint_name = kcu.constraint_name
                    AND tc.table_schema = kcu.table_schema
                JOIN information_schema.constraint_column_usage ccu
                    ON ccu.constraint_name = tc.constraint_name
                    AND ccu.table_schema = tc.table_schema
                WHERE tc.constraint_type = 'FOREIGN KEY'
                    AND tc.table_schema = $1
                    AND tc.table_name = $2
                ORDER BY tc.constraint_name""",
        )

    def procedure_metadata(self) -> ProcedureMetadataSQL:
        return ProcedureMetadataSQL(
            list_procedures="""
                SELECT
                    routine_schema,
                    routine_name,
                    created::timestamp AS created,
                    created::timestamp AS last_altered
                FROM information_schema.routines
                WHERE routine_type = 'PROCEDURE'
                    AND routine_schema NOT IN ('pg_catalog', 'information_schema')""",
            schema_filter=" AND routine_schema = {placeholder}",
            name_filter=" AND routine_name ILIKE {placeholder}",
            order_by="routine_schema, routine_name",
            get_code="""
                SELECT pg_get_functiondef(p.oid)
                FROM pg_proc p
                JOIN pg_namespace n ON p.pronamespace = n.oid
                WHERE n.nspname = $1 AND p.proname = $2 AND prokind = 'p'""",
            get_parameters="""
                SELECT
                    p.parameter_name,
                    p.data_type AS type_name,
                    CASE WHEN p.parameter_mode IN ('OUT', 'INOUT') THEN 1 ELSE 0 END AS is_output
                FROM information_schema.parameters p
                JOIN information_schema.routines r
                    ON p.specific_schema = r.specific_schema
                    AND p.specific_name = r.specific_name
                WHERE r.routine_schema = $1 AND r.routine_name = $2 AND r.routine_type = 'PROCEDURE'
                ORDER BY p.ordinal_position""",
        )

    def function_metadata(self) -> FunctionMetadataSQL:
        # No catalog code for table-valued functions; proretset tells them apart
        return FunctionMetadataSQL(
            list_functions="""
                SELECT
                    n.nspname AS routine_schema,
                    p.proname AS routine_name,
                    CASE WHEN p.proretset THEN 'TABLE' ELSE 'SCALAR' END AS function_type,
                    NULL::timestamp AS created,
                    NULL::timestamp AS last_altered
                FROM pg_proc p
                JOIN pg_namespace n ON p.pronamespace = n.oid
                WHERE n.nspname NOT IN ('pg_catalog', 'information_schema')
                    AND prokind = 'f'""",
            type_filter_scalar=" AND NOT p.proretset",
            type_filter_table=" AND p.proretset",
            type_filter_all="",
            schema_filter=" AND n.nspname = {placeholder}",
            name_filter=" AND p.proname ILIKE {placeholder}",
            order_by="n.nspname, p.proname",
            get_code="""
                SELECT pg_get_functiondef(p.oid)
                FROM pg_proc p
                JOIN pg_namespace n ON p.pronamespace = n.oid
                WHERE n.nspname = $1 AND p.proname = $2 AND prokind = 'f'""",
        )

    def view_metadata(self) -> ViewMetadataSQL:
        return ViewMetadataSQL(
            list_views="""
                SELECT
                    table_schema AS view_schema,
                    table_name AS view_name,
                    NULL::timestamp AS created,
                    NULL::timestamp AS last_altered
                FROM information_schema.views
                WHERE table_schema NOT IN ('pg_catalog', 'information_schema')""",
            schema_filter=" AND table_schema = {placeholder}",
            name_filter=" AND table_name ILIKE {placeholder}",
            order_by="table_schema, table_name",
            get_definition="""
                SELECT view_definition
                FROM information_schema.views
                WHERE table_schema = $1 AND table_name = $2""",
        )

    def trigger_metadata(self) -> TriggerMetadataSQL:
        return TriggerMetadataSQL(
            list_triggers="""
                SELECT
                    n.nspname AS schema_name,
                    t.tgname AS trigger_name,
                    c.relname AS table_name,
                    t.tgenabled = 'D' AS is_disabled,
                    NULL::timestamp AS create_date,
                    NULL::timestamp AS modify_date
                FROM pg_trigger t
                JOIN pg_class c ON t.tgrelid = c.oid
                JOIN pg_namespace n ON c.relnamespace = n.oid
                WHERE NOT t.tgisinternal
                    AND n.nspname NOT IN ('pg_catalog', 'information_schema')""",
            schema_filter=" AND n.nspname = {placeholder}",
            table_filter=" AND c.relname = {placeholder}",
            name_filter=" AND t.tgname ILIKE {placeholder}",
            disabled_filter=" AND t.tgenabled <> 'D'",
            order_by="n.nspname, c.relname, t.tgname",
            get_code="""
                SELECT pg_get_triggerdef(t.oid)
                FROM pg_trigger t
                JOIN pg_class c ON t.tgrelid = c.oid
                JOIN pg_namespace n ON c.relnamespace = n.oid
                WHERE n.nspname = $1 AND t.tgname = $2""",
        )

    def database_info(self) -> DatabaseInfoSQL:
        return DatabaseInfoSQL(
            version="SELECT version()",

            details="""
                SELECT
                    current_database() AS database_name,
                    pg_encoding_to_char(encoding) AS encoding,
                    datcollate AS collation,
                    '' AS recovery_model_desc,
                    0 AS compatibility_level,
                    NULL AS create_date
                FROM pg_database
                WHERE datname = current_database()""",

            object_counts="""
                SELECT
                    COUNT(CASE WHEN table_type = 'BASE TABLE' THEN 1 END) AS tables,
                    COUNT(CASE WHEN table_type = 'VIEW' THEN 1 END) AS views,
                    (SELECT COUNT(*) FROM pg_proc p JOIN pg_namespace n ON p.pronamespace = n.oid
                     WHERE n.nspname NOT IN ('pg_catalog', 'information_schema') AND prokind = 'p') AS procedures,
                    (SELECT COUNT(*) FROM pg_proc p JOIN pg_namespace n ON p.pronamespace = n.oid
                     WHERE n.nspname NOT IN ('pg_catalog', 'information_schema') AND prokind = 'f') AS functions,
                    (SELECT COUNT(*) FROM pg_trigger t JOIN pg_class c ON t.tgrelid = c.oid
                     JOIN pg_namespace n ON c.relnamespace = n.oid
                     WHERE n.nspname NOT IN ('pg_catalog', 'information_schema') AND NOT tgisinternal) AS triggers
                FROM information_schema.tables
                WHERE table_schema NOT IN ('pg_catalog', 'information_schema')""",

            list_schemas="""
                SELECT schema_name
                FROM information_schema.schemata
                WHERE schema_name NOT IN ('pg_catalog', 'information_schema', 'pg_toast')
                ORDER BY schema_name""",

            search_objects="""
                SELECT
                    table_schema AS schema_name,
                    table_name AS object_name,
                    table_type AS object_type,
                    NULL AS create_date,
                    NULL AS modify_date,
                    CASE WHEN view_definition IS NOT NULL THEN 1 ELSE 0 END AS has_code
                FROM information_schema.tables
                LEFT JOIN information_schema.views USING (table_schema, table_name)
                WHERE table_schema NOT IN ('pg_catalog', 'information_schema')
                  AND (table_name LIKE '%' || $1 || '%'{code_search}){type_filter}
                ORDER BY table_schema, table_name""",
        )
