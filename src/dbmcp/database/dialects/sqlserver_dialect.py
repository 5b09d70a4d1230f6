"""
SQL Server Dialect - SQL Server-specific SQL fragments
"""

from typing import List, Tuple
from .base import (
    DatabaseDialect, DatabaseInfoSQL, DriverType, FunctionMetadataSQL,
    PlaceholderStyle, ProcedureMetadataSQL, TableMetadataSQL,
    TriggerMetadataSQL, ViewMetadataSQL,
)

import logging
logger = logging.getLogger(__name__)


class SQLServerDialect(DatabaseDialect):
    """Dialect for SQL Server databases."""

    driver = DriverType.SQLSERVER
    placeholder_style = PlaceholderStyle.NAMED

    SYSTEM_SCHEMAS = ('sys', 'INFORMATION_SCHEMA')

    SEARCH_TYPE_CODES = (
        ("table", "U"),
        ("view", "V"),
        ("procedure", "P"),
        ("function", "FN"),
    )
    SEARCH_TYPE_COLUMN = "o.type"
    SEARCH_CODE_CLAUSE = " OR (m.definition IS NOT NULL AND m.definition LIKE '%' + @p1 + '%')"
    SEARCH_DEFAULT_ALL_TYPES = True

    NAMED_PROCEDURE_ARGUMENTS = True

    @property
    def quote_char(self) -> str:
        return "["

    @property
    def quote_char_end(self) -> str:
        return "]"

    @property
    def default_schema(self) -> str:
        return "dbo"

    def placeholder(self, index: int) -> str:
        return f"@p{index}"

    def pagination_clause(self, limit: int, offset: int, order_by: str = "") -> str:
        """OFFSET/FETCH requires an ORDER BY; a neutral one is used when none is given."""
        order_by = order_by or "(SELECT NULL)"
        return f"ORDER BY {order_by} OFFSET {offset} ROWS FETCH NEXT {limit} ROWS ONLY"

    def concat(self, *parts: str) -> str:
        return " + ".join(parts)

    def current_database(self) -> str:
        return "DB_NAME()"

    def current_schema(self) -> str:
        return "SCHEMA_NAME()"

    def procedure_call(self, qualified_name: str, arguments: List[Tuple[str, str]]) -> str:
        """EXEC with named parameters bound to positional markers."""
        sql = f"EXEC {qualified_name}"
        if arguments:
            sql += " " + ", ".join(f"@{name} = {marker}" for name, marker in arguments)
        return sql

    def table_metadata(self) -> TableMetadataSQL:
        return TableMetadataSQL(
            list_tables="""
                SELECT
                    TABLE_SCHEMA,
                    TABLE_NAME,
                    TABLE_TYPE
                FROM INFORMATION_SCHEMA.TABLES
                WHERE TABLE_TYPE = 'BASE TABLE'""",
            schema_filter=" AND TABLE_SCHEMA = {placeholder}",
            name_filter=" AND TABLE_NAME LIKE {placeholder}",
            order_by="TABLE_SCHEMA, TABLE_NAME",

            describe_table="""
                SELECT
                    COLUMN_NAME,
                    DATA_TYPE,
                    IS_NULLABLE,
                    COLUMN_DEFAULT,
                    CHARACTER_MAXIMUM_LENGTH
                FROM INFORMATION_SCHEMA.COLUMNS
                WHERE TABLE_SCHEMA = @p1 AND TABLE_NAME = @p2
                ORDER BY ORDINAL_POSITION""",

            table_exists=(
                "SELECT COUNT(*) FROM INFORMATION_SCHEMA.TABLES "
                "WHERE TABLE_SCHEMA = @p1 AND TABLE_NAME = @p2"
            ),

            get_columns="""
                SELECT
                    COLUMN_NAME,
                    DATA_TYPE,
                    CHARACTER_MAXIMUM_LENGTH,
                    IS_NULLABLE,
                    COLUMN_DEFAULT
                FROM INFORMATION_SCHEMA.COLUMNS
                WHERE TABLE_SCHEMA = @p1 AND TABLE_NAME = @p2
                ORDER BY ORDINAL_POSITION""",

            get_full_schema="""
                SELECT
                    c.COLUMN_NAME,
                    c.DATA_TYPE,
                    c.CHARACTER_MAXIMUM_LENGTH,
                    c.NUMERIC_PRECISION,
                    c.NUMERIC_SCALE,
                    c.IS_NULLABLE,
                    c.COLUMN_DEFAULT,
                    CASE WHEN pk.COLUMN_NAME IS NOT NULL THEN 'YES' ELSE 'NO' END AS IS_PRIMARY_KEY
                FROM INFORMATION_SCHEMA.COLUMNS c
                LEFT JOIN (
                    SELECT ku.TABLE_SCHEMA, ku.TABLE_NAME, ku.COLUMN_NAME
                    FROM INFORMATION_SCHEMA.TABLE_CONSTRAINTS tc
                    JOIN INFORMATION_SCHEMA.KEY_COLUMN_USAGE ku
                        ON tc.CONSTRAINT_TYPE = 'PRIMARY KEY'
                        AND tc.CONSTRAINT_NAME = ku.CONSTRAINT_NAME
                        AND tc.TABLE_SCHEMA = ku.TABLE_SCHEMA
                        AND tc.TABLE_NAME = ku.TABLE_NAME
                ) pk ON c.TABLE_SCHEMA = pk.TABLE_SCHEMA
                    AND c.TABLE_NAME = pk.TABLE_NAME
                    AND c.COLUMN_NAME = pk.COLUMN_NAME
                WHERE c.TABLE_SCHEMA = @p1 AND c.TABLE_NAME = @p2
                ORDER BY c.ORDINAL_POSITION""",

            get_primary_key="""
                SELECT ku.COLUMN_NAME
                FROM INFORMATION_SCHEMA.TABLE_CONSTRAINTS tc
                JOIN INFORMATION_SCHEMA.KEY_COLUMN_USAGE ku
                    ON tc.CONSTRAINT_NAME = ku.CONSTRAINT_NAME
                    AND tc.TABLE_SCHEMA = ku.TABLE_SCHEMA
                    AND tc.TABLE_NAME = ku.TABLE_NAME
                WHERE tc.CONSTRAINT_TYPE = 'PRIMARY KEY'
                    AND tc.TABLE_SCHEMA = @p1
                    AND tc.TABLE_NAME = @p2
                ORDER BY ku.ORDINAL_POSITION""",

            get_indexes="""
                SELECT
                    i.name AS index_name,
                    i.type_desc AS index_type,
                    i.is_unique,
                    COL_NAME(ic.object_id, ic.column_id) AS column_name
                FROM sys.indexes i
                INNER JOIN sys.index_columns ic ON i.object_id = ic.object_id AND i.index_id = ic.index_id
                INNER JOIN sys.tables t ON i.object_id = t.object_id
                INNER JOIN sys.schemas s ON t.schema_id = s.schema_id
                WHERE s.name = @p1 AND t.name = @p2
                ORDER BY i.name, ic.key_ordinal""",

            get_foreign_keys="""
                SELECT
                    fk.name AS constraint_name,
                    COL_NAME(fkc.parent_object_id, fkc.parent_column_id) AS column_name,
                    SCHEMA_NAME(ref_t.schema_id) AS referenced_schema,
                    ref_t.name AS referenced_table,
                    COL_NAME(fkc.referenced_object_id, fkc.referenced_column_id) AS referenced_column
                FROM sys.foreign_keys fk
                INNER JOIN sys.foreign_key_columns fkc ON fk.object_id = fkc.constraint_object_id
                INNER JOIN sys.tables t ON fk.parent_object_id = t.object_id
                INNER JOIN sys.schemas s ON t.schema_id = s.schema_id
                INNER JOIN sys.tables ref_t ON fkc.referenced_object_id = ref_t.object_id
                WHERE s.name = @p1 AND t.name = @p2
                ORDER BY fk.name""",
        )

    def procedure_metadata(self) -> ProcedureMetadataSQL:
        return ProcedureMetadataSQL(
            list_procedures="""
                SELECT
                    s.name AS routine_schema,
                    o.name AS routine_name,
                    o.create_date AS created,
                    o.modify_date AS last_altered
                FROM sys.objects o
                INNER JOIN sys.schemas s ON o.schema_id = s.schema_id
                WHERE o.type = 'P' AND o.is_ms_shipped = 0""",
            schema_filter=" AND s.name = {placeholder}",
            name_filter=" AND o.name LIKE {placeholder}",
            order_by="s.name, o.name",
            get_code="""
                SELECT m.definition
                FROM sys.sql_modules m
                INNER JOIN sys.objects o ON m.object_id = o.object_id
                INNER JOIN sys.schemas s ON o.schema_id = s.schema_id
                WHERE o.type = 'P' AND s.name = @p1 AND o.name = @p2""",
            get_parameters="""
                SELECT
                    p.name AS parameter_name,
                    TYPE_NAME(p.user_type_id) AS type_name,
                    p.is_output
                FROM sys.parameters p
                INNER JOIN sys.objects o ON p.object_id = o.object_id
                INNER JOIN sys.schemas s ON o.schema_id = s.schema_id
                WHERE s.name = @p1 AND o.name = @p2 AND p.parameter_id > 0
                ORDER BY p.parameter_id""",
        )

    def function_metadata(self) -> FunctionMetadataSQL:
        return FunctionMetadataSQL(
            list_functions="""
                SELECT
                    s.name AS routine_schema,
                    o.name AS routine_name,
                    o.type_desc AS function_type,
                    o.create_date AS created,
                    o.modify_date AS last_altered
                FROM sys.objects o
                INNER JOIN sys.schemas s ON o.schema_id = s.schema_id
                WHERE o.is_ms_shipped = 0""",
            type_filter_scalar=" AND o.type = 'FN'",
            type_filter_table=" AND o.type IN ('IF', 'TF')",
            type_filter_all=" AND o.type IN ('FN', 'IF', 'TF')",
            schema_filter=" AND s.name = {placeholder}",
            name_filter=" AND o.name LIKE {placeholder}",
            order_by="s.name, o.name",
            get_code="""
                SELECT m.definition
                FROM sys.sql_modules m
                INNER JOIN sys.objects o ON m.object_id = o.object_id
                INNER JOIN sys.schemas s ON o.schema_id = s.schema_id
                WHERE o.type IN ('FN', 'IF', 'TF') AND s.name = @p1 AND o.name = @p2""",
        )

    def view_metadata(self) -> ViewMetadataSQL:
        return ViewMetadataSQL(
            list_views="""
                SELECT
                    s.name AS view_schema,
                    v.name AS view_name,
                    v.create_date AS created,
                    v.modify_date AS last_altered
                FROM sys.views v
                INNER JOIN sys.schemas s ON v.schema_id = s.schema_id
                WHERE v.is_ms_shipped = 0""",
            schema_filter=" AND s.name = {placeholder}",
            name_filter=" AND v.name LIKE {placeholder}",
            order_by="s.name, v.name",
            get_definition="""
                SELECT m.definition
                FROM sys.sql_modules m
                INNER JOIN sys.views v ON m.object_id = v.object_id
                INNER JOIN sys.schemas s ON v.schema_id = s.schema_id
                WHERE s.name = @p1 AND v.name = @p2""",
        )

    def trigger_metadata(self) -> TriggerMetadataSQL:
        return TriggerMetadataSQL(
            list_triggers="""
                SELECT
                    s.name AS schema_name,
                    t.name AS trigger_name,
                    OBJECT_NAME(tr.parent_id) AS table_name,
                    tr.is_disabled,
                    tr.create_date,
                    tr.modify_date
                FROM sys.triggers tr
                INNER JOIN sys.objects t ON tr.object_id = t.object_id
                INNER JOIN sys.schemas s ON t.schema_id = s.schema_id
                WHERE 1 = 1""",
            schema_filter=" AND s.name = {placeholder}",
            table_filter=" AND OBJECT_NAME(tr.parent_id) = {placeholder}",
            name_filter=" AND t.name LIKE {placeholder}",
            disabled_filter=" AND tr.is_disabled = 0",
            order_by="s.name, OBJECT_NAME(tr.parent_id), t.name",
            get_code="""
                SELECT m.definition
                FROM sys.sql_modules m
                INNER JOIN sys.triggers tr ON m.object_id = tr.object_id
                INNER JOIN sys.objects t ON tr.object_id = t.object_id
                INNER JOIN sys.schemas s ON t.schema_id = s.schema_id
                WHERE s.name = @p1 AND t.name = @p2""",
        )

    def database_info(self) -> DatabaseInfoSQL:
        return DatabaseInfoSQL(
            version="SELECT @@VERSION",

            details="""
                SELECT
                    DB_NAME() AS database_name,
                    collation_name,
                    recovery_model_desc,
                    compatibility_level,
                    create_date
                FROM sys.databases
                WHERE name = DB_NAME()""",

            object_counts="""
                SELECT
                    COUNT(CASE WHEN type = 'U' THEN 1 END) AS tables,
                    COUNT(CASE WHEN type = 'V' THEN 1 END) AS views,
                    COUNT(CASE WHEN type = 'P' THEN 1 END) AS procedures,
                    COUNT(CASE WHEN type IN ('FN', 'IF', 'TF') THEN 1 END) AS functions,
                    COUNT(CASE WHEN type = 'TR' THEN 1 END) AS triggers
                FROM sys.objects
                WHERE is_ms_shipped = 0""",

            list_schemas="""
                SELECT name
                FROM sys.schemas
                WHERE schema_id < 16384
                ORDER BY name""",

            search_objects="""
                SELECT DISTINCT
                    s.name AS schema_name,
                    o.name AS object_name,
                    o.type_desc AS object_type,
                    o.create_date,
                    o.modify_date,
                    CASE WHEN m.definition IS NOT NULL THEN 1 ELSE 0 END AS has_code
                FROM sys.objects o
                INNER JOIN sys.schemas s ON o.schema_id = s.schema_id
                LEFT JOIN sys.sql_modules m ON o.object_id = m.object_id
                WHERE o.is_ms_shipped = 0{type_filter}
                  AND (o.name LIKE '%' + @p1 + '%'{code_search})
                ORDER BY s.name, o.name""",
        )
