"""
MySQL Dialect - MySQL/MariaDB-specific SQL fragments
"""

from typing import List, Tuple
from .base import (
    DatabaseDialect, DatabaseInfoSQL, DriverType, FunctionMetadataSQL,
    PlaceholderStyle, ProcedureMetadataSQL, TableMetadataSQL,
    TriggerMetadataSQL, ViewMetadataSQL,
)

import logging
logger = logging.getLogger(__name__)

_EXCLUDED_SCHEMAS = "('mysql', 'information_schema', 'performance_schema', 'sys')"


class MySQLDialect(DatabaseDialect):
    """Dialect for MySQL and MariaDB databases."""

    driver = DriverType.MYSQL
    placeholder_style = PlaceholderStyle.QMARK

    # System schemas to exclude
    SYSTEM_SCHEMAS = ('mysql', 'information_schema', 'performance_schema', 'sys')

    SEARCH_TYPE_CODES = (
        ("table", "BASE TABLE"),
        ("view", "VIEW"),
    )
    SEARCH_TYPE_COLUMN = "TABLE_TYPE"

    @property
    def quote_char(self) -> str:
        return "`"

    @property
    def default_schema(self) -> str:
        return ""  # Connection's current database

    def placeholder(self, index: int) -> str:
        return "?"

    def concat(self, *parts: str) -> str:
        return f"CONCAT({', '.join(parts)})"

    def current_database(self) -> str:
        return "DATABASE()"

    def current_schema(self) -> str:
        return "DATABASE()"

    def procedure_call(self, qualified_name: str, arguments: List[Tuple[str, str]]) -> str:
        markers = ", ".join(marker for _, marker in arguments)
        return f"CALL {qualified_name}({markers})"

    def table_metadata(self) -> TableMetadataSQL:
        return TableMetadataSQL(
            list_tables=f"""
                SELECT
                    TABLE_SCHEMA,
                    TABLE_NAME,
                    TABLE_TYPE
                FROM INFORMATION_SCHEMA.TABLES
                WHERE TABLE_TYPE = 'BASE TABLE'
                    AND TABLE_SCHEMA NOT IN {_EXCLUDED_SCHEMAS}""",
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
                WHERE TABLE_SCHEMA = ? AND TABLE_NAME = ?
                ORDER BY ORDINAL_POSITION""",

            table_exists=(
                "SELECT COUNT(*) FROM INFORMATION_SCHEMA.TABLES "
                "WHERE TABLE_SCHEMA = ? AND TABLE_NAME = ?"
            ),

            get_columns="""
                SELECT
                    COLUMN_NAME,
                    DATA_TYPE,
                    CHARACTER_MAXIMUM_LENGTH,
                    IS_NULLABLE,
                    COLUMN_DEFAULT
                FROM INFORMATION_SCHEMA.COLUMNS
                WHERE TABLE_SCHEMA = ? AND TABLE_NAME = ?
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
                WHERE c.TABLE_SCHEMA = ? AND c.TABLE_NAME = ?
                ORDER BY c.ORDINAL_POSITION""",

            get_primary_key="""
                SELECT ku.COLUMN_NAME
                FROM INFORMATION_SCHEMA.TABLE_CONSTRAINTS tc
                JOIN INFORMATION_SCHEMA.KEY_COLUMN_USAGE ku
                    ON tc.CONSTRAINT_NAME = ku.CONSTRAINT_NAME
                    AND tc.TABLE_SCHEMA = ku.TABLE_SCHEMA
                    AND tc.TABLE_NAME = ku.TABLE_NAME
                WHERE tc.CONSTRAINT_TYPE = 'PRIMARY KEY'
                    AND tc.TABLE_SCHEMA = ?
                    AND tc.TABLE_NAME = ?
                ORDER BY ku.ORDINAL_POSITION""",

            get_indexes="""
                SELECT
                    INDEX_NAME AS index_name,
                    INDEX_TYPE AS index_type,
                    CASE WHEN NON_UNIQUE = 0 THEN 1 ELSE 0 END AS is_unique,
                    COLUMN_NAME AS column_name
                FROM INFORMATION_SCHEMA.STATISTICS
                WHERE TABLE_SCHEMA = ? AND TABLE_NAME = ?
                ORDER BY INDEX_NAME, SEQ_IN_INDEX""",

            get_foreign_keys="""
                SELECT
                    kcu.CONSTRAINT_NAME AS constraint_name,
                    kcu.COLUMN_NAME AS column_name,
                    kcu.REFERENCED_TABLE_SCHEMA AS referenced_schema,
                    kcu.REFERENCED_TABLE_NAME AS referenced_table,
                    kcu.REFERENCED_COLUMN_NAME AS referenced_column
                FROM INFORMATION_SCHEMA.KEY_COLUMN_USAGE kcu
                WHERE kcu.TABLE_SCHEMA = ?
                    AND kcu.TABLE_NAME = ?
                    AND kcu.REFERENCED_TABLE_NAME IS NOT NULL
                ORDER BY kcu.CONSTRAINT_NAME""",
        )

    def procedure_metadata(self) -> ProcedureMetadataSQL:
        return ProcedureMetadataSQL(
            list_procedures=f"""
                SELECT
                    ROUTINE_SCHEMA AS routine_schema,
                    ROUTINE_NAME AS routine_name,
                    CREATED AS created,
                    LAST_ALTERED AS last_altered
                FROM INFORMATION_SCHEMA.ROUTINES
                WHERE ROUTINE_TYPE = 'PROCEDURE'
                    AND ROUTINE_SCHEMA NOT IN {_EXCLUDED_SCHEMAS}""",
            schema_filter=" AND ROUTINE_SCHEMA = {placeholder}",
            name_filter=" AND ROUTINE_NAME LIKE {placeholder}",
            order_by="ROUTINE_SCHEMA, ROUTINE_NAME",
            get_code="""
                SELECT ROUTINE_DEFINITION
                FROM INFORMATION_SCHEMA.ROUTINES
                WHERE ROUTINE_SCHEMA = ? AND ROUTINE_NAME = ? AND ROUTINE_TYPE = 'PROCEDURE'""",
            get_parameters="""
                SELECT
                    PARAMETER_NAME AS parameter_name,
                    DATA_TYPE AS type_name,
                    CASE WHEN PARAMETER_MODE IN ('OUT', 'INOUT') THEN 1 ELSE 0 END AS is_output
                FROM INFORMATION_SCHEMA.PARAMETERS
                WHERE SPECIFIC_SCHEMA = ? AND SPECIFIC_NAME = ?
                    AND ROUTINE_TYPE = 'PROCEDURE' AND ORDINAL_POSITION > 0
                ORDER BY ORDINAL_POSITION""",
        )

    def function_metadata(self) -> FunctionMetadataSQL:
        # MySQL functions are scalar only
        return FunctionMetadataSQL(
            list_functions=f"""
                SELECT
                    ROUTINE_SCHEMA AS routine_schema,
                    ROUTINE_NAME AS routine_name,
                    'FUNCTION' AS function_type,
                    CREATED AS created,
                    LAST_ALTERED AS last_altered
                FROM INFORMATION_SCHEMA.ROUTINES
                WHERE ROUTINE_TYPE = 'FUNCTION'
                    AND ROUTINE_SCHEMA NOT IN {_EXCLUDED_SCHEMAS}""",
            schema_filter=" AND ROUTINE_SCHEMA = {placeholder}",
            name_filter=" AND ROUTINE_NAME LIKE {placeholder}",
            order_by="ROUTINE_SCHEMA, ROUTINE_NAME",
            get_code="""
                SELECT ROUTINE_DEFINITION
                FROM INFORMATION_SCHEMA.ROUTINES
                WHERE ROUTINE_SCHEMA = ? AND ROUTINE_NAME = ? AND ROUTINE_TYPE = 'FUNCTION'""",
        )

    def view_metadata(self) -> ViewMetadataSQL:
        return ViewMetadataSQL(
            list_views=f"""
                SELECT
                    TABLE_SCHEMA AS view_schema,
                    TABLE_NAME AS view_name,
                    NULL AS created,
                    NULL AS last_altered
                FROM INFORMATION_SCHEMA.VIEWS
                WHERE TABLE_SCHEMA NOT IN {_EXCLUDED_SCHEMAS}""",
            schema_filter=" AND TABLE_SCHEMA = {placeholder}",
            name_filter=" AND TABLE_NAME LIKE {placeholder}",
            order_by="TABLE_SCHEMA, TABLE_NAME",
            get_definition="""
                SELECT VIEW_DEFINITION
                FROM INFORMATION_SCHEMA.VIEWS
                WHERE TABLE_SCHEMA = ? AND TABLE_NAME = ?""",
        )

    def trigger_metadata(self) -> TriggerMetadataSQL:
        # MySQL triggers cannot be disabled
        return TriggerMetadataSQL(
            list_triggers=f"""
                SELECT
                    TRIGGER_SCHEMA AS schema_name,
                    TRIGGER_NAME AS trigger_name,
                    EVENT_OBJECT_TABLE AS table_name,
                    0 AS is_disabled,
                    CREATED AS create_date,
                    NULL AS modify_date
                FROM INFORMATION_SCHEMA.TRIGGERS
                WHERE TRIGGER_SCHEMA NOT IN {_EXCLUDED_SCHEMAS}""",
            schema_filter=" AND TRIGGER_SCHEMA = {placeholder}",
            table_filter=" AND EVENT_OBJECT_TABLE = {placeholder}",
            name_filter=" AND TRIGGER_NAME LIKE {placeholder}",
            order_by="TRIGGER_SCHEMA, EVENT_OBJECT_TABLE, TRIGGER_NAME",
            get_code="""
                SELECT ACTION_STATEMENT
                FROM INFORMATION_SCHEMA.TRIGGERS
                WHERE TRIGGER_SCHEMA = ? AND TRIGGER_NAME = ?""",
        )

    def database_info(self) -> DatabaseInfoSQL:
        return DatabaseInfoSQL(
            version="SELECT VERSION()",

            details="""
                SELECT
                    DATABASE() AS database_name,
                    DEFAULT_COLLATION_NAME AS collation_name,
                    '' AS recovery_model_desc,
                    0 AS compatibility_level,
                    NULL AS create_date
                FROM INFORMATION_SCHEMA.SCHEMATA
                WHERE SCHEMA_NAME = DATABASE()""",

            object_counts="""
                SELECT
                    SUM(CASE WHEN TABLE_TYPE = 'BASE TABLE' THEN 1 ELSE 0 END) AS tables,
                    SUM(CASE WHEN TABLE_TYPE = 'VIEW' THEN 1 ELSE 0 END) AS views,
                    (SELECT COUNT(*) FROM INFORMATION_SCHEMA.ROUTINES
                     WHERE ROUTINE_TYPE = 'PROCEDURE' AND ROUTINE_SCHEMA = DATABASE()) AS procedures,
                    (SELECT COUNT(*) FROM INFORMATION_SCHEMA.ROUTINES
                     WHERE ROUTINE_TYPE = 'FUNCTION' AND ROUTINE_SCHEMA = DATABASE()) AS functions,
                    (SELECT COUNT(*) FROM INFORMATION_SCHEMA.TRIGGERS
                     WHERE TRIGGER_SCHEMA = DATABASE()) AS triggers
                FROM INFORMATION_SCHEMA.TABLES
                WHERE TABLE_SCHEMA = DATABASE()""",

            list_schemas=f"""
                SELECT SCHEMA_NAME
                FROM INFORMATION_SCHEMA.SCHEMATA
                WHERE SCHEMA_NAME NOT IN {_EXCLUDED_SCHEMAS}
                ORDER BY SCHEMA_NAME""",

            # No definition search: the code_search slot is always empty here
            search_objects=f"""
                SELECT
                    TABLE_SCHEMA AS schema_name,
                    TABLE_NAME AS object_name,
                    TABLE_TYPE AS object_type,
                    CREATE_TIME AS create_date,
                    UPDATE_TIME AS modify_date,
                    0 AS has_code
                FROM INFORMATION_SCHEMA.TABLES
                WHERE TABLE_SCHEMA NOT IN {_EXCLUDED_SCHEMAS}
                  AND (TABLE_NAME LIKE CONCAT('%', ?, '%'){{code_search}}){{type_filter}}
                ORDER BY TABLE_SCHEMA, TABLE_NAME""",
        )
