"""
Oracle Dialect - Oracle-specific SQL fragments (12c+ pagination)

Oracle folds unquoted identifiers to upper case, so every identifier is
upper-cased before quoting and every catalog lookup value is upper-cased
before binding.
"""

from typing import List, Tuple
from .base import (
    DatabaseDialect, DatabaseInfoSQL, DriverType, FunctionMetadataSQL,
    PlaceholderStyle, ProcedureMetadataSQL, TableMetadataSQL,
    TriggerMetadataSQL, ViewMetadataSQL,
)

import logging
logger = logging.getLogger(__name__)


class OracleDialect(DatabaseDialect):
    """Dialect for Oracle databases."""

    driver = DriverType.ORACLE
    placeholder_style = PlaceholderStyle.NUMERIC

    SYSTEM_SCHEMAS = ('SYS', 'SYSTEM', 'OUTLN', 'XDB', 'WMSYS', 'CTXSYS', 'MDSYS', 'OLAPSYS')

    SEARCH_TYPE_CODES = (
        ("table", "TABLE"),
        ("view", "VIEW"),
        ("procedure", "PROCEDURE"),
        ("function", "FUNCTION"),
    )
    SEARCH_TYPE_COLUMN = "object_type"

    @property
    def quote_char(self) -> str:
        return '"'

    @property
    def default_schema(self) -> str:
        return ""  # Connected user's schema

    def placeholder(self, index: int) -> str:
        return f":{index}"

    def quote_identifier(self, name: str) -> str:
        return super().quote_identifier(name.upper())

    def normalize_identifier(self, name: str) -> str:
        return name.upper()

    def pagination_clause(self, limit: int, offset: int, order_by: str = "") -> str:
        """OFFSET/FETCH preceded by an ORDER BY, neutral when none is given."""
        order_by = order_by or "(SELECT NULL FROM DUAL)"
        return f"ORDER BY {order_by} OFFSET {offset} ROWS FETCH NEXT {limit} ROWS ONLY"

    def current_database(self) -> str:
        return "SYS_CONTEXT('USERENV', 'DB_NAME')"

    def current_schema(self) -> str:
        return "SYS_CONTEXT('USERENV', 'CURRENT_SCHEMA')"

    def scalar_select(self, expression: str) -> str:
        return f"SELECT {expression} FROM DUAL"

    def procedure_call(self, qualified_name: str, arguments: List[Tuple[str, str]]) -> str:
        markers = ", ".join(marker for _, marker in arguments)
        return f"BEGIN {qualified_name}({markers}); END;"

    def table_metadata(self) -> TableMetadataSQL:
        excluded = ", ".join(f"'{s}'" for s in self.SYSTEM_SCHEMAS)
        return TableMetadataSQL(
            list_tables=f"""
                SELECT
                    owner AS table_schema,
                    table_name,
                    'BASE TABLE' AS table_type
                FROM all_tables
                WHERE owner NOT IN ({excluded})""",
            schema_filter=" AND owner = {placeholder}",
            name_filter=" AND table_name LIKE {placeholder}",
            order_by="owner, table_name",

            describe_table="""
                SELECT
                    column_name,
                    data_type,
                    nullable AS is_nullable,
                    data_default AS column_default,
                    data_length AS character_maximum_length
                FROM all_tab_columns
                WHERE owner = :1 AND table_name = :2
                ORDER BY column_id""",

            table_exists="SELECT COUNT(*) FROM all_tables WHERE owner = :1 AND table_name = :2",

            get_columns="""
                SELECT
                    column_name,
                    data_type,
                    data_length,
                    nullable,
                    data_default
                FROM all_tab_columns
                WHERE owner = :1 AND table_name = :2
                ORDER BY column_id""",

            get_full_schema="""
                SELECT
                    c.column_name,
                    c.data_type,
                    c.data_length,
                    c.data_precision,
                    c.data_scale,
                    c.nullable,
                    c.data_default,
                    CASE WHEN pk.column_name IS NOT NULL THEN 'YES' ELSE 'NO' END AS is_primary_key
                FROM all_tab_columns c
                LEFT JOIN (
                    SELECT acc.owner, acc.table_name, acc.column_name
                    FROM all_constraints ac
                    JOIN all_cons_columns acc
                        ON ac.constraint_type = 'P'
                        AND ac.constraint_name = acc.constraint_name
                        AND ac.owner = acc.owner
                ) pk ON c.owner = pk.owner
                    AND c.table_name = pk.table_name
                    AND c.column_name = pk.column_name
                WHERE c.owner = :1 AND c.table_name = :2
                ORDER BY c.column_id""",

            get_primary_key="""
                SELECT acc.column_name
                FROM all_constraints ac
                JOIN all_cons_columns acc
                    ON ac.constraint_name = acc.constraint_name
                    AND ac.owner = acc.owner
                WHERE ac.constraint_type = 'P'
                    AND ac.owner = :1
                    AND ac.table_name = :2
                ORDER BY acc.position""",

            get_indexes="""
                SELECT
                    i.index_name,
                    i.index_type,
                    i.uniqueness,
                    ic.column_name
                FROM all_indexes i
                JOIN all_ind_columns ic ON i.index_name = ic.index_name AND i.owner = ic.index_owner
                WHERE i.owner = :1 AND i.table_name = :2
                ORDER BY i.index_name, ic.column_position""",

            get_foreign_keys="""
                SELECT
                    ac.constraint_name,
                    acc.column_name,
                    ac_ref.owner AS referenced_schema,
                    ac_ref.table_name AS referenced_table,
                    acc_ref.column_name AS referenced_column
                FROM all_constraints ac
                JOIN all_cons_columns acc
                    ON ac.constraint_name = acc.constraint_name
                    AND ac.owner = acc.owner
                JOIN all_constraints ac_ref
                    ON ac.r_constraint_name = ac_ref.constraint_name
                    AND ac.r_owner = ac_ref.owner
                JOIN all_cons_columns acc_ref
                    ON ac_ref.constraint_name = acc_ref.constraint_name
                    AND ac_ref.owner = acc_ref.owner
                WHERE ac.constraint_type = 'R'
                    AND ac.owner = :1
                    AND ac.table_name = :2
                ORDER BY ac.constraint_name""",
        )

    def procedure_metadata(self) -> ProcedureMetadataSQL:
        return ProcedureMetadataSQL(
            list_procedures="""
                SELECT
                    owner AS routine_schema,
                    object_name AS routine_name,
                    created,
                    last_ddl_time AS last_altered
                FROM all_objects
                WHERE object_type = 'PROCEDURE'
                    AND owner NOT IN ('SYS', 'SYSTEM')""",
            schema_filter=" AND owner = {placeholder}",
            name_filter=" AND object_name LIKE {placeholder}",
            order_by="owner, object_name",
            # One row per source line; readers join them in order
            get_code="""
                SELECT text
                FROM all_source
                WHERE owner = :1 AND name = :2 AND type = 'PROCEDURE'
                ORDER BY line""",
            get_parameters="""
                SELECT
                    argument_name AS parameter_name,
                    data_type AS type_name,
                    CASE WHEN in_out IN ('OUT', 'IN/OUT') THEN 1 ELSE 0 END AS is_output
                FROM all_arguments
                WHERE owner = :1 AND object_name = :2
                    AND package_name IS NULL AND argument_name IS NOT NULL
                ORDER BY position""",
        )

    def function_metadata(self) -> FunctionMetadataSQL:
        return FunctionMetadataSQL(
            list_functions="""
                SELECT
                    owner AS routine_schema,
                    object_name AS routine_name,
                    'FUNCTION' AS function_type,
                    created,
                    last_ddl_time AS last_altered
                FROM all_objects
                WHERE object_type = 'FUNCTION'
                    AND owner NOT IN ('SYS', 'SYSTEM')""",
            schema_filter=" AND owner = {placeholder}",
            name_filter=" AND object_name LIKE {placeholder}",
            order_by="owner, object_name",
            get_code="""
                SELECT text
                FROM all_source
                WHERE owner = :1 AND name = :2 AND type = 'FUNCTION'
                ORDER BY line""",
        )

    def view_metadata(self) -> ViewMetadataSQL:
        return ViewMetadataSQL(
            list_views="""
                SELECT
                    owner AS view_schema,
                    view_name,
                    NULL AS created,
                    NULL AS last_altered
                FROM all_views
                WHERE owner NOT IN ('SYS', 'SYSTEM')""",
            schema_filter=" AND owner = {placeholder}",
            name_filter=" AND view_name LIKE {placeholder}",
            order_by="owner, view_name",
            get_definition="""
                SELECT text
                FROM all_views
                WHERE owner = :1 AND view_name = :2""",
        )

    def trigger_metadata(self) -> TriggerMetadataSQL:
        return TriggerMetadataSQL(
            list_triggers="""
                SELECT
                    owner AS schema_name,
                    trigger_name,
                    table_name,
                    CASE WHEN status = 'DISABLED' THEN 1 ELSE 0 END AS is_disabled,
                    NULL AS create_date,
                    NULL AS modify_date
                FROM all_triggers
                WHERE owner NOT IN ('SYS', 'SYSTEM')""",
            schema_filter=" AND owner = {placeholder}",
            table_filter=" AND table_name = {placeholder}",
            name_filter=" AND trigger_name LIKE {placeholder}",
            disabled_filter=" AND status = 'ENABLED'",
            order_by="owner, table_name, trigger_name",
            get_code="""
                SELECT trigger_body
                FROM all_triggers
                WHERE owner = :1 AND trigger_name = :2""",
        )

    def database_info(self) -> DatabaseInfoSQL:
        # No single-view equivalent of database details
        return DatabaseInfoSQL(
            version="SELECT banner FROM v$version WHERE banner LIKE 'Oracle%'",

            object_counts="""
                SELECT
                    COUNT(CASE WHEN object_type = 'TABLE' THEN 1 END) AS tables,
                    COUNT(CASE WHEN object_type = 'VIEW' THEN 1 END) AS views,
                    COUNT(CASE WHEN object_type = 'PROCEDURE' THEN 1 END) AS procedures,
                    COUNT(CASE WHEN object_type = 'FUNCTION' THEN 1 END) AS functions,
                    COUNT(CASE WHEN object_type = 'TRIGGER' THEN 1 END) AS triggers
                FROM all_objects
                WHERE owner = USER""",

            list_schemas="""
                SELECT username
                FROM all_users
                WHERE username NOT IN ('SYS', 'SYSTEM', 'OUTLN', 'DBSNMP')
                ORDER BY username""",

            search_objects="""
                SELECT
                    owner AS schema_name,
                    object_name,
                    object_type,
                    created AS create_date,
                    last_ddl_time AS modify_date,
                    0 AS has_code
                FROM all_objects
                WHERE owner NOT IN ('SYS', 'SYSTEM')
                  AND (object_name LIKE '%' || :1 || '%'{code_search}){type_filter}
                ORDER BY owner, object_name""",
        )
