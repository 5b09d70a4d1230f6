"""
Base Database Dialect - Abstract base class for engine-specific SQL fragments

Dialects handle database-specific syntax differences such as:
- Parameter placeholders (@p1 vs $1 vs :1 vs ?)
- Identifier quoting ([brackets] vs "quotes" vs `backticks`)
- Pagination (OFFSET/FETCH vs LIMIT/OFFSET)
- System catalog queries (sys.* vs information_schema vs all_* vs PRAGMA)

Dialects are stateless. Every metadata accessor returns a fresh, immutable
query set so that nothing is shared between callers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple
import logging

from ...errors import ConfigurationError

logger = logging.getLogger(__name__)


class DriverType(str, Enum):
    """Supported database engines. Values are the driver names used in configuration."""
    SQLSERVER = "sqlserver"
    POSTGRESQL = "postgres"
    MYSQL = "mysql"
    ORACLE = "godror"
    SQLITE = "sqlite3"

    @classmethod
    def parse(cls, name) -> "DriverType":
        """
        Resolve a driver name, enum name or common alias.

        Raises:
            ConfigurationError: If the name does not designate a supported engine
        """
        if isinstance(name, DriverType):
            return name
        key = str(name or "").strip().lower()
        driver = _DRIVER_ALIASES.get(key)
        if driver is None:
            raise ConfigurationError(f"unrecognized database driver: {name!r}")
        return driver


_DRIVER_ALIASES = {
    "sqlserver": DriverType.SQLSERVER,
    "mssql": DriverType.SQLSERVER,
    "postgres": DriverType.POSTGRESQL,
    "postgresql": DriverType.POSTGRESQL,
    "pg": DriverType.POSTGRESQL,
    "mysql": DriverType.MYSQL,
    "mariadb": DriverType.MYSQL,
    "godror": DriverType.ORACLE,
    "oracle": DriverType.ORACLE,
    "sqlite3": DriverType.SQLITE,
    "sqlite": DriverType.SQLITE,
}


class DialectFeature(Enum):
    """Capabilities that are not available on every engine."""
    STORED_PROCEDURES = "stored procedures"
    FUNCTIONS = "functions"
    TRIGGERS = "triggers"
    VIEWS = "views"
    SCHEMAS = "schemas"
    ILIKE = "ilike"


class PlaceholderStyle(Enum):
    """Positional parameter marker families."""
    NAMED = "named"         # @p1
    NUMBERED = "numbered"   # $1
    NUMERIC = "numeric"     # :1
    QMARK = "qmark"         # ?


# ==================== Metadata Query Sets ====================
#
# Filter fragments carry a ``{placeholder}`` slot filled by the query builder.
# An empty fragment means the engine has no such filter.

@dataclass(frozen=True)
class TableMetadataSQL:
    """SQL templates for table introspection."""
    list_tables: str = ""
    schema_filter: str = ""
    name_filter: str = ""
    order_by: str = ""
    describe_table: str = ""
    table_exists: str = ""
    get_columns: str = ""
    get_full_schema: str = ""
    get_primary_key: str = ""
    get_indexes: str = ""
    get_foreign_keys: str = ""

    @property
    def is_supported(self) -> bool:
        return bool(self.list_tables)


@dataclass(frozen=True)
class ProcedureMetadataSQL:
    """SQL templates for stored procedure introspection."""
    list_procedures: str = ""
    schema_filter: str = ""
    name_filter: str = ""
    order_by: str = ""
    get_code: str = ""
    get_parameters: str = ""

    @property
    def is_supported(self) -> bool:
        return bool(self.list_procedures)


@dataclass(frozen=True)
class FunctionMetadataSQL:
    """SQL templates for user-defined function introspection."""
    list_functions: str = ""
    type_filter_scalar: str = ""
    type_filter_table: str = ""
    type_filter_all: str = ""
    schema_filter: str = ""
    name_filter: str = ""
    order_by: str = ""
    get_code: str = ""

    @property
    def is_supported(self) -> bool:
        return bool(self.list_functions)

    def type_filter(self, function_type: str) -> str:
        """Fragment restricting the listing to scalar, table-valued or all functions."""
        if function_type == "scalar":
            return self.type_filter_scalar
        if function_type == "table":
            return self.type_filter_table
        return self.type_filter_all


@dataclass(frozen=True)
class ViewMetadataSQL:
    """SQL templates for view introspection."""
    list_views: str = ""
    schema_filter: str = ""
    name_filter: str = ""
    order_by: str = ""
    get_definition: str = ""

    @property
    def is_supported(self) -> bool:
        return bool(self.list_views)


@dataclass(frozen=True)
class TriggerMetadataSQL:
    """SQL templates for trigger introspection."""
    list_triggers: str = ""
    schema_filter: str = ""
    table_filter: str = ""
    name_filter: str = ""
    disabled_filter: str = ""
    order_by: str = ""
    get_code: str = ""

    @property
    def is_supported(self) -> bool:
        return bool(self.list_triggers)


@dataclass(frozen=True)
class DatabaseInfoSQL:
    """
    SQL for server-level information.

    ``search_objects`` has two slots: ``{code_search}`` receives an extra OR
    branch when searching inside object definitions, ``{type_filter}``
    receives an ``AND <column> IN (...)`` restriction built from internal
    type codes only.
    """
    version: str = ""
    details: str = ""
    object_counts: str = ""
    list_schemas: str = ""
    search_objects: str = ""


class DatabaseDialect(ABC):
    """
    Abstract base class for database dialects.

    Each dialect knows how to:
    1. Render positional placeholders and quote identifiers
    2. Append pagination in the engine's syntax
    3. Provide catalog queries for tables, routines, views and triggers

    Usage:
        dialect = DialectFactory.create(DriverType.POSTGRESQL)
        dialect.placeholder(1)                 # "$1"
        dialect.qualify_table("users", "app")  # '"app"."users"'
        meta = dialect.table_metadata()
    """

    driver: DriverType
    placeholder_style: PlaceholderStyle

    # Schemas excluded from catalog listings
    SYSTEM_SCHEMAS: Tuple[str, ...] = ()

    # Features this engine lacks; everything else is supported
    UNSUPPORTED_FEATURES: FrozenSet[DialectFeature] = frozenset({DialectFeature.ILIKE})

    # Object search: mapping of public type names to catalog type codes, the
    # column they filter on, and the extra OR branch used to search inside
    # definitions (empty when the engine cannot do it)
    SEARCH_TYPE_CODES: Tuple[Tuple[str, str], ...] = ()
    SEARCH_TYPE_COLUMN: str = ""
    SEARCH_CODE_CLAUSE: str = ""
    SEARCH_DEFAULT_ALL_TYPES: bool = False

    # Procedure arguments are passed by name rather than position
    NAMED_PROCEDURE_ARGUMENTS: bool = False

    # ==================== Placeholders ====================

    @abstractmethod
    def placeholder(self, index: int) -> str:
        """Positional parameter marker for the 1-based ``index``."""
        pass

    def placeholders(self, start_index: int, count: int) -> List[str]:
        """Consecutive markers starting at ``start_index``."""
        return [self.placeholder(start_index + i) for i in range(count)]

    # ==================== Identifier Quoting ====================

    @property
    @abstractmethod
    def quote_char(self) -> str:
        """Character used to open a quoted identifier."""
        pass

    @property
    def quote_char_end(self) -> str:
        """Closing quote character (same as quote_char for most databases)."""
        return self.quote_char

    def quote_identifier(self, name: str) -> str:
        """Quote a single identifier (table, column, schema name)."""
        return f"{self.quote_char}{name}{self.quote_char_end}"

    def normalize_identifier(self, name: str) -> str:
        """Apply the engine's case folding to a catalog lookup value."""
        return name

    def qualify_table(self, table: str, schema: Optional[str] = None) -> str:
        """
        Quote a table reference, prefixed by its schema when the engine has schemas.

        Args:
            table: Table or view name
            schema: Optional schema name

        Returns:
            Quoted ``schema.table`` or quoted ``table``
        """
        if not schema or not self.supports_feature(DialectFeature.SCHEMAS):
            return self.quote_identifier(table)
        return f"{self.quote_identifier(schema)}.{self.quote_identifier(table)}"

    # ==================== Default Schema ====================

    @property
    def default_schema(self) -> str:
        """Schema assumed when the caller gives none (empty when the engine has no default)."""
        return ""

    # ==================== Pagination ====================

    def pagination_clause(self, limit: int, offset: int, order_by: str = "") -> str:
        """
        LIMIT/OFFSET pagination, preceded by ORDER BY when columns are given.

        Engines that require an ordering for OFFSET/FETCH override this.
        """
        pagination = f"LIMIT {limit} OFFSET {offset}"
        if order_by:
            return f"ORDER BY {order_by} {pagination}"
        return pagination

    # ==================== Expressions ====================

    def like_operator(self, case_sensitive: bool = True) -> str:
        """LIKE, or the engine's case-insensitive variant when asked for one."""
        return "LIKE"

    def concat(self, *parts: str) -> str:
        """String concatenation expression."""
        return " || ".join(parts)

    @abstractmethod
    def current_database(self) -> str:
        """SQL expression returning the current database name."""
        pass

    @abstractmethod
    def current_schema(self) -> str:
        """SQL expression returning the schema unqualified names resolve to."""
        pass

    def scalar_select(self, expression: str) -> str:
        """Single-row SELECT of an expression."""
        return f"SELECT {expression}"

    def system_schemas(self) -> List[str]:
        """System schemas to exclude from listings."""
        return list(self.SYSTEM_SCHEMAS)

    # ==================== Feature Support ====================

    def supports_feature(self, feature: DialectFeature) -> bool:
        return feature not in self.UNSUPPORTED_FEATURES

    @property
    def unsupported_features(self) -> FrozenSet[DialectFeature]:
        return self.UNSUPPORTED_FEATURES

    def supports_stored_procedures(self) -> bool:
        return self.supports_feature(DialectFeature.STORED_PROCEDURES)

    def supports_functions(self) -> bool:
        return self.supports_feature(DialectFeature.FUNCTIONS)

    def supports_triggers(self) -> bool:
        return self.supports_feature(DialectFeature.TRIGGERS)

    def supports_views(self) -> bool:
        return self.supports_feature(DialectFeature.VIEWS)

    # ==================== Metadata Query Sets ====================

    @abstractmethod
    def table_metadata(self) -> TableMetadataSQL:
        pass

    def procedure_metadata(self) -> ProcedureMetadataSQL:
        return ProcedureMetadataSQL()

    def function_metadata(self) -> FunctionMetadataSQL:
        return FunctionMetadataSQL()

    @abstractmethod
    def view_metadata(self) -> ViewMetadataSQL:
        pass

    @abstractmethod
    def trigger_metadata(self) -> TriggerMetadataSQL:
        pass

    @abstractmethod
    def database_info(self) -> DatabaseInfoSQL:
        pass

    # ==================== Procedure Calls ====================

    def procedure_call(self, qualified_name: str, arguments: List[Tuple[str, str]]) -> str:
        """
        Statement invoking a stored procedure with positional markers.

        Args:
            qualified_name: Quoted, schema-qualified procedure name
            arguments: (parameter name, placeholder) pairs in call order

        Returns:
            Call statement, or "" when the engine has no stored procedures
        """
        return ""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(driver={self.driver.value!r})"
