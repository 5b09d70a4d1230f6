"""
Query Builder - One vocabulary of catalog operations compiled per engine

The builder resolves its dialect once, from the driver given at construction,
and turns each logical operation into a ``BuiltQuery``: SQL text plus the
positional arguments to bind, in placeholder order. Caller values are always
bound; only validated identifiers and internal type codes are ever embedded
in the SQL text.

Usage:
    builder = QueryBuilder("postgres")
    sql, args = builder.list_tables(schema="public", name_filter="order")
    sql, args = builder.build(Operation.GET_PRIMARY_KEY, schema="public", table="orders")
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
import logging

from ..constants import DEFAULT_PAGE_SIZE, DEFAULT_ROWS_PAGE_SIZE
from ..errors import InvalidInputError, MissingParameterError
from ..security.identifiers import require_identifier
from ..utils.sql_formatter import log_built_query
from .catalog import ParameterInfo
from .dialects import DatabaseDialect, DialectFactory, DialectFeature, DriverType, PlaceholderStyle

logger = logging.getLogger(__name__)

FUNCTION_TYPES = ("scalar", "table", "all")
ORDER_DIRECTIONS = ("ASC", "DESC")


class Operation(Enum):
    """Logical operations understood by ``QueryBuilder.build``. Values are method names."""
    LIST_TABLES = "list_tables"
    DESCRIBE_TABLE = "describe_table"
    TABLE_EXISTS = "table_exists"
    GET_COLUMNS = "get_columns"
    GET_TABLE_SCHEMA_FULL = "get_table_schema_full"
    GET_PRIMARY_KEY = "get_primary_key"
    GET_INDEXES = "get_indexes"
    GET_FOREIGN_KEYS = "get_foreign_keys"
    LIST_PROCEDURES = "list_procedures"
    GET_PROCEDURE_CODE = "get_procedure_code"
    GET_PROCEDURE_PARAMETERS = "get_procedure_parameters"
    LIST_FUNCTIONS = "list_functions"
    GET_FUNCTION_CODE = "get_function_code"
    LIST_VIEWS = "list_views"
    GET_VIEW_DEFINITION = "get_view_definition"
    LIST_TRIGGERS = "list_triggers"
    GET_TRIGGER_CODE = "get_trigger_code"
    DATABASE_VERSION = "database_version"
    DATABASE_DETAILS = "database_details"
    OBJECT_COUNTS = "object_counts"
    LIST_SCHEMAS = "list_schemas"
    CURRENT_SCHEMA = "current_schema"
    SEARCH_OBJECTS = "search_objects"
    SELECT_ROWS = "select_rows"
    COUNT_ROWS = "count_rows"
    CALL_PROCEDURE = "call_procedure"


@dataclass(frozen=True)
class BuiltQuery:
    """
    SQL text and its positional arguments.

    ``supported`` is False when the engine lacks the capability; ``sql`` is
    then empty. Unpacks as ``sql, args = built``.
    """
    sql: str
    args: List[Any] = field(default_factory=list)
    supported: bool = True

    def __iter__(self):
        yield self.sql
        yield self.args

    def __bool__(self) -> bool:
        return self.supported and bool(self.sql)


UNSUPPORTED = BuiltQuery("", [], supported=False)


@dataclass
class SelectQueryParams:
    """Parameters for a paginated row query on one table."""
    table: str
    schema: str = ""
    columns: List[str] = field(default_factory=list)
    where_clause: str = ""
    order_by: str = ""
    order_direction: str = "ASC"
    limit: int = DEFAULT_ROWS_PAGE_SIZE
    offset: int = 0

    def __post_init__(self):
        _check_window(self.limit, self.offset)
        self.order_direction = (self.order_direction or "ASC").upper()
        if self.order_direction not in ORDER_DIRECTIONS:
            raise InvalidInputError(f"invalid order direction: {self.order_direction!r}")


def _check_window(limit: int, offset: int) -> None:
    if not isinstance(limit, int) or limit <= 0:
        raise InvalidInputError(f"limit must be a positive integer, got {limit!r}")
    if not isinstance(offset, int) or offset < 0:
        raise InvalidInputError(f"offset must be a non-negative integer, got {offset!r}")


class QueryBuilder:
    """
    Database-agnostic query building on top of a dialect.

    The builder holds nothing but its dialect and is safe to share. Switching
    datasource means building a new QueryBuilder.
    """

    def __init__(self, driver: Union[DriverType, str]):
        self.driver = DriverType.parse(driver)
        self.dialect: DatabaseDialect = DialectFactory.create(self.driver)

    def __repr__(self) -> str:
        return f"QueryBuilder(driver={self.driver.value!r})"

    # -------------------------------------------------------------------------
    # Basic Operations
    # -------------------------------------------------------------------------

    def placeholder(self, index: int) -> str:
        return self.dialect.placeholder(index)

    def like_operator(self, case_sensitive: bool = True) -> str:
        return self.dialect.like_operator(case_sensitive)

    def concat(self, *parts: str) -> str:
        return self.dialect.concat(*parts)

    def current_database(self) -> str:
        return self.dialect.current_database()

    def quote_identifier(self, name: str) -> str:
        return self.dialect.quote_identifier(name)

    def qualify_table(self, schema: str, table: str) -> str:
        return self.dialect.qualify_table(table, schema)

    @property
    def default_schema(self) -> str:
        return self.dialect.default_schema

    def supports_feature(self, feature: DialectFeature) -> bool:
        return self.dialect.supports_feature(feature)

    def supports_stored_procedures(self) -> bool:
        return self.dialect.supports_stored_procedures()

    def supports_functions(self) -> bool:
        return self.dialect.supports_functions()

    def supports_triggers(self) -> bool:
        return self.dialect.supports_triggers()

    def supports_views(self) -> bool:
        return self.dialect.supports_views()

    @property
    def _has_schemas(self) -> bool:
        return self.dialect.supports_feature(DialectFeature.SCHEMAS)

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def build(self, operation: Union[Operation, str], **params) -> BuiltQuery:
        """
        Build the query for a logical operation.

        Args:
            operation: Operation member or its value (e.g. "list_tables")
            **params: Keyword arguments of the matching method

        Returns:
            BuiltQuery for the active dialect
        """
        try:
            operation = Operation(operation)
        except ValueError:
            raise InvalidInputError(f"unknown operation: {operation!r}") from None
        return getattr(self, operation.value)(**params)

    def _built(self, operation: Operation, sql: str, args: Optional[List[Any]] = None) -> BuiltQuery:
        if not sql:
            return UNSUPPORTED
        built = BuiltQuery(sql, list(args or []))
        log_built_query(logger, operation.value, built.sql, built.args)
        return built

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _apply_filters(self, query: str, filters: Iterable[Tuple[str, Any]]) -> Tuple[str, List[Any]]:
        """
        Append filter fragments whose value is non-empty and whose fragment exists.

        Placeholders are numbered from the arguments actually bound, so an
        omitted filter omits both its marker and its argument.
        """
        args: List[Any] = []
        for fragment, value in filters:
            if not fragment or not value:
                continue
            query += fragment.format(placeholder=self.dialect.placeholder(len(args) + 1))
            args.append(value)
        return query, args

    def _like_pattern(self, name_filter: Optional[str]) -> str:
        if not name_filter:
            return ""
        return f"%{self.dialect.normalize_identifier(name_filter)}%"

    def _schema_value(self, schema: Optional[str]) -> str:
        if not schema:
            return ""
        return self.dialect.normalize_identifier(require_identifier(schema, "schema"))

    def _paginate(self, query: str, order_by: str, limit: int, offset: int) -> str:
        _check_window(limit, offset)
        return f"{query} {self.dialect.pagination_clause(limit, offset, order_by)}"

    def _object_lookup(self, operation: Operation, template: str, schema: str, name: str,
                       kind: str) -> BuiltQuery:
        """Query keyed by (schema, object name); engines without schemas bind the name only."""
        require_identifier(name, kind)
        if not template:
            return UNSUPPORTED
        if not self._has_schemas:
            return self._built(operation, template, [name])
        return self._built(operation, template, [
            self._schema_value(schema),
            self.dialect.normalize_identifier(name),
        ])

    def _table_lookup(self, operation: Operation, template: str, schema: str, table: str) -> BuiltQuery:
        """Table introspection; PRAGMA-based engines embed the quoted table name."""
        require_identifier(table, "table")
        if not template:
            return UNSUPPORTED
        if not self._has_schemas:
            return self._built(operation, template.format(table=self.dialect.quote_identifier(table)))
        return self._built(operation, template, [
            self._schema_value(schema),
            self.dialect.normalize_identifier(table),
        ])

    # -------------------------------------------------------------------------
    # Table Queries
    # -------------------------------------------------------------------------

    def list_tables(self, schema: str = "", name_filter: str = "",
                    limit: int = DEFAULT_PAGE_SIZE, offset: int = 0) -> BuiltQuery:
        meta = self.dialect.table_metadata()
        query, args = self._apply_filters(meta.list_tables, [
            (meta.schema_filter, self._schema_value(schema)),
            (meta.name_filter, self._like_pattern(name_filter)),
        ])
        return self._built(Operation.LIST_TABLES, self._paginate(query, meta.order_by, limit, offset), args)

    def describe_table(self, table: str, schema: str = "") -> BuiltQuery:
        meta = self.dialect.table_metadata()
        return self._table_lookup(Operation.DESCRIBE_TABLE, meta.describe_table, schema, table)

    def table_exists(self, table: str, schema: str = "") -> BuiltQuery:
        # Plain catalog query on every engine, SQLite included
        meta = self.dialect.table_metadata()
        return self._object_lookup(Operation.TABLE_EXISTS, meta.table_exists, schema, table, "table")

    def get_columns(self, table: str, schema: str = "") -> BuiltQuery:
        meta = self.dialect.table_metadata()
        return self._table_lookup(Operation.GET_COLUMNS, meta.get_columns, schema, table)

    def get_table_schema_full(self, table: str, schema: str = "") -> BuiltQuery:
        meta = self.dialect.table_metadata()
        return self._table_lookup(Operation.GET_TABLE_SCHEMA_FULL, meta.get_full_schema, schema, table)

    def get_primary_key(self, table: str, schema: str = "") -> BuiltQuery:
        meta = self.dialect.table_metadata()
        return self._table_lookup(Operation.GET_PRIMARY_KEY, meta.get_primary_key, schema, table)

    def get_indexes(self, table: str, schema: str = "") -> BuiltQuery:
        meta = self.dialect.table_metadata()
        return self._table_lookup(Operation.GET_INDEXES, meta.get_indexes, schema, table)

    def get_foreign_keys(self, table: str, schema: str = "") -> BuiltQuery:
        meta = self.dialect.table_metadata()
        return self._table_lookup(Operation.GET_FOREIGN_KEYS, meta.get_foreign_keys, schema, table)

    # -------------------------------------------------------------------------
    # Procedure Queries
    # -------------------------------------------------------------------------

    def list_procedures(self, schema: str = "", name_filter: str = "",
                        limit: int = DEFAULT_PAGE_SIZE, offset: int = 0) -> BuiltQuery:
        meta = self.dialect.procedure_metadata()
        if not self.supports_stored_procedures() or not meta.is_supported:
            return UNSUPPORTED
        query, args = self._apply_filters(meta.list_procedures, [
            (meta.schema_filter, self._schema_value(schema)),
            (meta.name_filter, self._like_pattern(name_filter)),
        ])
        return self._built(Operation.LIST_PROCEDURES, self._paginate(query, meta.order_by, limit, offset), args)

    def get_procedure_code(self, name: str, schema: str = "") -> BuiltQuery:
        if not self.supports_stored_procedures():
            return UNSUPPORTED
        meta = self.dialect.procedure_metadata()
        return self._object_lookup(Operation.GET_PROCEDURE_CODE, meta.get_code, schema, name, "procedure")

    def get_procedure_parameters(self, name: str, schema: str = "") -> BuiltQuery:
        """Declared parameters as (name, type name, is_output) rows, in declaration order."""
        if not self.supports_stored_procedures():
            return UNSUPPORTED
        meta = self.dialect.procedure_metadata()
        return self._object_lookup(Operation.GET_PROCEDURE_PARAMETERS, meta.get_parameters, schema, name,
                                   "procedure")

    def call_procedure(self, name: str, schema: str = "",
                       arguments: Optional[Mapping[str, Any]] = None,
                       declared_parameters: Optional[Sequence[ParameterInfo]] = None) -> BuiltQuery:
        """
        Build a stored procedure invocation.

        Args:
            name: Procedure name
            schema: Optional schema name
            arguments: Parameter name to value mapping
            declared_parameters: Parameters as declared in the catalog. When
                given, arguments follow declaration order and every non-output
                parameter must be supplied.

        Raises:
            MissingParameterError: A required declared parameter was not supplied
            InvalidInputError: An argument does not match any declared parameter
        """
        if not self.supports_stored_procedures():
            return UNSUPPORTED
        require_identifier(name, "procedure")
        if schema:
            require_identifier(schema, "schema")

        arguments = dict(arguments or {})
        for arg_name in arguments:
            require_identifier(arg_name, "parameter")

        if declared_parameters is None:
            ordered = list(arguments.items())
        else:
            ordered = self._order_arguments(arguments, declared_parameters)

        markers = self.dialect.placeholders(1, len(ordered))
        pairs = [(arg_name, marker) for (arg_name, _), marker in zip(ordered, markers)]
        sql = self.dialect.procedure_call(self.dialect.qualify_table(name, schema), pairs)
        return self._built(Operation.CALL_PROCEDURE, sql, [value for _, value in ordered])

    def _order_arguments(self, arguments: Mapping[str, Any],
                         declared: Sequence[ParameterInfo]) -> List[Tuple[str, Any]]:
        by_lower = {key.lower(): key for key in arguments}
        ordered: List[Tuple[str, Any]] = []
        consumed = set()

        for param in declared:
            param_name = param.name.lstrip("@:")
            key = by_lower.get(param_name.lower())
            if key is not None:
                ordered.append((param_name, arguments[key]))
                consumed.add(key)
            elif not param.is_output:
                raise MissingParameterError(param_name)
            elif not self.dialect.NAMED_PROCEDURE_ARGUMENTS:
                # Positional calls must still fill the output slot
                ordered.append((param_name, None))

        unknown = sorted(set(arguments) - consumed)
        if unknown:
            raise InvalidInputError(f"unknown procedure parameter(s): {', '.join(unknown)}")
        return ordered

    # -------------------------------------------------------------------------
    # Function Queries
    # -------------------------------------------------------------------------

    def list_functions(self, schema: str = "", name_filter: str = "", function_type: str = "all",
                       limit: int = DEFAULT_PAGE_SIZE, offset: int = 0) -> BuiltQuery:
        function_type = (function_type or "all").lower()
        if function_type not in FUNCTION_TYPES:
            raise InvalidInputError("invalid function type - use: scalar, table, or all")
        meta = self.dialect.function_metadata()
        if not self.supports_functions() or not meta.is_supported:
            return UNSUPPORTED
        query, args = self._apply_filters(meta.list_functions + meta.type_filter(function_type), [
            (meta.schema_filter, self._schema_value(schema)),
            (meta.name_filter, self._like_pattern(name_filter)),
        ])
        return self._built(Operation.LIST_FUNCTIONS, self._paginate(query, meta.order_by, limit, offset), args)

    def get_function_code(self, name: str, schema: str = "") -> BuiltQuery:
        if not self.supports_functions():
            return UNSUPPORTED
        meta = self.dialect.function_metadata()
        return self._object_lookup(Operation.GET_FUNCTION_CODE, meta.get_code, schema, name, "function")

    # -------------------------------------------------------------------------
    # View Queries
    # -------------------------------------------------------------------------

    def list_views(self, schema: str = "", name_filter: str = "",
                   limit: int = DEFAULT_PAGE_SIZE, offset: int = 0) -> BuiltQuery:
        meta = self.dialect.view_metadata()
        if not self.supports_views() or not meta.is_supported:
            return UNSUPPORTED
        query, args = self._apply_filters(meta.list_views, [
            (meta.schema_filter, self._schema_value(schema)),
            (meta.name_filter, self._like_pattern(name_filter)),
        ])
        return self._built(Operation.LIST_VIEWS, self._paginate(query, meta.order_by, limit, offset), args)

    def get_view_definition(self, name: str, schema: str = "") -> BuiltQuery:
        meta = self.dialect.view_metadata()
        return self._object_lookup(Operation.GET_VIEW_DEFINITION, meta.get_definition, schema, name, "view")

    # -------------------------------------------------------------------------
    # Trigger Queries
    # -------------------------------------------------------------------------

    def list_triggers(self, schema: str = "", table: str = "", name_filter: str = "",
                      include_disabled: bool = True,
                      limit: int = DEFAULT_PAGE_SIZE, offset: int = 0) -> BuiltQuery:
        meta = self.dialect.trigger_metadata()
        if not self.supports_triggers() or not meta.is_supported:
            return UNSUPPORTED
        table_value = ""
        if table:
            table_value = self.dialect.normalize_identifier(require_identifier(table, "table"))
        query, args = self._apply_filters(meta.list_triggers, [
            (meta.schema_filter, self._schema_value(schema)),
            (meta.table_filter, table_value),
            (meta.name_filter, self._like_pattern(name_filter)),
        ])
        if not include_disabled:
            query += meta.disabled_filter
        return self._built(Operation.LIST_TRIGGERS, self._paginate(query, meta.order_by, limit, offset), args)

    def get_trigger_code(self, name: str, schema: str = "") -> BuiltQuery:
        meta = self.dialect.trigger_metadata()
        return self._object_lookup(Operation.GET_TRIGGER_CODE, meta.get_code, schema, name, "trigger")

    # -------------------------------------------------------------------------
    # Database Info Queries
    # -------------------------------------------------------------------------

    def database_version(self) -> BuiltQuery:
        return self._built(Operation.DATABASE_VERSION, self.dialect.database_info().version)

    def database_details(self) -> BuiltQuery:
        return self._built(Operation.DATABASE_DETAILS, self.dialect.database_info().details)

    def object_counts(self) -> BuiltQuery:
        return self._built(Operation.OBJECT_COUNTS, self.dialect.database_info().object_counts)

    def list_schemas(self) -> BuiltQuery:
        return self._built(Operation.LIST_SCHEMAS, self.dialect.database_info().list_schemas)

    def current_schema(self) -> BuiltQuery:
        """Single-value query returning the schema unqualified names resolve to."""
        return self._built(Operation.CURRENT_SCHEMA, self.dialect.scalar_select(self.dialect.current_schema()))

    def search_objects(self, search_term: str, search_in_code: bool = False,
                       object_types: Optional[Sequence[str]] = None) -> BuiltQuery:
        """
        Search catalog objects by name, optionally inside their definitions.

        Object type names are mapped to internal catalog codes; names unknown
        to the active engine are ignored. The type list is the only part of
        the statement built by concatenation, and it never contains caller text.
        """
        if not search_term:
            raise InvalidInputError("search_term is required")
        dialect = self.dialect
        template = dialect.database_info().search_objects
        if not template:
            return UNSUPPORTED

        codes = dict(dialect.SEARCH_TYPE_CODES)
        selected: List[str] = []
        for object_type in object_types or ():
            code = codes.get(str(object_type).lower())
            if code is not None and code not in selected:
                selected.append(code)
        if not selected and dialect.SEARCH_DEFAULT_ALL_TYPES:
            selected = list(codes.values())

        type_filter = ""
        if selected:
            in_list = ", ".join("'" + code + "'" for code in selected)
            type_filter = f" AND {dialect.SEARCH_TYPE_COLUMN} IN ({in_list})"

        code_search = dialect.SEARCH_CODE_CLAUSE if search_in_code else ""
        term = dialect.normalize_identifier(search_term)
        args = [term]
        if code_search and dialect.placeholder_style is PlaceholderStyle.QMARK:
            # Anonymous markers cannot be reused, bind the term again
            args.append(term)

        sql = template.format(type_filter=type_filter, code_search=code_search)
        return self._built(Operation.SEARCH_OBJECTS, sql, args)

    # -------------------------------------------------------------------------
    # Select/Count Query Building
    # -------------------------------------------------------------------------

    def select_rows(self, params: SelectQueryParams) -> BuiltQuery:
        """
        Paginated SELECT over one table.

        The WHERE clause is taken as-is (build it with ``build_where_clause``)
        and its arguments are bound by the caller. The returned BuiltQuery
        carries no arguments of its own.
        """
        require_identifier(params.table, "table")
        for column in params.columns:
            require_identifier(column, "column")

        if params.columns:
            columns = ", ".join(self.dialect.quote_identifier(c) for c in params.columns)
        else:
            columns = "*"

        query = f"SELECT {columns} FROM {self.qualify_table(self._checked_schema(params.schema), params.table)}"
        if params.where_clause:
            query += f" {params.where_clause}"

        order_by = ""
        if params.order_by:
            require_identifier(params.order_by, "column")
            order_by = f"{self.dialect.quote_identifier(params.order_by)} {params.order_direction}"

        return self._built(Operation.SELECT_ROWS, self._paginate(query, order_by, params.limit, params.offset))

    def count_rows(self, table: str, schema: str = "", where_clause: str = "") -> BuiltQuery:
        require_identifier(table, "table")
        query = f"SELECT COUNT(*) FROM {self.qualify_table(self._checked_schema(schema), table)}"
        if where_clause:
            query += f" {where_clause}"
        return self._built(Operation.COUNT_ROWS, query)

    def _checked_schema(self, schema: Optional[str]) -> str:
        if schema:
            require_identifier(schema, "schema")
        return schema or ""
