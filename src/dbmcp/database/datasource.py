"""
Datasource - Active connection context and the catalog reader built on it

``DataSourceContext`` owns the active driver, its DB-API connection and the
QueryBuilder for that driver. Reconfiguring builds a new QueryBuilder and
replaces the old one; in-flight readers holding the previous builder are
unaffected.

``CatalogReader`` runs built queries through the context's connection and
decodes the rows. Free-form SQL goes through the read-only validator first.
"""

from dataclasses import asdict
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union
import threading

from ..constants import (
    DEFAULT_MAX_ROWS, DEFAULT_PAGE_SIZE, DEFAULT_ROWS_PAGE_SIZE,
    MAX_PAGE_SIZE, MAX_ROWS_LIMIT, MAX_ROWS_PAGE_SIZE,
)
from ..errors import (
    FeatureNotSupportedError, InvalidInputError, NoConnectionError, QueryExecutionError,
)
from ..pagination import PaginationParams
from ..security.identifiers import require_identifier, resolve_schema
from ..security.sql_validator import SQLValidator
from .catalog import (
    ParameterInfo, column_names, decode_columns, decode_foreign_keys, decode_indexes,
    decode_parameters, decode_primary_key, format_row, join_source,
)
from .column_cache import ColumnCache
from .dialects import DialectFeature, DriverType
from .filters import RowFilter, build_where_clause
from .query_builder import BuiltQuery, QueryBuilder, SelectQueryParams

import logging
logger = logging.getLogger(__name__)


class DataSourceContext:
    """
    Holds the active datasource.

    Usage:
        context = DataSourceContext()
        context.configure("sqlite3", sqlite3.connect("app.db"))
        connection, builder = context.require_connection()
        context.disconnect()
    """

    def __init__(self, driver: Union[DriverType, str, None] = None, connection: Any = None,
                 default_schema: str = ""):
        self._lock = threading.RLock()
        self.driver: Optional[DriverType] = None
        self.connection: Any = None
        self.builder: Optional[QueryBuilder] = None
        self.default_schema_override = default_schema
        self.column_cache = ColumnCache()
        self._current_schema: Optional[str] = None

        if driver is not None:
            self.configure(driver, connection)

    @property
    def is_connected(self) -> bool:
        return self.connection is not None and self.builder is not None

    def configure(self, driver: Union[DriverType, str], connection: Any,
                  default_schema: Optional[str] = None) -> QueryBuilder:
        """
        Switch to a new driver and connection.

        The builder is created before anything is replaced, so an unknown
        driver leaves the current datasource untouched.

        Raises:
            ConfigurationError: If the driver is not recognized
        """
        builder = QueryBuilder(driver)
        with self._lock:
            previous = self.connection
            self.driver = builder.driver
            self.connection = connection
            self.builder = builder
            if default_schema is not None:
                self.default_schema_override = default_schema
            self._current_schema = None
            self.column_cache.invalidate()

        if previous is not None and previous is not connection:
            self._close(previous)
        logger.info(f"Datasource configured: {builder.driver.value}")
        return builder

    def disconnect(self) -> None:
        """Close the connection and forget the driver."""
        with self._lock:
            connection = self.connection
            self.connection = None
            self.builder = None
            self.driver = None
            self._current_schema = None
            self.column_cache.invalidate()
        if connection is not None:
            self._close(connection)
            logger.info("Datasource disconnected")

    @staticmethod
    def _close(connection: Any) -> None:
        try:
            connection.close()
        except Exception as e:
            logger.warning(f"Error closing connection: {e}")

    def require_connection(self) -> Tuple[Any, QueryBuilder]:
        """
        Returns:
            (connection, builder) of the active datasource

        Raises:
            NoConnectionError: If nothing is configured
        """
        with self._lock:
            if self.connection is None or self.builder is None:
                raise NoConnectionError()
            return self.connection, self.builder

    @property
    def default_schema(self) -> str:
        """Configured override, else the driver's default schema."""
        if self.default_schema_override:
            return self.default_schema_override
        return self.builder.default_schema if self.builder else ""

    def remember_current_schema(self, schema: str) -> None:
        with self._lock:
            self._current_schema = schema

    @property
    def current_schema(self) -> Optional[str]:
        return self._current_schema


class CatalogReader:
    """
    Catalog and data access through the active datasource.

    Every method resolves the connection at call time, so a reader can be
    kept across reconfigurations.
    """

    def __init__(self, context: DataSourceContext,
                 max_page_size: int = MAX_PAGE_SIZE,
                 max_rows_page_size: int = MAX_ROWS_PAGE_SIZE,
                 max_query_rows: int = MAX_ROWS_LIMIT):
        self.context = context
        self.max_page_size = max_page_size
        self.max_rows_page_size = max_rows_page_size
        self.max_query_rows = max_query_rows

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def _run(self, sql: str, args: Sequence[Any], operation: str,
             max_rows: Optional[int] = None) -> Tuple[List[str], List[tuple]]:
        """Execute and fetch; driver failures become QueryExecutionError."""
        connection, _ = self.context.require_connection()
        cursor = connection.cursor()
        try:
            if args:
                cursor.execute(sql, list(args))
            else:
                cursor.execute(sql)
            columns = [d[0] for d in cursor.description or ()]
            if not columns:
                return [], []
            rows = cursor.fetchmany(max_rows) if max_rows is not None else cursor.fetchall()
            return columns, [tuple(row) for row in rows]
        except Exception as e:
            logger.error(f"Error {operation}: {e}")
            raise QueryExecutionError(operation, e) from e
        finally:
            cursor.close()

    def _fetch(self, built: BuiltQuery, operation: str, feature: Optional[DialectFeature] = None,
               args: Optional[Sequence[Any]] = None) -> Tuple[List[str], List[tuple]]:
        if not built.supported:
            raise FeatureNotSupportedError(feature.value if feature else operation)
        return self._run(built.sql, built.args if args is None else args, operation)

    def _fetch_dicts(self, built: BuiltQuery, operation: str,
                     feature: Optional[DialectFeature] = None) -> List[Dict[str, Any]]:
        columns, rows = self._fetch(built, operation, feature)
        return [format_row(columns, row) for row in rows]

    @property
    def builder(self) -> QueryBuilder:
        return self.context.require_connection()[1]

    def _require(self, feature: DialectFeature) -> QueryBuilder:
        builder = self.builder
        if not builder.supports_feature(feature):
            raise FeatureNotSupportedError(feature.value)
        return builder

    def resolve_schema(self, schema: Optional[str] = None) -> str:
        """
        Caller schema, else the configured default, else the connection's
        current schema for engines whose default is empty (MySQL, Oracle).
        """
        builder = self.builder
        resolved = resolve_schema(schema, self.context.default_schema)
        if resolved or not builder.supports_feature(DialectFeature.SCHEMAS):
            return resolved
        if self.context.current_schema is None:
            _, rows = self._fetch(builder.current_schema(), "resolving current schema")
            current = rows[0][0] if rows and rows[0][0] else ""
            self.context.remember_current_schema(str(current))
        return self.context.current_schema or ""

    def _page(self, args: Optional[Mapping[str, Any]], default_size: int = DEFAULT_PAGE_SIZE,
              max_size: Optional[int] = None) -> PaginationParams:
        return PaginationParams.from_args(args, default_size, max_size or self.max_page_size)

    def _listing(self, built: BuiltQuery, key: str, page: PaginationParams,
                 feature: Optional[DialectFeature] = None) -> Dict[str, Any]:
        items = self._fetch_dicts(built, f"listing {key}", feature)
        result = {key: items, "count": len(items)}
        result.update(page.to_dict())
        result["has_more"] = len(items) == page.page_size
        return result

    # -------------------------------------------------------------------------
    # Tables
    # -------------------------------------------------------------------------

    def list_tables(self, schema: str = "", name_filter: str = "",
                    pagination: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        page = self._page(pagination)
        built = self.builder.list_tables(schema=schema, name_filter=name_filter,
                                         limit=page.limit, offset=page.offset)
        return self._listing(built, "tables", page)

    def table_exists(self, table: str, schema: str = "") -> bool:
        schema = self.resolve_schema(schema)
        _, rows = self._fetch(self.builder.table_exists(table, schema), "checking table")
        return bool(rows and rows[0][0])

    def describe_table(self, table: str, schema: str = "") -> List[Dict[str, Any]]:
        """Column summary rows as returned by the engine."""
        schema = self.resolve_schema(schema)
        return self._fetch_dicts(self.builder.describe_table(table, schema), "describing table")

    def get_table_schema(self, table: str, schema: str = "") -> Dict[str, Any]:
        """
        Full table schema: columns, primary key, indexes and foreign keys.

        Raises:
            InvalidInputError: If the table has no columns (does not exist)
        """
        builder = self.builder
        driver = builder.driver
        schema = self.resolve_schema(schema)

        _, rows = self._fetch(builder.get_table_schema_full(table, schema), "getting table schema")
        columns = decode_columns(driver, rows)
        if not columns:
            raise InvalidInputError(f"table not found: {table}")

        _, pk_rows = self._fetch(builder.get_primary_key(table, schema), "getting primary key")
        _, index_rows = self._fetch(builder.get_indexes(table, schema), "getting indexes")
        _, fk_rows = self._fetch(builder.get_foreign_keys(table, schema), "getting foreign keys")

        return {
            "schema": schema,
            "table": table,
            "columns": [c.to_dict() for c in columns],
            "primary_key": decode_primary_key(driver, pk_rows),
            "indexes": [asdict(i) for i in decode_indexes(driver, index_rows)],
            "foreign_keys": [asdict(k) for k in decode_foreign_keys(driver, fk_rows)],
        }

    def table_columns(self, table: str, schema: str = "") -> List[str]:
        """Column names of a table, served from the column cache when fresh."""
        builder = self.builder
        schema = self.resolve_schema(schema)

        def load() -> List[str]:
            _, rows = self._fetch(builder.get_table_schema_full(table, schema), "getting columns")
            return column_names(builder.driver, rows)

        return self.context.column_cache.get_columns(builder.driver.value, schema, table, load)

    def list_table_rows(self, table: str, schema: str = "",
                        filters: Optional[Sequence[Union[RowFilter, Mapping[str, Any]]]] = None,
                        columns: Optional[Sequence[str]] = None,
                        order_by: str = "", order_direction: str = "ASC",
                        pagination: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """
        Browse a table page by page with optional filters and ordering.

        Args:
            table: Table name
            schema: Schema name (driver default when empty)
            filters: RowFilter objects or ``{"column", "operator", "value"}`` mappings
            columns: Columns to return (all when empty)
            order_by: Sort column
            order_direction: ASC or DESC
            pagination: ``{"page", "page_size"}``

        Returns:
            Dict with columns, rows and pagination info including the total count

        Raises:
            InvalidInputError: Unknown table, column or sort column
            InvalidFilterError: Bad filter operator or value
        """
        builder = self.builder
        require_identifier(table, "table")
        schema = self.resolve_schema(schema)
        page = self._page(pagination, DEFAULT_ROWS_PAGE_SIZE, self.max_rows_page_size)

        real_columns = self.table_columns(table, schema)
        if not real_columns:
            raise InvalidInputError(f"table not found: {table}")
        by_lower = {name.lower(): name for name in real_columns}

        selected = []
        for column in columns or ():
            actual = by_lower.get(str(column).lower())
            if actual is None:
                raise InvalidInputError(f"column does not exist: {column}")
            selected.append(actual)

        sort_column = ""
        if order_by:
            sort_column = by_lower.get(order_by.lower(), "")
            if not sort_column:
                raise InvalidInputError(f"column does not exist: {order_by}")

        where, args = build_where_clause(builder, filters or [], real_columns)

        count_query = builder.count_rows(table, schema, where)
        _, count_rows = self._fetch(count_query, "counting rows", args=args)
        total = int(count_rows[0][0]) if count_rows else 0

        select = builder.select_rows(SelectQueryParams(
            table=table, schema=schema, columns=selected, where_clause=where,
            order_by=sort_column, order_direction=order_direction,
            limit=page.limit, offset=page.offset,
        ))
        result_columns, rows = self._fetch(select, "listing rows", args=args)

        result = {
            "columns": result_columns,
            "rows": [format_row(result_columns, row) for row in rows],
        }
        result.update(page.to_dict(total))
        return result

    # -------------------------------------------------------------------------
    # Views and Triggers
    # -------------------------------------------------------------------------

    def list_views(self, schema: str = "", name_filter: str = "",
                   pagination: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        builder = self._require(DialectFeature.VIEWS)
        page = self._page(pagination)
        built = builder.list_views(schema=schema, name_filter=name_filter,
                                   limit=page.limit, offset=page.offset)
        return self._listing(built, "views", page, DialectFeature.VIEWS)

    def get_view_definition(self, name: str, schema: str = "") -> str:
        schema = self.resolve_schema(schema)
        built = self._require(DialectFeature.VIEWS).get_view_definition(name, schema)
        return self._definition(built, "view", name, DialectFeature.VIEWS)

    def list_triggers(self, schema: str = "", table: str = "", name_filter: str = "",
                      include_disabled: bool = True,
                      pagination: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        builder = self._require(DialectFeature.TRIGGERS)
        page = self._page(pagination)
        built = builder.list_triggers(schema=schema, table=table, name_filter=name_filter,
                                      include_disabled=include_disabled,
                                      limit=page.limit, offset=page.offset)
        return self._listing(built, "triggers", page, DialectFeature.TRIGGERS)

    def get_trigger_code(self, name: str, schema: str = "") -> str:
        schema = self.resolve_schema(schema)
        built = self._require(DialectFeature.TRIGGERS).get_trigger_code(name, schema)
        return self._definition(built, "trigger", name, DialectFeature.TRIGGERS)

    def _definition(self, built: BuiltQuery, kind: str, name: str, feature: DialectFeature) -> str:
        _, rows = self._fetch(built, f"getting {kind} code", feature)
        if not rows:
            raise InvalidInputError(f"{kind} not found: {name}")
        return join_source(rows)

    # -------------------------------------------------------------------------
    # Procedures and Functions
    # -------------------------------------------------------------------------

    def list_procedures(self, schema: str = "", name_filter: str = "",
                        pagination: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        builder = self._require(DialectFeature.STORED_PROCEDURES)
        page = self._page(pagination)
        built = builder.list_procedures(schema=schema, name_filter=name_filter,
                                        limit=page.limit, offset=page.offset)
        return self._listing(built, "procedures", page, DialectFeature.STORED_PROCEDURES)

    def get_procedure_code(self, name: str, schema: str = "") -> str:
        builder = self._require(DialectFeature.STORED_PROCEDURES)
        built = builder.get_procedure_code(name, self.resolve_schema(schema))
        return self._definition(built, "procedure", name, DialectFeature.STORED_PROCEDURES)

    def get_procedure_parameters(self, name: str, schema: str = "") -> List[ParameterInfo]:
        builder = self._require(DialectFeature.STORED_PROCEDURES)
        built = builder.get_procedure_parameters(name, self.resolve_schema(schema))
        _, rows = self._fetch(built, "getting procedure parameters", DialectFeature.STORED_PROCEDURES)
        return decode_parameters(rows)

    def list_functions(self, schema: str = "", name_filter: str = "", function_type: str = "all",
                       pagination: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        builder = self._require(DialectFeature.FUNCTIONS)
        page = self._page(pagination)
        built = builder.list_functions(schema=schema, name_filter=name_filter,
                                       function_type=function_type,
                                       limit=page.limit, offset=page.offset)
        return self._listing(built, "functions", page, DialectFeature.FUNCTIONS)

    def get_function_code(self, name: str, schema: str = "") -> str:
        builder = self._require(DialectFeature.FUNCTIONS)
        built = builder.get_function_code(name, self.resolve_schema(schema))
        return self._definition(built, "function", name, DialectFeature.FUNCTIONS)

    # -------------------------------------------------------------------------
    # Database Info
    # -------------------------------------------------------------------------

    def database_info(self) -> Dict[str, Any]:
        """Version, details, object counts and schemas; parts the engine lacks are None."""
        builder = self.builder
        _, rows = self._fetch(builder.database_version(), "getting database version")
        info: Dict[str, Any] = {
            "driver": builder.driver.value,
            "version": str(rows[0][0]) if rows else "",
        }

        for key, built in (("details", builder.database_details()),
                           ("object_counts", builder.object_counts())):
            if not built.supported:
                info[key] = None
                continue
            columns, detail_rows = self._fetch(built, f"getting database {key}")
            info[key] = format_row(columns, detail_rows[0]) if detail_rows else None

        schemas = builder.list_schemas()
        if schemas.supported:
            _, schema_rows = self._fetch(schemas, "listing schemas")
            info["schemas"] = [row[0] for row in schema_rows]
        else:
            info["schemas"] = None
        return info

    def list_schemas(self) -> List[str]:
        builder = self._require(DialectFeature.SCHEMAS)
        _, rows = self._fetch(builder.list_schemas(), "listing schemas", DialectFeature.SCHEMAS)
        return [row[0] for row in rows]

    def search_objects(self, search_term: str, search_in_code: bool = False,
                       object_types: Optional[Sequence[str]] = None) -> List[Dict[str, Any]]:
        built = self.builder.search_objects(search_term, search_in_code, object_types)
        return self._fetch_dicts(built, "searching objects")

    # -------------------------------------------------------------------------
    # Free-form Queries
    # -------------------------------------------------------------------------

    def execute_query(self, sql: str, max_rows: Optional[int] = DEFAULT_MAX_ROWS) -> Dict[str, Any]:
        """
        Run a caller-authored read-only query.

        Args:
            sql: Query text, checked by the SQL validator before execution
            max_rows: Row cap; values <= 0 fall back to the default, larger
                values are clamped to the configured ceiling

        Returns:
            Dict with columns, rows, row_count and a truncated flag

        Raises:
            QueryRejectedError: The validator refused the query
            QueryExecutionError: The driver failed
        """
        SQLValidator(sql).raise_for_rejection()

        if not max_rows or max_rows <= 0:
            max_rows = DEFAULT_MAX_ROWS
        max_rows = min(max_rows, self.max_query_rows)

        # One extra row tells a full page apart from a cut-off result
        columns, rows = self._run(sql, [], "executing query", max_rows=max_rows + 1)
        truncated = len(rows) > max_rows
        rows = rows[:max_rows]
        return {
            "columns": columns,
            "rows": [format_row(columns, row) for row in rows],
            "row_count": len(rows),
            "truncated": truncated,
        }
