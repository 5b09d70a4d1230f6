"""
Unit tests for QueryBuilder.
Tests placeholder/argument lockstep, pagination, feature gating, object
search, row selection and procedure calls for every engine.
"""
import logging

import pytest

from dbmcp.database.catalog import ParameterInfo
from dbmcp.database.dialects import DriverType
from dbmcp.database.query_builder import (
    BuiltQuery,
    Operation,
    QueryBuilder,
    SelectQueryParams,
    UNSUPPORTED,
)
from dbmcp.errors import (
    ConfigurationError,
    InvalidIdentifierError,
    InvalidInputError,
    MissingParameterError,
)

from conftest import placeholder_numbers


# Every operation that takes caller values, with representative arguments
OPERATION_CALLS = [
    ("list_tables", dict(schema="app", name_filter="ord")),
    ("list_views", dict(schema="app", name_filter="open")),
    ("list_triggers", dict(schema="app", table="orders", name_filter="trg", include_disabled=False)),
    ("list_procedures", dict(schema="app", name_filter="upd")),
    ("list_functions", dict(schema="app", name_filter="calc", function_type="scalar")),
    ("describe_table", dict(table="orders", schema="app")),
    ("table_exists", dict(table="orders", schema="app")),
    ("get_columns", dict(table="orders", schema="app")),
    ("get_table_schema_full", dict(table="orders", schema="app")),
    ("get_primary_key", dict(table="orders", schema="app")),
    ("get_indexes", dict(table="orders", schema="app")),
    ("get_foreign_keys", dict(table="orders", schema="app")),
    ("get_procedure_code", dict(name="update_order", schema="app")),
    ("get_procedure_parameters", dict(name="update_order", schema="app")),
    ("get_function_code", dict(name="calc_total", schema="app")),
    ("get_view_definition", dict(name="open_orders", schema="app")),
    ("get_trigger_code", dict(name="trg_orders", schema="app")),
    ("search_objects", dict(search_term="ord", search_in_code=True)),
    ("search_objects", dict(search_term="ord", object_types=["table", "view"])),
    ("database_version", {}),
    ("database_details", {}),
    ("object_counts", {}),
    ("list_schemas", {}),
    ("current_schema", {}),
]


class TestPlaceholderArgumentLockstep:
    """Test that markers and arguments always agree."""

    @pytest.mark.parametrize("method,kwargs", OPERATION_CALLS, ids=[c[0] for c in OPERATION_CALLS])
    def test_placeholders_match_args(self, builder, method, kwargs):
        """Test that marker count equals argument count, numbered from 1."""
        built = getattr(builder, method)(**kwargs)
        if not built.supported:
            assert built.sql == ""
            assert built.args == []
            return
        expected = list(range(1, len(built.args) + 1))
        assert placeholder_numbers(builder.driver, built.sql) == expected

    @pytest.mark.parametrize("method,kwargs", OPERATION_CALLS, ids=[c[0] for c in OPERATION_CALLS])
    def test_building_is_idempotent(self, builder, method, kwargs):
        """Test that the same call twice yields the same query."""
        first = getattr(builder, method)(**kwargs)
        second = getattr(builder, method)(**kwargs)
        assert first == second

    def test_omitted_filters_omit_markers(self, sqlserver_builder):
        """Test that an empty schema filter drops both marker and argument."""
        sql, args = sqlserver_builder.list_tables(name_filter="ord")
        assert args == ["%ord%"]
        assert "LIKE @p1" in sql
        assert "@p2" not in sql

    def test_no_filters_no_args(self, postgres_builder):
        """Test a listing with no filters."""
        sql, args = postgres_builder.list_views()
        assert args == []
        assert "$1" not in sql

    def test_filter_argument_order(self, sqlserver_builder):
        """Test schema, table, name order for trigger listing."""
        sql, args = sqlserver_builder.list_triggers(
            schema="dbo", table="orders", name_filter="audit", include_disabled=False)
        assert args == ["dbo", "orders", "%audit%"]
        assert sql.index("@p1") < sql.index("@p2") < sql.index("@p3")
        assert sql.index("tr.is_disabled = 0") < sql.index("ORDER BY")

    def test_include_disabled_skips_filter(self, sqlserver_builder):
        """Test that disabled triggers are listed by default."""
        sql, _ = sqlserver_builder.list_triggers()
        assert "is_disabled = 0" not in sql


class TestNormalization:
    """Test engine case folding of bound values."""

    def test_oracle_uppercases_lookup_values(self, oracle_builder):
        """Test that Oracle binds upper-cased schema, name and pattern."""
        _, args = oracle_builder.list_tables(schema="hr", name_filter="emp")
        assert args == ["HR", "%EMP%"]
        _, args = oracle_builder.get_primary_key("employees", "hr")
        assert args == ["HR", "EMPLOYEES"]

    def test_postgres_keeps_case(self, postgres_builder):
        """Test that PostgreSQL binds values as given."""
        _, args = postgres_builder.get_indexes("Orders", "Sales")
        assert args == ["Sales", "Orders"]

    def test_name_filter_is_bound_not_validated(self, mysql_builder):
        """Test that name filters are patterns bound as arguments."""
        sql, args = mysql_builder.list_tables(name_filter="o'rd x")
        assert args == ["%o'rd x%"]
        assert "o'rd" not in sql


class TestPagination:
    """Test pagination of listings."""

    def test_sqlserver_listing_has_order_by(self, sqlserver_builder):
        """Test that SQL Server listings end with ORDER BY ... OFFSET/FETCH."""
        sql, _ = sqlserver_builder.list_tables(limit=10, offset=30)
        assert sql.endswith("ORDER BY TABLE_SCHEMA, TABLE_NAME OFFSET 30 ROWS FETCH NEXT 10 ROWS ONLY")

    def test_oracle_listing_has_order_by(self, oracle_builder):
        """Test that Oracle listings use OFFSET/FETCH after ORDER BY."""
        sql, _ = oracle_builder.list_views(limit=5)
        assert "ORDER BY owner, view_name OFFSET 0 ROWS FETCH NEXT 5 ROWS ONLY" in sql

    def test_limit_offset_listing(self, postgres_builder):
        """Test LIMIT/OFFSET listings."""
        sql, _ = postgres_builder.list_tables(limit=100, offset=200)
        assert sql.endswith("ORDER BY table_schema, table_name LIMIT 100 OFFSET 200")

    @pytest.mark.parametrize("limit,offset", [(0, 0), (-1, 0), (10, -1)])
    def test_invalid_window(self, builder, limit, offset):
        """Test that non-positive limits and negative offsets are rejected."""
        with pytest.raises(InvalidInputError):
            builder.list_tables(limit=limit, offset=offset)


class TestIdentifierValidation:
    """Test identifier checks before SQL is built."""

    @pytest.mark.parametrize("table", ["orders; DROP TABLE x", "my table", "", "x" * 128])
    def test_invalid_table(self, builder, table):
        """Test that invalid table names never reach SQL."""
        with pytest.raises(InvalidIdentifierError):
            builder.describe_table(table, "app")

    def test_invalid_schema(self, sqlserver_builder):
        """Test that invalid schema names are rejected."""
        with pytest.raises(InvalidIdentifierError, match="schema"):
            sqlserver_builder.list_tables(schema="dbo'--")

    def test_invalid_trigger_table(self, postgres_builder):
        """Test that the trigger table filter is validated."""
        with pytest.raises(InvalidIdentifierError, match="table"):
            postgres_builder.list_triggers(table="orders)")


class TestFeatureGating:
    """Test unsupported operations."""

    @pytest.mark.parametrize("method,kwargs", [
        ("list_procedures", {}),
        ("list_functions", {}),
        ("get_procedure_code", dict(name="p")),
        ("get_procedure_parameters", dict(name="p")),
        ("get_function_code", dict(name="f")),
        ("call_procedure", dict(name="p")),
        ("database_details", {}),
        ("list_schemas", {}),
    ])
    def test_sqlite_unsupported(self, sqlite_builder, method, kwargs):
        """Test that SQLite reports missing capabilities instead of failing."""
        built = getattr(sqlite_builder, method)(**kwargs)
        assert not built.supported
        assert built.sql == ""
        assert not built

    def test_oracle_details_unsupported(self, oracle_builder):
        """Test that Oracle has no database details query."""
        assert oracle_builder.database_details() is UNSUPPORTED

    def test_supported_query_is_truthy(self, postgres_builder):
        """Test BuiltQuery truthiness."""
        assert postgres_builder.database_version()

    def test_feature_flags(self, sqlite_builder, postgres_builder):
        """Test builder feature shortcuts."""
        assert not sqlite_builder.supports_stored_procedures()
        assert not sqlite_builder.supports_functions()
        assert sqlite_builder.supports_views()
        assert postgres_builder.supports_stored_procedures()


class TestSQLiteIntrospection:
    """Test PRAGMA-based table operations."""

    @pytest.mark.parametrize("method,pragma", [
        ("describe_table", "table_info"),
        ("get_columns", "table_info"),
        ("get_table_schema_full", "table_info"),
        ("get_primary_key", "table_info"),
        ("get_indexes", "index_list"),
        ("get_foreign_keys", "foreign_key_list"),
    ])
    def test_pragma_embeds_quoted_table(self, sqlite_builder, method, pragma):
        """Test that the validated table name is quoted into the PRAGMA."""
        sql, args = getattr(sqlite_builder, method)("orders", "main")
        assert sql == f'PRAGMA {pragma}("orders")'
        assert args == []

    def test_table_exists_binds_name(self, sqlite_builder):
        """Test that table_exists is a plain catalog query."""
        sql, args = sqlite_builder.table_exists("orders")
        assert "sqlite_master" in sql
        assert args == ["orders"]

    def test_view_definition_binds_name_only(self, sqlite_builder):
        """Test that schema is ignored for SQLite lookups."""
        _, args = sqlite_builder.get_view_definition("open_orders", "main")
        assert args == ["open_orders"]


class TestFunctions:
    """Test function listing."""

    def test_type_filter_precedes_other_filters(self, sqlserver_builder):
        """Test that the type filter comes right after the base query."""
        sql, args = sqlserver_builder.list_functions(schema="dbo", function_type="table")
        assert sql.index("o.type IN ('IF', 'TF')") < sql.index("s.name = @p1")
        assert args == ["dbo"]

    def test_postgres_scalar_filter(self, postgres_builder):
        """Test that PostgreSQL distinguishes set-returning functions."""
        sql, _ = postgres_builder.list_functions(function_type="scalar")
        assert "AND NOT p.proretset" in sql

    def test_function_type_case_insensitive(self, sqlserver_builder):
        """Test that function types are matched case-insensitively."""
        sql, _ = sqlserver_builder.list_functions(function_type="SCALAR")
        assert "o.type = 'FN'" in sql

    def test_invalid_function_type(self, sqlserver_builder):
        """Test that unknown function types are rejected."""
        with pytest.raises(InvalidInputError, match="scalar, table, or all"):
            sqlserver_builder.list_functions(function_type="aggregate")


class TestSearchObjects:
    """Test object search assembly."""

    def test_sqlserver_defaults_to_all_types(self, sqlserver_builder):
        """Test that SQL Server searches every type when none is given."""
        sql, args = sqlserver_builder.search_objects("ord")
        assert "AND o.type IN ('U', 'V', 'P', 'FN')" in sql
        assert "m.definition LIKE" not in sql
        assert args == ["ord"]

    def test_sqlserver_code_search_reuses_marker(self, sqlserver_builder):
        """Test that searching code reuses the same named marker."""
        sql, args = sqlserver_builder.search_objects("ord", search_in_code=True)
        assert "m.definition LIKE '%' + @p1 + '%'" in sql
        assert args == ["ord"]

    def test_unknown_types_are_ignored(self, oracle_builder):
        """Test that unmapped type names are dropped and the term upper-cased."""
        sql, args = oracle_builder.search_objects("emp", object_types=["table", "synonym", "TABLE"])
        assert "AND object_type IN ('TABLE')" in sql
        assert args == ["EMP"]

    def test_postgres_without_types_has_no_type_filter(self, postgres_builder):
        """Test that engines without a default type list search everything."""
        sql, _ = postgres_builder.search_objects("ord")
        assert "table_type IN" not in sql

    def test_sqlite_code_search_binds_term_twice(self, sqlite_builder):
        """Test that anonymous markers get the term once per use."""
        sql, args = sqlite_builder.search_objects("ord", search_in_code=True)
        assert sql.count("?") == 2
        assert args == ["ord", "ord"]

    def test_type_codes_never_contain_caller_text(self, mysql_builder):
        """Test that caller type names cannot inject SQL."""
        sql, _ = mysql_builder.search_objects("x", object_types=["view') OR 1=1 --"])
        assert "OR 1=1" not in sql

    def test_empty_term_rejected(self, postgres_builder):
        """Test that a search term is required."""
        with pytest.raises(InvalidInputError):
            postgres_builder.search_objects("")


class TestSelectAndCount:
    """Test row selection and counting."""

    def test_sqlserver_select_without_order(self, sqlserver_builder):
        """Test the neutral ORDER BY on SQL Server."""
        sql, args = sqlserver_builder.select_rows(SelectQueryParams(table="orders", schema="dbo"))
        assert sql == (
            "SELECT * FROM [dbo].[orders] "
            "ORDER BY (SELECT NULL) OFFSET 0 ROWS FETCH NEXT 50 ROWS ONLY"
        )
        assert args == []

    def test_oracle_select_without_schema(self, oracle_builder):
        """Test Oracle row selection in the current schema."""
        sql, _ = oracle_builder.select_rows(SelectQueryParams(table="orders", limit=5, offset=10))
        assert sql == (
            'SELECT * FROM "ORDERS" '
            "ORDER BY (SELECT NULL FROM DUAL) OFFSET 10 ROWS FETCH NEXT 5 ROWS ONLY"
        )

    def test_postgres_select_with_everything(self, postgres_builder):
        """Test columns, WHERE, ordering and pagination together."""
        sql, _ = postgres_builder.select_rows(SelectQueryParams(
            table="orders", schema="public", columns=["id", "total"],
            where_clause='WHERE "status" = $1', order_by="total",
            order_direction="desc", limit=10, offset=20,
        ))
        assert sql == (
            'SELECT "id", "total" FROM "public"."orders" WHERE "status" = $1 '
            'ORDER BY "total" DESC LIMIT 10 OFFSET 20'
        )

    def test_sqlite_select_ignores_schema(self, sqlite_builder):
        """Test that SQLite selects from the bare table."""
        sql, _ = sqlite_builder.select_rows(SelectQueryParams(table="orders", schema="main", limit=3))
        assert sql == 'SELECT * FROM "orders" LIMIT 3 OFFSET 0'

    def test_invalid_direction(self):
        """Test that only ASC and DESC are accepted."""
        with pytest.raises(InvalidInputError, match="order direction"):
            SelectQueryParams(table="orders", order_direction="SIDEWAYS")

    @pytest.mark.parametrize("limit,offset", [(0, 0), (10, -5)])
    def test_invalid_params_window(self, limit, offset):
        """Test the limit/offset invariant of SelectQueryParams."""
        with pytest.raises(InvalidInputError):
            SelectQueryParams(table="orders", limit=limit, offset=offset)

    def test_invalid_column(self, mysql_builder):
        """Test that selected columns go through the identifier grammar."""
        with pytest.raises(InvalidIdentifierError, match="column"):
            mysql_builder.select_rows(SelectQueryParams(table="orders", columns=["id", "1;DROP"]))

    def test_count_rows(self, sqlite_builder, sqlserver_builder):
        """Test counting with and without WHERE."""
        sql, args = sqlite_builder.count_rows("orders")
        assert sql == 'SELECT COUNT(*) FROM "orders"'
        assert args == []
        sql, _ = sqlserver_builder.count_rows("orders", "dbo", "WHERE [total] > @p1")
        assert sql == "SELECT COUNT(*) FROM [dbo].[orders] WHERE [total] > @p1"


class TestCallProcedure:
    """Test stored procedure invocations."""

    def test_sqlserver_named_arguments(self, sqlserver_builder):
        """Test EXEC with named parameters in argument order."""
        sql, args = sqlserver_builder.call_procedure(
            "update_order", "dbo", arguments={"id": 5, "status": "shipped"})
        assert sql == "EXEC [dbo].[update_order] @id = @p1, @status = @p2"
        assert args == [5, "shipped"]

    def test_sqlserver_without_arguments(self, sqlserver_builder):
        """Test EXEC with no parameters."""
        sql, args = sqlserver_builder.call_procedure("refresh_stats", "dbo")
        assert sql == "EXEC [dbo].[refresh_stats]"
        assert args == []

    def test_declared_order_wins(self, sqlserver_builder):
        """Test that arguments follow declaration order; outputs may be omitted."""
        declared = [
            ParameterInfo("@status", "varchar"),
            ParameterInfo("@id", "int"),
            ParameterInfo("@rows", "int", is_output=True),
        ]
        sql, args = sqlserver_builder.call_procedure(
            "update_order", "dbo", arguments={"ID": 5, "status": "new"}, declared_parameters=declared)
        assert sql == "EXEC [dbo].[update_order] @status = @p1, @id = @p2"
        assert args == ["new", 5]

    def test_missing_required_parameter(self, sqlserver_builder):
        """Test that a missing input parameter fails before SQL is built."""
        declared = [ParameterInfo("@id", "int"), ParameterInfo("@status", "varchar")]
        with pytest.raises(MissingParameterError, match="missing required parameter: status"):
            sqlserver_builder.call_procedure(
                "update_order", "dbo", arguments={"id": 1}, declared_parameters=declared)

    def test_unknown_parameter(self, postgres_builder):
        """Test that arguments not in the declaration are rejected."""
        declared = [ParameterInfo("order_id", "integer")]
        with pytest.raises(InvalidInputError, match="unknown procedure parameter"):
            postgres_builder.call_procedure(
                "archive", "public", arguments={"order_id": 1, "force": True},
                declared_parameters=declared)

    def test_positional_output_slot(self, postgres_builder):
        """Test that positional engines fill omitted output parameters with NULL."""
        declared = [ParameterInfo("order_id", "integer"), ParameterInfo("moved", "integer", True)]
        sql, args = postgres_builder.call_procedure(
            "archive", "public", arguments={"order_id": 7}, declared_parameters=declared)
        assert sql == 'CALL "public"."archive"($1, $2)'
        assert args == [7, None]

    def test_mysql_call(self, mysql_builder):
        """Test CALL with anonymous markers."""
        sql, args = mysql_builder.call_procedure("restock", "shop", arguments={"sku": "A1", "qty": 3})
        assert sql == "CALL `shop`.`restock`(?, ?)"
        assert args == ["A1", 3]

    def test_oracle_anonymous_block(self, oracle_builder):
        """Test Oracle calls wrapped in BEGIN ... END."""
        sql, args = oracle_builder.call_procedure("raise_salary", "hr", arguments={"emp_id": 10})
        assert sql == 'BEGIN "HR"."RAISE_SALARY"(:1); END;'
        assert args == [10]

    def test_invalid_argument_name(self, sqlserver_builder):
        """Test that argument names are identifiers."""
        with pytest.raises(InvalidIdentifierError, match="parameter"):
            sqlserver_builder.call_procedure("p", "dbo", arguments={"id = 1; --": 1})


class TestDispatch:
    """Test build() dispatch and builder construction."""

    def test_every_operation_has_a_method(self, builder):
        """Test that each Operation value names a builder method."""
        for operation in Operation:
            assert callable(getattr(builder, operation.value))

    def test_build_matches_direct_call(self, postgres_builder):
        """Test dispatch by member and by value."""
        direct = postgres_builder.list_tables(schema="public")
        assert postgres_builder.build(Operation.LIST_TABLES, schema="public") == direct
        assert postgres_builder.build("list_tables", schema="public") == direct

    def test_build_unknown_operation(self, postgres_builder):
        """Test that unknown operations are rejected."""
        with pytest.raises(InvalidInputError, match="unknown operation"):
            postgres_builder.build("drop_everything")

    def test_unknown_driver(self):
        """Test that an unknown driver fails at construction."""
        with pytest.raises(ConfigurationError):
            QueryBuilder("db2")

    def test_current_schema_queries(self, sqlserver_builder, oracle_builder):
        """Test current schema lookups."""
        assert sqlserver_builder.current_schema().sql == "SELECT SCHEMA_NAME()"
        assert oracle_builder.current_schema().sql == (
            "SELECT SYS_CONTEXT('USERENV', 'CURRENT_SCHEMA') FROM DUAL")

    def test_builder_helpers(self, sqlserver_builder):
        """Test the pass-through helpers."""
        assert sqlserver_builder.placeholder(2) == "@p2"
        assert sqlserver_builder.qualify_table("dbo", "orders") == "[dbo].[orders]"
        assert sqlserver_builder.default_schema == "dbo"
        assert sqlserver_builder.driver is DriverType.SQLSERVER
        assert repr(sqlserver_builder) == "QueryBuilder(driver='sqlserver')"

    def test_built_query_unpacks(self):
        """Test that BuiltQuery unpacks into sql and args."""
        sql, args = BuiltQuery("SELECT 1", [1])
        assert sql == "SELECT 1"
        assert args == [1]

    def test_debug_logging(self, postgres_builder, caplog):
        """Test that built SQL is logged at DEBUG."""
        with caplog.at_level(logging.DEBUG, logger="dbmcp.database.query_builder"):
            postgres_builder.list_tables(schema="public")
        assert any("list_tables:" in r.getMessage() for r in caplog.records)
