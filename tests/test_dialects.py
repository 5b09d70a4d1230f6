"""
Unit tests for the dialect layer.
Tests placeholders, quoting, pagination, feature gating and the factory.
"""
import dataclasses

import pytest

from dbmcp.database.dialects import (
    DialectFactory,
    DialectFeature,
    DriverType,
    MySQLDialect,
    OracleDialect,
    PlaceholderStyle,
    PostgreSQLDialect,
    SQLiteDialect,
    SQLServerDialect,
)
from dbmcp.errors import ConfigurationError


class TestDriverType:
    """Test driver name resolution."""

    @pytest.mark.parametrize("name,expected", [
        ("sqlserver", DriverType.SQLSERVER),
        ("MSSQL", DriverType.SQLSERVER),
        ("postgres", DriverType.POSTGRESQL),
        ("postgresql", DriverType.POSTGRESQL),
        ("pg", DriverType.POSTGRESQL),
        ("mysql", DriverType.MYSQL),
        ("mariadb", DriverType.MYSQL),
        ("godror", DriverType.ORACLE),
        ("oracle", DriverType.ORACLE),
        ("sqlite3", DriverType.SQLITE),
        ("  SQLite ", DriverType.SQLITE),
    ])
    def test_parse_aliases(self, name, expected):
        """Test that values and aliases resolve case-insensitively."""
        assert DriverType.parse(name) is expected

    def test_parse_passes_enum_through(self):
        """Test that an enum member is returned unchanged."""
        assert DriverType.parse(DriverType.ORACLE) is DriverType.ORACLE

    @pytest.mark.parametrize("name", ["", None, "db2", "mongo"])
    def test_parse_rejects_unknown(self, name):
        """Test that unknown drivers raise a configuration error."""
        with pytest.raises(ConfigurationError, match="unrecognized database driver"):
            DriverType.parse(name)


class TestPlaceholders:
    """Test positional markers per engine."""

    @pytest.mark.parametrize("driver,style,first,third", [
        (DriverType.SQLSERVER, PlaceholderStyle.NAMED, "@p1", "@p3"),
        (DriverType.POSTGRESQL, PlaceholderStyle.NUMBERED, "$1", "$3"),
        (DriverType.MYSQL, PlaceholderStyle.QMARK, "?", "?"),
        (DriverType.ORACLE, PlaceholderStyle.NUMERIC, ":1", ":3"),
        (DriverType.SQLITE, PlaceholderStyle.QMARK, "?", "?"),
    ])
    def test_placeholder(self, driver, style, first, third):
        """Test the style and the marker for the first and third parameter."""
        dialect = DialectFactory.create(driver)
        assert dialect.placeholder_style is style
        assert dialect.placeholder(1) == first
        assert dialect.placeholder(3) == third

    def test_placeholders_sequence(self):
        """Test that consecutive markers start at the given index."""
        dialect = DialectFactory.create(DriverType.POSTGRESQL)
        assert dialect.placeholders(3, 3) == ["$3", "$4", "$5"]
        assert dialect.placeholders(1, 0) == []


class TestQuoting:
    """Test identifier quoting and qualification."""

    @pytest.mark.parametrize("driver,expected", [
        (DriverType.SQLSERVER, "[orders]"),
        (DriverType.POSTGRESQL, '"orders"'),
        (DriverType.MYSQL, "`orders`"),
        (DriverType.ORACLE, '"ORDERS"'),
        (DriverType.SQLITE, '"orders"'),
    ])
    def test_quote_identifier(self, driver, expected):
        """Test quote characters, Oracle folding to upper case."""
        assert DialectFactory.create(driver).quote_identifier("orders") == expected

    def test_qualify_table_with_schema(self):
        """Test schema-qualified names on engines with schemas."""
        assert SQLServerDialect().qualify_table("orders", "sales") == "[sales].[orders]"
        assert PostgreSQLDialect().qualify_table("orders", "sales") == '"sales"."orders"'

    def test_qualify_table_without_schema(self):
        """Test that an empty schema leaves the table unqualified."""
        assert MySQLDialect().qualify_table("orders", "") == "`orders`"

    def test_sqlite_ignores_schema(self):
        """Test that SQLite never qualifies table names."""
        assert SQLiteDialect().qualify_table("orders", "main") == '"orders"'

    def test_oracle_normalizes_lookup_values(self):
        """Test that Oracle upper-cases catalog lookup values."""
        assert OracleDialect().normalize_identifier("orders") == "ORDERS"
        assert PostgreSQLDialect().normalize_identifier("Orders") == "Orders"


class TestPagination:
    """Test pagination clauses."""

    def test_sqlserver_requires_order_by(self):
        """Test that SQL Server always emits an ORDER BY before OFFSET."""
        clause = SQLServerDialect().pagination_clause(50, 100)
        assert clause == "ORDER BY (SELECT NULL) OFFSET 100 ROWS FETCH NEXT 50 ROWS ONLY"

    def test_sqlserver_keeps_given_order(self):
        """Test that the caller's ordering replaces the neutral one."""
        clause = SQLServerDialect().pagination_clause(10, 0, "[name] DESC")
        assert clause == "ORDER BY [name] DESC OFFSET 0 ROWS FETCH NEXT 10 ROWS ONLY"

    def test_oracle_uses_fetch_with_neutral_order(self):
        """Test Oracle 12c pagination with a neutral ordering."""
        clause = OracleDialect().pagination_clause(25, 50)
        assert clause.startswith("ORDER BY (SELECT NULL FROM DUAL)")
        assert clause.endswith("OFFSET 50 ROWS FETCH NEXT 25 ROWS ONLY")

    @pytest.mark.parametrize("dialect", [PostgreSQLDialect(), MySQLDialect(), SQLiteDialect()])
    def test_limit_offset(self, dialect):
        """Test LIMIT/OFFSET engines with and without ordering."""
        assert dialect.pagination_clause(20, 40) == "LIMIT 20 OFFSET 40"
        assert dialect.pagination_clause(20, 0, "name") == "ORDER BY name LIMIT 20 OFFSET 0"


class TestExpressions:
    """Test LIKE operators, concatenation and current database."""

    def test_like_operator(self):
        """Test that only PostgreSQL has a case-insensitive LIKE."""
        assert PostgreSQLDialect().like_operator(False) == "ILIKE"
        assert PostgreSQLDialect().like_operator(True) == "LIKE"
        assert SQLServerDialect().like_operator(False) == "LIKE"
        assert SQLiteDialect().like_operator(False) == "LIKE"

    def test_concat(self):
        """Test concatenation syntax per engine."""
        assert SQLServerDialect().concat("a", "b") == "a + b"
        assert MySQLDialect().concat("a", "b", "c") == "CONCAT(a, b, c)"
        assert PostgreSQLDialect().concat("a", "b") == "a || b"

    def test_current_database(self):
        """Test current database expressions."""
        assert SQLServerDialect().current_database() == "DB_NAME()"
        assert MySQLDialect().current_database() == "DATABASE()"

    def test_scalar_select(self):
        """Test that Oracle selects from DUAL."""
        assert OracleDialect().scalar_select("1") == "SELECT 1 FROM DUAL"
        assert PostgreSQLDialect().scalar_select("1") == "SELECT 1"


class TestFeatures:
    """Test feature gating."""

    def test_sqlite_feature_gaps(self):
        """Test that SQLite lacks procedures, functions and schemas."""
        dialect = SQLiteDialect()
        assert not dialect.supports_stored_procedures()
        assert not dialect.supports_functions()
        assert not dialect.supports_feature(DialectFeature.SCHEMAS)
        assert dialect.supports_views()
        assert dialect.supports_triggers()

    def test_postgres_supports_everything(self):
        """Test that PostgreSQL has no feature gaps."""
        dialect = PostgreSQLDialect()
        assert dialect.unsupported_features == frozenset()
        assert all(dialect.supports_feature(f) for f in DialectFeature)

    @pytest.mark.parametrize("dialect", [SQLServerDialect(), MySQLDialect(), OracleDialect()])
    def test_ilike_only_on_postgres(self, dialect):
        """Test that other engines report ILIKE as unsupported."""
        assert not dialect.supports_feature(DialectFeature.ILIKE)
        assert dialect.supports_stored_procedures()

    def test_sqlite_has_no_procedure_queries(self):
        """Test that SQLite procedure and function query sets are empty."""
        dialect = SQLiteDialect()
        assert not dialect.procedure_metadata().is_supported
        assert not dialect.function_metadata().is_supported
        assert dialect.procedure_call('"p"', []) == ""


class TestDefaultSchemas:
    """Test default schema per engine."""

    @pytest.mark.parametrize("driver,schema", [
        (DriverType.SQLSERVER, "dbo"),
        (DriverType.POSTGRESQL, "public"),
        (DriverType.MYSQL, ""),
        (DriverType.ORACLE, ""),
        (DriverType.SQLITE, "main"),
    ])
    def test_default_schema(self, driver, schema):
        """Test the schema assumed when the caller gives none."""
        assert DialectFactory.create(driver).default_schema == schema


class TestMetadataQuerySets:
    """Test that query sets are fresh, immutable and complete."""

    def test_query_sets_are_frozen(self):
        """Test that a query set cannot be mutated."""
        meta = PostgreSQLDialect().table_metadata()
        with pytest.raises(dataclasses.FrozenInstanceError):
            meta.list_tables = "SELECT 1"

    def test_query_sets_are_equal_across_calls(self):
        """Test that repeated calls return equal query sets."""
        dialect = SQLServerDialect()
        assert dialect.table_metadata() == dialect.table_metadata()

    def test_filter_fragments_have_placeholder_slot(self, driver):
        """Test that every non-empty filter fragment has a placeholder slot."""
        dialect = DialectFactory.create(driver)
        for meta in (dialect.table_metadata(), dialect.view_metadata(), dialect.trigger_metadata()):
            for name in ("schema_filter", "name_filter", "table_filter"):
                fragment = getattr(meta, name, "")
                if fragment:
                    assert "{placeholder}" in fragment

    def test_function_type_filters(self):
        """Test scalar/table/all function filters."""
        meta = SQLServerDialect().function_metadata()
        assert meta.type_filter("scalar") == " AND o.type = 'FN'"
        assert meta.type_filter("table") == " AND o.type IN ('IF', 'TF')"
        assert meta.type_filter("all") == " AND o.type IN ('FN', 'IF', 'TF')"

    def test_sqlite_pragma_templates(self):
        """Test that SQLite table introspection goes through PRAGMA."""
        meta = SQLiteDialect().table_metadata()
        assert meta.get_columns == "PRAGMA table_info({table})"
        assert meta.get_indexes == "PRAGMA index_list({table})"
        assert meta.get_foreign_keys == "PRAGMA foreign_key_list({table})"

    def test_oracle_has_no_database_details(self):
        """Test that Oracle reports no details query."""
        info = OracleDialect().database_info()
        assert info.details == ""
        assert info.version


class TestDialectFactory:
    """Test dialect creation and registration."""

    def test_create_returns_fresh_instances(self):
        """Test that every call creates a new dialect."""
        first = DialectFactory.create("postgres")
        second = DialectFactory.create("postgres")
        assert isinstance(first, PostgreSQLDialect)
        assert first is not second

    def test_supported_types(self):
        """Test that all five engines are registered."""
        assert set(DialectFactory.supported_types()) == set(DriverType)

    def test_create_unknown_raises(self):
        """Test that unknown drivers raise a configuration error."""
        with pytest.raises(ConfigurationError):
            DialectFactory.create("db2")

    def test_repr(self):
        """Test dialect repr shows the driver value."""
        assert repr(SQLiteDialect()) == "SQLiteDialect(driver='sqlite3')"
