"""
Tests for the identifier grammar.
"""
import pytest

from dbmcp.errors import InvalidIdentifierError, InvalidInputError
from dbmcp.security import is_valid_identifier, require_identifier, resolve_schema


class TestIdentifierGrammar:

    @pytest.mark.parametrize("name", [
        "orders",
        "order_items",
        "Orders2024",
        "#temp",
        "@var",
        "price$",
        "x" * 127,
    ])
    def test_valid(self, name):
        """Test letters, digits and _ # @ $ up to 127 characters."""
        assert is_valid_identifier(name)

    @pytest.mark.parametrize("name", [
        "",
        None,
        42,
        "x" * 128,
        "order items",
        "orders;",
        "orders--",
        "dbo.orders",
        "[orders]",
        '"orders"',
        "orders\n",
        "commandé",
    ])
    def test_invalid(self, name):
        """Test that anything outside the grammar is refused."""
        assert not is_valid_identifier(name)

    def test_require_returns_name(self):
        """Test that a valid name is returned unchanged."""
        assert require_identifier("orders", "table") == "orders"

    def test_require_raises_with_kind(self):
        """Test the error message names what was invalid."""
        with pytest.raises(InvalidIdentifierError) as exc_info:
            require_identifier("bad name", "column")
        assert str(exc_info.value) == "invalid column name: 'bad name'"
        assert exc_info.value.kind == "column"
        assert isinstance(exc_info.value, InvalidInputError)


class TestResolveSchema:

    def test_caller_schema_wins(self):
        assert resolve_schema("sales", "dbo") == "sales"

    def test_falls_back_to_default(self):
        assert resolve_schema("", "public") == "public"
        assert resolve_schema(None, "dbo") == "dbo"

    def test_empty_default_allowed(self):
        """Test engines whose default schema is the connection's own."""
        assert resolve_schema("", "") == ""

    def test_invalid_schema(self):
        with pytest.raises(InvalidIdentifierError):
            resolve_schema("sales; --", "dbo")
