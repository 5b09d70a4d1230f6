"""
Tests for PaginationParams.
"""
import pytest

from dbmcp.errors import InvalidInputError
from dbmcp.pagination import PaginationParams


class TestPaginationParams:

    def test_defaults(self):
        """Test page 1 with the catalog default size."""
        params = PaginationParams()
        assert params.page == 1
        assert params.page_size == 100
        assert params.offset == 0
        assert params.limit == 100

    def test_offset(self):
        """Test that the offset is (page - 1) * page_size."""
        assert PaginationParams(page=3, page_size=25).offset == 50

    @pytest.mark.parametrize("page,page_size", [(0, 10), (-1, 10), (1, 0)])
    def test_invalid_values(self, page, page_size):
        """Test that page and page_size must be at least 1."""
        with pytest.raises(InvalidInputError):
            PaginationParams(page=page, page_size=page_size)


class TestFromArgs:

    def test_missing_args(self):
        """Test defaults when nothing is given."""
        assert PaginationParams.from_args(None) == PaginationParams()
        assert PaginationParams.from_args({}, default_page_size=50).page_size == 50

    def test_clamps_to_ceiling(self):
        """Test that page sizes above the ceiling are clamped."""
        params = PaginationParams.from_args({"page_size": 5000}, max_page_size=500)
        assert params.page_size == 500

    def test_out_of_range_values_fall_back(self):
        """Test that low pages become 1 and low sizes use the default."""
        params = PaginationParams.from_args({"page": -4, "page_size": 0}, default_page_size=50)
        assert params.page == 1
        assert params.page_size == 50

    @pytest.mark.parametrize("raw,expected", [
        (2, 2),
        (2.0, 2),
        ("3", 3),
        (" 4 ", 4),
        ("abc", 1),
        (True, 1),
    ])
    def test_coerces_json_numbers(self, raw, expected):
        """Test ints, floats and numeric strings; anything else uses the default."""
        assert PaginationParams.from_args({"page": raw}).page == expected

    @pytest.mark.parametrize("raw", [float("nan"), float("inf"), float("-inf"), "NaN"])
    def test_non_finite_numbers_fall_back(self, raw):
        """Test that NaN and Infinity, which json.loads accepts, use the defaults."""
        params = PaginationParams.from_args({"page": raw, "page_size": raw}, default_page_size=50)
        assert params.page == 1
        assert params.page_size == 50


class TestPageInfo:

    def test_total_pages(self):
        params = PaginationParams(page=1, page_size=10)
        assert params.total_pages(0) == 0
        assert params.total_pages(10) == 1
        assert params.total_pages(11) == 2

    def test_navigation(self):
        """Test has_next and has_previous."""
        first = PaginationParams(page=1, page_size=2)
        last = PaginationParams(page=3, page_size=2)
        assert first.has_next(5)
        assert not first.has_previous
        assert not last.has_next(5)
        assert last.has_previous

    def test_to_dict(self):
        """Test page info with and without a total."""
        params = PaginationParams(page=2, page_size=2)
        assert params.to_dict() == {"page": 2, "page_size": 2}
        assert params.to_dict(5) == {
            "page": 2,
            "page_size": 2,
            "total_count": 5,
            "total_pages": 3,
            "has_next": True,
            "has_previous": True,
        }
