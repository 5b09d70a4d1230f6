"""
Pagination parameters shared by every listing operation.

Catalog listings, table rows and free-form queries each have their own
default and ceiling; callers pass them to ``PaginationParams.from_args``.
"""

from dataclasses import dataclass
import math
from typing import Any, Mapping, Optional

from .constants import DEFAULT_PAGE, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from .errors import InvalidInputError


def _to_int(value: Any, default: int) -> int:
    """Coerce a JSON-ish number (int, integral float, numeric string)."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


@dataclass(frozen=True)
class PaginationParams:
    """1-based page number and page size."""
    page: int = DEFAULT_PAGE
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self):
        if self.page < 1:
            raise InvalidInputError(f"page must be >= 1, got {self.page}")
        if self.page_size < 1:
            raise InvalidInputError(f"page_size must be >= 1, got {self.page_size}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size

    @classmethod
    def from_args(cls, args: Optional[Mapping[str, Any]],
                  default_page_size: int = DEFAULT_PAGE_SIZE,
                  max_page_size: int = MAX_PAGE_SIZE) -> "PaginationParams":
        """
        Read ``page`` and ``page_size`` from tool arguments.

        Pages below 1 become 1, page sizes below 1 fall back to the default,
        and page sizes above the ceiling are clamped to it.
        """
        args = args or {}
        page = max(_to_int(args.get("page"), DEFAULT_PAGE), 1)
        page_size = _to_int(args.get("page_size"), default_page_size)
        if page_size < 1:
            page_size = default_page_size
        page_size = min(page_size, max_page_size)
        return cls(page=page, page_size=page_size)

    def total_pages(self, total_count: int) -> int:
        if total_count <= 0:
            return 0
        return (total_count + self.page_size - 1) // self.page_size

    def has_next(self, total_count: int) -> bool:
        return self.page < self.total_pages(total_count)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    def to_dict(self, total_count: Optional[int] = None) -> dict:
        info = {"page": self.page, "page_size": self.page_size}
        if total_count is not None:
            info.update({
                "total_count": total_count,
                "total_pages": self.total_pages(total_count),
                "has_next": self.has_next(total_count),
                "has_previous": self.has_previous,
            })
        return info
