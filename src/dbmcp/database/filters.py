"""
Row filters - Typed conditions compiled into a parameterized WHERE clause

Column names are checked against the table's real columns and quoted by the
dialect; values are always bound through placeholders.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Mapping, Sequence, Tuple, Union
import logging

from ..errors import InvalidFilterError, InvalidInputError

logger = logging.getLogger(__name__)


class FilterOperator(Enum):
    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"

    @classmethod
    def parse(cls, value: Union["FilterOperator", str]) -> "FilterOperator":
        if isinstance(value, FilterOperator):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidFilterError(f"unknown filter operator: {value!r}") from None


_COMPARISONS = {
    FilterOperator.EQ: "=",
    FilterOperator.NEQ: "!=",
    FilterOperator.GT: ">",
    FilterOperator.GTE: ">=",
    FilterOperator.LT: "<",
    FilterOperator.LTE: "<=",
}

_LIKE_PATTERNS = {
    FilterOperator.CONTAINS: "%{}%",
    FilterOperator.STARTS_WITH: "{}%",
    FilterOperator.ENDS_WITH: "%{}",
}


@dataclass
class RowFilter:
    """One condition on a table column."""
    column: str
    operator: FilterOperator
    value: Any = None

    def __post_init__(self):
        self.operator = FilterOperator.parse(self.operator)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RowFilter":
        """Build from a ``{"column", "operator", "value"}`` mapping."""
        if not isinstance(data, Mapping):
            raise InvalidFilterError("filter must be an object with column and operator")
        column = data.get("column")
        if not column:
            raise InvalidFilterError("filter column is required")
        return cls(column=column, operator=data.get("operator", ""), value=data.get("value"))


def build_where_clause(builder, filters: Iterable[Union[RowFilter, Mapping[str, Any]]],
                       columns: Sequence[str], start_index: int = 1) -> Tuple[str, List[Any]]:
    """
    Compile filters into ``WHERE a AND b`` with bound arguments.

    Args:
        builder: QueryBuilder of the active datasource
        filters: RowFilter objects or their mapping form
        columns: Real column names of the table
        start_index: Number of the first placeholder to emit

    Returns:
        (where clause or "", arguments in placeholder order)

    Raises:
        InvalidInputError: A filter names a column the table does not have
        InvalidFilterError: Unknown operator, or a non-string LIKE value
    """
    known = {name.lower(): name for name in columns}
    conditions: List[str] = []
    args: List[Any] = []

    for item in filters or ():
        row_filter = item if isinstance(item, RowFilter) else RowFilter.from_dict(item)
        actual = known.get(str(row_filter.column).lower())
        if actual is None:
            raise InvalidInputError(f"column does not exist: {row_filter.column}")
        column = builder.quote_identifier(actual)
        operator = row_filter.operator

        if operator is FilterOperator.IS_NULL:
            conditions.append(f"{column} IS NULL")
            continue
        if operator is FilterOperator.IS_NOT_NULL:
            conditions.append(f"{column} IS NOT NULL")
            continue

        marker = builder.placeholder(start_index + len(args))
        if operator in _COMPARISONS:
            conditions.append(f"{column} {_COMPARISONS[operator]} {marker}")
            args.append(row_filter.value)
        else:
            if not isinstance(row_filter.value, str):
                raise InvalidFilterError(f"{operator.value} requires a string value")
            conditions.append(f"{column} {builder.like_operator(False)} {marker}")
            args.append(_LIKE_PATTERNS[operator].format(row_filter.value))

    if not conditions:
        return "", []
    where = "WHERE " + " AND ".join(conditions)
    logger.debug(f"Built WHERE clause with {len(conditions)} condition(s)")
    return where, args
