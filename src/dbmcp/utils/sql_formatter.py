"""
SQL Formatter - sqlparse-based formatting for built queries and object definitions

Styles:
- compact: reindented, multiple columns on the same line
- expanded: reindented, wider indentation
- single_line: whitespace collapsed, handy for log lines
"""

import logging
from typing import Sequence

import sqlparse

logger = logging.getLogger(__name__)

STYLES = ("compact", "expanded", "single_line")


def format_sql(sql_text: str, style: str = "compact") -> str:
    """
    Format SQL text with the specified style.

    Args:
        sql_text: SQL to format
        style: One of STYLES

    Returns:
        Formatted SQL string (input returned unchanged when blank)
    """
    if not sql_text or not sql_text.strip():
        return sql_text

    if style == "compact":
        return sqlparse.format(
            sql_text,
            reindent=True,
            keyword_case='upper',
            indent_width=2,
            use_space_around_operators=True,
            wrap_after=120
        )
    if style == "expanded":
        return sqlparse.format(
            sql_text,
            reindent=True,
            keyword_case='upper',
            indent_width=4,
            use_space_around_operators=True
        )
    if style == "single_line":
        return " ".join(sqlparse.format(sql_text, strip_whitespace=True).split())

    raise ValueError(f"Unknown SQL format style: {style}")


def log_built_query(log: logging.Logger, operation: str, sql: str, args: Sequence) -> None:
    """Emit a built query at DEBUG level; formatting only happens when DEBUG is enabled."""
    if not log.isEnabledFor(logging.DEBUG):
        return
    log.debug(f"{operation}: {format_sql(sql, 'single_line')} | args={list(args)!r}")
