"""Utility helpers for dbmcp."""

from .sql_formatter import format_sql, log_built_query

__all__ = ["format_sql", "log_built_query"]
