"""
Security - Identifier grammar and the read-only gate for ad-hoc SQL
"""

from .identifiers import is_valid_identifier, require_identifier, resolve_schema
from .sql_validator import SQLValidator, ValidationResult, normalize_sql, strip_literals, validate_query

__all__ = [
    'is_valid_identifier',
    'require_identifier',
    'resolve_schema',
    'SQLValidator',
    'ValidationResult',
    'normalize_sql',
    'strip_literals',
    'validate_query',
]
