"""
Identifier grammar shared by every entry point that embeds a name in SQL.

Only ASCII letters, digits and the characters ``_ # @ $`` are accepted, with a
length between 1 and 127. Anything else never reaches a quoting routine.
"""

import re
from typing import Optional

from ..constants import IDENTIFIER_PATTERN, MAX_IDENTIFIER_LENGTH
from ..errors import InvalidIdentifierError

_IDENTIFIER_RE = re.compile(IDENTIFIER_PATTERN)


def is_valid_identifier(name) -> bool:
    """Return True when ``name`` satisfies the identifier grammar."""
    if not isinstance(name, str) or not name:
        return False
    if len(name) > MAX_IDENTIFIER_LENGTH:
        return False
    return _IDENTIFIER_RE.fullmatch(name) is not None


def require_identifier(name, kind: str = "identifier") -> str:
    """
    Validate an identifier and return it unchanged.

    Args:
        name: Candidate identifier
        kind: What the name designates (table, schema, column...), used in the error

    Raises:
        InvalidIdentifierError: If the grammar check fails
    """
    if not is_valid_identifier(name):
        raise InvalidIdentifierError(name, kind)
    return name


def resolve_schema(schema: Optional[str], default_schema: str) -> str:
    """
    Pick the caller's schema or fall back to the driver default.

    An empty default (MySQL, Oracle) is allowed and returned as-is.
    """
    resolved = schema or default_schema
    if resolved:
        require_identifier(resolved, "schema")
    return resolved
