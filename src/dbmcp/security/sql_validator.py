"""
SQL Validator - Read-only gate for caller-authored SQL text

A layered heuristic filter, not a parser. The text is normalized once
(comments stripped, whitespace collapsed, punctuation spacing removed,
upper-cased) and a literal-free view is derived from it; each check then
runs against the original text, the normalized text or the literal-free
view. The first violated rule rejects the query.

Only free-form queries go through here. SQL produced by the QueryBuilder
binds every caller value and never needs this gate.

Usage:
    result = validate_query("SELECT * FROM orders")
    if not result.allowed:
        ...

    SQLValidator(text).raise_for_rejection()  # QueryRejectedError
"""

import logging
import re
import unicodedata
from dataclasses import dataclass
from typing import Optional, Tuple

from ..constants import (
    MAX_CHAR_FUNCTIONS, MAX_HEX_LITERALS, MAX_PARENTHESES_DEPTH,
    MAX_QUERY_LENGTH, MAX_SELECT_COUNT, MAX_UNION_SELECTS,
)
from ..errors import QueryRejectedError

logger = logging.getLogger(__name__)


def _words(*words: str) -> "re.Pattern":
    return re.compile(r"\b(?:" + "|".join(words) + r")\b")


# Denylist by risk class, matched as whole words on the literal-free view
FORBIDDEN_COMMANDS: Tuple[Tuple[str, "re.Pattern"], ...] = (
    ("data_mutation", _words("INSERT", "UPDATE", "DELETE", "TRUNCATE", "MERGE")),
    ("schema_mutation", _words("DROP", "CREATE", "ALTER", "RENAME")),
    ("execution", _words("EXEC", "EXECUTE", "SP_EXECUTESQL", "XP_CMDSHELL")),
    ("administrative", _words("SHUTDOWN", "RECONFIGURE", "DBCC", "KILL")),
    ("security", _words("GRANT", "REVOKE", "DENY")),
    ("backup_restore", _words("BACKUP", "RESTORE", "DUMP")),
    ("dangerous_function", re.compile(
        r"\bXP_\w*|\b(?:SP_CONFIGURE|SP_ADDSRVROLEMEMBER|SP_ADDLOGIN|OPENROWSET"
        r"|OPENDATASOURCE|OPENQUERY|BCP)\b|\bBULK INSERT\b"
    )),
)

# Substring match: some spellings run straight into the next token
TRANSACTION_PHRASES = ("BEGIN TRANSACTION", "BEGIN TRAN", "COMMIT", "ROLLBACK", "SAVE TRANSACTION")

TIMING_FUNCTIONS = _words("WAITFOR", "DELAY", "SLEEP", "BENCHMARK")

_START_RE = re.compile(r"^(?:SELECT|WITH)\b")
_WHITESPACE_RE = re.compile(r"\s+")
_PUNCTUATION_SPACING_RE = re.compile(r"\s*([(),;])\s*")
# A comment marker inside a quoted run is not a comment
_COMMENT_OR_QUOTED_RE = re.compile(
    r"'[^']*'|\"[^\"]*\"|\[[^\]]*\]|(--[^\r\n]*|/\*.*?(?:\*/|\Z))", re.DOTALL)
_SINGLE_QUOTED_RE = re.compile(r"'[^']*'")
_DOUBLE_QUOTED_RE = re.compile(r'"[^"]*"')
_BRACKETED_RE = re.compile(r"\[[^\]]*\]")
_SELECT_INTO_RE = re.compile(r"\bSELECT\b.*?\bINTO\b", re.DOTALL)
_UNION_RE = re.compile(r"\bUNION\b")
_SELECT_RE = re.compile(r"\bSELECT\b")
_HEX_LITERAL_RE = re.compile(r"\b0X[0-9A-F]+")
_CHAR_CALL_RE = re.compile(r"\bN?CHAR\(")
_ALLOWED_CONTROL = frozenset("\n\r\t")


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validation. ``rule`` names the check that rejected the query."""
    allowed: bool
    reason: str = ""
    rule: str = ""

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(True)

    @classmethod
    def reject(cls, rule: str, reason: str) -> "ValidationResult":
        return cls(False, reason, rule)


def _strip_comment(match: "re.Match") -> str:
    return " " if match.group(1) else match.group(0)


def normalize_sql(text: str) -> str:
    """
    Strip comments, collapse whitespace, drop spacing around ``( ) , ;``
    and upper-case.

    Quoting follows standard SQL: a backslash does not escape a quote.
    """
    stripped = _COMMENT_OR_QUOTED_RE.sub(_strip_comment, text)
    collapsed = _WHITESPACE_RE.sub(" ", stripped).strip()
    return _PUNCTUATION_SPACING_RE.sub(r"\1", collapsed).upper()


def strip_literals(normalized: str) -> str:
    """Empty the contents of '...', "..." and [...] so keywords inside them are not seen."""
    view = _SINGLE_QUOTED_RE.sub("''", normalized)
    view = _DOUBLE_QUOTED_RE.sub('""', view)
    return _BRACKETED_RE.sub("[]", view)


def find_stacked_semicolon(text: str) -> Optional[int]:
    """
    Position of the first semicolon outside single quotes that is not the
    last non-whitespace character, or None.

    Backslash escapes inside quotes are honored; doubled quotes toggle twice
    and need no special case.
    """
    last = len(text.rstrip()) - 1
    in_quote = False
    escaped = False
    for index, char in enumerate(text):
        if escaped:
            escaped = False
            continue
        if in_quote and char == "\\":
            escaped = True
        elif char == "'":
            in_quote = not in_quote
        elif char == ";" and not in_quote and index != last:
            return index
    return None


def _paren_depth(view: str) -> Tuple[bool, int]:
    """(balanced, maximum depth) of parentheses in the literal-free view."""
    depth = 0
    max_depth = 0
    for char in view:
        if char == "(":
            depth += 1
            max_depth = max(max_depth, depth)
        elif char == ")":
            depth -= 1
            if depth < 0:
                return False, max_depth
    return depth == 0, max_depth


class SQLValidator:
    """
    Single-use validator for one query text.

    The normalized form and literal-free view are computed at construction
    and never change afterwards.
    """

    def __init__(self, text: Optional[str]):
        self.text = text or ""
        if self.text.strip() and len(self.text) <= MAX_QUERY_LENGTH:
            self.normalized = normalize_sql(self.text)
        else:
            self.normalized = ""
        self.literal_free = strip_literals(self.normalized)

    def validate(self) -> ValidationResult:
        """Run every check in order; the first failure wins."""
        result = self._check()
        if not result.allowed:
            logger.warning(f"Query rejected [{result.rule}]: {result.reason}")
        return result

    def raise_for_rejection(self) -> None:
        """
        Raises:
            QueryRejectedError: With the generic public message when a check fails
        """
        result = self.validate()
        if not result.allowed:
            raise QueryRejectedError(result.rule, result.reason)

    def _check(self) -> ValidationResult:
        text = self.text
        if not text.strip():
            return ValidationResult.reject("empty", "query is empty")
        if len(text) > MAX_QUERY_LENGTH:
            return ValidationResult.reject(
                "too_long", f"query exceeds {MAX_QUERY_LENGTH} characters ({len(text)})")
        normalized = self.normalized
        view = self.literal_free

        if not _START_RE.match(normalized):
            return ValidationResult.reject("not_select", "only SELECT or WITH queries are allowed")

        for rule, pattern in FORBIDDEN_COMMANDS:
            match = pattern.search(view)
            if match:
                return ValidationResult.reject(rule, f"forbidden keyword: {match.group(0)}")

        for phrase in TRANSACTION_PHRASES:
            if phrase in view:
                return ValidationResult.reject("transaction_control", f"transaction control: {phrase}")

        if find_stacked_semicolon(text) is not None or ";" in view.rstrip(";"):
            return ValidationResult.reject("statement_stacking", "multiple statements are not allowed")

        if _SELECT_INTO_RE.search(view):
            return ValidationResult.reject("select_into", "SELECT ... INTO is not allowed")

        unions = len(_UNION_RE.findall(view))
        if unions + 1 > MAX_UNION_SELECTS:
            return ValidationResult.reject(
                "too_many_unions", f"{unions + 1} UNION branches (max {MAX_UNION_SELECTS})")

        for char in text:
            if char not in _ALLOWED_CONTROL and unicodedata.category(char) == "Cc":
                return ValidationResult.reject("control_character", f"control character U+{ord(char):04X}")

        hex_literals = len(_HEX_LITERAL_RE.findall(view))
        if hex_literals > MAX_HEX_LITERALS:
            return ValidationResult.reject(
                "hex_obfuscation", f"{hex_literals} hex literals (max {MAX_HEX_LITERALS})")
        char_calls = len(_CHAR_CALL_RE.findall(view))
        if char_calls > MAX_CHAR_FUNCTIONS:
            return ValidationResult.reject(
                "char_obfuscation", f"{char_calls} CHAR/NCHAR calls (max {MAX_CHAR_FUNCTIONS})")

        match = TIMING_FUNCTIONS.search(view)
        if match:
            return ValidationResult.reject("timing_attack", f"timing function: {match.group(0)}")

        selects = len(_SELECT_RE.findall(view))
        if selects > MAX_SELECT_COUNT:
            return ValidationResult.reject(
                "too_many_selects", f"{selects} SELECT keywords (max {MAX_SELECT_COUNT})")

        balanced, depth = _paren_depth(view)
        if not balanced:
            return ValidationResult.reject("unbalanced_parentheses", "unbalanced parentheses")
        if depth > MAX_PARENTHESES_DEPTH:
            return ValidationResult.reject(
                "nesting_too_deep", f"parentheses nested {depth} deep (max {MAX_PARENTHESES_DEPTH})")

        return ValidationResult.ok()


def validate_query(text: Optional[str]) -> ValidationResult:
    """Validate one query text with a fresh validator."""
    return SQLValidator(text).validate()
