"""
Error types for dbmcp.

Four families reach callers:
- configuration errors (unknown driver, unreadable config, missing feature)
- input validation errors (bad identifier, missing parameter, bad filter)
- security rejections from the ad-hoc query gate
- execution errors raised by the caller's database driver

None of them is retried.
"""

from enum import Enum
from typing import Optional


class ExitCode(int, Enum):
    """Process exit codes used by the command line entry point."""
    OK = 0
    REJECTED = 1
    INVALID_INPUT = 2
    CONFIG_INVALID = 10
    RUNTIME_ERROR = 30


class DbMcpError(Exception):
    """Base class for every error raised by this package."""
    exit_code = ExitCode.RUNTIME_ERROR


# ==================== Configuration ====================

class ConfigurationError(DbMcpError):
    """Configuration could not be resolved (driver, config file, env)."""
    exit_code = ExitCode.CONFIG_INVALID


class FeatureNotSupportedError(ConfigurationError):
    """The active database has no such capability (e.g. procedures on SQLite)."""

    def __init__(self, feature: str):
        super().__init__(f"{feature} are not supported by this database")
        self.feature = feature


# ==================== Input Validation ====================

class InvalidInputError(DbMcpError):
    """A caller-supplied value is out of range or malformed."""
    exit_code = ExitCode.INVALID_INPUT


class InvalidIdentifierError(InvalidInputError):
    """An identifier fails the grammar check before reaching any SQL text."""

    def __init__(self, name: str, kind: str = "identifier"):
        super().__init__(f"invalid {kind} name: {name!r}")
        self.name = name
        self.kind = kind


class MissingParameterError(InvalidInputError):
    """A required procedure parameter was not supplied."""

    def __init__(self, parameter: str):
        super().__init__(f"missing required parameter: {parameter}")
        self.parameter = parameter


class InvalidFilterError(InvalidInputError):
    """A row filter uses an unknown operator or an unusable value."""


# ==================== Security ====================

class QueryRejectedError(DbMcpError):
    """
    The ad-hoc query gate refused a statement.

    The message is deliberately generic. The specific rule and reason are kept
    on the instance for logs and never echoed to the remote caller.
    """
    exit_code = ExitCode.REJECTED
    PUBLIC_MESSAGE = "query not allowed"

    def __init__(self, rule: str, reason: str):
        super().__init__(self.PUBLIC_MESSAGE)
        self.rule = rule
        self.reason = reason


# ==================== Execution ====================

class NoConnectionError(DbMcpError):
    """No datasource has been configured yet."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "no database connection, configure a datasource first")


class QueryExecutionError(DbMcpError):
    """The database driver failed while running a built or validated query."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"error {operation}{detail}")
        self.operation = operation
