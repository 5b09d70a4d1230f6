"""
Configuration - Settings from an optional YAML file and the environment

Environment variables override the file:
    DB_DRIVER             driver name or alias (default: sqlserver)
    DB_CONNECTION_STRING  passed to the caller's driver, never logged
    DB_DEFAULT_SCHEMA     schema used when a call names none
    DBMCP_LOG_LEVEL       DEBUG, INFO, WARNING, ERROR
    DBMCP_LOG_FILE        optional log file path

Example config.yaml:
    driver: postgres
    connection_string: postgres://reader@db/app
    default_schema: reporting
    log_level: INFO
    max_page_size: 500
"""

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from .constants import MAX_PAGE_SIZE, MAX_ROWS_LIMIT, MAX_ROWS_PAGE_SIZE
from .database.dialects import DriverType
from .errors import ConfigurationError
from .security.identifiers import is_valid_identifier

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

ENV_VARIABLES = {
    "DB_DRIVER": "driver",
    "DB_CONNECTION_STRING": "connection_string",
    "DB_DEFAULT_SCHEMA": "default_schema",
    "DBMCP_LOG_LEVEL": "log_level",
    "DBMCP_LOG_FILE": "log_file",
}

_INT_SETTINGS = ("max_page_size", "max_rows_page_size", "max_query_rows")


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings."""
    driver: DriverType = DriverType.SQLSERVER
    connection_string: str = field(default="", repr=False)
    default_schema: str = ""
    log_level: str = "INFO"
    log_file: Optional[str] = None
    max_page_size: int = MAX_PAGE_SIZE
    max_rows_page_size: int = MAX_ROWS_PAGE_SIZE
    max_query_rows: int = MAX_ROWS_LIMIT

    def describe(self) -> Dict[str, Any]:
        """Settings safe to print or log (connection string masked)."""
        return {
            "driver": self.driver.value,
            "connection_string": "***" if self.connection_string else "",
            "default_schema": self.default_schema,
            "log_level": self.log_level,
            "log_file": self.log_file,
            "max_page_size": self.max_page_size,
            "max_rows_page_size": self.max_rows_page_size,
            "max_query_rows": self.max_query_rows,
        }


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"config file not found: {path}") from None
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"config file must contain a mapping: {path}")
    return data


def _coerce(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate raw values and convert them to Settings field types."""
    known = {f.name for f in fields(Settings)}
    result: Dict[str, Any] = {}

    for key, value in values.items():
        if key not in known:
            logger.warning(f"Ignoring unknown setting: {key}")
            continue
        if value is None:
            continue

        if key == "driver":
            result[key] = DriverType.parse(value)
        elif key == "log_level":
            level = str(value).strip().upper()
            if level not in LOG_LEVELS:
                raise ConfigurationError(f"invalid log level: {value!r}")
            result[key] = level
        elif key == "default_schema":
            if value and not is_valid_identifier(str(value)):
                raise ConfigurationError(f"invalid default schema: {value!r}")
            result[key] = str(value) if value else ""
        elif key in _INT_SETTINGS:
            try:
                number = int(value)
            except (TypeError, ValueError):
                raise ConfigurationError(f"{key} must be an integer, got {value!r}") from None
            if number < 1:
                raise ConfigurationError(f"{key} must be positive, got {number}")
            result[key] = number
        else:
            result[key] = str(value)

    return result


def load_settings(path: Union[str, Path, None] = None,
                  env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Load settings from a YAML file (optional) then apply environment overrides.

    Args:
        path: YAML config file
        env: Environment mapping (defaults to os.environ)

    Returns:
        Settings

    Raises:
        ConfigurationError: Unreadable file, non-mapping YAML, unknown driver
            or invalid value
    """
    env = os.environ if env is None else env
    settings = Settings()

    if path:
        file_values = _coerce(_read_yaml(Path(path)))
        settings = replace(settings, **file_values)
        logger.debug(f"Loaded settings from {path}")

    env_values = {
        name: env[variable]
        for variable, name in ENV_VARIABLES.items()
        if env.get(variable)
    }
    if env_values:
        settings = replace(settings, **_coerce(env_values))

    logger.debug(f"Settings: {settings.describe()}")
    return settings
