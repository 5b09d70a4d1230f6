"""
CLI Module - Command line interface for dbmcp

Commands:
    validate SQL            check ad-hoc SQL against the read-only gate
    build OPERATION         print the SQL and arguments of a catalog operation
    operations              list operation names
"""
import argparse
import inspect
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from . import __version__
from .config import load_settings
from .database.dialects import DialectFactory
from .database.query_builder import Operation, QueryBuilder, SelectQueryParams
from .errors import DbMcpError, ExitCode, FeatureNotSupportedError, InvalidInputError
from .logging_setup import configure_logging
from .security.identifiers import resolve_schema
from .security.sql_validator import SQLValidator
from .utils.sql_formatter import STYLES, format_sql

logger = logging.getLogger(__name__)


class CLI:
    """Command line interface handler"""

    def __init__(self):
        self.commands = {
            "validate": self.validate,
            "build": self.build,
            "operations": self.operations,
        }
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="dbmcp",
            description="Engine-agnostic catalog queries and read-only SQL validation",
        )
        parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
        parser.add_argument("--config", help="YAML config file")
        parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
        parser.add_argument("--log-file", help="Also write logs to this file")
        parser.add_argument("--no-color", action="store_true", help="Plain console logs")
        subparsers = parser.add_subparsers(dest="command")

        validate = subparsers.add_parser("validate", help="Check a query against the read-only gate")
        validate.add_argument("sql", help="Query text, or - to read stdin")

        build = subparsers.add_parser("build", help="Print the SQL for a catalog operation")
        build.add_argument("operation", choices=[op.value for op in Operation], metavar="OPERATION")
        drivers = ", ".join(driver.value for driver in DialectFactory.supported_types())
        build.add_argument("--driver", help=f"Driver name or alias: {drivers} (defaults to configuration)")
        build.add_argument("--schema", default="")
        build.add_argument("--name", default="", help="Object name, name filter or search term")
        build.add_argument("--table", default="")
        build.add_argument("--column", action="append", default=[], dest="columns")
        build.add_argument("--order-by", default="")
        build.add_argument("--order-direction", default="ASC")
        build.add_argument("--limit", type=int)
        build.add_argument("--offset", type=int)
        build.add_argument("--function-type", default="all")
        build.add_argument("--object-type", action="append", default=[], dest="object_types")
        build.add_argument("--search-in-code", action="store_true")
        build.add_argument("--exclude-disabled", action="store_true")
        build.add_argument("--arg", action="append", default=[], dest="arguments",
                           help="Procedure argument as name=value")
        build.add_argument("--style", choices=STYLES, default="compact")

        subparsers.add_parser("operations", help="List operation names")
        return parser

    def run(self, args: Optional[List[str]] = None) -> int:
        """Run the CLI; returns the process exit code."""
        options = self.parser.parse_args(args)
        if not options.command:
            self.parser.print_help()
            return ExitCode.INVALID_INPUT

        try:
            self.settings = load_settings(options.config)
            configure_logging(options.log_level or self.settings.log_level,
                              options.log_file or self.settings.log_file,
                              use_color=not options.no_color)
            return self.commands[options.command](options)
        except DbMcpError as e:
            print(f"Error: {e}", file=sys.stderr)
            return e.exit_code

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def validate(self, options: argparse.Namespace) -> int:
        """Print the verdict; exit 0 when allowed, 1 when rejected"""
        sql = sys.stdin.read() if options.sql == "-" else options.sql
        result = SQLValidator(sql).validate()
        if result.allowed:
            print("allowed")
            return ExitCode.OK
        print(f"rejected [{result.rule}]: {result.reason}")
        return ExitCode.REJECTED

    def build(self, options: argparse.Namespace) -> int:
        """Print the formatted SQL and its JSON-encoded arguments"""
        builder = QueryBuilder(options.driver or self.settings.driver)
        operation = Operation(options.operation)
        built = builder.build(operation, **self._operation_params(builder, operation, options))
        if not built.supported:
            raise FeatureNotSupportedError(operation.value)

        print(format_sql(built.sql, options.style))
        print(f"-- args: {json.dumps(built.args, default=str)}")
        return ExitCode.OK

    def operations(self, options: argparse.Namespace) -> int:
        for operation in Operation:
            print(operation.value)
        return ExitCode.OK

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _operation_params(self, builder: QueryBuilder, operation: Operation,
                          options: argparse.Namespace) -> Dict[str, Any]:
        """Map command line options onto the keyword arguments of one operation."""
        accepted = inspect.signature(getattr(builder, operation.value)).parameters
        is_lookup = "name" in accepted or ("table" in accepted and "name_filter" not in accepted)
        # Lookups resolve the driver default schema; listings treat schema as an optional filter
        schema = resolve_schema(options.schema, builder.default_schema) if is_lookup else options.schema

        if operation is Operation.SELECT_ROWS:
            window = {
                key: value for key, value in (("limit", options.limit), ("offset", options.offset))
                if value is not None
            }
            return {"params": SelectQueryParams(
                table=options.table or options.name,
                schema=resolve_schema(options.schema, builder.default_schema),
                columns=options.columns,
                order_by=options.order_by,
                order_direction=options.order_direction,
                **window,
            )}

        candidates = {
            "schema": schema,
            "table": options.table,
            "limit": options.limit,
            "offset": options.offset,
            "function_type": options.function_type,
            "object_types": options.object_types or None,
            "search_in_code": options.search_in_code,
            "include_disabled": not options.exclude_disabled,
            "arguments": self._parse_arguments(options.arguments),
        }
        # --name is the object name, else the name filter, else the search term
        for target in ("name", "name_filter", "search_term"):
            if target in accepted:
                candidates[target] = options.name
                break
        if "table" in accepted and not options.table and "name" not in accepted and "name_filter" not in accepted:
            candidates["table"] = options.name

        return {
            key: value for key, value in candidates.items()
            if key in accepted and value is not None
        }

    @staticmethod
    def _parse_arguments(pairs: List[str]) -> Dict[str, str]:
        arguments = {}
        for pair in pairs:
            name, sep, value = pair.partition("=")
            if not sep or not name:
                raise InvalidInputError(f"procedure argument must be name=value, got {pair!r}")
            arguments[name] = value
        return arguments


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI"""
    return int(CLI().run(argv))


if __name__ == "__main__":
    sys.exit(main())
