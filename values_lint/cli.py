"""Validate values files against a chart's defaults and values schema."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from . import chart
from .errors import ValidationRunError, ValuesLintError
from .model import ValidationResult
from .output import print_text, to_json
from .validator import validate

EXIT_OK = 0
EXIT_ERRORS = 1
EXIT_WARNINGS = 2
EXIT_TOOL_ERROR = 3

DESCRIPTION = """\
Validate one or more values files against a chart's defaults and optional
values.schema.json.

Checks performed:
  - unknown keys (not in the chart defaults or schema)
  - type mismatches (string where int expected, etc.)
  - required fields and other schema constraints
  - deprecated keys (from the schema)
"""

EPILOG = """\
examples:
  values-lint -f my-values.yaml --chart bitnami/postgresql
  values-lint -f my-values.yaml --chart ./local-chart/ --strict
  values-lint -f a.yaml -f b.yaml --chart ./chart.tgz --ignore-keys 'global.**' -o json
"""


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="values-lint",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-f", "--file", dest="files", action="append", required=True,
        help="Values file to validate (repeatable).",
    )
    parser.add_argument("--chart", required=True, help="Chart reference: repo/name, OCI URL, archive or local path.")
    parser.add_argument("--version", help="Chart version for remote charts (latest if omitted).")
    parser.add_argument("-o", "--output", choices=["text", "json"], default="text", help="Output format.")
    parser.add_argument("--strict", action="store_true", help="Treat warnings as failures (exit code 2).")
    parser.add_argument(
        "--ignore-keys", action="append", default=[],
        help="Key path globs to ignore, comma-separated or repeated (e.g. 'global.*', 'extra.**').",
    )
    parser.add_argument("--no-color", action="store_true", help="Disable coloured text output.")
    parser.add_argument("--debug", action="store_true", help=f"Verbose logging (also enabled by {chart.DEBUG_ENV}).")
    return parser.parse_args(argv)


def split_patterns(raw: list[str]) -> list[str]:
    patterns: list[str] = []
    for item in raw:
        patterns.extend(part.strip() for part in item.split(",") if part.strip())
    return patterns


def render(result: ValidationResult, args: argparse.Namespace) -> None:
    if args.output == "json":
        print(json.dumps(to_json(result), indent=2))
    else:
        print_text(result, sys.stdout, color=not args.no_color)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    debug = args.debug or chart.debug_enabled()
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ignore_keys = split_patterns(args.ignore_keys)

    try:
        resolved = chart.resolve(args.chart, args.version, debug=debug)
    except ValuesLintError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_TOOL_ERROR

    exit_code = EXIT_OK
    for values_file in args.files:
        try:
            result = validate(values_file, resolved, ignore_keys)
        except ValidationRunError as exc:
            # Unknown-key and type findings were gathered before the schema failed.
            if exc.result is not None:
                render(exc.result, args)
            print(f"ERROR: validating {values_file}: {exc}", file=sys.stderr)
            return EXIT_TOOL_ERROR
        except ValuesLintError as exc:
            print(f"ERROR: validating {values_file}: {exc}", file=sys.stderr)
            return EXIT_TOOL_ERROR

        render(result, args)

        if result.has_errors():
            exit_code = EXIT_ERRORS
        elif args.strict and result.has_warnings() and exit_code == EXIT_OK:
            exit_code = EXIT_WARNINGS

    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
