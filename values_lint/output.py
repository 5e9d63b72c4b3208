"""Text and JSON rendering of validation results.

Messages and paths come from user files and chart authors, so everything
printed is stripped of terminal escape sequences and control characters.
"""

from __future__ import annotations

import re
from typing import Any, TextIO

from rich.console import Console
from rich.text import Text

from .model import Finding, ValidationResult

# CSI and OSC sequences.
_ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;]*[a-zA-Z]|\x1b\][^\x1b\x07]*\x07")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b-\x1f]")


def sanitize(text: str) -> str:
    """Remove escape sequences and control characters except newline and tab."""
    return _CONTROL_RE.sub("", _ANSI_ESCAPE_RE.sub("", text))


def _finding_line(finding: Finding, colour: str, with_suggestion: bool) -> Text:
    line = Text("  ")
    line.append(f"line {finding.line}", style=colour)
    line.append(f": {sanitize(finding.message)}")
    if with_suggestion and finding.suggestion:
        line.append(f' (did you mean "{sanitize(finding.suggestion)}"?)', style="yellow")
    return line


def print_text(result: ValidationResult, stream: TextIO | None = None, color: bool = True) -> None:
    """Write a human-readable report for one values file."""
    console = Console(file=stream, highlight=False, no_color=not color, soft_wrap=True)

    header = Text(f"Validating {sanitize(result.values_file)} against {sanitize(result.chart_name)}", style="bold")
    if result.chart_version:
        header.append(f" ({sanitize(result.chart_version)})")
    console.print(header)
    console.print()

    errors = result.errors()
    warnings = result.warnings()

    if errors:
        console.print(Text(f"ERRORS ({len(errors)})", style="bold red"))
        for finding in errors:
            console.print(_finding_line(finding, "red", with_suggestion=True))
        console.print()

    if warnings:
        console.print(Text(f"WARNINGS ({len(warnings)})", style="bold yellow"))
        for finding in warnings:
            console.print(_finding_line(finding, "yellow", with_suggestion=False))
        console.print()

    if not errors and not warnings:
        console.print(Text("No issues found.", style="bold green"))
    else:
        console.print(Text(f"Summary: {len(errors)} error(s), {len(warnings)} warning(s)", style="bold"))


def _json_finding(finding: Finding) -> dict[str, Any]:
    item: dict[str, Any] = {
        "line": finding.line,
        "keyPath": finding.key_path,
        "message": finding.message,
    }
    if finding.suggestion:
        item["suggestion"] = finding.suggestion
    return item


def to_json(result: ValidationResult) -> dict[str, Any]:
    errors = [_json_finding(f) for f in result.errors()]
    warnings = [_json_finding(f) for f in result.warnings()]
    return {
        "valuesFile": result.values_file,
        "chartName": result.chart_name,
        "chartVersion": result.chart_version,
        "errors": errors,
        "warnings": warnings,
        "errorCount": len(errors),
        "warningCount": len(warnings),
    }
