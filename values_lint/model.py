from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Severity(Enum):
    ERROR = "ERROR"
    WARNING = "WARNING"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Finding:
    """A single issue found in a values document."""

    severity: Severity
    line: int
    key_path: str
    message: str
    suggestion: str | None = None

    def __str__(self) -> str:
        text = f"line {self.line}: {self.message}"
        if self.suggestion:
            text += f' (did you mean "{self.suggestion}"?)'
        return text


@dataclass
class ValidationResult:
    """Findings for one values document, in detection order."""

    values_file: str
    chart_name: str = ""
    chart_version: str = ""
    findings: list[Finding] = field(default_factory=list)

    def errors(self) -> list[Finding]:
        return [f for f in self.findings if f.severity is Severity.ERROR]

    def warnings(self) -> list[Finding]:
        return [f for f in self.findings if f.severity is Severity.WARNING]

    def has_errors(self) -> bool:
        return any(f.severity is Severity.ERROR for f in self.findings)

    def has_warnings(self) -> bool:
        return any(f.severity is Severity.WARNING for f in self.findings)
