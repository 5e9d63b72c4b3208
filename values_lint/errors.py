"""Run-level failures. Findings are reported, these are raised."""

from __future__ import annotations

from typing import Any


class ValuesLintError(Exception):
    """Base class for errors that abort a validation run."""


class DocumentError(ValuesLintError):
    """A values or defaults document could not be read or parsed."""


class SchemaError(ValuesLintError):
    """The values schema is malformed or cannot be evaluated."""


class ConversionError(ValuesLintError):
    """A document tree could not be converted to plain data."""


class ChartError(ValuesLintError):
    """A chart could not be located, pulled or read."""


class ValidationRunError(ValuesLintError):
    """The schema stage failed after the structural passes completed.

    ``result`` holds the findings gathered before the failure.
    """

    def __init__(self, message: str, result: Any = None):
        super().__init__(message)
        self.result = result
