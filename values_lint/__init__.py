"""Check chart values files against the chart's defaults and values schema."""

from .errors import (
    ChartError,
    ConversionError,
    DocumentError,
    SchemaError,
    ValidationRunError,
    ValuesLintError,
)
from .model import Finding, Severity, ValidationResult
from .tree import Mapping, Scalar, Sequence, parse_document, parse_mapping
from .validator import validate, validate_tree

__version__ = "0.1.0"

__all__ = [
    "ChartError",
    "ConversionError",
    "DocumentError",
    "Finding",
    "Mapping",
    "Scalar",
    "SchemaError",
    "Sequence",
    "Severity",
    "ValidationResult",
    "ValidationRunError",
    "ValuesLintError",
    "parse_document",
    "parse_mapping",
    "validate",
    "validate_tree",
]
