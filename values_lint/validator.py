"""Runs every check on a values document and collects the findings."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from .errors import ConversionError, DocumentError, SchemaError, ValidationRunError
from .model import ValidationResult
from .paths import collect_all_paths
from .schema import SchemaInfo, check_schema, introspect_schema
from .tree import Mapping, Node, parse_mapping
from .typematch import detect_type_mismatches
from .unknown import detect_unknown_keys

if TYPE_CHECKING:
    from .chart import ResolvedChart

logger = logging.getLogger(__name__)

MAX_VALUES_FILE_SIZE = 10 * 1024 * 1024


def validate_tree(
    user_node: Node,
    defaults: Mapping | None,
    schema_bytes: bytes | str | None = None,
    subchart_defaults: dict[str, Mapping] | None = None,
    ignore_keys: list[str] | None = None,
    source: str = "",
    chart_name: str = "",
    chart_version: str = "",
) -> ValidationResult:
    """Validate an already-parsed values tree.

    Passes run in order: unknown keys, type mismatches, schema constraints.
    A broken schema does not stop the first two passes; it is raised
    afterwards as :class:`ValidationRunError` carrying their findings.
    """
    if not isinstance(user_node, Mapping):
        raise DocumentError(f"{source or 'values'}: expected a YAML mapping at top level")
    defaults = defaults if defaults is not None else Mapping()
    subchart_defaults = subchart_defaults or {}

    result = ValidationResult(values_file=source, chart_name=chart_name, chart_version=chart_version)

    schema_failure: SchemaError | None = None
    try:
        info = introspect_schema(schema_bytes)
    except SchemaError as exc:
        schema_failure = exc
        info = SchemaInfo()

    all_paths = collect_all_paths(defaults)

    result.findings.extend(
        detect_unknown_keys(user_node, defaults, info.keys, subchart_defaults, ignore_keys, "", all_paths)
    )
    result.findings.extend(
        detect_type_mismatches(user_node, defaults, ignore_keys, "", info.types, subchart_defaults)
    )

    if schema_failure is not None:
        raise ValidationRunError(f"schema validation for {source}: {schema_failure}", result) from schema_failure
    try:
        result.findings.extend(check_schema(user_node, schema_bytes, ignore_keys, info.types))
    except (SchemaError, ConversionError) as exc:
        raise ValidationRunError(f"schema validation for {source}: {exc}", result) from exc

    logger.debug(
        "%s: %d error(s), %d warning(s)", source, len(result.errors()), len(result.warnings())
    )
    return result


def load_values_file(values_file: str | Path) -> Mapping:
    path = Path(values_file)
    try:
        size = path.stat().st_size
    except OSError as exc:
        raise DocumentError(f"reading values file {values_file}: {exc}") from exc
    if size > MAX_VALUES_FILE_SIZE:
        raise DocumentError(
            f"values file {values_file} is too large ({size} bytes, max {MAX_VALUES_FILE_SIZE})"
        )

    try:
        data = path.read_bytes()
    except OSError as exc:
        raise DocumentError(f"reading values file {values_file}: {exc}") from exc
    return parse_mapping(data, source=f"values file {values_file}")


def validate(
    values_file: str | Path,
    resolved: ResolvedChart,
    ignore_keys: list[str] | None = None,
) -> ValidationResult:
    """Validate a values file on disk against a resolved chart."""
    user_node = load_values_file(values_file)
    return validate_tree(
        user_node,
        resolved.defaults,
        resolved.schema_bytes,
        resolved.subchart_defaults,
        ignore_keys,
        source=str(values_file),
        chart_name=resolved.name,
        chart_version=resolved.version,
    )
