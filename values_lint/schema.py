"""values.schema.json support.

Only ``type``, ``required`` and ``deprecated`` are interpreted here; every
other keyword is left to jsonschema. Before anything is evaluated the
schema is scanned for references that leave the document: a schema is
untrusted input and must not make validation fetch URLs or read local
files.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

import jsonschema
from jsonschema.exceptions import SchemaError as JSONSchemaError
from referencing.exceptions import Unresolvable

from .errors import SchemaError
from .model import Finding, Severity
from .paths import find_line_for_path, format_path, join_path, matches_ignore, resolve_path
from .tree import Node
from .typematch import SchemaTypeMap

logger = logging.getLogger(__name__)

REFERENCE_KEYS = ("$ref", "$dynamicRef")


@dataclass(frozen=True)
class SchemaInfo:
    """What the comparison passes need to know about a schema."""

    document: dict[str, Any] | None = None
    types: SchemaTypeMap = field(default_factory=dict)
    keys: frozenset[str] = frozenset()
    deprecated: dict[str, str] = field(default_factory=dict)
    blocked_ref: str | None = None


def load_schema(schema_bytes: bytes | str | None) -> dict[str, Any] | None:
    """Parse schema bytes. Malformed input raises :class:`SchemaError`."""
    if not schema_bytes:
        return None
    try:
        document = json.loads(schema_bytes)
    except ValueError as exc:
        raise SchemaError(f"parsing values schema: {exc}") from exc
    if not isinstance(document, dict):
        raise SchemaError("values schema must be a JSON object")
    return document


def find_external_ref(value: Any) -> str | None:
    """Return the first reference that does not point inside the document."""
    if isinstance(value, dict):
        for key, item in value.items():
            if key in REFERENCE_KEYS and isinstance(item, str) and not item.startswith("#"):
                return item
            found = find_external_ref(item)
            if found is not None:
                return found
    elif isinstance(value, list):
        for item in value:
            found = find_external_ref(item)
            if found is not None:
                return found
    return None


def _properties(schema: dict[str, Any]) -> dict[str, Any]:
    props = schema.get("properties")
    return props if isinstance(props, dict) else {}


def extract_schema_types(schema: dict[str, Any], path: str = "", types: SchemaTypeMap | None = None) -> SchemaTypeMap:
    """Map every declared property path to its allowed type names."""
    types = {} if types is None else types
    for name, prop in _properties(schema).items():
        if not isinstance(prop, dict):
            continue
        full_path = join_path(path, name)

        declared = prop.get("type")
        if isinstance(declared, str):
            types[full_path] = [declared]
        elif isinstance(declared, list):
            names = [item for item in declared if isinstance(item, str)]
            if names:
                types[full_path] = names

        extract_schema_types(prop, full_path, types)
    return types


def extract_schema_keys(schema: dict[str, Any], path: str = "") -> set[str]:
    keys: set[str] = set()
    for name, prop in _properties(schema).items():
        full_path = join_path(path, name)
        keys.add(full_path)
        if isinstance(prop, dict):
            keys |= extract_schema_keys(prop, full_path)
    return keys


def find_deprecated_paths(schema: dict[str, Any], path: str = "") -> dict[str, str]:
    """Deprecated property paths mapped to their description (may be empty)."""
    result: dict[str, str] = {}
    for name, prop in _properties(schema).items():
        if not isinstance(prop, dict):
            continue
        full_path = join_path(path, name)
        if prop.get("deprecated"):
            description = prop.get("description")
            result[full_path] = description if isinstance(description, str) else ""
        result.update(find_deprecated_paths(prop, full_path))
    return result


def introspect_schema(schema_bytes: bytes | str | None) -> SchemaInfo:
    document = load_schema(schema_bytes)
    if document is None:
        return SchemaInfo()

    keys = frozenset(extract_schema_keys(document))
    blocked_ref = find_external_ref(document)
    if blocked_ref is not None:
        logger.warning("values schema references %s; schema checks disabled", blocked_ref)
        return SchemaInfo(document=document, keys=keys, blocked_ref=blocked_ref)

    return SchemaInfo(
        document=document,
        types=extract_schema_types(document),
        keys=keys,
        deprecated=find_deprecated_paths(document),
    )


def blocked_ref_finding(ref: str) -> Finding:
    return Finding(
        severity=Severity.ERROR,
        line=0,
        key_path="",
        message=f'Schema contains external $ref "{ref}"; refusing to resolve references outside the schema',
    )


def _evaluate(document: dict[str, Any], instance: Any) -> list[jsonschema.ValidationError]:
    validator_cls = jsonschema.validators.validator_for(document, default=jsonschema.Draft202012Validator)
    try:
        validator_cls.check_schema(document)
        validator = validator_cls(document)
        return sorted(validator.iter_errors(instance), key=lambda e: [str(p) for p in e.absolute_path])
    except JSONSchemaError as exc:
        raise SchemaError(f"invalid values schema: {exc.message}") from exc
    except Unresolvable as exc:
        raise SchemaError(f"unresolvable reference in values schema: {exc}") from exc


def check_deprecated(user_node: Node, deprecated: dict[str, str], ignore_keys: list[str] | None = None) -> list[Finding]:
    """Warn about deprecated keys the user actually sets."""
    findings: list[Finding] = []
    for path, guidance in deprecated.items():
        if matches_ignore(path, ignore_keys):
            continue
        resolved = resolve_path(user_node, path)
        if resolved is None or resolved[1].tag == "null":
            continue

        message = f'Deprecated key "{path}"'
        if guidance:
            message += f" - {guidance}"
        findings.append(Finding(severity=Severity.WARNING, line=resolved[0], key_path=path, message=message))
    # Document order, not schema order.
    findings.sort(key=lambda f: (f.line, f.key_path))
    return findings


def check_schema(
    user_node: Node,
    schema_bytes: bytes | str | None,
    ignore_keys: list[str] | None = None,
    schema_types: SchemaTypeMap | None = None,
) -> list[Finding]:
    """Run required/deprecated and other schema constraints on the user tree.

    "type" violations are dropped when ``schema_types`` is non-empty: the
    type-mismatch pass already reports them with better messages.
    Raises :class:`SchemaError` for malformed schemas and
    :class:`~values_lint.errors.ConversionError` if the tree cannot be
    turned into plain data.
    """
    findings: list[Finding] = []
    info = introspect_schema(schema_bytes)
    if info.document is None:
        return findings
    if info.blocked_ref is not None:
        return [blocked_ref_finding(info.blocked_ref)]

    instance = user_node.to_python()
    for error in _evaluate(info.document, instance):
        if schema_types and error.validator == "type":
            continue
        path = format_path(error.absolute_path)
        if matches_ignore(path, ignore_keys):
            continue
        findings.append(
            Finding(
                severity=Severity.ERROR,
                line=find_line_for_path(user_node, path),
                key_path=path,
                message=f"Schema validation: {error.message}",
            )
        )

    findings.extend(check_deprecated(user_node, info.deprecated, ignore_keys))
    return findings
