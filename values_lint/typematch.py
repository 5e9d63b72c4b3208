"""Type compatibility rules and the type-mismatch pass."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .model import Finding, Severity
from .paths import join_path, matches_ignore
from .tree import SCALAR, Mapping, Node, Scalar, Sequence
from .unknown import detect_unknown_keys

logger = logging.getLogger(__name__)

SchemaTypeMap = dict[str, list[str]]

NUMERIC_TAGS = frozenset({"int", "float"})

_SCHEMA_TYPE_TAGS = {
    "string": ["str"],
    "integer": ["int"],
    "number": ["int", "float"],
    "boolean": ["bool"],
    "null": ["null"],
    "array": ["list"],
    "object": ["map"],
}

_FRIENDLY_TYPES = {
    "str": "string",
    "int": "int",
    "float": "float",
    "bool": "bool",
    "null": "null",
    "list": "list",
    "map": "map",
}


def types_compatible(user_tag: str, expected_tag: str) -> bool:
    if user_tag == expected_tag:
        return True
    return user_tag in NUMERIC_TAGS and expected_tag in NUMERIC_TAGS


def schema_type_tags(schema_type: str) -> list[str]:
    return list(_SCHEMA_TYPE_TAGS.get(schema_type, ()))


def schema_types_compatible(user_tag: str, schema_types: Iterable[str]) -> tuple[bool, list[str]]:
    """Check a tag against JSON Schema type names.

    Returns whether it matched and every tag the schema types allow.
    """
    allowed_tags: list[str] = []
    for schema_type in schema_types:
        allowed_tags.extend(schema_type_tags(schema_type))
    compatible = any(types_compatible(user_tag, tag) for tag in allowed_tags)
    return compatible, allowed_tags


def is_resource_quantity_path(path: str) -> bool:
    """True for leaves directly under ``resources.limits`` or ``resources.requests``."""
    parts = path.split(".")
    if len(parts) < 3:
        return False
    return parts[-3] == "resources" and parts[-2] in ("limits", "requests")


def is_string_numeric_mismatch(tag_a: str, tag_b: str) -> bool:
    return (tag_a == "str" and tag_b in NUMERIC_TAGS) or (tag_b == "str" and tag_a in NUMERIC_TAGS)


def quantity_exempt(path: str, user_tag: str, expected_tags: Iterable[str]) -> bool:
    """Resource quantities may be written as strings ("500m") or bare numbers."""
    if not is_resource_quantity_path(path):
        return False
    return any(is_string_numeric_mismatch(user_tag, tag) for tag in expected_tags)


def friendly_type(tag: str) -> str:
    return _FRIENDLY_TYPES.get(tag, tag)


def friendly_types(tags: Iterable[str]) -> str:
    """Join tags for messages, e.g. ``int, float, or null``."""
    unique: list[str] = []
    for tag in tags:
        name = friendly_type(tag)
        if name not in unique:
            unique.append(name)

    if not unique:
        return "unknown"
    if len(unique) == 1:
        return unique[0]
    if len(unique) == 2:
        return f"{unique[0]} or {unique[1]}"
    return ", ".join(unique[:-1]) + f", or {unique[-1]}"


def _got(node: Node) -> str:
    if isinstance(node, Scalar):
        return f'{friendly_type(node.tag)} ("{node.value}")'
    return friendly_type(node.tag)


def _mismatch(path: str, node: Node, expected: str) -> Finding:
    return Finding(
        severity=Severity.ERROR,
        line=node.line,
        key_path=path,
        message=f'Type mismatch at "{path}": expected {expected}, got {_got(node)}',
    )


def _check_schema_only(
    user_val: Node,
    path: str,
    ignore_keys: list[str] | None,
    schema_types: SchemaTypeMap | None,
) -> list[Finding]:
    """Check a value whose default is null or absent against the schema alone."""
    findings: list[Finding] = []
    if not schema_types or user_val.tag == "null":
        return findings

    allowed_types = schema_types.get(path)
    if allowed_types:
        compatible, allowed_tags = schema_types_compatible(user_val.tag, allowed_types)
        if allowed_tags and not compatible and not quantity_exempt(path, user_val.tag, allowed_tags):
            findings.append(_mismatch(path, user_val, friendly_types(allowed_tags)))
            return findings

    # Nothing to compare against below here except the schema itself.
    if isinstance(user_val, Mapping):
        findings.extend(detect_type_mismatches(user_val, Mapping(), ignore_keys, path, schema_types))
    return findings


def check_sequence(
    user_seq: Sequence,
    default_seq: Sequence,
    ignore_keys: list[str] | None,
    path: str,
    schema_types: SchemaTypeMap | None,
) -> list[Finding]:
    """Check mapping elements of a user list against the first default element."""
    findings: list[Finding] = []
    if not default_seq.items or not user_seq.items:
        return findings

    template = default_seq.items[0]
    if not isinstance(template, Mapping):
        return findings

    for index, element in enumerate(user_seq.items):
        if isinstance(element, Mapping):
            element_path = f"{path}[{index}]"
            findings.extend(detect_unknown_keys(element, template, None, None, ignore_keys, element_path, None))
            findings.extend(detect_type_mismatches(element, template, ignore_keys, element_path, schema_types))
    return findings


def detect_type_mismatches(
    user_node: Node | None,
    defaults_node: Node | None,
    ignore_keys: list[str] | None = None,
    path: str = "",
    schema_types: SchemaTypeMap | None = None,
    subchart_defaults: dict[str, Mapping] | None = None,
) -> list[Finding]:
    """Report values whose type disagrees with the chart defaults.

    Keys missing from the defaults are left to the unknown-key pass, except
    that the schema (when given) still types them. A null default or an
    absent one defers to the schema; an explicit user null is always fine.
    """
    findings: list[Finding] = []
    if not isinstance(user_node, Mapping) or not isinstance(defaults_node, Mapping):
        return findings

    for entry in user_node:
        full_path = join_path(path, entry.key)
        if matches_ignore(full_path, ignore_keys):
            continue
        user_val = entry.value

        if not path and subchart_defaults and entry.key in subchart_defaults:
            if isinstance(user_val, Mapping):
                findings.extend(
                    detect_type_mismatches(user_val, subchart_defaults[entry.key], ignore_keys, full_path, schema_types)
                )
                continue
            # A subchart's values are always a map.
            if entry.key not in defaults_node:
                if user_val.tag != "null":
                    findings.append(_mismatch(full_path, user_val, friendly_type(Mapping.tag)))
                continue

        default_val = defaults_node.get(entry.key)
        if default_val is None or default_val.tag == "null":
            findings.extend(_check_schema_only(user_val, full_path, ignore_keys, schema_types))
            continue

        if user_val.tag == "null":
            continue

        if isinstance(default_val, Mapping) and isinstance(user_val, Mapping):
            # An empty default map accepts any structure (e.g. podSecurityContext: {}).
            if len(default_val) == 0:
                continue
            findings.extend(detect_type_mismatches(user_val, default_val, ignore_keys, full_path, schema_types))
            continue

        if isinstance(default_val, Sequence) and isinstance(user_val, Sequence):
            findings.extend(check_sequence(user_val, default_val, ignore_keys, full_path, schema_types))
            continue

        # Map where a list is expected, or the reverse.
        if default_val.kind != user_val.kind and SCALAR not in (default_val.kind, user_val.kind):
            findings.append(
                Finding(
                    severity=Severity.ERROR,
                    line=user_val.line,
                    key_path=full_path,
                    message=f'Type mismatch at "{full_path}": expected {default_val.kind}, got {user_val.kind}',
                )
            )
            continue

        if quantity_exempt(full_path, user_val.tag, [default_val.tag]):
            continue

        if not types_compatible(user_val.tag, default_val.tag):
            findings.append(_mismatch(full_path, user_val, friendly_type(default_val.tag)))

    if not path:
        logger.debug("type pass: %d finding(s)", len(findings))
    return findings
