"""Unknown-key pass: user keys that neither the defaults nor the schema know."""

from __future__ import annotations

import logging
from collections.abc import Set

from .model import Finding, Severity
from .paths import collect_all_paths, join_path, matches_ignore
from .suggest import suggest
from .tree import Mapping, Node

logger = logging.getLogger(__name__)


def detect_unknown_keys(
    user_node: Node | None,
    defaults_node: Node | None,
    schema_keys: Set[str] | None = None,
    subchart_defaults: dict[str, Mapping] | None = None,
    ignore_keys: list[str] | None = None,
    path: str = "",
    all_paths: dict[str, str] | None = None,
) -> list[Finding]:
    """Walk the user tree and report keys absent from the defaults.

    ``all_paths`` is the index of the root defaults tree
    (:func:`values_lint.paths.collect_all_paths`) and enables suggestions for
    keys that exist elsewhere in the chart.
    """
    findings: list[Finding] = []
    if not isinstance(user_node, Mapping) or defaults_node is None:
        return findings

    if not isinstance(defaults_node, Mapping):
        defaults_node = Mapping()
    default_keys = defaults_node.keys()

    for entry in user_node:
        key = entry.key
        full_path = join_path(path, key)
        if matches_ignore(full_path, ignore_keys):
            continue
        user_val = entry.value

        # Top-level keys named after a subchart are checked against its own defaults.
        if not path and subchart_defaults and key in subchart_defaults:
            if isinstance(user_val, Mapping):
                sub_defaults = subchart_defaults[key]
                sub_paths = collect_all_paths(sub_defaults, full_path)
                findings.extend(
                    detect_unknown_keys(user_val, sub_defaults, None, None, ignore_keys, full_path, sub_paths)
                )
            continue

        if key not in defaults_node:
            if schema_keys and full_path in schema_keys:
                if isinstance(user_val, Mapping):
                    findings.extend(
                        detect_unknown_keys(
                            user_val, Mapping(), schema_keys, subchart_defaults, ignore_keys, full_path, all_paths
                        )
                    )
                continue

            findings.append(
                Finding(
                    severity=Severity.ERROR,
                    line=entry.line,
                    key_path=full_path,
                    message=f'Unknown key "{full_path}"',
                    suggestion=suggest(full_path, default_keys, all_paths),
                )
            )
            continue

        default_val = defaults_node.get(key)
        if isinstance(user_val, Mapping) and isinstance(default_val, Mapping):
            # An empty default map accepts any structure (e.g. podSecurityContext: {}).
            if len(default_val) == 0:
                continue
            findings.extend(
                detect_unknown_keys(user_val, default_val, schema_keys, subchart_defaults, ignore_keys, full_path, all_paths)
            )

    if not path:
        logger.debug("unknown-key pass: %d finding(s)", len(findings))
    return findings
