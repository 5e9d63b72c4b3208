"""Dot-path helpers: joining, ignore globs, path index and line lookup.

A dot-path joins mapping keys with ``.`` and appends sequence positions as
``[index]``, e.g. ``containers[0].resources.limits.cpu``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Union

from .tree import Mapping, Node, Sequence

PathPart = Union[str, int]

_SEGMENT_RE = re.compile(r"^(?P<name>.*?)(?P<indices>(?:\[\d+\])*)$")
_INDEX_RE = re.compile(r"\[(\d+)\]")


def join_path(parent: str, child: str) -> str:
    if not parent:
        return child
    return f"{parent}.{child}"


def format_path(parts: Iterable[PathPart]) -> str:
    """Build a dot-path from mapping keys and sequence positions."""
    path = ""
    for part in parts:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path = join_path(path, part)
    return path


def split_path(path: str) -> list[PathPart]:
    if not path:
        return []
    parts: list[PathPart] = []
    for segment in path.split("."):
        match = _SEGMENT_RE.match(segment)
        name, indices = match.group("name"), match.group("indices")
        if name or not indices:
            parts.append(name)
        parts.extend(int(index) for index in _INDEX_RE.findall(indices))
    return parts


def match_glob(pattern: str, path: str) -> bool:
    """Match a dot-path against a glob.

    ``*`` matches exactly one segment, ``**`` matches zero or more segments
    and may appear anywhere in the pattern.
    """
    if pattern == path:
        return True
    return _match_parts(pattern.split("."), path.split("."))


def _match_parts(pattern: list[str], path: list[str]) -> bool:
    if not pattern:
        return not path
    head = pattern[0]
    if head == "**":
        return any(_match_parts(pattern[1:], path[start:]) for start in range(len(path) + 1))
    if not path:
        return False
    if head == "*" or head == path[0]:
        return _match_parts(pattern[1:], path[1:])
    return False


def matches_ignore(path: str, patterns: Iterable[str] | None) -> bool:
    return any(match_glob(pattern, path) for pattern in patterns or ())


def collect_all_paths(node: Node | None, prefix: str = "") -> dict[str, str]:
    """Index every mapping key in a defaults tree: dot-path -> bare key."""
    paths: dict[str, str] = {}
    if not isinstance(node, Mapping):
        return paths
    for entry in node:
        full_path = join_path(prefix, entry.key)
        paths[full_path] = entry.key
        if isinstance(entry.value, Mapping):
            paths.update(collect_all_paths(entry.value, full_path))
    return paths


def resolve_path(node: Node, path: str) -> tuple[int, Node] | None:
    """Return ``(line, node)`` for a dot-path, or None if it does not exist."""
    line = node.line
    current = node
    for part in split_path(path):
        if isinstance(part, int):
            if not isinstance(current, Sequence) or part >= len(current):
                return None
            current = current.items[part]
            line = current.line
        else:
            if not isinstance(current, Mapping):
                return None
            entry = current.entry(part)
            if entry is None:
                return None
            line = entry.line
            current = entry.value
    return line, current


def find_line_for_path(node: Node, path: str) -> int:
    """1-based line of the key at ``path``; 0 when it cannot be resolved."""
    resolved = resolve_path(node, path)
    return resolved[0] if resolved is not None else 0
