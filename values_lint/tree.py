"""Document tree used by the comparison passes.

Values files are composed with PyYAML (``yaml.compose``), which keeps key
order, source marks and resolved implicit tags, and then folded into three
node kinds: :class:`Scalar`, :class:`Mapping` and :class:`Sequence`.
Aliases never survive into the tree. A shared anchor becomes a shared node,
merge keys (``<<``) are expanded in place, and an alias pointing at one of
its own ancestors is rejected.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Any, ClassVar, Iterator, Union

import yaml
from yaml.constructor import ConstructorError, SafeConstructor
from yaml.nodes import MappingNode, ScalarNode, SequenceNode

from .errors import ConversionError, DocumentError

SCALAR = "scalar"
MAPPING = "mapping"
SEQUENCE = "sequence"

YAML_TAG_PREFIX = "tag:yaml.org,2002:"
MERGE_TAG = YAML_TAG_PREFIX + "merge"

# Charts render values through JSON, where timestamps and binary are strings.
_SHORT_TAGS = {
    "str": "str",
    "int": "int",
    "float": "float",
    "bool": "bool",
    "null": "null",
    "timestamp": "str",
    "binary": "str",
}


def short_tag(tag: str) -> str:
    """Reduce a resolved YAML tag to the short name used for comparisons."""
    if tag.startswith(YAML_TAG_PREFIX):
        name = tag[len(YAML_TAG_PREFIX):]
        return _SHORT_TAGS.get(name, name)
    return tag


@dataclass(eq=False)
class Scalar:
    tag: str
    value: str
    line: int = 0
    yaml_tag: str = ""

    kind: ClassVar[str] = SCALAR

    def to_python(self, memo: dict[int, Any] | None = None) -> Any:
        full_tag = self.yaml_tag or YAML_TAG_PREFIX + self.tag
        if not full_tag.startswith(YAML_TAG_PREFIX) or self.tag not in _SHORT_TAGS.values():
            return self.value
        try:
            data = SafeConstructor().construct_object(ScalarNode(full_tag, self.value))
        except (ConstructorError, ValueError) as exc:
            raise ConversionError(
                f"line {self.line}: cannot convert {self.value!r} tagged {full_tag}"
            ) from exc
        if isinstance(data, (bytes, datetime.date)):
            return self.value
        return data


@dataclass(frozen=True)
class Entry:
    key: str
    line: int
    value: Node


@dataclass(eq=False)
class Mapping:
    entries: list[Entry] = field(default_factory=list)
    line: int = 0

    kind: ClassVar[str] = MAPPING
    tag: ClassVar[str] = "map"

    def __post_init__(self) -> None:
        self._index: dict[str, Entry] = {}
        for entry in self.entries:
            previous = self._index.get(entry.key)
            if previous is not None:
                raise DocumentError(
                    f"line {entry.line}: mapping key {entry.key!r} already defined at line {previous.line}"
                )
            self._index[entry.key] = entry

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)

    def __contains__(self, key: object) -> bool:
        return key in self._index

    def keys(self) -> list[str]:
        return [entry.key for entry in self.entries]

    def entry(self, key: str) -> Entry | None:
        return self._index.get(key)

    def get(self, key: str) -> Node | None:
        entry = self._index.get(key)
        return entry.value if entry is not None else None

    def to_python(self, memo: dict[int, Any] | None = None) -> dict[str, Any]:
        memo = {} if memo is None else memo
        if id(self) not in memo:
            memo[id(self)] = {entry.key: entry.value.to_python(memo) for entry in self.entries}
        return memo[id(self)]


@dataclass(eq=False)
class Sequence:
    items: list[Node] = field(default_factory=list)
    line: int = 0

    kind: ClassVar[str] = SEQUENCE
    tag: ClassVar[str] = "list"

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[Node]:
        return iter(self.items)

    def to_python(self, memo: dict[int, Any] | None = None) -> list[Any]:
        memo = {} if memo is None else memo
        if id(self) not in memo:
            memo[id(self)] = [item.to_python(memo) for item in self.items]
        return memo[id(self)]


Node = Union[Scalar, Mapping, Sequence]


def _line(node: yaml.Node) -> int:
    return node.start_mark.line + 1 if node.start_mark is not None else 0


class _TreeBuilder:
    """Folds a composed PyYAML graph into tree nodes, resolving aliases."""

    def __init__(self) -> None:
        self._built: dict[int, Node] = {}
        self._active: set[int] = set()

    def build(self, node: yaml.Node) -> Node:
        key = id(node)
        if key in self._built:
            return self._built[key]
        if key in self._active:
            raise DocumentError(f"line {_line(node)}: alias refers to one of its own ancestors")

        if isinstance(node, ScalarNode):
            built: Node = Scalar(short_tag(node.tag), node.value, _line(node), node.tag)
        else:
            self._active.add(key)
            try:
                if isinstance(node, MappingNode):
                    built = self._mapping(node)
                elif isinstance(node, SequenceNode):
                    built = Sequence([self.build(item) for item in node.value], _line(node))
                else:
                    raise DocumentError(f"line {_line(node)}: unsupported node {type(node).__name__}")
            finally:
                self._active.discard(key)

        self._built[key] = built
        return built

    def _mapping(self, node: MappingNode) -> Mapping:
        explicit = {
            key_node.value
            for key_node, _ in node.value
            if isinstance(key_node, ScalarNode) and key_node.tag != MERGE_TAG
        }
        merged: set[str] = set()
        entries: list[Entry] = []

        for key_node, value_node in node.value:
            if key_node.tag == MERGE_TAG:
                for source in self._merge_sources(value_node):
                    for entry in source.entries:
                        if entry.key in explicit or entry.key in merged:
                            continue
                        merged.add(entry.key)
                        entries.append(entry)
                continue

            if not isinstance(key_node, ScalarNode):
                raise DocumentError(f"line {_line(key_node)}: mapping keys must be scalars")
            entries.append(Entry(key_node.value, _line(key_node), self.build(value_node)))

        return Mapping(entries, _line(node))

    def _merge_sources(self, node: yaml.Node) -> list[Mapping]:
        if isinstance(node, MappingNode):
            candidates = [node]
        elif isinstance(node, SequenceNode):
            candidates = list(node.value)
        else:
            raise DocumentError(f"line {_line(node)}: merge key expects a mapping or a list of mappings")

        sources = []
        for candidate in candidates:
            built = self.build(candidate)
            if not isinstance(built, Mapping):
                raise DocumentError(f"line {_line(candidate)}: merge key expects a mapping or a list of mappings")
            sources.append(built)
        return sources


def parse_document(text: str | bytes, source: str = "<string>") -> Node | None:
    """Parse a single YAML document. Returns None for an empty document."""
    try:
        composed = yaml.compose(text, Loader=yaml.SafeLoader)
    except yaml.YAMLError as exc:
        raise DocumentError(f"parsing {source}: {exc}") from exc
    if composed is None:
        return None
    return _TreeBuilder().build(composed)


def parse_mapping(text: str | bytes, source: str = "<string>") -> Mapping:
    """Parse a document whose root must be a mapping; empty means ``{}``."""
    node = parse_document(text, source)
    if node is None:
        return Mapping()
    if not isinstance(node, Mapping):
        raise DocumentError(f"{source}: expected a YAML mapping at top level")
    return node
