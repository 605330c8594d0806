"""In-memory content repository.

Backs local runs (loaded from a JSON export of the content tree) and the test
suite. The export format is::

    {
      "node_types": {"myproject:newsdocument": ["hippo:document"]},
      "root": {
        "name": "",
        "type": "rep:root",
        "children": [
          {"name": "content", "type": "hippostd:folder", "children": [...]}
        ]
      }
    }

Each node accepts ``name``, ``type``, optional ``id``, ``properties`` and
``children``. Property values are inferred from JSON (string, boolean,
integer, float, list for multi-valued) or given explicitly as
``{"type": "Date", "value": "2012-02-06T22:08:51+00:00"}``.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

from solr_indexer.core.constants import PATH_SEPARATOR
from solr_indexer.core.exceptions import RepositoryError
from solr_indexer.core.logging import get_logger
from solr_indexer.repository.protocols import NodeQuery, PropertyType, Value

logger = get_logger(__name__)


@dataclass(frozen=True)
class MemoryNodeType:
    name: str
    supertypes: tuple[MemoryNodeType, ...] = ()


class NodeTypeRegistry:
    """Node type definitions; ``get`` returns types with the transitive supertype list."""

    def __init__(self, definitions: Mapping[str, Sequence[str]] | None = None):
        self._definitions: dict[str, tuple[str, ...]] = {}
        for name, supertypes in (definitions or {}).items():
            self.define(name, supertypes)

    def define(self, name: str, supertypes: Sequence[str] = ()) -> None:
        self._definitions[name] = tuple(supertypes)

    def get(self, name: str) -> MemoryNodeType:
        closure: list[str] = []
        pending = list(self._definitions.get(name, ()))
        while pending:
            current = pending.pop(0)
            if current == name or current in closure:
                continue
            closure.append(current)
            pending.extend(self._definitions.get(current, ()))
        return MemoryNodeType(
            name=name,
            supertypes=tuple(MemoryNodeType(name=supertype) for supertype in closure),
        )


@dataclass(frozen=True)
class MemoryProperty:
    name: str
    values: tuple[Value, ...]
    multiple: bool = False

    @property
    def value(self) -> Value:
        if self.multiple:
            raise RepositoryError(f"Property {self.name} is multi-valued")
        return self.values[0]


def to_value(data: Any) -> Value:
    """Infer a typed ``Value`` from a Python or JSON datum."""
    if isinstance(data, Value):
        return data
    if isinstance(data, Mapping):
        kind = PropertyType(data["type"])
        return Value(kind, _parse_typed(kind, data["value"]))
    if isinstance(data, bool):
        return Value(PropertyType.BOOLEAN, data)
    if isinstance(data, int):
        return Value(PropertyType.LONG, data)
    if isinstance(data, float):
        return Value(PropertyType.DOUBLE, data)
    if isinstance(data, Decimal):
        return Value(PropertyType.DECIMAL, data)
    if isinstance(data, datetime):
        return Value(PropertyType.DATE, data)
    if isinstance(data, bytes):
        return Value(PropertyType.BINARY, data)
    return Value(PropertyType.STRING, str(data))


def _parse_typed(kind: PropertyType, raw: Any) -> Any:
    if kind is PropertyType.DATE and isinstance(raw, str):
        return datetime.fromisoformat(raw)
    if kind is PropertyType.DECIMAL:
        return Decimal(str(raw))
    if kind is PropertyType.LONG:
        return int(raw)
    if kind is PropertyType.DOUBLE:
        return float(raw)
    if kind is PropertyType.BOOLEAN and isinstance(raw, str):
        return raw.strip().lower() == "true"
    return raw


class MemoryNode:
    """A node of the in-memory tree.

    ``failing`` names accessors that raise ``RepositoryError``
    ("children", "primary_type", "properties", "identifier", "parent"), which
    lets tests reproduce unreadable nodes.
    """

    def __init__(
        self,
        name: str,
        primary_type: MemoryNodeType,
        *,
        parent: MemoryNode | None = None,
        identifier: str | None = None,
        failing: Iterable[str] = (),
    ):
        self.name = name
        self._primary_type = primary_type
        self._parent = parent
        self._identifier = identifier
        self._children: dict[str, MemoryNode] = {}
        self._properties: dict[str, MemoryProperty] = {}
        self.failing = frozenset(failing)

    def __repr__(self) -> str:
        return f"MemoryNode({self.path!r}, {self._primary_type.name!r})"

    def _check(self, accessor: str) -> None:
        if accessor in self.failing:
            raise RepositoryError(f"Cannot read {accessor} of {self.path}")

    # ---------------- Tree building ----------------

    def add_child(
        self,
        name: str,
        primary_type: MemoryNodeType,
        *,
        identifier: str | None = None,
        failing: Iterable[str] = (),
    ) -> MemoryNode:
        if not name or PATH_SEPARATOR in name:
            raise ValueError(f"Invalid node name: {name!r}")
        node = MemoryNode(
            name,
            primary_type,
            parent=self,
            identifier=identifier,
            failing=failing,
        )
        self._children[name] = node
        return node

    def set_property(self, name: str, data: Any) -> None:
        if isinstance(data, list | tuple):
            values = tuple(to_value(item) for item in data)
            self._properties[name] = MemoryProperty(name, values, multiple=True)
        else:
            self._properties[name] = MemoryProperty(name, (to_value(data),))

    # ---------------- Node protocol ----------------

    @property
    def path(self) -> str:
        if self._parent is None:
            return PATH_SEPARATOR
        parent_path = self._parent.path.rstrip(PATH_SEPARATOR)
        return f"{parent_path}{PATH_SEPARATOR}{self.name}"

    @property
    def identifier(self) -> str:
        self._check("identifier")
        return self._identifier or str(uuid.uuid5(uuid.NAMESPACE_URL, self.path))

    @property
    def parent(self) -> MemoryNode | None:
        self._check("parent")
        return self._parent

    @property
    def primary_type(self) -> MemoryNodeType:
        self._check("primary_type")
        return self._primary_type

    def children(self) -> Iterator[MemoryNode]:
        self._check("children")
        return iter(list(self._children.values()))

    def has_child(self, name: str) -> bool:
        self._check("children")
        return name in self._children

    def get_child(self, name: str) -> MemoryNode:
        self._check("children")
        try:
            return self._children[name]
        except KeyError:
            raise RepositoryError(f"No child {name} at {self.path}") from None

    def has_property(self, name: str) -> bool:
        self._check("properties")
        return name in self._properties

    def get_property(self, name: str) -> MemoryProperty:
        self._check("properties")
        try:
            return self._properties[name]
        except KeyError:
            raise RepositoryError(f"No property {name} at {self.path}") from None

    # ---------------- Helpers ----------------

    def walk(self) -> Iterator[MemoryNode]:
        """Yield this node and its descendants in document order."""
        yield self
        for child in self._children.values():
            yield from child.walk()

    def type_names(self) -> set[str]:
        return {self._primary_type.name, *(t.name for t in self._primary_type.supertypes)}


class MemorySession:
    def __init__(self, root: MemoryNode):
        self._root = root
        self._live = True

    def is_live(self) -> bool:
        return self._live

    def _require_live(self) -> None:
        if not self._live:
            raise RepositoryError("Session is closed")

    def get_node(self, path: str) -> MemoryNode:
        self._require_live()
        node = self._root
        for segment in path.strip(PATH_SEPARATOR).split(PATH_SEPARATOR):
            if segment:
                node = node.get_child(segment)
        return node

    def query(self, query: NodeQuery) -> Iterator[MemoryNode]:
        self._require_live()
        for node in self._root.walk():
            if not node.path.startswith(query.path_prefix):
                continue
            if query.node_type not in node.type_names():
                continue
            if any(name in node._properties for name in query.any_property):
                yield node

    def logout(self) -> None:
        self._live = False


@dataclass
class MemoryRepository:
    """Repository whose ``login`` fails while ``available`` is False."""

    root: MemoryNode
    node_types: NodeTypeRegistry = field(default_factory=NodeTypeRegistry)
    available: bool = True
    sessions: list[MemorySession] = field(default_factory=list)

    def login(self) -> MemorySession:
        if not self.available:
            raise RepositoryError("Repository is not available")
        session = MemorySession(self.root)
        self.sessions.append(session)
        return session


def build_repository(export: Mapping[str, Any]) -> MemoryRepository:
    """Build an in-memory repository from an export mapping."""
    registry = NodeTypeRegistry(export.get("node_types", {}))
    root_spec = export.get("root", {"name": "", "type": "rep:root"})
    root = MemoryNode("", registry.get(root_spec.get("type", "rep:root")), identifier=root_spec.get("id"))
    _populate(root, root_spec, registry)
    return MemoryRepository(root=root, node_types=registry)


def _populate(node: MemoryNode, spec: Mapping[str, Any], registry: NodeTypeRegistry) -> None:
    for name, data in spec.get("properties", {}).items():
        node.set_property(name, data)
    for child_spec in spec.get("children", []):
        child = node.add_child(
            child_spec["name"],
            registry.get(child_spec["type"]),
            identifier=child_spec.get("id"),
        )
        _populate(child, child_spec, registry)


def load_repository(path: str | Path) -> MemoryRepository:
    """Load a repository export from a JSON file."""
    export_path = Path(path)
    logger.info("Loading repository export from %s", export_path)
    with export_path.open(encoding="utf-8") as handle:
        return build_repository(json.load(handle))


__all__ = [
    "MemoryNode",
    "MemoryNodeType",
    "MemoryProperty",
    "MemoryRepository",
    "MemorySession",
    "NodeTypeRegistry",
    "build_repository",
    "load_repository",
    "to_value",
]
