"""Read-only view of the content repository used by the indexer.

The indexer never writes to the repository. Every accessor below may raise
``RepositoryError``; callers decide whether a failure is per-node (logged and
skipped) or fatal for the run.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol


class PropertyType(str, Enum):
    """Kinds of values a repository property can hold."""

    STRING = "String"
    BINARY = "Binary"
    LONG = "Long"
    DOUBLE = "Double"
    DATE = "Date"
    BOOLEAN = "Boolean"
    NAME = "Name"
    PATH = "Path"
    REFERENCE = "Reference"
    WEAKREFERENCE = "WeakReference"
    URI = "URI"
    DECIMAL = "Decimal"


@dataclass(frozen=True)
class Value:
    """A single typed property value."""

    type: PropertyType
    data: Any

    def get_string(self) -> str:
        return str(self.data)


@dataclass(frozen=True)
class NodeQuery:
    """Nodes of ``node_type`` under ``path_prefix`` with at least one of ``any_property`` set."""

    node_type: str
    path_prefix: str
    any_property: tuple[str, ...]


class NodeType(Protocol):
    @property
    def name(self) -> str: ...

    @property
    def supertypes(self) -> Sequence[NodeType]: ...


class Property(Protocol):
    @property
    def name(self) -> str: ...

    @property
    def multiple(self) -> bool: ...

    @property
    def value(self) -> Value: ...

    @property
    def values(self) -> Sequence[Value]: ...


class Node(Protocol):
    @property
    def path(self) -> str: ...

    @property
    def identifier(self) -> str: ...

    @property
    def parent(self) -> Node | None: ...

    @property
    def primary_type(self) -> NodeType: ...

    def children(self) -> Iterator[Node]: ...

    def has_child(self, name: str) -> bool: ...

    def get_child(self, name: str) -> Node: ...

    def has_property(self, name: str) -> bool: ...

    def get_property(self, name: str) -> Property: ...


class Session(Protocol):
    def is_live(self) -> bool: ...

    def get_node(self, path: str) -> Node: ...

    def query(self, query: NodeQuery) -> Iterator[Node]: ...

    def logout(self) -> None: ...


class Repository(Protocol):
    def login(self) -> Session:
        """Open a session, raising ``RepositoryError`` when the repository is not ready."""
        ...


__all__ = [
    "Node",
    "NodeQuery",
    "NodeType",
    "Property",
    "PropertyType",
    "Repository",
    "Session",
    "Value",
]
