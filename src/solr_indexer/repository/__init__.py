"""Content repository collaborator: protocols plus an in-memory implementation."""

from solr_indexer.repository.memory import (
    MemoryNode,
    MemoryRepository,
    NodeTypeRegistry,
    build_repository,
    load_repository,
)
from solr_indexer.repository.protocols import (
    Node,
    NodeQuery,
    NodeType,
    Property,
    PropertyType,
    Repository,
    Session,
    Value,
)

__all__ = [
    # Protocols
    "Node",
    "NodeQuery",
    "NodeType",
    "Property",
    "PropertyType",
    "Repository",
    "Session",
    "Value",
    # In-memory implementation
    "MemoryNode",
    "MemoryRepository",
    "NodeTypeRegistry",
    "build_repository",
    "load_repository",
]
