"""Node classification and property extraction for repository nodes.

All helpers are total: repository failures are logged and turned into a
"negative" answer (empty type set, not published, absent value) so that one
unreadable node never stops a traversal.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Collection
from functools import lru_cache

from solr_indexer.core.constants import (
    AVAILABILITY_LIVE,
    NT_FOLDER,
    NT_HANDLE,
    P_AVAILABILITY,
    P_UUID,
    PATH_SEPARATOR,
)
from solr_indexer.core.exceptions import RepositoryError
from solr_indexer.core.logging import get_logger
from solr_indexer.core.models import FieldValue, Scalar
from solr_indexer.repository.protocols import Node, Property, PropertyType, Value

logger = get_logger(__name__)


class NodeTypeCache:
    """Thread-safe memo of primary type name -> type names including all supertypes."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, frozenset[str]] = {}

    def get_or_compute(self, key: str, factory: Callable[[], frozenset[str]]) -> frozenset[str]:
        with self._lock:
            cached = self._entries.get(key)
        if cached is not None:
            return cached
        computed = factory()
        with self._lock:
            # First writer wins so every caller sees the same instance.
            return self._entries.setdefault(key, computed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


@lru_cache
def get_node_type_cache() -> NodeTypeCache:
    """Get the process-wide node type cache."""
    return NodeTypeCache()


def node_path(node: Node | None) -> str | None:
    """Return the node path for logging purposes, or None if it cannot be read."""
    if node is None:
        return None
    try:
        return node.path
    except RepositoryError:
        return None


def types_of(node: Node) -> frozenset[str]:
    """Return the primary type of ``node`` plus all of its supertypes."""
    try:
        primary_type = node.primary_type

        def expand() -> frozenset[str]:
            return frozenset(
                [primary_type.name, *(supertype.name for supertype in primary_type.supertypes)]
            )

        return get_node_type_cache().get_or_compute(primary_type.name, expand)
    except RepositoryError as exc:
        logger.error("Failed to retrieve node (super) types at %s: %s", node_path(node), exc)
        return frozenset()


def is_folder(node: Node | None) -> bool:
    return node is not None and NT_FOLDER in types_of(node)


def is_handle(node: Node | None) -> bool:
    return node is not None and NT_HANDLE in types_of(node)


def matches_any_type(node: Node | None, type_names: Collection[str] | None) -> bool:
    """Return True if the node is of (or inherits from) at least one of ``type_names``."""
    if node is None or not type_names:
        return False
    return not types_of(node).isdisjoint(type_names)


def is_published(node: Node) -> bool:
    """Return True if the node is visible on the live site.

    Nodes without an availability marker are considered published. A marker
    that cannot be read counts as unpublished.
    """
    try:
        if not node.has_property(P_AVAILABILITY):
            return True
        availability = node.get_property(P_AVAILABILITY)
        values = availability.values if availability.multiple else [availability.value]
        return any(value.get_string() == AVAILABILITY_LIVE for value in values)
    except RepositoryError as exc:
        logger.error(
            "Failed to retrieve property %s for node at %s: %s",
            P_AVAILABILITY,
            node_path(node),
            exc,
        )
        return False


def resolve_property(node: Node, property_path: str) -> Property | None:
    """Resolve ``a/b/prop`` to property ``prop`` of descendant ``a/b``.

    Leading and trailing separators are ignored. Returns None when an
    intermediate node or the property is missing, or the path is malformed.
    """
    stripped = property_path.strip(PATH_SEPARATOR)
    segments = stripped.split(PATH_SEPARATOR)
    if not stripped or any(not segment for segment in segments):
        return None
    *node_names, property_name = segments
    try:
        current = node
        for name in node_names:
            if not current.has_child(name):
                return None
            current = current.get_child(name)
        if current.has_property(property_name):
            return current.get_property(property_name)
    except RepositoryError as exc:
        logger.error(
            "Failed to retrieve property %s for node at %s: %s",
            property_path,
            node_path(node),
            exc,
        )
    return None


def stable_identifier(node: Node | None) -> str | None:
    """Return the identifier of the enclosing handle, or the node's own identifier.

    A document variant gets a new identifier on every change while its handle
    keeps the same one.
    """
    if node is None:
        return None
    try:
        parent = node.parent
        return parent.identifier if is_handle(parent) else node.identifier  # type: ignore[union-attr]
    except RepositoryError as exc:
        logger.error("Failed to retrieve the handle identifier for node %s: %s", node_path(node), exc)
    try:
        return node.identifier
    except RepositoryError as exc:
        logger.error("Failed to retrieve the identifier for node %s: %s", node_path(node), exc)
        return None


def to_scalar(value: Value | None) -> Scalar | None:
    """Convert a repository value into a plain Python scalar (None if unsupported or blank)."""
    if value is None:
        return None
    try:
        match value.type:
            case PropertyType.BOOLEAN:
                return bool(value.data)
            case PropertyType.DATE:
                return value.data
            case PropertyType.DECIMAL:
                return value.data
            case PropertyType.DOUBLE:
                return float(value.data)
            case PropertyType.LONG:
                return int(value.data)
            case PropertyType.NAME:
                return value.get_string()
            case PropertyType.STRING:
                return value.get_string().strip() or None
            case _:
                logger.warning("Unhandled property type %s", value.type.value)
    except (TypeError, ValueError) as exc:
        logger.warning("Error while reading property value %r: %s", value, exc)
    return None


def read_value(node: Node | None, property_path: str | None) -> FieldValue | None:
    """Read the value addressed by ``property_path`` as a search field value.

    Multi-valued properties give a non-empty tuple (values that cannot be
    converted are dropped). ``jcr:uuid`` gives the stable identifier.
    """
    if node is None or property_path is None or not property_path.strip():
        return None

    if property_path == P_UUID:
        identifier = stable_identifier(node)
        if identifier is not None:
            return identifier

    prop = resolve_property(node, property_path)
    if prop is None:
        return None
    try:
        if prop.multiple:
            converted = [to_scalar(value) for value in prop.values]
            scalars = tuple(item for item in converted if item is not None)
            return scalars or None
        return to_scalar(prop.value)
    except RepositoryError as exc:
        logger.error("Failed to retrieve property %s at %s: %s", property_path, node_path(node), exc)
        return None
