"""Load the indexing filter from configuration nodes stored in the repository."""

from __future__ import annotations

import re
from collections.abc import Mapping

from solr_indexer.core.constants import (
    DYNAMIC_FIELD_PREFIX,
    NT_CONFIGURATION,
    P_CONFIG_NODE_TYPES,
    P_CONFIG_PROPERTIES,
)
from solr_indexer.core.exceptions import RepositoryError
from solr_indexer.core.logging import get_logger
from solr_indexer.core.models import IndexFilter
from solr_indexer.repository.protocols import Node, NodeQuery, Session, Value
from solr_indexer.services.node_classifier import node_path

logger = get_logger(__name__)

# Characters Solr does not accept in a field id
_INVALID_FIELD_ID_CHARS = re.compile(r"[^a-zA-Z0-9_]")


def field_id_for(property_path: str) -> str:
    """Build the dynamic Solr field id for a repository property path."""
    return DYNAMIC_FIELD_PREFIX + _INVALID_FIELD_ID_CHARS.sub("_", property_path)


def sanitize_extra_mappings(raw: Mapping[str, str] | None) -> dict[str, str]:
    """Trim static field mappings and drop the ones Solr cannot use.

    Args:
        raw: Field id -> property path mappings supplied by the host application.

    Returns:
        dict[str, str]: Valid, trimmed mappings.
    """
    valid: dict[str, str] = {}
    for key, value in (raw or {}).items():
        field_id = (key or "").strip()
        property_path = (value or "").strip()
        if not field_id or not property_path or _INVALID_FIELD_ID_CHARS.search(field_id):
            logger.warning("Skip invalid Solr filter property: %s=%s", key, value)
            continue
        valid[field_id] = property_path
    return valid


def _string_values(node: Node, name: str) -> list[str]:
    if not node.has_property(name):
        return []
    prop = node.get_property(name)
    values: list[Value] = list(prop.values) if prop.multiple else [prop.value]
    stripped = (value.get_string().strip() for value in values)
    return [item for item in stripped if item]


def load_filter(
    session: Session,
    extra_properties: Mapping[str, str] | None = None,
    *,
    configuration_root: str = "/content/",
) -> IndexFilter:
    """Aggregate every configuration node under ``configuration_root`` into one filter.

    Static mappings are applied first so repository configuration wins on
    conflicts. A repository failure is logged and the filter built so far is
    returned.
    """
    node_types: set[str] = set()
    properties: dict[str, str] = dict(extra_properties or {})

    query = NodeQuery(
        node_type=NT_CONFIGURATION,
        path_prefix=configuration_root,
        any_property=(P_CONFIG_NODE_TYPES, P_CONFIG_PROPERTIES),
    )
    try:
        for node in session.query(query):
            logger.info("Loading Solr configuration from node %s", node_path(node))

            node_types.update(_string_values(node, P_CONFIG_NODE_TYPES))

            for property_path in _string_values(node, P_CONFIG_PROPERTIES):
                properties[field_id_for(property_path)] = property_path
    except RepositoryError as exc:
        logger.error("An error occurred while loading the Solr configuration: %s", exc)

    return IndexFilter(node_types=frozenset(node_types), properties=properties)
