"""Map repository nodes to Solr documents."""

from __future__ import annotations

from collections.abc import Iterator

from solr_indexer.core.exceptions import RepositoryError
from solr_indexer.core.logging import get_logger
from solr_indexer.core.models import FieldValue, IndexFilter, SearchDocument
from solr_indexer.repository.protocols import Node, Session
from solr_indexer.services import node_classifier as nc

logger = get_logger(__name__)


class DocumentMapper:
    """Walks the documents tree and yields one document per published matching node."""

    def __init__(self, index_filter: IndexFilter, documents_root: str = "/content/documents"):
        self._filter = index_filter
        self._documents_root = documents_root

    def iter_documents(self, session: Session) -> Iterator[SearchDocument]:
        """Lazily yield documents in depth-first order."""
        try:
            root = session.get_node(self._documents_root)
        except RepositoryError as exc:
            logger.error("Failed to retrieve (child) nodes at %s: %s", self._documents_root, exc)
            return
        yield from self._walk(root)

    def _walk(self, parent: Node) -> Iterator[SearchDocument]:
        try:
            children = list(parent.children())
        except RepositoryError as exc:
            logger.error("Failed to retrieve (child) nodes at %s: %s", nc.node_path(parent), exc)
            return

        for node in children:
            # Handles hold the revisions of one document; the variants are its children
            if nc.is_folder(node) or nc.is_handle(node):
                yield from self._walk(node)
            elif nc.matches_any_type(node, self._filter.node_types) and nc.is_published(node):
                document = self.build_document(node)
                if document is not None:
                    logger.debug("Document added: %s", dict(document.fields))
                    yield document

    def build_document(self, node: Node) -> SearchDocument | None:
        """Read every mapped field; None when the node yields no field at all."""
        logger.debug("Create document for node %s", nc.node_path(node))
        fields: dict[str, FieldValue] = {}
        for field_id, property_path in self._filter.properties.items():
            value = nc.read_value(node, property_path)
            if value is not None:
                fields[field_id] = value
        return SearchDocument(fields) if fields else None
