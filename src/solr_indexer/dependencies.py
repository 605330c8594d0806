"""FastAPI dependency injection utilities."""

from typing import TYPE_CHECKING, Annotated

from fastapi import Depends

from solr_indexer.config import Settings, get_settings
from solr_indexer.core.logging import get_logger

if TYPE_CHECKING:
    from solr_indexer.services.indexing_service import SolrIndexer
    from solr_indexer.services.solr_service import SolrService

logger = get_logger(__name__)

# Common dependencies that can be injected into route handlers
SettingsDep = Annotated[Settings, Depends(get_settings)]


# Module-level cache for SolrService singleton
_solr_service_cache: "SolrService | None" = None


def get_solr_service(settings: Annotated["Settings", Depends(get_settings)]) -> "SolrService":
    """Get or create a cached SolrService instance.

    Returns:
        SolrService instance.
    """
    global _solr_service_cache

    if _solr_service_cache is None:
        from solr_indexer.services.solr_service import SolrService

        _solr_service_cache = SolrService(settings)

    return _solr_service_cache


# Module-level cache for SolrIndexer singleton
_indexer_cache: "SolrIndexer | None" = None


def get_indexer(settings: Annotated["Settings", Depends(get_settings)]) -> "SolrIndexer | None":
    """Get the cached SolrIndexer, or None when no repository is configured.

    Returns:
        SolrIndexer instance or None.
    """
    global _indexer_cache

    if _indexer_cache is None:
        if not settings.repository_export_path:
            logger.warning("REPOSITORY_EXPORT_PATH not configured; indexing is disabled")
            return None

        from solr_indexer.repository.memory import load_repository
        from solr_indexer.services.indexing_service import SolrIndexer

        _indexer_cache = SolrIndexer(
            settings,
            load_repository(settings.repository_export_path),
            get_solr_service(settings),
        )

    return _indexer_cache


def reset_dependency_caches() -> None:
    """Forget cached singletons (used on shutdown and by tests)."""
    global _solr_service_cache, _indexer_cache
    _solr_service_cache = None
    _indexer_cache = None


# Type aliases for dependency injection
SolrServiceDep = Annotated["SolrService", Depends(get_solr_service)]
IndexerDep = Annotated["SolrIndexer | None", Depends(get_indexer)]
