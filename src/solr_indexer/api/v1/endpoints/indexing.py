"""Endpoints to trigger and inspect full index rebuilds."""

from fastapi import APIRouter, status

from solr_indexer.core.exceptions import ServiceUnavailableException
from solr_indexer.core.logging import get_logger
from solr_indexer.dependencies import IndexerDep
from solr_indexer.schemas.indexing import IndexRunResponse, IndexStatusResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/index", tags=["indexing"])


@router.post(
    "",
    response_model=IndexRunResponse,
    summary="Rebuild Index",
    description="Deletes the Solr index and rebuilds it from the repository",
    status_code=status.HTTP_200_OK,
)
async def rebuild_index(indexer: IndexerDep) -> IndexRunResponse:
    """Run one full rebuild and return its outcome.

    The request waits for a run already in progress (including the startup
    check) to finish first.

    Raises:
        ServiceUnavailableException: If no repository is configured.
    """
    if indexer is None:
        raise ServiceUnavailableException("Indexer is not configured")

    logger.info("Index rebuild requested")
    stats = await indexer.run()
    return IndexRunResponse.from_stats(stats)


@router.get(
    "/status",
    response_model=IndexStatusResponse,
    summary="Index Status",
    description="Returns whether a run is in progress and the last run outcome",
)
async def index_status(indexer: IndexerDep) -> IndexStatusResponse:
    if indexer is None:
        raise ServiceUnavailableException("Indexer is not configured")

    last = indexer.last_stats
    return IndexStatusResponse(
        running=indexer.is_running,
        last_run=IndexRunResponse.from_stats(last) if last else None,
    )
