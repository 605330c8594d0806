"""Health check endpoint."""

from fastapi import APIRouter

from solr_indexer.core.exceptions import SolrServiceError
from solr_indexer.core.logging import get_logger
from solr_indexer.dependencies import SettingsDep, SolrServiceDep
from solr_indexer.schemas.health import HealthResponse

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Returns the health status of the API and whether Solr answers a ping",
)
async def health_check(settings: SettingsDep, solr: SolrServiceDep) -> HealthResponse:
    """Check API health and return status.

    A failed Solr ping degrades the status instead of failing the request.

    Args:
        settings: Injected application settings.
        solr: Injected Solr client.

    Returns:
        HealthResponse: Health status information.
    """
    try:
        await solr.ping()
        solr_state = "up"
    except SolrServiceError as e:
        logger.warning(f"Solr ping failed during health check: {e.message}")
        solr_state = "down"

    return HealthResponse(
        status="healthy" if solr_state == "up" else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        solr=solr_state,
    )
