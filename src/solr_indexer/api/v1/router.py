"""Main API v1 router that combines all endpoint routers."""

from fastapi import APIRouter

from solr_indexer.api.v1.endpoints import health, indexing

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(health.router)
api_router.include_router(indexing.router)
