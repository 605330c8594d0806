"""FastAPI host application for the Solr indexer."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from solr_indexer.api.v1.router import api_router
from solr_indexer.config import get_settings
from solr_indexer.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
)
from solr_indexer.core.logging import get_logger, setup_logging
from solr_indexer.dependencies import get_indexer, reset_dependency_caches

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Wire the indexer for the lifetime of the process.

    On startup the indexer is built from the repository export and, unless
    disabled, the startup check is scheduled in the background: it waits for
    the repository and rebuilds the index when Solr is empty. On shutdown a
    pending check is cancelled and the Solr client is closed.
    """
    settings = get_settings()
    logger.info(
        "Starting Solr Indexer [solr = %s, batch size = %d, dispatch workers = %d]",
        settings.solr_url,
        settings.solr_queue_size,
        settings.solr_thread_count,
    )

    indexer = get_indexer(settings)
    app.state.indexer = indexer
    if indexer is not None:
        await indexer.solr.start()
        if settings.startup_check_enabled:
            indexer.start_background_startup_check()
        else:
            logger.info("Startup check disabled; the index is only rebuilt on request")

    yield

    logger.info("Shutting down Solr Indexer")
    if indexer is not None:
        await indexer.stop()
        await indexer.solr.aclose()
    reset_dependency_caches()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Rebuilds a Solr index from a hierarchical content repository",
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_credentials,
        allow_methods=settings.cors_methods,
        allow_headers=settings.cors_headers,
    )

    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(api_router, prefix=settings.api_v1_prefix)

    return app


app = create_app()
