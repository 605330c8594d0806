"""Custom exceptions and exception handlers."""

from __future__ import annotations

from enum import Enum

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from solr_indexer.core.logging import get_logger

logger = get_logger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ServiceUnavailableException(AppException):
    """A collaborator required to serve the request is not configured or reachable."""

    def __init__(self, message: str = "Service unavailable"):
        super().__init__(message, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


class RepositoryError(AppException):
    """Raised by the content repository when a node, property or query cannot be read."""

    def __init__(self, message: str = "Repository error"):
        super().__init__(message, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


class SolrServiceError(AppException):
    """Raised when a synchronous Solr request fails."""

    def __init__(self, message: str = "Solr request failed"):
        super().__init__(message, status_code=status.HTTP_502_BAD_GATEWAY)


class IndexPhase(str, Enum):
    """Phases of a full index rebuild."""

    PINGING = "pinging"
    CONFIGURING = "configuring"
    DELETING = "deleting"
    TRAVERSING = "traversing"
    FLUSHING = "flushing"
    COMMITTING = "committing"


class IndexingError(AppException):
    """Failure of a mutating phase; every instance leads to the same rollback path."""

    def __init__(self, phase: IndexPhase, message: str, cause: BaseException | None = None):
        self.phase = phase
        self.cause = cause
        super().__init__(f"{phase.value}: {message}")


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle custom application exceptions.

    Args:
        request: The incoming request.
        exc: The exception that was raised.

    Returns:
        JSONResponse: Error response.
    """
    logger.error(f"Application error: {exc.message}", exc_info=True)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "type": exc.__class__.__name__},
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions.

    Args:
        request: The incoming request.
        exc: The HTTP exception that was raised.

    Returns:
        JSONResponse: Error response.
    """
    logger.warning(f"HTTP error {exc.status_code}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions.

    Args:
        request: The incoming request.
        exc: The unhandled exception.

    Returns:
        JSONResponse: Error response.
    """
    logger.error(f"Unhandled error: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )
