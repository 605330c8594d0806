"""Schemas for the indexing endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field

from solr_indexer.services.indexing_service import IndexingStats


class IndexRunResponse(BaseModel):
    """Result of one indexing run."""

    status: str = Field(..., description="completed, aborted, rolled_back or skipped")
    documents_indexed: int = Field(..., description="Documents submitted to Solr during the run")
    batches: int = Field(..., description="Number of batches submitted")
    elapsed_seconds: float = Field(..., description="Run duration in seconds")
    started_at: datetime = Field(..., description="Run start time (UTC)")
    failed_phase: str | None = Field(default=None, description="Phase that failed, if any")
    error: str | None = Field(default=None, description="Failure message, if any")

    @classmethod
    def from_stats(cls, stats: IndexingStats) -> "IndexRunResponse":
        return cls(
            status=stats.status,
            documents_indexed=stats.documents_indexed,
            batches=stats.batches,
            elapsed_seconds=stats.elapsed_seconds,
            started_at=stats.started_at,
            failed_phase=stats.failed_phase.value if stats.failed_phase else None,
            error=stats.error,
        )


class IndexStatusResponse(BaseModel):
    """Current indexer state."""

    running: bool = Field(..., description="True while a run holds the indexing lock")
    last_run: IndexRunResponse | None = Field(default=None, description="Most recent run")
