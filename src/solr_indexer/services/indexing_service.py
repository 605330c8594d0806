"""Full-rebuild indexer: reads documents from the repository and loads them into Solr."""

from __future__ import annotations

import asyncio
import contextlib
import itertools
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from solr_indexer.config import Settings
from solr_indexer.core.constants import QUERY_ALL
from solr_indexer.core.exceptions import (
    IndexingError,
    IndexPhase,
    RepositoryError,
    SolrServiceError,
)
from solr_indexer.core.logging import get_logger
from solr_indexer.core.models import IndexFilter, RunState, SearchDocument
from solr_indexer.repository.protocols import Repository, Session
from solr_indexer.services.configuration_loader import load_filter, sanitize_extra_mappings
from solr_indexer.services.document_mapper import DocumentMapper
from solr_indexer.services.solr_service import SolrService

logger = get_logger(__name__)

RunStatus = Literal["completed", "aborted", "rolled_back", "skipped"]


@dataclass(slots=True)
class IndexingStats:
    """Outcome of one indexing run."""

    status: RunStatus
    documents_indexed: int
    batches: int
    elapsed_seconds: float
    started_at: datetime
    failed_phase: IndexPhase | None = None
    error: str | None = None


def _logout_quietly(session: Session | None) -> None:
    if session is None:
        return
    try:
        session.logout()
    except RepositoryError as exc:
        logger.debug("Repository logout failed: %s", exc.message)


def _take(documents: Iterator[SearchDocument], size: int) -> list[SearchDocument]:
    return list(itertools.islice(documents, size))


class SolrIndexer:
    """Rebuilds the Solr index from the repository.

    A run goes through ping -> configure -> delete -> traverse -> flush ->
    commit. Ping and configuration failures abort before Solr is modified;
    any failure after that rolls the Solr changes back. All runs, including
    the startup check, are serialized by one lock.
    """

    def __init__(
        self,
        settings: Settings,
        repository: Repository,
        solr_service: SolrService,
        extra_properties: dict[str, str] | None = None,
    ):
        self.settings = settings
        self.repository = repository
        self.solr = solr_service
        self.batch_size = settings.solr_queue_size
        self.extra_properties = sanitize_extra_mappings(
            extra_properties if extra_properties is not None else settings.solr_filter_properties
        )
        self.last_stats: IndexingStats | None = None

        self._lock = asyncio.Lock()
        self._startup_task: asyncio.Task[IndexingStats | None] | None = None
        self._waiting_for_repository = False

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    # ---------------- Public surface ----------------

    async def run(self) -> IndexingStats:
        """Rebuild the whole index once."""
        async with self._lock:
            return await self._index()

    async def startup_check(self) -> IndexingStats | None:
        """Wait for the repository, then rebuild only if the index is empty."""
        self._waiting_for_repository = True
        try:
            await self.wait_for_repository()
        finally:
            self._waiting_for_repository = False
        async with self._lock:
            try:
                count = await self.solr.count_documents()
            except SolrServiceError as exc:
                logger.error("Failed to check if the Solr index was empty: %s", exc)
                return None

            if count > 0:
                logger.info("Solr index already holds %d documents, no indexation needed", count)
                return self._finish(RunState(), "skipped")

            logger.info("Solr index is empty. Indexation needed...")
            return await self._index()

    def start_background_startup_check(self) -> asyncio.Task[IndexingStats | None]:
        """Schedule the startup check without blocking the caller."""
        if self._startup_task is None or self._startup_task.done():
            self._waiting_for_repository = True
            self._startup_task = asyncio.create_task(
                self.startup_check(),
                name="solr-startup-check",
            )
        return self._startup_task

    async def stop(self) -> None:
        """Stop the startup check.

        A check still waiting for the repository is cancelled. Once it has
        moved on to the index, the rebuild is awaited instead: a run is never
        interrupted between the delete and the commit.
        """
        task = self._startup_task
        if task is not None and not task.done():
            if self._waiting_for_repository:
                task.cancel()
            else:
                logger.info("Waiting for the startup indexation to finish")
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._startup_task = None

    async def wait_for_repository(self) -> None:
        """Poll until a repository session can be opened."""
        interval = self.settings.repository_poll_interval
        while True:
            session = self._open_session(log_error=False)
            if session is not None:
                _logout_quietly(session)
                return
            logger.debug("Repository is not ready yet, retrying in %s seconds", interval)
            await asyncio.sleep(interval)

    # ---------------- Run ----------------

    def _open_session(self, *, log_error: bool) -> Session | None:
        try:
            return self.repository.login()
        except RepositoryError as exc:
            if log_error:
                logger.error("Cannot create a repository session: %s", exc)
            else:
                logger.info("Cannot create a repository session (yet): %s", exc.message)
            return None

    async def _index(self) -> IndexingStats:
        state = RunState()
        logger.info("Starting Solr indexation in batches of %d documents", self.batch_size)

        session = self._open_session(log_error=True)
        if session is None:
            return self._finish(state, "aborted", IndexPhase.CONFIGURING, "Repository unavailable")

        try:
            try:
                ping = await self.solr.ping()
            except SolrServiceError as exc:
                logger.error("Solr server ping failed: %s", exc)
                return self._finish(state, "aborted", IndexPhase.PINGING, str(exc))
            logger.info(
                "Server ping successful [elapsedTime = %.0f ms, QTime = %s, status = %s]",
                ping.elapsed_ms,
                ping.qtime,
                ping.status,
            )

            index_filter = load_filter(
                session,
                self.extra_properties,
                configuration_root=self.settings.configuration_root,
            )
            if not index_filter.is_valid(session):
                logger.error("Indexing skipped because configuration is not valid: %s", index_filter)
                return self._finish(
                    state, "aborted", IndexPhase.CONFIGURING, "Configuration is not valid"
                )
            logger.info("%s", index_filter)

            try:
                await self._rebuild(session, index_filter, state)
            except IndexingError as exc:
                await self._rollback(exc)
                return self._finish(state, "rolled_back", exc.phase, exc.message)
        finally:
            _logout_quietly(session)

        logger.info(
            "%d documents successfully indexed in %d minutes",
            state.total_documents,
            int(state.elapsed_seconds // 60),
        )
        return self._finish(state, "completed")

    async def _rebuild(self, session: Session, index_filter: IndexFilter, state: RunState) -> None:
        # Batches left over from an earlier run must not set the flag of this one
        await self.solr.discard_pending()
        self.solr.reset_error()
        phase = IndexPhase.DELETING
        try:
            logger.info("Deleting current Solr index")
            await self.solr.delete_by_query(QUERY_ALL)

            phase = IndexPhase.TRAVERSING
            documents = DocumentMapper(index_filter, self.settings.documents_root).iter_documents(
                session
            )
            while True:
                # The repository is blocking: batches are read off the event loop
                batch = await asyncio.to_thread(_take, documents, self.batch_size)
                if len(batch) < self.batch_size:
                    break
                await self._submit(batch, state)

            phase = IndexPhase.FLUSHING
            await self._submit(batch, state)

            phase = IndexPhase.COMMITTING
            await self.solr.commit()
        except asyncio.CancelledError:
            await self._rollback(IndexingError(phase, "Run cancelled"))
            raise
        except Exception as exc:
            raise IndexingError(phase, str(exc), exc) from exc

        # Dispatch failures only surface once the commit has drained the queue
        if self.solr.error_intercepted:
            raise IndexingError(IndexPhase.COMMITTING, "Error intercepted while indexing documents")

    async def _submit(self, batch: list[SearchDocument], state: RunState) -> None:
        if not batch:
            return
        logger.info("Indexing %d documents", len(batch))
        await self.solr.add(batch)
        state.record_batch(len(batch))

    async def _rollback(self, exc: IndexingError) -> None:
        logger.error(
            "Failed to perform actions (%s). Rolling back.",
            exc.message,
            exc_info=exc.cause,
        )
        try:
            await self.solr.discard_pending()
            await self.solr.rollback()
        except Exception as rollback_exc:
            logger.error("Failed to rollback changes at %s: %s", self.settings.solr_url, rollback_exc)

    def _finish(
        self,
        state: RunState,
        status: RunStatus,
        failed_phase: IndexPhase | None = None,
        error: str | None = None,
    ) -> IndexingStats:
        stats = IndexingStats(
            status=status,
            documents_indexed=state.total_documents,
            batches=state.batches,
            elapsed_seconds=state.elapsed_seconds,
            started_at=state.started_at,
            failed_phase=failed_phase,
            error=error,
        )
        self.last_stats = stats
        return stats


__all__ = ["IndexingStats", "SolrIndexer"]
