"""Solr client used as the bulk-write sink of the indexer."""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from solr_indexer.adapters import solr_mapper
from solr_indexer.config import Settings
from solr_indexer.core.constants import QUERY_ALL
from solr_indexer.core.exceptions import SolrServiceError
from solr_indexer.core.logging import get_logger
from solr_indexer.core.models import SearchDocument

logger = get_logger(__name__)


@dataclass(slots=True)
class PingResult:
    """Outcome of a ping request."""

    status: str
    qtime: int | None
    elapsed_ms: float


@dataclass(slots=True)
class QueryResult:
    """Subset of a select response used by the indexer."""

    num_found: int
    docs: list[dict[str, Any]] = field(default_factory=list)


class SolrService:
    """Thin async wrapper around the Solr HTTP API.

    Document batches are not sent by ``add``: they are queued and posted by
    background dispatch tasks. The queue holds at most one batch per dispatch
    task, so ``add`` waits while every worker is busy. A dispatch failure never reaches the caller of
    ``add``; it is logged and recorded in ``error_intercepted``, which the
    indexer checks after ``commit``.
    """

    def __init__(
        self,
        settings: Settings,
        session: aiohttp.ClientSession | None = None,
    ):
        if not settings.solr_url or not settings.solr_url.strip():
            raise ValueError("solr_url must be not empty")
        if settings.solr_thread_count <= 0:
            raise ValueError(f"solr_thread_count must be positive: {settings.solr_thread_count}")

        self.settings = settings
        self.base_url = settings.solr_url.strip().rstrip("/")
        self.thread_count = settings.solr_thread_count

        self._session = session
        self._owns_session = session is None
        self._queue: asyncio.Queue[list[dict[str, Any]]] | None = None
        self._workers: list[asyncio.Task[None]] = []
        self._error_intercepted = False

        logger.info("SolrService initialized for '%s'", self.base_url)

    # ---------------- Lifecycle ----------------

    async def start(self) -> None:
        """Open the HTTP session and start the dispatch tasks."""
        self._require_session()
        if self._workers:
            return
        self._queue = asyncio.Queue(maxsize=self.thread_count)
        self._workers = [
            asyncio.create_task(self._dispatch(), name=f"solr-dispatch-{index}")
            for index in range(self.thread_count)
        ]
        logger.info("Started %d Solr dispatch worker(s)", self.thread_count)

    async def aclose(self) -> None:
        """Stop the dispatch tasks and close the session if we own it."""
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        self._queue = None

        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> SolrService:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ---------------- Error interception ----------------

    @property
    def error_intercepted(self) -> bool:
        return self._error_intercepted

    def reset_error(self) -> None:
        self._error_intercepted = False

    def handle_error(self, exc: BaseException) -> None:
        """Record a failure raised on a dispatch task."""
        logger.error("Error intercepted, check Solr logs for more details: %s", exc)
        self._error_intercepted = True

    async def _dispatch(self) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            batch = await queue.get()
            try:
                await self._request("POST", "update", json_body=batch)
                logger.debug("Posted %d documents to Solr", len(batch))
            except Exception as exc:
                self.handle_error(exc)
            finally:
                queue.task_done()

    # ---------------- Requests ----------------

    def _require_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.settings.solr_timeout),
            )
            self._owns_session = True
        return self._session

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
    ) -> dict[str, Any]:
        session = self._require_session()
        url = f"{self.base_url}/{path}"
        query = {"wt": "json", **(params or {})}

        try:
            async with session.request(method, url, params=query, json=json_body) as response:
                body = await response.text()
                if response.status >= 400:
                    raise SolrServiceError(
                        f"Solr returned HTTP {response.status} for {path}: {body[:500]}"
                    )
        except aiohttp.ClientError as exc:
            raise SolrServiceError(f"Solr request to {url} failed: {exc}") from exc
        except TimeoutError as exc:
            raise SolrServiceError(f"Solr request to {url} timed out") from exc

        try:
            data: dict[str, Any] = json.loads(body) if body.strip() else {}
        except ValueError as exc:
            raise SolrServiceError(f"Invalid JSON response from {url}") from exc

        header = data.get("responseHeader") or {}
        if header.get("status", 0) != 0:
            raise SolrServiceError(f"Solr reported status {header.get('status')} for {path}")
        return data

    async def ping(self) -> PingResult:
        """Check that the Solr core answers."""
        started = time.perf_counter()
        data = await self._request("GET", "admin/ping")
        elapsed_ms = (time.perf_counter() - started) * 1000
        header = data.get("responseHeader") or {}
        return PingResult(
            status=str(data.get("status", "OK")),
            qtime=header.get("QTime"),
            elapsed_ms=elapsed_ms,
        )

    async def query(self, q: str = QUERY_ALL, rows: int = 0) -> QueryResult:
        """Run a select query."""
        data = await self._request("GET", "select", params={"q": q, "rows": rows})
        response = data.get("response") or {}
        return QueryResult(
            num_found=int(response.get("numFound", 0)),
            docs=list(response.get("docs", [])),
        )

    async def count_documents(self) -> int:
        return (await self.query(QUERY_ALL, rows=0)).num_found

    async def delete_by_query(self, q: str) -> None:
        await self._request("POST", "update", json_body=solr_mapper.delete_by_query_command(q))
        logger.debug("Deleted documents matching '%s'", q)

    async def add(self, documents: Sequence[SearchDocument]) -> None:
        """Queue one batch of documents for asynchronous submission."""
        if not documents:
            return
        await self.start()
        assert self._queue is not None
        await self._queue.put(solr_mapper.documents_to_payload(documents))

    async def commit(self) -> None:
        """Wait until every queued batch was dispatched, then commit."""
        if self._queue is not None:
            await self._queue.join()
        await self._request("POST", "update", json_body=solr_mapper.commit_command())

    async def discard_pending(self) -> int:
        """Drop batches not yet dispatched and wait for the ones being posted.

        Returns:
            int: Number of batches dropped.
        """
        if self._queue is None:
            return 0
        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._queue.task_done()
            dropped += 1
        await self._queue.join()
        if dropped:
            logger.warning("Discarded %d queued batch(es) before reaching Solr", dropped)
        return dropped

    async def rollback(self) -> None:
        await self._request("POST", "update", json_body=solr_mapper.rollback_command())


__all__ = ["PingResult", "QueryResult", "SolrService"]
