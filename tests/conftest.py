# conftest.py
import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from solr_indexer.config import Settings
from solr_indexer.core.exceptions import SolrServiceError
from solr_indexer.core.models import SearchDocument
from solr_indexer.repository.memory import MemoryNode, MemoryRepository, NodeTypeRegistry
from solr_indexer.services.node_classifier import get_node_type_cache
from solr_indexer.services.solr_service import PingResult, QueryResult

NEWS_TYPE = "myproject:newsdocument"


@pytest.fixture(autouse=True)
def clear_node_type_cache():
    """Type names are memoized process-wide; every test starts from a clean cache."""
    get_node_type_cache().clear()
    yield
    get_node_type_cache().clear()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        solr_url="http://solr.test/solr/collection1",
        solr_queue_size=500,
        solr_thread_count=1,
        solr_timeout=5.0,
        repository_poll_interval=0.01,
        startup_check_enabled=False,
    )


def make_registry() -> NodeTypeRegistry:
    return NodeTypeRegistry(
        {
            "hippostd:folder": ["nt:base"],
            "hippo:handle": ["nt:base"],
            "hippo:document": ["nt:base"],
            NEWS_TYPE: ["myproject:basedocument"],
            "myproject:basedocument": ["hippo:document"],
            "myproject:event": ["hippo:document"],
            "solr:configuration": ["nt:base"],
        }
    )


def make_repository(
    node_types: Iterable[str] = (NEWS_TYPE,),
    properties: Iterable[str] = ("myproject:title",),
) -> MemoryRepository:
    """Repository with /content/documents and one Solr configuration node."""
    registry = make_registry()
    root = MemoryNode("", registry.get("rep:root"))
    content = root.add_child("content", registry.get("hippostd:folder"))
    content.add_child("documents", registry.get("hippostd:folder"))
    config = content.add_child("solr", registry.get("solr:configuration"))
    config.set_property("solr:node", list(node_types))
    config.set_property("solr:property", list(properties))
    return MemoryRepository(root=root, node_types=registry)


def documents_folder(repository: MemoryRepository) -> MemoryNode:
    return repository.root.get_child("content").get_child("documents")


def add_document(
    parent: MemoryNode,
    registry: NodeTypeRegistry,
    name: str,
    *,
    node_type: str = NEWS_TYPE,
    title: str | None = None,
    availability: list[str] | None = None,
) -> MemoryNode:
    """Add a handle with one document variant below ``parent``."""
    handle = parent.add_child(name, registry.get("hippo:handle"))
    variant = handle.add_child(name, registry.get(node_type))
    if title is not None:
        variant.set_property("myproject:title", title)
    variant.set_property("hippo:availability", availability if availability is not None else ["live"])
    return variant


def populated_repository(count: int) -> MemoryRepository:
    repository = make_repository()
    docs = documents_folder(repository)
    for index in range(count):
        add_document(docs, repository.node_types, f"doc-{index}", title=f"Title {index}")
    return repository


class RecordingSolr:
    """Stand-in for SolrService recording calls and keeping a committed document set."""

    def __init__(
        self,
        *,
        count: int = 0,
        fail_ping: bool = False,
        fail_delete: bool = False,
        fail_add: bool = False,
        fail_commit: bool = False,
        fail_rollback: bool = False,
        intercept_on_commit: bool = False,
        fail_count: bool = False,
    ):
        self.count = count
        self.fail_ping = fail_ping
        self.fail_delete = fail_delete
        self.fail_add = fail_add
        self.fail_commit = fail_commit
        self.fail_rollback = fail_rollback
        self.intercept_on_commit = intercept_on_commit
        self.fail_count = fail_count

        self.calls: list[str] = []
        self.batches: list[list[SearchDocument]] = []
        self.committed: list[dict] = []
        self._pending: list[dict] | None = None
        self.discarded = 0
        self._error_intercepted = False

    @property
    def committed_total(self) -> int:
        return len(self.committed)

    @property
    def error_intercepted(self) -> bool:
        return self._error_intercepted

    def reset_error(self) -> None:
        self._error_intercepted = False

    async def ping(self) -> PingResult:
        self.calls.append("ping")
        if self.fail_ping:
            raise SolrServiceError("Solr is down")
        return PingResult(status="OK", qtime=1, elapsed_ms=2.0)

    async def query(self, q: str = "*:*", rows: int = 0) -> QueryResult:
        self.calls.append("query")
        return QueryResult(num_found=self.count)

    async def count_documents(self) -> int:
        self.calls.append("count")
        if self.fail_count:
            raise SolrServiceError("select failed")
        return self.count

    async def delete_by_query(self, q: str) -> None:
        self.calls.append("delete")
        if self.fail_delete:
            raise SolrServiceError("delete failed")
        self._pending = []

    async def add(self, documents: list[SearchDocument]) -> None:
        self.calls.append("add")
        if self.fail_add:
            raise SolrServiceError("add failed")
        self.batches.append(list(documents))
        if self._pending is None:
            self._pending = list(self.committed)
        self._pending.extend(dict(document.fields) for document in documents)

    async def commit(self) -> None:
        self.calls.append("commit")
        if self.fail_commit:
            raise SolrServiceError("commit failed")
        if self.intercept_on_commit:
            self._error_intercepted = True
            return
        if self._pending is not None:
            self.committed = self._pending
            self.count = len(self.committed)
        self._pending = None

    async def discard_pending(self) -> int:
        self.discarded += 1
        return 0

    async def rollback(self) -> None:
        self.calls.append("rollback")
        if self.fail_rollback:
            raise SolrServiceError("rollback failed")
        self._pending = None

    async def aclose(self) -> None:
        self.calls.append("aclose")


@pytest.fixture
def recording_solr() -> RecordingSolr:
    return RecordingSolr()


class BlockingSolr(RecordingSolr):
    """RecordingSolr whose ``add`` waits until ``release`` is set."""

    def __init__(self, **kwargs: Any):
        super().__init__(**kwargs)
        self.add_entered = asyncio.Event()
        self.release = asyncio.Event()

    async def add(self, documents: list[SearchDocument]) -> None:
        self.add_entered.set()
        await self.release.wait()
        await super().add(documents)


# ---------------- Fake Solr HTTP endpoint ----------------

CORE_PATH = "/solr/collection1"


@dataclass
class FakeSolrState:
    num_found: int = 0
    ping_status: int = 200
    header_status: int = 0
    fail_adds: bool = False
    update_delay: float = 0.0
    updates: list[Any] = field(default_factory=list)
    queries: list[dict[str, str]] = field(default_factory=list)


STATE = web.AppKey("state", FakeSolrState)


def _ok(state: FakeSolrState, **extra: Any) -> web.Response:
    return web.json_response({"responseHeader": {"status": state.header_status, "QTime": 3}, **extra})


async def _ping(request: web.Request) -> web.Response:
    state = request.app[STATE]
    state.queries.append(dict(request.query))
    if state.ping_status != 200:
        return web.Response(status=state.ping_status, text="unavailable")
    return _ok(state, status="OK")


async def _select(request: web.Request) -> web.Response:
    state = request.app[STATE]
    state.queries.append(dict(request.query))
    return _ok(state, response={"numFound": state.num_found, "start": 0, "docs": []})


async def _update(request: web.Request) -> web.Response:
    state = request.app[STATE]
    body = await request.json()
    if isinstance(body, list):
        if state.update_delay:
            await asyncio.sleep(state.update_delay)
        if state.fail_adds:
            return web.json_response({"error": {"msg": "undefined field"}}, status=400)
    state.updates.append(body)
    return _ok(state)


@pytest_asyncio.fixture
async def fake_solr():
    state = FakeSolrState()
    app = web.Application()
    app[STATE] = state
    app.router.add_get(f"{CORE_PATH}/admin/ping", _ping)
    app.router.add_get(f"{CORE_PATH}/select", _select)
    app.router.add_post(f"{CORE_PATH}/update", _update)

    server = TestServer(app)
    await server.start_server()
    try:
        yield server, state
    finally:
        await server.close()


def fake_solr_settings(server: TestServer, **overrides: Any) -> Settings:
    return Settings(solr_url=str(server.make_url(CORE_PATH)), solr_timeout=5.0, **overrides)
