"""Pytest configuration and fixtures."""

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.database import Base
from app.services.auth import AuthSessionManager
from app.services.backend_client import BackendClient
from app.services.commands import CommandBus
from app.services.fetch import FetchCoordinator
from app.services.notifications import Notifier
from app.services.pipeline import Pipeline
from app.services.state import PipelineState
from app.services.store import SqlStore
from app.services.sync import SyncCoordinator
from app.services.va_client import VAClient
from app.worker import SyncWorker

VA_BASE_URL = "https://api.va.gov"
BACKEND_BASE_URL = "https://vetclaimservices.com/v1"
START_TIME = 1_700_000_000.0


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeAPI:
    """Scripted HTTP responses keyed by (method, path).

    Each route holds a queue of responses; the last one repeats. A response
    is a (status, body) tuple or an exception to raise.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Any]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, *responses: Any):
        self.routes[(method, path)] = list(responses)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"errors": [{"title": "Not found"}]})

        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response

        status, body = response
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]


class RecordingNotifier(Notifier):
    def __init__(self):
        self.sent: List[Tuple[str, str]] = []

    def notify(self, title: str, message: str) -> None:
        self.sent.append((title, message))


@dataclass
class Harness:
    api: FakeAPI
    clock: FakeClock
    state: PipelineState
    store: SqlStore
    va: VAClient
    backend: BackendClient
    auth: AuthSessionManager
    sync: SyncCoordinator
    fetcher: FetchCoordinator
    pipeline: Pipeline
    notifier: RecordingNotifier
    bus: CommandBus
    worker: SyncWorker


@pytest_asyncio.fixture(scope="function")
async def test_db():
    """Create an in-memory test database for each test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    TestingSessionLocal = sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    yield TestingSessionLocal

    await engine.dispose()


@pytest.fixture
def store(test_db) -> SqlStore:
    return SqlStore(test_db)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def api() -> FakeAPI:
    return FakeAPI()


@pytest_asyncio.fixture
async def harness(api, clock, store):
    """Fully wired pipeline on top of the fake API and in-memory store."""
    transport = httpx.MockTransport(api.handler)
    va = VAClient(httpx.AsyncClient(transport=transport, base_url=VA_BASE_URL))
    backend = BackendClient(httpx.AsyncClient(transport=transport, base_url=BACKEND_BASE_URL))

    state = PipelineState()
    notifier = RecordingNotifier()
    auth = AuthSessionManager(store, backend)
    sync = SyncCoordinator(store, backend, auth, clock=clock)
    fetcher = FetchCoordinator(va, store, state, cooldown_seconds=60, clock=clock)
    pipeline = Pipeline(fetcher, sync, auth, store, notifier=notifier, clock=clock)

    yield Harness(
        api=api,
        clock=clock,
        state=state,
        store=store,
        va=va,
        backend=backend,
        auth=auth,
        sync=sync,
        fetcher=fetcher,
        pipeline=pipeline,
        notifier=notifier,
        bus=CommandBus(pipeline, auth, store),
        worker=SyncWorker(auth, sync, store, state, interval=300),
    )

    await va.aclose()
    await backend.aclose()
