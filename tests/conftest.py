import pytest
from fastapi.testclient import TestClient

from dashboard.cache.entry_store import EntryStore
from dashboard.cache.notifier import MutationNotifier
from dashboard.cache.orchestrator import FetchOrchestrator
from dashboard.cache.registry import CollectionRegistry
from dashboard.cache.storage import InMemoryStorage
from dashboard.core.config import Settings
from dashboard.core.container import Container, get_container
from dashboard.db.documents import InMemoryDocumentStore
from dashboard.main import app

MAX_AGE = 300000


class FakeClock:
    """Epoch-millisecond clock that only moves when told to (or on every read, with ``tick``)."""

    def __init__(self, now: int = 0, tick: int = 0):
        self.now = now
        self.tick = tick

    def __call__(self) -> int:
        current = self.now
        self.now += self.tick
        return current

    def set(self, now: int) -> None:
        self.now = now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock(now=1000)


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def entries(storage, clock):
    return EntryStore(storage, clock)


@pytest.fixture
def registry(storage, clock):
    return CollectionRegistry(storage, clock)


@pytest.fixture
def orchestrator(entries, registry, clock):
    return FetchOrchestrator(entries, registry, clock, default_max_age=MAX_AGE)


@pytest.fixture
def notifier(registry):
    return MutationNotifier(registry)


@pytest.fixture
def documents(clock):
    return InMemoryDocumentStore(clock)


@pytest.fixture
def container():
    ticking = FakeClock(now=1_700_000_000_000, tick=1)
    return Container(
        Settings(CACHE_BACKEND="memory"),
        storage=InMemoryStorage(),
        documents=InMemoryDocumentStore(ticking),
        clock=ticking,
    )


@pytest.fixture
def client(container):
    app.dependency_overrides[get_container] = lambda: container
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
