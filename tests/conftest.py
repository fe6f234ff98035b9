"""Pytest configuration for all tests."""

import copy
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
import structlog
from httpx import ASGITransport, AsyncClient

from gamebin.core.config import get_settings
from gamebin.domain.services import DEFAULT_COLLECTIONS, CollectionCatalog, CollectionStore
from gamebin.infrastructure.api.app import create_app
from gamebin.infrastructure.api.dependencies import get_collection_store

API_ENDPOINT = "https://jsonbin.test/v3"

BIN_IDS = {definition.name: definition.bin_id for definition in DEFAULT_COLLECTIONS}


class FakeClock:
    """Controllable time source returning epoch seconds."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRemote:
    """In-memory stand-in for the request cache in front of JSONBin.

    PUT bodies are stored per bin URL and served back by GET on the same
    bin, wrapped in JSONBin's ``record`` envelope.
    """

    def __init__(self) -> None:
        self.bins: dict[str, Any] = {}
        self.requests: list[tuple[str, dict[str, Any] | None]] = []
        self.invalidated: list[tuple[str, ...]] = []
        self.fail_get: Exception | None = None
        self.fail_put: Exception | None = None

    def bin_url(self, name: str) -> str:
        return f"{API_ENDPOINT}/b/{BIN_IDS[name]}"

    def seed(self, name: str, records: list[dict[str, Any]]) -> None:
        self.bins[self.bin_url(name)] = {name: copy.deepcopy(records)}

    def stored(self, name: str) -> list[dict[str, Any]]:
        return self.bins[self.bin_url(name)][name]

    def puts(self) -> list[tuple[str, dict[str, Any] | None]]:
        return [call for call in self.requests if (call[1] or {}).get("method") == "PUT"]

    async def request(self, url: str, options: dict[str, Any] | None = None) -> Any:
        self.requests.append((url, options))
        method = (options or {}).get("method", "GET")
        if method == "PUT":
            if self.fail_put is not None:
                raise self.fail_put
            self.bins[url] = copy.deepcopy(options["body"])
            return {"record": options["body"], "metadata": {"parentId": url.rsplit("/", 1)[-1]}}

        if self.fail_get is not None:
            raise self.fail_get
        return {"record": copy.deepcopy(self.bins.get(url.removesuffix("/latest"), {}))}

    def invalidate(self, *fragments: str) -> int:
        self.invalidated.append(fragments)
        return 0

    def stats(self) -> dict[str, Any]:
        return {"entries": 0, "remote_calls": len(self.requests)}


class CountingIds:
    """Deterministic id factory: ``<name>_1``, ``<name>_2``, ..."""

    def __init__(self) -> None:
        self.count = 0

    def __call__(self, name: str) -> str:
        self.count += 1
        return f"{name}_{self.count}"


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Keep tests independent of the developer's .env, cache file and logging setup."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("GAMEBIN_CACHE_PERSIST_ENABLED", "false")
    monkeypatch.setenv("GAMEBIN_API_ENDPOINT", API_ENDPOINT)
    monkeypatch.setenv("GAMEBIN_MASTER_KEY", "test-master-key")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    structlog.reset_defaults()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def catalog() -> CollectionCatalog:
    return CollectionCatalog()


@pytest.fixture
def store(catalog, remote) -> CollectionStore:
    """Collection store wired to the in-memory remote."""
    return CollectionStore(
        catalog=catalog,
        remote=remote,
        api_endpoint=API_ENDPOINT,
        id_factory=CountingIds(),
    )


@pytest.fixture
def animals() -> list[dict[str, Any]]:
    return [
        {
            "id": "animal_wolf",
            "name": "Wolf",
            "type": "Predator",
            "rarity": "Common",
            "health": 100,
            "damage": 25,
            "location": ["Forest", "Mountains"],
            "drops": ["Pelt", "Meat"],
            "behavior": "Hunts in packs",
        },
        {
            "id": "animal_bear",
            "name": "Bear",
            "type": "Predator",
            "rarity": "Rare",
            "health": 300,
            "damage": 60,
            "location": ["Forest"],
            "drops": ["Fur", "Claw"],
            "behavior": "Territorial",
        },
        {
            "id": "animal_rabbit",
            "name": "rabbit",
            "type": "Small Game",
            "rarity": "Common",
            "health": 10,
            "damage": 0,
            "location": ["Meadow"],
            "drops": ["Meat"],
            "behavior": "Flees when approached",
        },
    ]


@pytest_asyncio.fixture
async def client(store) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client whose endpoints use the in-memory store."""
    app = create_app()
    app.dependency_overrides[get_collection_store] = lambda: store

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides = {}
