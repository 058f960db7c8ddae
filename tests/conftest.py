from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from metrics_store.config import Settings, get_settings
from metrics_store.db.datastore import InMemoryDatastore
from metrics_store.factory import create_app

_SETTINGS_ENV = (
    "LISTEN_HOST",
    "LISTEN_PORT",
    "DEBUG",
    "MAX_REQUEST_BODY_SIZE",
    "ALLOW_UNKNOWN_FIELDS",
    "SHUTDOWN_TIMEOUT",
)


class RecordingDatastore(InMemoryDatastore):
    """Real datastore that remembers every insert attempt."""

    def __init__(self) -> None:
        super().__init__()
        self.insert_calls: list[str] = []

    def insert(self, key, record):
        self.insert_calls.append(key)
        return super().insert(key, record)


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def datastore() -> RecordingDatastore:
    return RecordingDatastore()


@pytest.fixture
def settings() -> Settings:
    return Settings(max_request_body_size=1024, allow_unknown_fields=False)


@pytest.fixture
def metrics_app(settings: Settings, datastore: RecordingDatastore) -> FastAPI:
    return create_app(settings=settings, datastore=datastore)


@pytest.fixture
async def api_client(metrics_app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=metrics_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
