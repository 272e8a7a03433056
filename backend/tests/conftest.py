"""
Test configuration and fixtures.
Runs the real application against an in-memory object store.
"""
import os

# Set test environment before any imports
os.environ["ENVIRONMENT"] = "test"
os.environ["STORAGE_BACKEND"] = "memory"

import pytest
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, List, Optional

from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from filegate.errors import StoreFailure
from filegate.storage import MemoryObjectStore, ObjectInfo, StoredObject, WrittenObject
from filegate.storage.base import DEFAULT_CONTENT_TYPE


class RecordingStore(MemoryObjectStore):
    """Memory store that records every put call."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.put_calls: List[str] = []

    async def put(self, key, body, content_type=DEFAULT_CONTENT_TYPE) -> WrittenObject:
        self.put_calls.append(key)
        return await super().put(key, body, content_type)


class FailingStore:
    """Store whose every operation fails like an unreachable backend."""

    backend_name = "failing"

    def __init__(self):
        self.put_calls: List[str] = []

    async def put(self, key: str, body: AsyncIterator[bytes], content_type: str = DEFAULT_CONTENT_TYPE) -> WrittenObject:
        self.put_calls.append(key)
        # Fail after the first chunk, mid-stream
        async for _ in body:
            break
        raise StoreFailure("put", ConnectionError("connection reset"), key=key)

    async def get(self, key: str) -> Optional[StoredObject]:
        raise StoreFailure("get", ConnectionError("connection reset"), key=key)

    async def list(self, limit: int = 1000) -> List[ObjectInfo]:
        raise StoreFailure("list", ConnectionError("connection reset"))

    async def ping(self) -> None:
        raise StoreFailure("ping", ConnectionError("connection refused"))

    async def close(self) -> None:
        return None


@pytest.fixture(scope="function")
def store() -> RecordingStore:
    """Fresh in-memory store with small read chunks."""
    return RecordingStore(read_chunk_size=4)


@pytest.fixture(scope="function")
def failing_store() -> FailingStore:
    return FailingStore()


def get_test_app(store) -> FastAPI:
    """Return the application with the object store dependency overridden."""
    from filegate.main import app
    from filegate.api.dependencies import get_object_store

    app.dependency_overrides[get_object_store] = lambda: store
    return app


@asynccontextmanager
async def client_for(store) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the app with `store` injected."""
    app = get_test_app(store)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(store) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client backed by the in-memory store."""
    async with client_for(store) as ac:
        yield ac


@pytest.fixture(scope="function")
async def failing_client(failing_store) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client whose store always fails."""
    async with client_for(failing_store) as ac:
        yield ac


@pytest.fixture
def make_client():
    """Factory for clients bound to a custom store: `async with make_client(store) as ac`."""
    return client_for
