"""
Object storage backends.

The gateway talks to one ObjectStore, built once at startup from settings
and shared by every request:
- r2: Cloudflare R2 / S3-compatible bucket (production)
- memory: in-process store (local development, tests)
"""
from filegate.config import Settings
from filegate.errors import ConfigurationError
from filegate.storage.base import (
    DEFAULT_CONTENT_TYPE,
    ObjectInfo,
    ObjectStore,
    StoredObject,
    WrittenObject,
)
from filegate.storage.memory import MemoryObjectStore
from filegate.storage.r2_client import R2ObjectStore


def build_object_store(settings: Settings) -> ObjectStore:
    """Construct the configured ObjectStore."""
    backend = settings.resolved_storage_backend
    if backend == "r2":
        return R2ObjectStore.from_settings(settings)
    if backend == "memory":
        return MemoryObjectStore(read_chunk_size=settings.read_chunk_size)
    raise ConfigurationError(
        f"Unknown STORAGE_BACKEND '{settings.storage_backend}'. Must be 'r2' or 'memory'"
    )


__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "ObjectInfo",
    "ObjectStore",
    "StoredObject",
    "WrittenObject",
    "MemoryObjectStore",
    "R2ObjectStore",
    "build_object_store",
]
