"""
In-process object store for local development and tests.

Objects live in a dict guarded by an asyncio.Lock. A put accumulates its
body privately and only becomes visible once the body has been fully
consumed, so an interrupted upload never replaces the previous object.
"""
import hashlib
import logging
from asyncio import Lock
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, List, Optional

from filegate.storage.base import (
    DEFAULT_CONTENT_TYPE,
    ObjectInfo,
    StoredObject,
    WrittenObject,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Record:
    data: bytes
    content_type: str
    etag: str
    uploaded_at: datetime


class MemoryObjectStore:
    """Simple in-memory ObjectStore."""

    backend_name = "memory"

    def __init__(self, read_chunk_size: int = 64 * 1024) -> None:
        self._objects: Dict[str, _Record] = {}
        self._lock = Lock()
        self._read_chunk_size = read_chunk_size

    async def put(
        self,
        key: str,
        body: AsyncIterator[bytes],
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> WrittenObject:
        data = bytearray()
        digest = hashlib.md5()
        async for chunk in body:
            data.extend(chunk)
            digest.update(chunk)

        record = _Record(
            data=bytes(data),
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            etag=f'"{digest.hexdigest()}"',
            uploaded_at=datetime.now(timezone.utc),
        )
        async with self._lock:
            self._objects[key] = record

        logger.debug(f"Stored {key} in memory ({len(record.data)} bytes)")
        return WrittenObject(key=key, size=len(record.data), etag=record.etag)

    async def get(self, key: str) -> Optional[StoredObject]:
        async with self._lock:
            record = self._objects.get(key)
        if record is None:
            return None
        return StoredObject(
            key=key,
            body=self._iter_chunks(record.data),
            content_type=record.content_type,
            etag=record.etag,
            size=len(record.data),
            uploaded_at=record.uploaded_at,
        )

    async def _iter_chunks(self, data: bytes) -> AsyncIterator[bytes]:
        view = memoryview(data)
        for offset in range(0, len(data), self._read_chunk_size):
            yield bytes(view[offset:offset + self._read_chunk_size])

    async def list(self, limit: int = 1000) -> List[ObjectInfo]:
        async with self._lock:
            items = list(self._objects.items())[:limit]
        return [
            ObjectInfo(key=key, size=len(record.data), uploaded_at=record.uploaded_at)
            for key, record in items
        ]

    async def ping(self) -> None:
        return None

    async def close(self) -> None:
        async with self._lock:
            self._objects.clear()
