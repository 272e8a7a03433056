"""
Object store interface consumed by the gateway.

The gateway never owns object state: every store implements this protocol
and the gateway only translates HTTP to these calls and back.

Contract:
- put() pulls the body one chunk at a time; it must not read ahead of what
  it is about to write. A put that fails (store error or body error) leaves
  no visible partial object.
- get() returns None on a miss; the returned body is an async iterator that
  must be consumed or closed (aclose) by the caller.
- list() returns at most `limit` entries in store-defined order.
- Store-side failures raise StoreFailure. Exceptions coming out of the body
  iterator (client disconnect) propagate unchanged.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Dict, List, Optional, Protocol, runtime_checkable

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class ObjectInfo:
    """Listing entry: metadata-only projection of a stored object."""
    key: str
    size: int
    uploaded_at: datetime


@dataclass(frozen=True)
class WrittenObject:
    """Store acknowledgement of a completed put."""
    key: str
    size: int
    etag: Optional[str] = None


@dataclass(frozen=True)
class StoredObject:
    """A stored object opened for reading."""
    key: str
    body: AsyncIterator[bytes]
    content_type: str
    etag: Optional[str] = None
    size: Optional[int] = None
    uploaded_at: Optional[datetime] = None
    # Optional HTTP metadata kept alongside the object (Content-Disposition, ...)
    http_metadata: Dict[str, str] = field(default_factory=dict)


@runtime_checkable
class ObjectStore(Protocol):
    """Key -> blob storage with streaming read/write, metadata and listing."""

    backend_name: str

    async def put(
        self,
        key: str,
        body: AsyncIterator[bytes],
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> WrittenObject: ...

    async def get(self, key: str) -> Optional[StoredObject]: ...

    async def list(self, limit: int = 1000) -> List[ObjectInfo]: ...

    async def ping(self) -> None: ...

    async def close(self) -> None: ...
