"""
File endpoints: the HTTP face of the object store.

- POST /upload        stream the request body into the store under X-Filename
- GET  /files         list stored objects (first page only)
- GET  /files/{key}   stream an object back

The gateway never buffers a whole object: upload bodies are handed to the
store as an async iterator that the store pulls one chunk at a time, and
downloads are streamed straight from the store's body iterator.
"""
import logging
import time
from contextlib import contextmanager
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from starlette.requests import ClientDisconnect

from filegate.api.dependencies import get_object_store
from filegate.config import settings
from filegate.errors import InvalidRequest, ObjectNotFound, StoreFailure
from filegate.schemas.files import ErrorResponse, FileEntry, UploadResponse, to_iso_timestamp
from filegate.storage import DEFAULT_CONTENT_TYPE, ObjectStore
from filegate.storage.streams import peek_body
from filegate.utils.logging import (
    log_file_served,
    log_files_listed,
    log_upload_aborted,
    log_upload_completed,
    log_upload_rejected,
)
from filegate.utils.metrics import (
    downloads_total,
    store_operation_duration_seconds,
    upload_bytes_total,
    uploads_total,
)

logger = logging.getLogger(__name__)

router = APIRouter()

NO_FILE_PROVIDED = "No file provided"

# Characters JavaScript's encodeURIComponent leaves unescaped (besides alphanumerics and -_.~)
_URI_COMPONENT_SAFE = "!~*'()"


@contextmanager
def _timed(store: ObjectStore, operation: str):
    start_time = time.time()
    try:
        yield
    finally:
        store_operation_duration_seconds.labels(
            backend=store.backend_name,
            operation=operation
        ).observe(time.time() - start_time)


def _length_hint(value: Optional[str]) -> int:
    """Content-Length as sent by the client; 0 when absent or malformed."""
    if not value:
        return 0
    try:
        return max(int(value), 0)
    except ValueError:
        return 0


def build_file_url(request: Request, key: str) -> str:
    """
    Retrieval URL for a key: origin + /files/ + percent-encoded key.

    PUBLIC_BASE_URL replaces the request origin when the gateway sits behind
    a proxy that rewrites the host.
    """
    if settings.public_base_url:
        base = settings.public_base_url.rstrip("/")
    else:
        base = f"{request.url.scheme}://{request.url.netloc}"
    return f"{base}/files/{quote(key, safe=_URI_COMPONENT_SAFE)}"


def _reject(reason: str, key: Optional[str] = None) -> InvalidRequest:
    uploads_total.labels(status="rejected").inc()
    log_upload_rejected(logger, reason=reason, key=key)
    return InvalidRequest(NO_FILE_PROVIDED)


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}}
)
async def upload_file(request: Request, store: ObjectStore = Depends(get_object_store)):
    """
    Stream the request body into the store.

    Headers:
    - X-Filename (required): object key
    - Content-Type (optional): stored as object metadata
    - Content-Length (optional): echoed back as `size`, never trusted

    The filename and the presence of a body are both checked before the
    store is touched; a rejected upload never writes anything.
    """
    filename = request.headers.get("x-filename")
    if not filename:
        raise _reject("missing filename")

    first_chunk, body = await peek_body(request.stream())
    if first_chunk is None:
        raise _reject("missing body", key=filename)

    content_type = request.headers.get("content-type") or DEFAULT_CONTENT_TYPE
    size_hint = _length_hint(request.headers.get("content-length"))

    start_time = time.time()
    try:
        with _timed(store, "put"):
            written = await store.put(filename, body, content_type)
    except StoreFailure:
        uploads_total.labels(status="failed").inc()
        raise
    except ClientDisconnect:
        uploads_total.labels(status="aborted").inc()
        log_upload_aborted(
            logger,
            key=filename,
            error="client disconnected",
            duration_ms=(time.time() - start_time) * 1000
        )
        raise

    uploads_total.labels(status="completed").inc()
    upload_bytes_total.inc(written.size)
    log_upload_completed(
        logger,
        key=filename,
        size=written.size,
        content_type=content_type,
        duration_ms=(time.time() - start_time) * 1000,
        size_hint=size_hint,
    )

    return UploadResponse(
        key=filename,
        url=build_file_url(request, filename),
        size=size_hint,
    )


@router.get("/files", response_model=List[FileEntry])
async def list_files(store: ObjectStore = Depends(get_object_store)):
    """
    List stored objects.

    Returns at most LIST_LIMIT entries in store order; a truncated listing
    is not signalled beyond the shorter result.
    """
    start_time = time.time()
    with _timed(store, "list"):
        objects = await store.list(limit=settings.list_limit)

    log_files_listed(
        logger,
        count=len(objects),
        limit=settings.list_limit,
        duration_ms=(time.time() - start_time) * 1000
    )
    return [
        FileEntry(key=obj.key, size=obj.size, uploaded=to_iso_timestamp(obj.uploaded_at))
        for obj in objects
    ]


@router.get("/files/{key:path}", responses={404: {"content": {"text/plain": {}}}})
async def read_file(key: str, store: ObjectStore = Depends(get_object_store)):
    """
    Stream a stored object back with its content type and ETag.

    The key arrives percent-decoded and may contain slashes.
    """
    if not key:
        downloads_total.labels(status="missing").inc()
        raise ObjectNotFound(key)

    with _timed(store, "get"):
        stored = await store.get(key)

    if stored is None:
        downloads_total.labels(status="missing").inc()
        raise ObjectNotFound(key)

    # Content-Type goes in headers verbatim so no charset gets appended to text/*
    headers = dict(stored.http_metadata)
    headers["Content-Type"] = stored.content_type
    if stored.etag:
        headers["ETag"] = stored.etag
    if stored.size is not None:
        headers["Content-Length"] = str(stored.size)

    downloads_total.labels(status="served").inc()
    log_file_served(logger, key=key, size=stored.size)

    return StreamingResponse(stored.body, headers=headers)
