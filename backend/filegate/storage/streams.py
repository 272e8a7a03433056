"""
Stream adapters between the async HTTP layer and synchronous storage SDKs.

boto3 reads uploads through a blocking file-like object from its own
transfer threads, and hands downloads back as a blocking StreamingBody.
These adapters bridge both directions one chunk at a time so the gateway
never holds more than a bounded window of an object in memory.
"""
import asyncio
import logging
from typing import AsyncIterator, Callable, Iterator, Optional, Tuple

from starlette.concurrency import iterate_in_threadpool

logger = logging.getLogger(__name__)


async def peek_body(body: AsyncIterator[bytes]) -> Tuple[Optional[bytes], AsyncIterator[bytes]]:
    """
    Pull the first non-empty chunk of a body.

    Returns (first_chunk, stream) where `stream` yields the full body again,
    starting with the peeked chunk. first_chunk is None when the body ends
    without producing a single byte.
    """
    async for chunk in body:
        if chunk:
            return chunk, _prepend(chunk, body)
    return None, _empty()


async def _prepend(first: bytes, rest: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    yield first
    async for chunk in rest:
        if chunk:
            yield chunk


async def _empty() -> AsyncIterator[bytes]:
    return
    yield


class AsyncIteratorReader:
    """
    Blocking, non-seekable file-like view over an async byte iterator.

    read() may be called from any thread other than the event loop thread;
    each pull of the underlying iterator is scheduled back on `loop` and
    waited for. The internal buffer never exceeds one read request plus one
    upstream chunk.
    """

    def __init__(self, body: AsyncIterator[bytes], loop: asyncio.AbstractEventLoop):
        self._body = body.__aiter__()
        self._loop = loop
        self._buffer = bytearray()
        self._eof = False
        self.bytes_read = 0

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        # Non-seekable: boto3 must stream parts instead of seeking around
        return False

    def _pull(self) -> Optional[bytes]:
        if self._eof:
            return None
        future = asyncio.run_coroutine_threadsafe(self._next_chunk(), self._loop)
        chunk = future.result()
        if chunk is None:
            self._eof = True
        return chunk

    async def _next_chunk(self) -> Optional[bytes]:
        try:
            return await self._body.__anext__()
        except StopAsyncIteration:
            return None

    def read(self, size: int = -1) -> bytes:
        """
        Read up to `size` bytes, blocking until that many are available or
        the body ends. A short read therefore always means end of stream.
        """
        if size is None or size < 0:
            while self._pull_into_buffer():
                pass
            data = bytes(self._buffer)
            self._buffer.clear()
        else:
            while len(self._buffer) < size and self._pull_into_buffer():
                pass
            data = bytes(self._buffer[:size])
            del self._buffer[:size]
        self.bytes_read += len(data)
        return data

    def _pull_into_buffer(self) -> bool:
        chunk = self._pull()
        if chunk is None:
            return False
        self._buffer.extend(chunk)
        return True

    def close(self) -> None:
        self._buffer.clear()


async def iterate_sync_body(
    chunks: Iterator[bytes],
    close: Callable[[], None],
    on_error: Optional[Callable[[Exception], Exception]] = None,
) -> AsyncIterator[bytes]:
    """
    Async iterator over a blocking chunk iterator, each step run in the
    thread pool. `close` always runs, whether the consumer finishes, fails,
    or abandons the stream (client disconnect).

    `on_error` translates SDK exceptions raised mid-stream.
    """
    try:
        async for chunk in iterate_in_threadpool(chunks):
            yield chunk
    except Exception as e:
        if on_error is None:
            raise
        raise on_error(e) from e
    finally:
        try:
            close()
        except Exception as e:
            logger.warning(f"Failed to close object body: {e}")
