"""Byte streams returned by get operations."""

import inspect
import io
from pathlib import Path
from typing import Awaitable, BinaryIO, Callable, Optional, Union

import aiohttp

CHUNK_SIZE = 64 * 1024

Source = Union[bytes, bytearray, memoryview, BinaryIO]


class ByteStream:
    """
    Async byte stream that releases its underlying handle exactly once.

    The handle (file descriptor or HTTP body) is released the first time a
    read observes end-of-stream, or on ``close()``. Callers that stop reading
    early must call ``close()`` or use ``async with``.
    """

    def __init__(
        self,
        read: Callable[[int], Awaitable[bytes]],
        release: Optional[Callable[[], object]] = None,
    ):
        self._read = read
        self._release = release
        self._closed = False

    @classmethod
    def from_bytes(cls, data: bytes) -> "ByteStream":
        buffer = io.BytesIO(data)

        async def read(size: int) -> bytes:
            return buffer.read(size)

        return cls(read, buffer.close)

    @classmethod
    def from_file(cls, path: Path) -> "ByteStream":
        """Open ``path`` for reading. Raises FileNotFoundError if absent."""
        fileobj = open(path, "rb")

        async def read(size: int) -> bytes:
            return fileobj.read(size)

        return cls(read, fileobj.close)

    @classmethod
    def from_response(cls, response: aiohttp.ClientResponse) -> "ByteStream":
        async def read(size: int) -> bytes:
            return await response.content.read(size)

        return cls(read, response.release)

    @property
    def closed(self) -> bool:
        return self._closed

    async def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes, or everything left when ``size < 0``."""
        if self._closed:
            return b""
        data = await self._read(size)
        if size < 0 or not data:
            await self.close()
        return data

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._release is not None:
            result = self._release()
            if inspect.isawaitable(result):
                await result

    async def __aenter__(self) -> "ByteStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def __aiter__(self) -> "ByteStream":
        return self

    async def __anext__(self) -> bytes:
        chunk = await self.read(CHUNK_SIZE)
        if not chunk:
            raise StopAsyncIteration
        return chunk


def read_source(source: Source) -> bytes:
    """Drain a put source (bytes or binary file object) into memory."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)
    return source.read()


def copy_source(source: Source, target: BinaryIO) -> int:
    """Copy a put source into ``target`` in chunks, returning the byte count."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        return target.write(source)
    written = 0
    while True:
        chunk = source.read(CHUNK_SIZE)
        if not chunk:
            return written
        written += target.write(chunk)
