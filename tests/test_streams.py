"""
Tests for ByteStream and put sources.
"""

import io

import pytest

from ghstore.streams import CHUNK_SIZE, ByteStream, copy_source, read_source


class ReleaseCounter:
    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1


def _counted_stream(data: bytes):
    buffer = io.BytesIO(data)
    release = ReleaseCounter()

    async def read(size):
        return buffer.read(size)

    return ByteStream(read, release), release


class TestByteStream:
    @pytest.mark.asyncio
    async def test_read_all_releases_once(self):
        stream, release = _counted_stream(b"payload")

        assert await stream.read() == b"payload"
        assert stream.closed
        assert await stream.read() == b""
        await stream.close()
        assert release.calls == 1

    @pytest.mark.asyncio
    async def test_chunked_read_releases_at_end_of_stream(self):
        stream, release = _counted_stream(b"abcdef")

        assert await stream.read(4) == b"abcd"
        assert not stream.closed
        assert await stream.read(4) == b"ef"
        assert release.calls == 0
        assert await stream.read(4) == b""
        assert release.calls == 1

    @pytest.mark.asyncio
    async def test_early_close(self):
        stream, release = _counted_stream(b"abcdef")
        async with stream:
            assert await stream.read(1) == b"a"
        assert stream.closed
        assert release.calls == 1

    @pytest.mark.asyncio
    async def test_async_iteration(self):
        data = b"x" * (CHUNK_SIZE * 2 + 10)
        stream, release = _counted_stream(data)

        chunks = [chunk async for chunk in stream]

        assert b"".join(chunks) == data
        assert len(chunks) == 3
        assert release.calls == 1

    @pytest.mark.asyncio
    async def test_awaitable_release(self):
        released = []

        async def release():
            released.append(True)

        async def read(size):
            return b""

        stream = ByteStream(read, release)
        assert await stream.read() == b""
        assert released == [True]

    @pytest.mark.asyncio
    async def test_from_file(self, tmp_path):
        path = tmp_path / "data.bin"
        path.write_bytes(b"\x00\x01\x02")

        stream = ByteStream.from_file(path)
        assert await stream.read() == b"\x00\x01\x02"
        assert stream.closed

    def test_from_file_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ByteStream.from_file(tmp_path / "absent")

    @pytest.mark.asyncio
    async def test_from_bytes(self):
        stream = ByteStream.from_bytes(b"hello")
        assert await stream.read(2) == b"he"
        assert await stream.read() == b"llo"


class TestSources:
    @pytest.mark.parametrize("source", [b"data", bytearray(b"data"), memoryview(b"data")])
    def test_read_buffer(self, source):
        assert read_source(source) == b"data"

    def test_read_file_object(self):
        assert read_source(io.BytesIO(b"data")) == b"data"

    def test_copy_file_object_in_chunks(self):
        data = b"y" * (CHUNK_SIZE + 1)
        target = io.BytesIO()

        assert copy_source(io.BytesIO(data), target) == len(data)
        assert target.getvalue() == data

    def test_copy_bytes(self):
        target = io.BytesIO()
        assert copy_source(b"abc", target) == 3
        assert target.getvalue() == b"abc"
