"""Object store: put a byte stream under an address, get it back.

    async with ObjectStore(config) as store:
        url = await store.put("git://owner/repo/main/data/file.json", b"{}")
        stream = await store.get("gist://owner/*/notes.txt")
        data = await stream.read()
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import aiohttp

from .address import GistEntry, GitFile, ReleaseAsset, parse_address
from .config import StoreConfig
from .git.mirror import MirrorArena
from .git.operations import get_from_git, put_in_git
from .github.client import GitHubClient
from .github.gists import get_from_gist, put_in_gist
from .github.releases import (
    get_from_release_asset,
    put_file_in_release_asset,
    put_in_release_asset,
)
from .streams import ByteStream, Source, read_source

logger = logging.getLogger(__name__)


class ObjectStore:
    """Dispatches addresses to the git, release asset and gist backends."""

    def __init__(
        self,
        config: StoreConfig,
        session: Optional[aiohttp.ClientSession] = None,
        arena: Optional[MirrorArena] = None,
    ):
        self.config = config
        self.arena = arena or MirrorArena(config)
        self._session = session
        self._owns_session = session is None
        self._client: Optional[GitHubClient] = None

    async def __aenter__(self) -> "ObjectStore":
        if self._session is None:
            self._session = aiohttp.ClientSession()
        self._client = GitHubClient(token=self.config.token, session=self._session, base_url=self.config.api_url)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
        self._client = None

    @property
    def client(self) -> GitHubClient:
        if self._client is None:
            raise RuntimeError("ObjectStore must be used as an async context manager")
        return self._client

    @asynccontextmanager
    async def _deadline(self, uri: str, operation: str, timeout: Optional[float]):
        """Bound the call by ``timeout`` and yield its monotonic deadline."""
        timeout = timeout if timeout is not None else self.config.timeout
        start = time.monotonic()
        deadline = start + timeout if timeout is not None else None
        async with asyncio.timeout(timeout):
            yield deadline
        logger.debug(
            "%s %s done",
            operation,
            uri,
            extra={"address": uri, "duration_ms": round((time.monotonic() - start) * 1000, 1)},
        )

    async def get(self, uri: str, timeout: Optional[float] = None) -> ByteStream:
        """Return the content stored at ``uri`` as a stream."""
        address = parse_address(uri)
        async with self._deadline(uri, "get", timeout) as deadline:
            match address:
                case GitFile():
                    return await get_from_git(self.arena, address, deadline)
                case ReleaseAsset():
                    return await get_from_release_asset(self.client, self.config, address)
                case GistEntry():
                    return await get_from_gist(self.client, self.config, address)

    async def put(self, uri: str, source: Source, timeout: Optional[float] = None) -> str:
        """Store ``source`` at ``uri`` and return a URL to the stored content."""
        address = parse_address(uri)
        async with self._deadline(uri, "put", timeout) as deadline:
            match address:
                case GitFile():
                    return await put_in_git(self.arena, address, source, deadline)
                case ReleaseAsset():
                    return await put_in_release_asset(self.client, self.config, address, source)
                case GistEntry():
                    return await put_in_gist(self.client, self.config, address, read_source(source))

    async def put_file(self, uri: str, path: Path, timeout: Optional[float] = None) -> str:
        """Store the contents of the local file ``path`` at ``uri``."""
        address = parse_address(uri)
        path = Path(path)
        if isinstance(address, ReleaseAsset):
            async with self._deadline(uri, "put", timeout):
                return await put_file_in_release_asset(self.client, self.config, address, path)
        with open(path, "rb") as f:
            return await self.put(uri, f, timeout)
