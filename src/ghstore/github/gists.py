"""Gist backend: one named file inside a gist."""

import logging
from typing import Callable, Optional

from ..address import GistEntry
from ..config import StoreConfig
from ..error_handling import NotFound, StoreError, TransportError
from ..streams import ByteStream
from .client import GitHubClient
from .scanner import find_first

logger = logging.getLogger(__name__)


def _gist_matcher(entry: GistEntry) -> Callable[[dict], bool]:
    if entry.is_wildcard:
        return lambda gist: entry.name in (gist.get("files") or {})
    return lambda gist: gist.get("id") == entry.selector


async def find_gist(client: GitHubClient, config: StoreConfig, entry: GistEntry) -> Optional[dict]:
    """Scan the owner's gists for the one ``entry`` selects."""
    return await find_first(
        client,
        f"/users/{entry.owner}/gists",
        config.per_page,
        _gist_matcher(entry),
    )


def stable_raw_url(raw_url: str, name: str) -> str:
    """Drop the revision from a gist raw URL so it follows later edits."""
    return raw_url.split("/raw/", 1)[0] + "/raw/" + name


async def get_from_gist(client: GitHubClient, config: StoreConfig, entry: GistEntry) -> ByteStream:
    """Return the content of the named file in the selected gist."""
    gist = await find_gist(client, config, entry)
    if gist is None:
        raise NotFound(f"gist {entry.owner}/{entry.selector}")

    file = (gist.get("files") or {}).get(entry.name)
    if file is None:
        raise NotFound(f"gist {entry.owner}/{entry.selector}/{entry.name}")

    if file.get("content") is not None:
        return ByteStream.from_bytes(file["content"].encode("utf-8"))
    if file.get("raw_url"):
        return await client.open_stream(file["raw_url"])
    raise NotFound(f"gist {entry.owner}/{entry.selector}/{entry.name}")


async def put_in_gist(client: GitHubClient, config: StoreConfig, entry: GistEntry, data: bytes) -> str:
    """
    Create or replace the named file in the selected gist.

    An existing gist ends up holding only this file. A new gist is public and
    described by the selector.

    Returns:
        Raw URL of the file that stays valid across later edits
    """
    try:
        content = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise StoreError(f"gist content for {entry.name} must be UTF-8 text") from e

    gist = await find_gist(client, config, entry)

    if gist is None:
        logger.info("Creating gist for %s/%s", entry.owner, entry.name, extra={"address": entry.selector})
        result = await client.post_json(
            "/gists",
            {
                "public": True,
                "description": entry.selector,
                "files": {entry.name: {"content": content}},
            },
        )
    else:
        files: dict[str, Optional[dict]] = {
            other: None for other in (gist.get("files") or {}) if other != entry.name
        }
        files[entry.name] = {"filename": entry.name, "content": content}
        logger.info("Editing gist %s for %s", gist["id"], entry.name, extra={"address": entry.selector})
        result = await client.patch_json(f"/gists/{gist['id']}", {"files": files})

    raw_url = ((result.get("files") or {}).get(entry.name) or {}).get("raw_url")
    if not raw_url:
        raise TransportError(f"gist response has no raw_url for {entry.name}")
    return stable_raw_url(raw_url, entry.name)
