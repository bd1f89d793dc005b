"""Release asset backend: one named asset attached to a tagged release."""

import logging
import re
from pathlib import Path
from typing import Optional

from ..address import ReleaseAsset
from ..config import StoreConfig
from ..error_handling import NotFound, TransportError
from ..streams import ByteStream, Source, copy_source
from .client import GitHubClient
from .scanner import find_first

logger = logging.getLogger(__name__)

# Hypermedia template suffix on upload_url, e.g. "{?name,label}"
_URI_TEMPLATE = re.compile(r"\{[^}]*\}$")


def _releases_endpoint(asset: ReleaseAsset) -> str:
    return f"/repos/{asset.owner}/{asset.repo}/releases"


async def find_release(client: GitHubClient, config: StoreConfig, asset: ReleaseAsset) -> Optional[dict]:
    """
    Look up the release by tag, falling back to scanning all releases for a
    matching name or tag (drafts have no tag lookup).
    """
    try:
        return await client.get_json(f"{_releases_endpoint(asset)}/tags/{asset.release}")
    except NotFound:
        logger.debug("No release tagged %s, scanning releases", asset.release)

    return await find_first(
        client,
        _releases_endpoint(asset),
        config.per_page,
        lambda release: asset.release in (release.get("tag_name"), release.get("name")),
    )


def _find_asset(release: dict, name: str) -> Optional[dict]:
    for item in release.get("assets") or []:
        if item.get("name") == name:
            return item
    return None


async def get_from_release_asset(client: GitHubClient, config: StoreConfig, asset: ReleaseAsset) -> ByteStream:
    """Stream the named asset of the release."""
    release = await find_release(client, config, asset)
    if release is None:
        raise NotFound(f"release {asset.owner}/{asset.repo}/{asset.release}")

    item = _find_asset(release, asset.name)
    if item is None or not item.get("browser_download_url"):
        raise NotFound(f"asset {asset.owner}/{asset.repo}/{asset.release}/{asset.name}")
    return await client.open_stream(item["browser_download_url"])


def spool_path(config: StoreConfig, asset: ReleaseAsset) -> Path:
    return Path(config.tmp_dir) / "asset" / asset.owner / asset.repo / asset.release / asset.name


async def put_in_release_asset(client: GitHubClient, config: StoreConfig, asset: ReleaseAsset, source: Source) -> str:
    """Spool ``source`` to a local file, then upload it as the asset."""
    path = spool_path(config, asset)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        copy_source(source, f)
    return await put_file_in_release_asset(client, config, asset, path)


async def put_file_in_release_asset(client: GitHubClient, config: StoreConfig, asset: ReleaseAsset, path: Path) -> str:
    """
    Upload ``path`` as the named asset, creating the release if needed.

    A same-named asset is deleted before the upload. If the upload then
    fails, the release is left without that asset.

    Returns:
        Public download URL of the uploaded asset
    """
    release = await find_release(client, config, asset)

    if release is None:
        logger.info("Creating release %s in %s/%s", asset.release, asset.owner, asset.repo)
        release = await client.post_json(
            _releases_endpoint(asset),
            {"tag_name": asset.release, "name": asset.release, "draft": False},
        )
    else:
        existing = _find_asset(release, asset.name)
        if existing is not None:
            logger.info("Deleting asset %s (%s)", asset.name, existing["id"])
            await client.delete(f"{_releases_endpoint(asset)}/assets/{existing['id']}")

    upload_url = release.get("upload_url")
    if not upload_url:
        raise TransportError(f"release {asset.release} has no upload_url")
    upload_url = _URI_TEMPLATE.sub("", upload_url)

    logger.info("Uploading asset %s to release %s", asset.name, asset.release)
    result = await client.upload(upload_url, Path(path), params={"name": asset.name})
    download_url = result.get("browser_download_url")
    if not download_url:
        raise TransportError(f"upload response has no browser_download_url for {asset.name}")
    return download_url
