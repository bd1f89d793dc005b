"""Address parsing for ghstore URIs.

    git://{owner}/{repo}/{branch}/{name...}
    asset://{owner}/{repo}/{release}/{name}
    gist://{owner}/{gist_id or *}/{name}
"""

from typing import Union
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict

from .error_handling import InvalidAddress

ANY_GIST = "*"

GIT_PATTERN = "git://owner/repository/branch/name"
ASSET_PATTERN = "asset://owner/repository/release/name"
GIST_PATTERN = "gist://owner/gist_id/name"


class GitFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    owner: str
    repo: str
    branch: str
    path: str


class ReleaseAsset(BaseModel):
    model_config = ConfigDict(frozen=True)

    owner: str
    repo: str
    release: str
    name: str


class GistEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    owner: str
    selector: str
    name: str

    @property
    def is_wildcard(self) -> bool:
        return self.selector == ANY_GIST


Address = Union[GitFile, ReleaseAsset, GistEntry]

# scheme -> (segment count including the host, pattern)
_SCHEMES = {
    "git": (4, GIT_PATTERN),
    "asset": (4, ASSET_PATTERN),
    "gist": (3, GIST_PATTERN),
}
ALL_PATTERNS = " | ".join(pattern for _, pattern in _SCHEMES.values())


def _split(uri: str, arity: int, pattern: str, host: str, path: str) -> list[str]:
    # The host is the owner; the remaining segments come from the path and
    # the last one keeps any further separators.
    rest = path[1:] if path.startswith("/") else path
    segments = [host] + rest.split("/", arity - 2)
    if len(segments) != arity or any(segment in ("", ".", "..") for segment in segments):
        raise InvalidAddress(uri, pattern)
    return segments


def parse_address(uri: str) -> Address:
    """
    Parse a scheme-qualified address.

    Args:
        uri: Address such as ``git://owner/repo/branch/dir/file``

    Returns:
        GitFile, ReleaseAsset or GistEntry

    Raises:
        InvalidAddress: If the URI is malformed, the scheme is unknown or the
            segment count does not match the scheme
    """
    try:
        parts = urlsplit(uri)
    except ValueError as e:
        raise InvalidAddress(uri, ALL_PATTERNS) from e

    if parts.scheme not in _SCHEMES:
        raise InvalidAddress(uri, ALL_PATTERNS)

    arity, pattern = _SCHEMES[parts.scheme]
    if parts.query or parts.fragment:
        raise InvalidAddress(uri, pattern)
    segments = _split(uri, arity, pattern, parts.netloc, parts.path)

    if parts.scheme == "git":
        owner, repo, branch, path = segments
        if any(part in ("", ".", "..") for part in path.split("/")):
            raise InvalidAddress(uri, pattern)
        return GitFile(owner=owner, repo=repo, branch=branch, path=path)
    if parts.scheme == "asset":
        owner, repo, release, name = segments
        if "/" in name:
            raise InvalidAddress(uri, pattern)
        return ReleaseAsset(owner=owner, repo=repo, release=release, name=name)
    owner, selector, name = segments
    if "/" in name:
        raise InvalidAddress(uri, pattern)
    return GistEntry(owner=owner, selector=selector, name=name)
