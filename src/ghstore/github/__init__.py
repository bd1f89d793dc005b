"""GitHub REST backends for ghstore"""

from .client import GitHubClient
from .gists import find_gist, get_from_gist, put_in_gist, stable_raw_url
from .releases import (
    find_release,
    get_from_release_asset,
    put_file_in_release_asset,
    put_in_release_asset,
)
from .scanner import find_first, iter_pages

__all__ = [
    "GitHubClient",
    # Scanning
    "iter_pages",
    "find_first",
    # Gists
    "find_gist",
    "get_from_gist",
    "put_in_gist",
    "stable_raw_url",
    # Release assets
    "find_release",
    "get_from_release_asset",
    "put_in_release_asset",
    "put_file_in_release_asset",
]
