"""Paginated scan over GitHub list endpoints."""

import logging
from typing import AsyncIterator, Callable, Optional

from ..error_handling import NotFound
from .client import GitHubClient

logger = logging.getLogger(__name__)


async def iter_pages(client: GitHubClient, endpoint: str, per_page: int) -> AsyncIterator[list[dict]]:
    """
    Yield pages of a list endpoint until the remote reports no next page.

    A 404 on the first page means an empty collection. Pages are requested
    lazily, so a consumer that stops iterating stops the scan.
    """
    page = 1
    first = True
    while True:
        try:
            items, next_page = await client.get_page(endpoint, page, per_page)
        except NotFound:
            if first:
                logger.debug("%s not found, treating as empty", endpoint)
                return
            raise
        first = False
        yield items
        if next_page is None:
            return
        page = next_page


async def find_first(
    client: GitHubClient,
    endpoint: str,
    per_page: int,
    match: Callable[[dict], bool],
) -> Optional[dict]:
    """Return the first item for which ``match`` is true, or None."""
    pages = iter_pages(client, endpoint, per_page)
    try:
        async for items in pages:
            for item in items:
                if match(item):
                    return item
    finally:
        await pages.aclose()
    return None
