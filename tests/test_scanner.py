"""
Tests for the paginated scanner.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from ghstore.error_handling import NotFound, TransportError
from ghstore.github.scanner import find_first, iter_pages


def _client(*pages):
    client = MagicMock()
    client.get_page = AsyncMock(side_effect=list(pages))
    return client


class TestFindFirst:
    """Test short-circuiting search over pages."""

    @pytest.mark.asyncio
    async def test_stops_at_first_match(self):
        client = _client(
            ([{"id": "a"}, {"id": "b"}], 2),
            ([{"id": "c"}, {"id": "d"}], 3),
            ([{"id": "e"}], None),
        )

        item = await find_first(client, "/users/o/gists", 2, lambda g: g["id"] == "c")

        assert item == {"id": "c"}
        assert client.get_page.await_count == 2
        client.get_page.assert_any_await("/users/o/gists", 1, 2)
        client.get_page.assert_awaited_with("/users/o/gists", 2, 2)

    @pytest.mark.asyncio
    async def test_no_match_reads_every_page(self):
        client = _client(([{"id": "a"}], 2), ([{"id": "b"}], None))

        assert await find_first(client, "/x", 1, lambda g: False) is None
        assert client.get_page.await_count == 2

    @pytest.mark.asyncio
    async def test_first_page_not_found_is_empty(self):
        client = _client(NotFound("GET /users/ghost/gists"))

        assert await find_first(client, "/users/ghost/gists", 100, lambda g: True) is None

    @pytest.mark.asyncio
    async def test_later_page_not_found_propagates(self):
        client = _client(([{"id": "a"}], 2), NotFound("GET /x page 2"))

        with pytest.raises(NotFound):
            await find_first(client, "/x", 1, lambda g: False)

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self):
        client = _client(TransportError("GET /x: 502", 502))

        with pytest.raises(TransportError):
            await find_first(client, "/x", 1, lambda g: True)


class TestIterPages:
    @pytest.mark.asyncio
    async def test_follows_next_page_numbers(self):
        client = _client(([1, 2], 2), ([3, 4], 5), ([5], None))

        pages = [page async for page in iter_pages(client, "/x", 2)]

        assert pages == [[1, 2], [3, 4], [5]]
        assert [call.args[1] for call in client.get_page.await_args_list] == [1, 2, 5]

    @pytest.mark.asyncio
    async def test_empty_first_page(self):
        client = _client(([], None))

        pages = [page async for page in iter_pages(client, "/x", 2)]

        assert pages == [[]]
