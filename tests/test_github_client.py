"""
Tests for the GitHub REST client against the in-memory API.
"""

import aiohttp
import pytest

from ghstore.error_handling import NotFound, TransportError
from ghstore.github.client import GitHubClient


class TestRequests:
    @pytest.mark.asyncio
    async def test_not_found(self, github_client):
        with pytest.raises(NotFound):
            await github_client.get_json("/repos/o/r/releases/tags/none")

    @pytest.mark.asyncio
    async def test_error_status(self, github_client):
        with pytest.raises(TransportError) as exc_info:
            await github_client.get_json("/boom")
        assert exc_info.value.status == 500
        assert "boom" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        async with aiohttp.ClientSession() as session:
            client = GitHubClient(token="t", session=session, base_url="http://127.0.0.1:1")
            with pytest.raises(TransportError) as exc_info:
                await client.get_json("/anything")
        assert exc_info.value.status is None

    @pytest.mark.asyncio
    async def test_sends_bearer_token(self, github_client, fake_github):
        captured = {}

        async def on_request_start(session, ctx, params):
            captured.update(params.headers)

        trace = aiohttp.TraceConfig()
        trace.on_request_start.append(on_request_start)
        async with aiohttp.ClientSession(trace_configs=[trace]) as session:
            client = GitHubClient(token="secret-token", session=session, base_url=fake_github.base_url)
            await client.get_page("/users/testuser/gists", 1, 10)

        assert captured["Authorization"] == "Bearer secret-token"


class TestPagination:
    @pytest.mark.asyncio
    async def test_next_page_from_link_header(self, github_client, fake_github):
        for i in range(5):
            fake_github.add_gist("testuser", {f"f{i}.txt": str(i)})

        items, next_page = await github_client.get_page("/users/testuser/gists", 1, 2)
        assert len(items) == 2
        assert next_page == 2

        items, next_page = await github_client.get_page("/users/testuser/gists", 3, 2)
        assert len(items) == 1
        assert next_page is None


class TestTokenFormat:
    @pytest.mark.parametrize(
        "token,valid",
        [
            ("ghp_" + "a" * 36, True),
            ("github_pat_" + "b" * 82, True),
            ("not-a-token", False),
            ("", False),
        ],
    )
    def test_is_valid_github_token(self, token, valid):
        assert GitHubClient._is_valid_github_token(token) is valid

    @pytest.mark.asyncio
    async def test_odd_token_only_warns(self, caplog):
        async with aiohttp.ClientSession() as session:
            GitHubClient(token="test-token", session=session)
        assert "token format appears invalid" in caplog.text
