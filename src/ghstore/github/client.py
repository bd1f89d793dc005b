"""GitHub REST client"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import aiohttp

from ..error_handling import NotFound, TransportError
from ..streams import ByteStream

logger = logging.getLogger(__name__)


@dataclass
class GitHubClient:
    """GitHub API client with bearer token authentication."""

    token: str
    session: aiohttp.ClientSession
    base_url: str = "https://api.github.com"

    def __post_init__(self):
        if not self._is_valid_github_token(self.token):
            logger.warning("GitHub token format appears invalid")

    @staticmethod
    def _is_valid_github_token(token: str) -> bool:
        """Validate GitHub token format"""
        if not token or len(token.strip()) == 0:
            return False

        patterns = [
            r"^ghp_[a-zA-Z0-9]{36}$",  # Personal access tokens (classic)
            r"^github_pat_[a-zA-Z0-9_]{82}$",  # Fine-grained personal access tokens
            r"^ghs_[a-zA-Z0-9]{36}$",  # GitHub App installation tokens
            r"^ghu_[a-zA-Z0-9]{36}$",  # GitHub App user tokens
            r"^gho_[a-zA-Z0-9]{36}$",  # OAuth tokens
        ]

        return any(re.match(pattern, token.strip()) for pattern in patterns)

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        return f"{self.base_url.rstrip('/')}/{endpoint.lstrip('/')}"

    def _headers(self, accept: str = "application/vnd.github.v3+json") -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": accept,
            "User-Agent": "ghstore",
        }

    async def request(self, method: str, endpoint: str, **kwargs) -> aiohttp.ClientResponse:
        """
        Send a request and return the response for a successful status.

        The caller owns the returned response and must release it.

        Raises:
            NotFound: On a 404 response
            TransportError: On any other error status or connection failure
        """
        url = self._url(endpoint)
        headers = self._headers(kwargs.pop("accept", "application/vnd.github.v3+json"))
        headers.update(kwargs.pop("headers", {}))

        try:
            response = await self.session.request(method, url, headers=headers, **kwargs)
        except aiohttp.ClientError as e:
            raise TransportError(f"{method} {url}: {e}") from e

        if response.status == 404:
            response.release()
            raise NotFound(f"{method} {url}")
        if response.status >= 400:
            try:
                body = await response.text()
            except aiohttp.ClientError:
                body = ""
            finally:
                response.release()
            raise TransportError(f"{method} {url}: {response.status} {body}".strip(), response.status)
        return response

    async def _json(self, method: str, endpoint: str, **kwargs) -> Any:
        response = await self.request(method, endpoint, **kwargs)
        try:
            return await response.json()
        except (aiohttp.ClientError, ValueError) as e:
            raise TransportError(f"{method} {endpoint}: invalid JSON response: {e}") from e
        finally:
            response.release()

    async def get_json(self, endpoint: str, **kwargs) -> Any:
        """GET an endpoint and decode the JSON body."""
        return await self._json("GET", endpoint, **kwargs)

    async def post_json(self, endpoint: str, payload: dict, **kwargs) -> Any:
        """POST a JSON payload and decode the JSON body."""
        return await self._json("POST", endpoint, json=payload, **kwargs)

    async def patch_json(self, endpoint: str, payload: dict, **kwargs) -> Any:
        """PATCH a JSON payload and decode the JSON body."""
        return await self._json("PATCH", endpoint, json=payload, **kwargs)

    async def delete(self, endpoint: str) -> None:
        """DELETE an endpoint, discarding the body."""
        response = await self.request("DELETE", endpoint)
        response.release()

    async def get_page(self, endpoint: str, page: int, per_page: int) -> tuple[list, Optional[int]]:
        """
        Fetch one page of a list endpoint.

        Returns:
            The page items and the next page number, or None on the last page
        """
        params = {"per_page": per_page, "page": page}
        response = await self.request("GET", endpoint, params=params)
        try:
            items = await response.json()
            next_link = response.links.get("next")
        except (aiohttp.ClientError, ValueError) as e:
            raise TransportError(f"GET {endpoint}: invalid JSON response: {e}") from e
        finally:
            response.release()

        next_page = None
        if next_link is not None:
            value = next_link["url"].query.get("page")
            next_page = int(value) if value and value.isdigit() else None
        return items, next_page

    async def upload(
        self,
        url: str,
        path: Path,
        params: Optional[dict] = None,
        content_type: str = "application/octet-stream",
    ) -> Any:
        """POST the contents of ``path`` as the raw request body."""
        with open(path, "rb") as f:
            return await self._json(
                "POST",
                url,
                params=params,
                data=f,
                headers={
                    "Content-Type": content_type,
                    "Content-Length": str(path.stat().st_size),
                },
            )

    async def open_stream(self, url: str) -> ByteStream:
        """GET a URL and return the body as a stream, following redirects."""
        response = await self.request("GET", url, accept="application/octet-stream")
        return ByteStream.from_response(response)
