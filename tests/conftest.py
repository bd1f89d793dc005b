"""
Shared fixtures for the ghstore test suite.

Git tests run against bare repositories behind a ``file://`` host. Gist and
release tests run against an in-memory GitHub API served by aiohttp.
"""

import os
from pathlib import Path
from typing import Generator

import aiohttp
import pytest
import pytest_asyncio
from aiohttp.test_utils import TestServer

from ghstore.config import StoreConfig
from ghstore.git.mirror import MirrorArena
from ghstore.github.client import GitHubClient
from ghstore.store import ObjectStore

from fixtures.git_repos import GitRemoteFactory
from fixtures.github_responses import FakeGitHub

ENV_VARS = [
    "GH_TOKEN",
    "TMP_DIR",
    "GH_HOST",
    "GH_API_URL",
    "GH_PER_PAGE",
    "GIT_NAME",
    "GIT_EMAIL",
    "GIT_COMMIT_MESSAGE",
    "TIMEOUT",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path) -> Generator[Path, None, None]:
    """Unset every variable the store reads and run from an empty directory."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    yield workdir
    # load_dotenv writes into os.environ directly
    for name in ENV_VARS:
        os.environ.pop(name, None)


@pytest.fixture
def remotes(tmp_path) -> GitRemoteFactory:
    """Bare remotes served from a file:// host."""
    return GitRemoteFactory(tmp_path / "remotes")


@pytest.fixture
def store_config(tmp_path, remotes) -> StoreConfig:
    return StoreConfig(
        token="test-token",
        tmp_dir=tmp_path / "tmp",
        host=remotes.host,
        git_name="ghstore-bot",
        git_email="bot@example.com",
        per_page=2,
    )


@pytest.fixture
def arena(store_config) -> MirrorArena:
    return MirrorArena(store_config)


@pytest_asyncio.fixture
async def fake_github():
    """In-memory GitHub API on a local port."""
    fake = FakeGitHub()
    server = TestServer(fake.make_app())
    await server.start_server()
    fake.base_url = str(server.make_url("")).rstrip("/")
    try:
        yield fake
    finally:
        await server.close()


@pytest.fixture
def api_config(store_config, fake_github) -> StoreConfig:
    return store_config.model_copy(update={"api_url": fake_github.base_url})


@pytest_asyncio.fixture
async def github_client(fake_github):
    async with aiohttp.ClientSession() as session:
        yield GitHubClient(token="test-token", session=session, base_url=fake_github.base_url)


@pytest_asyncio.fixture
async def store(api_config):
    async with ObjectStore(api_config) as store:
        yield store
