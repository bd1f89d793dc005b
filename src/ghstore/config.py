"""Configuration for ghstore.

``StoreConfig`` carries everything the drivers consume: the forge token and
hosts, the mirror root, the scan page size, the commit policy callables and
the optional whole-call deadline. ``config_from_env`` builds one from process
environment variables after loading ``.env`` files with python-dotenv.

Environment variables:

    GH_TOKEN            forge token (required)
    TMP_DIR             root for local mirrors and spooled assets
    GH_HOST             forge web host, e.g. https://github.com
    GH_API_URL          forge REST base URL
    GH_PER_PAGE         page size used when scanning gists/releases
    GIT_NAME            commit author name
    GIT_EMAIL           commit author email
    GIT_COMMIT_MESSAGE  commit message template ({owner} {repo} {branch} {name} {path})
    TIMEOUT             deadline for one call, in seconds
"""

import logging
import os
from pathlib import Path
from typing import Callable, Optional

from dotenv import dotenv_values, load_dotenv
from git import Actor
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .error_handling import ConfigError

logger = logging.getLogger(__name__)

CommitMessageFunc = Callable[[str, str, str, str, str], str]
CommitAuthorFunc = Callable[[str, str, str, str, str], Actor]

# Values that never count as a real token
TOKEN_PLACEHOLDERS = ["", "YOUR_TOKEN_HERE", "REPLACE_ME", "TODO", "CHANGEME"]


def default_commit_message(owner: str, repo: str, branch: str, name: str, path: str) -> str:
    return f"Automatic update {name}"


class StoreConfig(BaseModel):
    """Settings consumed by the object store and its drivers."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    token: str
    tmp_dir: Path = Path("./tmp")
    host: str = "https://github.com"
    api_url: str = "https://api.github.com"
    per_page: int = Field(default=100, gt=0, le=100)
    git_name: str = "bot"
    git_email: str = ""
    commit_message: CommitMessageFunc = default_commit_message
    commit_author: Optional[CommitAuthorFunc] = None
    timeout: Optional[float] = Field(default=None, gt=0)

    def message_for(self, owner: str, repo: str, branch: str, name: str, path: str) -> str:
        return self.commit_message(owner, repo, branch, name, path)

    def author_for(self, owner: str, repo: str, branch: str, name: str, path: str) -> Actor:
        if self.commit_author is not None:
            return self.commit_author(owner, repo, branch, name, path)
        return Actor(self.git_name, self.git_email)


def template_commit_message(template: str) -> CommitMessageFunc:
    """Build a commit message callable from a ``str.format`` template."""

    def message(owner: str, repo: str, branch: str, name: str, path: str) -> str:
        return template.format(owner=owner, repo=repo, branch=branch, name=name, path=path)

    return message


def is_placeholder_token(token: Optional[str]) -> bool:
    """Check if a token value should be treated as unset."""
    if token is None:
        return True
    return token.strip() in TOKEN_PLACEHOLDERS


def load_environment_variables(project_path: Optional[Path] = None) -> list[str]:
    """Load environment variables from .env files.

    Order of precedence:
    1. System environment variables
    2. Project .env file (current working directory)
    3. ``project_path``/.env, if given

    A GH_TOKEN that is empty or a placeholder is replaced by a real value
    from the .env file.

    Returns:
        The .env files that were loaded
    """
    loaded_files = []
    candidates = [Path.cwd() / ".env"]
    if project_path is not None:
        candidates.append(Path(project_path) / ".env")

    for env_file in candidates:
        if not env_file.exists() or str(env_file) in loaded_files:
            continue
        try:
            token_before = os.getenv("GH_TOKEN")
            load_dotenv(env_file, override=False)

            if is_placeholder_token(token_before):
                file_token = dotenv_values(env_file).get("GH_TOKEN")
                if not is_placeholder_token(file_token):
                    os.environ["GH_TOKEN"] = file_token

            loaded_files.append(str(env_file))
            logger.info("Loaded environment variables from %s", env_file)
        except OSError as e:
            logger.warning("Failed to load .env file %s: %s", env_file, e)

    return loaded_files


def _parse_timeout(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    text = value.strip().lower()
    scale = 1.0
    for suffix, factor in (("ms", 0.001), ("s", 1.0), ("m", 60.0), ("h", 3600.0)):
        if text.endswith(suffix):
            text = text[: -len(suffix)]
            scale = factor
            break
    try:
        seconds = float(text) * scale
    except ValueError:
        logger.warning("warning: parse error: TIMEOUT=%s", value)
        return None
    if seconds <= 0:
        logger.warning("warning: ignoring non-positive TIMEOUT=%s", value)
        return None
    return seconds


def config_from_env(project_path: Optional[Path] = None) -> StoreConfig:
    """Build a StoreConfig from the environment.

    Raises:
        ConfigError: If GH_TOKEN is missing or a value fails validation
    """
    load_environment_variables(project_path)

    token = os.getenv("GH_TOKEN")
    if is_placeholder_token(token):
        raise ConfigError("GH_TOKEN can not be empty")

    values = {"token": token, "timeout": _parse_timeout(os.getenv("TIMEOUT"))}
    for env_name, field_name in (
        ("TMP_DIR", "tmp_dir"),
        ("GH_HOST", "host"),
        ("GH_API_URL", "api_url"),
        ("GH_PER_PAGE", "per_page"),
        ("GIT_NAME", "git_name"),
        ("GIT_EMAIL", "git_email"),
    ):
        value = os.getenv(env_name)
        if value:
            values[field_name] = value

    template = os.getenv("GIT_COMMIT_MESSAGE")
    if template:
        values["commit_message"] = template_commit_message(template)

    try:
        return StoreConfig(**values)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration: {e}") from e
