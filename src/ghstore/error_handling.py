"""Error types and git failure classification for ghstore."""

import logging
from enum import Enum
from typing import Optional

from git import GitCommandError

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Base class for all ghstore errors."""
    pass


class ConfigError(StoreError):
    """Configuration is missing or invalid."""
    pass


class InvalidAddress(StoreError):
    """Address string is malformed or has the wrong number of segments."""

    def __init__(self, uri: str, pattern: str):
        self.uri = uri
        self.pattern = pattern
        super().__init__(f"{uri!r} not match {pattern}")


class NotFound(StoreError):
    """No matching git file, release, asset or gist entry."""

    def __init__(self, what: str):
        self.what = what
        super().__init__(f"not found: {what}")


class TransportError(StoreError):
    """Network or API failure other than not-found."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class GitSyncError(StoreError):
    """A mirror step failed. ``phase`` names the step."""

    def __init__(self, phase: str, address: str, cause: Exception):
        self.phase = phase
        self.address = address
        self.cause = cause
        super().__init__(f"git {phase} {address}: {cause}")


class GitFailure(Enum):
    """Classification of a failed git command."""

    BENIGN = "benign"  # Nothing to fetch yet
    AUTH = "auth"  # Credentials rejected
    REJECTED = "rejected"  # Remote refused the update
    FATAL = "fatal"


# Fetch failures that only mean the branch has no commits upstream yet
_BENIGN_FETCH_MARKERS = (
    "couldn't find remote ref",
    "remote repository is empty",
    "no matching ref",
)


def classify_git_error(error: GitCommandError) -> GitFailure:
    """
    Classify a GitCommandError by inspecting its stderr.

    Args:
        error: The failed git command

    Returns:
        GitFailure describing the failure
    """
    text = f"{error.stderr or ''} {error.stdout or ''}".lower()

    if any(marker in text for marker in _BENIGN_FETCH_MARKERS):
        return GitFailure.BENIGN
    if "authentication failed" in text or "returned error: 401" in text or "returned error: 403" in text:
        return GitFailure.AUTH
    if "non-fast-forward" in text or "[rejected]" in text:
        return GitFailure.REJECTED
    return GitFailure.FATAL
