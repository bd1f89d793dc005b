"""Git branch backend for ghstore"""

from .mirror import Mirror, MirrorArena
from .operations import (
    get_from_git,
    git_commit_file,
    git_path_status,
    git_write_file,
    put_in_git,
    raw_url,
)

__all__ = [
    "Mirror",
    "MirrorArena",
    # Backend operations
    "get_from_git",
    "put_in_git",
    # Helpers
    "git_commit_file",
    "git_path_status",
    "git_write_file",
    "raw_url",
]
