"""Git backend: one file on a branch, read and written through a local mirror"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from git import GitCommandError, Repo

from ..address import GitFile
from ..error_handling import GitSyncError, NotFound
from ..streams import ByteStream, Source, copy_source
from .mirror import Mirror, MirrorArena, remaining

logger = logging.getLogger(__name__)


def raw_url(mirror: Mirror, file: GitFile) -> str:
    """URL of the file's content on the forge; independent of any commit."""
    return f"{mirror.url}/raw/{file.branch}/{file.path}"


def git_path_status(repo: Repo, path: str) -> str:
    """Porcelain status of exactly one path; empty when unchanged."""
    return repo.git.status("--porcelain", "--", path)


def git_write_file(repo: Repo, path: str, source: Source) -> Path:
    """Write ``source`` into the working tree at ``path``, creating parents."""
    target = Path(repo.working_dir) / path
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "wb") as f:
        copy_source(source, f)
    return target


def git_commit_file(mirror: Mirror, repo: Repo, file: GitFile, local_path: Path) -> str:
    """Stage ``file`` and commit it if it changed. Returns the commit sha or ''."""
    try:
        repo.git.add("--", file.path)
        status = git_path_status(repo, file.path)
        if not status:
            logger.info("%s unchanged, skipping commit", file.path, extra={"address": mirror.address})
            return ""

        args = (file.owner, file.repo, file.branch, file.path, str(local_path))
        author = mirror.config.author_for(*args)
        commit = repo.index.commit(
            mirror.config.message_for(*args),
            author=author,
            committer=author,
        )
    except (GitCommandError, OSError, ValueError) as e:
        raise GitSyncError("commit", mirror.address, e) from e

    logger.info("Committed %s as %s", file.path, commit.hexsha[:8], extra={"address": mirror.address})
    return commit.hexsha


def _get(mirror: Mirror, file: GitFile, deadline: Optional[float]) -> ByteStream:
    repo = mirror.sync(deadline)
    target = Path(repo.working_dir) / file.path
    if not target.is_file():
        raise NotFound(f"git {mirror.address}:{file.path}")
    return ByteStream.from_file(target)


def _put(mirror: Mirror, file: GitFile, source: Source, deadline: Optional[float]) -> bool:
    repo = mirror.sync(deadline)
    try:
        local_path = git_write_file(repo, file.path, source)
    except OSError as e:
        raise GitSyncError("write", mirror.address, e) from e

    remaining(deadline)
    if not git_commit_file(mirror, repo, file, local_path):
        return False

    # A failed push leaves the commit local; the next sync resets past it.
    mirror.push(deadline)
    logger.info("Pushed %s", file.path, extra={"address": mirror.address, "phase": "push"})
    return True


async def _in_thread(func, *args):
    """Run ``func`` in a worker thread that finishes before this call unwinds.

    A thread can not be interrupted, so on cancellation the worker is awaited
    before the cancellation propagates. The worker stops at its next deadline
    check.
    """
    task = asyncio.ensure_future(asyncio.to_thread(func, *args))
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        await asyncio.wait([task])
        if not task.cancelled():
            if task.exception() is not None:
                logger.debug("Worker stopped after cancellation: %s", task.exception())
            elif isinstance(task.result(), ByteStream):
                await task.result().close()
        raise


async def get_from_git(arena: MirrorArena, file: GitFile, deadline: Optional[float] = None) -> ByteStream:
    """Sync the branch mirror and open the file from its working tree.

    ``deadline`` is a ``time.monotonic()`` value bounding every git step.
    """
    mirror = arena.mirror(file.owner, file.repo, file.branch)
    return await _in_thread(_get, mirror, file, deadline)


async def put_in_git(arena: MirrorArena, file: GitFile, source: Source, deadline: Optional[float] = None) -> str:
    """
    Sync the branch mirror, write the file and commit and push it only if
    its content changed.

    Returns:
        ``<host>/<owner>/<repo>/raw/<branch>/<path>``, whether or not a
        commit was made
    """
    mirror = arena.mirror(file.owner, file.repo, file.branch)
    await _in_thread(_put, mirror, file, source, deadline)
    return raw_url(mirror, file)
