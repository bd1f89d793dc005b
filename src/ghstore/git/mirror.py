"""Local git mirrors of one remote branch.

A mirror lives at ``<tmp_dir>/git/<owner>/<repo>/<branch>`` and is a cache:
every ``sync()`` brings it back to the remote branch tip, discarding local
commits and working tree drift. Mirrors are not locked; callers serialize
access per (owner, repo, branch).

Sync walks these steps, each idempotent so repeated runs reuse the same
bookkeeping:

1. open the repository, or ``git init`` it
2. point HEAD at ``refs/heads/<branch>``
3. ensure remote ``origin-<branch>`` fetching only that branch
4. ensure ``branch.<branch>.remote``/``merge`` config
5. fetch; a branch or repository with no commits yet is not an error
6. if the branch exists upstream, force the local branch to it and hard
   reset; otherwise drop the local branch and empty the index and working
   tree, back to an unborn branch

Deadlines are ``time.monotonic()`` values. Each git step gets the time left
before the deadline and no step starts once it has passed.
"""

import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Remote, Repo

from ..config import StoreConfig
from ..error_handling import GitFailure, GitSyncError, classify_git_error

logger = logging.getLogger(__name__)


def remaining(deadline: Optional[float]) -> Optional[float]:
    """Seconds left before ``deadline``, or None without one.

    Raises:
        TimeoutError: If the deadline has passed
    """
    if deadline is None:
        return None
    left = deadline - time.monotonic()
    if left <= 0:
        raise TimeoutError("deadline exceeded")
    return left


class Mirror:
    """On-disk mirror of ``owner/repo`` at ``branch``."""

    def __init__(self, config: StoreConfig, owner: str, repo: str, branch: str):
        self.config = config
        self.owner = owner
        self.repo_name = repo
        self.branch = branch
        self.path = Path(config.tmp_dir) / "git" / owner / repo / branch
        self.remote_name = f"origin-{branch}"
        self.branch_ref = f"refs/heads/{branch}"
        self.tracking_ref = f"refs/remotes/{self.remote_name}/{branch}"
        self.refspec = f"+{self.branch_ref}:{self.tracking_ref}"
        self.repo: Optional[Repo] = None

    @property
    def url(self) -> str:
        return "/".join([self.config.host.rstrip("/"), self.owner, self.repo_name])

    @property
    def address(self) -> str:
        return f"{self.owner}/{self.repo_name}@{self.branch}"

    def sync(self, deadline: Optional[float] = None) -> Repo:
        """Bring the mirror to the remote branch tip and return the repository."""
        remaining(deadline)
        repo = self._open()
        self._bind_head(repo)
        remote = self._bind_remote(repo)
        self._bind_branch(repo)
        self._fetch(repo, remote, deadline)
        remaining(deadline)
        self._reset(repo)
        return repo

    def _open(self) -> Repo:
        try:
            if (self.path / ".git").exists():
                repo = Repo(self.path)
            else:
                self.path.mkdir(parents=True, exist_ok=True)
                logger.debug("Initializing mirror at %s", self.path, extra={"address": self.address})
                repo = Repo.init(self.path)
        except (GitCommandError, InvalidGitRepositoryError, NoSuchPathError, OSError) as e:
            raise GitSyncError("init", self.address, e) from e
        self.repo = repo
        return repo

    def _bind_head(self, repo: Repo) -> None:
        try:
            repo.git.symbolic_ref("HEAD", self.branch_ref)
        except GitCommandError as e:
            raise GitSyncError("init", self.address, e) from e

    def _bind_remote(self, repo: Repo) -> Remote:
        try:
            if self.remote_name not in [remote.name for remote in repo.remotes]:
                logger.debug("Adding remote %s -> %s", self.remote_name, self.url, extra={"address": self.address})
                # -t limits the fetch refspec to this branch
                repo.git.remote("add", "-t", self.branch, self.remote_name, self.url)
            return repo.remote(self.remote_name)
        except (GitCommandError, ValueError) as e:
            raise GitSyncError("remote", self.address, e) from e

    def _bind_branch(self, repo: Repo) -> None:
        key = f"branch.{self.branch}"
        try:
            if not repo.git.config("--get", f"{key}.remote", with_exceptions=False):
                repo.git.config(f"{key}.remote", self.remote_name)
                repo.git.config(f"{key}.merge", self.branch_ref)
        except GitCommandError as e:
            raise GitSyncError("branch", self.address, e) from e

    def _fetch(self, repo: Repo, remote: Remote, deadline: Optional[float]) -> None:
        try:
            with self._authenticated(remote):
                _, out, err = repo.git.fetch(
                    "--progress",
                    self.remote_name,
                    self.refspec,
                    with_extended_output=True,
                    kill_after_timeout=remaining(deadline),
                )
            self._log_output("fetch", out, err)
        except GitCommandError as e:
            if classify_git_error(e) is GitFailure.BENIGN:
                logger.debug("Nothing to fetch for %s", self.address, extra={"address": self.address, "phase": "fetch"})
                return
            raise GitSyncError("fetch", self.address, e) from e

    def _reset(self, repo: Repo) -> None:
        try:
            tip = repo.git.rev_parse("--verify", "--quiet", f"{self.tracking_ref}^{{commit}}", with_exceptions=False)
            if not tip:
                logger.debug("%s has no upstream commits yet", self.address, extra={"address": self.address})
                self._unborn(repo)
                return
            repo.git.update_ref(self.branch_ref, tip)
            repo.git.reset("--hard", tip)
            repo.git.clean("-fdq")
        except GitCommandError as e:
            raise GitSyncError("reset", self.address, e) from e

    def _unborn(self, repo: Repo) -> None:
        """Drop local-only commits so the branch matches a remote without it."""
        if repo.git.rev_parse("--verify", "--quiet", self.branch_ref, with_exceptions=False):
            logger.info("Discarding local commits on %s", self.address, extra={"address": self.address})
            repo.git.update_ref("-d", self.branch_ref)
        repo.git.rm("-r", "-f", "--cached", "-q", "--ignore-unmatch", ".")
        repo.git.clean("-fdxq")

    def push(self, deadline: Optional[float] = None) -> None:
        """Push the local branch to the remote branch of the same name."""
        if self.repo is None:
            raise GitSyncError("push", self.address, RuntimeError("mirror is not synced"))
        repo = self.repo
        try:
            remote = repo.remote(self.remote_name)
            with self._authenticated(remote):
                _, out, err = repo.git.push(
                    "--progress",
                    self.remote_name,
                    f"{self.branch_ref}:{self.branch_ref}",
                    with_extended_output=True,
                    kill_after_timeout=remaining(deadline),
                )
            self._log_output("push", out, err)
        except (GitCommandError, ValueError) as e:
            if isinstance(e, GitCommandError) and classify_git_error(e) is GitFailure.AUTH:
                logger.error("Authentication failed pushing %s", self.address, extra={"address": self.address})
            raise GitSyncError("push", self.address, e) from e

    def _log_output(self, phase: str, *streams: str) -> None:
        """Send git's progress and ref update lines to the debug log."""
        for stream in streams:
            for line in stream.replace("\r", "\n").splitlines():
                line = line.strip()
                if not line:
                    continue
                if self.config.token:
                    line = line.replace(quote(self.config.token, safe=""), "***").replace(self.config.token, "***")
                logger.debug("git %s: %s", phase, line, extra={"address": self.address, "phase": phase})

    @contextmanager
    def _authenticated(self, remote: Remote):
        """Inject the token into an HTTPS remote URL for one network step."""
        original_url = remote.url
        if not self.config.token or not original_url.startswith("https://"):
            yield
            return

        auth_url = original_url.replace(
            "https://", f"https://{quote(self.owner, safe='')}:{quote(self.config.token, safe='')}@", 1
        )
        remote.set_url(auth_url)
        try:
            yield
        finally:
            remote.set_url(original_url)


class MirrorArena:
    """One Mirror per (owner, repo, branch)."""

    def __init__(self, config: StoreConfig):
        self.config = config
        self._mirrors: dict[tuple[str, str, str], Mirror] = {}

    def mirror(self, owner: str, repo: str, branch: str) -> Mirror:
        key = (owner, repo, branch)
        if key not in self._mirrors:
            self._mirrors[key] = Mirror(self.config, owner, repo, branch)
        return self._mirrors[key]

    def __len__(self) -> int:
        return len(self._mirrors)
