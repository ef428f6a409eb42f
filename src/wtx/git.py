# src/wtx/git.py
"""
Git operations for worktree lifecycle management.

Every call is a blocking ``git`` subprocess run through the runtime. Argument
vectors are screened for options that can execute arbitrary commands, since
branch names and base refs come from user input.
"""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Final, TypeVar

from .errors import GitOperationError
from .runtime import ExecutionResult, LocalRuntime, Runtime
from .worktree import WorktreeEntry, parse_worktree_list

logger = logging.getLogger(__name__)

T = TypeVar("T")

_runtime: Final = LocalRuntime()

_DANGEROUS_OPTIONS: Final[frozenset[str]] = frozenset(
    {
        "-c",
        "--config",
        "--upload-pack",
        "--exec",
        "-u",
        "--receive-pack",
    }
)

_DANGEROUS_PREFIXES: Final[tuple[str, ...]] = (
    "-c=",
    "--config=",
    "--upload-pack=",
    "--exec=",
    "--receive-pack=",
)

# git ls-remote --exit-code: no matching refs
_LS_REMOTE_NO_MATCH: Final[int] = 2


def _validate_git_args(args: list[str]) -> None:
    """Validate git arguments to prevent command injection.

    Raises:
        ValueError: If dangerous options are detected
    """
    for arg in args:
        if arg in _DANGEROUS_OPTIONS:
            raise ValueError(
                f"Dangerous git option '{arg}' is not allowed. "
                "This option could enable command injection."
            )

        for prefix in _DANGEROUS_PREFIXES:
            if arg.startswith(prefix):
                raise ValueError(
                    f"Dangerous git option '{prefix.rstrip('=')}' is not allowed. "
                    "This option could enable command injection."
                )


def with_fallback(primary: Callable[[], T], fallback: Callable[[], T]) -> T:
    """Run ``primary``; on GitOperationError run ``fallback``.

    Only the fallback's failure propagates.
    """
    try:
        return primary()
    except GitOperationError as exc:
        logger.debug("falling back after: %s", exc)
        return fallback()


class GitGateway:
    """Git subcommands needed to create, inspect and remove worktrees."""

    __slots__ = ("_runtime", "cwd", "remote")

    def __init__(
        self,
        cwd: str | Path | None = None,
        remote: str = "origin",
        runtime: Runtime | None = None,
    ) -> None:
        self.cwd = Path(cwd) if cwd is not None else Path.cwd()
        self.remote = remote
        self._runtime = runtime or _runtime

    def run(
        self,
        args: list[str],
        cwd: str | Path | None = None,
        check: bool = True,
    ) -> ExecutionResult:
        """Execute ``git <args>`` in ``cwd`` (default: the gateway's cwd).

        Raises:
            ValueError: If dangerous git options are detected
            GitOperationError: If check is True and git exits non-zero
        """
        _validate_git_args(args)
        command = ["git", *args]
        result = self._runtime.execute(command, cwd=str(cwd or self.cwd))
        if check and not result.ok:
            raise GitOperationError(command, result)
        return result

    def is_available(self) -> bool:
        return self._runtime.which("git") is not None

    def is_inside_work_tree(self) -> bool:
        result = self.run(["rev-parse", "--is-inside-work-tree"], check=False)
        return result.ok and result.stdout.strip() == "true"

    def repo_root(self) -> Path:
        return Path(self.run(["rev-parse", "--show-toplevel"]).stdout.strip())

    def common_dir(self) -> Path:
        """The shared git directory (the main ``.git`` even from a linked worktree)."""
        raw = self.run(["rev-parse", "--git-common-dir"]).stdout.strip()
        return (self.cwd / raw).resolve()

    def fetch(self, branch: str) -> None:
        """Fetch ``branch`` from the remote, pruning stale remote-tracking refs."""
        self.run(["fetch", self.remote, branch, "--prune"])

    def remote_branch_exists(self, branch: str) -> bool:
        """Check the remote for ``refs/heads/<branch>``.

        Raises:
            GitOperationError: If the remote cannot be queried
        """
        args = ["ls-remote", "--exit-code", "--heads", self.remote, branch]
        result = self.run(args, check=False)
        if result.ok:
            return True
        if result.returncode == _LS_REMOTE_NO_MATCH:
            return False
        raise GitOperationError(["git", *args], result)

    def add_worktree_from_remote_branch(self, path: Path, branch: str) -> None:
        """Check out ``<remote>/<branch>`` into ``path`` (detached HEAD)."""
        self.run(["worktree", "add", "--checkout", str(path), f"{self.remote}/{branch}"])

    def switch_or_create(self, path: Path, branch: str) -> None:
        """Put the worktree at ``path`` on local ``branch``.

        Tries ``switch --create``; if the branch already exists, plain ``switch``.
        """
        with_fallback(
            lambda: self.run(["switch", "--create", branch], cwd=path),
            lambda: self.run(["switch", branch], cwd=path),
        )

    def add_worktree_new_branch(self, path: Path, branch: str, base_ref: str) -> None:
        """Create ``branch`` from ``base_ref`` and check it out into ``path``."""
        self.run(["worktree", "add", "-b", branch, str(path), base_ref])

    def unset_upstream(self, path: Path) -> bool:
        """Drop inherited upstream tracking. Best effort: returns False on failure."""
        return self.run(["branch", "--unset-upstream"], cwd=path, check=False).ok

    def push_set_upstream(self, path: Path, branch: str) -> None:
        self.run(["push", "--set-upstream", self.remote, f"{branch}:{branch}"], cwd=path)

    def list_worktrees_porcelain(self) -> str:
        return self.run(["worktree", "list", "--porcelain"]).stdout

    def list_worktrees(self) -> list[WorktreeEntry]:
        """All worktrees in git's listing order.

        Ordering contract: the first entry is always the primary worktree,
        whose git metadata sees every local ref.
        """
        return parse_worktree_list(self.list_worktrees_porcelain())

    def is_ancestor(self, cwd: str | Path, branch: str, main_branch: str) -> bool:
        """True if ``branch`` is fully contained in ``main_branch``.

        Any non-zero exit (including an unknown ref) counts as not merged.
        """
        result = self.run(["merge-base", "--is-ancestor", branch, main_branch], cwd=cwd, check=False)
        if result.returncode not in (0, 1):
            logger.debug("merge-base failed for %s: %s", branch, result.stderr.strip())
        return result.ok

    def remove_worktree(self, path: str | Path) -> None:
        self.run(["worktree", "remove", str(path), "--force"])

    def delete_branch(self, branch: str, force: bool = False) -> None:
        self.run(["branch", "-D" if force else "-d", branch])

    def delete_branch_with_fallback(self, branch: str) -> None:
        """Soft delete first; force delete if git refuses."""
        with_fallback(
            lambda: self.delete_branch(branch),
            lambda: self.delete_branch(branch, force=True),
        )


__all__ = ["GitGateway", "with_fallback"]
