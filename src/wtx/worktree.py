"""Worktree models and ``git worktree list --porcelain`` parsing.

Worktrees live inside the repository:
    <repo_root>/<worktrees_dir>/<branch with "/" replaced by "__">/
"""

from pathlib import Path

from msgspec import Struct

BRANCH_REF_PREFIX = "refs/heads/"


class WorktreeLocation(Struct, frozen=True, forbid_unknown_fields=True):
    """Result of worktree creation."""

    path: Path
    branch: str
    base: str
    upstream: str
    repo_root: Path


class WorktreeEntry(Struct, frozen=True):
    """One paragraph of the porcelain worktree listing."""

    path: str
    branch: str = ""
    head: str = ""
    detached: bool = False
    bare: bool = False

    @property
    def branch_name(self) -> str:
        """Branch without the ``refs/heads/`` prefix ("" when detached)."""
        return self.branch.removeprefix(BRANCH_REF_PREFIX)


def worktree_dir_name(branch: str) -> str:
    return branch.replace("/", "__")


def worktree_path(repo_root: Path, worktrees_dir: str, branch: str) -> Path:
    """Target directory for ``branch``, e.g. ``.worktrees/feature__login``."""
    return Path(repo_root) / worktrees_dir / worktree_dir_name(branch)


def parse_worktree_list(raw: str) -> list[WorktreeEntry]:
    """Parse porcelain output into entries, preserving listing order.

    Paragraphs are separated by blank lines. A paragraph without a
    ``worktree`` line is dropped.
    """
    entries: list[WorktreeEntry] = []
    fields: dict[str, str | bool] = {}

    def flush() -> None:
        if fields.get("path"):
            entries.append(WorktreeEntry(**fields))  # type: ignore[arg-type]
        fields.clear()

    for line in raw.splitlines():
        if not line.strip():
            flush()
            continue
        key, _, value = line.partition(" ")
        match key:
            case "worktree":
                fields["path"] = value
            case "branch":
                fields["branch"] = value
            case "HEAD":
                fields["head"] = value
            case "detached":
                fields["detached"] = True
            case "bare":
                fields["bare"] = True
    flush()
    return entries


__all__ = [
    "WorktreeEntry",
    "WorktreeLocation",
    "parse_worktree_list",
    "worktree_dir_name",
    "worktree_path",
]
