"""Removal of worktrees whose branches are merged into the main branch."""

from enum import Enum

from msgspec import Struct, field

from .console import Console
from .events import EventLog, default_events_path
from .git import GitGateway


class EntryOutcome(str, Enum):
    """Per-entry result of a cleanup pass.

    State machine: LISTED → SKIPPED | KEPT | REMOVED (exactly one transition)
    """

    SKIPPED = "skipped"
    KEPT = "kept"
    REMOVED = "removed"


class CleanupEntry(Struct, frozen=True):
    path: str
    branch: str
    outcome: EntryOutcome
    reason: str = ""


class CleanupReport(Struct):
    main_branch: str
    entries: list[CleanupEntry] = field(default_factory=list)

    def _with(self, outcome: EntryOutcome) -> list[CleanupEntry]:
        return [entry for entry in self.entries if entry.outcome == outcome]

    @property
    def removed(self) -> list[CleanupEntry]:
        return self._with(EntryOutcome.REMOVED)

    @property
    def kept(self) -> list[CleanupEntry]:
        return self._with(EntryOutcome.KEPT)

    @property
    def skipped(self) -> list[CleanupEntry]:
        return self._with(EntryOutcome.SKIPPED)


class CleanupReconciler:
    """Walks the worktree list and removes merged worktree + branch pairs."""

    __slots__ = ("_events", "console", "gateway")

    def __init__(
        self,
        gateway: GitGateway,
        console: Console | None = None,
        events: EventLog | None = None,
    ) -> None:
        self.gateway = gateway
        self.console = console or Console()
        self._events = events

    def clean(self, main_branch: str) -> CleanupReport:
        """Remove every worktree whose branch is an ancestor of ``main_branch``.

        Entries are handled in listing order. A failed worktree removal stops
        the pass; a branch survives only if both soft and forced delete fail,
        which also stops the pass.

        Raises:
            GitOperationError: listing, worktree removal or branch deletion failed
        """
        report = CleanupReport(main_branch=main_branch)
        entries = self.gateway.list_worktrees()
        if not entries:
            self.console.info("No worktrees found.")
            return report

        primary, *linked = entries
        report.entries.append(
            CleanupEntry(
                path=primary.path,
                branch=primary.branch_name,
                outcome=EntryOutcome.SKIPPED,
                reason="primary worktree",
            )
        )

        self.console.step("Checking for merged worktrees...")
        for entry in linked:
            branch = entry.branch_name
            if not branch:
                report.entries.append(
                    CleanupEntry(entry.path, "", EntryOutcome.SKIPPED, "detached")
                )
                continue
            if branch == main_branch:
                report.entries.append(
                    CleanupEntry(entry.path, branch, EntryOutcome.SKIPPED, "main branch")
                )
                continue

            if not self.gateway.is_ancestor(primary.path, branch, main_branch):
                self.console.info(f"Branch '{branch}' is not merged yet. Keeping worktree.")
                report.entries.append(
                    CleanupEntry(entry.path, branch, EntryOutcome.KEPT, "not merged")
                )
                self._event_log().log("worktree_kept", path=entry.path, branch=branch)
                continue

            self.console.info(f"Branch '{branch}' is merged. Removing worktree at '{entry.path}'...")
            self.gateway.remove_worktree(entry.path)
            self.gateway.delete_branch_with_fallback(branch)
            self.console.success(f"Removed worktree and branch: {branch}")
            report.entries.append(
                CleanupEntry(entry.path, branch, EntryOutcome.REMOVED, f"merged into {main_branch}")
            )
            self._event_log().log("worktree_removed", path=entry.path, branch=branch)

        self.console.success("Done cleaning merged worktrees.")
        return report

    def _event_log(self) -> EventLog:
        if self._events is None:
            self._events = EventLog(default_events_path(self.gateway.common_dir()))
        return self._events


__all__ = ["CleanupEntry", "CleanupReconciler", "CleanupReport", "EntryOutcome"]
