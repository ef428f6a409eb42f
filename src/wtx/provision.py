# src/wtx/provision.py
"""
Worktree creation transaction.

Each step commits its side effects before the next one starts. A failure
aborts the run and is reported; branches, pushes and copied files created
by earlier steps are left in place.
"""

import logging
import shutil
from pathlib import Path

from msgspec import Struct

from .assistant import AssistantRunner
from .config import Config, CopyAction, InstallAction, PostCreateAction, RunAction
from .console import Console
from .errors import (
    AssistantUnavailable,
    ConfigError,
    NamingError,
    PreconditionError,
    ProvisioningError,
)
from .events import EventLog, default_events_path
from .git import GitGateway
from .naming import resolve_branch_name, sanitize_branch
from .runtime import LocalRuntime, Runtime, decode_signal
from .worktree import WorktreeLocation, worktree_path

logger = logging.getLogger(__name__)


class WorktreeRequest(Struct, frozen=True, forbid_unknown_fields=True):
    """What to build: a task, the branch to fork from and the assistant to use."""

    task: str
    base: str
    assistant: str
    run_task: bool = True

    def __post_init__(self) -> None:
        if not self.task.strip():
            raise ValueError("no description provided")
        if not self.base.strip():
            raise ValueError("base branch cannot be empty")


class Provisioner:
    """Creates, publishes and seeds one worktree per request."""

    __slots__ = ("_events", "_runtime", "config", "console", "gateway")

    def __init__(
        self,
        config: Config,
        gateway: GitGateway | None = None,
        runtime: Runtime | None = None,
        console: Console | None = None,
        events: EventLog | None = None,
    ) -> None:
        self.config = config
        self._runtime = runtime or LocalRuntime()
        self.gateway = gateway or GitGateway(remote=config.remote, runtime=self._runtime)
        self.console = console or Console()
        self._events = events

    def create(self, request: WorktreeRequest) -> WorktreeLocation:
        """Run the full creation transaction.

        Raises:
            PreconditionError: git missing or not inside a repository
            NamingError: no usable branch name
            GitOperationError: fetch, worktree creation or push failed
            ProvisioningError: copy I/O error or post-create command failure
            ConfigError: task run requested without a usable command template
        """
        gateway = self.gateway
        if not gateway.is_available():
            raise PreconditionError("required command not found: git")
        if not gateway.is_inside_work_tree():
            raise PreconditionError("not inside a git repository")

        repo_root = gateway.repo_root()

        raw_branch = resolve_branch_name(
            request.task, request.assistant, self.config, self._runtime
        )
        branch = sanitize_branch(raw_branch)
        if not branch:
            raise NamingError(f"empty branch name after sanitize (candidate: {raw_branch!r})")
        logger.debug("branch candidate %r -> %s", raw_branch, branch)

        target = worktree_path(repo_root, self.config.worktrees_dir, branch)
        remote = gateway.remote

        self.console.step(f"Fetching {remote}/{request.base}...")
        gateway.fetch(request.base)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ProvisioningError(f"cannot create {target.parent}: {exc}") from exc

        if gateway.remote_branch_exists(branch):
            self.console.step(f"Checking out existing {remote}/{branch}...")
            gateway.fetch(branch)
            gateway.add_worktree_from_remote_branch(target, branch)
            gateway.switch_or_create(target, branch)
        else:
            self.console.step(f"Creating {branch} from {remote}/{request.base}...")
            gateway.add_worktree_new_branch(target, branch, f"{remote}/{request.base}")

        if not gateway.unset_upstream(target):
            logger.debug("no upstream to unset for %s", branch)
        self.console.step(f"Publishing {branch} to {remote}...")
        gateway.push_set_upstream(target, branch)

        self.run_post_create(self.config.post_create_actions(), repo_root, target)

        location = WorktreeLocation(
            path=target,
            branch=branch,
            base=request.base,
            upstream=f"{remote}/{branch}",
            repo_root=repo_root,
        )
        self.console.success(f"Worktree created at: {target}")
        self.console.info(f"Branch: {branch} (base: {remote}/{request.base})")
        self.console.info(f"Upstream: {location.upstream}")
        self._event_log().log(
            "worktree_created",
            path=str(target),
            branch=branch,
            base=request.base,
            assistant=request.assistant,
        )

        if request.run_task:
            self.run_task(request, location)
        return location

    def run_post_create(
        self, actions: list[PostCreateAction], repo_root: Path, target: Path
    ) -> None:
        """Apply copy/install/run actions in declared order."""
        if not actions:
            return
        self.console.step("Provisioning worktree...")
        for action in actions:
            match action:
                case CopyAction():
                    self._copy(action, repo_root, target)
                case RunAction() | InstallAction():
                    self._run_command(action, target)

    def _copy(self, action: CopyAction, repo_root: Path, target: Path) -> None:
        source = action.from_.strip()
        if not source:
            return
        dest = action.to.strip() or source

        src = repo_root / source
        dst = target / dest
        if not src.exists():
            self.console.notice(f"Not found: {source} (skipped)")
            return

        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            if src.is_dir():
                shutil.copytree(src, dst, dirs_exist_ok=True)
            else:
                shutil.copyfile(src, dst)
        except OSError as exc:
            raise ProvisioningError(f"copy {source} -> {dest} failed: {exc}") from exc
        self.console.detail(f"Copied: {source} -> {dest}")

    def _run_command(self, action: RunAction | InstallAction, target: Path) -> None:
        if not action.command:
            return
        name = action.name.strip() or " ".join(action.command)

        # Absolute cwd values stay inside the worktree.
        hook_dir = target / action.cwd.strip().lstrip("/")
        if not hook_dir.is_dir():
            if action.skip_if_missing:
                self.console.notice(f"Hook skipped (missing dir): {name} [{hook_dir}]")
                return
            raise ProvisioningError(f"hook directory not found: {hook_dir}")

        self.console.detail(f"Hook: {name}")
        try:
            returncode = self._runtime.stream(list(action.command), cwd=str(hook_dir))
        except OSError as exc:
            raise ProvisioningError(f"hook {name!r} could not start: {exc}") from exc
        if returncode != 0:
            status = decode_signal(returncode) or f"exit status {returncode}"
            raise ProvisioningError(f"hook {name!r} failed ({status})")

    def run_task(self, request: WorktreeRequest, location: WorktreeLocation) -> None:
        """Hand the worktree to the assistant; a missing executable is only a notice."""
        command = self.config.assistant_command(request.assistant)
        if command is None:
            raise ConfigError(f"missing LLM command config for: {request.assistant}")

        runner = AssistantRunner(request.assistant, command, self._runtime)
        # An empty template is fatal even when the assistant is not installed.
        runner.task_args(request.task)
        self.console.step(f"Running {request.assistant} with task prompt...")
        try:
            runner.run_task(request.task, location.path)
        except AssistantUnavailable as exc:
            logger.debug("task run skipped: %s", exc)
            self.console.notice(f"{runner.executable_name} not found. Skip auto-run.")

    def _event_log(self) -> EventLog:
        if self._events is None:
            self._events = EventLog(default_events_path(self.gateway.common_dir()))
        return self._events


__all__ = ["Provisioner", "WorktreeRequest"]
