# src/wtx/config.py
"""
msgspec configuration models for wtx.

The config file is JSON with camelCase keys. Decoding validates types and
rejects unknown keys; __post_init__ fills the defaults that depend on other
fields (mainBranch falls back to defaultBaseBranch, and so on).
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Final

import msgspec
from msgspec import Struct, field

from .errors import ConfigError

DEFAULT_BASE_BRANCH: Final[str] = "develop"
DEFAULT_ASSISTANT: Final[str] = "codex"
DEFAULT_WORKTREES_DIR: Final[str] = ".worktrees"
DEFAULT_REMOTE: Final[str] = "origin"

DEFAULT_BRANCH_NAME_PROMPT: Final[str] = (
    "Suggest one git branch name for the task below. Use one of the prefixes "
    "feature/, bugfix/, fix/, chore/ or refactor/ followed by a short lowercase "
    "slug. Reply with the branch name only.\n\nTask: {task}"
)

CONFIG_ENV_VAR: Final[str] = "WTX_CONFIG_PATH"
CONFIG_CANDIDATES: Final[tuple[str, ...]] = ("wtx.json", "config.json", ".wtx/config.json")


class CopyAction(Struct, tag="copy", tag_field="type", forbid_unknown_fields=True, frozen=True):
    """Copy a file or directory from the repository root into the worktree."""

    from_: str = field(name="from")
    to: str = ""


class RunAction(
    Struct, tag="run", tag_field="type", rename="camel", forbid_unknown_fields=True, frozen=True
):
    """Run a command inside the worktree; fails when its directory is missing."""

    command: list[str]
    name: str = ""
    cwd: str = ""
    skip_if_missing: bool = False


class InstallAction(
    Struct, tag="install", tag_field="type", rename="camel", forbid_unknown_fields=True, frozen=True
):
    """Run an installer inside the worktree; skipped when its directory is missing."""

    command: list[str]
    name: str = ""
    cwd: str = ""
    skip_if_missing: bool = True


PostCreateAction = CopyAction | RunAction | InstallAction


class CopyFileConfig(Struct, forbid_unknown_fields=True, frozen=True):
    """Legacy ``copyFiles`` entry."""

    from_: str = field(name="from")
    to: str = ""


class HookConfig(Struct, rename="camel", forbid_unknown_fields=True, frozen=True):
    """Legacy ``postCreateHooks`` entry."""

    command: list[str] = field(default_factory=list)
    name: str = ""
    cwd: str = ""
    skip_if_missing: bool = False


class AssistantCommand(Struct, rename="camel", forbid_unknown_fields=True, frozen=True):
    """How to invoke one assistant CLI.

    Templates are argument vectors; ``{prompt}`` and ``{task}`` are replaced
    verbatim in every element.
    """

    executable: str = ""
    branch_name_args_template: list[str] = field(default_factory=list)
    task_run_args_template: list[str] = field(default_factory=list)


class LLMConfig(Struct, rename="camel", forbid_unknown_fields=True):
    default: str = DEFAULT_ASSISTANT
    allowed: list[str] = field(default_factory=list)
    branch_name_prompt_template: str = DEFAULT_BRANCH_NAME_PROMPT
    commands: dict[str, AssistantCommand] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.default.strip():
            self.default = DEFAULT_ASSISTANT
        if not self.branch_name_prompt_template.strip():
            self.branch_name_prompt_template = DEFAULT_BRANCH_NAME_PROMPT


class Config(Struct, rename="camel", forbid_unknown_fields=True):
    """Top-level wtx configuration."""

    main_branch: str = ""
    default_base_branch: str = DEFAULT_BASE_BRANCH
    worktrees_dir: str = DEFAULT_WORKTREES_DIR
    remote: str = DEFAULT_REMOTE
    copy_files: list[CopyFileConfig] = field(default_factory=list)
    post_create_hooks: list[HookConfig] = field(default_factory=list)
    post_create: list[PostCreateAction] = field(default_factory=list)
    llm: LLMConfig = field(default_factory=LLMConfig)

    def __post_init__(self) -> None:
        if not self.default_base_branch.strip():
            self.default_base_branch = DEFAULT_BASE_BRANCH
        if not self.main_branch.strip():
            self.main_branch = self.default_base_branch
        if not self.worktrees_dir.strip():
            self.worktrees_dir = DEFAULT_WORKTREES_DIR
        if not self.remote.strip():
            self.remote = DEFAULT_REMOTE

    @property
    def allowed_assistants(self) -> list[str]:
        """Assistants accepted on the command line (falls back to configured commands)."""
        if self.llm.allowed:
            return list(self.llm.allowed)
        return sorted(self.llm.commands)

    def normalize_assistant(self, value: str) -> str:
        """Return the allowed id matching ``value`` case-insensitively, or "" if none does."""
        candidate = value.strip().lower()
        if not candidate:
            return ""
        for allowed in self.allowed_assistants:
            if allowed.lower() == candidate:
                return allowed
        return ""

    def assistant_command(self, assistant: str) -> AssistantCommand | None:
        """Command config for ``assistant``; an exact key wins over a case-insensitive one."""
        if assistant in self.llm.commands:
            return self.llm.commands[assistant]
        wanted = assistant.lower()
        for name, command in self.llm.commands.items():
            if name.lower() == wanted:
                return command
        return None

    def post_create_actions(self) -> list[PostCreateAction]:
        """The effective provisioning pipeline, legacy keys first.

        Order: ``copyFiles`` as copy actions, ``postCreateHooks`` as run
        actions, then the explicit ``postCreate`` list.
        """
        actions: list[PostCreateAction] = [
            CopyAction(from_=item.from_, to=item.to) for item in self.copy_files
        ]
        actions.extend(
            RunAction(
                command=list(hook.command),
                name=hook.name,
                cwd=hook.cwd,
                skip_if_missing=hook.skip_if_missing,
            )
            for hook in self.post_create_hooks
        )
        actions.extend(self.post_create)
        return actions


def load_config(path: Path) -> Config:
    """Read and decode a JSON config file.

    Raises:
        ConfigError: If the file cannot be read or fails validation
    """
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ConfigError(f"cannot read config {path}: {exc.strerror or exc}") from exc

    try:
        return msgspec.json.decode(raw, type=Config)
    except (msgspec.DecodeError, ValueError) as exc:
        raise ConfigError(f"invalid config {path}: {exc}") from exc


def resolve_config_path(
    explicit: str | os.PathLike[str] | None = None,
    *,
    cwd: Path | None = None,
    repo_root: Path | None = None,
) -> Path:
    """Locate the config file.

    Search order: explicit path, $WTX_CONFIG_PATH, the CONFIG_CANDIDATES in the
    current directory, then ``<repo_root>/.wtx/config.json``.

    Raises:
        ConfigError: If no candidate exists
    """
    if explicit:
        return Path(explicit)
    env_path = os.getenv(CONFIG_ENV_VAR, "").strip()
    if env_path:
        return Path(env_path)

    base = Path(cwd) if cwd is not None else Path.cwd()
    searched = [base / name for name in CONFIG_CANDIDATES]
    if repo_root is not None:
        searched.append(Path(repo_root) / ".wtx" / "config.json")

    for candidate in searched:
        if candidate.is_file():
            return candidate

    raise ConfigError(
        "config file not found (searched: "
        + ", ".join(str(p) for p in searched)
        + f"; set ${CONFIG_ENV_VAR} or pass --config)"
    )


__all__ = [
    "AssistantCommand",
    "Config",
    "CopyAction",
    "CopyFileConfig",
    "HookConfig",
    "InstallAction",
    "LLMConfig",
    "PostCreateAction",
    "RunAction",
    "load_config",
    "resolve_config_path",
]
