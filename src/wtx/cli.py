# src/wtx/cli.py
"""
wtx CLI.

Subcommands:
    start         interactive-friendly: create a worktree and run the assistant
    new           create a worktree from positional arguments (aliases: nw, new-worktree)
    clean         remove worktrees whose branches are merged into the main branch
    log           show recent lifecycle events
    version       print the installed version
"""

import argparse
import json
import logging
import os
import sys

from . import __version__
from .cleanup import CleanupReconciler
from .config import Config, load_config, resolve_config_path
from .console import print_error
from .errors import PreconditionError, UsageError, WtxError
from .events import EventLog, default_events_path
from .git import GitGateway
from .prompt import prompt_default, prompt_optional, prompt_required
from .provision import Provisioner, WorktreeRequest

LOG_LEVEL_ENV_VAR = "WTX_LOG_LEVEL"
NEW_COMMANDS = ("new", "nw", "new-worktree")

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging for wtx diagnostics."""

    logging.basicConfig(
        level=getattr(logging, level.strip().upper(), logging.WARNING),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def _repo_gateway(remote: str = "origin") -> GitGateway:
    gateway = GitGateway(remote=remote)
    if not gateway.is_available():
        raise PreconditionError("required command not found: git")
    if not gateway.is_inside_work_tree():
        raise PreconditionError("not inside a git repository")
    return gateway


def _repo_context(args: argparse.Namespace) -> tuple[Config, GitGateway]:
    """Check the repository preconditions, then load the config."""
    repo_root = _repo_gateway().repo_root()
    path = resolve_config_path(args.config, repo_root=repo_root)
    logger.debug("using config %s", path)
    config = load_config(path)
    return config, GitGateway(remote=config.remote)


TASK_LABEL = "Task description: "


def _base_label(config: Config) -> str:
    return f"Base branch [{config.default_base_branch}]: "


def _assistant_label(config: Config, default: str = "") -> str:
    label = "Choose an assistant (" + "/".join(config.allowed_assistants) + ")"
    return f"{label} [{default}]: " if default else f"{label}: "


def _require_assistant(config: Config, value: str) -> str:
    assistant = config.normalize_assistant(value)
    if not assistant:
        raise UsageError(
            "invalid AI selection (expected one of: "
            + ", ".join(config.allowed_assistants)
            + ")"
        )
    return assistant


def start_inputs(config: Config, values: list[str]) -> tuple[str, str, str]:
    """Resolve (task, base, assistant) for ``start``, prompting for what is missing.

    A lone argument that names an allowed assistant selects it and the task
    is asked for interactively.
    """
    task = ""
    base = config.default_base_branch
    assistant = ""

    match values:
        case []:
            task = prompt_required(TASK_LABEL)
            base = prompt_default(_base_label(config), config.default_base_branch)
            assistant = prompt_optional(_assistant_label(config))
        case [only] if config.normalize_assistant(only):
            assistant = only
            task = prompt_required(TASK_LABEL)
            base = prompt_default(_base_label(config), config.default_base_branch)
        case [only]:
            task = only
        case [task, base]:
            pass
        case [task, base, assistant, *_]:
            pass

    if not task.strip():
        raise UsageError("no description provided")
    if not base.strip():
        base = config.default_base_branch

    normalized = config.normalize_assistant(assistant)
    if not normalized:
        normalized = config.normalize_assistant(prompt_optional(_assistant_label(config)))
    return task, base, _require_assistant(config, normalized)


def new_inputs(
    config: Config, task: str | None, base: str | None, assistant: str | None
) -> tuple[str, str, str]:
    """Resolve (task, base, assistant) for ``new``; prompts for all three without a task."""
    task = task or ""
    base = base or config.default_base_branch
    assistant = assistant or config.llm.default

    if not task.strip():
        task = prompt_required(TASK_LABEL)
        base = prompt_default(_base_label(config), config.default_base_branch)
        assistant = prompt_default(
            _assistant_label(config, config.llm.default), config.llm.default
        )

    if not base.strip():
        base = config.default_base_branch
    return task, base, _require_assistant(config, assistant)


def _cmd_start(args: argparse.Namespace) -> None:
    config, gateway = _repo_context(args)
    task, base, assistant = start_inputs(config, args.values)
    request = WorktreeRequest(task=task, base=base, assistant=assistant, run_task=True)
    Provisioner(config, gateway=gateway).create(request)


def _cmd_new(args: argparse.Namespace) -> None:
    config, gateway = _repo_context(args)
    task, base, assistant = new_inputs(config, args.task, args.base, args.assistant)
    request = WorktreeRequest(
        task=task, base=base, assistant=assistant, run_task=not args.no_run
    )
    Provisioner(config, gateway=gateway).create(request)


def _cmd_clean(args: argparse.Namespace) -> None:
    config, gateway = _repo_context(args)
    CleanupReconciler(gateway).clean(args.main_branch or config.main_branch)


def _cmd_log(args: argparse.Namespace) -> None:
    gateway = _repo_gateway()
    for event in EventLog(default_events_path(gateway.common_dir())).tail(args.limit):
        print(json.dumps(event))


def _cmd_version(_args: argparse.Namespace) -> None:
    print(__version__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wtx", description="Git worktrees for autonomous coding-assistant tasks"
    )
    parser.add_argument("--config", help="Path to the JSON config file")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log every git and assistant command"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_start = sub.add_parser(
        "start",
        help="Create a worktree and run the assistant (prompts for missing values)",
    )
    p_start.add_argument(
        "values",
        nargs="*",
        metavar="ARG",
        help="TASK [BASE [ASSISTANT]], or a lone ASSISTANT to be asked for the rest",
    )

    p_new = sub.add_parser(
        "new",
        aliases=list(NEW_COMMANDS[1:]),
        help="Create a worktree (prompts for everything when TASK is omitted)",
    )
    p_new.add_argument("task", nargs="?", help="Task description")
    p_new.add_argument("base", nargs="?", help="Base branch (default from config)")
    p_new.add_argument("assistant", nargs="?", help="Assistant id (default from config)")
    p_new.add_argument(
        "--no-run", action="store_true", help="Only create the worktree; skip the task run"
    )

    p_clean = sub.add_parser("clean", help="Remove worktrees whose branches are merged")
    p_clean.add_argument("--main-branch", help="Branch to test merges against")

    p_log = sub.add_parser("log", help="Show recent worktree lifecycle events")
    p_log.add_argument("-n", dest="limit", type=int, default=20, help="Number of events")

    sub.add_parser("version", help="Print the wtx version")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point using argparse."""
    parser = build_parser()
    args = parser.parse_args(argv)

    level = "DEBUG" if args.verbose else os.getenv(LOG_LEVEL_ENV_VAR, "WARNING")
    configure_logging(level)

    try:
        if args.command == "start":
            _cmd_start(args)
        elif args.command in NEW_COMMANDS:
            _cmd_new(args)
        elif args.command == "clean":
            _cmd_clean(args)
        elif args.command == "log":
            _cmd_log(args)
        elif args.command == "version":
            _cmd_version(args)
    except (WtxError, ValueError) as exc:
        print_error(str(exc))
        sys.exit(1)
    except KeyboardInterrupt:
        print_error("interrupted")
        sys.exit(130)


if __name__ == "__main__":
    main()
