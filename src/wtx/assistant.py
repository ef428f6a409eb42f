# src/wtx/assistant.py
"""Synchronous runner for the configured assistant CLI."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

from .config import AssistantCommand
from .errors import AssistantUnavailable, CommandError, ConfigError
from .runtime import ExecutionResult, LocalRuntime, Runtime


def render_args(template: list[str], variables: Mapping[str, str]) -> list[str]:
    """Substitute placeholders verbatim in every element of an argument template."""
    rendered: list[str] = []
    for value in template:
        for placeholder, replacement in variables.items():
            value = value.replace(placeholder, replacement)
        rendered.append(value)
    return rendered


class AssistantRunner:
    """Invoke one assistant CLI for branch naming or a task run."""

    __slots__ = ("assistant_id", "command", "_runtime")

    def __init__(
        self,
        assistant_id: str,
        command: AssistantCommand,
        runtime: Runtime | None = None,
    ) -> None:
        self.assistant_id = assistant_id
        self.command = command
        self._runtime = runtime or LocalRuntime()

    @property
    def executable_name(self) -> str:
        return self.command.executable or self.assistant_id

    def resolve_executable(self) -> str:
        """Locate the executable on PATH.

        Raises:
            AssistantUnavailable: If it cannot be found
        """
        binary = self._runtime.which(self.executable_name)
        if binary is None:
            raise AssistantUnavailable(f"{self.executable_name} not found on PATH")
        return binary

    def suggest_branch(self, prompt: str, task: str) -> ExecutionResult:
        """Ask the assistant for a branch name; stdout and stderr come back combined.

        Raises:
            AssistantUnavailable: If the executable is missing or cannot be launched
        """
        binary = self.resolve_executable()
        args = render_args(
            self.command.branch_name_args_template,
            {"{prompt}": prompt, "{task}": task},
        )
        try:
            return self._runtime.execute([binary, *args], combine_output=True)
        except OSError as exc:
            raise AssistantUnavailable(f"cannot launch {binary}: {exc}") from exc

    def task_args(self, task: str) -> list[str]:
        """Rendered task-run arguments.

        Raises:
            ConfigError: If the template renders to nothing
        """
        args = render_args(self.command.task_run_args_template, {"{task}": task})
        if not args:
            raise ConfigError(f"empty taskRunArgsTemplate for {self.assistant_id}")
        return args

    def run_task(self, task: str, cwd: Path) -> None:
        """Run the task interactively inside ``cwd``.

        Raises:
            ConfigError: If the task template is empty
            AssistantUnavailable: If the executable is missing or cannot be launched
            CommandError: If the assistant exits non-zero
        """
        args = self.task_args(task)
        binary = self.resolve_executable()
        command = [binary, *args]
        try:
            returncode = self._runtime.stream(command, cwd=str(cwd))
        except OSError as exc:
            raise AssistantUnavailable(f"cannot launch {binary}: {exc}") from exc
        if returncode != 0:
            raise CommandError(command, ExecutionResult(returncode, "", ""))


__all__ = ["AssistantRunner", "render_args"]
