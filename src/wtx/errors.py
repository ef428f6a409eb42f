"""Error hierarchy for wtx.

Every fatal condition is a WtxError; the CLI prints its message as a single
``ERROR:`` line and exits non-zero. AssistantUnavailable is the one kind
callers are expected to recover from.
"""

from __future__ import annotations

from .runtime import ExecutionResult, decode_signal


class WtxError(RuntimeError):
    """Base class for wtx errors."""


class PreconditionError(WtxError):
    """Raised when git is missing or the cwd is not inside a repository."""


class ConfigError(WtxError):
    """Raised for a missing, unreadable or inconsistent configuration."""


class UsageError(WtxError):
    """Raised for unusable command-line or interactive input."""


class NamingError(WtxError):
    """Raised when no valid branch name survives sanitization."""


class ProvisioningError(WtxError):
    """Raised when seeding a new worktree fails."""


class AssistantUnavailable(WtxError):
    """Raised when the assistant executable cannot be found or launched."""


class CommandError(WtxError):
    """Raised when an external command exits non-zero."""

    def __init__(self, command: list[str], result: ExecutionResult) -> None:
        self.command = list(command)
        self.result = result
        super().__init__(self._describe())

    def _describe(self) -> str:
        cmd = " ".join(self.command)
        if sig := decode_signal(self.result.returncode):
            status = f"terminated by {sig}"
        else:
            status = f"exit status {self.result.returncode}"
        detail = (self.result.stderr or self.result.stdout).strip()
        if detail:
            return f"{cmd} failed ({status}): {detail}"
        return f"{cmd} failed ({status})"


class GitOperationError(CommandError):
    """Raised when a git invocation exits non-zero."""


__all__ = [
    "AssistantUnavailable",
    "CommandError",
    "ConfigError",
    "GitOperationError",
    "NamingError",
    "PreconditionError",
    "ProvisioningError",
    "UsageError",
    "WtxError",
]
