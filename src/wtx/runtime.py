# src/wtx/runtime.py
"""
Runtime abstraction for executing external commands on the host.

This module provides:
- Signal decoding for negative return codes
- ExecutionResult, the captured outcome of a command
- LocalRuntime for captured and streamed (inherited stdio) execution
"""

import logging
import os
import shutil
import signal
import subprocess
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


def decode_signal(returncode: int) -> str | None:
    """
    Decode negative return codes to signal names.

    Args:
        returncode: Process return code (negative indicates signal)

    Returns:
        Signal name (e.g., "SIGTERM") or None if not a signal

    Examples:
        decode_signal(-15) -> "SIGTERM"
        decode_signal(-9) -> "SIGKILL"
        decode_signal(0) -> None
        decode_signal(1) -> None
    """
    if returncode >= 0:
        return None

    sig_num = abs(returncode)
    try:
        return signal.Signals(sig_num).name
    except ValueError:
        return f"SIG{sig_num}"


@dataclass(slots=True, frozen=True)
class ExecutionResult:
    """Immutable result of executing a command."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class Runtime(Protocol):
    """Protocol for command execution engines."""

    def execute(
        self,
        command: list[str],
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        timeout: float | None = None,
        combine_output: bool = False,
    ) -> ExecutionResult:
        """
        Execute a command and capture its output.

        Args:
            command: Command and arguments to execute
            cwd: Working directory for the command
            env: Environment variables to pass to the command
            timeout: Timeout in seconds (None for no timeout)
            combine_output: If True, stderr is interleaved into stdout

        Returns:
            ExecutionResult with returncode, stdout, stderr
        """
        ...

    def stream(self, command: list[str], cwd: str | None = None) -> int:
        """
        Execute a command with stdin/stdout/stderr inherited from this process.

        Returns:
            The command's return code
        """
        ...

    def which(self, name: str) -> str | None:
        """Return the absolute path of an executable, or None if not found."""
        ...


class LocalRuntime:
    """Runtime for executing commands directly on the host system."""

    __slots__ = ()

    def execute(
        self,
        command: list[str],
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        timeout: float | None = None,
        combine_output: bool = False,
    ) -> ExecutionResult:
        """Execute a command locally, capturing output.

        Raises:
            OSError: If the executable cannot be launched
        """
        logger.debug("exec: %s (cwd=%s)", " ".join(command), cwd or ".")
        exec_env = {**os.environ, **env} if env else None

        result = subprocess.run(
            command,
            cwd=cwd,
            env=exec_env,
            timeout=timeout,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if combine_output else subprocess.PIPE,
            encoding="utf-8",
            errors="replace",
        )

        return ExecutionResult(
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr or "",
        )

    def stream(self, command: list[str], cwd: str | None = None) -> int:
        """Execute a command locally with inherited stdio.

        Raises:
            OSError: If the executable cannot be launched
        """
        logger.debug("stream: %s (cwd=%s)", " ".join(command), cwd or ".")
        return subprocess.run(command, cwd=cwd).returncode

    def which(self, name: str) -> str | None:
        return shutil.which(name)
