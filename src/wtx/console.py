"""Progress output for wtx commands."""

from __future__ import annotations

import os
import sys
from typing import TextIO

# ANSI color constants
RED = "\033[0;31m"
GREEN = "\033[0;32m"
YELLOW = "\033[1;33m"
CYAN = "\033[0;36m"
BOLD = "\033[1m"
DIM = "\033[2m"
NC = "\033[0m"  # No Color


def _supports_color(stream: TextIO) -> bool:
    if os.getenv("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


class Console:
    """Writes human-readable progress lines.

    Colour is used only when the stream is a terminal and NO_COLOR is unset.
    """

    __slots__ = ("color", "stream")

    def __init__(self, stream: TextIO | None = None, color: bool | None = None) -> None:
        self.stream = stream
        self.color = color

    def _write(self, text: str, style: str = "") -> None:
        stream = self.stream or sys.stdout
        color = _supports_color(stream) if self.color is None else self.color
        if color and style:
            text = f"{style}{text}{NC}"
        print(text, file=stream, flush=True)

    def step(self, text: str) -> None:
        """A phase of the current command."""
        self._write(f"▶ {text}", CYAN + BOLD)

    def info(self, text: str) -> None:
        self._write(text)

    def detail(self, text: str) -> None:
        """Dimmed, indented detail."""
        self._write(f"  {text}", DIM)

    def success(self, text: str) -> None:
        self._write(f"✓ {text}", GREEN)

    def notice(self, text: str) -> None:
        """Something was skipped; the command carries on."""
        self._write(text, YELLOW)


def print_error(message: str) -> None:
    """The single fatal-error line on stderr."""
    print(f"ERROR: {message}", file=sys.stderr)
