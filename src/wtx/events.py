"""Append-only JSONL log of worktree lifecycle events.

Lives at ``<git common dir>/wtx/events.jsonl`` so every worktree of a
repository shares one history.
"""

import json
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

EVENTS_SUBDIR = "wtx"
EVENTS_FILENAME = "events.jsonl"


def default_events_path(common_dir: Path) -> Path:
    return Path(common_dir) / EVENTS_SUBDIR / EVENTS_FILENAME


class EventLog:
    """JSONL event log with a reverse-seek tail."""

    __slots__ = ("path",)

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def log(self, event: str, **fields: Any) -> dict[str, Any]:
        """Append one event; returns the record written.

        O_APPEND keeps lines from concurrent wtx processes intact.
        """
        record = {"timestamp": datetime.now(UTC).isoformat(), "event": event, **fields}
        line = (json.dumps(record, default=str) + "\n").encode("utf-8")

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o644)
        try:
            os.write(fd, line)
            os.fsync(fd)
        finally:
            os.close(fd)
        return record

    def tail(self, n: int, block_size: int = 4096) -> list[dict[str, Any]]:
        """The last ``n`` events, oldest first. Corrupt lines are skipped."""
        if n <= 0 or not self.path.exists():
            return []

        with self.path.open("rb") as f:
            position = f.seek(0, os.SEEK_END)
            chunks: list[bytes] = []
            newlines = 0
            # n + 1 newlines guarantee n complete lines in the buffer
            while position > 0 and newlines <= n:
                read_size = min(block_size, position)
                position -= read_size
                f.seek(position)
                chunk = f.read(read_size)
                chunks.append(chunk)
                newlines += chunk.count(b"\n")

        events: list[dict[str, Any]] = []
        for line in b"".join(reversed(chunks)).split(b"\n"):
            if not line.strip():
                continue
            try:
                events.append(json.loads(line.decode("utf-8")))
            except (json.JSONDecodeError, UnicodeDecodeError):
                continue
        return events[-n:]
