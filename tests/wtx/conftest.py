# tests/wtx/conftest.py
"""
Shared pytest fixtures for wtx tests.

Real-git fixtures build a throwaway repository wired to a bare "origin" so
fetch, ls-remote and push run against something local.
"""

import subprocess
from pathlib import Path

import pytest

from wtx.runtime import ExecutionResult


@pytest.fixture(autouse=True)
def isolate_git_config(monkeypatch):
    """Isolate tests from user's global git config.

    Prevents GPG signing, custom hooks, and other user config
    from affecting test execution.
    """
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", "/dev/null")
    monkeypatch.setenv("GIT_CONFIG_SYSTEM", "/dev/null")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "wtx tests")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "tests@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "wtx tests")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "tests@example.com")
    monkeypatch.delenv("WTX_CONFIG_PATH", raising=False)
    monkeypatch.delenv("NO_COLOR", raising=False)


def git(*args: str, cwd: Path) -> str:
    result = subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=True
    )
    return result.stdout.strip()


@pytest.fixture
def run_git():
    """The plain git helper, for arranging repository state."""
    return git


@pytest.fixture
def git_repo(tmp_path):
    """A repo on ``main`` with ``main`` and ``develop`` pushed to a bare origin."""
    origin = tmp_path / "origin.git"
    repo = tmp_path / "repo"
    origin.mkdir()
    repo.mkdir()

    git("init", "--bare", "--quiet", cwd=origin)
    git("init", "--quiet", "-b", "main", cwd=repo)
    (repo / "README.md").write_text("# demo\n")
    git("add", "README.md", cwd=repo)
    git("commit", "--quiet", "-m", "Initial commit", cwd=repo)
    git("remote", "add", "origin", str(origin), cwd=repo)
    git("push", "--quiet", "origin", "main", cwd=repo)
    git("branch", "develop", cwd=repo)
    git("push", "--quiet", "origin", "develop", cwd=repo)
    return repo


class ScriptedRuntime:
    """Runtime double that records commands and replays canned results.

    ``responses`` maps a full command tuple to a result, or to a list of
    results consumed in order. Unscripted commands get ``default``.
    """

    def __init__(
        self,
        responses=None,
        executables=None,
        stream_codes=None,
        default: ExecutionResult | None = None,
    ):
        self.responses = dict(responses or {})
        self.executables = {"git": "/usr/bin/git"} if executables is None else executables
        self.stream_codes = dict(stream_codes or {})
        self.default = default or ExecutionResult(0, "", "")
        self.calls: list[list[str]] = []
        self.cwds: list[str | None] = []
        self.streamed: list[tuple[list[str], str | None]] = []

    def execute(self, command, cwd=None, env=None, timeout=None, combine_output=False):
        self.calls.append(list(command))
        self.cwds.append(cwd)
        scripted = self.responses.get(tuple(command))
        if isinstance(scripted, list):
            return scripted.pop(0) if scripted else self.default
        return scripted or self.default

    def stream(self, command, cwd=None):
        self.streamed.append((list(command), cwd))
        return self.stream_codes.get(tuple(command), 0)

    def which(self, name):
        return self.executables.get(name)


@pytest.fixture
def scripted_runtime():
    return ScriptedRuntime()


@pytest.fixture
def make_runtime():
    """Factory for ScriptedRuntime with custom responses."""
    return ScriptedRuntime
