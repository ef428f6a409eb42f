"""wtx - Git worktree lifecycle for autonomous coding-assistant tasks."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("wtx-cli")
except PackageNotFoundError:
    # Running from source without install
    __version__ = "0.0.0+dev"
