# src/wtx/naming.py
"""
Branch name derivation.

The resolver asks the configured assistant for a name, scans its free-form
output for something branch-shaped, and falls back to a slug of the task
text when the assistant is unavailable or unhelpful. Whatever it returns is
passed through sanitize_branch before it reaches git.
"""

import logging
import re
from typing import Final

from .assistant import AssistantRunner
from .config import Config
from .errors import AssistantUnavailable
from .runtime import Runtime

logger = logging.getLogger(__name__)

CATEGORY_PREFIXES: Final[tuple[str, ...]] = (
    "feature/",
    "bugfix/",
    "fix/",
    "chore/",
    "refactor/",
)
DEFAULT_PREFIX: Final[str] = "feature/"
MAX_BRANCH_LENGTH: Final[int] = 120
FALLBACK_SLUG: Final[str] = "task"

_INVALID_RUN: Final[re.Pattern[str]] = re.compile(r"[^a-z0-9/-]+")
_DASH_RUN: Final[re.Pattern[str]] = re.compile(r"-+")
_SLASH_RUN: Final[re.Pattern[str]] = re.compile(r"/+")
_NON_ALNUM_RUN: Final[re.Pattern[str]] = re.compile(r"[^a-z0-9]+")

# docs/ and test/ are recognised in assistant output but are not kept as
# prefixes: sanitize_branch files them under feature/.
_CANDIDATE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\b(?:feature|bugfix|fix|chore|refactor|docs|test)/[a-z0-9][a-z0-9\-/]{1,120}\b"
)
_TOKEN_PUNCTUATION: Final[str] = "\"'`.,:;[](){}<>"


def sanitize_branch(value: str) -> str:
    """Normalize arbitrary text into a prefixed, length-bounded branch name.

    Every ``/``-separated segment ends up starting and ending with
    ``[a-z0-9]``, so the result never contains ``--``, ``//`` or a dangling
    separator.

    Returns:
        The branch name, or "" when nothing usable remains. Callers must
        treat "" as a failure.
    """
    s = value.strip().lower()
    s = _INVALID_RUN.sub("-", s)
    s = _DASH_RUN.sub("-", s)
    s = _SLASH_RUN.sub("/", s)
    s = "/".join(seg for seg in (part.strip("-") for part in s.split("/")) if seg)
    if not s:
        return ""

    if not s.startswith(CATEGORY_PREFIXES):
        s = DEFAULT_PREFIX + s
    if len(s) > MAX_BRANCH_LENGTH:
        s = s[:MAX_BRANCH_LENGTH].rstrip("-/")
    return s


def extract_branch_candidate(output: str) -> str:
    """Pick a branch name out of free-form assistant output.

    Prefers the last category-prefixed token; otherwise takes the last
    whitespace-separated token that survives sanitization.

    Returns:
        A sanitized branch name, or "" if the output holds nothing usable.
    """
    text = output.replace("\r", "\n").lower()

    for match in reversed(_CANDIDATE_PATTERN.findall(text)):
        branch = sanitize_branch(match)
        if branch and len(branch) <= MAX_BRANCH_LENGTH:
            return branch

    for token in reversed(text.split()):
        branch = sanitize_branch(token.strip(_TOKEN_PUNCTUATION))
        if branch and len(branch) <= MAX_BRANCH_LENGTH:
            return branch
    return ""


def fallback_slug(task: str) -> str:
    """Deterministic slug of the task text ("task" when nothing is left)."""
    slug = _NON_ALNUM_RUN.sub("-", task.lower()).strip("-")
    return slug or FALLBACK_SLUG


def render_prompt(template: str, task: str) -> str:
    return template.replace("{task}", task)


def resolve_branch_name(
    task: str,
    assistant: str,
    config: Config,
    runtime: Runtime | None = None,
) -> str:
    """Derive a raw branch candidate for ``task``. Never raises.

    The result still has to go through sanitize_branch.
    """
    command = config.assistant_command(assistant)
    if command is not None and command.branch_name_args_template:
        runner = AssistantRunner(assistant, command, runtime)
        prompt = render_prompt(config.llm.branch_name_prompt_template, task)
        try:
            result = runner.suggest_branch(prompt, task)
        except AssistantUnavailable as exc:
            logger.info("branch naming falls back to task slug: %s", exc)
        else:
            if result.ok:
                if candidate := extract_branch_candidate(result.stdout):
                    return candidate
                logger.info("no branch name found in %s output", assistant)
            else:
                logger.info(
                    "%s exited with status %d while naming the branch",
                    assistant,
                    result.returncode,
                )

    return fallback_slug(task)
