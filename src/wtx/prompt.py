"""Interactive prompts for values not given on the command line."""

from collections.abc import Callable

from .errors import UsageError

InputFn = Callable[[str], str]


def prompt_optional(label: str, input_fn: InputFn | None = None) -> str:
    """Ask once; EOF counts as a blank answer."""
    read = input_fn or input
    try:
        return read(label).strip()
    except EOFError:
        return ""


def prompt_default(label: str, default: str, input_fn: InputFn | None = None) -> str:
    return prompt_optional(label, input_fn) or default


def prompt_required(label: str, input_fn: InputFn | None = None) -> str:
    """Ask once; a blank answer is fatal.

    Raises:
        UsageError: If nothing was entered
    """
    value = prompt_optional(label, input_fn)
    if not value:
        raise UsageError("no description provided")
    return value
