"""Allow ``python -m wtx``."""

from .cli import main

main()
