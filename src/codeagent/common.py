"""Common utility functions for the project."""

import json
import sys
from enum import Enum
from typing import Any


class AnsiColors(Enum):
    """
    ANSI color codes for terminal output.
    """

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[33m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"
    BOLD_GREEN = "\033[1;92m"

    def __str__(self) -> str:
        return str(self.value)


def colored(text: str, color: AnsiColors) -> str:
    """Wrap *text* in *color*, with an ANSI reset at the end."""
    return f"{color}{text}\033[0m"


def colored_print(text: str, color: AnsiColors, *args: Any, **kwargs: Any) -> None:
    """
    Print text in color.

    Args:
        text: The text to print
        color: The color to use (AnsiColors enum)
        args: Additional positional arguments for print
        kwargs: Additional keyword arguments for print
    """
    print(colored(text, color), *args, **kwargs)


def error_print(text: str) -> None:
    """Print *text* in red on stderr."""
    colored_print(text, AnsiColors.RED, file=sys.stderr)


def summarize(data: Any, limit: int = 200) -> str:
    """One-line JSON rendering of *data*, cut to *limit* characters."""
    try:
        text = json.dumps(data, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        text = str(data)
    if len(text) > limit:
        text = text[: limit - 3] + "..."
    return text
