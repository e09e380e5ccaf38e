"""Terminal front-end for the agent loop: prompt, spinner, and coloured output."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from rich.console import Console

from codeagent.common import (
    AnsiColors,
    colored,
    colored_print,
    error_print,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------
def get_user_message(prompt: str = "") -> str | None:
    """
    Read one line from standard input.

    Returns:
        The line as typed (not stripped), or None if input couldn't be read (EOF or Ctrl+C).
    """
    import signal  # pylint: disable=import-outside-toplevel

    # Ensure SIGINT breaks out of slow system calls such as read()
    # (True  ⇒  *do* interrupt;  False ⇒ restart them)
    if hasattr(signal, "siginterrupt"):
        signal.siginterrupt(signal.SIGINT, True)

    try:
        return input(prompt)
    except (EOFError, KeyboardInterrupt):
        print()
        return None


# ---------------------------------------------------------------------------
# Terminal UI
# ---------------------------------------------------------------------------
class TerminalUI:
    """Everything the agent loop shows to, or reads from, the operator."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(stderr=True)

    def read_input(self) -> str | None:
        """Prompt for one line; None ends the session."""
        return get_user_message(colored("> ", AnsiColors.BOLD_GREEN))

    @contextmanager
    def thinking(self, message: str = "Thinking...") -> Iterator[None]:
        """Show a spinner while the completion service is working."""
        with self._console.status(message, spinner="dots"):
            yield

    def info(self, text: str) -> None:
        """Plain status line."""
        print(text)

    def assistant(self, text: str) -> None:
        """Text produced by the model."""
        colored_print(text, AnsiColors.CYAN)

    def tool_invocation(self, name: str, summary: str) -> None:
        """A tool about to run, with a short summary of its input."""
        colored_print(f"⚡ {name}: {summary}", AnsiColors.YELLOW)

    def error(self, message: str) -> None:
        """An error for the operator; the session may continue."""
        error_print(f"Error: {message}")
