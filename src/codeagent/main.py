"""
codeagent entry point.

This file handles startup concerns (arg-parsing, env setup, logging), checks the completion service
credential, wires the registry, backend and terminal together, and runs the agent loop.
"""

import argparse
import logging
import sys

from codeagent.agent.agent_loop import AgentLoop
from codeagent.agent.completion import (
    ConfigurationError,
    available_backends,
    load_backend,
)
from codeagent.client.cli import TerminalUI
from codeagent.common import error_print
from codeagent.config import settings
from codeagent.tools import ToolRegistry
from codeagent.tools.filesystem import register_filesystem_tools

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _init_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.WARNING)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        stream=sys.stderr,
    )
    # SDK transport chatter drowns out the agent's own messages
    for name in ("httpx", "anthropic", "openai"):
        logging.getLogger(name).setLevel(logging.WARNING)


def build_registry() -> ToolRegistry:
    """Registry holding every built-in tool."""
    registry = ToolRegistry()
    register_filesystem_tools(registry)
    return registry


def build_parser() -> argparse.ArgumentParser:
    """Command-line options; defaults come from the settings."""
    parser = argparse.ArgumentParser(description="Chat with a tool-using code editing agent")
    parser.add_argument(
        "--backend",
        choices=available_backends(),
        type=str.lower,
        default=settings.BACKEND,
        help="Completion service backend (default from env: %(default)s)",
    )
    parser.add_argument("--model", default=None, help="Model identifier for the backend")
    parser.add_argument(
        "--max-tokens",
        type=int,
        default=settings.MAX_TOKENS,
        help="Maximum output tokens per response (default: %(default)s)",
    )
    parser.add_argument(
        "--max-tool-rounds",
        type=int,
        default=settings.MAX_TOOL_ROUNDS,
        help="Tool rounds allowed per message, 0 for no limit (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        type=str.lower,
        default=settings.LOG_LEVEL,
        help="Logging level (default from env: %(default)s)",
    )
    return parser


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------
def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for codeagent.

    Exits with 0 when the operator ends the session, 1 when configuration is missing or the
    session is aborted.
    """
    if argv is None:
        argv = sys.argv[1:]

    args = build_parser().parse_args(argv)

    # Override settings with command-line arguments
    settings.LOG_LEVEL = args.log_level
    settings.BACKEND = args.backend
    settings.MAX_TOKENS = args.max_tokens
    settings.MAX_TOOL_ROUNDS = args.max_tool_rounds
    if args.model:
        if args.backend == "openai":
            settings.OPENAI_MODEL = args.model
        else:
            settings.ANTHROPIC_MODEL = args.model

    _init_logging(settings.LOG_LEVEL)

    try:
        client = load_backend(settings.BACKEND, settings)
    except ConfigurationError as exc:
        error_print(f"Error: {exc}")
        sys.exit(1)

    registry = build_registry()
    logger.info(
        "Starting codeagent [backend=%s, model=%s, tools=%s]",
        settings.BACKEND,
        client.model,
        registry.names(),
    )

    loop = AgentLoop(
        client,
        registry,
        TerminalUI(),
        system_prompt=settings.SYSTEM_PROMPT,
        max_tool_rounds=settings.MAX_TOOL_ROUNDS,
    )
    sys.exit(loop.run())


if __name__ == "__main__":
    main()
