"""Main orchestration loop for codeagent."""

from __future__ import annotations

import enum
import logging
from typing import (
    ContextManager,
    Protocol,
)

from codeagent.agent.completion import (
    CompletionClient,
    RemoteServiceError,
)
from codeagent.agent.conversation import ConversationState
from codeagent.agent.tool_executor import ToolDispatcher
from codeagent.common import summarize
from codeagent.core.schema import (
    AssistantTurn,
    StopReason,
)
from codeagent.tools import ToolRegistry

logger = logging.getLogger(__name__)

EXIT_COMMANDS = {"exit", "quit"}


class OperatorIO(Protocol):
    """What the loop needs from the terminal (see ``codeagent.client.cli.TerminalUI``)."""

    def read_input(self) -> str | None: ...

    def thinking(self) -> ContextManager[None]: ...

    def info(self, text: str) -> None: ...

    def assistant(self, text: str) -> None: ...

    def tool_invocation(self, name: str, summary: str) -> None: ...

    def error(self, message: str) -> None: ...


class LoopState(enum.Enum):
    """States of the turn loop."""

    AWAITING_INPUT = "awaiting_input"
    CALLING_REMOTE = "calling_remote"
    EXECUTING_TOOLS = "executing_tools"
    PRESENTING = "presenting"
    ENDED = "ended"


class ToolRoundLimitExceeded(RuntimeError):
    """Raised when the model keeps requesting tools past ``max_tool_rounds``."""


# ---------------------------------------------------------------------------
# Agent Loop
# ---------------------------------------------------------------------------
class AgentLoop:
    """
    Drive the conversation between the operator, the completion service and the local tools.

    One operator message is handled to completion (any number of tool rounds) before the next
    one is read.  Tool failures come back as error results from the dispatcher; completion
    service failures are shown to the operator and the failed exchange is rolled back.

    Parameters
    ----------
    client:
        Completion service backend.
    registry:
        Tools the model may request; schemas are exported on every request.
    ui:
        Operator input/output.
    system_prompt:
        Optional system instructions sent with every request.
    max_tool_rounds:
        Tool rounds allowed per operator message before the session is aborted; 0 disables
        the limit.
    """

    def __init__(
        self,
        client: CompletionClient,
        registry: ToolRegistry,
        ui: OperatorIO,
        system_prompt: str | None = None,
        max_tool_rounds: int = 25,
    ) -> None:
        self.client = client
        self.registry = registry
        self.dispatcher = ToolDispatcher(registry)
        self.ui = ui
        self.system_prompt = system_prompt
        self.max_tool_rounds = max_tool_rounds
        self.conversation = ConversationState()
        self.state = LoopState.AWAITING_INPUT

    def _enter(self, state: LoopState) -> None:
        logger.debug("Loop state %s -> %s", self.state.value, state.value)
        self.state = state

    # ------------------------------------------------------------------ #
    # Session
    # ------------------------------------------------------------------ #
    def run(self) -> int:
        """Run the session until the operator leaves; return the process exit code."""
        self.ui.info("Code Editing Agent - Ready")
        self.ui.info('Type "exit" or "quit" to end the session.\n')

        while self.state is not LoopState.ENDED:
            self._enter(LoopState.AWAITING_INPUT)
            user_msg = self.ui.read_input()
            if user_msg is None:
                self._enter(LoopState.ENDED)
                break
            try:
                self.handle_input(user_msg)
            except ToolRoundLimitExceeded as exc:
                logger.warning("Aborting session: %s", exc)
                self.ui.error(f"{exc} Session aborted.")
                self._enter(LoopState.ENDED)
                return 1
        return 0

    def handle_input(self, user_msg: str) -> None:
        """Handle one line of operator input."""
        command = user_msg.strip().lower()
        if command in EXIT_COMMANDS:
            self.ui.info("Goodbye!")
            self._enter(LoopState.ENDED)
            return
        if not command:
            return
        self.run_turn(user_msg)

    # ------------------------------------------------------------------ #
    # One operator turn
    # ------------------------------------------------------------------ #
    def run_turn(self, user_msg: str) -> None:
        """
        Send *user_msg*, run tools for as long as the model asks, then present the answer.

        A failed completion request discards everything this turn appended, so the next request
        starts from the transcript as it was before *user_msg*.
        """
        mark = self.conversation.checkpoint()
        self.conversation.add_operator(user_msg)
        try:
            turn = self._call_remote()
            rounds = 0
            while turn.stop_reason == StopReason.TOOL_USE:
                if not turn.tool_requests:
                    logger.warning("Stop reason is tool_use but no tool was requested")
                    break
                rounds += 1
                if self.max_tool_rounds and rounds > self.max_tool_rounds:
                    raise ToolRoundLimitExceeded(
                        f"Tool round limit of {self.max_tool_rounds} reached."
                    )
                self._execute_tools(turn)
                turn = self._call_remote()
        except RemoteServiceError as exc:
            logger.error("Completion request failed: %s", exc)
            self.ui.error(str(exc))
            self.conversation.rollback(mark)
            return
        except ToolRoundLimitExceeded:
            self.conversation.rollback(mark)
            raise

        self._enter(LoopState.PRESENTING)
        self._present(turn)

    def _call_remote(self) -> AssistantTurn:
        self._enter(LoopState.CALLING_REMOTE)
        with self.ui.thinking():
            response = self.client.complete(
                self.conversation.turns,
                self.registry.export_schemas(),
                system=self.system_prompt,
            )
        return self.conversation.add_assistant(response)

    def _execute_tools(self, turn: AssistantTurn) -> None:
        self._enter(LoopState.EXECUTING_TOOLS)
        # Narration comes before the tool output it introduces.
        self._present(turn)
        results = self.dispatcher.dispatch_all(
            turn.tool_requests,
            on_dispatch=lambda request: self.ui.tool_invocation(
                request.name, summarize(request.input)
            ),
        )
        self.conversation.add_tool_results(results)

    def _present(self, turn: AssistantTurn) -> None:
        for text in turn.texts:
            if text:
                self.ui.assistant(text)
