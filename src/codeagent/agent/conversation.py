"""
Conversation state for one session.

The transcript is sent in full on every request, and the completion service rejects it when a
tool request is left unanswered, so appends are checked here rather than trusted.
"""

import logging
from typing import (
    Iterator,
    List,
    Sequence,
    Tuple,
)

from codeagent.core.schema import (
    AssistantTurn,
    CompletionResponse,
    ConversationTurn,
    OperatorTurn,
    StopReason,
    TextBlock,
    ToolResult,
    ToolResultBatch,
    ToolUseBlock,
)

logger = logging.getLogger(__name__)


class ConversationError(RuntimeError):
    """Raised when an append would break the request/result pairing."""


class ConversationState:
    """Ordered, append-only transcript of operator, assistant and tool-result turns."""

    def __init__(self) -> None:
        self._turns: List[ConversationTurn] = []

    # ------------------------------------------------------------------ #
    # Appends
    # ------------------------------------------------------------------ #
    def add_operator(self, text: str) -> OperatorTurn:
        """Append the operator's message."""
        self._require_no_pending("operator turn")
        turn = OperatorTurn(text=text)
        self._turns.append(turn)
        return turn

    def add_assistant(self, response: CompletionResponse) -> AssistantTurn:
        """
        Append a completion response as an assistant turn.

        Tool requests are only kept when the service stopped to use them; a response cut short
        for another reason (``max_tokens``) keeps its text only, since nothing will answer them.
        """
        self._require_no_pending("assistant turn")
        content = list(response.content)
        if response.stop_reason != StopReason.TOOL_USE:
            dropped = [b for b in content if isinstance(b, ToolUseBlock)]
            if dropped:
                logger.warning(
                    "Dropping %d tool request(s) from a '%s' response",
                    len(dropped),
                    response.stop_reason,
                )
                content = [b for b in content if isinstance(b, TextBlock)]
        turn = AssistantTurn(content=content, stop_reason=response.stop_reason)
        self._turns.append(turn)
        return turn

    def add_tool_results(self, results: Sequence[ToolResult]) -> ToolResultBatch:
        """Append the batch answering every pending tool request, in request order."""
        pending = self.pending_tool_requests()
        if not pending:
            raise ConversationError("No tool requests are waiting for results.")
        expected = [request.id for request in pending]
        answered = [result.tool_use_id for result in results]
        if answered != expected:
            raise ConversationError(
                f"Tool results {answered} do not answer pending requests {expected}."
            )
        batch = ToolResultBatch(results=list(results))
        self._turns.append(batch)
        return batch

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #
    def pending_tool_requests(self) -> List[ToolUseBlock]:
        """Tool requests of the last turn still waiting for results."""
        if self._turns and isinstance(self._turns[-1], AssistantTurn):
            return self._turns[-1].tool_requests
        return []

    @property
    def turns(self) -> Tuple[ConversationTurn, ...]:
        """Snapshot of the transcript."""
        return tuple(self._turns)

    def __iter__(self) -> Iterator[ConversationTurn]:
        return iter(tuple(self._turns))

    def __len__(self) -> int:
        return len(self._turns)

    # ------------------------------------------------------------------ #
    # Rollback
    # ------------------------------------------------------------------ #
    def checkpoint(self) -> int:
        """Mark the current end of the transcript."""
        return len(self._turns)

    def rollback(self, mark: int) -> None:
        """Discard every turn appended after *mark*."""
        if not 0 <= mark <= len(self._turns):
            raise ConversationError(f"Invalid checkpoint {mark} for {len(self._turns)} turns.")
        if mark < len(self._turns):
            logger.info("Rolling back %d turn(s)", len(self._turns) - mark)
        del self._turns[mark:]

    def _require_no_pending(self, what: str) -> None:
        pending = self.pending_tool_requests()
        if pending:
            raise ConversationError(
                f"Cannot append {what}: {len(pending)} tool request(s) are unanswered."
            )
