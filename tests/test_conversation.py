"""Tests for the conversation transcript and its request/result pairing."""

import pytest

from codeagent.agent.conversation import (
    ConversationError,
    ConversationState,
)
from codeagent.core.schema import (
    AssistantTurn,
    CompletionResponse,
    OperatorTurn,
    StopReason,
    TextBlock,
    ToolResult,
    ToolResultBatch,
    ToolUseBlock,
)
from conftest import (
    text_response,
    tool_response,
)


def test_turns_are_appended_in_order() -> None:
    """Operator, assistant and result turns keep their order."""

    state = ConversationState()
    state.add_operator("read foo.txt")
    state.add_assistant(tool_response(("t1", "read_file", {"file_path": "foo.txt"})))
    state.add_tool_results([ToolResult(tool_use_id="t1", content="contents")])
    state.add_assistant(text_response("It says contents"))

    kinds = [type(turn) for turn in state]
    assert kinds == [OperatorTurn, AssistantTurn, ToolResultBatch, AssistantTurn]
    assert len(state) == 4
    assert state.pending_tool_requests() == []


def test_pending_requests_block_other_appends() -> None:
    """While a tool request is unanswered nothing but its results may be appended."""

    state = ConversationState()
    state.add_operator("go")
    state.add_assistant(tool_response(("t1", "read_file", {})))

    assert [r.id for r in state.pending_tool_requests()] == ["t1"]
    with pytest.raises(ConversationError):
        state.add_operator("again")
    with pytest.raises(ConversationError):
        state.add_assistant(text_response("done"))


def test_results_must_answer_every_request_in_order() -> None:
    """A batch with missing, extra or reordered ids is rejected."""

    state = ConversationState()
    state.add_operator("go")
    state.add_assistant(tool_response(("a", "x", {}), ("b", "y", {})))

    with pytest.raises(ConversationError):
        state.add_tool_results([ToolResult(tool_use_id="a", content="")])
    with pytest.raises(ConversationError):
        state.add_tool_results(
            [ToolResult(tool_use_id="b", content=""), ToolResult(tool_use_id="a", content="")]
        )
    state.add_tool_results(
        [ToolResult(tool_use_id="a", content=""), ToolResult(tool_use_id="b", content="")]
    )
    assert state.pending_tool_requests() == []


def test_results_without_pending_requests_rejected() -> None:
    """A result batch needs an assistant turn with tool requests right before it."""

    state = ConversationState()
    state.add_operator("hello")

    with pytest.raises(ConversationError):
        state.add_tool_results([ToolResult(tool_use_id="t1", content="")])


def test_truncated_response_keeps_text_only() -> None:
    """Tool requests from a non-tool_use response are dropped so none stay unanswered."""

    state = ConversationState()
    state.add_operator("go")
    turn = state.add_assistant(
        CompletionResponse(
            stop_reason=StopReason.MAX_TOKENS,
            content=[TextBlock(text="partial"), ToolUseBlock(id="t1", name="read_file")],
        )
    )

    assert turn.texts == ["partial"]
    assert turn.tool_requests == []
    state.add_operator("next")


def test_rollback_discards_turns_after_checkpoint() -> None:
    """Rolling back restores the transcript to the checkpoint."""

    state = ConversationState()
    state.add_operator("first")
    state.add_assistant(text_response("ok"))
    mark = state.checkpoint()
    state.add_operator("second")
    state.add_assistant(tool_response(("t1", "read_file", {})))

    state.rollback(mark)

    assert len(state) == 2
    assert state.pending_tool_requests() == []
    with pytest.raises(ConversationError):
        state.rollback(5)


def test_turns_snapshot_is_immutable() -> None:
    """``turns`` is a copy; changing it does not change the state."""

    state = ConversationState()
    state.add_operator("hi")

    snapshot = state.turns
    assert isinstance(snapshot, tuple)
    state.add_assistant(text_response("hello"))
    assert len(snapshot) == 1
