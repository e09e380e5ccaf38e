"""
Schema definitions for operator <-> agent <-> model <-> tool messages.

These data models serve as the contract between the completion service, the turn loop, and the
individual tools.  We keep them separate from runtime logic so they can be imported anywhere
without side-effects.
"""

from typing import (
    Annotated,
    Any,
    Dict,
    List,
    Literal,
    Optional,
    Union,
)

from pydantic import (
    BaseModel,
    Field,
)


class StopReason:
    """Stop reasons reported by the completion service."""

    TOOL_USE = "tool_use"
    END_TURN = "end_turn"
    MAX_TOKENS = "max_tokens"
    STOP_SEQUENCE = "stop_sequence"


# ---------------------------------------------------------------------------
# Content blocks
# ---------------------------------------------------------------------------
class TextBlock(BaseModel):
    """Free text emitted by the assistant."""

    type: Literal["text"] = "text"
    text: str


class ToolUseBlock(BaseModel):
    """A request from the assistant to run a local tool."""

    type: Literal["tool_use"] = "tool_use"
    id: str = Field(..., description="Opaque call identifier chosen by the service")
    name: str = Field(..., description="Registered tool name")
    input: Dict[str, Any] = Field(default_factory=dict, description="Structured tool input")


ContentBlock = Annotated[Union[TextBlock, ToolUseBlock], Field(discriminator="type")]


class ToolResult(BaseModel):
    """The answer to one ``ToolUseBlock``."""

    tool_use_id: str
    content: str
    is_error: bool = False


# ---------------------------------------------------------------------------
# Conversation turns
# ---------------------------------------------------------------------------
class OperatorTurn(BaseModel):
    """Raw text typed by the operator."""

    role: Literal["operator"] = "operator"
    text: str


class AssistantTurn(BaseModel):
    """One response of the completion service."""

    role: Literal["assistant"] = "assistant"
    content: List[ContentBlock] = Field(default_factory=list)
    stop_reason: Optional[str] = None

    @property
    def texts(self) -> List[str]:
        """Text of every text block, in order."""
        return [block.text for block in self.content if isinstance(block, TextBlock)]

    @property
    def tool_requests(self) -> List[ToolUseBlock]:
        """Every tool request, in order."""
        return [block for block in self.content if isinstance(block, ToolUseBlock)]


class ToolResultBatch(BaseModel):
    """Results for all tool requests of the preceding assistant turn."""

    role: Literal["tool_results"] = "tool_results"
    results: List[ToolResult] = Field(default_factory=list)


ConversationTurn = Annotated[
    Union[OperatorTurn, AssistantTurn, ToolResultBatch], Field(discriminator="role")
]


class CompletionResponse(BaseModel):
    """Backend-neutral view of a completion service response."""

    stop_reason: str
    content: List[ContentBlock] = Field(default_factory=list)
