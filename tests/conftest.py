"""Shared fakes: a scripted completion service and a recording terminal."""

from contextlib import contextmanager
from typing import (
    Any,
    Iterator,
    List,
    Optional,
    Sequence,
    Union,
)

import pytest
from pydantic import BaseModel

from codeagent.agent.completion import CompletionClient
from codeagent.config import Settings
from codeagent.core.schema import (
    CompletionResponse,
    StopReason,
    TextBlock,
    ToolUseBlock,
)
from codeagent.tools import (
    ToolOutput,
    ToolRegistry,
)


class ScriptedClient(CompletionClient):
    """Completion client that replays canned responses and records every request."""

    def __init__(self, responses: Sequence[Union[CompletionResponse, Exception]]) -> None:
        super().__init__(Settings(ANTHROPIC_API_KEY="test-key"))
        self._responses = list(responses)
        self.requests: List[dict] = []

    @property
    def model(self) -> str:
        return "scripted"

    def complete(self, conversation, tools, system=None) -> CompletionResponse:
        self.requests.append(
            {"conversation": tuple(conversation), "tools": list(tools), "system": system}
        )
        if not self._responses:
            raise AssertionError("Unexpected completion request")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class RecordingUI:
    """Terminal stand-in: feeds scripted input lines and records what is shown."""

    def __init__(self, inputs: Sequence[Optional[str]] = ()) -> None:
        self._inputs = list(inputs)
        self.prompts = 0
        self.events: List[tuple] = []

    def read_input(self) -> Optional[str]:
        self.prompts += 1
        return self._inputs.pop(0) if self._inputs else None

    @contextmanager
    def thinking(self) -> Iterator[None]:
        self.events.append(("thinking",))
        yield

    def info(self, text: str) -> None:
        self.events.append(("info", text))

    def assistant(self, text: str) -> None:
        self.events.append(("assistant", text))

    def tool_invocation(self, name: str, summary: str) -> None:
        self.events.append(("tool", name, summary))

    def error(self, message: str) -> None:
        self.events.append(("error", message))

    def of(self, kind: str) -> List[tuple]:
        """Recorded events of one kind."""
        return [event for event in self.events if event[0] == kind]

    def shown(self) -> List[str]:
        """Assistant text shown to the operator, in order."""
        return [event[1] for event in self.of("assistant")]


def text_response(text: str, stop_reason: str = StopReason.END_TURN) -> CompletionResponse:
    """A final answer made of one text block."""
    return CompletionResponse(stop_reason=stop_reason, content=[TextBlock(text=text)])


def tool_response(*calls: Any, text: str | None = None) -> CompletionResponse:
    """A tool_use response; each call is ``(id, name, input)``."""
    content: list = [TextBlock(text=text)] if text else []
    content.extend(ToolUseBlock(id=cid, name=name, input=data) for cid, name, data in calls)
    return CompletionResponse(stop_reason=StopReason.TOOL_USE, content=content)


class FilePathInput(BaseModel):
    """Input for the stub ``read_file`` tool."""

    file_path: str


@pytest.fixture
def registry() -> ToolRegistry:
    """Registry with a stub ``read_file`` that never touches the disk."""
    reg = ToolRegistry()
    reg.calls = []  # type: ignore[attr-defined]

    @reg.tool("read_file", "Read a file (stub).", FilePathInput)
    def _read_file(params: FilePathInput) -> ToolOutput:
        reg.calls.append(params.file_path)  # type: ignore[attr-defined]
        return ToolOutput.ok("contents")

    return reg
