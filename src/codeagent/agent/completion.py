"""
Completion service interface for codeagent.

This module is the only place that *directly* calls an LLM.  Everything else (agent loop, tools,
conversation state) stays model-agnostic and only sees ``CompletionResponse`` objects.

We support two back-ends out of the box:

1. **Anthropic** Messages API (default, requires ``ANTHROPIC_API_KEY``).
2. **OpenAI** Chat Completions API with function tools (requires ``OPENAI_API_KEY``).

Additional providers can be added by subclassing :class:`CompletionClient` and registering via
:func:`register_backend`.
"""

import json
import logging
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Sequence,
    Type,
)

import httpx
from pydantic import ValidationError

from codeagent.config import Settings
from codeagent.core.schema import (
    AssistantTurn,
    CompletionResponse,
    ContentBlock,
    ConversationTurn,
    OperatorTurn,
    StopReason,
    TextBlock,
    ToolResultBatch,
    ToolUseBlock,
)
from codeagent.tools import ToolSchema

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when a backend cannot be built from the current settings."""


class RemoteServiceError(RuntimeError):
    """Raised when the completion service call fails or returns something unusable."""


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_BACKEND_REGISTRY: dict[str, Type["CompletionClient"]] = {}


def register_backend(name: str) -> Callable:
    """Decorator to register a completion client class under *name*."""

    def wrapper(cls: Type["CompletionClient"]) -> Type["CompletionClient"]:
        _BACKEND_REGISTRY[name] = cls
        return cls

    return wrapper


def available_backends() -> List[str]:
    """Names accepted by :func:`load_backend`."""
    return sorted(_BACKEND_REGISTRY)


def load_backend(name: str, config: Settings) -> "CompletionClient":
    """
    Factory that returns an instantiated completion client.

    Raises
    ------
    ConfigurationError
        If *name* is not registered or its credential is missing.
    """
    cls = _BACKEND_REGISTRY.get(name.lower())
    if cls is None:
        raise ConfigurationError(
            f"Backend '{name}' is not registered (choose from {', '.join(available_backends())})."
        )
    return cls(config)


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class CompletionClient(ABC):
    """Abstract completion client: full transcript + tool schemas -> one response."""

    def __init__(self, config: Settings) -> None:
        self.config = config
        self.timeout = httpx.Timeout(config.REQUEST_TIMEOUT, connect=10.0)

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier sent with every request."""

    @abstractmethod
    def complete(
        self,
        conversation: Sequence[ConversationTurn],
        tools: Sequence[ToolSchema],
        system: str | None = None,
    ) -> CompletionResponse:
        """
        Send the whole *conversation* and the *tools* the model may request.

        Raises
        ------
        RemoteServiceError
            On any transport, API or response-shape failure.
        """


# ---------------------------------------------------------------------------
# Concrete backends
# ---------------------------------------------------------------------------
@register_backend("anthropic")
class AnthropicClient(CompletionClient):
    """Anthropic Messages API backend."""

    def __init__(self, config: Settings, client: Any = None) -> None:
        super().__init__(config)
        if client is None:
            if not config.ANTHROPIC_API_KEY:
                raise ConfigurationError(
                    "ANTHROPIC_API_KEY environment variable is not set. "
                    "Please set it and try again."
                )
            import anthropic  # pylint: disable=import-outside-toplevel

            client = anthropic.Anthropic(api_key=config.ANTHROPIC_API_KEY, timeout=self.timeout)
        self._client = client

    @property
    def model(self) -> str:
        return self.config.ANTHROPIC_MODEL

    @staticmethod
    def to_messages(conversation: Sequence[ConversationTurn]) -> List[Dict[str, Any]]:
        """Translate the transcript into Messages API ``messages``."""
        messages: List[Dict[str, Any]] = []
        for turn in conversation:
            if isinstance(turn, OperatorTurn):
                messages.append({"role": "user", "content": turn.text})
            elif isinstance(turn, AssistantTurn):
                blocks: List[Dict[str, Any]] = []
                for block in turn.content:
                    if isinstance(block, TextBlock):
                        # The API rejects empty text blocks.
                        if block.text:
                            blocks.append({"type": "text", "text": block.text})
                    else:
                        blocks.append(
                            {
                                "type": "tool_use",
                                "id": block.id,
                                "name": block.name,
                                "input": block.input,
                            }
                        )
                if blocks:
                    messages.append({"role": "assistant", "content": blocks})
            elif isinstance(turn, ToolResultBatch):
                messages.append(
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "tool_result",
                                "tool_use_id": result.tool_use_id,
                                "content": result.content,
                                "is_error": result.is_error,
                            }
                            for result in turn.results
                        ],
                    }
                )
        return messages

    @staticmethod
    def from_message(message: Any) -> CompletionResponse:
        """Translate an Anthropic ``Message`` into a ``CompletionResponse``."""
        content: List[ContentBlock] = []
        for block in getattr(message, "content", None) or []:
            block_type = getattr(block, "type", None)
            if block_type == "text":
                content.append(TextBlock(text=block.text))
            elif block_type == "tool_use":
                content.append(ToolUseBlock(id=block.id, name=block.name, input=block.input or {}))
            else:
                logger.debug("Ignoring '%s' content block", block_type)
        stop_reason = getattr(message, "stop_reason", None)
        if not stop_reason:
            raise RemoteServiceError("Malformed response: missing stop_reason")
        return CompletionResponse(stop_reason=stop_reason, content=content)

    def complete(
        self,
        conversation: Sequence[ConversationTurn],
        tools: Sequence[ToolSchema],
        system: str | None = None,
    ) -> CompletionResponse:
        import anthropic  # pylint: disable=import-outside-toplevel

        kwargs: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.config.MAX_TOKENS,
            "messages": self.to_messages(conversation),
        }
        if system:
            kwargs["system"] = system
        if tools:
            kwargs["tools"] = [dict(tool) for tool in tools]

        logger.debug(
            "Anthropic request: %d messages, %d tools", len(kwargs["messages"]), len(tools)
        )
        try:
            message = self._client.messages.create(**kwargs)
        except anthropic.APIError as e:
            logger.error("Anthropic request error: %s", str(e))
            raise RemoteServiceError(str(e)) from e

        try:
            response = self.from_message(message)
        except (ValidationError, AttributeError, TypeError) as e:
            logger.error("Malformed Anthropic response: %s", str(e))
            raise RemoteServiceError(f"Malformed response: {e}") from e
        logger.debug("Anthropic response: stop_reason=%s", response.stop_reason)
        return response


_OPENAI_STOP_REASONS = {
    "tool_calls": StopReason.TOOL_USE,
    "function_call": StopReason.TOOL_USE,
    "stop": StopReason.END_TURN,
    "length": StopReason.MAX_TOKENS,
}


@register_backend("openai")
class OpenAIClient(CompletionClient):
    """OpenAI Chat Completions backend using function tools."""

    def __init__(self, config: Settings, client: Any = None) -> None:
        super().__init__(config)
        if client is None:
            if not config.OPENAI_API_KEY:
                raise ConfigurationError(
                    "OPENAI_API_KEY environment variable is not set. Please set it and try again."
                )
            import openai  # pylint: disable=import-outside-toplevel

            client = openai.OpenAI(api_key=config.OPENAI_API_KEY, timeout=self.timeout)
        self._client = client

    @property
    def model(self) -> str:
        return self.config.OPENAI_MODEL

    @staticmethod
    def to_messages(
        conversation: Sequence[ConversationTurn], system: str | None = None
    ) -> List[Dict[str, Any]]:
        """Translate the transcript into Chat Completions ``messages``."""
        messages: List[Dict[str, Any]] = []
        if system:
            messages.append({"role": "system", "content": system})
        for turn in conversation:
            if isinstance(turn, OperatorTurn):
                messages.append({"role": "user", "content": turn.text})
            elif isinstance(turn, AssistantTurn):
                message: Dict[str, Any] = {
                    "role": "assistant",
                    "content": "\n".join(text for text in turn.texts if text) or None,
                }
                if turn.tool_requests:
                    message["tool_calls"] = [
                        {
                            "id": request.id,
                            "type": "function",
                            "function": {
                                "name": request.name,
                                "arguments": json.dumps(request.input),
                            },
                        }
                        for request in turn.tool_requests
                    ]
                elif not message["content"]:
                    # Chat Completions rejects an assistant message with neither.
                    continue
                messages.append(message)
            elif isinstance(turn, ToolResultBatch):
                for result in turn.results:
                    messages.append(
                        {
                            "role": "tool",
                            "tool_call_id": result.tool_use_id,
                            "content": result.content,
                        }
                    )
        return messages

    @staticmethod
    def to_tools(tools: Sequence[ToolSchema]) -> List[Dict[str, Any]]:
        """Translate tool schemas into function tools."""
        return [
            {
                "type": "function",
                "function": {
                    "name": tool["name"],
                    "description": tool["description"],
                    "parameters": tool["input_schema"],
                },
            }
            for tool in tools
        ]

    @staticmethod
    def from_completion(completion: Any) -> CompletionResponse:
        """Translate a ``ChatCompletion`` into a ``CompletionResponse``."""
        choices = getattr(completion, "choices", None)
        if not choices:
            raise RemoteServiceError("Malformed response: no choices")
        choice = choices[0]
        message = choice.message

        content: List[ContentBlock] = []
        if message.content:
            content.append(TextBlock(text=message.content))
        for call in getattr(message, "tool_calls", None) or []:
            try:
                arguments = json.loads(call.function.arguments or "{}")
            except json.JSONDecodeError as e:
                raise RemoteServiceError(
                    f"Malformed arguments for tool '{call.function.name}': {e}"
                ) from e
            if not isinstance(arguments, dict):
                raise RemoteServiceError(
                    f"Malformed arguments for tool '{call.function.name}': expected an object"
                )
            content.append(ToolUseBlock(id=call.id, name=call.function.name, input=arguments))

        finish_reason = choice.finish_reason or StopReason.END_TURN
        stop_reason = _OPENAI_STOP_REASONS.get(finish_reason, finish_reason)
        return CompletionResponse(stop_reason=stop_reason, content=content)

    def complete(
        self,
        conversation: Sequence[ConversationTurn],
        tools: Sequence[ToolSchema],
        system: str | None = None,
    ) -> CompletionResponse:
        import openai  # pylint: disable=import-outside-toplevel

        kwargs: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.config.MAX_TOKENS,
            "messages": self.to_messages(conversation, system),
        }
        if tools:
            kwargs["tools"] = self.to_tools(tools)

        logger.debug("OpenAI request: %d messages, %d tools", len(kwargs["messages"]), len(tools))
        try:
            completion = self._client.chat.completions.create(**kwargs)
        except openai.OpenAIError as e:
            logger.error("OpenAI request error: %s", str(e))
            raise RemoteServiceError(str(e)) from e

        try:
            response = self.from_completion(completion)
        except (ValidationError, AttributeError, TypeError) as e:
            logger.error("Malformed OpenAI response: %s", str(e))
            raise RemoteServiceError(f"Malformed response: {e}") from e
        logger.debug("OpenAI response: stop_reason=%s", response.stop_reason)
        return response
