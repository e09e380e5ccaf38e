"""
Tool registry for codeagent.

This module provides the registry that maps tool names to their definitions, and a decorator to
register tools on it.  A tool is a handler plus a pydantic model describing its input; the model's
JSON schema is what the completion service sees when it decides which tool to request.

The registry is an ordinary object built once at startup and handed to the dispatcher and the
agent loop, so tests can build their own with whatever tools they need:

    registry = ToolRegistry()

    @registry.tool("echo", "Echo the input text back to the caller.", EchoInput)
    def echo(params: EchoInput) -> ToolOutput:
        return ToolOutput.ok(params.text)
"""

import logging
from typing import (
    Any,
    Callable,
    Dict,
    Iterator,
    List,
    Optional,
    Type,
    TypedDict,
    Union,
)

from pydantic import (
    BaseModel,
    ConfigDict,
)

logger = logging.getLogger(__name__)


class ToolOutput(BaseModel):
    """Result of a tool handler: either a success or an error, both carrying text."""

    content: str
    is_error: bool = False

    @classmethod
    def ok(cls, content: str) -> "ToolOutput":
        """Build a successful result."""
        return cls(content=content, is_error=False)

    @classmethod
    def error(cls, content: str) -> "ToolOutput":
        """Build a failed result."""
        return cls(content=content, is_error=True)


ToolHandler = Callable[[Any], Union[ToolOutput, str]]


class ToolSchema(TypedDict):
    """
    Schema for a tool, in the shape sent to the completion service.
    """

    name: str
    description: str
    input_schema: Dict[str, Any]


class ToolDefinition(BaseModel):
    """A named tool: description, input model and handler."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    description: str
    input_model: Type[BaseModel]
    handler: ToolHandler

    @property
    def input_schema(self) -> Dict[str, Any]:
        """JSON schema of the input model (always an object schema)."""
        schema = self.input_model.model_json_schema()
        schema.setdefault("type", "object")
        schema.setdefault("properties", {})
        return schema

    def to_schema(self) -> ToolSchema:
        """Export the parts of this definition the completion service needs."""
        return ToolSchema(
            name=self.name, description=self.description, input_schema=self.input_schema
        )


class ToolRegistry:
    """
    Ordered collection of tool definitions, keyed by name.

    Populated at startup and read-only while the agent loop runs.  Registering a name that is
    already present raises ``ValueError``; an existing tool is never silently replaced.
    """

    def __init__(self) -> None:
        self._tools: Dict[str, ToolDefinition] = {}

    def register(self, definition: ToolDefinition) -> None:
        """
        Add *definition* to the registry.

        Parameters
        ----------
        definition: ToolDefinition
            The tool to add.  Its name must not be registered yet.

        Raises
        ------
        ValueError
            If a tool with the same name is already registered.
        """
        if definition.name in self._tools:
            raise ValueError(f"Tool '{definition.name}' is already registered.")
        logger.debug("Registering tool '%s'", definition.name)
        self._tools[definition.name] = definition

    def tool(self, name: str, description: str, input_model: Type[BaseModel]) -> Callable:
        """
        Register the decorated function as a tool.

        The function receives a validated instance of *input_model* and returns a ``ToolOutput``
        or a plain string.  It is returned unchanged, so it can still be called directly.
        """

        def wrapper(fn: ToolHandler) -> ToolHandler:
            self.register(
                ToolDefinition(
                    name=name, description=description, input_model=input_model, handler=fn
                )
            )
            return fn

        return wrapper

    def lookup(self, name: str) -> Optional[ToolDefinition]:
        """Return the tool registered under exactly *name*, or ``None``."""
        return self._tools.get(name)

    def export_schemas(self) -> List[ToolSchema]:
        """Schemas of all registered tools, in registration order."""
        return [definition.to_schema() for definition in self._tools.values()]

    def names(self) -> List[str]:
        """Registered tool names, in registration order."""
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(list(self._tools.values()))

    def __len__(self) -> int:
        return len(self._tools)
