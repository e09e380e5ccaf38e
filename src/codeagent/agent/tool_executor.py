"""Dispatches tool requests to the handlers in a ``ToolRegistry`` and wraps every failure."""

import logging
from typing import (
    Callable,
    List,
    Optional,
    Sequence,
)

from pydantic import ValidationError

from codeagent.core.schema import (
    ToolResult,
    ToolUseBlock,
)
from codeagent.tools import (
    ToolOutput,
    ToolRegistry,
)

logger = logging.getLogger(__name__)

ERROR_PREFIX = "error:"


class ToolExecutionError(RuntimeError):
    """Raised by a tool handler to fail cleanly; the message is reported as-is."""


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "input"
        parts.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts)


class ToolDispatcher:
    """
    Resolve tool requests against a registry and turn every outcome into a ``ToolResult``.

    ``dispatch`` never raises: unknown tools, invalid input, handler exceptions and error-shaped
    return values all become results with ``is_error=True``, so one misbehaving tool cannot end
    the session.
    """

    def __init__(self, registry: ToolRegistry) -> None:
        self.registry = registry

    def dispatch(self, request: ToolUseBlock) -> ToolResult:
        """
        Run the tool named by *request*.

        Parameters
        ----------
        request:
            The tool request emitted by the completion service.

        Returns
        -------
        ToolResult
            The outcome, answering ``request.id``.
        """
        output = self._run(request)
        if output.is_error:
            logger.info("Tool '%s' (%s) failed: %s", request.name, request.id, output.content)
        else:
            logger.info(
                "Tool '%s' (%s) returned %d chars", request.name, request.id, len(output.content)
            )
        return ToolResult(tool_use_id=request.id, content=output.content, is_error=output.is_error)

    def dispatch_all(
        self,
        requests: Sequence[ToolUseBlock],
        on_dispatch: Optional[Callable[[ToolUseBlock], None]] = None,
    ) -> List[ToolResult]:
        """
        Dispatch *requests* one at a time, in order; one result per request.

        *on_dispatch*, if given, is called with each request just before it runs.
        """
        results = []
        for request in requests:
            if on_dispatch is not None:
                on_dispatch(request)
            results.append(self.dispatch(request))
        return results

    def _run(self, request: ToolUseBlock) -> ToolOutput:
        definition = self.registry.lookup(request.name)
        if definition is None:
            logger.warning("Unknown tool requested: '%s'", request.name)
            return ToolOutput.error(f"Unknown tool: {request.name}")

        try:
            params = definition.input_model.model_validate(request.input)
        except ValidationError as exc:
            return ToolOutput.error(
                f"Invalid input for tool '{request.name}': {_format_validation_error(exc)}"
            )

        try:
            logger.debug("Executing tool '%s' with input=%s", request.name, request.input)
            result = definition.handler(params)
        except ToolExecutionError as exc:
            return ToolOutput.error(str(exc))
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unhandled error in tool '%s'", request.name)
            return ToolOutput.error(f"Tool '{request.name}' raised an error: {exc}")

        if isinstance(result, ToolOutput):
            return result
        text = result if isinstance(result, str) else str(result)
        if text.lstrip().lower().startswith(ERROR_PREFIX):
            return ToolOutput.error(text)
        return ToolOutput.ok(text)
