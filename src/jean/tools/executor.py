"""Dispatch of model tool calls to local tools.

Hides which tools exist and how their failures are reported: ``execute``
raises ToolError, ``run`` always produces a textual ToolCallResult so the
model turn can continue.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from ..protocol import ToolCallRequest
from .base import BaseTool, ToolCallResult
from .errors import InvalidArgumentsError, ToolError, UnknownToolError
from .grep import GrepTool
from .read_file import ReadFileTool

logger = logging.getLogger(__name__)


def default_tools(base_path: Path | None = None) -> list[BaseTool]:
    """The fixed tool set offered to the model."""
    return [ReadFileTool(base_path), GrepTool(base_path)]


def tool_definitions(base_path: Path | None = None) -> list[dict[str, Any]]:
    """OpenAI-style function specs for the default tool set."""
    return [tool.to_llm_spec() for tool in default_tools(base_path)]


def parse_arguments(arguments: Any) -> dict[str, Any]:
    """Normalize an opaque argument blob into a dict.

    Raises:
        InvalidArgumentsError: If the blob is neither an object nor a JSON object string
    """
    if arguments is None:
        return {}
    if isinstance(arguments, str):
        if not arguments.strip():
            return {}
        try:
            arguments = json.loads(arguments)
        except json.JSONDecodeError as e:
            raise InvalidArgumentsError(f"arguments are not valid JSON: {e}") from e
    if not isinstance(arguments, dict):
        raise InvalidArgumentsError("arguments must be a JSON object")
    return arguments


def format_error(error: ToolError) -> str:
    return f"Error [{error.kind}]: {error}"


class ToolExecutor:
    """Runs tool calls by exact name match against the registered tools."""

    def __init__(self, tools: list[BaseTool] | None = None, base_path: Path | None = None):
        """Initialize the executor.

        Args:
            tools: Tools to register (defaults to read_file and grep)
            base_path: Working tree for the default tools
        """
        registered = tools if tools is not None else default_tools(base_path)
        self._tools: dict[str, BaseTool] = {tool.name: tool for tool in registered}

    def definitions(self) -> list[dict[str, Any]]:
        return [tool.to_llm_spec() for tool in self._tools.values()]

    def execute(self, name: str, arguments: Any) -> str:
        """Run a tool synchronously.

        Raises:
            ToolError: UnknownToolError for unregistered names, or the tool's own failure
        """
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownToolError(f"Unknown tool: {name}")
        return tool.run(parse_arguments(arguments))

    async def run(self, call: ToolCallRequest) -> ToolCallResult:
        """Run a tool call in a worker thread, converting failures to text."""
        logger.info("Running tool %s (id=%s)", call.name, call.id)
        try:
            content = await asyncio.to_thread(self.execute, call.name, call.arguments)
        except ToolError as e:
            logger.info("Tool %s failed: %s", call.name, format_error(e))
            return ToolCallResult(tool_call_id=call.id, content=format_error(e), error=True)
        except Exception as e:
            logger.exception("Tool %s crashed", call.name)
            return ToolCallResult(
                tool_call_id=call.id,
                content=f"Error [ToolError]: {type(e).__name__}: {e}",
                error=True,
            )
        return ToolCallResult(tool_call_id=call.id, content=content)
