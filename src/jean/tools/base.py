"""Tool infrastructure shared by the executor and the server's tool definitions."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from .errors import InvalidArgumentsError


class ToolCallResult(BaseModel):
    """Result of executing a tool call.

    Attributes:
        tool_call_id: ID of the tool call that was executed
        content: The result content (error text when ``error`` is set)
        error: Whether an error occurred
    """

    tool_call_id: str
    content: str
    error: bool = False


class BaseTool(ABC):
    """Abstract base class for tools.

    Tools run blocking filesystem work and raise ToolError subclasses on
    failure; the executor is responsible for threading and error conversion.
    """

    def __init__(self, base_path: Path | None = None) -> None:
        self._base_path = base_path or Path.cwd()

    @property
    def base_path(self) -> Path:
        """Directory that relative paths resolve against."""
        return self._base_path

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the tool name."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Get the tool description for the LLM."""
        pass

    @property
    @abstractmethod
    def parameters_schema(self) -> dict[str, Any]:
        """Get the JSON schema for tool parameters."""
        pass

    @abstractmethod
    def run(self, arguments: dict[str, Any]) -> str:
        """Execute the tool.

        Args:
            arguments: Parsed argument object

        Returns:
            Textual result for the model

        Raises:
            ToolError: On any tool-level failure
        """
        pass

    def to_llm_spec(self) -> dict[str, Any]:
        """Convert tool to an OpenAI-style function specification."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters_schema,
            },
        }

    @staticmethod
    def _require_str(arguments: dict[str, Any], key: str) -> str:
        value = arguments.get(key)
        if not isinstance(value, str) or not value:
            raise InvalidArgumentsError(f"'{key}' must be a non-empty string")
        return value

    @staticmethod
    def _optional_int(arguments: dict[str, Any], key: str, default: int) -> int:
        value = arguments.get(key, default)
        if value is None:
            return default
        # bool is an int subclass; reject it explicitly
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidArgumentsError(f"'{key}' must be a non-negative integer")
        return value
