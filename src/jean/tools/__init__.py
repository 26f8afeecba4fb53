from .base import BaseTool, ToolCallResult
from .errors import (
    InvalidArgumentsError,
    InvalidPatternError,
    NotFoundError,
    ToolError,
    ToolIOError,
    UnknownToolError,
)
from .executor import ToolExecutor, default_tools, format_error, parse_arguments, tool_definitions
from .grep import GrepTool, glob_matches
from .ignore import IgnoreRules
from .read_file import ReadFileTool

__all__ = [
    "BaseTool",
    "GrepTool",
    "IgnoreRules",
    "InvalidArgumentsError",
    "InvalidPatternError",
    "NotFoundError",
    "ReadFileTool",
    "ToolCallResult",
    "ToolError",
    "ToolExecutor",
    "ToolIOError",
    "UnknownToolError",
    "default_tools",
    "format_error",
    "glob_matches",
    "parse_arguments",
    "tool_definitions",
]
