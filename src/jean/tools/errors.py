"""Tool failure taxonomy.

Tool errors are never fatal: the executor turns them into textual results
so the model can react. ``kind`` is the stable label shown in that text.
"""


class ToolError(Exception):
    """Base class for tool execution failures."""

    kind = "ToolError"


class NotFoundError(ToolError):
    """The requested file does not exist."""

    kind = "NotFound"


class ToolIOError(ToolError):
    """The file exists but could not be read."""

    kind = "IOError"


class InvalidPatternError(ToolError):
    """The search pattern is not a valid regular expression."""

    kind = "InvalidPattern"


class InvalidArgumentsError(ToolError):
    """The argument blob does not fit the tool's parameters."""

    kind = "InvalidArguments"


class UnknownToolError(ToolError):
    """No tool is registered under the requested name."""

    kind = "UnknownTool"
