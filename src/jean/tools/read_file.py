from pathlib import Path
from typing import Any

from .base import BaseTool
from .errors import NotFoundError, ToolIOError


class ReadFileTool(BaseTool):
    """Tool for reading file contents.

    Returns the whole file. There is no size limit here; very large files are
    bounded only by what the connection and the model context can carry.
    """

    @property
    def name(self) -> str:
        return "read_file"

    @property
    def description(self) -> str:
        return (
            "Read a file and return its full contents. "
            "Use this when you need to examine a specific file."
        )

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Absolute or workspace-relative path of the file to read"
                }
            },
            "required": ["path"],
            "additionalProperties": False
        }

    def resolve(self, file_path: str) -> Path:
        path = Path(file_path).expanduser()
        if not path.is_absolute():
            path = self._base_path / path
        return path

    def run(self, arguments: dict[str, Any]) -> str:
        file_path = self._require_str(arguments, "path")
        path = self.resolve(file_path)

        if not path.exists():
            raise NotFoundError(f"File not found: {file_path}")
        if path.is_dir():
            raise ToolIOError(f"Is a directory: {file_path}")

        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise ToolIOError(f"Cannot read {file_path}: {e.strerror or e}") from e
