import logging
import os
import re
from pathlib import Path
from typing import Any

from .base import BaseTool
from .errors import InvalidPatternError
from .ignore import IgnoreRules, glob_to_regex

logger = logging.getLogger(__name__)

MAX_MATCHES = 500
BINARY_SNIFF_BYTES = 8192
_GLOB_CHARS = set("*?[")


def glob_matches(glob: str, rel_path: str) -> bool:
    """Check a workspace-relative POSIX path against a file filter.

    ``*.py`` matches by file name at any depth, ``src/**`` and ``src/**/*.rs``
    match below ``src`` (including files directly in it), and a plain
    directory name such as ``src`` matches everything below that directory.
    """
    glob = glob.strip().removeprefix("./")
    if not glob:
        return True

    regex = glob_to_regex(glob)
    if "/" not in glob and regex.fullmatch(rel_path.rsplit("/", 1)[-1]):
        return True
    if regex.fullmatch(rel_path):
        return True
    if not _GLOB_CHARS & set(glob):
        return rel_path.startswith(glob.rstrip("/") + "/")
    return False


def _read_lines(path: Path) -> list[str] | None:
    """Read a text file, returning None for binary or unreadable files."""
    try:
        data = path.read_bytes()
    except OSError as e:
        logger.debug("Skipping unreadable file %s: %s", path, e)
        return None
    if b"\0" in data[:BINARY_SNIFF_BYTES]:
        return None
    return data.decode("utf-8", errors="replace").splitlines()


def _merge_windows(hits: list[int], context: int, total: int) -> list[tuple[int, int]]:
    """Merge overlapping [start, end] line windows around 0-based hit indexes."""
    windows: list[tuple[int, int]] = []
    for hit in hits:
        start, end = max(0, hit - context), min(total - 1, hit + context)
        if windows and start <= windows[-1][1] + 1:
            windows[-1] = (windows[-1][0], max(windows[-1][1], end))
        else:
            windows.append((start, end))
    return windows


class GrepTool(BaseTool):
    """Tool for searching file contents under the workspace.

    Walks the tree below the base path, skipping anything the ignore rules
    exclude, and reports matching lines as ``path:line: text`` with optional
    ``path-line- text`` context lines.
    """

    def __init__(self, base_path: Path | None = None, max_matches: int = MAX_MATCHES):
        super().__init__(base_path)
        self._max_matches = max_matches

    @property
    def name(self) -> str:
        return "grep"

    @property
    def description(self) -> str:
        return (
            "Search for content in files using a regular expression. "
            "Ignored files (.gitignore, VCS and dependency directories) are skipped."
        )

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "pattern": {
                    "type": "string",
                    "description": "Regular expression to search for"
                },
                "glob": {
                    "type": "string",
                    "description": "Optional file filter (e.g., 'src/**/*.py', '*.txt')"
                },
                "context_lines": {
                    "type": "integer",
                    "description": "Number of lines to show before and after each match",
                    "default": 0
                }
            },
            "required": ["pattern"],
            "additionalProperties": False
        }

    def iter_files(self, rules: IgnoreRules, glob: str | None):
        """Yield (path, relative POSIX path) for every searchable file, sorted."""
        root = self._base_path
        for dirpath, dirnames, filenames in os.walk(root):
            current = Path(dirpath)
            dirnames[:] = sorted(
                d for d in dirnames
                if not rules.is_ignored(current / d, is_dir=True)
            )
            for filename in sorted(filenames):
                path = current / filename
                if rules.is_ignored(path, is_dir=False):
                    continue
                rel = path.relative_to(root).as_posix()
                if glob and not glob_matches(glob, rel):
                    continue
                yield path, rel

    def run(self, arguments: dict[str, Any]) -> str:
        pattern = self._require_str(arguments, "pattern")
        glob = arguments.get("glob") or None
        if glob is not None and not isinstance(glob, str):
            glob = None
        context = self._optional_int(arguments, "context_lines", 0)

        try:
            regex = re.compile(pattern)
        except re.error as e:
            raise InvalidPatternError(f"Invalid regex {pattern!r}: {e}") from e

        rules = IgnoreRules(self._base_path)
        output: list[str] = []
        matches = 0
        truncated = False

        for path, rel in self.iter_files(rules, glob):
            lines = _read_lines(path)
            if not lines:
                continue
            hits = [i for i, line in enumerate(lines) if regex.search(line)]
            if not hits:
                continue

            remaining = self._max_matches - matches
            if len(hits) > remaining:
                hits = hits[:remaining]
                truncated = True
            matches += len(hits)
            hit_set = set(hits)

            for start, end in _merge_windows(hits, context, len(lines)):
                if context and output:
                    output.append("--")
                for i in range(start, end + 1):
                    sep = ":" if i in hit_set else "-"
                    output.append(f"{rel}{sep}{i + 1}{sep} {lines[i]}")

            if truncated:
                break

        if truncated:
            output.append(f"... (results truncated after {self._max_matches} matches)")
        logger.debug("grep %r (glob=%s) -> %d match(es)", pattern, glob, matches)
        return "\n".join(output)
