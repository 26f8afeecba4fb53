"""Ignore-file pattern matching for workspace searches.

Loads patterns from the workspace root's ``.gitignore`` and ``.ignore`` files
and answers ``is_ignored(path)`` for files and directories.

Supports:
- Glob patterns (*, ?, [...])
- Directory-only patterns (trailing /)
- Negation patterns (leading !), last match wins
- Anchored patterns (containing /) and basename patterns
- Nested ignore files are NOT supported (only the root's)

A default set of version-control, dependency and cache directories is always
applied first, so those trees are skipped even without an ignore file.
"""

import functools
import logging
import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

logger = logging.getLogger(__name__)

IGNORE_FILES = (".gitignore", ".ignore")


@functools.lru_cache(maxsize=256)
def glob_to_regex(glob: str) -> re.Pattern[str]:
    """Compile a path glob where ``*`` and ``?`` never cross a ``/``.

    ``**/`` matches zero or more leading directories and any other ``**``
    matches everything, slashes included. Bracket classes accept ``!`` for
    negation as in fnmatch.
    """
    out: list[str] = []
    i, n = 0, len(glob)
    while i < n:
        c = glob[i]
        if c == "*":
            if glob.startswith("**", i):
                i += 2
                if glob.startswith("/", i):
                    out.append("(?:.*/)?")
                    i += 1
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            end = glob.find("]", i + 2)
            if end == -1:
                out.append(re.escape(c))
            else:
                body = glob[i + 1:end].replace("\\", "\\\\")
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body}]")
                i = end + 1
                continue
        else:
            out.append(re.escape(c))
        i += 1
    return re.compile("".join(out), re.DOTALL)


@dataclass(frozen=True)
class _Pattern:
    glob: str
    negated: bool
    dir_only: bool
    anchored: bool


def _parse_line(line: str) -> _Pattern | None:
    line = line.rstrip("\n").rstrip()
    if not line or line.startswith("#"):
        return None

    negated = line.startswith("!")
    if negated:
        line = line[1:]
    if line.startswith("\\"):
        line = line[1:]

    dir_only = line.endswith("/")
    line = line.rstrip("/")
    anchored = "/" in line
    line = line.lstrip("/")
    if line.startswith("**/"):
        # "**/name" matches at any depth, same as a bare basename pattern
        line = line[3:]
        anchored = "/" in line
    if not line:
        return None
    return _Pattern(glob=line, negated=negated, dir_only=dir_only, anchored=anchored)


class IgnoreRules:
    """Ignore rules for one workspace root."""

    DEFAULT_PATTERNS: list[str] = [
        ".git/",
        ".hg/",
        ".svn/",
        "node_modules/",
        "target/",
        "__pycache__/",
        ".venv/",
        "venv/",
        ".tox/",
        ".mypy_cache/",
        ".pytest_cache/",
        ".ruff_cache/",
        "*.pyc",
        "*.pyo",
        ".DS_Store",
    ]

    def __init__(
        self,
        root: Path,
        include_defaults: bool = True,
        extra_patterns: list[str] | None = None,
    ):
        """Initialize with workspace root.

        Args:
            root: Root directory holding the ignore files
            include_defaults: Whether to apply DEFAULT_PATTERNS first
            extra_patterns: Additional patterns applied last (highest priority)
        """
        self._root = root
        self._patterns: list[_Pattern] = []

        if include_defaults:
            self.add_patterns(self.DEFAULT_PATTERNS)
        for name in IGNORE_FILES:
            self._load(root / name)
        if extra_patterns:
            self.add_patterns(extra_patterns)

    def add_patterns(self, lines: list[str]) -> None:
        for line in lines:
            pattern = _parse_line(line)
            if pattern is not None:
                self._patterns.append(pattern)

    def _load(self, path: Path) -> None:
        if not path.is_file():
            return
        try:
            self.add_patterns(path.read_text(encoding="utf-8", errors="replace").splitlines())
        except OSError as e:
            logger.warning("Cannot read ignore file %s: %s", path, e)

    def _relative(self, path: Path) -> PurePosixPath:
        try:
            rel = path.relative_to(self._root)
        except ValueError:
            rel = path
        return PurePosixPath(rel.as_posix())

    @staticmethod
    def _matches(pattern: _Pattern, rel: PurePosixPath, is_dir: bool) -> bool:
        parts = rel.parts
        # Candidates are every ancestor directory plus the path itself.
        # Directory-only patterns never apply to a file's own name.
        candidates = []
        for i in range(1, len(parts) + 1):
            own = i == len(parts)
            if pattern.dir_only and own and not is_dir:
                continue
            candidates.append(parts[:i])

        for candidate in candidates:
            subject = "/".join(candidate) if pattern.anchored else candidate[-1]
            if glob_to_regex(pattern.glob).fullmatch(subject):
                return True
        return False

    def is_ignored(self, path: Path, is_dir: bool | None = None) -> bool:
        """Check if a path should be ignored.

        Args:
            path: Path to check (absolute or relative to the root)
            is_dir: Whether the path is a directory (looked up when None)

        Returns:
            True if the path should be ignored
        """
        rel = self._relative(path)
        if not rel.parts or rel.parts == (".",):
            return False
        if is_dir is None:
            full = path if path.is_absolute() else self._root / path
            is_dir = full.is_dir()

        ignored = False
        for pattern in self._patterns:
            if self._matches(pattern, rel, is_dir):
                ignored = not pattern.negated
        return ignored
