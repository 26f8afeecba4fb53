"""Unit tests for ignore-file rules."""
from pathlib import Path

import pytest

from jean.tools import IgnoreRules
from jean.tools.ignore import glob_to_regex


class TestIgnoreRules:
    """Tests for IgnoreRules."""

    def test_default_directories_are_ignored(self, workspace):
        rules = IgnoreRules(workspace)
        assert rules.is_ignored(workspace / "node_modules")
        assert rules.is_ignored(workspace / ".git")
        assert rules.is_ignored(workspace / "node_modules" / "pkg" / "index.js")

    def test_gitignore_patterns(self, workspace):
        rules = IgnoreRules(workspace)
        assert rules.is_ignored(workspace / "build")
        assert rules.is_ignored(workspace / "build" / "out.txt")
        assert rules.is_ignored(workspace / "logs" / "app.log")
        assert not rules.is_ignored(workspace / "src" / "main.py")
        assert not rules.is_ignored(workspace / "logs")

    def test_negation_last_match_wins(self, workspace):
        rules = IgnoreRules(workspace)
        assert not rules.is_ignored(workspace / "logs" / "keep.log")

    def test_directory_only_pattern_does_not_match_files(self, tmp_path):
        rules = IgnoreRules(tmp_path, extra_patterns=["cache/"])
        assert rules.is_ignored(Path("cache"), is_dir=True)
        assert not rules.is_ignored(Path("cache"), is_dir=False)
        assert rules.is_ignored(Path("cache/data.bin"), is_dir=False)

    def test_anchored_pattern(self, tmp_path):
        rules = IgnoreRules(tmp_path, extra_patterns=["/docs/*.md"])
        assert rules.is_ignored(Path("docs/a.md"), is_dir=False)
        assert not rules.is_ignored(Path("sub/docs/a.md"), is_dir=False)

    def test_single_star_stays_in_one_directory(self, tmp_path):
        (tmp_path / ".gitignore").write_text("doc/*.txt\n")
        rules = IgnoreRules(tmp_path)
        assert rules.is_ignored(Path("doc/a.txt"), is_dir=False)
        assert not rules.is_ignored(Path("doc/sub/a.txt"), is_dir=False)

    def test_double_star_crosses_directories(self, tmp_path):
        rules = IgnoreRules(tmp_path, extra_patterns=["doc/**/*.txt"])
        assert rules.is_ignored(Path("doc/a.txt"), is_dir=False)
        assert rules.is_ignored(Path("doc/sub/deep/a.txt"), is_dir=False)
        assert not rules.is_ignored(Path("src/a.txt"), is_dir=False)

    @pytest.mark.parametrize("glob,path,expected", [
        ("*.py", "main.py", True),
        ("*.py", "src/main.py", False),
        ("a?c", "abc", True),
        ("a?c", "a/c", False),
        ("[!x]y", "zy", True),
        ("[!x]y", "xy", False),
        ("src/**", "src/a/b.py", True),
        ("**/b.py", "b.py", True),
    ])
    def test_glob_to_regex(self, glob: str, path: str, expected: bool):
        assert (glob_to_regex(glob).fullmatch(path) is not None) is expected

    def test_basename_pattern_matches_at_any_depth(self, tmp_path):
        rules = IgnoreRules(tmp_path, extra_patterns=["*.tmp"])
        assert rules.is_ignored(Path("a.tmp"), is_dir=False)
        assert rules.is_ignored(Path("x/y/z.tmp"), is_dir=False)

    def test_double_star_prefix(self, tmp_path):
        rules = IgnoreRules(tmp_path, extra_patterns=["**/generated"])
        assert rules.is_ignored(Path("a/b/generated"), is_dir=True)
        assert rules.is_ignored(Path("generated/file.py"), is_dir=False)

    def test_comments_and_blank_lines_are_skipped(self, tmp_path):
        (tmp_path / ".gitignore").write_text("# comment\n\n   \n*.o\n")
        rules = IgnoreRules(tmp_path)
        assert rules.is_ignored(Path("main.o"), is_dir=False)
        assert not rules.is_ignored(Path("# comment"), is_dir=False)

    def test_dot_ignore_file_is_loaded(self, tmp_path):
        (tmp_path / ".ignore").write_text("secret.txt\n")
        assert IgnoreRules(tmp_path).is_ignored(Path("secret.txt"), is_dir=False)

    def test_without_defaults(self, tmp_path):
        rules = IgnoreRules(tmp_path, include_defaults=False)
        assert not rules.is_ignored(Path(".git"), is_dir=True)

    def test_root_is_never_ignored(self, workspace):
        assert not IgnoreRules(workspace).is_ignored(workspace)

    @pytest.mark.parametrize("name", ["__pycache__", ".venv", "target", ".pytest_cache"])
    def test_more_default_directories(self, tmp_path, name: str):
        assert IgnoreRules(tmp_path).is_ignored(Path(name) / "x", is_dir=False)
