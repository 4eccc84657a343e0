"""Tests for file system traversal functionality."""

import logging
from pathlib import Path

import pytest

from cleansweep.traversal import (
    DEFAULT_IGNORE_DIRS,
    collect_targets,
    find_source_files,
    is_source_file,
    should_ignore_directory,
)


class TestFileTypeChecks:
    """Test file type checking functions."""

    def test_is_source_file_recognizes_c_and_headers(self):
        """is_source_file() accepts .c and .h files."""
        assert is_source_file(Path("main.c"))
        assert is_source_file(Path("include/types.h"))
        assert is_source_file(Path("/absolute/path/file.C"))

    def test_is_source_file_recognizes_javascript(self):
        """is_source_file() accepts the JavaScript suffixes."""
        assert is_source_file(Path("app.js"))
        assert is_source_file(Path("lib/module.mjs"))
        assert is_source_file(Path("config.cjs"))
        assert is_source_file(Path("view.jsx"))

    def test_is_source_file_rejects_other_files(self):
        """is_source_file() returns False for unsupported suffixes."""
        assert not is_source_file(Path("main.cpp"))
        assert not is_source_file(Path("types.ts"))
        assert not is_source_file(Path("README.md"))
        assert not is_source_file(Path("Makefile"))

    def test_is_source_file_language_filter(self):
        """is_source_file() honours the languages filter."""
        assert is_source_file(Path("main.c"), languages={"c"})
        assert not is_source_file(Path("app.js"), languages={"c"})
        assert is_source_file(Path("app.js"), languages={"javascript"})


class TestDirectoryFiltering:
    """Test directory ignore logic."""

    def test_should_ignore_directory_recognizes_ignored_dirs(self):
        """should_ignore_directory() returns True for directories in ignore set."""
        ignore_set = {"build", "node_modules", "vendor"}
        assert should_ignore_directory(Path("build"), ignore_set)
        assert should_ignore_directory(Path("web/node_modules"), ignore_set)
        assert should_ignore_directory(Path("vendor"), ignore_set)

    def test_should_ignore_directory_allows_non_ignored_dirs(self):
        """should_ignore_directory() returns False for directories not in ignore set."""
        ignore_set = {"build"}
        assert not should_ignore_directory(Path("src"), ignore_set)
        assert not should_ignore_directory(Path("lib"), ignore_set)

    def test_should_ignore_directory_case_sensitive(self):
        """should_ignore_directory() is case-sensitive."""
        ignore_set = {"dist"}
        assert should_ignore_directory(Path("dist"), ignore_set)
        assert not should_ignore_directory(Path("Dist"), ignore_set)

    def test_default_ignore_dirs_includes_common_patterns(self):
        """DEFAULT_IGNORE_DIRS contains expected patterns, but not test directories."""
        assert "build" in DEFAULT_IGNORE_DIRS
        assert ".git" in DEFAULT_IGNORE_DIRS
        assert "node_modules" in DEFAULT_IGNORE_DIRS
        assert "__pycache__" in DEFAULT_IGNORE_DIRS
        assert "tests" not in DEFAULT_IGNORE_DIRS


class TestTraversal:
    """Test file traversal functions."""

    @pytest.fixture
    def temp_project(self, tmp_path):
        """Create a temporary project structure for testing."""
        # tmp_path/
        #   src/main.c, src/utils.h
        #   web/app.js
        #   web/node_modules/dep/index.js (ignored)
        #   build/compiled.c (ignored)
        #   tests/test_main.c
        #   README.md
        (tmp_path / "src").mkdir()
        (tmp_path / "web" / "node_modules" / "dep").mkdir(parents=True)
        (tmp_path / "build").mkdir()
        (tmp_path / "tests").mkdir()

        (tmp_path / "src" / "main.c").write_text("int main(void) { return 0; }")
        (tmp_path / "src" / "utils.h").write_text("int util(void);")
        (tmp_path / "web" / "app.js").write_text("function run() {}")
        (tmp_path / "web" / "node_modules" / "dep" / "index.js").write_text("module.exports = {};")
        (tmp_path / "build" / "compiled.c").write_text("// build artifact")
        (tmp_path / "tests" / "test_main.c").write_text("// test file")
        (tmp_path / "README.md").write_text("# Project")

        return tmp_path

    def test_find_source_files_collects_every_language(self, temp_project):
        """find_source_files() returns C and JavaScript files outside ignored dirs."""
        names = {f.name for f in find_source_files(temp_project)}
        assert names == {"main.c", "utils.h", "app.js", "test_main.c"}

    def test_find_source_files_language_filter(self, temp_project):
        """find_source_files() restricted to one language."""
        js_files = find_source_files(temp_project, languages={"javascript"})
        assert [f.name for f in js_files] == ["app.js"]

    def test_find_source_files_custom_ignore_dirs(self, temp_project):
        """find_source_files() respects custom ignore_dirs."""
        names = {f.name for f in find_source_files(temp_project, ignore_dirs={"tests", "node_modules"})}
        assert "test_main.c" not in names
        assert "compiled.c" in names
        assert "index.js" not in names

    def test_find_source_files_with_filter_function(self, temp_project):
        """find_source_files() applies custom filter_fn."""
        files = find_source_files(temp_project, filter_fn=lambda p: "main" in p.name)
        assert {f.name for f in files} == {"main.c", "test_main.c"}

    def test_find_source_files_empty_directory(self, tmp_path):
        """find_source_files() returns empty list for directory with no source files."""
        (tmp_path / "empty").mkdir()
        (tmp_path / "empty" / "README.txt").write_text("Nothing here")
        assert find_source_files(tmp_path / "empty") == []

    def test_find_source_files_nonexistent_directory(self):
        """find_source_files() raises FileNotFoundError for nonexistent directory."""
        with pytest.raises(FileNotFoundError):
            find_source_files(Path("/nonexistent/directory"))

    def test_find_source_files_on_file_not_directory(self, tmp_path):
        """find_source_files() raises NotADirectoryError when given a file."""
        file_path = tmp_path / "test.c"
        file_path.write_text("int main(void) { return 0; }")
        with pytest.raises(NotADirectoryError):
            find_source_files(file_path)

    def test_find_source_files_returns_sorted_results(self, temp_project):
        """find_source_files() returns files in sorted order."""
        files = find_source_files(temp_project)
        assert files == sorted(files)

    def test_find_source_files_logs_progress(self, temp_project, caplog):
        """find_source_files() logs traversal progress."""
        with caplog.at_level(logging.INFO):
            find_source_files(temp_project)
        assert "Starting traversal" in caplog.text
        assert "Traversal complete" in caplog.text


class TestCollectTargets:
    """Test expansion of command-line targets."""

    def test_files_and_directories(self, tmp_path):
        """Files keep their position; directories expand in place."""
        (tmp_path / "lib").mkdir()
        (tmp_path / "lib" / "b.c").write_text("int b;")
        (tmp_path / "lib" / "a.c").write_text("int a;")
        single = tmp_path / "z.js"
        single.write_text("let z = 1;")

        files = collect_targets([single, tmp_path / "lib"])
        assert [f.name for f in files] == ["z.js", "a.c", "b.c"]

    def test_duplicates_removed(self, tmp_path):
        """A file named twice, or also found in a directory, appears once."""
        source = tmp_path / "main.c"
        source.write_text("int main(void) { return 0; }")
        files = collect_targets([source, tmp_path, source])
        assert files == [source.resolve()]

    def test_unsupported_file_rejected(self, tmp_path):
        """An explicitly named file of an unsupported language is an error."""
        notes = tmp_path / "notes.txt"
        notes.write_text("hello")
        with pytest.raises(ValueError, match="Unsupported source file"):
            collect_targets([notes])

    def test_missing_target_rejected(self, tmp_path):
        with pytest.raises(ValueError, match="neither a file nor a directory"):
            collect_targets([tmp_path / "missing.c"])

    def test_empty_directory_warns(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING):
            assert collect_targets([tmp_path]) == []
        assert "No source files found" in caplog.text
