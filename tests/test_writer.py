"""Unit tests for the output writer (specforge.writer).

Tests cover:
- Write directive parsing
- Global overwrite flag vs. per-file directives
- Skip tracking on GenerationResult
"""

from __future__ import annotations

from pathlib import Path

import pytest

from specforge.fs import LocalFileSystem
from specforge.writer import GenerationResult, OutputWriter, WriteMode, parse_write_directive

pytestmark = pytest.mark.unit


class TestParseWriteDirective:
    def test_no_directive(self):
        assert parse_write_directive("src/a.js") == (Path("src/a.js"), None)

    def test_overwrite(self):
        assert parse_write_directive("src/a!!w.js") == (Path("src/a.js"), WriteMode.OVERWRITE)

    def test_keep(self):
        assert parse_write_directive("src/!!nwa.js") == (Path("src/a.js"), WriteMode.KEEP)

    def test_case_insensitive(self):
        assert parse_write_directive("a!!W.js") == (Path("a.js"), WriteMode.OVERWRITE)
        assert parse_write_directive("a!!NW.js") == (Path("a.js"), WriteMode.KEEP)

    def test_first_directive_wins_and_all_are_stripped(self):
        assert parse_write_directive("a!!nw!!w.js") == (Path("a.js"), WriteMode.KEEP)

    def test_enum_flag_is_not_a_directive(self):
        assert parse_write_directive("!!enum.ts")[1] is None


@pytest.fixture
def existing(tmp_path: Path) -> Path:
    path = tmp_path / "a.js"
    path.write_text("old", encoding="utf-8")
    return path


class TestOutputWriter:
    def test_writes_new_file(self, tmp_path):
        writer = OutputWriter(LocalFileSystem())
        assert writer.write(tmp_path / "new.js", "x")
        assert (tmp_path / "new.js").read_text() == "x"
        assert writer.result.files == [tmp_path / "new.js"]

    def test_keeps_existing_by_default(self, existing):
        writer = OutputWriter(LocalFileSystem())
        assert not writer.write(existing, "new")
        assert existing.read_text() == "old"
        assert writer.result.skipped == [existing]

    def test_global_overwrite(self, existing):
        writer = OutputWriter(LocalFileSystem(), overwrite=True)
        writer.write(existing, "new")
        assert existing.read_text() == "new"

    def test_force_overwrite_beats_global_flag(self, existing):
        writer = OutputWriter(LocalFileSystem(), overwrite=False)
        assert writer.write(f"{existing.parent}/a!!w.js", "new")
        assert existing.read_text() == "new"
        assert not (existing.parent / "a!!w.js").exists()

    def test_force_keep_beats_global_flag(self, existing):
        writer = OutputWriter(LocalFileSystem(), overwrite=True)
        assert not writer.write(f"{existing.parent}/a!!nw.js", "new")
        assert existing.read_text() == "old"

    def test_force_keep_still_writes_new_files(self, tmp_path):
        writer = OutputWriter(LocalFileSystem(), overwrite=True)
        assert writer.write(tmp_path / "b!!nw.js", "new")
        assert (tmp_path / "b.js").read_text() == "new"

    def test_skip_existence_check(self, existing):
        writer = OutputWriter(LocalFileSystem())
        assert writer.write(existing, "new", skip_existence_check=True)
        assert existing.read_text() == "new"

    def test_shares_result(self, tmp_path):
        result = GenerationResult()
        OutputWriter(LocalFileSystem(), result=result).write(tmp_path / "c.js", "")
        assert result.files == [tmp_path / "c.js"]
        assert result.success
