"""Tests for the command-line interface (specforge.cli)."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from specforge import __version__
from specforge.cli import app
from specforge.fs import LocalFileSystem

pytestmark = pytest.mark.integration

runner = CliRunner()


@pytest.fixture(autouse=True)
def offline(monkeypatch):
    """Binary assets are written empty instead of fetched."""
    monkeypatch.setattr(LocalFileSystem, "download", lambda self, url, path: Path(path).write_bytes(b""))


class TestBuildCommand:
    def test_build(self, spec_file, output_dir):
        result = runner.invoke(app, ["build", str(spec_file), "-o", str(output_dir)])
        assert result.exit_code == 0, result.output
        assert "Loaded" in result.output
        assert (output_dir / "src/api/GetUser.js").exists()
        assert not (output_dir / ".specforge").exists()

    def test_build_with_key(self, spec_file, output_dir):
        result = runner.invoke(app, ["build", str(spec_file), "-o", str(output_dir), "--key", "shop"])
        assert result.exit_code == 0, result.output
        engine = json.loads((output_dir / ".specforge/specforge.json").read_text())
        assert engine["args"] == {"key": "shop", "pid": 11}

    def test_second_build_reports_kept_files(self, spec_file, output_dir):
        runner.invoke(app, ["build", str(spec_file), "-o", str(output_dir)])
        result = runner.invoke(app, ["build", str(spec_file), "-o", str(output_dir)])
        assert result.exit_code == 0
        assert "Kept" in result.output

    def test_invalid_spec_exits_1(self, tmp_path, output_dir):
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"project": {"name": "x"}, "specs": []}))
        result = runner.invoke(app, ["build", str(bad), "-o", str(output_dir)])
        assert result.exit_code == 1
        assert "Cannot load" in result.output

    def test_missing_spec_file(self, tmp_path, output_dir):
        result = runner.invoke(app, ["build", str(tmp_path / "nope.json"), "-o", str(output_dir)])
        assert result.exit_code != 0

    def test_template_errors_are_reported_not_fatal(self, tmp_path, sample_spec, output_dir):
        sample_spec["specs"][0]["docs"].append({"type": 0, "name": "bad.txt", "content": "{% if %}"})
        path = tmp_path / "spec.json"
        path.write_text(json.dumps(sample_spec))
        result = runner.invoke(app, ["build", str(path), "-o", str(output_dir)])
        assert result.exit_code == 0
        assert "problems during generation" in result.output


class TestUpdateCommand:
    def test_update_keeps_plain_documents_untouched(self, spec_file, output_dir):
        result = runner.invoke(app, ["update", str(spec_file), "-o", str(output_dir), "--key", "shop"])
        assert result.exit_code == 0, result.output
        assert not (output_dir / "src/web/README.md").exists()
        assert (output_dir / "mock/api/post/api/orders/data.json").exists()

    def test_update_with_spec(self, spec_file, output_dir):
        args = ["update", str(spec_file), "-o", str(output_dir), "--key", "shop", "--spec"]
        assert runner.invoke(app, args).exit_code == 0
        assert (output_dir / "src/web/README.md").exists()


class TestValidateCommand:
    def test_summary(self, spec_file):
        result = runner.invoke(app, ["validate", str(spec_file)])
        assert result.exit_code == 0
        assert "Valid" in result.output
        assert "Interfaces" in result.output

    def test_yaml_syntax_error(self, tmp_path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("specs: [unclosed")
        result = runner.invoke(app, ["validate", str(bad)])
        assert result.exit_code == 1


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.output
