"""Unit tests for the CLI — Typer command registration and basic behavior.

Exercises app registration, help output, packing and inspecting archives
via typer.testing.CliRunner.
"""

from __future__ import annotations

import zipfile

import pytest
from typer.testing import CliRunner

from streampack import __version__
from streampack.cli.app import app
from streampack.cli.commands import pack as pack_module
from streampack.core.errors import PipelineCancelledError, SourceFetchError
from streampack.models.events import EventKind, PipelineEvent

runner = CliRunner()

MANIFEST = """
archive: demo
entries:
  - name: problem.yaml
    data: {pid: 1, title: A+B}
  - name: problem.md
    content: Add two numbers.
"""


@pytest.fixture
def manifest_path(tmp_path):
    path = tmp_path / "manifest.yaml"
    path.write_text(MANIFEST, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Test: CLI help and registration
# ---------------------------------------------------------------------------


class TestCliApp:
    """The CLI must register all expected commands and show help."""

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        # Typer's no_args_is_help may exit with 0 or 2 depending on version
        assert result.exit_code in (0, 2)
        assert "Usage" in result.output or "usage" in result.output.lower()

    def test_help_flag(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "pack" in result.output
        assert "inspect" in result.output

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_pack_command_exists(self):
        result = runner.invoke(app, ["pack", "--help"])
        assert result.exit_code == 0
        assert "--concurrency" in result.output


# ---------------------------------------------------------------------------
# Test: pack
# ---------------------------------------------------------------------------


class TestPackCommand:
    def test_packs_manifest(self, manifest_path, tmp_path):
        out = tmp_path / "out.zip"
        result = runner.invoke(app, ["pack", str(manifest_path), "-o", str(out), "--quiet"])
        assert result.exit_code == 0, result.output
        with zipfile.ZipFile(out) as zf:
            assert zf.namelist() == ["problem.yaml", "problem.md"]
            assert zf.read("problem.md") == b"Add two numbers."

    def test_default_output_name(self, manifest_path, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(
            app, ["pack", str(manifest_path), "--quiet", "--compression", "stored", "-k", "2"]
        )
        assert result.exit_code == 0, result.output
        with zipfile.ZipFile(tmp_path / "demo.zip") as zf:
            assert zf.infolist()[0].compress_type == zipfile.ZIP_STORED

    def test_invalid_manifest_exit_code(self, tmp_path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("entries: [{name: a.txt}]", encoding="utf-8")
        result = runner.invoke(app, ["pack", str(bad), "-o", str(tmp_path / "x.zip")])
        assert result.exit_code == 2
        assert "Invalid manifest" in result.output

    def test_missing_manifest_rejected(self, tmp_path):
        result = runner.invoke(app, ["pack", str(tmp_path / "nope.yaml")])
        assert result.exit_code != 0

    def test_failure_exit_code(self, manifest_path, tmp_path, monkeypatch):
        async def failing_run(targets, sink, **kwargs):
            raise SourceFetchError("b.txt", "HTTP 404")

        monkeypatch.setattr(pack_module, "run_pipeline", failing_run)
        result = runner.invoke(app, ["pack", str(manifest_path), "-o", str(tmp_path / "x.zip")])
        assert result.exit_code == 1
        assert "b.txt" in result.output
        assert "HTTP 404" in result.output

    def test_failure_reported_once_with_progress(self, manifest_path, tmp_path, monkeypatch):
        async def failing_run(targets, sink, *, observers=(), **kwargs):
            for kind, fields in (
                (EventKind.STARTED, {}),
                (EventKind.FAILED, {"target_name": "b.txt", "cause": "HTTP 404"}),
            ):
                event = PipelineEvent(kind=kind, run_id="sp-cli-test", total=2, **fields)
                for obs in observers:
                    obs.on_event(event)
            raise SourceFetchError("b.txt", "HTTP 404")

        monkeypatch.setattr(pack_module, "run_pipeline", failing_run)
        result = runner.invoke(app, ["pack", str(manifest_path), "-o", str(tmp_path / "x.zip")])
        assert result.exit_code == 1
        assert result.output.count("HTTP 404") == 1

    def test_invalid_timeout_exit_code(self, manifest_path, tmp_path):
        result = runner.invoke(
            app, ["pack", str(manifest_path), "-o", str(tmp_path / "x.zip"), "--timeout", "0"]
        )
        assert result.exit_code == 2
        assert "Invalid options" in result.output
        assert not (tmp_path / "x.zip").exists()

    def test_cancel_exit_code(self, manifest_path, tmp_path, monkeypatch):
        async def cancelled_run(targets, sink, **kwargs):
            raise PipelineCancelledError("stop")

        monkeypatch.setattr(pack_module, "run_pipeline", cancelled_run)
        result = runner.invoke(app, ["pack", str(manifest_path), "-o", str(tmp_path / "x.zip")])
        assert result.exit_code == 130
        assert "Cancelled" in result.output


# ---------------------------------------------------------------------------
# Test: inspect
# ---------------------------------------------------------------------------


class TestInspectCommand:
    def test_lists_entries(self, tmp_path):
        archive = tmp_path / "a.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("one.txt", "1")
            zf.writestr("two.txt", "22")
        result = runner.invoke(app, ["inspect", str(archive), "--verify"])
        assert result.exit_code == 0, result.output
        assert "one.txt" in result.output
        assert "two.txt" in result.output
        assert "verified" in result.output

    def test_not_a_zip(self, tmp_path):
        junk = tmp_path / "junk.zip"
        junk.write_bytes(b"not a zip")
        result = runner.invoke(app, ["inspect", str(junk)])
        assert result.exit_code == 1
