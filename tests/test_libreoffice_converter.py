"""Tests for the LibreOffice adapter with the subprocess call patched out."""

import subprocess
from pathlib import Path

import pytest

from pptx_pdf_service.conversion import ConversionError, LibreOfficeConverter
from pptx_pdf_service.conversion import adapters


def _fake_soffice(recorded: list, returncode: int = 0, stderr: str = "", write_output: bool = True):
    def run(cmd, **kwargs):
        recorded.append((cmd, kwargs))
        outdir = Path(cmd[cmd.index("--outdir") + 1])
        fmt = cmd[cmd.index("--convert-to") + 1]
        source = Path(cmd[-1])
        if write_output:
            (outdir / f"{source.name}.{fmt}").write_bytes(b"%PDF-1.7\n" + source.read_bytes())
        return subprocess.CompletedProcess(cmd, returncode, stdout="", stderr=stderr)

    return run


class TestLibreOfficeConverter:
    def test_converts_bytes(self, monkeypatch):
        recorded = []
        monkeypatch.setattr(adapters.subprocess, "run", _fake_soffice(recorded))

        result = LibreOfficeConverter("/opt/soffice", timeout=30).convert(b"deck", ".pdf")

        assert result == b"%PDF-1.7\ndeck"
        cmd, kwargs = recorded[0]
        assert cmd[0] == "/opt/soffice"
        assert "--headless" in cmd
        assert cmd[cmd.index("--convert-to") + 1] == "pdf"
        assert any(arg.startswith("-env:UserInstallation=file://") for arg in cmd)
        assert kwargs["timeout"] == 30

    def test_working_directory_removed(self, monkeypatch):
        recorded = []
        monkeypatch.setattr(adapters.subprocess, "run", _fake_soffice(recorded))

        LibreOfficeConverter().convert(b"deck", "pdf")

        workdir = Path(recorded[0][0][-1]).parent
        assert not workdir.exists()

    def test_concurrent_calls_use_separate_profiles(self, monkeypatch):
        recorded = []
        monkeypatch.setattr(adapters.subprocess, "run", _fake_soffice(recorded))
        converter = LibreOfficeConverter()

        converter.convert(b"a", "pdf")
        converter.convert(b"b", "pdf")

        profiles = [next(a for a in cmd if a.startswith("-env:")) for cmd, _ in recorded]
        assert profiles[0] != profiles[1]

    def test_nonzero_exit_reports_stderr(self, monkeypatch):
        monkeypatch.setattr(
            adapters.subprocess,
            "run",
            _fake_soffice([], returncode=1, stderr="Error: source file could not be loaded\n", write_output=False),
        )

        with pytest.raises(ConversionError, match="source file could not be loaded"):
            LibreOfficeConverter().convert(b"junk", "pdf")

    def test_missing_output_is_a_failure(self, monkeypatch):
        monkeypatch.setattr(adapters.subprocess, "run", _fake_soffice([], write_output=False))

        with pytest.raises(ConversionError, match="without output"):
            LibreOfficeConverter().convert(b"junk", "pdf")

    def test_executable_not_found(self, monkeypatch):
        def run(cmd, **kwargs):
            raise FileNotFoundError(cmd[0])

        monkeypatch.setattr(adapters.subprocess, "run", run)

        with pytest.raises(ConversionError, match="not found"):
            LibreOfficeConverter("/nowhere/soffice").convert(b"deck", "pdf")

    def test_deadline_exceeded(self, monkeypatch):
        def run(cmd, **kwargs):
            raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

        monkeypatch.setattr(adapters.subprocess, "run", run)

        with pytest.raises(ConversionError, match="timed out after 5"):
            LibreOfficeConverter(timeout=5).convert(b"deck", "pdf")
