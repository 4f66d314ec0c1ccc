"""Tests for the command-line entry point."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from beamsplitter.__main__ import LOG_LEVEL_ENV, _log_level, main

JAVA_STUB = "class View {\n// BEGIN GENERATED CODE\n// END GENERATED CODE\n}\n"


@pytest.fixture()
def header(tmp_path: Path, scenario_text: str) -> Path:
    path = tmp_path / "scenario.h"
    path.write_text(scenario_text, encoding="utf-8")
    return path


class TestMain:
    def test_success(self, header: Path, tmp_path: Path) -> None:
        out = tmp_path / "out"
        assert main([str(header), "-o", str(out), "--emitter", "json"]) == 0
        assert sorted(p.name for p in out.iterdir()) == ["Settings_generated.cpp", "Settings_generated.h"]

    def test_repeated_emitter_flag(self, header: Path, tmp_path: Path) -> None:
        out = tmp_path / "out"
        out.mkdir()
        (out / "View.java").write_text(JAVA_STUB, encoding="utf-8")
        assert main([str(header), "-o", str(out), "--emitter", "json", "--emitter", "java"]) == 0
        assert "public enum E {" in (out / "View.java").read_text(encoding="utf-8")

    def test_explicit_patch_files(self, header: Path, tmp_path: Path) -> None:
        java = tmp_path / "View.java"
        java.write_text(JAVA_STUB, encoding="utf-8")
        ts = tmp_path / "types.d.ts"
        ts.write_text("// BEGIN GENERATED CODE\n// END GENERATED CODE\n", encoding="utf-8")
        out = tmp_path / "out"
        argv = [str(header), "-o", str(out), "--java", str(java), "--typescript", str(ts)]
        assert main(argv) == 0
        assert "public static class S {" in java.read_text(encoding="utf-8")
        assert "export interface S {" in ts.read_text(encoding="utf-8")
        assert not (out / "View.java").exists()

    def test_input_error_reports_location(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        bad = tmp_path / "bad.h"
        bad.write_text("namespace N {\nenum E { A };\n}\n", encoding="utf-8")
        assert main([str(bad), "-o", str(tmp_path / "out")]) == 1
        err = capsys.readouterr().err
        assert err.startswith(f"{bad}:2: error: Only scoped enums")
        assert not (tmp_path / "out").exists()

    def test_patch_error(self, header: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([str(header), "-o", str(tmp_path), "--emitter", "java"]) == 1
        err = capsys.readouterr().err
        assert err.startswith("error: ")
        assert "does not exist" in err

    def test_missing_input(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([str(tmp_path / "absent.h"), "-o", str(tmp_path)]) == 1
        assert capsys.readouterr().err.startswith("error: ")

    def test_list_emitters(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["--list-emitters"]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert [line.split()[0] for line in lines] == ["java", "javascript", "json"]
        assert lines[2].endswith("C++ JSON readers and writers")

    def test_input_required_without_list(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc:
            main([])
        assert exc.value.code == 2
        assert "required: input" in capsys.readouterr().err

    def test_unknown_emitter_rejected(self, header: Path) -> None:
        with pytest.raises(SystemExit) as exc:
            main([str(header), "--emitter", "python"])
        assert exc.value.code == 2


class TestLogLevel:
    def test_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(LOG_LEVEL_ENV, raising=False)
        assert _log_level(False) == logging.WARNING

    def test_verbose_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(LOG_LEVEL_ENV, "error")
        assert _log_level(True) == logging.DEBUG

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(LOG_LEVEL_ENV, " info ")
        assert _log_level(False) == logging.INFO

    def test_invalid_environment(self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
        monkeypatch.setenv(LOG_LEVEL_ENV, "chatty")
        with caplog.at_level(logging.WARNING):
            assert _log_level(False) == logging.WARNING
        assert "not a valid log level" in caplog.text
