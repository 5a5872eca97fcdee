"""CLI integration smoke tests for spreadsheet-health."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

import spreadsheet_health.cli as cli_mod
from spreadsheet_health import __version__
from spreadsheet_health.cli import app

runner = CliRunner()


def _write(tmp_path: Path, name: str, data: bytes) -> Path:
    path = tmp_path / name
    path.write_bytes(data)
    return path


def _read_json(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


def test_analyze_writes_all_artifacts(tmp_path: Path) -> None:
    csv_path = _write(
        tmp_path, "payroll.csv", b"employee_id,hours,pay rate\nE1,40,25\nE2,38,27\n"
    )
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app, ["analyze", "--input", str(csv_path), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 0, result.output
    parsed = _read_json(out_dir / "parsed.json")
    analysis = _read_json(out_dir / "analysis.json")
    manifest = _read_json(out_dir / "run_manifest.json")

    assert parsed["sheetNames"] == ["Sheet1"]
    assert parsed["sheets"][0]["sampleRows"][0] == ["employee_id", "hours", "pay rate"]
    assert analysis["purpose"]["primary"] == "Payroll"
    assert 0 <= analysis["healthScore"]["overall"] <= 100
    assert manifest["status"] == "success"
    assert manifest["sheet_count"] == 1
    assert manifest["overall_score"] == analysis["healthScore"]["overall"]
    assert manifest["artifacts"] == ["parsed.json", "analysis.json"]
    assert len(manifest["fingerprint"]) == 64


def test_analyze_quiet_prints_nothing(tmp_path: Path) -> None:
    csv_path = _write(tmp_path, "ok.csv", b"id,total\n1,2\n")

    result = runner.invoke(
        app, ["analyze", "-i", str(csv_path), "-o", str(tmp_path / "out"), "-q"]
    )

    assert result.exit_code == 0
    assert result.output.strip() == ""


def test_analyze_prints_summary(tmp_path: Path) -> None:
    csv_path = _write(tmp_path, "ok.csv", b"id,total\n1,2\n")

    result = runner.invoke(app, ["analyze", "-i", str(csv_path), "-o", str(tmp_path / "out")])

    assert result.exit_code == 0
    assert "Health Score" in result.output
    assert "Analysis Complete" in result.output


def test_analyze_undecodable_file_exits_2_with_failure_manifest(tmp_path: Path) -> None:
    bad = _write(tmp_path, "broken.xlsx", b"not really a workbook")
    out_dir = tmp_path / "out_fail"

    result = runner.invoke(
        app, ["analyze", "--input", str(bad), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 2
    manifest = _read_json(out_dir / "run_manifest.json")
    assert manifest["status"] == "failed"
    assert manifest["error_code"] == 2
    assert "decode failed" in manifest["error_message"]
    assert manifest["artifacts"] == []
    assert manifest["overall_score"] is None
    assert not (out_dir / "analysis.json").exists()


def test_analyze_empty_file_exits_2(tmp_path: Path) -> None:
    empty = _write(tmp_path, "empty.csv", b"")
    out_dir = tmp_path / "out_empty"

    result = runner.invoke(app, ["analyze", "-i", str(empty), "-o", str(out_dir), "-q"])

    assert result.exit_code == 2
    assert "empty" in _read_json(out_dir / "run_manifest.json")["error_message"]


def test_analyze_unsupported_extension_exits_2(tmp_path: Path) -> None:
    doc = _write(tmp_path, "notes.docx", b"PK")
    out_dir = tmp_path / "out_doc"

    result = runner.invoke(app, ["analyze", "-i", str(doc), "-o", str(out_dir), "-q"])

    assert result.exit_code == 2
    assert "Unsupported file type" in _read_json(out_dir / "run_manifest.json")["error_message"]


def test_analyze_bad_config_exits_2(tmp_path: Path) -> None:
    csv_path = _write(tmp_path, "ok.csv", b"id,total\n1,2\n")
    config_path = _write(tmp_path, "config.json", b'{"sample_row_cap": 5, "bogus": 1}')
    out_dir = tmp_path / "out_cfg"

    result = runner.invoke(
        app,
        ["analyze", "-i", str(csv_path), "-o", str(out_dir), "-c", str(config_path), "-q"],
    )

    assert result.exit_code == 2
    manifest = _read_json(out_dir / "run_manifest.json")
    assert "Unknown config keys" in manifest["error_message"]
    assert not (out_dir / "parsed.json").exists()


def test_analyze_applies_config(tmp_path: Path) -> None:
    rows = b"id,value\n" + b"".join(f"{n},{n}\n".encode() for n in range(10))
    csv_path = _write(tmp_path, "long.csv", rows)
    config_path = _write(tmp_path, "config.json", b'{"sample_row_cap": 3}')
    out_dir = tmp_path / "out_cfg"

    result = runner.invoke(
        app,
        ["analyze", "-i", str(csv_path), "-o", str(out_dir), "-c", str(config_path), "-q"],
    )

    assert result.exit_code == 0
    sheet = _read_json(out_dir / "parsed.json")["sheets"][0]
    assert sheet["rowCount"] == 11
    assert len(sheet["sampleRows"]) == 3


def test_analyze_unexpected_error_exits_1(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    csv_path = _write(tmp_path, "ok.csv", b"id,total\n1,2\n")
    out_dir = tmp_path / "out_boom"

    def _boom(*_args: object, **_kwargs: object) -> None:
        raise RuntimeError("boom")

    monkeypatch.setattr(cli_mod, "analyze_file", _boom)

    result = runner.invoke(app, ["analyze", "-i", str(csv_path), "-o", str(out_dir), "-q"])

    assert result.exit_code == 1
    manifest = _read_json(out_dir / "run_manifest.json")
    assert manifest["error_code"] == 1
    assert "Unexpected internal error: boom" in manifest["error_message"]


def test_analyze_missing_input_is_usage_error(tmp_path: Path) -> None:
    result = runner.invoke(
        app, ["analyze", "-i", str(tmp_path / "nope.csv"), "-o", str(tmp_path / "out")]
    )

    assert result.exit_code == 2


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert f"spreadsheet-health v{__version__}" in result.output
