from __future__ import annotations

import runpy

import pytest

import spreadsheet_health.cli as cli_mod


def _track_app(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    calls: list[str] = []
    monkeypatch.setattr(cli_mod, "app", lambda: calls.append("shealth"))
    return calls


def test_module_run_as_script_starts_shealth(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _track_app(monkeypatch)

    runpy.run_module("spreadsheet_health.__main__", run_name="__main__")

    assert calls == ["shealth"]


def test_module_import_does_not_start_shealth(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _track_app(monkeypatch)

    runpy.run_module("spreadsheet_health.__main__", run_name="spreadsheet_health.__main__")

    assert calls == []
