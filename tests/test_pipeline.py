from __future__ import annotations

import hashlib
from io import BytesIO
from pathlib import Path

import pytest
from openpyxl import Workbook

from spreadsheet_health.config import AnalysisConfig
from spreadsheet_health.errors import ParseError
from spreadsheet_health.pipeline import analyze_bytes, analyze_file, check_filename

PAYROLL_CSV = (
    b"employee_id,employee,hours,pay rate,gross pay\n"
    b"E1,Ada,40,25,1000\n"
    b"E2,Lin,38,27,1026\n"
)


def _formula_workbook() -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Orders"
    ws.append(["order_id", "placed", "total"])
    ws.append([1, "=NOW()+100", "=SUM(A2:A2)"])
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


def test_analyze_bytes_fingerprints_and_sizes_input() -> None:
    result = analyze_bytes(PAYROLL_CSV, "payroll.csv")

    assert result.fingerprint == hashlib.sha256(PAYROLL_CSV).hexdigest()
    assert result.size == len(PAYROLL_CSV)
    assert result.filename == "payroll.csv"
    assert result.mime_type == "text/csv"


def test_analyze_bytes_keeps_explicit_mime_type() -> None:
    result = analyze_bytes(PAYROLL_CSV, "payroll.csv", mime_type="application/octet-stream")

    assert result.mime_type == "application/octet-stream"


def test_analyze_bytes_on_csv_detects_payroll() -> None:
    result = analyze_bytes(PAYROLL_CSV, "payroll.csv")

    assert result.parsed.sheet_names == ("Sheet1",)
    sheet = result.parsed.sheets[0]
    assert sheet.hidden is False
    assert sheet.formula_stats is None
    assert result.analysis.purpose.primary == "Payroll"
    assert result.analysis.formula_risk.total_formulas == 0
    assert result.analysis.issues == ()


def test_analyze_bytes_on_workbook_reports_formula_risk() -> None:
    result = analyze_bytes(_formula_workbook(), "orders.xlsx")

    stats = result.parsed.sheets[0].formula_stats
    assert stats is not None
    assert stats.total_formulas == 2
    assert stats.risky_formulas == 1
    assert stats.examples[0].address == "B2"
    assert "Volatile function (NOW)" in stats.examples[0].reason
    assert "Hardcoded number (100)" in stats.examples[0].reason
    titles = [issue.title for issue in result.analysis.issues]
    assert titles == ["Formula risk detected"]


def test_analyze_bytes_honours_config() -> None:
    config = AnalysisConfig(volatile_functions=())

    result = analyze_bytes(_formula_workbook(), "orders.xlsx", config)

    risks = [risk.type for risk in result.analysis.formula_risk.top_risks]
    assert risks == ["Hardcoded number"]


def test_analyze_bytes_rejects_empty_input() -> None:
    with pytest.raises(ParseError, match="empty"):
        analyze_bytes(b"", "payroll.csv")


def test_analyze_bytes_rejects_unsupported_name_before_decoding() -> None:
    with pytest.raises(ParseError, match="Unsupported file type"):
        analyze_bytes(b"%PDF-1.7", "report.pdf")


def test_check_filename_is_case_insensitive() -> None:
    check_filename("BOOK.XLSX")
    with pytest.raises(ParseError):
        check_filename("README")


def test_analyze_file_matches_analyze_bytes(tmp_path: Path) -> None:
    path = tmp_path / "payroll.csv"
    path.write_bytes(PAYROLL_CSV)

    from_file = analyze_file(path)
    from_bytes = analyze_bytes(PAYROLL_CSV, "payroll.csv")

    assert from_file.to_dict() == from_bytes.to_dict()


def test_analyze_file_missing_path(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        analyze_file(tmp_path / "nope.csv")


def test_csv_row_wider_than_header_is_reported_as_ragged() -> None:
    result = analyze_bytes(b"id,name\n1,a,EXTRA\n2,b\n", "extra.csv")

    sheet = result.parsed.sheets[0]
    assert sheet.col_count == 3
    assert ("1", "a", "EXTRA") in sheet.sample_rows
    [entry] = result.analysis.sheet_issues
    assert [issue.title for issue in entry.issues] == ["Inconsistent row lengths"]
    assert entry.issues[0].impact.startswith("1 sample row does not match the 2-column header")


def test_csv_title_line_does_not_collapse_columns() -> None:
    data = b"Quarterly payroll\nemployee_id,hours,pay rate\nE1,40,25\n"

    result = analyze_bytes(data, "report.csv")

    sheet = result.parsed.sheets[0]
    assert sheet.col_count == 3
    assert sheet.sample_rows[1] == ("employee_id", "hours", "pay rate")
    assert result.analysis.purpose.primary == "Payroll"
    assert "pay rate" in result.analysis.purpose.signals[0].matches
