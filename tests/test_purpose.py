from __future__ import annotations

from spreadsheet_health.config import AnalysisConfig
from spreadsheet_health.purpose import collect_tokens, detect_purpose, tokenize


def test_tokenize_splits_on_non_alphanumeric_runs() -> None:
    assert tokenize("Employee_ID / Pay-Rate") == ["employee", "id", "pay", "rate"]
    assert tokenize(None) == []
    assert tokenize(12.5) == ["12", "5"]


def test_payroll_sheet_is_detected() -> None:
    summary = detect_purpose(["Payroll"], [[["employee_id", "hours", "pay rate"]]])

    assert summary.primary == "Payroll"
    payroll = summary.signals[0]
    assert payroll.label == "Payroll"
    assert set(payroll.matches) == {"payroll", "employee", "hours", "pay rate"}
    assert payroll.score == 4


def test_no_keyword_falls_back_to_general_label() -> None:
    summary = detect_purpose(["Sheet1"], [[["foo", "bar"]]])

    assert summary.primary == "General Spreadsheet"
    assert summary.secondary is None
    assert len(summary.signals) == 7
    assert all(signal.score == 0 for signal in summary.signals)


def test_secondary_is_next_best_nonzero_category() -> None:
    summary = detect_purpose(
        ["Inventory"], [[["sku", "warehouse", "price"]]]
    )

    assert summary.primary == "Inventory"
    assert summary.secondary == "Sales Tracking"


def test_keyword_counts_once_regardless_of_frequency() -> None:
    summary = detect_purpose(["Budget"], [[["budget", "budget"], ["budget 2024"]]])

    budget = next(signal for signal in summary.signals if signal.label == "Budget")
    assert budget.score == 1
    assert budget.matches == ("budget",)


def test_only_leading_sample_rows_are_read() -> None:
    rows = [["a"], ["b"], ["c"], ["inventory"]]

    assert detect_purpose(["Data"], [rows]).primary == "General Spreadsheet"
    widened = detect_purpose(["Data"], [rows], AnalysisConfig(purpose_sample_rows=4))
    assert widened.primary == "Inventory"


def test_phrases_only_match_within_one_cell() -> None:
    split = detect_purpose(["Data"], [[["unit", "cost"]]])
    joined = detect_purpose(["Data"], [[["Unit Cost"]]])

    job = next(signal for signal in split.signals if signal.label == "Job Costing")
    assert job.score == 0
    assert joined.primary == "Job Costing"
    assert joined.signals[0].matches == ("unit cost",)


def test_equal_scores_keep_declaration_order() -> None:
    forward = AnalysisConfig(purpose_keywords=(("Alpha", ("apple",)), ("Beta", ("banana",))))
    backward = AnalysisConfig(purpose_keywords=(("Beta", ("banana",)), ("Alpha", ("apple",))))
    rows = [[["apple", "banana"]]]

    first = detect_purpose(["Fruit"], rows, forward)
    second = detect_purpose(["Fruit"], rows, backward)

    assert (first.primary, first.secondary) == ("Alpha", "Beta")
    assert (second.primary, second.secondary) == ("Beta", "Alpha")
    assert [s.score for s in first.signals] == [1, 1]


def test_scores_do_not_depend_on_keyword_order() -> None:
    a = AnalysisConfig(purpose_keywords=(("Stock", ("sku", "bin", "qty")),))
    b = AnalysisConfig(purpose_keywords=(("Stock", ("qty", "sku", "bin")),))
    rows = [[["SKU", "Qty"]]]

    assert detect_purpose([], rows, a).signals[0].score == 2
    assert detect_purpose([], rows, b).signals[0].score == 2


def test_sheet_names_contribute_tokens() -> None:
    tokens = collect_tokens(["Crew Schedule"], [], rows_per_sheet=3, max_phrase=2)

    assert {"crew", "schedule", "crew schedule"} <= tokens
