"""Insight engine — purpose, formula risk, header integrity and the health score.

Everything here is a pure function of a :class:`ParsedWorkbook`. Defects found
in the data are reported as issues; nothing in this module raises for them.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from spreadsheet_health.config import DEFAULT_CONFIG, AnalysisConfig, ScoreWeights
from spreadsheet_health.formulas import rank_counts
from spreadsheet_health.models import (
    AnalysisSummary,
    FormulaRiskSummary,
    HealthScore,
    Issue,
    ParsedWorkbook,
    SheetIssues,
    SheetSummary,
)
from spreadsheet_health.purpose import detect_purpose

logger = logging.getLogger(__name__)

_ID_MARKERS = ("id", "uuid")


# ── Header checks ───────────────────────────────────────────────


def _is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


@dataclass(frozen=True)
class HeaderCheck:
    """Header findings for one sheet, derived from its sample rows."""

    missing: bool
    blank_cells: int = 0
    duplicates: tuple[str, ...] = ()
    expected_cols: int = 0
    ragged_rows: int = 0


def inspect_headers(sheet: SheetSummary) -> HeaderCheck:
    header = sheet.header
    if header is None:
        return HeaderCheck(missing=True)

    blank_cells = sum(1 for value in header if _is_blank(value))
    if blank_cells == len(header):
        return HeaderCheck(missing=True, blank_cells=blank_cells)

    seen: dict[str, str] = {}
    duplicates: list[str] = []
    for value in header:
        if _is_blank(value):
            continue
        label = str(value).strip()
        key = label.lower()
        if key in seen:
            if seen[key] not in duplicates:
                duplicates.append(seen[key])
        else:
            seen[key] = label

    expected = len(header)
    ragged = sum(1 for row in sheet.sample_rows[1:] if len(row) != expected)
    return HeaderCheck(
        missing=False,
        blank_cells=blank_cells,
        duplicates=tuple(duplicates),
        expected_cols=expected,
        ragged_rows=ragged,
    )


def sheet_issue_list(check: HeaderCheck) -> list[Issue]:
    issues: list[Issue] = []
    if check.missing:
        issues.append(Issue(
            title="Missing header row",
            impact="Columns have no names, so the data cannot be mapped to fields.",
            fix="Add a single header row that names every column.",
        ))
        return issues
    if check.blank_cells:
        suffix = "" if check.blank_cells == 1 else "s"
        issues.append(Issue(
            title="Blank header cells",
            impact=f"{check.blank_cells} header cell{suffix} left blank; those columns are unnamed.",
            fix="Give every column in the header row a unique name.",
        ))
    if check.duplicates:
        issues.append(Issue(
            title="Duplicate headers",
            impact=f"Repeated column names: {', '.join(check.duplicates)}.",
            fix="Rename duplicated columns so each header is unique.",
        ))
    if check.ragged_rows:
        suffix, verb = ("", "does") if check.ragged_rows == 1 else ("s", "do")
        issues.append(Issue(
            title="Inconsistent row lengths",
            impact=(
                f"{check.ragged_rows} sample row{suffix} {verb} not match the "
                f"{check.expected_cols}-column header."
            ),
            fix="Keep one record per row with a value (or blank) under every header.",
        ))
    return issues


# ── Scoring ─────────────────────────────────────────────────────


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _bounded(value: float) -> int:
    return _round_half_up(min(100.0, max(0.0, value)))


@dataclass(frozen=True)
class WorkbookMetrics:
    sheet_count: int
    hidden_count: int
    avg_row_count: float
    total_formulas: int
    risky_formulas: int
    blank_header_cells: int
    duplicate_header_sheets: int
    ragged_penalty: float
    missing_header: bool


def collect_metrics(
    parsed: ParsedWorkbook, checks: list[HeaderCheck], weights: ScoreWeights
) -> WorkbookMetrics:
    sheets = parsed.sheets
    sheet_count = len(parsed.sheet_names)
    total_rows = sum(sheet.row_count for sheet in sheets)
    return WorkbookMetrics(
        sheet_count=sheet_count,
        hidden_count=sum(1 for sheet in sheets if sheet.hidden),
        avg_row_count=total_rows / sheet_count if sheet_count else 0.0,
        total_formulas=sum(s.formula_stats.total_formulas for s in sheets if s.formula_stats),
        risky_formulas=sum(s.formula_stats.risky_formulas for s in sheets if s.formula_stats),
        blank_header_cells=sum(check.blank_cells for check in checks),
        duplicate_header_sheets=sum(1 for check in checks if check.duplicates),
        ragged_penalty=sum(
            min(weights.integrity_ragged_row_cap,
                weights.integrity_ragged_row_penalty * check.ragged_rows)
            for check in checks
        ),
        missing_header=any(check.missing for check in checks),
    )


def compute_health_score(metrics: WorkbookMetrics, weights: ScoreWeights) -> HealthScore:
    """Apply the sub-score formulas, clamp each to [0, 100], then blend."""
    w = weights
    m = metrics

    structural = (
        100
        - w.structural_sheet_penalty * max(0, m.sheet_count - w.structural_sheet_allowance)
        - w.structural_hidden_penalty * m.hidden_count
        - w.structural_row_penalty
        * max(0.0, (m.avg_row_count - w.structural_row_baseline) / w.structural_row_baseline)
    )

    if m.total_formulas > 0:
        formulas = (
            100
            - w.formulas_risky_penalty * (m.risky_formulas / m.total_formulas)
            - min(w.formulas_volume_cap, m.total_formulas / w.formulas_volume_divisor)
        )
    else:
        formulas = w.formulas_neutral

    integrity = (
        100
        - w.integrity_blank_header_penalty * m.blank_header_cells
        - w.integrity_duplicate_header_penalty * m.duplicate_header_sheets
        - m.ragged_penalty
    )

    scalability = (
        100
        - w.scalability_sheet_penalty * max(0, m.sheet_count - w.scalability_sheet_allowance)
        - w.scalability_row_penalty
        * max(0.0, (m.avg_row_count - w.scalability_row_baseline) / w.scalability_row_baseline)
        - (w.scalability_formula_penalty if m.total_formulas > w.scalability_formula_threshold else 0)
        - (w.scalability_risky_penalty if m.risky_formulas > w.scalability_risky_threshold else 0)
    )

    formula_load = (m.total_formulas - w.bus_formula_baseline) / w.bus_formula_divisor
    bus_factor = (
        100
        - w.bus_hidden_penalty * m.hidden_count
        - min(w.bus_formula_cap, max(0.0, formula_load))
        - (w.bus_missing_header_penalty if m.missing_header else 0)
    )

    scores = {
        "structural": _bounded(structural),
        "formulas": _bounded(formulas),
        "integrity": _bounded(integrity),
        "scalability": _bounded(scalability),
        "bus_factor": _bounded(bus_factor),
    }
    overall = (
        w.weight_structural * scores["structural"]
        + w.weight_formulas * scores["formulas"]
        + w.weight_integrity * scores["integrity"]
        + w.weight_scalability * scores["scalability"]
        + w.weight_bus_factor * scores["bus_factor"]
    )
    return HealthScore(overall=_bounded(overall), **scores)


# ── Workbook-level issues ───────────────────────────────────────


def _has_stable_identifier(parsed: ParsedWorkbook) -> bool:
    for sheet in parsed.sheets:
        for value in sheet.header or ():
            text = "" if value is None else str(value).lower()
            if any(marker in text for marker in _ID_MARKERS):
                return True
    return False


def workbook_findings(
    parsed: ParsedWorkbook, metrics: WorkbookMetrics, config: AnalysisConfig
) -> tuple[list[str], list[Issue]]:
    notes: list[str] = []
    issues: list[Issue] = []

    if metrics.risky_formulas > 0:
        issues.append(Issue(
            title="Formula risk detected",
            impact=(
                f"{metrics.risky_formulas} of {metrics.total_formulas} "
                "formulas include risk patterns."
            ),
            fix="Review volatile functions, hardcoded numbers, and broken references.",
        ))
    if metrics.hidden_count > 0:
        notes.append("Hidden sheets detected. Review hidden logic for critical inputs.")
        issues.append(Issue(
            title="Hidden sheets",
            impact="Hidden tabs can hide critical calculations or inputs.",
            fix="Unhide and document any sheets used for calculations.",
        ))
    if metrics.sheet_count > config.sheet_sprawl_threshold:
        notes.append("Sheet count is high. Consider consolidating to reduce complexity.")
        issues.append(Issue(
            title="Sheet sprawl",
            impact="High sheet count increases maintenance risk.",
            fix="Consolidate related sheets or move repeating data into tables.",
        ))
    if not _has_stable_identifier(parsed):
        issues.append(Issue(
            title="Missing stable identifiers",
            impact="Rows may not map cleanly into database tables.",
            fix="Add an ID column for each primary entity (e.g. customer_id, order_id).",
        ))
    return notes, issues


# ── Entry point ─────────────────────────────────────────────────


def summarize_formula_risk(parsed: ParsedWorkbook, limit: int) -> FormulaRiskSummary:
    total = 0
    risky = 0
    counts: dict[str, int] = {}
    for sheet in parsed.sheets:
        stats = sheet.formula_stats
        if stats is None:
            continue
        total += stats.total_formulas
        risky += stats.risky_formulas
        for risk in stats.risks:
            counts[risk.type] = counts.get(risk.type, 0) + risk.count
    return FormulaRiskSummary(
        total_formulas=total,
        risky_formulas=risky,
        top_risks=rank_counts(counts)[:limit],
    )


def analyze(parsed: ParsedWorkbook, config: AnalysisConfig = DEFAULT_CONFIG) -> AnalysisSummary:
    """Fold a summarized workbook into purpose, risks, issues and a health score."""
    purpose = detect_purpose(
        parsed.sheet_names, [sheet.sample_rows for sheet in parsed.sheets], config
    )

    checks = [inspect_headers(sheet) for sheet in parsed.sheets]
    sheet_issues: list[SheetIssues] = []
    for sheet, check in zip(parsed.sheets, checks):
        found = sheet_issue_list(check)
        if found:
            sheet_issues.append(SheetIssues(sheet=sheet.name, issues=tuple(found)))

    metrics = collect_metrics(parsed, checks, config.weights)
    health = compute_health_score(metrics, config.weights)
    notes, issues = workbook_findings(parsed, metrics, config)

    logger.info(
        "Analyzed %d sheets: purpose=%s overall=%d issues=%d",
        metrics.sheet_count, purpose.primary, health.overall, len(issues),
    )
    return AnalysisSummary(
        purpose=purpose,
        formula_risk=summarize_formula_risk(parsed, config.top_risk_limit),
        health_score=health,
        sheet_issues=tuple(sheet_issues),
        notes=tuple(notes),
        issues=tuple(issues),
        db_prep=config.db_prep,
    )
