"""Workbook summarizer — decoded sheets into bounded, serializable summaries."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from spreadsheet_health.config import DEFAULT_CONFIG, AnalysisConfig
from spreadsheet_health.formulas import RiskRule, build_rules, scan_formulas
from spreadsheet_health.models import ParsedWorkbook, SheetSummary
from spreadsheet_health.workbook import CellRange, DecodedSheet, DecodedWorkbook

logger = logging.getLogger(__name__)


def extract_sample_rows(
    sheet: DecodedSheet, window: CellRange
) -> tuple[tuple[Any, ...], ...]:
    """Materialize *window* as rows of raw values.

    Rows with no values are dropped and trailing empty cells are trimmed,
    so row lengths reflect where the data actually stops.
    """
    rows: list[tuple[Any, ...]] = []
    for r in range(window.min_row, window.max_row + 1):
        values: list[Any] = []
        for c in range(window.min_col, window.max_col + 1):
            cell = sheet.cell(r, c)
            values.append(None if cell is None else cell.value)
        while values and values[-1] is None:
            values.pop()
        if values:
            rows.append(tuple(values))
    return tuple(rows)


def summarize_sheet(
    sheet: DecodedSheet,
    *,
    delimited: bool = False,
    config: AnalysisConfig = DEFAULT_CONFIG,
    rules: Sequence[RiskRule] | None = None,
) -> SheetSummary:
    used = sheet.used_range
    if used is None:
        return SheetSummary(name=sheet.name, hidden=False if delimited else sheet.hidden)

    window = used.clip(config.sample_row_cap, config.sample_col_cap)
    stats = None if delimited else scan_formulas(sheet, config, rules)
    return SheetSummary(
        name=sheet.name,
        hidden=False if delimited else sheet.hidden,
        row_count=used.n_rows,
        col_count=used.n_cols,
        sample_rows=extract_sample_rows(sheet, window),
        formula_stats=stats,
    )


def summarize(
    workbook: DecodedWorkbook,
    delimited: bool | None = None,
    config: AnalysisConfig = DEFAULT_CONFIG,
) -> ParsedWorkbook:
    """Summarize every sheet of *workbook* in declaration order.

    The sample is capped by ``config.sample_row_cap`` x ``config.sample_col_cap``;
    the formula scan always covers the sheet's whole used range. Delimited
    text carries no visibility or formulas, so both are skipped for it.
    """
    if delimited is None:
        delimited = workbook.delimited
    rules = build_rules(config)
    sheets = tuple(
        summarize_sheet(sheet, delimited=delimited, config=config, rules=rules)
        for sheet in workbook.sheets
    )
    logger.info(
        "Summarized %d sheets (%d hidden)",
        len(sheets),
        sum(1 for sheet in sheets if sheet.hidden),
    )
    return ParsedWorkbook(sheet_names=tuple(workbook.sheet_names), sheets=sheets)
