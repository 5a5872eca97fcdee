"""Lexical formula-risk rules — pattern checks over formula text, no evaluation."""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from openpyxl.utils import get_column_letter

from spreadsheet_health.config import DEFAULT_CONFIG, AnalysisConfig
from spreadsheet_health.models import FormulaExample, FormulaStats, RiskCount
from spreadsheet_health.workbook import DecodedSheet

BROKEN_REFERENCE = "Broken reference"
VOLATILE_FUNCTION = "Volatile function"
HARDCODED_NUMBER = "Hardcoded number"
OVER_NESTED = "Over-nested formula"

# Deliberately narrower than "not after a word character": digits after ``$``
# are skipped as well, so absolute references like $B$7 are not literals.
_NUMBER_LITERAL_RE = re.compile(r"(?<![\w$])\d+(?:\.\d+)?")


@dataclass(frozen=True)
class RiskRule:
    """A labelled check returning a reason string when it fires, else ``None``."""

    label: str
    check: Callable[[str], str | None]


def _broken_reference(formula: str) -> str | None:
    if "#REF!" in formula.upper():
        return "Broken reference (#REF!)"
    return None


def _volatile_function(functions: Sequence[str]) -> Callable[[str], str | None]:
    pattern = re.compile(
        r"\b(" + "|".join(re.escape(name) for name in functions) + r")\b", re.IGNORECASE
    )

    def check(formula: str) -> str | None:
        found: list[str] = []
        for match in pattern.finditer(formula):
            name = match.group(1).upper()
            if name not in found:
                found.append(name)
        if not found:
            return None
        return f"Volatile function ({', '.join(found)})"

    return check


def _hardcoded_number(formula: str) -> str | None:
    literals = _NUMBER_LITERAL_RE.findall(formula)
    if not literals:
        return None
    return f"Hardcoded number ({', '.join(literals[:3])})"


def _over_nested(limit: int) -> Callable[[str], str | None]:
    def check(formula: str) -> str | None:
        depth = formula.count("(")
        if depth <= limit:
            return None
        return f"Over-nested formula ({depth} open parentheses)"

    return check


def build_rules(config: AnalysisConfig = DEFAULT_CONFIG) -> tuple[RiskRule, ...]:
    """Return the rule table in reporting order."""
    rules = [RiskRule(BROKEN_REFERENCE, _broken_reference)]
    if config.volatile_functions:
        rules.append(RiskRule(VOLATILE_FUNCTION, _volatile_function(config.volatile_functions)))
    rules.append(RiskRule(HARDCODED_NUMBER, _hardcoded_number))
    rules.append(RiskRule(OVER_NESTED, _over_nested(config.max_open_parens)))
    return tuple(rules)


def classify_formula(formula: str, rules: Sequence[RiskRule]) -> list[tuple[str, str]]:
    """Return ``(label, reason)`` for every rule that fires on *formula*."""
    hits: list[tuple[str, str]] = []
    for rule in rules:
        reason = rule.check(formula)
        if reason is not None:
            hits.append((rule.label, reason))
    return hits


def cell_address(row: int, col: int) -> str:
    """Zero-based coordinates to A1 notation."""
    return f"{get_column_letter(col + 1)}{row + 1}"


def rank_counts(counts: dict[str, int]) -> tuple[RiskCount, ...]:
    """Sort counts descending; ties keep first-seen order."""
    ranked = sorted(counts.items(), key=lambda pair: pair[1], reverse=True)
    return tuple(RiskCount(type=label, count=count) for label, count in ranked if count > 0)


def scan_formulas(
    sheet: DecodedSheet,
    config: AnalysisConfig = DEFAULT_CONFIG,
    rules: Sequence[RiskRule] | None = None,
) -> FormulaStats | None:
    """Scan every formula in the sheet's used range, row by row.

    Returns ``None`` when the sheet holds no formulas at all.
    """
    used = sheet.used_range
    if used is None:
        return None
    if rules is None:
        rules = build_rules(config)

    total = 0
    risky = 0
    counts: dict[str, int] = {}
    examples: list[FormulaExample] = []
    for row, col in used.iter_coords():
        cell = sheet.cell(row, col)
        if cell is None or not cell.formula:
            continue
        total += 1
        hits = classify_formula(cell.formula, rules)
        if not hits:
            continue
        risky += 1
        for label, _reason in hits:
            counts[label] = counts.get(label, 0) + 1
        if len(examples) < config.formula_example_cap:
            examples.append(
                FormulaExample(
                    address=cell_address(row, col),
                    formula=cell.formula,
                    reason="; ".join(reason for _label, reason in hits),
                )
            )

    if total == 0:
        return None
    return FormulaStats(
        total_formulas=total,
        risky_formulas=risky,
        risks=rank_counts(counts),
        examples=tuple(examples),
    )
