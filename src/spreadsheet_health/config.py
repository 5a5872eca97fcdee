"""Tunable constants for the summarizer, scanner, purpose detector and scorer."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, replace
from numbers import Integral, Real
from pathlib import Path
from typing import Any

VOLATILE_FUNCTIONS: tuple[str, ...] = ("NOW", "TODAY", "RAND", "RANDBETWEEN", "OFFSET", "INDIRECT")

PURPOSE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "Payroll",
        (
            "payroll", "employee", "wage", "wages", "salary", "hours",
            "overtime", "pay rate", "gross", "net pay", "deduction", "timesheet",
        ),
    ),
    ("Budget", ("budget", "expense", "actual", "forecast", "variance", "capex", "opex")),
    ("Job Costing", ("job", "project", "estimate", "labor", "material", "unit cost", "markup")),
    (
        "Inventory",
        ("sku", "stock", "on hand", "warehouse", "inventory", "item", "qty", "quantity"),
    ),
    ("CRM", ("customer", "client", "lead", "pipeline", "deal", "opportunity", "contact")),
    ("Scheduling", ("date", "time", "dispatch", "route", "calendar", "shift", "crew")),
    ("Sales Tracking", ("order", "invoice", "sales", "revenue", "price", "total")),
)

DB_PREP_CHECKLIST: tuple[str, ...] = (
    "Add unique IDs for primary entities (customers, orders, items).",
    "Split repeating groups into separate tables (line items, history).",
    "Standardize dates, currency, and units before migration.",
    "Remove merged cells and ensure every column has a header.",
)


def _check_non_negative(value: Any, field_name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise TypeError(f"{field_name} must be a number")
    if value < 0:
        raise ValueError(f"{field_name} must be >= 0")


def _check_positive_int(value: Any, field_name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    if value < 1:
        raise ValueError(f"{field_name} must be >= 1")


@dataclass(frozen=True)
class ScoreWeights:
    """Coefficients of the health-score formulas.

    Each sub-score starts at 100 and loses points per the penalties below;
    ``weight_*`` fields blend the sub-scores into ``overall``.
    """

    structural_sheet_allowance: float = 5
    structural_sheet_penalty: float = 3
    structural_hidden_penalty: float = 8
    structural_row_baseline: float = 1000
    structural_row_penalty: float = 2

    formulas_risky_penalty: float = 60
    formulas_volume_divisor: float = 100
    formulas_volume_cap: float = 20
    formulas_neutral: float = 85

    integrity_blank_header_penalty: float = 3
    integrity_duplicate_header_penalty: float = 10
    integrity_ragged_row_penalty: float = 2
    integrity_ragged_row_cap: float = 15

    scalability_sheet_allowance: float = 3
    scalability_sheet_penalty: float = 4
    scalability_row_baseline: float = 500
    scalability_row_penalty: float = 3
    scalability_formula_threshold: float = 500
    scalability_formula_penalty: float = 15
    scalability_risky_threshold: float = 50
    scalability_risky_penalty: float = 20

    bus_hidden_penalty: float = 15
    bus_formula_baseline: float = 50
    bus_formula_divisor: float = 20
    bus_formula_cap: float = 30
    bus_missing_header_penalty: float = 20

    weight_structural: float = 0.20
    weight_formulas: float = 0.25
    weight_integrity: float = 0.25
    weight_scalability: float = 0.15
    weight_bus_factor: float = 0.15

    def __post_init__(self) -> None:
        for f in fields(self):
            _check_non_negative(getattr(self, f.name), f.name)
        for name in ("structural_row_baseline", "formulas_volume_divisor",
                     "scalability_row_baseline", "bus_formula_divisor"):
            if getattr(self, name) == 0:
                raise ValueError(f"{name} must be > 0")


@dataclass(frozen=True)
class AnalysisConfig:
    """Everything the analysis treats as policy rather than logic."""

    sample_row_cap: int = 20
    sample_col_cap: int = 10
    formula_example_cap: int = 6
    max_open_parens: int = 6
    volatile_functions: tuple[str, ...] = VOLATILE_FUNCTIONS
    purpose_keywords: tuple[tuple[str, tuple[str, ...]], ...] = PURPOSE_KEYWORDS
    purpose_sample_rows: int = 3
    fallback_purpose: str = "General Spreadsheet"
    sheet_sprawl_threshold: int = 8
    top_risk_limit: int = 4
    db_prep: tuple[str, ...] = DB_PREP_CHECKLIST
    weights: ScoreWeights = field(default_factory=ScoreWeights)

    def __post_init__(self) -> None:
        for name in ("sample_row_cap", "sample_col_cap", "formula_example_cap",
                     "purpose_sample_rows", "top_risk_limit"):
            _check_positive_int(getattr(self, name), name)
        for name in ("max_open_parens", "sheet_sprawl_threshold"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, Integral):
                raise TypeError(f"{name} must be an integer")
            if value < 0:
                raise ValueError(f"{name} must be >= 0")
        if isinstance(self.volatile_functions, str):
            raise TypeError("volatile_functions must be a sequence of strings")
        object.__setattr__(
            self,
            "volatile_functions",
            tuple(str(name).strip().upper() for name in self.volatile_functions),
        )
        table: list[tuple[str, tuple[str, ...]]] = []
        for label, keywords in self.purpose_keywords:
            if isinstance(keywords, str):
                raise TypeError(f"keywords for {label!r} must be a sequence of strings")
            table.append((str(label), tuple(str(k).strip().lower() for k in keywords)))
        object.__setattr__(self, "purpose_keywords", tuple(table))
        object.__setattr__(self, "db_prep", tuple(self.db_prep))
        if not isinstance(self.weights, ScoreWeights):
            raise TypeError("weights must be a ScoreWeights instance")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnalysisConfig:
        """Build a config from plain data, starting from the defaults.

        ``purpose_keywords`` may be given as an object mapping label to keyword
        list; ``weights`` as an object of partial overrides.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

        overrides = dict(data)
        if "weights" in overrides:
            raw_weights = overrides["weights"]
            if not isinstance(raw_weights, dict):
                raise TypeError("weights must be an object")
            weight_names = {f.name for f in fields(ScoreWeights)}
            bad = sorted(set(raw_weights) - weight_names)
            if bad:
                raise ValueError(f"Unknown weight keys: {', '.join(bad)}")
            overrides["weights"] = replace(ScoreWeights(), **raw_weights)
        keywords = overrides.get("purpose_keywords")
        if isinstance(keywords, dict):
            overrides["purpose_keywords"] = tuple(keywords.items())
        return replace(cls(), **overrides)


DEFAULT_CONFIG = AnalysisConfig()


def load_config(path: Path) -> AnalysisConfig:
    """Load a JSON file of overrides on top of :data:`DEFAULT_CONFIG`."""
    path = Path(path)
    if not path.exists():
        raise ValueError(f"Config not found: {path}")
    if path.is_dir():
        raise ValueError(f"Config is a directory, not a file: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ValueError(f"Cannot read config {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"Config {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Config {path} must contain a JSON object")
    return AnalysisConfig.from_dict(data)
