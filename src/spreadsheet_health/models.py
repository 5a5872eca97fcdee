"""Result models produced by the summarizer and the insight engine.

Everything here is immutable and validated on construction. ``to_dict`` returns
plain nested data (camelCase keys) ready for any serializer.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, time
from numbers import Integral
from typing import Any


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_score(value: Any, field_name: str) -> int:
    result = _to_non_negative_int(value, field_name)
    if result > 100:
        raise ValueError(f"{field_name} must be <= 100")
    return result


def _to_string_tuple(values: Sequence[Any] | None, field_name: str) -> tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str):
        raise TypeError(f"{field_name} must be a sequence of strings")
    normalized: list[str] = []
    for item in values:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} items must be strings")
        normalized.append(item)
    return tuple(normalized)


def _plain_cell(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return value


def _set(obj: object, name: str, value: Any) -> None:
    object.__setattr__(obj, name, value)


# ── Sheet summaries ─────────────────────────────────────────────


@dataclass(frozen=True)
class RiskCount:
    type: str
    count: int

    def __post_init__(self) -> None:
        count = _to_non_negative_int(self.count, "count")
        if count < 1:
            raise ValueError("count must be >= 1")
        _set(self, "count", count)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "count": self.count}


@dataclass(frozen=True)
class FormulaExample:
    address: str
    formula: str
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"address": self.address, "formula": self.formula, "reason": self.reason}


@dataclass(frozen=True)
class FormulaStats:
    """Formula-risk statistics for one sheet.

    Contract invariant: ``risky_formulas <= total_formulas``.
    """

    total_formulas: int = 0
    risky_formulas: int = 0
    risks: tuple[RiskCount, ...] = ()
    examples: tuple[FormulaExample, ...] = ()

    def __post_init__(self) -> None:
        _set(self, "total_formulas", _to_non_negative_int(self.total_formulas, "total_formulas"))
        _set(self, "risky_formulas", _to_non_negative_int(self.risky_formulas, "risky_formulas"))
        _set(self, "risks", tuple(self.risks))
        _set(self, "examples", tuple(self.examples))
        if self.risky_formulas > self.total_formulas:
            raise ValueError("risky_formulas must be <= total_formulas")

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalFormulas": self.total_formulas,
            "riskyFormulas": self.risky_formulas,
            "risks": [risk.to_dict() for risk in self.risks],
            "examples": [example.to_dict() for example in self.examples],
        }


@dataclass(frozen=True)
class SheetSummary:
    name: str
    hidden: bool = False
    row_count: int = 0
    col_count: int = 0
    sample_rows: tuple[tuple[Any, ...], ...] = ()
    formula_stats: FormulaStats | None = None

    def __post_init__(self) -> None:
        _set(self, "row_count", _to_non_negative_int(self.row_count, "row_count"))
        _set(self, "col_count", _to_non_negative_int(self.col_count, "col_count"))
        _set(self, "sample_rows", tuple(tuple(row) for row in self.sample_rows))

    @property
    def header(self) -> tuple[Any, ...] | None:
        return self.sample_rows[0] if self.sample_rows else None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "hidden": self.hidden,
            "rowCount": self.row_count,
            "colCount": self.col_count,
            "sampleRows": [[_plain_cell(v) for v in row] for row in self.sample_rows],
        }
        if self.formula_stats is not None:
            payload["formulaStats"] = self.formula_stats.to_dict()
        return payload


@dataclass(frozen=True)
class ParsedWorkbook:
    sheet_names: tuple[str, ...] = ()
    sheets: tuple[SheetSummary, ...] = ()

    def __post_init__(self) -> None:
        _set(self, "sheet_names", _to_string_tuple(self.sheet_names, "sheet_names"))
        _set(self, "sheets", tuple(self.sheets))
        if tuple(sheet.name for sheet in self.sheets) != self.sheet_names:
            raise ValueError("sheets must match sheet_names in order and count")

    def to_dict(self) -> dict[str, Any]:
        return {
            "sheetNames": list(self.sheet_names),
            "sheets": [sheet.to_dict() for sheet in self.sheets],
        }


# ── Analysis ────────────────────────────────────────────────────


@dataclass(frozen=True)
class PurposeSignal:
    label: str
    score: int = 0
    matches: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _set(self, "score", _to_non_negative_int(self.score, "score"))
        _set(self, "matches", _to_string_tuple(self.matches, "matches"))

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, "score": self.score, "matches": list(self.matches)}


@dataclass(frozen=True)
class PurposeSummary:
    primary: str
    secondary: str | None = None
    signals: tuple[PurposeSignal, ...] = ()

    def __post_init__(self) -> None:
        _set(self, "signals", tuple(self.signals))

    def to_dict(self) -> dict[str, Any]:
        return {
            "primary": self.primary,
            "secondary": self.secondary,
            "signals": [signal.to_dict() for signal in self.signals],
        }


@dataclass(frozen=True)
class HealthScore:
    overall: int = 0
    structural: int = 0
    formulas: int = 0
    integrity: int = 0
    scalability: int = 0
    bus_factor: int = 0

    def __post_init__(self) -> None:
        for name in ("overall", "structural", "formulas", "integrity", "scalability", "bus_factor"):
            _set(self, name, _to_score(getattr(self, name), name))

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall": self.overall,
            "structural": self.structural,
            "formulas": self.formulas,
            "integrity": self.integrity,
            "scalability": self.scalability,
            "busFactor": self.bus_factor,
        }


@dataclass(frozen=True)
class Issue:
    title: str
    impact: str
    fix: str

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title, "impact": self.impact, "fix": self.fix}


@dataclass(frozen=True)
class SheetIssues:
    sheet: str
    issues: tuple[Issue, ...] = ()

    def __post_init__(self) -> None:
        _set(self, "issues", tuple(self.issues))
        if not self.issues:
            raise ValueError("SheetIssues requires at least one issue")

    def to_dict(self) -> dict[str, Any]:
        return {"sheet": self.sheet, "issues": [issue.to_dict() for issue in self.issues]}


@dataclass(frozen=True)
class FormulaRiskSummary:
    total_formulas: int = 0
    risky_formulas: int = 0
    top_risks: tuple[RiskCount, ...] = ()

    def __post_init__(self) -> None:
        _set(self, "total_formulas", _to_non_negative_int(self.total_formulas, "total_formulas"))
        _set(self, "risky_formulas", _to_non_negative_int(self.risky_formulas, "risky_formulas"))
        _set(self, "top_risks", tuple(self.top_risks))
        if self.risky_formulas > self.total_formulas:
            raise ValueError("risky_formulas must be <= total_formulas")

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalFormulas": self.total_formulas,
            "riskyFormulas": self.risky_formulas,
            "topRisks": [risk.to_dict() for risk in self.top_risks],
        }


@dataclass(frozen=True)
class AnalysisSummary:
    purpose: PurposeSummary
    formula_risk: FormulaRiskSummary
    health_score: HealthScore
    sheet_issues: tuple[SheetIssues, ...] = ()
    notes: tuple[str, ...] = ()
    issues: tuple[Issue, ...] = ()
    db_prep: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _set(self, "sheet_issues", tuple(self.sheet_issues))
        _set(self, "notes", _to_string_tuple(self.notes, "notes"))
        _set(self, "issues", tuple(self.issues))
        _set(self, "db_prep", _to_string_tuple(self.db_prep, "db_prep"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "purpose": self.purpose.to_dict(),
            "formulaRisk": self.formula_risk.to_dict(),
            "sheetIssues": [entry.to_dict() for entry in self.sheet_issues],
            "healthScore": self.health_score.to_dict(),
            "notes": list(self.notes),
            "issues": [issue.to_dict() for issue in self.issues],
            "dbPrep": list(self.db_prep),
        }


# ── Intake / audit ──────────────────────────────────────────────


@dataclass(frozen=True)
class UploadAnalysisResult:
    """Everything produced for one uploaded file."""

    fingerprint: str
    filename: str
    size: int
    parsed: ParsedWorkbook
    analysis: AnalysisSummary
    mime_type: str | None = None

    def __post_init__(self) -> None:
        _set(self, "size", _to_non_negative_int(self.size, "size"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "fingerprint": self.fingerprint,
            "filename": self.filename,
            "size": self.size,
            "mimeType": self.mime_type,
            "parsed": self.parsed.to_dict(),
            "analysis": self.analysis.to_dict(),
        }


@dataclass
class RunManifest:
    """Audit-trail manifest for a single CLI run."""

    tool: str = "spreadsheet-health"
    version: str = ""
    input_path: str = ""
    output_dir: str = ""
    created_at_utc: str = ""
    fingerprint: str = ""
    sheet_count: int = 0
    overall_score: int | None = None
    status: str = "success"
    error_code: int | None = None
    error_message: str = ""
    artifacts: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.sheet_count = _to_non_negative_int(self.sheet_count, "sheet_count")
        if self.overall_score is not None:
            self.overall_score = _to_score(self.overall_score, "overall_score")
        if self.status not in ("success", "failed"):
            raise ValueError("status must be 'success' or 'failed'")
        self.artifacts = list(_to_string_tuple(self.artifacts, "artifacts"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "tool": self.tool,
            "version": self.version,
            "input_path": self.input_path,
            "output_dir": self.output_dir,
            "created_at_utc": self.created_at_utc,
            "fingerprint": self.fingerprint,
            "sheet_count": self.sheet_count,
            "overall_score": self.overall_score,
            "status": self.status,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "artifacts": list(self.artifacts),
        }
