"""Business-purpose detection from sheet names and early sample rows."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from typing import Any

from spreadsheet_health.config import DEFAULT_CONFIG, AnalysisConfig
from spreadsheet_health.models import PurposeSignal, PurposeSummary

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def tokenize(value: Any) -> list[str]:
    """Lower-case *value* and split it on runs of non-alphanumerics."""
    if value is None:
        return []
    return [token for token in _NON_ALNUM_RE.split(str(value).lower()) if token]


def _add_text(tokens: set[str], value: Any, max_phrase: int) -> None:
    words = tokenize(value)
    tokens.update(words)
    # Phrases only form within a single cell or name.
    for size in range(2, max_phrase + 1):
        for start in range(len(words) - size + 1):
            tokens.add(" ".join(words[start:start + size]))


def collect_tokens(
    sheet_names: Iterable[str],
    sample_rows_per_sheet: Iterable[Sequence[Sequence[Any]]],
    rows_per_sheet: int,
    max_phrase: int = 1,
) -> set[str]:
    tokens: set[str] = set()
    for name in sheet_names:
        _add_text(tokens, name, max_phrase)
    for rows in sample_rows_per_sheet:
        for row in list(rows)[:rows_per_sheet]:
            for value in row:
                _add_text(tokens, value, max_phrase)
    return tokens


def detect_purpose(
    sheet_names: Sequence[str],
    sample_rows_per_sheet: Sequence[Sequence[Sequence[Any]]],
    config: AnalysisConfig = DEFAULT_CONFIG,
) -> PurposeSummary:
    """Score every purpose category by how many of its keywords appear.

    Each keyword counts once however often it occurs. Categories with equal
    scores keep their declaration order.
    """
    phrases = {
        label: [" ".join(tokenize(keyword)) for keyword in keywords]
        for label, keywords in config.purpose_keywords
    }
    longest = max((p.count(" ") + 1 for group in phrases.values() for p in group if p), default=1)
    tokens = collect_tokens(
        sheet_names, sample_rows_per_sheet, config.purpose_sample_rows, max_phrase=longest
    )

    signals: list[PurposeSignal] = []
    for label, keywords in config.purpose_keywords:
        matches: list[str] = []
        for keyword, normalized in zip(keywords, phrases[label]):
            if normalized and normalized in tokens and keyword not in matches:
                matches.append(keyword)
        signals.append(PurposeSignal(label=label, score=len(matches), matches=tuple(matches)))

    signals.sort(key=lambda signal: signal.score, reverse=True)

    primary = config.fallback_purpose
    if signals and signals[0].score > 0:
        primary = signals[0].label
    secondary = None
    if len(signals) > 1 and signals[1].score > 0:
        secondary = signals[1].label

    return PurposeSummary(primary=primary, secondary=secondary, signals=tuple(signals))
