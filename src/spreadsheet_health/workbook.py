"""Decoded-workbook structures handed from the decoder to the summarizer.

Coordinates are zero-based ``(row, col)`` pairs. Only cells carrying a value
or a formula are stored, so a sheet's used range is derived from its keys.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

VISIBLE = 0
HIDDEN = 1
VERY_HIDDEN = 2

_SHEET_STATES: dict[str, int] = {
    "visible": VISIBLE,
    "hidden": HIDDEN,
    "veryHidden": VERY_HIDDEN,
}


def visibility_from_state(state: str | None) -> int:
    """Map an openpyxl ``sheet_state`` string onto a visibility flag."""
    if state is None:
        return VISIBLE
    try:
        return _SHEET_STATES[state]
    except KeyError:
        raise ValueError(f"Unknown sheet state: {state!r}") from None


@dataclass(frozen=True)
class Cell:
    value: Any = None
    formula: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.value is None and not self.formula


@dataclass(frozen=True)
class CellRange:
    """Inclusive rectangle of cells."""

    min_row: int
    min_col: int
    max_row: int
    max_col: int

    def __post_init__(self) -> None:
        if min(self.min_row, self.min_col) < 0:
            raise ValueError("range origin must be >= 0")
        if self.max_row < self.min_row or self.max_col < self.min_col:
            raise ValueError("range end must not precede its origin")

    @property
    def n_rows(self) -> int:
        return self.max_row - self.min_row + 1

    @property
    def n_cols(self) -> int:
        return self.max_col - self.min_col + 1

    def clip(self, max_rows: int, max_cols: int) -> CellRange:
        """Return the top-left sub-range of at most *max_rows* x *max_cols*."""
        return CellRange(
            self.min_row,
            self.min_col,
            self.min_row + min(self.n_rows, max_rows) - 1,
            self.min_col + min(self.n_cols, max_cols) - 1,
        )

    def iter_coords(self) -> Iterator[tuple[int, int]]:
        """Yield coordinates in row-major order."""
        for row in range(self.min_row, self.max_row + 1):
            for col in range(self.min_col, self.max_col + 1):
                yield row, col


def _used_range(cells: Iterable[tuple[tuple[int, int], Cell]]) -> CellRange | None:
    rows: list[int] = []
    cols: list[int] = []
    for (row, col), cell in cells:
        if cell.is_empty:
            continue
        rows.append(row)
        cols.append(col)
    if not rows:
        return None
    return CellRange(min(rows), min(cols), max(rows), max(cols))


@dataclass(frozen=True)
class DecodedSheet:
    """One worksheet as produced by the decoder."""

    name: str
    cells: Mapping[tuple[int, int], Cell] = field(default_factory=dict)
    visibility: int = VISIBLE
    used_range: CellRange | None = field(init=False, compare=False)

    def __post_init__(self) -> None:
        if self.visibility not in (VISIBLE, HIDDEN, VERY_HIDDEN):
            raise ValueError(f"visibility must be 0, 1 or 2, got {self.visibility!r}")
        object.__setattr__(self, "used_range", _used_range(self.cells.items()))

    @property
    def hidden(self) -> bool:
        return self.visibility != VISIBLE

    def cell(self, row: int, col: int) -> Cell | None:
        return self.cells.get((row, col))

    @classmethod
    def from_rows(
        cls,
        name: str,
        rows: Iterable[Iterable[Any]],
        *,
        visibility: int = VISIBLE,
    ) -> DecodedSheet:
        """Build a sheet from row lists; strings starting with ``=`` become formulas."""
        cells: dict[tuple[int, int], Cell] = {}
        for r, row in enumerate(rows):
            for c, value in enumerate(row):
                if isinstance(value, str) and value.startswith("=") and len(value) > 1:
                    cells[(r, c)] = Cell(formula=value)
                elif value is not None:
                    cells[(r, c)] = Cell(value=value)
        return cls(name=name, cells=cells, visibility=visibility)


@dataclass(frozen=True)
class DecodedWorkbook:
    sheets: tuple[DecodedSheet, ...] = ()
    delimited: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "sheets", tuple(self.sheets))
        names = [sheet.name for sheet in self.sheets]
        if len(set(names)) != len(names):
            raise ValueError("sheet names must be unique within a workbook")

    @property
    def sheet_names(self) -> list[str]:
        return [sheet.name for sheet in self.sheets]
