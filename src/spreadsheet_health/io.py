"""I/O helpers — decode spreadsheet bytes, read inputs, write JSON artifacts."""

from __future__ import annotations

import csv
import json
import logging
import mimetypes
import zipfile
from datetime import date, datetime, time
from io import BytesIO, StringIO
from pathlib import Path
from typing import Any, Callable, cast
from xml.etree.ElementTree import ParseError as XMLParseError

import openpyxl
import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.formula import ArrayFormula
from openpyxl.worksheet.worksheet import Worksheet

from spreadsheet_health import SUPPORTED_EXTENSIONS
from spreadsheet_health.errors import ParseError
from spreadsheet_health.workbook import (
    HIDDEN,
    VERY_HIDDEN,
    VISIBLE,
    Cell,
    DecodedSheet,
    DecodedWorkbook,
    visibility_from_state,
)

logger = logging.getLogger(__name__)

WORKBOOK_EXTENSIONS = (".xlsx", ".xlsm", ".xltx", ".xltm")
LEGACY_EXTENSIONS = (".xls",)
DELIMITED_EXTENSIONS = (".csv", ".tsv", ".txt")
DELIMITED_SHEET_NAME = "Sheet1"
_CSV_ENCODINGS = ("utf-8-sig", "utf-8", "latin-1")
_SNIFF_DELIMITERS = ",;\t|"
_SNIFF_CHARS = 64 * 1024
_XLS_VISIBILITY = {0: VISIBLE, 1: HIDDEN, 2: VERY_HIDDEN}

# ── Reading ─────────────────────────────────────────────────────


def file_suffix(filename: str) -> str:
    return Path(filename).suffix.lower()


def guess_mime_type(filename: str) -> str | None:
    mime, _ = mimetypes.guess_type(filename)
    return mime


def read_input(path: Path) -> bytes:
    """Return the raw bytes of *path*.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ParseError
        If *path* is a directory.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    if path.is_dir():
        raise ParseError(f"Input path is a directory, not a file: {path}")
    return path.read_bytes()


# ── Decoding ────────────────────────────────────────────────────


def decode_workbook(data: bytes, filename: str) -> DecodedWorkbook:
    """Decode *data* into a :class:`DecodedWorkbook`, picking the reader by extension.

    Raises
    ------
    ParseError
        If the bytes are empty, the extension is not supported, or the
        reader cannot make sense of the content.
    """
    if not data:
        raise ParseError(f"File is empty: {filename}")

    suffix = file_suffix(filename)
    if suffix in WORKBOOK_EXTENSIONS:
        return _decode_openpyxl(data, filename)
    if suffix in LEGACY_EXTENSIONS:
        return _decode_legacy_xls(data, filename)
    if suffix in DELIMITED_EXTENSIONS:
        return _decode_delimited(data, filename, sep="\t" if suffix == ".tsv" else None)

    supported = ", ".join(SUPPORTED_EXTENSIONS)
    raise ParseError(f"Unsupported file type: {suffix!r}. Use one of {supported}")


def _formula_text(cell: Any) -> str | None:
    value = cell.value
    if isinstance(value, ArrayFormula):
        return value.text
    if cell.data_type == "f" and isinstance(value, str):
        return value
    return None


def _decode_worksheet(ws: Worksheet, cached: Worksheet) -> DecodedSheet:
    cells: dict[tuple[int, int], Cell] = {}
    bounds = {
        "min_row": 1,
        "max_row": ws.max_row,
        "min_col": 1,
        "max_col": ws.max_column,
    }
    for formula_row, value_row in zip(ws.iter_rows(**bounds), cached.iter_rows(**bounds)):
        for formula_cell, value_cell in zip(formula_row, value_row):
            formula = _formula_text(formula_cell)
            value = value_cell.value
            if formula is None and value is None:
                continue
            cells[(formula_cell.row - 1, formula_cell.column - 1)] = Cell(value, formula)
    sheet = DecodedSheet(
        name=ws.title, cells=cells, visibility=visibility_from_state(ws.sheet_state)
    )
    logger.debug("Decoded sheet %r: %d cells, state=%s", ws.title, len(cells), ws.sheet_state)
    return sheet


def _decode_openpyxl(data: bytes, filename: str) -> DecodedWorkbook:
    # Formula text and cached values live in separate views of the same file.
    try:
        formula_wb = openpyxl.load_workbook(BytesIO(data), data_only=False)
        value_wb = openpyxl.load_workbook(BytesIO(data), data_only=True)
    except (
        InvalidFileException,
        zipfile.BadZipFile,
        XMLParseError,
        KeyError,
        IndexError,
        TypeError,
        OSError,
        ValueError,
    ) as exc:
        raise ParseError(f"Could not read workbook {filename} (decode failed)") from exc

    sheets: list[DecodedSheet] = []
    for name in formula_wb.sheetnames:
        ws = formula_wb[name]
        if not isinstance(ws, Worksheet):
            logger.warning("Skipped chart-only sheet %r in %s", name, filename)
            continue
        sheets.append(_decode_worksheet(ws, cast(Worksheet, value_wb[name])))
    return DecodedWorkbook(sheets=tuple(sheets))


def _frame_to_sheet(name: str, frame: pd.DataFrame, visibility: int = VISIBLE) -> DecodedSheet:
    cells: dict[tuple[int, int], Cell] = {}
    for r, row in enumerate(frame.itertuples(index=False, name=None)):
        for c, value in enumerate(row):
            if pd.isna(value):
                continue
            item = getattr(value, "item", None)
            cells[(r, c)] = Cell(item() if callable(item) else value)
    return DecodedSheet(name=name, cells=cells, visibility=visibility)


def _decode_legacy_xls(data: bytes, filename: str) -> DecodedWorkbook:
    try:
        import xlrd
    except ImportError as exc:
        raise ParseError(
            "Unsupported .xls input unless 'xlrd' is installed. "
            "Either convert to .xlsx or add dependency: pip install xlrd"
        ) from exc

    read_excel = cast(Callable[..., dict[str, pd.DataFrame]], getattr(pd, "read_excel"))
    try:
        book = xlrd.open_workbook(file_contents=data)
        frames = read_excel(book, engine="xlrd", sheet_name=None, header=None, dtype=object)
    except Exception as exc:
        raise ParseError(f"Could not read workbook {filename} (decode failed)") from exc

    # pandas drops sheet visibility; xlrd reports it as 0/1/2.
    states = {sheet.name: sheet.visibility for sheet in book.sheets()}
    return DecodedWorkbook(
        sheets=tuple(
            _frame_to_sheet(
                str(name), frame, _XLS_VISIBILITY.get(states.get(str(name), 0), VISIBLE)
            )
            for name, frame in frames.items()
        )
    )


def sniff_delimiter(text: str) -> str:
    """Guess the field separator from the first chunk; fall back to a comma.

    Only ``, ; TAB |`` are candidates. Letting pandas sniff (``sep=None``)
    accepts any character, which splits single-column files on letters.
    """
    try:
        return csv.Sniffer().sniff(text[:_SNIFF_CHARS], delimiters=_SNIFF_DELIMITERS).delimiter
    except csv.Error:
        return ","


def _decode_text(data: bytes) -> str:
    last_exc: UnicodeDecodeError | None = None
    for encoding in _CSV_ENCODINGS:
        try:
            text = data.decode(encoding)
        except UnicodeDecodeError as exc:
            last_exc = exc
            continue
        logger.debug("Decoded delimited text as %s", encoding)
        return text
    raise ParseError("Could not decode delimited text") from last_exc


def _field_count(text: str, sep: str) -> int:
    return max((len(row) for row in csv.reader(StringIO(text), delimiter=sep)), default=0)


def _read_delimited(text: str, *, sep: str) -> pd.DataFrame:
    """Read every line at the width of the widest one; shorter lines are padded."""
    width = _field_count(text, sep)
    if width == 0:
        return pd.DataFrame()
    return pd.read_csv(
        StringIO(text),
        header=None,
        names=list(range(width)),
        dtype="string",
        sep=sep,
        engine="python",
        keep_default_na=False,
        na_values=[""],
        skip_blank_lines=False,
    )


def _decode_delimited(data: bytes, filename: str, *, sep: str | None) -> DecodedWorkbook:
    text = _decode_text(data)
    try:
        frame = _read_delimited(text, sep=sep or sniff_delimiter(text))
    except pd.errors.EmptyDataError:
        frame = pd.DataFrame()
    except (pd.errors.ParserError, csv.Error) as exc:
        raise ParseError(f"Could not read delimited text {filename} (parse failed)") from exc
    sheet = _frame_to_sheet(DELIMITED_SHEET_NAME, frame)
    return DecodedWorkbook(sheets=(sheet,), delimited=True)


# ── Writing ─────────────────────────────────────────────────────


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (datetime, date, time)):
        return obj.isoformat()
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    item = getattr(obj, "item", None)
    if callable(item):
        converted = item()
        if isinstance(converted, (str, int, float, bool)) or converted is None:
            return converted
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def write_json(path: Path, data: Any) -> Path:
    """Write *data* as pretty-printed JSON to *path* (atomic + deterministic)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = json.dumps(
        data,
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
        default=_json_default,
    ) + "\n"
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(payload, encoding="utf-8")
    tmp_path.replace(path)
    return path
