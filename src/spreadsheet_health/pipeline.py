"""End-to-end analysis of one uploaded file: bytes in, plain results out."""

from __future__ import annotations

import logging
from pathlib import Path

from spreadsheet_health import SUPPORTED_EXTENSIONS
from spreadsheet_health.config import DEFAULT_CONFIG, AnalysisConfig
from spreadsheet_health.errors import ParseError
from spreadsheet_health.insights import analyze
from spreadsheet_health.io import decode_workbook, file_suffix, guess_mime_type, read_input
from spreadsheet_health.models import UploadAnalysisResult
from spreadsheet_health.summarize import summarize
from spreadsheet_health.utils import sha256_bytes

logger = logging.getLogger(__name__)


def check_filename(filename: str) -> None:
    """Reject names whose extension no decoder handles."""
    suffix = file_suffix(filename)
    if suffix not in SUPPORTED_EXTENSIONS:
        raise ParseError(
            f"Unsupported file type: {suffix or filename!r}. "
            f"Use one of {', '.join(SUPPORTED_EXTENSIONS)}"
        )


def analyze_bytes(
    data: bytes,
    filename: str,
    config: AnalysisConfig = DEFAULT_CONFIG,
    *,
    mime_type: str | None = None,
) -> UploadAnalysisResult:
    """Fingerprint, decode, summarize and analyze *data*.

    Raises
    ------
    ParseError
        If the name has an unsupported extension, *data* is empty, or the
        content cannot be decoded. Nothing is summarized in that case.
    """
    check_filename(filename)
    if not data:
        raise ParseError("File is empty.")

    fingerprint = sha256_bytes(data)
    workbook = decode_workbook(data, filename)
    parsed = summarize(workbook, config=config)
    analysis = analyze(parsed, config)
    logger.info("Analyzed %s (%d bytes, sha256=%s)", filename, len(data), fingerprint[:12])
    return UploadAnalysisResult(
        fingerprint=fingerprint,
        filename=filename,
        size=len(data),
        mime_type=mime_type if mime_type is not None else guess_mime_type(filename),
        parsed=parsed,
        analysis=analysis,
    )


def analyze_file(path: Path, config: AnalysisConfig = DEFAULT_CONFIG) -> UploadAnalysisResult:
    """Run :func:`analyze_bytes` on a local file."""
    path = Path(path)
    return analyze_bytes(read_input(path), path.name, config)
