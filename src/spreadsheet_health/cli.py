"""CLI entry point for spreadsheet-health."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table as RichTable

from spreadsheet_health import __version__
from spreadsheet_health.config import DEFAULT_CONFIG, AnalysisConfig, load_config
from spreadsheet_health.io import write_json
from spreadsheet_health.models import RunManifest, UploadAnalysisResult
from spreadsheet_health.pipeline import analyze_file
from spreadsheet_health.utils import sha256_file, utcnow_iso

app = typer.Typer(
    name="shealth",
    help="spreadsheet-health — Static health checks for spreadsheets.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()

PARSED_ARTIFACT = "parsed.json"
ANALYSIS_ARTIFACT = "analysis.json"
MANIFEST_ARTIFACT = "run_manifest.json"


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {msg}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"spreadsheet-health v{__version__}")
        raise typer.Exit()


def _write_manifest(
    out_dir: Path,
    input_file: Path,
    created_at: str,
    *,
    result: UploadAnalysisResult | None = None,
    artifacts: list[str] | None = None,
    error_code: int | None = None,
    error_message: str = "",
) -> Path:
    if result is not None:
        fingerprint = result.fingerprint
    else:
        fingerprint = ""
        try:
            fingerprint = sha256_file(input_file)
        except OSError:
            pass

    manifest = RunManifest(
        version=__version__,
        input_path=str(input_file.resolve()),
        output_dir=str(out_dir.resolve()),
        created_at_utc=created_at,
        fingerprint=fingerprint,
        sheet_count=len(result.parsed.sheet_names) if result else 0,
        overall_score=result.analysis.health_score.overall if result else None,
        status="success" if error_code is None else "failed",
        error_code=error_code,
        error_message=error_message,
        artifacts=artifacts or [],
    )
    return write_json(out_dir / MANIFEST_ARTIFACT, manifest.to_dict())


def _fail(
    out_dir: Path, input_file: Path, created_at: str, message: str, *, code: int
) -> typer.Exit:
    manifest_path = _write_manifest(
        out_dir, input_file, created_at, error_code=code, error_message=message
    )
    _err(message)
    console.print(f"  Manifest -> {manifest_path}")
    return typer.Exit(code=code)


def _score_table(result: UploadAnalysisResult) -> RichTable:
    score = result.analysis.health_score
    tbl = RichTable(title="Health Score", show_lines=True)
    tbl.add_column("Dimension", style="bold")
    tbl.add_column("Score", justify="right")
    for label, value in (
        ("Overall", score.overall),
        ("Structural", score.structural),
        ("Formulas", score.formulas),
        ("Integrity", score.integrity),
        ("Scalability", score.scalability),
        ("Bus factor", score.bus_factor),
    ):
        colour = "green" if value >= 80 else "yellow" if value >= 60 else "red"
        tbl.add_row(label, f"[{colour}]{value}[/{colour}]")
    return tbl


def _print_findings(result: UploadAnalysisResult) -> None:
    analysis = result.analysis
    purpose = analysis.purpose
    secondary = f" (also: {purpose.secondary})" if purpose.secondary else ""
    console.print(f"  Purpose: [bold]{purpose.primary}[/bold]{secondary}")
    risk = analysis.formula_risk
    console.print(f"  Formulas: {risk.risky_formulas} risky of {risk.total_formulas}")
    for top in risk.top_risks:
        console.print(f"    - {top.type}: {top.count}")
    console.print(_score_table(result))
    for issue in analysis.issues:
        console.print(f"  [yellow]![/yellow] {issue.title} — {issue.impact}")
    for entry in analysis.sheet_issues:
        titles = ", ".join(issue.title for issue in entry.issues)
        console.print(f"  [yellow]![/yellow] {entry.sheet}: {titles}")


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """spreadsheet-health CLI."""


# ── analyze command ──────────────────────────────────────────────


@app.command()
def analyze(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to an XLSX, XLS, CSV or TSV file.",
        exists=True, readable=True,
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for parsed.json, analysis.json and the manifest.",
    ),
    config_path: Path | None = typer.Option(
        None, "--config", "-c",
        help="JSON file overriding sample caps, keyword tables or score weights.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes all artifacts.",
    ),
) -> None:
    """Analyze a spreadsheet and write its health report."""
    echo = _printer(quiet)
    created_at = utcnow_iso()
    out_dir.mkdir(parents=True, exist_ok=True)

    config: AnalysisConfig = DEFAULT_CONFIG
    if config_path is not None:
        try:
            config = load_config(config_path)
        except (ValueError, TypeError) as exc:
            raise _fail(out_dir, input_file, created_at, str(exc), code=2)

    if not quiet:
        console.print(Panel(
            f"[bold]spreadsheet-health[/bold] v{__version__}\n"
            f"Input:  {input_file}\nOutput: {out_dir}",
            title="Analysis Start", border_style="blue",
        ))
        if config_path:
            console.print(f"  Using config: {config_path}")

    # ── Decode + analyze ─────────────────────────────────────────
    echo("[blue]>[/blue] Reading workbook …")
    try:
        result = analyze_file(input_file, config)
    except (FileNotFoundError, ValueError, OSError) as exc:
        raise _fail(out_dir, input_file, created_at, str(exc), code=2)
    except Exception as exc:
        raise _fail(
            out_dir, input_file, created_at, f"Unexpected internal error: {exc}", code=1
        )

    echo(f"  {len(result.parsed.sheet_names)} sheets, {result.size} bytes")

    # ── Artifacts ────────────────────────────────────────────────
    parsed_path = write_json(out_dir / PARSED_ARTIFACT, result.parsed.to_dict())
    analysis_path = write_json(out_dir / ANALYSIS_ARTIFACT, result.analysis.to_dict())
    manifest_path = _write_manifest(
        out_dir,
        input_file,
        created_at,
        result=result,
        artifacts=[PARSED_ARTIFACT, ANALYSIS_ARTIFACT],
    )
    echo(f"  Parsed   -> {parsed_path}")
    echo(f"  Analysis -> {analysis_path}")
    echo(f"  Manifest -> {manifest_path}")

    if not quiet:
        _print_findings(result)
        console.print(Panel(
            f"[green]Done[/green] — overall health {result.analysis.health_score.overall}/100",
            title="Analysis Complete", border_style="green",
        ))
