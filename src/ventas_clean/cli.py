"""CLI entry point for ventas-clean."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table as RichTable

from ventas_clean import CLEAN_CSV_NAME, REQUIRED_FIELDS, __version__
from ventas_clean.export import export_csv, format_value
from ventas_clean.io import file_sha256, read_text, write_json, write_text
from ventas_clean.models import DEFAULT_TOP_N, CleanRecord, QCReport, RawRecord, RunManifest
from ventas_clean.parser import parse_csv
from ventas_clean.pipeline import (
    DEFAULT_PREVIEW_ROWS,
    aggregate,
    clean_rows,
    compute_dashboard_kpis,
    preview,
    records_to_frame,
)
from ventas_clean.qc import write_qc_report
from ventas_clean.report import write_report

app = typer.Typer(
    name="vclean",
    help="ventas-clean — Clean a raw sales ledger into KPIs and a re-exportable CSV.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()

SUMMARY_NAME = "summary.json"
MANIFEST_NAME = "run_manifest.json"


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {msg}")


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"ventas-clean v{__version__}")
        raise typer.Exit()


def _write_manifest(
    out_dir: Path,
    input_file: Path,
    created_at: str,
    qc: QCReport,
    *,
    status: str = "success",
    error_code: int | None = None,
    error_message: str = "",
) -> Path:
    try:
        sha256 = file_sha256(input_file)
    except OSError:
        sha256 = ""

    manifest = RunManifest(
        version=__version__,
        run_id=created_at,
        input_path=str(input_file.resolve()),
        output_dir=str(out_dir.resolve()),
        created_at_utc=created_at,
        rows_in=qc.rows_in,
        rows_out=qc.rows_out,
        sha256=sha256,
        status=status,
        error_code=error_code,
        error_message=error_message,
    )
    return write_json(out_dir / MANIFEST_NAME, manifest.to_dict())


def _fail(
    out_dir: Path,
    input_file: Path,
    created_at: str,
    message: str,
    *,
    qc: QCReport | None = None,
    rows_in: int = 0,
    error_code: int = 2,
) -> typer.Exit:
    """Write failure artifacts, report *message* and return the exit to raise."""
    if qc is None:
        qc = QCReport(rows_in=rows_in, rows_out=0, dropped_rows=rows_in, warnings=[message])
    qc_path = write_qc_report(out_dir, qc)
    manifest_path = _write_manifest(
        out_dir, input_file, created_at, qc,
        status="failed", error_code=error_code, error_message=message,
    )
    _err(message)
    console.print(f"  QC report -> {qc_path}")
    console.print(f"  Manifest  -> {manifest_path}")
    return typer.Exit(code=error_code)


def _load_rows(input_file: Path) -> list[RawRecord]:
    return parse_csv(read_text(input_file))


def _records_table(title: str, rows: Sequence[CleanRecord | RawRecord]) -> RichTable:
    tbl = RichTable(title=title)
    if not rows:
        tbl.add_column("(no rows)")
        return tbl
    dicts: list[dict[str, Any]] = [
        r.to_dict() if isinstance(r, CleanRecord) else dict(r) for r in rows
    ]
    for name in dicts[0]:
        tbl.add_column(escape(name))
    for d in dicts:
        tbl.add_row(*("" if v is None else escape(format_value(v)) for v in d.values()))
    return tbl


def _print_missing_columns(qc: QCReport) -> None:
    console.print(f"  Expected: {', '.join(REQUIRED_FIELDS)}")
    console.print(f"  Missing:  {', '.join(qc.missing_columns)}")


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
    """ventas-clean CLI."""


_INPUT_OPTION = typer.Option(
    ..., "--input", "-i",
    help="Path to the raw sales CSV (comma-delimited, header row first).",
    exists=True, readable=True,
)
_DAYFIRST_OPTION = typer.Option(
    False,
    "--dayfirst/--monthfirst",
    help="Date parsing mode for ambiguous values like 01/02/2024.",
)


# ── run command ──────────────────────────────────────────────────


@app.command()
def run(
    input_file: Path = _INPUT_OPTION,
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for the clean CSV, report, QC and manifest.",
    ),
    dayfirst: bool = _DAYFIRST_OPTION,
    top: int = typer.Option(
        DEFAULT_TOP_N, "--top", min=1,
        help="Number of products in the top-products ranking.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes all artifacts.",
    ),
) -> None:
    """Clean the ledger, export ventas_clean.csv and write the sales report."""
    echo = _printer(quiet)
    created_at = _utcnow_iso()
    out_dir.mkdir(parents=True, exist_ok=True)

    if not quiet:
        console.print(Panel(
            f"[bold]ventas-clean[/bold] v{__version__}\n"
            f"Input:  {input_file}\nOutput: {out_dir}",
            title="Pipeline Start", border_style="blue",
        ))

    # ── Load ─────────────────────────────────────────────────────
    echo("[blue]>[/blue] Loading input file …")
    try:
        raw_rows = _load_rows(input_file)
    except (FileNotFoundError, ValueError, OSError) as exc:
        raise _fail(out_dir, input_file, created_at, str(exc))

    echo(f"  {len(raw_rows)} raw rows")

    try:
        if not raw_rows:
            raise _fail(out_dir, input_file, created_at, "Input file has 0 rows.")

        # ── Clean ────────────────────────────────────────────────
        echo("[blue]>[/blue] Cleaning …")
        records, qc = clean_rows(raw_rows, dayfirst=dayfirst)

        if not quiet:
            for w in qc.warnings:
                console.print(f"  [yellow]![/yellow] {w}")
            console.print(f"  {qc.rows_out} clean rows retained")

        if qc.missing_columns:
            _print_missing_columns(qc)
            raise _fail(
                out_dir, input_file, created_at,
                f"Missing columns: {', '.join(qc.missing_columns)}", qc=qc,
            )
        if not records:
            raise _fail(
                out_dir, input_file, created_at,
                "No valid rows remain; nothing to export.", qc=qc,
            )

        qc_path = write_qc_report(out_dir, qc)
        echo(f"  QC report -> {qc_path}")

        # ── Export ───────────────────────────────────────────────
        csv_path = write_text(out_dir / CLEAN_CSV_NAME, export_csv(records))
        echo(f"  Clean CSV -> {csv_path}")

        # ── Aggregate ────────────────────────────────────────────
        echo("[blue]>[/blue] Computing KPIs …")
        summary = aggregate(records)
        kpis = compute_dashboard_kpis(summary, qc)
        summary_path = write_json(
            out_dir / SUMMARY_NAME, {"kpis": kpis, **summary.to_dict(top=top)}
        )
        echo(f"  Summary   -> {summary_path}")

        # ── Report ───────────────────────────────────────────────
        echo("[blue]>[/blue] Writing report …")
        report_path = write_report(
            out_dir, records_to_frame(records), summary, kpis, qc=qc, top=top,
        )
        echo(f"  Report    -> {report_path}")

        manifest_path = _write_manifest(out_dir, input_file, created_at, qc)
        echo(f"  Manifest  -> {manifest_path}")

        if not quiet:
            console.print(Panel(
                f"[green]Done[/green] — {qc.rows_out}/{qc.rows_in} rows -> {csv_path}",
                title="Pipeline Complete", border_style="green",
            ))
    except typer.Exit:
        raise
    except Exception as exc:
        raise _fail(
            out_dir, input_file, created_at,
            f"Unexpected internal error: {exc}", rows_in=len(raw_rows), error_code=1,
        ) from exc


# ── validate command ─────────────────────────────────────────────


@app.command()
def validate(
    input_file: Path = _INPUT_OPTION,
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for QC + manifest.",
    ),
    dayfirst: bool = _DAYFIRST_OPTION,
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes QC + manifest.",
    ),
) -> None:
    """Run the clean pass without exporting anything.

    Writes qc_report.json + run_manifest.json only.
    Exit 0 = OK, exit 2 = missing columns or unreadable input.
    """
    created_at = _utcnow_iso()
    out_dir.mkdir(parents=True, exist_ok=True)

    try:
        raw_rows = _load_rows(input_file)
    except (FileNotFoundError, ValueError, OSError) as exc:
        raise _fail(out_dir, input_file, created_at, str(exc))

    try:
        _, qc = clean_rows(raw_rows, dayfirst=dayfirst)

        qc_path = write_qc_report(out_dir, qc)
        status = "failed" if qc.missing_columns else "success"
        error_message = (
            f"Missing columns: {', '.join(qc.missing_columns)}" if qc.missing_columns else ""
        )
        manifest_path = _write_manifest(
            out_dir, input_file, created_at, qc,
            status=status,
            error_code=2 if qc.missing_columns else None,
            error_message=error_message,
        )

        if not quiet:
            tbl = RichTable(title="Validation Summary", show_lines=True)
            tbl.add_column("Check", style="bold")
            tbl.add_column("Result")
            tbl.add_row("Rows in", str(qc.rows_in))
            tbl.add_row("Rows out", str(qc.rows_out))
            tbl.add_row("Dropped", str(qc.dropped_rows))
            tbl.add_row("Duplicates", str(qc.duplicate_rows))
            for reason, count in qc.rejected.items():
                tbl.add_row(f"Invalid {reason}", str(count))
            for w in qc.warnings:
                tbl.add_row("Warning", f"[yellow]{w}[/yellow]")
            tbl.add_row(
                "Status", "[red]FAIL[/red]" if qc.missing_columns else "[green]PASS[/green]"
            )
            console.print(tbl)
        console.print(f"  QC       -> {qc_path}")
        console.print(f"  Manifest -> {manifest_path}")

        if qc.missing_columns:
            _err(error_message)
            _print_missing_columns(qc)
            raise typer.Exit(code=2)
    except typer.Exit:
        raise
    except Exception as exc:
        raise _fail(
            out_dir, input_file, created_at,
            f"Unexpected internal error: {exc}", rows_in=len(raw_rows), error_code=1,
        ) from exc


# ── preview command ──────────────────────────────────────────────


@app.command("preview")
def preview_cmd(
    input_file: Path = _INPUT_OPTION,
    rows: int = typer.Option(
        DEFAULT_PREVIEW_ROWS, "--rows", "-n", min=0,
        help="Number of leading rows to show from each table.",
    ),
    dayfirst: bool = _DAYFIRST_OPTION,
) -> None:
    """Print the first rows of the raw and the clean data, plus row counts."""
    try:
        raw_rows = _load_rows(input_file)
    except (FileNotFoundError, ValueError, OSError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)

    records, qc = clean_rows(raw_rows, dayfirst=dayfirst)
    console.print(f"Raw rows: {qc.rows_in}  Clean rows: {qc.rows_out}")
    console.print(_records_table("Raw data", preview(raw_rows, rows)))
    console.print(_records_table("Clean data", preview(records, rows)))
