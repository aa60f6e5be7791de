"""Excel report writer, produces Informe_Ventas.xlsx."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, cast

import pandas as pd
from openpyxl import Workbook
from openpyxl.chart import BarChart, PieChart, Reference
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo
from openpyxl.worksheet.worksheet import Worksheet

from ventas_clean.models import DEFAULT_TOP_N, AggregateSummary, QCReport

REPORT_NAME = "Informe_Ventas.xlsx"

# ── Style constants ──────────────────────────────────────────────

HEADER_FONT = Font(name="Calibri", bold=True, size=11, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="2F5496", end_color="2F5496", fill_type="solid")
HEADER_ALIGN = Alignment(horizontal="center", vertical="center", wrap_text=True)

TITLE_FONT = Font(name="Calibri", bold=True, size=14, color="2F5496")
SUBTITLE_FONT = Font(name="Calibri", bold=False, size=10, color="808080")
LABEL_FONT = Font(name="Calibri", bold=True, size=11)
VALUE_FONT = Font(name="Calibri", size=11)
WARN_FONT = Font(name="Calibri", italic=True, size=10, color="CC6600")

NOTE_FILL = PatternFill(start_color="FFF2CC", end_color="FFF2CC", fill_type="solid")
KPI_FILL = PatternFill(start_color="D6E4F0", end_color="D6E4F0", fill_type="solid")

CURRENCY_FMT = '#,##0.00 "€"'
NUMBER_FMT = '#,##0.##'
INT_FMT = '#,##0'

_COL_FORMATS: dict[str, str] = {
    "unidades": NUMBER_FMT,
    "precio_unitario": CURRENCY_FMT,
    "importe": CURRENCY_FMT,
}

_AUTO_WIDTH_SAMPLE_ROWS = 300
_EXCEL_FORMULA_PREFIXES = ("=", "+", "-", "@")


# ── Helpers ──────────────────────────────────────────────────────


def _style_header(ws: Worksheet, ncols: int) -> None:
    for c in range(1, ncols + 1):
        cell = ws.cell(row=1, column=c)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGN


def _auto_width(ws: Worksheet) -> None:
    max_row = min(ws.max_row, _AUTO_WIDTH_SAMPLE_ROWS + 1)
    for c_idx in range(1, ws.max_column + 1):
        width = max(
            len(str(row[0].value or ""))
            for row in ws.iter_rows(min_row=1, max_row=max_row, min_col=c_idx, max_col=c_idx)
        )
        ws.column_dimensions[get_column_letter(c_idx)].width = min(width + 4, 30)


def _apply_number_formats(ws: Worksheet, col_names: list[str]) -> None:
    if ws.max_row < 2:
        return
    for c_idx, name in enumerate(col_names, 1):
        fmt = _COL_FORMATS.get(name.lower())
        if not fmt:
            continue
        for row in ws.iter_rows(min_row=2, max_row=ws.max_row, min_col=c_idx, max_col=c_idx):
            row[0].number_format = fmt


def _unique_table_name(ws: Worksheet, base_name: str) -> str:
    base_name = re.sub(r"[^A-Za-z0-9_]", "_", base_name) or "Table"
    parent = ws.parent
    if parent is None:
        return base_name

    existing: set[str] = set()
    for sheet in parent.worksheets:
        existing.update(cast(Iterable[str], sheet.tables.keys()))
    candidate = base_name
    suffix = 1
    while candidate in existing:
        candidate = f"{base_name}_{suffix}"
        suffix += 1
    return candidate


def _add_excel_table(ws: Worksheet, name: str, ncols: int, nrows: int) -> None:
    """Turn the data range into a proper Excel Table object."""
    if nrows < 1 or ncols < 1:
        return
    ref = f"A1:{get_column_letter(ncols)}{nrows + 1}"
    table = Table(displayName=_unique_table_name(ws, name), ref=ref)
    table.tableStyleInfo = TableStyleInfo(
        name="TableStyleMedium9", showFirstColumn=False,
        showLastColumn=False, showRowStripes=True, showColumnStripes=False,
    )
    ws.add_table(table)


def _excel_value(val: Any) -> Any:
    if isinstance(val, str):
        if val.startswith("'"):
            return val
        stripped = val.lstrip()
        if stripped and stripped[0] in _EXCEL_FORMULA_PREFIXES:
            return f"'{val}"
    return val


def _df_to_sheet(wb: Workbook, name: str, df: pd.DataFrame) -> Worksheet:
    ws = wb.create_sheet(title=name)
    col_names = [str(c) for c in df.columns]

    if df.empty:
        ws.cell(row=1, column=1, value="No data").font = VALUE_FONT
        ws.column_dimensions["A"].width = 18
        return ws

    for c_idx, col_name in enumerate(col_names, 1):
        ws.cell(row=1, column=c_idx, value=col_name)
    for r_idx, row_vals in enumerate(df.itertuples(index=False, name=None), 2):
        for c_idx, val in enumerate(row_vals, 1):
            ws.cell(row=r_idx, column=c_idx, value=_excel_value(val))
    _style_header(ws, len(col_names))
    _apply_number_formats(ws, col_names)
    ws.freeze_panes = "A2"
    _auto_width(ws)
    _add_excel_table(ws, name, len(col_names), len(df))
    return ws


def _grouping_frame(grouping: Mapping[str, float] | Sequence[tuple[str, float]],
                    label: str) -> pd.DataFrame:
    items = list(grouping.items()) if isinstance(grouping, Mapping) else list(grouping)
    return pd.DataFrame(items, columns=[label, "importe"])


def _add_bar_chart(ws: Worksheet, title: str, nrows: int) -> None:
    if nrows < 1:
        return
    chart = BarChart()
    chart.title = title
    chart.legend = None
    data = Reference(ws, min_col=2, min_row=1, max_row=nrows + 1)
    cats = Reference(ws, min_col=1, min_row=2, max_row=nrows + 1)
    chart.add_data(data, titles_from_data=True)
    chart.set_categories(cats)
    ws.add_chart(chart, "D2")


def _add_pie_chart(ws: Worksheet, title: str, nrows: int) -> None:
    if nrows < 1:
        return
    chart = PieChart()
    chart.title = title
    data = Reference(ws, min_col=2, min_row=1, max_row=nrows + 1)
    cats = Reference(ws, min_col=1, min_row=2, max_row=nrows + 1)
    chart.add_data(data, titles_from_data=True)
    chart.set_categories(cats)
    ws.add_chart(chart, "D2")


def _fill_row(ws: Worksheet, row: int, fill: PatternFill) -> None:
    for c in range(1, 5):
        ws.cell(row=row, column=c).fill = fill


def _write_dashboard(
    wb: Workbook,
    kpis: dict[str, Any],
    qc: QCReport,
    top_products: Sequence[tuple[str, float]],
) -> None:
    ws = wb.create_sheet(title="Dashboard")

    ws.cell(row=1, column=1, value="ventas-clean — Dashboard").font = TITLE_FONT
    ws.merge_cells("A1:D1")
    generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    ws.cell(row=2, column=1, value=f"Generated {generated}").font = SUBTITLE_FONT
    ws.merge_cells("A2:D2")

    # ── Notes block (from QC) ────────────────────────────────────
    row = 4
    ws.cell(row=row, column=1, value="Notes").font = LABEL_FONT
    _fill_row(ws, row, NOTE_FILL)
    row += 1
    ws.cell(row=row, column=1, value=f"Rows in: {qc.rows_in}")
    ws.cell(row=row, column=2, value=f"Rows out: {qc.rows_out}")
    ws.cell(row=row, column=3, value=f"Dropped: {qc.dropped_rows}")
    ws.cell(row=row, column=4, value=f"Duplicates: {qc.duplicate_rows}")
    _fill_row(ws, row, NOTE_FILL)
    row += 1
    if qc.warnings:
        for warn in qc.warnings:
            ws.cell(row=row, column=1, value=f"⚠ {warn}").font = WARN_FONT
            _fill_row(ws, row, NOTE_FILL)
            row += 1
    else:
        ws.cell(row=row, column=1, value="No warnings").font = VALUE_FONT
        _fill_row(ws, row, NOTE_FILL)
        row += 1

    # ── KPI cards ────────────────────────────────────────────────
    row += 1
    ws.cell(row=row, column=1, value="Key Metrics").font = LABEL_FONT
    _fill_row(ws, row, KPI_FILL)
    row += 1

    kpi_formats: dict[str, str | None] = {
        "Total Revenue": CURRENCY_FMT,
        "Total Units": NUMBER_FMT,
        "Top Product": None,
        "Raw Rows": INT_FMT,
        "Clean Rows": INT_FMT,
    }
    extras = sorted(label for label in kpis if label not in kpi_formats)
    for label in [*kpi_formats, *extras]:
        if label not in kpis:
            continue
        lbl_cell = ws.cell(row=row, column=1, value=label)
        lbl_cell.font = LABEL_FONT
        lbl_cell.fill = KPI_FILL
        val_cell = ws.cell(row=row, column=2, value=kpis[label])
        val_cell.font = VALUE_FONT
        val_cell.fill = KPI_FILL
        fmt = kpi_formats.get(label)
        if fmt:
            val_cell.number_format = fmt
            val_cell.alignment = Alignment(horizontal="right")
        row += 1

    # ── Top products list ────────────────────────────────────────
    row += 1
    ws.cell(row=row, column=1, value=f"Top {len(top_products)} Products").font = LABEL_FONT
    row += 1
    for rank, (name, value) in enumerate(top_products, 1):
        ws.cell(row=row, column=1, value=f"{rank}. {_excel_value(name)}").font = VALUE_FONT
        val_cell = ws.cell(row=row, column=2, value=value)
        val_cell.number_format = CURRENCY_FMT
        row += 1

    ws.column_dimensions["A"].width = 26
    ws.column_dimensions["B"].width = 22
    ws.column_dimensions["C"].width = 18
    ws.column_dimensions["D"].width = 18


# ── Public API ───────────────────────────────────────────────────


def write_report(
    out_dir: Path,
    clean_df: pd.DataFrame,
    summary: AggregateSummary,
    kpis: dict[str, Any],
    qc: QCReport | None = None,
    *,
    top: int = DEFAULT_TOP_N,
) -> Path:
    """Write ``Informe_Ventas.xlsx`` and return the path."""
    if qc is None:
        qc = QCReport()

    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    report_path = out_dir / REPORT_NAME

    wb = Workbook()
    active_sheet = wb.active
    if active_sheet is not None:
        wb.remove(active_sheet)

    top_products = summary.top_products(top)
    _write_dashboard(wb, kpis, qc, top_products)

    ws = _df_to_sheet(wb, "Top_Productos", _grouping_frame(top_products, "producto"))
    _add_bar_chart(ws, f"Top {top} productos por importe", len(top_products))

    ws = _df_to_sheet(wb, "Por_Franja", _grouping_frame(summary.by_franja, "franja"))
    _add_pie_chart(ws, "Ventas por franja", len(summary.by_franja))

    ws = _df_to_sheet(wb, "Por_Familia", _grouping_frame(summary.by_familia, "familia"))
    _add_pie_chart(ws, "Ventas por familia", len(summary.by_familia))

    _df_to_sheet(wb, "Clean_Data", clean_df)

    tmp_path = out_dir / "Informe_Ventas.tmp.xlsx"
    wb.save(tmp_path)
    tmp_path.replace(report_path)
    return report_path
