"""Clean + aggregate pipeline. Pure functions over in-memory records."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from itertools import islice
from typing import Any, TypeVar

import pandas as pd

from ventas_clean import CLEAN_FIELDS, REQUIRED_FIELDS, VALID_FAMILIAS, VALID_FRANJAS
from ventas_clean.models import AggregateSummary, CleanRecord, QCReport, top_n
from ventas_clean.normalize import (
    capitalize,
    is_ambiguous_day_month,
    normalize_text,
    parse_fecha,
    to_number,
)

GROUP_FIELDS: tuple[str, ...] = ("producto", "franja", "familia")
DEFAULT_PREVIEW_ROWS = 10

T = TypeVar("T")


# ── Clean pass ───────────────────────────────────────────────────


def clean_row(row: Mapping[str, str | None], *, dayfirst: bool = False) -> CleanRecord | str:
    """Normalize and validate one raw row.

    Returns the :class:`CleanRecord`, or the name of the first field that
    failed validation.
    """
    fecha = parse_fecha(row.get("fecha"), dayfirst=dayfirst)
    if fecha is None:
        return "fecha"

    franja = capitalize(row.get("franja"))
    if franja not in VALID_FRANJAS:
        return "franja"

    familia = capitalize(row.get("familia"))
    if familia not in VALID_FAMILIAS:
        return "familia"

    raw_producto = row.get("producto")
    if not raw_producto:
        return "producto"
    producto = normalize_text(raw_producto)

    unidades = to_number(row.get("unidades"))
    if not unidades > 0:
        return "unidades"
    precio_unitario = to_number(row.get("precio_unitario"))
    if not precio_unitario > 0:
        return "precio_unitario"

    return CleanRecord(
        fecha=fecha,
        franja=franja,
        familia=familia,
        producto=producto,
        unidades=unidades,
        precio_unitario=precio_unitario,
        importe=unidades * precio_unitario,
    )


def clean_rows(
    rows: Sequence[Mapping[str, str | None]], *, dayfirst: bool = False
) -> tuple[list[CleanRecord], QCReport]:
    """Run the fused normalize/validate/dedup pass over *rows*.

    Rejected and duplicate rows are dropped silently; only aggregate
    counts end up in the returned QC report.  Survivors keep input order.
    """
    headers: set[str] = set().union(*(row.keys() for row in rows)) if rows else set()
    missing = [name for name in REQUIRED_FIELDS if name not in headers]

    seen: set[tuple[Any, ...]] = set()
    records: list[CleanRecord] = []
    rejected: Counter[str] = Counter()
    duplicates = 0
    ambiguous_dates = 0

    for row in rows:
        if is_ambiguous_day_month(row.get("fecha")):
            ambiguous_dates += 1
        result = clean_row(row, dayfirst=dayfirst)
        if isinstance(result, str):
            rejected[result] += 1
            continue
        key = result.dedup_key()
        if key in seen:
            duplicates += 1
            continue
        seen.add(key)
        records.append(result)

    qc = QCReport(
        rows_in=len(rows),
        rows_out=len(records),
        dropped_rows=len(rows) - len(records),
        duplicate_rows=duplicates,
        rejected={reason: rejected[reason] for reason in REQUIRED_FIELDS if rejected[reason]},
        missing_columns=missing if rows else [],
    )

    if qc.missing_columns:
        qc.warnings.append(f"Missing required columns: {', '.join(qc.missing_columns)}")
    if ambiguous_dates:
        parsed_mode = "day/month (DD/MM)" if dayfirst else "month/day (MM/DD)"
        qc.warnings.append(
            f"Found {ambiguous_dates} ambiguous day/month dates; interpreted as {parsed_mode}"
        )
    for reason, count in qc.rejected.items():
        qc.warnings.append(f"Dropped {count} rows with invalid {reason}")
    if duplicates:
        qc.warnings.append(f"Dropped {duplicates} duplicate rows")
    if rows and not records:
        qc.warnings.append("Cleaned dataset is empty — no valid rows remain")

    return records, qc


# ── Aggregation ──────────────────────────────────────────────────


def records_to_frame(records: Sequence[CleanRecord]) -> pd.DataFrame:
    """Return *records* as a DataFrame with the clean field order."""
    if not records:
        return pd.DataFrame(columns=CLEAN_FIELDS)
    return pd.DataFrame([r.to_dict() for r in records], columns=CLEAN_FIELDS)


def _group_sum_frame(df: pd.DataFrame, field: str) -> dict[str, float]:
    if df.empty:
        return {}
    sums = df.groupby(field, sort=False)["importe"].sum()
    return {str(key): float(value) for key, value in sums.items()}


def group_sum(records: Sequence[CleanRecord], field: str) -> dict[str, float]:
    """Sum ``importe`` per distinct value of *field*, in first-occurrence order."""
    if field not in GROUP_FIELDS:
        raise ValueError(f"Cannot group by {field!r}. Use one of: {', '.join(GROUP_FIELDS)}")
    return _group_sum_frame(records_to_frame(records), field)


def aggregate(records: Sequence[CleanRecord]) -> AggregateSummary:
    """Compute totals and the producto/franja/familia revenue groupings."""
    if not records:
        return AggregateSummary()
    df = records_to_frame(records)
    return AggregateSummary(
        total_revenue=float(df["importe"].sum()),
        total_units=float(df["unidades"].sum()),
        by_producto=_group_sum_frame(df, "producto"),
        by_franja=_group_sum_frame(df, "franja"),
        by_familia=_group_sum_frame(df, "familia"),
    )


def compute_dashboard_kpis(summary: AggregateSummary, qc: QCReport) -> dict[str, Any]:
    """Return the top-level KPIs for the Dashboard sheet."""
    top = top_n(summary.by_producto, 1)
    units = summary.total_units
    return {
        "Total Revenue": round(summary.total_revenue, 2),
        "Total Units": int(units) if float(units).is_integer() else round(units, 2),
        "Top Product": top[0][0] if top else "N/A",
        "Raw Rows": qc.rows_in,
        "Clean Rows": qc.rows_out,
    }


def preview(rows: Iterable[T], n: int = DEFAULT_PREVIEW_ROWS) -> list[T]:
    """Return the first *n* rows for tabular display."""
    if n < 0:
        raise ValueError("n must be >= 0")
    return list(islice(rows, n))
