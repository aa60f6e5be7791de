"""Record and report models shared across the package."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass, field
from datetime import date
from numbers import Integral
from typing import Any, Optional

from ventas_clean import VALID_FAMILIAS, VALID_FRANJAS

RawRecord = dict[str, Optional[str]]

DEFAULT_TOP_N = 5


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_string_list(values: Sequence[Any] | None, field_name: str) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        raise TypeError(f"{field_name} must be a sequence of strings")
    if not all(isinstance(item, str) for item in values):
        raise TypeError(f"{field_name} items must be strings")
    return list(values)


def _to_count_map(values: Mapping[str, Any] | None, field_name: str) -> dict[str, int]:
    if values is None:
        return {}
    return {
        str(reason): _to_non_negative_int(count, f"{field_name}[{reason!r}]")
        for reason, count in values.items()
    }


def top_n(grouping: Mapping[str, float], n: int = DEFAULT_TOP_N) -> list[tuple[str, float]]:
    """Return the *n* largest entries of *grouping*; ties keep insertion order."""
    if n < 0:
        raise ValueError("n must be >= 0")
    # sorted() is stable, reverse=True included
    return sorted(grouping.items(), key=lambda item: item[1], reverse=True)[:n]


# ── Records ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class CleanRecord:
    """One validated sales line. ``importe`` is always derived."""

    fecha: str
    franja: str
    familia: str
    producto: str
    unidades: float
    precio_unitario: float
    importe: float

    def __post_init__(self) -> None:
        try:
            date.fromisoformat(self.fecha)
        except (TypeError, ValueError):
            raise ValueError(f"fecha must be an ISO date, got {self.fecha!r}") from None
        if self.franja not in VALID_FRANJAS:
            raise ValueError(f"franja must be one of {', '.join(VALID_FRANJAS)}")
        if self.familia not in VALID_FAMILIAS:
            raise ValueError(f"familia must be one of {', '.join(VALID_FAMILIAS)}")
        if not self.producto:
            raise ValueError("producto must not be empty")
        if not self.unidades > 0:
            raise ValueError("unidades must be > 0")
        if not self.precio_unitario > 0:
            raise ValueError("precio_unitario must be > 0")
        if self.importe != self.unidades * self.precio_unitario:
            raise ValueError("importe must equal unidades * precio_unitario")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def dedup_key(self) -> tuple[Any, ...]:
        return (
            self.fecha,
            self.franja,
            self.familia,
            self.producto,
            self.unidades,
            self.precio_unitario,
            self.importe,
        )


@dataclass
class AggregateSummary:
    """KPIs and revenue groupings over a set of clean records."""

    total_revenue: float = 0.0
    total_units: float = 0.0
    by_producto: dict[str, float] = field(default_factory=dict)
    by_franja: dict[str, float] = field(default_factory=dict)
    by_familia: dict[str, float] = field(default_factory=dict)

    def top_products(self, n: int = DEFAULT_TOP_N) -> list[tuple[str, float]]:
        return top_n(self.by_producto, n)

    def to_dict(self, top: int = DEFAULT_TOP_N) -> dict[str, Any]:
        return {
            "total_revenue": self.total_revenue,
            "total_units": self.total_units,
            "by_producto": dict(self.by_producto),
            "by_franja": dict(self.by_franja),
            "by_familia": dict(self.by_familia),
            "top_products": [
                {"producto": name, "importe": value}
                for name, value in self.top_products(top)
            ],
        }


# ── Reports ──────────────────────────────────────────────────────


@dataclass
class QCReport:
    """Quality-control counts for one clean pass.

    Contract invariants: ``dropped_rows == rows_in - rows_out`` and
    ``duplicate_rows + sum(rejected.values()) <= dropped_rows``.
    """

    rows_in: int = 0
    rows_out: int = 0
    dropped_rows: int = 0
    duplicate_rows: int = 0
    rejected: dict[str, int] = field(default_factory=dict)
    missing_columns: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.rows_in = _to_non_negative_int(self.rows_in, "rows_in")
        self.rows_out = _to_non_negative_int(self.rows_out, "rows_out")
        self.dropped_rows = _to_non_negative_int(self.dropped_rows, "dropped_rows")
        self.duplicate_rows = _to_non_negative_int(self.duplicate_rows, "duplicate_rows")
        self.rejected = _to_count_map(self.rejected, "rejected")
        self.missing_columns = _to_string_list(self.missing_columns, "missing_columns")
        self.warnings = _to_string_list(self.warnings, "warnings")
        if self.rows_out > self.rows_in:
            raise ValueError("rows_out must be <= rows_in")
        if self.dropped_rows != self.rows_in - self.rows_out:
            raise ValueError("dropped_rows must equal rows_in - rows_out")
        if self.duplicate_rows + sum(self.rejected.values()) > self.dropped_rows:
            raise ValueError("duplicate_rows + rejected rows must be <= dropped_rows")

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows_in": self.rows_in,
            "rows_out": self.rows_out,
            "dropped_rows": self.dropped_rows,
            "duplicate_rows": self.duplicate_rows,
            "rejected": dict(self.rejected),
            "missing_columns": list(self.missing_columns),
            "warnings": list(self.warnings),
        }


@dataclass
class RunManifest:
    """Audit-trail manifest for a single CLI run."""

    tool: str = "ventas-clean"
    version: str = ""
    run_id: str = ""
    input_path: str = ""
    output_dir: str = ""
    created_at_utc: str = ""
    rows_in: int = 0
    rows_out: int = 0
    sha256: str = ""
    status: str = "success"
    error_code: int | None = None
    error_message: str = ""

    def __post_init__(self) -> None:
        self.rows_in = _to_non_negative_int(self.rows_in, "rows_in")
        self.rows_out = _to_non_negative_int(self.rows_out, "rows_out")
        if self.status not in {"success", "failed"}:
            raise ValueError(f"status must be 'success' or 'failed', got {self.status!r}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
