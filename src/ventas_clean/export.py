"""Serialize clean records back to comma-delimited text."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from ventas_clean.models import CleanRecord
from ventas_clean.parser import DELIMITER


def format_value(value: Any) -> str:
    """Render *value* for the CSV; integral floats drop their ``.0``."""
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    return str(value)


def export_csv(records: Sequence[CleanRecord]) -> str:
    """Return *records* as header + rows, ``\\n``-joined, without quoting.

    Raises
    ------
    ValueError
        If *records* is empty; no header can be derived from zero records.
    """
    if not records:
        raise ValueError("Cannot export an empty record set (no header can be derived)")

    header = list(records[0].to_dict())
    lines = [DELIMITER.join(header)]
    for record in records:
        values = record.to_dict()
        lines.append(DELIMITER.join(format_value(values[name]) for name in header))
    return "\n".join(lines)
