"""Per-field canonicalization: dates, category text, numbers."""

from __future__ import annotations

import math
import re
from typing import Any, cast

import pandas as pd

_ALPHA_RUN_RE = re.compile(r"[^\W\d_]+")
_DECIMAL_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_TIME_SUFFIX = r"(?:[T ]\d{1,2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?)?"
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}" + _TIME_SUFFIX + r"$")
_YEAR_FIRST_RE = re.compile(r"^\d{4}[/.-]\d{1,2}[/.-]\d{1,2}" + _TIME_SUFFIX + r"$")
_DAY_MONTH_RE = re.compile(r"^(\d{1,2})[/.-](\d{1,2})[/.-]\d{2,4}" + _TIME_SUFFIX + r"$")


# ── Text ─────────────────────────────────────────────────────────


def _upper_first(word: str) -> str:
    head = word[0].upper()
    # "ß".upper() is "SS"; such letters stay as they are
    if len(head) != 1:
        head = word[0]
    return head + word[1:]


def capitalize(text: str | None) -> str:
    """Trim, lower-case, then upper-case the first letter of every alphabetic run.

    ``capitalize(" café CON leche")`` -> ``"Café Con Leche"``.
    """
    if not text:
        return ""
    return _ALPHA_RUN_RE.sub(
        lambda m: _upper_first(m.group(0)), text.strip().lower()
    )


# Product names follow exactly the same rule as the category fields.
normalize_text = capitalize


# ── Dates ────────────────────────────────────────────────────────


def parse_fecha(value: str | None, *, dayfirst: bool = False) -> str | None:
    """Return *value* as ``YYYY-MM-DD``, or ``None`` if it is not a calendar date.

    Only numeric dates with an explicit year, month and day are accepted:
    ISO-8601 (``2024-03-01``, optionally with a time and offset), other
    year-first forms (``2024/3/1``) and ``NN/NN/YYYY``.  *dayfirst* only
    applies to the last shape.  Aware timestamps are converted to UTC
    before the time part is dropped.
    """
    if value is None:
        return None
    token = value.strip()
    if _ISO_DATE_RE.match(token):
        parsed = pd.to_datetime(token, errors="coerce", format="ISO8601")
    elif _YEAR_FIRST_RE.match(token):
        parsed = pd.to_datetime(
            token, errors="coerce", yearfirst=True, dayfirst=False, format="mixed"
        )
    elif _DAY_MONTH_RE.match(token):
        parsed = pd.to_datetime(token, errors="coerce", dayfirst=dayfirst, format="mixed")
    else:
        return None
    if pd.isna(parsed):
        return None
    ts = cast(pd.Timestamp, parsed)
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC")
    return ts.date().isoformat()


def is_ambiguous_day_month(value: str | None) -> bool:
    """True for ``NN/NN/YYYY`` values where both leading parts could be a month."""
    if not value:
        return False
    m = _DAY_MONTH_RE.match(value.strip())
    if m is None:
        return False
    first, second = int(m.group(1)), int(m.group(2))
    return 1 <= first <= 12 and 1 <= second <= 12 and first != second


# ── Numbers ──────────────────────────────────────────────────────


def to_number(value: Any) -> float:
    """Coerce a plain decimal literal to ``float``; anything else is ``nan``."""
    if value is None:
        return math.nan
    token = str(value).strip()
    if not _DECIMAL_RE.match(token):
        return math.nan
    number = float(token)
    return number if math.isfinite(number) else math.nan
