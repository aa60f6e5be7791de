from __future__ import annotations

import math

import pytest

from ventas_clean.normalize import (
    capitalize,
    is_ambiguous_day_month,
    normalize_text,
    parse_fecha,
    to_number,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("desayuno", "Desayuno"),
        ("  COMIDA ", "Comida"),
        ("  café ", "Café"),
        ("café CON leche", "Café Con Leche"),
        ("té", "Té"),
        ("tarta-de queso", "Tarta-De Queso"),
        ("", ""),
        (None, ""),
    ],
)
def test_capitalize(raw: str | None, expected: str) -> None:
    assert capitalize(raw) == expected


def test_normalize_text_is_the_same_rule() -> None:
    for raw in ("  café ", "PAELLA valenciana", "ñoquis"):
        assert normalize_text(raw) == capitalize(raw)


def test_capitalize_is_idempotent() -> None:
    for raw in ("bebida", "  ENSALADA mixta", "straße", "ßalsa", "ñoquis al pesto"):
        once = capitalize(raw)
        assert capitalize(once) == once


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2024-03-01", "2024-03-01"),
        (" 2024-03-01 ", "2024-03-01"),
        ("2024-03-01 18:45:00", "2024-03-01"),
        ("2024-03-01T23:30:00-02:00", "2024-03-02"),
        ("03/01/2024", "2024-03-01"),
        ("2024/3/5", "2024-03-05"),
        ("03/01/2024 10:30", "2024-03-01"),
    ],
)
def test_parse_fecha_returns_iso_date(raw: str, expected: str) -> None:
    assert parse_fecha(raw) == expected


@pytest.mark.parametrize(
    "raw",
    [
        "31/02/2024", "2024-02-30", "not-a-date", "", "   ", None,
        "today", "now", "Today", "yesterday", "March", "mar 2024", "2024", "2024-03",
    ],
)
def test_parse_fecha_rejects_invalid_dates(raw: str | None) -> None:
    assert parse_fecha(raw) is None


def test_parse_fecha_dayfirst() -> None:
    assert parse_fecha("03/01/2024", dayfirst=True) == "2024-01-03"
    assert parse_fecha("13/01/2024", dayfirst=True) == "2024-01-13"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2024-03-05", "2024-03-05"),
        ("2024-03-05 09:15:00", "2024-03-05"),
        ("2024-03-05T23:30:00-02:00", "2024-03-06"),
        ("2024/3/5", "2024-03-05"),
    ],
)
def test_parse_fecha_dayfirst_leaves_year_first_dates_alone(raw: str, expected: str) -> None:
    assert parse_fecha(raw, dayfirst=True) == expected
    assert parse_fecha(raw, dayfirst=False) == expected


def test_parse_fecha_is_idempotent_on_its_output() -> None:
    for raw in ("03/01/2024", "12/11/2024", "2024-03-05"):
        for dayfirst in (False, True):
            once = parse_fecha(raw, dayfirst=dayfirst)
            assert once is not None
            assert parse_fecha(once, dayfirst=dayfirst) == once


def test_is_ambiguous_day_month() -> None:
    assert is_ambiguous_day_month("03/01/2024")
    assert not is_ambiguous_day_month("13/01/2024")
    assert not is_ambiguous_day_month("05/05/2024")
    assert not is_ambiguous_day_month("2024-03-01")
    assert not is_ambiguous_day_month(None)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("2", 2.0), (" 1.5 ", 1.5), ("-3", -3.0), (".5", 0.5), ("1e2", 100.0), ("7.", 7.0)],
)
def test_to_number_parses_decimals(raw: str, expected: float) -> None:
    assert to_number(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "", "1,5", "1_000", "inf", "nan", "0x10", None])
def test_to_number_returns_nan_for_non_numeric(raw: str | None) -> None:
    assert math.isnan(to_number(raw))


def test_capitalize_keeps_letters_without_single_char_upper_case() -> None:
    assert capitalize("ßalsa") == "ßalsa"
    assert capitalize("  STRAßE ") == "Straße"
