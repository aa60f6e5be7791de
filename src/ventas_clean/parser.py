"""Delimited-text parser: raw ledger text to field-keyed records.

Splitting is purely positional on ``,``: quoting and escaping are not
supported, so a comma inside a value shifts every later field.
"""

from __future__ import annotations

from ventas_clean.models import RawRecord

DELIMITER = ","


def parse_header(line: str) -> list[str]:
    return [name.strip() for name in line.split(DELIMITER)]


def parse_line(headers: list[str], line: str) -> RawRecord:
    """Map the values of *line* onto *headers*; absent trailing fields are ``None``."""
    values = line.split(DELIMITER)
    return {
        name: values[idx].strip() if idx < len(values) else None
        for idx, name in enumerate(headers)
    }


def parse_csv(text: str) -> list[RawRecord]:
    """Parse *text* into records keyed by the header row, in input order.

    Surrounding whitespace (including a trailing newline) is trimmed first.
    Empty text yields no records.
    """
    lines = text.strip().split("\n")
    headers = parse_header(lines[0])
    return [parse_line(headers, line) for line in lines[1:]]
