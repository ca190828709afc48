from __future__ import annotations

import math
import numbers
import re
import warnings
from datetime import UTC, date, datetime, timedelta
from typing import Any

import pandas as pd

"""Cell value coercion shared by the invoice and client reconcilers.

Spreadsheet cells arrive as str / int / float / bool / datetime depending on
the file format. These helpers turn them into the plain values the typed rows
carry. Blank means None, NaN, or a whitespace-only string.
"""

__all__ = [
    "SERIAL_EPOCH_OFFSET_DAYS",
    "is_blank",
    "to_text",
    "to_number",
    "to_bool",
    "serial_to_iso",
    "normalize_date",
]

# 1899-12-30 -> 1970-01-01
SERIAL_EPOCH_OFFSET_DAYS = 25569
_UNIX_EPOCH = datetime(1970, 1, 1)
# 10000-01-01 の serial (openpyxl の上限)
_MAX_SERIAL = 2958466
_MIN_TEXT_SERIAL = 10000

_ISO_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")
_NUMERIC_RE = re.compile(r"[+-]?\d+(\.\d+)?")
_TRUE_STRINGS = {"true", "yes", "y", "1"}


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, float):
        return math.isnan(value)
    return value is pd.NaT


def to_text(value: Any) -> str:
    """Trimmed string form; integral floats lose their trailing '.0'."""
    if is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def to_number(value: Any, default: float) -> float:
    """Numeric cell -> float. Blank or non-numeric text gives the default.

    An explicit 0 is kept (a 0% rate is a real rate).
    """
    if is_blank(value) or isinstance(value, bool):
        return default
    if isinstance(value, numbers.Real):
        return float(value)
    text = str(value).strip().replace(",", "")
    try:
        number = float(text)
    except ValueError:
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def to_bool(value: Any) -> bool:
    """TRUE / true / yes / 1 (or a real boolean cell) -> True."""
    if value is True:
        return True
    if is_blank(value) or value is False:
        return False
    return str(value).strip().lower() in _TRUE_STRINGS


def serial_to_iso(serial: float) -> str:
    """Spreadsheet serial day number (1899-12-30 epoch) -> YYYY-MM-DD."""
    millis = round((serial - SERIAL_EPOCH_OFFSET_DAYS) * 86400 * 1000)
    return (_UNIX_EPOCH + timedelta(milliseconds=millis)).date().isoformat()


def _datetime_to_iso(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.date().isoformat()


def _parse_text(text: str) -> str:
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        parsed = pd.to_datetime(text, errors="coerce")
    if pd.isna(parsed):
        return text
    return _datetime_to_iso(parsed.to_pydatetime())


def normalize_date(value: Any) -> str:
    """Normalize a date cell to ``YYYY-MM-DD``.

    Accepts native dates/datetimes, serial day numbers (as numbers or numeric
    text), ISO strings (returned unchanged) and anything pandas can parse,
    compact ``YYYYMMDD`` included. Numbers outside the serial range go to the
    parser; so do digit strings shorter than five characters ("2024" is a
    year, not day 2024). Values that do not parse come back as their trimmed
    text; blank and 0 come back as "".
    """
    if is_blank(value) or isinstance(value, bool):
        return ""
    if isinstance(value, datetime):  # pd.Timestamp も含む
        return _datetime_to_iso(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, numbers.Real):
        if value == 0:
            return ""
        if 0 < value < _MAX_SERIAL:
            return serial_to_iso(float(value))
        return _parse_text(to_text(value))

    text = str(value).strip()
    if _ISO_DATE_RE.fullmatch(text):
        return text
    if _NUMERIC_RE.fullmatch(text):
        number = float(text)
        if number == 0:
            return ""
        if _MIN_TEXT_SERIAL <= number < _MAX_SERIAL:
            return serial_to_iso(number)
    return _parse_text(text)
