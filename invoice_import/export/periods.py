from __future__ import annotations

import calendar
import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from ..models.records import ExistingInvoice

"""Financial-year and month filters for invoice exports.

Indian financial year: 1 April .. 31 March, labelled "2024-25".
Invoices whose date cannot be read as ISO YYYY-MM-DD belong to no period.
"""

__all__ = [
    "MonthYear",
    "financial_year_label",
    "financial_year_of",
    "available_financial_years",
    "filter_by_financial_year",
    "available_month_years",
    "filter_by_month",
    "parse_month",
    "parse_financial_year",
]

FY_START_MONTH = 4

_FY_RE = re.compile(r"^(\d{4})-(\d{2})$")
_MONTH_NUMERIC_RE = re.compile(r"^(\d{4})-(\d{1,2})$")


@dataclass(frozen=True)
class MonthYear:
    year: int
    month: int  # 1-12
    label: str  # "April 2024"


def _invoice_date(invoice: ExistingInvoice) -> date | None:
    try:
        return date.fromisoformat((invoice.invoice_date or "")[:10])
    except ValueError:
        return None


def financial_year_label(start_year: int) -> str:
    return f"{start_year}-{str(start_year + 1)[-2:]}"


def financial_year_of(value: date) -> str:
    start = value.year if value.month >= FY_START_MONTH else value.year - 1
    return financial_year_label(start)


def parse_financial_year(label: str) -> int:
    m = _FY_RE.match(label.strip())
    if not m:
        raise ValueError(f"invalid financial year '{label}' (expected e.g. 2024-25)")
    start = int(m.group(1))
    if m.group(2) != str(start + 1)[-2:]:
        raise ValueError(f"invalid financial year '{label}' (years are not consecutive)")
    return start


def available_financial_years(invoices: Iterable[ExistingInvoice]) -> list[str]:
    """Labels present in invoices, newest first."""
    labels = {financial_year_of(d) for d in map(_invoice_date, invoices) if d is not None}
    return sorted(labels, reverse=True)


def filter_by_financial_year(invoices: Iterable[ExistingInvoice], label: str) -> list[ExistingInvoice]:
    start_year = parse_financial_year(label)
    start = date(start_year, FY_START_MONTH, 1)
    end = date(start_year + 1, FY_START_MONTH, 1)
    result = []
    for inv in invoices:
        d = _invoice_date(inv)
        if d is not None and start <= d < end:
            result.append(inv)
    return result


def available_month_years(invoices: Iterable[ExistingInvoice]) -> list[MonthYear]:
    """Distinct (year, month) of invoices, newest first."""
    keys = {(d.year, d.month) for d in map(_invoice_date, invoices) if d is not None}
    return [
        MonthYear(year=y, month=m, label=f"{calendar.month_name[m]} {y}")
        for y, m in sorted(keys, reverse=True)
    ]


def filter_by_month(invoices: Iterable[ExistingInvoice], year: int, month: int) -> list[ExistingInvoice]:
    result = []
    for inv in invoices:
        d = _invoice_date(inv)
        if d is not None and d.year == year and d.month == month:
            result.append(inv)
    return result


def parse_month(text: str) -> tuple[int, int]:
    """Parse "2024-04" or "April 2024" into (year, month)."""
    value = " ".join(text.split())
    m = _MONTH_NUMERIC_RE.match(value)
    if m:
        year, month = int(m.group(1)), int(m.group(2))
    else:
        parts = value.split(" ")
        names = {calendar.month_name[i].casefold(): i for i in range(1, 13)}
        if len(parts) != 2 or parts[0].casefold() not in names or not parts[1].isdigit():
            raise ValueError(f"invalid month '{text}' (expected YYYY-MM or e.g. 'April 2024')")
        year, month = int(parts[1]), names[parts[0].casefold()]
    if not 1 <= month <= 12:
        raise ValueError(f"invalid month '{text}'")
    return year, month
