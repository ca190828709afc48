"""CSV export of stored invoices and clients, with financial-year / month filters."""

from .csv_export import (
    CLIENT_EXPORT_COLUMNS,
    INVOICE_EXPORT_COLUMNS,
    default_export_filename,
    resolve_export_path,
    write_client_csv,
    write_invoice_csv,
)
from .periods import (
    available_financial_years,
    available_month_years,
    filter_by_financial_year,
    filter_by_month,
    parse_financial_year,
    parse_month,
)

__all__ = [
    "CLIENT_EXPORT_COLUMNS",
    "INVOICE_EXPORT_COLUMNS",
    "available_financial_years",
    "available_month_years",
    "default_export_filename",
    "filter_by_financial_year",
    "filter_by_month",
    "parse_financial_year",
    "parse_month",
    "resolve_export_path",
    "write_client_csv",
    "write_invoice_csv",
]
