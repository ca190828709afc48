from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.config_models import ImportDefaults
from ..models.records import ExistingClient, ExistingInvoice

"""CSV exporters.

The exported columns are the import headers, so an exported file can be fed
straight back into the importer. Invoices are written one row per line item
with the invoice and customer fields repeated; stored tax amounts are turned
back into percentage rates of the subtotal.
"""

__all__ = [
    "INVOICE_EXPORT_COLUMNS",
    "CLIENT_EXPORT_COLUMNS",
    "default_export_filename",
    "resolve_export_path",
    "invoice_export_rows",
    "client_export_rows",
    "write_invoice_csv",
    "write_client_csv",
]

logger = logging.getLogger(__name__)

INVOICE_EXPORT_COLUMNS: tuple[str, ...] = (
    "Invoice Number",
    "Invoice Date",
    "Due Date",
    "Order / PO Number",
    "Subject / Project Title",
    "Invoice Status",
    "Notes",
    "Terms & Conditions",
    "Tax Type",
    "TDS",
    "TDS Amount",
    "CGST Rate",
    "SGST Rate",
    "IGST Rate",
    "Customer Name",
    "Customer Email",
    "Customer GSTIN",
    "Customer PAN",
    "Customer Phone",
    "Customer Address",
    "Customer Type",
    "Item Description",
    "Item SAC",
    "Item Quantity",
    "Item Rate",
)

CLIENT_EXPORT_COLUMNS: tuple[str, ...] = (
    "Customer Type",
    "Salutation",
    "First Name",
    "Last Name",
    "Company Name",
    "Display Name",
    "Email",
    "Phone",
    "Work Phone",
    "Mobile",
    "Address",
    "PAN",
    "TAN",
    "GSTIN",
    "Currency",
    "Payment Terms",
    "Custom Term Days",
    "TDS Deducting",
)

_FILENAME_PREFIX = {"invoices": "invoices_export", "clients": "customers_export"}


def default_export_filename(kind: str, today: date | None = None) -> str:
    today = today or date.today()
    return f"{_FILENAME_PREFIX[kind]}_{today.isoformat()}.csv"


def resolve_export_path(target: str | Path, kind: str, today: date | None = None) -> Path:
    """A directory target gets the dated default filename appended."""
    p = Path(target)
    if p.is_dir():
        return p / default_export_filename(kind, today)
    return p


def _flag(value: Any) -> str:
    return "TRUE" if value else "FALSE"


def _rate(amount: float, subtotal: float, default: float) -> float:
    if subtotal > 0:
        return round((amount or 0) * 100 / subtotal, 2)
    return default


def invoice_export_rows(
    invoices: Iterable[ExistingInvoice], defaults: ImportDefaults | None = None
) -> list[dict[str, Any]]:
    defaults = defaults or ImportDefaults()
    rows: list[dict[str, Any]] = []
    for inv in invoices:
        client = inv.client
        subtotal = inv.subtotal or 0
        header = {
            "Invoice Number": inv.invoice_number,
            "Invoice Date": inv.invoice_date,
            "Due Date": inv.due_date or "",
            "Order / PO Number": inv.order_number or "",
            "Subject / Project Title": inv.subject or "",
            "Invoice Status": inv.status or "",
            "Notes": inv.notes or "",
            "Terms & Conditions": inv.terms_and_conditions or "",
            "Tax Type": inv.tax_type or ("interstate" if inv.igst else "intrastate"),
            "TDS": _flag(inv.tds_deducted),
            "TDS Amount": inv.tds_amount or 0,
            "CGST Rate": _rate(inv.cgst, subtotal, defaults.cgst_rate),
            "SGST Rate": _rate(inv.sgst, subtotal, defaults.sgst_rate),
            "IGST Rate": _rate(inv.igst, subtotal, defaults.igst_rate),
            "Customer Name": (client.display_name or client.first_name or "") if client else "",
            "Customer Email": (client.email or "") if client else "",
            "Customer GSTIN": (client.gst or "") if client else "",
            "Customer PAN": (client.pan or "") if client else "",
            "Customer Phone": (client.phone or "") if client else "",
            "Customer Address": (client.address or "") if client else "",
            "Customer Type": (client.client_type if client and client.client_type else defaults.client_type),
        }
        for li in inv.line_items:
            rows.append(
                {
                    **header,
                    "Item Description": li.description,
                    "Item SAC": li.sac_code or "",
                    "Item Quantity": li.quantity,
                    "Item Rate": li.rate,
                }
            )
    return rows


def client_export_rows(
    clients: Iterable[ExistingClient], defaults: ImportDefaults | None = None
) -> list[dict[str, Any]]:
    defaults = defaults or ImportDefaults()
    return [
        {
            "Customer Type": c.client_type or defaults.client_type,
            "Salutation": c.salutation or "",
            "First Name": c.first_name or "",
            "Last Name": c.last_name or "",
            "Company Name": c.company_name or "",
            "Display Name": c.display_name or "",
            "Email": c.email or "",
            "Phone": c.phone or "",
            "Work Phone": c.work_phone or "",
            "Mobile": c.mobile or "",
            "Address": c.address or "",
            "PAN": c.pan or "",
            "TAN": c.tan or "",
            "GSTIN": c.gst or "",
            "Currency": c.currency or defaults.currency,
            "Payment Terms": c.payment_terms or defaults.payment_terms,
            "Custom Term Days": c.custom_term_days or 0,
            "TDS Deducting": _flag(c.is_tds_deducting),
        }
        for c in clients
    ]


def _write(rows: list[dict[str, Any]], columns: tuple[str, ...], path: Path) -> int:
    path.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(rows, columns=list(columns)).to_csv(path, index=False)
    logger.debug("wrote %s rows=%d", path, len(rows))
    return len(rows)


def write_invoice_csv(
    invoices: Iterable[ExistingInvoice], path: str | Path, defaults: ImportDefaults | None = None
) -> int:
    """Write invoices to path; returns the number of line-item rows written."""
    return _write(invoice_export_rows(invoices, defaults), INVOICE_EXPORT_COLUMNS, Path(path))


def write_client_csv(
    clients: Iterable[ExistingClient], path: str | Path, defaults: ImportDefaults | None = None
) -> int:
    return _write(client_export_rows(clients, defaults), CLIENT_EXPORT_COLUMNS, Path(path))
