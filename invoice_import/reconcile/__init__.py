"""Reconciliation engine: typed rows, identity resolution, invoice / client merge."""

from .clients import preprocess_client_rows
from .identity import ClientDirectory, ClientMatch, new_id
from .invoices import preprocess_invoice_rows
from .values import normalize_date

__all__ = [
    "ClientDirectory",
    "ClientMatch",
    "new_id",
    "normalize_date",
    "preprocess_client_rows",
    "preprocess_invoice_rows",
]
