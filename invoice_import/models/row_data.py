from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""Row models for the spreadsheet importer.

RowRecord is what the tabular reader emits: original header -> raw cell value,
with empty cells absent. InvoiceRow / ClientRow are the typed rows built from
a RowRecord through the column alias table before reconciliation runs.
"""

__all__ = [
    "RowRecord",
    "InvoiceRow",
    "ClientRow",
]

RowRecord = dict[str, Any]


@dataclass(frozen=True)
class InvoiceRow:
    """One invoice spreadsheet row after alias resolution and coercion.

    Every row carries the invoice header and customer columns (repeated per
    line item) plus exactly one line item. row_number is the 1-based data row
    index (the header row is not counted).
    """
    row_number: int
    invoice_number: str  # trimmed, "" when blank
    invoice_date: str  # normalized YYYY-MM-DD (or trimmed raw text), "" when blank
    due_date: str  # falls back to invoice_date
    order_number: str
    subject: str
    status: str
    notes: str
    terms_and_conditions: str
    tax_type: str  # "intrastate" | "interstate"
    tds_deducted: bool
    tds_amount: float
    cgst_rate: float
    sgst_rate: float
    igst_rate: float
    client_name: str
    client_email: str
    client_gst: str
    client_pan: str
    client_phone: str
    client_address: str
    client_type: str
    item_description: str
    item_sac: str
    item_quantity: float
    item_rate: float

    @property
    def invoice_key(self) -> str:
        """Aggregation key: invoice number + '_' + normalized date."""
        return f"{self.invoice_number}_{self.invoice_date}"

    @property
    def has_identity(self) -> bool:
        return bool(self.invoice_number and self.invoice_date)


@dataclass(frozen=True)
class ClientRow:
    """One client spreadsheet row after alias resolution.

    Blank optional fields are None so the merge step can tell "not supplied"
    from an explicit value.
    """
    row_number: int
    display_name: str
    email: str
    gst: str
    client_type: str | None = None
    salutation: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    company_name: str | None = None
    phone: str | None = None
    work_phone: str | None = None
    mobile: str | None = None
    address: str | None = None
    pan: str | None = None
    tan: str | None = None
    currency: str | None = None
    payment_terms: str | None = None
    custom_term_days: int | None = None
    is_tds_deducting: bool | None = None  # None: cell blank

    @property
    def identity_token(self) -> str:
        """Batch dedup token: tax ID, else email, else lowercased name."""
        return self.gst or self.email or self.display_name.lower()

    @property
    def is_blank(self) -> bool:
        return not (self.display_name or self.email or self.gst)
