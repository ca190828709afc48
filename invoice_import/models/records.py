from __future__ import annotations

from dataclasses import dataclass, field

"""Read-only snapshots of records already stored in the database.

The reconciliation engine only matches against these; it never mutates them.
The same shapes are used by the CSV exporters.
"""

__all__ = [
    "ExistingClient",
    "ExistingLineItem",
    "ExistingInvoice",
]


@dataclass(frozen=True)
class ExistingClient:
    id: str
    display_name: str | None = None
    email: str | None = None
    gst: str | None = None
    pan: str | None = None
    tan: str | None = None
    phone: str | None = None
    work_phone: str | None = None
    mobile: str | None = None
    address: str | None = None
    client_type: str | None = None
    salutation: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    company_name: str | None = None
    currency: str | None = None
    payment_terms: str | None = None
    custom_term_days: int | None = None
    is_tds_deducting: bool = False


@dataclass(frozen=True)
class ExistingLineItem:
    id: str
    description: str
    quantity: float
    rate: float
    amount: float
    sac_code: str | None = None


@dataclass(frozen=True)
class ExistingInvoice:
    """Stored invoice. invoice_date is kept as an ISO YYYY-MM-DD string."""
    id: str
    invoice_number: str
    invoice_date: str
    due_date: str | None = None
    order_number: str | None = None
    subject: str | None = None
    status: str | None = None
    tax_type: str | None = None
    subtotal: float = 0.0
    cgst: float = 0.0
    sgst: float = 0.0
    igst: float = 0.0
    total: float = 0.0
    notes: str | None = None
    terms_and_conditions: str | None = None
    tds_deducted: bool = False
    tds_amount: float = 0.0
    client_id: str | None = None
    client: ExistingClient | None = None
    line_items: list[ExistingLineItem] = field(default_factory=list)

    @property
    def identity(self) -> tuple[str, str]:
        return (self.invoice_number, self.invoice_date)
