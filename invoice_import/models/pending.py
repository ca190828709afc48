from __future__ import annotations

from dataclasses import dataclass, field

from .row_data import InvoiceRow

"""In-memory aggregates built by a single reconciliation pass.

PendingInvoice / PendingClient are owned by the pass that creates them and are
discarded after commit (or when the user cancels). They are mutable on purpose:
line items are appended and client ids filled in as the pass proceeds.
"""

__all__ = [
    "PendingLineItem",
    "PendingInvoice",
    "PendingClient",
    "ClientImportRecord",
]


@dataclass(frozen=True)
class PendingLineItem:
    id: str
    description: str
    sac_code: str
    quantity: float
    rate: float
    amount: float  # quantity * rate


@dataclass
class PendingInvoice:
    """One logical invoice aggregated from every row sharing its key."""
    invoice_number: str
    invoice_date: str
    due_date: str
    order_number: str
    subject: str
    status: str
    notes: str
    terms_and_conditions: str
    tax_type: str
    cgst_rate: float
    sgst_rate: float
    igst_rate: float
    tds_deducted: bool
    tds_amount: float
    client_name: str
    client_email: str
    client_gst: str
    client_pan: str
    client_phone: str
    client_address: str
    client_type: str
    line_items: list[PendingLineItem] = field(default_factory=list)
    subtotal: float = 0.0
    client_id: str | None = None  # identity resolution で確定
    is_new_client: bool = False
    source_rows: list[int] = field(default_factory=list)

    @classmethod
    def from_header_row(cls, row: InvoiceRow) -> PendingInvoice:
        """Start an aggregate using the first row of a group as its header."""
        return cls(
            invoice_number=row.invoice_number,
            invoice_date=row.invoice_date,
            due_date=row.due_date,
            order_number=row.order_number,
            subject=row.subject,
            status=row.status,
            notes=row.notes,
            terms_and_conditions=row.terms_and_conditions,
            tax_type=row.tax_type,
            cgst_rate=row.cgst_rate,
            sgst_rate=row.sgst_rate,
            igst_rate=row.igst_rate,
            tds_deducted=row.tds_deducted,
            tds_amount=row.tds_amount,
            client_name=row.client_name,
            client_email=row.client_email,
            client_gst=row.client_gst,
            client_pan=row.client_pan,
            client_phone=row.client_phone,
            client_address=row.client_address,
            client_type=row.client_type,
        )

    @property
    def key(self) -> str:
        return f"{self.invoice_number}_{self.invoice_date}"

    def add_line_item(self, item: PendingLineItem, row_number: int) -> None:
        self.line_items.append(item)
        self.subtotal += item.amount
        self.source_rows.append(row_number)


@dataclass
class PendingClient:
    """A new client minted during invoice import, keyed by identity token."""
    id: str
    token: str
    display_name: str
    email: str
    gst: str
    pan: str
    phone: str
    address: str
    client_type: str
    is_tds_deducting: bool = False

    def to_record(self) -> dict[str, object]:
        """Column values for the clients table (owner link added at commit)."""
        return {
            "id": self.id,
            "display_name": self.display_name,
            "email": self.email,
            "gst": self.gst,
            "pan": self.pan,
            "phone": self.phone,
            "address": self.address,
            "client_type": self.client_type,
            "is_tds_deducting": self.is_tds_deducting,
        }


@dataclass(frozen=True)
class ClientImportRecord:
    """A merged client produced by the client-only import.

    is_new distinguishes a create from an update of an existing client.
    """
    id: str
    is_new: bool
    display_name: str
    email: str
    gst: str
    client_type: str
    salutation: str
    first_name: str
    last_name: str
    company_name: str
    phone: str
    work_phone: str
    mobile: str
    address: str
    pan: str
    tan: str
    currency: str
    payment_terms: str
    custom_term_days: int
    is_tds_deducting: bool
    row_number: int = -1

    def to_record(self) -> dict[str, object]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "email": self.email,
            "gst": self.gst,
            "client_type": self.client_type,
            "salutation": self.salutation,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "company_name": self.company_name,
            "phone": self.phone,
            "work_phone": self.work_phone,
            "mobile": self.mobile,
            "address": self.address,
            "pan": self.pan,
            "tan": self.tan,
            "currency": self.currency,
            "payment_terms": self.payment_terms,
            "custom_term_days": self.custom_term_days,
            "is_tds_deducting": self.is_tds_deducting,
        }
