from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from ..models.config_models import ImportDefaults
from ..models.row_data import ClientRow, InvoiceRow, RowRecord
from .values import is_blank, normalize_date, to_bool, to_number, to_text

"""Column alias resolution.

Spreadsheet headers are human-authored ("Invoice Number", "Invoice number",
"Customer Name" vs "Client Name"). Each canonical field has an ordered list of
accepted headers. resolve_columns() matches a file's headers against that
table once; the resulting ColumnMap then builds typed rows, taking the first
non-blank cell among the matched headers for every field.

Header matching ignores case and repeated whitespace.
"""

__all__ = [
    "INVOICE_COLUMN_ALIASES",
    "CLIENT_COLUMN_ALIASES",
    "ColumnMap",
    "normalize_header",
    "merge_aliases",
    "resolve_columns",
    "headers_of",
    "build_invoice_row",
    "build_client_row",
]

INVOICE_COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "invoice_number": ("Invoice Number", "Invoice No", "Invoice #"),
    "invoice_date": ("Invoice Date",),
    "due_date": ("Due Date",),
    "order_number": ("Order / PO Number", "Order Number", "PO Number"),
    "subject": ("Subject / Project Title", "Subject", "Project Title"),
    "status": ("Invoice Status", "Status"),
    "notes": ("Notes",),
    "terms_and_conditions": ("Terms & Conditions", "Terms"),
    "tax_type": ("Tax Type",),
    "tds": ("TDS",),
    "tds_amount": ("TDS Amount",),
    "cgst_rate": ("CGST Rate",),
    "sgst_rate": ("SGST Rate",),
    "igst_rate": ("IGST Rate",),
    "client_name": ("Client Name", "Customer Name"),
    "client_email": ("Client Email", "Customer Email"),
    "client_gst": ("Client GSTIN", "Customer GSTIN"),
    "client_pan": ("Client PAN", "Customer PAN"),
    "client_phone": ("Client Phone", "Customer Phone"),
    "client_address": ("Client Address", "Customer Address"),
    "client_type": ("Client Type", "Customer Type"),
    "item_description": ("Item Description",),
    "item_sac": ("Item SAC",),
    "item_quantity": ("Item Quantity",),
    "item_rate": ("Item Rate",),
}

CLIENT_COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "display_name": ("Display Name", "Name", "Client Name", "Customer Name"),
    "email": ("Email", "Client Email", "Customer Email"),
    "gst": ("GSTIN", "GST", "Client GSTIN", "Customer GSTIN"),
    "client_type": ("Client Type", "Customer Type"),
    "salutation": ("Salutation",),
    "first_name": ("First Name",),
    "last_name": ("Last Name",),
    "company_name": ("Company Name",),
    "phone": ("Phone",),
    "work_phone": ("Work Phone",),
    "mobile": ("Mobile",),
    "address": ("Address",),
    "pan": ("PAN",),
    "tan": ("TAN",),
    "currency": ("Currency",),
    "payment_terms": ("Payment Terms",),
    "custom_term_days": ("Custom Term Days",),
    "is_tds_deducting": ("TDS Deducting",),
}


def normalize_header(header: Any) -> str:
    return " ".join(str(header).split()).casefold()


def merge_aliases(
    base: Mapping[str, Sequence[str]], extra: Mapping[str, Sequence[str]] | None
) -> dict[str, tuple[str, ...]]:
    """Append configured headers after the built-in ones.

    Raises ValueError for a canonical field the table does not know.
    """
    merged = {name: tuple(headers) for name, headers in base.items()}
    for name, headers in (extra or {}).items():
        if name not in merged:
            raise ValueError(f"unknown column field '{name}' (known: {sorted(merged)})")
        merged[name] = merged[name] + tuple(h for h in headers if h not in merged[name])
    return merged


@dataclass(frozen=True)
class ColumnMap:
    """Canonical field -> headers present in the file, in priority order."""
    fields: dict[str, tuple[str, ...]]
    unmapped: tuple[str, ...] = ()

    def has(self, name: str) -> bool:
        return bool(self.fields.get(name))

    def value(self, record: RowRecord, name: str) -> Any:
        for header in self.fields.get(name, ()):
            v = record.get(header)
            if not is_blank(v):
                return v
        return None

    def text(self, record: RowRecord, name: str) -> str:
        return to_text(self.value(record, name))


def headers_of(rows: Iterable[RowRecord]) -> list[str]:
    """Ordered union of the keys of every row (first appearance wins)."""
    seen: dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(key, None)
    return list(seen)


def resolve_columns(
    headers: Sequence[str],
    aliases: Mapping[str, Sequence[str]],
) -> ColumnMap:
    by_normalized: dict[str, list[str]] = {}
    for h in headers:
        by_normalized.setdefault(normalize_header(h), []).append(h)

    fields: dict[str, tuple[str, ...]] = {}
    used: set[str] = set()
    for name, accepted in aliases.items():
        matched: list[str] = []
        for alias in accepted:
            for h in by_normalized.get(normalize_header(alias), []):
                if h not in matched:
                    matched.append(h)
        fields[name] = tuple(matched)
        used.update(matched)
    unmapped = tuple(h for h in headers if h not in used)
    return ColumnMap(fields=fields, unmapped=unmapped)


def _tax_type(raw: str, default: str) -> str:
    if not raw:
        return default
    compact = raw.lower().replace("-", "").replace(" ", "")
    return "interstate" if compact == "interstate" else "intrastate"


def build_invoice_row(
    record: RowRecord, row_number: int, columns: ColumnMap, defaults: ImportDefaults
) -> InvoiceRow:
    """Typed invoice row. An explicit 0 rate or quantity is kept; only blank cells take defaults."""
    invoice_date = normalize_date(columns.value(record, "invoice_date"))
    due_raw = columns.value(record, "due_date")
    due_date = normalize_date(due_raw) if due_raw is not None else invoice_date
    return InvoiceRow(
        row_number=row_number,
        invoice_number=columns.text(record, "invoice_number"),
        invoice_date=invoice_date,
        due_date=due_date,
        order_number=columns.text(record, "order_number"),
        subject=columns.text(record, "subject"),
        status=columns.text(record, "status") or defaults.invoice_status,
        notes=columns.text(record, "notes"),
        terms_and_conditions=columns.text(record, "terms_and_conditions"),
        tax_type=_tax_type(columns.text(record, "tax_type"), defaults.tax_type),
        tds_deducted=to_bool(columns.value(record, "tds")),
        tds_amount=to_number(columns.value(record, "tds_amount"), 0.0),
        cgst_rate=to_number(columns.value(record, "cgst_rate"), defaults.cgst_rate),
        sgst_rate=to_number(columns.value(record, "sgst_rate"), defaults.sgst_rate),
        igst_rate=to_number(columns.value(record, "igst_rate"), defaults.igst_rate),
        client_name=columns.text(record, "client_name"),
        client_email=columns.text(record, "client_email"),
        client_gst=columns.text(record, "client_gst"),
        client_pan=columns.text(record, "client_pan"),
        client_phone=columns.text(record, "client_phone"),
        client_address=columns.text(record, "client_address"),
        client_type=columns.text(record, "client_type") or defaults.client_type,
        item_description=columns.text(record, "item_description") or "Service",
        item_sac=columns.text(record, "item_sac"),
        item_quantity=to_number(columns.value(record, "item_quantity"), 1.0),
        item_rate=to_number(columns.value(record, "item_rate"), 0.0),
    )


def _optional_text(columns: ColumnMap, record: RowRecord, name: str) -> str | None:
    return columns.text(record, name) or None


def build_client_row(record: RowRecord, row_number: int, columns: ColumnMap) -> ClientRow:
    term_days = columns.value(record, "custom_term_days")
    tds = columns.value(record, "is_tds_deducting")
    return ClientRow(
        row_number=row_number,
        display_name=columns.text(record, "display_name"),
        email=columns.text(record, "email"),
        gst=columns.text(record, "gst"),
        client_type=_optional_text(columns, record, "client_type"),
        salutation=_optional_text(columns, record, "salutation"),
        first_name=_optional_text(columns, record, "first_name"),
        last_name=_optional_text(columns, record, "last_name"),
        company_name=_optional_text(columns, record, "company_name"),
        phone=_optional_text(columns, record, "phone"),
        work_phone=_optional_text(columns, record, "work_phone"),
        mobile=_optional_text(columns, record, "mobile"),
        address=_optional_text(columns, record, "address"),
        pan=_optional_text(columns, record, "pan"),
        tan=_optional_text(columns, record, "tan"),
        currency=_optional_text(columns, record, "currency"),
        payment_terms=_optional_text(columns, record, "payment_terms"),
        custom_term_days=None if term_days is None else int(to_number(term_days, 0.0)),
        is_tds_deducting=None if tds is None else to_bool(tds),
    )
