from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from psycopg2.extras import DictCursor

from ..models.records import ExistingClient, ExistingInvoice, ExistingLineItem

"""Read snapshots of stored clients / invoices for one owner.

The reconciliation engine only needs identity columns; the exporters need the
full records. Both are read here with a DictCursor so columns are accessed by
name. A missing cursor (mock mode) yields empty snapshots.
"""

logger = logging.getLogger(__name__)

CLIENT_COLUMNS = (
    "id", "display_name", "email", "gst", "pan", "tan", "phone", "work_phone", "mobile",
    "address", "client_type", "salutation", "first_name", "last_name", "company_name",
    "currency", "payment_terms", "custom_term_days", "is_tds_deducting",
)

INVOICE_COLUMNS = (
    "id", "invoice_number", "invoice_date", "due_date", "order_number", "subject", "status",
    "tax_type", "subtotal", "cgst", "sgst", "igst", "total", "notes", "terms_and_conditions",
    "tds_deducted", "tds_amount", "client_id",
)

LINE_ITEM_COLUMNS = ("id", "invoice_id", "description", "sac_code", "quantity", "rate", "amount")


def _iso(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _float(value: Any) -> float:
    return float(value) if value is not None else 0.0


def _select(cursor: Any, table: str, columns: tuple[str, ...], where: str, params: tuple[Any, ...]) -> list[Any]:
    cols_sql = ",".join(f'"{c}"' for c in columns)
    dict_cursor = cursor.connection.cursor(cursor_factory=DictCursor)
    try:
        dict_cursor.execute(f'SELECT {cols_sql} FROM "{table}" WHERE {where}', params)
        return list(dict_cursor.fetchall())
    finally:
        dict_cursor.close()


def _client_from_row(row: Any) -> ExistingClient:
    return ExistingClient(
        id=str(row["id"]),
        display_name=row["display_name"],
        email=row["email"],
        gst=row["gst"],
        pan=row["pan"],
        tan=row["tan"],
        phone=row["phone"],
        work_phone=row["work_phone"],
        mobile=row["mobile"],
        address=row["address"],
        client_type=row["client_type"],
        salutation=row["salutation"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        company_name=row["company_name"],
        currency=row["currency"],
        payment_terms=row["payment_terms"],
        custom_term_days=row["custom_term_days"],
        is_tds_deducting=bool(row["is_tds_deducting"]),
    )


def fetch_existing_clients(cursor: Any, owner_id: str) -> list[ExistingClient]:
    if cursor is None:
        return []
    rows = _select(cursor, "clients", CLIENT_COLUMNS, "owner_id = %s", (owner_id,))
    logger.debug("snapshot clients owner=%s count=%d", owner_id, len(rows))
    return [_client_from_row(r) for r in rows]


def fetch_existing_invoices(
    cursor: Any,
    owner_id: str,
    *,
    with_details: bool = False,
    clients: list[ExistingClient] | None = None,
) -> list[ExistingInvoice]:
    """Stored invoices for owner_id.

    with_details=True also loads line items and attaches clients (for export).
    """
    if cursor is None:
        return []
    rows = _select(cursor, "invoices", INVOICE_COLUMNS, "owner_id = %s", (owner_id,))
    logger.debug("snapshot invoices owner=%s count=%d", owner_id, len(rows))

    items_by_invoice: dict[str, list[ExistingLineItem]] = {}
    clients_by_id: dict[str, ExistingClient] = {}
    if with_details and rows:
        invoice_ids = [str(r["id"]) for r in rows]
        for li in _select(cursor, "line_items", LINE_ITEM_COLUMNS, "invoice_id = ANY(%s)", (invoice_ids,)):
            items_by_invoice.setdefault(str(li["invoice_id"]), []).append(
                ExistingLineItem(
                    id=str(li["id"]),
                    description=li["description"] or "",
                    sac_code=li["sac_code"],
                    quantity=_float(li["quantity"]),
                    rate=_float(li["rate"]),
                    amount=_float(li["amount"]),
                )
            )
        if clients is None:
            clients = fetch_existing_clients(cursor, owner_id)
        clients_by_id = {c.id: c for c in clients}

    invoices: list[ExistingInvoice] = []
    for r in rows:
        client_id = str(r["client_id"]) if r["client_id"] is not None else None
        invoices.append(
            ExistingInvoice(
                id=str(r["id"]),
                invoice_number=str(r["invoice_number"]),
                invoice_date=_iso(r["invoice_date"]) or "",
                due_date=_iso(r["due_date"]),
                order_number=r["order_number"],
                subject=r["subject"],
                status=r["status"],
                tax_type=r["tax_type"],
                subtotal=_float(r["subtotal"]),
                cgst=_float(r["cgst"]),
                sgst=_float(r["sgst"]),
                igst=_float(r["igst"]),
                total=_float(r["total"]),
                notes=r["notes"],
                terms_and_conditions=r["terms_and_conditions"],
                tds_deducted=bool(r["tds_deducted"]),
                tds_amount=_float(r["tds_amount"]),
                client_id=client_id,
                client=clients_by_id.get(client_id) if client_id else None,
                line_items=items_by_invoice.get(str(r["id"]), []),
            )
        )
    return invoices
