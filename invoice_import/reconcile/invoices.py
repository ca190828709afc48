from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence

from ..models.config_models import ImportDefaults
from ..models.error_record import ErrorKind, ImportIssue
from ..models.import_summary import ImportSummary
from ..models.pending import PendingClient, PendingInvoice, PendingLineItem
from ..models.records import ExistingClient, ExistingInvoice
from ..models.row_data import RowRecord
from .columns import INVOICE_COLUMN_ALIASES, build_invoice_row, headers_of, merge_aliases, resolve_columns
from .identity import ClientDirectory, new_id
from .values import normalize_date

"""Invoice import reconciliation.

Two passes over one file:

1. Aggregation. Each row is keyed by invoice number + normalized invoice date.
   Rows without either are skipped; rows whose key already exists in the
   database snapshot are skipped as duplicates (so re-importing a file is a
   no-op). Remaining rows sharing a key become one PendingInvoice: the first
   row supplies the header, every row adds one line item.
2. Identity resolution. Each PendingInvoice is matched to a client by GSTIN,
   then email, then name, against the snapshot and the clients already minted
   in this batch. Unmatched customers become PendingClients, one per identity.

Nothing here touches the database. Tax amounts are not computed here either:
only rates are carried, and the commit step derives amounts from subtotal.
"""

__all__ = [
    "preprocess_invoice_rows",
]

logger = logging.getLogger(__name__)


def _aggregate(
    rows: Sequence[RowRecord],
    headers: Sequence[str],
    existing_invoices: Iterable[ExistingInvoice],
    defaults: ImportDefaults,
    aliases: Mapping[str, Sequence[str]] | None,
    id_factory: Callable[[], str],
    issues: list[ImportIssue],
) -> tuple[list[PendingInvoice], int]:
    columns = resolve_columns(headers, merge_aliases(INVOICE_COLUMN_ALIASES, aliases))
    if columns.unmapped:
        logger.debug("invoice import ignores columns: %s", list(columns.unmapped))

    existing_keys = {
        (inv.invoice_number.strip(), normalize_date(inv.invoice_date)) for inv in existing_invoices
    }
    pending: dict[str, PendingInvoice] = {}
    duplicates_skipped = 0

    for row_number, record in enumerate(rows, start=1):
        row = build_invoice_row(record, row_number, columns, defaults)
        if not row.has_identity:
            issues.append(
                ImportIssue(ErrorKind.VALIDATION_SKIP, row_number, "missing invoice number or invoice date")
            )
            continue

        if (row.invoice_number, row.invoice_date) in existing_keys:
            duplicates_skipped += 1
            issues.append(
                ImportIssue(
                    ErrorKind.DUPLICATE_SKIP,
                    row_number,
                    f"invoice {row.invoice_number} dated {row.invoice_date} already exists",
                )
            )
            continue

        invoice = pending.get(row.invoice_key)
        if invoice is None:
            invoice = PendingInvoice.from_header_row(row)
            pending[row.invoice_key] = invoice

        invoice.add_line_item(
            PendingLineItem(
                id=id_factory(),
                description=row.item_description,
                sac_code=row.item_sac,
                quantity=row.item_quantity,
                rate=row.item_rate,
                amount=row.item_quantity * row.item_rate,
            ),
            row_number,
        )

    return list(pending.values()), duplicates_skipped


def preprocess_invoice_rows(
    rows: Sequence[RowRecord],
    existing_invoices: Iterable[ExistingInvoice] = (),
    existing_clients: Iterable[ExistingClient] = (),
    *,
    defaults: ImportDefaults | None = None,
    aliases: Mapping[str, Sequence[str]] | None = None,
    headers: Sequence[str] | None = None,
    id_factory: Callable[[], str] = new_id,
) -> ImportSummary:
    """Reconcile parsed invoice rows into an ImportSummary.

    Parameters
    ----------
    rows: row records from the tabular reader (header -> cell value)
    existing_invoices / existing_clients: database snapshot, read only
    defaults: fallback rates / statuses for blank cells
    aliases: extra accepted headers per canonical field
    headers: file header order (defaults to the union of row keys)
    id_factory: id generator for line items and new clients
    """
    defaults = defaults or ImportDefaults()
    issues: list[ImportIssue] = []
    invoices, duplicates_skipped = _aggregate(
        rows,
        headers if headers is not None else headers_of(rows),
        existing_invoices,
        defaults,
        aliases,
        id_factory,
        issues,
    )

    directory = ClientDirectory(existing_clients)
    new_clients: list[PendingClient] = []
    tds_client_ids: list[str] = []
    new_customers = 0
    reused_customers = 0

    for invoice in invoices:
        match = directory.match(invoice.client_gst, invoice.client_email, invoice.client_name)
        if match is not None:
            invoice.client_id = match.client_id
            reused_customers += 1
            for message in directory.conflicts(
                match, invoice.client_gst, invoice.client_email, invoice.client_name
            ):
                issues.append(
                    ImportIssue(
                        ErrorKind.IDENTITY_CONFLICT,
                        invoice.source_rows[0],
                        f"invoice {invoice.invoice_number}: {message}",
                    )
                )
            if invoice.tds_deducted:
                if match.pending is not None:
                    match.pending.is_tds_deducting = True
                elif not match.already_tds and match.client_id not in tds_client_ids:
                    tds_client_ids.append(match.client_id)
            continue

        client = PendingClient(
            id=id_factory(),
            token="",
            display_name=invoice.client_name,
            email=invoice.client_email,
            gst=invoice.client_gst,
            pan=invoice.client_pan,
            phone=invoice.client_phone,
            address=invoice.client_address,
            client_type=invoice.client_type,
            is_tds_deducting=invoice.tds_deducted,
        )
        client.token = directory.register(
            client.id, client.gst, client.email, client.display_name, pending=client
        )
        new_clients.append(client)
        invoice.client_id = client.id
        invoice.is_new_client = True
        new_customers += 1

    summary = ImportSummary(
        total_rows=len(rows),
        unique_invoices=len(invoices),
        new_customers=new_customers,
        reused_customers=reused_customers,
        duplicates_skipped=duplicates_skipped,
        invoices_to_import=invoices,
        new_clients=new_clients,
        tds_client_ids=tds_client_ids,
        issues=issues,
    )
    logger.debug(
        "reconciled invoices rows=%d unique=%d new_customers=%d reused=%d duplicates=%d",
        summary.total_rows,
        summary.unique_invoices,
        summary.new_customers,
        summary.reused_customers,
        summary.duplicates_skipped,
    )
    return summary
