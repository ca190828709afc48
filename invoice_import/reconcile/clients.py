from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from ..models.config_models import ImportDefaults
from ..models.error_record import ErrorKind, ImportIssue
from ..models.import_summary import ClientImportSummary
from ..models.pending import ClientImportRecord
from ..models.records import ExistingClient
from ..models.row_data import ClientRow, RowRecord
from .columns import CLIENT_COLUMN_ALIASES, build_client_row, headers_of, merge_aliases, resolve_columns
from .identity import ClientDirectory, new_id

"""Client-only bulk import.

Same identity priority as the invoice import (GSTIN > email > name), applied
row by row. A row matching an existing client updates it; a row matching a
client already handled earlier in the file is a duplicate and is skipped.
Rows without a display name, email, or GSTIN are skipped. Every skip is counted.
"""

__all__ = [
    "preprocess_client_rows",
    "merge_client",
]

logger = logging.getLogger(__name__)


def _pick(row_value: Any, existing: ExistingClient | None, attr: str, fallback: Any) -> Any:
    # 行の値 > 既存値 > デフォルト
    if row_value not in (None, ""):
        return row_value
    if existing is not None:
        current = getattr(existing, attr)
        if current not in (None, ""):
            return current
    return fallback


def merge_client(
    row: ClientRow,
    existing: ExistingClient | None,
    defaults: ImportDefaults,
    client_id: str,
) -> ClientImportRecord:
    """Merge a client row over an existing record (or defaults for a new one)."""
    return ClientImportRecord(
        id=client_id,
        is_new=existing is None,
        display_name=_pick(row.display_name, existing, "display_name", ""),
        email=_pick(row.email, existing, "email", ""),
        gst=_pick(row.gst, existing, "gst", ""),
        client_type=_pick(row.client_type, existing, "client_type", defaults.client_type),
        salutation=_pick(row.salutation, existing, "salutation", ""),
        first_name=_pick(row.first_name, existing, "first_name", ""),
        last_name=_pick(row.last_name, existing, "last_name", ""),
        company_name=_pick(row.company_name, existing, "company_name", ""),
        phone=_pick(row.phone, existing, "phone", ""),
        work_phone=_pick(row.work_phone, existing, "work_phone", ""),
        mobile=_pick(row.mobile, existing, "mobile", ""),
        address=_pick(row.address, existing, "address", ""),
        pan=_pick(row.pan, existing, "pan", ""),
        tan=_pick(row.tan, existing, "tan", ""),
        currency=_pick(row.currency, existing, "currency", defaults.currency),
        payment_terms=_pick(row.payment_terms, existing, "payment_terms", defaults.payment_terms),
        custom_term_days=int(_pick(row.custom_term_days, existing, "custom_term_days", 0)),
        is_tds_deducting=bool(
            row.is_tds_deducting
            if row.is_tds_deducting is not None
            else (existing.is_tds_deducting if existing is not None else False)
        ),
        row_number=row.row_number,
    )


def preprocess_client_rows(
    rows: Sequence[RowRecord],
    existing_clients: Iterable[ExistingClient] = (),
    *,
    defaults: ImportDefaults | None = None,
    aliases: Mapping[str, Sequence[str]] | None = None,
    headers: Sequence[str] | None = None,
    id_factory: Callable[[], str] = new_id,
) -> ClientImportSummary:
    """Reconcile parsed client rows into a ClientImportSummary."""
    defaults = defaults or ImportDefaults()
    existing = list(existing_clients)
    existing_by_id = {c.id: c for c in existing}
    columns = resolve_columns(
        headers if headers is not None else headers_of(rows),
        merge_aliases(CLIENT_COLUMN_ALIASES, aliases),
    )

    directory = ClientDirectory(existing)
    touched_existing: set[str] = set()
    seen_tokens: set[str] = set()
    records: list[ClientImportRecord] = []
    issues: list[ImportIssue] = []
    new_count = updated_count = skipped_count = 0

    for row_number, record in enumerate(rows, start=1):
        row = build_client_row(record, row_number, columns)
        if row.is_blank:
            skipped_count += 1
            issues.append(
                ImportIssue(ErrorKind.VALIDATION_SKIP, row_number, "missing display name, email and GSTIN")
            )
            continue

        match = directory.match(row.gst, row.email, row.display_name)
        if row.identity_token in seen_tokens or (match is not None and match.client_id in touched_existing):
            skipped_count += 1
            issues.append(
                ImportIssue(
                    ErrorKind.DUPLICATE_SKIP,
                    row_number,
                    f"client '{row.identity_token}' already appears earlier in this file",
                )
            )
            continue

        if match is not None:
            for message in directory.conflicts(match, row.gst, row.email, row.display_name):
                issues.append(ImportIssue(ErrorKind.IDENTITY_CONFLICT, row_number, message))
            touched_existing.add(match.client_id)
            merged = merge_client(row, existing_by_id[match.client_id], defaults, match.client_id)
            updated_count += 1
        else:
            merged = merge_client(row, None, defaults, id_factory())
            new_count += 1
        seen_tokens.add(row.identity_token)
        records.append(merged)

    summary = ClientImportSummary(
        total_rows=len(rows),
        new_clients=new_count,
        updated_clients=updated_count,
        skipped_clients=skipped_count,
        clients_to_import=records,
        issues=issues,
    )
    logger.debug(
        "reconciled clients rows=%d new=%d updated=%d skipped=%d",
        summary.total_rows,
        new_count,
        updated_count,
        skipped_count,
    )
    return summary
