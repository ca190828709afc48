from __future__ import annotations

from dataclasses import dataclass, field

from .error_record import ErrorKind, ImportIssue
from .pending import ClientImportRecord, PendingClient, PendingInvoice

"""Reconciliation outputs.

An ImportSummary / ClientImportSummary is built once per import attempt and
discarded after commit or cancellation. It is never persisted.
"""

__all__ = [
    "ImportSummary",
    "ClientImportSummary",
]


@dataclass
class ImportSummary:
    """Result of reconciling invoice rows against the existing snapshot."""
    total_rows: int
    unique_invoices: int
    new_customers: int
    reused_customers: int
    duplicates_skipped: int
    invoices_to_import: list[PendingInvoice] = field(default_factory=list)
    new_clients: list[PendingClient] = field(default_factory=list)
    # 既存クライアントのうち TDS フラグ更新が必要なもの (invoice 出現順)
    tds_client_ids: list[str] = field(default_factory=list)
    issues: list[ImportIssue] = field(default_factory=list)

    def issues_of(self, kind: ErrorKind) -> list[ImportIssue]:
        return [i for i in self.issues if i.kind is kind]

    @property
    def line_item_count(self) -> int:
        return sum(len(inv.line_items) for inv in self.invoices_to_import)


@dataclass
class ClientImportSummary:
    """Result of reconciling client rows against the existing snapshot."""
    total_rows: int
    new_clients: int
    updated_clients: int
    skipped_clients: int
    clients_to_import: list[ClientImportRecord] = field(default_factory=list)
    issues: list[ImportIssue] = field(default_factory=list)

    def issues_of(self, kind: ErrorKind) -> list[ImportIssue]:
        return [i for i in self.issues if i.kind is kind]
