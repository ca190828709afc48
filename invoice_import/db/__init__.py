"""PostgreSQL boundary: snapshot readers, batched inserts and the commit executor."""

from .batch_insert import BatchInsertError, BatchMetrics, InsertResult, batch_insert
from .commit import (
    CommitError,
    CommitResult,
    TaxBreakdown,
    build_client_operations,
    build_invoice_operations,
    commit_operations,
    compute_taxes,
    statement_count,
)
from .snapshot import fetch_existing_clients, fetch_existing_invoices

__all__ = [
    "BatchInsertError",
    "BatchMetrics",
    "CommitError",
    "CommitResult",
    "InsertResult",
    "TaxBreakdown",
    "batch_insert",
    "build_client_operations",
    "build_invoice_operations",
    "commit_operations",
    "compute_taxes",
    "statement_count",
    "fetch_existing_clients",
    "fetch_existing_invoices",
]
