"""Domain models for the invoice / client spreadsheet importer."""

from .config_models import DatabaseConfig, ImportConfig, ImportDefaults
from .error_record import ErrorKind, ErrorRecord, ImportIssue
from .import_run import ImportRun, RunStatus
from .import_summary import ClientImportSummary, ImportSummary
from .operations import Operation, OperationKind
from .pending import ClientImportRecord, PendingClient, PendingInvoice, PendingLineItem
from .records import ExistingClient, ExistingInvoice, ExistingLineItem
from .row_data import ClientRow, InvoiceRow, RowRecord

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "ImportConfig",
    "ImportDefaults",
    # Rows
    "RowRecord",
    "InvoiceRow",
    "ClientRow",
    # Snapshots
    "ExistingClient",
    "ExistingInvoice",
    "ExistingLineItem",
    # Reconciliation
    "PendingLineItem",
    "PendingInvoice",
    "PendingClient",
    "ClientImportRecord",
    "ImportSummary",
    "ClientImportSummary",
    # Commit / run
    "Operation",
    "OperationKind",
    "ImportRun",
    "RunStatus",
    # Errors
    "ErrorKind",
    "ErrorRecord",
    "ImportIssue",
]
