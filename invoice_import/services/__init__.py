"""Session, orchestration, progress display and SUMMARY rendering."""

from .orchestrator import (
    ExportResult,
    run_client_export,
    run_client_import,
    run_invoice_export,
    run_invoice_import,
)
from .session import ImportSession, SessionError, open_session
from .summary import render_summary_line

__all__ = [
    "ExportResult",
    "ImportSession",
    "SessionError",
    "open_session",
    "render_summary_line",
    "run_client_export",
    "run_client_import",
    "run_invoice_export",
    "run_invoice_import",
]
