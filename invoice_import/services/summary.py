from __future__ import annotations

from ..models.import_run import ImportRun
from ..models.import_summary import ClientImportSummary, ImportSummary

"""SUMMARY line rendering.

Formats:
    SUMMARY kind=invoices status={status} rows={n} invoices={n} new_customers={n}
        reused_customers={n} duplicates_skipped={n} operations={n} elapsed_sec={x}
    SUMMARY kind=clients status={status} rows={n} new={n} updated={n}
        skipped={n} operations={n} elapsed_sec={x}
    SUMMARY kind=export-{kind} status=success records={n} rows={n} elapsed_sec={x}

Counts are 0 when the run failed before reconciliation.
"""

__all__ = [
    "format_elapsed",
    "render_invoice_summary_line",
    "render_client_summary_line",
    "render_summary_line",
    "render_export_summary_line",
]


def format_elapsed(seconds: float) -> str:
    # 指数表記を避ける
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


def render_invoice_summary_line(run: ImportRun) -> str:
    s = run.summary if isinstance(run.summary, ImportSummary) else None
    return (
        f"SUMMARY kind=invoices "
        f"status={run.status.value} "
        f"rows={s.total_rows if s else 0} "
        f"invoices={len(s.invoices_to_import) if s else 0} "
        f"new_customers={s.new_customers if s else 0} "
        f"reused_customers={s.reused_customers if s else 0} "
        f"duplicates_skipped={s.duplicates_skipped if s else 0} "
        f"operations={run.committed_operations} "
        f"elapsed_sec={format_elapsed(run.elapsed_seconds)}"
    )


def render_client_summary_line(run: ImportRun) -> str:
    s = run.summary if isinstance(run.summary, ClientImportSummary) else None
    return (
        f"SUMMARY kind=clients "
        f"status={run.status.value} "
        f"rows={s.total_rows if s else 0} "
        f"new={s.new_clients if s else 0} "
        f"updated={s.updated_clients if s else 0} "
        f"skipped={s.skipped_clients if s else 0} "
        f"operations={run.committed_operations} "
        f"elapsed_sec={format_elapsed(run.elapsed_seconds)}"
    )


def render_summary_line(run: ImportRun) -> str:
    if run.kind == "clients":
        return render_client_summary_line(run)
    return render_invoice_summary_line(run)


def render_export_summary_line(kind: str, records: int, rows: int, elapsed_seconds: float) -> str:
    return (
        f"SUMMARY kind=export-{kind} "
        f"status=success "
        f"records={records} "
        f"rows={rows} "
        f"elapsed_sec={format_elapsed(elapsed_seconds)}"
    )
