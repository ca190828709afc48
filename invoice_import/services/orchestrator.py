from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..db.commit import (
    CommitError,
    build_client_operations,
    build_invoice_operations,
    commit_operations,
    statement_count,
)
from ..db.snapshot import fetch_existing_clients, fetch_existing_invoices
from ..excel.reader import ParseError, TabularData, read_tabular
from ..export.csv_export import resolve_export_path, write_client_csv, write_invoice_csv
from ..export.periods import (
    MonthYear,
    available_financial_years,
    available_month_years,
    filter_by_financial_year,
    filter_by_month,
    parse_month,
)
from ..logging.error_log import ErrorLogBuffer
from ..models.error_record import ErrorKind
from ..models.import_run import ImportRun, RunStatus
from ..models.import_summary import ClientImportSummary, ImportSummary
from ..models.operations import Operation
from ..reconcile.clients import preprocess_client_rows
from ..reconcile.invoices import preprocess_invoice_rows
from .progress import ProgressTracker
from .session import ImportSession

"""Import / export orchestration.

One file per run, sequential:

    parse -> snapshot -> reconcile -> confirm? -> build operations -> commit

Parse and commit failures do not raise: they come back as an ImportRun with
status FAILED and are recorded in the error log. Per-row notices from
reconciliation go to the same error log, which is flushed once per run.
A confirm callback returning False discards the summary (status CANCELLED).
"""

__all__ = [
    "ExportResult",
    "run_invoice_import",
    "run_client_import",
    "run_invoice_export",
    "run_client_export",
    "list_invoice_periods",
]

logger = logging.getLogger(__name__)

Summary = ImportSummary | ClientImportSummary


@dataclass(frozen=True)
class ExportResult:
    path: Path
    kind: str  # "invoices" | "clients"
    records: int  # invoices or clients exported
    rows: int  # CSV rows written (line items for invoices)


def _finish(run: ImportRun, error_log: ErrorLogBuffer, **changes: Any) -> ImportRun:
    # エラーログは 1 回だけ flush (失敗しても run は失敗させない)
    path = error_log.flush()
    if path is not None:
        logger.info("error log: %s", path)
    return replace(run, end_time=datetime.now(UTC), **changes)


def _parse(run: ImportRun, error_log: ErrorLogBuffer) -> TabularData | None:
    try:
        table = read_tabular(run.path)
    except ParseError as e:
        logger.error("parse: %s", e)
        error_log.record(run.name, -1, ErrorKind.PARSE_ERROR, str(e))
        return None
    logger.info("parsed %s format=%s rows=%d", run.name, table.file_format, len(table.rows))
    return table


def _commit(
    run: ImportRun,
    session: ImportSession,
    operations: list[Operation],
    error_log: ErrorLogBuffer,
) -> ImportRun:
    with ProgressTracker(statement_count(operations), description=f"Committing {run.name}") as progress:
        try:
            result = commit_operations(session.cursor, operations, progress=progress)
        except CommitError as e:
            logger.error("commit: %s", e)
            error_log.record(run.name, -1, ErrorKind.COMMIT_ERROR, str(e))
            return _finish(run, error_log, status=RunStatus.FAILED, error=str(e))
    mode = "mock" if result.mock else "live"
    logger.info(
        "committed %s mode=%s operations=%d statements=%d",
        run.name,
        mode,
        result.operations,
        result.statements,
    )
    return _finish(run, error_log, status=RunStatus.SUCCESS, committed_operations=result.operations)


def _report_issues(run: ImportRun, summary: Summary, error_log: ErrorLogBuffer) -> None:
    if not summary.issues:
        return
    error_log.extend_issues(run.name, summary.issues)
    counts: dict[str, int] = {}
    for issue in summary.issues:
        counts[issue.kind.value] = counts.get(issue.kind.value, 0) + 1
    detail = " ".join(f"{k}={v}" for k, v in sorted(counts.items()))
    logger.warning("%s: %d row notices %s", run.name, len(summary.issues), detail)


def run_invoice_import(
    path: str | Path,
    session: ImportSession,
    *,
    confirm: Callable[[ImportSummary], bool] | None = None,
) -> ImportRun:
    """Import one invoice spreadsheet for session.owner_id."""
    run = ImportRun(path=Path(path), kind="invoices", start_time=datetime.now(UTC))
    error_log = ErrorLogBuffer(session.config.log_dir)

    table = _parse(run, error_log)
    if table is None:
        return _finish(run, error_log, status=RunStatus.FAILED, error=f"failed to parse {run.name}")

    clients = fetch_existing_clients(session.cursor, session.owner_id)
    invoices = fetch_existing_invoices(session.cursor, session.owner_id)
    summary = preprocess_invoice_rows(
        table.rows,
        invoices,
        clients,
        defaults=session.config.defaults,
        aliases=session.config.invoice_aliases,
        headers=table.columns,
    )
    run = replace(run, status=RunStatus.PARSED, summary=summary)
    _report_issues(run, summary, error_log)
    logger.info(
        "reconciled %s invoices=%d line_items=%d new_customers=%d reused_customers=%d duplicates_skipped=%d",
        run.name,
        summary.unique_invoices,
        summary.line_item_count,
        summary.new_customers,
        summary.reused_customers,
        summary.duplicates_skipped,
    )

    if confirm is not None and not confirm(summary):
        logger.info("import of %s cancelled before commit", run.name)
        return _finish(run, error_log, status=RunStatus.CANCELLED)

    return _commit(run, session, build_invoice_operations(summary, session.owner_id), error_log)


def run_client_import(
    path: str | Path,
    session: ImportSession,
    *,
    confirm: Callable[[ClientImportSummary], bool] | None = None,
) -> ImportRun:
    """Import one client spreadsheet for session.owner_id."""
    run = ImportRun(path=Path(path), kind="clients", start_time=datetime.now(UTC))
    error_log = ErrorLogBuffer(session.config.log_dir)

    table = _parse(run, error_log)
    if table is None:
        return _finish(run, error_log, status=RunStatus.FAILED, error=f"failed to parse {run.name}")

    clients = fetch_existing_clients(session.cursor, session.owner_id)
    summary = preprocess_client_rows(
        table.rows,
        clients,
        defaults=session.config.defaults,
        aliases=session.config.client_aliases,
        headers=table.columns,
    )
    run = replace(run, status=RunStatus.PARSED, summary=summary)
    _report_issues(run, summary, error_log)
    logger.info(
        "reconciled %s new=%d updated=%d skipped=%d",
        run.name,
        summary.new_clients,
        summary.updated_clients,
        summary.skipped_clients,
    )

    if confirm is not None and not confirm(summary):
        logger.info("import of %s cancelled before commit", run.name)
        return _finish(run, error_log, status=RunStatus.CANCELLED)

    return _commit(run, session, build_client_operations(summary, session.owner_id), error_log)


def run_invoice_export(
    session: ImportSession,
    path: str | Path,
    *,
    financial_year: str | None = None,
    month: str | None = None,
) -> ExportResult:
    """Write the owner's invoices as an importable CSV.

    financial_year: e.g. "2024-25"; month: "2024-04" or "April 2024".
    Both filters may be combined. Raises ValueError for a malformed filter.
    """
    period = parse_month(month) if month else None
    clients = fetch_existing_clients(session.cursor, session.owner_id)
    invoices = fetch_existing_invoices(session.cursor, session.owner_id, with_details=True, clients=clients)
    if financial_year:
        invoices = filter_by_financial_year(invoices, financial_year)
    if period is not None:
        invoices = filter_by_month(invoices, *period)

    target = resolve_export_path(path, "invoices")
    rows = write_invoice_csv(invoices, target, session.config.defaults)
    logger.info("exported invoices=%d rows=%d -> %s", len(invoices), rows, target)
    return ExportResult(path=target, kind="invoices", records=len(invoices), rows=rows)


def run_client_export(session: ImportSession, path: str | Path) -> ExportResult:
    clients = fetch_existing_clients(session.cursor, session.owner_id)
    target = resolve_export_path(path, "clients")
    rows = write_client_csv(clients, target, session.config.defaults)
    logger.info("exported clients=%d -> %s", len(clients), target)
    return ExportResult(path=target, kind="clients", records=len(clients), rows=rows)


def list_invoice_periods(session: ImportSession) -> tuple[list[str], list[MonthYear]]:
    """Financial years and months the owner's invoices fall in, newest first."""
    invoices = fetch_existing_invoices(session.cursor, session.owner_id)
    return available_financial_years(invoices), available_month_years(invoices)
