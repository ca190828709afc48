from __future__ import annotations

import argparse
import os
import sys
import time
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

from invoice_import.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from invoice_import.export.periods import parse_financial_year, parse_month
from invoice_import.logging.init import log_summary, setup_logging
from invoice_import.models.import_run import RunStatus
from invoice_import.services.orchestrator import (
    list_invoice_periods,
    run_client_export,
    run_client_import,
    run_invoice_export,
    run_invoice_import,
)
from invoice_import.services.session import SessionError, open_session
from invoice_import.services.summary import render_export_summary_line, render_summary_line

"""CLI entrypoint.

    python -m invoice_import.cli invoices  FILE [--owner ID] [--dry-run]
    python -m invoice_import.cli clients   FILE [--owner ID] [--dry-run]
    python -m invoice_import.cli export-invoices [--out PATH] [--fy 2024-25] [--month 2024-04]
    python -m invoice_import.cli export-invoices --list-periods
    python -m invoice_import.cli export-clients  [--out PATH]

Exit codes:
    0  success (including a dry run)
    1  fatal startup error (config, missing file, bad option, database connect)
    2  import failed (parse / commit / database error during the run)

DISABLE_DB_CONNECT=1 runs without a database (mock mode: empty snapshots,
nothing written).
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_IMPORT_FAILED = 2


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv.

    override=True: .env の値で既存の環境変数を上書きし、接続情報を最優先にする。
    """
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    common.add_argument("--owner", help="Owner id (overrides owner_id in config)")
    common.add_argument("--debug", action="store_true", help="Enable debug logging")

    p = argparse.ArgumentParser(prog="invoice-import", description="Invoice / client spreadsheet importer")
    sub = p.add_subparsers(dest="command", required=True)

    for name, help_text in (("invoices", "Import an invoice spreadsheet"), ("clients", "Import a client spreadsheet")):
        sp = sub.add_parser(name, parents=[common], help=help_text)
        sp.add_argument("file", type=Path, help="CSV / XLSX / XLS file")
        sp.add_argument("--dry-run", action="store_true", help="Reconcile and report, commit nothing")

    sp = sub.add_parser("export-invoices", parents=[common], help="Export invoices as importable CSV")
    sp.add_argument("--out", type=Path, default=Path("."), help="Output file or directory")
    sp.add_argument("--fy", help="Financial year, e.g. 2024-25")
    sp.add_argument("--month", help="Month, e.g. 2024-04 or 'April 2024'")
    sp.add_argument("--list-periods", action="store_true", help="List financial years and months with invoices, write nothing")

    sp = sub.add_parser("export-clients", parents=[common], help="Export clients as importable CSV")
    sp.add_argument("--out", type=Path, default=Path("."), help="Output file or directory")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    # [] が渡された場合に sys.argv が混入しないよう None のときだけ読む
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.command in ("invoices", "clients") and not args.file.exists():
        logger.error(f"file not found: {args.file}")
        return EXIT_FATAL
    if args.command == "export-invoices":
        try:
            if args.fy:
                parse_financial_year(args.fy)
            if args.month:
                parse_month(args.month)
        except ValueError as e:
            logger.error(f"option: {e}")
            return EXIT_FATAL

    connect = os.getenv("DISABLE_DB_CONNECT") != "1"
    if not connect:
        logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> mock mode")

    try:
        with open_session(cfg, args.owner, connect=connect) as session:
            logger.info(f"mode={'mock' if session.mock else 'live'} owner={session.owner_id}")
            return _dispatch(args, session)
    except SessionError as e:
        logger.error(f"session: {e}")
        return EXIT_FATAL
    except psycopg2.Error as e:
        logger.error(f"database: {e}")
        return EXIT_IMPORT_FAILED
    except OSError as e:
        logger.error(f"io: {e}")
        return EXIT_IMPORT_FAILED


def _dispatch(args: argparse.Namespace, session) -> int:
    if args.command in ("invoices", "clients"):
        confirm = (lambda _summary: False) if args.dry_run else None
        if args.command == "invoices":
            run = run_invoice_import(args.file, session, confirm=confirm)
        else:
            run = run_client_import(args.file, session, confirm=confirm)
        # log_summary が "SUMMARY " を付けるので取り除く
        log_summary(render_summary_line(run)[len("SUMMARY "):])
        if run.status is RunStatus.FAILED:
            return EXIT_IMPORT_FAILED
        return EXIT_SUCCESS

    if args.command == "export-invoices" and args.list_periods:
        years, months = list_invoice_periods(session)
        logger = setup_logging()
        logger.info(f"financial_years={','.join(years) or '-'}")
        logger.info(f"months={','.join(m.label for m in months) or '-'}")
        return EXIT_SUCCESS

    start = time.perf_counter()
    if args.command == "export-invoices":
        result = run_invoice_export(session, args.out, financial_year=args.fy, month=args.month)
    else:
        result = run_client_export(session, args.out)
    line = render_export_summary_line(result.kind, result.records, result.rows, time.perf_counter() - start)
    log_summary(line[len("SUMMARY "):])
    return EXIT_SUCCESS


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
