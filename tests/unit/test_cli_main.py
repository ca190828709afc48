from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from invoice_import.cli.__main__ import main as cli_main


@pytest.fixture()
def mock_mode(monkeypatch):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")


@pytest.fixture()
def live_db(monkeypatch, recording_cursor):
    """psycopg2.connect returns a connection whose cursor writes into FakeDatabase."""
    monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
    conn = MagicMock()
    conn.cursor.return_value = recording_cursor
    with patch("invoice_import.services.session.psycopg2.connect", return_value=conn):
        yield recording_cursor


def test_missing_config_is_fatal(temp_workdir: Path, mock_mode, capsys):
    code = cli_main(["clients", "data/clients.csv"])
    assert code == 1
    assert "ERROR config:" in capsys.readouterr().out


def test_missing_file_is_fatal(write_config, mock_mode, capsys):
    code = cli_main(["invoices", "data/nope.csv"])
    assert code == 1
    assert "ERROR file not found:" in capsys.readouterr().out


def test_missing_owner_is_fatal(write_config, invoice_csv, mock_mode, capsys):
    text = write_config.read_text(encoding="utf-8").replace("owner_id: owner-1\n", "")
    write_config.write_text(text, encoding="utf-8")
    code = cli_main(["invoices", str(invoice_csv)])
    assert code == 1
    assert "ERROR session: owner id is required" in capsys.readouterr().out


def test_invoice_import_mock_mode(write_config, invoice_csv, mock_mode, capsys):
    code = cli_main(["invoices", str(invoice_csv)])
    out = capsys.readouterr().out
    assert code == 0
    assert "INFO mode=mock owner=owner-1" in out
    assert "SUMMARY kind=invoices status=success rows=3 invoices=2 new_customers=2" in out


def test_owner_option_overrides_config(write_config, invoice_csv, mock_mode, capsys):
    cli_main(["invoices", str(invoice_csv), "--owner", "owner-9"])
    assert "owner=owner-9" in capsys.readouterr().out


def test_dry_run_is_cancelled_with_exit_zero(write_config, invoice_csv, live_db, capsys):
    code = cli_main(["invoices", str(invoice_csv), "--dry-run"])
    assert code == 0
    assert "status=cancelled" in capsys.readouterr().out
    assert live_db.executed == []


def test_live_import_writes_database(write_config, invoice_csv, live_db, capsys):
    code = cli_main(["invoices", str(invoice_csv)])
    assert code == 0
    assert "mode=live" in capsys.readouterr().out
    assert len(live_db.db.tables["invoices"]) == 2


def test_parse_failure_exit_two(write_config, temp_workdir, mock_mode, capsys):
    p = temp_workdir / "data" / "broken.xlsx"
    p.write_bytes(b"not a workbook")
    code = cli_main(["clients", str(p)])
    assert code == 2
    assert "SUMMARY kind=clients status=failed" in capsys.readouterr().out


def test_commit_failure_exit_two(write_config, invoice_csv, live_db, capsys):
    live_db.fail_on = 'INSERT INTO "invoices"'
    code = cli_main(["invoices", str(invoice_csv)])
    assert code == 2
    out = capsys.readouterr().out
    assert "ERROR commit: import commit failed" in out
    assert "status=failed" in out


def test_connect_failure_is_fatal(write_config, invoice_csv, monkeypatch, capsys):
    monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
    with patch(
        "invoice_import.services.session.psycopg2.connect",
        side_effect=psycopg2.OperationalError("connection refused"),
    ):
        code = cli_main(["invoices", str(invoice_csv)])
    assert code == 1
    assert "ERROR session: database connection failed" in capsys.readouterr().out


def test_database_error_during_run_exit_two(write_config, invoice_csv, monkeypatch, capsys):
    monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
    conn = MagicMock()
    conn.cursor.return_value.connection.cursor.side_effect = psycopg2.InterfaceError("connection already closed")
    with patch("invoice_import.services.session.psycopg2.connect", return_value=conn):
        code = cli_main(["invoices", str(invoice_csv)])
    assert code == 2
    assert "ERROR database:" in capsys.readouterr().out


def test_export_invoices_rejects_bad_period(write_config, mock_mode, capsys):
    code = cli_main(["export-invoices", "--fy", "2024"])
    assert code == 1
    assert "ERROR option:" in capsys.readouterr().out


def test_export_clients_default_filename(write_config, temp_workdir, mock_mode, capsys):
    code = cli_main(["export-clients", "--out", str(temp_workdir)])
    assert code == 0
    assert list(temp_workdir.glob("customers_export_*.csv"))
    assert "SUMMARY kind=export-clients status=success records=0 rows=0" in capsys.readouterr().out


def test_debug_flag_enables_debug_lines(write_config, invoice_csv, mock_mode, capsys):
    cli_main(["invoices", str(invoice_csv), "--debug"])
    assert "DEBUG debug mode enabled" in capsys.readouterr().out


def test_export_invoices_list_periods_mock_mode(write_config, temp_workdir, mock_mode, capsys):
    code = cli_main(["export-invoices", "--list-periods", "--out", str(temp_workdir)])
    out = capsys.readouterr().out
    assert code == 0
    assert "INFO financial_years=-" in out
    assert "SUMMARY" not in out
    assert not list(temp_workdir.glob("*.csv"))


def test_export_invoices_list_periods_live(write_config, invoice_csv, temp_workdir, live_db, capsys):
    assert cli_main(["invoices", str(invoice_csv)]) == 0
    capsys.readouterr()
    code = cli_main(["export-invoices", "--list-periods", "--out", str(temp_workdir)])
    out = capsys.readouterr().out
    assert code == 0
    assert "INFO financial_years=2024-25" in out
    assert "INFO months=May 2024,April 2024" in out
    assert not list(temp_workdir.glob("*.csv"))
