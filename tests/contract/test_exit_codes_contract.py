from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import psycopg2

from invoice_import.cli.__main__ import EXIT_FATAL, EXIT_IMPORT_FAILED, EXIT_SUCCESS, main as cli_main

"""Exit code contract tests.

0 success / dry run, 1 fatal startup, 2 import failed.
"""


def test_exit_code_values():
    assert (EXIT_SUCCESS, EXIT_FATAL, EXIT_IMPORT_FAILED) == (0, 1, 2)


def test_exit_code_fatal_startup(temp_workdir: Path, capsys):
    # config/import.yml 無し → exit 1
    code = cli_main(["invoices", "data/invoices.csv"])
    assert code == 1
    assert "ERROR config:" in capsys.readouterr().out


def test_exit_code_success_and_dry_run(write_config, invoice_csv, monkeypatch):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
    assert cli_main(["invoices", str(invoice_csv)]) == 0
    assert cli_main(["invoices", str(invoice_csv), "--dry-run"]) == 0


def test_exit_code_import_failed_on_commit(write_config, invoice_csv, monkeypatch, make_cursor):
    monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
    conn = MagicMock()
    conn.cursor.return_value = make_cursor(fail_on="COMMIT")
    with patch("invoice_import.services.session.psycopg2.connect", return_value=conn):
        assert cli_main(["invoices", str(invoice_csv)]) == 2


def test_exit_code_fatal_on_connect(write_config, invoice_csv, monkeypatch):
    monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
    with patch(
        "invoice_import.services.session.psycopg2.connect",
        side_effect=psycopg2.OperationalError("no route to host"),
    ):
        assert cli_main(["invoices", str(invoice_csv)]) == 1
