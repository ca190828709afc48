# Shared pytest fixtures
from __future__ import annotations

import copy
import importlib
import re
import tempfile
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from invoice_import.logging.init import reset_logging

OWNER_ID = "owner-1"

INVOICE_HEADERS = [
    "Invoice Number",
    "Invoice Date",
    "Due Date",
    "Tax Type",
    "TDS",
    "CGST Rate",
    "SGST Rate",
    "IGST Rate",
    "Customer Name",
    "Customer Email",
    "Customer GSTIN",
    "Item Description",
    "Item Quantity",
    "Item Rate",
]


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return f"""database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: billing
owner_id: {OWNER_ID}
log_dir: ./logs
defaults:
  cgst_rate: 9
  sgst_rate: 9
  igst_rate: 18
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def write_sheet(path: Path, rows: list[dict[str, Any]], columns: list[str] | None = None) -> Path:
    """Write rows as CSV or XLSX depending on the suffix."""
    df = pd.DataFrame(rows, columns=columns)
    if path.suffix == ".xlsx":
        df.to_excel(path, index=False)
    else:
        df.to_csv(path, index=False)
    return path


@pytest.fixture()
def invoice_csv(temp_workdir: Path) -> Path:
    rows = [
        {
            "Invoice Number": "INV-1", "Invoice Date": "2024-04-01", "Due Date": "2024-04-15",
            "Tax Type": "intrastate", "TDS": "FALSE", "CGST Rate": 9, "SGST Rate": 9, "IGST Rate": 18,
            "Customer Name": "Acme Ltd", "Customer Email": "ap@acme.test", "Customer GSTIN": "29ABCDE1234F1Z5",
            "Item Description": "Design", "Item Quantity": 1, "Item Rate": 100,
        },
        {
            "Invoice Number": "INV-1", "Invoice Date": "2024-04-01", "Due Date": "2024-04-15",
            "Tax Type": "intrastate", "TDS": "FALSE", "CGST Rate": 9, "SGST Rate": 9, "IGST Rate": 18,
            "Customer Name": "Acme Ltd", "Customer Email": "ap@acme.test", "Customer GSTIN": "29ABCDE1234F1Z5",
            "Item Description": "Build", "Item Quantity": 2, "Item Rate": 150,
        },
        {
            "Invoice Number": "INV-2", "Invoice Date": "2024-05-10", "Due Date": "",
            "Tax Type": "interstate", "TDS": "TRUE", "CGST Rate": 9, "SGST Rate": 9, "IGST Rate": 18,
            "Customer Name": "Globex", "Customer Email": "billing@globex.test", "Customer GSTIN": "",
            "Item Description": "Audit", "Item Quantity": 1, "Item Rate": 1000,
        },
    ]
    return write_sheet(temp_workdir / "data" / "invoices.csv", rows, INVOICE_HEADERS)


class FakeDictCursor:
    """SELECT side of FakeDatabase (the DictCursor used by snapshot readers)."""

    def __init__(self, db: FakeDatabase) -> None:
        self.db = db
        self._rows: list[dict[str, Any]] = []

    def execute(self, sql: str, params: tuple[Any, ...] = ()) -> None:
        table = re.search(r'FROM "(\w+)"', sql).group(1)
        rows = self.db.tables.setdefault(table, [])
        if "invoice_id = ANY" in sql:
            wanted = set(params[0])
            self._rows = [dict(r) for r in rows if r.get("invoice_id") in wanted]
        else:
            self._rows = [dict(r) for r in rows if r.get("owner_id") == params[0]]
        # 未設定カラムは None
        cols = re.findall(r'"(\w+)"', sql.split(" FROM ")[0])
        self._rows = [{c: r.get(c) for c in cols} for r in self._rows]

    def fetchall(self) -> list[dict[str, Any]]:
        return self._rows

    def close(self) -> None:
        pass


class FakeDatabase:
    """In-memory tables that understand the SQL the commit executor emits."""

    _UPDATE_RE = re.compile(r'^UPDATE "(\w+)" SET (.+) WHERE "id" = (%s|ANY\(%s\))$')

    def __init__(self, tables: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = tables or {}
        for t in ("clients", "invoices", "line_items"):
            self.tables.setdefault(t, [])
        self._saved: dict[str, list[dict[str, Any]]] | None = None

    def cursor(self, cursor_factory: Any = None) -> FakeDictCursor:
        return FakeDictCursor(self)

    def begin(self) -> None:
        self._saved = copy.deepcopy(self.tables)

    def rollback(self) -> None:
        if self._saved is not None:
            self.tables = self._saved
        self._saved = None

    def insert(self, sql: str, rows: list[list[Any]]) -> None:
        m = re.search(r'INSERT INTO "(\w+)" \((.+)\) VALUES %s', sql)
        table, cols = m.group(1), re.findall(r'"(\w+)"', m.group(2))
        for values in rows:
            self.tables.setdefault(table, []).append(dict(zip(cols, values)))

    def update(self, sql: str, params: tuple[Any, ...]) -> None:
        m = self._UPDATE_RE.match(sql)
        table, set_sql, where = m.groups()
        cols = re.findall(r'"(\w+)" = %s', set_sql)
        values = dict(zip(cols, params[: len(cols)]))
        target = params[len(cols)]
        ids = set(target) if where.startswith("ANY") else {target}
        for row in self.tables.setdefault(table, []):
            if row.get("id") in ids:
                row.update(values)


class RecordingCursor:
    """psycopg2 cursor stand-in. Records every statement; optional failure trigger."""

    def __init__(self, db: FakeDatabase | None = None, fail_on: str | None = None) -> None:
        self.db = db or FakeDatabase()
        self.connection = self.db
        self.fail_on = fail_on
        self.executed: list[tuple[str, Any]] = []

    def execute(self, sql: str, params: Any = None) -> None:
        self.executed.append((sql, params))
        if self.fail_on and self.fail_on in sql:
            raise RuntimeError(f"simulated failure on: {sql}")
        if sql == "BEGIN":
            self.db.begin()
        elif sql == "ROLLBACK":
            self.db.rollback()
        elif sql.startswith("UPDATE"):
            self.db.update(sql, params)

    def close(self) -> None:
        pass

    def statements(self, prefix: str) -> list[tuple[str, Any]]:
        return [(s, p) for s, p in self.executed if s.startswith(prefix)]


@pytest.fixture()
def fake_execute_values(monkeypatch):
    """Route execute_values into the cursor's FakeDatabase and record it."""
    calls: list[tuple[str, list[list[Any]]]] = []

    def _execute_values(cur, sql, rows, page_size=100):
        calls.append((sql, list(rows)))
        cur.executed.append((sql, list(rows)))
        if cur.fail_on and cur.fail_on in sql:
            raise RuntimeError(f"simulated failure on: {sql}")
        cur.db.insert(sql, list(rows))

    batch_insert_module = importlib.import_module("invoice_import.db.batch_insert")
    monkeypatch.setattr(batch_insert_module, "execute_values", _execute_values)
    return calls


@pytest.fixture()
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture()
def recording_cursor(fake_db: FakeDatabase, fake_execute_values) -> RecordingCursor:
    return RecordingCursor(fake_db)


@pytest.fixture()
def make_cursor(fake_execute_values):
    """Factory: make_cursor(db=None, fail_on=None) -> RecordingCursor."""
    def _make(db: FakeDatabase | None = None, fail_on: str | None = None) -> RecordingCursor:
        return RecordingCursor(db, fail_on=fail_on)
    return _make


@pytest.fixture()
def sheet_writer():
    return write_sheet


@pytest.fixture()
def owner_id() -> str:
    return OWNER_ID
