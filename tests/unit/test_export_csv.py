from __future__ import annotations

from datetime import date
from pathlib import Path

import pandas as pd

from invoice_import.export.csv_export import (
    CLIENT_EXPORT_COLUMNS,
    INVOICE_EXPORT_COLUMNS,
    client_export_rows,
    default_export_filename,
    invoice_export_rows,
    resolve_export_path,
    write_client_csv,
    write_invoice_csv,
)
from invoice_import.models.config_models import ImportDefaults
from invoice_import.models.records import ExistingClient, ExistingInvoice, ExistingLineItem

ACME = ExistingClient(id="A", display_name="Acme Ltd", email="ap@acme.test", gst="29ABCDE1234F1Z5", is_tds_deducting=True)


def _invoice(**kw):
    base = dict(
        id="i1",
        invoice_number="INV-1",
        invoice_date="2024-04-01",
        subtotal=400.0,
        cgst=36.0,
        sgst=36.0,
        total=472.0,
        client_id="A",
        client=ACME,
        line_items=[
            ExistingLineItem(id="l1", description="Design", quantity=1, rate=100, amount=100),
            ExistingLineItem(id="l2", description="Build", quantity=2, rate=150, amount=300, sac_code="998314"),
        ],
    )
    base.update(kw)
    return ExistingInvoice(**base)


def test_default_filenames():
    assert default_export_filename("invoices", date(2024, 7, 3)) == "invoices_export_2024-07-03.csv"
    assert default_export_filename("clients", date(2024, 7, 3)) == "customers_export_2024-07-03.csv"


def test_resolve_export_path(temp_workdir: Path):
    assert resolve_export_path(temp_workdir, "clients", date(2024, 1, 2)) == temp_workdir / "customers_export_2024-01-02.csv"
    target = temp_workdir / "out.csv"
    assert resolve_export_path(target, "invoices") == target


def test_invoice_rows_one_per_line_item():
    rows = invoice_export_rows([_invoice()])
    assert len(rows) == 2
    assert [r["Item Description"] for r in rows] == ["Design", "Build"]
    assert rows[0]["Invoice Number"] == rows[1]["Invoice Number"] == "INV-1"
    assert rows[1]["Item SAC"] == "998314"
    assert rows[0]["Customer GSTIN"] == "29ABCDE1234F1Z5"


def test_invoice_rates_derived_from_amounts():
    row = invoice_export_rows([_invoice()])[0]
    assert row["CGST Rate"] == 9.0
    assert row["SGST Rate"] == 9.0
    assert row["IGST Rate"] == 0.0
    assert row["Tax Type"] == "intrastate"
    assert row["TDS"] == "FALSE"


def test_zero_subtotal_falls_back_to_default_rates():
    inv = _invoice(subtotal=0.0, cgst=0.0, sgst=0.0)
    row = invoice_export_rows([inv], ImportDefaults(cgst_rate=6, sgst_rate=6, igst_rate=12))[0]
    assert (row["CGST Rate"], row["SGST Rate"], row["IGST Rate"]) == (6, 6, 12)


def test_tax_type_inferred_from_igst():
    row = invoice_export_rows([_invoice(cgst=0.0, sgst=0.0, igst=72.0, tds_deducted=True)])[0]
    assert row["Tax Type"] == "interstate"
    assert row["IGST Rate"] == 18.0
    assert row["TDS"] == "TRUE"


def test_invoice_without_client_or_items():
    assert invoice_export_rows([_invoice(line_items=[])]) == []
    row = invoice_export_rows([_invoice(client=None)])[0]
    assert row["Customer Name"] == ""
    assert row["Customer Type"] == "Individual"


def test_client_rows_apply_defaults():
    row = client_export_rows([ExistingClient(id="B", display_name="Beta")])[0]
    assert list(row) == list(CLIENT_EXPORT_COLUMNS)
    assert row["Currency"] == "INR"
    assert row["Payment Terms"] == "Due on receipt"
    assert row["Customer Type"] == "Individual"
    assert row["TDS Deducting"] == "FALSE"
    assert client_export_rows([ACME])[0]["TDS Deducting"] == "TRUE"


def test_write_invoice_csv_headers_in_order(temp_workdir: Path):
    out = temp_workdir / "exports" / "inv.csv"
    assert write_invoice_csv([_invoice()], out) == 2
    df = pd.read_csv(out, dtype=str, keep_default_na=False)
    assert list(df.columns) == list(INVOICE_EXPORT_COLUMNS)
    assert len(df) == 2


def test_write_empty_client_csv_has_header_only(temp_workdir: Path):
    out = temp_workdir / "c.csv"
    assert write_client_csv([], out) == 0
    assert out.read_text(encoding="utf-8").strip() == ",".join(CLIENT_EXPORT_COLUMNS)
