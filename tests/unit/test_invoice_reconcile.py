from __future__ import annotations

import itertools

from invoice_import.models.error_record import ErrorKind
from invoice_import.models.records import ExistingClient, ExistingInvoice
from invoice_import.reconcile.invoices import preprocess_invoice_rows


def _ids():
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


def _row(number="INV-1", date="2024-04-01", **extra):
    row = {"Invoice Number": number, "Invoice Date": date}
    row.update(extra)
    return row


def test_line_items_aggregate_into_one_invoice():
    rows = [
        _row(**{"Item Rate": 100, "Item Quantity": 1, "Customer Name": "Acme"}),
        _row(**{"Item Rate": 200, "Item Quantity": 1}),
        _row(**{"Item Rate": 50, "Item Quantity": 2}),
    ]
    summary = preprocess_invoice_rows(rows, id_factory=_ids())
    assert summary.unique_invoices == 1
    inv = summary.invoices_to_import[0]
    assert len(inv.line_items) == 3
    assert inv.subtotal == 400
    assert [li.amount for li in inv.line_items] == [100, 200, 100]
    assert inv.source_rows == [1, 2, 3]
    # ヘッダー項目は先頭行から
    assert inv.client_name == "Acme"


def test_rows_without_identity_are_counted_in_total_only():
    rows = [_row(**{"Item Rate": 10}), {"Item Description": "orphan", "Item Rate": 5}]
    summary = preprocess_invoice_rows(rows, id_factory=_ids())
    assert summary.total_rows == 2
    assert summary.unique_invoices == 1
    assert summary.duplicates_skipped == 0
    skips = summary.issues_of(ErrorKind.VALIDATION_SKIP)
    assert [i.row for i in skips] == [2]


def test_existing_invoice_rows_are_skipped_as_duplicates():
    existing = [ExistingInvoice(id="x", invoice_number="INV-1", invoice_date="2024-04-01")]
    rows = [_row(), _row(), _row(number="INV-2")]
    summary = preprocess_invoice_rows(rows, existing, id_factory=_ids())
    assert summary.duplicates_skipped == 2
    assert [inv.invoice_number for inv in summary.invoices_to_import] == ["INV-2"]
    assert len(summary.issues_of(ErrorKind.DUPLICATE_SKIP)) == 2


def test_serial_dates_match_existing_iso_dates():
    existing = [ExistingInvoice(id="x", invoice_number="INV-1", invoice_date="2023-03-15")]
    summary = preprocess_invoice_rows([_row(date=45000)], existing, id_factory=_ids())
    assert summary.duplicates_skipped == 1
    assert summary.invoices_to_import == []


def test_reimport_is_idempotent():
    rows = [_row(), _row(), _row(number="INV-2", date="2024-04-02")]
    first = preprocess_invoice_rows(rows, id_factory=_ids())
    stored = [
        ExistingInvoice(id=f"s{i}", invoice_number=inv.invoice_number, invoice_date=inv.invoice_date)
        for i, inv in enumerate(first.invoices_to_import)
    ]
    second = preprocess_invoice_rows(rows, stored, id_factory=_ids())
    assert second.unique_invoices == 0
    assert second.invoices_to_import == []
    assert second.duplicates_skipped == len(rows)


def test_tax_id_wins_over_email():
    existing = [
        ExistingClient(id="A", display_name="Alpha", gst="29AAA", email="a@alpha.test"),
        ExistingClient(id="B", display_name="Beta", gst="29BBB", email="shared@x.test"),
    ]
    rows = [_row(**{"Customer GSTIN": "29AAA", "Customer Email": "shared@x.test"})]
    summary = preprocess_invoice_rows(rows, (), existing, id_factory=_ids())
    inv = summary.invoices_to_import[0]
    assert inv.client_id == "A"
    assert summary.reused_customers == 1
    assert summary.new_customers == 0
    conflicts = summary.issues_of(ErrorKind.IDENTITY_CONFLICT)
    assert len(conflicts) == 1
    assert "belongs to client B" in conflicts[0].message


def test_email_then_case_insensitive_name():
    existing = [
        ExistingClient(id="E", display_name="Email Co", email="ap@e.test"),
        ExistingClient(id="N", display_name="Name Co"),
    ]
    rows = [
        _row(number="1", **{"Customer Email": " ap@e.test "}),
        _row(number="2", **{"Customer Name": "NAME co"}),
    ]
    summary = preprocess_invoice_rows(rows, (), existing, id_factory=_ids())
    assert [inv.client_id for inv in summary.invoices_to_import] == ["E", "N"]


def test_new_customer_collapses_within_batch():
    rows = [
        _row(number="1", **{"Customer GSTIN": "29NEW", "Customer Name": "New Co"}),
        _row(number="2", **{"Customer GSTIN": "29NEW", "Customer Name": "New Co"}),
    ]
    summary = preprocess_invoice_rows(rows, id_factory=_ids())
    assert summary.new_customers == 1
    assert summary.reused_customers == 1
    assert len(summary.new_clients) == 1
    client = summary.new_clients[0]
    assert client.token == "29NEW"
    first, second = summary.invoices_to_import
    assert first.client_id == second.client_id == client.id
    assert first.is_new_client is True
    assert second.is_new_client is False


def test_new_client_token_falls_back_to_email_then_lowercased_name():
    rows = [
        _row(number="1", **{"Customer Email": "x@y.test", "Customer Name": "X"}),
        _row(number="2", **{"Customer Name": "Only Name"}),
    ]
    summary = preprocess_invoice_rows(rows, id_factory=_ids())
    assert [c.token for c in summary.new_clients] == ["x@y.test", "only name"]


def test_tds_marks_existing_client_once():
    existing = [ExistingClient(id="A", gst="29AAA")]
    rows = [
        _row(number="1", **{"Customer GSTIN": "29AAA", "TDS": "TRUE"}),
        _row(number="2", **{"Customer GSTIN": "29AAA", "TDS": "yes"}),
    ]
    summary = preprocess_invoice_rows(rows, (), existing, id_factory=_ids())
    assert summary.tds_client_ids == ["A"]


def test_tds_not_repeated_for_client_already_flagged():
    existing = [ExistingClient(id="A", gst="29AAA", is_tds_deducting=True)]
    rows = [_row(**{"Customer GSTIN": "29AAA", "TDS": "TRUE"})]
    summary = preprocess_invoice_rows(rows, (), existing, id_factory=_ids())
    assert summary.tds_client_ids == []


def test_tds_on_later_invoice_flags_new_client():
    rows = [
        _row(number="1", **{"Customer GSTIN": "29NEW"}),
        _row(number="2", **{"Customer GSTIN": "29NEW", "TDS": "TRUE"}),
    ]
    summary = preprocess_invoice_rows(rows, id_factory=_ids())
    assert summary.new_clients[0].is_tds_deducting is True
    assert summary.tds_client_ids == []


def test_configured_alias_is_used():
    rows = [{"Bill No": "B-1", "Invoice Date": "2024-04-01"}]
    summary = preprocess_invoice_rows(rows, aliases={"invoice_number": ["Bill No"]}, id_factory=_ids())
    assert summary.invoices_to_import[0].invoice_number == "B-1"


def test_existing_snapshot_is_not_mutated():
    existing = [ExistingClient(id="A", gst="29AAA")]
    before = list(existing)
    preprocess_invoice_rows([_row(**{"Customer GSTIN": "29AAA", "TDS": "TRUE"})], (), existing)
    assert existing == before
    assert existing[0].is_tds_deducting is False
