#!/usr/bin/env python3
"""Sample spreadsheet generator for manual and load testing.

Generates synthetic invoice (one row per line item) or client sheets using
the headers the importer understands. Customers are drawn from a fixed pool
so identity resolution has repeats to work with; a share of rows can be
emitted twice to exercise duplicate skipping.
"""
from __future__ import annotations

import argparse
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from invoice_import.export.csv_export import CLIENT_EXPORT_COLUMNS, INVOICE_EXPORT_COLUMNS

SERVICES = ["Design", "Development", "Consulting", "Audit", "Support", "Training", "Hosting"]
STATES = ["29", "27", "33", "07", "24"]


def _gstin(rng: np.random.Generator, state: str) -> str:
    letters = "".join(chr(65 + int(x)) for x in rng.integers(0, 26, 5))
    digits = "".join(str(int(x)) for x in rng.integers(0, 10, 4))
    return f"{state}{letters}{digits}{chr(65 + int(rng.integers(0, 26)))}1Z{int(rng.integers(0, 10))}"


def generate_customers(count: int, rng: np.random.Generator) -> list[dict[str, Any]]:
    customers = []
    for i in range(count):
        name = f"Customer {i + 1:04d} Pvt Ltd"
        # 3 割は GSTIN なし (メール / 名前で照合される)
        has_gst = rng.random() >= 0.3
        customers.append(
            {
                "name": name,
                "email": f"billing{i + 1:04d}@example.test",
                "gst": _gstin(rng, STATES[i % len(STATES)]) if has_gst else "",
                "phone": f"98{int(rng.integers(10_000_000, 99_999_999))}",
                "tds": bool(rng.random() < 0.2),
            }
        )
    return customers


def generate_invoice_rows(
    invoices: int,
    customers: int,
    max_items: int = 4,
    duplicate_ratio: float = 0.0,
    start: date = date(2024, 4, 1),
    seed: int = 42,
) -> pd.DataFrame:
    """Build an invoice sheet as a DataFrame with INVOICE_EXPORT_COLUMNS."""
    rng = np.random.default_rng(seed)
    pool = generate_customers(customers, rng)
    rows: list[dict[str, Any]] = []
    for n in range(invoices):
        customer = pool[int(rng.integers(0, len(pool)))]
        invoice_date = start + timedelta(days=int(rng.integers(0, 365)))
        interstate = not customer["gst"].startswith("29")
        header = {
            "Invoice Number": f"INV-{n + 1:06d}",
            "Invoice Date": invoice_date.isoformat(),
            "Due Date": (invoice_date + timedelta(days=15)).isoformat(),
            "Invoice Status": "Draft",
            "Tax Type": "interstate" if interstate else "intrastate",
            "TDS": "TRUE" if customer["tds"] else "FALSE",
            "CGST Rate": 9,
            "SGST Rate": 9,
            "IGST Rate": 18,
            "Customer Name": customer["name"],
            "Customer Email": customer["email"],
            "Customer GSTIN": customer["gst"],
            "Customer Phone": customer["phone"],
        }
        for _ in range(int(rng.integers(1, max_items + 1))):
            rows.append(
                {
                    **header,
                    "Item Description": SERVICES[int(rng.integers(0, len(SERVICES)))],
                    "Item SAC": "998314",
                    "Item Quantity": int(rng.integers(1, 10)),
                    "Item Rate": float(np.round(rng.uniform(100, 20_000), 2)),
                }
            )
    if duplicate_ratio > 0 and rows:
        picks = rng.choice(len(rows), size=max(1, int(len(rows) * duplicate_ratio)), replace=False)
        rows.extend(rows[int(i)] for i in sorted(picks))
    return pd.DataFrame(rows, columns=list(INVOICE_EXPORT_COLUMNS))


def generate_client_rows(customers: int, seed: int = 42) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    rows = [
        {
            "Customer Type": "Business",
            "Company Name": c["name"],
            "Display Name": c["name"],
            "Email": c["email"],
            "Phone": c["phone"],
            "GSTIN": c["gst"],
            "Currency": "INR",
            "Payment Terms": "Due on receipt",
            "TDS Deducting": "TRUE" if c["tds"] else "FALSE",
        }
        for c in generate_customers(customers, rng)
    ]
    return pd.DataFrame(rows, columns=list(CLIENT_EXPORT_COLUMNS))


def write_frame(df: pd.DataFrame, output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    if output.suffix.lower() == ".xlsx":
        df.to_excel(output, index=False, engine="openpyxl")
    else:
        df.to_csv(output, index=False)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate sample invoice / client spreadsheets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/gen_sample_invoices.py invoices --count 500 --output data/invoices.xlsx
  python scripts/gen_sample_invoices.py invoices --count 50 --duplicates 0.1 --output data/dups.csv
  python scripts/gen_sample_invoices.py clients --customers 200 --output data/clients.csv
        """,
    )
    parser.add_argument("kind", choices=["invoices", "clients"])
    parser.add_argument("--count", type=int, default=100, help="Number of invoices (default: 100)")
    parser.add_argument("--customers", type=int, default=20, help="Customer pool size (default: 20)")
    parser.add_argument("--max-items", type=int, default=4, help="Max line items per invoice (default: 4)")
    parser.add_argument("--duplicates", type=float, default=0.0, help="Share of rows repeated (default: 0)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument("--output", type=Path, required=True, help="Output .csv or .xlsx path")
    args = parser.parse_args()

    if args.count < 1 or args.customers < 1 or args.max_items < 1:
        print("Error: --count, --customers and --max-items must be positive", file=sys.stderr)
        return 1
    if not 0 <= args.duplicates < 1:
        print("Error: --duplicates must be in [0, 1)", file=sys.stderr)
        return 1

    if args.kind == "invoices":
        df = generate_invoice_rows(args.count, args.customers, args.max_items, args.duplicates, seed=args.seed)
    else:
        df = generate_client_rows(args.customers, seed=args.seed)
    write_frame(df, args.output)
    print(f"Generated {args.output} ({len(df)} rows)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
