"""Command line entry point (python -m invoice_import.cli)."""
