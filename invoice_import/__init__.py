"""Invoice / client spreadsheet importer: parse, reconcile, commit to PostgreSQL."""

__version__ = "0.1.0"
