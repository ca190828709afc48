from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the invoice / client spreadsheet importer.

These are the typed, immutable forms of config/import.yml. The loader in
invoice_import/config/loader.py validates the raw YAML and builds them.
"""


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables (DATABASE_URL / PGDSN / PG*) take precedence.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportDefaults:
    """Fallback values applied when a spreadsheet cell is blank.

    Tax figures are percentage rates, never amounts.
    """
    cgst_rate: float = 9.0
    sgst_rate: float = 9.0
    igst_rate: float = 18.0
    tax_type: str = "intrastate"
    invoice_status: str = "Draft"
    client_type: str = "Individual"
    currency: str = "INR"
    payment_terms: str = "Due on receipt"


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for an import / export session."""
    database: DatabaseConfig
    defaults: ImportDefaults = field(default_factory=ImportDefaults)
    owner_id: str | None = None  # CLI --owner が優先
    log_dir: str = "./logs"
    # canonical field -> extra accepted headers (appended after built-in synonyms)
    invoice_aliases: dict[str, list[str]] = field(default_factory=dict)
    client_aliases: dict[str, list[str]] = field(default_factory=dict)
