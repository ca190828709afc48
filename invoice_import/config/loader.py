from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import DatabaseConfig, ImportConfig, ImportDefaults
from ..reconcile.columns import CLIENT_COLUMN_ALIASES, INVOICE_COLUMN_ALIASES, merge_aliases

"""Config loader.

Responsibilities:
- Load YAML config (config/import.yml by default)
- Validate against contracts/config_schema.json
- Apply defaults (tax rates, statuses, log dir) for omitted keys
"""

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "contracts" / "config_schema.json"
DEFAULT_CONFIG_PATH = Path("config/import.yml")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: schema file missing / not JSON, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _build_defaults(raw: dict[str, Any]) -> ImportDefaults:
    base = ImportDefaults()
    return ImportDefaults(
        cgst_rate=float(raw.get("cgst_rate", base.cgst_rate)),
        sgst_rate=float(raw.get("sgst_rate", base.sgst_rate)),
        igst_rate=float(raw.get("igst_rate", base.igst_rate)),
        tax_type=raw.get("tax_type", base.tax_type),
        invoice_status=raw.get("invoice_status", base.invoice_status),
        client_type=raw.get("client_type", base.client_type),
        currency=raw.get("currency", base.currency),
        payment_terms=raw.get("payment_terms", base.payment_terms),
    )


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")

    _validate_config_schema(data)

    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    aliases = data.get("column_aliases") or {}
    invoice_aliases = {k: list(v) for k, v in (aliases.get("invoice") or {}).items()}
    client_aliases = {k: list(v) for k, v in (aliases.get("client") or {}).items()}
    # 未知のフィールド名はここで弾く
    try:
        merge_aliases(INVOICE_COLUMN_ALIASES, invoice_aliases)
        merge_aliases(CLIENT_COLUMN_ALIASES, client_aliases)
    except ValueError as e:
        raise ConfigError(f"config validation failed: column_aliases: {e}") from e

    return ImportConfig(
        database=db,
        defaults=_build_defaults(data.get("defaults") or {}),
        owner_id=data.get("owner_id"),
        log_dir=data.get("log_dir", "./logs"),
        invoice_aliases=invoice_aliases,
        client_aliases=client_aliases,
    )
