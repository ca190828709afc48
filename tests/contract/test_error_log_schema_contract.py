from __future__ import annotations

import json
from pathlib import Path

import jsonschema
import pytest
from jsonschema.exceptions import ValidationError

from invoice_import.logging.error_log import ErrorLogBuffer
from invoice_import.models.error_record import ErrorKind, ErrorRecord

"""Error log JSON schema contract test."""

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "invoice_import" / "contracts" / "error_log_schema.json"


@pytest.fixture(scope="module")
def schema() -> dict:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def test_error_log_schema_valid_example(schema):
    record = {
        "timestamp": "2025-09-26T10:12:33Z",
        "file": "invoices.xlsx",
        "row": 2,
        "error_type": "DUPLICATE_SKIP",
        "message": "invoice INV-7 dated 2024-04-01 already exists",
    }
    jsonschema.validate(record, schema)


def test_error_log_schema_rejects_extra_key(schema):
    record = {
        "timestamp": "2025-09-26T10:12:33Z",
        "file": "invoices.xlsx",
        "row": 2,
        "error_type": "DUPLICATE_SKIP",
        "message": "dup",
        "sheet": "Sheet1",
    }
    with pytest.raises(ValidationError):
        jsonschema.validate(record, schema)


def test_error_log_schema_rejects_unknown_error_type(schema):
    record = ErrorRecord.create("a.csv", 1, ErrorKind.PARSE_ERROR, "x")
    data = json.loads(record.to_json_line())
    data["error_type"] = "CONSTRAINT_VIOLATION"
    with pytest.raises(ValidationError):
        jsonschema.validate(data, schema)


def test_every_error_kind_is_allowed(schema):
    assert set(schema["properties"]["error_type"]["enum"]) == {k.value for k in ErrorKind}


def test_flushed_lines_match_schema(schema, temp_workdir: Path):
    buf = ErrorLogBuffer(temp_workdir / "logs")
    for i, kind in enumerate(ErrorKind):
        # -1 はファイル単位のエラー
        buf.record("clients.csv", i - 1, kind, f"{kind.value} message")
    fp = buf.flush()
    lines = fp.read_text(encoding="utf-8").splitlines()
    assert len(lines) == len(ErrorKind)
    for line in lines:
        jsonschema.validate(json.loads(line), schema)
