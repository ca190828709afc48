from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any

import chardet
import pandas as pd

from ..models.row_data import RowRecord

"""Tabular reader: CSV or workbook upload -> ordered row records.

- Row 1 is the header row; headers are kept verbatim (no renaming here)
- Only the first sheet of a workbook is read
- Empty cells become absent keys; fully blank rows are dropped
- No validation: anything pandas cannot read is a ParseError
"""

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
CSV_SUFFIXES = {".csv", ".txt"}

_ZIP_MAGIC = b"PK\x03\x04"  # xlsx / xlsm
_OLE_MAGIC = b"\xd0\xcf\x11\xe0"  # legacy xls

Source = Path | str | bytes | bytearray | IO[bytes]


class ParseError(Exception):
    """Raised when an upload is unreadable or not tabular."""


@dataclass
class TabularData:
    source_name: str
    file_format: str  # "csv" | "excel"
    columns: list[str]
    rows: list[RowRecord]


def _load_bytes(source: Source, filename: str | None) -> tuple[bytes, str]:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source), filename or "<upload>"
    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            return path.read_bytes(), filename or path.name
        except OSError as e:
            raise ParseError(f"cannot read {path}: {e}") from e
    data = source.read()
    if isinstance(data, str):
        data = data.encode("utf-8")
    name = filename or Path(str(getattr(source, "name", "<upload>"))).name
    return data, name


def detect_format(name: str, head: bytes) -> str:
    """Pick "excel" or "csv" from the file suffix, sniffing magic bytes otherwise."""
    suffix = Path(name).suffix.lower()
    if suffix in EXCEL_SUFFIXES:
        return "excel"
    if suffix in CSV_SUFFIXES:
        return "csv"
    if head.startswith(_ZIP_MAGIC) or head.startswith(_OLE_MAGIC):
        return "excel"
    return "csv"


def _decode_text(raw: bytes) -> str:
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        detected = chardet.detect(raw).get("encoding") or "latin-1"
        logger.debug("csv is not utf-8, decoding as %s", detected)
        try:
            return raw.decode(detected)
        except (LookupError, UnicodeDecodeError):
            return raw.decode("latin-1")


def _read_frame(data: bytes, file_format: str) -> pd.DataFrame:
    if file_format == "excel":
        # sheet_name=0: 先頭シートのみ
        return pd.read_excel(io.BytesIO(data), sheet_name=0, header=0, dtype=object)
    text = _decode_text(data)
    return pd.read_csv(
        io.StringIO(text),
        header=0,
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
    )


def _is_blank(value: Any) -> bool:
    if isinstance(value, str):
        return value == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def frame_to_records(df: pd.DataFrame) -> tuple[list[str], list[RowRecord]]:
    """Convert a header-applied DataFrame into ordered row records."""
    columns = [str(c) for c in df.columns]
    # 見出し空欄の列 (pandas が "Unnamed: n" を付与) は値を持たないので除外
    keep = [i for i, c in enumerate(columns) if not c.startswith("Unnamed:")]
    rows: list[RowRecord] = []
    for raw in df.itertuples(index=False, name=None):
        record: RowRecord = {}
        for i in keep:
            value = raw[i]
            if _is_blank(value):
                continue
            record[columns[i]] = value
        if record:
            rows.append(record)
    return [columns[i] for i in keep], rows


def read_tabular(source: Source, filename: str | None = None) -> TabularData:
    """Read an upload into TabularData.

    Parameters
    ----------
    source: path, raw bytes, or a binary file object
    filename: original upload name; used for format detection and error logs

    Raises
    ------
    ParseError: the file cannot be read or is not tabular
    """
    data, name = _load_bytes(source, filename)
    if not data.strip():
        raise ParseError(f"{name}: file is empty")
    file_format = detect_format(name, data[:8])
    try:
        df = _read_frame(data, file_format)
    except Exception as e:
        raise ParseError(f"{name}: failed to parse {file_format} file: {e}") from e
    columns, rows = frame_to_records(df)
    logger.debug("parsed %s format=%s columns=%d rows=%d", name, file_format, len(columns), len(rows))
    return TabularData(source_name=name, file_format=file_format, columns=columns, rows=rows)


def parse_file(source: Source, filename: str | None = None) -> list[RowRecord]:
    """Shortcut returning only the row records."""
    return read_tabular(source, filename).rows
