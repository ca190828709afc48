from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from enum import Enum

"""Error taxonomy and ErrorRecord model for error logging.

ErrorKind is the single classification used everywhere a row or a run goes
wrong: reconciliation notices (ImportIssue) and fatal failures end up as
ErrorRecord lines in the JSON Lines error log. row=-1 marks file-level errors
where no specific row applies.

The ErrorRecord shape is pinned by invoice_import/contracts/error_log_schema.json.
"""

__all__ = [
    "ErrorKind",
    "ImportIssue",
    "ErrorRecord",
]


class ErrorKind(Enum):
    """Classification of everything that can go wrong during an import.

    - PARSE_ERROR: file unreadable or not tabular (import aborted)
    - VALIDATION_SKIP: row lacks mandatory fields and was skipped
    - DUPLICATE_SKIP: row already imported / repeated in the batch and skipped
    - IDENTITY_CONFLICT: identity fields point at different clients
      (the higher-priority match was used)
    - COMMIT_ERROR: transaction submission failed (nothing written)
    """
    PARSE_ERROR = "PARSE_ERROR"
    VALIDATION_SKIP = "VALIDATION_SKIP"
    DUPLICATE_SKIP = "DUPLICATE_SKIP"
    IDENTITY_CONFLICT = "IDENTITY_CONFLICT"
    COMMIT_ERROR = "COMMIT_ERROR"


@dataclass(frozen=True)
class ImportIssue:
    """Non-fatal notice produced by reconciliation (never raised)."""
    kind: ErrorKind
    row: int  # 1-based data row, -1 when not row specific
    message: str


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: spreadsheet filename being processed
        row: Row number (1-based). Use -1 for file-level errors
        error_type: ErrorKind value (UPPER_SNAKE_CASE)
        message: human readable description
    """
    timestamp: str  # ISO8601 UTC
    file: str
    row: int  # 行番号。不明な場合 -1
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, row: int, kind: ErrorKind, message: str) -> ErrorRecord:
        """Create a new ErrorRecord with current UTC timestamp."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            row=row,
            error_type=kind.value,
            message=message,
        )

    @staticmethod
    def from_issue(file: str, issue: ImportIssue) -> ErrorRecord:
        return ErrorRecord.create(file=file, row=issue.row, kind=issue.kind, message=issue.message)

    def to_json_line(self) -> str:
        """Serialize to one JSON line without extra keys."""
        return json.dumps(asdict(self), ensure_ascii=False)
