from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorKind, ErrorRecord, ImportIssue

"""Error log generation & buffering.

- JSON Lines, fixed schema (contracts/error_log_schema.json), no extra keys
- One file per run: ``<log_dir>/errors-YYYYMMDD-HHMMSS.log`` (UTC), created lazily
- Records are buffered and written on flush(); a failed write keeps them
  buffered so a later flush can retry
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

logger = logging.getLogger(__name__)

TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush writes JSON Lines.

    Serial use only (one import at a time).
    """

    def __init__(self, log_dir: Path | str = "./logs") -> None:
        self.log_dir = Path(log_dir)
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self.log_dir / f"errors-{stamp}.log"
        return self._file_path

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._records)

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def record(self, file: str, row: int, kind: ErrorKind, message: str) -> None:
        self.append(ErrorRecord.create(file=file, row=row, kind=kind, message=message))

    def extend_issues(self, file: str, issues: list[ImportIssue]) -> None:
        for issue in issues:
            self.append(ErrorRecord.from_issue(file, issue))

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Append buffered records to the log file.

        Returns the file path, or None when nothing was written. A write
        failure is logged and the records stay buffered.
        """
        if not self._records:
            return None
        fp = self.file_path
        try:
            fp.parent.mkdir(parents=True, exist_ok=True)
            with fp.open("a", encoding="utf-8") as f:
                for r in self._records:
                    f.write(r.to_json_line() + "\n")
        except OSError as e:
            logger.warning("error log flush failed (%d records kept): %s", len(self._records), e)
            return None
        self._records.clear()
        return fp
