from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from .import_summary import ClientImportSummary, ImportSummary

"""ImportRun domain model and RunStatus enum.

An ImportRun tracks one spreadsheet through the pipeline, from parse to
commit, and is what the orchestrator hands back to the CLI.
"""


class RunStatus(Enum):
    """Status for ImportRun lifecycle.

    State transitions: pending -> parsed -> (success | failed | cancelled)

    - PENDING: file accepted, not yet parsed
    - PARSED: rows reconciled, summary available, nothing committed yet
    - SUCCESS: operations committed (or counted in mock mode)
    - FAILED: parse or commit failed, nothing written
    - CANCELLED: summary discarded before commit
    """
    PENDING = "pending"
    PARSED = "parsed"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ImportRun:
    """Processing context and outcome for one import file."""
    path: Path
    kind: str  # "invoices" | "clients"
    status: RunStatus = RunStatus.PENDING
    start_time: datetime | None = None
    end_time: datetime | None = None
    summary: ImportSummary | ClientImportSummary | None = None
    committed_operations: int = 0
    error: str | None = None  # Failure reason summary

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def elapsed_seconds(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()
