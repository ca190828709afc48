from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from psycopg2.extras import execute_values

"""Batched INSERT through psycopg2.extras.execute_values.

Used by the commit executor for the CREATE operations of one table. The caller
owns the transaction; a failure is wrapped in BatchInsertError and the caller
rolls back.
"""


class BatchInsertError(Exception):
    pass


@dataclass(frozen=True)
class BatchMetrics:
    """Timing for a single batch insert."""
    table: str
    batch_size: int  # Number of rows in this batch
    elapsed_seconds: float  # Time spent on execute_values call
    start_time: float
    end_time: float


@dataclass(frozen=True)
class InsertResult:
    inserted_rows: int


def batch_insert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    page_size: int = 1000,
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> InsertResult:
    """Insert rows into table using execute_values.

    Parameters
    ----------
    cursor: psycopg2 cursor (transaction already open)
    table: target table name (from a fixed whitelist, not user input)
    columns: insert columns, same order as each row
    rows: row value sequences
    page_size: execute_values page size
    metrics_callback: receives BatchMetrics after the call; not invoked for
        empty input
    """
    rows_list = list(rows)
    if not rows_list:
        return InsertResult(inserted_rows=0)

    cols_sql = ",".join(f'"{c}"' for c in columns)
    sql = f'INSERT INTO "{table}" ({cols_sql}) VALUES %s'

    start_time = time.time()
    try:
        execute_values(cursor, sql, rows_list, page_size=page_size)
    except Exception as e:
        raise BatchInsertError(f"insert into {table} failed: {e}") from e
    finally:
        end_time = time.time()
        if metrics_callback is not None:
            metrics_callback(
                BatchMetrics(
                    table=table,
                    batch_size=len(rows_list),
                    elapsed_seconds=end_time - start_time,
                    start_time=start_time,
                    end_time=end_time,
                )
            )

    return InsertResult(inserted_rows=len(rows_list))
