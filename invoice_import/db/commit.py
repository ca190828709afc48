from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..models.import_summary import ClientImportSummary, ImportSummary
from ..models.operations import ENTITIES, Operation, OperationKind
from ..reconcile.identity import new_id
from .batch_insert import BatchMetrics, batch_insert

"""Commit executor.

Turns a reconciled summary into an ordered list of create / update / link
operations and submits them as one transaction:

    BEGIN
      INSERT clients, invoices, line_items (execute_values, one batch per table)
      UPDATE ...                       (field updates, e.g. TDS flag)
      UPDATE ... SET <fk> = ...        (links: owner, client, line items)
    COMMIT

Any failure rolls the whole transaction back and raises CommitError; there is
no partial retry. Re-running the import is safe because already-imported
invoices are skipped during reconciliation.

Tax amounts are always recomputed here from subtotal and rates.
"""

__all__ = [
    "CommitError",
    "TaxBreakdown",
    "CommitResult",
    "compute_taxes",
    "build_invoice_operations",
    "build_client_operations",
    "commit_operations",
    "statement_count",
]

logger = logging.getLogger(__name__)

# (entity, relation) -> (table updated, fk column, reverse)
# reverse=False: UPDATE entity SET fk = target WHERE id = record_id
# reverse=True:  UPDATE table SET fk = record_id WHERE id = ANY(targets)
LINKS: dict[tuple[str, str], tuple[str, str, bool]] = {
    ("clients", "owner"): ("clients", "owner_id", False),
    ("invoices", "owner"): ("invoices", "owner_id", False),
    ("invoices", "client"): ("invoices", "client_id", False),
    ("invoices", "line_items"): ("line_items", "invoice_id", True),
}


class CommitError(Exception):
    """Raised when the import transaction could not be committed."""


class _Progress(Protocol):
    def advance(self, steps: int = 1) -> None: ...


@dataclass(frozen=True)
class TaxBreakdown:
    cgst: float
    sgst: float
    igst: float
    total: float


def compute_taxes(
    subtotal: float, tax_type: str, cgst_rate: float, sgst_rate: float, igst_rate: float
) -> TaxBreakdown:
    """Interstate -> IGST only; anything else -> CGST + SGST."""
    cgst = sgst = igst = 0.0
    if tax_type == "interstate":
        igst = subtotal * igst_rate / 100
    else:
        cgst = subtotal * cgst_rate / 100
        sgst = subtotal * sgst_rate / 100
    return TaxBreakdown(cgst=cgst, sgst=sgst, igst=igst, total=subtotal + cgst + sgst + igst)


def _require_owner(owner_id: str) -> None:
    if not owner_id:
        raise ValueError("owner_id is required to build import operations")


def build_invoice_operations(
    summary: ImportSummary,
    owner_id: str,
    id_factory: Callable[[], str] = new_id,
) -> list[Operation]:
    _require_owner(owner_id)
    ops: list[Operation] = []

    for client_id in summary.tds_client_ids:
        ops.append(Operation.update("clients", client_id, {"is_tds_deducting": True}))

    for client in summary.new_clients:
        data = client.to_record()
        data.pop("id")
        ops.append(Operation.create("clients", client.id, data))
        ops.append(Operation.link("clients", client.id, "owner", owner_id))

    for inv in summary.invoices_to_import:
        if inv.client_id is None:
            raise ValueError(f"invoice {inv.invoice_number} has no resolved client")
        invoice_id = id_factory()
        taxes = compute_taxes(inv.subtotal, inv.tax_type, inv.cgst_rate, inv.sgst_rate, inv.igst_rate)
        ops.append(
            Operation.create(
                "invoices",
                invoice_id,
                {
                    "invoice_number": inv.invoice_number,
                    "invoice_date": inv.invoice_date,
                    "due_date": inv.due_date,
                    "order_number": inv.order_number,
                    "subject": inv.subject,
                    "status": inv.status,
                    "tax_type": inv.tax_type,
                    "subtotal": inv.subtotal,
                    "cgst": taxes.cgst,
                    "sgst": taxes.sgst,
                    "igst": taxes.igst,
                    "total": taxes.total,
                    "notes": inv.notes,
                    "terms_and_conditions": inv.terms_and_conditions,
                    "tds_deducted": inv.tds_deducted,
                    "tds_amount": inv.tds_amount,
                },
            )
        )
        ops.append(Operation.link("invoices", invoice_id, "owner", owner_id))
        ops.append(Operation.link("invoices", invoice_id, "client", inv.client_id))
        for li in inv.line_items:
            ops.append(
                Operation.create(
                    "line_items",
                    li.id,
                    {
                        "description": li.description,
                        "sac_code": li.sac_code,
                        "quantity": li.quantity,
                        "rate": li.rate,
                        "amount": li.amount,
                    },
                )
            )
        ops.append(Operation.link("invoices", invoice_id, "line_items", *[li.id for li in inv.line_items]))
    return ops


def build_client_operations(summary: ClientImportSummary, owner_id: str) -> list[Operation]:
    _require_owner(owner_id)
    ops: list[Operation] = []
    for record in summary.clients_to_import:
        data = record.to_record()
        data.pop("id")
        if record.is_new:
            ops.append(Operation.create("clients", record.id, data))
            ops.append(Operation.link("clients", record.id, "owner", owner_id))
        else:
            ops.append(Operation.update("clients", record.id, data))
    return ops


@dataclass
class CommitResult:
    operations: int
    created: dict[str, int] = field(default_factory=dict)
    updated: int = 0
    linked: int = 0
    statements: int = 0
    mock: bool = False


@dataclass
class _Plan:
    creates: dict[str, list[Operation]]
    updates: list[Operation]
    links: list[Operation]

    @property
    def statement_count(self) -> int:
        return sum(1 for ops in self.creates.values() if ops) + len(self.updates) + len(self.links)


def _plan(operations: Sequence[Operation]) -> _Plan:
    creates: dict[str, list[Operation]] = {entity: [] for entity in ENTITIES}
    updates: list[Operation] = []
    links: list[Operation] = []
    for op in operations:
        if op.entity not in creates:
            raise CommitError(f"unknown entity '{op.entity}'")
        if op.kind is OperationKind.CREATE:
            creates[op.entity].append(op)
        elif op.kind is OperationKind.UPDATE:
            if not op.data:
                raise CommitError(f"empty update for {op.entity} {op.record_id}")
            updates.append(op)
        else:
            link = LINKS.get((op.entity, op.relation or ""))
            if link is None:
                raise CommitError(f"unknown link {op.entity}.{op.relation}")
            if not link[2] and len(op.targets) != 1:
                raise CommitError(f"link {op.entity}.{op.relation} needs exactly one target")
            links.append(op)
    return _Plan(creates=creates, updates=updates, links=links)


def _insert_creates(
    cursor: Any, table: str, ops: list[Operation], page_size: int, metrics: list[BatchMetrics]
) -> None:
    columns: list[str] = []
    for op in ops:
        for col in op.data:
            if col not in columns:
                columns.append(col)
    rows = [[op.data.get(col) for col in columns] for op in ops]
    batch_insert(cursor, table, columns, rows, page_size=page_size, metrics_callback=metrics.append)


def _apply_update(cursor: Any, op: Operation) -> None:
    assignments = ", ".join(f'"{col}" = %s' for col in op.data)
    cursor.execute(
        f'UPDATE "{op.entity}" SET {assignments} WHERE "id" = %s',
        (*op.data.values(), op.record_id),
    )


def _apply_link(cursor: Any, op: Operation) -> None:
    table, column, reverse = LINKS[(op.entity, op.relation or "")]
    if reverse:
        if not op.targets:
            return
        cursor.execute(
            f'UPDATE "{table}" SET "{column}" = %s WHERE "id" = ANY(%s)',
            (op.record_id, list(op.targets)),
        )
    else:
        cursor.execute(
            f'UPDATE "{table}" SET "{column}" = %s WHERE "id" = %s',
            (op.targets[0], op.record_id),
        )


def commit_operations(
    cursor: Any,
    operations: Sequence[Operation],
    *,
    page_size: int = 1000,
    progress: _Progress | None = None,
) -> CommitResult:
    """Submit operations as one transaction.

    cursor=None is mock mode: the plan is validated and counted but nothing
    is sent.

    Raises
    ------
    CommitError: invalid operations, or any database failure (rolled back)
    """
    plan = _plan(operations)
    result = CommitResult(
        operations=len(operations),
        created={table: len(ops) for table, ops in plan.creates.items() if ops},
        updated=len(plan.updates),
        linked=len(plan.links),
        statements=plan.statement_count,
        mock=cursor is None,
    )
    if cursor is None:
        logger.debug("mock commit operations=%d statements=%d", result.operations, result.statements)
        return result

    metrics: list[BatchMetrics] = []
    try:
        cursor.execute("BEGIN")
        for table in ENTITIES:
            if plan.creates[table]:
                _insert_creates(cursor, table, plan.creates[table], page_size, metrics)
                if progress is not None:
                    progress.advance()
        for op in plan.updates:
            _apply_update(cursor, op)
            if progress is not None:
                progress.advance()
        for op in plan.links:
            _apply_link(cursor, op)
            if progress is not None:
                progress.advance()
        cursor.execute("COMMIT")
    except Exception as e:
        try:
            cursor.execute("ROLLBACK")
        except Exception as rollback_e:
            logger.warning("rollback failed: %s", rollback_e)
        raise CommitError(f"import commit failed: {e}") from e

    for m in metrics:
        logger.debug("insert table=%s rows=%d elapsed=%.4fs", m.table, m.batch_size, m.elapsed_seconds)
    return result


def statement_count(operations: Sequence[Operation]) -> int:
    """Number of progress steps commit_operations() will report."""
    return _plan(operations).statement_count
