from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

"""Database operations produced by the commit executor.

A commit is an ordered list of Operation values. Nothing here talks to the
database; invoice_import/db/commit.py turns the list into SQL inside a single
transaction.
"""

__all__ = [
    "OperationKind",
    "Operation",
    "ENTITIES",
]

# Insert order matters for foreign keys
ENTITIES = ("clients", "invoices", "line_items")


class OperationKind(Enum):
    CREATE = "create"
    UPDATE = "update"
    LINK = "link"


@dataclass(frozen=True)
class Operation:
    """One create / update / link against an entity.

    - CREATE: data holds every column value including "id"
    - UPDATE: data holds the columns to change on record_id
    - LINK: relation names the relationship, targets the linked ids
    """
    kind: OperationKind
    entity: str  # clients | invoices | line_items
    record_id: str
    data: dict[str, Any] = field(default_factory=dict)
    relation: str | None = None  # owner | client | line_items
    targets: tuple[str, ...] = ()

    @staticmethod
    def create(entity: str, record_id: str, data: dict[str, Any]) -> Operation:
        return Operation(OperationKind.CREATE, entity, record_id, data={"id": record_id, **data})

    @staticmethod
    def update(entity: str, record_id: str, data: dict[str, Any]) -> Operation:
        return Operation(OperationKind.UPDATE, entity, record_id, data=dict(data))

    @staticmethod
    def link(entity: str, record_id: str, relation: str, *targets: str) -> Operation:
        return Operation(OperationKind.LINK, entity, record_id, relation=relation, targets=tuple(targets))
