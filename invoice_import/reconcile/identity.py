from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass

from ..models.pending import PendingClient
from ..models.records import ExistingClient

"""Client identity resolution.

A ClientDirectory holds the existing-client snapshot plus every client
registered earlier in the same batch, and answers "who is this?" with a
strict priority: tax ID (GSTIN), then email, then case-insensitive display
name. For each predicate the snapshot is searched before the batch; the first
hit wins. Values are compared exactly after trimming.
"""

__all__ = [
    "MATCH_PRIORITY",
    "ClientMatch",
    "ClientDirectory",
    "identity_token",
    "new_id",
]

MATCH_PRIORITY = ("tax_id", "email", "name")

_FIELD_LABELS = {"tax_id": "GSTIN", "email": "email", "name": "name"}


def new_id() -> str:
    return str(uuid.uuid4())


def identity_token(gst: str, email: str, display_name: str) -> str:
    """Batch key for a client: tax ID, else email, else lowercased name."""
    return gst or email or display_name.lower()


@dataclass(frozen=True)
class _Entry:
    client_id: str
    tax_id: str
    email: str
    name: str  # lowercased
    in_batch: bool
    already_tds: bool = False
    pending: PendingClient | None = None


@dataclass(frozen=True)
class ClientMatch:
    client_id: str
    matched_on: str  # tax_id | email | name | token
    in_batch: bool
    already_tds: bool = False
    pending: PendingClient | None = None


def _clean(value: str | None) -> str:
    return (value or "").strip()


class ClientDirectory:
    """Existing snapshot + in-batch clients, searched in priority order."""

    def __init__(self, existing: Iterable[ExistingClient] = ()) -> None:
        self._entries: list[_Entry] = [
            _Entry(
                client_id=c.id,
                tax_id=_clean(c.gst),
                email=_clean(c.email),
                name=_clean(c.display_name).lower(),
                in_batch=False,
                already_tds=bool(c.is_tds_deducting),
            )
            for c in existing
        ]
        self._by_token: dict[str, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _lookup(self, field_name: str, value: str) -> _Entry | None:
        # 既存スナップショットを先に、次にバッチ内
        for in_batch in (False, True):
            for entry in self._entries:
                if entry.in_batch is in_batch and getattr(entry, field_name) == value:
                    return entry
        return None

    @staticmethod
    def _lookup_keys(gst: str, email: str, display_name: str) -> list[tuple[str, str]]:
        return [
            ("tax_id", _clean(gst)),
            ("email", _clean(email)),
            ("name", _clean(display_name).lower()),
        ]

    def match(self, gst: str, email: str, display_name: str) -> ClientMatch | None:
        """Resolve a client; None means nobody matches and a new one is needed."""
        for field_name, value in self._lookup_keys(gst, email, display_name):
            if not value:
                continue
            entry = self._lookup(field_name, value)
            if entry is not None:
                return self._to_match(entry, field_name)
        token = identity_token(_clean(gst), _clean(email), _clean(display_name))
        entry = self._by_token.get(token)
        if entry is not None:
            return self._to_match(entry, "token")
        return None

    def conflicts(self, match: ClientMatch, gst: str, email: str, display_name: str) -> list[str]:
        """Describe lower-priority fields that point at a different client.

        Resolution is unaffected; the caller reports these as identity conflicts.
        """
        if match.matched_on not in MATCH_PRIORITY:
            return []
        messages: list[str] = []
        lower = MATCH_PRIORITY[MATCH_PRIORITY.index(match.matched_on) + 1:]
        for field_name, value in self._lookup_keys(gst, email, display_name):
            if field_name not in lower or not value:
                continue
            other = self._lookup(field_name, value)
            if other is not None and other.client_id != match.client_id:
                messages.append(
                    f"{_FIELD_LABELS[match.matched_on]} matched client {match.client_id} "
                    f"but {_FIELD_LABELS[field_name]} '{value}' belongs to client {other.client_id}"
                )
        return messages

    def register(
        self,
        client_id: str,
        gst: str,
        email: str,
        display_name: str,
        *,
        pending: PendingClient | None = None,
    ) -> str:
        """Add a client created in this batch; returns its identity token."""
        entry = _Entry(
            client_id=client_id,
            tax_id=_clean(gst),
            email=_clean(email),
            name=_clean(display_name).lower(),
            in_batch=True,
            pending=pending,
        )
        self._entries.append(entry)
        token = identity_token(entry.tax_id, entry.email, _clean(display_name))
        self._by_token.setdefault(token, entry)
        return token

    @staticmethod
    def _to_match(entry: _Entry, matched_on: str) -> ClientMatch:
        return ClientMatch(
            client_id=entry.client_id,
            matched_on=matched_on,
            in_batch=entry.in_batch,
            already_tds=entry.already_tds,
            pending=entry.pending,
        )
