# SMB Cashflow - Cash-flow ledger & settlement engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Entry store interface and in-memory implementation.

The settlement resolver and the services only talk to the store through
the `EntryRepository` protocol below. Two implementations ship with the
package:

- `InMemoryEntryRepository` (this module): a process-local store, used by
  tests and by callers embedding the engine without a database;
- `db.SqliteEntryRepository`: the SQLite-backed store used by the CLI.

Required operations
-------------------
- `list_entries(owner_id, period=None)`      read, owner-scoped.
- `get_entry(entry_id)`                      read a single entry.
- `insert_entry(new_entry)`                  assigns id and timestamps.
- `update_entry(entry_id, update)`           partial edit of an open entry.
- `update_entry_settlement(entry_id, settled_at)`
                                             flips settled/settled_at.
- `transactional_settle(entry_id, settled_at, build_derived)`
                                             re-reads the source, marks it
                                             settled and inserts the entry
                                             built from it in a single
                                             all-or-nothing step.
"""

import itertools
import logging
import threading
from collections.abc import Callable
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Optional, Protocol

from .entries import SETTLEABLE_TYPES, Entry, EntryUpdate, NewEntry
from .errors import (
    AlreadySettled,
    EntryNotFound,
    InvalidEntryKind,
    LedgerError,
    SettlementPersistenceError,
)
from .periods import Period, filter_entries

logger = logging.getLogger(__name__)

DerivedEntryBuilder = Callable[[Entry], Optional[NewEntry]]
"""Builds the derived entry of a settlement from the stored source entry."""


class EntryRepository(Protocol):
    """Narrow read/write interface required by the engine."""

    def list_entries(
        self, owner_id: str, period: Optional[Period] = None
    ) -> list[Entry]: ...

    def get_entry(self, entry_id: int) -> Optional[Entry]: ...

    def insert_entry(self, new_entry: NewEntry) -> Entry: ...

    def update_entry(self, entry_id: int, update: EntryUpdate) -> Entry: ...

    def update_entry_settlement(self, entry_id: int, settled_at: date) -> None: ...

    def transactional_settle(
        self,
        entry_id: int,
        settled_at: date,
        build_derived: DerivedEntryBuilder,
    ) -> tuple[Entry, Optional[Entry]]: ...


def _now_utc() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def check_settleable(entry: Entry) -> None:
    """
    Raise if `entry` cannot be settled.

    Raises
    ------
    InvalidEntryKind
        If the entry is neither Credit nor Advance.
    AlreadySettled
        If the entry is already settled.
    """
    if entry.entry_type not in SETTLEABLE_TYPES:
        raise InvalidEntryKind(entry.id, entry.entry_type)
    if entry.settled:
        raise AlreadySettled(entry.id)


class InMemoryEntryRepository:
    """
    Process-local entry store.

    All mutations happen under a single lock, so concurrent settlements of
    the same entry are serialized: the second one observes `settled=True`
    and fails with `AlreadySettled`.
    """

    def __init__(self, entries: Optional[list[Entry]] = None) -> None:
        self._entries: dict[int, Entry] = {}
        self._lock = threading.Lock()
        start = 1
        for entry in entries or []:
            self._entries[entry.id] = entry
            start = max(start, entry.id + 1)
        self._ids = itertools.count(start)

    def _allocate_id(self) -> int:
        return next(self._ids)

    def _build_entry(self, new_entry: NewEntry) -> Entry:
        now = _now_utc()
        return Entry(
            id=self._allocate_id(),
            user_id=new_entry.user_id,
            entry_type=new_entry.entry_type,
            category=new_entry.category,
            payment_method=new_entry.payment_method,
            amount=new_entry.amount,
            entry_date=new_entry.entry_date,
            notes=new_entry.notes,
            settled=False,
            settled_at=None,
            created_at=now,
            updated_at=now,
            settlement_of=new_entry.settlement_of,
            settlement_kind=new_entry.settlement_kind,
        )

    def _require(self, entry_id: int) -> Entry:
        entry = self._entries.get(entry_id)
        if entry is None:
            raise EntryNotFound(entry_id)
        return entry

    # -- reads --------------------------------------------------------------

    def list_entries(
        self, owner_id: str, period: Optional[Period] = None
    ) -> list[Entry]:
        with self._lock:
            owned = [e for e in self._entries.values() if e.user_id == owner_id]
        if period is not None:
            owned = list(filter_entries(owned, period))
        return sorted(owned, key=lambda e: (e.entry_date, e.id))

    def get_entry(self, entry_id: int) -> Optional[Entry]:
        with self._lock:
            return self._entries.get(entry_id)

    # -- writes -------------------------------------------------------------

    def insert_entry(self, new_entry: NewEntry) -> Entry:
        with self._lock:
            entry = self._build_entry(new_entry)
            self._entries[entry.id] = entry
        logger.debug("Inserted entry #%d for owner %s", entry.id, entry.user_id)
        return entry

    def update_entry(self, entry_id: int, update: EntryUpdate) -> Entry:
        with self._lock:
            current = self._require(entry_id)
            if current.settled:
                raise AlreadySettled(entry_id)
            changes = {
                name: value
                for name, value in (
                    ("entry_type", update.entry_type),
                    ("category", update.category),
                    ("payment_method", update.payment_method),
                    ("amount", update.amount),
                    ("entry_date", update.entry_date),
                    ("notes", update.notes),
                )
                if value is not None
            }
            if not changes:
                raise ValueError("No fields to update in EntryUpdate.")
            updated = replace(current, updated_at=_now_utc(), **changes)
            self._entries[entry_id] = updated
        return updated

    def update_entry_settlement(self, entry_id: int, settled_at: date) -> None:
        with self._lock:
            current = self._require(entry_id)
            check_settleable(current)
            self._entries[entry_id] = replace(
                current, settled=True, settled_at=settled_at, updated_at=_now_utc()
            )

    def transactional_settle(
        self,
        entry_id: int,
        settled_at: date,
        build_derived: DerivedEntryBuilder,
    ) -> tuple[Entry, Optional[Entry]]:
        with self._lock:
            current = self._require(entry_id)
            check_settleable(current)

            # Build everything first, publish last: a failure while building
            # leaves the store untouched.
            try:
                derived = build_derived(current)
                derived_entry = (
                    self._build_entry(derived) if derived is not None else None
                )
                source = replace(
                    current,
                    settled=True,
                    settled_at=settled_at,
                    updated_at=_now_utc(),
                )
            except LedgerError:
                raise
            except Exception as exc:
                raise SettlementPersistenceError(entry_id, exc) from exc

            self._entries[entry_id] = source
            if derived_entry is not None:
                self._entries[derived_entry.id] = derived_entry

        return source, derived_entry
