# SMB Cashflow - Cash-flow ledger & settlement engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
High-level services for entries, settlements and dashboards.

This module sits between:
- the entry stores (`repository.InMemoryEntryRepository`,
  `db.SqliteEntryRepository`), and
- user-facing layers such as the CLI or a future Web UI.

Every function takes the store as its first argument and works for one
owner at a time. Entries are always re-read from the store before being
acted upon, so a caller holding a stale copy cannot bypass ownership or
settlement checks.

Responsibilities
----------------
1) CRUD operations
   - Create entries from raw values (validated at the boundary).
   - Edit unsettled entries using partial updates.
   - Load individual entries, scoped to their owner.

2) Settlement
   - Settle a Credit / Advance entry by id and return both the settled
     source and the derived cash entry.

3) Reporting
   - List entries for any Period.
   - Build a dashboard (cash, profit, categories, payment methods,
     pending balances, expense breakdown) for a Period.
   - Build the monthly profit trend.
"""

import logging
from datetime import datetime
from typing import Optional

from .config import AppConfig
from .db import SqliteEntryRepository
from .engine import Dashboard, TrendPoint, build_dashboard, profit_trend
from .entries import Entry, EntryUpdate, validate_new_entry, validate_update
from .errors import EntryNotFound, NotAuthorized
from .periods import Period
from .repository import EntryRepository
from .settlement import Authorizer, SettlementResult, owner_only, settle_entry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def open_repository(app_config: AppConfig) -> SqliteEntryRepository:
    """Return the SQLite store described by the application configuration."""
    return SqliteEntryRepository(app_config.database)


def _load_owned(repository: EntryRepository, owner_id: str, entry_id: int) -> Entry:
    entry = repository.get_entry(entry_id)
    if entry is None:
        raise EntryNotFound(entry_id)
    if entry.user_id != owner_id:
        raise NotAuthorized(f"Entry #{entry_id} does not belong to {owner_id!r}.")
    return entry


# ---------------------------------------------------------------------------
# Create / read / update
# ---------------------------------------------------------------------------


def create_entry(
    repository: EntryRepository,
    owner_id: str,
    *,
    entry_type,
    category,
    payment_method,
    amount,
    entry_date,
    notes: Optional[str] = None,
) -> Entry:
    """
    Validate raw values and store a new entry for `owner_id`.

    Raises
    ------
    InvalidEntryField
        If any value is outside its closed enumeration or malformed.
    """
    new_entry = validate_new_entry(
        user_id=owner_id,
        entry_type=entry_type,
        category=category,
        payment_method=payment_method,
        amount=amount,
        entry_date=entry_date,
        notes=notes,
    )
    created = repository.insert_entry(new_entry)
    logger.info(
        "Created %s entry #%d (%s, %s)",
        created.entry_type,
        created.id,
        created.category,
        created.amount,
    )
    return created


def load_entry(repository: EntryRepository, owner_id: str, entry_id: int) -> Entry:
    """Load one entry, checking that it belongs to `owner_id`."""
    return _load_owned(repository, owner_id, entry_id)


def edit_entry(
    repository: EntryRepository,
    owner_id: str,
    entry_id: int,
    update: EntryUpdate,
) -> Entry:
    """
    Edit an existing, unsettled entry using a partial update.

    Raises
    ------
    ValueError
        If no fields are provided for update.
    AlreadySettled
        If the entry is settled.
    """
    _load_owned(repository, owner_id, entry_id)
    return repository.update_entry(entry_id, validate_update(update))


def list_entries_for_period(
    repository: EntryRepository,
    owner_id: str,
    period: Optional[Period] = None,
) -> list[Entry]:
    """List the owner's entries within the (inclusive) period."""
    return repository.list_entries(owner_id, period)


def list_open_entries(repository: EntryRepository, owner_id: str) -> list[Entry]:
    """List the owner's unsettled Credit / Advance entries."""
    return [e for e in repository.list_entries(owner_id) if e.is_settleable]


# ---------------------------------------------------------------------------
# Settlement
# ---------------------------------------------------------------------------


def settle(
    repository: EntryRepository,
    owner_id: str,
    entry_id: int,
    amount,
    settlement_date,
    *,
    authorize: Authorizer = owner_only,
) -> SettlementResult:
    """
    Settle the owner's Credit / Advance entry `entry_id`.

    See `settlement.settle_entry` for the rules and the raised errors.
    """
    entry = repository.get_entry(entry_id)
    if entry is None:
        raise EntryNotFound(entry_id)

    return settle_entry(
        repository,
        entry,
        amount,
        settlement_date,
        owner_id=owner_id,
        authorize=authorize,
    )


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


def dashboard_for_period(
    repository: EntryRepository,
    owner_id: str,
    period: Period,
) -> Dashboard:
    """
    Build the dashboard of one owner for a period.

    All entries are loaded so that pending balances include open entries
    dated outside the period.
    """
    entries = repository.list_entries(owner_id)
    return build_dashboard(entries, period)


def profit_trend_for_owner(
    repository: EntryRepository,
    owner_id: str,
    months: int,
    *,
    now: Optional[datetime] = None,
) -> list[TrendPoint]:
    return profit_trend(repository.list_entries(owner_id), months, now=now)
