# SMB Cashflow - Cash-flow ledger & settlement engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Database layer for SMB Cashflow.

This module provides all low-level accessors for the SQLite database used
by the application. It is responsible for:

- Initializing the database schema and migrating older layouts.
- Inserting and editing individual entries.
- Listing entries for one owner, optionally restricted to a Period.
- Settling Credit / Advance entries inside a single transaction.

------------------------------------------------------------------------------
Schema Overview
------------------------------------------------------------------------------

entries
   One row per cash-flow entry.

   Columns:
   - id              INTEGER PRIMARY KEY AUTOINCREMENT
   - user_id         TEXT    NOT NULL  -- owner reference
   - entry_type      TEXT    NOT NULL  -- "Cash Inflow" | "Cash Outflow" |
                                          "Credit" | "Advance"
   - category        TEXT    NOT NULL  -- "Sales" | "COGS" | "Opex" | "Assets"
   - payment_method  TEXT    NOT NULL  -- "Cash" | "Bank" | "None"
   - amount_cents    INTEGER NOT NULL  -- non-negative amount in cents
   - entry_date      TEXT    NOT NULL  -- ISO date "YYYY-MM-DD"
   - notes           TEXT
   - settled         INTEGER NOT NULL DEFAULT 0
   - settled_at      TEXT              -- ISO date, set iff settled = 1
   - created_at      TEXT    NOT NULL  -- UTC timestamp
   - updated_at      TEXT    NOT NULL  -- UTC timestamp
   - settlement_of   INTEGER           -- id of the settled Credit / Advance
   - settlement_kind TEXT              -- "credit" | "advance", set together
                                          with settlement_of

   Enumerations and the settled/settled_at pairing are enforced by CHECK
   constraints, so a row that bypasses the Python validation is still
   rejected by SQLite.

------------------------------------------------------------------------------
Settlement transaction
------------------------------------------------------------------------------

`settle_entry_transaction` opens a `BEGIN IMMEDIATE` transaction, which
takes the database write lock up front. Inside it:

1) the source row is re-read and checked (exists, Credit / Advance, open),
   and the derived entry is built from that stored row,
2) the source is flipped with `UPDATE ... WHERE settled = 0`; zero affected rows
   means another writer settled it first and `AlreadySettled` is raised,
3) the derived entry, if any, is inserted.

Any SQLite error (or an amount too large for an SQLite INTEGER) rolls the
whole transaction back and is reported as a
`SettlementPersistenceError`. Concurrent settlements of the same entry can
therefore never both succeed.

------------------------------------------------------------------------------
SQLite Notes
------------------------------------------------------------------------------

- All timestamps are stored as ISO-8601 text (UTC).
- Amounts are stored as integer cents and converted back to `Decimal`.
- Connections are opened per call and always closed.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path

from .entries import (
    CATEGORIES,
    ENTRY_TYPES,
    PAYMENT_METHODS,
    SETTLEMENT_KINDS,
    Entry,
    EntryUpdate,
    NewEntry,
    from_cents,
    to_cents,
)
from .errors import (
    AlreadySettled,
    EntryNotFound,
    LedgerError,
    SettlementPersistenceError,
)
from .periods import Period, filter_entries
from .repository import DerivedEntryBuilder, check_settleable

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Database configuration for SMB Cashflow.

    Attributes
    ----------
    engine:
        Database engine identifier. Only "sqlite" is supported.
    path:
        Path to the SQLite database file.
    timeout:
        Seconds to wait for the write lock held by another connection.
    """

    engine: str
    path: Path
    timeout: float = 5.0


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

_ENTRY_COLUMNS = """
    id,
    user_id,
    entry_type,
    category,
    payment_method,
    amount_cents,
    entry_date,
    notes,
    settled,
    settled_at,
    created_at,
    updated_at,
    settlement_of,
    settlement_kind
"""


def _sql_in(values: tuple[str, ...]) -> str:
    return ", ".join(f"'{v}'" for v in values)


def _ensure_sqlite(cfg: DatabaseConfig) -> None:
    """Raise if the configuration does not refer to a supported engine."""
    if cfg.engine.lower() != "sqlite":
        msg = (
            f"Unsupported database engine: {cfg.engine!r}. "
            "Only 'sqlite' is supported for now."
        )
        raise ValueError(msg)


def _connect(cfg: DatabaseConfig) -> sqlite3.Connection:
    """
    Open a SQLite connection in autocommit mode.

    Transactions are opened explicitly (`BEGIN` / `BEGIN IMMEDIATE`) by the
    callers that need them. The caller is responsible for closing the
    connection.
    """
    _ensure_sqlite(cfg)
    conn = sqlite3.connect(cfg.path, timeout=cfg.timeout, isolation_level=None)
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def _get_table_columns(conn: sqlite3.Connection, table: str) -> set[str]:
    """Return the column names of `table` (empty if the table is missing)."""
    cur = conn.execute(f"PRAGMA table_info({table});")
    return {row[1] for row in cur.fetchall()}


def _migrate_schema_if_needed(conn: sqlite3.Connection) -> None:
    """
    Bring an `entries` table created by an older version up to date.

    Idempotent. Databases created before settlement markers existed get the
    `settlement_of` / `settlement_kind` columns, initialized to NULL.
    """
    columns = _get_table_columns(conn, "entries")
    if not columns:
        return

    if "settlement_of" not in columns:
        conn.execute(
            "ALTER TABLE entries ADD COLUMN settlement_of INTEGER "
            "REFERENCES entries(id);"
        )
    if "settlement_kind" not in columns:
        conn.execute(
            "ALTER TABLE entries ADD COLUMN settlement_kind TEXT "
            f"CHECK (settlement_kind IN ({_sql_in(SETTLEMENT_KINDS)}));"
        )
        logger.info("Migrated entries table: added settlement columns")


def _create_schema_if_needed(conn: sqlite3.Connection) -> None:
    """
    Create tables and indexes if they do not exist yet.

    This function is idempotent and can be called multiple times safely.
    """
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS entries (
            id              INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id         TEXT    NOT NULL,
            entry_type      TEXT    NOT NULL
                            CHECK (entry_type IN ({_sql_in(ENTRY_TYPES)})),
            category        TEXT    NOT NULL
                            CHECK (category IN ({_sql_in(CATEGORIES)})),
            payment_method  TEXT    NOT NULL
                            CHECK (payment_method IN ({_sql_in(PAYMENT_METHODS)})),
            amount_cents    INTEGER NOT NULL CHECK (amount_cents >= 0),
            entry_date      TEXT    NOT NULL,  -- ISO date 'YYYY-MM-DD'
            notes           TEXT,
            settled         INTEGER NOT NULL DEFAULT 0,
            settled_at      TEXT,
            created_at      TEXT    NOT NULL,
            updated_at      TEXT    NOT NULL,
            settlement_of   INTEGER REFERENCES entries(id),
            settlement_kind TEXT
                            CHECK (settlement_kind IN ({_sql_in(SETTLEMENT_KINDS)})),

            CHECK ((settled = 0 AND settled_at IS NULL)
                OR (settled = 1 AND settled_at IS NOT NULL)),
            CHECK ((settlement_of IS NULL) = (settlement_kind IS NULL))
        );
        """
    )
    _migrate_schema_if_needed(conn)

    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_entries_owner_date
            ON entries(user_id, entry_date);
        """
    )


def _now_utc_iso() -> str:
    """Return the current UTC datetime as ISO string."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _row_to_entry(row: tuple) -> Entry:
    """
    Convert a database row (as returned by cursor.fetchone / fetchall) into
    an Entry instance.

    Expected row layout: the columns of `_ENTRY_COLUMNS`, in order.
    """
    (
        entry_id,
        user_id,
        entry_type,
        category,
        payment_method,
        amount_cents,
        entry_date_str,
        notes,
        settled_int,
        settled_at_str,
        created_at_str,
        updated_at_str,
        settlement_of,
        settlement_kind,
    ) = row

    return Entry(
        id=entry_id,
        user_id=user_id,
        entry_type=entry_type,
        category=category,
        payment_method=payment_method,
        amount=from_cents(amount_cents),
        entry_date=date.fromisoformat(entry_date_str),
        notes=notes,
        settled=bool(settled_int),
        settled_at=(
            date.fromisoformat(settled_at_str) if settled_at_str is not None else None
        ),
        created_at=datetime.fromisoformat(created_at_str),
        updated_at=datetime.fromisoformat(updated_at_str),
        settlement_of=settlement_of,
        settlement_kind=settlement_kind,
    )


def _insert(conn: sqlite3.Connection, new_entry: NewEntry) -> int:
    now_iso = _now_utc_iso()
    cur = conn.execute(
        """
        INSERT INTO entries (
            user_id,
            entry_type,
            category,
            payment_method,
            amount_cents,
            entry_date,
            notes,
            settled,
            settled_at,
            created_at,
            updated_at,
            settlement_of,
            settlement_kind
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, 0, NULL, ?, ?, ?, ?);
        """,
        (
            new_entry.user_id,
            new_entry.entry_type,
            new_entry.category,
            new_entry.payment_method,
            to_cents(new_entry.amount),
            new_entry.entry_date.isoformat(),
            new_entry.notes,
            now_iso,
            now_iso,
            new_entry.settlement_of,
            new_entry.settlement_kind,
        ),
    )
    return cur.lastrowid


def _fetch_entry(conn: sqlite3.Connection, entry_id: int) -> Entry | None:
    cur = conn.execute(
        f"SELECT {_ENTRY_COLUMNS} FROM entries WHERE id = ?;",
        (entry_id,),
    )
    row = cur.fetchone()
    return _row_to_entry(row) if row is not None else None


def _rollback_quietly(conn: sqlite3.Connection) -> None:
    if conn.in_transaction:
        conn.rollback()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def init_database(cfg: DatabaseConfig) -> None:
    """
    Initialize the database schema if needed.

    - Creates the SQLite file (and its parent directory) if missing.
    - Creates tables and indexes if they are missing.
    - This function is idempotent: calling it multiple times is safe.

    Raises
    ------
    ValueError
        If cfg.engine is not supported.
    sqlite3.Error
        If schema creation fails.
    """
    cfg.path.parent.mkdir(parents=True, exist_ok=True)

    conn = _connect(cfg)
    try:
        _create_schema_if_needed(conn)
    finally:
        conn.close()


def get_entry_by_id(cfg: DatabaseConfig, entry_id: int) -> Entry | None:
    """Load a single entry by id, or None if it does not exist."""
    conn = _connect(cfg)
    try:
        return _fetch_entry(conn, entry_id)
    finally:
        conn.close()


def list_entries(
    cfg: DatabaseConfig,
    owner_id: str,
    period: Period | None = None,
) -> list[Entry]:
    """
    List the entries of one owner, ordered by entry_date then id.

    Parameters
    ----------
    cfg:
        Database configuration.
    owner_id:
        Owner whose entries are returned.
    period:
        Optional Period. Bounds are inclusive. The SQL query narrows on the
        date part of the bounds; exact datetime bounds are then applied in
        Python so both stores filter identically.
    """
    where_clauses = ["user_id = ?"]
    params: list[object] = [owner_id]

    if period is not None and period.start is not None:
        where_clauses.append("entry_date >= ?")
        params.append(period.start.date().isoformat())
    if period is not None and period.end is not None:
        where_clauses.append("entry_date <= ?")
        params.append(period.end.date().isoformat())

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            f"""
            SELECT {_ENTRY_COLUMNS}
              FROM entries
             WHERE {" AND ".join(where_clauses)}
             ORDER BY entry_date, id;
            """,
            params,
        )
        rows = cur.fetchall()
    finally:
        conn.close()

    entries = [_row_to_entry(row) for row in rows]
    if period is not None:
        entries = list(filter_entries(entries, period))
    return entries


def insert_entry(cfg: DatabaseConfig, new_entry: NewEntry) -> Entry:
    """Insert a new entry and return it with its id and timestamps."""
    conn = _connect(cfg)
    try:
        entry_id = _insert(conn, new_entry)
        entry = _fetch_entry(conn, entry_id)
    finally:
        conn.close()

    if entry is None:
        msg = f"Entry #{entry_id} was just inserted but could not be reloaded."
        raise RuntimeError(msg)

    logger.debug("Inserted entry #%d for owner %s", entry.id, entry.user_id)
    return entry


def update_entry(cfg: DatabaseConfig, entry_id: int, update: EntryUpdate) -> Entry:
    """
    Apply a partial update to an existing, unsettled entry.

    Raises
    ------
    ValueError
        If no fields are provided for update.
    EntryNotFound
        If the entry does not exist.
    AlreadySettled
        If the entry is settled: settled entries are frozen.
    """
    fields: list[str] = []
    params: list[object] = []

    if update.entry_type is not None:
        fields.append("entry_type = ?")
        params.append(update.entry_type)
    if update.category is not None:
        fields.append("category = ?")
        params.append(update.category)
    if update.payment_method is not None:
        fields.append("payment_method = ?")
        params.append(update.payment_method)
    if update.amount is not None:
        fields.append("amount_cents = ?")
        params.append(to_cents(update.amount))
    if update.entry_date is not None:
        fields.append("entry_date = ?")
        params.append(update.entry_date.isoformat())
    if update.notes is not None:
        fields.append("notes = ?")
        params.append(update.notes)

    if not fields:
        raise ValueError("No fields to update in EntryUpdate.")

    # Always update the updated_at timestamp
    fields.append("updated_at = ?")
    params.append(_now_utc_iso())
    params.append(entry_id)

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            f"""
            UPDATE entries
               SET {", ".join(fields)}
             WHERE id = ?
               AND settled = 0;
            """,
            params,
        )
        if cur.rowcount == 0:
            existing = _fetch_entry(conn, entry_id)
            if existing is None:
                raise EntryNotFound(entry_id)
            raise AlreadySettled(entry_id)
        result = _fetch_entry(conn, entry_id)
    finally:
        conn.close()

    if result is None:
        msg = f"Entry #{entry_id} was updated but could not be reloaded."
        raise RuntimeError(msg)
    return result


def _load_settleable(conn: sqlite3.Connection, entry_id: int) -> Entry:
    """Re-read the source row inside the caller's transaction and check it."""
    stored = _fetch_entry(conn, entry_id)
    if stored is None:
        raise EntryNotFound(entry_id)
    check_settleable(stored)
    return stored


def _mark_settled(conn: sqlite3.Connection, entry_id: int, settled_at: date) -> None:
    """Flip an open row to settled, inside the caller's transaction."""
    cur = conn.execute(
        """
        UPDATE entries
           SET settled    = 1,
               settled_at = ?,
               updated_at = ?
         WHERE id = ?
           AND settled = 0;
        """,
        (settled_at.isoformat(), _now_utc_iso(), entry_id),
    )
    if cur.rowcount == 0:
        raise AlreadySettled(entry_id)


def _no_derived_entry(stored: Entry) -> None:
    return None


def settle_entry_transaction(
    cfg: DatabaseConfig,
    entry_id: int,
    settled_at: date,
    build_derived: DerivedEntryBuilder,
) -> tuple[Entry, Entry | None]:
    """
    Mark an entry settled and insert its derived entry atomically.

    `build_derived` receives the source row as re-read inside the
    transaction and returns the entry to insert, or None.

    Returns
    -------
    (source, derived_entry)
        The settled source entry and the inserted derived entry (or None).

    Raises
    ------
    EntryNotFound, InvalidEntryKind, AlreadySettled
        Checked inside the transaction; nothing is written.
    SettlementPersistenceError
        If SQLite fails; the transaction is rolled back.
    """
    conn = _connect(cfg)
    try:
        try:
            conn.execute("BEGIN IMMEDIATE;")
            stored = _load_settleable(conn, entry_id)
            derived = build_derived(stored)
            _mark_settled(conn, entry_id, settled_at)
            derived_id = _insert(conn, derived) if derived is not None else None
            conn.execute("COMMIT;")
        except LedgerError:
            _rollback_quietly(conn)
            raise
        except (sqlite3.Error, OverflowError) as exc:
            try:
                _rollback_quietly(conn)
            except sqlite3.Error:
                logger.exception("Rollback failed while settling entry #%d", entry_id)
            logger.error("Settlement of entry #%d failed: %s", entry_id, exc)
            raise SettlementPersistenceError(entry_id, exc) from exc

        source = _fetch_entry(conn, entry_id)
        derived_entry = (
            _fetch_entry(conn, derived_id) if derived_id is not None else None
        )
    finally:
        conn.close()

    if source is None:
        msg = f"Entry #{entry_id} was settled but could not be reloaded."
        raise RuntimeError(msg)
    return source, derived_entry


def update_entry_settlement(
    cfg: DatabaseConfig, entry_id: int, settled_at: date
) -> None:
    """Mark an entry settled without creating any derived entry."""
    settle_entry_transaction(cfg, entry_id, settled_at, _no_derived_entry)


def has_entries(cfg: DatabaseConfig, owner_id: str | None = None) -> bool:
    """Return True if the database contains at least one entry (for the owner)."""
    conn = _connect(cfg)
    try:
        if owner_id is None:
            cur = conn.execute("SELECT 1 FROM entries LIMIT 1;")
        else:
            cur = conn.execute(
                "SELECT 1 FROM entries WHERE user_id = ? LIMIT 1;", (owner_id,)
            )
        return cur.fetchone() is not None
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Repository adapter
# ---------------------------------------------------------------------------


class SqliteEntryRepository:
    """`EntryRepository` backed by the SQLite helpers of this module."""

    def __init__(self, cfg: DatabaseConfig) -> None:
        self.cfg = cfg
        init_database(cfg)

    def list_entries(self, owner_id: str, period: Period | None = None) -> list[Entry]:
        return list_entries(self.cfg, owner_id, period)

    def get_entry(self, entry_id: int) -> Entry | None:
        return get_entry_by_id(self.cfg, entry_id)

    def insert_entry(self, new_entry: NewEntry) -> Entry:
        return insert_entry(self.cfg, new_entry)

    def update_entry(self, entry_id: int, update: EntryUpdate) -> Entry:
        return update_entry(self.cfg, entry_id, update)

    def update_entry_settlement(self, entry_id: int, settled_at: date) -> None:
        update_entry_settlement(self.cfg, entry_id, settled_at)

    def transactional_settle(
        self,
        entry_id: int,
        settled_at: date,
        build_derived: DerivedEntryBuilder,
    ) -> tuple[Entry, Entry | None]:
        return settle_entry_transaction(self.cfg, entry_id, settled_at, build_derived)
