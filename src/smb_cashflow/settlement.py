# SMB Cashflow - Cash-flow ledger & settlement engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Settlement of Credit and Advance entries.

Settling realizes a Credit or an Advance into an actual cash movement:

- a Credit on Sales becomes money coming in once collected,
- a Credit on COGS / Opex / Assets becomes money going out once paid,
- an Advance on Sales is money paid out against future revenue,
- an Advance on COGS / Opex becomes money going out,
- an Advance on Assets creates no cash entry: the asset purchase carries
  its own cash entry.

The mapping is kept as a decision table (`SETTLEMENT_RULES`) keyed by
(entry_type, category). Its completeness for every settleable type and
category is checked when the module is imported.

Persistence is delegated to the store's `transactional_settle`. The store
re-reads the source entry under its lock or transaction, builds the derived
entry from that stored row, marks the source settled and inserts the derived
entry together, or does neither. Derived entries carry `settlement_of` and
`settlement_kind`, which the profit lens relies on; their note is only a
human-readable reference.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from .entries import (
    ADVANCE,
    CASH_INFLOW,
    CASH_OUTFLOW,
    CATEGORIES,
    CREDIT,
    SETTLEABLE_TYPES,
    Entry,
    EntryType,
    NewEntry,
    parse_amount,
    parse_entry_date,
)
from .errors import InvalidEntryField, InvalidSettlementAmount, NotAuthorized
from .repository import EntryRepository, check_settleable

logger = logging.getLogger(__name__)

SETTLEMENT_RULES: dict[tuple[str, str], Optional[EntryType]] = {
    (CREDIT, "Sales"): CASH_INFLOW,
    (CREDIT, "COGS"): CASH_OUTFLOW,
    (CREDIT, "Opex"): CASH_OUTFLOW,
    (CREDIT, "Assets"): CASH_OUTFLOW,
    (ADVANCE, "Sales"): CASH_OUTFLOW,
    (ADVANCE, "COGS"): CASH_OUTFLOW,
    (ADVANCE, "Opex"): CASH_OUTFLOW,
    (ADVANCE, "Assets"): None,
}
"""(source entry_type, source category) -> derived entry_type, or None."""


def _ensure_rules_complete() -> None:
    missing = [
        (kind, category)
        for kind in sorted(SETTLEABLE_TYPES)
        for category in CATEGORIES
        if (kind, category) not in SETTLEMENT_RULES
    ]
    if missing:
        raise RuntimeError(f"Settlement rules are missing for: {missing}")


_ensure_rules_complete()

Authorizer = Callable[[Optional[str], Entry], bool]
"""Callable deciding whether `owner_id` may settle `entry`."""


def owner_only(owner_id: Optional[str], entry: Entry) -> bool:
    """Default authorization: the acting owner must own the entry."""
    return owner_id is None or owner_id == entry.user_id


@dataclass(frozen=True)
class SettlementResult:
    """Outcome of a settlement: the settled source and the derived entry."""

    source: Entry
    derived: Optional[Entry]


def derived_entry_type(entry_type: str, category: str) -> Optional[EntryType]:
    """
    Return the entry type of the cash entry created by a settlement.

    Returns None for an Advance on Assets, which creates no entry.
    """
    return SETTLEMENT_RULES[(entry_type, category)]


def settlement_note(entry: Entry) -> str:
    return f"Settlement of {entry.entry_type.lower()} {entry.id}"


def resolve_settlement(
    entry: Entry,
    amount: Decimal,
    settlement_date: date,
) -> Optional[NewEntry]:
    """
    Build the derived cash entry for a settlement, without persisting it.

    Raises
    ------
    InvalidEntryKind
        If the entry is neither Credit nor Advance.
    AlreadySettled
        If the entry is already settled.
    """
    check_settleable(entry)

    derived_type = derived_entry_type(entry.entry_type, entry.category)
    if derived_type is None:
        return None

    return NewEntry(
        user_id=entry.user_id,
        entry_type=derived_type,
        category=entry.category,
        payment_method=entry.payment_method,
        amount=amount,
        entry_date=settlement_date,
        notes=settlement_note(entry),
        settlement_of=entry.id,
        settlement_kind=entry.entry_type.lower(),
    )


def settle_entry(
    repository: EntryRepository,
    entry: Entry,
    amount,
    settlement_date,
    *,
    owner_id: Optional[str] = None,
    authorize: Authorizer = owner_only,
) -> SettlementResult:
    """
    Settle a Credit or Advance entry.

    Every check runs before the store is touched. The store then re-reads
    the source entry, marks it settled (settled_at = settlement_date) and
    inserts the derived cash entry, if any, in one transaction. The derived
    entry is resolved from the stored row, so a stale `entry` never decides
    its type or category.

    Parameters
    ----------
    repository:
        Entry store implementing `transactional_settle`.
    entry:
        The Credit / Advance entry to settle.
    amount:
        Settlement amount, strictly positive.
    settlement_date:
        Date of the settlement, used both as `settled_at` and as the
        derived entry's `entry_date`.
    owner_id:
        Acting owner, passed to `authorize`.
    authorize:
        Authorization check; defaults to `owner_only`.

    Returns
    -------
    SettlementResult

    Raises
    ------
    InvalidEntryKind, AlreadySettled
        If the entry cannot be settled.
    InvalidSettlementAmount
        If the amount is not strictly positive.
    NotAuthorized
        If `authorize` rejects the caller.
    SettlementPersistenceError
        If the store fails; nothing is written in that case.
    """
    check_settleable(entry)

    try:
        parsed_amount = parse_amount(amount)
    except InvalidEntryField as exc:
        raise InvalidSettlementAmount(str(exc)) from exc
    if parsed_amount <= 0:
        raise InvalidSettlementAmount(
            f"Settlement amount must be greater than zero (got {amount!r})."
        )

    settled_at = parse_entry_date(settlement_date)

    if not authorize(owner_id, entry):
        raise NotAuthorized(f"Not allowed to settle entry #{entry.id}.")

    def build_derived(stored: Entry) -> Optional[NewEntry]:
        return resolve_settlement(stored, parsed_amount, settled_at)

    source, derived_entry = repository.transactional_settle(
        entry.id, settled_at, build_derived
    )

    if derived_entry is None:
        logger.info(
            "Settled %s #%d on %s (no cash entry created)",
            source.entry_type.lower(),
            source.id,
            settled_at.isoformat(),
        )
    else:
        logger.info(
            "Settled %s #%d on %s: created %s #%d for %s",
            source.entry_type.lower(),
            source.id,
            settled_at.isoformat(),
            derived_entry.entry_type,
            derived_entry.id,
            derived_entry.amount,
        )

    return SettlementResult(source=source, derived=derived_entry)
