# SMB Cashflow - Cash-flow ledger & settlement engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Entry model for SMB Cashflow.

An entry is one recorded financial event of a small business: money coming
in, money going out, a credit (invoice or bill not yet paid) or an advance.
This module defines:

- the closed enumerations (entry types, categories, payment methods),
- the typed dataclasses used across the application:
    * `Entry`       (a stored entry, including audit metadata),
    * `NewEntry`    (payload for inserts, without id/timestamps),
    * `EntryUpdate` (partial user edit),
- boundary validation helpers that reject unknown enumeration values,
- amount helpers converting between `Decimal` amounts and integer cents.

Amounts
-------
Amounts are non-negative currency magnitudes. They are kept as `Decimal`
quantized to two decimal places in memory and as integer cents in the
database, so that aggregation never accumulates binary floating-point
drift.

Enumeration values are stored exactly as they appear in the product
("Cash Inflow", "Cash Outflow", ...). Display labels are handled by
`labels.py`.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Literal, Optional, get_args

from .errors import InvalidEntryField

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

EntryType = Literal["Cash Inflow", "Cash Outflow", "Credit", "Advance"]
"""
Kind of financial event.

Values
------
- "Cash Inflow" : money received.
- "Cash Outflow": money paid.
- "Credit"      : sale or purchase not yet paid (receivable / payable).
- "Advance"     : money committed ahead of the underlying sale or purchase.
"""

Category = Literal["Sales", "COGS", "Opex", "Assets"]
PaymentMethod = Literal["Cash", "Bank", "None"]
SettlementKind = Literal["credit", "advance"]

ENTRY_TYPES: tuple[str, ...] = get_args(EntryType)
CATEGORIES: tuple[str, ...] = get_args(Category)
PAYMENT_METHODS: tuple[str, ...] = get_args(PaymentMethod)
SETTLEMENT_KINDS: tuple[str, ...] = get_args(SettlementKind)

CASH_INFLOW = "Cash Inflow"
CASH_OUTFLOW = "Cash Outflow"
CREDIT = "Credit"
ADVANCE = "Advance"

SETTLEABLE_TYPES = frozenset({CREDIT, ADVANCE})

_CENT = Decimal("0.01")


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Entry:
    """
    A stored cash-flow entry.

    Attributes
    ----------
    id:
        Identifier assigned by the store, immutable.
    user_id:
        Owner of the entry. Ownership never changes.
    entry_type, category, payment_method:
        Values from the closed enumerations of this module.
    amount:
        Non-negative amount, quantized to 2 decimal places.
    entry_date:
        Date of the economic event (may differ from `created_at`).
    notes:
        Optional free text. Settlement entries carry a generated note
        referencing their source entry; the note is informational only.
    settled, settled_at:
        Settlement state of Credit / Advance entries. `settled_at` is set
        exactly when `settled` is True.
    created_at, updated_at:
        UTC audit timestamps assigned by the store.
    settlement_of, settlement_kind:
        Set on cash entries created by a settlement: the id of the settled
        entry and its kind ("credit" or "advance"). Both are None for
        entries recorded directly, and neither is user-editable.
    """

    id: int
    user_id: str
    entry_type: EntryType
    category: Category
    payment_method: PaymentMethod
    amount: Decimal
    entry_date: date
    notes: Optional[str] = None
    settled: bool = False
    settled_at: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    settlement_of: Optional[int] = None
    settlement_kind: Optional[SettlementKind] = None

    @property
    def amount_cents(self) -> int:
        return to_cents(self.amount)

    @property
    def is_settleable(self) -> bool:
        """True for Credit / Advance entries that are still open."""
        return self.entry_type in SETTLEABLE_TYPES and not self.settled

    @property
    def is_settlement(self) -> bool:
        """True for cash entries created by settling a Credit / Advance."""
        return self.settlement_kind is not None


@dataclass(frozen=True)
class NewEntry:
    """
    Data required to create a new entry.

    The store assigns `id`, `created_at` and `updated_at`. New entries are
    always unsettled.
    """

    user_id: str
    entry_type: EntryType
    category: Category
    payment_method: PaymentMethod
    amount: Decimal
    entry_date: date
    notes: Optional[str] = None
    settlement_of: Optional[int] = None
    settlement_kind: Optional[SettlementKind] = None


@dataclass(frozen=True)
class EntryUpdate:
    """
    Fields that can be edited on an existing, unsettled entry.

    Only non-None attributes are applied. Ownership and settlement state are
    intentionally absent: settlement goes through `settlement.settle_entry`.
    """

    entry_type: Optional[EntryType] = None
    category: Optional[Category] = None
    payment_method: Optional[PaymentMethod] = None
    amount: Optional[Decimal] = None
    entry_date: Optional[date] = None
    notes: Optional[str] = None

    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (
                self.entry_type,
                self.category,
                self.payment_method,
                self.amount,
                self.entry_date,
                self.notes,
            )
        )


# ---------------------------------------------------------------------------
# Amount helpers
# ---------------------------------------------------------------------------


def parse_amount(value) -> Decimal:
    """
    Convert a user-supplied amount to a non-negative 2-dp `Decimal`.

    Floats are converted through their string representation so that
    `0.1` becomes `Decimal("0.10")` rather than its binary expansion.

    Raises
    ------
    InvalidEntryField
        If the value is not numeric, not finite, or negative.
    """
    if isinstance(value, bool):
        raise InvalidEntryField(f"Invalid amount: {value!r}.")
    try:
        if isinstance(value, float):
            amount = Decimal(repr(value))
        else:
            amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise InvalidEntryField(f"Invalid amount: {value!r}.") from exc

    if not amount.is_finite():
        raise InvalidEntryField(f"Invalid amount: {value!r}.")
    if amount < 0:
        raise InvalidEntryField(f"Amount cannot be negative: {value!r}.")

    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def to_cents(amount: Decimal) -> int:
    """Return the amount as integer minor units (cents)."""
    return int((amount * 100).to_integral_value(rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    """Return integer cents as a 2-dp `Decimal`."""
    return (Decimal(cents) / 100).quantize(_CENT)


# ---------------------------------------------------------------------------
# Boundary validation
# ---------------------------------------------------------------------------


def _parse_choice(value, allowed: tuple[str, ...], field_name: str) -> str:
    if not isinstance(value, str) or value not in allowed:
        choices = ", ".join(repr(v) for v in allowed)
        raise InvalidEntryField(
            f"Invalid {field_name}: {value!r}. Expected one of: {choices}."
        )
    return value


def parse_entry_type(value) -> EntryType:
    return _parse_choice(value, ENTRY_TYPES, "entry_type")  # type: ignore[return-value]


def parse_category(value) -> Category:
    return _parse_choice(value, CATEGORIES, "category")  # type: ignore[return-value]


def parse_payment_method(value) -> PaymentMethod:
    return _parse_choice(value, PAYMENT_METHODS, "payment_method")  # type: ignore[return-value]


def parse_entry_date(value) -> date:
    """Accept a `date`, a `datetime` (date part kept) or an ISO string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise InvalidEntryField(
            f"Invalid entry_date: {value!r}. Expected YYYY-MM-DD."
        ) from exc


def validate_new_entry(
    *,
    user_id: str,
    entry_type,
    category,
    payment_method,
    amount,
    entry_date,
    notes: Optional[str] = None,
) -> NewEntry:
    """
    Build a `NewEntry` from raw values, validating every field.

    This is the boundary through which raw rows (CLI arguments, CSV rows,
    API payloads) enter the core. Unknown enumeration values are rejected,
    never coerced.

    Raises
    ------
    InvalidEntryField
        If any field is missing or invalid.
    """
    if not user_id or not str(user_id).strip():
        raise InvalidEntryField("user_id is required.")

    cleaned_notes = notes.strip() if isinstance(notes, str) else None

    return NewEntry(
        user_id=str(user_id),
        entry_type=parse_entry_type(entry_type),
        category=parse_category(category),
        payment_method=parse_payment_method(payment_method),
        amount=parse_amount(amount),
        entry_date=parse_entry_date(entry_date),
        notes=cleaned_notes or None,
    )


def validate_update(update: EntryUpdate) -> EntryUpdate:
    """Validate the non-None fields of a partial update."""
    if update.is_empty():
        raise ValueError("No fields to update in EntryUpdate.")

    return replace(
        update,
        entry_type=(
            parse_entry_type(update.entry_type)
            if update.entry_type is not None
            else None
        ),
        category=(
            parse_category(update.category) if update.category is not None else None
        ),
        payment_method=(
            parse_payment_method(update.payment_method)
            if update.payment_method is not None
            else None
        ),
        amount=parse_amount(update.amount) if update.amount is not None else None,
        entry_date=(
            parse_entry_date(update.entry_date)
            if update.entry_date is not None
            else None
        ),
    )
