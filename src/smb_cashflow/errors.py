# SMB Cashflow - Cash-flow ledger & settlement engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Exception types raised by SMB Cashflow.

All exceptions derive from :class:`LedgerError` so that user-facing layers
(CLI, future Web UI) can catch domain failures in one place. Exceptions that
describe invalid input additionally derive from ``ValueError``, which keeps
them compatible with callers that already handle ``ValueError`` the way the
configuration and period helpers do.

Classification and aggregation never raise: only boundary validation,
period resolution and settlement can fail.
"""

from typing import Optional


class LedgerError(Exception):
    """Base class for every domain error raised by SMB Cashflow."""


class InvalidEntryField(LedgerError, ValueError):
    """A raw value does not belong to a closed enumeration or is malformed."""


class InvalidEntryKind(LedgerError, ValueError):
    """Settlement was requested on an entry that is not Credit or Advance."""

    def __init__(self, entry_id: Optional[int], entry_type: str) -> None:
        self.entry_id = entry_id
        self.entry_type = entry_type
        super().__init__(
            f"Only Credit and Advance entries can be settled "
            f"(entry #{entry_id} is {entry_type!r})."
        )


class AlreadySettled(LedgerError):
    """The entry has already been settled and cannot be settled or edited."""

    def __init__(self, entry_id: Optional[int]) -> None:
        self.entry_id = entry_id
        super().__init__(f"Entry #{entry_id} is already settled.")


class InvalidSettlementAmount(LedgerError, ValueError):
    """Settlement amount must be strictly positive."""


class NotAuthorized(LedgerError):
    """The caller is not allowed to act on the given entry."""


class EntryNotFound(LedgerError, LookupError):
    """No entry exists with the requested identifier."""

    def __init__(self, entry_id: int) -> None:
        self.entry_id = entry_id
        super().__init__(f"Entry #{entry_id} does not exist.")


class SettlementPersistenceError(LedgerError):
    """
    The store failed while writing a settlement.

    The original exception is available both as ``cause`` and as the
    chained ``__cause__``. No partial state is left behind: the store rolls
    back the derived insert and the source update together.
    """

    def __init__(self, entry_id: Optional[int], cause: BaseException) -> None:
        self.entry_id = entry_id
        self.cause = cause
        super().__init__(f"Failed to persist settlement of entry #{entry_id}: {cause}")


class InvalidPeriodBounds(LedgerError, ValueError):
    """A custom period ends before it starts."""
