# SMB Cashflow - Cash-flow ledger & settlement engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Display labels and colors for entries.

Stored values remain unchanged; only their presentation is affected. Every
function here is pure and total: unknown values fall back to the raw value
(labels) or to the neutral color, and nothing ever raises.
"""

from dataclasses import dataclass

from .entries import CASH_INFLOW, CASH_OUTFLOW, Entry

ENTRY_TYPE_LABELS: dict[str, str] = {
    "Cash Inflow": "CASH IN",
    "Cash Outflow": "CASH OUT",
    "Credit": "CREDIT",
    "Advance": "ADVANCE",
}

CATEGORY_LABELS: dict[str, str] = {
    "Sales": "Sales",
    "COGS": "COGS",
    "Opex": "OPEX",
    "Assets": "Assets",
}

POSITIVE = "positive"
NEGATIVE = "negative"
NEUTRAL = "neutral"


@dataclass(frozen=True)
class EntryDisplay:
    """Presentation attributes of a single entry."""

    type_label: str
    category_label: str
    color: str


def get_display_entry_type(entry_type: str) -> str:
    """Map a stored entry type to its display label (e.g. "CASH IN")."""
    if not isinstance(entry_type, str):
        return entry_type
    return ENTRY_TYPE_LABELS.get(entry_type, entry_type)


def get_display_category(category: str) -> str:
    """Map a stored category to its display label ("Opex" becomes "OPEX")."""
    if not isinstance(category, str):
        return category
    return CATEGORY_LABELS.get(category, category)


def get_entry_type_color(entry_type: str) -> str:
    if entry_type == CASH_INFLOW:
        return POSITIVE
    if entry_type == CASH_OUTFLOW:
        return NEGATIVE
    return NEUTRAL


def get_entry_type_border_color(entry_type: str) -> str:
    return f"{get_entry_type_color(entry_type)}-border"


def describe_entry(entry: Entry) -> EntryDisplay:
    return EntryDisplay(
        type_label=get_display_entry_type(entry.entry_type),
        category_label=get_display_category(entry.category),
        color=get_entry_type_color(entry.entry_type),
    )
