# SMB Cashflow - Cash-flow ledger & settlement engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Core aggregation engine for SMB Cashflow.

This module reduces a collection of entries, optionally restricted to a
Period, into the summary figures displayed by dashboards. Two lenses are
provided:

1. Cash lens
   ----------
   What actually moved through the till or the bank account:
   - `summarize_cash()`              cash in, cash out, net cash position,
   - `summarize_by_payment_method()` the same split between Cash and Bank.

   Only "Cash Inflow" and "Cash Outflow" entries move cash. Credit and
   Advance entries are commitments; they reach the cash lens through the
   cash entries created when they are settled.

2. Profit lens (accrual basis)
   ---------------------------
   Revenue and expenses when earned or incurred:
   - Sales inflows are revenue and COGS / Opex outflows are costs,
   - Credit entries are recognized immediately, settled or not,
   - cash entries created by settling a Credit are excluded, as the Credit
     itself was already recognized,
   - original Advance entries are excluded; the cash entry created when
     the Advance is settled is recognized instead, in the bucket of its
     category (revenue for Sales, cost for COGS / Opex),
   - Sales outflows and COGS / Opex inflows that are not settlements do
     not affect profit,
   - Assets never affect profit.

   Settlement entries are recognized by their `settlement_kind` marker,
   never by their free-text note.

   `summarize_profit()`, `expense_breakdown()` and `profit_trend()` use
   these rules.

Supporting views
----------------
- `summarize_by_category()` per-category inflow/outflow/credit/advance.
- `summarize_pending()`     open Credit and Advance balances.
- `build_dashboard()`       everything above for one period.

Numeric semantics
-----------------
Every fold accumulates integer cents and converts back to `Decimal` at the
end, so totals are exact whatever the number of entries. All functions are
pure: they never mutate their input, return identical results for any
ordering of the same entries, and return zeros for an empty input.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from .entries import (
    ADVANCE,
    CASH_INFLOW,
    CASH_OUTFLOW,
    CATEGORIES,
    CREDIT,
    Entry,
    from_cents,
)
from .periods import Period, filter_entries, month_periods

COST_CATEGORIES = ("COGS", "Opex")
CASH_PAYMENT_METHODS = ("Cash", "Bank")

_PERCENT = Decimal("0.01")
_ZERO = Decimal("0.00")


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CashSummary:
    """Cash movements over a period."""

    cash_in: Decimal
    cash_out: Decimal
    net_cash: Decimal
    entries_in: int
    entries_out: int


@dataclass(frozen=True)
class ProfitSummary:
    """
    Accrual-basis profit figures.

    `profit_margin` is a percentage of revenue, rounded to 2 decimals, and
    0 when revenue is not positive.
    """

    revenue: Decimal
    cogs: Decimal
    gross_profit: Decimal
    operating_expenses: Decimal
    net_profit: Decimal
    profit_margin: Decimal


@dataclass(frozen=True)
class CategoryTotals:
    category: str
    inflow: Decimal
    outflow: Decimal
    credit: Decimal
    advance: Decimal

    @property
    def net_cash(self) -> Decimal:
        return self.inflow - self.outflow


@dataclass(frozen=True)
class PaymentMethodTotals:
    payment_method: str
    cash_in: Decimal
    cash_out: Decimal

    @property
    def net_cash(self) -> Decimal:
        return self.cash_in - self.cash_out


@dataclass(frozen=True)
class PendingSummary:
    """
    Open commitments (unsettled Credit / Advance entries).

    - collections: Credit on Sales, money owed to the business,
    - bills:       Credit on COGS / Opex / Assets, money the business owes,
    - advances:    every open Advance.
    """

    collections: Decimal
    bills: Decimal
    advances: Decimal
    open_entries: int


@dataclass(frozen=True)
class CategoryShare:
    category: str
    amount: Decimal
    percentage: Decimal


@dataclass(frozen=True)
class TrendPoint:
    label: str
    period: Period
    revenue: Decimal
    expenses: Decimal
    profit: Decimal
    margin: Decimal


@dataclass(frozen=True)
class Dashboard:
    """All summaries for a single period."""

    period: Period
    cash: CashSummary
    profit: ProfitSummary
    by_category: dict[str, CategoryTotals]
    by_payment_method: dict[str, PaymentMethodTotals]
    pending: PendingSummary
    expenses: list[CategoryShare]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _select(entries: Iterable[Entry], period: Optional[Period]) -> list[Entry]:
    if period is None:
        return list(entries)
    return list(filter_entries(entries, period))


def _percentage(part_cents: int, total_cents: int) -> Decimal:
    if total_cents <= 0:
        return _ZERO
    ratio = Decimal(part_cents) * 100 / Decimal(total_cents)
    return ratio.quantize(_PERCENT, rounding=ROUND_HALF_UP)


def _profit_contribution(entry: Entry) -> tuple[str, int]:
    """
    Return (bucket, cents) of an entry in the profit lens.

    bucket is "revenue", a cost category, or "" when the entry does not
    affect profit.
    """
    if entry.category == "Assets" or entry.entry_type == ADVANCE:
        return "", 0
    if entry.settlement_kind == "credit":
        return "", 0

    bucket = "revenue" if entry.category == "Sales" else entry.category
    if entry.settlement_kind == "advance":
        return bucket, entry.amount_cents

    recognized = CASH_INFLOW if entry.category == "Sales" else CASH_OUTFLOW
    if entry.entry_type in (recognized, CREDIT):
        return bucket, entry.amount_cents
    return "", 0


def _profit_cents(entries: Iterable[Entry]) -> dict[str, int]:
    buckets = {"revenue": 0, "COGS": 0, "Opex": 0}
    for entry in entries:
        bucket, cents = _profit_contribution(entry)
        if bucket:
            buckets[bucket] += cents
    return buckets


# ---------------------------------------------------------------------------
# Cash lens
# ---------------------------------------------------------------------------


def summarize_cash(
    entries: Iterable[Entry], period: Optional[Period] = None
) -> CashSummary:
    """Total cash in, cash out and net cash position for the period."""
    cash_in = cash_out = 0
    count_in = count_out = 0

    for entry in _select(entries, period):
        if entry.entry_type == CASH_INFLOW:
            cash_in += entry.amount_cents
            count_in += 1
        elif entry.entry_type == CASH_OUTFLOW:
            cash_out += entry.amount_cents
            count_out += 1

    return CashSummary(
        cash_in=from_cents(cash_in),
        cash_out=from_cents(cash_out),
        net_cash=from_cents(cash_in - cash_out),
        entries_in=count_in,
        entries_out=count_out,
    )


def summarize_by_payment_method(
    entries: Iterable[Entry], period: Optional[Period] = None
) -> dict[str, PaymentMethodTotals]:
    """Split cash movements between Cash and Bank."""
    totals = {method: [0, 0] for method in CASH_PAYMENT_METHODS}

    for entry in _select(entries, period):
        if entry.payment_method not in totals:
            continue
        if entry.entry_type == CASH_INFLOW:
            totals[entry.payment_method][0] += entry.amount_cents
        elif entry.entry_type == CASH_OUTFLOW:
            totals[entry.payment_method][1] += entry.amount_cents

    return {
        method: PaymentMethodTotals(
            payment_method=method,
            cash_in=from_cents(cash_in),
            cash_out=from_cents(cash_out),
        )
        for method, (cash_in, cash_out) in totals.items()
    }


# ---------------------------------------------------------------------------
# Profit lens
# ---------------------------------------------------------------------------


def summarize_profit(
    entries: Iterable[Entry], period: Optional[Period] = None
) -> ProfitSummary:
    """Accrual-basis revenue, costs and margins for the period."""
    buckets = _profit_cents(_select(entries, period))

    revenue = buckets["revenue"]
    cogs = buckets["COGS"]
    opex = buckets["Opex"]
    gross = revenue - cogs
    net = gross - opex

    return ProfitSummary(
        revenue=from_cents(revenue),
        cogs=from_cents(cogs),
        gross_profit=from_cents(gross),
        operating_expenses=from_cents(opex),
        net_profit=from_cents(net),
        profit_margin=_percentage(net, revenue),
    )


def expense_breakdown(
    entries: Iterable[Entry], period: Optional[Period] = None
) -> list[CategoryShare]:
    """
    COGS and Opex expenses with their share of total expenses.

    Categories with no expense are omitted. Results are sorted by amount,
    largest first.
    """
    buckets = _profit_cents(_select(entries, period))
    costs = {c: buckets[c] for c in COST_CATEGORIES if buckets[c] > 0}
    total = sum(costs.values())

    shares = [
        CategoryShare(
            category=category,
            amount=from_cents(cents),
            percentage=_percentage(cents, total),
        )
        for category, cents in costs.items()
    ]
    return sorted(shares, key=lambda s: (-s.amount, s.category))


def profit_trend(
    entries: Iterable[Entry],
    months: int = 6,
    *,
    now: Optional[datetime] = None,
) -> list[TrendPoint]:
    """Revenue, expenses and profit for each of the trailing `months` months."""
    materialized = list(entries)
    points: list[TrendPoint] = []

    for month in month_periods(months, now=now):
        buckets = _profit_cents(filter_entries(materialized, month))
        revenue = buckets["revenue"]
        expenses = buckets["COGS"] + buckets["Opex"]
        profit = revenue - expenses
        points.append(
            TrendPoint(
                label=month.label,
                period=month,
                revenue=from_cents(revenue),
                expenses=from_cents(expenses),
                profit=from_cents(profit),
                margin=_percentage(profit, revenue),
            )
        )

    return points


# ---------------------------------------------------------------------------
# Supporting views
# ---------------------------------------------------------------------------


def summarize_by_category(
    entries: Iterable[Entry], period: Optional[Period] = None
) -> dict[str, CategoryTotals]:
    """Per-category totals for every entry type. All categories are present."""
    index = {
        CASH_INFLOW: 0,
        CASH_OUTFLOW: 1,
        CREDIT: 2,
        ADVANCE: 3,
    }
    totals = {category: [0, 0, 0, 0] for category in CATEGORIES}

    for entry in _select(entries, period):
        slot = index.get(entry.entry_type)
        if slot is None or entry.category not in totals:
            continue
        totals[entry.category][slot] += entry.amount_cents

    return {
        category: CategoryTotals(
            category=category,
            inflow=from_cents(values[0]),
            outflow=from_cents(values[1]),
            credit=from_cents(values[2]),
            advance=from_cents(values[3]),
        )
        for category, values in totals.items()
    }


def summarize_pending(
    entries: Iterable[Entry], period: Optional[Period] = None
) -> PendingSummary:
    """Open Credit / Advance balances."""
    collections = bills = advances = 0
    open_entries = 0

    for entry in _select(entries, period):
        if entry.settled:
            continue
        if entry.entry_type == CREDIT:
            if entry.category == "Sales":
                collections += entry.amount_cents
            else:
                bills += entry.amount_cents
        elif entry.entry_type == ADVANCE:
            advances += entry.amount_cents
        else:
            continue
        open_entries += 1

    return PendingSummary(
        collections=from_cents(collections),
        bills=from_cents(bills),
        advances=from_cents(advances),
        open_entries=open_entries,
    )


def build_dashboard(entries: Iterable[Entry], period: Period) -> Dashboard:
    """
    Compute every summary for one period.

    Pending balances are computed over all entries: an open Credit stays
    open whatever the selected window.
    """
    materialized = list(entries)
    in_period = list(filter_entries(materialized, period))

    return Dashboard(
        period=period,
        cash=summarize_cash(in_period),
        profit=summarize_profit(in_period),
        by_category=summarize_by_category(in_period),
        by_payment_method=summarize_by_payment_method(in_period),
        pending=summarize_pending(materialized),
        expenses=expense_breakdown(in_period),
    )
