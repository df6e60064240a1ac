# SMB Cashflow - Cash-flow ledger & settlement engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for SMB Cashflow.

This module turns entries and the summaries computed by ``engine`` into
pandas DataFrames ready for display or CSV export. It never computes
figures itself: every amount comes from the engine, and only rounding and
column ordering happen here.

The main views are:

- entries:          one row per entry, with display labels and colors,
- cash:             cash in / cash out / net cash,
- profit:           revenue, costs and margins (accrual basis),
- categories:       per-category totals for every entry type,
- payment methods:  cash movements split between Cash and Bank,
- pending:          open Credit / Advance balances,
- expenses:         COGS / Opex breakdown with percentages,
- trend:            monthly revenue, expenses and profit.
"""

from collections.abc import Iterable
from decimal import Decimal
from pathlib import Path

import pandas as pd

from .engine import (
    CashSummary,
    CategoryShare,
    CategoryTotals,
    PaymentMethodTotals,
    PendingSummary,
    ProfitSummary,
    TrendPoint,
)
from .entries import Entry
from .labels import describe_entry, get_display_category

ENTRY_COLUMNS = [
    "id",
    "entry_date",
    "type",
    "category",
    "payment_method",
    "amount",
    "settled",
    "settled_at",
    "notes",
    "color",
]


def _amount(value: Decimal, decimals: int) -> float:
    return round(float(value), decimals)


def _metric_frame(rows: list[tuple[str, Decimal]], decimals: int) -> pd.DataFrame:
    return pd.DataFrame(
        [{"metric": name, "amount": _amount(value, decimals)} for name, value in rows],
        columns=["metric", "amount"],
    )


def entries_to_dataframe(entries: Iterable[Entry], decimals: int = 2) -> pd.DataFrame:
    """
    Convert entries into a display DataFrame.

    Stored enumeration values are replaced by their display labels
    ("Cash Inflow" becomes "CASH IN", "Opex" becomes "OPEX") and a 'color'
    column carries the positive / negative / neutral hint of each entry.
    Rows are sorted by entry date, then id.
    """
    rows: list[dict[str, object]] = []
    for entry in entries:
        display = describe_entry(entry)
        rows.append(
            {
                "id": entry.id,
                "entry_date": entry.entry_date,
                "type": display.type_label,
                "category": display.category_label,
                "payment_method": entry.payment_method,
                "amount": _amount(entry.amount, decimals),
                "settled": entry.settled,
                "settled_at": entry.settled_at,
                "notes": entry.notes or "",
                "color": display.color,
            }
        )

    if not rows:
        return pd.DataFrame(columns=ENTRY_COLUMNS)

    df = pd.DataFrame(rows)
    df = df.sort_values(["entry_date", "id"], kind="stable").reset_index(drop=True)
    return df[ENTRY_COLUMNS]


def cash_to_dataframe(cash: CashSummary, decimals: int = 2) -> pd.DataFrame:
    return _metric_frame(
        [
            ("Cash in", cash.cash_in),
            ("Cash out", cash.cash_out),
            ("Net cash", cash.net_cash),
        ],
        decimals,
    )


def profit_to_dataframe(profit: ProfitSummary, decimals: int = 2) -> pd.DataFrame:
    """Profit summary as (metric, amount) rows; the margin is a percentage."""
    return _metric_frame(
        [
            ("Revenue", profit.revenue),
            ("COGS", profit.cogs),
            ("Gross profit", profit.gross_profit),
            ("Operating expenses", profit.operating_expenses),
            ("Net profit", profit.net_profit),
            ("Profit margin (%)", profit.profit_margin),
        ],
        decimals,
    )


def categories_to_dataframe(
    totals: dict[str, CategoryTotals], decimals: int = 2
) -> pd.DataFrame:
    rows = [
        {
            "category": get_display_category(t.category),
            "inflow": _amount(t.inflow, decimals),
            "outflow": _amount(t.outflow, decimals),
            "net_cash": _amount(t.net_cash, decimals),
            "credit": _amount(t.credit, decimals),
            "advance": _amount(t.advance, decimals),
        }
        for t in totals.values()
    ]
    return pd.DataFrame(
        rows,
        columns=["category", "inflow", "outflow", "net_cash", "credit", "advance"],
    )


def payment_methods_to_dataframe(
    totals: dict[str, PaymentMethodTotals], decimals: int = 2
) -> pd.DataFrame:
    rows = [
        {
            "payment_method": t.payment_method,
            "cash_in": _amount(t.cash_in, decimals),
            "cash_out": _amount(t.cash_out, decimals),
            "net_cash": _amount(t.net_cash, decimals),
        }
        for t in totals.values()
    ]
    return pd.DataFrame(
        rows, columns=["payment_method", "cash_in", "cash_out", "net_cash"]
    )


def pending_to_dataframe(pending: PendingSummary, decimals: int = 2) -> pd.DataFrame:
    return _metric_frame(
        [
            ("To collect (credit sales)", pending.collections),
            ("To pay (credit purchases)", pending.bills),
            ("Open advances", pending.advances),
        ],
        decimals,
    )


def expenses_to_dataframe(
    shares: list[CategoryShare], decimals: int = 2
) -> pd.DataFrame:
    """Expense breakdown, largest first, with a percentage of total expenses."""
    rows = [
        {
            "category": get_display_category(s.category),
            "amount": _amount(s.amount, decimals),
            "percentage": float(s.percentage),
        }
        for s in shares
    ]
    return pd.DataFrame(rows, columns=["category", "amount", "percentage"])


def trend_to_dataframe(points: list[TrendPoint], decimals: int = 2) -> pd.DataFrame:
    """
    Monthly profit trend, oldest month first.

    Columns: month, revenue, expenses, profit, margin (percentage).
    """
    rows = [
        {
            "month": p.label,
            "revenue": _amount(p.revenue, decimals),
            "expenses": _amount(p.expenses, decimals),
            "profit": _amount(p.profit, decimals),
            "margin": float(p.margin),
        }
        for p in points
    ]
    return pd.DataFrame(
        rows, columns=["month", "revenue", "expenses", "profit", "margin"]
    )


def export_csv(df: pd.DataFrame, output_dir: Path, name: str) -> Path:
    """
    Write a view to `<output_dir>/<name>.csv` and return the written path.

    The output directory is created when missing.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{name}.csv"
    df.to_csv(path, index=False)
    return path
