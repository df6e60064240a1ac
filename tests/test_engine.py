import random
from datetime import date, datetime
from decimal import Decimal

import pytest

from smb_cashflow.engine import (
    build_dashboard,
    expense_breakdown,
    profit_trend,
    summarize_by_category,
    summarize_by_payment_method,
    summarize_cash,
    summarize_pending,
    summarize_profit,
)
from smb_cashflow.entries import Entry
from smb_cashflow.periods import ALL_TIME, period_custom, resolve_period


def make_entry(
    entry_id: int,
    entry_type: str,
    category: str,
    amount: str,
    day: date = date(2024, 3, 10),
    payment_method: str = "Cash",
    notes=None,
    settled: bool = False,
    settlement_of=None,
    settlement_kind=None,
) -> Entry:
    return Entry(
        id=entry_id,
        user_id="shop-1",
        entry_type=entry_type,
        category=category,
        payment_method=payment_method,
        amount=Decimal(amount),
        entry_date=day,
        notes=notes,
        settled=settled,
        settled_at=day if settled else None,
        settlement_of=settlement_of,
        settlement_kind=settlement_kind,
    )


@pytest.fixture
def ledger() -> list[Entry]:
    """A small month of activity for one shop."""
    return [
        make_entry(1, "Cash Inflow", "Sales", "1000.00"),
        make_entry(2, "Cash Outflow", "COGS", "400.00"),
        make_entry(3, "Cash Outflow", "Opex", "150.00", payment_method="Bank"),
        make_entry(4, "Credit", "Sales", "500.00", settled=True),
        make_entry(
            5,
            "Cash Inflow",
            "Sales",
            "500.00",
            payment_method="Bank",
            notes="Settlement of credit 4",
            settlement_of=4,
            settlement_kind="credit",
        ),
        make_entry(6, "Credit", "Opex", "80.00"),
        make_entry(7, "Advance", "COGS", "200.00"),
        make_entry(8, "Cash Outflow", "Assets", "2500.00", payment_method="Bank"),
    ]


def test_empty_input_yields_zeros():
    cash = summarize_cash([])
    profit = summarize_profit([])
    pending = summarize_pending([])

    assert cash.cash_in == cash.cash_out == cash.net_cash == Decimal("0.00")
    assert profit.revenue == profit.net_profit == Decimal("0.00")
    assert profit.profit_margin == Decimal("0.00")
    assert pending.open_entries == 0
    assert expense_breakdown([]) == []
    assert all(t.net_cash == 0 for t in summarize_by_category([]).values())


def test_cash_lens_counts_only_cash_entries(ledger):
    cash = summarize_cash(ledger)

    assert cash.cash_in == Decimal("1500.00")
    assert cash.cash_out == Decimal("3050.00")
    assert cash.net_cash == Decimal("-1550.00")
    assert cash.entries_in == 2
    assert cash.entries_out == 3


def test_payment_method_split(ledger):
    totals = summarize_by_payment_method(ledger)

    assert set(totals) == {"Cash", "Bank"}
    assert totals["Cash"].cash_in == Decimal("1000.00")
    assert totals["Cash"].cash_out == Decimal("400.00")
    assert totals["Bank"].cash_in == Decimal("500.00")
    assert totals["Bank"].net_cash == Decimal("-2150.00")


def test_profit_lens_recognizes_credit_once_and_skips_advances(ledger):
    profit = summarize_profit(ledger)

    # Sales: 1000 cash + 500 credit (its settlement is not counted again).
    assert profit.revenue == Decimal("1500.00")
    # COGS: 400 cash; the open Advance is not an expense yet.
    assert profit.cogs == Decimal("400.00")
    assert profit.gross_profit == Decimal("1100.00")
    # Opex: 150 cash + 80 credit. Assets never reach profit.
    assert profit.operating_expenses == Decimal("230.00")
    assert profit.net_profit == Decimal("870.00")
    assert profit.profit_margin == Decimal("58.00")


def test_settled_advance_is_recognized_through_its_cash_entry():
    entries = [
        make_entry(1, "Advance", "Opex", "300.00", settled=True),
        make_entry(
            2,
            "Cash Outflow",
            "Opex",
            "300.00",
            settlement_of=1,
            settlement_kind="advance",
        ),
        make_entry(3, "Cash Inflow", "Sales", "1000.00"),
    ]

    profit = summarize_profit(entries)

    assert profit.operating_expenses == Decimal("300.00")
    assert profit.net_profit == Decimal("700.00")


def test_settled_sales_advance_is_recognized_as_revenue():
    entries = [
        make_entry(1, "Advance", "Sales", "1000.00", settled=True),
        make_entry(
            2,
            "Cash Outflow",
            "Sales",
            "1000.00",
            settlement_of=1,
            settlement_kind="advance",
        ),
    ]

    profit = summarize_profit(entries)

    assert profit.revenue == Decimal("1000.00")
    assert profit.net_profit == Decimal("1000.00")
    assert profit.profit_margin == Decimal("100.00")


def test_sales_outflows_and_cost_inflows_do_not_affect_profit():
    entries = [
        make_entry(1, "Cash Inflow", "Sales", "1000.00"),
        make_entry(2, "Cash Outflow", "Sales", "100.00"),
        make_entry(3, "Cash Outflow", "COGS", "300.00"),
        make_entry(4, "Cash Inflow", "COGS", "50.00"),
    ]

    profit = summarize_profit(entries)

    assert profit.revenue == Decimal("1000.00")
    assert profit.cogs == Decimal("300.00")


def test_settlement_is_identified_by_marker_not_by_note():
    entries = [
        make_entry(1, "Credit", "Sales", "500.00", settled=True),
        # Settlement whose note was reworded by the user.
        make_entry(
            2,
            "Cash Inflow",
            "Sales",
            "500.00",
            notes="paid by Ravi",
            settlement_of=1,
            settlement_kind="credit",
        ),
        # Ordinary sale whose note looks like a settlement note.
        make_entry(3, "Cash Inflow", "Sales", "200.00", notes="Settlement of credit 1"),
    ]

    profit = summarize_profit(entries)

    assert profit.revenue == Decimal("700.00")


def test_margin_is_zero_without_revenue():
    profit = summarize_profit([make_entry(1, "Cash Outflow", "Opex", "10.00")])

    assert profit.net_profit == Decimal("-10.00")
    assert profit.profit_margin == Decimal("0.00")


def test_results_do_not_depend_on_entry_order(ledger):
    shuffled = list(ledger)
    random.Random(7).shuffle(shuffled)

    assert summarize_cash(shuffled) == summarize_cash(ledger)
    assert summarize_profit(shuffled) == summarize_profit(ledger)
    assert summarize_by_category(shuffled) == summarize_by_category(ledger)
    assert summarize_pending(shuffled) == summarize_pending(ledger)
    assert expense_breakdown(shuffled) == expense_breakdown(ledger)


def test_aggregation_does_not_mutate_input(ledger):
    snapshot = list(ledger)

    build_dashboard(ledger, ALL_TIME)

    assert ledger == snapshot


def test_period_bounds_are_inclusive():
    entries = [
        make_entry(1, "Cash Inflow", "Sales", "10.00", day=date(2024, 1, 31)),
        make_entry(2, "Cash Inflow", "Sales", "20.00", day=date(2024, 2, 1)),
        make_entry(3, "Cash Inflow", "Sales", "30.00", day=date(2024, 2, 29)),
        make_entry(4, "Cash Inflow", "Sales", "40.00", day=date(2024, 3, 1)),
    ]
    february = resolve_period("this-month", now=datetime(2024, 2, 10))

    assert summarize_cash(entries, february).cash_in == Decimal("50.00")
    single_day = period_custom(date(2024, 1, 31), date(2024, 1, 31))
    assert summarize_cash(entries, single_day).cash_in == Decimal("10.00")


def test_totals_are_exact_in_cents():
    entries = [make_entry(i, "Cash Inflow", "Sales", "0.10") for i in range(1, 1001)]

    assert summarize_cash(entries).cash_in == Decimal("100.00")


def test_category_totals_cover_every_category(ledger):
    totals = summarize_by_category(ledger)

    assert list(totals) == ["Sales", "COGS", "Opex", "Assets"]
    assert totals["Sales"].inflow == Decimal("1500.00")
    assert totals["Sales"].credit == Decimal("500.00")
    assert totals["COGS"].advance == Decimal("200.00")
    assert totals["Assets"].net_cash == Decimal("-2500.00")


def test_pending_balances(ledger):
    pending = summarize_pending(ledger)

    assert pending.collections == Decimal("0.00")
    assert pending.bills == Decimal("80.00")
    assert pending.advances == Decimal("200.00")
    assert pending.open_entries == 2


def test_expense_breakdown_is_sorted_with_percentages(ledger):
    shares = expense_breakdown(ledger)

    assert [s.category for s in shares] == ["COGS", "Opex"]
    assert shares[0].amount == Decimal("400.00")
    assert shares[0].percentage == Decimal("63.49")
    assert shares[1].percentage == Decimal("36.51")


def test_profit_trend_buckets_by_month():
    entries = [
        make_entry(1, "Cash Inflow", "Sales", "100.00", day=date(2024, 1, 15)),
        make_entry(2, "Cash Inflow", "Sales", "300.00", day=date(2024, 3, 2)),
        make_entry(3, "Cash Outflow", "Opex", "100.00", day=date(2024, 3, 31)),
        make_entry(4, "Cash Inflow", "Sales", "999.00", day=date(2023, 12, 31)),
    ]

    points = profit_trend(entries, 3, now=datetime(2024, 3, 20))

    assert [p.label for p in points] == ["Jan 2024", "Feb 2024", "Mar 2024"]
    assert [p.revenue for p in points] == [
        Decimal("100.00"),
        Decimal("0.00"),
        Decimal("300.00"),
    ]
    assert points[2].expenses == Decimal("100.00")
    assert points[2].profit == Decimal("200.00")
    assert points[2].margin == Decimal("66.67")
    assert points[1].margin == Decimal("0.00")


def test_dashboard_pending_ignores_period(ledger):
    old_credit = make_entry(9, "Credit", "Sales", "75.00", day=date(2023, 6, 1))
    march = period_custom(date(2024, 3, 1), date(2024, 3, 31))

    dashboard = build_dashboard(ledger + [old_credit], march)

    assert dashboard.period == march
    assert dashboard.profit.revenue == Decimal("1500.00")
    assert dashboard.pending.collections == Decimal("75.00")
    assert dashboard.pending.open_entries == 3
