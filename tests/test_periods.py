from argparse import Namespace
from datetime import date, datetime
from decimal import Decimal

import pandas as pd
import pytest

import smb_cashflow.periods as periods
from smb_cashflow.entries import Entry
from smb_cashflow.errors import InvalidPeriodBounds

NOW = datetime(2024, 2, 10, 14, 30)


def _entry(entry_id: int, day: date) -> Entry:
    return Entry(
        id=entry_id,
        user_id="shop-1",
        entry_type="Cash Inflow",
        category="Sales",
        payment_method="Cash",
        amount=Decimal("10.00"),
        entry_date=day,
    )


def test_all_time_has_no_bounds():
    p = periods.resolve_period("all-time", now=NOW)

    assert p.start is None and p.end is None
    assert p.is_unbounded


def test_this_month_covers_whole_leap_february():
    p = periods.resolve_period("this-month", now=NOW)

    assert p.start == datetime(2024, 2, 1, 0, 0, 0)
    assert p.end == datetime(2024, 2, 29, 23, 59, 59)
    assert p.label == "February 2024"


def test_this_year_covers_calendar_year():
    p = periods.resolve_period("this-year", now=NOW)

    assert p.start == datetime(2024, 1, 1)
    assert p.end == datetime(2024, 12, 31, 23, 59, 59)


def test_custom_period_keeps_bounds():
    p = periods.resolve_period(
        "custom", date(2024, 1, 5), date(2024, 1, 20), now=NOW
    )

    assert p.start == datetime(2024, 1, 5)
    assert p.end == datetime(2024, 1, 20)


@pytest.mark.parametrize(
    "start, end",
    [(None, None), (date(2024, 1, 5), None), (None, date(2024, 1, 20))],
)
def test_custom_period_with_missing_bound_falls_back_to_all_time(start, end):
    p = periods.resolve_period("custom", start, end, now=NOW)

    assert p.is_unbounded


def test_custom_period_end_before_start_is_rejected():
    with pytest.raises(InvalidPeriodBounds):
        periods.resolve_period("custom", date(2024, 3, 1), date(2024, 2, 1), now=NOW)


def test_unknown_selector_is_rejected():
    with pytest.raises(ValueError):
        periods.resolve_period("last-quarter", now=NOW)


def test_contains_is_inclusive_on_both_sides():
    p = periods.resolve_period("this-month", now=NOW)

    assert p.contains(date(2024, 2, 1))
    assert p.contains(date(2024, 2, 29))
    assert not p.contains(date(2024, 1, 31))
    assert not p.contains(date(2024, 3, 1))


def test_filter_entries_keeps_entries_within_bounds():
    entries = [
        _entry(1, date(2024, 1, 31)),
        _entry(2, date(2024, 2, 1)),
        _entry(3, date(2024, 2, 29)),
        _entry(4, date(2024, 3, 1)),
    ]
    p = periods.resolve_period("this-month", now=NOW)

    kept = list(periods.filter_entries(entries, p))

    assert [e.id for e in kept] == [2, 3]
    assert list(periods.filter_entries(entries, periods.ALL_TIME)) == entries


def test_month_periods_are_oldest_first_and_cross_year():
    months = periods.month_periods(3, now=NOW)

    assert [m.label for m in months] == ["Dec 2023", "Jan 2024", "Feb 2024"]
    assert months[0].start == datetime(2023, 12, 1)
    assert months[-1].end == datetime(2024, 2, 29, 23, 59, 59)

    with pytest.raises(ValueError):
        periods.month_periods(0, now=NOW)


def test_determine_period_from_args_priority():
    custom = periods.determine_period_from_args(
        Namespace(period="this-year", from_date="2024-01-01", to_date="2024-01-31"),
        now=NOW,
    )
    assert custom.start == datetime(2024, 1, 1)
    assert custom.end == datetime(2024, 1, 31)

    predefined = periods.determine_period_from_args(
        Namespace(period="this-month", from_date=None, to_date=None), now=NOW
    )
    assert predefined.start == datetime(2024, 2, 1)

    default = periods.determine_period_from_args(Namespace(), now=NOW)
    assert default.is_unbounded


def test_filter_entries_by_period_inclusive_bounds() -> None:
    """filter_entries_by_period should keep entries with dates in [start, end]."""
    df = pd.DataFrame(
        {
            "entry_date": pd.to_datetime(
                ["2024-01-01", "2024-02-15", "2024-03-10", "2024-04-01", "2024-05-01"]
            ),
            "type": ["CASH IN", "CASH IN", "CASH OUT", "CASH OUT", "CASH IN"],
            "amount": [10, 20, 5, 15, 30],
        }
    )

    p = periods.period_custom(date(2024, 2, 1), date(2024, 4, 1))

    filtered = periods.filter_entries_by_period(df, p)

    assert len(filtered) == 3
    assert filtered["entry_date"].min() == pd.Timestamp("2024-02-15")
    assert filtered["entry_date"].max() == pd.Timestamp("2024-04-01")
