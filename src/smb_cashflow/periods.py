# SMB Cashflow - Cash-flow ledger & settlement engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for SMB Cashflow.

This module defines a Period value object and helpers to turn a symbolic
period selector (all-time, this-year, this-month, custom) into concrete
[start, end] datetime bounds, and to filter entries by those bounds.

A Period with both bounds set to None means "no filtering". Bounds are
inclusive on both sides.
"""

import calendar
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Literal, Optional, Union, get_args

import pandas as pd

from .entries import Entry
from .errors import InvalidPeriodBounds

PeriodSelector = Literal["all-time", "this-year", "this-month", "custom"]
PERIOD_SELECTORS: tuple[str, ...] = get_args(PeriodSelector)

_END_OF_DAY = time(23, 59, 59)


@dataclass(frozen=True)
class Period:
    """Represents a reporting window with a human-readable label."""

    start: Optional[datetime]
    end: Optional[datetime]
    label: str

    @property
    def is_unbounded(self) -> bool:
        return self.start is None and self.end is None

    def contains(self, day: date) -> bool:
        """Return True when `day` falls within the inclusive bounds."""
        moment = _as_datetime(day)
        if self.start is not None and moment < self.start:
            return False
        if self.end is not None and moment > self.end:
            return False
        return True


ALL_TIME = Period(start=None, end=None, label="All time")


def _now() -> datetime:
    """Return the current local datetime (isolated for easier testing)."""
    return datetime.now()


def _as_datetime(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def _month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    last_day = calendar.monthrange(year, month)[1]
    return (
        datetime(year, month, 1),
        datetime.combine(date(year, month, last_day), _END_OF_DAY),
    )


def period_this_year(now: datetime) -> Period:
    return Period(
        start=datetime(now.year, 1, 1),
        end=datetime.combine(date(now.year, 12, 31), _END_OF_DAY),
        label=f"Year {now.year}",
    )


def period_this_month(now: datetime) -> Period:
    start, end = _month_bounds(now.year, now.month)
    return Period(start=start, end=end, label=start.strftime("%B %Y"))


def period_custom(
    custom_start: Optional[Union[date, datetime]],
    custom_end: Optional[Union[date, datetime]],
) -> Period:
    """
    Build a custom period.

    When either bound is missing the period falls back to all-time (no
    filtering), which is a deliberate fallback rather than an error.

    Raises
    ------
    InvalidPeriodBounds
        If the end is before the start.
    """
    if custom_start is None or custom_end is None:
        return ALL_TIME

    start = _as_datetime(custom_start)
    end = _as_datetime(custom_end)
    if end < start:
        raise InvalidPeriodBounds(
            "Custom period end date cannot be before start date "
            f"({start.date().isoformat()} → {end.date().isoformat()})."
        )

    label = f"Custom period ({start.date().isoformat()} → {end.date().isoformat()})"
    return Period(start=start, end=end, label=label)


def resolve_period(
    selector: str,
    custom_start: Optional[Union[date, datetime]] = None,
    custom_end: Optional[Union[date, datetime]] = None,
    *,
    now: Optional[datetime] = None,
) -> Period:
    """
    Resolve a period selector into concrete bounds.

    Parameters
    ----------
    selector:
        One of "all-time", "this-year", "this-month", "custom".
    custom_start, custom_end:
        Bounds used by the "custom" selector only. Plain dates are widened
        to midnight.
    now:
        Reference "current" moment. Defaults to the current local time.

    Returns
    -------
    Period
        - all-time   → (None, None)
        - this-year  → [Jan 1 00:00:00, Dec 31 23:59:59]
        - this-month → [1st 00:00:00, last day 23:59:59]
        - custom     → (custom_start, custom_end), or (None, None) when a
          bound is missing.

    Raises
    ------
    ValueError
        If the selector is unknown.
    InvalidPeriodBounds
        If a custom period ends before it starts.
    """
    current = now if now is not None else _now()

    if selector == "all-time":
        return ALL_TIME
    if selector == "this-year":
        return period_this_year(current)
    if selector == "this-month":
        return period_this_month(current)
    if selector == "custom":
        return period_custom(custom_start, custom_end)
    raise ValueError(f"Unknown period: {selector!r}")


def month_periods(months: int, *, now: Optional[datetime] = None) -> list[Period]:
    """
    Return the trailing `months` calendar months, oldest first.

    The current month is always the last item.
    """
    if months < 1:
        raise ValueError("months must be at least 1.")

    current = now if now is not None else _now()
    year, month = current.year, current.month

    periods: list[Period] = []
    for _ in range(months):
        start, end = _month_bounds(year, month)
        periods.append(Period(start=start, end=end, label=start.strftime("%b %Y")))
        if month == 1:
            year, month = year - 1, 12
        else:
            month -= 1

    periods.reverse()
    return periods


def determine_period_from_args(args, *, now: Optional[datetime] = None) -> Period:
    """
    Determine the period to use based on CLI args.

    Priority (highest to lowest):

        1. args.from_date / args.to_date (custom period)
        2. args.period (all-time, this-year, this-month)
        3. all-time by default
    """
    from_raw: Optional[str] = getattr(args, "from_date", None)
    to_raw: Optional[str] = getattr(args, "to_date", None)

    if from_raw or to_raw:
        start = date.fromisoformat(from_raw) if from_raw else None
        end = date.fromisoformat(to_raw) if to_raw else None
        return period_custom(start, end)

    selector = getattr(args, "period", None) or "all-time"
    return resolve_period(selector, now=now)


def filter_entries(entries: Iterable[Entry], period: Period) -> Iterator[Entry]:
    """Yield the entries whose `entry_date` falls within the period."""
    if period.is_unbounded:
        yield from entries
        return

    for entry in entries:
        if period.contains(entry.entry_date):
            yield entry


def filter_entries_by_period(entries: pd.DataFrame, period: Period) -> pd.DataFrame:
    """
    Filter an entries DataFrame to keep only entries within the period.

    The `entries` DataFrame is expected to contain an 'entry_date' column of
    dates or datetimes (as produced by `views.entries_to_dataframe`).

    Parameters
    ----------
    entries:
        DataFrame with at least an 'entry_date' column.
    period:
        Period defining the [start, end] boundaries (inclusive).

    Returns
    -------
    pandas.DataFrame
        Filtered copy of the DataFrame.
    """
    if period.is_unbounded or entries.empty:
        return entries.copy()

    dates = pd.to_datetime(entries["entry_date"])
    mask = pd.Series(True, index=entries.index)
    if period.start is not None:
        mask &= dates >= pd.Timestamp(period.start)
    if period.end is not None:
        mask &= dates <= pd.Timestamp(period.end)
    return entries.loc[mask].copy()
