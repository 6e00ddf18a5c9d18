"""
Date-range reconciliation for the timeline hierarchy.

A parent's range is the minimal range enclosing all of its children. These
helpers are pure; the mutation service decides when to apply them.
"""
from datetime import date, timedelta
from typing import Iterable, NamedTuple, Protocol, Tuple


class Dated(Protocol):
    start_date: date
    end_date: date


class DateRange(NamedTuple):
    start_date: date
    end_date: date
    duration: int


def days_between(start: date, end: date) -> int:
    return (end - start).days


def duration_of(start: date, end: date) -> int:
    """Inclusive day count of a range. A single-day range lasts 1 day."""
    days = days_between(start, end)
    if days < 0:
        raise ValueError(f"end date {end} is before start date {start}")
    return days + 1


def reconcile(children: Iterable[Dated]) -> DateRange:
    """
    Compute the minimal range enclosing every child.

    Raises:
        ValueError: if there are no children. An emptied parent keeps its
            last range, so callers must not reconcile it.
    """
    items = list(children)
    if not items:
        raise ValueError("cannot reconcile an empty child collection")

    start = min(item.start_date for item in items)
    end = max(item.end_date for item in items)
    return DateRange(start, end, duration_of(start, end))


def shift_range(start: date, end: date, days: int) -> Tuple[date, date]:
    delta = timedelta(days=days)
    return start + delta, end + delta
