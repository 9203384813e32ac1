"""Month-based period arithmetic.

Billing periods are anchored on the lease start date: period ``i`` starts at
``start + i * cycle`` months. Anchoring (instead of chaining ``end = start +
cycle`` from the previous period) keeps a lease that starts on the 31st from
drifting to the 28th after February.
"""
from datetime import date, datetime
from typing import Iterator, Tuple, Union

from dateutil.relativedelta import relativedelta


def as_date(value: Union[date, datetime]) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def add_months(d: date, months: int) -> date:
    """Calendar month addition, clamping to the last day of the month."""
    return d + relativedelta(months=months)


def months_between(start: date, end: date) -> int:
    """Whole calendar months from ``start``'s month to ``end``'s month."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def period_start_for_index(lease_start: date, cycle_months: int, index: int) -> date:
    return add_months(lease_start, index * cycle_months)


def period_index_for(lease_start: date, cycle_months: int, period_start: date) -> int:
    """Inverse of :func:`period_start_for_index`.

    Raises ``ValueError`` when ``period_start`` is not a cycle boundary.
    """
    months = months_between(lease_start, period_start)
    if months < 0 or months % cycle_months:
        raise ValueError(f"{period_start} is not a billing boundary")
    index = months // cycle_months
    if period_start_for_index(lease_start, cycle_months, index) != period_start:
        raise ValueError(f"{period_start} is not a billing boundary")
    return index


def period_bounds(lease_start: date, lease_end: date, cycle_months: int, index: int) -> Tuple[date, date]:
    """Half-open ``[start, end)`` of period ``index``, clipped to ``lease_end``."""
    start = period_start_for_index(lease_start, cycle_months, index)
    end = period_start_for_index(lease_start, cycle_months, index + 1)
    return start, min(end, lease_end)


def iter_period_indexes(lease_start: date, lease_end: date, cycle_months: int,
                        first_index: int, until: date) -> Iterator[int]:
    """Indexes from ``first_index`` whose period starts on or before ``until``
    and strictly before ``lease_end``."""
    index = max(first_index, 0)
    while True:
        start = period_start_for_index(lease_start, cycle_months, index)
        if start > until or start >= lease_end:
            return
        yield index
        index += 1
