"""Calendar helpers for recurring series and budget periods.

Every boundary is computed as ``anchor + k * unit`` walking forward from the
anchor, never backward from "now".  Editing an anchor therefore shifts all
later boundaries deterministically, and day-of-month clamping (Jan 31 plus
one month is the last day of February) never accumulates drift across
periods.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterator, Optional

import pandas as pd
from dateutil.relativedelta import relativedelta

from .errors import InputContractError

DAILY = 'daily'
WEEKLY = 'weekly'
MONTHLY = 'monthly'
QUARTERLY = 'quarterly'
YEARLY = 'yearly'

RECURRENCE_UNITS: Dict[str, Dict[str, int]] = {
    DAILY: {'days': 1},
    WEEKLY: {'weeks': 1},
    MONTHLY: {'months': 1},
    QUARTERLY: {'months': 3},
    YEARLY: {'years': 1},
}
RECURRENCES = tuple(RECURRENCE_UNITS)
BUDGET_RECURRENCES = (DAILY, WEEKLY, MONTHLY, YEARLY)


@dataclass(frozen=True)
class PeriodBounds:
    """Half-open ``[start, end)`` date range."""

    start: date
    end: date

    def contains(self, day: Any) -> bool:
        value = to_day(day)
        return self.start <= value < self.end

    def days_until_end(self, now: Any) -> int:
        return (self.end - to_day(now)).days


def to_day(value: Any) -> date:
    """Normalise a date-like value to a ``datetime.date``.

    Accepts ``date``, ``datetime``, ``pd.Timestamp`` and ISO-8601 strings.
    Anything else (including ``None``, ``NaT`` and unparseable strings)
    raises :class:`InputContractError`.
    """
    if value is None or value is pd.NaT:
        raise InputContractError("Date value is missing")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            parsed = pd.Timestamp(value.strip())
        except (ValueError, TypeError) as exc:
            raise InputContractError(f"Malformed date: {value!r}") from exc
        if pd.isna(parsed):
            raise InputContractError(f"Malformed date: {value!r}")
        return parsed.date()
    raise InputContractError(f"Malformed date: {value!r}")


def validate_recurrence(recurrence: Any, allowed=RECURRENCES) -> str:
    if recurrence not in allowed:
        raise InputContractError(
            f"Unknown recurrence {recurrence!r}; expected one of {', '.join(allowed)}"
        )
    return recurrence


def add_periods(anchor: Any, recurrence: str, count: int) -> date:
    """Return ``anchor`` shifted by ``count`` recurrence units.

    Month based units clamp to the last day of the target month.

    Example:
        >>> add_periods(date(2024, 1, 31), 'monthly', 1)
        datetime.date(2024, 2, 29)
        >>> add_periods(date(2024, 1, 31), 'monthly', 2)
        datetime.date(2024, 3, 31)
    """
    unit = RECURRENCE_UNITS[validate_recurrence(recurrence)]
    step = relativedelta(**{name: value * count for name, value in unit.items()})
    return to_day(anchor) + step


def next_occurrence(anchor: Any, recurrence: str) -> date:
    return add_periods(anchor, recurrence, 1)


def period_bounds(anchor: Any, recurrence: str, reference: Any) -> PeriodBounds:
    """Return the period of the ``anchor`` series that contains ``reference``.

    Args:
        anchor: First day of the first period (e.g. a budget's start date)
        recurrence: One of :data:`RECURRENCES`
        reference: The point in time to locate, usually "now"

    Returns:
        :class:`PeriodBounds` with ``start <= reference < end``. When the
        reference precedes the anchor the first period is returned, so a
        budget that has not started yet reads as an empty period.
    """
    start = to_day(anchor)
    ref = to_day(reference)
    validate_recurrence(recurrence)

    if ref < start:
        return PeriodBounds(start, add_periods(start, recurrence, 1))

    index = 0
    upper = add_periods(start, recurrence, 1)
    while upper <= ref:
        index += 1
        upper = add_periods(start, recurrence, index + 1)
    return PeriodBounds(add_periods(start, recurrence, index), upper)


def occurrences(
    anchor: Any,
    recurrence: str,
    until: Any,
    *,
    end_date: Optional[Any] = None,
) -> Iterator[date]:
    """Yield ``anchor + k * unit`` for k = 0, 1, ... while on or before ``until``.

    ``end_date`` is inclusive: an occurrence falling on it is still yielded.
    """
    first = to_day(anchor)
    last = to_day(until)
    if end_date is not None:
        last = min(last, to_day(end_date))
    validate_recurrence(recurrence)

    index = 0
    current = first
    while current <= last:
        yield current
        index += 1
        current = add_periods(first, recurrence, index)
