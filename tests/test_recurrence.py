"""Tests for period boundaries and occurrence dates."""

from __future__ import annotations

from datetime import date, datetime, timedelta

import pandas as pd
import pytest

from finance_engine.errors import InputContractError
from finance_engine.recurrence import (
    RECURRENCES,
    add_periods,
    next_occurrence,
    occurrences,
    period_bounds,
    to_day,
)


def test_month_addition_clamps_to_end_of_month():
    assert add_periods(date(2024, 1, 31), 'monthly', 1) == date(2024, 2, 29)
    assert add_periods(date(2023, 1, 31), 'monthly', 1) == date(2023, 2, 28)
    assert add_periods(date(2024, 11, 30), 'quarterly', 1) == date(2025, 2, 28)
    assert add_periods(date(2024, 2, 29), 'yearly', 1) == date(2025, 2, 28)


def test_boundaries_are_computed_from_the_anchor_without_drift():
    # Chaining would give Feb 29 -> Mar 29; counting from the anchor keeps the 31st.
    assert add_periods(date(2024, 1, 31), 'monthly', 2) == date(2024, 3, 31)
    bounds = period_bounds(date(2024, 1, 31), 'monthly', date(2024, 3, 15))
    assert bounds.start == date(2024, 2, 29)
    assert bounds.end == date(2024, 3, 31)


def test_next_occurrence_adds_one_unit():
    assert next_occurrence(date(2024, 1, 1), 'daily') == date(2024, 1, 2)
    assert next_occurrence(date(2024, 1, 1), 'weekly') == date(2024, 1, 8)
    assert next_occurrence(date(2024, 1, 1), 'quarterly') == date(2024, 4, 1)


def test_monthly_period_contains_reference():
    bounds = period_bounds(date(2024, 1, 1), 'monthly', date(2024, 1, 15))
    assert (bounds.start, bounds.end) == (date(2024, 1, 1), date(2024, 2, 1))

    # The end boundary belongs to the next period
    bounds = period_bounds(date(2024, 1, 1), 'monthly', date(2024, 2, 1))
    assert (bounds.start, bounds.end) == (date(2024, 2, 1), date(2024, 3, 1))


def test_weekly_period_follows_the_anchor_weekday():
    bounds = period_bounds(date(2024, 1, 3), 'weekly', date(2024, 1, 20))
    assert (bounds.start, bounds.end) == (date(2024, 1, 17), date(2024, 1, 24))


def test_reference_before_anchor_returns_first_period():
    bounds = period_bounds(date(2024, 3, 10), 'weekly', date(2024, 1, 1))
    assert (bounds.start, bounds.end) == (date(2024, 3, 10), date(2024, 3, 17))
    assert not bounds.contains(date(2024, 1, 1))


def test_period_bounds_accepts_datetimes_and_strings():
    bounds = period_bounds('2024-01-01', 'monthly', datetime(2024, 1, 31, 23, 59))
    assert bounds.end == date(2024, 2, 1)
    assert bounds.days_until_end(date(2024, 1, 31)) == 1


@pytest.mark.parametrize('recurrence', RECURRENCES)
def test_every_day_belongs_to_exactly_one_period(recurrence):
    anchor = date(2023, 1, 31)
    previous = None
    for offset in range(0, 800, 3):
        reference = anchor + timedelta(days=offset)
        bounds = period_bounds(anchor, recurrence, reference)
        assert bounds.start <= reference < bounds.end
        if previous is not None:
            assert bounds.start >= previous.start
            if bounds.start != previous.start:
                assert bounds.start >= previous.end
                assert bounds.end > previous.end
        previous = bounds


def test_consecutive_periods_share_their_boundary():
    first = period_bounds(date(2024, 1, 31), 'monthly', date(2024, 2, 10))
    second = period_bounds(date(2024, 1, 31), 'monthly', first.end)
    assert second.start == first.end


def test_occurrences_stop_at_inclusive_end_date():
    result = list(occurrences(date(2024, 1, 1), 'monthly', date(2024, 6, 15), end_date=date(2024, 3, 1)))
    assert result == [date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1)]


def test_occurrences_empty_before_anchor():
    assert list(occurrences(date(2024, 5, 1), 'daily', date(2024, 4, 30))) == []


def test_unknown_recurrence_fails_fast():
    with pytest.raises(InputContractError):
        period_bounds(date(2024, 1, 1), 'fortnightly', date(2024, 1, 2))
    with pytest.raises(ValueError):
        add_periods(date(2024, 1, 1), None, 1)


def test_to_day_normalises_supported_inputs():
    assert to_day(datetime(2024, 5, 6, 18, 30)) == date(2024, 5, 6)
    assert to_day(pd.Timestamp('2024-05-06 10:00')) == date(2024, 5, 6)
    assert to_day('2024-05-06') == date(2024, 5, 6)
    assert to_day(date(2024, 5, 6)) == date(2024, 5, 6)


@pytest.mark.parametrize('value', [None, '', 'not a date', '2024-02-30', pd.NaT, 20240101])
def test_to_day_rejects_malformed_dates(value):
    with pytest.raises(InputContractError):
        to_day(value)
