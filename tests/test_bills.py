from __future__ import annotations

from datetime import date, datetime

import pytest

from finance_engine.bills import (
    bill_reminders,
    bill_stats,
    days_until_due,
    mark_paid,
    next_due_date,
    overdue_bills,
    resolve,
    resolve_all,
    upcoming_bills,
)
from finance_engine.errors import InputContractError
from finance_engine.models import Bill


def _bill(bill_id='rent', due=date(2024, 1, 31), status='unpaid', **extra):
    return Bill(
        id=bill_id,
        user_id='u1',
        title=extra.pop('title', bill_id.title()),
        amount=extra.pop('amount', 100),
        currency='USD',
        due_date=due,
        bill_status=status,
        **extra,
    )


def test_unpaid_bill_past_due_reads_overdue():
    bill = _bill(due=date(2024, 3, 9))
    assert resolve(bill, datetime(2024, 3, 10, 8, 30)) == 'overdue'


def test_bill_due_today_is_not_overdue():
    bill = _bill(due=date(2024, 3, 10))
    assert resolve(bill, datetime(2024, 3, 10, 23, 59)) == 'unpaid'


def test_paid_bill_stays_paid():
    bill = _bill(due=date(2023, 1, 1), status='paid')
    assert resolve(bill, date(2024, 3, 10)) == 'paid'


def test_pending_bill_keeps_status_until_due_date_passes():
    bill = _bill(due=date(2024, 3, 12), status='pending')
    assert resolve(bill, date(2024, 3, 10)) == 'pending'
    assert resolve(bill, date(2024, 3, 13)) == 'overdue'


def test_stored_overdue_on_future_bill_reads_unpaid():
    bill = _bill(due=date(2024, 4, 1), status='overdue')
    assert resolve(bill, date(2024, 3, 10)) == 'unpaid'


def test_resolve_does_not_mutate_stored_status():
    bill = _bill(due=date(2024, 1, 1))
    statuses = resolve_all([bill], date(2024, 3, 10))
    assert statuses == {'rent': 'overdue'}
    assert bill.bill_status == 'unpaid'


def test_days_until_due():
    bill = _bill(due=date(2024, 3, 15))
    assert days_until_due(bill, date(2024, 3, 10)) == 5
    assert days_until_due(bill, date(2024, 3, 20)) == -5


@pytest.mark.parametrize(
    'frequency, expected',
    [
        ('monthly', date(2024, 2, 29)),
        ('quarterly', date(2024, 4, 30)),
        ('yearly', date(2025, 1, 31)),
        ('one-time', None),
    ],
)
def test_next_due_date(frequency, expected):
    assert next_due_date(_bill(bill_frequency=frequency)) == expected


def test_mark_paid_rolls_recurring_bill_forward():
    bill = _bill(bill_frequency='monthly', reminder_days=3)

    paid, following = mark_paid(bill, date(2024, 1, 30))

    assert paid.bill_status == 'paid'
    assert paid.last_paid_date == date(2024, 1, 30)
    assert following.id == ''
    assert following.bill_status == 'unpaid'
    assert following.due_date == date(2024, 2, 29)
    assert following.reminder_days == 3
    assert bill.bill_status == 'unpaid'


def test_mark_paid_one_time_bill_has_no_successor():
    paid, following = mark_paid(_bill(), '2024-01-15')
    assert paid.bill_status == 'paid'
    assert following is None


def _build_bills():
    return [
        _bill('rent', date(2024, 2, 1)),
        _bill('phone', date(2024, 1, 28), reminder_days=3),
        _bill('gym', date(2024, 1, 20)),
        _bill('water', date(2024, 1, 26), status='paid'),
        _bill('insurance', date(2024, 3, 1), status='pending', reminder_days=7),
    ]


def test_upcoming_bills_within_window():
    upcoming = upcoming_bills(_build_bills(), date(2024, 1, 25))
    assert [bill.id for bill in upcoming] == ['phone', 'rent']


def test_upcoming_bills_custom_window():
    upcoming = upcoming_bills(_build_bills(), date(2024, 1, 25), window_days=3)
    assert [bill.id for bill in upcoming] == ['phone']


def test_overdue_bills():
    assert [bill.id for bill in overdue_bills(_build_bills(), date(2024, 1, 25))] == ['gym']


def test_bill_reminders_use_each_bills_own_window():
    bills = _build_bills()
    assert bill_reminders(bills, date(2024, 1, 24)) == []
    assert [bill.id for bill in bill_reminders(bills, date(2024, 1, 25))] == ['phone']
    assert [bill.id for bill in bill_reminders(bills, date(2024, 2, 23))] == ['insurance']


def test_bill_stats():
    stats = bill_stats(_build_bills(), date(2024, 1, 25))
    assert stats == {
        'total': 5,
        'unpaid': 2,
        'pending': 1,
        'paid': 1,
        'overdue': 1,
        'upcoming': 2,
    }


def test_invalid_bill_status_is_rejected():
    with pytest.raises(InputContractError):
        _bill(status='cancelled')


def test_negative_reminder_days_is_rejected():
    with pytest.raises(InputContractError):
        _bill(reminder_days=-1)


@pytest.mark.parametrize('reminder_days', ['soon', [3], True])
def test_non_numeric_reminder_days_is_rejected(reminder_days):
    with pytest.raises(InputContractError):
        _bill(reminder_days=reminder_days)


def test_reminder_days_from_text_is_normalised():
    assert _bill(reminder_days='3').reminder_days == 3
