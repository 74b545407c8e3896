"""Display status and alerts for bills.

``overdue`` is never written back to storage here: it is recomputed from the
due date every time a bill is read, so it stays correct as "now" advances.
Marking a bill paid is the only transition the caller persists.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from dateutil.relativedelta import relativedelta

from . import config
from .models import OVERDUE, PAID, PENDING, UNPAID, Bill
from .recurrence import to_day

BILL_FREQUENCY_STEPS = {
    'monthly': relativedelta(months=1),
    'quarterly': relativedelta(months=3),
    'yearly': relativedelta(years=1),
}


def resolve(bill: Bill, now: Any) -> str:
    """Return the status to display for ``bill`` at ``now``.

    Paid bills stay paid.  An unpaid or pending bill whose due date is before
    the start of today reads as overdue; otherwise its stored status is shown.
    A stored ``overdue`` on a bill that is no longer past due (for example
    after its due date was moved) reads as ``unpaid``.
    """
    if bill.bill_status == PAID:
        return PAID
    if bill.due_date < to_day(now):
        return OVERDUE
    if bill.bill_status == OVERDUE:
        return UNPAID
    return bill.bill_status


def resolve_all(bills: Iterable[Bill], now: Any) -> Dict[str, str]:
    return {bill.id: resolve(bill, now) for bill in bills}


def days_until_due(bill: Bill, now: Any) -> int:
    """Calendar days from today to the due date, negative once past due."""
    return (bill.due_date - to_day(now)).days


def next_due_date(bill: Bill) -> Optional[date]:
    """Due date of the following occurrence, ``None`` for one-time bills."""
    step = BILL_FREQUENCY_STEPS.get(bill.bill_frequency)
    if step is None:
        return None
    return bill.due_date + step


def mark_paid(bill: Bill, paid_on: Any) -> Tuple[Bill, Optional[Bill]]:
    """Record payment of ``bill``.

    Returns:
        ``(paid_bill, next_bill)``.  ``paid_bill`` is terminal for this
        occurrence.  For recurring bills ``next_bill`` is a fresh unpaid copy
        due one period later with no id yet; it is ``None`` for one-time bills.
    """
    paid_bill = replace(bill, bill_status=PAID, last_paid_date=to_day(paid_on))
    following = next_due_date(bill)
    if following is None:
        return paid_bill, None
    next_bill = replace(bill, id='', bill_status=UNPAID, due_date=following, last_paid_date=paid_bill.last_paid_date)
    return paid_bill, next_bill


def overdue_bills(bills: Iterable[Bill], now: Any) -> List[Bill]:
    return sorted((bill for bill in bills if resolve(bill, now) == OVERDUE), key=lambda b: b.due_date)


def upcoming_bills(bills: Iterable[Bill], now: Any, window_days: Optional[int] = None) -> List[Bill]:
    """Open bills due between today and ``window_days`` from now, inclusive."""
    window = config.UPCOMING_BILL_DAYS if window_days is None else window_days
    upcoming = [
        bill
        for bill in bills
        if resolve(bill, now) != PAID and 0 <= days_until_due(bill, now) <= window
    ]
    return sorted(upcoming, key=lambda b: b.due_date)


def bill_reminders(bills: Iterable[Bill], now: Any) -> List[Bill]:
    """Open bills that are inside their own ``reminder_days`` window."""
    reminders = [
        bill
        for bill in bills
        if bill.reminder_days
        and resolve(bill, now) != PAID
        and 0 <= days_until_due(bill, now) <= bill.reminder_days
    ]
    return sorted(reminders, key=lambda b: b.due_date)


def bill_stats(bills: Iterable[Bill], now: Any, window_days: Optional[int] = None) -> Dict[str, int]:
    bills = list(bills)
    statuses = [resolve(bill, now) for bill in bills]
    return {
        'total': len(bills),
        'unpaid': sum(1 for status in statuses if status == UNPAID),
        'pending': sum(1 for status in statuses if status == PENDING),
        'paid': sum(1 for status in statuses if status == PAID),
        'overdue': sum(1 for status in statuses if status == OVERDUE),
        'upcoming': len(upcoming_bills(bills, now, window_days)),
    }
