"""Entity records consumed and produced by the finance engine.

The storage layer hands the engine plain records; the engine never mutates
them.  Construction validates the input contract so that bad data fails at the
boundary rather than deep inside an aggregation.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, Optional

from .errors import InputContractError
from .recurrence import BUDGET_RECURRENCES, RECURRENCES, to_day, validate_recurrence

INCOME = 'income'
EXPENSE = 'expense'
TRANSACTION_TYPES = (INCOME, EXPENSE)

ALL_CATEGORIES = 'All Categories'
BILLS_CATEGORY = 'Bills'

UNPAID = 'unpaid'
PENDING = 'pending'
PAID = 'paid'
OVERDUE = 'overdue'
BILL_STATUSES = (UNPAID, PENDING, PAID, OVERDUE)

ONE_TIME = 'one-time'
BILL_FREQUENCIES = ('monthly', 'quarterly', 'yearly', ONE_TIME)

# Decision outcomes for a series evaluation
NOOP = 'noop'
CREATE = 'create'
REMINDER = 'reminder'


def _positive_amount(value: Any, label: str = 'amount') -> float:
    if isinstance(value, bool):
        raise InputContractError(f"{label} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InputContractError(f"{label} must be a number, got {value!r}") from exc
    if not math.isfinite(number) or number <= 0:
        raise InputContractError(f"{label} must be a finite number greater than 0, got {value!r}")
    return number


def _optional_days(value: Any, label: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise InputContractError(f"{label} must be a whole number of days, got {value!r}")
    try:
        days = int(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise InputContractError(f"{label} must be a whole number of days, got {value!r}") from exc
    if days < 0:
        raise InputContractError(f"{label} cannot be negative, got {value!r}")
    return days


def _optional_rate(value: Any, label: str) -> Optional[float]:
    if value is None:
        return None
    return _positive_amount(value, label)


def _currency(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InputContractError(f"currency must be a non-empty code, got {value!r}")
    return value.strip().upper()


def _choice(value: Any, allowed: Iterable[str], label: str) -> str:
    allowed = tuple(allowed)
    if value not in allowed:
        raise InputContractError(f"Unknown {label} {value!r}; expected one of {', '.join(allowed)}")
    return value


@dataclass(frozen=True)
class TransactionInstance:
    """A concrete dated income or expense.

    ``template_id`` is set when the row was generated from a
    :class:`RecurringSeries`.
    """

    user_id: str
    type: str
    amount: float
    currency: str
    category: str
    date: date
    title: str = ''
    id: Optional[str] = None
    template_id: Optional[str] = None
    from_rate: Optional[float] = None
    to_rate: Optional[float] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, 'type', _choice(self.type, TRANSACTION_TYPES, 'transaction type'))
        object.__setattr__(self, 'amount', _positive_amount(self.amount))
        object.__setattr__(self, 'currency', _currency(self.currency))
        object.__setattr__(self, 'date', to_day(self.date))
        object.__setattr__(self, 'from_rate', _optional_rate(self.from_rate, 'from_rate'))
        object.__setattr__(self, 'to_rate', _optional_rate(self.to_rate, 'to_rate'))

    @property
    def is_expense(self) -> bool:
        return self.type == EXPENSE

    @property
    def has_rates(self) -> bool:
        return self.from_rate is not None or self.to_rate is not None


@dataclass(frozen=True)
class RecurringSeries:
    """Definition of a recurring transaction.

    The anchor date is the first occurrence.  A series is dormant once
    ``active`` is false or "now" has moved past ``end_date``; ``end_date``
    itself is still a valid occurrence day.
    """

    id: str
    user_id: str
    type: str
    amount: float
    currency: str
    category: str
    anchor_date: date
    frequency: str
    title: str = ''
    end_date: Optional[date] = None
    active: bool = True
    auto_create: bool = True
    from_rate: Optional[float] = None
    to_rate: Optional[float] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, 'type', _choice(self.type, TRANSACTION_TYPES, 'transaction type'))
        object.__setattr__(self, 'amount', _positive_amount(self.amount))
        object.__setattr__(self, 'currency', _currency(self.currency))
        object.__setattr__(self, 'anchor_date', to_day(self.anchor_date))
        object.__setattr__(self, 'frequency', validate_recurrence(self.frequency, RECURRENCES))
        if self.end_date is not None:
            object.__setattr__(self, 'end_date', to_day(self.end_date))
        object.__setattr__(self, 'from_rate', _optional_rate(self.from_rate, 'from_rate'))
        object.__setattr__(self, 'to_rate', _optional_rate(self.to_rate, 'to_rate'))

    def is_dormant(self, now: Any) -> bool:
        if not self.active:
            return True
        return self.end_date is not None and to_day(now) > self.end_date


@dataclass(frozen=True)
class Budget:
    id: str
    user_id: str
    category: str
    amount: float
    currency: str
    recurrence: str
    start_date: date
    title: str = ''

    def __post_init__(self) -> None:
        object.__setattr__(self, 'amount', _positive_amount(self.amount))
        object.__setattr__(self, 'currency', _currency(self.currency))
        object.__setattr__(self, 'recurrence', validate_recurrence(self.recurrence, BUDGET_RECURRENCES))
        object.__setattr__(self, 'start_date', to_day(self.start_date))

    def matches_category(self, category: str) -> bool:
        return self.category == ALL_CATEGORIES or category == self.category


@dataclass(frozen=True)
class Bill:
    id: str
    user_id: str
    title: str
    amount: float
    currency: str
    due_date: date
    bill_status: str = UNPAID
    bill_category: str = ''
    bill_frequency: str = ONE_TIME
    reminder_days: Optional[int] = None
    last_paid_date: Optional[date] = None
    category: str = BILLS_CATEGORY

    def __post_init__(self) -> None:
        object.__setattr__(self, 'amount', _positive_amount(self.amount))
        object.__setattr__(self, 'currency', _currency(self.currency))
        object.__setattr__(self, 'due_date', to_day(self.due_date))
        object.__setattr__(self, 'bill_status', _choice(self.bill_status, BILL_STATUSES, 'bill status'))
        object.__setattr__(self, 'bill_frequency', _choice(self.bill_frequency, BILL_FREQUENCIES, 'bill frequency'))
        object.__setattr__(self, 'reminder_days', _optional_days(self.reminder_days, 'reminder_days'))
        if self.last_paid_date is not None:
            object.__setattr__(self, 'last_paid_date', to_day(self.last_paid_date))

    @property
    def is_recurring(self) -> bool:
        return self.bill_frequency != ONE_TIME


@dataclass(frozen=True)
class BudgetSpend:
    """Result of folding one budget's transactions for its current period."""

    budget_id: str
    currency: str
    total_spent: float
    expenses_count: int
    period_start: date
    period_end: date
    other_currencies: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class BudgetProgress:
    budget_id: str
    title: str
    category: str
    currency: str
    amount: float
    total_spent: float
    remaining: float
    progress: float
    is_over_budget: bool
    expenses_count: int
    usage_level: str
    period_start: date
    period_end: date
    start_date: date
    other_currencies: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class HealthBreakdown:
    base_score: int = 0
    over_budget_count: int = 0
    over_budget_penalty: int = 0
    high_usage_count: int = 0
    high_usage_penalty: int = 0
    medium_usage_count: int = 0
    medium_usage_penalty: int = 0
    low_usage_count: int = 0
    low_usage_bonus: int = 0
    perfect_record_bonus: int = 0


@dataclass(frozen=True)
class BudgetHealth:
    score: int
    label: str
    color: str
    breakdown: HealthBreakdown


@dataclass(frozen=True)
class MaterializationDecision:
    """What the storage layer should do for one series right now.

    ``outcome`` is one of ``noop``, ``create`` or ``reminder``.  For ``noop``
    on a live series ``instance_date`` carries the next upcoming occurrence.
    """

    series_id: str
    outcome: str
    instance_date: Optional[date] = None
    instance: Optional[TransactionInstance] = None

    @property
    def should_create(self) -> bool:
        return self.outcome == CREATE

    @property
    def is_reminder(self) -> bool:
        return self.outcome == REMINDER


def ensure_single_user(*collections: Iterable[Any]) -> Optional[str]:
    """Return the one ``user_id`` shared by every record, or ``None`` if empty.

    Raises:
        InputContractError: If the records belong to more than one user
    """
    owners = {record.user_id for records in collections for record in records}
    if len(owners) > 1:
        raise InputContractError(f"Records span several users: {', '.join(sorted(map(str, owners)))}")
    return next(iter(owners), None)
