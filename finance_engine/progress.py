"""Per-budget progress and the budget overview shown on the dashboard.

These helpers turn :class:`BudgetSpend` folds into progress records, roll
them up per currency and lay them out as a DataFrame for table rendering.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from .aggregation import aggregate_all
from .errors import InputContractError
from .formatting import format_currency, format_percent
from .models import Budget, BudgetHealth, BudgetProgress, BudgetSpend, TransactionInstance
from .recurrence import to_day
from .scoring import HIGH, LOW, MEDIUM, NORMAL, OVER, score, usage_level

STATUS_LABELS = {
    OVER: 'Over Budget',
    HIGH: 'High Usage',
    MEDIUM: 'Medium Usage',
    NORMAL: 'On Track',
    LOW: 'Low Usage',
}

PROGRESS_COLUMNS = [
    'Budget',
    'Category',
    'Currency',
    'Budget Amount',
    'Spent',
    'Remaining',
    'Percent Used',
    'Status',
    'Expenses',
    'Period Start',
    'Period End',
]


@dataclass(frozen=True)
class CurrencyTotals:
    budget_amount: float
    total_spent: float
    total_progress: float
    savings_achieved: float


@dataclass(frozen=True)
class BudgetOverview:
    """Dashboard summary across all of one user's budgets.

    Money totals are keyed by currency and never blended, since there is no
    common exchange basis between budgets.
    """

    budgets: List[BudgetProgress]
    health: BudgetHealth
    totals: Dict[str, CurrencyTotals] = field(default_factory=dict)
    days_until_reset: Optional[int] = None
    on_track_budgets: int = 0
    active_budgets_this_month: int = 0


def budget_progress(budget: Budget, spend: BudgetSpend) -> BudgetProgress:
    """Convert a spend fold into progress for ``budget``.

    ``progress`` is not capped, so 600 spent of a 500 budget reads 120.
    The usage level and ``is_over_budget`` come from the unrounded ratio, so
    1000.01 of 1000 is over budget even though it displays as 100.0.
    """
    if spend.budget_id != budget.id:
        raise InputContractError(f"Spend for budget {spend.budget_id!r} passed with budget {budget.id!r}")

    ratio = spend.total_spent / budget.amount * 100
    level = usage_level(ratio)
    return BudgetProgress(
        budget_id=budget.id,
        title=budget.title,
        category=budget.category,
        currency=budget.currency,
        amount=budget.amount,
        total_spent=spend.total_spent,
        remaining=round(budget.amount - spend.total_spent, 2),
        progress=round(ratio, 2),
        is_over_budget=level == OVER,
        expenses_count=spend.expenses_count,
        usage_level=level,
        period_start=spend.period_start,
        period_end=spend.period_end,
        start_date=budget.start_date,
        other_currencies=dict(spend.other_currencies),
    )


def evaluate_budgets(
    budgets: Iterable[Budget],
    transactions: Iterable[TransactionInstance],
    now: Any,
) -> List[BudgetProgress]:
    """Aggregate and score every budget at ``now``."""
    budgets = list(budgets)
    spends = aggregate_all(budgets, transactions, now)
    return [budget_progress(budget, spend) for budget, spend in zip(budgets, spends)]


def budget_overview(
    progress_list: Iterable[BudgetProgress],
    now: Any,
    health: Optional[BudgetHealth] = None,
) -> BudgetOverview:
    """Summarise ``progress_list`` for the dashboard header cards."""
    items = list(progress_list)
    today = to_day(now)
    health = health or score(items)
    if not items:
        return BudgetOverview(budgets=[], health=health)

    totals: Dict[str, CurrencyTotals] = {}
    for currency in sorted({item.currency for item in items}):
        group = [item for item in items if item.currency == currency]
        amount = sum(item.amount for item in group)
        spent = sum(item.total_spent for item in group)
        totals[currency] = CurrencyTotals(
            budget_amount=round(amount, 2),
            total_spent=round(spent, 2),
            total_progress=min(round(spent / amount * 100, 2), 100.0) if amount > 0 else 0.0,
            savings_achieved=round(sum(item.remaining for item in group if item.remaining > 0), 2),
        )

    return BudgetOverview(
        budgets=items,
        health=health,
        totals=totals,
        days_until_reset=min((item.period_end - today).days for item in items),
        on_track_budgets=sum(1 for item in items if not item.is_over_budget and item.progress < 80),
        active_budgets_this_month=sum(1 for item in items if _active_this_month(item, today)),
    )


def progress_frame(progress_list: Iterable[BudgetProgress]) -> pd.DataFrame:
    """Lay out progress records as a table, most used budgets first."""
    rows = [
        {
            'Budget': item.title or item.category,
            'Category': item.category,
            'Currency': item.currency,
            'Budget Amount': item.amount,
            'Spent': item.total_spent,
            'Remaining': item.remaining,
            'Percent Used': item.progress,
            'Status': STATUS_LABELS[item.usage_level],
            'Expenses': item.expenses_count,
            'Period Start': item.period_start,
            'Period End': item.period_end,
        }
        for item in progress_list
    ]
    df = pd.DataFrame(rows, columns=PROGRESS_COLUMNS)
    if df.empty:
        return df
    return df.sort_values(['Percent Used', 'Budget'], ascending=[False, True]).reset_index(drop=True)


def describe_progress(item: BudgetProgress) -> str:
    """One-line card caption, e.g. ``"Food: $450.00 of $500.00 (90.0%)"``."""
    spent = format_currency(item.total_spent, item.currency)
    limit = format_currency(item.amount, item.currency)
    caption = f"{item.title or item.category}: {spent} of {limit} ({format_percent(item.progress)})"
    if item.is_over_budget:
        caption += f", over by {format_currency(-item.remaining, item.currency)}"
    for code, total in sorted(item.other_currencies.items()):
        caption += f" + {format_currency(total, code)} unconverted"
    return caption


def _active_this_month(item: BudgetProgress, today: date) -> bool:
    started = item.start_date <= today
    same_month = (item.period_start.year, item.period_start.month) == (today.year, today.month)
    return started and same_month
