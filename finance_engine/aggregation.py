"""Fold transactions into per-budget spend for the current period."""

from __future__ import annotations

from typing import Any, Iterable, List

import numpy as np
import pandas as pd

from .models import (
    ALL_CATEGORIES,
    EXPENSE,
    Budget,
    BudgetSpend,
    TransactionInstance,
    ensure_single_user,
)
from .recurrence import period_bounds

FRAME_COLUMNS = [
    'id',
    'Transaction Date',
    'Title',
    'Type',
    'Category',
    'Currency',
    'Amount',
    'From Rate',
    'To Rate',
    'Template Id',
]


def transactions_frame(transactions: Iterable[TransactionInstance]) -> pd.DataFrame:
    """Return a DataFrame view of ``transactions`` in input order."""
    rows = [
        {
            'id': txn.id,
            'Transaction Date': txn.date,
            'Title': txn.title,
            'Type': txn.type,
            'Category': txn.category,
            'Currency': txn.currency,
            'Amount': txn.amount,
            'From Rate': txn.from_rate,
            'To Rate': txn.to_rate,
            'Template Id': txn.template_id,
        }
        for txn in transactions
    ]
    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    df['Transaction Date'] = pd.to_datetime(df['Transaction Date'])
    for column in ['Amount', 'From Rate', 'To Rate']:
        df[column] = pd.to_numeric(df[column], errors='coerce').astype(float)
    return df


def aggregate(budget: Budget, transactions: Iterable[TransactionInstance], now: Any) -> BudgetSpend:
    """Sum the expenses that count against ``budget`` in the period containing ``now``.

    Only expense transactions in the budget's category (any category for
    ``"All Categories"``) dated inside ``[period_start, period_end)`` count.

    Currency handling:
        * same currency as the budget: summed as is
        * other currency with a rate attached: ``amount * from_rate / to_rate``,
          a missing side of the pair defaults to 1
        * other currency without rates: summed in its own bucket under
          ``other_currencies`` and never merged into ``total_spent``

    Args:
        budget: Budget to evaluate
        transactions: All of the same user's transactions
        now: Injected current time

    Returns:
        :class:`BudgetSpend` for the current period; an empty period gives
        ``total_spent == 0``.
    """
    transactions = list(transactions)
    ensure_single_user([budget], transactions)
    bounds = period_bounds(budget.start_date, budget.recurrence, now)
    df = transactions_frame(transactions)

    mask = (
        (df['Type'] == EXPENSE)
        & (df['Transaction Date'] >= pd.Timestamp(bounds.start))
        & (df['Transaction Date'] < pd.Timestamp(bounds.end))
    )
    if budget.category != ALL_CATEGORIES:
        mask &= df['Category'] == budget.category
    expenses = df[mask].copy()

    if expenses.empty:
        return BudgetSpend(budget.id, budget.currency, 0.0, 0, bounds.start, bounds.end)

    same_currency = expenses['Currency'] == budget.currency
    has_rate = expenses['From Rate'].notna() | expenses['To Rate'].notna()
    convertible = ~same_currency & has_rate
    converted = expenses['Amount'] * expenses['From Rate'].fillna(1.0) / expenses['To Rate'].fillna(1.0)
    expenses['Converted'] = np.where(same_currency, expenses['Amount'], converted)
    expenses['Bucket'] = np.where(same_currency | convertible, budget.currency, expenses['Currency'])

    totals = expenses.groupby('Bucket', sort=True)['Converted'].sum()
    other = {
        str(code): round(float(total), 2)
        for code, total in totals.items()
        if code != budget.currency
    }
    return BudgetSpend(
        budget_id=budget.id,
        currency=budget.currency,
        total_spent=round(float(totals.get(budget.currency, 0.0)), 2),
        expenses_count=int(len(expenses)),
        period_start=bounds.start,
        period_end=bounds.end,
        other_currencies=other,
    )


def aggregate_all(
    budgets: Iterable[Budget],
    transactions: Iterable[TransactionInstance],
    now: Any,
) -> List[BudgetSpend]:
    transactions = list(transactions)
    return [aggregate(budget, transactions, now) for budget in budgets]
