"""Field-level change detection for budget audit logs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List

from .models import Budget

TRACKED_FIELDS = ('title', 'amount', 'currency', 'recurrence', 'start_date', 'category')


@dataclass(frozen=True)
class BudgetChange:
    field: str
    old_value: Any
    new_value: Any


def detect_budget_changes(old: Budget, new: Budget) -> List[BudgetChange]:
    """List the tracked fields that differ between two versions of a budget.

    A changed ``start_date`` or ``recurrence`` moves every later period
    boundary, so callers usually log these with the reason for the edit.
    """
    changes: List[BudgetChange] = []
    for name in TRACKED_FIELDS:
        before = getattr(old, name)
        after = getattr(new, name)
        if before != after:
            changes.append(BudgetChange(name, before, after))
    return changes
