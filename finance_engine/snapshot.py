"""Evaluate a complete snapshot of one user's data in a single call.

A snapshot is whatever the storage layer read for a user: transactions,
recurring series, budgets and bills.  :func:`evaluate` runs every part of the
engine over it; :func:`load_snapshot` reads the same structure from JSON for
scripts and fixtures.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Type

from .bills import bill_reminders, bill_stats, resolve_all, upcoming_bills
from .errors import InputContractError
from .materializer import (
    MaterializationReport,
    due_instances,
    instance_dates_by_series,
    materialize,
    series_status,
)
from .models import (
    Bill,
    Budget,
    BudgetHealth,
    BudgetProgress,
    MaterializationDecision,
    RecurringSeries,
    TransactionInstance,
    ensure_single_user,
)
from .progress import BudgetOverview, budget_overview, evaluate_budgets
from .scoring import HealthRule, load_health_rules, score

logger = logging.getLogger(__name__)


@dataclass
class UserSnapshot:
    user_id: Optional[str]
    transactions: List[TransactionInstance] = field(default_factory=list)
    series: List[RecurringSeries] = field(default_factory=list)
    budgets: List[Budget] = field(default_factory=list)
    bills: List[Bill] = field(default_factory=list)

    @classmethod
    def from_records(cls, data: Mapping[str, Any]) -> 'UserSnapshot':
        """Build a snapshot from plain dictionaries keyed by field name."""
        if not isinstance(data, Mapping):
            raise InputContractError("Snapshot must be a JSON object")
        snapshot = cls(
            user_id=data.get('user_id'),
            transactions=_build(TransactionInstance, data.get('transactions')),
            series=_build(RecurringSeries, data.get('series')),
            budgets=_build(Budget, data.get('budgets')),
            bills=_build(Bill, data.get('bills')),
        )
        owner = ensure_single_user(snapshot.transactions, snapshot.series, snapshot.budgets, snapshot.bills)
        if snapshot.user_id is None:
            snapshot.user_id = owner
        elif owner is not None and owner != snapshot.user_id:
            raise InputContractError(f"Snapshot for {snapshot.user_id!r} contains records of {owner!r}")
        return snapshot


@dataclass
class EngineResult:
    """Everything the UI/API layer renders for one user at one instant."""

    progress: List[BudgetProgress]
    health: BudgetHealth
    overview: BudgetOverview
    decisions: List[MaterializationDecision]
    materialization: MaterializationReport
    series_status: Dict[str, int]
    bill_statuses: Dict[str, str]
    upcoming_bills: List[Bill]
    bill_reminders: List[Bill]
    bill_stats: Dict[str, int]


def load_snapshot(path: Path) -> UserSnapshot:
    """Read a snapshot JSON file.

    Raises:
        FileNotFoundError: If ``path`` does not exist
        json.JSONDecodeError: If the file is not valid JSON
        InputContractError: If any record breaks the input contract
    """
    with Path(path).open('r', encoding='utf-8') as handle:
        data = json.load(handle)
    snapshot = UserSnapshot.from_records(data)
    logger.debug(
        "Loaded snapshot for %s: %d transactions, %d series, %d budgets, %d bills",
        snapshot.user_id,
        len(snapshot.transactions),
        len(snapshot.series),
        len(snapshot.budgets),
        len(snapshot.bills),
    )
    return snapshot


def evaluate(
    snapshot: UserSnapshot,
    now: Any,
    *,
    rules: Optional[Sequence[HealthRule]] = None,
    upcoming_window_days: Optional[int] = None,
) -> EngineResult:
    """Run budgets, recurring series and bills through the engine at ``now``.

    Without ``rules`` the health score uses :func:`load_health_rules`, so point
    overrides from ``FINANCE_ENGINE_HEALTH_RULES`` apply.
    """
    progress = evaluate_budgets(snapshot.budgets, snapshot.transactions, now)
    health = score(progress, load_health_rules() if rules is None else rules)
    existing = instance_dates_by_series(snapshot.series, snapshot.transactions)
    decisions = [
        due_instances(series, now, existing.get(series.id, ()))
        for series in snapshot.series
    ]
    return EngineResult(
        progress=progress,
        health=health,
        overview=budget_overview(progress, now, health),
        decisions=decisions,
        materialization=materialize(snapshot.series, snapshot.transactions, now),
        series_status=series_status(snapshot.series, snapshot.transactions, now),
        bill_statuses=resolve_all(snapshot.bills, now),
        upcoming_bills=upcoming_bills(snapshot.bills, now, upcoming_window_days),
        bill_reminders=bill_reminders(snapshot.bills, now),
        bill_stats=bill_stats(snapshot.bills, now, upcoming_window_days),
    )


def _build(record_type: Type, rows: Any) -> List[Any]:
    if rows is None:
        return []
    if not isinstance(rows, list):
        raise InputContractError(f"Expected a list of {record_type.__name__} records")
    records = []
    for row in rows:
        if not isinstance(row, Mapping):
            raise InputContractError(f"{record_type.__name__} record must be an object, got {row!r}")
        try:
            records.append(record_type(**row))
        except TypeError as exc:
            raise InputContractError(f"Invalid {record_type.__name__} record {row!r}: {exc}") from exc
    return records
