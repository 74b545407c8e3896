"""Decide when a recurring series needs a new concrete instance.

The functions here only *propose* writes.  The storage layer turns a
``create`` decision into an insert and must upsert on
``(template_id, instance_date)`` so that concurrent evaluations (a scheduled
job and a page load, say) never store the same instance twice.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Set

from . import config
from .errors import InputContractError
from .models import (
    CREATE,
    NOOP,
    REMINDER,
    MaterializationDecision,
    RecurringSeries,
    TransactionInstance,
    ensure_single_user,
)
from .recurrence import occurrences, period_bounds, to_day

logger = logging.getLogger(__name__)


@dataclass
class MaterializationReport:
    """Outcome of evaluating every series of one user."""

    processed: int = 0
    skipped: int = 0
    created: List[TransactionInstance] = field(default_factory=list)
    reminders: List[MaterializationDecision] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def created_count(self) -> int:
        return len(self.created)


def build_instance(series: RecurringSeries, instance_date: Any) -> TransactionInstance:
    """Return the instance a series generates on ``instance_date``.

    Rates are copied as they are. A series without rates yields an instance
    without rates, which aggregation keeps in its own currency bucket.
    """
    return TransactionInstance(
        user_id=series.user_id,
        type=series.type,
        amount=series.amount,
        currency=series.currency,
        category=series.category,
        date=to_day(instance_date),
        title=series.title,
        template_id=series.id,
        from_rate=series.from_rate,
        to_rate=series.to_rate,
    )


def due_instances(
    series: RecurringSeries,
    now: Any,
    existing_instance_dates: Iterable[Any] = (),
) -> MaterializationDecision:
    """Evaluate ``series`` at ``now``.

    Args:
        series: The recurring definition
        now: Injected current time; only the day is used
        existing_instance_dates: Dates already materialized for this series

    Returns:
        A decision with one of three outcomes:

        * ``noop`` when the series is dormant or nothing is due yet
        * ``create`` with the instance to insert when ``auto_create`` is on
        * ``reminder`` when an occurrence is due but must be entered manually
    """
    today = to_day(now)
    if series.is_dormant(today):
        logger.debug("Series %s is dormant at %s", series.id, today)
        return MaterializationDecision(series.id, NOOP)

    existing = _as_days(existing_instance_dates)
    due = _first_missing(series, today, existing)
    if due is None:
        return MaterializationDecision(series.id, NOOP, instance_date=_next_upcoming(series, today))

    if series.auto_create:
        logger.info("Series %s due for auto-create on %s", series.id, due)
        return MaterializationDecision(series.id, CREATE, instance_date=due, instance=build_instance(series, due))

    logger.info("Series %s due on %s; reminder only", series.id, due)
    return MaterializationDecision(series.id, REMINDER, instance_date=due)


def pending_instance_dates(
    series: RecurringSeries,
    now: Any,
    existing_instance_dates: Iterable[Any] = (),
    *,
    limit: Optional[int] = None,
) -> List[date]:
    """Return every missed occurrence up to ``now``, oldest first.

    Used to catch up after the job has not run for a while.  At most
    ``limit`` dates are returned (``config.MAX_CATCH_UP`` by default); the
    rest are picked up on the next run.
    """
    today = to_day(now)
    if series.is_dormant(today):
        return []
    cap = config.MAX_CATCH_UP if limit is None else limit
    existing = _as_days(existing_instance_dates)

    missing: List[date] = []
    for day in occurrences(series.anchor_date, series.frequency, today, end_date=series.end_date):
        if day in existing:
            continue
        if len(missing) >= cap:
            logger.warning("Series %s has more than %d missed occurrences; truncating", series.id, cap)
            break
        missing.append(day)
    return missing


def materialize(
    series_list: Iterable[RecurringSeries],
    instances: Iterable[TransactionInstance],
    now: Any,
    *,
    limit: Optional[int] = None,
) -> MaterializationReport:
    """Evaluate all series of one user and collect the writes to perform.

    Auto-create series contribute every missed instance; manual series
    contribute a single reminder for their oldest missing occurrence.
    A series that breaks the input contract is recorded in ``errors`` and
    the rest of the batch still runs.
    """
    series_list = list(series_list)
    instances = list(instances)
    ensure_single_user(series_list, instances)
    existing = instance_dates_by_series(series_list, instances)

    report = MaterializationReport()
    for series in series_list:
        report.processed += 1
        try:
            missing = pending_instance_dates(series, now, existing.get(series.id, ()), limit=limit)
            if series.auto_create:
                created = [build_instance(series, day) for day in missing]
        except InputContractError as exc:
            logger.warning("Series %s failed: %s", series.id, exc)
            report.errors.append(f"{series.id}: {exc}")
            continue
        if not missing:
            report.skipped += 1
            continue
        if series.auto_create:
            report.created.extend(created)
        else:
            report.reminders.append(MaterializationDecision(series.id, REMINDER, instance_date=missing[0]))

    logger.info(
        "Materialized %d series: %d instances to create, %d reminders, %d skipped, %d failed",
        report.processed,
        report.created_count,
        len(report.reminders),
        report.skipped,
        len(report.errors),
    )
    return report


def instance_dates_by_series(
    series_list: Iterable[RecurringSeries],
    instances: Iterable[TransactionInstance],
) -> Dict[str, Set[date]]:
    """Group generated instance dates by their series id.

    Raises:
        InputContractError: If an instance points at a series that is not in
            ``series_list``
    """
    known = {series.id for series in series_list}
    grouped: Dict[str, Set[date]] = defaultdict(set)
    for instance in instances:
        if instance.template_id is None:
            continue
        if instance.template_id not in known:
            raise InputContractError(
                f"Instance {instance.id!r} references unknown series {instance.template_id!r}"
            )
        grouped[instance.template_id].add(instance.date)
    return dict(grouped)


def series_status(
    series_list: Iterable[RecurringSeries],
    instances: Iterable[TransactionInstance],
    now: Any,
) -> Dict[str, int]:
    """Count active, paused and expired series plus generated instances."""
    today = to_day(now)
    series_list = list(series_list)
    expired = [s for s in series_list if s.end_date is not None and s.end_date < today]
    return {
        'active': sum(1 for s in series_list if s.active and (s.end_date is None or s.end_date >= today)),
        'paused': sum(1 for s in series_list if not s.active),
        'expired': len(expired),
        'total_instances': sum(1 for i in instances if i.template_id is not None),
    }


def _as_days(values: Iterable[Any]) -> Set[date]:
    return {to_day(value) for value in values or ()}


def _first_missing(series: RecurringSeries, today: date, existing: Set[date]) -> Optional[date]:
    for day in occurrences(series.anchor_date, series.frequency, today, end_date=series.end_date):
        if day not in existing:
            return day
    return None


def _next_upcoming(series: RecurringSeries, today: date) -> Optional[date]:
    if today < series.anchor_date:
        upcoming = series.anchor_date
    else:
        upcoming = period_bounds(series.anchor_date, series.frequency, today).end
    if series.end_date is not None and upcoming > series.end_date:
        return None
    return upcoming
