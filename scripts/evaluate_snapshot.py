#!/usr/bin/env python3
"""Print budget progress, health and bill alerts for a snapshot file."""

from __future__ import annotations

import argparse
import sys
from datetime import date
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from finance_engine import evaluate, load_snapshot
from finance_engine.config import configure_logging
from finance_engine.formatting import format_currency
from finance_engine.progress import describe_progress, progress_frame
from finance_engine.scoring import explain_health

DEFAULT_SNAPSHOT = Path(__file__).resolve().parent / 'sample_snapshot.json'


def main(path: Path, today: date) -> int:
    snapshot = load_snapshot(path)
    result = evaluate(snapshot, today)

    print(f"Snapshot for {snapshot.user_id} as of {today.isoformat()}")
    frame = progress_frame(result.progress)
    if frame.empty:
        print("\nNo budgets defined.")
    else:
        print("\nBudgets:")
        print(frame.to_string(index=False))
        for item in result.progress:
            print(f"  - {describe_progress(item)}")

    print("\nHealth:")
    for line in explain_health(result.health):
        print(f"  {line}")

    for currency, totals in result.overview.totals.items():
        print(f"\nSavings achieved ({currency}): {format_currency(totals.savings_achieved, currency)}")

    print("\nRecurring series:")
    for decision in result.decisions:
        when = decision.instance_date.isoformat() if decision.instance_date else '-'
        print(f"  {decision.series_id}: {decision.outcome} ({when})")
    for message in result.materialization.errors:
        print(f"  error: {message}")

    print("\nBills:")
    for bill_id, status in result.bill_statuses.items():
        print(f"  {bill_id}: {status}")
    print(f"  Upcoming: {len(result.upcoming_bills)}, reminders: {len(result.bill_reminders)}")
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Evaluate a finance snapshot.')
    parser.add_argument('path', nargs='?', type=Path, default=DEFAULT_SNAPSHOT, help='Snapshot JSON file')
    parser.add_argument('--today', type=date.fromisoformat, default=date.today(), help='Evaluation date (YYYY-MM-DD)')
    parser.add_argument('--log-level', default=None, help='Logging level for the engine')
    args = parser.parse_args()
    configure_logging(args.log_level)
    raise SystemExit(main(args.path, args.today))
