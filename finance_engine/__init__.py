"""Top-level package for the finance engine.

The engine is a set of pure functions over one user's transactions,
recurring series, budgets and bills.  The primary modules are:

* ``recurrence`` – period boundaries and occurrence dates
* ``materializer`` – when a recurring series needs a new instance
* ``aggregation`` – per-budget spend for the current period
* ``progress`` and ``scoring`` – budget progress and the health score
* ``bills`` – bill display status and alerts
* ``snapshot`` – run everything over one user's data at once

Time is always passed in explicitly; nothing here reads the system clock.
"""

from . import aggregation  # noqa: F401  # re-exported for convenience
from . import bills  # noqa: F401  # re-exported for convenience
from . import materializer  # noqa: F401  # re-exported for convenience
from . import progress  # noqa: F401  # re-exported for convenience
from . import recurrence  # noqa: F401  # re-exported for convenience
from . import scoring  # noqa: F401  # re-exported for convenience
from .errors import InputContractError
from .models import (
    Bill,
    Budget,
    BudgetHealth,
    BudgetProgress,
    RecurringSeries,
    TransactionInstance,
)
from .snapshot import EngineResult, UserSnapshot, evaluate, load_snapshot

__all__ = [
    'aggregation',
    'bills',
    'materializer',
    'progress',
    'recurrence',
    'scoring',
    'InputContractError',
    'Bill',
    'Budget',
    'BudgetHealth',
    'BudgetProgress',
    'RecurringSeries',
    'TransactionInstance',
    'EngineResult',
    'UserSnapshot',
    'evaluate',
    'load_snapshot',
]
