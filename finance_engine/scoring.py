"""Budget health score.

The score is driven by :data:`HEALTH_RULES`, an ordered table of rules.  Each
rule names a bucket, a point delta and a predicate; the scorer only walks the
table, so changing the scoring means editing data rather than branches.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from . import config
from .errors import InputContractError
from .formatting import format_points
from .models import BudgetHealth, BudgetProgress, HealthBreakdown

OVER = 'over'
HIGH = 'high'
MEDIUM = 'medium'
NORMAL = 'normal'
LOW = 'low'

BASE_SCORE = 100
MIN_SCORE = 0
MAX_SCORE = 100

NO_DATA_LABEL = ('No Data', 'gray')

# (minimum score, label, color), highest threshold first
HEALTH_LABELS: Tuple[Tuple[int, str, str], ...] = (
    (90, 'Excellent', 'green'),
    (75, 'Great', 'green'),
    (60, 'Good', 'blue'),
    (40, 'Fair', 'yellow'),
    (20, 'Poor', 'orange'),
    (MIN_SCORE, 'Critical', 'red'),
)

# bucket -> (count field, points field) on HealthBreakdown
_BREAKDOWN_FIELDS: Dict[str, Tuple[Optional[str], str]] = {
    'over_budget': ('over_budget_count', 'over_budget_penalty'),
    'high_usage': ('high_usage_count', 'high_usage_penalty'),
    'medium_usage': ('medium_usage_count', 'medium_usage_penalty'),
    'low_usage': ('low_usage_count', 'low_usage_bonus'),
    'perfect_record': (None, 'perfect_record_bonus'),
}

_BUCKET_TITLES = {
    'over_budget': 'Over budget',
    'high_usage': 'High usage',
    'medium_usage': 'Medium usage',
    'low_usage': 'Low usage',
    'perfect_record': 'Perfect record',
}


def usage_level(progress: float) -> str:
    """Classify a progress percentage.

    ``over`` above 100, ``high`` from 80 to 100, ``medium`` from 60 up to
    80, ``low`` below 40 and ``normal`` for the 40-60 band in between.
    """
    if progress > 100:
        return OVER
    if progress >= 80:
        return HIGH
    if progress >= 60:
        return MEDIUM
    if progress < 40:
        return LOW
    return NORMAL


@dataclass(frozen=True)
class HealthRule:
    """One row of the scoring table.

    Per-budget rules apply ``predicate`` to every :class:`BudgetProgress` and
    add ``points`` for each match.  One-time rules (``per_budget=False``)
    apply ``predicate`` to the whole list and add ``points`` at most once.
    """

    bucket: str
    points: int
    predicate: Callable
    per_budget: bool = True

    def __post_init__(self) -> None:
        if self.bucket not in _BREAKDOWN_FIELDS:
            raise InputContractError(f"Unknown health bucket {self.bucket!r}")


def _is_level(level: str) -> Callable[[BudgetProgress], bool]:
    return lambda item: item.usage_level == level


def _no_over_or_high(items: Sequence[BudgetProgress]) -> bool:
    return not any(item.usage_level in (OVER, HIGH) for item in items)


HEALTH_RULES: Tuple[HealthRule, ...] = (
    HealthRule('over_budget', -20, _is_level(OVER)),
    HealthRule('high_usage', -10, _is_level(HIGH)),
    HealthRule('medium_usage', -5, _is_level(MEDIUM)),
    HealthRule('low_usage', 5, _is_level(LOW)),
    HealthRule('perfect_record', 10, _no_over_or_high, per_budget=False),
)


def rules_with_overrides(
    overrides: Dict[str, int],
    rules: Sequence[HealthRule] = HEALTH_RULES,
) -> Tuple[HealthRule, ...]:
    """Return ``rules`` with point values replaced per bucket."""
    unknown = set(overrides) - {rule.bucket for rule in rules}
    if unknown:
        raise InputContractError(f"Unknown health buckets: {', '.join(sorted(unknown))}")
    return tuple(
        replace(rule, points=int(overrides[rule.bucket])) if rule.bucket in overrides else rule
        for rule in rules
    )


def load_health_rules(path: Optional[Path] = None) -> Tuple[HealthRule, ...]:
    """Build the rule table, applying any JSON point overrides from config."""
    overrides = config.get_health_point_overrides(path)
    return rules_with_overrides(overrides) if overrides else HEALTH_RULES


def health_label(score: float) -> Tuple[str, str]:
    """Map a score to ``(label, color)`` using :data:`HEALTH_LABELS`."""
    for threshold, label, color in HEALTH_LABELS:
        if score >= threshold:
            return label, color
    return HEALTH_LABELS[-1][1], HEALTH_LABELS[-1][2]


def score(
    progress_list: Iterable[BudgetProgress],
    rules: Optional[Sequence[HealthRule]] = None,
) -> BudgetHealth:
    """Combine every budget's progress into one 0-100 health score.

    Args:
        progress_list: Progress of each of one user's budgets
        rules: Scoring table, :data:`HEALTH_RULES` when omitted

    Returns:
        :class:`BudgetHealth` with the clamped score, its label and colour and
        the breakdown of counts and points per bucket.  Penalties and bonuses
        are reported as magnitudes.  No budgets at all reads as "No Data".
    """
    items = list(progress_list)
    if not items:
        return BudgetHealth(0, NO_DATA_LABEL[0], NO_DATA_LABEL[1], HealthBreakdown())

    table = HEALTH_RULES if rules is None else rules
    fields: Dict[str, int] = {'base_score': BASE_SCORE}
    total = BASE_SCORE
    for rule in table:
        count_field, points_field = _BREAKDOWN_FIELDS[rule.bucket]
        if rule.per_budget:
            count = sum(1 for item in items if rule.predicate(item))
            delta = count * rule.points
            if count_field:
                fields[count_field] = count
        else:
            delta = rule.points if rule.predicate(items) else 0
        fields[points_field] = abs(delta)
        total += delta

    clamped = max(MIN_SCORE, min(MAX_SCORE, total))
    label, color = health_label(clamped)
    return BudgetHealth(clamped, label, color, HealthBreakdown(**fields))


def explain_health(health: BudgetHealth, rules: Optional[Sequence[HealthRule]] = None) -> List[str]:
    """Render the breakdown as tooltip lines, e.g. ``"Over budget (2): -40"``."""
    if health.label == NO_DATA_LABEL[0]:
        return ['No budgets to score yet.']

    breakdown = health.breakdown
    lines = [f"Base score: {breakdown.base_score}"]
    for rule in HEALTH_RULES if rules is None else rules:
        count_field, points_field = _BREAKDOWN_FIELDS[rule.bucket]
        magnitude = getattr(breakdown, points_field)
        if not magnitude:
            continue
        delta = magnitude if rule.points > 0 else -magnitude
        title = _BUCKET_TITLES[rule.bucket]
        if count_field:
            title = f"{title} ({getattr(breakdown, count_field)})"
        lines.append(f"{title}: {format_points(delta)}")
    lines.append(f"Score: {health.score} ({health.label})")
    return lines
