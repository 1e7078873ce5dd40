"""Next-due-date computation.

Pure functions: no I/O and no clock access. ``None`` means the rule has no
further occurrence (a ``once`` task), which is a normal outcome and not an
error. Malformed input raises :class:`~cadence.errors.InvalidRuleError`.

Calendar month/year steps use ``dateutil.relativedelta``, which clamps to the
last valid day of the target month (Jan 31 + 1 month = Feb 28/29).
"""

from __future__ import annotations

from calendar import monthrange
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from dateutil.relativedelta import relativedelta

from cadence.clock import ensure_utc
from cadence.errors import InvalidRuleError
from cadence.recurrence.models import (
    DaysOfWeekRule,
    IntervalRule,
    IntervalUnit,
    MonthsRule,
    RuleKind,
    SimpleRule,
)

if TYPE_CHECKING:
    from cadence.recurrence.models import RecurrenceRule
    from cadence.tasks.models import Task

# A day that exists at all (e.g. Feb 29) recurs at least once every eight years.
_MAX_MONTH_SCAN = 12 * 8

_SIMPLE_STEPS: dict[RuleKind, timedelta | relativedelta] = {
    RuleKind.DAILY: timedelta(days=1),
    RuleKind.WEEKLY: timedelta(days=7),
    RuleKind.MONTHLY: relativedelta(months=1),
    RuleKind.YEARLY: relativedelta(years=1),
}


def compute_next_due_date(
    rule: RecurrenceRule,
    due_date: datetime | None,
    reference: datetime,
    *,
    is_rolling: bool,
) -> datetime | None:
    """Return the next due date for *rule*, or ``None`` if there is none.

    Args:
        rule: The task's recurrence rule.
        due_date: The task's current due date (may be ``None``).
        reference: Completion time for a completion; the current due date
            for a skip.
        is_rolling: When true the schedule floats from *reference*; when
            false it stays on the grid defined by *due_date*.
    """
    anchor = ensure_utc(reference if is_rolling or due_date is None else due_date)
    try:
        return _advance(rule, anchor)
    except InvalidRuleError:
        raise
    except (OverflowError, ValueError) as exc:
        msg = f"Next occurrence after {anchor.isoformat()} is out of range"
        raise InvalidRuleError(msg) from exc


def schedule_next_due_date(task: Task, reference: datetime) -> datetime | None:
    """Compute the next due date using the rule, due date and rolling flag stored on *task*."""
    return compute_next_due_date(
        task.rule, task.next_due_date, reference, is_rolling=task.is_rolling
    )


def _advance(rule: RecurrenceRule, anchor: datetime) -> datetime | None:
    if isinstance(rule, SimpleRule):
        if rule.kind is RuleKind.ONCE:
            return None
        return anchor + _SIMPLE_STEPS[rule.kind]
    if isinstance(rule, IntervalRule):
        return anchor + _interval_step(rule)
    if isinstance(rule, DaysOfWeekRule):
        return _next_weekday(anchor, rule.days)
    if isinstance(rule, MonthsRule):
        return _next_month_day(anchor, rule.months)
    msg = f"Not a recurrence rule: {rule!r}"
    raise InvalidRuleError(msg)


def _interval_step(rule: IntervalRule) -> timedelta | relativedelta:
    if rule.unit is IntervalUnit.HOURS:
        return timedelta(hours=rule.every)
    if rule.unit is IntervalUnit.DAYS:
        return timedelta(days=rule.every)
    if rule.unit is IntervalUnit.WEEKS:
        return timedelta(weeks=rule.every)
    if rule.unit is IntervalUnit.MONTHS:
        return relativedelta(months=rule.every)
    return relativedelta(years=rule.every)


def _weekday_index(value: datetime) -> int:
    """Weekday with Sunday as 0 (Python's ``weekday()`` has Monday as 0)."""
    return (value.weekday() + 1) % 7


def _next_weekday(anchor: datetime, days: frozenset[int]) -> datetime:
    if not days:
        msg = "Days-of-the-week rule has no days"
        raise InvalidRuleError(msg)
    for offset in range(1, 8):
        candidate = anchor + timedelta(days=offset)
        if _weekday_index(candidate) in days:
            return candidate
    msg = f"No weekday in {sorted(days)} is valid"
    raise InvalidRuleError(msg)


def _next_month_day(anchor: datetime, months: frozenset[int]) -> datetime:
    if not months:
        msg = "Day-of-the-months rule has no months"
        raise InvalidRuleError(msg)
    month_start = anchor.replace(day=1)
    for step in range(1, _MAX_MONTH_SCAN + 1):
        target = month_start + relativedelta(months=step)
        if target.month - 1 not in months:
            continue
        if anchor.day > monthrange(target.year, target.month)[1]:
            continue
        return target.replace(day=anchor.day)
    msg = f"Day {anchor.day} never occurs in months {sorted(months)}"
    raise InvalidRuleError(msg)
