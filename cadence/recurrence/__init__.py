"""Recurrence rules and next-due-date computation."""

from cadence.recurrence.engine import compute_next_due_date, schedule_next_due_date
from cadence.recurrence.models import (
    AnchorMode,
    DaysOfWeekRule,
    Frequency,
    IntervalRule,
    IntervalUnit,
    MonthsRule,
    RecurrenceRule,
    RuleKind,
    SimpleRule,
    parse_frequency,
)

__all__ = [
    "AnchorMode",
    "DaysOfWeekRule",
    "Frequency",
    "IntervalRule",
    "IntervalUnit",
    "MonthsRule",
    "RecurrenceRule",
    "RuleKind",
    "SimpleRule",
    "compute_next_due_date",
    "parse_frequency",
    "schedule_next_due_date",
]
