"""Recurrence rule data model.

A rule is one of four frozen variants, discriminated by kind and mode:

- :class:`SimpleRule` covers ``once``, ``daily``, ``weekly``, ``monthly``
  and ``yearly``.
- :class:`IntervalRule` covers ``custom`` + ``interval`` (every N units).
- :class:`DaysOfWeekRule` covers ``custom`` + ``days_of_the_week``.
- :class:`MonthsRule` covers ``custom`` + ``day_of_the_months``.

The flat persisted/wire shape is :class:`Frequency`. Fields that do not apply
to a kind/mode are ``None`` there, never zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from cadence.errors import InvalidRuleError


class RuleKind(StrEnum):
    ONCE = "once"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"


class AnchorMode(StrEnum):
    INTERVAL = "interval"
    DAYS_OF_WEEK = "days_of_the_week"
    DAY_OF_MONTH = "day_of_the_months"


class IntervalUnit(StrEnum):
    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"


# -- Variants ------------------------------------------------------------------


@dataclass(frozen=True)
class SimpleRule:
    """A fixed-step rule: once, daily, weekly, monthly or yearly."""

    kind: RuleKind

    def __post_init__(self) -> None:
        try:
            kind = RuleKind(self.kind)
        except ValueError as exc:
            msg = f"Unknown recurrence kind: {self.kind!r}"
            raise InvalidRuleError(msg) from exc
        if kind is RuleKind.CUSTOM:
            msg = "Custom rules need a mode; use IntervalRule, DaysOfWeekRule or MonthsRule"
            raise InvalidRuleError(msg)
        object.__setattr__(self, "kind", kind)

    @property
    def mode(self) -> None:
        return None


@dataclass(frozen=True)
class IntervalRule:
    """Repeat every ``every`` units of ``unit``."""

    every: int
    unit: IntervalUnit

    def __post_init__(self) -> None:
        if isinstance(self.every, bool) or not isinstance(self.every, int) or self.every < 1:
            msg = f"Interval rule needs a positive integer 'every', got {self.every!r}"
            raise InvalidRuleError(msg)
        try:
            unit = IntervalUnit(self.unit)
        except ValueError as exc:
            msg = f"Unknown interval unit: {self.unit!r}"
            raise InvalidRuleError(msg) from exc
        object.__setattr__(self, "unit", unit)

    @property
    def kind(self) -> RuleKind:
        return RuleKind.CUSTOM

    @property
    def mode(self) -> AnchorMode:
        return AnchorMode.INTERVAL


def _index_set(values: Any, *, upper: int, label: str) -> frozenset[int]:
    if not values:
        msg = f"{label} must not be empty"
        raise InvalidRuleError(msg)
    result = frozenset(values)
    for value in result:
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= upper:
            msg = f"{label} entries must be integers between 0 and {upper}, got {value!r}"
            raise InvalidRuleError(msg)
    return result


@dataclass(frozen=True)
class DaysOfWeekRule:
    """Repeat on the listed weekdays (0 = Sunday … 6 = Saturday)."""

    days: frozenset[int]

    def __post_init__(self) -> None:
        object.__setattr__(self, "days", _index_set(self.days, upper=6, label="days"))

    @property
    def kind(self) -> RuleKind:
        return RuleKind.CUSTOM

    @property
    def mode(self) -> AnchorMode:
        return AnchorMode.DAYS_OF_WEEK


@dataclass(frozen=True)
class MonthsRule:
    """Repeat on the anchor's day of month, in the listed months.

    ``months`` holds month *indices* (0 = January … 11 = December), not
    days of the month.
    """

    months: frozenset[int]

    def __post_init__(self) -> None:
        object.__setattr__(self, "months", _index_set(self.months, upper=11, label="months"))

    @property
    def kind(self) -> RuleKind:
        return RuleKind.CUSTOM

    @property
    def mode(self) -> AnchorMode:
        return AnchorMode.DAY_OF_MONTH


RecurrenceRule = SimpleRule | IntervalRule | DaysOfWeekRule | MonthsRule


# -- Flat wire / persisted shape -----------------------------------------------


def _is_absent(value: Any) -> bool:
    return value is None or value == 0 or value == []


class Frequency(BaseModel):
    """Flat frequency payload as stored in the ``tasks`` table and sent over the wire."""

    model_config = ConfigDict(frozen=True)

    type: RuleKind
    on: AnchorMode | None = None
    every: int | None = None
    unit: IntervalUnit | None = None
    days: list[int] | None = None
    months: list[int] | None = None

    def to_rule(self) -> RecurrenceRule:
        """Build the tagged rule, rejecting missing or stray fields."""
        if self.type is not RuleKind.CUSTOM:
            self._reject_present("on", "every", "unit", "days", "months")
            return SimpleRule(self.type)

        if self.on is None:
            msg = "Custom rule requires 'on'"
            raise InvalidRuleError(msg)

        if self.on is AnchorMode.INTERVAL:
            self._reject_present("days", "months")
            if self.every is None:
                msg = "Interval rule requires 'every'"
                raise InvalidRuleError(msg)
            if self.unit is None:
                msg = "Interval rule requires 'unit'"
                raise InvalidRuleError(msg)
            return IntervalRule(every=self.every, unit=self.unit)

        if self.on is AnchorMode.DAYS_OF_WEEK:
            self._reject_present("every", "unit", "months")
            if self.days is None:
                msg = "Days-of-the-week rule requires 'days'"
                raise InvalidRuleError(msg)
            return DaysOfWeekRule(days=frozenset(self.days))

        self._reject_present("every", "unit", "days")
        if self.months is None:
            msg = "Day-of-the-months rule requires 'months'"
            raise InvalidRuleError(msg)
        return MonthsRule(months=frozenset(self.months))

    def _reject_present(self, *fields: str) -> None:
        stray = [name for name in fields if not _is_absent(getattr(self, name))]
        if stray:
            where = f"{self.type}/{self.on}" if self.on else str(self.type)
            msg = f"Fields not applicable to a {where} rule: {', '.join(stray)}"
            raise InvalidRuleError(msg)

    @classmethod
    def from_rule(cls, rule: RecurrenceRule) -> Frequency:
        """Flatten a tagged rule; fields that do not apply stay ``None``."""
        if isinstance(rule, SimpleRule):
            return cls(type=rule.kind)
        if isinstance(rule, IntervalRule):
            return cls(type=RuleKind.CUSTOM, on=rule.mode, every=rule.every, unit=rule.unit)
        if isinstance(rule, DaysOfWeekRule):
            return cls(type=RuleKind.CUSTOM, on=rule.mode, days=sorted(rule.days))
        if isinstance(rule, MonthsRule):
            return cls(type=RuleKind.CUSTOM, on=rule.mode, months=sorted(rule.months))
        msg = f"Not a recurrence rule: {rule!r}"
        raise InvalidRuleError(msg)


def parse_frequency(data: dict[str, Any] | Frequency | RecurrenceRule) -> RecurrenceRule:
    """Validate a raw frequency mapping (or pass through a rule) into a tagged rule."""
    if isinstance(data, SimpleRule | IntervalRule | DaysOfWeekRule | MonthsRule):
        return data
    if isinstance(data, Frequency):
        return data.to_rule()
    try:
        frequency = Frequency.model_validate(data)
    except ValidationError as exc:
        msg = f"Invalid frequency: {exc.errors(include_url=False)}"
        raise InvalidRuleError(msg) from exc
    return frequency.to_rule()
