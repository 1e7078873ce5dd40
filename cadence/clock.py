"""Clock abstraction and UTC timestamp helpers.

The core never calls ``datetime.now()`` directly; it asks an injected
:class:`Clock` so recurrence and planning stay deterministic under test.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Source of the current time."""

    def now(self) -> datetime:
        """Return the current time as an aware UTC datetime."""
        ...


class SystemClock:
    """Clock backed by the system wall clock."""

    def now(self) -> datetime:
        return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Normalize *value* to an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_iso(value: datetime | None) -> str | None:
    """Serialize to a fixed-width ISO 8601 string so SQL ordering is chronological."""
    if value is None:
        return None
    return ensure_utc(value).isoformat(timespec="microseconds")


def from_iso(value: str | None) -> datetime | None:
    """Parse a stored ISO 8601 string back into an aware UTC datetime."""
    if not value:
        return None
    return ensure_utc(datetime.fromisoformat(value))
