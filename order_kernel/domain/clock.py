"""
Time source for order edits, plus the epoch-millisecond codec.

Engines stamp ``updatedAt``, ``createdAt`` and workflow timestamps from a
``Clock`` handed to them, never from ``datetime.now()``, so a decision
computed twice from the same snapshot yields the same patch.

The store keeps instants as integer milliseconds since the Unix epoch;
``to_epoch_ms`` and ``from_epoch_ms`` are the only conversions.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


class Clock(ABC):
    """Source of the current instant.  ``now()`` is always UTC-aware."""

    @abstractmethod
    def now(self) -> datetime: ...


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock frozen at ``fixed_time`` until moved explicitly.

    ``advance`` and ``tick`` step forward in whole seconds; ``set_time``
    jumps to an arbitrary instant.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or datetime(2024, 1, 1, 12, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        self._current = time

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def tick(self) -> datetime:
        self.advance()
        return self._current


def to_epoch_ms(value: datetime | None) -> int | None:
    """Milliseconds since the epoch; naive datetimes are read as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // _ONE_MS


def from_epoch_ms(value: int | float | None) -> datetime | None:
    if value is None:
        return None
    return _EPOCH + int(value) * _ONE_MS
