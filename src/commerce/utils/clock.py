"""Injectable clock.

Aggregates and sweeps read the current time through ``now()`` so tests and
replays can pin it with ``set_clock()``.
"""

from collections.abc import Callable
from datetime import UTC, datetime


def _system_now() -> datetime:
    return datetime.now(UTC)


_current_clock: Callable[[], datetime] = _system_now


def now() -> datetime:
    """Return the current time from the active clock."""
    return _current_clock()


def set_clock(clock: Callable[[], datetime]) -> None:
    """Override the active clock (useful for tests)."""
    global _current_clock
    _current_clock = clock


def reset_clock() -> None:
    """Reset to the system clock."""
    global _current_clock
    _current_clock = _system_now


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as some stores return them) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
