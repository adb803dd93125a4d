"""
Time sources for loan bookkeeping.

Loan dates, due dates and overdue detection all depend on "today". Services
receive a clock instead of calling ``date.today()`` so tests can pin the
calendar and move it forward deterministically.
"""

from datetime import date, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Anything that can tell the current date."""

    def today(self) -> date: ...

    def now(self) -> datetime: ...


class SystemClock:
    """Clock backed by the local system time."""

    def today(self) -> date:
        return date.today()

    def now(self) -> datetime:
        return datetime.now()


class FixedClock:
    """
    Clock frozen at a given date until moved explicitly.

    Example:
        ```python
        clock = FixedClock(date(2024, 1, 1))
        clock.advance(days=15)
        assert clock.today() == date(2024, 1, 16)
        ```
    """

    def __init__(self, current: date):
        self._current = current

    def today(self) -> date:
        return self._current

    def now(self) -> datetime:
        return datetime.combine(self._current, datetime.min.time())

    def set(self, current: date) -> None:
        """Jump to a specific date."""
        self._current = current

    def advance(self, days: int = 1) -> date:
        """Move the clock forward and return the new date."""
        self._current = self._current + timedelta(days=days)
        return self._current
