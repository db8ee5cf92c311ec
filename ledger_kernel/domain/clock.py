"""
Clock (``ledger_kernel.domain.clock``).

Services stamp approvals, postings and filings with ``clock.now()``.
Engines never see a clock; they take dates as parameters, and the
"current fiscal year" comes from an injected ``FiscalYearPolicy``.
``SystemClock`` is the only place the engine reads wall time.
"""

from abc import ABC, abstractmethod
from datetime import UTC, date, datetime, timedelta


class Clock(ABC):
    """
    Source of audit timestamps.

    Guarantees:
        - ``now()`` is timezone-aware (UTC).
    """

    @abstractmethod
    def now(self) -> datetime: ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(UTC)


class DeterministicClock(Clock):
    """
    Clock pinned to a fixed instant, for tests and replays.

    Time moves only when ``advance`` is called.
    """

    DEFAULT_INSTANT = datetime(2024, 4, 1, 9, 0, tzinfo=UTC)

    def __init__(self, instant: datetime | None = None):
        self._instant = instant or self.DEFAULT_INSTANT

    def now(self) -> datetime:
        return self._instant

    def advance(self, **delta: float) -> datetime:
        """Move forward by a ``timedelta(**delta)`` and return the new instant."""
        self._instant += timedelta(**delta)
        return self._instant
