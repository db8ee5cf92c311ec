"""
Fiscal year policy and return periods (``ledger_kernel.domain.fiscal``).

Responsibility
--------------
Resolve fiscal-year labels (``YYYY-YY``) and statutory return periods
(``MM-YYYY``) without touching the system clock.  Any "current fiscal
year" default is derived from the ``reference_date`` carried by an
injected ``FiscalYearPolicy``.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O, no clock.

Invariants enforced
-------------------
* A fiscal year starting in calendar year Y is labelled
  ``f"{Y}-{(Y + 1) % 100:02d}"``.
* ``bounds(label)`` covers exactly twelve months starting on the first
  day of ``start_month``.

Failure modes
-------------
* ``InvalidFiscalYearError`` for labels not matching ``^\\d{4}-\\d{2}$``
  or whose suffix is not the following year.
* ``InvalidReturnPeriodError`` for periods not matching
  ``^(0[1-9]|1[0-2])-\\d{4}$``.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, timedelta

from ledger_kernel.exceptions import (
    InvalidComputationInputError,
    InvalidFiscalYearError,
    InvalidReturnPeriodError,
)

_FISCAL_YEAR_RE = re.compile(r"^\d{4}-\d{2}$")
_RETURN_PERIOD_RE = re.compile(r"^(0[1-9]|1[0-2])-\d{4}$")


def validate_fiscal_year(label: str) -> str:
    """Return ``label`` unchanged if it is a well-formed fiscal-year label."""
    if not isinstance(label, str) or not _FISCAL_YEAR_RE.match(label):
        raise InvalidFiscalYearError(str(label))
    start = int(label[:4])
    if int(label[5:]) != (start + 1) % 100:
        raise InvalidFiscalYearError(label)
    return label


@dataclass(frozen=True, slots=True)
class FiscalYearPolicy:
    """
    Injected fiscal calendar.

    Contract:
        ``reference_date`` stands in for "today" wherever a component needs
        a default fiscal year.  Callers choose it; the engine never reads
        the clock.
    Guarantees:
        - ``label_for`` and ``bounds`` are inverse: every date in
          ``bounds(label_for(d))`` maps back to the same label.
    """

    reference_date: date
    start_month: int = 4

    def __post_init__(self) -> None:
        if not 1 <= self.start_month <= 12:
            raise InvalidComputationInputError(
                "start_month", self.start_month, "must be between 1 and 12",
            )

    def start_year_for(self, day: date) -> int:
        return day.year if day.month >= self.start_month else day.year - 1

    def label_for(self, day: date) -> str:
        year = self.start_year_for(day)
        return f"{year}-{(year + 1) % 100:02d}"

    def current_label(self) -> str:
        return self.label_for(self.reference_date)

    def bounds(self, label: str) -> tuple[date, date]:
        """First and last day of the fiscal year ``label``."""
        start_year = int(validate_fiscal_year(label)[:4])
        start = date(start_year, self.start_month, 1)
        end = date(start_year + 1, self.start_month, 1) - timedelta(days=1)
        return start, end

    def contains(self, label: str, day: date) -> bool:
        start, end = self.bounds(label)
        return start <= day <= end


@dataclass(frozen=True, slots=True, order=True)
class ReturnPeriod:
    """A monthly statutory return period."""

    year: int
    month: int

    @classmethod
    def parse(cls, value: str) -> ReturnPeriod:
        if not isinstance(value, str) or not _RETURN_PERIOD_RE.match(value):
            raise InvalidReturnPeriodError(str(value))
        return cls(year=int(value[3:]), month=int(value[:2]))

    @classmethod
    def for_date(cls, day: date) -> ReturnPeriod:
        return cls(year=day.year, month=day.month)

    @property
    def label(self) -> str:
        """Period in ``MM-YYYY`` form."""
        return f"{self.month:02d}-{self.year}"

    @property
    def portal_code(self) -> str:
        """Period in the filing-portal ``MMYYYY`` form."""
        return f"{self.month:02d}{self.year}"

    @property
    def start_date(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end_date(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def fiscal_year(self, policy: FiscalYearPolicy) -> str:
        return policy.label_for(self.start_date)
