"""
Module: ledger_engines.aging
Responsibility:
    Age open receivable and payable documents and roll them up per party
    into configurable day buckets.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Purity: no clock access; the as-of date is always a parameter.
    - Decimal-only arithmetic for outstanding amounts.
    - Each document lands in exactly one bucket: the last bucket whose
      lower bound it reaches.
    - Report totals equal the sum of party totals, which equal the sum of
      their bucket amounts.

Failure modes:
    - InvalidComputationInputError when the period boundaries are empty,
      do not start at 0, or are not strictly increasing.

Audit relevance:
    Aging feeds the allowance for doubtful accounts and payables
    scheduling.  Each report generation is traced via ``@traced_engine``.

Usage:
    from ledger_engines.aging import AgingDocument, build_aging_report

    report = build_aging_report(documents, as_of=date(2024, 6, 30))
    report.grand_total_by_bucket["90+ days"]
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from ledger_engines.arithmetic import ZERO
from ledger_engines.tracer import traced_engine
from ledger_kernel.exceptions import InvalidComputationInputError
from ledger_kernel.domain.values import parse_enum
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.aging")

DEFAULT_PERIODS: tuple[int, ...] = (0, 30, 60, 90)


class AgingType(str, Enum):
    RECEIVABLE = "AR"
    PAYABLE = "AP"


@dataclass(frozen=True)
class AgeBucket:
    """
    One aging bucket.

    Contract:
        Covers ``min_days`` up to ``max_days`` inclusive; ``max_days`` None
        means unbounded.
    """

    name: str
    min_days: int
    max_days: int | None

    def contains(self, age_days: int) -> bool:
        if age_days < self.min_days:
            return False
        return self.max_days is None or age_days <= self.max_days


def buckets_from_periods(periods: Sequence[int] = DEFAULT_PERIODS) -> tuple[AgeBucket, ...]:
    """
    Build buckets from lower bounds.

    ``(0, 30, 60, 90)`` gives "Current", "30-59 days", "60-89 days" and
    "90+ days".

    Raises:
        InvalidComputationInputError: if ``periods`` is empty, does not
            start at 0, or is not strictly increasing.
    """
    if not periods or periods[0] != 0:
        raise InvalidComputationInputError("periods", list(periods), "must start at 0")
    if any(b <= a for a, b in zip(periods, periods[1:])):
        raise InvalidComputationInputError("periods", list(periods), "must be strictly increasing")

    buckets: list[AgeBucket] = []
    last = len(periods) - 1
    for index, lower in enumerate(periods):
        upper = periods[index + 1] - 1 if index < last else None
        if index == 0 and last > 0:
            name = "Current"
        elif index == last:
            name = f"{lower}+ days"
        else:
            name = f"{lower}-{upper} days"
        buckets.append(AgeBucket(name, lower, upper))
    return tuple(buckets)


@dataclass(frozen=True)
class AgingDocument:
    """An invoice or bill with its settled portion."""

    document_id: str
    party_id: str
    party_name: str
    document_date: date
    amount: Decimal
    amount_paid: Decimal = ZERO
    reference: str | None = None

    @property
    def outstanding(self) -> Decimal:
        return self.amount - self.amount_paid


@dataclass(frozen=True)
class AgedDocument:
    document: AgingDocument
    age_days: int
    bucket: AgeBucket


@dataclass(frozen=True)
class PartyAging:
    party_id: str
    party_name: str
    by_bucket: dict[str, Decimal]
    total: Decimal
    documents: tuple[AgedDocument, ...]


@dataclass(frozen=True)
class AgingReport:
    """
    Aging snapshot for one ledger side.

    Guarantees:
        - ``grand_total`` equals the sum of party totals.
        - Every bucket name appears in every ``by_bucket`` mapping.
    """

    as_of: date
    aging_type: AgingType
    buckets: tuple[AgeBucket, ...]
    parties: tuple[PartyAging, ...]
    grand_total_by_bucket: dict[str, Decimal]
    grand_total: Decimal

    @property
    def bucket_names(self) -> tuple[str, ...]:
        return tuple(b.name for b in self.buckets)


class AgingCalculator:
    """
    Ages dated documents against an explicit as-of date.

    Contract:
        Pure functions -- no I/O, no database access.
    """

    def __init__(self, periods: Sequence[int] = DEFAULT_PERIODS):
        self.buckets = buckets_from_periods(periods)

    @staticmethod
    def calculate_age(document_date: date, as_of: date) -> int:
        """Whole days from the document date to ``as_of``."""
        return (as_of - document_date).days

    def classify(self, age_days: int) -> AgeBucket:
        """
        The last bucket whose lower bound ``age_days`` reaches.

        Negative ages (post-dated documents) fall in the first bucket.
        """
        chosen = self.buckets[0]
        for bucket in self.buckets[1:]:
            if age_days >= bucket.min_days:
                chosen = bucket
        return chosen

    def age_document(self, document: AgingDocument, as_of: date) -> AgedDocument:
        age = self.calculate_age(document.document_date, as_of)
        return AgedDocument(document=document, age_days=age, bucket=self.classify(age))


@traced_engine("aging_report", "1.0", fingerprint_fields=("documents", "as_of", "periods"))
def build_aging_report(
    documents: Sequence[AgingDocument],
    as_of: date,
    periods: Sequence[int] = DEFAULT_PERIODS,
    aging_type: AgingType | str = AgingType.RECEIVABLE,
) -> AgingReport:
    """
    Bucket unpaid documents dated on or before ``as_of`` by party.

    Postconditions:
        - Fully paid documents and documents dated after ``as_of`` are skipped.
        - Parties whose outstanding total is not positive are omitted.
        - Parties are ordered by name, then id.
    """
    aging_type = parse_enum(AgingType, aging_type, "aging_type")
    calculator = AgingCalculator(periods)
    names = [b.name for b in calculator.buckets]

    grouped: dict[str, list[AgedDocument]] = {}
    for document in documents:
        if document.document_date > as_of or document.outstanding <= ZERO:
            continue
        grouped.setdefault(document.party_id, []).append(
            calculator.age_document(document, as_of)
        )

    parties: list[PartyAging] = []
    grand = {name: ZERO for name in names}
    for party_id, aged in grouped.items():
        by_bucket = {name: ZERO for name in names}
        for item in aged:
            by_bucket[item.bucket.name] += item.document.outstanding
        party_total = sum(by_bucket.values(), ZERO)
        if party_total <= ZERO:
            continue
        for name in names:
            grand[name] += by_bucket[name]
        parties.append(PartyAging(
            party_id=party_id,
            party_name=aged[0].document.party_name,
            by_bucket=by_bucket,
            total=party_total,
            documents=tuple(sorted(aged, key=lambda a: (a.document.document_date, a.document.document_id))),
        ))

    parties.sort(key=lambda p: (p.party_name, p.party_id))
    grand_total = sum(grand.values(), ZERO)
    logger.info("aging_report_built", extra={
        "aging_type": aging_type.value,
        "as_of": as_of.isoformat(),
        "party_count": len(parties),
        "grand_total": str(grand_total),
    })
    return AgingReport(
        as_of=as_of,
        aging_type=aging_type,
        buckets=calculator.buckets,
        parties=tuple(parties),
        grand_total_by_bucket=grand,
        grand_total=grand_total,
    )
