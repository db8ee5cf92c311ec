"""
Tests for the aging engine.

Covers:
- Bucket construction from period boundaries
- Age classification at bucket edges
- Per-party roll-up, skipping paid and future documents
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_engines.aging import (
    AgingCalculator,
    AgingDocument,
    AgingType,
    build_aging_report,
    buckets_from_periods,
)
from ledger_kernel.exceptions import InvalidComputationInputError

AS_OF = date(2024, 6, 30)


def _doc(doc_id, party, day, amount, paid="0", name=None):
    return AgingDocument(
        document_id=doc_id,
        party_id=party,
        party_name=name or party,
        document_date=day,
        amount=Decimal(amount),
        amount_paid=Decimal(paid),
    )


class TestBuckets:
    """Tests for buckets_from_periods."""

    def test_default_bucket_names(self):
        names = [b.name for b in buckets_from_periods()]
        assert names == ["Current", "30-59 days", "60-89 days", "90+ days"]

    def test_single_period(self):
        assert [b.name for b in buckets_from_periods((0,))] == ["0+ days"]

    @pytest.mark.parametrize("periods", [(), (30, 60), (0, 60, 30), (0, 30, 30)])
    def test_invalid_periods(self, periods):
        with pytest.raises(InvalidComputationInputError):
            buckets_from_periods(periods)


class TestClassification:
    """Tests for AgingCalculator.classify."""

    def setup_method(self):
        self.calculator = AgingCalculator()

    @pytest.mark.parametrize("age,bucket", [
        (0, "Current"),
        (29, "Current"),
        (30, "30-59 days"),
        (59, "30-59 days"),
        (60, "60-89 days"),
        (90, "90+ days"),
        (400, "90+ days"),
        (-5, "Current"),
    ])
    def test_bucket_edges(self, age, bucket):
        assert self.calculator.classify(age).name == bucket

    def test_age_in_days(self):
        assert AgingCalculator.calculate_age(date(2024, 6, 1), AS_OF) == 29


class TestAgingReport:
    """Tests for build_aging_report."""

    def test_party_roll_up(self):
        documents = [
            _doc("i1", "p1", date(2024, 6, 20), "1000", name="Acme"),
            _doc("i2", "p1", date(2024, 4, 15), "500", paid="100", name="Acme"),
            _doc("i3", "p2", date(2024, 3, 1), "700", name="Beta"),
        ]
        report = build_aging_report(documents, AS_OF)
        assert report.aging_type is AgingType.RECEIVABLE
        assert [p.party_name for p in report.parties] == ["Acme", "Beta"]
        acme = report.parties[0]
        assert acme.by_bucket["Current"] == Decimal("1000")
        assert acme.by_bucket["60-89 days"] == Decimal("400")
        assert acme.total == Decimal("1400")
        assert report.grand_total_by_bucket["90+ days"] == Decimal("700")
        assert report.grand_total == Decimal("2100")

    def test_paid_and_future_documents_skipped(self):
        documents = [
            _doc("i1", "p1", date(2024, 6, 1), "100", paid="100"),
            _doc("i2", "p1", date(2024, 7, 1), "100"),
        ]
        report = build_aging_report(documents, AS_OF)
        assert report.parties == ()
        assert report.grand_total == Decimal("0")

    def test_every_bucket_present(self):
        report = build_aging_report([_doc("i1", "p1", date(2024, 6, 1), "100")], AS_OF, (0, 15))
        assert set(report.parties[0].by_bucket) == {"Current", "15+ days"}

    def test_payable_side(self):
        report = build_aging_report([], AS_OF, aging_type="AP")
        assert report.aging_type is AgingType.PAYABLE
