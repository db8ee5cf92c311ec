"""
Tests for budgets and cash-flow forecasts.

Covers:
- Equal and seasonal distribution with the residue on the last part
- Budget amounts for a date range over fiscal months
- Forecast validation and recomputed closing balances
- Pure versioning: only Approved plans spawn versions
- BudgetService lifecycle, line updates, versioning, and forecast totals
- Default currency taken from BudgetConfig
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from ledger_kernel.exceptions import (
    ImmutableRecordError,
    InvalidComputationInputError,
    InvalidEnumValueError,
    InvalidFiscalYearError,
    InvalidStateTransitionError,
    MissingFieldError,
    RecordNotFoundError,
)
from ledger_modules.budget import versioning
from ledger_modules.budget.config import BudgetConfig
from ledger_modules.budget.distribution import (
    budget_amounts_for_range,
    distribute_amount,
    distribute_lines,
    fiscal_month_starts,
    split_with_residue,
)
from ledger_modules.budget.forecast import summarize_forecast, validate_forecast_line
from ledger_modules.budget.models import (
    Budget,
    BudgetLine,
    BudgetStatus,
    CashFlowCategory,
    CashFlowForecast,
    DistributionMethod,
    ForecastLine,
    ForecastStatus,
)
from ledger_modules.budget.orm import CashFlowForecastModel
from ledger_modules.budget.service import BudgetService


def _months(amount: str) -> tuple[Decimal, ...]:
    return tuple(Decimal(amount) for _ in range(12))


def _budget(status=BudgetStatus.DRAFT, lines=()) -> Budget:
    return Budget(
        id=uuid4(),
        tenant_id=uuid4(),
        name="Opex",
        fiscal_year="2024-25",
        created_by=uuid4(),
        status=status,
        lines=tuple(lines),
    )


RECEIPTS = ForecastLine(CashFlowCategory.OPERATING_RECEIPTS_CUSTOMERS, _months("100"))
PAYMENTS = ForecastLine(CashFlowCategory.OPERATING_PAYMENTS_SUPPLIERS, _months("60"))


# =============================================================================
# Distribution
# =============================================================================


class TestDistribution:
    """Tests for spreading annual amounts."""

    def test_residue_lands_on_last_part(self):
        parts = split_with_residue(Decimal("100"), (Decimal("0.5"), Decimal("0.25"), Decimal("0.25")))
        assert parts == (Decimal("50.00"), Decimal("25.00"), Decimal("25.00"))

    def test_equal_distribution(self):
        monthly, quarterly = distribute_amount(Decimal("1000"), DistributionMethod.EQUAL)
        assert monthly[:11] == tuple(Decimal("83.33") for _ in range(11))
        assert monthly[11] == Decimal("83.37")
        assert quarterly == tuple(Decimal("250.00") for _ in range(4))
        assert sum(monthly) == Decimal("1000")
        assert sum(quarterly) == Decimal("1000")

    def test_seasonal_distribution(self):
        monthly, quarterly = distribute_amount(Decimal("1000"), "seasonal")
        assert quarterly == (Decimal("200.00"), Decimal("300.00"), Decimal("300.00"), Decimal("200.00"))
        assert monthly[:3] == (Decimal("66.67"), Decimal("66.67"), Decimal("66.66"))
        assert monthly[3:6] == (Decimal("100.00"), Decimal("100.00"), Decimal("100.00"))
        assert sum(monthly) == Decimal("1000")

    def test_unknown_method_rejected(self):
        with pytest.raises(InvalidEnumValueError):
            distribute_amount(Decimal("1000"), "weekly")

    def test_distribute_lines_keeps_line_fields(self):
        (line,) = distribute_lines([BudgetLine("acc-1", Decimal("1200"), cost_center="CC1")])
        assert line.is_distributed
        assert line.cost_center == "CC1"
        assert line.monthly[0] == Decimal("100.00")


class TestBudgetAmountsForRange:
    """Tests for summing a budget over fiscal months."""

    def test_fiscal_months_follow_policy(self, fiscal_policy):
        starts = fiscal_month_starts(_budget(), fiscal_policy)
        assert starts[0] == date(2024, 4, 1)
        assert starts[-1] == date(2025, 3, 1)

    def test_first_quarter(self, fiscal_policy):
        budget = _budget(lines=distribute_lines([BudgetLine("rent", Decimal("1200"))]))
        amounts = budget_amounts_for_range(budget, fiscal_policy, date(2024, 4, 1), date(2024, 6, 30))
        assert amounts == {"rent": Decimal("300.00")}

    def test_partial_months_are_counted_whole(self, fiscal_policy):
        budget = _budget(lines=distribute_lines([BudgetLine("rent", Decimal("1200"))]))
        amounts = budget_amounts_for_range(budget, fiscal_policy, date(2024, 4, 15), date(2024, 5, 10))
        assert amounts == {"rent": Decimal("200.00")}

    def test_lines_for_same_account_are_summed(self, fiscal_policy):
        budget = _budget(lines=distribute_lines([
            BudgetLine("rent", Decimal("1200"), cost_center="A"),
            BudgetLine("rent", Decimal("2400"), cost_center="B"),
        ]))
        amounts = budget_amounts_for_range(budget, fiscal_policy, date(2024, 4, 1), date(2024, 4, 30))
        assert amounts == {"rent": Decimal("300.00")}

    def test_undistributed_line_needs_whole_year(self, fiscal_policy):
        budget = _budget(lines=[BudgetLine("rent", Decimal("1200"))])
        assert budget_amounts_for_range(budget, fiscal_policy, date(2024, 4, 1), date(2024, 6, 30)) == {}
        whole = budget_amounts_for_range(budget, fiscal_policy, date(2024, 4, 1), date(2025, 3, 31))
        assert whole == {"rent": Decimal("1200")}


# =============================================================================
# Forecast arithmetic
# =============================================================================


class TestForecastSummary:
    """Tests for recomputed forecast totals."""

    def test_totals_and_closing_balances(self):
        summary = summarize_forecast(Decimal("1000"), [RECEIPTS, PAYMENTS])
        assert summary.total_inflows == Decimal("1200")
        assert summary.total_outflows == Decimal("720")
        assert summary.net_cash_flow == Decimal("480")
        assert summary.monthly_closing[0] == Decimal("1040")
        assert summary.quarterly_closing[0] == Decimal("1120")
        assert summary.closing_balance == Decimal("1480")

    def test_quarter_close_matches_third_month(self):
        summary = summarize_forecast(Decimal("0"), [RECEIPTS])
        for quarter in range(4):
            assert summary.quarterly_closing[quarter] == summary.monthly_closing[quarter * 3 + 2]

    def test_no_lines_keeps_opening_balance(self):
        summary = summarize_forecast(Decimal("500"), [])
        assert summary.closing_balance == Decimal("500")
        assert set(summary.monthly_closing) == {Decimal("500")}

    def test_line_needs_twelve_months(self):
        with pytest.raises(InvalidComputationInputError):
            validate_forecast_line(ForecastLine(CashFlowCategory.OTHER_RECEIPTS, _months("1")[:11]))

    @pytest.mark.parametrize("probability", [-1, 101])
    def test_probability_range(self, probability):
        with pytest.raises(InvalidComputationInputError):
            validate_forecast_line(
                ForecastLine(CashFlowCategory.OTHER_RECEIPTS, _months("1"), probability=probability),
            )


# =============================================================================
# Pure versioning
# =============================================================================


class TestVersioning:
    """Tests for the pure lifecycle functions."""

    def test_version_from_approved(self):
        parent = _budget(BudgetStatus.APPROVED, [BudgetLine("rent", Decimal("1200"))])
        child, demoted = versioning.create_version(parent, uuid4(), uuid4())
        assert child.version == 2
        assert child.status is BudgetStatus.DRAFT
        assert child.parent_id == parent.id
        assert child.is_current_version
        assert child.lines == parent.lines
        assert not demoted.is_current_version
        assert demoted.status is BudgetStatus.APPROVED

    def test_version_takes_override_lines(self):
        parent = _budget(BudgetStatus.APPROVED, [BudgetLine("rent", Decimal("1200"))])
        child, _ = versioning.create_version(parent, uuid4(), uuid4(), lines=[BudgetLine("rent", Decimal("900"))])
        assert child.total_amount == Decimal("900")

    @pytest.mark.parametrize("status", [BudgetStatus.DRAFT, BudgetStatus.SUBMITTED, BudgetStatus.ACTIVE])
    def test_version_requires_approved(self, status):
        with pytest.raises(InvalidStateTransitionError):
            versioning.create_version(_budget(status), uuid4(), uuid4())

    def test_closed_budget_is_immutable(self):
        with pytest.raises(ImmutableRecordError):
            versioning.ensure_editable(_budget(BudgetStatus.CLOSED), "update")

    def test_submitted_budget_not_editable(self):
        with pytest.raises(InvalidStateTransitionError):
            versioning.ensure_editable(_budget(BudgetStatus.SUBMITTED), "update")

    def test_approve_needs_approver(self):
        with pytest.raises(MissingFieldError):
            versioning.approve(_budget(BudgetStatus.SUBMITTED), None, None)

    def test_reject_needs_reason(self):
        with pytest.raises(MissingFieldError):
            versioning.reject(_budget(BudgetStatus.SUBMITTED), "   ")

    def test_forecast_closes_to_archived(self):
        forecast = CashFlowForecast(
            id=uuid4(), tenant_id=uuid4(), name="CF", fiscal_year="2024-25",
            created_by=uuid4(), status=ForecastStatus.ACTIVE,
        )
        assert versioning.close(forecast).status is ForecastStatus.ARCHIVED


# =============================================================================
# Service: budgets
# =============================================================================


@pytest.fixture
def opex(budget_service, tenant_id, actor_id, chart):
    return budget_service.create_budget(
        tenant_id, actor_id, "Opex",
        lines=[BudgetLine(chart["6000"], Decimal("1200")), BudgetLine(chart["5000"], Decimal("1000"))],
    )


def _approve(service, tenant_id, budget_id, actor_id):
    service.submit_budget(tenant_id, budget_id, actor_id)
    return service.approve_budget(tenant_id, budget_id, uuid4())


class TestBudgetService:
    """Tests for budget persistence and lifecycle."""

    def test_create_defaults(self, opex):
        assert opex.fiscal_year == "2024-25"
        assert opex.version == 1
        assert opex.status is BudgetStatus.DRAFT
        assert opex.is_current_version
        assert opex.total_amount == Decimal("2200")
        assert all(line.is_distributed for line in opex.lines)

    def test_currency_defaults_from_config(self, session, deterministic_clock, fiscal_policy, tenant_id, actor_id):
        service = BudgetService(
            session, deterministic_clock, fiscal_policy, config=BudgetConfig(default_currency="USD"),
        )
        budget = service.create_budget(tenant_id, actor_id, "Opex")
        forecast = service.create_forecast(tenant_id, actor_id, "Cash plan", Decimal("0"))
        assert budget.currency == "USD"
        assert forecast.currency == "USD"
        assert service.get_budget(tenant_id, budget.id).currency == "USD"

    def test_explicit_currency_wins(self, budget_service, tenant_id, actor_id):
        budget = budget_service.create_budget(tenant_id, actor_id, "Opex", currency="EUR")
        assert budget.currency == "EUR"
        assert budget_service.create_budget(tenant_id, actor_id, "Capex").currency == "INR"

    def test_config_rejects_bad_currency(self):
        with pytest.raises(ValueError):
            BudgetConfig(default_currency="RUPEE")

    def test_create_rejects_bad_fiscal_year(self, budget_service, tenant_id, actor_id):
        with pytest.raises(InvalidFiscalYearError):
            budget_service.create_budget(tenant_id, actor_id, "Opex", fiscal_year="2024-26")

    def test_round_trip_preserves_distribution(self, budget_service, opex, tenant_id):
        stored = budget_service.get_budget(tenant_id, opex.id)
        assert stored.lines == opex.lines

    def test_get_other_tenant_not_found(self, budget_service, opex):
        with pytest.raises(RecordNotFoundError):
            budget_service.get_budget(uuid4(), opex.id)

    def test_full_lifecycle(self, budget_service, opex, tenant_id, actor_id, deterministic_clock):
        approver = uuid4()
        budget_service.submit_budget(tenant_id, opex.id, actor_id)
        approved = budget_service.approve_budget(tenant_id, opex.id, approver)
        assert approved.status is BudgetStatus.APPROVED
        assert approved.approved_by == approver
        assert approved.approved_at == deterministic_clock.now()

        budget_service.activate_budget(tenant_id, opex.id, actor_id)
        closed = budget_service.close_budget(tenant_id, opex.id, actor_id)
        assert closed.status is BudgetStatus.CLOSED
        assert budget_service.get_budget(tenant_id, opex.id).status is BudgetStatus.CLOSED

    def test_closed_budget_rejects_changes(self, budget_service, opex, tenant_id, actor_id):
        _approve(budget_service, tenant_id, opex.id, actor_id)
        budget_service.activate_budget(tenant_id, opex.id, actor_id)
        budget_service.close_budget(tenant_id, opex.id, actor_id)
        with pytest.raises(ImmutableRecordError):
            budget_service.update_budget_lines(tenant_id, opex.id, actor_id, [])
        with pytest.raises(ImmutableRecordError):
            budget_service.submit_budget(tenant_id, opex.id, actor_id)

    def test_reject_then_revise(self, budget_service, opex, tenant_id, actor_id):
        budget_service.submit_budget(tenant_id, opex.id, actor_id)
        with pytest.raises(MissingFieldError):
            budget_service.reject_budget(tenant_id, opex.id, actor_id, "")
        rejected = budget_service.reject_budget(tenant_id, opex.id, actor_id, "Too high")
        assert rejected.rejection_reason == "Too high"

        revised = budget_service.revise_budget(tenant_id, opex.id, actor_id)
        assert revised.status is BudgetStatus.DRAFT
        stored = budget_service.get_budget(tenant_id, opex.id)
        assert stored.status is BudgetStatus.DRAFT
        assert stored.rejection_reason == "Too high"

    def test_lines_update_only_in_draft(self, budget_service, opex, tenant_id, actor_id, chart):
        updated = budget_service.update_budget_lines(
            tenant_id, opex.id, actor_id, [BudgetLine(chart["6000"], Decimal("600"))],
        )
        assert updated.total_amount == Decimal("600")
        assert len(budget_service.get_budget(tenant_id, opex.id).lines) == 1

        budget_service.submit_budget(tenant_id, opex.id, actor_id)
        with pytest.raises(InvalidStateTransitionError):
            budget_service.update_budget_lines(tenant_id, opex.id, actor_id, [])

    def test_approve_from_draft_not_allowed(self, budget_service, opex, tenant_id):
        with pytest.raises(InvalidStateTransitionError):
            budget_service.approve_budget(tenant_id, opex.id, uuid4())

    def test_approved_event_logged(self, budget_service, opex, tenant_id, actor_id, captured_logs):
        _approve(budget_service, tenant_id, opex.id, actor_id)
        events = [r for r in captured_logs() if r["message"] == "budget_approved"]
        assert len(events) == 1
        assert events[0]["plan_id"] == str(opex.id)
        assert events[0]["status"] == "Approved"


class TestBudgetVersions:
    """Tests for deriving budget versions through the service."""

    def test_new_version_from_approved(self, budget_service, opex, tenant_id, actor_id):
        _approve(budget_service, tenant_id, opex.id, actor_id)
        v2 = budget_service.create_budget_version(tenant_id, opex.id, actor_id)
        assert v2.version == 2
        assert v2.status is BudgetStatus.DRAFT
        assert v2.parent_id == opex.id
        assert v2.is_current_version
        assert v2.total_amount == opex.total_amount

        v1 = budget_service.get_budget(tenant_id, opex.id)
        assert v1.status is BudgetStatus.APPROVED
        assert not v1.is_current_version

    def test_only_one_current_version(self, budget_service, opex, tenant_id, actor_id):
        _approve(budget_service, tenant_id, opex.id, actor_id)
        budget_service.create_budget_version(tenant_id, opex.id, actor_id)
        v3 = budget_service.create_budget_version(tenant_id, opex.id, actor_id)
        assert v3.version == 3
        current = budget_service.list_budgets(tenant_id, name="Opex", current_only=True)
        assert [b.id for b in current] == [v3.id]
        assert len(budget_service.list_budgets(tenant_id, fiscal_year="2024-25")) == 3

    def test_version_with_override_lines(self, budget_service, opex, tenant_id, actor_id, chart):
        _approve(budget_service, tenant_id, opex.id, actor_id)
        v2 = budget_service.create_budget_version(
            tenant_id, opex.id, actor_id, lines=[BudgetLine(chart["6000"], Decimal("2400"))],
        )
        assert v2.total_amount == Decimal("2400")
        assert v2.lines[0].monthly[0] == Decimal("200.00")

    def test_version_from_draft_rejected(self, budget_service, opex, tenant_id, actor_id):
        with pytest.raises(InvalidStateTransitionError):
            budget_service.create_budget_version(tenant_id, opex.id, actor_id)
        assert len(budget_service.list_budgets(tenant_id)) == 1

    def test_budget_amounts(self, budget_service, opex, tenant_id, chart):
        amounts = budget_service.budget_amounts(tenant_id, opex.id, date(2024, 4, 1), date(2024, 6, 30))
        assert amounts[chart["6000"]] == Decimal("300.00")
        assert amounts[chart["5000"]] == Decimal("249.99")

    def test_list_filters_by_status(self, budget_service, opex, tenant_id, actor_id):
        budget_service.create_budget(tenant_id, actor_id, "Capex", budget_type="Capital")
        budget_service.submit_budget(tenant_id, opex.id, actor_id)
        submitted = budget_service.list_budgets(tenant_id, status="Submitted")
        assert [b.name for b in submitted] == ["Opex"]


# =============================================================================
# Service: forecasts
# =============================================================================


@pytest.fixture
def cash_plan(budget_service, tenant_id, actor_id):
    return budget_service.create_forecast(
        tenant_id, actor_id, "Cash plan", Decimal("1000"), lines=[RECEIPTS, PAYMENTS],
    )


def _stored_forecast_row(session, forecast_id) -> CashFlowForecastModel:
    return session.execute(
        select(CashFlowForecastModel)
        .where(CashFlowForecastModel.id == forecast_id)
        .execution_options(populate_existing=True)
    ).scalar_one()


class TestForecastService:
    """Tests for forecast persistence and lifecycle."""

    def test_create_stores_summary(self, cash_plan, session):
        assert cash_plan.summary.closing_balance == Decimal("1480")
        row = _stored_forecast_row(session, cash_plan.id)
        assert row.total_inflows == Decimal("1200")
        assert row.total_outflows == Decimal("720")
        assert row.net_cash_flow == Decimal("480")
        assert row.closing_balance == Decimal("1480")

    def test_update_lines_recomputes_totals(self, budget_service, cash_plan, tenant_id, actor_id, session):
        updated = budget_service.update_forecast_lines(tenant_id, cash_plan.id, actor_id, [RECEIPTS])
        assert updated.summary.closing_balance == Decimal("2200")
        row = _stored_forecast_row(session, cash_plan.id)
        assert row.total_outflows == Decimal("0")
        assert row.closing_balance == Decimal("2200")

    def test_invalid_line_rejected(self, budget_service, tenant_id, actor_id):
        bad = ForecastLine(CashFlowCategory.OTHER_PAYMENTS, _months("5")[:6])
        with pytest.raises(InvalidComputationInputError):
            budget_service.create_forecast(tenant_id, actor_id, "Bad", Decimal("0"), lines=[bad])

    def test_lifecycle_and_archive(self, budget_service, cash_plan, tenant_id, actor_id):
        budget_service.submit_forecast(tenant_id, cash_plan.id, actor_id)
        budget_service.approve_forecast(tenant_id, cash_plan.id, uuid4())
        budget_service.activate_forecast(tenant_id, cash_plan.id, actor_id)
        archived = budget_service.archive_forecast(tenant_id, cash_plan.id, actor_id)
        assert archived.status is ForecastStatus.ARCHIVED
        with pytest.raises(ImmutableRecordError):
            budget_service.update_forecast_lines(tenant_id, cash_plan.id, actor_id, [RECEIPTS])
        with pytest.raises(ImmutableRecordError):
            budget_service.archive_forecast(tenant_id, cash_plan.id, actor_id)

    def test_forecast_version(self, budget_service, cash_plan, tenant_id, actor_id):
        budget_service.submit_forecast(tenant_id, cash_plan.id, actor_id)
        budget_service.approve_forecast(tenant_id, cash_plan.id, uuid4())
        v2 = budget_service.create_forecast_version(tenant_id, cash_plan.id, actor_id, lines=[PAYMENTS])
        assert v2.version == 2
        assert v2.summary.closing_balance == Decimal("280")
        assert not budget_service.get_forecast(tenant_id, cash_plan.id).is_current_version

    def test_reject_then_revise(self, budget_service, cash_plan, tenant_id, actor_id):
        budget_service.submit_forecast(tenant_id, cash_plan.id, actor_id)
        budget_service.reject_forecast(tenant_id, cash_plan.id, actor_id, "Optimistic receipts")
        revised = budget_service.revise_forecast(tenant_id, cash_plan.id, actor_id)
        assert revised.status is ForecastStatus.DRAFT
        assert [f.id for f in budget_service.list_forecasts(tenant_id, status="Draft")] == [cash_plan.id]
