"""
Reporting Module Service (``ledger_modules.reporting.service``).

Responsibility
--------------
Orchestrates financial statement generation -- trial balance, balance
sheet, income statement, cash flow statement, general ledger, period
comparison, budget vs actual, and aging -- by loading accounts and
Posted-entry postings through ``JournalService`` and handing them to the
pure functions in ``statements.py`` and ``comparison.py``.

Architecture position
---------------------
**Modules layer** -- thin read-only glue.  Constructor: ``session`` +
``clock`` + ``config``.

Invariants enforced
-------------------
* Read-only -- no mutations to the journal.
* Only Posted entries contribute to any report.
* All monetary amounts use ``Decimal`` -- NEVER ``float``.
* Report metadata carries the injected clock's timestamp.

Failure modes
-------------
* Query failure -> exception propagates (no rollback needed -- read-only).
* ``ValueError`` for a period whose end precedes its start.
* Postings to unknown accounts -> ``ExclusionWarning`` on the report.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_engines.aging import AgingDocument, AgingReport, AgingType, build_aging_report
from ledger_engines.balances import period_activity
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.logging_config import get_logger
from ledger_modules.journal.service import JournalService
from ledger_modules.reporting.comparison import budget_vs_actual, profit_loss_comparison
from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.models import (
    BalanceSheetReport,
    BudgetVsActualReport,
    CashFlowItem,
    CashFlowStatementReport,
    GeneralLedgerReport,
    IncomeStatementReport,
    ReportMetadata,
    ReportType,
    TrialBalanceReport,
)
from ledger_modules.reporting.statements import (
    build_balance_sheet,
    build_cash_flow_statement,
    build_general_ledger,
    build_income_statement,
    build_trial_balance,
    derive_cash_flow_items,
)

logger = get_logger("modules.reporting.service")


def _check_range(start: date, end: date) -> None:
    if end < start:
        raise ValueError(f"period end {end} precedes start {start}")


class ReportingService:
    """
    Financial statement generation service.

    Contract
    --------
    * Every public method returns a typed report DTO.
    * All methods are **read-only**.

    Guarantees
    ----------
    * Report generation delegates to pure transformation functions; no
      financial logic lives in this class.
    * Clock is injectable for deterministic testing.

    Non-goals
    ---------
    * Does NOT schedule or deliver reports.
    * Does NOT render files (see ``export.py``).
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: ReportingConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or ReportingConfig.with_defaults()
        self._journal = JournalService(session, self._clock)

        logger.info(
            "reporting_service_initialized",
            extra={"entity_name": self._config.entity_name, "precision": self._config.precision},
        )

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _metadata(
        self,
        report_type: ReportType,
        as_of_date: date,
        period_start: date | None = None,
        period_end: date | None = None,
        comparative_date: date | None = None,
        comparative_start: date | None = None,
        comparative_end: date | None = None,
    ) -> ReportMetadata:
        return ReportMetadata(
            report_type=report_type,
            entity_name=self._config.entity_name,
            as_of_date=as_of_date,
            generated_at=self._clock.now().isoformat(),
            period_start=period_start,
            period_end=period_end,
            comparative_date=comparative_date,
            comparative_start=comparative_start,
            comparative_end=comparative_end,
        )

    def _ledger(self, tenant_id: UUID):
        accounts = self._journal.load_accounts(tenant_id)
        postings = self._journal.list_postings(tenant_id)
        logger.debug("ledger_loaded_for_reporting", extra={
            "account_count": len(accounts),
            "posting_count": len(postings),
        })
        return accounts, postings

    # =========================================================================
    # Public API
    # =========================================================================

    def trial_balance(self, tenant_id: UUID, as_of: date) -> TrialBalanceReport:
        accounts, postings = self._ledger(tenant_id)
        report = build_trial_balance(
            accounts, postings, as_of, self._config,
            self._metadata(ReportType.TRIAL_BALANCE, as_of),
        )
        logger.info("trial_balance_generated", extra={
            "as_of": as_of.isoformat(),
            "is_balanced": report.is_balanced,
            "line_count": len(report.lines),
        })
        return report

    def balance_sheet(
        self,
        tenant_id: UUID,
        as_of: date,
        comparative_date: date | None = None,
    ) -> BalanceSheetReport:
        accounts, postings = self._ledger(tenant_id)
        report = build_balance_sheet(
            accounts, postings, as_of, self._config,
            self._metadata(ReportType.BALANCE_SHEET, as_of, comparative_date=comparative_date),
            comparative_date=comparative_date,
        )
        logger.info("balance_sheet_generated", extra={
            "as_of": as_of.isoformat(),
            "is_balanced": report.is_balanced,
            "total_assets": str(report.total_assets.current),
        })
        return report

    def income_statement(
        self,
        tenant_id: UUID,
        start: date,
        end: date,
        previous_start: date | None = None,
        previous_end: date | None = None,
    ) -> IncomeStatementReport:
        _check_range(start, end)
        if previous_start is not None and previous_end is not None:
            _check_range(previous_start, previous_end)
        accounts, postings = self._ledger(tenant_id)
        report = build_income_statement(
            accounts, postings, start, end, self._config,
            self._metadata(
                ReportType.INCOME_STATEMENT, end,
                period_start=start, period_end=end,
                comparative_start=previous_start, comparative_end=previous_end,
            ),
            previous_start=previous_start,
            previous_end=previous_end,
        )
        logger.info("income_statement_generated", extra={
            "period_start": start.isoformat(),
            "period_end": end.isoformat(),
            "net_income": str(report.net_income.current),
        })
        return report

    def profit_loss_comparison(
        self,
        tenant_id: UUID,
        start: date,
        end: date,
        previous_start: date,
        previous_end: date,
    ) -> IncomeStatementReport:
        """Two income statements merged line by line with variances."""
        current = self.income_statement(tenant_id, start, end)
        previous = self.income_statement(tenant_id, previous_start, previous_end)
        return profit_loss_comparison(current, previous, self._config.precision)

    def cash_flow_statement(
        self,
        tenant_id: UUID,
        start: date,
        end: date,
        previous_start: date | None = None,
        previous_end: date | None = None,
    ) -> CashFlowStatementReport:
        _check_range(start, end)
        accounts, postings = self._ledger(tenant_id)
        beginning, items = derive_cash_flow_items(accounts, postings, start, end, self._config)
        previous_beginning = None
        if previous_start is not None and previous_end is not None:
            _check_range(previous_start, previous_end)
            previous_beginning, previous_items = derive_cash_flow_items(
                accounts, postings, previous_start, previous_end, self._config,
            )
            items = _pair_items(items, previous_items)
        report = build_cash_flow_statement(
            items,
            beginning,
            self._metadata(
                ReportType.CASH_FLOW, end,
                period_start=start, period_end=end,
                comparative_start=previous_start, comparative_end=previous_end,
            ),
            previous_beginning_cash=previous_beginning,
            precision=self._config.precision,
        )
        logger.info("cash_flow_statement_generated", extra={
            "period_start": start.isoformat(),
            "period_end": end.isoformat(),
            "net_change": str(report.net_change.current),
        })
        return report

    def general_ledger(self, tenant_id: UUID, start: date, end: date) -> GeneralLedgerReport:
        _check_range(start, end)
        accounts, postings = self._ledger(tenant_id)
        return build_general_ledger(
            accounts, postings, start, end, self._config,
            self._metadata(ReportType.GENERAL_LEDGER, end, period_start=start, period_end=end),
        )

    def budget_vs_actual(
        self,
        tenant_id: UUID,
        budget_amounts: Mapping[str, Decimal],
        start: date,
        end: date,
    ) -> BudgetVsActualReport:
        """``budget_amounts`` maps account id to the budget for [start, end]."""
        _check_range(start, end)
        accounts, postings = self._ledger(tenant_id)
        return budget_vs_actual(
            accounts,
            budget_amounts,
            period_activity(accounts, postings, start, end),
            self._metadata(ReportType.BUDGET_VS_ACTUAL, end, period_start=start, period_end=end),
            self._config.precision,
        )

    def aging_report(
        self,
        documents: Sequence[AgingDocument],
        as_of: date,
        aging_type: AgingType | str = AgingType.RECEIVABLE,
    ) -> AgingReport:
        return build_aging_report(documents, as_of, self._config.aging_periods, aging_type)


def _pair_items(
    current: Sequence[CashFlowItem],
    previous: Sequence[CashFlowItem],
) -> tuple[CashFlowItem, ...]:
    """Attach previous amounts by (category, description); unmatched lines get zero."""
    prior = {(item.category, item.description): item.amount for item in previous}
    paired = [
        CashFlowItem(item.category, item.description, item.amount, prior.pop((item.category, item.description), Decimal("0")))
        for item in current
    ]
    paired.extend(
        CashFlowItem(category, description, Decimal("0"), amount)
        for (category, description), amount in prior.items()
    )
    return tuple(paired)
