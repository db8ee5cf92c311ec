"""
Period comparison and budget-vs-actual analysis.

Pure functions.  Variance percentages are relative to the magnitude of
the reference amount; against a zero reference they are 100 when the
current amount is non-zero, else 0.  A movement is favorable only when
it is strictly in the beneficial direction for the account type.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from decimal import Decimal

from ledger_engines.arithmetic import ZERO, percentage_change, round_amount
from ledger_engines.balances import BalanceComputation
from ledger_kernel.domain.accounts import Account
from ledger_kernel.domain.polarity import AccountPolarity, AccountType
from ledger_kernel.logging_config import get_logger
from ledger_modules.reporting.models import (
    BudgetVsActualLine,
    BudgetVsActualReport,
    BudgetVsActualSection,
    ComparativeAmount,
    IncomeStatementReport,
    ReportMetadata,
    ReportType,
    StatementLine,
    StatementSection,
    Variance,
)

logger = get_logger("modules.reporting.comparison")


def compute_variance(
    current: Decimal,
    reference: Decimal,
    increase_is_favorable: bool,
    precision: int = 2,
) -> Variance:
    absolute = round_amount(current - reference, precision)
    if absolute == ZERO:
        favorable = False
    else:
        favorable = (absolute > ZERO) == increase_is_favorable
    return Variance(
        absolute=absolute,
        percentage=percentage_change(reference, current, precision),
        favorable=favorable,
    )


def compare_amounts(
    current: Decimal,
    previous: Decimal | None,
    account_type: AccountType,
    precision: int = 2,
) -> ComparativeAmount:
    """Pair ``current`` with ``previous`` and their variance, if any."""
    current = round_amount(current, precision)
    if previous is None:
        return ComparativeAmount(current=current)
    previous = round_amount(previous, precision)
    return ComparativeAmount(
        current=current,
        previous=previous,
        variance=compute_variance(
            current, previous,
            AccountPolarity.increase_is_favorable(account_type),
            precision,
        ),
    )


# =========================================================================
# Profit and loss comparison
# =========================================================================


def _merge_section(
    current: StatementSection,
    previous: StatementSection,
    account_type: AccountType,
    precision: int,
) -> StatementSection:
    prior = {line.account_id: line for line in previous.lines}
    lines: list[StatementLine] = []
    for line in current.lines:
        before = prior.pop(line.account_id, None)
        lines.append(dataclasses.replace(line, amount=compare_amounts(
            line.amount.current,
            before.amount.current if before is not None else ZERO,
            account_type,
            precision,
        )))
    for line in prior.values():
        lines.append(dataclasses.replace(line, amount=compare_amounts(
            ZERO, line.amount.current, account_type, precision,
        )))
    lines.sort(key=lambda item: item.account_code)
    return StatementSection(
        label=current.label,
        lines=tuple(lines),
        total=compare_amounts(
            current.total.current, previous.total.current, account_type, precision,
        ),
    )


def profit_loss_comparison(
    current: IncomeStatementReport,
    previous: IncomeStatementReport,
    precision: int = 2,
) -> IncomeStatementReport:
    """
    Side-by-side income statements.

    Accounts present in only one period appear with zero in the other.
    Net income is compared as income (higher is better).
    """
    metadata = dataclasses.replace(
        current.metadata,
        report_type=ReportType.PROFIT_LOSS_COMPARISON,
        comparative_start=previous.metadata.period_start,
        comparative_end=previous.metadata.period_end,
    )
    return IncomeStatementReport(
        metadata=metadata,
        revenue=_merge_section(current.revenue, previous.revenue, AccountType.INCOME, precision),
        expenses=_merge_section(current.expenses, previous.expenses, AccountType.EXPENSE, precision),
        net_income=compare_amounts(
            current.net_income.current,
            previous.net_income.current,
            AccountType.INCOME,
            precision,
        ),
        warnings=current.warnings + previous.warnings,
    )


# =========================================================================
# Budget vs actual
# =========================================================================


def _bva_section(
    label: str,
    account_type: AccountType,
    accounts: Mapping[str, Account],
    budget: Mapping[str, Decimal],
    actual: BalanceComputation,
    precision: int,
) -> BudgetVsActualSection:
    favorable_up = AccountPolarity.increase_is_favorable(account_type)
    lines: list[BudgetVsActualLine] = []
    for account in sorted(accounts.values(), key=lambda a: a.code):
        if account.account_type is not account_type:
            continue
        planned = round_amount(budget.get(account.account_id, ZERO), precision)
        spent = round_amount(actual.balance_of(account.account_id), precision)
        if planned == ZERO and spent == ZERO:
            continue
        lines.append(BudgetVsActualLine(
            account_id=account.account_id,
            account_code=account.code,
            account_name=account.name,
            budget=planned,
            actual=spent,
            variance=compute_variance(spent, planned, favorable_up, precision),
        ))
    budget_total = sum((line.budget for line in lines), ZERO)
    actual_total = sum((line.actual for line in lines), ZERO)
    return BudgetVsActualSection(
        label=label,
        lines=tuple(lines),
        budget_total=budget_total,
        actual_total=actual_total,
        variance=compute_variance(actual_total, budget_total, favorable_up, precision),
    )


def budget_vs_actual(
    accounts: Mapping[str, Account],
    budget_amounts: Mapping[str, Decimal],
    actual: BalanceComputation,
    metadata: ReportMetadata,
    precision: int = 2,
) -> BudgetVsActualReport:
    """
    Compare budgeted amounts per account with period activity.

    Preconditions:
        ``actual`` is ``period_activity`` over the budget window and
        ``budget_amounts`` holds the budget for the same window.
    Postconditions:
        Income over budget and expense under budget are favorable.
    """
    revenue = _bva_section("Revenue", AccountType.INCOME, accounts, budget_amounts, actual, precision)
    expenses = _bva_section("Expenses", AccountType.EXPENSE, accounts, budget_amounts, actual, precision)
    net_budget = revenue.budget_total - expenses.budget_total
    net_actual = revenue.actual_total - expenses.actual_total
    logger.info("budget_vs_actual_built", extra={
        "net_income_budget": str(net_budget),
        "net_income_actual": str(net_actual),
    })
    return BudgetVsActualReport(
        metadata=dataclasses.replace(metadata, report_type=ReportType.BUDGET_VS_ACTUAL),
        revenue=revenue,
        expenses=expenses,
        net_income_budget=net_budget,
        net_income_actual=net_actual,
        net_income_variance=compute_variance(net_actual, net_budget, True, precision),
    )
