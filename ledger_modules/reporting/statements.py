"""
Pure financial statement transformation functions.

These functions turn account snapshots and Posted-entry postings into
structured financial statements.  ZERO I/O.  ZERO side effects.

All monetary values are Decimal.  All inputs/outputs are frozen
dataclasses.  Sign conventions come from ``AccountPolarity`` through the
balance calculator; nothing here re-derives them.

Functions in this module follow the ledger_kernel/domain purity convention:
- No database access
- No clock access
- No file I/O
- Deterministic: same inputs always produce same outputs
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, timedelta
from decimal import Decimal

from ledger_engines.arithmetic import ZERO, round_amount, tolerance
from ledger_engines.balances import (
    BalanceComputation,
    compute_balances,
    general_ledger,
    period_activity,
)
from ledger_kernel.domain.accounts import Account, AccountSubtype
from ledger_kernel.domain.ledger import LedgerPosting
from ledger_kernel.domain.polarity import AccountPolarity, AccountType
from ledger_kernel.logging_config import get_logger
from ledger_modules.reporting.comparison import compare_amounts
from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.models import (
    BalanceSheetReport,
    CashFlowCategory,
    CashFlowItem,
    CashFlowLine,
    CashFlowSection,
    CashFlowStatementReport,
    ComparativeAmount,
    GeneralLedgerAccount,
    GeneralLedgerReport,
    GeneralLedgerRow,
    IncomeStatementReport,
    ReportMetadata,
    StatementLine,
    StatementSection,
    TrialBalanceLine,
    TrialBalanceReport,
)

logger = get_logger("modules.reporting.statements")

CURRENT_EARNINGS_ID = "current-period-earnings"
CURRENT_EARNINGS_LABEL = "Current Period Earnings"


# =========================================================================
# Helpers
# =========================================================================


def net_income_of(accounts: Mapping[str, Account], balances: BalanceComputation) -> Decimal:
    """Income natural balances minus expense natural balances."""
    income = ZERO
    expense = ZERO
    for account_id, result in balances.balances.items():
        account_type = accounts[account_id].account_type
        if account_type is AccountType.INCOME:
            income += result.balance
        elif account_type is AccountType.EXPENSE:
            expense += result.balance
    return income - expense


def _section(
    label: str,
    selected: list[Account],
    current: BalanceComputation,
    previous: BalanceComputation | None,
    section_type: AccountType,
    config: ReportingConfig,
    extra_lines: Sequence[StatementLine] = (),
) -> StatementSection:
    precision = config.precision
    lines: list[StatementLine] = []
    for account in sorted(selected, key=lambda a: a.code):
        now = current.balance_of(account.account_id)
        before = previous.balance_of(account.account_id) if previous is not None else None
        if not config.include_zero_balances and now == ZERO and not before:
            continue
        lines.append(StatementLine(
            account_id=account.account_id,
            account_code=account.code,
            account_name=account.name,
            amount=compare_amounts(now, before, account.account_type, precision),
        ))
    lines.extend(extra_lines)

    total_now = sum((line.amount.current for line in lines), ZERO)
    total_before = None
    if previous is not None:
        total_before = sum((line.amount.previous or ZERO for line in lines), ZERO)
    return StatementSection(
        label=label,
        lines=tuple(lines),
        total=compare_amounts(total_now, total_before, section_type, precision),
    )


def _sum_amounts(
    amounts: Sequence[ComparativeAmount],
    account_type: AccountType,
    precision: int,
    sign: Sequence[int] | None = None,
) -> ComparativeAmount:
    signs = sign or [1] * len(amounts)
    now = sum((s * a.current for s, a in zip(signs, amounts)), ZERO)
    if any(a.previous is None for a in amounts):
        return compare_amounts(now, None, account_type, precision)
    before = sum((s * a.previous for s, a in zip(signs, amounts)), ZERO)
    return compare_amounts(now, before, account_type, precision)


# =========================================================================
# 1. TRIAL BALANCE
# =========================================================================


def build_trial_balance(
    accounts: Mapping[str, Account],
    postings: Sequence[LedgerPosting],
    as_of: date,
    config: ReportingConfig,
    metadata: ReportMetadata,
) -> TrialBalanceReport:
    """
    Trial balance as of ``as_of``.

    Postconditions:
        - Each account's natural balance is placed in the debit or credit
          column by ``AccountPolarity.to_columns``.
        - is_balanced iff |total_debits - total_credits| < 10**-precision.
    """
    balances = compute_balances(accounts, postings, as_of)
    precision = config.precision
    lines: list[TrialBalanceLine] = []
    for account_id, result in balances.balances.items():
        account = accounts[account_id]
        debit, credit = AccountPolarity.to_columns(account.account_type, result.balance)
        if not config.include_zero_balances and debit == ZERO and credit == ZERO:
            continue
        lines.append(TrialBalanceLine(
            account_id=account_id,
            account_code=account.code,
            account_name=account.name,
            account_type=account.account_type.value,
            debit=round_amount(debit, precision),
            credit=round_amount(credit, precision),
        ))
    lines.sort(key=lambda line: line.account_code)

    total_debits = sum((line.debit for line in lines), ZERO)
    total_credits = sum((line.credit for line in lines), ZERO)
    is_balanced = abs(total_debits - total_credits) < tolerance(precision)
    if not is_balanced:
        logger.warning("trial_balance_out_of_balance", extra={
            "total_debits": str(total_debits),
            "total_credits": str(total_credits),
        })
    return TrialBalanceReport(
        metadata=metadata,
        lines=tuple(lines),
        total_debits=total_debits,
        total_credits=total_credits,
        is_balanced=is_balanced,
        warnings=balances.warnings,
    )


# =========================================================================
# 2. BALANCE SHEET
# =========================================================================


def _placed(accounts: Mapping[str, Account], account_type: AccountType, *subtypes: AccountSubtype) -> list[Account]:
    return [
        a for a in accounts.values()
        if not a.is_archived and a.account_type is account_type and a.placement in subtypes
    ]


def build_balance_sheet(
    accounts: Mapping[str, Account],
    postings: Sequence[LedgerPosting],
    as_of: date,
    config: ReportingConfig,
    metadata: ReportMetadata,
    comparative_date: date | None = None,
) -> BalanceSheetReport:
    """
    Classified balance sheet as of ``as_of``.

    Assets are split by subtype into current, fixed and other; liabilities
    into current and long-term.  Accumulated income less expense appears as
    a "Current Period Earnings" equity line so that the statement balances
    without closing entries.
    """
    precision = config.precision
    current = compute_balances(accounts, postings, as_of)
    previous = (
        compute_balances(accounts, postings, comparative_date)
        if comparative_date is not None else None
    )

    earnings_line = StatementLine(
        account_id=CURRENT_EARNINGS_ID,
        account_code="",
        account_name=CURRENT_EARNINGS_LABEL,
        amount=compare_amounts(
            net_income_of(accounts, current),
            net_income_of(accounts, previous) if previous is not None else None,
            AccountType.EQUITY,
            precision,
        ),
    )

    current_assets = _section(
        "Current Assets", _placed(accounts, AccountType.ASSET, AccountSubtype.CURRENT),
        current, previous, AccountType.ASSET, config,
    )
    fixed_assets = _section(
        "Fixed Assets", _placed(accounts, AccountType.ASSET, AccountSubtype.FIXED),
        current, previous, AccountType.ASSET, config,
    )
    other_assets = _section(
        "Other Assets",
        _placed(accounts, AccountType.ASSET, AccountSubtype.OTHER, AccountSubtype.LONG_TERM),
        current, previous, AccountType.ASSET, config,
    )
    current_liabilities = _section(
        "Current Liabilities", _placed(accounts, AccountType.LIABILITY, AccountSubtype.CURRENT),
        current, previous, AccountType.LIABILITY, config,
    )
    long_term_liabilities = _section(
        "Long-Term Liabilities",
        _placed(
            accounts, AccountType.LIABILITY,
            AccountSubtype.LONG_TERM, AccountSubtype.FIXED, AccountSubtype.OTHER,
        ),
        current, previous, AccountType.LIABILITY, config,
    )
    equity = _section(
        "Equity",
        [a for a in accounts.values() if not a.is_archived and a.account_type is AccountType.EQUITY],
        current, previous, AccountType.EQUITY, config,
        extra_lines=(earnings_line,),
    )

    total_assets = _sum_amounts(
        [current_assets.total, fixed_assets.total, other_assets.total],
        AccountType.ASSET, precision,
    )
    total_liabilities = _sum_amounts(
        [current_liabilities.total, long_term_liabilities.total],
        AccountType.LIABILITY, precision,
    )
    total_le = _sum_amounts([total_liabilities, equity.total], AccountType.LIABILITY, precision)
    is_balanced = abs(total_assets.current - total_le.current) < tolerance(precision)

    logger.info("balance_sheet_built", extra={
        "as_of": as_of.isoformat(),
        "total_assets": str(total_assets.current),
        "total_liabilities_and_equity": str(total_le.current),
        "is_balanced": is_balanced,
    })
    return BalanceSheetReport(
        metadata=metadata,
        current_assets=current_assets,
        fixed_assets=fixed_assets,
        other_assets=other_assets,
        total_assets=total_assets,
        current_liabilities=current_liabilities,
        long_term_liabilities=long_term_liabilities,
        total_liabilities=total_liabilities,
        equity=equity,
        total_liabilities_and_equity=total_le,
        is_balanced=is_balanced,
        warnings=current.warnings,
    )


# =========================================================================
# 3. INCOME STATEMENT
# =========================================================================


def build_income_statement(
    accounts: Mapping[str, Account],
    postings: Sequence[LedgerPosting],
    start: date,
    end: date,
    config: ReportingConfig,
    metadata: ReportMetadata,
    previous_start: date | None = None,
    previous_end: date | None = None,
) -> IncomeStatementReport:
    """
    Income statement for ``start``..``end`` inclusive.

    Net income = total Income activity - total Expense activity.  When a
    previous range is given every line carries a variance.
    """
    precision = config.precision
    current = period_activity(accounts, postings, start, end)
    previous = None
    if previous_start is not None and previous_end is not None:
        previous = period_activity(accounts, postings, previous_start, previous_end)

    live = [a for a in accounts.values() if not a.is_archived]
    revenue = _section(
        "Revenue", [a for a in live if a.account_type is AccountType.INCOME],
        current, previous, AccountType.INCOME, config,
    )
    expenses = _section(
        "Expenses", [a for a in live if a.account_type is AccountType.EXPENSE],
        current, previous, AccountType.EXPENSE, config,
    )
    net_income = _sum_amounts(
        [revenue.total, expenses.total], AccountType.INCOME, precision, sign=[1, -1],
    )
    return IncomeStatementReport(
        metadata=metadata,
        revenue=revenue,
        expenses=expenses,
        net_income=net_income,
        warnings=current.warnings,
    )


# =========================================================================
# 4. CASH FLOW STATEMENT
# =========================================================================


def build_cash_flow_statement(
    items: Sequence[CashFlowItem],
    beginning_cash: Decimal,
    metadata: ReportMetadata,
    previous_beginning_cash: Decimal | None = None,
    precision: int = 2,
) -> CashFlowStatementReport:
    """
    Net categorized cash movements against the opening cash balance.

    Postconditions:
        ending_cash = beginning_cash + operating + investing + financing.
        A previous column is produced when ``previous_beginning_cash`` is
        given; items without a previous amount count as zero there.
    """
    comparative = previous_beginning_cash is not None

    def amount(now: Decimal, before: Decimal | None) -> ComparativeAmount:
        return compare_amounts(
            now, (before or ZERO) if comparative else None, AccountType.ASSET, precision,
        )

    sections: dict[CashFlowCategory, CashFlowSection] = {}
    for category in CashFlowCategory:
        chosen = [item for item in items if item.category is category]
        lines = tuple(
            CashFlowLine(description=item.description, amount=amount(item.amount, item.previous_amount))
            for item in chosen
        )
        sections[category] = CashFlowSection(
            category=category,
            lines=lines,
            total=amount(
                sum((item.amount for item in chosen), ZERO),
                sum((item.previous_amount or ZERO for item in chosen), ZERO),
            ),
        )

    totals = [sections[c].total for c in CashFlowCategory]
    net_change = _sum_amounts(totals, AccountType.ASSET, precision)
    opening = amount(beginning_cash, previous_beginning_cash)
    ending = _sum_amounts([opening, net_change], AccountType.ASSET, precision)
    return CashFlowStatementReport(
        metadata=metadata,
        beginning_cash=opening,
        operating=sections[CashFlowCategory.OPERATING],
        investing=sections[CashFlowCategory.INVESTING],
        financing=sections[CashFlowCategory.FINANCING],
        net_change=net_change,
        ending_cash=ending,
    )


def derive_cash_flow_items(
    accounts: Mapping[str, Account],
    postings: Sequence[LedgerPosting],
    start: date,
    end: date,
    config: ReportingConfig,
) -> tuple[Decimal, tuple[CashFlowItem, ...]]:
    """
    Indirect-method cash flow items from ledger balances.

    Returns (beginning cash, items).  Cash accounts are those whose code is
    in ``config.cash_account_codes``.

    Steps:
    1. Net income for the range (operating)
    2. Changes in non-cash current assets and current liabilities (operating)
    3. Changes in fixed and other assets (investing)
    4. Changes in long-term liabilities and equity (financing)
    """
    cash_codes = set(config.cash_account_codes)
    opening = compute_balances(accounts, postings, start - timedelta(days=1))
    closing = compute_balances(accounts, postings, end)
    activity = period_activity(accounts, postings, start, end)

    beginning_cash = sum(
        (opening.balance_of(a.account_id) for a in accounts.values() if a.code in cash_codes),
        ZERO,
    )
    items: list[CashFlowItem] = [CashFlowItem(
        CashFlowCategory.OPERATING, "Net Income", net_income_of(accounts, activity),
    )]
    for account in sorted(accounts.values(), key=lambda a: a.code):
        if account.is_archived or account.code in cash_codes:
            continue
        if account.account_type in (AccountType.INCOME, AccountType.EXPENSE):
            continue
        change = closing.balance_of(account.account_id) - opening.balance_of(account.account_id)
        if change == ZERO:
            continue
        description = f"Change in {account.name}"
        if account.account_type is AccountType.ASSET:
            category = (
                CashFlowCategory.OPERATING
                if account.placement is AccountSubtype.CURRENT
                else CashFlowCategory.INVESTING
            )
            # Asset increase = cash decrease
            items.append(CashFlowItem(category, description, -change))
        elif account.account_type is AccountType.LIABILITY and account.placement is AccountSubtype.CURRENT:
            items.append(CashFlowItem(CashFlowCategory.OPERATING, description, change))
        else:
            items.append(CashFlowItem(CashFlowCategory.FINANCING, description, change))
    return beginning_cash, tuple(items)


# =========================================================================
# 5. GENERAL LEDGER
# =========================================================================


def build_general_ledger(
    accounts: Mapping[str, Account],
    postings: Sequence[LedgerPosting],
    start: date,
    end: date,
    config: ReportingConfig,
    metadata: ReportMetadata,
) -> GeneralLedgerReport:
    precision = config.precision
    ledger_accounts = []
    for activity in general_ledger(accounts, postings, start, end):
        ledger_accounts.append(GeneralLedgerAccount(
            account_id=activity.account.account_id,
            account_code=activity.account.code,
            account_name=activity.account.name,
            opening_balance=round_amount(activity.opening_balance, precision),
            rows=tuple(
                GeneralLedgerRow(
                    entry_date=row.posting.entry_date,
                    entry_id=row.posting.entry_id,
                    description=row.posting.description,
                    reference=row.posting.reference,
                    debit=round_amount(row.posting.debit, precision),
                    credit=round_amount(row.posting.credit, precision),
                    running_balance=round_amount(row.running_balance, precision),
                )
                for row in activity.rows
            ),
            total_debit=round_amount(activity.total_debit, precision),
            total_credit=round_amount(activity.total_credit, precision),
            closing_balance=round_amount(activity.closing_balance, precision),
        ))
    warnings = compute_balances(accounts, postings, end).warnings
    return GeneralLedgerReport(metadata=metadata, accounts=tuple(ledger_accounts), warnings=warnings)
