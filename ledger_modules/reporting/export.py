"""
CSV row rendering for financial reports.

Each report is flattened into a list of row dicts keyed by column title.
Section headers and spacers are rows that only set the first column.
Monetary cells stay ``Decimal``; ``write_csv`` stringifies them, so no
binary floating point is ever introduced.

Row contract (statements):
    {"Account": <label>, "Current Period": <amount>, "Previous Period": <amount>}
    "Previous Period" is present only when the report has a comparative
    column.  The first row is the title row, followed by a spacer
    ``{"Account": ""}``.
"""

from __future__ import annotations

import csv
from collections.abc import Callable, Sequence
from datetime import date
from typing import Any, TextIO

from ledger_kernel.domain.values import parse_enum
from ledger_kernel.logging_config import get_logger
from ledger_engines.aging import AgingReport, AgingType
from ledger_modules.reporting.models import (
    BalanceSheetReport,
    BudgetVsActualReport,
    BudgetVsActualSection,
    CashFlowSection,
    CashFlowStatementReport,
    ComparativeAmount,
    GeneralLedgerReport,
    IncomeStatementReport,
    ReportMetadata,
    ReportType,
    StatementSection,
    TrialBalanceReport,
)

logger = get_logger("modules.reporting.export")

Row = dict[str, Any]

ACCOUNT = "Account"
CURRENT = "Current Period"
PREVIOUS = "Previous Period"
VARIANCE = "Variance"
VARIANCE_PCT = "Variance %"


def format_date(value: date) -> str:
    """Long form, e.g. "March 31, 2024"."""
    return f"{value:%B} {value.day}, {value.year}"


def _period_label(start: date | None, end: date | None) -> str:
    if start is None or end is None:
        return ""
    return f"{format_date(start)} to {format_date(end)}"


def _spacer(first_column: str = ACCOUNT) -> Row:
    return {first_column: ""}


def _amount_row(label: str, amount: ComparativeAmount, comparative: bool, with_variance: bool = False) -> Row:
    row: Row = {ACCOUNT: label, CURRENT: amount.current}
    if comparative:
        row[PREVIOUS] = amount.previous
        if with_variance and amount.variance is not None:
            row[VARIANCE] = amount.variance.absolute
            row[VARIANCE_PCT] = amount.variance.percentage
    return row


def _section_rows(
    section: StatementSection,
    heading: str,
    total_label: str,
    comparative: bool,
    with_variance: bool = False,
) -> list[Row]:
    rows: list[Row] = [{ACCOUNT: heading}]
    for line in section.lines:
        rows.append(_amount_row(line.account_name, line.amount, comparative, with_variance))
    rows.append(_amount_row(total_label, section.total, comparative, with_variance))
    return rows


def _title_row(title: str, current_label: str, metadata: ReportMetadata, previous_label: str) -> Row:
    row: Row = {ACCOUNT: title, CURRENT: current_label}
    if metadata.has_comparative:
        row[PREVIOUS] = previous_label
    return row


# =========================================================================
# Statements
# =========================================================================


def format_balance_sheet(report: BalanceSheetReport) -> list[Row]:
    meta = report.metadata
    comparative = meta.comparative_date is not None
    rows: list[Row] = [
        _title_row(
            "BALANCE SHEET",
            format_date(meta.as_of_date),
            meta,
            format_date(meta.comparative_date) if comparative else "",
        ),
        _spacer(),
        {ACCOUNT: "ASSETS"},
    ]
    rows += _section_rows(report.current_assets, "Current Assets", "Total Current Assets", comparative)
    rows.append(_spacer())
    rows += _section_rows(report.fixed_assets, "Fixed Assets", "Total Fixed Assets", comparative)
    if report.other_assets.lines:
        rows.append(_spacer())
        rows += _section_rows(report.other_assets, "Other Assets", "Total Other Assets", comparative)
    rows.append(_spacer())
    rows.append(_amount_row("TOTAL ASSETS", report.total_assets, comparative))

    rows.append(_spacer())
    rows.append({ACCOUNT: "LIABILITIES AND EQUITY"})
    rows += _section_rows(
        report.current_liabilities, "Current Liabilities", "Total Current Liabilities", comparative,
    )
    rows.append(_spacer())
    rows += _section_rows(
        report.long_term_liabilities, "Long-Term Liabilities", "Total Long-Term Liabilities", comparative,
    )
    rows.append(_spacer())
    rows.append(_amount_row("TOTAL LIABILITIES", report.total_liabilities, comparative))
    rows.append(_spacer())
    rows += _section_rows(report.equity, "Equity", "Total Equity", comparative)
    rows.append(_spacer())
    rows.append(_amount_row(
        "TOTAL LIABILITIES AND EQUITY", report.total_liabilities_and_equity, comparative,
    ))
    return rows


def format_income_statement(report: IncomeStatementReport, with_variance: bool = False) -> list[Row]:
    meta = report.metadata
    comparative = meta.has_comparative
    title = "PROFIT AND LOSS COMPARISON" if with_variance else "INCOME STATEMENT"
    rows: list[Row] = [
        _title_row(
            title,
            _period_label(meta.period_start, meta.period_end),
            meta,
            _period_label(meta.comparative_start, meta.comparative_end),
        ),
        _spacer(),
    ]
    rows += _section_rows(report.revenue, "REVENUE", "Total Revenue", comparative, with_variance)
    rows.append(_spacer())
    rows += _section_rows(report.expenses, "EXPENSES", "Total Expenses", comparative, with_variance)
    rows.append(_spacer())
    rows.append(_amount_row("NET INCOME", report.net_income, comparative, with_variance))
    return rows


def _cash_section_rows(section: CashFlowSection, heading: str, total_label: str, comparative: bool) -> list[Row]:
    rows: list[Row] = [{ACCOUNT: heading}]
    for line in section.lines:
        rows.append(_amount_row(line.description, line.amount, comparative))
    rows.append(_amount_row(total_label, section.total, comparative))
    return rows


def format_cash_flow(report: CashFlowStatementReport) -> list[Row]:
    meta = report.metadata
    comparative = report.beginning_cash.previous is not None
    rows: list[Row] = [
        _title_row(
            "CASH FLOW STATEMENT",
            _period_label(meta.period_start, meta.period_end),
            meta,
            _period_label(meta.comparative_start, meta.comparative_end),
        ),
        _spacer(),
        _amount_row("Beginning Cash Balance", report.beginning_cash, comparative),
        _spacer(),
    ]
    rows += _cash_section_rows(
        report.operating, "CASH FLOWS FROM OPERATING ACTIVITIES",
        "Net Cash from Operating Activities", comparative,
    )
    rows.append(_spacer())
    rows += _cash_section_rows(
        report.investing, "CASH FLOWS FROM INVESTING ACTIVITIES",
        "Net Cash from Investing Activities", comparative,
    )
    rows.append(_spacer())
    rows += _cash_section_rows(
        report.financing, "CASH FLOWS FROM FINANCING ACTIVITIES",
        "Net Cash from Financing Activities", comparative,
    )
    rows.append(_spacer())
    rows.append(_amount_row("NET CHANGE IN CASH", report.net_change, comparative))
    rows.append(_spacer())
    rows.append(_amount_row("Ending Cash Balance", report.ending_cash, comparative))
    return rows


# =========================================================================
# Listings
# =========================================================================


def format_trial_balance(report: TrialBalanceReport) -> list[Row]:
    rows: list[Row] = [
        {"Account Code": "TRIAL BALANCE", "Account Name": format_date(report.metadata.as_of_date)},
        _spacer("Account Code"),
    ]
    for line in report.lines:
        rows.append({
            "Account Code": line.account_code,
            "Account Name": line.account_name,
            "Debit": line.debit,
            "Credit": line.credit,
        })
    rows.append(_spacer("Account Code"))
    rows.append({
        "Account Code": "",
        "Account Name": "TOTAL",
        "Debit": report.total_debits,
        "Credit": report.total_credits,
    })
    return rows


def format_general_ledger(report: GeneralLedgerReport) -> list[Row]:
    meta = report.metadata
    rows: list[Row] = [
        {"Date": "GENERAL LEDGER", "Account": _period_label(meta.period_start, meta.period_end)},
    ]
    for account in report.accounts:
        rows.append(_spacer("Date"))
        rows.append({"Date": "", "Account": f"{account.account_code} {account.account_name}"})
        rows.append({"Date": "", "Description": "Opening Balance", "Balance": account.opening_balance})
        for row in account.rows:
            rows.append({
                "Date": row.entry_date.isoformat(),
                "Account": account.account_name,
                "Description": row.description,
                "Debit": row.debit,
                "Credit": row.credit,
                "Balance": row.running_balance,
            })
        rows.append({
            "Date": "",
            "Description": "Closing Balance",
            "Debit": account.total_debit,
            "Credit": account.total_credit,
            "Balance": account.closing_balance,
        })
    return rows


def format_aging(report: AgingReport) -> list[Row]:
    party = "Customer" if report.aging_type is AgingType.RECEIVABLE else "Vendor"
    title = (
        "ACCOUNTS RECEIVABLE AGING"
        if report.aging_type is AgingType.RECEIVABLE
        else "ACCOUNTS PAYABLE AGING"
    )
    rows: list[Row] = [{party: title, "Total": format_date(report.as_of)}, _spacer(party)]
    for item in report.parties:
        row: Row = {party: item.party_name}
        row.update(item.by_bucket)
        row["Total"] = item.total
        rows.append(row)
    rows.append(_spacer(party))
    total_row: Row = {party: "TOTAL"}
    total_row.update(report.grand_total_by_bucket)
    total_row["Total"] = report.grand_total
    rows.append(total_row)
    return rows


def _bva_rows(section: BudgetVsActualSection, heading: str, total_label: str) -> list[Row]:
    rows: list[Row] = [{ACCOUNT: heading}]
    for line in section.lines:
        rows.append({
            ACCOUNT: line.account_name,
            "Budget": line.budget,
            "Actual": line.actual,
            VARIANCE: line.variance.absolute,
            VARIANCE_PCT: line.variance.percentage,
        })
    rows.append({
        ACCOUNT: total_label,
        "Budget": section.budget_total,
        "Actual": section.actual_total,
        VARIANCE: section.variance.absolute,
        VARIANCE_PCT: section.variance.percentage,
    })
    return rows


def format_budget_vs_actual(report: BudgetVsActualReport) -> list[Row]:
    meta = report.metadata
    rows: list[Row] = [
        {ACCOUNT: "BUDGET VS ACTUAL", "Budget": _period_label(meta.period_start, meta.period_end)},
        _spacer(),
    ]
    rows += _bva_rows(report.revenue, "REVENUE", "Total Revenue")
    rows.append(_spacer())
    rows += _bva_rows(report.expenses, "EXPENSES", "Total Expenses")
    rows.append(_spacer())
    rows.append({
        ACCOUNT: "NET INCOME",
        "Budget": report.net_income_budget,
        "Actual": report.net_income_actual,
        VARIANCE: report.net_income_variance.absolute,
        VARIANCE_PCT: report.net_income_variance.percentage,
    })
    return rows


_FORMATTERS: dict[ReportType, Callable[[Any], list[Row]]] = {
    ReportType.BALANCE_SHEET: format_balance_sheet,
    ReportType.INCOME_STATEMENT: format_income_statement,
    ReportType.PROFIT_LOSS_COMPARISON: lambda r: format_income_statement(r, with_variance=True),
    ReportType.CASH_FLOW: format_cash_flow,
    ReportType.TRIAL_BALANCE: format_trial_balance,
    ReportType.GENERAL_LEDGER: format_general_ledger,
    ReportType.AR_AGING: format_aging,
    ReportType.AP_AGING: format_aging,
    ReportType.BUDGET_VS_ACTUAL: format_budget_vs_actual,
}


def format_report_rows(report: Any, report_type: ReportType | str) -> list[Row]:
    """
    Flatten ``report`` into CSV rows.

    Returns an empty list for a None report.

    Raises:
        InvalidEnumValueError: if ``report_type`` is not a known report.
    """
    if report is None:
        return []
    kind = parse_enum(ReportType, report_type, "report_type")
    rows = _FORMATTERS[kind](report)
    logger.debug("report_rows_formatted", extra={"report_type": kind.value, "row_count": len(rows)})
    return rows


def report_columns(rows: Sequence[Row]) -> list[str]:
    """Column titles in first-seen order."""
    columns: list[str] = []
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)
    return columns


def write_csv(rows: Sequence[Row], stream: TextIO) -> None:
    """Write rows with ``csv.DictWriter``; missing cells are blank."""
    writer = csv.DictWriter(stream, fieldnames=report_columns(rows), restval="")
    writer.writeheader()
    for row in rows:
        writer.writerow({k: ("" if v is None else v) for k, v in row.items()})
