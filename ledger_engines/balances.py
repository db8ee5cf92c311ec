"""
ledger_engines.balances -- Account balances and general-ledger activity.

Responsibility:
    Derive per-account debit/credit totals and natural balances from the
    postings of Posted journal entries, as of a date or over a date range,
    and lay out a general ledger with running balances.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The journal service
    supplies ``LedgerPosting`` rows and ``Account`` snapshots; statement
    builders consume the results.

Invariants enforced:
    - The sign convention comes from ``AccountPolarity`` only.
    - General-ledger order is (entry date, creation timestamp, insertion
      sequence), ascending.  Python's sort is stable, so equal keys keep
      their input order.
    - A posting to an unknown or archived account never changes any
      total; each entry carrying one is reported once per reason as an
      ExclusionWarning.

Failure modes:
    - None raised.  Unknown and archived references become warnings.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from ledger_engines.arithmetic import ZERO
from ledger_kernel.domain.accounts import Account
from ledger_kernel.domain.diagnostics import ExclusionWarning, exclude
from ledger_kernel.domain.ledger import LedgerPosting
from ledger_kernel.domain.polarity import AccountPolarity
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.balances")

UNKNOWN_ACCOUNT = "UNKNOWN_ACCOUNT"
ARCHIVED_ACCOUNT = "ARCHIVED_ACCOUNT"


@dataclass(frozen=True, slots=True)
class AccountBalance:
    account: Account
    debit_total: Decimal
    credit_total: Decimal
    balance: Decimal


@dataclass(frozen=True, slots=True)
class BalanceComputation:
    """Balances keyed by account id, plus the postings left out."""

    balances: Mapping[str, AccountBalance]
    warnings: tuple[ExclusionWarning, ...] = ()

    def balance_of(self, account_id: str) -> Decimal:
        found = self.balances.get(account_id)
        return found.balance if found is not None else ZERO


def _make_balance(account: Account, debit: Decimal, credit: Decimal) -> AccountBalance:
    return AccountBalance(
        account=account,
        debit_total=debit,
        credit_total=credit,
        balance=AccountPolarity.natural_balance(account.account_type, debit, credit),
    )


def account_balance(
    account: Account,
    postings: Iterable[LedgerPosting],
    as_of: date,
) -> AccountBalance:
    """Totals of the account's postings dated on or before ``as_of``."""
    debit = ZERO
    credit = ZERO
    for posting in postings:
        if posting.account_id == account.account_id and posting.entry_date <= as_of:
            debit += posting.debit
            credit += posting.credit
    return _make_balance(account, debit, credit)


def _accumulate(
    accounts: Mapping[str, Account],
    postings: Iterable[LedgerPosting],
    start: date | None,
    end: date,
    source: str,
) -> BalanceComputation:
    totals: dict[str, list[Decimal]] = {
        account_id: [ZERO, ZERO]
        for account_id, account in accounts.items()
        if not account.is_archived
    }
    warnings: list[ExclusionWarning] = []
    reported: set[tuple[str, str]] = set()
    for posting in postings:
        if posting.entry_date > end or (start is not None and posting.entry_date < start):
            continue
        pair = totals.get(posting.account_id)
        if pair is None:
            if posting.account_id in accounts:
                reason, detail = ARCHIVED_ACCOUNT, "archived"
            else:
                reason, detail = UNKNOWN_ACCOUNT, "unknown"
            if (posting.entry_id, reason) not in reported:
                reported.add((posting.entry_id, reason))
                warnings.append(exclude(
                    posting.entry_id,
                    reason,
                    f"posting references {detail} account {posting.account_id}",
                    source=source,
                ))
            continue
        pair[0] += posting.debit
        pair[1] += posting.credit

    balances = {
        account_id: _make_balance(accounts[account_id], debit, credit)
        for account_id, (debit, credit) in totals.items()
    }
    return BalanceComputation(balances=balances, warnings=tuple(warnings))


def compute_balances(
    accounts: Mapping[str, Account],
    postings: Iterable[LedgerPosting],
    as_of: date,
) -> BalanceComputation:
    """Balances of every non-archived account as of ``as_of``."""
    return _accumulate(accounts, postings, None, as_of, "compute_balances")


def period_activity(
    accounts: Mapping[str, Account],
    postings: Iterable[LedgerPosting],
    start: date,
    end: date,
) -> BalanceComputation:
    """Movement of every non-archived account between ``start`` and ``end`` inclusive."""
    return _accumulate(accounts, postings, start, end, "period_activity")


# -----------------------------------------------------------------------------
# General ledger
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LedgerRow:
    posting: LedgerPosting
    running_balance: Decimal


@dataclass(frozen=True, slots=True)
class LedgerAccountActivity:
    account: Account
    opening_balance: Decimal
    rows: tuple[LedgerRow, ...]
    closing_balance: Decimal
    total_debit: Decimal
    total_credit: Decimal


def order_postings(postings: Iterable[LedgerPosting]) -> list[LedgerPosting]:
    """Postings in general-ledger order."""
    return sorted(postings, key=lambda p: p.order_key)


def general_ledger(
    accounts: Mapping[str, Account],
    postings: Sequence[LedgerPosting],
    start: date,
    end: date,
) -> tuple[LedgerAccountActivity, ...]:
    """
    Per-account ledger for ``start``..``end``.

    Postconditions:
        - opening_balance covers postings dated before ``start``.
        - running_balance after each row follows AccountPolarity.
        - Accounts with no rows and a zero opening balance are omitted.
        - Output is ordered by account code.
    """
    by_account: dict[str, list[LedgerPosting]] = {}
    for posting in order_postings(postings):
        by_account.setdefault(posting.account_id, []).append(posting)

    activities: list[LedgerAccountActivity] = []
    for account in sorted(accounts.values(), key=lambda a: a.code):
        if account.is_archived:
            continue
        entries = by_account.get(account.account_id, [])
        polarity_type = account.account_type

        opening = AccountPolarity.natural_balance(
            polarity_type,
            sum((p.debit for p in entries if p.entry_date < start), ZERO),
            sum((p.credit for p in entries if p.entry_date < start), ZERO),
        )
        running = opening
        rows: list[LedgerRow] = []
        total_debit = ZERO
        total_credit = ZERO
        for posting in entries:
            if posting.entry_date < start or posting.entry_date > end:
                continue
            running += AccountPolarity.natural_balance(
                polarity_type, posting.debit, posting.credit,
            )
            total_debit += posting.debit
            total_credit += posting.credit
            rows.append(LedgerRow(posting=posting, running_balance=running))

        if not rows and opening == ZERO:
            continue
        activities.append(LedgerAccountActivity(
            account=account,
            opening_balance=opening,
            rows=tuple(rows),
            closing_balance=running,
            total_debit=total_debit,
            total_credit=total_credit,
        ))

    logger.debug("general_ledger_built", extra={"account_count": len(activities)})
    return tuple(activities)
