"""
Account polarity (``ledger_kernel.domain.polarity``).

Responsibility
--------------
The single lookup from account type to normal balance side.  Every
balance, statement, and GST computation obtains its sign convention from
``AccountPolarity``; no other module branches on account type to decide
whether debits increase or decrease a balance.

Architecture position
---------------------
**Kernel domain layer** -- pure.  ZERO I/O.

Invariants enforced
-------------------
* Asset and Expense are debit-normal; Liability, Equity and Income are
  credit-normal.
* ``natural_balance`` is positive when the account carries its expected
  normal direction.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from types import MappingProxyType

from ledger_kernel.domain.values import ZERO, parse_enum


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "Asset"
    LIABILITY = "Liability"
    EQUITY = "Equity"
    INCOME = "Income"
    EXPENSE = "Expense"

    @classmethod
    def parse(cls, value: AccountType | str) -> AccountType:
        return parse_enum(cls, value, "account_type")


class NormalBalance(str, Enum):
    """Normal balance side for an account."""

    DEBIT = "Debit"
    CREDIT = "Credit"


class AccountPolarity:
    """
    Central account-type to sign-convention lookup.

    Contract:
        Stateless; all methods are classmethods over an immutable table.
    Guarantees:
        - Every ``AccountType`` maps to exactly one ``NormalBalance``.
    """

    _TABLE = MappingProxyType({
        AccountType.ASSET: NormalBalance.DEBIT,
        AccountType.LIABILITY: NormalBalance.CREDIT,
        AccountType.EQUITY: NormalBalance.CREDIT,
        AccountType.INCOME: NormalBalance.CREDIT,
        AccountType.EXPENSE: NormalBalance.DEBIT,
    })

    @classmethod
    def normal_balance(cls, account_type: AccountType) -> NormalBalance:
        return cls._TABLE[account_type]

    @classmethod
    def is_debit_normal(cls, account_type: AccountType) -> bool:
        return cls._TABLE[account_type] is NormalBalance.DEBIT

    @classmethod
    def natural_balance(
        cls,
        account_type: AccountType,
        debit_total: Decimal,
        credit_total: Decimal,
    ) -> Decimal:
        """
        Balance adjusted for normal side.

        DEBIT-normal: debit_total - credit_total
        CREDIT-normal: credit_total - debit_total
        """
        if cls.is_debit_normal(account_type):
            return debit_total - credit_total
        return credit_total - debit_total

    @classmethod
    def to_columns(
        cls,
        account_type: AccountType,
        balance: Decimal,
    ) -> tuple[Decimal, Decimal]:
        """
        Place a natural balance into (debit, credit) trial-balance columns.

        A positive debit-normal balance lands in the debit column and a
        negative one in the credit column; credit-normal is the mirror.
        """
        if balance == ZERO:
            return ZERO, ZERO
        on_debit_side = cls.is_debit_normal(account_type) == (balance > ZERO)
        if on_debit_side:
            return abs(balance), ZERO
        return ZERO, abs(balance)

    @classmethod
    def increase_is_favorable(cls, account_type: AccountType) -> bool:
        """Whether growth in the natural balance is a favorable movement."""
        return account_type in (
            AccountType.ASSET,
            AccountType.EQUITY,
            AccountType.INCOME,
        )
