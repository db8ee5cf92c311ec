"""
Chart-of-accounts snapshot (``ledger_kernel.domain.accounts``).

The persistence collaborator owns the chart of accounts; engines receive
``Account`` snapshots keyed by account id.  The parent reference is a
weak link used only for hierarchy display.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from ledger_kernel.domain.polarity import AccountPolarity, AccountType, NormalBalance


class AccountSubtype(str, Enum):
    """Balance-sheet placement within an account type."""

    CURRENT = "current"
    FIXED = "fixed"
    OTHER = "other"
    LONG_TERM = "long-term"


@dataclass(frozen=True, slots=True)
class Account:
    """Snapshot of account metadata needed by balance and statement engines."""

    account_id: str
    code: str
    name: str
    account_type: AccountType
    subtype: AccountSubtype | None = None
    parent_id: str | None = None
    is_archived: bool = False

    @property
    def normal_balance(self) -> NormalBalance:
        return AccountPolarity.normal_balance(self.account_type)

    @property
    def placement(self) -> AccountSubtype | None:
        """Balance-sheet section, defaulting assets and liabilities to current."""
        if self.account_type in (AccountType.ASSET, AccountType.LIABILITY):
            return self.subtype or AccountSubtype.CURRENT
        return None


def full_path(account: Account, accounts: Mapping[str, Account]) -> str:
    """
    Ancestor names joined with " > ", root first.

    A parent id that does not resolve ends the walk; a cycle is cut at the
    first repeated id.
    """
    names = [account.name]
    seen = {account.account_id}
    parent_id = account.parent_id
    while parent_id is not None and parent_id not in seen:
        parent = accounts.get(parent_id)
        if parent is None:
            break
        names.append(parent.name)
        seen.add(parent_id)
        parent_id = parent.parent_id
    return " > ".join(reversed(names))
