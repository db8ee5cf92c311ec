"""
ledger_engines.entry_validator -- Double-entry validation for journal lines.

Responsibility:
    Decide whether a set of journal lines is a well-formed double entry,
    and report every violation found along with the totals used.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Called by the journal
    lifecycle on create and revise, and by any caller that wants a
    diagnostic view of a draft.

Invariants enforced:
    - At least two lines.
    - Each line is one-sided: exactly one of debit/credit is > 0.
    - No negative amounts.
    - |sum(debit) - sum(credit)| < 10**-precision.

Failure modes:
    - ``validate_entry`` never raises; it returns a ValidationResult.
    - ``require_valid_entry`` raises the first matching typed error:
      InsufficientLinesError, InvalidLineError, UnbalancedEntryError,
      AccountNotFoundError, CostCenterNotFoundError.

Audit relevance:
    A Posted entry is guaranteed to have passed this validator.  The
    debit, credit, and imbalance figures appear in the UNBALANCED_ENTRY
    error so a rejected draft can be diagnosed from logs alone.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from ledger_engines.arithmetic import ZERO, round_amount, tolerance
from ledger_kernel.domain.accounts import Account
from ledger_kernel.domain.ledger import EntryLine
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    CostCenterNotFoundError,
    InsufficientLinesError,
    InvalidLineError,
    UnbalancedEntryError,
)
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.entry_validator")

MINIMUM_LINES = 2


@dataclass(frozen=True, slots=True)
class Violation:
    """One rule broken by an entry; ``line_index`` is None for entry-level rules."""

    code: str
    message: str
    line_index: int | None = None


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of validating a set of journal lines.

    Contract:
        ``is_valid`` is True exactly when ``violations`` is empty.  Totals are
        computed over every line, including invalid ones.
    """

    is_valid: bool
    debit_total: Decimal
    credit_total: Decimal
    imbalance: Decimal
    violations: tuple[Violation, ...] = field(default_factory=tuple)

    def __bool__(self) -> bool:
        return self.is_valid


def _line_violations(index: int, line: EntryLine) -> list[Violation]:
    found: list[Violation] = []
    if line.debit < ZERO or line.credit < ZERO:
        found.append(Violation("NEGATIVE_AMOUNT", "amounts must not be negative", index))
    if line.debit > ZERO and line.credit > ZERO:
        found.append(Violation("BOTH_SIDES", "line has both debit and credit", index))
    elif line.debit <= ZERO and line.credit <= ZERO:
        found.append(Violation("NO_AMOUNT", "line has neither debit nor credit", index))
    return found


def validate_entry(lines: Sequence[EntryLine], precision: int = 3) -> ValidationResult:
    """
    Check ``lines`` against the double-entry rules.

    Postconditions:
        Returns a ValidationResult listing every violation; never raises.
    """
    violations: list[Violation] = []
    if len(lines) < MINIMUM_LINES:
        violations.append(Violation(
            "INSUFFICIENT_LINES",
            f"entry has {len(lines)} line(s); at least {MINIMUM_LINES} are required",
        ))
    for index, line in enumerate(lines):
        violations.extend(_line_violations(index, line))

    debit_total = sum((line.debit for line in lines), ZERO)
    credit_total = sum((line.credit for line in lines), ZERO)
    imbalance = debit_total - credit_total
    if abs(imbalance) >= tolerance(precision):
        violations.append(Violation(
            "UNBALANCED",
            f"debits {debit_total} differ from credits {credit_total}",
        ))

    return ValidationResult(
        is_valid=not violations,
        debit_total=debit_total,
        credit_total=credit_total,
        imbalance=imbalance,
        violations=tuple(violations),
    )


def require_valid_entry(
    lines: Sequence[EntryLine],
    precision: int = 3,
    accounts: Mapping[str, Account] | None = None,
    cost_centers: Collection[str] | None = None,
) -> ValidationResult:
    """
    Validate ``lines`` and raise on the first violation.

    When ``accounts`` is given, every line must reference a known,
    non-archived account.  When ``cost_centers`` is given, every line's
    cost centre (if set) must be in it.

    Raises:
        InsufficientLinesError, InvalidLineError, UnbalancedEntryError,
        AccountNotFoundError, CostCenterNotFoundError.
    """
    result = validate_entry(lines, precision)
    if not result.is_valid:
        logger.info(
            "entry_validation_failed",
            extra={
                "violation_codes": [v.code for v in result.violations],
                "debit_total": str(result.debit_total),
                "credit_total": str(result.credit_total),
            },
        )
        first = result.violations[0]
        if first.code == "INSUFFICIENT_LINES":
            raise InsufficientLinesError(len(lines), MINIMUM_LINES)
        if first.line_index is not None:
            raise InvalidLineError(first.line_index, first.message)
        raise UnbalancedEntryError(
            round_amount(result.debit_total, precision),
            round_amount(result.credit_total, precision),
            tolerance(precision),
        )

    for line in lines:
        if accounts is not None:
            account = accounts.get(line.account_id)
            if account is None or account.is_archived:
                raise AccountNotFoundError(line.account_id)
        if (
            cost_centers is not None
            and line.cost_center is not None
            and line.cost_center not in cost_centers
        ):
            raise CostCenterNotFoundError(line.cost_center)
    return result
