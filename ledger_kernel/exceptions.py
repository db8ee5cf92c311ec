"""
Typed Exception Hierarchy for the Ledger Engine.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers branch on the exception TYPE and read structured attributes; they
never parse messages.  Every class carries a machine-readable ``code``
class attribute and stores its context as instance attributes so the
structured log formatter can emit them as ``exc_*`` fields.

    try:
        service.approve(tenant_id, entry_id, approver_id)
    except StatusConflictError as e:
        # Another request moved the entry first
        api_response(code=e.code, expected=e.expected_status, actual=e.actual_status)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerEngineError (base)
    |
    +-- ValidationError
    |   +-- UnbalancedEntryError
    |   +-- InsufficientLinesError
    |   +-- InvalidLineError
    |   +-- InvalidReturnPeriodError
    |   +-- InvalidFiscalYearError
    |   +-- InvalidEnumValueError
    |   +-- MissingFieldError
    |   +-- InvalidIdentifierError
    |
    +-- StateTransitionError
    |   +-- InvalidStateTransitionError
    |
    +-- ConcurrencyError
    |   +-- StatusConflictError
    |
    +-- ImmutabilityError
    |   +-- ImmutableRecordError
    |
    +-- ReferentialIntegrityError
    |   +-- AccountNotFoundError
    |   +-- CostCenterNotFoundError
    |   +-- RegistrationNotFoundError
    |   +-- RecordNotFoundError
    |
    +-- ComputationError
        +-- DivisionByZeroError
        +-- InvalidProductionUnitsError
        +-- InvalidCapitalWeightsError
        +-- InvalidComputationInputError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | UNBALANCED_ENTRY            | |debits - credits| >= tolerance
                | INSUFFICIENT_LINES          | Entry has fewer than 2 lines
                | INVALID_LINE                | Line has both/neither side, or negative
                | INVALID_RETURN_PERIOD       | Period not MM-YYYY
                | INVALID_FISCAL_YEAR         | Fiscal year not YYYY-YY
                | INVALID_ENUM_VALUE          | Value outside an enumerated set
                | MISSING_FIELD               | Required transition input absent
                | INVALID_IDENTIFIER          | Record id is not a UUID
----------------|-----------------------------|-----------------------------------------
Transition      | INVALID_STATE_TRANSITION    | Action not allowed from current status
----------------|-----------------------------|-----------------------------------------
Concurrency     | STATUS_CONFLICT             | Stored status moved under the caller
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABLE_RECORD            | Mutating Posted/Filed/reported records
----------------|-----------------------------|-----------------------------------------
Reference       | ACCOUNT_NOT_FOUND           | Line references an unknown account
                | COST_CENTER_NOT_FOUND       | Line references an unknown cost centre
                | REGISTRATION_NOT_FOUND      | Invoice lacks a resolvable GSTIN
                | RECORD_NOT_FOUND            | Tenant-scoped lookup found nothing
----------------|-----------------------------|-----------------------------------------
Computation     | DIVISION_BY_ZERO            | Precision divide by zero
                | INVALID_PRODUCTION_UNITS    | Units-of-production with total <= 0
                | INVALID_CAPITAL_WEIGHTS     | WACC weights do not sum to 1
                | INVALID_COMPUTATION_INPUT   | Out-of-domain solver parameter

===============================================================================
DESIGN DECISIONS
===============================================================================

1. IRR non-convergence is NOT an exception.  The solver returns None.

2. ReferentialIntegrityError blocks single-record writes, but aggregation
   code catches nothing: it checks references up front and records an
   ExclusionWarning instead of raising.

3. ImmutabilityError and StateTransitionError are siblings.  A Posted or
   Filed record raises ImmutableRecordError for every mutating operation;
   an action that is merely out of order raises InvalidStateTransitionError.
"""

from decimal import Decimal


class LedgerEngineError(Exception):
    """
    Base exception for all ledger engine errors.

    All subclasses must have a `code` class attribute for
    machine-readable error identification.
    """

    code: str = "LEDGER_ENGINE_ERROR"


# Validation exceptions


class ValidationError(LedgerEngineError):
    """Base exception for input rejected before any state change."""

    code: str = "VALIDATION_ERROR"


class UnbalancedEntryError(ValidationError):
    """Journal entry debits and credits differ beyond tolerance."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: Decimal, credits: Decimal, tolerance: Decimal):
        self.debits = str(debits)
        self.credits = str(credits)
        self.imbalance = str(debits - credits)
        self.tolerance = str(tolerance)
        super().__init__(
            f"Entry is unbalanced: debits={debits}, credits={credits}, "
            f"imbalance={debits - credits}"
        )


class InsufficientLinesError(ValidationError):
    """Journal entry has fewer lines than double entry requires."""

    code: str = "INSUFFICIENT_LINES"

    def __init__(self, line_count: int, minimum: int = 2):
        self.line_count = line_count
        self.minimum = minimum
        super().__init__(
            f"Entry has {line_count} line(s); at least {minimum} are required"
        )


class InvalidLineError(ValidationError):
    """A single journal line violates the one-sided amount rule."""

    code: str = "INVALID_LINE"

    def __init__(self, line_index: int, reason: str):
        self.line_index = line_index
        self.reason = reason
        super().__init__(f"Line {line_index}: {reason}")


class InvalidReturnPeriodError(ValidationError):
    """Return period is not in MM-YYYY form."""

    code: str = "INVALID_RETURN_PERIOD"

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Return period must be in MM-YYYY format, got {value!r}")


class InvalidFiscalYearError(ValidationError):
    """Fiscal year label is not in YYYY-YY form."""

    code: str = "INVALID_FISCAL_YEAR"

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Fiscal year must be in YYYY-YY format, got {value!r}")


class InvalidEnumValueError(ValidationError):
    """Value is not a member of an enumerated set."""

    code: str = "INVALID_ENUM_VALUE"

    def __init__(self, field: str, value: str, allowed: tuple[str, ...]):
        self.field = field
        self.value = value
        self.allowed = list(allowed)
        super().__init__(
            f"Invalid {field} {value!r}; expected one of {', '.join(allowed)}"
        )


class MissingFieldError(ValidationError):
    """An operation requires a field the caller did not supply."""

    code: str = "MISSING_FIELD"

    def __init__(self, field: str, operation: str):
        self.field = field
        self.operation = operation
        super().__init__(f"{operation} requires {field}")


class InvalidIdentifierError(ValidationError):
    """A record id supplied for a new record is not a UUID."""

    code: str = "INVALID_IDENTIFIER"

    def __init__(self, entity_type: str, value: str):
        self.entity_type = entity_type
        self.value = value
        super().__init__(f"{entity_type} id must be a UUID, got {value!r}")


# State transition exceptions


class StateTransitionError(LedgerEngineError):
    """Base exception for operations invalid in the current status."""

    code: str = "STATE_TRANSITION_ERROR"


class InvalidStateTransitionError(StateTransitionError):
    """No workflow transition exists for the action from the current status."""

    code: str = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_status: str,
        action: str,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_status = current_status
        self.action = action
        super().__init__(
            f"Cannot {action} {entity_type} {entity_id} in status {current_status!r}"
        )


# Concurrency exceptions


class ConcurrencyError(LedgerEngineError):
    """Base exception for concurrent-modification errors."""

    code: str = "CONCURRENCY_ERROR"


class StatusConflictError(ConcurrencyError):
    """
    Compare-and-set status update found a different stored status.

    Raised when ``UPDATE ... WHERE status = :expected`` matches no row
    although the record exists for the tenant.
    """

    code: str = "STATUS_CONFLICT"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        expected_status: str,
        actual_status: str | None,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_status = expected_status
        self.actual_status = actual_status
        super().__init__(
            f"Status conflict on {entity_type} {entity_id}: expected "
            f"{expected_status!r}, found {actual_status!r}"
        )


# Immutability exceptions


class ImmutabilityError(LedgerEngineError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutableRecordError(ImmutabilityError):
    """Attempted to modify or delete a Posted, Filed, or reported record."""

    code: str = "IMMUTABLE_RECORD"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        status: str,
        operation: str,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.status = status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} {entity_type} {entity_id}: "
            f"record is immutable in status {status!r}"
        )


# Referential integrity exceptions


class ReferentialIntegrityError(LedgerEngineError):
    """Base exception for unresolvable references."""

    code: str = "REFERENTIAL_INTEGRITY_ERROR"


class AccountNotFoundError(ReferentialIntegrityError):
    """Referenced account does not exist or is archived."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}")


class CostCenterNotFoundError(ReferentialIntegrityError):
    """Referenced cost centre does not exist."""

    code: str = "COST_CENTER_NOT_FOUND"

    def __init__(self, cost_center: str):
        self.cost_center = cost_center
        super().__init__(f"Cost center not found: {cost_center}")


class RegistrationNotFoundError(ReferentialIntegrityError):
    """Invoice or return has no resolvable GST registration."""

    code: str = "REGISTRATION_NOT_FOUND"

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"No resolvable GSTIN for {record_id}")


class RecordNotFoundError(ReferentialIntegrityError):
    """Tenant-scoped lookup found no record."""

    code: str = "RECORD_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


# Computation exceptions


class ComputationError(LedgerEngineError):
    """Base exception for arithmetic that has no defined result."""

    code: str = "COMPUTATION_ERROR"


class DivisionByZeroError(ComputationError):
    """Precision division with a zero denominator."""

    code: str = "DIVISION_BY_ZERO"

    def __init__(self, numerator: Decimal):
        self.numerator = str(numerator)
        super().__init__(f"Division by zero (numerator={numerator})")


class InvalidProductionUnitsError(ComputationError):
    """Units-of-production depreciation with non-positive total units."""

    code: str = "INVALID_PRODUCTION_UNITS"

    def __init__(self, total_units: Decimal):
        self.total_units = str(total_units)
        super().__init__(
            f"Total estimated units must be positive, got {total_units}"
        )


class InvalidCapitalWeightsError(ComputationError):
    """WACC component weights do not sum to one."""

    code: str = "INVALID_CAPITAL_WEIGHTS"

    def __init__(self, weight_sum: Decimal):
        self.weight_sum = str(weight_sum)
        super().__init__(f"Capital weights must sum to 1, got {weight_sum}")


class InvalidComputationInputError(ComputationError):
    """Solver parameter outside its domain."""

    code: str = "INVALID_COMPUTATION_INPUT"

    def __init__(self, parameter: str, value: object, reason: str):
        self.parameter = parameter
        self.value = str(value)
        self.reason = reason
        super().__init__(f"Invalid {parameter}={value}: {reason}")
