"""
Value objects shared across the ledger engine (``ledger_kernel.domain.values``).

Responsibility
--------------
Small immutable value types used by more than one engine: per-head GST
amounts, typed enum parsing and record id parsing.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* ``TaxAmounts`` is frozen; arithmetic returns new instances.
* All amounts are ``Decimal`` -- NEVER ``float``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import TypeVar
from uuid import UUID

from ledger_kernel.exceptions import InvalidEnumValueError

ZERO = Decimal("0")

E = TypeVar("E", bound=Enum)


def parse_enum(enum_cls: type[E], value: E | str, field: str) -> E:
    """Coerce ``value`` into ``enum_cls`` or raise InvalidEnumValueError."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidEnumValueError(
            field, str(value), tuple(str(m.value) for m in enum_cls)
        ) from None


def parse_record_id(value: UUID | str | None) -> UUID | None:
    """UUID form of a record id, or None when ``value`` is blank or not a UUID."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


class TaxHead(str, Enum):
    """GST tax heads."""

    IGST = "igst"
    CGST = "cgst"
    SGST = "sgst"
    CESS = "cess"


@dataclass(frozen=True, slots=True)
class TaxAmounts:
    """Per-head GST amounts."""

    igst: Decimal = ZERO
    cgst: Decimal = ZERO
    sgst: Decimal = ZERO
    cess: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.igst + self.cgst + self.sgst + self.cess

    def get(self, head: TaxHead) -> Decimal:
        return getattr(self, head.value)

    def __add__(self, other: TaxAmounts) -> TaxAmounts:
        return TaxAmounts(
            igst=self.igst + other.igst,
            cgst=self.cgst + other.cgst,
            sgst=self.sgst + other.sgst,
            cess=self.cess + other.cess,
        )

    def __sub__(self, other: TaxAmounts) -> TaxAmounts:
        return TaxAmounts(
            igst=self.igst - other.igst,
            cgst=self.cgst - other.cgst,
            sgst=self.sgst - other.sgst,
            cess=self.cess - other.cess,
        )

    def negated(self) -> TaxAmounts:
        return TaxAmounts(-self.igst, -self.cgst, -self.sgst, -self.cess)

    @classmethod
    def from_heads(cls, values: dict[TaxHead, Decimal]) -> TaxAmounts:
        return cls(**{head.value: values.get(head, ZERO) for head in TaxHead})

    def as_dict(self) -> dict[str, Decimal]:
        return {head.value: self.get(head) for head in TaxHead}
