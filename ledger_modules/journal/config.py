"""
Journal Configuration Schema.

Balance tolerance applied when entries are submitted and posted.
Values normally come from ``EngineConfig``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Self

from ledger_kernel.logging_config import get_logger

logger = get_logger("modules.journal.config")


@dataclass
class JournalConfig:
    """
    Configuration schema for the journal module.

    An entry balances when ``|debits - credits| < 10**-balance_precision``.
    """

    balance_precision: int = 3

    def __post_init__(self):
        if self.balance_precision < 0:
            raise ValueError("balance_precision cannot be negative")

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("journal_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary."""
        logger.info(
            "journal_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
