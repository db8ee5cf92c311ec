"""
GST Configuration Schema.

Thresholds and formatting used when classifying invoices and building
filing payloads.  Values normally come from ``EngineConfig``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Self

from ledger_kernel.logging_config import get_logger

logger = get_logger("modules.gst.config")


@dataclass
class GstConfig:
    """
    Configuration schema for the GST module.

    ``b2c_large_threshold`` is compared against invoice value (taxable
    value plus tax); an unregistered sale strictly above it is B2C Large.
    """

    b2c_large_threshold: Decimal = Decimal("250000")
    gstin_length: int = 15
    precision: int = 2

    def __post_init__(self):
        self.b2c_large_threshold = Decimal(str(self.b2c_large_threshold))
        if self.b2c_large_threshold <= 0:
            raise ValueError("b2c_large_threshold must be positive")
        if self.gstin_length <= 0:
            raise ValueError("gstin_length must be positive")
        if self.precision < 0:
            raise ValueError("precision cannot be negative")

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("gst_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary."""
        logger.info(
            "gst_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
