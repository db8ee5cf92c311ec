"""
ledger_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the runtime way to obtain configuration through
    ``get_engine_config()``.  Returns a frozen ``EngineConfig`` from which
    module configs and the ``FiscalYearPolicy`` are derived.

Architecture position:
    Configuration.  Sits above ``ledger_kernel`` and the module config
    schemas; the kernel MUST NEVER import from ``ledger_config``.

Invariants enforced:
    - Deterministic loading: the same YAML always yields the same
      ``EngineConfig.checksum``.
    - Validation at construction: an ``EngineConfig`` that exists is
      within range.

Failure modes:
    - ``FileNotFoundError`` -- an explicit path that does not exist.
    - ``ValueError`` -- unknown keys or out-of-range values.
    - ``yaml.YAMLError`` -- malformed YAML.

Audit relevance:
    Every successful ``get_engine_config()`` call emits a
    ``LEDGER_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying computed results to the configuration that governed
    them.
"""

from __future__ import annotations

from pathlib import Path

from ledger_config.loader import compute_checksum, load_engine_config, parse_engine_config
from ledger_config.schema import EngineConfig
from ledger_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def get_engine_config(path: Path | str | None = None) -> EngineConfig:
    """
    Load the engine configuration.

    Args:
        path: YAML document to load.  Defaults to the packaged
            ``defaults.yaml``.

    Raises:
        FileNotFoundError: ``path`` does not exist.
        ValueError: the document fails validation.
    """
    config = load_engine_config(path if path is not None else DEFAULTS_PATH)
    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "trace_type": "LEDGER_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "precision": config.precision,
            "fiscal_year_start_month": config.fiscal_year_start_month,
        },
    )
    return config


__all__ = [
    "DEFAULTS_PATH",
    "EngineConfig",
    "compute_checksum",
    "get_engine_config",
    "load_engine_config",
    "parse_engine_config",
]
