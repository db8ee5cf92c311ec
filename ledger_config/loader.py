"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads an engine configuration YAML document and parses it into the
frozen ``EngineConfig``.  Runtime callers go through
``ledger_config.get_engine_config()``.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; unknown sections are rejected rather than ignored.
* Decimal settings are parsed from their string form, never via float.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  canonical JSON form of the document.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* A document that is not a mapping  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import EngineConfig

_TOP_LEVEL_KEYS = frozenset({
    "config_id",
    "version",
    "precision",
    "balance_precision",
    "currency",
    "entity_name",
    "gst",
    "fiscal_year",
    "aging",
})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level, got {type(data).__name__}")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _decimal(value: Any, field: str) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{field}: not a decimal amount: {value!r}") from exc


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"{name}: expected a mapping")
    return section


def parse_engine_config(data: dict[str, Any], checksum: str = "") -> EngineConfig:
    """Build an ``EngineConfig``; absent keys keep their defaults."""
    unknown = set(data) - _TOP_LEVEL_KEYS
    if unknown:
        raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")

    values: dict[str, Any] = {"checksum": checksum}
    for key in ("config_id", "currency", "entity_name"):
        if key in data:
            values[key] = str(data[key])
    for key in ("version", "precision", "balance_precision"):
        if key in data:
            values[key] = int(data[key])

    gst = _section(data, "gst")
    if "b2c_large_threshold" in gst:
        values["b2c_large_threshold"] = _decimal(gst["b2c_large_threshold"], "gst.b2c_large_threshold")
    if "gstin_length" in gst:
        values["gstin_length"] = int(gst["gstin_length"])

    fiscal_year = _section(data, "fiscal_year")
    if "start_month" in fiscal_year:
        values["fiscal_year_start_month"] = int(fiscal_year["start_month"])

    aging = _section(data, "aging")
    if "periods" in aging:
        values["aging_periods"] = tuple(int(p) for p in aging["periods"])

    return EngineConfig(**values)


def load_engine_config(path: Path | str) -> EngineConfig:
    """Load, checksum and parse one YAML document."""
    data = load_yaml_file(Path(path))
    return parse_engine_config(data, compute_checksum(data))
