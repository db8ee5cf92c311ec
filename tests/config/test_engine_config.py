"""
Tests for engine configuration loading.

Covers:
- Packaged defaults and derived module configs (GST, reporting, journal, budget)
- Deterministic checksums
- LEDGER_CONFIG_TRACE audit log
- Rejection of unknown keys and out-of-range values
"""

from datetime import date
from decimal import Decimal

import pytest
import yaml

from ledger_config import DEFAULTS_PATH, compute_checksum, get_engine_config, parse_engine_config
from ledger_config.loader import load_yaml_file


def _write(tmp_path, document: str):
    path = tmp_path / "engine.yaml"
    path.write_text(document)
    return path


class TestDefaults:
    """Tests for the packaged defaults."""

    def test_default_values(self):
        config = get_engine_config()
        assert config.config_id == "default"
        assert config.precision == 2
        assert config.balance_precision == 3
        assert config.b2c_large_threshold == Decimal("250000")
        assert isinstance(config.b2c_large_threshold, Decimal)
        assert config.fiscal_year_start_month == 4
        assert config.aging_periods == (0, 30, 60, 90)
        assert config.currency == "INR"

    def test_checksum_is_deterministic(self):
        first = get_engine_config()
        second = get_engine_config()
        assert first.checksum == second.checksum
        assert len(first.checksum) == 64
        assert first.checksum == compute_checksum(load_yaml_file(DEFAULTS_PATH))

    def test_checksum_ignores_key_order(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})

    def test_trace_logged(self, captured_logs):
        config = get_engine_config()
        traces = [r for r in captured_logs() if r["message"] == "LEDGER_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["checksum"] == config.checksum
        assert traces[0]["config_version"] == 1


class TestDerivedConfigs:
    """Tests for configs and policies derived from EngineConfig."""

    def test_fiscal_policy(self):
        policy = get_engine_config().fiscal_policy(date(2024, 6, 15))
        assert policy.current_label() == "2024-25"
        assert policy.bounds("2024-25") == (date(2024, 4, 1), date(2025, 3, 31))

    def test_gst_config(self):
        gst = get_engine_config().gst_config()
        assert gst.b2c_large_threshold == Decimal("250000")
        assert gst.gstin_length == 15

    def test_reporting_config(self):
        reporting = get_engine_config().reporting_config(cash_account_codes=("1000",))
        assert reporting.precision == 2
        assert reporting.cash_account_codes == ("1000",)
        assert reporting.aging_periods == (0, 30, 60, 90)

    def test_journal_config(self):
        assert get_engine_config().journal_config().balance_precision == 3

    def test_budget_config(self):
        budget = get_engine_config().budget_config()
        assert budget.default_currency == "INR"
        assert budget.precision == 2

    def test_overrides_reach_module_configs(self):
        config = parse_engine_config({"balance_precision": 2, "currency": "USD"})
        assert config.journal_config().balance_precision == 2
        assert config.budget_config().default_currency == "USD"


class TestCustomDocuments:
    """Tests for loading caller-supplied YAML."""

    def test_overrides_and_defaults(self, tmp_path):
        path = _write(tmp_path, "config_id: calendar\nfiscal_year:\n  start_month: 1\ngst:\n  b2c_large_threshold: '100000.50'\n")
        config = get_engine_config(path)
        assert config.config_id == "calendar"
        assert config.fiscal_year_start_month == 1
        assert config.b2c_large_threshold == Decimal("100000.50")
        assert config.precision == 2
        assert config.fiscal_policy(date(2024, 6, 15)).current_label() == "2024-25"
        assert config.fiscal_policy(date(2024, 6, 15)).bounds("2024-25")[0] == date(2024, 1, 1)

    def test_empty_document_uses_defaults(self, tmp_path):
        assert get_engine_config(_write(tmp_path, "")).precision == 2

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError, match="rounding_mode"):
            parse_engine_config({"rounding_mode": "half-up"})

    def test_irr_section_not_accepted(self):
        with pytest.raises(ValueError, match="irr"):
            parse_engine_config({"irr": {"max_iterations": 10}})

    @pytest.mark.parametrize("data", [
        {"fiscal_year": {"start_month": 13}},
        {"aging": {"periods": [30, 60]}},
        {"aging": {"periods": [0, 60, 30]}},
        {"gst": {"b2c_large_threshold": "0"}},
        {"gst": {"b2c_large_threshold": "lots"}},
        {"currency": "RUPEE"},
        {"balance_precision": -1},
        {"gst": ["not", "a", "mapping"]},
    ])
    def test_invalid_values_rejected(self, data):
        with pytest.raises(ValueError):
            parse_engine_config(data)

    def test_non_mapping_document(self, tmp_path):
        with pytest.raises(ValueError):
            get_engine_config(_write(tmp_path, "- just\n- a list\n"))

    def test_malformed_yaml(self, tmp_path):
        with pytest.raises(yaml.YAMLError):
            get_engine_config(_write(tmp_path, "precision: [unclosed\n"))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_engine_config(tmp_path / "absent.yaml")
