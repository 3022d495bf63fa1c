"""
Tests for configuration loading.

Covers:
- Loader (parse_* functions) -- dict parsing, defaults, validation
- End-to-end (get_active_config) -- shipped YAML, env override, trace log
"""

from __future__ import annotations

import dataclasses

import pytest
import yaml

from supply_config import DATABASE_URL_ENV, get_active_config
from supply_config.loader import (
    compute_checksum,
    parse_alerts,
    parse_config,
    parse_logging,
    parse_seed,
    parse_storage,
)

MINIMAL = {"config_id": "test", "storage": {"database_url": "sqlite://"}}


# =========================================================================
# 1. Loader -- section parsing
# =========================================================================


class TestSectionParsing:

    def test_minimal_config_uses_defaults(self):
        config = parse_config(MINIMAL)

        assert config.config_id == "test"
        assert config.version == 1
        assert config.storage.sqlite_timeout == 30.0
        assert config.seed.labels == ()
        assert config.seed.quantity == 20
        assert config.alerts.low_stock_threshold == 10
        assert config.logging.level == "INFO"
        assert config.default_user == "unknown"

    def test_seed_labels_are_normalized(self):
        seed = parse_seed({"labels": ["Tubo Ensaio", "luvas"], "quantity": 5})
        assert seed.labels == ("tubo_ensaio", "luvas")
        assert seed.quantity == 5

    def test_config_is_frozen(self):
        config = parse_config(MINIMAL)
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.config_id = "other"

    @pytest.mark.parametrize(
        "parser, data",
        [
            (parse_storage, {"database_url": "sqlite://", "sqlite_timeout": 0}),
            (parse_seed, {"quantity": 0}),
            (parse_seed, {"quantity": 2**31}),
            (parse_alerts, {"low_stock_threshold": -1}),
            (parse_logging, {"level": "CHATTY"}),
        ],
    )
    def test_invalid_values_rejected(self, parser, data):
        with pytest.raises(ValueError):
            parser(data)

    @pytest.mark.parametrize("data", [{"storage": {"database_url": "sqlite://"}}, {"config_id": "x"}])
    def test_required_keys(self, data):
        with pytest.raises(KeyError):
            parse_config(data)

    def test_checksum_ignores_key_order(self):
        reordered = {"storage": {"database_url": "sqlite://"}, "config_id": "test"}
        assert compute_checksum(MINIMAL) == compute_checksum(reordered)
        assert compute_checksum(MINIMAL) != compute_checksum({**MINIMAL, "version": 2})


# =========================================================================
# 2. End-to-end -- get_active_config
# =========================================================================


class TestActiveConfig:

    def test_shipped_default(self, monkeypatch):
        monkeypatch.delenv(DATABASE_URL_ENV, raising=False)

        config = get_active_config()

        assert config.config_id == "supply_ledger_default"
        assert config.storage.database_url.startswith("sqlite")
        assert "luvas" in config.seed.labels
        assert len(config.seed.labels) == 15
        assert len(config.checksum) == 64

    def test_database_url_override(self, monkeypatch):
        monkeypatch.setenv(DATABASE_URL_ENV, "postgresql://ledger@db/supply")

        config = get_active_config()

        assert config.storage.database_url == "postgresql://ledger@db/supply"
        monkeypatch.delenv(DATABASE_URL_ENV)
        assert get_active_config().checksum == config.checksum

    def test_custom_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv(DATABASE_URL_ENV, raising=False)
        path = tmp_path / "ward.yaml"
        path.write_text(yaml.safe_dump({**MINIMAL, "alerts": {"low_stock_threshold": 3}}))

        config = get_active_config(path)

        assert config.alerts.low_stock_threshold == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("storage: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            get_active_config(path)

    def test_config_trace_is_logged(self, monkeypatch, captured_logs):
        monkeypatch.setenv(DATABASE_URL_ENV, "sqlite:///elsewhere.db")

        config = get_active_config()

        (trace,) = [r for r in captured_logs() if r["message"] == "SUPPLY_CONFIG_TRACE"]
        assert trace["config_set_id"] == config.config_id
        assert trace["checksum"] == config.checksum
        assert trace["database_backend"] == "sqlite"
        assert trace["database_url_overridden"] is True
        assert trace["seed_label_count"] == 15
