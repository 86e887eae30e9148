"""
Tests for workbench configuration loading.

Covers:
- Schema defaults -- pure, no files
- Loader (parse_config) -- inline dict parsing and rejection of bad values
- Files (load_config, get_active_config) -- YAML on disk and env override
"""

from __future__ import annotations

import dataclasses
from decimal import Decimal

import pytest
import yaml

from workbench_config import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_PATH,
    compute_checksum,
    get_active_config,
    load_config,
    parse_config,
)
from workbench_config.schema import WorkbenchConfig
from workbench_kernel.exceptions import ConfigurationError


# =========================================================================
# 1. Schema defaults
# =========================================================================


class TestDefaults:
    def test_empty_document_takes_defaults(self):
        config = parse_config({})
        assert config.posting.post_roles == ("preparer", "approver")
        assert config.posting.allow_unpost is True
        assert config.validation.min_amount == Decimal("0.01")
        assert config.validation.require_note_for_no_booking is False
        assert config.booking_search.weight_for("Delivered") == 3
        assert config.booking_search.weight_for("In Transit") == 1
        assert config.booking_search.default_date_filter is None
        assert config.rfp.currency_label == "Pesos"

    def test_config_is_frozen(self):
        config = WorkbenchConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.checksum = "x"

    def test_packaged_defaults_match_schema(self):
        config = load_config(DEFAULT_CONFIG_PATH)
        defaults = WorkbenchConfig()
        assert config.posting == defaults.posting
        assert config.validation == defaults.validation
        assert dict(config.booking_search.status_weights) == dict(
            defaults.booking_search.status_weights
        )
        assert config.rfp == defaults.rfp


# =========================================================================
# 2. parse_config
# =========================================================================


class TestParseConfig:
    def test_sections_override_defaults(self):
        config = parse_config({
            "posting": {"post_roles": ["approver"], "allow_unpost": False},
            "validation": {"require_note_for_no_booking": True, "min_amount": "1.00"},
            "booking_search": {
                "status_weights": {"Delivered": 5},
                "proximity_threshold_days": 2,
                "default_date_filter": "last_7_days",
            },
            "rfp": {"currency_label": " PHP "},
        })
        assert config.posting.post_roles == ("approver",)
        assert config.posting.allow_unpost is False
        assert config.validation.require_note_for_no_booking is True
        assert config.validation.min_amount == Decimal("1.00")
        assert config.booking_search.weight_for("Closed") == 1
        assert config.booking_search.proximity_threshold_days == 2
        assert config.booking_search.default_date_filter == "last_7_days"
        assert config.rfp.currency_label == "PHP"

    def test_duplicate_roles_collapse(self):
        config = parse_config({"posting": {"post_roles": ["preparer", "preparer"]}})
        assert config.posting.post_roles == ("preparer",)

    @pytest.mark.parametrize(
        "document, key",
        [
            ({"approvals": {}}, "approvals"),
            ({"posting": {"roles": ["preparer"]}}, "posting.roles"),
            ({"posting": {"post_roles": []}}, "posting.post_roles"),
            ({"posting": {"post_roles": ["auditor"]}}, "posting.post_roles"),
            ({"posting": {"allow_unpost": "yes"}}, "posting.allow_unpost"),
            ({"posting": ["preparer"]}, "posting"),
            ({"validation": {"min_amount": "abc"}}, "validation.min_amount"),
            ({"validation": {"min_amount": 0}}, "validation.min_amount"),
            (
                {"booking_search": {"status_weights": {"Closed": -1}}},
                "booking_search.status_weights.Closed",
            ),
            (
                {"booking_search": {"default_status_weight": True}},
                "booking_search.default_status_weight",
            ),
            (
                {"booking_search": {"default_date_filter": "tomorrow"}},
                "booking_search.default_date_filter",
            ),
            ({"rfp": {"currency_label": ""}}, "rfp.currency_label"),
            ({"database": {"url": ""}}, "database.url"),
        ],
    )
    def test_invalid_values_name_the_key(self, document, key):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_config(document)
        assert exc_info.value.key == key
        assert exc_info.value.code == "CONFIGURATION_ERROR"


class TestChecksum:
    def test_deterministic_and_order_independent(self):
        a = {"posting": {"post_roles": ["preparer"], "allow_unpost": True}}
        b = {"posting": {"allow_unpost": True, "post_roles": ["preparer"]}}
        assert compute_checksum(a) == compute_checksum(b)
        assert len(compute_checksum(a)) == 64

    def test_changes_with_content(self):
        assert parse_config({}).checksum != parse_config({"rfp": {"currency_label": "USD"}}).checksum


# =========================================================================
# 3. Files and environment
# =========================================================================


def _write_yaml(path, document) -> None:
    path.write_text(yaml.safe_dump(document))


class TestFiles:
    def test_load_config_from_file(self, tmp_path):
        path = tmp_path / "workbench.yaml"
        _write_yaml(path, {"posting": {"post_roles": ["approver"]}})
        assert load_config(path).posting.post_roles == ("approver",)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- posting\n- validation\n")
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_empty_file_is_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path).posting.post_roles == ("preparer", "approver")

    def test_env_var_selects_file(self, tmp_path, monkeypatch, captured_logs):
        path = tmp_path / "site.yaml"
        _write_yaml(path, {"rfp": {"currency_label": "USD"}})
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

        assert get_active_config().rfp.currency_label == "USD"
        loaded = [r for r in captured_logs() if r["message"] == "workbench_config_loaded"]
        assert loaded[0]["config_path"] == str(path)

    def test_explicit_path_beats_env(self, tmp_path, monkeypatch):
        env_path = tmp_path / "env.yaml"
        _write_yaml(env_path, {"rfp": {"currency_label": "USD"}})
        monkeypatch.setenv(CONFIG_ENV_VAR, str(env_path))
        assert get_active_config(DEFAULT_CONFIG_PATH).rfp.currency_label == "Pesos"

    def test_packaged_default(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        assert get_active_config().checksum == load_config(DEFAULT_CONFIG_PATH).checksum
