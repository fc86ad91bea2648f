"""
Tests for demand_config -- YAML loading, validation and the policy bridge.

Covers:
- Packaged defaults load and bridge to the default policy rules
- Path resolution: argument, DEMAND_CONFIG_PATH, packaged default
- Validation errors: priorities, threshold range, undeclared companies
- Company overrides reach LifecyclePolicy.auto_transition_enabled()
- DEMAND_CONFIG_TRACE log record
"""

import pytest
import yaml

from demand_config import (
    DEFAULT_CONFIG_PATH,
    get_active_config,
    load_lifecycle_config,
    resolve_config_path,
)
from demand_config.loader import parse_lifecycle_config
from demand_kernel.domain.lifecycle import Priority


def write_config(tmp_path, data):
    path = tmp_path / "lifecycle.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaults:

    def test_packaged_defaults(self):
        config = load_lifecycle_config(DEFAULT_CONFIG_PATH)
        assert config.config_id == "demand-lifecycle"
        assert config.companies == ("ZC", "ELETRO", "ZF", "ZS")
        assert config.auto_transition.default_priorities == ("low", "medium")
        assert config.committee_threshold_percent == 80
        assert len(config.checksum) == 64

    def test_active_config_bridges_to_policy(self):
        policy = get_active_config(DEFAULT_CONFIG_PATH)
        assert policy.committee_threshold_percent == 80
        assert policy.auto_transition_enabled("ZS", Priority.LOW)
        assert not policy.auto_transition_enabled("ZS", Priority.HIGH)
        assert policy.version_fingerprint.startswith("demand-lifecycle@1:")

    def test_trace_record_is_logged(self, captured_logs):
        get_active_config(DEFAULT_CONFIG_PATH)
        traces = [r for r in captured_logs() if r["message"] == "DEMAND_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["logger"] == "demand_kernel.config"
        assert traces[0]["config_id"] == "demand-lifecycle"
        assert len(traces[0]["checksum"]) == 64


class TestPathResolution:

    def test_explicit_path_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DEMAND_CONFIG_PATH", "/nowhere.yaml")
        assert resolve_config_path(tmp_path / "x.yaml") == tmp_path / "x.yaml"

    def test_environment_variable(self, tmp_path, monkeypatch):
        path = write_config(tmp_path, {"committee": {"approval_threshold_percent": 60}})
        monkeypatch.setenv("DEMAND_CONFIG_PATH", str(path))
        assert get_active_config().committee_threshold_percent == 60

    def test_falls_back_to_packaged_default(self, monkeypatch):
        monkeypatch.delenv("DEMAND_CONFIG_PATH", raising=False)
        assert resolve_config_path() == DEFAULT_CONFIG_PATH

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "missing.yaml")


class TestValidation:

    def test_unknown_priority(self):
        with pytest.raises(ValueError, match="unknown priority"):
            parse_lifecycle_config({"auto_transition": {"default_priorities": ["urgent"]}})

    @pytest.mark.parametrize("value", [-1, 101, "80", True])
    def test_threshold_must_be_integer_percentage(self, value):
        with pytest.raises(ValueError):
            parse_lifecycle_config({"committee": {"approval_threshold_percent": value}})

    def test_override_needs_declared_company(self):
        with pytest.raises(ValueError, match="not declared"):
            parse_lifecycle_config({
                "companies": ["ZS"],
                "auto_transition": {
                    "overrides": [{"company": "XX", "priority": "low", "enabled": False}],
                },
            })

    def test_override_needs_company_and_priority(self):
        with pytest.raises(ValueError):
            parse_lifecycle_config({"auto_transition": {"overrides": [{"company": "ZS"}]}})

    @pytest.mark.parametrize("priority", ["high", "critical"])
    def test_auto_transition_limited_to_fast_track_defaults(self, priority):
        with pytest.raises(ValueError, match="cannot be enabled"):
            parse_lifecycle_config(
                {"auto_transition": {"default_priorities": ["low", priority]}}
            )

    def test_override_cannot_enable_high_priority(self):
        """High demands need the committee, so enabling their cascade is refused."""
        with pytest.raises(ValueError, match=r"overrides\[0\].*high"):
            parse_lifecycle_config({
                "auto_transition": {
                    "overrides": [{"company": "ZS", "priority": "high", "enabled": True}],
                },
            })

    def test_override_may_disable_high_priority(self):
        config = parse_lifecycle_config({
            "auto_transition": {
                "overrides": [{"company": "ZS", "priority": "high", "enabled": False}],
            },
        })
        assert config.auto_transition.overrides[0].enabled is False

    def test_checksum_tracks_content(self):
        a = parse_lifecycle_config({"committee": {"approval_threshold_percent": 70}})
        b = parse_lifecycle_config({"committee": {"approval_threshold_percent": 71}})
        assert a.checksum != b.checksum


class TestOverrides:

    def test_company_override_reaches_policy(self, tmp_path):
        path = write_config(tmp_path, {
            "companies": ["ZS", "ZF"],
            "auto_transition": {
                "default_priorities": ["low", "medium"],
                "overrides": [
                    {"company": "zf", "priority": "medium", "enabled": False},
                    {"company": "ZS", "priority": "low", "enabled": False},
                    {"company": "ZS", "priority": "high", "enabled": False},
                ],
            },
        })
        policy = get_active_config(path)
        assert not policy.auto_transition_enabled("ZF", Priority.MEDIUM)
        assert policy.auto_transition_enabled("ZF", Priority.LOW)
        assert not policy.auto_transition_enabled("ZS", Priority.LOW)
        assert not policy.auto_transition_enabled("ZS", Priority.HIGH)
        assert policy.auto_transition_enabled("ZS", Priority.MEDIUM)
