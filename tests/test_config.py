"""Tests for configuration loading and validation."""

from __future__ import annotations

from src.config import Config, load_config, validate_config
from src.constants import View


def test_defaults_are_valid():
    config = Config()
    assert validate_config(config) == []
    assert config.initial_view == View.MONITORING
    assert config.refresh_interval_ms[View.IP_BANS] == 45_000


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("CONFIG_DIR", str(tmp_path))
    monkeypatch.setenv("SHUMA_ADMIN_ENDPOINT", "https://shuma.example/")
    monkeypatch.setenv("SHUMA_INITIAL_VIEW", "ip-bans")
    monkeypatch.setenv("SHUMA_REFRESH_IP_BANS_MS", "20000")
    monkeypatch.setenv("SHUMA_EVENTS_HOURS", "6")
    monkeypatch.setenv("HEALTH_ENABLED", "false")

    config = load_config()

    assert config.admin_endpoint == "https://shuma.example"
    assert config.initial_view == View.IP_BANS
    assert config.refresh_interval_ms[View.IP_BANS] == 20_000
    assert config.refresh_interval_ms[View.MONITORING] == 30_000
    assert config.events_hours == 6
    assert config.health_enabled is False


def test_yaml_overrides_and_env_precedence(monkeypatch, tmp_path):
    (tmp_path / "dashboard.yaml").write_text(
        "refresh_interval_ms:\n  monitoring: 15000\n  tuning: 90000\n  bogus: 5\n"
    )
    monkeypatch.setenv("CONFIG_DIR", str(tmp_path))
    monkeypatch.setenv("SHUMA_REFRESH_TUNING_MS", "120000")

    config = load_config()

    assert config.refresh_interval_ms[View.MONITORING] == 15_000
    assert config.refresh_interval_ms[View.TUNING] == 120_000


def test_unparseable_yaml_is_ignored(monkeypatch, tmp_path):
    (tmp_path / "dashboard.yaml").write_text("refresh_interval_ms: [unclosed\n")
    monkeypatch.setenv("CONFIG_DIR", str(tmp_path))
    config = load_config()
    assert config.refresh_interval_ms[View.MONITORING] == 30_000


def test_unknown_initial_view_falls_back():
    assert Config(initial_view="nope").initial_view == View.MONITORING


def test_validation_errors():
    config = Config(
        admin_endpoint="shuma.local",
        request_timeout=0,
        refresh_interval_ms={View.MONITORING: 10},
        monitoring_limit=0,
    )
    errors = validate_config(config)
    assert "SHUMA_ADMIN_ENDPOINT must start with http:// or https://" in errors
    assert "SHUMA_REQUEST_TIMEOUT must be positive" in errors
    assert "Refresh interval for monitoring must be at least 1000ms" in errors
    assert "Fetch limits must be positive" in errors
