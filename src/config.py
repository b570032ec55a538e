"""Configuration management for the Shuma console runtime."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from dotenv import load_dotenv

from .constants import (
    DEFAULT_CDP_EVENTS_LIMIT,
    DEFAULT_EVENTS_HOURS,
    DEFAULT_MONITORING_LIMIT,
    DEFAULT_REFRESH_INTERVAL_MS,
    DEFAULT_VIEW,
    View,
)

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """Application configuration loaded from environment."""

    # Admin API
    admin_endpoint: str = "http://127.0.0.1:3000"
    request_timeout: float = 15.0

    # Dashboard behaviour
    initial_view: View = DEFAULT_VIEW
    refresh_interval_ms: dict[View, int] = field(
        default_factory=lambda: dict(DEFAULT_REFRESH_INTERVAL_MS)
    )
    events_hours: int = DEFAULT_EVENTS_HOURS
    cdp_events_limit: int = DEFAULT_CDP_EVENTS_LIMIT
    monitoring_limit: int = DEFAULT_MONITORING_LIMIT

    # Status endpoint (optional)
    health_host: str = "127.0.0.1"
    health_port: int = 8081
    health_enabled: bool = True

    # Paths
    config_dir: Path = field(default_factory=lambda: Path("./config"))

    def __post_init__(self):
        self.config_dir = Path(self.config_dir)
        self.initial_view = View.from_string(self.initial_view)
        intervals = dict(DEFAULT_REFRESH_INTERVAL_MS)
        for key, value in (self.refresh_interval_ms or {}).items():
            intervals[View.from_string(key)] = int(value)
        self.refresh_interval_ms = intervals


def _load_overrides(config_dir: Path) -> dict:
    """Load dashboard overrides from config/dashboard.yaml (optional)."""
    path = Path(config_dir or ".") / "dashboard.yaml"
    if not path.exists():
        return {}

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except Exception as exc:
        logger.warning("Failed to parse dashboard.yaml: %s", exc)
        return {}
    if not isinstance(data, dict):
        return {}

    intervals: dict[View, int] = {}
    raw_intervals = data.get("refresh_interval_ms") or {}
    if isinstance(raw_intervals, dict):
        for name, value in raw_intervals.items():
            view = View.from_string(name)
            if view.value != str(name).strip().lower():
                logger.warning("Ignoring refresh interval for unknown view: %s", name)
                continue
            try:
                intervals[view] = int(value)
            except (TypeError, ValueError):
                logger.warning("Ignoring non-numeric refresh interval for %s: %r", name, value)

    return {"refresh_interval_ms": intervals}


def load_config() -> Config:
    """Load configuration from environment variables."""
    load_dotenv()

    config_dir = Path(os.getenv("CONFIG_DIR", "./config"))
    overrides = _load_overrides(config_dir)

    intervals = dict(DEFAULT_REFRESH_INTERVAL_MS)
    intervals.update(overrides.get("refresh_interval_ms") or {})
    for view in View:
        env_name = "SHUMA_REFRESH_" + view.value.upper().replace("-", "_") + "_MS"
        raw = os.getenv(env_name, "").strip()
        if raw:
            intervals[view] = int(raw)

    return Config(
        admin_endpoint=os.getenv("SHUMA_ADMIN_ENDPOINT", "http://127.0.0.1:3000").strip().rstrip("/"),
        request_timeout=float(os.getenv("SHUMA_REQUEST_TIMEOUT", "15")),
        initial_view=View.from_string(os.getenv("SHUMA_INITIAL_VIEW", DEFAULT_VIEW.value)),
        refresh_interval_ms=intervals,
        events_hours=int(os.getenv("SHUMA_EVENTS_HOURS", str(DEFAULT_EVENTS_HOURS))),
        cdp_events_limit=int(os.getenv("SHUMA_CDP_EVENTS_LIMIT", str(DEFAULT_CDP_EVENTS_LIMIT))),
        monitoring_limit=int(os.getenv("SHUMA_MONITORING_LIMIT", str(DEFAULT_MONITORING_LIMIT))),
        health_host=os.getenv("HEALTH_HOST", "127.0.0.1"),
        health_port=int(os.getenv("HEALTH_PORT", "8081")),
        health_enabled=os.getenv("HEALTH_ENABLED", "true").lower() == "true",
        config_dir=config_dir,
    )


def validate_config(config: Config) -> list[str]:
    """Validate required configuration and return list of error messages."""
    errors: list[str] = []
    endpoint = (config.admin_endpoint or "").strip()
    if not endpoint:
        errors.append("SHUMA_ADMIN_ENDPOINT is required")
    elif not endpoint.startswith(("http://", "https://")):
        errors.append("SHUMA_ADMIN_ENDPOINT must start with http:// or https://")

    if config.request_timeout <= 0:
        errors.append("SHUMA_REQUEST_TIMEOUT must be positive")

    for view, interval in config.refresh_interval_ms.items():
        if interval < 1000:
            errors.append(f"Refresh interval for {view} must be at least 1000ms")

    if config.events_hours <= 0:
        errors.append("SHUMA_EVENTS_HOURS must be positive")
    if config.cdp_events_limit <= 0 or config.monitoring_limit <= 0:
        errors.append("Fetch limits must be positive")

    return errors
