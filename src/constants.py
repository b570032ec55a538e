"""Centralized constants for the Shuma console runtime.

This module contains enums and constants used across multiple modules
to ensure consistency and reduce duplication.
"""

from enum import Enum


class View(str, Enum):
    """Dashboard views (tabs). Closed set; identity is the name."""

    MONITORING = "monitoring"
    IP_BANS = "ip-bans"
    STATUS = "status"
    CONFIG = "config"
    TUNING = "tuning"

    @classmethod
    def from_string(cls, value: "str | View | None") -> "View":
        """Normalize a raw tab name, defaulting to MONITORING."""
        if isinstance(value, View):
            return value
        raw = str(value or "").strip().lower()
        for view in cls:
            if view.value == raw:
                return view
        return DEFAULT_VIEW

    def __str__(self) -> str:
        return self.value


DEFAULT_VIEW = View.MONITORING
ALL_VIEWS: tuple[View, ...] = tuple(View)


class SnapshotKind(str, Enum):
    """Resource kinds fetched from the admin API and cached as snapshots."""

    ANALYTICS = "analytics"
    EVENTS = "events"
    BANS = "bans"
    MAZE = "maze"
    CDP = "cdp"
    CDP_EVENTS = "cdpEvents"
    MONITORING = "monitoring"
    CONFIG = "config"

    @classmethod
    def from_string(cls, value: "str | SnapshotKind | None") -> "SnapshotKind | None":
        """Convert a raw key to a kind, or None when it is not a known resource."""
        if isinstance(value, SnapshotKind):
            return value
        raw = str(value or "").strip()
        for kind in cls:
            if kind.value == raw:
                return kind
        return None


class RefreshReason(str, Enum):
    """Why a refresh was requested."""

    AUTO_REFRESH = "auto-refresh"  # Scheduler tick; may be served from cache
    MANUAL = "manual"
    TAB_MOUNT = "tab-mount"
    SESSION_RESTORED = "session-restored"
    CONFIG_SAVE = "config-save"
    BAN_SAVE = "ban-save"
    UNBAN_SAVE = "unban-save"
    QUICK_UNBAN = "quick-unban"


# Refresh cadence per view (milliseconds). Overridable via config.
DEFAULT_REFRESH_INTERVAL_MS: dict[View, int] = {
    View.MONITORING: 30_000,
    View.IP_BANS: 45_000,
    View.STATUS: 60_000,
    View.CONFIG: 60_000,
    View.TUNING: 60_000,
}

# Fetch windows used by the monitoring view
DEFAULT_EVENTS_HOURS = 24
DEFAULT_CDP_EVENTS_LIMIT = 500
DEFAULT_MONITORING_LIMIT = 10

CSRF_HEADER = "X-Shuma-CSRF"
