"""Latest fetched payload per admin API resource kind.

Snapshots back the load-avoidance path of the coordinator: a scheduled
refresh of a view that is not stale is answered from here instead of the
network. Each kind holds exactly one entry, overwritten wholesale on every
successful fetch, and a failed fetch never touches it (last-good value).
"""

import logging
import time
from typing import Any, Callable, Dict, Iterable, Optional

from ..constants import SnapshotKind

logger = logging.getLogger(__name__)


class SnapshotEntry:
    """Represents a cached payload with the time it was stored."""

    __slots__ = ("value", "timestamp")

    def __init__(self, value: Any, timestamp: float):
        self.value = value
        self.timestamp = timestamp

    def age(self, now: float) -> float:
        return max(0.0, now - self.timestamp)


class SnapshotCache:
    """
    In-memory snapshot store keyed by resource kind.

    Usage:
        cache = SnapshotCache()
        cache.set("events", payload)
        events = cache.get("events")

    Unknown kinds are ignored on write and read as None.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: Dict[SnapshotKind, SnapshotEntry] = {}

    def set(self, kind: "SnapshotKind | str", value: Any) -> bool:
        """Store a payload. Returns False when kind is not a known resource."""
        key = SnapshotKind.from_string(kind)
        if key is None:
            logger.debug(f"Ignoring snapshot for unknown kind: {kind}")
            return False
        self._entries[key] = SnapshotEntry(value=value, timestamp=self._clock())
        return True

    def get(self, kind: "SnapshotKind | str") -> Optional[Any]:
        key = SnapshotKind.from_string(kind)
        if key is None or key not in self._entries:
            return None
        return self._entries[key].value

    def has(self, kind: "SnapshotKind | str") -> bool:
        key = SnapshotKind.from_string(kind)
        return key is not None and key in self._entries

    def age_seconds(self, kind: "SnapshotKind | str") -> Optional[float]:
        key = SnapshotKind.from_string(kind)
        entry = self._entries.get(key) if key is not None else None
        if entry is None:
            return None
        return entry.age(self._clock())

    def select(self, kinds: Iterable["SnapshotKind | str"]) -> Dict[SnapshotKind, Any]:
        """Return the current payloads for a set of kinds (None where missing)."""
        result: Dict[SnapshotKind, Any] = {}
        for kind in kinds:
            key = SnapshotKind.from_string(kind)
            if key is not None:
                result[key] = self.get(key)
        return result

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        now = self._clock()
        return {
            "entries": len(self._entries),
            "kinds": sorted(kind.value for kind in self._entries),
            "oldest_age_seconds": max(
                (entry.age(now) for entry in self._entries.values()), default=None
            ),
        }


# Emptiness predicates over snapshots


def _count(items: Any) -> int:
    return len(items) if isinstance(items, list) else 0


def is_monitoring_empty(cache: SnapshotCache) -> bool:
    """No recent events, no active bans, and no maze hits."""
    events = cache.get(SnapshotKind.EVENTS) or {}
    bans = cache.get(SnapshotKind.BANS) or {}
    maze = cache.get(SnapshotKind.MAZE) or {}
    try:
        maze_hits = int(maze.get("total_hits") or 0)
    except (TypeError, ValueError):
        maze_hits = 0
    return (
        _count(events.get("recent_events")) == 0
        and _count(bans.get("bans")) == 0
        and maze_hits == 0
    )


def is_bans_empty(cache: SnapshotCache) -> bool:
    bans = cache.get(SnapshotKind.BANS) or {}
    return _count(bans.get("bans")) == 0


def is_config_empty(cache: SnapshotCache) -> bool:
    config = cache.get(SnapshotKind.CONFIG)
    return not isinstance(config, dict) or len(config) == 0
