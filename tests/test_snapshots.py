"""Tests for the snapshot cache and emptiness predicates."""

from __future__ import annotations

from src.constants import SnapshotKind
from src.state.snapshots import (
    SnapshotCache,
    is_bans_empty,
    is_config_empty,
    is_monitoring_empty,
)


class _Clock:
    def __init__(self):
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_set_and_get_by_kind_or_name():
    cache = SnapshotCache()
    assert cache.set("cdpEvents", {"events": []}) is True
    assert cache.get(SnapshotKind.CDP_EVENTS) == {"events": []}
    assert cache.has("cdpEvents")


def test_unknown_kind_is_ignored():
    cache = SnapshotCache()
    assert cache.set("bogus", {"x": 1}) is False
    assert cache.get("bogus") is None
    assert cache.stats()["entries"] == 0


def test_set_overwrites_wholesale():
    cache = SnapshotCache()
    cache.set("bans", {"bans": [1, 2], "extra": True})
    cache.set("bans", {"bans": []})
    assert cache.get("bans") == {"bans": []}


def test_select_fills_missing_with_none():
    cache = SnapshotCache()
    cache.set("config", {"rate_limit": 80})
    selected = cache.select(["config", "bans"])
    assert selected == {SnapshotKind.CONFIG: {"rate_limit": 80}, SnapshotKind.BANS: None}


def test_age_and_stats():
    clock = _Clock()
    cache = SnapshotCache(clock=clock)
    cache.set("maze", {"total_hits": 0})
    clock.now += 12.5
    assert cache.age_seconds("maze") == 12.5
    assert cache.age_seconds("events") is None
    stats = cache.stats()
    assert stats["kinds"] == ["maze"]
    assert stats["oldest_age_seconds"] == 12.5


def test_monitoring_empty_when_nothing_happened():
    cache = SnapshotCache()
    assert is_monitoring_empty(cache) is True
    cache.set("events", {"recent_events": []})
    cache.set("bans", {"bans": []})
    cache.set("maze", {"total_hits": 0})
    assert is_monitoring_empty(cache) is True


def test_monitoring_not_empty_with_maze_hits():
    cache = SnapshotCache()
    cache.set("maze", {"total_hits": "4"})
    assert is_monitoring_empty(cache) is False


def test_bans_and_config_emptiness():
    cache = SnapshotCache()
    assert is_bans_empty(cache) is True
    assert is_config_empty(cache) is True
    cache.set("bans", {"bans": [{"ip": "198.51.100.1"}]})
    cache.set("config", {"rate_limit": 80})
    assert is_bans_empty(cache) is False
    assert is_config_empty(cache) is False


def test_clear():
    cache = SnapshotCache()
    cache.set("config", {})
    cache.clear()
    assert cache.has("config") is False
