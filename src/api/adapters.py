"""Normalize sparse admin API payloads into predictable shapes."""

from __future__ import annotations

from typing import Any


def _as_dict(payload: Any) -> dict:
    return dict(payload) if isinstance(payload, dict) else {}


def _as_list(value: Any) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return default


def adapt_events(payload: Any) -> dict:
    data = _as_dict(payload)
    top_ips = []
    for entry in _as_list(data.get("top_ips")):
        if isinstance(entry, (list, tuple)) and len(entry) >= 2:
            top_ips.append([str(entry[0]), _as_int(entry[1])])
    counts = _as_dict(data.get("event_counts"))
    data["recent_events"] = _as_list(data.get("recent_events"))
    data["top_ips"] = top_ips
    data["event_counts"] = {str(k): _as_int(v) for k, v in counts.items()}
    return data


def adapt_bans(payload: Any) -> dict:
    data = _as_dict(payload)
    data["bans"] = _as_list(data.get("bans"))
    return data


def adapt_maze(payload: Any) -> dict:
    data = _as_dict(payload)
    data["total_hits"] = _as_int(data.get("total_hits"))
    data["unique_crawlers"] = _as_int(data.get("unique_crawlers"))
    data["top_crawlers"] = _as_list(data.get("top_crawlers"))
    return data


def adapt_cdp(payload: Any) -> dict:
    data = _as_dict(payload)
    stats = _as_dict(data.get("stats"))
    data["stats"] = {
        "total_detections": _as_int(stats.get("total_detections")),
        "auto_bans": _as_int(stats.get("auto_bans")),
    }
    return data


def adapt_cdp_events(payload: Any) -> dict:
    data = _as_dict(payload)
    data["events"] = _as_list(data.get("events"))
    return data


def adapt_monitoring(payload: Any) -> dict:
    data = _as_dict(payload)
    data["summary"] = _as_dict(data.get("summary"))
    data["prometheus"] = _as_dict(data.get("prometheus"))
    return data


def adapt_config(payload: Any) -> dict:
    return _as_dict(payload)
