"""Independently-savable config sections: draft shape, patch shape and field rules.

Each section maps the admin config payload to the value its form edits
(the draft) and maps an edited draft back to the config patch that saves it.
Field validation is the abstract contract only: a rule either accepts a
field or yields a FieldError; errors never reach the network.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from ..state.canonical import canonicalize


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


class ValidationError(ValueError):
    """One or more fields failed validation; the save is blocked."""

    def __init__(self, errors: list[FieldError]):
        self.errors = list(errors)
        summary = "; ".join(f"{e.field}: {e.message}" for e in self.errors) or "Invalid value"
        super().__init__(summary)


@dataclass(frozen=True)
class RangeRule:
    """Numeric field bounded to [minimum, maximum]."""

    label: str
    minimum: float
    maximum: float
    integer: bool = True

    def check(self, name: str, value: Any) -> Optional[FieldError]:
        if isinstance(value, bool) or value is None:
            return FieldError(name, f"{self.label} is required.")
        if self.integer and not isinstance(value, int):
            return FieldError(name, f"{self.label} must be a whole number.")
        if not isinstance(value, (int, float)):
            return FieldError(name, f"{self.label} must be a number.")
        if value < self.minimum or value > self.maximum:
            return FieldError(
                name, f"{self.label} must be between {self.minimum:g} and {self.maximum:g}."
            )
        return None


def parse_bool_like(value: Any, fallback: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
    return fallback


def _int_or(value: Any, fallback: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return fallback
    return parsed or fallback


def _float_or(value: Any, fallback: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return fallback


@dataclass(frozen=True)
class SectionSpec:
    """How one config section is synchronized, validated and saved."""

    name: str
    default: Mapping[str, Any]
    from_config: Callable[[dict, dict], dict]
    to_patch: Callable[[dict], dict]
    rules: Mapping[str, RangeRule] = field(default_factory=dict)
    scopes: tuple[str, ...] = ("securityConfig",)
    check: Optional[Callable[[Mapping], list[FieldError]]] = None
    # Draft carries a "mutable" flag; saving is refused while it is False
    write_gated: bool = False

    def baseline_from_config(self, config: Mapping[str, Any], base: Optional[Mapping] = None) -> dict:
        """Draft value for a config payload; missing keys keep base, then the default."""
        start = dict(self.default)
        if isinstance(base, Mapping):
            start.update(base)
        return self.from_config(dict(config or {}), start)

    def validate(self, value: Any) -> list[FieldError]:
        if not isinstance(value, Mapping):
            return [FieldError(self.name, "Section value must be a mapping.")]
        errors = []
        for name, rule in self.rules.items():
            error = rule.check(name, value.get(name))
            if error:
                errors.append(error)
        if self.check is not None:
            errors.extend(self.check(value))
        return errors

    def write_error(self, value: Any) -> Optional[FieldError]:
        """Error when the server reports this section as read-only."""
        if self.write_gated and isinstance(value, Mapping) and value.get("mutable") is False:
            return FieldError(
                "mutable",
                f"{self.name} is read-only while SHUMA_ADMIN_CONFIG_WRITE_ENABLED=false.",
            )
        return None

    def patch(self, value: Mapping) -> dict:
        """Config patch for a draft, without client-only keys."""
        return self.to_patch({key: item for key, item in value.items() if key != "mutable"})


# ---------------------------------------------------------------------------
# Section mappings
# ---------------------------------------------------------------------------


def _maze_from_config(config: dict, base: dict) -> dict:
    return {
        "enabled": parse_bool_like(config.get("maze_enabled"), base["enabled"]),
        "autoBan": parse_bool_like(config.get("maze_auto_ban"), base["autoBan"]),
        "threshold": _int_or(config.get("maze_auto_ban_threshold"), base["threshold"]),
    }


def _maze_patch(value: dict) -> dict:
    return {
        "maze_enabled": value["enabled"],
        "maze_auto_ban": value["autoBan"],
        "maze_auto_ban_threshold": value["threshold"],
    }


_BAN_DURATION_KEYS = {
    "honeypot": "honeypot",
    "rateLimit": "rate_limit",
    "browser": "browser",
    "cdp": "cdp",
    "admin": "admin",
}


def _ban_durations_from_config(config: dict, base: dict) -> dict:
    raw = config.get("ban_durations")
    if not isinstance(raw, dict):
        return base
    return {key: _int_or(raw.get(wire), base[key]) for key, wire in _BAN_DURATION_KEYS.items()}


def _ban_durations_patch(value: dict) -> dict:
    return {"ban_durations": {wire: value[key] for key, wire in _BAN_DURATION_KEYS.items()}}


def _rate_limit_from_config(config: dict, base: dict) -> dict:
    return {"value": _int_or(config.get("rate_limit"), base["value"])}


def _js_required_from_config(config: dict, base: dict) -> dict:
    return {"enforced": parse_bool_like(config.get("js_required_enforced"), base["enforced"])}


def _robots_from_config(config: dict, base: dict) -> dict:
    delay = config.get("robots_crawl_delay")
    return {
        "enabled": parse_bool_like(config.get("robots_enabled"), base["enabled"]),
        "crawlDelay": base["crawlDelay"] if delay is None else _int_or(delay, 0),
    }


def _robots_patch(value: dict) -> dict:
    return {"robots_enabled": value["enabled"], "robots_crawl_delay": value["crawlDelay"]}


def _ai_policy_from_config(config: dict, base: dict) -> dict:
    return {
        "blockTraining": parse_bool_like(config.get("ai_policy_block_training"), base["blockTraining"]),
        "blockSearch": parse_bool_like(config.get("ai_policy_block_search"), base["blockSearch"]),
        "allowSearch": parse_bool_like(
            config.get("ai_policy_allow_search_engines"), base["allowSearch"]
        ),
    }


def _ai_policy_patch(value: dict) -> dict:
    return {
        "ai_policy_block_training": value["blockTraining"],
        "ai_policy_block_search": value["blockSearch"],
        "ai_policy_allow_search_engines": value["allowSearch"],
    }


def _cdp_from_config(config: dict, base: dict) -> dict:
    return {
        "enabled": parse_bool_like(config.get("cdp_detection_enabled"), base["enabled"]),
        "autoBan": parse_bool_like(config.get("cdp_auto_ban"), base["autoBan"]),
        "threshold": _float_or(config.get("cdp_detection_threshold"), base["threshold"]),
    }


def _cdp_patch(value: dict) -> dict:
    return {
        "cdp_detection_enabled": value["enabled"],
        "cdp_auto_ban": value["autoBan"],
        "cdp_detection_threshold": value["threshold"],
    }


def _edge_mode_from_config(config: dict, base: dict) -> dict:
    mode = str(config.get("edge_integration_mode") or "").strip().lower()
    return {"mode": mode or base["mode"]}


def _pow_from_config(config: dict, base: dict) -> dict:
    return {
        "enabled": parse_bool_like(config.get("pow_enabled"), base["enabled"]),
        "difficulty": _int_or(config.get("pow_difficulty"), base["difficulty"]),
        "ttl": _int_or(config.get("pow_ttl_seconds"), base["ttl"]),
        "mutable": _write_enabled(config, base),
    }


def _pow_patch(value: dict) -> dict:
    return {
        "pow_enabled": value["enabled"],
        "pow_difficulty": value["difficulty"],
        "pow_ttl_seconds": value["ttl"],
    }


def _challenge_from_config(config: dict, base: dict) -> dict:
    return {
        "enabled": parse_bool_like(config.get("challenge_puzzle_enabled"), base["enabled"]),
        "count": _int_or(config.get("challenge_puzzle_transform_count"), base["count"]),
        "mutable": _write_enabled(config, base),
    }


def _challenge_patch(value: dict) -> dict:
    return {
        "challenge_puzzle_enabled": value["enabled"],
        "challenge_puzzle_transform_count": value["count"],
    }


def _country_codes(value: Any) -> str:
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [str(item) for item in value]
    else:
        return ""
    return ",".join(code.strip().upper() for code in items if code.strip())


def _lines(value: Any) -> str:
    if isinstance(value, str):
        items = value.splitlines()
    elif isinstance(value, (list, tuple)):
        items = [str(item) for item in value]
    else:
        return ""
    return "\n".join(item.strip() for item in items if item.strip())


def _split(text: str, sep: str = "\n") -> list[str]:
    return [item.strip() for item in str(text or "").split(sep) if item.strip()]


def _write_enabled(config: dict, base: dict) -> bool:
    return parse_bool_like(config.get("admin_config_write_enabled"), base["mutable"])


_GEO_KEYS = {
    "risk": "geo_risk",
    "allow": "geo_allow",
    "challenge": "geo_challenge",
    "maze": "geo_maze",
    "block": "geo_block",
}


def _geo_from_config(config: dict, base: dict) -> dict:
    value = {
        key: base[key] if config.get(wire) is None else _country_codes(config.get(wire))
        for key, wire in _GEO_KEYS.items()
    }
    value["mutable"] = _write_enabled(config, base)
    return value


def _geo_patch(value: dict) -> dict:
    return {wire: _split(value[key], ",") for key, wire in _GEO_KEYS.items()}


def _check_geo(value: Mapping) -> list[FieldError]:
    errors = []
    for key in _GEO_KEYS:
        bad = [code for code in _split(value.get(key), ",") if len(code) != 2 or not code.isalpha()]
        if bad:
            errors.append(FieldError(key, f"Invalid country codes: {', '.join(bad)}."))
    return errors


def _honeypot_from_config(config: dict, base: dict) -> dict:
    paths = config.get("honeypots")
    return {
        "enabled": parse_bool_like(config.get("honeypot_enabled"), base["enabled"]),
        "values": base["values"] if paths is None else _lines(paths),
    }


def _honeypot_patch(value: dict) -> dict:
    return {"honeypot_enabled": value["enabled"], "honeypots": _split(value["values"])}


def _check_honeypot(value: Mapping) -> list[FieldError]:
    bad = [path for path in _split(value.get("values")) if not path.startswith("/")]
    if bad:
        return [FieldError("values", f"Honeypot paths must start with '/': {', '.join(bad)}.")]
    return []


def _browser_rules(value: Any) -> str:
    if not isinstance(value, (list, tuple)):
        return _lines(value)
    rows = []
    for rule in value:
        if isinstance(rule, (list, tuple)) and len(rule) == 2:
            rows.append(f"{str(rule[0]).strip()},{rule[1]}")
        elif str(rule).strip():
            rows.append(str(rule).strip())
    return "\n".join(rows)


def _parse_browser_rules(text: str) -> list[list]:
    rules = []
    for row in _split(text):
        name, _, version = row.partition(",")
        rules.append([name.strip(), int(version.strip())])
    return rules


def _browser_policy_from_config(config: dict, base: dict) -> dict:
    return {
        key: base[key] if config.get(wire) is None else _browser_rules(config.get(wire))
        for key, wire in (("block", "browser_block"), ("whitelist", "browser_whitelist"))
    }


def _browser_policy_patch(value: dict) -> dict:
    return {
        "browser_block": _parse_browser_rules(value["block"]),
        "browser_whitelist": _parse_browser_rules(value["whitelist"]),
    }


def _check_browser_policy(value: Mapping) -> list[FieldError]:
    errors = []
    for key in ("block", "whitelist"):
        for row in _split(value.get(key)):
            name, _, version = row.partition(",")
            if not name.strip() or not version.strip().isdigit():
                errors.append(FieldError(key, f"Browser rule must be 'Name,minVersion': {row}."))
                break
    return errors


def _bypass_from_config(config: dict, base: dict) -> dict:
    return {
        key: base[key] if config.get(wire) is None else _lines(config.get(wire))
        for key, wire in (("network", "whitelist"), ("path", "path_whitelist"))
    }


def _bypass_patch(value: dict) -> dict:
    return {"whitelist": _split(value["network"]), "path_whitelist": _split(value["path"])}


_BOTNESS_WEIGHTS = {
    "weightJsRequired": "js_required",
    "weightGeoRisk": "geo_risk",
    "weightRateMedium": "rate_medium",
    "weightRateHigh": "rate_high",
}


def _botness_from_config(config: dict, base: dict) -> dict:
    weights = config.get("botness_weights")
    if not isinstance(weights, dict):
        weights = {}
    value = {
        "challengeThreshold": _int_or(
            config.get("challenge_puzzle_risk_threshold"), base["challengeThreshold"]
        ),
        "mazeThreshold": _int_or(config.get("botness_maze_threshold"), base["mazeThreshold"]),
    }
    for key, wire in _BOTNESS_WEIGHTS.items():
        value[key] = _int_or(weights.get(wire), base[key])
    value["mutable"] = _write_enabled(config, base)
    return value


def _botness_patch(value: dict) -> dict:
    return {
        "challenge_puzzle_risk_threshold": value["challengeThreshold"],
        "botness_maze_threshold": value["mazeThreshold"],
        "botness_weights": {wire: value[key] for key, wire in _BOTNESS_WEIGHTS.items()},
    }


# Reported by the server, never written back
_READ_ONLY_CONFIG_KEYS = frozenset({"admin_config_write_enabled", "botness_signal_definitions"})


def _advanced_from_config(config: dict, base: dict) -> dict:
    if not config:
        return base
    writable = {
        key: value
        for key, value in config.items()
        if key not in _READ_ONLY_CONFIG_KEYS and not key.endswith("_default")
    }
    return {"normalized": canonicalize(writable)}


def _parse_json_object(text: Any) -> Optional[dict]:
    try:
        parsed = json.loads(str(text or "{}"))
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _advanced_patch(value: dict) -> dict:
    return _parse_json_object(value["normalized"]) or {}


def _check_advanced(value: Mapping) -> list[FieldError]:
    if _parse_json_object(value.get("normalized")) is None:
        return [FieldError("normalized", "Advanced config must be a JSON object.")]
    return []


SECTIONS: dict[str, SectionSpec] = {
    spec.name: spec
    for spec in (
        SectionSpec(
            name="maze",
            default={"enabled": False, "autoBan": False, "threshold": 50},
            from_config=_maze_from_config,
            to_patch=_maze_patch,
            rules={"threshold": RangeRule("Maze threshold", 5, 500)},
        ),
        SectionSpec(
            name="banDurations",
            default={
                "honeypot": 86400,
                "rateLimit": 3600,
                "browser": 21600,
                "cdp": 43200,
                "admin": 21600,
            },
            from_config=_ban_durations_from_config,
            to_patch=_ban_durations_patch,
            rules={
                key: RangeRule(f"{key} ban duration", 60, 366 * 86400)
                for key in _BAN_DURATION_KEYS
            },
        ),
        SectionSpec(
            name="rateLimit",
            default={"value": 80},
            from_config=_rate_limit_from_config,
            to_patch=lambda value: {"rate_limit": value["value"]},
            rules={"value": RangeRule("Rate limit", 1, 1_000_000)},
            # Rate limit drives badges on every tab
            scopes=("all",),
        ),
        SectionSpec(
            name="jsRequired",
            default={"enforced": True},
            from_config=_js_required_from_config,
            to_patch=lambda value: {"js_required_enforced": value["enforced"]},
        ),
        SectionSpec(
            name="robots",
            default={"enabled": True, "crawlDelay": 2},
            from_config=_robots_from_config,
            to_patch=_robots_patch,
            rules={"crawlDelay": RangeRule("Crawl delay", 0, 60)},
        ),
        SectionSpec(
            name="aiPolicy",
            default={"blockTraining": True, "blockSearch": False, "allowSearch": False},
            from_config=_ai_policy_from_config,
            to_patch=_ai_policy_patch,
        ),
        SectionSpec(
            name="cdp",
            default={"enabled": True, "autoBan": True, "threshold": 0.6},
            from_config=_cdp_from_config,
            to_patch=_cdp_patch,
            rules={"threshold": RangeRule("CDP threshold", 0.1, 1.0, integer=False)},
        ),
        SectionSpec(
            name="edgeMode",
            default={"mode": "off"},
            from_config=_edge_mode_from_config,
            to_patch=lambda value: {"edge_integration_mode": value["mode"]},
        ),
        SectionSpec(
            name="pow",
            default={"enabled": True, "difficulty": 15, "ttl": 90, "mutable": True},
            from_config=_pow_from_config,
            to_patch=_pow_patch,
            rules={
                "difficulty": RangeRule("PoW difficulty", 12, 20),
                "ttl": RangeRule("PoW seed TTL", 30, 300),
            },
            write_gated=True,
        ),
        SectionSpec(
            name="challengePuzzle",
            default={"enabled": True, "count": 6, "mutable": True},
            from_config=_challenge_from_config,
            to_patch=_challenge_patch,
            rules={"count": RangeRule("Challenge transform count", 4, 8)},
            write_gated=True,
        ),
        SectionSpec(
            name="botness",
            default={
                "challengeThreshold": 3,
                "mazeThreshold": 6,
                "weightJsRequired": 1,
                "weightGeoRisk": 2,
                "weightRateMedium": 1,
                "weightRateHigh": 2,
                "mutable": True,
            },
            from_config=_botness_from_config,
            to_patch=_botness_patch,
            rules={
                "challengeThreshold": RangeRule("Challenge threshold", 1, 10),
                "mazeThreshold": RangeRule("Maze threshold score", 1, 10),
                **{key: RangeRule("Botness weight", 0, 10) for key in _BOTNESS_WEIGHTS},
            },
            write_gated=True,
        ),
        SectionSpec(
            name="geo",
            default={"risk": "", "allow": "", "challenge": "", "maze": "", "block": "", "mutable": False},
            from_config=_geo_from_config,
            to_patch=_geo_patch,
            check=_check_geo,
            write_gated=True,
        ),
        SectionSpec(
            name="honeypot",
            default={"enabled": True, "values": "/instaban"},
            from_config=_honeypot_from_config,
            to_patch=_honeypot_patch,
            check=_check_honeypot,
        ),
        SectionSpec(
            name="browserPolicy",
            default={"block": "", "whitelist": ""},
            from_config=_browser_policy_from_config,
            to_patch=_browser_policy_patch,
            check=_check_browser_policy,
        ),
        SectionSpec(
            name="bypassAllowlists",
            default={"network": "", "path": ""},
            from_config=_bypass_from_config,
            to_patch=_bypass_patch,
        ),
        SectionSpec(
            name="advancedConfig",
            default={"normalized": "{}"},
            from_config=_advanced_from_config,
            to_patch=_advanced_patch,
            check=_check_advanced,
            # A raw JSON patch can touch any setting
            scopes=("all",),
        ),
    )
}

CONFIG_DRAFT_DEFAULTS: dict[str, dict] = {name: dict(spec.default) for name, spec in SECTIONS.items()}


def get_section(name: str) -> SectionSpec:
    try:
        return SECTIONS[name]
    except KeyError:
        raise KeyError(f"Unknown config section: {name}")
