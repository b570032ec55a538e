"""Deterministic, order-independent serialization used as a content fingerprint."""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from dataclasses import fields, is_dataclass
from typing import Any


class _Unset:
    """Marker for a field that is absent (as opposed to an explicit null)."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


def _normalize(value: Any, path: set[int]) -> Any:
    if value is UNSET:
        return None
    if isinstance(value, float):
        # 75.0 and 75 are the same JSON number
        if math.isfinite(value) and value.is_integer():
            return int(value)
        return value
    if value is None or isinstance(value, (str, int, bool)):
        return value

    marker = id(value)
    if marker in path:
        raise ValueError("Circular reference detected")
    path.add(marker)
    try:
        if is_dataclass(value) and not isinstance(value, type):
            value = {f.name: getattr(value, f.name) for f in fields(value)}
        if isinstance(value, Mapping):
            return {
                str(key): _normalize(item, path)
                for key, item in sorted(value.items(), key=lambda kv: str(kv[0]))
                if item is not UNSET
            }
        if isinstance(value, (list, tuple)):
            return [_normalize(item, path) for item in value]
        if isinstance(value, (set, frozenset)):
            items = [_normalize(item, path) for item in value]
            return sorted(items, key=lambda item: json.dumps(item, sort_keys=True))
    finally:
        path.discard(marker)

    raise TypeError(f"Cannot canonicalize value of type {type(value).__name__}")


def canonicalize(value: Any) -> str:
    """
    Serialize a structured value to a canonical string.

    Mapping keys are sorted recursively, sequences keep their order, and
    fields holding UNSET are dropped so an omitted optional field does not
    change the fingerprint. Cyclic structures raise ValueError.
    """
    return json.dumps(
        _normalize(value, set()),
        separators=(",", ":"),
        ensure_ascii=False,
    )
