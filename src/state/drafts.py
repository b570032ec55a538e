"""Draft store: last-synchronized value and fingerprint per config section."""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from .canonical import canonicalize

logger = logging.getLogger(__name__)


class DraftStore:
    """
    Holds the known-good baseline of each editable section.

    Usage:
        drafts = DraftStore(CONFIG_DRAFT_DEFAULTS)
        drafts.set("maze", {"enabled": False, "autoBan": False, "threshold": 50})
        drafts.is_dirty("maze", current_form_value)

    Values handed in and out are deep copies, so callers can never mutate a
    baseline through an aliased reference.
    """

    def __init__(self, initial: Optional[Mapping[str, Any]] = None):
        self._values: dict[str, Any] = {}
        self._fingerprints: dict[str, str] = {}
        for section, value in (initial or {}).items():
            self.set(section, value)

    def set(self, section: str, value: Any) -> None:
        """Accept a fresh authoritative value as the section baseline."""
        self._values[section] = copy.deepcopy(value)
        self._fingerprints[section] = canonicalize(value)
        logger.debug("Draft baseline updated: %s", section)

    def get(self, section: str, fallback: Any = None) -> Any:
        """Return a copy of the baseline, or a copy of fallback when never set."""
        if section not in self._values:
            return copy.deepcopy(fallback)
        return copy.deepcopy(self._values[section])

    def has(self, section: str) -> bool:
        return section in self._fingerprints

    def fingerprint(self, section: str) -> Optional[str]:
        return self._fingerprints.get(section)

    def sections(self) -> Iterable[str]:
        return tuple(self._fingerprints)

    def is_dirty(self, section: str, current: Any) -> bool:
        """
        True iff the current value differs from the baseline under canonicalization.

        A section without a baseline is dirty: there is nothing to compare
        against. Callers that want a default baseline seed the store with one.
        """
        previous = self._fingerprints.get(section)
        if previous is None:
            return True
        return previous != canonicalize(current)
