"""Static mapping from write scopes to the views they mark stale."""

from __future__ import annotations

from collections.abc import Mapping

from ..constants import ALL_VIEWS, View

INVALIDATION_SCOPES: Mapping[str, frozenset[View]] = {
    "all": frozenset(ALL_VIEWS),
    "monitoring": frozenset({View.MONITORING}),
    "ip-bans": frozenset({View.IP_BANS}),
    "status": frozenset({View.STATUS}),
    "config": frozenset({View.CONFIG}),
    "tuning": frozenset({View.TUNING}),
    # Shared security config renders in status badges, config and tuning forms
    "securityConfig": frozenset({View.STATUS, View.CONFIG, View.TUNING}),
}


class InvalidationRouter:
    """Resolves a write scope name to the set of affected views."""

    def __init__(self, scopes: Mapping[str, frozenset[View]] = INVALIDATION_SCOPES):
        self._scopes = dict(scopes)

    def resolve(self, scope: str | None) -> frozenset[View]:
        """Unknown or empty scope names resolve to every view."""
        return self._scopes.get(str(scope or "all"), frozenset(ALL_VIEWS))

    def scopes(self) -> tuple[str, ...]:
        return tuple(self._scopes)
