"""Per-view load/error/empty/stale tracking."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Optional

from ..constants import ALL_VIEWS, DEFAULT_VIEW, View
from .invalidation import InvalidationRouter

logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ViewStatus:
    """Status of a single dashboard view."""

    loading: bool = False
    error: str = ""
    empty: bool = False
    stale: bool = True  # Nothing fetched yet
    updated_at: str = ""

    def to_dict(self) -> dict:
        return {
            "loading": self.loading,
            "error": self.error,
            "empty": self.empty,
            "stale": self.stale,
            "updated_at": self.updated_at,
        }


class ViewStateMachine:
    """
    Records refresh outcomes per view.

    The machine never initiates I/O; the coordinator reports what happened
    through begin_load/succeed/fail and the machine keeps the invariant that
    a loading view carries no error. Staleness is cleared only by succeed().
    """

    def __init__(
        self,
        initial_view: View | str = DEFAULT_VIEW,
        router: Optional[InvalidationRouter] = None,
        now: Callable[[], str] = _utc_now_iso,
    ):
        self._router = router or InvalidationRouter()
        self._now = now
        self._active_view = View.from_string(initial_view)
        self._status: dict[View, ViewStatus] = {view: ViewStatus() for view in ALL_VIEWS}

    # ------------------------------------------------------------------
    # Active view
    # ------------------------------------------------------------------

    @property
    def active_view(self) -> View:
        return self._active_view

    def set_active_view(self, view: View | str) -> View:
        self._active_view = View.from_string(view)
        return self._active_view

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def begin_load(self, view: View | str) -> None:
        status = self._status[View.from_string(view)]
        status.loading = True
        status.error = ""

    def succeed(self, view: View | str, empty: Optional[bool] = None) -> None:
        status = self._status[View.from_string(view)]
        status.loading = False
        status.error = ""
        status.stale = False
        if empty is not None:
            status.empty = bool(empty)
        status.updated_at = self._now()

    def fail(self, view: View | str, message: str) -> None:
        key = View.from_string(view)
        status = self._status[key]
        status.loading = False
        status.error = str(message or "").strip() or "Refresh failed"
        status.updated_at = self._now()
        logger.debug("View %s failed: %s", key, status.error)

    def clear_error(self, view: View | str) -> None:
        self._status[View.from_string(view)].error = ""

    def mark_empty(self, view: View | str, is_empty: bool) -> None:
        self._status[View.from_string(view)].empty = bool(is_empty)

    def invalidate(self, scope: str = "all") -> frozenset[View]:
        """Mark every view mapped by scope as stale; loading/error are untouched."""
        views = self._router.resolve(scope)
        for view in views:
            self._status[view].stale = True
        return views

    # ------------------------------------------------------------------
    # Readouts
    # ------------------------------------------------------------------

    def status(self, view: View | str) -> ViewStatus:
        """Copy of the view status (callers cannot mutate the machine)."""
        return replace(self._status[View.from_string(view)])

    def statuses(self) -> dict[View, ViewStatus]:
        return {view: replace(status) for view, status in self._status.items()}

    def is_stale(self, view: View | str) -> bool:
        return self._status[View.from_string(view)].stale

    def is_loading(self, view: View | str) -> bool:
        return self._status[View.from_string(view)].loading

    def error(self, view: View | str) -> str:
        return self._status[View.from_string(view)].error
