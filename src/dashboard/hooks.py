"""Optional UI-facing callbacks for the coordinator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from ..constants import SnapshotKind, View


def _noop(*args: Any, **kwargs: Any) -> None:
    return None


@dataclass
class DashboardHooks:
    """
    Capabilities the coordinator may call into.

    Every hook is optional and defaults to a no-op, so the coordinator never
    has to check whether a callback was supplied.

    - on_unauthorized(): session rejected; the UI should send the operator to login.
    - on_view_refreshed(view, snapshots): fresh data is ready to render.
    - on_refresh_failed(view, message): show an error banner for that view only.
    - on_section_synced(section, baseline, kept_edit): a new server baseline was
      accepted; kept_edit is True when the operator's unsaved value was preserved.
    """

    on_unauthorized: Callable[[], None] = _noop
    on_view_refreshed: Callable[[View, dict[SnapshotKind, Any]], None] = _noop
    on_refresh_failed: Callable[[View, str], None] = _noop
    on_section_synced: Callable[[str, Any, bool], None] = _noop
