"""Page-level coordinator binding views, drafts, snapshots and the scheduler.

One coordinator is constructed at startup and handed to whatever needs it;
there is no module-level instance. All state transitions happen between
awaits on the single event loop, so no reader can observe a view halfway
between begin_load and succeed/fail.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any, Awaitable, Callable, Optional

from ..api.client import AdminApi, AdminUnauthorizedError
from ..api.session import AdminSession
from ..config import Config
from ..constants import RefreshReason, SnapshotKind, View
from ..state.canonical import UNSET
from ..state.drafts import DraftStore
from ..state.session import SessionState
from ..state.snapshots import (
    SnapshotCache,
    is_bans_empty,
    is_config_empty,
    is_monitoring_empty,
)
from ..state.views import ViewStateMachine, ViewStatus
from .hooks import DashboardHooks
from .scheduler import Clock, RefreshScheduler
from .sections import (
    CONFIG_DRAFT_DEFAULTS,
    SECTIONS,
    FieldError,
    ValidationError,
    get_section,
)

logger = logging.getLogger(__name__)

# Resources each view renders
VIEW_RESOURCES: dict[View, tuple[SnapshotKind, ...]] = {
    View.MONITORING: (
        SnapshotKind.ANALYTICS,
        SnapshotKind.EVENTS,
        SnapshotKind.BANS,
        SnapshotKind.MAZE,
        SnapshotKind.CDP,
        SnapshotKind.CDP_EVENTS,
        SnapshotKind.MONITORING,
    ),
    View.IP_BANS: (SnapshotKind.BANS,),
    View.STATUS: (SnapshotKind.CONFIG,),
    View.CONFIG: (SnapshotKind.CONFIG,),
    View.TUNING: (SnapshotKind.CONFIG,),
}

# Every config save may change badges on status/config/tuning plus the
# monitoring and ban tabs.
CONFIG_SAVE_SCOPES = ("securityConfig", "monitoring", "ip-bans")


class SaveInProgressError(RuntimeError):
    """A save for the same control is still in flight."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Save already in progress: {key}")


def _error_message(exc: BaseException) -> str:
    message = getattr(exc, "message", None) or str(exc)
    return message.strip() or "Refresh failed"


class DashboardCoordinator:
    """
    Composition rule for refreshes and writes.

    refresh(view, reason):
        - scheduled refresh of a non-stale view: answered from snapshots
        - otherwise: fetch everything the view renders concurrently; on success
          store snapshots and mark the view fresh, on failure record the error
          and keep the last good snapshots

    Writes (section saves, ban/unban) invalidate their scopes, then refresh
    only the active view. Other affected views stay stale until activated
    or polled.
    """

    def __init__(
        self,
        api: AdminApi,
        session: AdminSession,
        config: Optional[Config] = None,
        hooks: Optional[DashboardHooks] = None,
        clock: Optional[Clock] = None,
        drafts: Optional[DraftStore] = None,
        views: Optional[ViewStateMachine] = None,
        snapshots: Optional[SnapshotCache] = None,
    ):
        self.api = api
        self.session = session
        self.config = config or Config()
        self.hooks = hooks or DashboardHooks()
        self.drafts = drafts or DraftStore(CONFIG_DRAFT_DEFAULTS)
        self.views = views or ViewStateMachine(initial_view=self.config.initial_view)
        self.snapshots = snapshots or SnapshotCache()

        # Operator's unsaved values per section
        self._working: dict[str, Any] = {}
        self._saving: set[str] = set()

        self.scheduler = RefreshScheduler(
            refresh_effect=lambda view: self.refresh(view, RefreshReason.AUTO_REFRESH),
            active_view=lambda: self.views.active_view,
            is_authenticated=self.session.has_valid_api_context,
            intervals_ms=self.config.refresh_interval_ms,
            clock=clock,
        )
        self.session.add_listener(self._on_session_changed)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> bool:
        """Restore the admin session, load the active view and start polling."""
        if not await self.session.restore():
            logger.warning("No admin session; login required")
            self.hooks.on_unauthorized()
            return False
        await self.refresh(self.views.active_view, RefreshReason.SESSION_RESTORED)
        self.schedule_auto_refresh()
        return True

    async def stop(self) -> None:
        await self.scheduler.stop()

    def _on_session_changed(self, state: SessionState) -> None:
        self.scheduler.on_session_changed(state.authenticated)

    def _handle_unauthorized(self) -> None:
        if self.session.has_valid_api_context():
            self.session.clear()
        self.scheduler.cancel()
        self.hooks.on_unauthorized()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def active_view(self) -> View:
        return self.views.active_view

    def set_active_view(self, view: View | str) -> View:
        """Switch tabs and re-arm the scheduler with the new view's interval."""
        active = self.views.set_active_view(view)
        self.scheduler.on_active_view_changed()
        return active

    async def activate_view(self, view: View | str) -> dict[SnapshotKind, Any]:
        """Mount a tab: switch to it and load it (never served from cache)."""
        active = self.set_active_view(view)
        if not self.session.has_valid_api_context():
            return self.snapshots.select(VIEW_RESOURCES[active])
        return await self.refresh(active, RefreshReason.TAB_MOUNT)

    def set_page_visible(self, visible: bool) -> None:
        self.scheduler.set_visible(visible)

    def schedule_auto_refresh(self) -> None:
        self.scheduler.schedule()

    def cancel_auto_refresh(self) -> None:
        self.scheduler.cancel()

    def invalidate(self, scope: str = "all") -> frozenset[View]:
        return self.views.invalidate(scope)

    def dismiss_error(self, view: View | str) -> None:
        """Operator acknowledged the error banner; data and staleness are untouched."""
        self.views.clear_error(view)

    def view_status(self, view: View | str) -> ViewStatus:
        return self.views.status(view)

    def status_snapshot(self) -> dict:
        """Flat readout for the status endpoint."""
        statuses = self.views.statuses()
        return {
            "authenticated": self.session.has_valid_api_context(),
            "active_view": self.views.active_view.value,
            "auto_refresh_pending": self.scheduler.pending,
            "page_visible": self.scheduler.visible,
            "snapshot_entries": self.snapshots.stats()["entries"],
            "views_stale": sum(1 for s in statuses.values() if s.stale),
            "views_error": sum(1 for s in statuses.values() if s.error),
            "views": {view.value: status.to_dict() for view, status in statuses.items()},
        }

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh(
        self,
        view: View | str | None = None,
        reason: RefreshReason | str = RefreshReason.MANUAL,
    ) -> dict[SnapshotKind, Any]:
        """Refresh one view. Errors are recorded on the view, never raised."""
        target = View.from_string(view) if view is not None else self.views.active_view
        scheduled = reason == RefreshReason.AUTO_REFRESH
        kinds = VIEW_RESOURCES[target]

        if scheduled and not self.views.is_stale(target):
            logger.debug("Serving %s from snapshots (not stale)", target)
            return self.snapshots.select(kinds)

        self.views.begin_load(target)
        try:
            payloads = await self._fetch_view(target, scheduled)
        except AdminUnauthorizedError as exc:
            logger.warning("Dashboard refresh unauthorized (%s)", target)
            self.views.fail(target, _error_message(exc))
            self._handle_unauthorized()
            return self.snapshots.select(kinds)
        except Exception as exc:
            message = _error_message(exc)
            logger.error("Dashboard refresh error (%s): %s", target, message)
            self.views.fail(target, message)
            self.hooks.on_refresh_failed(target, message)
            return self.snapshots.select(kinds)

        try:
            for kind, payload in payloads.items():
                self.snapshots.set(kind, payload)
            if SnapshotKind.CONFIG in payloads:
                self._accept_config(payloads[SnapshotKind.CONFIG])
            self.views.succeed(target, empty=self._derive_empty(target))
            current = self.snapshots.select(kinds)
            self.hooks.on_view_refreshed(target, current)
        except Exception as exc:
            message = _error_message(exc)
            logger.exception("Dashboard refresh could not apply %s payloads", target)
            self.views.fail(target, message)
            self.hooks.on_refresh_failed(target, message)
            return self.snapshots.select(kinds)
        return current

    async def _fetch_view(self, view: View, scheduled: bool) -> dict[SnapshotKind, Any]:
        if view is View.MONITORING:
            payloads = await self._fetch_monitoring()
            if not scheduled:
                payloads[SnapshotKind.CONFIG] = await self.api.get_config()
            return payloads
        if view is View.IP_BANS:
            return {SnapshotKind.BANS: await self.api.get_bans()}
        # status/config/tuning render the same config payload
        return {SnapshotKind.CONFIG: await self.api.get_config()}

    async def _fetch_monitoring(self) -> dict[SnapshotKind, Any]:
        hours = self.config.events_hours
        results = await asyncio.gather(
            self.api.get_analytics(),
            self.api.get_events(hours),
            self.api.get_bans(),
            self.api.get_maze(),
            self.api.get_cdp(),
            self.api.get_cdp_events(hours, self.config.cdp_events_limit),
            self.api.get_monitoring(hours, self.config.monitoring_limit),
        )
        return dict(zip(VIEW_RESOURCES[View.MONITORING], results))

    def _derive_empty(self, view: View) -> bool:
        if view is View.MONITORING:
            return is_monitoring_empty(self.snapshots)
        if view is View.IP_BANS:
            return is_bans_empty(self.snapshots)
        return is_config_empty(self.snapshots)

    def _accept_config(self, config: dict) -> None:
        """
        Adopt a server config as the baseline of every section.

        Unsaved operator edits survive: a working value that differs from the
        previous baseline is kept, a clean one is dropped so the form follows
        the server.
        """
        for name, spec in SECTIONS.items():
            previous = self.drafts.get(name, spec.default)
            editing = name in self._working and self.drafts.is_dirty(name, self._working[name])
            baseline = spec.baseline_from_config(config, previous)
            self.drafts.set(name, baseline)
            if not editing:
                self._working.pop(name, None)
            self.hooks.on_section_synced(name, copy.deepcopy(baseline), editing)

    # ------------------------------------------------------------------
    # Sections (drafts)
    # ------------------------------------------------------------------

    def edit(self, section: str, value: Any) -> bool:
        """Record the operator's current value for a section; returns is_dirty."""
        get_section(section)
        self._working[section] = copy.deepcopy(value)
        return self.drafts.is_dirty(section, value)

    def discard_edit(self, section: str) -> None:
        self._working.pop(section, None)

    def working_value(self, section: str) -> Any:
        """What the form should show: the unsaved edit, else the baseline."""
        if section in self._working:
            return copy.deepcopy(self._working[section])
        spec = SECTIONS.get(section)
        return self.drafts.get(section, spec.default if spec else None)

    def get(self, section: str, fallback: Any = None) -> Any:
        return self.drafts.get(section, fallback)

    def set(self, section: str, value: Any) -> None:
        self.drafts.set(section, value)

    def _current(self, section: str, value: Any) -> Any:
        return self.working_value(section) if value is UNSET else value

    def is_dirty(self, section: str, value: Any = UNSET) -> bool:
        return self.drafts.is_dirty(section, self._current(section, value))

    def is_saving(self, key: str) -> bool:
        return key in self._saving

    def validate(self, section: str, value: Any = UNSET) -> list[FieldError]:
        """Field errors plus the read-only error for write-gated sections."""
        spec = get_section(section)
        current = self._current(section, value)
        errors = spec.validate(current)
        write_error = spec.write_error(current)
        if write_error:
            errors.append(write_error)
        return errors

    def can_save(self, section: str, value: Any = UNSET) -> bool:
        """Save control enabled: session valid, not saving, writable, fields valid, changed."""
        current = self._current(section, value)
        return (
            self.session.has_valid_api_context()
            and section not in self._saving
            and not self.validate(section, current)
            and self.drafts.is_dirty(section, current)
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def _run_write(self, key: str, call: Callable[[], Awaitable[dict]]) -> dict:
        """Run one admin write; a second write for the same key is rejected."""
        if key in self._saving:
            raise SaveInProgressError(key)
        self._saving.add(key)
        try:
            return await call()
        except AdminUnauthorizedError:
            self._handle_unauthorized()
            raise
        finally:
            self._saving.discard(key)

    async def save_section(self, section: str, value: Any = UNSET) -> dict:
        """
        Validate and save one section.

        On success the saved value becomes the baseline, the section's scopes
        are invalidated and the active view is refreshed. On failure the
        operator's value is kept and the section stays dirty.
        """
        spec = get_section(section)
        current = copy.deepcopy(self._current(section, value))
        errors = self.validate(section, current)
        if errors:
            raise ValidationError(errors)

        try:
            result = await self._run_write(
                section, lambda: self.api.update_config(spec.patch(current))
            )
        except SaveInProgressError:
            raise
        except Exception as exc:
            logger.error("Failed to save %s config: %s", section, exc)
            self._working[section] = current
            raise

        saved = result.get("config") if isinstance(result, dict) else None
        if isinstance(saved, dict) and saved:
            self.snapshots.set(SnapshotKind.CONFIG, saved)
            baseline = spec.baseline_from_config(saved, current)
        else:
            baseline = current
        self.drafts.set(section, baseline)
        self._working.pop(section, None)
        logger.info("Saved %s config", section)

        for scope in spec.scopes:
            self.views.invalidate(scope)
        await self.refresh(self.views.active_view, RefreshReason.CONFIG_SAVE)
        return result

    async def update_config(self, patch: dict, scopes: tuple[str, ...] = CONFIG_SAVE_SCOPES) -> dict:
        """Save a raw config patch that does not belong to a single section."""
        result = await self._run_write("config", lambda: self.api.update_config(dict(patch)))
        saved = result.get("config") if isinstance(result, dict) else None
        if isinstance(saved, dict) and saved:
            self.snapshots.set(SnapshotKind.CONFIG, saved)
            self._accept_config(saved)
        for scope in scopes:
            self.views.invalidate(scope)
        await self.refresh(self.views.active_view, RefreshReason.CONFIG_SAVE)
        return result

    async def ban_ip(self, ip: str, duration_seconds: int) -> dict:
        ip = str(ip or "").strip()
        errors = []
        if not ip:
            errors.append(FieldError("ip", "Ban IP is required."))
        if isinstance(duration_seconds, bool) or not isinstance(duration_seconds, int) or duration_seconds <= 0:
            errors.append(FieldError("duration", "Ban duration must be a positive number of seconds."))
        if errors:
            raise ValidationError(errors)

        result = await self._run_write("ban", lambda: self.api.ban_ip(ip, duration_seconds))
        logger.info("Banned %s for %ss", ip, duration_seconds)
        self.views.invalidate("ip-bans")
        await self.refresh(self.views.active_view, RefreshReason.BAN_SAVE)
        return result

    async def unban_ip(self, ip: str, reason: RefreshReason = RefreshReason.UNBAN_SAVE) -> dict:
        ip = str(ip or "").strip()
        if not ip:
            raise ValidationError([FieldError("ip", "Unban IP is required.")])

        result = await self._run_write("unban", lambda: self.api.unban_ip(ip))
        logger.info("Unbanned %s", ip)
        self.views.invalidate("ip-bans")
        await self.refresh(self.views.active_view, reason)
        return result

    async def quick_unban(self, ip: str) -> dict:
        """Unban straight from a ban-table row."""
        return await self.unban_ip(ip, RefreshReason.QUICK_UNBAN)
