"""Visibility-aware auto-refresh scheduler."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Awaitable, Callable, Optional, Protocol

from ..constants import DEFAULT_REFRESH_INTERVAL_MS, DEFAULT_VIEW, View

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Clock(Protocol):
    """Timer source. Tests substitute a virtual clock."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioClock:
    """Clock backed by the running event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class RefreshScheduler:
    """
    Owns at most one pending auto-refresh timer.

    schedule() always cancels the pending timer first and then arms a new one
    only while the session is authenticated and the page is visible. When the
    timer fires the refresh effect runs for the view that was active when it
    was armed; any error is logged and the scheduler re-arms regardless.
    Manual refreshes never go through here.
    """

    def __init__(
        self,
        refresh_effect: Callable[[View], Awaitable[object]],
        active_view: Callable[[], View],
        is_authenticated: Callable[[], bool],
        intervals_ms: Optional[Mapping[View, int]] = None,
        clock: Optional[Clock] = None,
        visible: bool = True,
    ):
        self._refresh_effect = refresh_effect
        self._active_view = active_view
        self._is_authenticated = is_authenticated
        self._intervals_ms = dict(DEFAULT_REFRESH_INTERVAL_MS)
        self._intervals_ms.update(intervals_ms or {})
        self._clock = clock or AsyncioClock()
        self._visible = visible
        self._handle: Optional[TimerHandle] = None
        self._tick_task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    @property
    def visible(self) -> bool:
        return self._visible

    def interval_seconds(self, view: View) -> float:
        interval = self._intervals_ms.get(view) or self._intervals_ms[DEFAULT_VIEW]
        return interval / 1000.0

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def schedule(self) -> None:
        self.cancel()
        if not self._is_authenticated() or not self._visible:
            return
        view = self._active_view()
        delay = self.interval_seconds(view)
        self._handle = self._clock.call_later(delay, lambda: self._on_timer(view))
        logger.debug("Auto-refresh armed for %s in %.1fs", view, delay)

    def set_visible(self, visible: bool) -> None:
        self._visible = bool(visible)
        if self._visible:
            self.schedule()
        else:
            self.cancel()

    def on_active_view_changed(self) -> None:
        self.schedule()

    def on_session_changed(self, authenticated: bool) -> None:
        if authenticated:
            self.schedule()
        else:
            self.cancel()

    def _on_timer(self, view: View) -> None:
        self._handle = None
        self._tick_task = asyncio.ensure_future(self._tick(view))

    async def _tick(self, view: View) -> None:
        try:
            if self._is_authenticated() and self._visible:
                await self._refresh_effect(view)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Auto-refresh for %s failed: %s", view, exc)
        self.schedule()

    async def wait_idle(self) -> None:
        """Wait for an in-flight tick (if any) to finish."""
        task = self._tick_task
        if task is not None and not task.done():
            await task

    async def stop(self) -> None:
        self.cancel()
        task = self._tick_task
        self._tick_task = None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
