"""Global pytest configuration and shared fakes."""

from __future__ import annotations

import asyncio
import inspect
import os
from collections.abc import Generator

import pytest

from src.api.client import AdminUnauthorizedError
from src.state.session import SessionState

# Keep a developer's .env from leaking into config tests.
for _name in list(os.environ):
    if _name.startswith("SHUMA_"):
        os.environ.pop(_name)


@pytest.fixture(scope="session")
def event_loop() -> Generator[asyncio.AbstractEventLoop, None, None]:
    """Provide a shared event loop for async tests."""

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        yield loop
    finally:
        loop.close()


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):  # type: ignore[override]
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        testargs = {
            name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames
        }
        loop = testargs.get("event_loop") or asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        loop.run_until_complete(pyfuncitem.obj(**testargs))
        return True
    return None


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "asyncio: mark test as requiring asyncio support")


class FakeHandle:
    def __init__(self, clock: "FakeClock", due: float, callback):
        self.clock = clock
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeClock:
    """Virtual timer source: callbacks fire only when advance() passes them."""

    def __init__(self):
        self.now = 0.0
        self.handles: list[FakeHandle] = []

    def call_later(self, delay, callback):
        handle = FakeHandle(self, self.now + delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def armed(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.cancelled]

    def advance(self, seconds: float) -> int:
        """Move time forward and fire due callbacks; returns how many fired."""
        self.now += seconds
        fired = 0
        for handle in list(self.handles):
            if not handle.cancelled and handle.due <= self.now:
                handle.cancelled = True
                handle.callback()
                fired += 1
        return fired


class FakeSession:
    """Stand-in for AdminSession that never touches the network."""

    def __init__(self, authenticated: bool = True, restore_ok: bool = True):
        self.authenticated = authenticated
        self.restore_ok = restore_ok
        self.listeners = []
        self.cleared = 0

    def add_listener(self, listener) -> None:
        self.listeners.append(listener)

    def has_valid_api_context(self) -> bool:
        return self.authenticated

    def _notify(self) -> None:
        for listener in self.listeners:
            listener(SessionState(authenticated=self.authenticated, csrf_token="tok"))

    def clear(self) -> None:
        self.cleared += 1
        self.authenticated = False
        self._notify()

    async def restore(self) -> bool:
        self.authenticated = self.restore_ok
        self._notify()
        return self.restore_ok


def sample_config(**overrides) -> dict:
    config = {
        "maze_enabled": False,
        "maze_auto_ban": False,
        "maze_auto_ban_threshold": 50,
        "rate_limit": 80,
        "robots_enabled": True,
        "robots_crawl_delay": 2,
        "pow_enabled": True,
        "pow_difficulty": 15,
        "pow_ttl_seconds": 90,
    }
    config.update(overrides)
    return config


class FakeAdminApi:
    """Scriptable admin API with per-method call counts."""

    def __init__(self):
        self.calls: dict[str, int] = {}
        self.config = sample_config()
        self.bans = {"bans": [{"ip": "203.0.113.9", "reason": "honeypot"}]}
        self.events = {"recent_events": [{"event": "Ban"}], "event_counts": {}, "top_ips": [], "unique_ips": 1}
        self.maze = {"total_hits": 3, "unique_crawlers": 1, "top_crawlers": []}
        self.fail_with: Exception | None = None
        self.updates: list[dict] = []
        self.gate: asyncio.Event | None = None

    async def _call(self, name: str, payload):
        self.calls[name] = self.calls.get(name, 0) + 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        return payload

    def count(self, name: str) -> int:
        return self.calls.get(name, 0)

    async def get_config(self):
        return await self._call("get_config", dict(self.config))

    async def get_analytics(self):
        return await self._call("get_analytics", {"ban_count": len(self.bans["bans"])})

    async def get_events(self, hours=24):
        return await self._call("get_events", self.events)

    async def get_bans(self):
        return await self._call("get_bans", self.bans)

    async def get_maze(self):
        return await self._call("get_maze", self.maze)

    async def get_cdp(self):
        return await self._call("get_cdp", {"stats": {"total_detections": 0, "auto_bans": 0}})

    async def get_cdp_events(self, hours=24, limit=500):
        return await self._call("get_cdp_events", {"events": []})

    async def get_monitoring(self, hours=24, limit=10):
        return await self._call("get_monitoring", {"summary": {}})

    async def update_config(self, patch):
        self.updates.append(dict(patch))
        await self._call("update_config", None)
        self.config.update(patch)
        return {"config": dict(self.config)}

    async def ban_ip(self, ip, duration_seconds):
        await self._call("ban_ip", None)
        self.bans["bans"].append({"ip": ip})
        return {"status": "banned", "ip": ip}

    async def unban_ip(self, ip):
        await self._call("unban_ip", None)
        self.bans["bans"] = [b for b in self.bans["bans"] if b.get("ip") != ip]
        return {"status": "unbanned", "ip": ip}


def unauthorized() -> AdminUnauthorizedError:
    return AdminUnauthorizedError(401, "Unauthorized")


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_api() -> FakeAdminApi:
    return FakeAdminApi()


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()
