"""Tests for the health/metrics endpoints."""

from __future__ import annotations

import pytest
from aiohttp.test_utils import TestClient, TestServer

from src.monitoring.health import HealthServer, render_metrics


def _status() -> dict:
    return {
        "authenticated": True,
        "active_view": "monitoring",
        "auto_refresh_pending": True,
        "snapshot_entries": 8,
        "views": {
            "monitoring": {"loading": False, "error": "", "empty": False, "stale": False},
            "ip-bans": {"loading": False, "error": "API error 500: x", "empty": True, "stale": True},
        },
    }


def test_render_metrics_numeric_and_per_view():
    lines = render_metrics(_status())
    assert "shuma_console_authenticated 1" in lines
    assert "shuma_console_snapshot_entries 8" in lines
    assert 'shuma_console_view_stale{view="ip-bans"} 1' in lines
    assert 'shuma_console_view_error{view="ip-bans"} 1' in lines
    assert 'shuma_console_view_error{view="monitoring"} 0' in lines
    assert not any(line.startswith("shuma_console_active_view") for line in lines)


def test_render_metrics_empty():
    assert render_metrics({}) == ['shuma_console_status{state="empty"} 1']


@pytest.mark.asyncio
async def test_healthz_returns_status_json():
    server = HealthServer("127.0.0.1", 0, status_provider=_status)
    async with TestClient(TestServer(server.build_app())) as client:
        resp = await client.get("/healthz")
        assert resp.status == 200
        payload = await resp.json()
    assert payload["status"] == "ok"
    assert payload["active_view"] == "monitoring"


@pytest.mark.asyncio
async def test_healthz_reports_login_required():
    server = HealthServer("127.0.0.1", 0, status_provider=lambda: {"authenticated": False})
    async with TestClient(TestServer(server.build_app())) as client:
        resp = await client.get("/healthz")
        payload = await resp.json()
    assert payload["status"] == "login_required"


@pytest.mark.asyncio
async def test_provider_failure_is_reported():
    def broken() -> dict:
        raise RuntimeError("no coordinator")

    server = HealthServer("127.0.0.1", 0, status_provider=broken)
    async with TestClient(TestServer(server.build_app())) as client:
        resp = await client.get("/healthz")
        payload = await resp.json()
        metrics = await (await client.get("/metrics")).text()
    assert payload["status"] == "error"
    assert "no coordinator" in payload["message"]
    assert metrics.endswith("\n")


@pytest.mark.asyncio
async def test_disabled_server_does_not_bind():
    server = HealthServer("127.0.0.1", 0, status_provider=dict, enabled=False)
    await server.start()
    assert server._runner is None
    await server.stop()
