"""Health and metrics endpoints for the Shuma console runtime."""

from __future__ import annotations

import logging
from typing import Callable

from aiohttp import web

logger = logging.getLogger(__name__)

METRIC_PREFIX = "shuma_console"


def _metric_value(value) -> float | int | None:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    return None


def render_metrics(data: dict) -> list[str]:
    """Numeric fields become gauges; per-view flags get a view label."""
    lines = []
    for key, value in data.items():
        metric_key = str(key).replace(".", "_").replace("-", "_")
        numeric = _metric_value(value)
        if numeric is not None:
            lines.append(f"{METRIC_PREFIX}_{metric_key} {numeric}")

    views = data.get("views")
    if isinstance(views, dict):
        for view, status in sorted(views.items()):
            if not isinstance(status, dict):
                continue
            for field in ("loading", "stale", "empty"):
                numeric = _metric_value(status.get(field))
                if numeric is not None:
                    lines.append(f'{METRIC_PREFIX}_view_{field}{{view="{view}"}} {numeric}')
            lines.append(
                f'{METRIC_PREFIX}_view_error{{view="{view}"}} {1 if status.get("error") else 0}'
            )

    if not lines:
        lines.append(f'{METRIC_PREFIX}_status{{state="empty"}} 1')
    return lines


class HealthServer:
    """Serves the coordinator's status readout over HTTP."""

    def __init__(
        self,
        host: str,
        port: int,
        status_provider: Callable[[], dict],
        enabled: bool = True,
    ):
        self.host = host
        self.port = port
        self.status_provider = status_provider
        self.enabled = enabled
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/healthz", self._handle_health)
        app.router.add_get("/metrics", self._handle_metrics)
        return app

    async def start(self):
        """Start the health server."""
        if not self.enabled:
            logger.info("Health server disabled")
            return

        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()
        logger.info("Health server listening on %s:%s", self.host, self.port)

    async def stop(self):
        """Stop the health server."""
        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()
        self._runner = None
        self._site = None

    def _snapshot(self) -> dict:
        try:
            return dict(self.status_provider() or {})
        except Exception as exc:
            logger.warning("Status provider failed: %s", exc)
            return {"status": "error", "message": str(exc)}

    async def _handle_health(self, request):  # noqa: ANN001
        """Return JSON health status."""
        payload = self._snapshot()
        payload.setdefault("status", "ok" if payload.get("authenticated") else "login_required")
        return web.json_response(payload, headers={"Access-Control-Allow-Origin": "*"})

    async def _handle_metrics(self, request):  # noqa: ANN001
        """Expose the status readout as text metrics (Prometheus-ish)."""
        lines = render_metrics(self._snapshot())
        return web.Response(text="\n".join(lines) + "\n")
