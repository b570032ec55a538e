"""Main entry point for the Shuma admin console runtime."""

import asyncio
import logging
import signal
import sys
from datetime import datetime, timezone

import httpx

from .api import AdminApiClient, AdminSession
from .config import Config, load_config, validate_config
from .dashboard.coordinator import DashboardCoordinator
from .dashboard.hooks import DashboardHooks
from .monitoring.health import HealthServer

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
    ],
)
logger = logging.getLogger(__name__)


class ConsoleRuntime:
    """Headless console: keeps the dashboard state fresh and serves its status."""

    def __init__(self, config: Config):
        self.config = config
        self._running = False
        self._stopped = asyncio.Event()
        self._stop_lock = asyncio.Lock()
        self._stop_task: asyncio.Task | None = None
        self._started_at = datetime.now(timezone.utc)

        self.http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(config.request_timeout),
            headers={"User-Agent": AdminSession.user_agent},
            follow_redirects=True,
        )
        self.session = AdminSession(config.admin_endpoint, http_client=self.http_client)
        self.api = AdminApiClient(self.session)
        self.coordinator = DashboardCoordinator(
            self.api,
            self.session,
            config=config,
            hooks=DashboardHooks(
                on_unauthorized=self._on_unauthorized,
                on_refresh_failed=self._on_refresh_failed,
            ),
        )
        self.health_server = HealthServer(
            host=config.health_host,
            port=config.health_port,
            status_provider=self._health_snapshot,
            enabled=config.health_enabled,
        )

    def _on_unauthorized(self) -> None:
        logger.warning("Admin session is not valid; log in at %s/dashboard", self.config.admin_endpoint)

    def _on_refresh_failed(self, view, message: str) -> None:
        logger.warning("View %s refresh failed: %s", view, message)

    def _health_snapshot(self) -> dict:
        """Provide a lightweight status dict for health endpoints."""
        uptime = (datetime.now(timezone.utc) - self._started_at).total_seconds()
        snapshot = self.coordinator.status_snapshot()
        snapshot["uptime_seconds"] = round(uptime, 1)
        if not self._running:
            snapshot["status"] = "stopped"
        return snapshot

    async def start(self):
        """Start the console and block until stopped."""
        logger.info("Starting Shuma console against %s", self.config.admin_endpoint)
        self._running = True

        await self.health_server.start()
        if await self.coordinator.start():
            logger.info("Console running (active view: %s)", self.coordinator.active_view)

        await self._stopped.wait()

    async def stop(self):
        """Stop all components."""
        async with self._stop_lock:
            if self._stop_task is None:
                self._stop_task = asyncio.create_task(self._stop_impl())
            stop_task = self._stop_task
        await stop_task

    async def _stop_impl(self):
        """One-shot shutdown implementation (idempotent via stop())."""
        logger.info("Stopping Shuma console...")
        self._running = False

        await self.coordinator.stop()
        await self.health_server.stop()
        await self.http_client.aclose()
        self._stopped.set()

        logger.info("Console stopped")


async def run_console():
    """Run the console runtime."""
    config = load_config()

    validation_errors = validate_config(config)
    if validation_errors:
        for err in validation_errors:
            logger.error(err)
        sys.exit(1)

    runtime = ConsoleRuntime(config)

    # Handle shutdown signals
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda: asyncio.create_task(runtime.stop()))

    try:
        await runtime.start()
    except KeyboardInterrupt:
        pass
    finally:
        await runtime.stop()


def main():
    """Entry point."""
    asyncio.run(run_console())


if __name__ == "__main__":
    main()
