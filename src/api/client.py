"""HTTP client for the Shuma admin API."""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

import httpx

from ..constants import CSRF_HEADER
from .adapters import (
    adapt_bans,
    adapt_cdp,
    adapt_cdp_events,
    adapt_config,
    adapt_events,
    adapt_maze,
    adapt_monitoring,
)
from .session import AdminSession

logger = logging.getLogger(__name__)


class AdminApiError(Exception):
    """Admin API call failed (transport error or non-2xx reply)."""

    def __init__(self, status_code: int, message: str, response_body: str = ""):
        self.status_code = status_code
        self.message = message
        self.response_body = response_body
        if status_code:
            super().__init__(f"API error {status_code}: {message}")
        else:
            super().__init__(message)


class AdminUnauthorizedError(AdminApiError):
    """Session missing, expired or rejected by the server."""

    def __init__(self, status_code: int = 401, message: str = "Login required", response_body: str = ""):
        super().__init__(status_code, message, response_body)


class AdminApi(Protocol):
    """Operations the dashboard needs from the admin API."""

    async def get_config(self) -> dict: ...

    async def get_analytics(self) -> dict: ...

    async def get_events(self, hours: int) -> dict: ...

    async def get_bans(self) -> dict: ...

    async def get_maze(self) -> dict: ...

    async def get_cdp(self) -> dict: ...

    async def get_cdp_events(self, hours: int, limit: int) -> dict: ...

    async def get_monitoring(self, hours: int, limit: int) -> dict: ...

    async def update_config(self, patch: dict) -> dict: ...

    async def ban_ip(self, ip: str, duration_seconds: int) -> dict: ...

    async def unban_ip(self, ip: str) -> dict: ...


class AdminApiClient:
    """
    Admin API client sharing the session's httpx client (and its cookies).

    Every call resolves the admin context first; without one it raises
    AdminUnauthorizedError without touching the network. Authorization
    failures from the server clear the session before raising.
    """

    def __init__(self, session: AdminSession):
        self.session = session

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> Any:
        context = self.session.get_admin_context()
        if context is None:
            raise AdminUnauthorizedError(message="Login required")

        headers: dict[str, str] = {}
        if method.upper() != "GET" and context.csrf_token:
            headers[CSRF_HEADER] = context.csrf_token

        client = await self.session.http()
        url = f"{context.endpoint}{path}"
        try:
            response = await client.request(method, url, params=params, json=json, headers=headers)
        except httpx.TimeoutException:
            raise AdminApiError(0, "Request timed out")
        except httpx.HTTPError as e:
            raise AdminApiError(0, f"Request failed: {e}")

        if response.status_code in (401, 403):
            logger.warning("Admin API rejected session (%s %s -> %s)", method, path, response.status_code)
            self.session.clear()
            raise AdminUnauthorizedError(response.status_code, "Unauthorized", response.text)

        if not response.is_success:
            text = response.text.strip()
            raise AdminApiError(
                response.status_code,
                text or response.reason_phrase or "Request failed",
                response.text,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            raise AdminApiError(response.status_code, "Invalid JSON response", response.text)

    async def get_config(self) -> dict:
        return adapt_config(await self._request("GET", "/admin/config"))

    async def get_analytics(self) -> dict:
        data = await self._request("GET", "/admin/analytics")
        return data if isinstance(data, dict) else {}

    async def get_events(self, hours: int) -> dict:
        return adapt_events(await self._request("GET", "/admin/events", params={"hours": hours}))

    async def get_bans(self) -> dict:
        return adapt_bans(await self._request("GET", "/admin/ban"))

    async def get_maze(self) -> dict:
        return adapt_maze(await self._request("GET", "/admin/maze"))

    async def get_cdp(self) -> dict:
        return adapt_cdp(await self._request("GET", "/admin/cdp"))

    async def get_cdp_events(self, hours: int, limit: int) -> dict:
        data = await self._request(
            "GET", "/admin/cdp/events", params={"hours": hours, "limit": limit}
        )
        return adapt_cdp_events(data)

    async def get_monitoring(self, hours: int, limit: int) -> dict:
        data = await self._request(
            "GET", "/admin/monitoring", params={"hours": hours, "limit": limit}
        )
        return adapt_monitoring(data)

    async def update_config(self, patch: dict) -> dict:
        data = await self._request("POST", "/admin/config", json=dict(patch))
        return data if isinstance(data, dict) else {}

    async def ban_ip(self, ip: str, duration_seconds: int) -> dict:
        data = await self._request(
            "POST", "/admin/ban", json={"ip": ip, "duration": int(duration_seconds)}
        )
        return data if isinstance(data, dict) else {}

    async def unban_ip(self, ip: str) -> dict:
        data = await self._request("POST", "/admin/unban", params={"ip": ip})
        return data if isinstance(data, dict) else {}
