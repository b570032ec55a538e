"""Admin session controller (cookie session + CSRF token)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from ..constants import CSRF_HEADER
from ..state.session import SessionState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdminContext:
    """Everything a request to the admin API needs."""

    endpoint: str
    csrf_token: str = ""
    session_auth: bool = True


class AdminSession:
    """
    Tracks whether the console holds a valid admin session.

    The session is restored from `GET /admin/session` and cleared on logout
    or on any authorization failure reported by the API client. Listeners
    registered through `on_change` are told about every transition.
    """

    timeout_seconds: float = 15.0
    user_agent: str = "ShumaConsole/1.0"

    def __init__(
        self,
        endpoint: str,
        http_client: Optional[httpx.AsyncClient] = None,
        on_change: Optional[Callable[[SessionState], None]] = None,
    ):
        self.endpoint = (endpoint or "").rstrip("/")
        self._client = http_client
        self._owns_client = http_client is None
        self._state = SessionState.signed_out()
        self._listeners: list[Callable[[SessionState], None]] = []
        if on_change is not None:
            self._listeners.append(on_change)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                headers={"User-Agent": self.user_agent},
                follow_redirects=True,
            )
            self._owns_client = True
        return self._client

    async def http(self) -> httpx.AsyncClient:
        """Shared HTTP client (carries the session cookie)."""
        return await self._get_client()

    async def close(self) -> None:
        """Close HTTP client if this session created it."""
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def add_listener(self, listener: Callable[[SessionState], None]) -> None:
        self._listeners.append(listener)

    def set_session(self, authenticated: bool, csrf_token: str = "") -> None:
        previous = self._state
        self._state = SessionState(authenticated=authenticated, csrf_token=csrf_token)
        if previous != self._state:
            logger.info("Admin session %s", "active" if self._state.authenticated else "cleared")
        for listener in list(self._listeners):
            listener(self.state())

    def clear(self) -> None:
        self.set_session(False)

    def state(self) -> SessionState:
        return SessionState(
            authenticated=self._state.authenticated,
            csrf_token=self._state.csrf_token,
        )

    def has_valid_api_context(self) -> bool:
        return self._state.authenticated

    def get_admin_context(self) -> Optional[AdminContext]:
        """Context for admin requests, or None when no endpoint/session is available."""
        if not self.endpoint:
            logger.warning("Unable to resolve admin API endpoint")
            return None
        if not self._state.authenticated:
            return None
        return AdminContext(endpoint=self.endpoint, csrf_token=self._state.csrf_token)

    async def restore(self) -> bool:
        """Ask the server whether the current cookie is still a valid session."""
        if not self.endpoint:
            self.set_session(False)
            return False

        client = await self._get_client()
        try:
            response = await client.get(f"{self.endpoint}/admin/session")
        except httpx.HTTPError as exc:
            logger.warning("Session restore failed: %s", exc)
            self.set_session(False)
            return False

        if not response.is_success:
            self.set_session(False)
            return False
        try:
            data = response.json()
        except ValueError:
            data = {}
        if isinstance(data, dict) and data.get("authenticated") is True:
            self.set_session(True, str(data.get("csrf_token") or ""))
            return True
        self.set_session(False)
        return False

    async def logout(self) -> None:
        """End the server session; local state is cleared even if the call fails."""
        if self.endpoint:
            client = await self._get_client()
            headers = {}
            if self._state.csrf_token:
                headers[CSRF_HEADER] = self._state.csrf_token
            try:
                await client.post(f"{self.endpoint}/admin/logout", headers=headers)
            except httpx.HTTPError as exc:
                logger.debug(f"Logout request failed: {exc}")
        self.set_session(False)
