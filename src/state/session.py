"""Admin session state shared by the coordinator and scheduler."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class SessionState:
    """Authenticated flag plus the CSRF token for mutating requests."""

    authenticated: bool = False
    csrf_token: str = ""

    def __post_init__(self):
        self.authenticated = self.authenticated is True
        self.csrf_token = str(self.csrf_token or "") if self.authenticated else ""

    @classmethod
    def signed_out(cls) -> "SessionState":
        return cls(authenticated=False, csrf_token="")
