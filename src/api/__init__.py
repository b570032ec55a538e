"""Admin API collaborators: HTTP client, payload adapters and session."""

from .client import AdminApi, AdminApiClient, AdminApiError, AdminUnauthorizedError
from .session import AdminContext, AdminSession

__all__ = [
    "AdminApi",
    "AdminApiClient",
    "AdminApiError",
    "AdminUnauthorizedError",
    "AdminContext",
    "AdminSession",
]
