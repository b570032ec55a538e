"""In-memory console state: drafts, views, invalidation and snapshots."""

from .canonical import UNSET, canonicalize
from .drafts import DraftStore
from .invalidation import INVALIDATION_SCOPES, InvalidationRouter
from .session import SessionState
from .snapshots import SnapshotCache
from .views import ViewStateMachine, ViewStatus

__all__ = [
    "UNSET",
    "canonicalize",
    "DraftStore",
    "INVALIDATION_SCOPES",
    "InvalidationRouter",
    "SessionState",
    "SnapshotCache",
    "ViewStateMachine",
    "ViewStatus",
]
