"""
In-memory session storage.

One workspace object per X-Session-Id; nothing is persisted.
"""

from __future__ import annotations

from typing import Callable, Dict, TypeVar

T = TypeVar("T")

# session_id -> workspace session
SESSIONS: Dict[str, object] = {}


def get_session(session_id: str, factory: Callable[[str], T]) -> T:
    """Return (and lazily create) the workspace for this session."""
    if session_id not in SESSIONS:
        SESSIONS[session_id] = factory(session_id)
    return SESSIONS[session_id]  # type: ignore[return-value]


def drop_session(session_id: str) -> None:
    """Forget the workspace; the next request starts a fresh one."""
    SESSIONS.pop(session_id, None)
