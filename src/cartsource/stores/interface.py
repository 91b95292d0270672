"""
Session store interface and core data structures.

The session store owns each experience session's append-only event log,
which is the source of truth for the cart. Backend context handles stored
alongside the log are disposable and may be replaced at any time.

This module provides:
- ExperienceSession: Immutable snapshot of a session
- SessionStore: Abstract base class for session store implementations
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from cartsource.events.base import CartEvent
from cartsource.projections.models import Cart


@dataclass(frozen=True)
class ExperienceSession:
    """
    Snapshot of an experience session.

    Attributes:
        session_id: Caller-stable session identifier
        backend_context_ref: Last known backend context handle, or None
        last_activity_at: Last time the session was read or written (UTC)
        events: The event log in append order
        completed: True once checkout has succeeded; terminal

    Example:
        >>> session = await store.get_session(session_id)
        >>> if session.completed:
        ...     raise SessionCompletedError(session.session_id)
    """

    session_id: str
    backend_context_ref: str | None
    last_activity_at: datetime
    events: tuple[CartEvent, ...] = field(default_factory=tuple)
    completed: bool = False

    @property
    def event_count(self) -> int:
        return len(self.events)

    @property
    def has_backend_context(self) -> bool:
        return self.backend_context_ref is not None


class SessionStore(ABC):
    """
    Abstract base class for session stores.

    Implementations must keep the session map itself consistent under
    concurrent access (no lost or duplicated sessions). Ordering of
    concurrent writes to the same session is left to the caller.
    """

    @abstractmethod
    async def create_session(self) -> str:
        """
        Allocate a new session with an empty log and no backend handle.

        Returns:
            The new session id
        """
        pass

    @abstractmethod
    async def get_session(self, session_id: str) -> ExperienceSession:
        """
        Get a snapshot of a session and refresh its last activity time.

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        pass

    @abstractmethod
    async def append_event(self, session_id: str, event: CartEvent) -> None:
        """
        Append an event to the session log and refresh its last activity time.

        Callers must not append to completed sessions.

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        pass

    @abstractmethod
    async def get_events(self, session_id: str) -> list[CartEvent]:
        """
        Get a copy of the session's event log in append order.

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        pass

    @abstractmethod
    async def set_backend_context_ref(self, session_id: str, handle: str | None) -> None:
        """
        Record the backend context handle for a session (None clears it).

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        pass

    @abstractmethod
    async def mark_completed(self, session_id: str) -> None:
        """
        Mark a session as checked out. The flag never reverts.

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        pass

    @abstractmethod
    async def sweep_expired_sessions(self, max_idle: timedelta, now: datetime) -> list[str]:
        """
        Remove sessions idle for longer than max_idle as of now.

        Args:
            max_idle: Idle threshold; sessions strictly older are removed
            now: Reference time for the idle computation

        Returns:
            Ids of the removed sessions
        """
        pass

    @abstractmethod
    def project(self, session_id: str, events: Sequence[CartEvent]) -> Cart:
        """Fold events into a Cart. Pure: no I/O and no state changes."""
        pass
