"""
In-memory session store implementation.

Sessions live only as long as the process. Durable storage of the event log
is deliberately not provided.
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import uuid4

from cartsource.config import DEFAULT_TAX_RATE
from cartsource.events.base import CartEvent
from cartsource.exceptions import SessionNotFoundError
from cartsource.observability import (
    ATTR_EVENT_TYPE,
    ATTR_SESSION_COUNT,
    ATTR_SESSION_ID,
    Tracer,
    create_tracer,
)
from cartsource.projections.cart import CartProjector
from cartsource.projections.models import Cart
from cartsource.stores.interface import ExperienceSession, SessionStore
from cartsource.types import Clock, utc_now

logger = logging.getLogger(__name__)


@dataclass
class _SessionRecord:
    """Mutable per-session state; never handed out directly."""

    session_id: str
    last_activity_at: datetime
    backend_context_ref: str | None = None
    events: list[CartEvent] = field(default_factory=list)
    completed: bool = False

    def snapshot(self) -> ExperienceSession:
        return ExperienceSession(
            session_id=self.session_id,
            backend_context_ref=self.backend_context_ref,
            last_activity_at=self.last_activity_at,
            events=tuple(self.events),
            completed=self.completed,
        )


class InMemorySessionStore(SessionStore):
    """
    In-memory implementation of the session store.

    Thread-safety:
        All access to the session map goes through an asyncio.Lock, so the
        map stays consistent under any number of concurrent requests on one
        event loop. Interleaving of multiple requests against the *same*
        session is the caller's concern (see CartReconciler).

    Example:
        >>> store = InMemorySessionStore(tax_rate=Decimal("0.10"))
        >>> session_id = await store.create_session()
        >>> await store.append_event(session_id, ItemAdded(...))
        >>> cart = store.project(session_id, await store.get_events(session_id))

    Attributes:
        _sessions: Session records keyed by session id
        _projector: Pure fold used by project()
        _clock: Source of the current time for activity bookkeeping
    """

    def __init__(
        self,
        *,
        tax_rate: Decimal | float | str = DEFAULT_TAX_RATE,
        clock: Clock | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize an empty in-memory session store.

        Args:
            tax_rate: Tax rate used when projecting carts
            clock: Callable returning the current UTC time (default: datetime.now(UTC))
            tracer: Optional custom Tracer instance
            enable_tracing: If True, emit spans (ignored if tracer is provided)
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._projector = CartProjector(tax_rate)
        self._clock = clock or utc_now
        self._sessions: dict[str, _SessionRecord] = {}
        self._lock: asyncio.Lock = asyncio.Lock()

    def _require(self, session_id: str) -> _SessionRecord:
        """Look up a record; caller must hold the lock."""
        record = self._sessions.get(session_id)
        if record is None:
            raise SessionNotFoundError(session_id)
        return record

    def _new_session_id(self) -> str:
        """Generate an unused session id; caller must hold the lock."""
        while True:
            session_id = f"exp_{uuid4().hex[:10]}"
            if session_id not in self._sessions:
                return session_id

    async def create_session(self) -> str:
        with self._tracer.span("cartsource.session_store.create_session"):
            async with self._lock:
                session_id = self._new_session_id()
                self._sessions[session_id] = _SessionRecord(
                    session_id=session_id,
                    last_activity_at=self._clock(),
                )
            logger.info("Created experience session %s", session_id)
            return session_id

    async def get_session(self, session_id: str) -> ExperienceSession:
        async with self._lock:
            record = self._require(session_id)
            record.last_activity_at = self._clock()
            return record.snapshot()

    async def append_event(self, session_id: str, event: CartEvent) -> None:
        with self._tracer.span(
            "cartsource.session_store.append_event",
            {
                ATTR_SESSION_ID: session_id,
                ATTR_EVENT_TYPE: event.event_type,
            },
        ):
            async with self._lock:
                record = self._require(session_id)
                record.events.append(event)
                record.last_activity_at = self._clock()
                count = len(record.events)
            logger.debug(
                "Appended %s to session %s",
                event.event_type,
                session_id,
                extra={"session_id": session_id, "event_count": count},
            )

    async def get_events(self, session_id: str) -> list[CartEvent]:
        async with self._lock:
            return list(self._require(session_id).events)

    async def set_backend_context_ref(self, session_id: str, handle: str | None) -> None:
        async with self._lock:
            record = self._require(session_id)
            previous = record.backend_context_ref
            record.backend_context_ref = handle
        logger.debug(
            "Session %s backend context %s -> %s",
            session_id,
            previous,
            handle,
        )

    async def mark_completed(self, session_id: str) -> None:
        async with self._lock:
            record = self._require(session_id)
            record.completed = True
            record.last_activity_at = self._clock()

    async def sweep_expired_sessions(self, max_idle: timedelta, now: datetime) -> list[str]:
        with self._tracer.span("cartsource.session_store.sweep_expired_sessions") as span:
            async with self._lock:
                expired = [
                    session_id
                    for session_id, record in self._sessions.items()
                    if now - record.last_activity_at > max_idle
                ]
                for session_id in expired:
                    del self._sessions[session_id]
                remaining = len(self._sessions)

            if span is not None:
                span.set_attribute(ATTR_SESSION_COUNT, len(expired))
            if expired:
                logger.info(
                    "Swept %d idle session(s)",
                    len(expired),
                    extra={"swept": len(expired), "remaining": remaining},
                )
            return expired

    def project(self, session_id: str, events: Sequence[CartEvent]) -> Cart:
        return self._projector.project(session_id, events)

    # Additional methods for testing and maintenance support

    async def has_session(self, session_id: str) -> bool:
        """Check whether a session exists without touching its activity time."""
        async with self._lock:
            return session_id in self._sessions

    async def session_count(self) -> int:
        """Get the number of live sessions."""
        async with self._lock:
            return len(self._sessions)

    async def clear(self) -> None:
        """Remove every session. Useful for resetting state between tests."""
        async with self._lock:
            self._sessions.clear()
