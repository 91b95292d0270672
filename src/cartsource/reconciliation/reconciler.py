"""
Reconciliation between the session event log and an ephemeral cart backend.

The CartReconciler is the only component that talks to both the session
store and the backend. Every mutation goes through a recovery-wrapped call:

1. Resolve the session's backend context (create one if there is none).
2. Attempt the mutation.
3. If the backend reports the context expired, create a new context, replay
   the whole event log into it, and retry the mutation exactly once.
4. Append the event only after the backend accepted the mutation.

The log therefore never records an operation the backend did not accept, and
backend context loss is invisible to callers.
"""

import asyncio
import logging
import weakref
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from cartsource.backend.interface import CartBackend
from cartsource.events.base import CartEvent
from cartsource.events.cart import ItemAdded, ItemRemoved, ItemUpdated
from cartsource.exceptions import (
    ContextExpiredError,
    EmptyCartError,
    InvalidQuantityError,
    InvalidRequestError,
    ItemNotFoundError,
    SessionCompletedError,
)
from cartsource.observability import (
    ATTR_CONTEXT_HANDLE,
    ATTR_EVENT_COUNT,
    ATTR_ITEM_ID,
    ATTR_QUANTITY,
    ATTR_REPLAY_REASON,
    ATTR_REPLAY_SKIPPED,
    ATTR_SESSION_ID,
    Tracer,
    create_tracer,
)
from cartsource.projections.models import Cart, CartItem, OrderRecord
from cartsource.reconciliation.models import AddItemRequest, SessionCreated
from cartsource.stores.interface import ExperienceSession, SessionStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

# A backend mutation bound to everything but the context handle
Mutation = Callable[[str], Awaitable[T]]


@dataclass
class ReconcilerStats:
    """Statistics for reconciliation activity.

    Attributes:
        contexts_created: Backend contexts created, for any reason
        expiries_detected: Mutations that hit ContextExpiredError on the first attempt
        replay_passes: Replays that re-issued at least one logged event
        events_replayed: Logged events re-issued to a backend across all replays
        replay_steps_skipped: Replay steps skipped because the backend reported the item missing
        failed_replays: Replays aborted by an unexpected backend error
        failed_retries: Retries after a replay that failed again
    """

    contexts_created: int = 0
    expiries_detected: int = 0
    replay_passes: int = 0
    events_replayed: int = 0
    replay_steps_skipped: int = 0
    failed_replays: int = 0
    failed_retries: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "contexts_created": self.contexts_created,
            "expiries_detected": self.expiries_detected,
            "replay_passes": self.replay_passes,
            "events_replayed": self.events_replayed,
            "replay_steps_skipped": self.replay_steps_skipped,
            "failed_replays": self.failed_replays,
            "failed_retries": self.failed_retries,
        }


def _validate_quantity(quantity: Any) -> int:
    """Return quantity if it is a positive int, else raise InvalidQuantityError."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantityError(quantity)
    return quantity


class CartReconciler:
    """
    Client-facing cart operations over a session store and a cart backend.

    Mutations on one session are serialized with a per-session asyncio.Lock
    held from context resolution until the event is appended, so concurrent
    requests against the same session cannot both act on a stale projection.
    Requests for different sessions run concurrently.

    Example:
        >>> store = InMemorySessionStore()
        >>> backend = InMemoryCartBackend()
        >>> reconciler = CartReconciler(store, backend)
        >>> created = await reconciler.create_session()
        >>> cart = await reconciler.add_item(
        ...     created.session_id,
        ...     {"item_id": "iphone15", "kind": "DEVICE", "name": "iPhone 15",
        ...      "unit_price": 99900, "quantity": 1},
        ... )
    """

    def __init__(
        self,
        store: SessionStore,
        backend: CartBackend,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the reconciler.

        Args:
            store: Session store holding the event logs
            backend: Cart backend whose contexts may expire
            tracer: Optional custom Tracer instance
            enable_tracing: If True, emit spans (ignored if tracer is provided)
        """
        self._store = store
        self._backend = backend
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._stats = ReconcilerStats()
        self._session_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @property
    def stats(self) -> ReconcilerStats:
        return self._stats

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._session_locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._session_locks[session_id] = lock
        return lock

    # =========================================================================
    # Client-facing operations
    # =========================================================================

    async def create_session(self) -> SessionCreated:
        """Create a new experience session with an empty cart."""
        session_id = await self._store.create_session()
        return SessionCreated(
            session_id=session_id,
            cart=self._store.project(session_id, []),
        )

    async def get_cart(self, session_id: str) -> Cart:
        """
        Get the current cart by folding the session's log. Never touches the backend.

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        session = await self._store.get_session(session_id)
        return self._store.project(session_id, session.events)

    async def add_item(self, session_id: str, request: AddItemRequest | dict[str, Any]) -> Cart:
        """
        Add an item to the cart.

        Args:
            session_id: Target session
            request: AddItemRequest or a dict validated into one

        Returns:
            The cart after the addition

        Raises:
            InvalidQuantityError: If quantity is not a positive integer
            InvalidRequestError: If any other field is invalid
            SessionNotFoundError: If the session does not exist
            SessionCompletedError: If the session has been checked out
        """
        parsed = AddItemRequest.parse(request)
        item = parsed.to_cart_item()

        with self._tracer.span(
            "cartsource.reconciler.add_item",
            {
                ATTR_SESSION_ID: session_id,
                ATTR_ITEM_ID: parsed.item_id,
                ATTR_QUANTITY: parsed.quantity,
            },
        ):
            async with self._lock_for(session_id):
                await self._require_active(session_id)
                event = ItemAdded(
                    item_id=parsed.item_id,
                    kind=parsed.kind,
                    name=parsed.name,
                    unit_price=parsed.unit_price,
                    quantity=parsed.quantity,
                )
                await self._execute_with_recovery(
                    session_id,
                    lambda handle: self._backend.add_item(handle, item),
                )
                await self._store.append_event(session_id, event)
                return await self._current_cart(session_id)

    async def remove_item(self, session_id: str, item_id: str, quantity: int | None = None) -> Cart:
        """
        Remove some or all units of an item.

        The amount removed is min(quantity, current quantity); omitting
        quantity removes the whole line.

        Raises:
            InvalidQuantityError: If quantity is given and not a positive integer
            InvalidRequestError: If item_id is empty
            SessionNotFoundError: If the session does not exist
            SessionCompletedError: If the session has been checked out
            ItemNotFoundError: If the item is not in the cart
        """
        self._validate_item_id(item_id)
        if quantity is not None:
            _validate_quantity(quantity)

        with self._tracer.span(
            "cartsource.reconciler.remove_item",
            {ATTR_SESSION_ID: session_id, ATTR_ITEM_ID: item_id},
        ):
            async with self._lock_for(session_id):
                session = await self._require_active(session_id)
                existing = self._require_item(session, item_id)
                resolved = existing.quantity
                if quantity is not None:
                    resolved = min(quantity, existing.quantity)

                event = ItemRemoved(item_id=item_id, quantity=resolved)
                await self._execute_with_recovery(
                    session_id,
                    lambda handle: self._backend.remove_item(handle, item_id, resolved),
                )
                await self._store.append_event(session_id, event)
                return await self._current_cart(session_id)

    async def update_item(self, session_id: str, item_id: str, quantity: int) -> Cart:
        """
        Overwrite the quantity of an item already in the cart.

        Raises:
            InvalidRequestError: If quantity is missing or item_id is empty
            InvalidQuantityError: If quantity is not a positive integer
            SessionNotFoundError: If the session does not exist
            SessionCompletedError: If the session has been checked out
            ItemNotFoundError: If the item is not in the cart
        """
        self._validate_item_id(item_id)
        if quantity is None:
            raise InvalidRequestError("Quantity is required", field="quantity")
        _validate_quantity(quantity)

        with self._tracer.span(
            "cartsource.reconciler.update_item",
            {ATTR_SESSION_ID: session_id, ATTR_ITEM_ID: item_id, ATTR_QUANTITY: quantity},
        ):
            async with self._lock_for(session_id):
                session = await self._require_active(session_id)
                self._require_item(session, item_id)

                event = ItemUpdated(item_id=item_id, quantity=quantity)
                await self._execute_with_recovery(
                    session_id,
                    lambda handle: self._backend.update_item(handle, item_id, quantity),
                )
                await self._store.append_event(session_id, event)
                return await self._current_cart(session_id)

    async def checkout(self, session_id: str) -> OrderRecord:
        """
        Place the order and close the session.

        Returns:
            The order id together with the final cart

        Raises:
            SessionNotFoundError: If the session does not exist
            SessionCompletedError: If the session has already been checked out
            EmptyCartError: If the cart has no items
        """
        with self._tracer.span("cartsource.reconciler.checkout", {ATTR_SESSION_ID: session_id}):
            async with self._lock_for(session_id):
                session = await self._require_active(session_id)
                cart = self._store.project(session_id, session.events)
                if cart.is_empty:
                    raise EmptyCartError(session_id)

                order_id = await self._execute_with_recovery(session_id, self._backend.checkout)
                await self._store.mark_completed(session_id)

            logger.info(
                "Session %s checked out as order %s",
                session_id,
                order_id,
                extra={"session_id": session_id, "order_id": order_id, "total": cart.total},
            )
            return OrderRecord(order_id=order_id, **cart.model_dump())

    # =========================================================================
    # Guards
    # =========================================================================

    @staticmethod
    def _validate_item_id(item_id: str) -> None:
        if not isinstance(item_id, str) or not item_id:
            raise InvalidRequestError("Item ID is required", field="item_id")

    async def _require_active(self, session_id: str) -> ExperienceSession:
        session = await self._store.get_session(session_id)
        if session.completed:
            raise SessionCompletedError(session_id)
        return session

    def _require_item(self, session: ExperienceSession, item_id: str) -> CartItem:
        cart = self._store.project(session.session_id, session.events)
        item = cart.get_item(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    async def _current_cart(self, session_id: str) -> Cart:
        return self._store.project(session_id, await self._store.get_events(session_id))

    # =========================================================================
    # Recovery-wrapped call
    # =========================================================================

    async def _execute_with_recovery(self, session_id: str, mutation: Mutation[T]) -> T:
        """
        Run a backend mutation, rebuilding an expired context at most once.

        Args:
            session_id: Session whose context the mutation targets
            mutation: Callable taking a context handle and performing the mutation

        Returns:
            Whatever the mutation returns

        Raises:
            ContextExpiredError: If the retry after a replay also finds the context expired
            Exception: Any non-expiry backend error, unchanged
        """
        handle = await self._ensure_context(session_id)
        try:
            return await mutation(handle)
        except ContextExpiredError:
            self._stats.expiries_detected += 1
            logger.info(
                "Backend context %s expired for session %s; rebuilding",
                handle,
                session_id,
                extra={"session_id": session_id, "handle": handle},
            )
            await self._store.set_backend_context_ref(session_id, None)

        handle = await self._rebuild_context(session_id, reason="expired")
        try:
            return await mutation(handle)
        except ContextExpiredError:
            self._stats.failed_retries += 1
            logger.warning(
                "Retry for session %s failed: fresh context %s already expired",
                session_id,
                handle,
                extra={"session_id": session_id, "handle": handle},
            )
            raise

    async def _ensure_context(self, session_id: str) -> str:
        """Return the session's backend handle, creating (and back-filling) one if needed."""
        session = await self._store.get_session(session_id)
        if session.backend_context_ref is not None:
            return session.backend_context_ref
        return await self._rebuild_context(session_id, reason="missing")

    async def _rebuild_context(self, session_id: str, reason: str) -> str:
        """
        Create a new backend context for a session and replay its log into it.

        On any replay failure the stored handle is cleared again, so the next
        request starts from a fresh context instead of a half-replayed one.
        """
        handle = await self._backend.create_context()
        self._stats.contexts_created += 1
        await self._store.set_backend_context_ref(session_id, handle)

        try:
            await self._replay(session_id, handle, reason)
        except Exception:
            self._stats.failed_replays += 1
            await self._store.set_backend_context_ref(session_id, None)
            logger.warning(
                "Replay into context %s for session %s failed",
                handle,
                session_id,
                exc_info=True,
                extra={"session_id": session_id, "handle": handle},
            )
            raise
        return handle

    async def _replay(self, session_id: str, handle: str, reason: str) -> None:
        """
        Re-issue every logged event, in order, against a fresh context.

        ItemNotFoundError on a remove/update step is skipped: a later
        event in the same log may already account for the item being gone.
        """
        events = await self._store.get_events(session_id)
        if not events:
            return

        with self._tracer.span(
            "cartsource.reconciler.replay",
            {
                ATTR_SESSION_ID: session_id,
                ATTR_CONTEXT_HANDLE: handle,
                ATTR_EVENT_COUNT: len(events),
                ATTR_REPLAY_REASON: reason,
            },
        ) as span:
            skipped = 0
            for event in events:
                try:
                    await self._apply_to_backend(handle, event)
                except ItemNotFoundError:
                    if isinstance(event, ItemAdded):
                        raise
                    skipped += 1
                    logger.warning(
                        "Skipping replay of %s for session %s: item %s not in backend context",
                        event.event_type,
                        session_id,
                        event.item_id,
                        extra={"session_id": session_id, "event_id": str(event.event_id)},
                    )

            self._stats.replay_passes += 1
            self._stats.events_replayed += len(events)
            self._stats.replay_steps_skipped += skipped
            if span is not None:
                span.set_attribute(ATTR_REPLAY_SKIPPED, skipped)

        logger.info(
            "Replayed %d event(s) for session %s into context %s",
            len(events),
            session_id,
            handle,
            extra={
                "session_id": session_id,
                "handle": handle,
                "reason": reason,
                "skipped": skipped,
            },
        )

    async def _apply_to_backend(self, handle: str, event: CartEvent) -> None:
        """Issue the backend mutation corresponding to one logged event."""
        if isinstance(event, ItemAdded):
            await self._backend.add_item(
                handle,
                CartItem(
                    id=event.item_id,
                    kind=event.kind,
                    name=event.name,
                    unit_price=event.unit_price,
                    quantity=event.quantity,
                ),
            )
        elif isinstance(event, ItemRemoved):
            await self._backend.remove_item(handle, event.item_id, event.quantity)
        elif isinstance(event, ItemUpdated):
            await self._backend.update_item(handle, event.item_id, event.quantity)
        else:
            raise TypeError(f"Cannot replay event type {type(event).__name__}")
