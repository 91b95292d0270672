"""
In-memory cart backend.

Simulates a remote cart service whose contexts silently expire after a period
of inactivity. Used by tests and by hosts that embed cartsource without a
real backend.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

from cartsource.backend.interface import CartBackend
from cartsource.config import DEFAULT_BACKEND_CONTEXT_TTL, DEFAULT_TAX_RATE, to_decimal_rate
from cartsource.exceptions import ContextExpiredError, ItemNotFoundError
from cartsource.observability import (
    ATTR_BACKEND_OPERATION,
    ATTR_CONTEXT_HANDLE,
    ATTR_ITEM_ID,
    Tracer,
    create_tracer,
)
from cartsource.projections.cart import compute_totals
from cartsource.projections.models import Cart, CartItem
from cartsource.types import Clock, utc_now

logger = logging.getLogger(__name__)

# Far enough in the past to exceed any TTL
_EPOCH = datetime.min.replace(tzinfo=UTC)


@dataclass
class _BackendContext:
    handle: str
    created_at: datetime
    last_used_at: datetime
    items: dict[str, CartItem] = field(default_factory=dict)


class InMemoryCartBackend(CartBackend):
    """
    In-memory implementation of the cart backend contract.

    Expiry is checked lazily: a context past its TTL is discarded the first
    time it is used, at which point ContextExpiredError is raised. No timers
    run in the background.

    Example:
        >>> backend = InMemoryCartBackend(context_ttl=timedelta(minutes=5))
        >>> handle = await backend.create_context()
        >>> await backend.add_item(handle, item)
        >>> backend.expire_context(handle)
        >>> await backend.add_item(handle, item)  # raises ContextExpiredError
    """

    def __init__(
        self,
        *,
        context_ttl: timedelta = DEFAULT_BACKEND_CONTEXT_TTL,
        tax_rate: Decimal | float | str = DEFAULT_TAX_RATE,
        clock: Clock | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the backend with no contexts.

        Args:
            context_ttl: Idle time after which a context expires
            tax_rate: Tax rate used by get_cart
            clock: Callable returning the current UTC time
            tracer: Optional custom Tracer instance
            enable_tracing: If True, emit spans (ignored if tracer is provided)
        """
        if context_ttl <= timedelta(0):
            raise ValueError(f"context_ttl must be positive, got {context_ttl}")
        self._context_ttl = context_ttl
        self._tax_rate = to_decimal_rate(tax_rate)
        self._clock = clock or utc_now
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._contexts: dict[str, _BackendContext] = {}
        self._lock: asyncio.Lock = asyncio.Lock()

    @property
    def context_ttl(self) -> timedelta:
        return self._context_ttl

    def _get_valid_context(self, handle: str, now: datetime) -> _BackendContext:
        """Return a live context or raise ContextExpiredError; caller must hold the lock."""
        context = self._contexts.get(handle)
        if context is None:
            raise ContextExpiredError(handle)
        if now - context.last_used_at > self._context_ttl:
            del self._contexts[handle]
            logger.debug("Backend context %s expired after idling", handle)
            raise ContextExpiredError(handle)
        return context

    async def create_context(self) -> str:
        async with self._lock:
            while True:
                handle = f"ctx_{uuid4().hex[:10]}"
                if handle not in self._contexts:
                    break
            now = self._clock()
            self._contexts[handle] = _BackendContext(
                handle=handle,
                created_at=now,
                last_used_at=now,
            )
        logger.debug("Created backend context %s", handle)
        return handle

    async def add_item(self, handle: str, item: CartItem) -> None:
        with self._tracer.span(
            "cartsource.backend.add_item",
            {
                ATTR_CONTEXT_HANDLE: handle,
                ATTR_ITEM_ID: item.id,
                ATTR_BACKEND_OPERATION: "add_item",
            },
        ):
            async with self._lock:
                now = self._clock()
                context = self._get_valid_context(handle, now)
                existing = context.items.get(item.id)
                if existing is None:
                    context.items[item.id] = item
                else:
                    context.items[item.id] = existing.model_copy(
                        update={"quantity": existing.quantity + item.quantity}
                    )
                context.last_used_at = now

    async def remove_item(self, handle: str, item_id: str, quantity: int | None = None) -> None:
        with self._tracer.span(
            "cartsource.backend.remove_item",
            {
                ATTR_CONTEXT_HANDLE: handle,
                ATTR_ITEM_ID: item_id,
                ATTR_BACKEND_OPERATION: "remove_item",
            },
        ):
            async with self._lock:
                now = self._clock()
                context = self._get_valid_context(handle, now)
                existing = context.items.get(item_id)
                if existing is None:
                    raise ItemNotFoundError(item_id)
                if quantity is None or quantity >= existing.quantity:
                    del context.items[item_id]
                else:
                    context.items[item_id] = existing.model_copy(
                        update={"quantity": existing.quantity - quantity}
                    )
                context.last_used_at = now

    async def update_item(self, handle: str, item_id: str, quantity: int) -> None:
        with self._tracer.span(
            "cartsource.backend.update_item",
            {
                ATTR_CONTEXT_HANDLE: handle,
                ATTR_ITEM_ID: item_id,
                ATTR_BACKEND_OPERATION: "update_item",
            },
        ):
            async with self._lock:
                now = self._clock()
                context = self._get_valid_context(handle, now)
                existing = context.items.get(item_id)
                if existing is None:
                    raise ItemNotFoundError(item_id)
                context.items[item_id] = existing.model_copy(update={"quantity": quantity})
                context.last_used_at = now

    async def checkout(self, handle: str) -> str:
        with self._tracer.span(
            "cartsource.backend.checkout",
            {ATTR_CONTEXT_HANDLE: handle, ATTR_BACKEND_OPERATION: "checkout"},
        ):
            async with self._lock:
                now = self._clock()
                context = self._get_valid_context(handle, now)
                context.last_used_at = now
                line_count = len(context.items)
            order_id = f"ord_{uuid4().hex[:10]}"
            logger.info(
                "Backend context %s checked out as %s",
                handle,
                order_id,
                extra={"handle": handle, "order_id": order_id, "lines": line_count},
            )
            return order_id

    async def get_cart(self, handle: str, session_id: str) -> Cart:
        async with self._lock:
            now = self._clock()
            context = self._get_valid_context(handle, now)
            context.last_used_at = now
            items = tuple(context.items.values())
        subtotal, tax, total = compute_totals(items, self._tax_rate)
        return Cart(
            session_id=session_id,
            items=items,
            subtotal=subtotal,
            tax=tax,
            total=total,
        )

    # Additional methods for testing and maintenance support

    def expire_context(self, handle: str) -> None:
        """
        Age a context past its TTL so that its next use raises ContextExpiredError.

        The context is not removed here; like a real idle timeout, the expiry
        is only observed when the handle is next used.
        """
        context = self._contexts.get(handle)
        if context is not None:
            context.last_used_at = _EPOCH

    def has_context(self, handle: str) -> bool:
        """Check whether a context is still held (it may already be past its TTL)."""
        return handle in self._contexts

    def context_count(self) -> int:
        return len(self._contexts)

    async def cleanup(self) -> int:
        """
        Discard every context idle past its TTL.

        Returns:
            Number of contexts discarded
        """
        async with self._lock:
            now = self._clock()
            expired = [
                handle
                for handle, context in self._contexts.items()
                if now - context.last_used_at > self._context_ttl
            ]
            for handle in expired:
                del self._contexts[handle]
        return len(expired)
