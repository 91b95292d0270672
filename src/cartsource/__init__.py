"""
cartsource - Event-sourced cart reconciliation over an ephemeral backend.

This library provides:
- Cart events (ItemAdded, ItemRemoved, ItemUpdated) as immutable Pydantic models
- A pure projection from a session's event log to its Cart
- An in-memory session store owning the append-only logs
- A cart backend contract plus an in-memory backend whose contexts expire
- CartReconciler, which replays the log into a fresh backend context whenever
  the backend reports the old one expired
- A host-owned sweeper for idle sessions
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("cartsource")
except PackageNotFoundError:
    # Package not installed (running from source without install)
    __version__ = "0.0.0.dev0"

from cartsource.backend import CartBackend, InMemoryCartBackend
from cartsource.config import CartSourceConfig
from cartsource.events import (
    AnyCartEvent,
    CartEvent,
    ItemAdded,
    ItemKind,
    ItemRemoved,
    ItemUpdated,
    parse_event,
)
from cartsource.exceptions import (
    CartError,
    CartSourceError,
    ContextExpiredError,
    EmptyCartError,
    ErrorCode,
    InvalidQuantityError,
    InvalidRequestError,
    ItemNotFoundError,
    SessionCompletedError,
    SessionNotFoundError,
)
from cartsource.handlers import handles
from cartsource.maintenance import SessionSweeper
from cartsource.projections import (
    Cart,
    CartItem,
    CartProjector,
    OrderRecord,
    compute_tax,
    compute_totals,
    project,
)
from cartsource.reconciliation import (
    AddItemRequest,
    CartReconciler,
    ReconcilerStats,
    SessionCreated,
)
from cartsource.stores import ExperienceSession, InMemorySessionStore, SessionStore
from cartsource.wiring import CartSource

__all__ = [
    "__version__",
    # Events
    "AnyCartEvent",
    "CartEvent",
    "ItemAdded",
    "ItemKind",
    "ItemRemoved",
    "ItemUpdated",
    "parse_event",
    "handles",
    # Exceptions
    "CartError",
    "CartSourceError",
    "ContextExpiredError",
    "EmptyCartError",
    "ErrorCode",
    "InvalidQuantityError",
    "InvalidRequestError",
    "ItemNotFoundError",
    "SessionCompletedError",
    "SessionNotFoundError",
    # Projections
    "Cart",
    "CartItem",
    "CartProjector",
    "OrderRecord",
    "compute_tax",
    "compute_totals",
    "project",
    # Stores
    "ExperienceSession",
    "InMemorySessionStore",
    "SessionStore",
    # Backend
    "CartBackend",
    "InMemoryCartBackend",
    # Reconciliation
    "AddItemRequest",
    "CartReconciler",
    "ReconcilerStats",
    "SessionCreated",
    # Maintenance and wiring
    "CartSource",
    "CartSourceConfig",
    "SessionSweeper",
]
