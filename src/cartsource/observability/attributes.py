"""
Standard span attributes for cartsource.

Attribute names are shared by every component so that spans from the
session store, the backend and the reconciler can be correlated.

Example:
    >>> from cartsource.observability.attributes import ATTR_SESSION_ID
    >>>
    >>> with tracer.span(
    ...     "cartsource.reconciler.add_item",
    ...     {ATTR_SESSION_ID: session_id},
    ... ):
    ...     pass
"""

# =============================================================================
# Session Attributes
# =============================================================================

ATTR_SESSION_ID = "cartsource.session.id"
"""Experience session identifier (string)."""

ATTR_SESSION_COUNT = "cartsource.session.count"
"""Number of sessions affected by an operation, e.g. a sweep (integer)."""

# =============================================================================
# Backend Attributes
# =============================================================================

ATTR_CONTEXT_HANDLE = "cartsource.backend.context"
"""Backend context handle the operation ran against (string)."""

ATTR_BACKEND_OPERATION = "cartsource.backend.operation"
"""Backend mutation name: add_item, remove_item, update_item or checkout (string)."""

# =============================================================================
# Event Attributes
# =============================================================================

ATTR_EVENT_TYPE = "cartsource.event.type"
"""Type name of the event (e.g., 'ItemAdded')."""

ATTR_EVENT_COUNT = "cartsource.event.count"
"""Number of events involved in an operation (integer)."""

ATTR_ITEM_ID = "cartsource.item.id"
"""Cart line identifier (string)."""

ATTR_QUANTITY = "cartsource.item.quantity"
"""Quantity requested or resolved for an operation (integer)."""

# =============================================================================
# Replay Attributes
# =============================================================================

ATTR_REPLAY_REASON = "cartsource.replay.reason"
"""Why a replay ran: 'expired' or 'missing' (string)."""

ATTR_REPLAY_SKIPPED = "cartsource.replay.skipped"
"""Replay steps skipped because the backend reported the item missing (integer)."""


__all__ = [
    "ATTR_SESSION_ID",
    "ATTR_SESSION_COUNT",
    "ATTR_CONTEXT_HANDLE",
    "ATTR_BACKEND_OPERATION",
    "ATTR_EVENT_TYPE",
    "ATTR_EVENT_COUNT",
    "ATTR_ITEM_ID",
    "ATTR_QUANTITY",
    "ATTR_REPLAY_REASON",
    "ATTR_REPLAY_SKIPPED",
]
