"""Cart event definitions."""

from cartsource.events.base import CartEvent
from cartsource.events.cart import (
    AnyCartEvent,
    ItemAdded,
    ItemKind,
    ItemRemoved,
    ItemUpdated,
    parse_event,
)

__all__ = [
    "AnyCartEvent",
    "CartEvent",
    "ItemAdded",
    "ItemKind",
    "ItemRemoved",
    "ItemUpdated",
    "parse_event",
]
