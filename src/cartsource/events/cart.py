"""
Concrete cart events and the tagged union used to deserialize them.
"""

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import Field, TypeAdapter

from cartsource.events.base import CartEvent


class ItemKind(str, Enum):
    """Category of a cart line."""

    DEVICE = "DEVICE"
    PLAN = "PLAN"
    ADDON = "ADDON"


class ItemAdded(CartEvent):
    """An item (or more units of an item already in the cart) was added."""

    event_type: Literal["ItemAdded"] = "ItemAdded"
    kind: ItemKind
    name: str = Field(..., min_length=1)
    unit_price: int = Field(..., ge=0, description="Unit price in minor currency units")
    quantity: int = Field(..., gt=0)


class ItemRemoved(CartEvent):
    """Units of an item were removed. The quantity is the resolved amount actually removed."""

    event_type: Literal["ItemRemoved"] = "ItemRemoved"
    quantity: int = Field(..., gt=0)


class ItemUpdated(CartEvent):
    """The quantity of an existing item was overwritten."""

    event_type: Literal["ItemUpdated"] = "ItemUpdated"
    quantity: int = Field(..., gt=0)


AnyCartEvent = Annotated[
    ItemAdded | ItemRemoved | ItemUpdated,
    Field(discriminator="event_type"),
]

_event_adapter: TypeAdapter[ItemAdded | ItemRemoved | ItemUpdated] = TypeAdapter(AnyCartEvent)


def parse_event(data: dict[str, Any]) -> ItemAdded | ItemRemoved | ItemUpdated:
    """
    Deserialize a cart event, dispatching on its ``event_type``.

    Args:
        data: Dictionary as produced by ``CartEvent.to_dict()``

    Returns:
        The concrete event instance

    Raises:
        ValidationError: If event_type is unknown or the payload is invalid

    Example:
        >>> event = parse_event({"event_type": "ItemUpdated", "item_id": "sim", "quantity": 2})
        >>> isinstance(event, ItemUpdated)
        True
    """
    return _event_adapter.validate_python(data)
