"""
Read models produced by folding a session's event log.

None of these are stored: they are recomputed from the log on every read.
All monetary amounts are integers in minor currency units.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from cartsource.events.cart import ItemKind


class CartItem(BaseModel):
    """A single cart line. Quantity is always positive."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    kind: ItemKind
    name: str
    unit_price: int = Field(..., ge=0)
    quantity: int = Field(..., gt=0)

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity


class Cart(BaseModel):
    """
    Current cart state for an experience session.

    Attributes:
        session_id: The experience session this cart belongs to
        items: Cart lines in the order they first appeared
        subtotal: Sum of unit_price * quantity over all lines
        tax: round(subtotal * tax_rate), rounded half-up
        total: subtotal + tax
    """

    model_config = ConfigDict(frozen=True)

    session_id: str
    items: tuple[CartItem, ...] = ()
    subtotal: int = 0
    tax: int = 0
    total: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.items

    def get_item(self, item_id: str) -> CartItem | None:
        """Return the line for item_id, or None if the item is not in the cart."""
        for item in self.items:
            if item.id == item_id:
                return item
        return None


class OrderRecord(Cart):
    """The final cart of a checked-out session together with its backend order id."""

    order_id: str
    status: Literal["COMPLETED"] = "COMPLETED"

