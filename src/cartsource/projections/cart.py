"""
Pure fold from a session's event log to its current cart.

The projector never looks at the backend. Given the same events and tax rate
it always produces an identical Cart, which is what lets the log stand in for
the ephemeral backend state.
"""

import logging
from collections.abc import Iterable, Sequence
from decimal import ROUND_HALF_UP, Decimal

from cartsource.config import DEFAULT_TAX_RATE, to_decimal_rate
from cartsource.events.base import CartEvent
from cartsource.events.cart import ItemAdded, ItemRemoved, ItemUpdated
from cartsource.handlers import discover_handlers, handles
from cartsource.projections.models import Cart, CartItem

logger = logging.getLogger(__name__)

# Lines keyed by item id; dict order is the display order
Lines = dict[str, CartItem]


def compute_tax(subtotal: int, tax_rate: Decimal) -> int:
    """
    Compute tax in minor units, rounding half-up.

    Example:
        >>> compute_tax(105, Decimal("0.10"))  # 10.5 -> 11
        11
    """
    return int((Decimal(subtotal) * tax_rate).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def compute_totals(items: Iterable[CartItem], tax_rate: Decimal) -> tuple[int, int, int]:
    """
    Compute (subtotal, tax, total) for a set of cart lines.

    Shared by the projector and the in-memory backend so both price carts
    the same way.
    """
    subtotal = sum(item.line_total for item in items)
    tax = compute_tax(subtotal, tax_rate)
    return subtotal, tax, subtotal + tax


class CartProjector:
    """
    Folds cart events into a Cart.

    Each event type is handled by a method marked with @handles. Handlers
    receive the working line map and mutate it; the map is local to a single
    ``project`` call, so projecting has no side effects.

    Example:
        >>> projector = CartProjector(tax_rate=Decimal("0.10"))
        >>> cart = projector.project("exp_123", events)
        >>> cart.total
        117590
    """

    def __init__(self, tax_rate: Decimal | float | str = DEFAULT_TAX_RATE) -> None:
        self._tax_rate = to_decimal_rate(tax_rate)
        self._handlers = discover_handlers(self)

    @property
    def tax_rate(self) -> Decimal:
        return self._tax_rate

    def project(self, session_id: str, events: Sequence[CartEvent]) -> Cart:
        """
        Fold events in order and price the result.

        Args:
            session_id: Session the resulting cart is labelled with
            events: Events in log order

        Returns:
            The projected Cart

        Raises:
            TypeError: If an event has no registered handler
        """
        lines: Lines = {}
        for event in events:
            handler = self._handlers.get(type(event))
            if handler is None:
                raise TypeError(f"No projection handler for event type {type(event).__name__}")
            handler(lines, event)

        items = tuple(lines.values())
        subtotal, tax, total = compute_totals(items, self._tax_rate)
        return Cart(
            session_id=session_id,
            items=items,
            subtotal=subtotal,
            tax=tax,
            total=total,
        )

    @handles(ItemAdded)
    def _on_item_added(self, lines: Lines, event: ItemAdded) -> None:
        existing = lines.get(event.item_id)
        if existing is None:
            lines[event.item_id] = CartItem(
                id=event.item_id,
                kind=event.kind,
                name=event.name,
                unit_price=event.unit_price,
                quantity=event.quantity,
            )
        else:
            lines[event.item_id] = existing.model_copy(
                update={"quantity": existing.quantity + event.quantity}
            )

    @handles(ItemRemoved)
    def _on_item_removed(self, lines: Lines, event: ItemRemoved) -> None:
        existing = lines.get(event.item_id)
        if existing is None:
            logger.debug("Ignoring removal of absent item %s", event.item_id)
            return
        remaining = existing.quantity - min(event.quantity, existing.quantity)
        if remaining <= 0:
            del lines[event.item_id]
        else:
            lines[event.item_id] = existing.model_copy(update={"quantity": remaining})

    @handles(ItemUpdated)
    def _on_item_updated(self, lines: Lines, event: ItemUpdated) -> None:
        existing = lines.get(event.item_id)
        if existing is None:
            logger.debug("Ignoring update of absent item %s", event.item_id)
            return
        lines[event.item_id] = existing.model_copy(update={"quantity": event.quantity})


def project(
    session_id: str,
    events: Sequence[CartEvent],
    tax_rate: Decimal | float | str = DEFAULT_TAX_RATE,
) -> Cart:
    """Fold events into a Cart using a one-off CartProjector."""
    return CartProjector(tax_rate).project(session_id, events)
