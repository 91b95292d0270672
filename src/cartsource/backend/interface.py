"""
Cart backend contract.

A cart backend keeps one mutable item set per context handle. Handles are
ephemeral: once a handle has been idle longer than the backend's TTL, every
operation against it raises ContextExpiredError. Expiry is only observed on
use; nothing notifies the caller ahead of time.
"""

from abc import ABC, abstractmethod

from cartsource.projections.models import Cart, CartItem


class CartBackend(ABC):
    """
    Abstract base class for cart backends.

    Every operation taking a handle raises:
    - ContextExpiredError(handle) if the handle is unknown or idle past its TTL
    - ItemNotFoundError(item_id) from remove_item/update_item if the item is absent

    and otherwise refreshes the handle's idle clock.
    """

    @abstractmethod
    async def create_context(self) -> str:
        """Issue a fresh, empty, valid context handle. Always succeeds."""
        pass

    @abstractmethod
    async def add_item(self, handle: str, item: CartItem) -> None:
        """Add an item, merging quantity into an existing line with the same id."""
        pass

    @abstractmethod
    async def remove_item(self, handle: str, item_id: str, quantity: int | None = None) -> None:
        """
        Remove quantity units of an item.

        None, or a quantity at least the current one, removes the whole line.
        """
        pass

    @abstractmethod
    async def update_item(self, handle: str, item_id: str, quantity: int) -> None:
        """Overwrite the quantity of an existing line."""
        pass

    @abstractmethod
    async def checkout(self, handle: str) -> str:
        """Place the order for the context's cart and return the order id."""
        pass

    @abstractmethod
    async def get_cart(self, handle: str, session_id: str) -> Cart:
        """Read the context's own cart, labelled with session_id."""
        pass
