"""
Unit tests for the InMemoryCartBackend.

Tests cover:
- Context creation and item mutations
- Lazy TTL expiry (checked on use, no timers)
- Forced expiry for tests
- Checkout and cleanup
"""

from datetime import timedelta

import pytest

from cartsource.backend import InMemoryCartBackend
from cartsource.events import ItemKind
from cartsource.exceptions import ContextExpiredError, ItemNotFoundError
from cartsource.projections import CartItem
from cartsource.testing import ManualClock


def line(item_id: str, quantity: int = 1, unit_price: int = 1000) -> CartItem:
    return CartItem(
        id=item_id,
        kind=ItemKind.DEVICE,
        name=item_id,
        unit_price=unit_price,
        quantity=quantity,
    )


async def quantity_of(backend: InMemoryCartBackend, handle: str, item_id: str) -> int | None:
    item = (await backend.get_cart(handle, "exp_1")).get_item(item_id)
    return None if item is None else item.quantity


class TestConstruction:
    def test_rejects_non_positive_ttl(self) -> None:
        with pytest.raises(ValueError, match="context_ttl"):
            InMemoryCartBackend(context_ttl=timedelta(0))

    def test_exposes_ttl(self, backend: InMemoryCartBackend) -> None:
        assert backend.context_ttl == timedelta(minutes=5)


class TestMutations:
    @pytest.mark.asyncio
    async def test_add_merges_quantities(self, backend: InMemoryCartBackend) -> None:
        handle = await backend.create_context()
        await backend.add_item(handle, line("a", 2))
        await backend.add_item(handle, line("a", 1))

        cart = await backend.get_cart(handle, "exp_1")
        assert cart.get_item("a").quantity == 3  # type: ignore[union-attr]

    @pytest.mark.asyncio
    async def test_partial_and_full_remove(self, backend: InMemoryCartBackend) -> None:
        handle = await backend.create_context()
        await backend.add_item(handle, line("a", 3))

        await backend.remove_item(handle, "a", 1)
        assert await quantity_of(backend, handle, "a") == 2

        await backend.remove_item(handle, "a")
        assert (await backend.get_cart(handle, "exp_1")).is_empty

    @pytest.mark.asyncio
    async def test_remove_more_than_present_drops_line(self, backend: InMemoryCartBackend) -> None:
        handle = await backend.create_context()
        await backend.add_item(handle, line("a", 2))
        await backend.remove_item(handle, "a", 10)
        assert (await backend.get_cart(handle, "exp_1")).is_empty

    @pytest.mark.asyncio
    async def test_remove_absent_item_raises(self, backend: InMemoryCartBackend) -> None:
        handle = await backend.create_context()
        with pytest.raises(ItemNotFoundError):
            await backend.remove_item(handle, "ghost", 1)

    @pytest.mark.asyncio
    async def test_update_overwrites_quantity(self, backend: InMemoryCartBackend) -> None:
        handle = await backend.create_context()
        await backend.add_item(handle, line("a", 2))
        await backend.update_item(handle, "a", 5)
        assert await quantity_of(backend, handle, "a") == 5

    @pytest.mark.asyncio
    async def test_update_absent_item_raises(self, backend: InMemoryCartBackend) -> None:
        handle = await backend.create_context()
        with pytest.raises(ItemNotFoundError):
            await backend.update_item(handle, "ghost", 2)

    @pytest.mark.asyncio
    async def test_get_cart_prices_lines(self, backend: InMemoryCartBackend) -> None:
        handle = await backend.create_context()
        await backend.add_item(handle, line("iphone15", unit_price=99900))
        await backend.add_item(handle, line("unlimited", unit_price=7000))

        cart = await backend.get_cart(handle, "exp_1")
        assert (cart.subtotal, cart.tax, cart.total) == (106900, 10690, 117590)

    @pytest.mark.asyncio
    async def test_contexts_are_isolated(self, backend: InMemoryCartBackend) -> None:
        first = await backend.create_context()
        second = await backend.create_context()
        await backend.add_item(first, line("a"))

        assert first != second
        assert (await backend.get_cart(second, "exp_1")).is_empty


class TestExpiry:
    @pytest.mark.asyncio
    async def test_unknown_handle_is_expired(self, backend: InMemoryCartBackend) -> None:
        with pytest.raises(ContextExpiredError) as exc_info:
            await backend.add_item("ctx_unknown", line("a"))
        assert exc_info.value.handle == "ctx_unknown"

    @pytest.mark.asyncio
    async def test_idle_past_ttl_expires_on_use(
        self, backend: InMemoryCartBackend, clock: ManualClock
    ) -> None:
        handle = await backend.create_context()
        clock.advance(minutes=5, seconds=1)

        assert backend.has_context(handle)
        with pytest.raises(ContextExpiredError):
            await backend.add_item(handle, line("a"))
        assert not backend.has_context(handle)

    @pytest.mark.asyncio
    async def test_exactly_ttl_is_still_valid(
        self, backend: InMemoryCartBackend, clock: ManualClock
    ) -> None:
        handle = await backend.create_context()
        clock.advance(minutes=5)
        await backend.add_item(handle, line("a"))

    @pytest.mark.asyncio
    async def test_use_refreshes_idle_timer(
        self, backend: InMemoryCartBackend, clock: ManualClock
    ) -> None:
        handle = await backend.create_context()
        for _ in range(3):
            clock.advance(minutes=4)
            await backend.add_item(handle, line("a"))

        assert await quantity_of(backend, handle, "a") == 3

    @pytest.mark.asyncio
    async def test_expired_context_loses_items(
        self, backend: InMemoryCartBackend, clock: ManualClock
    ) -> None:
        handle = await backend.create_context()
        await backend.add_item(handle, line("a"))
        clock.advance(hours=1)

        with pytest.raises(ContextExpiredError):
            await backend.get_cart(handle, "exp_1")
        with pytest.raises(ContextExpiredError):
            await backend.get_cart(handle, "exp_1")

    @pytest.mark.asyncio
    async def test_expire_context_is_observed_lazily(self, backend: InMemoryCartBackend) -> None:
        handle = await backend.create_context()
        backend.expire_context(handle)

        assert backend.has_context(handle)
        with pytest.raises(ContextExpiredError):
            await backend.checkout(handle)
        assert not backend.has_context(handle)

    def test_expire_unknown_context_is_noop(self, backend: InMemoryCartBackend) -> None:
        backend.expire_context("ctx_unknown")
        assert backend.context_count() == 0


class TestCheckoutAndCleanup:
    @pytest.mark.asyncio
    async def test_checkout_returns_order_id(self, backend: InMemoryCartBackend) -> None:
        handle = await backend.create_context()
        await backend.add_item(handle, line("a"))

        order_id = await backend.checkout(handle)
        assert order_id.startswith("ord_")

    @pytest.mark.asyncio
    async def test_cleanup_discards_idle_contexts(
        self, backend: InMemoryCartBackend, clock: ManualClock
    ) -> None:
        stale = await backend.create_context()
        clock.advance(minutes=10)
        fresh = await backend.create_context()

        assert await backend.cleanup() == 1
        assert not backend.has_context(stale)
        assert backend.has_context(fresh)
        assert backend.context_count() == 1
