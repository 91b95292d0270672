"""
Basic Usage Example

This example walks through a cart whose backend context expires mid-session:
- Creating an experience session
- Adding, removing and updating items
- Losing the backend context to an idle timeout
- Recovering transparently by replaying the event log
- Checking out

Run with: python examples/basic_usage.py
"""

import asyncio
import logging
from datetime import timedelta
from decimal import Decimal

from cartsource import (
    CartSource,
    CartSourceConfig,
    EmptyCartError,
    ItemKind,
    SessionCompletedError,
)
from cartsource.testing import ManualClock


def format_cart(cart) -> str:
    lines = [
        f"     {item.id:<12} x{item.quantity:<3} {item.line_total / 100:>9.2f}"
        for item in cart.items
    ]
    lines.append(f"     {'subtotal':<17}{cart.subtotal / 100:>9.2f}")
    lines.append(f"     {'tax':<17}{cart.tax / 100:>9.2f}")
    lines.append(f"     {'total':<17}{cart.total / 100:>9.2f}")
    return "\n".join(lines)


async def main() -> None:
    logging.basicConfig(level=logging.INFO, format="   [%(name)s] %(message)s")

    print("=" * 60)
    print("cartsource Basic Usage Example")
    print("=" * 60)

    # A manual clock lets us fast-forward past the backend's idle timeout
    clock = ManualClock()
    config = CartSourceConfig(
        backend_context_ttl=timedelta(minutes=5),
        tax_rate=Decimal("0.10"),
        enable_tracing=False,
    )

    async with CartSource.from_config(config, clock=clock) as cartsource:
        reconciler = cartsource.reconciler

        print("\n1. Creating an experience session:")
        created = await reconciler.create_session()
        session_id = created.session_id
        print(f"   Session ID: {session_id}")

        print("\n2. Building a cart:")
        await reconciler.add_item(
            session_id,
            {
                "item_id": "iphone15",
                "kind": ItemKind.DEVICE,
                "name": "iPhone 15",
                "unit_price": 99900,
                "quantity": 1,
            },
        )
        await reconciler.add_item(
            session_id,
            {
                "itemId": "unlimited",
                "type": "PLAN",
                "name": "Unlimited",
                "price": 7000,
                "quantity": 1,
            },
        )
        cart = await reconciler.add_item(
            session_id,
            {"item_id": "case", "kind": "ADDON", "name": "Case", "unit_price": 2500, "quantity": 3},
        )
        print(format_cart(cart))

        print("\n3. Removing one case:")
        cart = await reconciler.remove_item(session_id, "case", 1)
        print(format_cart(cart))

        print("\n4. Idling past the backend context TTL...")
        clock.advance(minutes=6)
        print(f"   Backend contexts discarded: {await cartsource.backend.cleanup()}")

        print("\n5. Updating the case quantity (the backend has forgotten the cart):")
        cart = await reconciler.update_item(session_id, "case", 1)
        print(format_cart(cart))
        print(f"   Reconciler stats: {reconciler.stats.to_dict()}")

        print("\n6. Checking out:")
        order = await reconciler.checkout(session_id)
        print(f"   Order ID: {order.order_id}")
        print(f"   Status: {order.status}")
        print(f"   Total: {order.total / 100:.2f}")

        print("\n7. Error handling:")
        try:
            await reconciler.add_item(
                session_id,
                {"item_id": "sim", "kind": "ADDON", "name": "SIM", "unit_price": 0, "quantity": 1},
            )
        except SessionCompletedError as e:
            print(f"   {e.to_dict()}")

        empty_session = (await reconciler.create_session()).session_id
        try:
            await reconciler.checkout(empty_session)
        except EmptyCartError as e:
            print(f"   {e.to_dict()}")

    print("\n" + "=" * 60)
    print("Example completed successfully!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
