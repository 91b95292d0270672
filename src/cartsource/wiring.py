"""
Assembly of cartsource components from a CartSourceConfig.

Hosts construct one CartSource at startup, pass ``cartsource.reconciler`` to
their request handlers, and close it at shutdown. Nothing here is global.

Example:
    >>> async with CartSource.from_config(CartSourceConfig()) as cartsource:
    ...     created = await cartsource.reconciler.create_session()
"""

from dataclasses import dataclass
from types import TracebackType
from typing import Self

from cartsource.backend.in_memory import InMemoryCartBackend
from cartsource.backend.interface import CartBackend
from cartsource.config import CartSourceConfig
from cartsource.maintenance.sweeper import SessionSweeper
from cartsource.reconciliation.reconciler import CartReconciler
from cartsource.stores.in_memory import InMemorySessionStore
from cartsource.types import Clock


@dataclass
class CartSource:
    """The session store, backend, reconciler and sweeper of one process."""

    config: CartSourceConfig
    store: InMemorySessionStore
    backend: CartBackend
    reconciler: CartReconciler
    sweeper: SessionSweeper

    @classmethod
    def from_config(
        cls,
        config: CartSourceConfig,
        *,
        backend: CartBackend | None = None,
        clock: Clock | None = None,
    ) -> "CartSource":
        """
        Build all components from one configuration.

        Args:
            config: Shared configuration
            backend: Cart backend to reconcile against (default: InMemoryCartBackend)
            clock: Clock shared by every component (default: datetime.now(UTC))
        """
        store = InMemorySessionStore(
            tax_rate=config.tax_rate,
            clock=clock,
            enable_tracing=config.enable_tracing,
        )
        if backend is None:
            backend = InMemoryCartBackend(
                context_ttl=config.backend_context_ttl,
                tax_rate=config.tax_rate,
                clock=clock,
                enable_tracing=config.enable_tracing,
            )
        reconciler = CartReconciler(store, backend, enable_tracing=config.enable_tracing)
        sweeper = SessionSweeper(
            store,
            max_idle=config.session_max_idle,
            interval=config.sweep_interval,
            clock=clock,
        )
        return cls(
            config=config,
            store=store,
            backend=backend,
            reconciler=reconciler,
            sweeper=sweeper,
        )

    def start(self) -> None:
        """Start periodic session sweeping on the running event loop."""
        if not self.sweeper.is_running:
            self.sweeper.start()

    async def close(self) -> None:
        """Stop sweeping and drop all sessions."""
        await self.sweeper.stop()
        await self.store.clear()

    async def __aenter__(self) -> Self:
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
