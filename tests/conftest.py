"""
Shared pytest fixtures for the cartsource tests.

This module provides:
- Clock fixtures (clock)
- Store and backend fixtures (store, backend, recording_backend, faulty_backend)
- Reconciler fixtures (harness, reconciler, session_id)
"""

from __future__ import annotations

from decimal import Decimal

import pytest
import pytest_asyncio

from cartsource.backend.in_memory import InMemoryCartBackend
from cartsource.reconciliation.reconciler import CartReconciler
from cartsource.stores.in_memory import InMemorySessionStore
from cartsource.testing import CartTestHarness, ManualClock
from tests.fixtures import FaultyBackend, RecordingBackend

TAX_RATE = Decimal("0.10")


# =============================================================================
# Clock
# =============================================================================


@pytest.fixture
def clock() -> ManualClock:
    """Provide a manual clock starting at 2024-01-01T00:00:00Z."""
    return ManualClock()


# =============================================================================
# Store and Backend Fixtures
# =============================================================================


@pytest.fixture
def store(clock: ManualClock) -> InMemorySessionStore:
    """Provide a fresh session store on the manual clock, tracing disabled."""
    return InMemorySessionStore(tax_rate=TAX_RATE, clock=clock, enable_tracing=False)


@pytest.fixture
def backend(clock: ManualClock) -> InMemoryCartBackend:
    """Provide a fresh in-memory backend with a 5 minute TTL."""
    return InMemoryCartBackend(tax_rate=TAX_RATE, clock=clock, enable_tracing=False)


@pytest.fixture
def recording_backend(clock: ManualClock) -> RecordingBackend:
    """Provide a backend that records every call it receives."""
    return RecordingBackend(tax_rate=TAX_RATE, clock=clock)


@pytest.fixture
def faulty_backend(clock: ManualClock) -> FaultyBackend:
    """Provide a recording backend with injectable failures."""
    return FaultyBackend(tax_rate=TAX_RATE, clock=clock)


# =============================================================================
# Reconciler Fixtures
# =============================================================================


@pytest.fixture
def harness(clock: ManualClock, recording_backend: RecordingBackend) -> CartTestHarness:
    """Provide a harness whose backend records calls, all on the shared clock."""
    return CartTestHarness(tax_rate=TAX_RATE, backend=recording_backend, clock=clock)


@pytest.fixture
def reconciler(harness: CartTestHarness) -> CartReconciler:
    return harness.reconciler


@pytest_asyncio.fixture
async def session_id(reconciler: CartReconciler) -> str:
    """Provide the id of a freshly created session."""
    created = await reconciler.create_session()
    return created.session_id
