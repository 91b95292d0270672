"""
Test utilities for cartsource.

Components:
    ManualClock: Deterministic clock for idle-time logic
    CartTestHarness: Store, backend and reconciler wired to one ManualClock
    item_request: Builder for add-item request dictionaries

Note:
    This module is intended for test code only.
"""

from cartsource.testing.clock import ManualClock
from cartsource.testing.harness import CartTestHarness, item_request

__all__ = [
    "CartTestHarness",
    "ManualClock",
    "item_request",
]
