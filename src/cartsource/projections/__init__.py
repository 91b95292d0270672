"""
Cart projections.

This module provides:
- CartProjector: Folds a session's event log into a Cart
- project: Convenience wrapper around a one-off CartProjector
- compute_tax / compute_totals: Shared pricing helpers
- Cart, CartItem, OrderRecord: The read models
"""

from cartsource.projections.cart import (
    CartProjector,
    compute_tax,
    compute_totals,
    project,
)
from cartsource.projections.models import Cart, CartItem, OrderRecord

__all__ = [
    "Cart",
    "CartItem",
    "CartProjector",
    "OrderRecord",
    "compute_tax",
    "compute_totals",
    "project",
]
