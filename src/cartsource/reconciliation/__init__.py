"""
Reconciliation of cart event logs with an ephemeral cart backend.

This module provides:
- CartReconciler: Client-facing cart operations with transparent context recovery
- ReconcilerStats: Counters describing recovery activity
- AddItemRequest / SessionCreated: Request and response models
"""

from cartsource.reconciliation.models import AddItemRequest, SessionCreated
from cartsource.reconciliation.reconciler import CartReconciler, ReconcilerStats

__all__ = [
    "AddItemRequest",
    "CartReconciler",
    "ReconcilerStats",
    "SessionCreated",
]
