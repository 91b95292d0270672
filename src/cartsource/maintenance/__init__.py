"""Host-triggered maintenance operations."""

from cartsource.maintenance.sweeper import SessionSweeper

__all__ = [
    "SessionSweeper",
]
