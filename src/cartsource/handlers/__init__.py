"""
Handler infrastructure for folding cart events.

Example:
    >>> from cartsource.handlers import handles, discover_handlers
"""

from cartsource.handlers.decorators import (
    discover_handlers,
    get_handled_event_type,
    handles,
    is_event_handler,
)

__all__ = [
    "discover_handlers",
    "get_handled_event_type",
    "handles",
    "is_event_handler",
]
