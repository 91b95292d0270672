"""
Event handler decorators.

The @handles decorator marks a method as the fold step for one cart event
type. Classes such as CartProjector discover decorated methods when they
are instantiated and route events to them by type.

Example:
    >>> from cartsource.handlers import handles
"""

import inspect
from collections.abc import Callable
from typing import Any, TypeVar

from cartsource.events.base import CartEvent

# Preserves the exact type of the decorated function
F = TypeVar("F", bound=Callable[..., Any])


def handles(event_type: type[CartEvent]) -> Callable[[F], F]:
    """
    Decorator to mark a method as the handler for a specific event type.

    Args:
        event_type: The CartEvent subclass this handler processes

    Returns:
        A decorator that tags the function and returns it unchanged

    Example:
        >>> class LineCounter:
        ...     @handles(ItemAdded)
        ...     def _on_added(self, lines, event: ItemAdded) -> None:
        ...         lines[event.item_id] = event.quantity
    """

    def decorator(func: F) -> F:
        func._handles_event_type = event_type  # type: ignore[attr-defined]
        return func

    return decorator


def get_handled_event_type(func: Callable[..., Any]) -> type[CartEvent] | None:
    """
    Get the event type handled by a decorated function.

    Returns:
        The event type if decorated with @handles, None otherwise
    """
    return getattr(func, "_handles_event_type", None)


def is_event_handler(func: Callable[..., Any]) -> bool:
    """Check if a function is decorated with @handles."""
    return hasattr(func, "_handles_event_type")


def discover_handlers(owner: object) -> dict[type[CartEvent], Callable[..., Any]]:
    """
    Collect the bound @handles methods of an object, keyed by event type.

    Args:
        owner: Instance whose class defines decorated methods

    Returns:
        Mapping of event type to bound handler

    Raises:
        ValueError: If two methods claim the same event type
    """
    handlers: dict[type[CartEvent], Callable[..., Any]] = {}
    for name, method in inspect.getmembers(owner, predicate=inspect.ismethod):
        event_type = get_handled_event_type(method)
        if event_type is None:
            continue
        if event_type in handlers:
            raise ValueError(
                f"{type(owner).__name__} defines more than one handler for "
                f"{event_type.__name__} ({handlers[event_type].__name__}, {name})"
            )
        handlers[event_type] = method
    return handlers


__all__ = [
    "handles",
    "get_handled_event_type",
    "is_event_handler",
    "discover_handlers",
]
