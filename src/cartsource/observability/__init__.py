"""
Observability utilities for cartsource.

Tracing is composition-based: components accept a ``tracer`` or an
``enable_tracing`` flag and emit spans through the Tracer protocol.

Example:
    >>> from cartsource.observability import create_tracer, ATTR_SESSION_ID
    >>>
    >>> class MyComponent:
    ...     def __init__(self, enable_tracing: bool = True):
    ...         self._tracer = create_tracer(__name__, enable_tracing)
"""

from cartsource.observability.attributes import (
    ATTR_BACKEND_OPERATION,
    ATTR_CONTEXT_HANDLE,
    ATTR_EVENT_COUNT,
    ATTR_EVENT_TYPE,
    ATTR_ITEM_ID,
    ATTR_QUANTITY,
    ATTR_REPLAY_REASON,
    ATTR_REPLAY_SKIPPED,
    ATTR_SESSION_COUNT,
    ATTR_SESSION_ID,
)
from cartsource.observability.tracer import (
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    Tracer,
    create_tracer,
)

__all__ = [
    # Attributes
    "ATTR_BACKEND_OPERATION",
    "ATTR_CONTEXT_HANDLE",
    "ATTR_EVENT_COUNT",
    "ATTR_EVENT_TYPE",
    "ATTR_ITEM_ID",
    "ATTR_QUANTITY",
    "ATTR_REPLAY_REASON",
    "ATTR_REPLAY_SKIPPED",
    "ATTR_SESSION_COUNT",
    "ATTR_SESSION_ID",
    # Tracers
    "MockTracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "Tracer",
    "create_tracer",
]
