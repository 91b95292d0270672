"""Session store implementations for the cartsource library."""

from cartsource.stores.in_memory import InMemorySessionStore
from cartsource.stores.interface import ExperienceSession, SessionStore

__all__ = [
    # Data structures
    "ExperienceSession",
    # Abstract base classes
    "SessionStore",
    # Concrete implementations
    "InMemorySessionStore",
]
