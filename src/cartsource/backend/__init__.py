"""Cart backend contract and the in-memory simulation."""

from cartsource.backend.in_memory import InMemoryCartBackend
from cartsource.backend.interface import CartBackend

__all__ = [
    "CartBackend",
    "InMemoryCartBackend",
]
