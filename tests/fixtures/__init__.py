"""
Shared test fixtures for the cartsource library.

Usage:
    from tests.fixtures import added, removed, updated, RecordingBackend
"""

from tests.fixtures.backends import (
    AlwaysExpiringBackend,
    BackendUnavailableError,
    FaultyBackend,
    RecordingBackend,
    YieldingBackend,
)
from tests.fixtures.events import added, removed, updated

__all__ = [
    "AlwaysExpiringBackend",
    "BackendUnavailableError",
    "FaultyBackend",
    "RecordingBackend",
    "YieldingBackend",
    "added",
    "removed",
    "updated",
]
