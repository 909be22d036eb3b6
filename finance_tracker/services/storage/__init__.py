"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Implements an in-memory backend and a JSON file backend; both are swappable
behind TrackerStorageInterface.
"""

from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
    TrackerStorageInterface,
)
from finance_tracker.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryStorage,
    TrackerState,
)
from finance_tracker.services.storage.json_file import (
    JsonFileStorage,
    JsonlAuditStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "TrackerStorageInterface",
    # Exceptions
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryStorage",
    "TrackerState",
    # JSON file implementation
    "JsonFileStorage",
    "JsonlAuditStorage",
]
