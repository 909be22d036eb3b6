"""Services package."""

from finance_tracker.services.backup import (
    BackupFormatError,
    create_backup,
    dumps_backup,
    loads_backup,
    parse_backup,
    restore_from_backup,
)
from finance_tracker.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryStorage,
    JsonFileStorage,
    JsonlAuditStorage,
    NotFoundError,
    StorageConnectionError,
    StorageError,
    TrackerStorageInterface,
)

__all__ = [
    # Backup
    "BackupFormatError",
    "create_backup",
    "dumps_backup",
    "loads_backup",
    "parse_backup",
    "restore_from_backup",
    # Storage services
    "AuditStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryStorage",
    "JsonFileStorage",
    "JsonlAuditStorage",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    "TrackerStorageInterface",
]
