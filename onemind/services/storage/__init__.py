"""Storage services package."""

from onemind.services.storage.interface import (
    AuditStorageInterface,
    NotFoundError,
    RecordStoreInterface,
    SessionStatus,
    SourceType,
    StorageError,
)
from onemind.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryRecordStore,
)

__all__ = [
    "AuditStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryRecordStore",
    "NotFoundError",
    "RecordStoreInterface",
    "SessionStatus",
    "SourceType",
    "StorageError",
]
