"""Services package."""

from onemind.services.inference import (
    GeminiInferenceAdapter,
    GenerationConfig,
    InferenceAdapter,
    InferenceError,
    MediaPart,
)
from onemind.services.media import (
    EmptyTranscriptionError,
    TranscriptionError,
    TranscriptionService,
    VisionError,
    VisionService,
)
from onemind.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryRecordStore,
    NotFoundError,
    RecordStoreInterface,
    SessionStatus,
    SourceType,
    StorageError,
)

__all__ = [
    # Inference
    "GeminiInferenceAdapter",
    "GenerationConfig",
    "InferenceAdapter",
    "InferenceError",
    "MediaPart",
    # Media
    "EmptyTranscriptionError",
    "TranscriptionError",
    "TranscriptionService",
    "VisionError",
    "VisionService",
    # Storage
    "AuditStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryRecordStore",
    "NotFoundError",
    "RecordStoreInterface",
    "SessionStatus",
    "SourceType",
    "StorageError",
]
