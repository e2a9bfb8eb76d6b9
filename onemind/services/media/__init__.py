"""Media-to-text services package."""

from onemind.services.media.transcription_service import (
    EmptyTranscriptionError,
    TranscriptionError,
    TranscriptionService,
    clean_transcript,
)
from onemind.services.media.vision_service import VisionError, VisionService

__all__ = [
    "EmptyTranscriptionError",
    "TranscriptionError",
    "TranscriptionService",
    "VisionError",
    "VisionService",
    "clean_transcript",
]
