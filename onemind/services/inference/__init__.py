"""Inference services package."""

from onemind.services.inference.gemini_service import GeminiInferenceAdapter
from onemind.services.inference.interface import (
    GenerationConfig,
    InferenceAdapter,
    InferenceError,
    MediaPart,
    PromptPart,
)

__all__ = [
    "GeminiInferenceAdapter",
    "GenerationConfig",
    "InferenceAdapter",
    "InferenceError",
    "MediaPart",
    "PromptPart",
]
