"""
Inference adapter using Google Gemini.

DESIGN DECISION: We use Gemini because:
1. One model handles text routing, audio transcription and image description
2. It honours a JSON response MIME type, which cuts down on malformed output
3. Low latency on the flash tier

This adapter does no retrying of its own. Retry policy belongs to the
caller (the router's attempt loop, the media services' tenacity loops).
"""

from typing import Optional, Sequence

import google.generativeai as genai

from onemind.config import GeminiSettings, get_settings
from onemind.services.inference.interface import (
    GenerationConfig,
    InferenceAdapter,
    InferenceError,
    MediaPart,
    PromptPart,
)


class GeminiInferenceAdapter(InferenceAdapter):
    """InferenceAdapter backed by google-generativeai."""

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)

    def _build_model(self, config: GenerationConfig) -> genai.GenerativeModel:
        generation_config = {
            "temperature": config.temperature,
            "max_output_tokens": config.max_output_tokens,
        }
        if config.json_mode:
            generation_config["response_mime_type"] = "application/json"
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config=generation_config,
        )

    @staticmethod
    def _to_content(part: PromptPart):
        if isinstance(part, MediaPart):
            return {"mime_type": part.mime_type, "data": part.data}
        return part

    async def generate(
        self,
        parts: Sequence[PromptPart],
        config: GenerationConfig,
    ) -> str:
        model = self._build_model(config)
        try:
            response = await model.generate_content_async(
                [self._to_content(part) for part in parts]
            )
            return response.text.strip()
        except Exception as e:
            raise InferenceError(f"Gemini request failed: {e}") from e
