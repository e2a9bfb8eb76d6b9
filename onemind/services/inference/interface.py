"""
Inference Adapter Interface

DESIGN DECISION: The router receives an adapter instance in its
constructor instead of importing a process-wide client. Tests pass a
fake; production passes GeminiInferenceAdapter.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence, Union


@dataclass(frozen=True)
class GenerationConfig:
    """Knobs for one generation call."""
    temperature: float
    max_output_tokens: int
    json_mode: bool = False


@dataclass(frozen=True)
class MediaPart:
    """Inline media sent alongside the prompt (audio or image bytes)."""
    data: bytes
    mime_type: str


PromptPart = Union[str, MediaPart]


class InferenceError(Exception):
    """The inference service was unreachable or returned an error."""
    pass


class InferenceAdapter(ABC):
    """Anything that can turn prompt parts into text."""

    @abstractmethod
    async def generate(
        self,
        parts: Sequence[PromptPart],
        config: GenerationConfig,
    ) -> str:
        """
        Run one generation.

        Args:
            parts: Ordered instruction text, user text and inline media
            config: Temperature, output budget and structured-output flag

        Returns:
            Raw response text

        Raises:
            InferenceError: On any transport or service failure
        """
        pass
