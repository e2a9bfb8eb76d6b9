"""
Audio transcription via the inference adapter.

The same multimodal model that routes text also transcribes: the audio
file is sent inline with a "transcribe only" instruction.

CRITICAL: Empty or silent recordings raise EmptyTranscriptionError
immediately, without retrying, so the capture flow can stop before it
spends a routing call on nothing.
"""

import re
from pathlib import Path
from typing import Optional

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from onemind.config import GeminiSettings, get_settings
from onemind.services.inference import (
    GenerationConfig,
    InferenceAdapter,
    InferenceError,
    MediaPart,
)


FIRST_PROMPT = (
    "请将这段音频转录为文字。只输出转录的文字内容，不要添加任何解释或格式。"
    "如果是中文就输出中文，如果是英文就输出英文。"
)
RETRY_PROMPT = "请重新转录这段音频，确保只输出纯文字内容，不要包含任何解释或格式。"

AUDIO_MIME_TYPES = {
    ".m4a": "audio/m4a",
    ".mp3": "audio/mp3",
    ".wav": "audio/wav",
    ".aac": "audio/aac",
    ".ogg": "audio/ogg",
}

# Preambles the model sometimes adds despite instructions
_PREAMBLE_RE = re.compile(r"^(转录结果|Transcription|文字内容|Text)[:：]\s*", re.IGNORECASE)
_LABEL_RE = re.compile(r"[\u4e00-\u9fff]*(transcription|转录)[\u4e00-\u9fff]*", re.IGNORECASE)


class TranscriptionError(Exception):
    """Audio could not be transcribed."""
    pass


class EmptyTranscriptionError(TranscriptionError):
    """The recording contained no speech."""
    pass


def clean_transcript(text: str) -> str:
    """Strip labels the model adds around the transcript."""
    cleaned = _PREAMBLE_RE.sub("", text)
    cleaned = _LABEL_RE.sub("", cleaned).strip()
    return cleaned or text.strip()


class TranscriptionService:
    """
    Converts an audio file to plain text.

    Retries transport failures with a linearly growing wait
    (attempt * 1s), switching to a stricter prompt on retries.
    """

    def __init__(
        self,
        inference: InferenceAdapter,
        settings: Optional[GeminiSettings] = None,
        wait_seconds: float = 1.0,
    ):
        self._inference = inference
        self._settings = settings or get_settings().gemini
        self._wait_seconds = wait_seconds

    def _read_audio(self, audio_path: str | Path) -> MediaPart:
        path = Path(audio_path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise TranscriptionError(f"Cannot read audio file {path}: {e}") from e
        if not data:
            raise EmptyTranscriptionError(f"Audio file {path} is empty")
        mime_type = AUDIO_MIME_TYPES.get(path.suffix.lower(), "audio/m4a")
        return MediaPart(data=data, mime_type=mime_type)

    async def transcribe(self, audio_path: str | Path) -> str:
        """
        Transcribe an audio file.

        Raises:
            EmptyTranscriptionError: Nothing was said
            TranscriptionError: The service failed on every attempt
        """
        audio = self._read_audio(audio_path)
        config = GenerationConfig(
            temperature=self._settings.transcription_temperature,
            max_output_tokens=self._settings.transcription_max_tokens,
        )

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._settings.media_max_retries + 1),
                wait=wait_incrementing(start=self._wait_seconds, increment=self._wait_seconds),
                retry=retry_if_exception_type(InferenceError),
                reraise=True,
            ):
                with attempt:
                    number = attempt.retry_state.attempt_number
                    prompt = FIRST_PROMPT if number == 1 else RETRY_PROMPT
                    text = await self._inference.generate([prompt, audio], config)
        except InferenceError as e:
            raise TranscriptionError(f"转录失败: {e}") from e

        if not text or not text.strip():
            raise EmptyTranscriptionError("Empty transcription result")
        return clean_transcript(text)
