"""
Image description via the inference adapter.

The description is free text, detailed enough to be routed by the same
pipeline as transcribed speech.
"""

from pathlib import Path
from typing import Optional, Sequence

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


SINGLE_FIRST_PROMPT = (
    "请分析这张图片，提取其中的关键信息。如果是收据或账单，提取金额和商品信息；"
    "如果是物品，描述物品名称和数量；如果是待办事项或便签，提取内容。请详细描述你看到的内容。"
)
SINGLE_RETRY_PROMPT = (
    "请重新分析这张图片，重点提取：1) 如果是收据，请准确提取总金额和主要商品 "
    "2) 如果是物品，请说明物品名称、数量和可能的存储位置 3) 如果是文字内容，请完整提取文字信息。"
    "请提供详细准确的分析。"
)
MULTI_FIRST_PROMPT = (
    "请分析这{count}张图片，提取其中的所有关键信息。如果是收据或账单，提取总金额和商品列表；"
    "如果是物品，列出所有物品名称和数量；如果是待办事项或便签，提取所有内容。请综合所有图片给出完整的分析。"
)
MULTI_RETRY_PROMPT = (
    "请重新分析这{count}张图片，重点提取：1) 收据总金额和商品明细 "
    "2) 物品名称、数量、可能存储位置 3) 文字内容完整转录。请综合输出准确完整的分析。"
)

MIN_DESCRIPTION_LENGTH = 10


class VisionError(Exception):
    """Images could not be described."""
    pass


class _DescriptionTooShort(Exception):
    pass


def image_mime_type(path: Path) -> str:
    return "image/png" if path.suffix.lower() == ".png" else "image/jpeg"


class VisionService:
    """Describes one or more photos as plain text."""

    def __init__(
        self,
        inference: InferenceAdapter,
        settings: Optional[GeminiSettings] = None,
        wait_seconds: float = 1.0,
    ):
        self._inference = inference
        self._settings = settings or get_settings().gemini
        self._wait_seconds = wait_seconds

    def _read_images(self, image_paths: Sequence[str | Path]) -> list[MediaPart]:
        parts = []
        for raw_path in image_paths:
            path = Path(raw_path)
            try:
                parts.append(MediaPart(data=path.read_bytes(), mime_type=image_mime_type(path)))
            except OSError as e:
                raise VisionError(f"Cannot read image {path}: {e}") from e
        return parts

    def _prompt(self, count: int, attempt_number: int) -> str:
        if count == 1:
            return SINGLE_FIRST_PROMPT if attempt_number == 1 else SINGLE_RETRY_PROMPT
        template = MULTI_FIRST_PROMPT if attempt_number == 1 else MULTI_RETRY_PROMPT
        return template.format(count=count)

    async def describe(self, image_paths: Sequence[str | Path]) -> str:
        """
        Describe the given images.

        Raises:
            VisionError: No images, unreadable files, or every attempt
                failed or came back too short
        """
        if not image_paths:
            raise VisionError("No images to analyze")

        images = self._read_images(image_paths)
        count = len(images)
        config = GenerationConfig(
            temperature=self._settings.vision_temperature,
            max_output_tokens=(
                self._settings.vision_max_tokens if count == 1
                else self._settings.vision_batch_max_tokens
            ),
        )

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._settings.media_max_retries + 1),
                wait=wait_incrementing(start=self._wait_seconds, increment=self._wait_seconds),
                retry=retry_if_exception_type((InferenceError, _DescriptionTooShort)),
                reraise=True,
            ):
                with attempt:
                    prompt = self._prompt(count, attempt.retry_state.attempt_number)
                    text = (await self._inference.generate([prompt, *images], config)).strip()
                    if len(text) < MIN_DESCRIPTION_LENGTH:
                        raise _DescriptionTooShort(
                            f"Image analysis result too short ({len(text)} chars)"
                        )
        except (InferenceError, _DescriptionTooShort) as e:
            raise VisionError(f"图片分析失败: {e}") from e

        return text
