"""Tests for the inference adapter and the media-to-text services."""

import pytest

from onemind.services.inference import GenerationConfig, InferenceError, MediaPart
from onemind.services.inference import gemini_service
from onemind.services.inference.gemini_service import GeminiInferenceAdapter
from onemind.services.media import (
    EmptyTranscriptionError,
    TranscriptionError,
    TranscriptionService,
    VisionError,
    VisionService,
    clean_transcript,
)
from onemind.services.media.transcription_service import FIRST_PROMPT, RETRY_PROMPT
from onemind.services.media.vision_service import SINGLE_FIRST_PROMPT

from fakes import FakeInference, transport_error


RECEIPT = "这是一张超市收据，总金额25元，商品为咖啡豆"


@pytest.fixture
def audio_file(tmp_path):
    path = tmp_path / "memo.m4a"
    path.write_bytes(b"\x00\x01fake-audio")
    return path


@pytest.fixture
def image_files(tmp_path):
    paths = []
    for name in ("receipt.png", "shelf.jpg"):
        path = tmp_path / name
        path.write_bytes(b"\x89fake-image")
        paths.append(path)
    return paths


class TestCleanTranscript:
    """Labels the model adds around the transcript."""

    @pytest.mark.parametrize("raw,expected", [
        ("转录结果：明天记得买牛奶", "明天记得买牛奶"),
        ("Transcription: buy milk", "buy milk"),
        ("文字内容:  午饭花了30元", "午饭花了30元"),
        ("  冰箱里还有两瓶牛奶 ", "冰箱里还有两瓶牛奶"),
    ])
    def test_clean(self, raw, expected):
        assert clean_transcript(raw) == expected


class TestTranscriptionService:
    """Audio -> text with retries."""

    async def test_transcribe(self, audio_file, gemini_settings):
        inference = FakeInference("转录结果：明天记得买牛奶")
        service = TranscriptionService(inference, gemini_settings, wait_seconds=0)

        assert await service.transcribe(audio_file) == "明天记得买牛奶"

        parts, config = inference.calls[0]
        assert parts[0] == FIRST_PROMPT
        assert parts[1] == MediaPart(data=b"\x00\x01fake-audio", mime_type="audio/m4a")
        assert config.temperature == 0.1
        assert config.max_output_tokens == 500
        assert not config.json_mode

    async def test_mime_type_from_suffix(self, tmp_path, gemini_settings):
        path = tmp_path / "memo.WAV"
        path.write_bytes(b"RIFF")
        inference = FakeInference("你好")
        await TranscriptionService(inference, gemini_settings, wait_seconds=0).transcribe(path)
        assert inference.calls[0][0][1].mime_type == "audio/wav"

    async def test_retry_uses_stricter_prompt(self, audio_file, gemini_settings):
        inference = FakeInference(transport_error(), "明天记得买牛奶")
        service = TranscriptionService(inference, gemini_settings, wait_seconds=0)

        assert await service.transcribe(audio_file) == "明天记得买牛奶"
        assert [call[0][0] for call in inference.calls] == [FIRST_PROMPT, RETRY_PROMPT]

    async def test_all_attempts_fail(self, audio_file, gemini_settings):
        inference = FakeInference(transport_error())
        service = TranscriptionService(inference, gemini_settings, wait_seconds=0)

        with pytest.raises(TranscriptionError, match="转录失败"):
            await service.transcribe(audio_file)
        assert len(inference.calls) == 3

    async def test_empty_file_not_sent(self, tmp_path, gemini_settings):
        path = tmp_path / "silence.m4a"
        path.write_bytes(b"")
        inference = FakeInference("anything")

        with pytest.raises(EmptyTranscriptionError):
            await TranscriptionService(inference, gemini_settings, wait_seconds=0).transcribe(path)
        assert inference.calls == []

    async def test_missing_file(self, tmp_path, gemini_settings):
        service = TranscriptionService(FakeInference("x"), gemini_settings, wait_seconds=0)
        with pytest.raises(TranscriptionError) as excinfo:
            await service.transcribe(tmp_path / "nope.m4a")
        assert not isinstance(excinfo.value, EmptyTranscriptionError)

    async def test_blank_result_is_empty(self, audio_file, gemini_settings):
        service = TranscriptionService(FakeInference("   "), gemini_settings, wait_seconds=0)
        with pytest.raises(EmptyTranscriptionError):
            await service.transcribe(audio_file)


class TestVisionService:
    """Images -> description with retries."""

    async def test_single_image(self, image_files, gemini_settings):
        inference = FakeInference(RECEIPT)
        service = VisionService(inference, gemini_settings, wait_seconds=0)

        assert await service.describe(image_files[:1]) == RECEIPT

        parts, config = inference.calls[0]
        assert parts[0] == SINGLE_FIRST_PROMPT
        assert parts[1].mime_type == "image/png"
        assert config.max_output_tokens == 1000

    async def test_multiple_images(self, image_files, gemini_settings):
        inference = FakeInference(RECEIPT)
        await VisionService(inference, gemini_settings, wait_seconds=0).describe(image_files)

        parts, config = inference.calls[0]
        assert "这2张图片" in parts[0]
        assert [part.mime_type for part in parts[1:]] == ["image/png", "image/jpeg"]
        assert config.max_output_tokens == 1500

    async def test_short_description_retried(self, image_files, gemini_settings):
        inference = FakeInference("太短", RECEIPT)
        service = VisionService(inference, gemini_settings, wait_seconds=0)

        assert await service.describe(image_files[:1]) == RECEIPT
        assert len(inference.calls) == 2

    async def test_always_short_fails(self, image_files, gemini_settings):
        service = VisionService(FakeInference("太短"), gemini_settings, wait_seconds=0)
        with pytest.raises(VisionError, match="图片分析失败"):
            await service.describe(image_files[:1])

    async def test_transport_failure(self, image_files, gemini_settings):
        inference = FakeInference(transport_error())
        with pytest.raises(VisionError):
            await VisionService(inference, gemini_settings, wait_seconds=0).describe(image_files)
        assert len(inference.calls) == 3

    async def test_no_images(self, gemini_settings):
        with pytest.raises(VisionError, match="No images"):
            await VisionService(FakeInference(RECEIPT), gemini_settings).describe([])

    async def test_missing_image(self, tmp_path, gemini_settings):
        service = VisionService(FakeInference(RECEIPT), gemini_settings, wait_seconds=0)
        with pytest.raises(VisionError, match="Cannot read image"):
            await service.describe([tmp_path / "gone.jpg"])


class _FakeResponse:
    def __init__(self, text):
        self.text = text


class _FakeModel:
    instances: list["_FakeModel"] = []

    def __init__(self, model_name, generation_config):
        self.model_name = model_name
        self.generation_config = generation_config
        self.contents = None
        _FakeModel.instances.append(self)

    async def generate_content_async(self, contents):
        self.contents = contents
        if contents[0] == "fail":
            raise RuntimeError("429 quota exceeded")
        return _FakeResponse("  {\"ok\": true}  ")


class TestGeminiInferenceAdapter:
    """The Gemini adapter, with the SDK replaced."""

    @pytest.fixture
    def adapter(self, monkeypatch, gemini_settings):
        _FakeModel.instances = []
        monkeypatch.setattr(gemini_service.genai, "configure", lambda **kwargs: None)
        monkeypatch.setattr(gemini_service.genai, "GenerativeModel", _FakeModel)
        return GeminiInferenceAdapter(gemini_settings)

    async def test_json_mode_sets_mime_type(self, adapter):
        text = await adapter.generate(["prompt"], GenerationConfig(0.3, 1000, json_mode=True))

        model = _FakeModel.instances[0]
        assert text == '{"ok": true}'
        assert model.model_name == "gemini-2.5-flash"
        assert model.generation_config == {
            "temperature": 0.3,
            "max_output_tokens": 1000,
            "response_mime_type": "application/json",
        }

    async def test_media_parts_inlined(self, adapter):
        await adapter.generate(
            ["describe", MediaPart(data=b"img", mime_type="image/png")],
            GenerationConfig(0.2, 1000),
        )
        model = _FakeModel.instances[0]
        assert "response_mime_type" not in model.generation_config
        assert model.contents == ["describe", {"mime_type": "image/png", "data": b"img"}]

    async def test_sdk_errors_wrapped(self, adapter):
        with pytest.raises(InferenceError, match="429"):
            await adapter.generate(["fail"], GenerationConfig(0.1, 100))
