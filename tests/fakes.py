"""
Scripted stand-ins for the model adapter and friends.

No test talks to a real model: every adapter is a fake, and back-off
sleeps are recorded instead of awaited.
"""

import json
from datetime import date
from typing import Sequence, Union

from onemind.routing import ResponseParser
from onemind.services.inference import GenerationConfig, InferenceAdapter, InferenceError
from onemind.services.storage import InMemoryRecordStore, StorageError


TODAY = date(2026, 3, 15)

Reply = Union[str, Exception]


class FakeInference(InferenceAdapter):
    """
    Replays scripted replies in order; the last one repeats forever.

    Every call is recorded as (parts, config).
    """

    def __init__(self, *replies: Reply):
        self._replies = list(replies)
        self.calls: list[tuple[list, GenerationConfig]] = []

    async def generate(self, parts: Sequence, config: GenerationConfig) -> str:
        self.calls.append((list(parts), config))
        index = min(len(self.calls), len(self._replies)) - 1
        reply = self._replies[index]
        if isinstance(reply, Exception):
            raise reply
        return reply


class RecordingSleep:
    """Stands in for asyncio.sleep."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class SpyParser(ResponseParser):
    """Counts how often each parser tier runs."""

    def __init__(self):
        self.tier_calls = {"strict": 0, "embedded": 0, "fields": 0}

    def _parse_strict(self, text):
        self.tier_calls["strict"] += 1
        return super()._parse_strict(text)

    def _parse_embedded(self, text):
        self.tier_calls["embedded"] += 1
        return super()._parse_embedded(text)

    def _salvage_fields(self, text):
        self.tier_calls["fields"] += 1
        return super()._salvage_fields(text)


def route_json(
    route_type: str = "finance",
    confidence=0.9,
    summary: str = "咖啡消费",
    data=None,
) -> str:
    """A well-formed routing response."""
    return json.dumps(
        {"route_type": route_type, "confidence": confidence, "summary": summary, "data": data},
        ensure_ascii=False,
    )


def transport_error() -> InferenceError:
    return InferenceError("Gemini request failed: 503 Service Unavailable")


class FakeTranscription:
    """TranscriptionService stand-in: returns a transcript or raises."""

    def __init__(self, outcome: Reply):
        self._outcome = outcome
        self.paths: list = []

    async def transcribe(self, audio_path) -> str:
        self.paths.append(audio_path)
        if isinstance(self._outcome, Exception):
            raise self._outcome
        return self._outcome


class FakeVision:
    """VisionService stand-in: returns a description or raises."""

    def __init__(self, outcome: Reply):
        self._outcome = outcome
        self.batches: list = []

    async def describe(self, image_paths) -> str:
        self.batches.append(list(image_paths))
        if isinstance(self._outcome, Exception):
            raise self._outcome
        return self._outcome


class FlakyRecordStore(InMemoryRecordStore):
    """In-memory store that refuses some operations."""

    def __init__(self, failing_routes=(), fail_sessions: bool = False, fail_updates: bool = False):
        super().__init__()
        self._failing_routes = set(failing_routes)
        self._fail_sessions = fail_sessions
        self._fail_updates = fail_updates

    async def create_session(self, source_type, raw_content_ref=None):
        if self._fail_sessions:
            raise StorageError("sessions table unavailable")
        return await super().create_session(source_type, raw_content_ref)

    async def save_record(self, route, payload, session_id):
        if route in self._failing_routes:
            raise StorageError(f"insert into {route.value} failed")
        return await super().save_record(route, payload, session_id)

    async def update_session(self, session_id, summary, status):
        if self._fail_updates:
            raise StorageError("update failed")
        return await super().update_session(session_id, summary, status)
