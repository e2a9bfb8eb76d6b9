"""
Main Orchestrator for OneMind

This module ties the routing core to its collaborators and defines the
end-to-end capture flows:
1. Voice  (audio -> transcript -> batch route -> save each record)
2. Photo  (images -> description -> route -> save the record)

DESIGN DECISION: Capture flows never raise for expected failures.
Media and routing problems become Unknown results with a summary the
user can act on; storage problems become an error on the CaptureOutcome.
Every step is audited under one correlation id.
"""

from pathlib import Path
from typing import Optional, Sequence
from uuid import UUID

from pydantic import BaseModel, Field

from onemind.audit import AuditLogger, create_correlation_id
from onemind.config import AppSettings, get_settings
from onemind.models.audit import AuditEvent, AuditEventBuilder
from onemind.models.route import ClassificationResult, RouteType
from onemind.routing import ContentRouter
from onemind.services.inference import GeminiInferenceAdapter, InferenceAdapter
from onemind.services.media import (
    EmptyTranscriptionError,
    TranscriptionError,
    TranscriptionService,
    VisionError,
    VisionService,
)
from onemind.services.storage import (
    InMemoryAuditStorage,
    InMemoryRecordStore,
    RecordStoreInterface,
    SessionStatus,
    SourceType,
    StorageError,
)


EMPTY_TRANSCRIPT_SUMMARY = "语音转录为空，请检查录音质量"
TRANSCRIPTION_FAILED_SUMMARY = "语音转录失败，请重新录音"
EMPTY_ANALYSIS_SUMMARY = "图片分析结果为空，请重新拍照"
VISION_FAILED_SUMMARY = "图片分析失败，请重新拍照"

SESSION_FAILED_ERROR = "创建会话失败"
SAVE_FAILED_ERROR = "保存失败"
PARTIAL_SAVE_ERROR = "部分记录保存失败"

ROUTE_DISPLAY_NAMES = {
    RouteType.FINANCE: "消费记录",
    RouteType.TODO: "待办事项",
    RouteType.INVENTORY: "物品库存",
}


def route_display_name(route: RouteType | str) -> str:
    """Chinese display name for a route; anything unrecognised is 未知类型."""
    try:
        return ROUTE_DISPLAY_NAMES.get(RouteType(route), "未知类型")
    except ValueError:
        return "未知类型"


class CaptureOutcome(BaseModel):
    """
    Result of one capture: what was recognised and whether it was stored.

    success is True when at least one result was stored (results without
    a payload count as stored; there is nothing to save for them).
    """

    success: bool
    session_id: Optional[UUID] = None
    results: list[ClassificationResult] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def primary(self) -> Optional[ClassificationResult]:
        return self.results[0] if self.results else None


class CaptureFlow:
    """
    Orchestrates voice and photo captures.

    Flow:
    1. Session -> open an input session in the record store
    2. Convert -> transcribe audio / describe images
    3. Route  -> batch routing for speech, single routing for photos
    4. Save   -> one record per result that carries a payload
    5. Close  -> update the session summary and status
    """

    def __init__(
        self,
        router: ContentRouter,
        transcription: TranscriptionService,
        vision: VisionService,
        record_store: Optional[RecordStoreInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._router = router
        self._transcription = transcription
        self._vision = vision
        self._record_store = record_store or InMemoryRecordStore()
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().app

    # =========================================================================
    # MEDIA -> RESULTS
    # =========================================================================

    async def process_voice_input(
        self,
        audio_path: str | Path,
        correlation_id: Optional[UUID] = None,
    ) -> list[ClassificationResult]:
        """
        Transcribe a recording and batch-route the transcript.

        Returns at least one result. A lone low-confidence result gets
        the start of the transcript appended to its summary.
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            transcript = await self._transcription.transcribe(audio_path)
        except EmptyTranscriptionError as e:
            await self._audit(AuditEventBuilder.media_failed(correlation_id, "audio", str(e)))
            return [ClassificationResult.unknown(EMPTY_TRANSCRIPT_SUMMARY)]
        except TranscriptionError as e:
            await self._audit(AuditEventBuilder.media_failed(correlation_id, "audio", str(e)))
            return [ClassificationResult.unknown(TRANSCRIPTION_FAILED_SUMMARY)]

        if not transcript.strip():
            return [ClassificationResult.unknown(EMPTY_TRANSCRIPT_SUMMARY)]

        await self._audit(
            AuditEventBuilder.media_completed(correlation_id, "audio", len(transcript))
        )

        results = await self._router.classify_batch(transcript, correlation_id)
        if len(results) == 1:
            results = [self._with_source_hint(results[0], "原文", transcript)]
        return results

    async def process_image_input(
        self,
        image_paths: Sequence[str | Path],
        correlation_id: Optional[UUID] = None,
    ) -> ClassificationResult:
        """Describe one or more photos and route the description."""
        correlation_id = correlation_id or create_correlation_id()

        try:
            analysis = await self._vision.describe(image_paths)
        except VisionError as e:
            await self._audit(AuditEventBuilder.media_failed(correlation_id, "image", str(e)))
            return ClassificationResult.unknown(VISION_FAILED_SUMMARY)

        if not analysis.strip():
            return ClassificationResult.unknown(EMPTY_ANALYSIS_SUMMARY)

        await self._audit(
            AuditEventBuilder.media_completed(correlation_id, "image", len(analysis))
        )

        result = await self._router.classify(analysis, correlation_id)
        return self._with_source_hint(result, "图片内容", analysis)

    def _with_source_hint(
        self,
        result: ClassificationResult,
        label: str,
        source: str,
    ) -> ClassificationResult:
        if result.confidence >= self._settings.low_confidence_hint_threshold:
            return result
        length = self._settings.source_hint_length
        excerpt = source[:length] + ("..." if len(source) > length else "")
        return result.model_copy(update={"summary": f"{result.summary} ({label}: {excerpt})"})

    # =========================================================================
    # FULL CAPTURES
    # =========================================================================

    async def capture_voice(self, audio_path: str | Path) -> CaptureOutcome:
        """Voice capture: session -> transcribe -> batch route -> save."""
        correlation_id = create_correlation_id()

        session_id = await self._open_session(correlation_id, SourceType.VOICE, str(audio_path))
        if session_id is None:
            return CaptureOutcome(success=False, error=SESSION_FAILED_ERROR)

        results = await self.process_voice_input(audio_path, correlation_id)
        return await self._store_results(correlation_id, session_id, results)

    async def capture_photo(self, image_paths: Sequence[str | Path]) -> CaptureOutcome:
        """Photo capture: session -> describe -> route -> save."""
        correlation_id = create_correlation_id()

        raw_ref = ",".join(str(path) for path in image_paths)
        session_id = await self._open_session(correlation_id, SourceType.IMAGE_BATCH, raw_ref)
        if session_id is None:
            return CaptureOutcome(success=False, error=SESSION_FAILED_ERROR)

        result = await self.process_image_input(image_paths, correlation_id)
        return await self._store_results(correlation_id, session_id, [result])

    async def _open_session(
        self,
        correlation_id: UUID,
        source_type: SourceType,
        raw_ref: str,
    ) -> Optional[UUID]:
        try:
            session_id = await self._record_store.create_session(source_type, raw_ref)
        except StorageError as e:
            await self._audit(
                AuditEventBuilder.system_error(
                    "session_create_failed", str(e), correlation_id=correlation_id
                )
            )
            return None

        await self._audit(
            AuditEventBuilder.session_created(correlation_id, session_id, source_type.value)
        )
        return session_id

    async def _store_results(
        self,
        correlation_id: UUID,
        session_id: UUID,
        results: list[ClassificationResult],
    ) -> CaptureOutcome:
        saved_count = 0
        for result in results:
            if await self._save_result(correlation_id, session_id, result):
                saved_count += 1

        success = saved_count > 0
        if saved_count == len(results):
            error = None
        elif saved_count == 0:
            error = SAVE_FAILED_ERROR
        else:
            error = PARTIAL_SAVE_ERROR

        summary = (
            f"共识别 {len(results)} 条记录" if len(results) > 1
            else results[0].summary
        )
        try:
            await self._record_store.update_session(
                session_id,
                summary,
                SessionStatus.COMPLETED if success else SessionStatus.FAILED,
            )
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_error(
                    "session_update_failed",
                    str(e),
                    details={"session_id": str(session_id)},
                    correlation_id=correlation_id,
                )

        return CaptureOutcome(
            success=success,
            session_id=session_id,
            results=results,
            error=error,
        )

    async def _save_result(
        self,
        correlation_id: UUID,
        session_id: UUID,
        result: ClassificationResult,
    ) -> bool:
        # Nothing to store for Unknown
        if result.payload is None:
            return True

        try:
            record_id = await self._record_store.save_record(
                result.route, result.payload, session_id
            )
        except StorageError as e:
            await self._audit(
                AuditEventBuilder.save_failed(correlation_id, result.route.value, str(e))
            )
            return False

        await self._audit(
            AuditEventBuilder.record_saved(
                correlation_id, session_id, result.route.value, record_id
            )
        )
        return True

    async def _audit(self, event: AuditEvent) -> None:
        if self._audit_logger:
            await self._audit_logger.log(event)


def create_app_components(
    inference: Optional[InferenceAdapter] = None,
    record_store: Optional[RecordStoreInterface] = None,
) -> tuple[CaptureFlow, ContentRouter, AuditLogger]:
    """
    Factory function to create all application components.

    Args:
        inference: Model adapter. Defaults to Gemini configured from
                  the environment.
        record_store: Record store. Defaults to an in-memory store.

    Returns:
        (capture_flow, router, audit_logger)
    """
    settings = get_settings()
    inference = inference or GeminiInferenceAdapter(settings.gemini)
    audit_logger = AuditLogger(InMemoryAuditStorage())

    router = ContentRouter(
        inference,
        settings=settings.router,
        audit_logger=audit_logger,
    )
    capture_flow = CaptureFlow(
        router=router,
        transcription=TranscriptionService(inference, settings.gemini),
        vision=VisionService(inference, settings.gemini),
        record_store=record_store,
        audit_logger=audit_logger,
        settings=settings.app,
    )
    return capture_flow, router, audit_logger
