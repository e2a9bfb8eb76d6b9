"""
Audit Models for OneMind

Every routing attempt, salvage, fallback and save is logged as an event.
This provides:
1. Traceability of a single classification across its retries
2. Debugging information when the inference service misbehaves
3. A record of which results came from heuristics rather than the model

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Routing
    ROUTE_REQUESTED = "route_requested"
    ROUTE_ATTEMPT_FAILED = "route_attempt_failed"
    RESPONSE_SALVAGED = "response_salvaged"
    HEURISTIC_APPLIED = "heuristic_applied"
    ROUTE_COMPLETED = "route_completed"
    ROUTE_EXHAUSTED = "route_exhausted"
    BATCH_FALLBACK = "batch_fallback"
    EMPTY_INPUT_REJECTED = "empty_input_rejected"

    # Media
    TRANSCRIPTION_COMPLETED = "transcription_completed"
    TRANSCRIPTION_FAILED = "transcription_failed"
    VISION_COMPLETED = "vision_completed"
    VISION_FAILED = "vision_failed"

    # Persistence
    SESSION_CREATED = "session_created"
    RECORD_SAVED = "record_saved"
    SAVE_FAILED = "save_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Events belonging to one classification share a correlation_id.
    """

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID shared by every event of one logical call"
    )
    attempt: Optional[int] = Field(
        default=None,
        description="Attempt number within the call, when relevant"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "attempt": self.attempt,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_row(self) -> list[str]:
        """
        Flatten for tabular sinks.

        Columns: [event_id, timestamp, event_type, severity, correlation_id,
        attempt, description, details_json, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            str(self.correlation_id) if self.correlation_id else "",
            str(self.attempt) if self.attempt is not None else "",
            self.description,
            json.dumps(self.details, ensure_ascii=False) if self.details else "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.attempt_failed(correlation_id, 2, "transport", "timeout")
        await audit_logger.log(event)
    """

    @staticmethod
    def route_requested(
        correlation_id: UUID,
        preview: str,
        batch: bool = False,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ROUTE_REQUESTED,
            correlation_id=correlation_id,
            description="Batch routing requested" if batch else "Routing requested",
            details={"preview": preview, "batch": batch},
        )

    @staticmethod
    def empty_input_rejected(correlation_id: UUID, failure_kind: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EMPTY_INPUT_REJECTED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="Empty input rejected before inference",
            details={"failure_kind": failure_kind},
        )

    @staticmethod
    def attempt_failed(
        correlation_id: UUID,
        attempt: int,
        failure_kind: str,
        error_message: str,
        backoff_seconds: float,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ROUTE_ATTEMPT_FAILED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            attempt=attempt,
            description=f"Attempt {attempt} failed ({failure_kind})",
            details={"failure_kind": failure_kind, "backoff_seconds": backoff_seconds},
            error_message=error_message[:500],
        )

    @staticmethod
    def response_salvaged(
        correlation_id: UUID,
        attempt: int,
        tier: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RESPONSE_SALVAGED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            attempt=attempt,
            description=f"Malformed response salvaged by {tier} parser",
            details={"tier": tier},
        )

    @staticmethod
    def heuristic_applied(
        correlation_id: UUID,
        original_route: str,
        original_confidence: float,
        heuristic_route: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.HEURISTIC_APPLIED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Heuristic routing replaced {original_route} result",
            details={
                "original_route": original_route,
                "original_confidence": original_confidence,
                "heuristic_route": heuristic_route,
            },
        )

    @staticmethod
    def route_completed(
        correlation_id: UUID,
        attempt: int,
        route: str,
        confidence: float,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ROUTE_COMPLETED,
            correlation_id=correlation_id,
            attempt=attempt,
            description=f"Routed as {route}",
            details={"route": route, "confidence": confidence},
        )

    @staticmethod
    def route_exhausted(
        correlation_id: UUID,
        attempts: int,
        failure_kinds: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ROUTE_EXHAUSTED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            attempt=attempts,
            description=f"All {attempts} routing attempts failed",
            details={"failure_kinds": failure_kinds},
        )

    @staticmethod
    def batch_fallback(correlation_id: UUID, attempts: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BATCH_FALLBACK,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            attempt=attempts,
            description="Batch routing produced no items, falling back to single routing",
        )

    @staticmethod
    def media_completed(
        correlation_id: UUID,
        kind: str,
        text_length: int,
    ) -> AuditEvent:
        event_type = (
            AuditEventType.TRANSCRIPTION_COMPLETED if kind == "audio"
            else AuditEventType.VISION_COMPLETED
        )
        return AuditEvent(
            event_type=event_type,
            correlation_id=correlation_id,
            description=f"{kind} converted to text",
            details={"text_length": text_length},
        )

    @staticmethod
    def media_failed(
        correlation_id: UUID,
        kind: str,
        error_message: str,
    ) -> AuditEvent:
        event_type = (
            AuditEventType.TRANSCRIPTION_FAILED if kind == "audio"
            else AuditEventType.VISION_FAILED
        )
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"{kind} could not be converted to text",
            error_message=error_message[:500],
        )

    @staticmethod
    def session_created(correlation_id: UUID, session_id: UUID, source_type: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_CREATED,
            correlation_id=correlation_id,
            description=f"{source_type} input session created",
            details={"session_id": str(session_id), "source_type": source_type},
        )

    @staticmethod
    def record_saved(
        correlation_id: UUID,
        session_id: UUID,
        route: str,
        record_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_SAVED,
            correlation_id=correlation_id,
            description=f"{route} record saved",
            details={"session_id": str(session_id), "record_id": str(record_id), "route": route},
        )

    @staticmethod
    def save_failed(
        correlation_id: UUID,
        route: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"{route} record could not be saved",
            error_message=error_message[:500],
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"System error: {error_type}",
            details=details or {},
            error_message=error_message[:500],
        )
