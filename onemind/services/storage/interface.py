"""
Abstract Storage Interface

DESIGN DECISION: The routing core never talks to a database directly.
It hands normalized payloads to a record store that implements this
interface. This allows us to:
1. Swap the remote table store without touching routing
2. Use in-memory storage for testing
3. Keep business logic decoupled from the persistence schema

The interface is intentionally small: sessions plus one save per
accepted ClassificationResult.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional
from uuid import UUID

from onemind.models.audit import AuditEvent
from onemind.models.route import Payload, RouteType


class SourceType(str, Enum):
    """Where an input session came from."""
    VOICE = "voice"
    IMAGE_BATCH = "image_batch"
    TEXT = "text"


class SessionStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class RecordStoreInterface(ABC):
    """
    Abstract interface for the record-store collaborator.

    Any storage implementation (remote tables, SQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def create_session(
        self,
        source_type: SourceType,
        raw_content_ref: Optional[str] = None,
    ) -> UUID:
        """
        Open an input session for one capture.

        Args:
            source_type: Voice, image batch or text
            raw_content_ref: Path or URL of the raw media, if kept

        Returns:
            The new session id

        Raises:
            StorageError: If the session cannot be created
        """
        pass

    @abstractmethod
    async def save_record(
        self,
        route: RouteType,
        payload: Payload,
        session_id: UUID,
    ) -> UUID:
        """
        Persist exactly one normalized payload.

        Args:
            route: Route the payload belongs to (never UNKNOWN)
            payload: Fully normalized record
            session_id: Session the record was captured in

        Returns:
            The stored record id

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def update_session(
        self,
        session_id: UUID,
        summary: str,
        status: SessionStatus,
    ) -> None:
        """
        Record the processed summary and final status of a session.

        Raises:
            NotFoundError: If the session doesn't exist
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (one classification or capture).

        Returns:
            List of related events in chronological order
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass
