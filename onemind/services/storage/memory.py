"""
In-memory storage backends.

Used by tests and local runs. Records are kept as plain dicts shaped
like the remote tables so callers can inspect exactly what would have
been written.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from onemind.models.audit import AuditEvent
from onemind.models.route import Payload, RouteType
from onemind.services.storage.interface import (
    AuditStorageInterface,
    NotFoundError,
    RecordStoreInterface,
    SessionStatus,
    SourceType,
    StorageError,
)


TABLE_NAMES = {
    RouteType.FINANCE: "finance_records",
    RouteType.TODO: "actions",
    RouteType.INVENTORY: "inventory_items",
}


class InMemoryRecordStore(RecordStoreInterface):
    """Record store backed by dicts, one list per table."""

    def __init__(self):
        self.sessions: dict[UUID, dict] = {}
        self.tables: dict[str, list[dict]] = {name: [] for name in TABLE_NAMES.values()}

    async def create_session(
        self,
        source_type: SourceType,
        raw_content_ref: Optional[str] = None,
    ) -> UUID:
        session_id = uuid4()
        self.sessions[session_id] = {
            "id": session_id,
            "source_type": source_type.value,
            "raw_content_ref": raw_content_ref,
            "processed_summary": None,
            "status": SessionStatus.PROCESSING.value,
            "created_at": datetime.utcnow(),
        }
        return session_id

    async def save_record(
        self,
        route: RouteType,
        payload: Payload,
        session_id: UUID,
    ) -> UUID:
        table = TABLE_NAMES.get(route)
        if table is None:
            raise StorageError(f"No table for route {route.value}")
        if session_id not in self.sessions:
            raise NotFoundError(f"Session {session_id} not found")

        record_id = uuid4()
        row = payload.model_dump(mode="json")
        row.update({"id": record_id, "session_id": session_id})
        self.tables[table].append(row)
        return record_id

    async def update_session(
        self,
        session_id: UUID,
        summary: str,
        status: SessionStatus,
    ) -> None:
        session = self.sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"Session {session_id} not found")
        session["processed_summary"] = summary
        session["status"] = status.value

    def rows(self, route: RouteType) -> list[dict]:
        return list(self.tables[TABLE_NAMES[route]])


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        matching = [e for e in self.events if e.correlation_id == correlation_id]
        return sorted(matching, key=lambda e: e.timestamp)
