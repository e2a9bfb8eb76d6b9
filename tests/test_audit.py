"""Tests for the audit logger and its in-memory sink."""

from uuid import uuid4

from onemind.audit import AuditLogger, create_correlation_id
from onemind.models import AuditEventBuilder, AuditEventType, AuditSeverity
from onemind.services.storage import InMemoryAuditStorage


class BrokenAuditStorage(InMemoryAuditStorage):
    async def append_event(self, event):
        raise ConnectionError("sink offline")


class TestAuditLogger:
    """Local logging plus an optional append-only sink."""

    async def test_event_appended_to_sink(self, audit_logger, audit_storage):
        event = AuditEventBuilder.route_requested(uuid4(), "花了25元买咖啡")
        assert await audit_logger.log(event) is True
        assert audit_storage.events == [event]

    async def test_without_sink(self):
        event = AuditEventBuilder.route_completed(uuid4(), 1, "todo", 0.9)
        assert await AuditLogger().log(event) is True

    async def test_sink_failure_never_raises(self):
        logger = AuditLogger(BrokenAuditStorage())
        event = AuditEventBuilder.route_exhausted(uuid4(), 3, ["transport"] * 3)
        assert await logger.log(event) is False

    async def test_log_error(self, audit_logger, audit_storage):
        correlation_id = create_correlation_id()
        await audit_logger.log_error(
            "parser_crash", "unexpected token", details={"tier": "strict"}, correlation_id=correlation_id
        )

        event = audit_storage.events[0]
        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.severity == AuditSeverity.ERROR
        assert event.correlation_id == correlation_id
        assert event.details == {"tier": "strict"}

    async def test_events_by_correlation_id(self, audit_logger, audit_storage):
        first, second = uuid4(), uuid4()
        await audit_logger.log(AuditEventBuilder.route_requested(first, "a"))
        await audit_logger.log(AuditEventBuilder.route_requested(second, "b"))
        await audit_logger.log(AuditEventBuilder.route_completed(first, 1, "finance", 0.9))

        events = await audit_storage.get_events_by_correlation_id(first)
        assert [e.event_type for e in events] == [
            AuditEventType.ROUTE_REQUESTED,
            AuditEventType.ROUTE_COMPLETED,
        ]

    def test_correlation_ids_unique(self):
        assert create_correlation_id() != create_correlation_id()

    async def test_trace_returns_one_call(self, audit_logger):
        correlation_id = create_correlation_id()
        await audit_logger.log(AuditEventBuilder.route_requested(correlation_id, "买牛奶"))
        await audit_logger.log(AuditEventBuilder.route_requested(uuid4(), "交房租"))

        trace = await audit_logger.trace(correlation_id)
        assert [e.correlation_id for e in trace] == [correlation_id]

    async def test_trace_without_sink(self):
        logger = AuditLogger()
        assert not logger.has_sink
        assert await logger.trace(uuid4()) == []
