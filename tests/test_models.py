"""
Tests for OneMind

Test strategy:
1. Unit tests for individual components (models, parser, normalizer, heuristics)
2. Integration tests for the router and capture flows (with fake adapters)
3. No real API calls in tests (use fakes)
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from onemind.models import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    ClassificationResult,
    FinanceRecord,
    InventoryRecord,
    ParsedRoute,
    ParseTier,
    RequestContext,
    RouteType,
    StorageZone,
    TodoRecord,
)


class TestRecordModels:
    """Tests for the per-route payload models."""

    def test_finance_record_creation(self):
        """Test FinanceRecord model creation."""
        record = FinanceRecord(
            amount=Decimal("25"),
            category="餐饮",
            description="咖啡",
            record_date=date(2026, 3, 15),
        )
        assert record.amount == Decimal("25")
        assert record.category == "餐饮"

    def test_finance_record_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValueError):
            FinanceRecord(amount=Decimal("-1"))

    def test_records_allow_partial_payloads(self):
        """Every field may be missing until the normalizer runs."""
        assert FinanceRecord().amount is None
        assert TodoRecord().title is None
        assert InventoryRecord().quantity is None

    def test_todo_priority_bounds(self):
        """Priority must be 1, 2 or 3."""
        assert TodoRecord(priority=3).priority == 3
        with pytest.raises(ValueError):
            TodoRecord(priority=4)
        with pytest.raises(ValueError):
            TodoRecord(priority=0)

    def test_todo_repeat_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            TodoRecord(repeat_interval=0)

    def test_inventory_rejects_negative_quantity(self):
        with pytest.raises(ValueError):
            InventoryRecord(quantity=-2)

    def test_records_strip_whitespace(self):
        """Test that whitespace is stripped from text fields."""
        item = InventoryRecord(name="  牛奶  ")
        assert item.name == "牛奶"

    def test_records_are_frozen(self):
        """Records are immutable once built."""
        record = FinanceRecord(amount=Decimal("5"))
        with pytest.raises(ValueError):
            record.amount = Decimal("6")

    def test_storage_zone_values(self):
        """Storage zones use hyphenated canonical values."""
        assert StorageZone.LIVING_ROOM.value == "living-room"
        assert StorageZone.STORAGE_ROOM.value == "storage-room"


class TestClassificationResult:
    """Tests for the route/payload shape invariant."""

    def test_unknown_carries_no_payload(self):
        result = ClassificationResult.unknown("没有可分析的内容")
        assert result.is_unknown
        assert result.payload is None
        assert result.confidence == 0.0

    def test_unknown_with_payload_rejected(self):
        with pytest.raises(ValueError, match="cannot carry a payload"):
            ClassificationResult(
                route=RouteType.UNKNOWN,
                confidence=0.1,
                summary="?",
                payload=FinanceRecord(amount=Decimal("1")),
            )

    def test_mismatched_payload_rejected(self):
        with pytest.raises(ValueError, match="does not match route"):
            ClassificationResult(
                route=RouteType.TODO,
                confidence=0.8,
                summary="买牛奶",
                payload=InventoryRecord(name="牛奶"),
            )

    def test_confidence_must_be_in_range(self):
        with pytest.raises(ValueError):
            ClassificationResult(route=RouteType.UNKNOWN, confidence=1.5)

    def test_result_is_frozen(self):
        result = ClassificationResult.unknown("x")
        with pytest.raises(ValueError):
            result.summary = "y"

    def test_model_copy_leaves_original_untouched(self):
        result = ClassificationResult.unknown("原始")
        copy = result.model_copy(update={"summary": "修改"})
        assert result.summary == "原始"
        assert copy.summary == "修改"


class TestParsedRoute:
    """Tests for the loose parser output."""

    def test_from_mapping_keeps_raw_values(self):
        parsed = ParsedRoute.from_mapping(
            {"route_type": "todo", "confidence": "high", "summary": "开会", "data": {"title": "开会"}},
            ParseTier.EMBEDDED,
        )
        assert parsed.route_type == "todo"
        assert parsed.confidence == "high"
        assert parsed.data == {"title": "开会"}
        assert parsed.tier == ParseTier.EMBEDDED

    def test_from_mapping_drops_non_object_data(self):
        parsed = ParsedRoute.from_mapping(
            {"route_type": "finance", "summary": "x", "data": [1, 2]},
            ParseTier.STRICT,
        )
        assert parsed.data is None

    def test_from_mapping_missing_route(self):
        parsed = ParsedRoute.from_mapping({"summary": "x"}, ParseTier.STRICT)
        assert parsed.route_type is None


class TestRequestContext:
    """Tests for correlation data."""

    def test_correlation_id_stable_across_attempts(self):
        context = RequestContext()
        retried = context.next_attempt().next_attempt()
        assert retried.correlation_id == context.correlation_id
        assert retried.attempt == 2

    def test_correlation_id_unique_per_call(self):
        assert RequestContext().correlation_id != RequestContext().correlation_id


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.ROUTE_REQUESTED,
            severity=AuditSeverity.INFO,
            description="Routing requested",
        )
        assert event.event_type == AuditEventType.ROUTE_REQUESTED
        assert event.event_id is not None
        assert event.timestamp is not None

    def test_audit_event_to_log_dict(self):
        correlation_id = uuid4()
        event = AuditEventBuilder.route_completed(correlation_id, 1, "finance", 0.9)
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "route_completed"
        assert log_dict["correlation_id"] == str(correlation_id)
        assert log_dict["details"] == {"route": "finance", "confidence": 0.9}

    def test_audit_event_to_row(self):
        event = AuditEventBuilder.heuristic_applied(uuid4(), "unknown", 0.2, "inventory")
        row = event.to_row()
        assert len(row) == 9
        assert row[2] == "heuristic_applied"
        assert row[5] == ""
        assert "inventory" in row[7]

    def test_attempt_failed_builder(self):
        """Test AuditEventBuilder.attempt_failed."""
        correlation_id = uuid4()
        event = AuditEventBuilder.attempt_failed(
            correlation_id, 2, "transport", "timeout", 2.0
        )
        assert event.event_type == AuditEventType.ROUTE_ATTEMPT_FAILED
        assert event.severity == AuditSeverity.WARNING
        assert event.attempt == 2
        assert event.details["backoff_seconds"] == 2.0
        assert event.error_message == "timeout"

    def test_error_message_truncated(self):
        event = AuditEventBuilder.save_failed(uuid4(), "todo", "x" * 2000)
        assert len(event.error_message) == 500

    def test_media_builders_pick_event_type(self):
        correlation_id = uuid4()
        assert (
            AuditEventBuilder.media_completed(correlation_id, "audio", 10).event_type
            == AuditEventType.TRANSCRIPTION_COMPLETED
        )
        assert (
            AuditEventBuilder.media_failed(correlation_id, "image", "boom").event_type
            == AuditEventType.VISION_FAILED
        )
