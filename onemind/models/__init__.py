"""
Data Models Package

This package contains all Pydantic models used by the OneMind routing core.
All data flowing through the system must conform to these schemas.
"""

from onemind.models.route import (
    ClassificationResult,
    FinanceRecord,
    InventoryRecord,
    ParsedRoute,
    ParseFailure,
    ParseTier,
    Payload,
    RepeatRule,
    RequestContext,
    RouteType,
    StorageZone,
    TodoKind,
    TodoRecord,
)
from onemind.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Route models
    "ClassificationResult",
    "FinanceRecord",
    "InventoryRecord",
    "ParsedRoute",
    "ParseFailure",
    "ParseTier",
    "Payload",
    "RepeatRule",
    "RequestContext",
    "RouteType",
    "StorageZone",
    "TodoKind",
    "TodoRecord",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
