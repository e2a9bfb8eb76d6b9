"""
Core Data Models for OneMind Routing

These models define the schemas for everything the routing core produces.
They are designed to:
1. Make "partial" payloads representable (every record field is optional
   until the normalizer has run)
2. Enforce the route/payload shape invariant at construction time
3. Be immutable once returned to a caller
4. Be serializable for storage and logging

DESIGN DECISION: One frozen pydantic model per route plus a tagged
ClassificationResult. The normalizer is the only code path that turns a
sparse record into a fully-populated one.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class RouteType(str, Enum):
    """Target life-domain for one piece of input."""
    FINANCE = "finance"
    TODO = "todo"
    INVENTORY = "inventory"
    UNKNOWN = "unknown"


class TodoKind(str, Enum):
    """Kind of todo record."""
    TASK = "task"
    REMINDER = "reminder"
    INSPIRATION = "inspiration"


class RepeatRule(str, Enum):
    """Repeat rule for a todo. CUSTOM repeats every repeat_interval days."""
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class StorageZone(str, Enum):
    """
    Physical location of an inventory item.

    Location first, category second: users look for things by where
    they keep them.
    """
    REFRIGERATED = "refrigerated"
    FROZEN = "frozen"
    PANTRY = "pantry"
    BATHROOM = "bathroom"
    KITCHEN = "kitchen"
    LIVING_ROOM = "living-room"
    BEDROOM = "bedroom"
    STORAGE_ROOM = "storage-room"
    OTHER = "other"


class ParseTier(str, Enum):
    """Which parser strategy produced a result."""
    STRICT = "strict"
    EMBEDDED = "embedded"
    FIELDS = "fields"


# =============================================================================
# DEFAULTS
# =============================================================================

DEFAULT_FINANCE_CATEGORY = "其他"
DEFAULT_TODO_TITLE = "未命名任务"
DEFAULT_TODO_CATEGORY = "未分类"
DEFAULT_TODO_PRIORITY = 2
DEFAULT_INVENTORY_NAME = "未命名物品"
DEFAULT_INVENTORY_CATEGORY = "其他"
DEFAULT_INVENTORY_UNIT = "个"
DEFAULT_INVENTORY_QUANTITY = 1.0


# =============================================================================
# PAYLOADS
# =============================================================================

class FinanceRecord(BaseModel):
    """An expense. Amount is in the user's local currency."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    amount: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Amount spent"
    )
    category: Optional[str] = Field(
        default=None,
        description="Spending category (餐饮, 交通, ...)"
    )
    description: Optional[str] = None
    emotion_tag: Optional[str] = Field(
        default=None,
        description="Mood at the time of spending"
    )
    is_essential: Optional[bool] = None
    record_date: Optional[date] = None


class TodoRecord(BaseModel):
    """A task, reminder or inspiration."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    title: Optional[str] = None
    description: Optional[str] = None
    kind: Optional[TodoKind] = None
    priority: Optional[int] = Field(
        default=None,
        ge=1,
        le=3,
        description="1 low, 2 medium, 3 high"
    )
    due_date: Optional[date] = None
    remind_at: Optional[datetime] = None
    repeat_rule: Optional[RepeatRule] = None
    repeat_interval: Optional[int] = Field(
        default=None,
        ge=1,
        description="Days between repeats when repeat_rule is custom"
    )
    category: Optional[str] = None


class InventoryRecord(BaseModel):
    """An item the user keeps at home."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    name: Optional[str] = None
    category: Optional[str] = None
    storage_zone: Optional[StorageZone] = None
    quantity: Optional[float] = Field(
        default=None,
        ge=0,
    )
    unit: Optional[str] = None
    expiry_date: Optional[date] = Field(
        default=None,
        description="Only food and medicine carry one"
    )


Payload = Union[FinanceRecord, TodoRecord, InventoryRecord]

PAYLOAD_TYPES: dict[RouteType, type[BaseModel]] = {
    RouteType.FINANCE: FinanceRecord,
    RouteType.TODO: TodoRecord,
    RouteType.INVENTORY: InventoryRecord,
}


# =============================================================================
# RESULT
# =============================================================================

class ClassificationResult(BaseModel):
    """
    Outcome of one logical classification (or one batch item).

    CRITICAL: Immutable once constructed. Anything that wants a different
    summary must build a copy.
    """
    model_config = ConfigDict(frozen=True)

    route: RouteType
    confidence: float = Field(ge=0.0, le=1.0)
    summary: str = ""
    payload: Optional[Payload] = None

    @model_validator(mode="after")
    def validate_payload_shape(self) -> "ClassificationResult":
        """Unknown carries no payload; any payload must match its route."""
        if self.route == RouteType.UNKNOWN:
            if self.payload is not None:
                raise ValueError("Unknown route cannot carry a payload")
            return self

        expected = PAYLOAD_TYPES[self.route]
        if self.payload is not None and not isinstance(self.payload, expected):
            raise ValueError(
                f"Payload {type(self.payload).__name__} does not match route {self.route.value}"
            )
        return self

    @property
    def is_unknown(self) -> bool:
        return self.route == RouteType.UNKNOWN

    @classmethod
    def unknown(cls, summary: str, confidence: float = 0.0) -> "ClassificationResult":
        return cls(route=RouteType.UNKNOWN, confidence=confidence, summary=summary)


class ParsedRoute(BaseModel):
    """
    What the response parser recovered, before validation.

    Values are kept exactly as the model emitted them; the router
    coerces route and confidence, the normalizer fills the payload.
    """
    model_config = ConfigDict(frozen=True)

    route_type: Optional[str] = None
    confidence: Any = None
    summary: Optional[str] = None
    data: Optional[dict[str, Any]] = None
    tier: ParseTier = ParseTier.STRICT

    @classmethod
    def from_mapping(cls, mapping: dict, tier: ParseTier) -> "ParsedRoute":
        route_type = mapping.get("route_type")
        summary = mapping.get("summary")
        data = mapping.get("data")
        return cls(
            route_type=str(route_type) if route_type else None,
            confidence=mapping.get("confidence"),
            summary=str(summary) if summary is not None else None,
            data=data if isinstance(data, dict) else None,
            tier=tier,
        )


@dataclass(frozen=True)
class ParseFailure:
    """All parser tiers failed."""
    reason: str


@dataclass(frozen=True)
class RequestContext:
    """
    Correlation data for one logical classification.

    The correlation id is unique per call and stable across its retries.
    """
    correlation_id: UUID = field(default_factory=uuid4)
    attempt: int = 0

    def next_attempt(self, number: Optional[int] = None) -> "RequestContext":
        """Context for the following attempt, or for attempt `number`."""
        attempt = self.attempt + 1 if number is None else number
        return RequestContext(correlation_id=self.correlation_id, attempt=attempt)
