"""
Field Normalizer

Turns whatever the model (or the heuristic classifier) produced into a
fully-populated payload of the declared route's shape.

DESIGN DECISION: normalize() is total. There is no input it rejects:
missing fields get their documented default, out-of-range numbers are
replaced, unknown enum spellings fall back to the enum default. It is
also idempotent, so running it twice is always safe.

IMPORTANT: A missing or non-finite number is replaced by its documented
default, never by zero unless zero IS the default (finance amount).
"""

import math
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from onemind.models.route import (
    DEFAULT_FINANCE_CATEGORY,
    DEFAULT_INVENTORY_CATEGORY,
    DEFAULT_INVENTORY_NAME,
    DEFAULT_INVENTORY_QUANTITY,
    DEFAULT_INVENTORY_UNIT,
    DEFAULT_TODO_CATEGORY,
    DEFAULT_TODO_PRIORITY,
    DEFAULT_TODO_TITLE,
    ClassificationResult,
    FinanceRecord,
    InventoryRecord,
    Payload,
    RepeatRule,
    RouteType,
    StorageZone,
    TodoKind,
    TodoRecord,
)


# Checked in this order; first set with a hit wins
TODO_CATEGORY_KEYWORDS: list[tuple[str, list[str]]] = [
    ("工作", ["会议", "客户", "方案", "汇报", "项目", "同事", "周报", "对接"]),
    ("学习", ["学习", "课程", "复习", "作业", "考试", "阅读", "笔记"]),
    ("健康", ["健身", "跑步", "体检", "吃药", "看医生", "锻炼"]),
    ("购物", ["买", "采购", "下单", "超市", "购物", "快递"]),
    ("出行", ["出差", "旅行", "机票", "高铁", "航班", "酒店"]),
    ("生活", ["家务", "缴费", "水电", "收拾", "做饭", "打扫"]),
    ("灵感", ["灵感", "想法", "点子", "idea", "主意"]),
]

TODO_KIND_ALIASES = {
    "task": TodoKind.TASK,
    "todo": TodoKind.TASK,
    "待办": TodoKind.TASK,
    "任务": TodoKind.TASK,
    "reminder": TodoKind.REMINDER,
    "提醒": TodoKind.REMINDER,
    "inspiration": TodoKind.INSPIRATION,
    "灵感": TodoKind.INSPIRATION,
}

STORAGE_ZONE_ALIASES = {
    "refrigerated": StorageZone.REFRIGERATED,
    "fridge": StorageZone.REFRIGERATED,
    "refrigerator": StorageZone.REFRIGERATED,
    "冷藏": StorageZone.REFRIGERATED,
    "冰箱": StorageZone.REFRIGERATED,
    "frozen": StorageZone.FROZEN,
    "freezer": StorageZone.FROZEN,
    "冷冻": StorageZone.FROZEN,
    "pantry": StorageZone.PANTRY,
    "食品柜": StorageZone.PANTRY,
    "bathroom": StorageZone.BATHROOM,
    "浴室": StorageZone.BATHROOM,
    "卫生间": StorageZone.BATHROOM,
    "kitchen": StorageZone.KITCHEN,
    "厨房": StorageZone.KITCHEN,
    "livingroom": StorageZone.LIVING_ROOM,
    "客厅": StorageZone.LIVING_ROOM,
    "bedroom": StorageZone.BEDROOM,
    "卧室": StorageZone.BEDROOM,
    "storage": StorageZone.STORAGE_ROOM,
    "storageroom": StorageZone.STORAGE_ROOM,
    "储物间": StorageZone.STORAGE_ROOM,
    "储藏室": StorageZone.STORAGE_ROOM,
    "other": StorageZone.OTHER,
    "其他": StorageZone.OTHER,
}

_CUSTOM_REPEAT_RE = re.compile(r"^custom[-_ ]?(\d+)(?:[-_ ]?days?)?$")
_DATE_FORMATS = ["%Y-%m-%d", "%Y/%m/%d", "%d-%m-%Y", "%d/%m/%Y", "%Y年%m月%d日"]
_DATETIME_FORMATS = ["%Y-%m-%d %H:%M", "%Y-%m-%d %H:%M:%S", "%Y/%m/%d %H:%M"]


def infer_todo_category(content: str) -> str:
    """Keyword match against the fixed todo label set."""
    cleaned = " ".join(content.split())
    if not cleaned:
        return DEFAULT_TODO_CATEGORY

    for label, keywords in TODO_CATEGORY_KEYWORDS:
        if any(keyword in cleaned for keyword in keywords):
            return label

    return DEFAULT_TODO_CATEGORY


# =============================================================================
# SAFE CONVERSIONS - never raise, return None on anything unusable
# =============================================================================

def _safe_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _safe_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _safe_decimal(value: Any) -> Optional[Decimal]:
    """Non-negative finite Decimal, or None."""
    if isinstance(value, str):
        value = value.replace("¥", "").replace("元", "").replace(",", "").strip()
    number = _safe_float(value)
    if number is None:
        return None
    try:
        return abs(Decimal(str(number)))
    except InvalidOperation:
        return None


def _safe_int(value: Any) -> Optional[int]:
    number = _safe_float(value)
    if number is None or number != int(number):
        return None
    return int(number)


def _safe_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "1", "是"):
            return True
        if lowered in ("false", "no", "0", "否"):
            return False
    return None


def _safe_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _safe_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in _DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def _alias_key(value: Any) -> Optional[str]:
    text = _safe_str(value)
    if text is None:
        return None
    return re.sub(r"[\s_\-]", "", text.lower())


# =============================================================================
# ROUTE / CONFIDENCE
# =============================================================================

def coerce_route(value: Any) -> RouteType:
    """Unrecognised route values become UNKNOWN."""
    text = _safe_str(value)
    if text is None:
        return RouteType.UNKNOWN
    try:
        return RouteType(text.lower())
    except ValueError:
        return RouteType.UNKNOWN


def coerce_confidence(value: Any, default: float = 0.5) -> float:
    """Clamp into [0, 1]; missing, non-numeric or NaN gives the default."""
    number = _safe_float(value)
    if number is None:
        if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isinf(value):
            return 1.0 if value > 0 else 0.0
        return default
    return min(max(number, 0.0), 1.0)


# =============================================================================
# PAYLOAD COERCION
# =============================================================================

def _coerce_repeat(rule: Any, interval: Any) -> tuple[Optional[RepeatRule], Optional[int]]:
    key = _alias_key(rule)
    parsed_interval = _safe_int(interval)
    if key is None:
        return None, None

    match = _CUSTOM_REPEAT_RE.match(key)
    if match:
        return RepeatRule.CUSTOM, int(match.group(1)) or None
    try:
        return RepeatRule(key), parsed_interval
    except ValueError:
        return None, None


def coerce_payload(route: RouteType, data: Optional[Mapping[str, Any]]) -> Optional[Payload]:
    """
    Build a partial typed record from a loose mapping.

    Fields of the wrong type are dropped (left None) rather than rejected;
    normalize() fills them in afterwards.
    """
    if route == RouteType.UNKNOWN:
        return None
    data = data or {}

    if route == RouteType.FINANCE:
        return FinanceRecord(
            amount=_safe_decimal(data.get("amount")),
            category=_safe_str(data.get("category")),
            description=_safe_str(data.get("description")),
            emotion_tag=_safe_str(data.get("emotion_tag")),
            is_essential=_safe_bool(data.get("is_essential")),
            record_date=_safe_date(data.get("record_date")),
        )

    if route == RouteType.TODO:
        priority = _safe_int(data.get("priority"))
        repeat_rule, repeat_interval = _coerce_repeat(
            data.get("repeat_rule"), data.get("repeat_interval")
        )
        return TodoRecord(
            title=_safe_str(data.get("title")),
            description=_safe_str(data.get("description")),
            kind=TODO_KIND_ALIASES.get(_alias_key(data.get("kind", data.get("type"))) or ""),
            priority=priority if priority in (1, 2, 3) else None,
            due_date=_safe_date(data.get("due_date")),
            remind_at=_safe_datetime(data.get("remind_at")),
            repeat_rule=repeat_rule,
            repeat_interval=repeat_interval if repeat_interval and repeat_interval > 0 else None,
            category=_safe_str(data.get("category")),
        )

    quantity = _safe_float(data.get("quantity"))
    return InventoryRecord(
        name=_safe_str(data.get("name")),
        category=_safe_str(data.get("category")),
        storage_zone=STORAGE_ZONE_ALIASES.get(_alias_key(data.get("storage_zone")) or ""),
        quantity=quantity if quantity is not None and quantity >= 0 else None,
        unit=_safe_str(data.get("unit")),
        expiry_date=_safe_date(data.get("expiry_date")),
    )


# =============================================================================
# NORMALIZE
# =============================================================================

def _normalize_finance(record: FinanceRecord, summary: str, today: date) -> FinanceRecord:
    return FinanceRecord(
        amount=record.amount if record.amount is not None else Decimal("0"),
        category=record.category or DEFAULT_FINANCE_CATEGORY,
        description=record.description or summary,
        emotion_tag=record.emotion_tag,
        is_essential=record.is_essential,
        record_date=record.record_date or today,
    )


def _normalize_todo(record: TodoRecord, summary: str) -> TodoRecord:
    title = record.title or summary or DEFAULT_TODO_TITLE
    inferred = infer_todo_category(f"{title} {record.description or ''}")
    category = inferred if inferred != DEFAULT_TODO_CATEGORY else (record.category or inferred)

    repeat_rule, repeat_interval = record.repeat_rule, record.repeat_interval
    if repeat_rule == RepeatRule.CUSTOM and repeat_interval is None:
        repeat_rule = None
    if repeat_rule != RepeatRule.CUSTOM:
        repeat_interval = None

    return TodoRecord(
        title=title,
        description=record.description,
        kind=record.kind or TodoKind.TASK,
        priority=record.priority or DEFAULT_TODO_PRIORITY,
        due_date=record.due_date,
        remind_at=record.remind_at,
        repeat_rule=repeat_rule,
        repeat_interval=repeat_interval,
        category=category,
    )


def _normalize_inventory(record: InventoryRecord, summary: str) -> InventoryRecord:
    quantity = record.quantity
    if quantity is None or not math.isfinite(quantity):
        quantity = DEFAULT_INVENTORY_QUANTITY
    return InventoryRecord(
        name=record.name or summary or DEFAULT_INVENTORY_NAME,
        category=record.category or DEFAULT_INVENTORY_CATEGORY,
        storage_zone=record.storage_zone or StorageZone.OTHER,
        quantity=quantity,
        unit=record.unit or DEFAULT_INVENTORY_UNIT,
        expiry_date=record.expiry_date,
    )


def normalize(
    result: ClassificationResult,
    today: Optional[date] = None,
) -> ClassificationResult:
    """
    Fill every documented default for the result's route.

    Args:
        result: Any result, however sparse its payload
        today: Default finance record date (defaults to date.today())

    Returns:
        A new result whose payload is fully populated. Unknown results
        are returned unchanged.
    """
    if result.route == RouteType.UNKNOWN:
        return result

    payload = result.payload or coerce_payload(result.route, None)
    summary = result.summary.strip()

    if isinstance(payload, FinanceRecord):
        payload = _normalize_finance(payload, summary, today or date.today())
    elif isinstance(payload, TodoRecord):
        payload = _normalize_todo(payload, summary)
    else:
        payload = _normalize_inventory(payload, summary)

    return ClassificationResult(
        route=result.route,
        confidence=result.confidence,
        summary=result.summary,
        payload=payload,
    )
