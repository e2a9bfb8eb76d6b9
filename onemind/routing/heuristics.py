"""
Heuristic Fallback Classifier

A network-free, keyword/regex classifier consulted only when the model
result cannot be trusted (unknown route or low confidence).

DESIGN DECISION: The decision order is a fixed policy:
    inventory > finance > todo
Inventory wins unless the text is clearly a purchase (finance keywords
AND an amount). Finance needs an amount to be useful at all. Todo is
the last resort. Anything else returns None and the caller keeps the
model's own low-confidence answer.

Every heuristic result carries the same fixed confidence: better than
nothing, not authoritative.
"""

import re
from decimal import Decimal
from typing import Optional

from onemind.models.route import (
    DEFAULT_FINANCE_CATEGORY,
    DEFAULT_INVENTORY_CATEGORY,
    DEFAULT_INVENTORY_UNIT,
    DEFAULT_TODO_PRIORITY,
    ClassificationResult,
    FinanceRecord,
    InventoryRecord,
    RouteType,
    StorageZone,
    TodoKind,
    TodoRecord,
)
from onemind.routing.normalizer import infer_todo_category


HEURISTIC_CONFIDENCE = 0.4
SUMMARY_MAX_LENGTH = 40

FINANCE_KEYWORDS = ["花", "花费", "付款", "支付", "消费", "买", "购买", "账单", "收据", "费用", "¥", "元"]
TODO_KEYWORDS = ["要做", "需要", "记得", "提醒", "任务", "计划", "安排", "待办"]
INVENTORY_KEYWORDS = ["库存", "剩余", "还有", "补充", "用完", "存入", "放入", "放在", "冰箱", "冷冻", "冷藏"]

_UNITS = "个|瓶|袋|盒|斤|克|包|箱|件|支|片"
_CN_NUMERAL = "[零一二两三四五六七八九十百千]+"

_AMOUNT_RE = re.compile(r"(\d+(?:\.\d+)?)(?:\s*(元|块|¥))?")
_CN_AMOUNT_RE = re.compile(rf"({_CN_NUMERAL})\s*(元|块)")
_QUANTITY_RE = re.compile(rf"(\d+(?:\.\d+)?)(?:\s*({_UNITS}))?")
_CN_QUANTITY_RE = re.compile(rf"({_CN_NUMERAL})\s*({_UNITS})")

_CN_DIGITS = {
    "零": 0, "一": 1, "二": 2, "两": 2, "三": 3, "四": 4,
    "五": 5, "六": 6, "七": 7, "八": 8, "九": 9,
}
_CN_MULTIPLIERS = {"十": 10, "百": 100, "千": 1000}


def parse_chinese_number(token: str) -> Optional[int]:
    """
    Parse a small Chinese numeral (两, 十五, 二十三, 一百零五).

    Returns None for anything that isn't purely numeral characters.
    """
    if not token:
        return None
    total, current = 0, 0
    for char in token:
        if char in _CN_DIGITS:
            current = _CN_DIGITS[char]
        elif char in _CN_MULTIPLIERS:
            total += (current or 1) * _CN_MULTIPLIERS[char]
            current = 0
        else:
            return None
    return total + current


def build_summary(content: str) -> str:
    """Whitespace-collapsed text, cut to 40 characters."""
    cleaned = " ".join(content.split())
    if not cleaned:
        return "内容为空"
    if len(cleaned) > SUMMARY_MAX_LENGTH:
        return f"{cleaned[:SUMMARY_MAX_LENGTH]}..."
    return cleaned


def extract_amount(text: str) -> Optional[float]:
    """First amount-looking token: digits, or a Chinese numeral followed by 元/块."""
    match = _AMOUNT_RE.search(text)
    if match:
        return float(match.group(1))
    match = _CN_AMOUNT_RE.search(text)
    if match:
        value = parse_chinese_number(match.group(1))
        return float(value) if value is not None else None
    return None


def extract_quantity(text: str) -> tuple[float, str]:
    """Leading quantity and unit; defaults to 1 个."""
    match = _QUANTITY_RE.search(text)
    if match:
        return float(match.group(1)), match.group(2) or DEFAULT_INVENTORY_UNIT
    match = _CN_QUANTITY_RE.search(text)
    if match:
        value = parse_chinese_number(match.group(1))
        if value is not None:
            return float(value), match.group(2)
    return 1.0, DEFAULT_INVENTORY_UNIT


def infer_storage_zone(text: str) -> StorageZone:
    if "冷冻" in text:
        return StorageZone.FROZEN
    if "冰箱" in text or "冷藏" in text:
        return StorageZone.REFRIGERATED
    return StorageZone.OTHER


def _has_any(text: str, keywords: list[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def heuristic_classify(text: str) -> Optional[ClassificationResult]:
    """
    Guess a route from raw text alone.

    Pure and deterministic. Returns None when no rule applies.
    """
    cleaned = " ".join(text.split())
    if not cleaned:
        return None

    has_finance = _has_any(cleaned, FINANCE_KEYWORDS)
    has_todo = _has_any(cleaned, TODO_KEYWORDS)
    has_inventory = _has_any(cleaned, INVENTORY_KEYWORDS)
    amount = extract_amount(cleaned)
    summary = build_summary(cleaned)

    if has_inventory and not (has_finance and amount is not None):
        quantity, unit = extract_quantity(cleaned)
        return ClassificationResult(
            route=RouteType.INVENTORY,
            confidence=HEURISTIC_CONFIDENCE,
            summary=summary,
            payload=InventoryRecord(
                name=summary,
                category=DEFAULT_INVENTORY_CATEGORY,
                storage_zone=infer_storage_zone(cleaned),
                quantity=quantity,
                unit=unit,
            ),
        )

    if has_finance and amount is not None:
        return ClassificationResult(
            route=RouteType.FINANCE,
            confidence=HEURISTIC_CONFIDENCE,
            summary=summary,
            payload=FinanceRecord(
                amount=Decimal(str(amount)),
                category=DEFAULT_FINANCE_CATEGORY,
                description=summary,
            ),
        )

    if has_todo:
        return ClassificationResult(
            route=RouteType.TODO,
            confidence=HEURISTIC_CONFIDENCE,
            summary=summary,
            payload=TodoRecord(
                title=summary,
                kind=TodoKind.TASK,
                priority=DEFAULT_TODO_PRIORITY,
                category=infer_todo_category(cleaned),
            ),
        )

    return None
