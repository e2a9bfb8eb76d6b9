"""
Response Parser

Recovers a structured route from raw model output, which is frequently
wrapped in markdown fences, surrounded by chatter, or cut off mid-value
when the output budget runs out.

Three strategies are tried in order, stopping at the first success:
1. STRICT   - the whole (fence-stripped) text is one JSON object
2. EMBEDDED - the widest {...} span inside the text is one JSON object
3. FIELDS   - individual fields are pulled out with regexes

CRITICAL: A field-salvaged string value is only accepted when its closing
quote is present. A truncated summary or description is dropped and the
normalizer's default is used instead; half a sentence is worse than none.
"""

import json
import re
from typing import Any, Optional, Union

from onemind.models.route import ParsedRoute, ParseFailure, ParseTier, RouteType


SALVAGED_SUMMARY = "解析不完整，已自动修复"

_JSON_FENCE_RE = re.compile(r"```json\s*", re.IGNORECASE)
_EMBEDDED_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

_ROUTE_FIELD_RE = re.compile(r'"route_type"\s*:\s*"(finance|todo|inventory|unknown)"', re.IGNORECASE)
_CONFIDENCE_FIELD_RE = re.compile(r'"confidence"\s*:\s*([0-9.]+)', re.IGNORECASE)
_SUMMARY_FIELD_RE = re.compile(r'"summary"\s*:\s*"([^"\n\r]*)"', re.IGNORECASE)
_AMOUNT_FIELD_RE = re.compile(r'"amount"\s*:\s*([0-9.]+)', re.IGNORECASE)
_CATEGORY_FIELD_RE = re.compile(r'"category"\s*:\s*"([^"\n\r]*)"', re.IGNORECASE)
_DESCRIPTION_FIELD_RE = re.compile(r'"description"\s*:\s*"([^"\n\r]*)"', re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove a leading ```json marker and every remaining ``` fence."""
    cleaned = _JSON_FENCE_RE.sub("", text, count=1)
    return cleaned.replace("```", "").strip()


def _load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, RecursionError):
        return None


def _to_number(text: str) -> Optional[float]:
    # "1.2.3" matches the field regex but is not a number
    try:
        return float(text)
    except ValueError:
        return None


class ResponseParser:
    """
    Three-tier parser for routing responses.

    The tiers are separate methods so each can be tested (and observed)
    on its own. parse() never raises: total failure is a ParseFailure
    value the router treats as a failed attempt.
    """

    def parse(self, raw: str) -> Union[ParsedRoute, ParseFailure]:
        """
        Parse a single routing response.

        Args:
            raw: Model output, fences and all

        Returns:
            ParsedRoute tagged with the tier that produced it,
            or ParseFailure when no tier could recover a route
        """
        text = strip_code_fences(raw or "")
        if not text:
            return ParseFailure(reason="Empty response")

        for tier in (self._parse_strict, self._parse_embedded, self._salvage_fields):
            parsed = tier(text)
            if parsed is not None:
                return parsed

        return ParseFailure(reason=f"Invalid JSON response: {text[:200]}")

    def parse_batch(self, raw: str) -> Union[list[dict], ParseFailure]:
        """
        Parse a batch routing response into its raw item mappings.

        Accepts {"items": [...]}, a bare JSON array, or a single bare
        result object. Field salvage is not attempted: a batch response
        that needs it is not worth splitting, and the caller falls back
        to single routing instead.

        Non-object elements are dropped here; route validation is left
        to the router.
        """
        text = strip_code_fences(raw or "")
        if not text:
            return ParseFailure(reason="Empty response")

        document = _load_json(text)
        if document is None:
            match = _EMBEDDED_OBJECT_RE.search(text)
            document = _load_json(match.group(0)) if match else None

        if isinstance(document, dict):
            items = document.get("items")
            if isinstance(items, list):
                return [item for item in items if isinstance(item, dict)]
            return [document]
        if isinstance(document, list):
            return [item for item in document if isinstance(item, dict)]

        return ParseFailure(reason=f"Invalid batch JSON response: {text[:200]}")

    # -------------------------------------------------------------------------
    # Tiers
    # -------------------------------------------------------------------------

    def _parse_strict(self, text: str) -> Optional[ParsedRoute]:
        if not text.startswith("{") or "}" not in text:
            return None
        document = _load_json(text)
        if not isinstance(document, dict):
            return None
        return ParsedRoute.from_mapping(document, ParseTier.STRICT)

    def _parse_embedded(self, text: str) -> Optional[ParsedRoute]:
        match = _EMBEDDED_OBJECT_RE.search(text)
        if not match:
            return None
        document = _load_json(match.group(0))
        if not isinstance(document, dict):
            return None
        return ParsedRoute.from_mapping(document, ParseTier.EMBEDDED)

    def _salvage_fields(self, text: str) -> Optional[ParsedRoute]:
        route_match = _ROUTE_FIELD_RE.search(text)
        if not route_match:
            return None

        route_type = route_match.group(1).lower()
        confidence_match = _CONFIDENCE_FIELD_RE.search(text)
        summary_match = _SUMMARY_FIELD_RE.search(text)

        data: Optional[dict[str, Any]] = None
        if route_type == RouteType.FINANCE.value:
            data = {}
            amount_match = _AMOUNT_FIELD_RE.search(text)
            if amount_match:
                data["amount"] = _to_number(amount_match.group(1))
            category_match = _CATEGORY_FIELD_RE.search(text)
            if category_match:
                data["category"] = category_match.group(1)
            description_match = _DESCRIPTION_FIELD_RE.search(text)
            if description_match:
                data["description"] = description_match.group(1)

        return ParsedRoute(
            route_type=route_type,
            confidence=_to_number(confidence_match.group(1)) if confidence_match else None,
            summary=summary_match.group(1) if summary_match else SALVAGED_SUMMARY,
            data=data,
            tier=ParseTier.FIELDS,
        )
