"""Routing core: parser, normalizer, heuristics and the router itself."""

from onemind.routing.errors import (
    CONNECTIVITY_ERROR_SUMMARY,
    EMPTY_INPUT_SUMMARY,
    FORMAT_ERROR_SUMMARY,
    AttemptFailed,
    FailureKind,
)
from onemind.routing.heuristics import HEURISTIC_CONFIDENCE, heuristic_classify
from onemind.routing.normalizer import (
    coerce_confidence,
    coerce_payload,
    coerce_route,
    infer_todo_category,
    normalize,
)
from onemind.routing.parser import ResponseParser, strip_code_fences
from onemind.routing.router import AttemptState, ContentRouter

__all__ = [
    "AttemptFailed",
    "AttemptState",
    "CONNECTIVITY_ERROR_SUMMARY",
    "ContentRouter",
    "EMPTY_INPUT_SUMMARY",
    "FORMAT_ERROR_SUMMARY",
    "FailureKind",
    "HEURISTIC_CONFIDENCE",
    "ResponseParser",
    "coerce_confidence",
    "coerce_payload",
    "coerce_route",
    "heuristic_classify",
    "infer_todo_category",
    "normalize",
    "strip_code_fences",
]
