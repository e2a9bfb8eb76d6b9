"""
Failure taxonomy for the routing core.

None of these ever escape ContentRouter: they drive the attempt loop
and select the summary of the final Unknown result.
"""

from enum import Enum


class FailureKind(str, Enum):
    """Why one routing attempt failed."""
    EMPTY_INPUT = "empty_input"
    TRANSPORT = "transport"
    MALFORMED_RESPONSE = "malformed_response"
    INVALID_STRUCTURE = "invalid_structure"

    @property
    def is_format_failure(self) -> bool:
        return self in (FailureKind.MALFORMED_RESPONSE, FailureKind.INVALID_STRUCTURE)


# User-facing summaries for results that carry no classification
EMPTY_INPUT_SUMMARY = "没有可分析的内容"
FORMAT_ERROR_SUMMARY = "AI 响应格式错误，请重试"
CONNECTIVITY_ERROR_SUMMARY = "分析失败，请检查网络连接"


class AttemptFailed(Exception):
    """Raised inside one attempt; caught by the attempt loop."""

    def __init__(self, kind: FailureKind, message: str):
        self.kind = kind
        super().__init__(message)
