"""
Classifier/Router

Turns one piece of free text into normalized ClassificationResults,
surviving an inference service that times out, rate-limits, wraps its
JSON in prose, or stops mid-sentence.

FLOW (single):
1. Empty input -> Unknown, no network call
2. Up to max_retries + 1 attempts, each: prompt -> generate -> parse
   -> validate -> normalize
3. A failed attempt backs off attempt_number * backoff_seconds
4. Untrusted results (unknown, or confidence below the threshold) are
   offered to the heuristic classifier
5. Exhaustion -> the heuristic guess when the model could not be
   reached, else Unknown whose summary says whether the model kept
   answering garbage or could not be reached at all

FLOW (batch):
Same attempt shape with a smaller budget. Zero usable items after every
attempt degrades to single routing, so a batch call always returns at
least one result.

CRITICAL: Nothing raises out of classify() or classify_batch(). Every
failure ends up as a result object with a human-readable summary.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import date
from typing import Awaitable, Callable, Optional
from uuid import UUID

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from onemind.audit import AuditLogger
from onemind.config import RouterSettings, get_settings
from onemind.models.audit import AuditEvent, AuditEventBuilder
from onemind.models.route import (
    ClassificationResult,
    ParsedRoute,
    ParseFailure,
    ParseTier,
    RequestContext,
)
from onemind.routing.errors import (
    CONNECTIVITY_ERROR_SUMMARY,
    EMPTY_INPUT_SUMMARY,
    FORMAT_ERROR_SUMMARY,
    AttemptFailed,
    FailureKind,
)
from onemind.routing.heuristics import heuristic_classify
from onemind.routing.normalizer import (
    coerce_confidence,
    coerce_payload,
    coerce_route,
    normalize,
)
from onemind.routing.parser import ResponseParser
from onemind.routing.prompts import SYSTEM_PROMPT, build_batch_prompt, build_route_prompt
from onemind.services.inference import GenerationConfig, InferenceAdapter


PREVIEW_LENGTH = 100

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class AttemptState:
    """
    Explicit state of one logical classification's attempt loop.

    Owned by a single call; never shared. The retry loop advances it
    from tenacity's RetryCallState and records each back-off it sleeps.
    """
    max_attempts: int
    context: RequestContext = field(default_factory=RequestContext)
    failures: list[FailureKind] = field(default_factory=list)
    waits: list[float] = field(default_factory=list)

    @classmethod
    def for_call(cls, max_attempts: int, correlation_id: Optional[UUID] = None) -> "AttemptState":
        if correlation_id is None:
            return cls(max_attempts=max_attempts)
        return cls(max_attempts=max_attempts, context=RequestContext(correlation_id=correlation_id))

    @property
    def correlation_id(self) -> UUID:
        return self.context.correlation_id

    @property
    def attempt(self) -> int:
        return self.context.attempt

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.max_attempts

    @property
    def last_failure(self) -> Optional[FailureKind]:
        return self.failures[-1] if self.failures else None

    @property
    def only_format_failures(self) -> bool:
        return bool(self.failures) and all(kind.is_format_failure for kind in self.failures)

    def start_attempt(self, number: Optional[int] = None) -> int:
        self.context = self.context.next_attempt(number)
        return self.attempt

    def record_failure(self, kind: FailureKind) -> None:
        self.failures.append(kind)

    def record_wait(self, retry_state: RetryCallState) -> None:
        """tenacity before_sleep hook."""
        self.waits.append(retry_state.next_action.sleep)

    def backoff_seconds(self, base: float) -> float:
        """Linear back-off; zero once there is nothing left to wait for."""
        if self.exhausted:
            return 0.0
        return self.attempt * base

    def exhaustion_summary(self) -> str:
        if self.only_format_failures:
            return FORMAT_ERROR_SUMMARY
        return CONNECTIVITY_ERROR_SUMMARY


def _preview(text: str) -> str:
    return " ".join(text.split())[:PREVIEW_LENGTH]


class ContentRouter:
    """
    Routes text to finance / todo / inventory.

    Collaborators are injected so tests can substitute fakes:
    - inference: the model adapter
    - parser: response parser (spy-able)
    - sleep: back-off sleep handed to tenacity (record instead of waiting)
    - today: fixed "today" for finance record dates
    """

    def __init__(
        self,
        inference: InferenceAdapter,
        parser: Optional[ResponseParser] = None,
        settings: Optional[RouterSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        sleep: Sleep = asyncio.sleep,
        today: Optional[date] = None,
    ):
        self._inference = inference
        self._parser = parser or ResponseParser()
        self._settings = settings or get_settings().router
        self._audit_logger = audit_logger
        self._sleep = sleep
        self._today = today

    # =========================================================================
    # SINGLE
    # =========================================================================

    async def classify(
        self,
        text: str,
        correlation_id: Optional[UUID] = None,
    ) -> ClassificationResult:
        """
        Classify one piece of text.

        Never raises. Returns an Unknown result (no payload) when the
        input is empty or every attempt failed and the heuristic has
        nothing to offer.

        Args:
            text: Free text to route
            correlation_id: Audit id of the enclosing capture. A new one
                           is created when omitted.
        """
        state = AttemptState.for_call(self._settings.max_retries + 1, correlation_id)

        if not text or not text.strip():
            await self._audit(
                AuditEventBuilder.empty_input_rejected(
                    state.correlation_id, FailureKind.EMPTY_INPUT.value
                )
            )
            return ClassificationResult.unknown(EMPTY_INPUT_SUMMARY)

        await self._audit(AuditEventBuilder.route_requested(state.correlation_id, _preview(text)))

        try:
            async for attempt in self._retrying(state):
                with attempt:
                    number = state.start_attempt(attempt.retry_state.attempt_number)
                    try:
                        parsed = await self._request(
                            parts=[SYSTEM_PROMPT, build_route_prompt(text, number)],
                            config=self._route_config(number),
                        )
                        result = self._single_result(parsed)
                    except AttemptFailed as e:
                        await self._fail_attempt(state, e)
                        raise
        except AttemptFailed:
            return await self._exhausted(state, text)

        if parsed.tier != ParseTier.STRICT:
            await self._audit(
                AuditEventBuilder.response_salvaged(state.correlation_id, number, parsed.tier.value)
            )

        trusted = self.apply_trust_decision(result, text)
        if trusted is not result:
            await self._audit(
                AuditEventBuilder.heuristic_applied(
                    state.correlation_id,
                    original_route=result.route.value,
                    original_confidence=result.confidence,
                    heuristic_route=trusted.route.value,
                )
            )

        await self._audit(
            AuditEventBuilder.route_completed(
                state.correlation_id, number, trusted.route.value, trusted.confidence
            )
        )
        return trusted

    def apply_trust_decision(
        self,
        result: ClassificationResult,
        text: str,
    ) -> ClassificationResult:
        """
        Replace an untrusted result with the heuristic guess, if there is one.

        Pure: no network, no logging. Returns the input object itself
        when it is trusted or the heuristic has nothing to offer.
        """
        if not result.is_unknown and result.confidence >= self._settings.trust_threshold:
            return result

        guess = heuristic_classify(text)
        if guess is None:
            return result
        return normalize(guess, today=self._today)

    async def _exhausted(self, state: AttemptState, text: str) -> ClassificationResult:
        await self._audit(
            AuditEventBuilder.route_exhausted(
                state.correlation_id,
                attempts=state.attempt,
                failure_kinds=[kind.value for kind in state.failures],
            )
        )

        # A model that answered garbage is not second-guessed
        if self._settings.fallback_on_transport_failure and not state.only_format_failures:
            guess = heuristic_classify(text)
            if guess is not None:
                await self._audit(
                    AuditEventBuilder.heuristic_applied(
                        state.correlation_id,
                        original_route="unknown",
                        original_confidence=0.0,
                        heuristic_route=guess.route.value,
                    )
                )
                return normalize(guess, today=self._today)

        return ClassificationResult.unknown(state.exhaustion_summary())

    # =========================================================================
    # BATCH
    # =========================================================================

    async def classify_batch(
        self,
        text: str,
        correlation_id: Optional[UUID] = None,
    ) -> list[ClassificationResult]:
        """
        Classify text that may describe several independent records.

        Always returns at least one result. Items are validated and
        normalized but not offered to the heuristic classifier. The
        single-routing fallback reuses the batch call's correlation id.
        """
        if not text or not text.strip():
            return [await self.classify(text, correlation_id)]

        state = AttemptState.for_call(self._settings.batch_max_retries + 1, correlation_id)
        await self._audit(
            AuditEventBuilder.route_requested(state.correlation_id, _preview(text), batch=True)
        )

        try:
            async for attempt in self._retrying(state):
                with attempt:
                    number = state.start_attempt(attempt.retry_state.attempt_number)
                    try:
                        items = await self._batch_attempt(text, number)
                    except AttemptFailed as e:
                        await self._fail_attempt(state, e)
                        raise
        except AttemptFailed:
            await self._audit(AuditEventBuilder.batch_fallback(state.correlation_id, state.attempt))
            return [await self.classify(text, state.correlation_id)]

        for item in items:
            await self._audit(
                AuditEventBuilder.route_completed(
                    state.correlation_id, number, item.route.value, item.confidence
                )
            )
        return items

    async def _batch_attempt(self, text: str, attempt: int) -> list[ClassificationResult]:
        raw = await self._generate(
            parts=[SYSTEM_PROMPT, build_batch_prompt(text, attempt)],
            config=self._batch_config(attempt),
        )
        documents = self._parser.parse_batch(raw)
        if isinstance(documents, ParseFailure):
            raise AttemptFailed(FailureKind.MALFORMED_RESPONSE, documents.reason)

        items = [
            self._to_result(parsed)
            for parsed in (ParsedRoute.from_mapping(doc, ParseTier.STRICT) for doc in documents)
            if parsed.route_type
        ]
        if not items:
            raise AttemptFailed(FailureKind.INVALID_STRUCTURE, "Batch response contained no valid items")
        return items

    # =========================================================================
    # ATTEMPT PLUMBING
    # =========================================================================

    def _retrying(self, state: AttemptState) -> AsyncRetrying:
        """Attempt loop: stop after max_attempts, wait attempt * backoff."""
        base = self._settings.backoff_seconds
        return AsyncRetrying(
            stop=stop_after_attempt(state.max_attempts),
            wait=wait_incrementing(start=base, increment=base),
            retry=retry_if_exception_type(AttemptFailed),
            before_sleep=state.record_wait,
            sleep=self._sleep,
            reraise=True,
        )

    def _route_config(self, attempt: int) -> GenerationConfig:
        return GenerationConfig(
            temperature=(
                self._settings.initial_temperature if attempt == 1
                else self._settings.retry_temperature
            ),
            max_output_tokens=self._settings.max_output_tokens,
            json_mode=True,
        )

    def _batch_config(self, attempt: int) -> GenerationConfig:
        return GenerationConfig(
            temperature=(
                self._settings.batch_initial_temperature if attempt == 1
                else self._settings.retry_temperature
            ),
            max_output_tokens=self._settings.batch_max_output_tokens,
            json_mode=True,
        )

    async def _generate(self, parts: list, config: GenerationConfig) -> str:
        # Any adapter failure is a transport failure, whatever the adapter raises
        try:
            return await self._inference.generate(parts, config)
        except Exception as e:
            raise AttemptFailed(FailureKind.TRANSPORT, f"{type(e).__name__}: {e}") from e

    async def _request(self, parts: list, config: GenerationConfig) -> ParsedRoute:
        raw = await self._generate(parts, config)
        parsed = self._parser.parse(raw)
        if isinstance(parsed, ParseFailure):
            raise AttemptFailed(FailureKind.MALFORMED_RESPONSE, parsed.reason)
        return parsed

    def _single_result(self, parsed: ParsedRoute) -> ClassificationResult:
        if not parsed.route_type or not parsed.summary:
            raise AttemptFailed(
                FailureKind.INVALID_STRUCTURE,
                "Invalid response structure: missing required fields",
            )
        return self._to_result(parsed)

    def _to_result(self, parsed: ParsedRoute) -> ClassificationResult:
        """Validate route and confidence, then normalize the payload."""
        route = coerce_route(parsed.route_type)
        result = ClassificationResult(
            route=route,
            confidence=coerce_confidence(parsed.confidence, self._settings.default_confidence),
            summary=(parsed.summary or "").strip(),
            payload=coerce_payload(route, parsed.data),
        )
        return normalize(result, today=self._today)

    async def _fail_attempt(self, state: AttemptState, error: AttemptFailed) -> None:
        state.record_failure(error.kind)
        await self._audit(
            AuditEventBuilder.attempt_failed(
                state.correlation_id,
                state.attempt,
                error.kind.value,
                str(error),
                state.backoff_seconds(self._settings.backoff_seconds),
            )
        )

    async def _audit(self, event: AuditEvent) -> None:
        if self._audit_logger:
            await self._audit_logger.log(event)
