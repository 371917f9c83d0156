"""
NoteCraft Backend: Google Gemini Service Implementation
=========================================================

What:  Concrete LLM service using Google Gemini for note summaries and
       style rewrites.
Why:   One hosted model covers both text tasks; the SDK offers async calls
       and per-request timeouts.
How:   Sends a task prompt to Gemini and returns the raw response text, with
       retry logic, a circuit breaker, and latency logging.
Who:   Created once by the app factory and stored on app.state; routes get it
       through the get_llm_service dependency.

Resilience Strategy:
    1. Tenacity retry with exponential backoff + jitter for transient failures
    2. No retry for 4xx answers (bad request, payload too large, quota): the
       same request would fail again
    3. Circuit breaker to fail fast while Gemini is down
    4. 413 and 429 from Gemini are passed through to the client unchanged
"""

import logging
import time
import uuid
from typing import Any, Dict, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from notecraft.config import settings
from notecraft.exceptions import CircuitBreakerOpenError, UpstreamError
from notecraft.services.llm_base import LLMService

logger = logging.getLogger(__name__)

# Passed straight through to the client with their own status code
PASSTHROUGH_STATUS = {
    413: "The request or the response from the AI model was too large. Please try with a shorter text.",
    429: "Too many requests to the AI service. Please try again later.",
}


def _status_of(exc: BaseException) -> Optional[int]:
    """HTTP status carried by a Google API error, if any."""
    if isinstance(exc, google_exceptions.GoogleAPICallError) and exc.code is not None:
        return int(exc.code)
    return None


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, UpstreamError):
        return False
    status = _status_of(exc)
    return status is None or status >= 500


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Implements the circuit breaker pattern to prevent cascade failures.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN

        OPEN (rejecting all requests)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN

        HALF_OPEN (testing recovery)
            → Allow ONE request through
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Not thread-safe: one instance lives in one uvicorn worker process.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Check if a request is allowed through the circuit breaker.

        Raises:
            CircuitBreakerOpenError if circuit is OPEN and recovery timeout hasn't elapsed.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Circuit breaker transitioning to HALF_OPEN after %.1fs",
                    elapsed,
                )
                self.state = self.HALF_OPEN
                return True
            remaining = max(1, int(self.recovery_timeout - elapsed))
            raise CircuitBreakerOpenError(recovery_time=remaining)

        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Gemini Service
# ══════════════════════════════════════════════════════════════════════════

class GeminiService(LLMService):
    """
    Google Gemini implementation of the note text tasks.

    Error Handling Chain:
        API call fails → tenacity retries transient errors (3 attempts with backoff)
        → 413/429 → UpstreamError with the same status, circuit untouched
        → other failures → record circuit breaker failure → UpstreamError(502)
        → threshold reached → future calls rejected instantly (503)
    """

    SUMMARY_PROMPT = """Summarize the following note in plain text.

Instructions:
1. Write between 30 and 130 words
2. Keep the facts, names and numbers from the note
3. Return ONLY the summary: no heading, no commentary, no HTML or markdown

Note:
{text}"""

    STYLE_SYSTEM_INSTRUCTION = (
        "You are a helpful assistant that rewrites text in different styles. "
        "Never include HTML tags or formatting in your responses. "
        "Keep responses concise and within reasonable length."
    )

    STYLE_PROMPT = (
        "Rewrite the following text in a {style} style. "
        "Do not include any HTML tags or formatting in your response:\n\n{text}"
    )

    def __init__(self):
        if settings.gemini_api_key and settings.gemini_api_key != "your_gemini_api_key_here":
            genai.configure(api_key=settings.gemini_api_key)

        self.model = genai.GenerativeModel(settings.gemini_model)
        self.style_model = genai.GenerativeModel(
            settings.gemini_model,
            system_instruction=self.STYLE_SYSTEM_INSTRUCTION,
        )

        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

        logger.info(
            "GeminiService initialized with model=%s, "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            settings.gemini_model,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    async def summarize(self, text: str) -> str:
        # Deterministic output, like a non-sampling summarizer
        return await self._generate(
            task="summarize",
            model=self.model,
            prompt=self.SUMMARY_PROMPT.format(text=text),
            generation_config={"temperature": 0.0, "max_output_tokens": 400},
        )

    async def transform_style(self, text: str, style: str) -> str:
        return await self._generate(
            task="style-transform",
            model=self.style_model,
            prompt=self.STYLE_PROMPT.format(style=style, text=text),
            generation_config={"temperature": 0.7, "max_output_tokens": 2000},
        )

    async def _generate(
        self,
        task: str,
        model: Any,
        prompt: str,
        generation_config: Dict[str, Any],
    ) -> str:
        """
        Run one generation through the circuit breaker and retry policy.

        Raises:
            CircuitBreakerOpenError: Circuit is open (too many recent failures)
            UpstreamError: Gemini refused the request or failed after retries
        """
        request_id = str(uuid.uuid4())[:8]

        self.circuit_breaker.can_execute()

        logger.info("[%s] Starting Gemini %s (%d chars)", request_id, task, len(prompt))

        try:
            result = await self._call_gemini_with_retry(
                model, prompt, generation_config, request_id
            )
        except UpstreamError:
            raise
        except Exception as e:
            status = _status_of(e)
            if status in PASSTHROUGH_STATUS:
                logger.warning("[%s] Gemini %s rejected with %d", request_id, task, status)
                raise UpstreamError(
                    message=PASSTHROUGH_STATUS[status],
                    status_code=status,
                    context={"request_id": request_id, "task": task},
                ) from e

            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] Gemini %s failed: %s",
                request_id,
                task,
                str(e),
                exc_info=not isinstance(e, google_exceptions.GoogleAPICallError),
            )
            raise UpstreamError(
                message=f"The AI service could not complete the {task} request. Please try again later.",
                status_code=502,
                retry_after=self.circuit_breaker.recovery_timeout,
                context={
                    "request_id": request_id,
                    "task": task,
                    "error_type": type(e).__name__,
                },
            ) from e

        self.circuit_breaker.record_success()
        return result

    @retry(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            multiplier=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _call_gemini_with_retry(
        self,
        model: Any,
        prompt: str,
        generation_config: Dict[str, Any],
        request_id: str,
    ) -> str:
        """
        Makes the actual Gemini API call.

        Kept separate from _generate() so that only the network call is
        retried, never the circuit breaker check.
        """
        start_time = time.time()

        try:
            response = await model.generate_content_async(
                prompt,
                generation_config=generation_config,
                request_options={"timeout": settings.upstream_timeout},
            )
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(
                "[%s] Gemini API call failed after %.0fms: %s",
                request_id,
                duration_ms,
                str(e),
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        # .text raises ValueError when the candidate was blocked; tenacity
        # does not retry it because the same prompt would be blocked again
        try:
            text = response.text or ""
        except ValueError as e:
            raise UpstreamError(
                message="The AI service declined to answer this request.",
                status_code=502,
                context={"request_id": request_id},
            ) from e

        logger.info(
            "[%s] Gemini call completed in %.0fms, returned %d chars",
            request_id,
            duration_ms,
            len(text),
        )
        return text.strip()

    async def health_check(self) -> bool:
        """
        Check if Gemini API is reachable.

        Lists available models (no token cost) instead of generating text.
        """
        try:
            models = genai.list_models()
            model_names = [m.name for m in models]
            target = f"models/{settings.gemini_model}"
            if target not in model_names:
                logger.warning("Configured model %s not found in available models", target)
            return True
        except Exception as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False
