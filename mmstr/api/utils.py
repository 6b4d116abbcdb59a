"""
Judge call utilities: deadline-bounded retries and JSON response parsing.

Functions
---------
execute_with_timeout_and_retry(fn, policy) -> T
    Run ``fn(remaining_seconds)`` until it succeeds, retrying transient
    provider failures with exponential backoff, never past one overall deadline.
classify_error(exc) -> AIAdapterError
    Map an exception raised by the OpenAI / LangChain stack onto the
    application's AI error taxonomy.
lc_text_from_content(content) -> str
    Normalize LangChain message content to plain text.
parse_llm_json(raw) -> dict | list
    Strip code fences and parse JSON, with a `json_repair` fallback.

Deadline model
--------------
The timeout bounds the whole operation, retries and backoff sleeps included.
Each attempt receives the time left before the deadline as its own request
timeout. When the next backoff sleep would cross the deadline the loop stops
right away with `AITimeoutError` instead of sleeping into it.
"""

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

import openai
from json_repair import repair_json

from mmstr.database.config.config import settings
from mmstr.exceptions import (
    AIAdapterError,
    AIAuthError,
    AIRequestError,
    AITimeoutError,
    MalformedResponseError,
    TransientAIError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)

_FENCE_OPEN = re.compile(r"^```(?:json)?[ \t]*\n?", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\n?```$")


@dataclass(frozen=True)
class RetryPolicy:
    """Timeout and backoff configuration for one judge call."""

    timeout: float = 60.0
    max_retries: int = 3
    initial_backoff: float = 1.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            timeout=settings.AI_TIMEOUT_SECONDS,
            max_retries=settings.AI_MAX_RETRIES,
            initial_backoff=settings.AI_INITIAL_BACKOFF_SECONDS,
        )

    def backoff(self, retry_index: int) -> float:
        """Delay before retry ``retry_index`` (0-based): 1s, 2s, 4s... for the defaults."""
        return self.initial_backoff * (2 ** retry_index)


def classify_error(exc: BaseException) -> AIAdapterError:
    """
    Translate a provider/client exception into the AI error taxonomy.

    Parameters
    ----------
    exc : BaseException
        Exception raised while calling the model.

    Returns
    -------
    AIAdapterError
        `TransientAIError` for rate limits, timeouts, network and 5xx errors;
        `AIAuthError` for 401/403; `AIRequestError` for other 4xx; the
        exception itself if it already belongs to the taxonomy; a plain
        `AIAdapterError` for anything else.
    """
    if isinstance(exc, AIAdapterError):
        return exc
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return AIAuthError(f"AI provider refused the credentials: {exc}")
    if isinstance(exc, openai.RateLimitError):
        return TransientAIError(f"AI provider rate limit: {exc}", status_code=429)
    if isinstance(exc, openai.APITimeoutError):
        return TransientAIError(f"AI provider request timed out: {exc}")
    if isinstance(exc, openai.APIConnectionError):
        return TransientAIError(f"AI provider unreachable: {exc}")
    if isinstance(exc, openai.APIStatusError):
        if exc.status_code in RETRYABLE_STATUS_CODES or exc.status_code >= 500:
            return TransientAIError(f"AI provider error {exc.status_code}: {exc}", status_code=exc.status_code)
        return AIRequestError(f"AI provider rejected the request ({exc.status_code}): {exc}")
    if isinstance(exc, (TimeoutError, ConnectionError)):
        return TransientAIError(f"AI call failed: {exc}")
    return AIAdapterError(f"AI call failed: {exc}")


def execute_with_timeout_and_retry(
    fn: Callable[[float], T],
    policy: RetryPolicy,
    *,
    operation: str = "AI call",
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """
    Run a judge call under an overall deadline with exponential-backoff retries.

    Parameters
    ----------
    fn : Callable[[float], T]
        The call to make. Receives the seconds left before the deadline and
        must use them as its request timeout.
    policy : RetryPolicy
        Timeout, retry count and initial backoff.
    operation : str
        Label used in log lines and error messages.
    sleep, clock : callable
        Injected for tests; `time.sleep` / `time.monotonic` by default.

    Returns
    -------
    T
        Whatever ``fn`` returns on the first successful attempt.

    Raises
    ------
    AITimeoutError
        The deadline passed, or the next backoff would cross it.
    TransientAIError
        Retries were exhausted on transient failures.
    AIAuthError, AIRequestError, MalformedResponseError, AIAdapterError
        Non-transient failures, raised on first occurrence.
    """
    deadline = clock() + policy.timeout
    retry_index = 0

    while True:
        remaining = deadline - clock()
        if remaining <= 0:
            raise AITimeoutError(f"{operation} timed out after {policy.timeout:g}s")

        try:
            return fn(remaining)
        except Exception as exc:
            error = classify_error(exc)
            if not isinstance(error, TransientAIError):
                if error is exc:
                    raise
                raise error from exc

            if retry_index >= policy.max_retries:
                logger.error("%s failed after %d retries: %s", operation, retry_index, error)
                raise error from exc

            delay = policy.backoff(retry_index)
            remaining = deadline - clock()
            if delay >= remaining:
                raise AITimeoutError(
                    f"{operation} timed out after {policy.timeout:g}s (next retry would start after the deadline)"
                ) from exc

            retry_index += 1
            logger.warning(
                "%s failed with a transient error (%s); retry %d/%d in %.1fs",
                operation,
                error,
                retry_index,
                policy.max_retries,
                delay,
            )
            sleep(delay)


def lc_text_from_content(content) -> str:
    """Normalize LangChain message content to plain text.

    - If string → return as-is.
    - If list of content parts → concatenates only 'text' parts.
    - Else → str(content).
    """
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(p.get("text", "") for p in content if isinstance(p, dict) and p.get("type") == "text")
    return str(content)


def strip_code_fences(raw: str) -> str:
    """Remove an optional ```json ... ``` (or bare ```) wrapper."""
    text = raw.strip()
    if text.startswith("```"):
        text = _FENCE_OPEN.sub("", text, count=1)
        text = _FENCE_CLOSE.sub("", text, count=1)
    return text.strip()


def parse_llm_json(raw: str):
    """Parse a model response into JSON with optional repair.

    Steps:
        1) Strip markdown code fences.
        2) Try `json.loads`.
        3) Fallback: `json_repair.repair_json` then `json.loads`; only an
           object or array counts as a successful repair.

    Raises:
        MalformedResponseError with the first 500 chars of the raw text if
        parsing still fails. Never retried.
    """
    text = strip_code_fences(raw)
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        # last-resort repair for trailing commas, unquoted keys and the like
        repaired = None
        try:
            repaired = json.loads(repair_json(text))
        except (ValueError, TypeError):
            repaired = None
        if isinstance(repaired, (dict, list)) and repaired:
            logger.debug("Repaired malformed JSON from the model")
            return repaired
        raise MalformedResponseError(f"Failed to parse AI response as JSON: {exc}\nRAW:\n{text[:500]}") from exc
