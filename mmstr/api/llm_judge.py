"""
LLM Judge (Grading · Breakdown · Arbitration)
=============================================

Purpose
-------
The judge is the only component that talks to the language model. It exposes
three operations with one shared shape: build an XML-delimited prompt, call
the model under a deadline with retries, parse the JSON answer, validate it
into a typed judgment.

- ``grade``      → `GradingJudgment`      (score 0-100, pass/fail, auto-accept suggestion, reasoning)
- ``breakdown``  → list of `BreakdownPoint` (re-sorted and re-indexed 0..n-1)
- ``arbitrate``  → `ArbitrationJudgment`  (accept | reject, explanation)

Wiring
------
`build_judge()` is called once by the application lifespan and stored on
``app.state.judge``. Flow functions receive the judge as a parameter; tests
pass a fake that implements the same three methods (see `Judge`).

The chat model is reached through the small `ChatClient` protocol so the
retry/parse/validate path can be exercised with a scripted client. The
production client wraps `langchain_openai.ChatOpenAI` with LangChain's own
retries disabled: retries and the deadline are owned by
`mmstr.api.utils.execute_with_timeout_and_retry`.
"""

import logging
import math
from typing import List, Optional, Protocol, Sequence

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from mmstr.api.prompt_utilities import (
    ARBITRATION_SYSTEM_PROMPT,
    BREAKDOWN_SYSTEM_PROMPT,
    GRADING_SYSTEM_PROMPT,
    build_arbitration_prompt,
    build_breakdown_prompt,
    build_grading_prompt,
)
from mmstr.api.utils import RetryPolicy, execute_with_timeout_and_retry, lc_text_from_content, parse_llm_json
from mmstr.database.config.config import settings
from mmstr.exceptions import InvalidJudgmentError, MalformedResponseError
from mmstr.protocol.judgments import ArbitrationJudgment, BreakdownPoint, GradingJudgment
from mmstr.protocol.machine import default_auto_accept
from mmstr.protocol.states import ArbitrationResult

logger = logging.getLogger(__name__)


class ChatClient(Protocol):
    """One text completion: system + user prompt in, raw text out."""

    def invoke(self, system_prompt: str, user_prompt: str, timeout: float) -> str:
        ...


class Judge(Protocol):
    """The injectable judgment adapter consumed by `mmstr.database.core.flow`."""

    def grade(self, original_text: str, interpretation_text: str, conversation_context: str) -> GradingJudgment:
        ...

    def breakdown(self, text: str) -> List[BreakdownPoint]:
        ...

    def arbitrate(
        self,
        conversation_context: str,
        original_points: Sequence[str],
        interpretation_points: Sequence[str],
        author_notes: Optional[str],
        dispute_reason: str,
    ) -> ArbitrationJudgment:
        ...


class LangChainChatClient:
    """`ChatClient` backed by a LangChain chat model."""

    def __init__(self, model: BaseChatModel):
        self.model = model

    def invoke(self, system_prompt: str, user_prompt: str, timeout: float) -> str:
        # `timeout` is forwarded to the OpenAI request as its per-request timeout
        response = self.model.invoke(
            [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)],
            timeout=timeout,
        )
        return lc_text_from_content(response.content).strip()


def build_chat_model() -> ChatOpenAI:
    """ChatOpenAI configured from settings, with client-side retries disabled."""
    return ChatOpenAI(
        model=settings.OPEN_AI_MODEL,
        api_key=settings.API_KEY,
        temperature=settings.AI_TEMPERATURE,
        timeout=settings.AI_TIMEOUT_SECONDS,
        max_retries=0,
    )


# --------------------------------------------------------------------
# Response validation
# --------------------------------------------------------------------


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def parse_grading_judgment(raw: str) -> GradingJudgment:
    """
    Validate a grading answer.

    ``similarityScore`` must be a number and is clamped into [0, 100];
    ``passes`` must be a boolean and ``reasoning`` a string. A missing or
    non-boolean ``autoAcceptSuggested`` defaults to ``score >= 90 and passes``.

    Raises
    ------
    MalformedResponseError
        Unparseable JSON or a field of the wrong type.
    """
    data = parse_llm_json(raw)
    if not isinstance(data, dict):
        raise MalformedResponseError("Grading response is not a JSON object")

    score = data.get("similarityScore")
    passes = data.get("passes")
    reasoning = data.get("reasoning")
    if not _is_number(score) or not isinstance(passes, bool) or not isinstance(reasoning, str):
        raise MalformedResponseError("Invalid grading response format from AI")

    score = max(0.0, min(100.0, float(score)))
    auto_accept = data.get("autoAcceptSuggested")
    if not isinstance(auto_accept, bool):
        auto_accept = default_auto_accept(score, passes)

    return GradingJudgment(
        similarity_score=score,
        passes=passes,
        auto_accept_suggested=auto_accept,
        reasoning=reasoning,
    )


def parse_arbitration_judgment(raw: str) -> ArbitrationJudgment:
    """
    Validate an arbitration answer.

    Raises
    ------
    InvalidJudgmentError
        ``result`` is not ``accept`` or ``reject``.
    MalformedResponseError
        Unparseable JSON or a non-string explanation.
    """
    data = parse_llm_json(raw)
    if not isinstance(data, dict):
        raise MalformedResponseError("Arbitration response is not a JSON object")

    result = data.get("result")
    normalized = result.strip().lower() if isinstance(result, str) else result
    try:
        ruling = ArbitrationResult(normalized)
    except ValueError:
        raise InvalidJudgmentError(
            f'Invalid result value from AI (must be "accept" or "reject", got {result!r})'
        ) from None

    explanation = data.get("explanation")
    if not isinstance(explanation, str):
        raise MalformedResponseError("Invalid explanation format from AI")

    return ArbitrationJudgment(result=ruling, explanation=explanation)


def parse_breakdown_points(raw: str) -> List[BreakdownPoint]:
    """
    Validate a breakdown answer and normalize its order.

    Points are sorted by the model's ``order`` (stable for ties), then
    re-indexed 0..n-1 and their text stripped, so gaps or duplicates in the
    model's numbering never reach storage.

    Raises
    ------
    MalformedResponseError
        Not an array, or a point without a string ``text`` / numeric ``order``.
    """
    data = parse_llm_json(raw)
    if not isinstance(data, list):
        raise MalformedResponseError("AI breakdown response is not an array")

    for point in data:
        if not isinstance(point, dict) or not isinstance(point.get("text"), str) or not _is_number(point.get("order")):
            raise MalformedResponseError("Invalid point structure in AI breakdown response")

    ordered = sorted(data, key=lambda point: point["order"])
    return [BreakdownPoint(text=point["text"].strip(), order=index) for index, point in enumerate(ordered)]


# --------------------------------------------------------------------
# Judge
# --------------------------------------------------------------------


class LLMJudge:
    """
    `Judge` implementation calling a chat model.

    Parameters
    ----------
    client : ChatClient
        Chat completion client.
    policy : RetryPolicy, optional
        Deadline and retry policy; taken from settings by default.
    sleep : callable, optional
        Backoff sleep, injectable for tests.
    """

    def __init__(self, client: ChatClient, policy: Optional[RetryPolicy] = None, sleep=None):
        self.client = client
        self.policy = policy or RetryPolicy.from_settings()
        self._retry_kwargs = {"sleep": sleep} if sleep is not None else {}

    def _complete(self, operation: str, system_prompt: str, user_prompt: str) -> str:
        return execute_with_timeout_and_retry(
            lambda remaining: self.client.invoke(system_prompt, user_prompt, remaining),
            self.policy,
            operation=operation,
            **self._retry_kwargs,
        )

    def grade(self, original_text: str, interpretation_text: str, conversation_context: str) -> GradingJudgment:
        """Semantic grading of an interpretation against its original message."""
        logger.debug(
            "Grading request: original=%d chars, interpretation=%d chars",
            len(original_text),
            len(interpretation_text),
        )
        raw = self._complete(
            "AI grading",
            GRADING_SYSTEM_PROMPT,
            build_grading_prompt(original_text, interpretation_text, conversation_context),
        )
        judgment = parse_grading_judgment(raw)
        logger.debug(
            "Grading response: score=%.1f passes=%s auto_accept=%s",
            judgment.similarity_score,
            judgment.passes,
            judgment.auto_accept_suggested,
        )
        return judgment

    def breakdown(self, text: str) -> List[BreakdownPoint]:
        """Decompose a text into ordered atomic points."""
        logger.debug("Breakdown request: %d chars", len(text))
        raw = self._complete("AI breakdown", BREAKDOWN_SYSTEM_PROMPT, build_breakdown_prompt(text))
        points = parse_breakdown_points(raw)
        logger.debug("Breakdown response: %d points", len(points))
        return points

    def arbitrate(
        self,
        conversation_context: str,
        original_points: Sequence[str],
        interpretation_points: Sequence[str],
        author_notes: Optional[str],
        dispute_reason: str,
    ) -> ArbitrationJudgment:
        """Final accept/reject ruling from the two breakdowns and both parties' arguments."""
        logger.debug(
            "Arbitration request: original=%d points, interpretation=%d points, author_notes=%s",
            len(original_points),
            len(interpretation_points),
            bool(author_notes),
        )
        raw = self._complete(
            "AI arbitration",
            ARBITRATION_SYSTEM_PROMPT,
            build_arbitration_prompt(
                conversation_context, original_points, interpretation_points, author_notes, dispute_reason
            ),
        )
        judgment = parse_arbitration_judgment(raw)
        logger.debug(
            "Arbitration response: result=%s explanation=%d chars",
            judgment.result.value,
            len(judgment.explanation),
        )
        return judgment


def build_judge() -> LLMJudge:
    """Production judge: ChatOpenAI behind the settings-driven retry policy."""
    return LLMJudge(LangChainChatClient(build_chat_model()))
