"""
Pytest configuration and shared fixtures for MMSTR tests.

This module provides shared fixtures and test configuration including:
- Environment set up before any `mmstr` import (API key, throwaway SQLite file)
- A fresh schema for every test
- A deterministic fake judge standing in for the LLM
- Helpers to create conversations and messages
"""

import os
import tempfile

import pytest

# Set up test environment before any imports
_DB_DIR = tempfile.mkdtemp(prefix="mmstr-tests-")
os.environ["API_KEY"] = "test-api-key-12345"
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'mmstr-test.db')}"
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["DEFAULT_MAX_ATTEMPTS"] = "3"
os.environ["DEFAULT_PARTICIPANT_LIMIT"] = "20"

from mmstr.database.config.connection_engine import connection_engine, metadata  # noqa: E402
from mmstr.database.core.funcs import create_conversation, create_message  # noqa: E402
from mmstr.protocol.judgments import ArbitrationJudgment, BreakdownPoint, GradingJudgment  # noqa: E402
from mmstr.protocol.states import ArbitrationResult  # noqa: E402

import mmstr.database.entities  # noqa: E402,F401

ORIGINAL_TEXT = "I think we should leave early tomorrow, because the traffic will be heavy"
GOOD_INTERPRETATION = "You want to depart ahead of schedule, since roads get congested"
VERBATIM_INTERPRETATION = "I think we should leave early tomorrow because traffic"


class FakeJudge:
    """
    Deterministic `Judge` double.

    - ``grade`` pops queued judgments, falling back to ``default_grading``
    - ``breakdown`` splits the text on commas
    - ``arbitrate`` returns ``ruling``
    Set ``failures[<operation>]`` to an exception to make that call raise.
    """

    def __init__(self):
        self.gradings = []
        self.default_grading = GradingJudgment(
            similarity_score=60.0,
            passes=False,
            auto_accept_suggested=False,
            reasoning="The interpretation omits the reason given in the original.",
        )
        self.ruling = ArbitrationJudgment(
            result=ArbitrationResult.ACCEPT,
            explanation="Every point of the original is present in the interpretation.",
        )
        self.failures = {}
        self.calls = {"grade": [], "breakdown": [], "arbitrate": []}

    def queue_grading(self, score: float, passes: bool, auto_accept: bool = False, reasoning: str = "Graded."):
        self.gradings.append(
            GradingJudgment(
                similarity_score=score,
                passes=passes,
                auto_accept_suggested=auto_accept,
                reasoning=reasoning,
            )
        )

    def _maybe_fail(self, operation: str):
        error = self.failures.get(operation)
        if error is not None:
            raise error

    def grade(self, original_text, interpretation_text, conversation_context):
        self.calls["grade"].append((original_text, interpretation_text, conversation_context))
        self._maybe_fail("grade")
        if self.gradings:
            return self.gradings.pop(0)
        return self.default_grading

    def breakdown(self, text):
        self.calls["breakdown"].append(text)
        self._maybe_fail("breakdown")
        parts = [part.strip() for part in text.split(",") if part.strip()]
        return [BreakdownPoint(text=part, order=index) for index, part in enumerate(parts)]

    def arbitrate(self, conversation_context, original_points, interpretation_points, author_notes, dispute_reason):
        self.calls["arbitrate"].append(
            {
                "conversation_context": conversation_context,
                "original_points": list(original_points),
                "interpretation_points": list(interpretation_points),
                "author_notes": author_notes,
                "dispute_reason": dispute_reason,
            }
        )
        self._maybe_fail("arbitrate")
        return self.ruling


@pytest.fixture(autouse=True)
def fresh_schema():
    """Drop and recreate every table so each test starts from an empty database."""
    metadata.drop_all(bind=connection_engine)
    metadata.create_all(bind=connection_engine)
    yield


@pytest.fixture
def judge():
    return FakeJudge()


@pytest.fixture
def conversation():
    """A conversation with the default policy (3 attempts, 20 participants)."""
    return create_conversation(title="Weekend plans", creator_id="alice")


@pytest.fixture
def message(conversation):
    """A message by alice in `conversation`."""
    res = create_message(conversation_id=conversation["id"], author_id="alice", text=ORIGINAL_TEXT)
    assert res["res"], res["detail"]
    return res["message"]
