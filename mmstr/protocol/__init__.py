"""
The `protocol` package holds the rules of the interpretation protocol as pure
code: the closed value sets, the typed judge outputs and the state machine.
Nothing in here touches the database or the LLM; the flow layer
(`mmstr.database.core.flow`) loads state, asks these functions what is legal,
and persists the outcome.

Contents
--------
- states
    `GradingStatus`, `ArbitrationResult`, `ArbitrationTrigger`, `MessageStatus`,
    `SubjectKind` and the `BreakdownSubject` reference.

- judgments
    Pydantic models for what the judge returns: `GradingJudgment`,
    `ArbitrationJudgment`, `BreakdownPoint`.

- machine
    Transition guards and derived states:
        * `decide_grading`: lexical auto-reject dominates the semantic verdict
        * `next_attempt_number`: eligibility of a new attempt
        * `check_author_decision`, `check_dispute`, `max_attempts_arbitration_due`
        * `effective_status`, `can_respond_to_message`, `get_message_status`
"""

from mmstr.protocol.judgments import ArbitrationJudgment, BreakdownPoint, GradingJudgment
from mmstr.protocol.states import (
    ArbitrationResult,
    ArbitrationTrigger,
    BreakdownSubject,
    GradingStatus,
    MessageStatus,
    SubjectKind,
)

__all__ = [
    "ArbitrationJudgment",
    "BreakdownPoint",
    "GradingJudgment",
    "ArbitrationResult",
    "ArbitrationTrigger",
    "BreakdownSubject",
    "GradingStatus",
    "MessageStatus",
    "SubjectKind",
]
