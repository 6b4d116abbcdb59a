"""
Pydantic contracts for what the judge hands back to the protocol.

These are the validated shapes; raw model output is parsed and checked in
`mmstr.api.llm_judge` before one of these is constructed.
"""

from pydantic import BaseModel, Field

from mmstr.protocol.states import ArbitrationResult


class GradingJudgment(BaseModel):
    """Semantic grading of an interpretation."""

    similarity_score: float = Field(..., ge=0, le=100, description="How completely the meaning is restated.")
    passes: bool = Field(..., description="Pass/fail verdict of the judge.")
    auto_accept_suggested: bool = Field(..., description="Judge suggests accepting without author review.")
    reasoning: str = Field(..., description="Explanation shown to both parties.")


class ArbitrationJudgment(BaseModel):
    """Final ruling on a disputed or exhausted interpretation."""

    result: ArbitrationResult
    explanation: str


class BreakdownPoint(BaseModel):
    """One atomic assertion extracted from a text. `order` is 0-based and gapless."""

    text: str
    order: int
