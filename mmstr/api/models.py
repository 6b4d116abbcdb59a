"""
Pydantic models used for request/response validation and API data contracts.

Each class defines the structure of data expected in API endpoints, ensuring
validation and automatic OpenAPI schema generation.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from mmstr.protocol.states import ArbitrationResult, ArbitrationTrigger, GradingStatus, MessageStatus


class ConversationCreationDetails(BaseModel):
    """
    Represents details needed to create a new conversation.
    """
    title: str = Field(..., min_length=1, description="Human-readable conversation title.", examples=["Weekend plans"])
    max_attempts: Optional[int] = Field(None, ge=1, description="Interpretation attempts per message and user; defaults to settings.")
    participant_limit: Optional[int] = Field(None, ge=1, description="Maximum number of participants; defaults to settings.")
    creator_id: Optional[str] = Field(None, description="User joined as first participant, if given.", examples=["alice"])


class UpdateConversationDetails(BaseModel):
    """
    Represents the fields of a conversation that can be changed. Omitted fields are kept.
    """
    title: Optional[str] = Field(None, min_length=1)
    """New title."""
    max_attempts: Optional[int] = Field(None, ge=1)
    """New attempt limit; applies to future attempts only."""
    participant_limit: Optional[int] = Field(None, ge=1)
    """New participant limit; cannot drop below the current participant count."""


class ParticipantDetails(BaseModel):
    """
    Represents a user joining a conversation.
    """
    user_id: str = Field(..., min_length=1, examples=["bob"])


class NewMessage(BaseModel):
    """
    Represents a new message to be posted in a conversation.
    """
    author_id: str = Field(..., min_length=1, examples=["alice"])
    """Author of the message; joins the conversation if needed."""
    text: str
    """Raw message text, trimmed and validated server-side."""
    replying_to_message_id: Optional[UUID] = None
    """Parent message, for replies. Requires an accepted interpretation of the parent."""


class NewInterpretation(BaseModel):
    """
    Represents an attempt to restate a message.
    """
    user_id: str = Field(..., min_length=1, examples=["bob"])
    """Interpreter."""
    text: str
    """Restatement of the message in the interpreter's own words."""


class GradingDecision(BaseModel):
    """
    The message author's decision on a grading.
    """
    status: GradingStatus = Field(..., description="'accepted' or 'rejected'; 'pending' is never accepted.")
    notes: Optional[str] = Field(None, description="Author's notes; kept unchanged when omitted.")


class DisputeDetails(BaseModel):
    """
    The interpreter's dispute of a rejection.
    """
    text: str = Field(..., description="Why the interpreter believes the rejection is unfair.")


class TextToValidate(BaseModel):
    """Text checked against the message/interpretation bounds."""
    text: str


class ValidationReport(BaseModel):
    """
    Validation result plus display helpers, as returned by `/validation/message`.
    """
    is_valid: bool
    char_count: int
    word_count: int
    error: Optional[str] = None
    error_message: Optional[str] = None
    remaining_chars: int
    """Characters left before the maximum; negative when over."""
    char_count_display: str
    """'<count>/<max>' counter."""


class Conversation(BaseModel):
    id: UUID
    title: str
    max_attempts: int
    participant_limit: int
    created_at: datetime
    updated_at: datetime
    participant_count: Optional[int] = None


class Participant(BaseModel):
    conversation_id: UUID
    user_id: str
    joined_at: datetime


class Message(BaseModel):
    id: UUID
    conversation_id: UUID
    author_id: str
    text: str
    replying_to_message_id: Optional[UUID] = None
    created_at: datetime


class Interpretation(BaseModel):
    id: UUID
    message_id: UUID
    user_id: str
    text: str
    attempt_number: int
    created_at: datetime


class Grading(BaseModel):
    id: UUID
    interpretation_id: UUID
    status: GradingStatus
    similarity_score: float
    auto_accept_suggested: bool
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class GradingResponse(BaseModel):
    id: UUID
    grading_id: UUID
    text: str
    created_at: datetime


class Arbitration(BaseModel):
    id: UUID
    message_id: UUID
    interpretation_id: UUID
    grading_id: UUID
    grading_response_id: Optional[UUID] = None
    result: ArbitrationResult
    explanation: str
    ruling_status: str
    trigger: ArbitrationTrigger
    created_at: datetime


class Point(BaseModel):
    text: str
    order: int


class InterpretationAttempt(BaseModel):
    """One attempt of a chain with its grading (None while ungraded)."""
    interpretation: Interpretation
    grading: Optional[Grading] = None


class InterpretationSubmission(BaseModel):
    """
    Result of a successful submission: the stored attempt, its automatic
    grading and, when the attempt exhausted the limit, the forced arbitration.
    """
    interpretation: Interpretation
    grading: Grading
    arbitration: Optional[Arbitration] = None


class InterpretationFlowState(BaseModel):
    """
    Everything a client needs to render one user's interpretation chain on a message.
    """
    message_id: UUID
    user_id: str
    interpretation: Optional[Interpretation] = None
    grading: Optional[Grading] = None
    response: Optional[GradingResponse] = None
    arbitration: Optional[Arbitration] = None
    attempt_number: int
    """0 before the first attempt."""
    max_attempts: int
    effective_status: Optional[GradingStatus] = None
    """Arbitration ruling when present, otherwise the grading status."""
    locked: bool
    """An arbitration exists on the chain; no further attempts."""
    can_retry: bool
    can_dispute: bool
    can_respond: bool
    message_breakdown: Optional[List[Point]] = None
    interpretation_breakdown: Optional[List[Point]] = None


class Eligibility(BaseModel):
    """Whether a user may respond to a message, with the status shown next to it."""
    can_respond: bool
    status: MessageStatus
    description: str
