"""
FastAPI Router — Conversations • Messages • Interpretations • Gradings • Arbitration
===================================================================================

Purpose
-------
Defines the HTTP API for:
- Conversations: create, update, list, participants
- Messages: post (with reply eligibility), list, replies
- Interpretations: submit (auto-graded), re-grade, list attempts
- Gradings: author decision, dispute, arbitration retry
- Read models: per-user flow state and response eligibility
- Stateless text validation for clients

Key Notes
---------
- Input validation via Pydantic models in `mmstr.api.models`.
- Invalid message/interpretation text is not an exception: the service layer
  returns ``{'res': False, 'detail', 'validation'}`` and the router answers 422.
- Domain errors map onto status codes in `http_error`.
- Endpoints that call the LLM judge are plain ``def`` so FastAPI runs them in
  its threadpool; the judge comes from ``request.app.state.judge``.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Request

from mmstr.api.llm_judge import Judge
from mmstr.api.models import (
    Arbitration,
    Conversation,
    ConversationCreationDetails,
    DisputeDetails,
    Eligibility,
    Grading,
    GradingDecision,
    GradingResponse,
    Interpretation,
    InterpretationAttempt,
    InterpretationFlowState,
    InterpretationSubmission,
    Message,
    NewInterpretation,
    NewMessage,
    Participant,
    ParticipantDetails,
    TextToValidate,
    UpdateConversationDetails,
    ValidationReport,
)
from mmstr.database.core import flow
from mmstr.database.core.funcs import (
    arbitration_to_dict,
    create_conversation,
    create_message,
    get_conversation,
    get_conversation_messages,
    get_conversations,
    get_grading,
    get_interpretation,
    get_interpretation_attempts,
    get_message,
    get_message_replies,
    get_participants,
    grading_response_to_dict,
    grading_to_dict,
    join_conversation,
    update_conversation,
)
from mmstr.exceptions import AIAdapterError, AITimeoutError, InvalidTransitionError, MMSTRError, NotFoundError
from mmstr.validation.character_validation import get_char_count_display, get_remaining_chars, validate_message

logger = logging.getLogger(__name__)

router = APIRouter()
"""Creates the FastAPI router in which we define its routes"""


def http_error(exc: Exception) -> HTTPException:
    """
    Map an application error onto an HTTPException.

    - NotFoundError          → 404
    - InvalidTransitionError → 409 (includes max attempts / chain locked)
    - AITimeoutError         → 504
    - other AIAdapterError   → 502
    - ValueError             → 422
    """
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvalidTransitionError):
        return HTTPException(status_code=409, detail={"error": type(exc).__name__, "reason": str(exc)})
    if isinstance(exc, AITimeoutError):
        return HTTPException(status_code=504, detail=str(exc))
    if isinstance(exc, AIAdapterError):
        logger.error("Judge call failed: %s", exc)
        return HTTPException(status_code=502, detail={"error": type(exc).__name__, "reason": str(exc)})
    if isinstance(exc, ValueError):
        return HTTPException(status_code=422, detail=str(exc))
    return HTTPException(status_code=500, detail="Internal Server Error")


def _judge(request: Request) -> Judge:
    return request.app.state.judge


def _unwrap(res: dict) -> dict:
    """Raise 422 for a validation failure payload, pass successes through."""
    if not res["res"]:
        raise HTTPException(
            status_code=422,
            detail={"error": "invalid_text", "reason": res["detail"], "validation": res["validation"]},
        )
    return res


# --------------------------------------------------------------------
# Conversations
# --------------------------------------------------------------------


@router.post('/conversations', status_code=201, response_model=Conversation)
async def new_conversation(data: ConversationCreationDetails):
    """Create a conversation; the optional creator joins it immediately."""
    return create_conversation(
        title=data.title,
        max_attempts=data.max_attempts,
        participant_limit=data.participant_limit,
        creator_id=data.creator_id,
    )


@router.get('/conversations', response_model=List[Conversation])
async def list_conversations():
    """All conversations, newest first."""
    return get_conversations()


@router.get('/conversations/{conversation_id}', response_model=Conversation)
async def read_conversation(conversation_id: UUID):
    try:
        return get_conversation(conversation_id=conversation_id)
    except MMSTRError as e:
        raise http_error(e)


@router.patch('/conversations/{conversation_id}', response_model=Conversation)
async def patch_conversation(conversation_id: UUID, data: UpdateConversationDetails):
    """Update title / policy. Lowering the participant limit below the current count is a 409."""
    try:
        return update_conversation(
            conversation_id=conversation_id,
            title=data.title,
            max_attempts=data.max_attempts,
            participant_limit=data.participant_limit,
        )
    except MMSTRError as e:
        raise http_error(e)


@router.post('/conversations/{conversation_id}/participants', status_code=201, response_model=Participant)
async def join(conversation_id: UUID, data: ParticipantDetails):
    """Join a conversation (idempotent). 409 once the participant limit is reached."""
    try:
        return join_conversation(conversation_id=conversation_id, user_id=data.user_id)
    except MMSTRError as e:
        raise http_error(e)


@router.get('/conversations/{conversation_id}/participants', response_model=List[Participant])
async def list_participants(conversation_id: UUID):
    try:
        return get_participants(conversation_id=conversation_id)
    except MMSTRError as e:
        raise http_error(e)


# --------------------------------------------------------------------
# Messages
# --------------------------------------------------------------------


@router.post('/conversations/{conversation_id}/messages', status_code=201, response_model=Message)
async def new_message(conversation_id: UUID, data: NewMessage):
    """Post a message.

    Behavior:
        - Text is trimmed and validated (10-280 chars, at least 3 words); failures → 422.
        - The author joins the conversation if needed; a full conversation → 409.
        - A reply requires an accepted interpretation of the parent message → 409 otherwise.
    """
    try:
        res = create_message(
            conversation_id=conversation_id,
            author_id=data.author_id,
            text=data.text,
            replying_to_message_id=data.replying_to_message_id,
        )
    except MMSTRError as e:
        raise http_error(e)
    return _unwrap(res)["message"]


@router.get('/conversations/{conversation_id}/messages', response_model=List[Message])
async def list_messages(conversation_id: UUID):
    """Messages of a conversation, oldest first."""
    try:
        return get_conversation_messages(conversation_id=conversation_id)
    except MMSTRError as e:
        raise http_error(e)


@router.get('/messages/{message_id}', response_model=Message)
async def read_message(message_id: UUID):
    try:
        return get_message(message_id=message_id)
    except MMSTRError as e:
        raise http_error(e)


@router.get('/messages/{message_id}/replies', response_model=List[Message])
async def list_replies(message_id: UUID):
    try:
        return get_message_replies(message_id=message_id)
    except MMSTRError as e:
        raise http_error(e)


# --------------------------------------------------------------------
# Interpretations
# --------------------------------------------------------------------


@router.post('/messages/{message_id}/interpretations', status_code=201, response_model=InterpretationSubmission)
def new_interpretation(message_id: UUID, data: NewInterpretation, request: Request):
    """Submit an interpretation attempt and grade it.

    Response:
        201: {'interpretation', 'grading', 'arbitration'} (arbitration set when the
             attempt was the last one and got rejected)
        409: own message, previous attempt not rejected, chain locked or attempts exhausted
        422: invalid text
        502/504: the judge failed; the interpretation is stored and can be re-graded
    """
    try:
        res = flow.submit_interpretation(message_id, data.user_id, data.text, _judge(request))
    except MMSTRError as e:
        raise http_error(e)
    return _unwrap(res)


@router.get('/messages/{message_id}/interpretations', response_model=List[InterpretationAttempt])
async def list_interpretations(message_id: UUID, user_id: str):
    """Every attempt of `user_id` on the message with its grading, attempt 1 first."""
    return get_interpretation_attempts(message_id=message_id, user_id=user_id)


@router.get('/interpretations/{interpretation_id}', response_model=Interpretation)
async def read_interpretation(interpretation_id: UUID):
    try:
        return get_interpretation(interpretation_id=interpretation_id)
    except MMSTRError as e:
        raise http_error(e)


@router.post('/interpretations/{interpretation_id}/grade', response_model=Grading)
def grade(interpretation_id: UUID, request: Request):
    """Grade an interpretation whose automatic grading did not complete. 409 if already graded."""
    try:
        return grading_to_dict(flow.grade_interpretation(interpretation_id, _judge(request)))
    except MMSTRError as e:
        raise http_error(e)


@router.get('/messages/{message_id}/flow', response_model=InterpretationFlowState)
async def interpretation_flow(message_id: UUID, user_id: str):
    """Flow state of `user_id`'s interpretation chain on the message."""
    try:
        return flow.get_interpretation_flow_state(message_id=message_id, user_id=user_id)
    except MMSTRError as e:
        raise http_error(e)


@router.get('/messages/{message_id}/eligibility', response_model=Eligibility)
async def eligibility(message_id: UUID, user_id: str):
    """Whether `user_id` may respond to the message, with its display status."""
    try:
        return flow.can_user_respond(message_id=message_id, user_id=user_id)
    except MMSTRError as e:
        raise http_error(e)


# --------------------------------------------------------------------
# Gradings & arbitration
# --------------------------------------------------------------------


@router.get('/gradings/{grading_id}', response_model=Grading)
async def read_grading(grading_id: UUID):
    try:
        return get_grading(grading_id=grading_id)
    except MMSTRError as e:
        raise http_error(e)


@router.patch('/gradings/{grading_id}', response_model=Grading)
def decide(grading_id: UUID, data: GradingDecision, request: Request):
    """Author's accept/reject decision. Rejecting a final attempt forces arbitration."""
    try:
        grading = flow.update_grading(grading_id, data.status, _judge(request), notes=data.notes)
    except (MMSTRError, ValueError) as e:
        raise http_error(e)
    return grading_to_dict(grading)


@router.post('/gradings/{grading_id}/responses', status_code=201, response_model=GradingResponse)
def dispute(grading_id: UUID, data: DisputeDetails, request: Request):
    """Dispute a rejection. The arbitration runs before the response is returned.

    Response:
        201: the stored dispute
        409: grading not rejected, already disputed or already arbitrated
        422: blank dispute text
        502/504: arbitration failed; the dispute is stored, retry with POST /gradings/{id}/arbitration
    """
    try:
        response = flow.create_grading_response(grading_id, data.text, _judge(request))
    except (MMSTRError, ValueError) as e:
        raise http_error(e)
    return grading_response_to_dict(response)


@router.post('/gradings/{grading_id}/arbitration', response_model=Optional[Arbitration])
def arbitrate(grading_id: UUID, request: Request):
    """Re-run the arbitration trigger for a grading. Returns null when nothing was due."""
    try:
        arbitration = flow.retry_arbitration(grading_id, _judge(request))
    except MMSTRError as e:
        raise http_error(e)
    return arbitration_to_dict(arbitration) if arbitration is not None else None


# --------------------------------------------------------------------
# Validation
# --------------------------------------------------------------------


@router.post('/validation/message', response_model=ValidationReport)
async def validate(data: TextToValidate):
    """Validate a draft message or interpretation without storing anything."""
    text = data.text.strip()
    result = validate_message(text)
    return {
        **result.model_dump(mode="json"),
        "remaining_chars": get_remaining_chars(text),
        "char_count_display": get_char_count_display(text),
    }
