"""
Service-layer operations for conversations, participants and messages.

All functions are wrapped with the `@transactional` decorator, which manages
SQLAlchemy sessions and transactions automatically. Each function accepts (and
uses) an injected `session: Session` provided by the decorator, so callers
pass every other argument by keyword.

This module also holds the ``*_to_dict`` serializers shared with
`mmstr.database.core.flow` and the API layer, and the read helpers for the
interpretation chain (gradings, disputes, rulings).

Validation failures are not raised: functions return the
``{"res": False, "detail": ..., "validation": {...}}`` shape and the caller
decides how to surface it. Broken references raise `NotFoundError`.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from mmstr.database.config.config import settings
from mmstr.database.daos.arbitration_dao import ArbitrationDao
from mmstr.database.daos.breakdown_dao import BreakdownDao
from mmstr.database.daos.conversation_dao import ConversationDao, ParticipationDao
from mmstr.database.daos.grading_dao import GradingDao, GradingResponseDao
from mmstr.database.daos.interpretation_dao import InterpretationDao
from mmstr.database.daos.message_dao import MessageDao
from mmstr.database.entities.arbitrations import Arbitration
from mmstr.database.entities.breakdowns import Point
from mmstr.database.entities.conversations import Conversation, Participation
from mmstr.database.entities.gradings import Grading, GradingResponse
from mmstr.database.entities.interpretations import Interpretation
from mmstr.database.entities.messages import Message
from mmstr.database.helpers.transactionManagement import transactional
from mmstr.exceptions import InvalidTransitionError, NotFoundError
from mmstr.protocol import machine
from mmstr.protocol.states import BreakdownSubject
from mmstr.validation.character_validation import requires_interpretation, validate_message

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------
# Serializers
# --------------------------------------------------------------------


def conversation_to_dict(conversation: Conversation, participant_count: Optional[int] = None) -> dict:
    data = {
        "id": conversation.id,
        "title": conversation.title,
        "max_attempts": conversation.max_attempts,
        "participant_limit": conversation.participant_limit,
        "created_at": conversation.created_at,
        "updated_at": conversation.updated_at,
    }
    if participant_count is not None:
        data["participant_count"] = participant_count
    return data


def participation_to_dict(participation: Participation) -> dict:
    return {
        "conversation_id": participation.conversation_id,
        "user_id": participation.user_id,
        "joined_at": participation.joined_at,
    }


def message_to_dict(message: Message) -> dict:
    return {
        "id": message.id,
        "conversation_id": message.conversation_id,
        "author_id": message.author_id,
        "text": message.text,
        "replying_to_message_id": message.replying_to_message_id,
        "created_at": message.created_at,
    }


def interpretation_to_dict(interpretation: Interpretation) -> dict:
    return {
        "id": interpretation.id,
        "message_id": interpretation.message_id,
        "user_id": interpretation.user_id,
        "text": interpretation.text,
        "attempt_number": interpretation.attempt_number,
        "created_at": interpretation.created_at,
    }


def grading_to_dict(grading: Grading) -> dict:
    return {
        "id": grading.id,
        "interpretation_id": grading.interpretation_id,
        "status": grading.status,
        "similarity_score": grading.similarity_score,
        "auto_accept_suggested": grading.auto_accept_suggested,
        "notes": grading.notes,
        "created_at": grading.created_at,
        "updated_at": grading.updated_at,
    }


def grading_response_to_dict(response: GradingResponse) -> dict:
    return {
        "id": response.id,
        "grading_id": response.grading_id,
        "text": response.text,
        "created_at": response.created_at,
    }


def arbitration_to_dict(arbitration: Arbitration) -> dict:
    return {
        "id": arbitration.id,
        "message_id": arbitration.message_id,
        "interpretation_id": arbitration.interpretation_id,
        "grading_id": arbitration.grading_id,
        "grading_response_id": arbitration.grading_response_id,
        "result": arbitration.result,
        "ruling_status": arbitration.ruling_status,
        "explanation": arbitration.explanation,
        "trigger": arbitration.trigger,
        "created_at": arbitration.created_at,
    }


def point_to_dict(point: Point) -> dict:
    return {"text": point.text, "order": point.order}


def validation_failure(validation) -> dict:
    """Failure payload for a failed `ValidationResult`."""
    return {"res": False, "detail": validation.error_message, "validation": validation.model_dump()}


# --------------------------------------------------------------------
# Conversations & participants
# --------------------------------------------------------------------


def _require_conversation(session: Session, conversation_id: UUID) -> Conversation:
    conversation = ConversationDao().fetchConversationById(session, conversation_id)
    if conversation is None:
        raise NotFoundError("Conversation", conversation_id)
    return conversation


@transactional
def create_conversation(
    session: Session,
    title: str,
    max_attempts: Optional[int] = None,
    participant_limit: Optional[int] = None,
    creator_id: Optional[str] = None,
) -> dict:
    """
    Create a new conversation.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session (injected by @transactional).
    title : str
        Conversation title.
    max_attempts : int, optional
        Attempt policy; ``settings.DEFAULT_MAX_ATTEMPTS`` when omitted.
    participant_limit : int, optional
        Participant limit; ``settings.DEFAULT_PARTICIPANT_LIMIT`` when omitted.
    creator_id : str, optional
        When given, the creator joins the conversation immediately.

    Returns
    -------
    dict
        The serialized conversation.
    """
    conversation = Conversation(
        title=title.strip(),
        max_attempts=max_attempts if max_attempts is not None else settings.DEFAULT_MAX_ATTEMPTS,
        participant_limit=participant_limit if participant_limit is not None else settings.DEFAULT_PARTICIPANT_LIMIT,
    )
    ConversationDao().createConversation(session, conversation)
    participant_count = 0
    if creator_id:
        ParticipationDao().createParticipation(session, Participation(conversation.id, creator_id))
        participant_count = 1
    logger.info("Created conversation %s (max_attempts=%d)", conversation.id, conversation.max_attempts)
    return conversation_to_dict(conversation, participant_count)


@transactional
def get_conversation(session: Session, conversation_id: UUID) -> dict:
    """Serialized conversation with its participant count. Raises `NotFoundError`."""
    conversation = _require_conversation(session, conversation_id)
    count = ParticipationDao().countParticipants(session, conversation_id)
    return conversation_to_dict(conversation, count)


@transactional
def get_conversations(session: Session) -> list[dict]:
    """
    List all conversations, newest first.

    Returns
    -------
    list[dict]
        Serialized conversations; empty list when there are none.
    """
    return [conversation_to_dict(conversation) for conversation in ConversationDao().fetchConversations(session)]


@transactional
def update_conversation(
    session: Session,
    conversation_id: UUID,
    title: Optional[str] = None,
    max_attempts: Optional[int] = None,
    participant_limit: Optional[int] = None,
) -> dict:
    """
    Update the title and/or policy of a conversation.

    Lowering ``participant_limit`` below the current participant count is
    rejected with `InvalidTransitionError`. A new ``max_attempts`` applies to
    attempts submitted afterwards.
    """
    conversation = _require_conversation(session, conversation_id)
    if participant_limit is not None:
        count = ParticipationDao().countParticipants(session, conversation_id)
        if participant_limit < count:
            raise InvalidTransitionError(
                f"Conversation already has {count} participants; the limit cannot be lowered to {participant_limit}"
            )
    ConversationDao().updateConversation(
        session,
        conversation.id,
        title=title.strip() if title is not None else None,
        max_attempts=max_attempts,
        participant_limit=participant_limit,
    )
    return conversation_to_dict(conversation, ParticipationDao().countParticipants(session, conversation_id))


@transactional
def join_conversation(session: Session, conversation_id: UUID, user_id: str) -> dict:
    """
    Add a user to a conversation. Joining twice is a no-op.

    Raises
    ------
    NotFoundError
        Unknown conversation.
    InvalidTransitionError
        The participant limit is reached.
    """
    conversation = _require_conversation(session, conversation_id)
    participation_dao = ParticipationDao()
    existing = participation_dao.fetchParticipation(session, conversation_id, user_id)
    if existing is not None:
        return participation_to_dict(existing)
    if participation_dao.countParticipants(session, conversation_id) >= conversation.participant_limit:
        raise InvalidTransitionError(
            f"Conversation {conversation_id} is full ({conversation.participant_limit} participants)"
        )
    participation = participation_dao.createParticipation(session, Participation(conversation_id, user_id))
    logger.info("User %s joined conversation %s", user_id, conversation_id)
    return participation_to_dict(participation)


@transactional
def get_participants(session: Session, conversation_id: UUID) -> list[dict]:
    _require_conversation(session, conversation_id)
    return [
        participation_to_dict(participation)
        for participation in ParticipationDao().fetchParticipantsByConversationId(session, conversation_id)
    ]


# --------------------------------------------------------------------
# Messages
# --------------------------------------------------------------------


def _latest_effective_status(session: Session, message_id: UUID, user_id: str):
    """(latest interpretation, grading, arbitration, effective status) for a chain."""
    latest = InterpretationDao().fetchLatestInterpretation(session, message_id, user_id)
    if latest is None:
        return None, None, None, None
    grading = GradingDao().fetchGradingByInterpretationId(session, latest.id)
    arbitration = ArbitrationDao().fetchArbitrationByInterpretationId(session, latest.id)
    status = machine.effective_status(
        grading.status if grading is not None else None,
        arbitration.result if arbitration is not None else None,
    )
    return latest, grading, arbitration, status


@transactional
def create_message(
    session: Session,
    conversation_id: UUID,
    author_id: str,
    text: str,
    replying_to_message_id: Optional[UUID] = None,
) -> dict:
    """
    Validate and post a message. The author joins the conversation if needed.

    A reply is only accepted when the author may respond to the parent
    message, i.e. holds an accepted interpretation of it (directly or by
    arbitration).

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session (injected by @transactional).
    conversation_id : UUID
        Target conversation.
    author_id : str
        Author identifier.
    text : str
        Raw text; trimmed before validation.
    replying_to_message_id : UUID, optional
        Parent message.

    Returns
    -------
    dict
        - On success: {'res': True, 'detail': '', 'message': <message dict>}
        - On invalid text: {'res': False, 'detail': <reason>, 'validation': <ValidationResult dict>}

    Raises
    ------
    NotFoundError
        Unknown conversation or parent message.
    InvalidTransitionError
        Conversation full, parent in another conversation, or the author may
        not respond to the parent yet.
    """
    trimmed = text.strip()
    validation = validate_message(trimmed)
    if not validation.is_valid:
        return validation_failure(validation)

    _require_conversation(session, conversation_id)
    message_dao = MessageDao()

    if replying_to_message_id is not None:
        parent = message_dao.fetchMessageById(session, replying_to_message_id)
        if parent is None:
            raise NotFoundError("Message", replying_to_message_id)
        if parent.conversation_id != conversation_id:
            raise InvalidTransitionError("Replies must stay within the parent message's conversation")
        _, _, _, status = _latest_effective_status(session, parent.id, author_id)
        allowed = machine.can_respond_to_message(
            is_own_message=parent.author_id == author_id,
            requires_interpretation=requires_interpretation(parent.text),
            interpretation_status=status,
        )
        if not allowed:
            raise InvalidTransitionError("An accepted interpretation is required before responding to this message")

    join_conversation(conversation_id=conversation_id, user_id=author_id)

    message = message_dao.createMessage(
        session,
        Message(
            conversation_id=conversation_id,
            author_id=author_id,
            text=trimmed,
            replying_to_message_id=replying_to_message_id,
        ),
    )
    return {"res": True, "detail": "", "message": message_to_dict(message)}


@transactional
def get_message(session: Session, message_id: UUID) -> dict:
    message = MessageDao().fetchMessageById(session, message_id)
    if message is None:
        raise NotFoundError("Message", message_id)
    return message_to_dict(message)


@transactional
def get_conversation_messages(session: Session, conversation_id: UUID) -> list[dict]:
    """
    List all messages of a conversation, oldest first.

    Returns
    -------
    list[dict]
        Serialized messages; empty list when the conversation has none.
    """
    _require_conversation(session, conversation_id)
    return [message_to_dict(message) for message in MessageDao().fetchMessagesByConversationId(session, conversation_id)]


@transactional
def get_message_replies(session: Session, message_id: UUID) -> list[dict]:
    if MessageDao().fetchMessageById(session, message_id) is None:
        raise NotFoundError("Message", message_id)
    return [message_to_dict(message) for message in MessageDao().fetchRepliesToMessage(session, message_id)]


# --------------------------------------------------------------------
# Interpretation chain reads
# --------------------------------------------------------------------


@transactional
def get_interpretation(session: Session, interpretation_id: UUID) -> dict:
    interpretation = InterpretationDao().fetchInterpretationById(session, interpretation_id)
    if interpretation is None:
        raise NotFoundError("Interpretation", interpretation_id)
    return interpretation_to_dict(interpretation)


@transactional
def get_interpretation_attempts(session: Session, message_id: UUID, user_id: str) -> list[dict]:
    """Every attempt of `user_id` on the message with its grading, attempt 1 first."""
    grading_dao = GradingDao()
    attempts = []
    for interpretation in InterpretationDao().fetchInterpretationsByMessageAndUser(session, message_id, user_id):
        grading = grading_dao.fetchGradingByInterpretationId(session, interpretation.id)
        attempts.append(
            {
                "interpretation": interpretation_to_dict(interpretation),
                "grading": grading_to_dict(grading) if grading is not None else None,
            }
        )
    return attempts


@transactional
def get_grading(session: Session, grading_id: UUID) -> dict:
    grading = GradingDao().fetchGradingById(session, grading_id)
    if grading is None:
        raise NotFoundError("Grading", grading_id)
    return grading_to_dict(grading)


@transactional
def get_arbitration_for_interpretation(session: Session, interpretation_id: UUID) -> Optional[dict]:
    arbitration = ArbitrationDao().fetchArbitrationByInterpretationId(session, interpretation_id)
    return arbitration_to_dict(arbitration) if arbitration is not None else None


@transactional
def get_breakdown_points(session: Session, subject: BreakdownSubject) -> Optional[list[dict]]:
    """Stored points for a subject, or None when no breakdown exists yet."""
    breakdown_dao = BreakdownDao()
    breakdown = breakdown_dao.fetchBreakdownBySubject(session, subject)
    if breakdown is None:
        return None
    return [point_to_dict(point) for point in breakdown_dao.fetchPointsByBreakdownId(session, breakdown.id)]
