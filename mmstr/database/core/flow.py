"""
Interpretation flow orchestration.

Sequences the state machine (`mmstr.protocol.machine`), the DAOs and the
judge to implement

    submit interpretation → grade → author decision / dispute → arbitration

Transaction layout
------------------
Every storage step is its own ``@transactional`` function (private, prefixed
with ``_``). Judge calls happen *between* those steps, never while a session
is open, so a slow or failing model call cannot hold a transaction or roll
back work that was already committed:

- A judge failure during grading leaves the interpretation stored and
  ungraded; `grade_interpretation` can be called again for it.
- A judge failure during arbitration leaves the grading (or dispute) stored
  and no ruling; `retry_arbitration` picks it up again.

Arbitration triggers are idempotent. Guard no-ops (attempts remaining, ruling
already present) log at INFO and return None. Broken entity links raise
`NotFoundError`.

Public functions that are not themselves transactional take their arguments
positionally; the ``@transactional`` ones must be called with keywords.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mmstr.api.llm_judge import Judge
from mmstr.api.prompt_utilities import build_conversation_context, max_attempts_dispute_reason
from mmstr.database.core.funcs import (
    get_arbitration_for_interpretation,
    get_breakdown_points,
    grading_response_to_dict,
    grading_to_dict,
    interpretation_to_dict,
    arbitration_to_dict,
    point_to_dict,
    validation_failure,
)
from mmstr.database.daos.arbitration_dao import ArbitrationDao
from mmstr.database.daos.breakdown_dao import BreakdownDao
from mmstr.database.daos.conversation_dao import ConversationDao
from mmstr.database.daos.grading_dao import GradingDao, GradingResponseDao
from mmstr.database.daos.interpretation_dao import InterpretationDao
from mmstr.database.daos.message_dao import MessageDao
from mmstr.database.entities.arbitrations import Arbitration
from mmstr.database.entities.conversations import Conversation
from mmstr.database.entities.gradings import Grading, GradingResponse
from mmstr.database.entities.interpretations import Interpretation
from mmstr.database.entities.messages import Message
from mmstr.database.helpers.transactionManagement import transactional
from mmstr.exceptions import InvalidTransitionError, NotFoundError
from mmstr.protocol import machine
from mmstr.protocol.judgments import ArbitrationJudgment, GradingJudgment
from mmstr.protocol.states import BreakdownSubject, GradingStatus
from mmstr.validation.character_validation import requires_interpretation, validate_message
from mmstr.validation.word_similarity import calculate_word_similarity

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------
# Loading helpers (run inside an open session)
# --------------------------------------------------------------------


def _require_message(session: Session, message_id: UUID) -> Message:
    message = MessageDao().fetchMessageById(session, message_id)
    if message is None:
        raise NotFoundError("Message", message_id)
    return message


def _require_conversation(session: Session, conversation_id: UUID) -> Conversation:
    conversation = ConversationDao().fetchConversationById(session, conversation_id)
    if conversation is None:
        raise NotFoundError("Conversation", conversation_id)
    return conversation


def _require_interpretation(session: Session, interpretation_id: UUID) -> Interpretation:
    interpretation = InterpretationDao().fetchInterpretationById(session, interpretation_id)
    if interpretation is None:
        raise NotFoundError("Interpretation", interpretation_id)
    return interpretation


def _require_grading(session: Session, grading_id: UUID) -> Grading:
    grading = GradingDao().fetchGradingById(session, grading_id)
    if grading is None:
        raise NotFoundError("Grading", grading_id)
    return grading


def _conversation_context(session: Session, message: Message) -> str:
    """Every other message of the conversation, oldest first."""
    others = MessageDao().fetchMessagesByConversationId(session, message.conversation_id)
    return build_conversation_context(other.text for other in others if other.id != message.id)


def _is_latest(session: Session, interpretation: Interpretation) -> bool:
    latest = InterpretationDao().fetchLatestInterpretation(session, interpretation.message_id, interpretation.user_id)
    return latest is not None and latest.id == interpretation.id


# --------------------------------------------------------------------
# Submission
# --------------------------------------------------------------------


@transactional
def _create_interpretation(session: Session, message_id: UUID, user_id: str, text: str) -> Interpretation:
    message = _require_message(session, message_id)
    conversation = _require_conversation(session, message.conversation_id)
    interpretation_dao = InterpretationDao()

    latest = interpretation_dao.fetchLatestInterpretation(session, message_id, user_id)
    latest_status = None
    latest_disputed = False
    if latest is not None:
        latest_grading = GradingDao().fetchGradingByInterpretationId(session, latest.id)
        if latest_grading is not None:
            latest_status = latest_grading.status
            latest_disputed = (
                GradingResponseDao().fetchGradingResponseByGradingId(session, latest_grading.id) is not None
            )

    attempt_number = machine.next_attempt_number(
        is_own_message=message.author_id == user_id,
        chain_locked=ArbitrationDao().fetchChainArbitration(session, message_id, user_id) is not None,
        existing_attempts=interpretation_dao.countInterpretations(session, message_id, user_id),
        latest_status=latest_status,
        max_attempts=conversation.max_attempts,
        latest_disputed=latest_disputed,
    )

    interpretation = Interpretation(message_id=message_id, user_id=user_id, text=text, attempt_number=attempt_number)
    try:
        with session.begin_nested():
            interpretation_dao.createInterpretation(session, interpretation)
    except IntegrityError as exc:
        raise InvalidTransitionError(
            f"Attempt {attempt_number} was already submitted for this message; reload and try again"
        ) from exc

    logger.info(
        "User %s submitted interpretation %s (attempt %d/%d) of message %s",
        user_id,
        interpretation.id,
        attempt_number,
        conversation.max_attempts,
        message_id,
    )
    return interpretation


def submit_interpretation(message_id: UUID, user_id: str, text: str, judge: Judge) -> dict:
    """
    Validate, store and automatically grade a new interpretation attempt.

    Parameters
    ----------
    message_id : UUID
        Message being interpreted.
    user_id : str
        Interpreter.
    text : str
        Raw interpretation text; trimmed before validation.
    judge : Judge
        Judgment adapter.

    Returns
    -------
    dict
        - On success: {'res': True, 'detail': '', 'interpretation': ..., 'grading': ..., 'arbitration': ... | None}
        - On invalid text: {'res': False, 'detail': <reason>, 'validation': <ValidationResult dict>}

    Raises
    ------
    NotFoundError
        Unknown message or conversation.
    InvalidTransitionError
        Own message, latest attempt pending/accepted/ungraded, chain locked
        (`ChainLockedError`) or attempts exhausted (`MaxAttemptsExceededError`).
    AIAdapterError
        Grading failed; the interpretation stays stored and ungraded.
    """
    trimmed = text.strip()
    validation = validate_message(trimmed)
    if not validation.is_valid:
        return validation_failure(validation)

    interpretation = _create_interpretation(message_id=message_id, user_id=user_id, text=trimmed)
    grading = grade_interpretation(interpretation.id, judge)
    return {
        "res": True,
        "detail": "",
        "interpretation": interpretation_to_dict(interpretation),
        "grading": grading_to_dict(grading),
        "arbitration": get_arbitration_for_interpretation(interpretation_id=interpretation.id),
    }


# --------------------------------------------------------------------
# Automatic grading
# --------------------------------------------------------------------


@transactional
def _load_grading_inputs(session: Session, interpretation_id: UUID) -> tuple[Interpretation, Message, str]:
    interpretation = _require_interpretation(session, interpretation_id)
    message = _require_message(session, interpretation.message_id)
    if GradingDao().fetchGradingByInterpretationId(session, interpretation_id) is not None:
        raise InvalidTransitionError(f"Interpretation {interpretation_id} is already graded")
    return interpretation, message, _conversation_context(session, message)


@transactional
def _store_grading(
    session: Session,
    interpretation_id: UUID,
    decision: machine.GradingDecision,
    judgment: GradingJudgment,
) -> Grading:
    grading = Grading(
        interpretation_id=interpretation_id,
        status=decision.status,
        similarity_score=judgment.similarity_score,
        auto_accept_suggested=judgment.auto_accept_suggested,
        notes=decision.notes,
    )
    try:
        with session.begin_nested():
            GradingDao().createGrading(session, grading)
    except IntegrityError as exc:
        raise InvalidTransitionError(f"Interpretation {interpretation_id} is already graded") from exc
    return grading


def grade_interpretation(interpretation_id: UUID, judge: Judge) -> Grading:
    """
    Grade an interpretation: semantic judgment, lexical check, persist, react.

    The lexical check dominates: more than 70% of the interpretation's
    distinct words copied from the original means ``rejected`` whatever the
    judge says. A rejection immediately runs the max-attempts trigger, which
    is a no-op unless this was the final allowed attempt.

    Returns
    -------
    Grading
        The stored grading.

    Raises
    ------
    NotFoundError
        Interpretation or message missing.
    InvalidTransitionError
        The interpretation already has a grading.
    AIAdapterError
        The judge failed; nothing was stored.
    """
    interpretation, message, context = _load_grading_inputs(interpretation_id=interpretation_id)

    judgment = judge.grade(message.text, interpretation.text, context)
    similarity = calculate_word_similarity(message.text, interpretation.text)
    decision = machine.decide_grading(similarity, judgment)

    grading = _store_grading(interpretation_id=interpretation.id, decision=decision, judgment=judgment)
    logger.info(
        "Graded interpretation %s (attempt %d): %s (score=%.0f, word overlap=%.2f%s)",
        interpretation.id,
        interpretation.attempt_number,
        grading.status.value,
        judgment.similarity_score,
        similarity.similarity,
        ", lexical auto-reject" if decision.lexical_auto_reject else "",
    )

    if grading.status == GradingStatus.REJECTED:
        trigger_arbitration_for_max_attempts(grading.id, judge)
    return grading


# --------------------------------------------------------------------
# Author decision & dispute
# --------------------------------------------------------------------


@transactional
def _apply_author_decision(
    session: Session, grading_id: UUID, status: GradingStatus, notes: Optional[str]
) -> Grading:
    grading = _require_grading(session, grading_id)
    interpretation = _require_interpretation(session, grading.interpretation_id)
    has_arbitration = ArbitrationDao().fetchArbitrationByInterpretationId(session, interpretation.id) is not None
    machine.check_author_decision(
        grading.status, status, has_arbitration, is_latest=_is_latest(session, interpretation)
    )

    previous = grading.status
    if notes is None:
        GradingDao().updateGrading(session, grading_id, status=status)
    else:
        GradingDao().updateGrading(session, grading_id, status=status, notes=notes)
    logger.info("Author changed grading %s: %s -> %s", grading_id, previous.value, status.value)
    return grading


def update_grading(grading_id: UUID, status: GradingStatus, judge: Judge, notes: Optional[str] = None) -> Grading:
    """
    Apply the message author's decision to a grading.

    Parameters
    ----------
    grading_id : UUID
        Grading to change.
    status : GradingStatus | str
        ``accepted`` or ``rejected``; ``pending`` is never a legal target.
    judge : Judge
        Used when the rejection forces a max-attempts arbitration.
    notes : str, optional
        New notes; existing notes are kept when omitted.

    Returns
    -------
    Grading
        The updated grading.

    Raises
    ------
    NotFoundError
        Unknown grading.
    InvalidTransitionError
        Illegal move, a newer attempt superseded the grading, or an
        arbitration already fixed the outcome.
    AIAdapterError
        The forced arbitration failed; the decision itself stays stored.
    """
    grading = _apply_author_decision(grading_id=grading_id, status=GradingStatus(status), notes=notes)
    if grading.status == GradingStatus.REJECTED:
        trigger_arbitration_for_max_attempts(grading.id, judge)
    return grading


@transactional
def _store_dispute(session: Session, grading_id: UUID, text: str) -> GradingResponse:
    grading = _require_grading(session, grading_id)
    interpretation = _require_interpretation(session, grading.interpretation_id)
    response_dao = GradingResponseDao()
    machine.check_dispute(
        grading.status,
        has_response=response_dao.fetchGradingResponseByGradingId(session, grading_id) is not None,
        has_arbitration=ArbitrationDao().fetchArbitrationByInterpretationId(session, interpretation.id) is not None,
        is_latest=_is_latest(session, interpretation),
    )
    response = GradingResponse(grading_id=grading_id, text=text)
    try:
        with session.begin_nested():
            response_dao.createGradingResponse(session, response)
    except IntegrityError as exc:
        raise InvalidTransitionError("This grading has already been disputed") from exc
    logger.info("Grading %s disputed (response %s)", grading_id, response.id)
    return response


def create_grading_response(grading_id: UUID, text: str, judge: Judge) -> GradingResponse:
    """
    File the interpreter's dispute of a rejection and arbitrate it right away.

    A dispute is irrevocable and allowed once per grading, whatever the
    attempt number.

    Raises
    ------
    ValueError
        Blank dispute text.
    NotFoundError
        Unknown grading or broken chain.
    InvalidTransitionError
        Grading not rejected, superseded by a newer attempt, already disputed,
        or already arbitrated.
    AIAdapterError
        Arbitration failed; the dispute stays stored and `retry_arbitration`
        can complete it.
    """
    trimmed = text.strip()
    if not trimmed:
        raise ValueError("Dispute text cannot be empty")
    response = _store_dispute(grading_id=grading_id, text=trimmed)
    trigger_arbitration_for_dispute(response.id, judge)
    return response


# --------------------------------------------------------------------
# Arbitration
# --------------------------------------------------------------------


@dataclass
class _ArbitrationInputs:
    message: Message
    interpretation: Interpretation
    grading: Grading
    conversation_context: str
    author_notes: Optional[str]
    dispute_reason: str
    grading_response_id: Optional[UUID]


@transactional
def _load_dispute_inputs(session: Session, grading_response_id: UUID) -> Optional[_ArbitrationInputs]:
    response = GradingResponseDao().fetchGradingResponseById(session, grading_response_id)
    if response is None:
        raise NotFoundError("GradingResponse", grading_response_id)
    grading = _require_grading(session, response.grading_id)
    interpretation = _require_interpretation(session, grading.interpretation_id)
    message = _require_message(session, interpretation.message_id)

    if ArbitrationDao().fetchArbitrationByInterpretationId(session, interpretation.id) is not None:
        logger.info("Dispute %s: interpretation %s already arbitrated, skipping", grading_response_id, interpretation.id)
        return None

    return _ArbitrationInputs(
        message=message,
        interpretation=interpretation,
        grading=grading,
        conversation_context=_conversation_context(session, message),
        author_notes=grading.notes,
        dispute_reason=response.text,
        grading_response_id=response.id,
    )


@transactional
def _load_max_attempts_inputs(session: Session, grading_id: UUID) -> Optional[_ArbitrationInputs]:
    grading = _require_grading(session, grading_id)
    interpretation = _require_interpretation(session, grading.interpretation_id)
    message = _require_message(session, interpretation.message_id)
    conversation = _require_conversation(session, message.conversation_id)

    if not machine.max_attempts_arbitration_due(interpretation.attempt_number, conversation.max_attempts):
        logger.info(
            "Grading %s: attempt %d of %d, arbitration not due yet",
            grading_id,
            interpretation.attempt_number,
            conversation.max_attempts,
        )
        return None
    if ArbitrationDao().fetchArbitrationByInterpretationId(session, interpretation.id) is not None:
        logger.info("Grading %s: interpretation %s already arbitrated, skipping", grading_id, interpretation.id)
        return None
    if grading.status != GradingStatus.REJECTED:
        logger.info("Grading %s is %s, no max-attempts arbitration", grading_id, grading.status.value)
        return None

    return _ArbitrationInputs(
        message=message,
        interpretation=interpretation,
        grading=grading,
        conversation_context=_conversation_context(session, message),
        author_notes=None,
        dispute_reason=max_attempts_dispute_reason(interpretation.attempt_number),
        grading_response_id=None,
    )


@transactional
def _store_breakdown(session: Session, subject: BreakdownSubject, point_texts: Sequence[str]) -> list[dict]:
    breakdown_dao = BreakdownDao()
    existing = breakdown_dao.fetchBreakdownBySubject(session, subject)
    if existing is None:
        try:
            with session.begin_nested():
                _, points = breakdown_dao.createBreakdown(session, subject, point_texts)
            return [point_to_dict(point) for point in points]
        except IntegrityError:
            existing = breakdown_dao.fetchBreakdownBySubject(session, subject)
            if existing is None:
                raise
    return [point_to_dict(point) for point in breakdown_dao.fetchPointsByBreakdownId(session, existing.id)]


def ensure_breakdown(subject: BreakdownSubject, text: str, judge: Judge) -> list[dict]:
    """
    Return the stored breakdown points of a subject, generating them on first use.

    Returns
    -------
    list[dict]
        ``{"text", "order"}`` items, ``order`` ascending from 0.
    """
    points = get_breakdown_points(subject=subject)
    if points is not None:
        return points
    generated = judge.breakdown(text)
    return _store_breakdown(subject=subject, point_texts=[point.text for point in generated])


def _resolve_breakdowns(message: Message, interpretation: Interpretation, judge: Judge) -> tuple[list[str], list[str]]:
    """Breakdowns of both sides; missing ones are generated concurrently, then stored."""
    texts = {
        BreakdownSubject.message(message.id): message.text,
        BreakdownSubject.interpretation(interpretation.id): interpretation.text,
    }
    resolved = {subject: get_breakdown_points(subject=subject) for subject in texts}
    missing = [subject for subject, points in resolved.items() if points is None]

    if missing:
        with ThreadPoolExecutor(max_workers=len(missing)) as executor:
            futures = {subject: executor.submit(judge.breakdown, texts[subject]) for subject in missing}
            generated = {subject: future.result() for subject, future in futures.items()}
        for subject in missing:
            resolved[subject] = _store_breakdown(
                subject=subject, point_texts=[point.text for point in generated[subject]]
            )

    original_points = [point["text"] for point in resolved[BreakdownSubject.message(message.id)]]
    interpretation_points = [point["text"] for point in resolved[BreakdownSubject.interpretation(interpretation.id)]]
    return original_points, interpretation_points


@transactional
def _store_arbitration(
    session: Session, inputs: _ArbitrationInputs, judgment: ArbitrationJudgment
) -> tuple[Arbitration, bool]:
    arbitration = Arbitration(
        message_id=inputs.message.id,
        interpretation_id=inputs.interpretation.id,
        grading_id=inputs.grading.id,
        grading_response_id=inputs.grading_response_id,
        result=judgment.result,
        explanation=judgment.explanation,
    )
    return ArbitrationDao().createArbitrationIfAbsent(session, arbitration)


def _arbitrate(inputs: _ArbitrationInputs, judge: Judge) -> Optional[Arbitration]:
    original_points, interpretation_points = _resolve_breakdowns(inputs.message, inputs.interpretation, judge)
    judgment = judge.arbitrate(
        inputs.conversation_context,
        original_points,
        interpretation_points,
        inputs.author_notes,
        inputs.dispute_reason,
    )
    arbitration, created = _store_arbitration(inputs=inputs, judgment=judgment)
    if not created:
        logger.info("Interpretation %s was arbitrated concurrently, keeping the first ruling", inputs.interpretation.id)
        return None
    logger.info(
        "Arbitration %s on interpretation %s: %s (%s)",
        arbitration.id,
        inputs.interpretation.id,
        arbitration.result.value,
        arbitration.trigger.value,
    )
    return arbitration


def trigger_arbitration_for_dispute(grading_response_id: UUID, judge: Judge) -> Optional[Arbitration]:
    """
    Arbitrate a disputed grading. No attempt-count check applies.

    Returns
    -------
    Arbitration | None
        The new ruling, or None when the interpretation was already arbitrated.

    Raises
    ------
    NotFoundError
        Dispute, grading, interpretation or message missing.
    """
    inputs = _load_dispute_inputs(grading_response_id=grading_response_id)
    if inputs is None:
        return None
    return _arbitrate(inputs, judge)


def trigger_arbitration_for_max_attempts(grading_id: UUID, judge: Judge) -> Optional[Arbitration]:
    """
    Arbitrate a rejected final attempt.

    Silent no-op (returns None) while attempts remain, when a ruling already
    exists, or when the grading is not rejected. The ruling carries no
    dispute reference and no author notes.

    Raises
    ------
    NotFoundError
        Grading, interpretation, message or conversation missing.
    """
    inputs = _load_max_attempts_inputs(grading_id=grading_id)
    if inputs is None:
        return None
    return _arbitrate(inputs, judge)


@transactional
def _find_dispute_id(session: Session, grading_id: UUID) -> Optional[UUID]:
    _require_grading(session, grading_id)
    response = GradingResponseDao().fetchGradingResponseByGradingId(session, grading_id)
    return response.id if response is not None else None


def retry_arbitration(grading_id: UUID, judge: Judge) -> Optional[Arbitration]:
    """
    Re-run whichever arbitration path applies to a grading.

    Used after a judge failure interrupted a trigger: the dispute path when the
    grading was disputed, the max-attempts path otherwise. Idempotent.
    """
    response_id = _find_dispute_id(grading_id=grading_id)
    if response_id is not None:
        return trigger_arbitration_for_dispute(response_id, judge)
    return trigger_arbitration_for_max_attempts(grading_id, judge)


# --------------------------------------------------------------------
# Read models
# --------------------------------------------------------------------


@transactional
def get_interpretation_flow_state(session: Session, message_id: UUID, user_id: str) -> dict:
    """
    Everything a client needs to render the interpretation chain of one user on one message.

    Returns
    -------
    dict
        ``interpretation``, ``grading``, ``response``, ``arbitration`` of the
        latest attempt (None when absent), ``attempt_number`` (0 before the
        first attempt), ``max_attempts``, ``effective_status``, ``locked``,
        ``can_retry``, ``can_dispute``, ``can_respond`` and the stored
        ``message_breakdown`` / ``interpretation_breakdown`` points (None
        until arbitration generated them).
    """
    message = _require_message(session, message_id)
    conversation = _require_conversation(session, message.conversation_id)

    interpretation = InterpretationDao().fetchLatestInterpretation(session, message_id, user_id)
    grading = response = arbitration = None
    interpretation_breakdown = None
    if interpretation is not None:
        grading = GradingDao().fetchGradingByInterpretationId(session, interpretation.id)
        arbitration = ArbitrationDao().fetchArbitrationByInterpretationId(session, interpretation.id)
        interpretation_breakdown = get_breakdown_points(subject=BreakdownSubject.interpretation(interpretation.id))
    if grading is not None:
        response = GradingResponseDao().fetchGradingResponseByGradingId(session, grading.id)

    locked = ArbitrationDao().fetchChainArbitration(session, message_id, user_id) is not None
    attempt_number = interpretation.attempt_number if interpretation is not None else 0
    status = machine.effective_status(
        grading.status if grading is not None else None,
        arbitration.result if arbitration is not None else None,
    )
    rejected_and_open = not locked and grading is not None and grading.status == GradingStatus.REJECTED

    return {
        "message_id": message_id,
        "user_id": user_id,
        "interpretation": interpretation_to_dict(interpretation) if interpretation is not None else None,
        "grading": grading_to_dict(grading) if grading is not None else None,
        "response": grading_response_to_dict(response) if response is not None else None,
        "arbitration": arbitration_to_dict(arbitration) if arbitration is not None else None,
        "attempt_number": attempt_number,
        "max_attempts": conversation.max_attempts,
        "effective_status": status,
        "locked": locked,
        "can_retry": rejected_and_open and response is None and attempt_number < conversation.max_attempts,
        "can_dispute": rejected_and_open and response is None,
        "can_respond": machine.can_respond_to_message(
            is_own_message=message.author_id == user_id,
            requires_interpretation=requires_interpretation(message.text),
            interpretation_status=status,
        ),
        "message_breakdown": get_breakdown_points(subject=BreakdownSubject.message(message_id)),
        "interpretation_breakdown": interpretation_breakdown,
    }


@transactional
def can_user_respond(session: Session, message_id: UUID, user_id: str) -> dict:
    """
    Response eligibility of a user on a message, with the display status.

    Returns
    -------
    dict
        {'can_respond': bool, 'status': MessageStatus, 'description': str}
    """
    message = _require_message(session, message_id)
    interpretation = InterpretationDao().fetchLatestInterpretation(session, message_id, user_id)
    status = None
    if interpretation is not None:
        grading = GradingDao().fetchGradingByInterpretationId(session, interpretation.id)
        arbitration = ArbitrationDao().fetchArbitrationByInterpretationId(session, interpretation.id)
        status = machine.effective_status(
            grading.status if grading is not None else None,
            arbitration.result if arbitration is not None else None,
        )

    is_own_message = message.author_id == user_id
    needs_interpretation = requires_interpretation(message.text)
    display = machine.get_message_status(
        is_own_message=is_own_message,
        requires_interpretation=needs_interpretation,
        has_interpretation=interpretation is not None,
        interpretation_status=status,
        has_responded=MessageDao().hasUserRepliedToMessage(session, message_id, user_id),
    )
    return {
        "can_respond": machine.can_respond_to_message(
            is_own_message=is_own_message,
            requires_interpretation=needs_interpretation,
            interpretation_status=status,
        ),
        "status": display,
        "description": machine.get_status_description(display),
    }
