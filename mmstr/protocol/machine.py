"""
Interpretation / Grading / Arbitration State Machine
====================================================

Pure transition rules. Nothing here reads or writes storage or calls the
judge; `mmstr.database.core.flow` loads the state, asks these functions what
is legal, and persists the outcome.

Lifecycle of one (message, user) chain
--------------------------------------
::

    submit attempt N ──► grading: accepted ───────────────► may respond
                      │
                      ├► grading: pending ──author──► accepted | rejected
                      │
                      └► grading: rejected ─┬─ N < max ──► retry (attempt N+1) or dispute
                                            ├─ N == max ─► arbitration (max attempts)
                                            └─ dispute ──► arbitration (dispute)

    arbitration: accept | reject  ── terminal, locks the chain

Guard no-ops (not-yet-due, already-arbitrated) are returned as booleans and
are not errors. Illegal moves raise `InvalidTransitionError` subclasses.
"""

from typing import Optional

from pydantic import BaseModel

from mmstr.exceptions import ChainLockedError, InvalidTransitionError, MaxAttemptsExceededError
from mmstr.protocol.judgments import GradingJudgment
from mmstr.protocol.states import ArbitrationResult, GradingStatus, MessageStatus
from mmstr.validation.word_similarity import (
    AUTO_REJECT_SIMILARITY_THRESHOLD,
    SimilarityResult,
    format_similarity_percentage,
)

AUTO_ACCEPT_SCORE_THRESHOLD = 90

# Author decisions allowed from each current status. A status mapping to
# itself is a notes-only edit.
_AUTHOR_TRANSITIONS: dict[GradingStatus, frozenset[GradingStatus]] = {
    GradingStatus.PENDING: frozenset({GradingStatus.ACCEPTED, GradingStatus.REJECTED}),
    GradingStatus.REJECTED: frozenset({GradingStatus.ACCEPTED, GradingStatus.REJECTED}),
    GradingStatus.ACCEPTED: frozenset({GradingStatus.ACCEPTED}),
}


class GradingDecision(BaseModel):
    """Status and notes to persist for an automatically graded interpretation."""

    status: GradingStatus
    notes: str
    lexical_auto_reject: bool


def default_auto_accept(similarity_score: float, passes: bool) -> bool:
    """Auto-accept suggestion used when the judge does not state one."""
    return similarity_score >= AUTO_ACCEPT_SCORE_THRESHOLD and passes is True


def lexical_rejection_notes(similarity: SimilarityResult) -> str:
    return (
        f"Automatically rejected: {format_similarity_percentage(similarity.similarity)} word overlap "
        f"(threshold: {format_similarity_percentage(AUTO_REJECT_SIMILARITY_THRESHOLD)}). "
        "The interpretation reuses too much of the original wording; restate the message in your own words."
    )


def decide_grading(similarity: SimilarityResult, judgment: GradingJudgment) -> GradingDecision:
    """
    Combine the lexical check and the semantic judgment into one grading.

    The lexical check dominates: an interpretation that copies more than the
    threshold of the original's words is rejected whatever the judge says.

    Parameters
    ----------
    similarity : SimilarityResult
        Word-overlap result for (original, interpretation).
    judgment : GradingJudgment
        Semantic judgment returned by the judge.

    Returns
    -------
    GradingDecision
        ``rejected`` on lexical copy, ``accepted`` when the judge passes and
        suggests auto-accept, ``pending`` otherwise.
    """
    if similarity.should_auto_reject:
        return GradingDecision(
            status=GradingStatus.REJECTED,
            notes=lexical_rejection_notes(similarity),
            lexical_auto_reject=True,
        )
    if judgment.auto_accept_suggested and judgment.passes:
        return GradingDecision(status=GradingStatus.ACCEPTED, notes=judgment.reasoning, lexical_auto_reject=False)
    return GradingDecision(status=GradingStatus.PENDING, notes=judgment.reasoning, lexical_auto_reject=False)


def next_attempt_number(
    *,
    is_own_message: bool,
    chain_locked: bool,
    existing_attempts: int,
    latest_status: Optional[GradingStatus],
    max_attempts: int,
    latest_disputed: bool = False,
) -> int:
    """
    Decide whether a user may submit another interpretation and number it.

    Parameters
    ----------
    is_own_message : bool
        The submitter wrote the message.
    chain_locked : bool
        An arbitration already exists for one of the user's interpretations of
        this message.
    existing_attempts : int
        Interpretations the user already submitted for this message.
    latest_status : GradingStatus | None
        Grading status of the latest attempt (None when there is no attempt,
        or the latest attempt has not been graded yet).
    max_attempts : int
        Conversation policy.
    latest_disputed : bool
        The latest grading carries a dispute still waiting for its ruling.

    Returns
    -------
    int
        The 1-based attempt number to assign (``existing_attempts + 1``).

    Raises
    ------
    InvalidTransitionError
        Own message, latest attempt still ungraded/pending, already accepted,
        or under dispute.
    ChainLockedError
        The chain carries a final arbitration ruling.
    MaxAttemptsExceededError
        The new attempt would exceed ``max_attempts``.
    """
    if is_own_message:
        raise InvalidTransitionError("Users cannot interpret their own message")
    if chain_locked:
        raise ChainLockedError("An arbitration ruling already settled this interpretation chain")
    if latest_disputed:
        raise InvalidTransitionError("The latest interpretation is under dispute; wait for the arbitration ruling")

    if existing_attempts > 0:
        if latest_status is None:
            raise InvalidTransitionError("The latest interpretation has not been graded yet")
        if latest_status == GradingStatus.PENDING:
            raise InvalidTransitionError("The latest interpretation is awaiting the author's decision")
        if latest_status == GradingStatus.ACCEPTED:
            raise InvalidTransitionError("The latest interpretation was already accepted")

    attempt_number = existing_attempts + 1
    if attempt_number > max_attempts:
        raise MaxAttemptsExceededError(attempt_number, max_attempts)
    return attempt_number


def check_author_decision(
    current: GradingStatus, new: GradingStatus, has_arbitration: bool, is_latest: bool = True
) -> None:
    """
    Validate a manual grading update by the message author.

    Only the grading of the user's latest attempt can change; earlier attempts
    no longer decide eligibility.

    Raises
    ------
    ChainLockedError
        An arbitration already fixed the outcome.
    InvalidTransitionError
        A newer attempt superseded this one, or the move is not in the author
        transition table (e.g. back to pending).
    """
    if has_arbitration:
        raise ChainLockedError("The grading is final: an arbitration ruling exists for this interpretation")
    if not is_latest:
        raise InvalidTransitionError("A newer attempt superseded this interpretation")
    if new not in _AUTHOR_TRANSITIONS[current]:
        raise InvalidTransitionError(f"Cannot change grading from {current.value} to {new.value}")


def check_dispute(status: GradingStatus, has_response: bool, has_arbitration: bool, is_latest: bool = True) -> None:
    """A dispute may be filed once, against the rejection of the latest attempt, before any ruling."""
    if has_arbitration:
        raise ChainLockedError("An arbitration ruling already exists for this interpretation")
    if not is_latest:
        raise InvalidTransitionError("A newer attempt superseded this interpretation")
    if has_response:
        raise InvalidTransitionError("This grading has already been disputed")
    if status != GradingStatus.REJECTED:
        raise InvalidTransitionError(f"Only rejected gradings can be disputed (status: {status.value})")


def max_attempts_arbitration_due(attempt_number: int, max_attempts: int) -> bool:
    """True once the rejected attempt is the last one the conversation allows."""
    return attempt_number >= max_attempts


def ruling_status(result: ArbitrationResult) -> GradingStatus:
    if result == ArbitrationResult.ACCEPT:
        return GradingStatus.ACCEPTED
    if result == ArbitrationResult.REJECT:
        return GradingStatus.REJECTED
    raise ValueError(f"Unhandled arbitration result: {result!r}")


def effective_status(
    grading_status: Optional[GradingStatus],
    arbitration_result: Optional[ArbitrationResult],
) -> Optional[GradingStatus]:
    """
    Status that gates responding: an arbitration ruling overrides the grading.

    Returns None when nothing has been graded yet.
    """
    if arbitration_result is not None:
        return ruling_status(arbitration_result)
    return grading_status


def can_respond_to_message(
    *,
    is_own_message: bool,
    requires_interpretation: bool,
    interpretation_status: Optional[GradingStatus] = None,
) -> bool:
    """
    Whether a user may reply to a message.

    Own messages never; messages without the interpretation requirement
    always; otherwise only with an accepted interpretation.
    """
    if is_own_message:
        return False
    if not requires_interpretation:
        return True
    return interpretation_status == GradingStatus.ACCEPTED


def get_message_status(
    *,
    is_own_message: bool,
    requires_interpretation: bool,
    has_interpretation: bool,
    interpretation_status: Optional[GradingStatus] = None,
    has_responded: bool = False,
) -> MessageStatus:
    """Icon projection of the same state `can_respond_to_message` reads."""
    if is_own_message or not requires_interpretation:
        return MessageStatus.NONE
    if has_responded:
        return MessageStatus.DONE
    if not has_interpretation:
        return MessageStatus.NEEDS_INTERPRETATION
    if interpretation_status == GradingStatus.ACCEPTED:
        return MessageStatus.CAN_RESPOND
    return MessageStatus.NEEDS_INTERPRETATION


def get_status_description(status: MessageStatus) -> str:
    descriptions = {
        MessageStatus.NEEDS_INTERPRETATION: "Interpretation needed",
        MessageStatus.CAN_RESPOND: "Can respond now",
        MessageStatus.DONE: "Completed",
        MessageStatus.NONE: "No action needed",
    }
    return descriptions[status]
