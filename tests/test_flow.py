"""
Integration tests for the interpretation flow: submission, grading, author
decisions, disputes and arbitration, through the DAOs and a real SQLite schema.
"""

import pytest
from sqlalchemy import func, select

from mmstr.database.core import flow
from mmstr.database.core.funcs import create_conversation, create_message, get_interpretation_attempts, join_conversation
from mmstr.database.entities.arbitrations import Arbitration
from mmstr.database.entities.breakdowns import Breakdown
from mmstr.database.helpers.transactionManagement import SessionFactory
from mmstr.exceptions import (
    AITimeoutError,
    ChainLockedError,
    InvalidTransitionError,
    MalformedResponseError,
    MaxAttemptsExceededError,
    NotFoundError,
)
from mmstr.protocol.judgments import ArbitrationJudgment
from mmstr.protocol.states import ArbitrationResult, ArbitrationTrigger, GradingStatus, MessageStatus

from conftest import GOOD_INTERPRETATION, ORIGINAL_TEXT, VERBATIM_INTERPRETATION


def _count(model) -> int:
    with SessionFactory() as session:
        return session.scalar(select(func.count()).select_from(model))


def submit(message, text, judge, user_id="bob"):
    res = flow.submit_interpretation(message["id"], user_id, text, judge)
    assert res["res"], res.get("detail")
    return res


class TestSubmission:
    def test_auto_accepted_interpretation_unlocks_responding(self, message, judge):
        judge.queue_grading(95, True, auto_accept=True, reasoning="Faithful restatement.")
        res = submit(message, GOOD_INTERPRETATION, judge)

        assert res["interpretation"]["attempt_number"] == 1
        assert res["grading"]["status"] == GradingStatus.ACCEPTED
        assert res["grading"]["notes"] == "Faithful restatement."
        assert res["arbitration"] is None

        eligibility = flow.can_user_respond(message_id=message["id"], user_id="bob")
        assert eligibility["can_respond"]
        assert eligibility["status"] == MessageStatus.CAN_RESPOND

    def test_text_is_trimmed_and_validated(self, message, judge):
        res = flow.submit_interpretation(message["id"], "bob", "   completely unrelated  ", judge)
        assert not res["res"]
        assert res["validation"]["error"] == "too_few_words"
        assert judge.calls["grade"] == []
        assert get_interpretation_attempts(message_id=message["id"], user_id="bob") == []

        res = submit(message, "   " + GOOD_INTERPRETATION + "  ", judge)
        assert res["interpretation"]["text"] == GOOD_INTERPRETATION

    def test_cannot_interpret_own_message(self, message, judge):
        with pytest.raises(InvalidTransitionError):
            flow.submit_interpretation(message["id"], "alice", GOOD_INTERPRETATION, judge)

    def test_unknown_message(self, judge):
        import uuid

        with pytest.raises(NotFoundError):
            flow.submit_interpretation(uuid.uuid4(), "bob", GOOD_INTERPRETATION, judge)

    def test_pending_attempt_blocks_a_new_one(self, message, judge):
        res = submit(message, GOOD_INTERPRETATION, judge)
        assert res["grading"]["status"] == GradingStatus.PENDING
        with pytest.raises(InvalidTransitionError):
            submit(message, GOOD_INTERPRETATION, judge)

    def test_conversation_context_excludes_the_interpreted_message(self, conversation, message, judge):
        create_message(conversation_id=conversation["id"], author_id="carol", text="Another message in the same thread")
        submit(message, GOOD_INTERPRETATION, judge)
        original, interpretation, context = judge.calls["grade"][0]
        assert original == ORIGINAL_TEXT
        assert interpretation == GOOD_INTERPRETATION
        assert context == "Message: Another message in the same thread"


class TestLexicalAutoReject:
    def test_copy_is_rejected_whatever_the_judge_says(self, conversation, judge):
        msg = create_message(
            conversation_id=conversation["id"],
            author_id="alice",
            text="I think your plan fails because it ignores budget constraints entirely.",
        )["message"]
        judge.queue_grading(100, True, auto_accept=True)

        res = submit(msg, "I think your plan fails because it ignores budget constraints.", judge)

        assert res["grading"]["status"] == GradingStatus.REJECTED
        assert res["grading"]["similarity_score"] == 100
        assert "100% word overlap" in res["grading"]["notes"]
        assert res["arbitration"] is None


class TestAttempts:
    def test_attempt_numbers_are_sequential(self, message, judge):
        for expected in (1, 2, 3):
            res = submit(message, VERBATIM_INTERPRETATION, judge)
            assert res["interpretation"]["attempt_number"] == expected

        attempts = get_interpretation_attempts(message_id=message["id"], user_id="bob")
        assert [attempt["interpretation"]["attempt_number"] for attempt in attempts] == [1, 2, 3]

    def test_attempts_are_counted_per_user(self, message, judge):
        submit(message, VERBATIM_INTERPRETATION, judge, user_id="bob")
        res = submit(message, VERBATIM_INTERPRETATION, judge, user_id="carol")
        assert res["interpretation"]["attempt_number"] == 1

    def test_final_rejection_forces_one_max_attempts_arbitration(self, message, judge):
        submit(message, VERBATIM_INTERPRETATION, judge)
        submit(message, VERBATIM_INTERPRETATION, judge)
        assert judge.calls["arbitrate"] == []

        res = submit(message, VERBATIM_INTERPRETATION, judge)

        arbitration = res["arbitration"]
        assert arbitration is not None
        assert arbitration["trigger"] == ArbitrationTrigger.MAX_ATTEMPTS
        assert arbitration["grading_response_id"] is None
        assert arbitration["ruling_status"] == "completed"
        assert _count(Arbitration) == 1

        call = judge.calls["arbitrate"][0]
        assert call["author_notes"] is None
        assert call["dispute_reason"].startswith("After 3 attempts")
        assert call["original_points"] == ["I think we should leave early tomorrow", "because the traffic will be heavy"]
        assert call["interpretation_points"] == [VERBATIM_INTERPRETATION]

    def test_chain_is_locked_after_the_ruling(self, message, judge):
        for _ in range(3):
            submit(message, VERBATIM_INTERPRETATION, judge)
        with pytest.raises(ChainLockedError):
            submit(message, GOOD_INTERPRETATION, judge)

    def test_exceeding_max_attempts_without_ruling(self, judge):
        conv = create_conversation(title="Strict", max_attempts=1)
        msg = create_message(conversation_id=conv["id"], author_id="alice", text=ORIGINAL_TEXT)["message"]
        judge.failures["breakdown"] = AITimeoutError("judge down")

        with pytest.raises(AITimeoutError):
            submit(msg, VERBATIM_INTERPRETATION, judge)
        # the rejection is stored even though the forced ruling failed
        with pytest.raises(MaxAttemptsExceededError):
            submit(msg, VERBATIM_INTERPRETATION, judge)

    def test_arbitration_ruling_gates_eligibility(self, message, judge):
        judge.ruling = ArbitrationJudgment(result=ArbitrationResult.REJECT, explanation="Reason omitted.")
        for _ in range(3):
            submit(message, VERBATIM_INTERPRETATION, judge)

        state = flow.get_interpretation_flow_state(message_id=message["id"], user_id="bob")
        assert state["locked"]
        assert not state["can_retry"]
        assert not state["can_respond"]
        assert state["effective_status"] == GradingStatus.REJECTED
        assert state["arbitration"]["result"] == ArbitrationResult.REJECT


class TestMaxAttemptsTrigger:
    def test_no_op_while_attempts_remain(self, message, judge):
        res = submit(message, VERBATIM_INTERPRETATION, judge)
        assert flow.trigger_arbitration_for_max_attempts(res["grading"]["id"], judge) is None
        assert _count(Arbitration) == 0

    def test_idempotent(self, message, judge):
        for _ in range(3):
            res = submit(message, VERBATIM_INTERPRETATION, judge)
        assert flow.trigger_arbitration_for_max_attempts(res["grading"]["id"], judge) is None
        assert flow.retry_arbitration(res["grading"]["id"], judge) is None
        assert _count(Arbitration) == 1
        assert len(judge.calls["arbitrate"]) == 1

    def test_unknown_grading(self, judge):
        import uuid

        with pytest.raises(NotFoundError):
            flow.trigger_arbitration_for_max_attempts(uuid.uuid4(), judge)

    def test_retry_on_a_superseded_grading_is_a_no_op(self, message, judge):
        first = submit(message, VERBATIM_INTERPRETATION, judge)
        submit(message, VERBATIM_INTERPRETATION, judge)

        assert flow.retry_arbitration(first["grading"]["id"], judge) is None
        assert judge.calls["arbitrate"] == []
        assert not flow.get_interpretation_flow_state(message_id=message["id"], user_id="bob")["locked"]


class TestAuthorDecision:
    def test_author_accepts_a_pending_grading(self, message, judge):
        res = submit(message, GOOD_INTERPRETATION, judge)
        grading = flow.update_grading(res["grading"]["id"], GradingStatus.ACCEPTED, judge, notes="Close enough.")
        assert grading.status == GradingStatus.ACCEPTED
        assert grading.notes == "Close enough."
        assert flow.can_user_respond(message_id=message["id"], user_id="bob")["can_respond"]

    def test_notes_are_kept_when_omitted(self, message, judge):
        res = submit(message, GOOD_INTERPRETATION, judge)
        grading = flow.update_grading(res["grading"]["id"], "rejected", judge)
        assert grading.status == GradingStatus.REJECTED
        assert grading.notes == judge.default_grading.reasoning

    def test_never_back_to_pending(self, message, judge):
        res = submit(message, GOOD_INTERPRETATION, judge)
        flow.update_grading(res["grading"]["id"], GradingStatus.REJECTED, judge)
        with pytest.raises(InvalidTransitionError):
            flow.update_grading(res["grading"]["id"], GradingStatus.PENDING, judge)

    def test_rejecting_the_final_attempt_forces_arbitration(self, message, judge):
        submit(message, VERBATIM_INTERPRETATION, judge)
        submit(message, VERBATIM_INTERPRETATION, judge)
        res = submit(message, GOOD_INTERPRETATION, judge)
        assert res["grading"]["status"] == GradingStatus.PENDING
        assert res["arbitration"] is None

        flow.update_grading(res["grading"]["id"], GradingStatus.REJECTED, judge, notes="Says nothing about traffic.")

        state = flow.get_interpretation_flow_state(message_id=message["id"], user_id="bob")
        assert state["arbitration"]["trigger"] == ArbitrationTrigger.MAX_ATTEMPTS
        assert judge.calls["arbitrate"][0]["author_notes"] is None

    def test_superseded_attempt_cannot_be_regraded(self, message, judge):
        first = submit(message, VERBATIM_INTERPRETATION, judge)
        submit(message, GOOD_INTERPRETATION, judge)

        with pytest.raises(InvalidTransitionError):
            flow.update_grading(first["grading"]["id"], GradingStatus.ACCEPTED, judge)

        attempts = get_interpretation_attempts(message_id=message["id"], user_id="bob")
        assert attempts[0]["grading"]["status"] == GradingStatus.REJECTED
        assert not flow.can_user_respond(message_id=message["id"], user_id="bob")["can_respond"]

    def test_decision_is_final_after_arbitration(self, message, judge):
        for _ in range(3):
            res = submit(message, VERBATIM_INTERPRETATION, judge)
        with pytest.raises(ChainLockedError):
            flow.update_grading(res["grading"]["id"], GradingStatus.ACCEPTED, judge)


class TestDispute:
    def test_dispute_arbitrates_immediately_and_locks_the_chain(self, message, judge):
        res = submit(message, GOOD_INTERPRETATION, judge)
        grading_id = res["grading"]["id"]
        flow.update_grading(grading_id, GradingStatus.REJECTED, judge, notes="The reason is missing.")

        response = flow.create_grading_response(grading_id, "  My version keeps every point.  ", judge)

        assert response.text == "My version keeps every point."
        call = judge.calls["arbitrate"][0]
        assert call["author_notes"] == "The reason is missing."
        assert call["dispute_reason"] == "My version keeps every point."

        state = flow.get_interpretation_flow_state(message_id=message["id"], user_id="bob")
        assert state["arbitration"]["trigger"] == ArbitrationTrigger.DISPUTE
        assert state["arbitration"]["grading_response_id"] == response.id
        assert state["response"]["id"] == response.id
        assert state["effective_status"] == GradingStatus.ACCEPTED
        assert state["can_respond"]
        assert state["locked"]
        assert not state["can_dispute"]
        assert [point["order"] for point in state["message_breakdown"]] == [0, 1]
        assert state["interpretation_breakdown"][0]["text"] == "You want to depart ahead of schedule"

        with pytest.raises(ChainLockedError):
            submit(message, GOOD_INTERPRETATION, judge)

    def test_only_rejections_can_be_disputed(self, message, judge):
        res = submit(message, GOOD_INTERPRETATION, judge)
        with pytest.raises(InvalidTransitionError):
            flow.create_grading_response(res["grading"]["id"], "I disagree with this.", judge)

    def test_blank_dispute(self, message, judge):
        res = submit(message, VERBATIM_INTERPRETATION, judge)
        with pytest.raises(ValueError):
            flow.create_grading_response(res["grading"]["id"], "   ", judge)

    def test_second_dispute_is_refused(self, message, judge):
        judge.failures["arbitrate"] = MalformedResponseError("garbage")
        res = submit(message, VERBATIM_INTERPRETATION, judge)
        with pytest.raises(MalformedResponseError):
            flow.create_grading_response(res["grading"]["id"], "It is a restatement.", judge)
        with pytest.raises(InvalidTransitionError):
            flow.create_grading_response(res["grading"]["id"], "Again.", judge)

    def test_failed_arbitration_can_be_retried(self, message, judge):
        judge.failures["arbitrate"] = AITimeoutError("too slow")
        res = submit(message, VERBATIM_INTERPRETATION, judge)
        with pytest.raises(AITimeoutError):
            flow.create_grading_response(res["grading"]["id"], "It is a restatement.", judge)
        assert _count(Arbitration) == 0

        state = flow.get_interpretation_flow_state(message_id=message["id"], user_id="bob")
        assert state["response"] is not None
        assert not state["locked"]

        del judge.failures["arbitrate"]
        arbitration = flow.retry_arbitration(res["grading"]["id"], judge)
        assert arbitration.trigger == ArbitrationTrigger.DISPUTE
        assert flow.retry_arbitration(res["grading"]["id"], judge) is None
        assert _count(Arbitration) == 1
        # breakdowns generated during the failed run are reused
        assert len(judge.calls["breakdown"]) == 2

    def test_superseded_attempt_cannot_be_disputed(self, message, judge):
        first = submit(message, GOOD_INTERPRETATION, judge)
        flow.update_grading(first["grading"]["id"], GradingStatus.REJECTED, judge)
        second = submit(message, GOOD_INTERPRETATION, judge)

        with pytest.raises(InvalidTransitionError):
            flow.create_grading_response(first["grading"]["id"], "My first version was right.", judge)
        assert judge.calls["arbitrate"] == []
        assert _count(Arbitration) == 0

        # the chain stays usable: the author rejects attempt 2, which can still be disputed
        flow.update_grading(second["grading"]["id"], GradingStatus.REJECTED, judge)
        state = flow.get_interpretation_flow_state(message_id=message["id"], user_id="bob")
        assert not state["locked"]
        assert state["can_retry"]
        assert state["can_dispute"]

        flow.create_grading_response(second["grading"]["id"], "It keeps every point.", judge)
        assert flow.can_user_respond(message_id=message["id"], user_id="bob")["can_respond"]

    def test_open_dispute_blocks_a_new_attempt(self, message, judge):
        judge.failures["arbitrate"] = AITimeoutError("too slow")
        res = submit(message, VERBATIM_INTERPRETATION, judge)
        with pytest.raises(AITimeoutError):
            flow.create_grading_response(res["grading"]["id"], "It is a restatement.", judge)

        state = flow.get_interpretation_flow_state(message_id=message["id"], user_id="bob")
        assert not state["can_retry"]
        with pytest.raises(InvalidTransitionError):
            submit(message, GOOD_INTERPRETATION, judge)

    def test_dispute_trigger_is_idempotent(self, message, judge):
        res = submit(message, VERBATIM_INTERPRETATION, judge)
        response = flow.create_grading_response(res["grading"]["id"], "It is a restatement.", judge)
        assert flow.trigger_arbitration_for_dispute(response.id, judge) is None
        assert _count(Arbitration) == 1


class TestBreakdowns:
    def test_message_breakdown_is_shared_across_interpreters(self, message, judge):
        for user_id in ("bob", "carol"):
            res = submit(message, VERBATIM_INTERPRETATION, judge, user_id=user_id)
            flow.create_grading_response(res["grading"]["id"], "It is a restatement.", judge)

        # one message breakdown + one per interpretation
        assert _count(Breakdown) == 3
        assert judge.calls["breakdown"].count(ORIGINAL_TEXT) == 1

    def test_ensure_breakdown_reuses_stored_points(self, message, judge):
        from mmstr.protocol.states import BreakdownSubject

        subject = BreakdownSubject.message(message["id"])
        first = flow.ensure_breakdown(subject, ORIGINAL_TEXT, judge)
        second = flow.ensure_breakdown(subject, ORIGINAL_TEXT, judge)
        assert first == second
        assert len(judge.calls["breakdown"]) == 1


class TestGradingFailures:
    def test_failed_grading_leaves_an_ungraded_attempt(self, message, judge):
        judge.failures["grade"] = AITimeoutError("too slow")
        with pytest.raises(AITimeoutError):
            submit(message, GOOD_INTERPRETATION, judge)

        attempts = get_interpretation_attempts(message_id=message["id"], user_id="bob")
        assert len(attempts) == 1
        assert attempts[0]["grading"] is None
        with pytest.raises(InvalidTransitionError):
            submit(message, GOOD_INTERPRETATION, judge)

        del judge.failures["grade"]
        grading = flow.grade_interpretation(attempts[0]["interpretation"]["id"], judge)
        assert grading.status == GradingStatus.PENDING
        with pytest.raises(InvalidTransitionError):
            flow.grade_interpretation(attempts[0]["interpretation"]["id"], judge)


class TestReplies:
    def test_reply_requires_an_accepted_interpretation(self, conversation, message, judge):
        reply_text = "Fine by me, let us meet at seven"
        with pytest.raises(InvalidTransitionError):
            create_message(
                conversation_id=conversation["id"], author_id="bob", text=reply_text, replying_to_message_id=message["id"]
            )

        judge.queue_grading(95, True, auto_accept=True)
        submit(message, GOOD_INTERPRETATION, judge)
        res = create_message(
            conversation_id=conversation["id"], author_id="bob", text=reply_text, replying_to_message_id=message["id"]
        )
        assert res["res"]

        eligibility = flow.can_user_respond(message_id=message["id"], user_id="bob")
        assert eligibility["status"] == MessageStatus.DONE
        assert eligibility["description"] == "Completed"

    def test_authors_cannot_reply_to_themselves(self, conversation, message):
        with pytest.raises(InvalidTransitionError):
            create_message(
                conversation_id=conversation["id"],
                author_id="alice",
                text="Replying to my own message here",
                replying_to_message_id=message["id"],
            )

    def test_own_message_status(self, message):
        eligibility = flow.can_user_respond(message_id=message["id"], user_id="alice")
        assert not eligibility["can_respond"]
        assert eligibility["status"] == MessageStatus.NONE


class TestFlowState:
    def test_before_any_attempt(self, message):
        state = flow.get_interpretation_flow_state(message_id=message["id"], user_id="bob")
        assert state["attempt_number"] == 0
        assert state["max_attempts"] == 3
        assert state["interpretation"] is None
        assert state["effective_status"] is None
        assert not state["can_retry"]
        assert not state["can_respond"]
        assert state["message_breakdown"] is None

    def test_retry_and_dispute_offered_after_a_rejection(self, message, judge):
        submit(message, VERBATIM_INTERPRETATION, judge)
        state = flow.get_interpretation_flow_state(message_id=message["id"], user_id="bob")
        assert state["attempt_number"] == 1
        assert state["can_retry"]
        assert state["can_dispute"]
        assert not state["locked"]


class TestParticipants:
    def test_participant_limit(self):
        conv = create_conversation(title="Tiny room", participant_limit=2, creator_id="alice")
        join_conversation(conversation_id=conv["id"], user_id="bob")
        join_conversation(conversation_id=conv["id"], user_id="bob")
        with pytest.raises(InvalidTransitionError):
            create_message(conversation_id=conv["id"], author_id="carol", text="Can I join this conversation?")
