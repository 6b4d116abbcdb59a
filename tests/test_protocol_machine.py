"""
Tests for the pure interpretation state machine.
"""

import pytest

from mmstr.exceptions import ChainLockedError, InvalidTransitionError, MaxAttemptsExceededError
from mmstr.protocol import machine
from mmstr.protocol.judgments import GradingJudgment
from mmstr.protocol.states import ArbitrationResult, GradingStatus, MessageStatus
from mmstr.validation.word_similarity import calculate_word_similarity


def _judgment(score=95.0, passes=True, auto_accept=True):
    return GradingJudgment(
        similarity_score=score,
        passes=passes,
        auto_accept_suggested=auto_accept,
        reasoning="Judge reasoning.",
    )


class TestDecideGrading:
    def test_lexical_copy_dominates_a_perfect_judgment(self):
        similarity = calculate_word_similarity("we meet at noon today", "we meet at noon")
        decision = machine.decide_grading(similarity, _judgment())
        assert decision.status == GradingStatus.REJECTED
        assert decision.lexical_auto_reject
        assert "100% word overlap" in decision.notes
        assert "threshold: 70%" in decision.notes

    def test_auto_accept_when_judge_passes_and_suggests_it(self):
        similarity = calculate_word_similarity("we meet at noon today", "the gathering happens midday")
        decision = machine.decide_grading(similarity, _judgment())
        assert decision.status == GradingStatus.ACCEPTED
        assert decision.notes == "Judge reasoning."
        assert not decision.lexical_auto_reject

    @pytest.mark.parametrize("passes, auto_accept", [(True, False), (False, True), (False, False)])
    def test_everything_else_waits_for_the_author(self, passes, auto_accept):
        similarity = calculate_word_similarity("we meet at noon today", "the gathering happens midday")
        decision = machine.decide_grading(similarity, _judgment(score=70, passes=passes, auto_accept=auto_accept))
        assert decision.status == GradingStatus.PENDING

    def test_default_auto_accept(self):
        assert machine.default_auto_accept(90, True)
        assert not machine.default_auto_accept(89.9, True)
        assert not machine.default_auto_accept(100, False)


class TestNextAttemptNumber:
    def _next(self, **overrides):
        params = dict(
            is_own_message=False,
            chain_locked=False,
            existing_attempts=0,
            latest_status=None,
            max_attempts=3,
        )
        params.update(overrides)
        return machine.next_attempt_number(**params)

    def test_first_attempt(self):
        assert self._next() == 1

    def test_retry_after_rejection(self):
        assert self._next(existing_attempts=1, latest_status=GradingStatus.REJECTED) == 2

    def test_own_message(self):
        with pytest.raises(InvalidTransitionError):
            self._next(is_own_message=True)

    def test_locked_chain(self):
        with pytest.raises(ChainLockedError):
            self._next(existing_attempts=1, latest_status=GradingStatus.REJECTED, chain_locked=True)

    @pytest.mark.parametrize("latest", [None, GradingStatus.PENDING, GradingStatus.ACCEPTED])
    def test_latest_attempt_must_be_rejected(self, latest):
        with pytest.raises(InvalidTransitionError) as excinfo:
            self._next(existing_attempts=1, latest_status=latest)
        assert not isinstance(excinfo.value, MaxAttemptsExceededError)

    def test_max_attempts(self):
        with pytest.raises(MaxAttemptsExceededError):
            self._next(existing_attempts=3, latest_status=GradingStatus.REJECTED)

    def test_single_attempt_policy(self):
        assert self._next(max_attempts=1) == 1
        with pytest.raises(MaxAttemptsExceededError):
            self._next(existing_attempts=1, latest_status=GradingStatus.REJECTED, max_attempts=1)

    def test_open_dispute_blocks_a_retry(self):
        with pytest.raises(InvalidTransitionError):
            self._next(existing_attempts=1, latest_status=GradingStatus.REJECTED, latest_disputed=True)


class TestAuthorDecisionAndDispute:
    @pytest.mark.parametrize(
        "current, new",
        [
            (GradingStatus.PENDING, GradingStatus.ACCEPTED),
            (GradingStatus.PENDING, GradingStatus.REJECTED),
            (GradingStatus.REJECTED, GradingStatus.ACCEPTED),
            (GradingStatus.REJECTED, GradingStatus.REJECTED),
        ],
    )
    def test_allowed_moves(self, current, new):
        machine.check_author_decision(current, new, has_arbitration=False)

    @pytest.mark.parametrize(
        "current, new",
        [
            (GradingStatus.PENDING, GradingStatus.PENDING),
            (GradingStatus.REJECTED, GradingStatus.PENDING),
            (GradingStatus.ACCEPTED, GradingStatus.REJECTED),
            (GradingStatus.ACCEPTED, GradingStatus.PENDING),
        ],
    )
    def test_forbidden_moves(self, current, new):
        with pytest.raises(InvalidTransitionError):
            machine.check_author_decision(current, new, has_arbitration=False)

    def test_no_decision_after_arbitration(self):
        with pytest.raises(ChainLockedError):
            machine.check_author_decision(GradingStatus.REJECTED, GradingStatus.ACCEPTED, has_arbitration=True)

    def test_dispute_rules(self):
        machine.check_dispute(GradingStatus.REJECTED, has_response=False, has_arbitration=False)
        with pytest.raises(InvalidTransitionError):
            machine.check_dispute(GradingStatus.PENDING, has_response=False, has_arbitration=False)
        with pytest.raises(InvalidTransitionError):
            machine.check_dispute(GradingStatus.REJECTED, has_response=True, has_arbitration=False)
        with pytest.raises(ChainLockedError):
            machine.check_dispute(GradingStatus.REJECTED, has_response=False, has_arbitration=True)

    def test_superseded_attempt_is_frozen(self):
        with pytest.raises(InvalidTransitionError):
            machine.check_author_decision(
                GradingStatus.REJECTED, GradingStatus.ACCEPTED, has_arbitration=False, is_latest=False
            )
        with pytest.raises(InvalidTransitionError):
            machine.check_dispute(GradingStatus.REJECTED, has_response=False, has_arbitration=False, is_latest=False)

    def test_max_attempts_due(self):
        assert not machine.max_attempts_arbitration_due(2, 3)
        assert machine.max_attempts_arbitration_due(3, 3)


class TestEligibility:
    def test_ruling_overrides_grading(self):
        assert machine.effective_status(GradingStatus.REJECTED, ArbitrationResult.ACCEPT) == GradingStatus.ACCEPTED
        assert machine.effective_status(GradingStatus.REJECTED, ArbitrationResult.REJECT) == GradingStatus.REJECTED
        assert machine.effective_status(GradingStatus.PENDING, None) == GradingStatus.PENDING
        assert machine.effective_status(None, None) is None

    @pytest.mark.parametrize(
        "is_own, requires, status, expected",
        [
            (True, True, GradingStatus.ACCEPTED, False),
            (False, False, None, True),
            (False, True, None, False),
            (False, True, GradingStatus.PENDING, False),
            (False, True, GradingStatus.REJECTED, False),
            (False, True, GradingStatus.ACCEPTED, True),
        ],
    )
    def test_can_respond(self, is_own, requires, status, expected):
        assert (
            machine.can_respond_to_message(
                is_own_message=is_own, requires_interpretation=requires, interpretation_status=status
            )
            is expected
        )

    def test_message_status_icons(self):
        status = machine.get_message_status
        assert status(is_own_message=True, requires_interpretation=True, has_interpretation=False) == MessageStatus.NONE
        assert (
            status(is_own_message=False, requires_interpretation=True, has_interpretation=False)
            == MessageStatus.NEEDS_INTERPRETATION
        )
        assert (
            status(
                is_own_message=False,
                requires_interpretation=True,
                has_interpretation=True,
                interpretation_status=GradingStatus.ACCEPTED,
            )
            == MessageStatus.CAN_RESPOND
        )
        assert (
            status(
                is_own_message=False,
                requires_interpretation=True,
                has_interpretation=True,
                interpretation_status=GradingStatus.ACCEPTED,
                has_responded=True,
            )
            == MessageStatus.DONE
        )
        assert machine.get_status_description(MessageStatus.CAN_RESPOND) == "Can respond now"
