"""
Tests for the HTTP API through FastAPI's TestClient, with the fake judge on
``app.state.judge``.
"""

import uuid

import pytest
from fastapi.testclient import TestClient

from mmstr.exceptions import AITimeoutError, MalformedResponseError

from conftest import GOOD_INTERPRETATION, ORIGINAL_TEXT, VERBATIM_INTERPRETATION


@pytest.fixture
def client(judge):
    from mmstr.main import app

    app.state.judge = judge
    with TestClient(app) as test_client:
        yield test_client
    app.state.judge = None


@pytest.fixture
def conversation_id(client):
    response = client.post("/conversations", json={"title": "Weekend plans", "creator_id": "alice"})
    assert response.status_code == 201
    return response.json()["id"]


@pytest.fixture
def message_id(client, conversation_id):
    response = client.post(
        f"/conversations/{conversation_id}/messages", json={"author_id": "alice", "text": ORIGINAL_TEXT}
    )
    assert response.status_code == 201
    return response.json()["id"]


def interpret(client, message_id, text, user_id="bob"):
    return client.post(f"/messages/{message_id}/interpretations", json={"user_id": user_id, "text": text})


class TestConversations:
    def test_create_and_read(self, client, conversation_id):
        data = client.get(f"/conversations/{conversation_id}").json()
        assert data["title"] == "Weekend plans"
        assert data["max_attempts"] == 3
        assert data["participant_limit"] == 20
        assert data["participant_count"] == 1

    def test_list_newest_first(self, client):
        client.post("/conversations", json={"title": "First"})
        client.post("/conversations", json={"title": "Second"})
        titles = [conversation["title"] for conversation in client.get("/conversations").json()]
        assert titles == ["Second", "First"]

    def test_unknown_conversation(self, client):
        assert client.get(f"/conversations/{uuid.uuid4()}").status_code == 404

    def test_update(self, client, conversation_id):
        response = client.patch(f"/conversations/{conversation_id}", json={"title": "Renamed", "max_attempts": 5})
        assert response.status_code == 200
        assert response.json()["title"] == "Renamed"
        assert response.json()["max_attempts"] == 5

    def test_limit_cannot_drop_below_participants(self, client, conversation_id):
        client.post(f"/conversations/{conversation_id}/participants", json={"user_id": "bob"})
        response = client.patch(f"/conversations/{conversation_id}", json={"participant_limit": 1})
        assert response.status_code == 409

    def test_participants(self, client, conversation_id):
        assert client.post(f"/conversations/{conversation_id}/participants", json={"user_id": "bob"}).status_code == 201
        users = {participant["user_id"] for participant in client.get(f"/conversations/{conversation_id}/participants").json()}
        assert users == {"alice", "bob"}


class TestMessages:
    def test_invalid_text_is_422(self, client, conversation_id):
        response = client.post(f"/conversations/{conversation_id}/messages", json={"author_id": "alice", "text": "hi"})
        assert response.status_code == 422
        assert response.json()["detail"]["validation"]["error"] == "too_short"

    def test_list_messages(self, client, conversation_id, message_id):
        messages = client.get(f"/conversations/{conversation_id}/messages").json()
        assert [message["id"] for message in messages] == [message_id]
        assert client.get(f"/messages/{message_id}").json()["text"] == ORIGINAL_TEXT

    def test_reply_before_interpretation_is_409(self, client, conversation_id, message_id):
        response = client.post(
            f"/conversations/{conversation_id}/messages",
            json={"author_id": "bob", "text": "Sounds good to me then", "replying_to_message_id": message_id},
        )
        assert response.status_code == 409

    def test_reply_after_accepted_interpretation(self, client, judge, conversation_id, message_id):
        judge.queue_grading(96, True, auto_accept=True)
        interpret(client, message_id, GOOD_INTERPRETATION)
        response = client.post(
            f"/conversations/{conversation_id}/messages",
            json={"author_id": "bob", "text": "Sounds good to me then", "replying_to_message_id": message_id},
        )
        assert response.status_code == 201
        replies = client.get(f"/messages/{message_id}/replies").json()
        assert [reply["author_id"] for reply in replies] == ["bob"]


class TestInterpretations:
    def test_submit(self, client, message_id):
        response = interpret(client, message_id, GOOD_INTERPRETATION)
        assert response.status_code == 201
        body = response.json()
        assert body["interpretation"]["attempt_number"] == 1
        assert body["grading"]["status"] == "pending"
        assert body["arbitration"] is None

    def test_own_message_is_409(self, client, message_id):
        response = interpret(client, message_id, GOOD_INTERPRETATION, user_id="alice")
        assert response.status_code == 409

    def test_unknown_message_is_404(self, client):
        assert interpret(client, uuid.uuid4(), GOOD_INTERPRETATION).status_code == 404

    def test_judge_failure_is_502_and_can_be_regraded(self, client, judge, message_id):
        judge.failures["grade"] = MalformedResponseError("not json")
        assert interpret(client, message_id, GOOD_INTERPRETATION).status_code == 502

        attempts = client.get(f"/messages/{message_id}/interpretations", params={"user_id": "bob"}).json()
        assert attempts[0]["grading"] is None

        del judge.failures["grade"]
        interpretation_id = attempts[0]["interpretation"]["id"]
        response = client.post(f"/interpretations/{interpretation_id}/grade")
        assert response.status_code == 200
        assert response.json()["status"] == "pending"
        assert client.post(f"/interpretations/{interpretation_id}/grade").status_code == 409

    def test_max_attempts(self, client, message_id):
        for _ in range(3):
            response = interpret(client, message_id, VERBATIM_INTERPRETATION)
        assert response.json()["arbitration"]["trigger"] == "max_attempts"
        response = interpret(client, message_id, GOOD_INTERPRETATION)
        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "ChainLockedError"

    def test_flow_and_eligibility(self, client, message_id):
        interpret(client, message_id, VERBATIM_INTERPRETATION)
        state = client.get(f"/messages/{message_id}/flow", params={"user_id": "bob"}).json()
        assert state["attempt_number"] == 1
        assert state["grading"]["status"] == "rejected"
        assert state["can_retry"] is True
        assert state["locked"] is False

        eligibility = client.get(f"/messages/{message_id}/eligibility", params={"user_id": "bob"}).json()
        assert eligibility == {"can_respond": False, "status": "brain", "description": "Interpretation needed"}


class TestGradings:
    def test_author_decision(self, client, message_id):
        grading_id = interpret(client, message_id, GOOD_INTERPRETATION).json()["grading"]["id"]
        response = client.patch(f"/gradings/{grading_id}", json={"status": "accepted", "notes": "Good enough."})
        assert response.status_code == 200
        assert response.json()["status"] == "accepted"
        assert client.get(f"/gradings/{grading_id}").json()["notes"] == "Good enough."

    def test_back_to_pending_is_409(self, client, message_id):
        grading_id = interpret(client, message_id, VERBATIM_INTERPRETATION).json()["grading"]["id"]
        assert client.patch(f"/gradings/{grading_id}", json={"status": "pending"}).status_code == 409

    def test_unknown_status_is_422(self, client, message_id):
        grading_id = interpret(client, message_id, VERBATIM_INTERPRETATION).json()["grading"]["id"]
        assert client.patch(f"/gradings/{grading_id}", json={"status": "maybe"}).status_code == 422

    def test_dispute(self, client, message_id):
        grading_id = interpret(client, message_id, VERBATIM_INTERPRETATION).json()["grading"]["id"]
        response = client.post(f"/gradings/{grading_id}/responses", json={"text": "It restates every point."})
        assert response.status_code == 201

        state = client.get(f"/messages/{message_id}/flow", params={"user_id": "bob"}).json()
        assert state["arbitration"]["trigger"] == "dispute"
        assert state["arbitration"]["result"] == "accept"
        assert state["can_respond"] is True
        assert client.post(f"/gradings/{grading_id}/responses", json={"text": "Once more."}).status_code == 409

    def test_superseded_grading_is_409(self, client, message_id):
        first = interpret(client, message_id, VERBATIM_INTERPRETATION).json()["grading"]["id"]
        interpret(client, message_id, GOOD_INTERPRETATION)
        response = client.post(f"/gradings/{first}/responses", json={"text": "The first one was right."})
        assert response.status_code == 409
        assert client.patch(f"/gradings/{first}", json={"status": "accepted"}).status_code == 409

    def test_blank_dispute_is_422(self, client, message_id):
        grading_id = interpret(client, message_id, VERBATIM_INTERPRETATION).json()["grading"]["id"]
        assert client.post(f"/gradings/{grading_id}/responses", json={"text": "  "}).status_code == 422

    def test_arbitration_timeout_then_retry(self, client, judge, message_id):
        grading_id = interpret(client, message_id, VERBATIM_INTERPRETATION).json()["grading"]["id"]
        judge.failures["arbitrate"] = AITimeoutError("deadline")
        response = client.post(f"/gradings/{grading_id}/responses", json={"text": "It restates every point."})
        assert response.status_code == 504

        del judge.failures["arbitrate"]
        retried = client.post(f"/gradings/{grading_id}/arbitration")
        assert retried.status_code == 200
        assert retried.json()["trigger"] == "dispute"
        again = client.post(f"/gradings/{grading_id}/arbitration")
        assert again.status_code == 200
        assert again.json() is None


class TestValidationEndpoint:
    def test_valid(self, client):
        body = client.post("/validation/message", json={"text": "  a valid draft message  "}).json()
        assert body["is_valid"] is True
        assert body["char_count"] == 21
        assert body["remaining_chars"] == 259
        assert body["char_count_display"] == "21/280"

    def test_invalid(self, client):
        body = client.post("/validation/message", json={"text": "two words"}).json()
        assert body["is_valid"] is False
        assert body["error"] == "too_short"
