import pytest

from conftest import FakeChatTutor, headers_for, make_course
from fluentify.chat.routes import get_chat_tutor
from fluentify.chat.tutor import build_system_prompt, extract_topic, learner_context, validate_message
from fluentify.core.errors import InvalidChatMessage
from fluentify.main import app
from fluentify.progress.engine import ProgressEngine


def _use_tutor(tutor):
    app.dependency_overrides[get_chat_tutor] = lambda: tutor
    return tutor


def _new_session(client, headers, **body):
    r = client.post("/api/chat/sessions", json=body or None, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]["session"]


def test_send_message_saves_both_sides_and_titles_session(client, learner_headers):
    _use_tutor(FakeChatTutor())
    session = _new_session(client, learner_headers, language="Spanish")
    assert session["title"] == "New Chat"

    r = client.post(
        f"/api/chat/sessions/{session['id']}/messages",
        json={"message": "  How do I order food?  "},
        headers=learner_headers,
    )
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    assert data["userMessage"]["message"] == "How do I order food?"
    assert data["userMessage"]["sender"] == "learner"
    assert data["aiMessage"]["sender"] == "ai"
    assert data["aiMessage"]["message"] == "Tutor says: How do I order food?"
    assert data["session"]["title"] == "Ordering Food"
    assert data["session"]["messageCount"] == 2


def test_history_is_passed_to_tutor(client, learner_headers):
    tutor = _use_tutor(FakeChatTutor())
    session = _new_session(client, learner_headers)
    url = f"/api/chat/sessions/{session['id']}/messages"

    client.post(url, json={"message": "hola"}, headers=learner_headers)
    client.post(url, json={"message": "gracias"}, headers=learner_headers)

    assert tutor.seen_history == [[], ["hola", "Tutor says: hola"]]


def test_ai_failure_keeps_no_learner_message(client, learner_headers):
    _use_tutor(FakeChatTutor(fail=True))
    session = _new_session(client, learner_headers)

    r = client.post(f"/api/chat/sessions/{session['id']}/messages", json={"message": "hola"}, headers=learner_headers)
    assert r.status_code == 502
    assert r.json()["error"]["code"] == 30010

    messages = client.get(f"/api/chat/sessions/{session['id']}/messages", headers=learner_headers).json()
    assert messages["data"] == []
    assert messages["meta"]["totalCount"] == 0


def test_invalid_messages_are_rejected(client, learner_headers):
    _use_tutor(FakeChatTutor())
    session = _new_session(client, learner_headers)
    url = f"/api/chat/sessions/{session['id']}/messages"

    for body in ({"message": "   "}, {"message": "x" * 2001}, {"message": 42}, {}):
        r = client.post(url, json=body, headers=learner_headers)
        assert r.status_code == 400, body
        assert r.json()["error"]["code"] == 90003


def test_other_learners_session_is_forbidden(client, learner_headers, other_learner):
    _use_tutor(FakeChatTutor())
    session = _new_session(client, learner_headers)

    r = client.get(f"/api/chat/sessions/{session['id']}", headers=headers_for(other_learner))
    assert r.status_code == 403
    assert r.json()["error"]["code"] == 90009

    assert client.get("/api/chat/sessions/999", headers=learner_headers).status_code == 404


def test_ended_session_rejects_messages(client, learner_headers):
    _use_tutor(FakeChatTutor())
    session = _new_session(client, learner_headers)

    ended = client.post(f"/api/chat/sessions/{session['id']}/end", headers=learner_headers).json()["data"]["session"]
    assert ended["isActive"] is False
    assert ended["endedAt"] is not None

    r = client.post(f"/api/chat/sessions/{session['id']}/messages", json={"message": "hola"}, headers=learner_headers)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == 90008

    active = client.get("/api/chat/sessions?activeOnly=true", headers=learner_headers).json()["data"]
    assert active == []


def test_rename_list_and_delete_sessions(client, learner_headers):
    first = _new_session(client, learner_headers)
    _new_session(client, learner_headers, title="Verbs")

    renamed = client.patch(f"/api/chat/sessions/{first['id']}", json={"title": "Travel"}, headers=learner_headers)
    assert renamed.json()["data"]["session"]["title"] == "Travel"

    titles = {s["title"] for s in client.get("/api/chat/sessions", headers=learner_headers).json()["data"]}
    assert titles == {"Travel", "Verbs"}

    assert client.delete(f"/api/chat/sessions/{first['id']}", headers=learner_headers).status_code == 200
    assert len(client.get("/api/chat/sessions", headers=learner_headers).json()["data"]) == 1

    assert client.delete("/api/chat/sessions", headers=learner_headers).status_code == 200
    assert client.get("/api/chat/sessions", headers=learner_headers).json()["data"] == []


def test_messages_are_paginated(client, learner_headers):
    _use_tutor(FakeChatTutor())
    session = _new_session(client, learner_headers)
    url = f"/api/chat/sessions/{session['id']}/messages"
    for text in ("uno", "dos", "tres"):
        client.post(url, json={"message": text}, headers=learner_headers)

    page = client.get(f"{url}?limit=2&offset=2", headers=learner_headers).json()
    assert [m["message"] for m in page["data"]] == ["dos", "Tutor says: dos"]
    assert page["meta"]["totalCount"] == 6


# ---------------------------------------------------------------------------
# Tutor helpers
# ---------------------------------------------------------------------------

def test_validate_message():
    assert validate_message("  hola ") == "hola"
    with pytest.raises(InvalidChatMessage):
        validate_message("")
    with pytest.raises(InvalidChatMessage):
        validate_message(None)


def test_title_fallback_uses_first_words():
    assert extract_topic("how do I say good morning to my neighbours politely") == "how do I say good morning"
    assert extract_topic("   ") == "New Chat"
    assert len(extract_topic("a" * 80)) == 53


def test_learner_context_includes_progress_and_recent_lessons(db, learner):
    course = make_course(db, learner.id, language="Spanish", lessons_per_unit=(4,))
    ProgressEngine(db).complete_lesson(learner.id, course.id, 1, 1)

    context = learner_context(db, learner.id, "spanish")
    assert context["language"] == "Spanish"
    assert context["progress"] == "25.0% complete"
    assert context["recent_topics"] == ["Lesson 1.1"]

    prompt = build_system_prompt(context)
    assert "The learner is studying: Spanish" in prompt
    assert "Recent topics covered: Lesson 1.1" in prompt
