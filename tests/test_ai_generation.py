import json

import pytest

from fluentify.ai.json_extract import parse_ai_json
from fluentify.chat.tutor import ChatTutor
from fluentify.contests.generator import ContestGenerator, build_contest_prompt
from fluentify.core.errors import AIGenerationFailed
from fluentify.courses.generator import CourseGenerator


class ScriptedCompletion:
    """Stands in for complete_text: returns queued replies and records the prompts."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    def __call__(self, messages, max_tokens=1024, temperature=0.7, json_mode=False):
        self.calls.append(messages)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


# ---------------------------------------------------------------------------
# JSON extraction
# ---------------------------------------------------------------------------

def test_parse_plain_and_fenced_json():
    assert parse_ai_json('{"a": 1}') == {"a": 1}
    assert parse_ai_json('Here you go:\n```json\n{"a": [1, 2]}\n```') == {"a": [1, 2]}


def test_parse_repairs_trailing_commas():
    assert parse_ai_json('{"a": [1, 2,], "b": {"c": 3,},}') == {"a": [1, 2], "b": {"c": 3}}


def test_parse_auto_closes_truncated_reply():
    text = '{"units": [{"id": 1, "title": "Greetings"}, {"id": 2'
    assert parse_ai_json(text) == {"units": [{"id": 1, "title": "Greetings"}, {"id": 2}]}


def test_parse_rejects_replies_without_json():
    with pytest.raises(AIGenerationFailed):
        parse_ai_json("Sorry, I cannot help with that.")
    with pytest.raises(AIGenerationFailed):
        parse_ai_json("   ")


# ---------------------------------------------------------------------------
# Course generator
# ---------------------------------------------------------------------------

def _unit_reply(lesson_ids, xp=None):
    lessons = []
    for lesson_id in lesson_ids:
        lesson = {"id": lesson_id, "title": f"Lesson {lesson_id}", "type": "vocabulary", "exercises": []}
        if xp is not None:
            lesson["xpReward"] = xp
        lessons.append(lesson)
    return json.dumps({"id": 99, "title": "Unit", "estimatedTime": "2 hours", "lessons": lessons})


def test_generate_course_chunks_outline_and_units():
    outline = json.dumps({"units": [
        {"id": 1, "title": "Basics", "estimatedTime": "3-4 hours", "lessonCount": 2},
        {"id": 2, "title": "Travel", "estimatedTime": "90 minutes", "lessonCount": 1},
    ]})
    complete = ScriptedCompletion(outline, _unit_reply([7, 8]), "```json\n" + _unit_reply([3], xp=80) + "\n```")

    data = CourseGenerator(complete=complete).generate_course("Spanish", "2 months")

    assert len(complete.calls) == 3
    units = data["course"]["units"]
    assert [u["id"] for u in units] == [1, 2]
    assert [lesson["id"] for lesson in units[0]["lessons"]] == [1, 2]
    assert units[0]["lessons"][0]["xpReward"] == 50
    assert units[1]["lessons"][0]["xpReward"] == 80
    assert data["course"]["title"] == "Spanish Learning Journey"
    assert data["metadata"] == {
        "language": "Spanish",
        "totalUnits": 2,
        "totalLessons": 3,
        "estimatedTotalTime": 240,
    }


def test_generate_course_fails_on_empty_outline():
    complete = ScriptedCompletion('{"units": []}')

    with pytest.raises(AIGenerationFailed):
        CourseGenerator(complete=complete).generate_course("Spanish", "2 months")


def test_generate_course_propagates_provider_failure():
    outline = json.dumps({"units": [{"id": 1, "title": "Basics"}]})
    complete = ScriptedCompletion(outline, AIGenerationFailed("AI provider authentication failed"))

    with pytest.raises(AIGenerationFailed, match="authentication"):
        CourseGenerator(complete=complete).generate_course("Spanish", "2 months")


# ---------------------------------------------------------------------------
# Contest generator
# ---------------------------------------------------------------------------

def test_contest_prompt_mentions_type_and_difficulty():
    prompt = build_contest_prompt("French", "advanced", "one-liner", 5, topic="food")

    assert "Number of questions: 5" in prompt
    assert "Specific topic: food" in prompt
    assert "Subjunctive" in prompt
    assert '"type": "one-liner"' in prompt


def test_contest_generator_validates_questions():
    good = json.dumps({"title": "Quiz", "questions": [
        {"type": "mcq", "question": "q", "options": ["A) x", "B) y"], "correctAnswer": "A"},
    ]})
    data = ContestGenerator(complete=ScriptedCompletion(good)).generate_contest("French", "beginner", "mcq", 1)
    assert data["title"] == "Quiz"

    wrong_type = json.dumps({"title": "Quiz", "questions": [
        {"type": "one-liner", "question": "q", "correctAnswer": "x"},
    ]})
    with pytest.raises(AIGenerationFailed, match="All questions must be MCQ type"):
        ContestGenerator(complete=ScriptedCompletion(wrong_type)).generate_contest("French", "beginner", "mcq", 1)


# ---------------------------------------------------------------------------
# Chat tutor
# ---------------------------------------------------------------------------

class _Msg:
    def __init__(self, sender, message):
        self.sender = sender
        self.message = message


def test_tutor_sends_system_prompt_history_and_message():
    complete = ScriptedCompletion("¡Hola!")
    history = [_Msg("learner", "hi"), _Msg("ai", "hello")]

    reply = ChatTutor(complete=complete).reply("how are you?", history, {"language": "Spanish"})

    assert reply == "¡Hola!"
    messages = complete.calls[0]
    assert messages[0]["role"] == "system"
    assert "The learner is studying: Spanish" in messages[0]["content"]
    assert [(m["role"], m["content"]) for m in messages[1:]] == [
        ("user", "hi"),
        ("assistant", "hello"),
        ("user", "how are you?"),
    ]


def test_tutor_title_falls_back_to_message_prefix():
    tutor = ChatTutor(complete=ScriptedCompletion(AIGenerationFailed()))
    assert tutor.suggest_title("where is the train station please help me") == "where is the train station please"

    quoted = ChatTutor(complete=ScriptedCompletion('"Train Travel"'))
    assert quoted.suggest_title("where is the train station") == "Train Travel"
