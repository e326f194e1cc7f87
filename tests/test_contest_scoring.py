from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from fluentify.contests.scoring import (
    calculate_score, check_submission_window, contest_status, learner_questions,
    parse_questions, validate_answers, validate_contest_structure,
)
from fluentify.core.errors import (
    ContestAlreadySubmitted, ContestEnded, ContestNotPublished, ContestNotStarted, InvalidQuestionFormat,
)


NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)

MCQ_B = {"type": "mcq", "question": "Pick B", "options": ["A) uno", "B) dos"], "correctAnswer": "B"}
HOLA = {"type": "one-liner", "question": "Say hello", "correctAnswer": "hola", "acceptableAnswers": ["ola"]}


def _contest(published=True, start=NOW - timedelta(hours=1), end=NOW + timedelta(hours=1)):
    return SimpleNamespace(is_published=published, start_date=start, end_date=end)


def test_mcq_answer_is_case_sensitive():
    questions = parse_questions([MCQ_B, MCQ_B])
    result = calculate_score(questions, ["B", "b"])

    assert [r.is_correct for r in result.results] == [True, False]
    assert result.total_correct == 1


def test_mcq_answer_must_match_type_exactly():
    by_index = dict(MCQ_B, correctAnswer=1)
    questions = parse_questions([by_index, by_index, by_index, by_index])
    result = calculate_score(questions, [True, 1.0, "1", 1])

    assert [r.is_correct for r in result.results] == [False, False, False, True]


def test_one_liner_is_trimmed_and_case_insensitive():
    questions = parse_questions([HOLA, HOLA, HOLA, HOLA])
    result = calculate_score(questions, [" Hola ", "OLA", "Adios", None])

    assert [r.is_correct for r in result.results] == [True, True, False, False]


def test_percentage_rounds_to_two_places():
    questions = parse_questions([MCQ_B, MCQ_B, HOLA])
    result = calculate_score(questions, ["B", "A", "hola"])

    assert result.score == 2
    assert result.total_questions == 3
    assert result.percentage == 66.67


def test_missing_answers_count_as_incorrect():
    questions = parse_questions([MCQ_B, HOLA])
    result = calculate_score(questions, ["B"])

    assert result.results[1].user_answer is None
    assert result.results[1].is_correct is False
    assert result.results[1].to_dict() == {
        "questionIndex": 1,
        "userAnswer": None,
        "correctAnswer": "hola",
        "isCorrect": False,
    }


def test_answers_must_be_a_list_of_matching_length():
    questions = parse_questions([MCQ_B, HOLA])

    assert validate_answers(questions, "B").error == "Answers must be an array"
    assert validate_answers(questions, ["B"]).error == "Answer count must match question count"
    assert validate_answers(questions, ["B", "hola"]).valid is True


def test_structure_requires_homogeneous_types():
    with pytest.raises(InvalidQuestionFormat, match="All questions must be MCQ type"):
        validate_contest_structure("t", [MCQ_B, HOLA], "mcq")
    with pytest.raises(InvalidQuestionFormat, match="All questions must be one-liner type"):
        validate_contest_structure("t", [HOLA, MCQ_B], "one-liner")

    assert len(validate_contest_structure("t", [MCQ_B, HOLA], "mix")) == 2


def test_malformed_questions_are_rejected():
    with pytest.raises(InvalidQuestionFormat, match="at least 2 options"):
        parse_questions([{"type": "mcq", "question": "q", "options": ["A"], "correctAnswer": "A"}])
    with pytest.raises(InvalidQuestionFormat, match="missing correct answer"):
        parse_questions([{"type": "one-liner", "question": "q"}])
    with pytest.raises(InvalidQuestionFormat, match="missing title or questions"):
        validate_contest_structure("", [MCQ_B], "mcq")


def test_window_checks_run_in_order():
    # Unpublished wins even when the contest is also over and already submitted
    with pytest.raises(ContestNotPublished):
        check_submission_window(_contest(published=False, end=NOW - timedelta(days=1)), NOW, True)
    with pytest.raises(ContestNotStarted):
        check_submission_window(_contest(start=NOW + timedelta(minutes=1)), NOW, True)
    with pytest.raises(ContestEnded):
        check_submission_window(_contest(end=NOW - timedelta(minutes=1)), NOW, True)
    with pytest.raises(ContestAlreadySubmitted):
        check_submission_window(_contest(), NOW, True)

    check_submission_window(_contest(), NOW, False)


def test_window_accepts_naive_datetimes_as_utc():
    naive = _contest(start=datetime(2026, 5, 1, 11, 0), end=datetime(2026, 5, 1, 13, 0))
    check_submission_window(naive, NOW, False)
    assert contest_status(naive, NOW) == "active"


def test_contest_status():
    assert contest_status(_contest(start=NOW + timedelta(hours=1), end=NOW + timedelta(hours=2)), NOW) == "upcoming"
    assert contest_status(_contest(end=NOW - timedelta(seconds=1)), NOW) == "ended"
    assert contest_status(_contest(), NOW) == "active"


def test_learner_questions_hide_answers():
    hidden = learner_questions([dict(HOLA, explanation="because")])

    assert hidden == [{"type": "one-liner", "question": "Say hello"}]
