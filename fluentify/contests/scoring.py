"""
Contest scoring.

Questions are stored as tagged dicts ({"type": "mcq" | "one-liner", ...}) and
parsed into McqQuestion / OneLinerQuestion before anything is scored.

Matching rules:
- mcq: the answer must equal correctAnswer exactly (case-sensitive option key)
- one-liner: trimmed + lowercased answer against correctAnswer or any
  acceptableAnswers, normalised the same way

One point per question, no partial credit. percentage is rounded to 2 places.
"""
from dataclasses import dataclass, field
from datetime import datetime

from fluentify.core.clock import as_utc
from fluentify.core.errors import (
    InvalidQuestionFormat, ContestNotPublished, ContestNotStarted, ContestEnded, ContestAlreadySubmitted,
)

MCQ = "mcq"
ONE_LINER = "one-liner"
MIX = "mix"

STATUS_UPCOMING = "upcoming"
STATUS_ACTIVE = "active"
STATUS_ENDED = "ended"


@dataclass(frozen=True)
class McqQuestion:
    question: str
    options: tuple
    correct_answer: object
    explanation: str | None = None

    kind = MCQ

    def is_correct(self, answer) -> bool:
        # bool is an int subclass; True must not match option 1
        return (
            answer is not None
            and type(answer) is type(self.correct_answer)
            and answer == self.correct_answer
        )


@dataclass(frozen=True)
class OneLinerQuestion:
    question: str
    correct_answer: str
    acceptable_answers: tuple = ()
    explanation: str | None = None

    kind = ONE_LINER

    def is_correct(self, answer) -> bool:
        if answer is None:
            return False
        given = _normalize(answer)
        accepted = {_normalize(self.correct_answer)}
        accepted.update(_normalize(a) for a in self.acceptable_answers)
        return given in accepted


Question = McqQuestion | OneLinerQuestion


def _normalize(value) -> str:
    return str(value).strip().lower()


@dataclass(frozen=True)
class AnswerValidation:
    valid: bool
    error: str | None = None


@dataclass(frozen=True)
class QuestionResult:
    question_index: int
    user_answer: object
    correct_answer: object
    is_correct: bool

    def to_dict(self) -> dict:
        return {
            "questionIndex": self.question_index,
            "userAnswer": self.user_answer,
            "correctAnswer": self.correct_answer,
            "isCorrect": self.is_correct,
        }


@dataclass(frozen=True)
class ScoreResult:
    total_correct: int
    total_questions: int
    score: int
    percentage: float
    results: list[QuestionResult] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Parsing / structure validation
# ---------------------------------------------------------------------------

def parse_question(raw, index: int = 0) -> Question:
    number = index + 1
    if not isinstance(raw, dict) or not raw.get("type") or not raw.get("question"):
        raise InvalidQuestionFormat(f"Question {number} is missing required fields")

    kind = raw["type"]
    if kind == MCQ:
        options = raw.get("options")
        if not isinstance(options, list) or len(options) < 2:
            raise InvalidQuestionFormat(f"Question {number} must have at least 2 options")
        if raw.get("correctAnswer") in (None, ""):
            raise InvalidQuestionFormat(f"Question {number} is missing correct answer")
        return McqQuestion(
            question=str(raw["question"]),
            options=tuple(options),
            correct_answer=raw["correctAnswer"],
            explanation=raw.get("explanation"),
        )

    if kind == ONE_LINER:
        if raw.get("correctAnswer") in (None, ""):
            raise InvalidQuestionFormat(f"Question {number} is missing correct answer")
        acceptable = raw.get("acceptableAnswers") or []
        if not isinstance(acceptable, list):
            raise InvalidQuestionFormat(f"Question {number} has invalid acceptable answers")
        return OneLinerQuestion(
            question=str(raw["question"]),
            correct_answer=str(raw["correctAnswer"]),
            acceptable_answers=tuple(str(a) for a in acceptable),
            explanation=raw.get("explanation"),
        )

    raise InvalidQuestionFormat(f"Question {number} has unknown type '{kind}'")


def parse_questions(raw_questions) -> list[Question]:
    if not isinstance(raw_questions, list):
        raise InvalidQuestionFormat("Questions must be an array")
    return [parse_question(raw, index) for index, raw in enumerate(raw_questions)]


def validate_contest_structure(title, raw_questions, contest_type: str) -> list[Question]:
    if not title or not isinstance(raw_questions, list):
        raise InvalidQuestionFormat("Invalid contest structure: missing title or questions")
    if not raw_questions:
        raise InvalidQuestionFormat("Contest must have at least one question")

    questions = parse_questions(raw_questions)

    if contest_type == MCQ and any(q.kind != MCQ for q in questions):
        raise InvalidQuestionFormat("All questions must be MCQ type")
    if contest_type == ONE_LINER and any(q.kind != ONE_LINER for q in questions):
        raise InvalidQuestionFormat("All questions must be one-liner type")
    return questions


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def validate_answers(questions, answers) -> AnswerValidation:
    if not isinstance(answers, list):
        return AnswerValidation(False, "Answers must be an array")
    if len(answers) != len(questions):
        return AnswerValidation(False, "Answer count must match question count")
    return AnswerValidation(True)


def calculate_score(questions: list[Question], answers) -> ScoreResult:
    answers = answers if isinstance(answers, list) else []

    results = []
    total_correct = 0
    for index, question in enumerate(questions):
        answer = answers[index] if index < len(answers) else None
        correct = question.is_correct(answer)
        if correct:
            total_correct += 1
        results.append(QuestionResult(
            question_index=index,
            user_answer=answer,
            correct_answer=question.correct_answer,
            is_correct=correct,
        ))

    total_questions = len(questions)
    percentage = round(total_correct / total_questions * 100, 2) if total_questions else 0.0
    return ScoreResult(
        total_correct=total_correct,
        total_questions=total_questions,
        score=total_correct,
        percentage=percentage,
        results=results,
    )


# ---------------------------------------------------------------------------
# Submission window
# ---------------------------------------------------------------------------

def contest_status(contest, now: datetime) -> str:
    now = as_utc(now)
    if as_utc(contest.end_date) < now:
        return STATUS_ENDED
    if as_utc(contest.start_date) > now:
        return STATUS_UPCOMING
    return STATUS_ACTIVE


def check_submission_window(contest, now: datetime, already_submitted: bool) -> None:
    """Raise the first window violation, checked in a fixed order."""
    if not contest.is_published:
        raise ContestNotPublished()
    now = as_utc(now)
    if now < as_utc(contest.start_date):
        raise ContestNotStarted()
    if now > as_utc(contest.end_date):
        raise ContestEnded()
    if already_submitted:
        raise ContestAlreadySubmitted()


HIDDEN_FROM_LEARNERS = ("correctAnswer", "acceptableAnswers", "explanation")


def learner_questions(raw_questions) -> list[dict]:
    return [
        {key: value for key, value in raw.items() if key not in HIDDEN_FROM_LEARNERS}
        for raw in raw_questions or []
        if isinstance(raw, dict)
    ]
