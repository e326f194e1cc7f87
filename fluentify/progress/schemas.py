import json
from typing import Any

from pydantic import Field

from fluentify.core.config import DEFAULT_LESSON_SCORE
from fluentify.core.schemas import CamelModel
from fluentify.progress.engine import ExerciseResult


def answer_text(value: Any) -> str:
    """Exercise answers arrive as any JSON value and are stored as text."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value)


class ExerciseResultIn(CamelModel):
    is_correct: bool = False
    user_answer: Any = ""


class CompleteLessonRequest(CamelModel):
    score: int = Field(DEFAULT_LESSON_SCORE, ge=0)
    exercises: list[ExerciseResultIn] = Field(default_factory=list)

    def exercise_results(self) -> list[ExerciseResult]:
        return [
            ExerciseResult(is_correct=item.is_correct, user_answer=answer_text(item.user_answer))
            for item in self.exercises
        ]
