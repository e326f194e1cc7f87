from datetime import datetime
from typing import Any

from pydantic import Field

from fluentify.core.config import DEFAULT_CONTEST_QUESTION_COUNT
from fluentify.core.schemas import CamelModel


class GenerateContestRequest(CamelModel):
    language: str = Field(..., min_length=1)
    difficulty_level: str = Field(..., min_length=1)
    contest_type: str = Field(..., min_length=1)
    question_count: int = Field(DEFAULT_CONTEST_QUESTION_COUNT, ge=1, le=50)
    topic: str | None = None

    title: str | None = None
    description: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    reward_points: int = 100
    max_attempts: int = 1
    time_limit: int | None = None
    is_published: bool = False


class CreateContestRequest(CamelModel):
    title: str = Field(..., min_length=1)
    description: str | None = None
    language: str = Field(..., min_length=1)
    difficulty_level: str = Field(..., min_length=1)
    contest_type: str = Field(..., min_length=1)
    questions: list[Any]
    start_date: datetime
    end_date: datetime
    reward_points: int = 100
    max_attempts: int = 1
    time_limit: int | None = None
    is_published: bool = False


class UpdateContestRequest(CamelModel):
    title: str | None = None
    description: str | None = None
    language: str | None = None
    difficulty_level: str | None = None
    contest_type: str | None = None
    questions: list[Any] | None = None
    max_attempts: int | None = None
    time_limit: int | None = None
    reward_points: int | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_published: bool | None = None


class SubmitContestRequest(CamelModel):
    # Left untyped so a non-list becomes InvalidAnswersFormat instead of a validation error
    answers: Any = None
    time_taken: int | None = Field(None, ge=0)
