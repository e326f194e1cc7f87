from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fluentify.db.session import get_db
from fluentify.auth.models import User
from fluentify.core.deps import get_learner
from fluentify.core.responses import success_response, list_response
from fluentify.progress.engine import ProgressEngine, LessonCompletion
from fluentify.progress.schemas import CompleteLessonRequest

router = APIRouter(prefix="/api/progress", tags=["progress"])


def get_progress_engine(db: Session = Depends(get_db)) -> ProgressEngine:
    return ProgressEngine(db)


def completion_message(result: LessonCompletion) -> str:
    return "Unit completed! Next unit unlocked!" if result.unit_completed else "Lesson completed!"


@router.get("/courses")
def list_courses(
    user: User = Depends(get_learner),
    engine: ProgressEngine = Depends(get_progress_engine),
):
    return list_response(engine.course_summaries(user.id), "User courses retrieved successfully")


@router.get("/courses/{course_id}")
def course_progress(
    course_id: int,
    user: User = Depends(get_learner),
    engine: ProgressEngine = Depends(get_progress_engine),
):
    data = engine.course_progress(user.id, course_id)
    return success_response(data, "Course progress retrieved successfully")


@router.post("/courses/{course_id}/units/{unit_id}/lessons/{lesson_id}/complete")
def complete_lesson(
    course_id: int,
    unit_id: int,
    lesson_id: int,
    body: CompleteLessonRequest | None = None,
    user: User = Depends(get_learner),
    engine: ProgressEngine = Depends(get_progress_engine),
):
    body = body or CompleteLessonRequest()
    result = engine.complete_lesson(
        user.id,
        course_id,
        unit_id,
        lesson_id,
        score=body.score,
        exercise_results=body.exercise_results(),
    )
    return success_response(
        {"xpEarned": result.xp_earned, "unitCompleted": result.unit_completed},
        completion_message(result),
    )
