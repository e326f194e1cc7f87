from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fluentify.db.session import get_db
from fluentify.auth.models import User
from fluentify.core.deps import get_learner
from fluentify.core.errors import DuplicateActiveCourse, LessonNotFound, MissingRequiredFields
from fluentify.core.responses import created_response, success_response, list_response, deleted_response
from fluentify.courses.generator import CourseGenerator
from fluentify.courses.models import Course
from fluentify.courses.queries import get_active_course, load_course, find_active_course_by_language
from fluentify.courses.schemas import GenerateCourseRequest
from fluentify.progress.engine import ProgressEngine
from fluentify.progress.models import lesson_progress_to_dict
from fluentify.progress.routes import get_progress_engine, completion_message
from fluentify.progress.schemas import CompleteLessonRequest

router = APIRouter(prefix="/api/courses", tags=["courses"])


def get_course_generator() -> CourseGenerator:
    return CourseGenerator()


@router.post("/generate", status_code=201)
def generate_course(
    body: GenerateCourseRequest,
    user: User = Depends(get_learner),
    db: Session = Depends(get_db),
    generator: CourseGenerator = Depends(get_course_generator),
    engine: ProgressEngine = Depends(get_progress_engine),
):
    language = body.language.strip()
    expected_duration = body.expected_duration.strip()
    if not language or not expected_duration:
        raise MissingRequiredFields()

    if find_active_course_by_language(db, user.id, language):
        raise DuplicateActiveCourse()

    course_data = generator.generate_course(language, expected_duration)
    metadata = course_data["metadata"]

    course = Course(
        learner_id=user.id,
        language=language,
        expected_duration=expected_duration,
        title=course_data["course"]["title"],
        description=course_data["course"].get("description", ""),
        total_units=metadata["totalUnits"],
        total_lessons=metadata["totalLessons"],
        estimated_total_time=metadata["estimatedTotalTime"],
        course_data=course_data,
        is_active=True,
    )
    try:
        db.add(course)
        db.flush()
        engine.initialize_course(user.id, course.id, commit=False)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(course)

    print(f"[COURSE] created course_id={course.id} learner_id={user.id} lessons={course.total_lessons}", flush=True)
    return created_response(
        {
            "id": course.id,
            "language": course.language,
            "title": course.title,
            "totalUnits": course.total_units,
            "totalLessons": course.total_lessons,
            "estimatedTotalTime": course.estimated_total_time,
        },
        "Course generated successfully!",
    )


@router.get("")
def list_courses(
    user: User = Depends(get_learner),
    engine: ProgressEngine = Depends(get_progress_engine),
):
    return list_response(engine.course_summaries(user.id), "Courses retrieved successfully")


@router.get("/{course_id}")
def course_details(
    course_id: int,
    user: User = Depends(get_learner),
    engine: ProgressEngine = Depends(get_progress_engine),
):
    data = engine.course_progress(user.id, course_id)
    return success_response(
        {"course": data["course"], "stats": data["stats"]},
        "Course details retrieved successfully",
    )


@router.get("/{course_id}/units/{unit_id}/lessons/{lesson_id}")
def lesson_details(
    course_id: int,
    unit_id: int,
    lesson_id: int,
    user: User = Depends(get_learner),
    db: Session = Depends(get_db),
    engine: ProgressEngine = Depends(get_progress_engine),
):
    _course, structure = load_course(db, user.id, course_id)
    lesson = structure.find_lesson(unit_id, lesson_id)
    if lesson is None:
        raise LessonNotFound()

    progress = engine.lesson_row(user.id, course_id, unit_id, lesson_id)
    return success_response(
        {"lesson": lesson.raw, "progress": lesson_progress_to_dict(progress)},
        "Lesson details retrieved successfully",
    )


# ------------------------------------------------------------------
# Routes without the unit id: the lesson is searched across all units
# ------------------------------------------------------------------

@router.get("/{course_id}/lessons/{lesson_id}")
def lesson_details_by_lesson_id(
    course_id: int,
    lesson_id: int,
    user: User = Depends(get_learner),
    db: Session = Depends(get_db),
    engine: ProgressEngine = Depends(get_progress_engine),
):
    _course, structure = load_course(db, user.id, course_id)
    found = structure.find_lesson_anywhere(lesson_id)
    if found is None:
        raise LessonNotFound()
    unit, lesson = found

    progress = engine.lesson_row(user.id, course_id, unit.id, lesson.id)
    return success_response(
        {"lesson": lesson.raw, "unitId": unit.id, "progress": lesson_progress_to_dict(progress)},
        "Lesson details retrieved successfully",
    )


@router.post("/{course_id}/lessons/{lesson_id}/complete")
def complete_lesson_by_lesson_id(
    course_id: int,
    lesson_id: int,
    body: CompleteLessonRequest | None = None,
    user: User = Depends(get_learner),
    db: Session = Depends(get_db),
    engine: ProgressEngine = Depends(get_progress_engine),
):
    body = body or CompleteLessonRequest()
    _course, structure = load_course(db, user.id, course_id)
    found = structure.find_lesson_anywhere(lesson_id)
    if found is None:
        raise LessonNotFound()
    unit, lesson = found

    result = engine.complete_lesson(
        user.id,
        course_id,
        unit.id,
        lesson.id,
        score=body.score,
        exercise_results=body.exercise_results(),
    )
    return success_response(
        {
            "xpEarned": result.xp_earned,
            "unitCompleted": result.unit_completed,
            "nextLessonId": lesson.id + 1,
        },
        completion_message(result),
    )


@router.delete("/{course_id}")
def deactivate_course(
    course_id: int,
    user: User = Depends(get_learner),
    db: Session = Depends(get_db),
):
    course = get_active_course(db, user.id, course_id)
    course.is_active = False
    db.commit()
    print(f"[COURSE] deactivated course_id={course_id} learner_id={user.id}", flush=True)
    return deleted_response("Course deactivated successfully")
