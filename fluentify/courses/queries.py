from sqlalchemy.orm import Session

from fluentify.courses.models import Course
from fluentify.courses.structure import CourseStructure, from_course_data
from fluentify.core.errors import CourseNotFound


def get_active_course(db: Session, learner_id: int, course_id: int) -> Course:
    """Owned, active course or CourseNotFound. Deactivated courses behave as missing."""
    course = (
        db.query(Course)
        .filter(
            Course.id == course_id,
            Course.learner_id == learner_id,
            Course.is_active.is_(True),
        )
        .first()
    )
    if not course:
        raise CourseNotFound()
    return course


def load_course(db: Session, learner_id: int, course_id: int) -> tuple[Course, CourseStructure]:
    course = get_active_course(db, learner_id, course_id)
    return course, from_course_data(course.course_data)


def find_active_course_by_language(db: Session, learner_id: int, language: str) -> Course | None:
    return (
        db.query(Course)
        .filter(
            Course.learner_id == learner_id,
            Course.language == language,
            Course.is_active.is_(True),
        )
        .first()
    )
