"""
Read-only view over a generated course tree.

Course.course_data is stored as the JSON the generator produced:

    {"course": {"title": ..., "units": [{"id": 1, "lessons": [{"id": 1, "xpReward": 50, ...}]}]},
     "metadata": {"totalUnits": ..., "totalLessons": ..., "estimatedTotalTime": ...}}

CourseStructure parses just the parts progress tracking depends on (ids,
order, xp rewards, exercises) and keeps the raw dicts around for rendering.
"""
from dataclasses import dataclass, field

from fluentify.core.config import DEFAULT_LESSON_XP
from fluentify.core.errors import InvalidCourseData


@dataclass(frozen=True)
class LessonDefinition:
    id: int
    title: str
    type: str
    xp_reward: int
    exercises: tuple = ()
    raw: dict = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class UnitDefinition:
    id: int
    title: str
    lessons: tuple[LessonDefinition, ...]
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    @property
    def lesson_count(self) -> int:
        return len(self.lessons)

    def find_lesson(self, lesson_id: int) -> LessonDefinition | None:
        for lesson in self.lessons:
            if lesson.id == lesson_id:
                return lesson
        return None


@dataclass(frozen=True)
class CourseStructure:
    title: str
    duration: str | None
    units: tuple[UnitDefinition, ...]

    @property
    def total_lessons(self) -> int:
        return sum(unit.lesson_count for unit in self.units)

    def find_unit(self, unit_id: int) -> UnitDefinition | None:
        for unit in self.units:
            if unit.id == unit_id:
                return unit
        return None

    def find_lesson(self, unit_id: int, lesson_id: int) -> LessonDefinition | None:
        unit = self.find_unit(unit_id)
        if unit is None:
            return None
        return unit.find_lesson(lesson_id)

    def find_lesson_anywhere(self, lesson_id: int) -> tuple[UnitDefinition, LessonDefinition] | None:
        """First unit (in course order) containing a lesson with this id."""
        for unit in self.units:
            lesson = unit.find_lesson(lesson_id)
            if lesson is not None:
                return unit, lesson
        return None

    def next_unit_id(self, unit_id: int) -> int | None:
        # Units unlock strictly in ordinal order
        candidate = unit_id + 1
        return candidate if self.find_unit(candidate) is not None else None


def _as_int(value, what: str) -> int:
    if isinstance(value, bool):
        raise InvalidCourseData(f"Invalid {what} id")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidCourseData(f"Invalid {what} id")


def _parse_lesson(raw: dict) -> LessonDefinition:
    if not isinstance(raw, dict):
        raise InvalidCourseData("Lesson entry must be an object")

    xp = raw.get("xpReward")
    try:
        xp_reward = int(xp) if xp else DEFAULT_LESSON_XP
    except (TypeError, ValueError):
        xp_reward = DEFAULT_LESSON_XP

    exercises = raw.get("exercises") or []
    return LessonDefinition(
        id=_as_int(raw.get("id"), "lesson"),
        title=str(raw.get("title") or ""),
        type=str(raw.get("type") or ""),
        xp_reward=xp_reward,
        exercises=tuple(exercises) if isinstance(exercises, list) else (),
        raw=raw,
    )


def _parse_unit(raw: dict) -> UnitDefinition:
    if not isinstance(raw, dict):
        raise InvalidCourseData("Unit entry must be an object")
    lessons = raw.get("lessons")
    if not isinstance(lessons, list):
        raise InvalidCourseData("Unit is missing its lessons")
    return UnitDefinition(
        id=_as_int(raw.get("id"), "unit"),
        title=str(raw.get("title") or ""),
        lessons=tuple(_parse_lesson(lesson) for lesson in lessons),
        raw=raw,
    )


def from_course_data(course_data) -> CourseStructure:
    if not isinstance(course_data, dict):
        raise InvalidCourseData()
    course = course_data.get("course")
    if not isinstance(course, dict) or not isinstance(course.get("units"), list):
        raise InvalidCourseData()

    return CourseStructure(
        title=str(course.get("title") or ""),
        duration=course.get("duration"),
        units=tuple(_parse_unit(unit) for unit in course["units"]),
    )
