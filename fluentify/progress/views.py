from fluentify.courses.structure import CourseStructure

FIRST_UNIT_ID = 1


def build_course_view(structure: CourseStructure, unit_rows, lesson_rows) -> list[dict]:
    """
    Annotate every unit and lesson with lock / completion state.

    - a unit with no progress row is unlocked only if it is the first unit
    - lesson N of an unlocked unit is unlocked iff N is first or lesson N-1 is completed
    """
    units_by_id = {row.unit_id: row for row in unit_rows}
    lessons_by_key = {(row.unit_id, row.lesson_id): row for row in lesson_rows}

    units = []
    for unit in structure.units:
        unit_row = units_by_id.get(unit.id)
        if unit_row is not None:
            unit_unlocked = bool(unit_row.is_unlocked)
            unit_completed = bool(unit_row.is_completed)
        else:
            unit_unlocked = unit.id == FIRST_UNIT_ID
            unit_completed = False

        lessons = []
        previous_completed = True
        for index, lesson in enumerate(unit.lessons):
            row = lessons_by_key.get((unit.id, lesson.id))
            completed = bool(row.is_completed) if row is not None else False
            lessons.append({
                **lesson.raw,
                "isUnlocked": unit_unlocked and (index == 0 or previous_completed),
                "isCompleted": completed,
                "score": row.score if row is not None else 0,
                "xpEarned": row.xp_earned if row is not None else 0,
            })
            previous_completed = completed

        units.append({
            **unit.raw,
            "isUnlocked": unit_unlocked,
            "isCompleted": unit_completed,
            "lessons": lessons,
        })
    return units


def progress_percentage(lessons_completed: int, total_lessons: int) -> float:
    return round(lessons_completed * 100.0 / max(total_lessons, 1), 1)
