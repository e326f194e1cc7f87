from datetime import date, timedelta

import pytest

from conftest import make_course
from fluentify.core.errors import CourseNotFound, LessonAlreadyCompleted, LessonNotFound
from fluentify.progress.engine import ExerciseResult, ProgressEngine
from fluentify.progress.models import ExerciseAttempt, LessonProgress, UnitProgress, UserStats
from fluentify.progress.streaks import next_streak


DAY = date(2026, 3, 10)


class Clock:
    def __init__(self, today):
        self.today = today

    def __call__(self):
        return self.today


def _stats(db, learner_id, course_id) -> UserStats:
    db.expire_all()
    return db.query(UserStats).filter_by(learner_id=learner_id, course_id=course_id).one()


def _unit_row(db, learner_id, course_id, unit_id):
    db.expire_all()
    return db.query(UnitProgress).filter_by(learner_id=learner_id, course_id=course_id, unit_id=unit_id).first()


# ---------------------------------------------------------------------------
# Streak rules
# ---------------------------------------------------------------------------

def test_streak_continues_from_yesterday():
    assert next_streak(DAY - timedelta(days=1), 4, DAY) == 5


def test_streak_unchanged_on_same_day():
    assert next_streak(DAY, 4, DAY) == 4


def test_streak_resets_after_gap():
    assert next_streak(DAY - timedelta(days=2), 4, DAY) == 1


def test_streak_starts_at_one_without_history():
    assert next_streak(None, 0, DAY) == 1


# ---------------------------------------------------------------------------
# Lesson completion
# ---------------------------------------------------------------------------

def test_initialize_course_unlocks_first_unit_and_zeroes_stats(db, learner):
    course = make_course(db, learner.id)

    unit1 = _unit_row(db, learner.id, course.id, 1)
    assert unit1.is_unlocked is True
    assert unit1.is_completed is False
    assert _unit_row(db, learner.id, course.id, 2) is None

    stats = _stats(db, learner.id, course.id)
    assert (stats.total_xp, stats.lessons_completed, stats.current_streak) == (0, 0, 0)
    assert stats.last_activity_date is None


def test_complete_course_scenario(db, learner):
    """Two lessons in unit 1, both on the same day."""
    course = make_course(db, learner.id, lessons_per_unit=(2, 1))
    engine = ProgressEngine(db, today=Clock(DAY))

    first = engine.complete_lesson(learner.id, course.id, 1, 1)
    assert first.xp_earned == 50
    assert first.unit_completed is False

    second = engine.complete_lesson(learner.id, course.id, 1, 2)
    assert second.xp_earned == 50
    assert second.unit_completed is True
    assert second.next_unit_id == 2

    stats = _stats(db, learner.id, course.id)
    assert stats.total_xp == 100
    assert stats.lessons_completed == 2
    assert stats.units_completed == 1
    assert stats.current_streak == 1
    assert stats.longest_streak == 1
    assert stats.last_activity_date == DAY

    assert _unit_row(db, learner.id, course.id, 1).is_completed is True
    assert _unit_row(db, learner.id, course.id, 2).is_unlocked is True


def test_completion_creates_missing_stats_row(db, learner):
    course = make_course(db, learner.id)
    db.query(UserStats).filter_by(learner_id=learner.id, course_id=course.id).delete()
    db.commit()

    ProgressEngine(db, today=Clock(DAY)).complete_lesson(learner.id, course.id, 1, 1)

    stats = _stats(db, learner.id, course.id)
    assert (stats.total_xp, stats.lessons_completed, stats.current_streak) == (50, 1, 1)
    assert stats.longest_streak == 1
    assert stats.last_activity_date == DAY


def test_unit_unlocks_only_on_final_lesson(db, learner):
    course = make_course(db, learner.id, lessons_per_unit=(3, 1))
    engine = ProgressEngine(db, today=Clock(DAY))

    engine.complete_lesson(learner.id, course.id, 1, 1)
    engine.complete_lesson(learner.id, course.id, 1, 3)
    assert _unit_row(db, learner.id, course.id, 2) is None
    assert _unit_row(db, learner.id, course.id, 1).is_completed is False

    result = engine.complete_lesson(learner.id, course.id, 1, 2)
    assert result.unit_completed is True
    assert _unit_row(db, learner.id, course.id, 2).is_unlocked is True


def test_completing_last_unit_has_no_next_unit(db, learner):
    course = make_course(db, learner.id, lessons_per_unit=(1,))
    engine = ProgressEngine(db, today=Clock(DAY))

    result = engine.complete_lesson(learner.id, course.id, 1, 1)

    assert result.unit_completed is True
    assert result.next_unit_id is None
    assert _stats(db, learner.id, course.id).units_completed == 1


def test_double_completion_conflicts_without_double_counting(db, learner):
    course = make_course(db, learner.id)
    engine = ProgressEngine(db, today=Clock(DAY))

    engine.complete_lesson(learner.id, course.id, 1, 1, exercise_results=[ExerciseResult(True, "hola")])
    with pytest.raises(LessonAlreadyCompleted):
        engine.complete_lesson(learner.id, course.id, 1, 1, exercise_results=[ExerciseResult(False, "x")])

    stats = _stats(db, learner.id, course.id)
    assert stats.total_xp == 50
    assert stats.lessons_completed == 1
    assert db.query(ExerciseAttempt).count() == 1
    assert db.query(LessonProgress).filter_by(is_completed=True).count() == 1


def test_exercise_attempts_are_recorded_in_order(db, learner):
    course = make_course(db, learner.id)
    engine = ProgressEngine(db, today=Clock(DAY))

    engine.complete_lesson(
        learner.id, course.id, 1, 1, score=80,
        exercise_results=[ExerciseResult(True, "hola"), ExerciseResult(False, "adios")],
    )

    attempts = db.query(ExerciseAttempt).order_by(ExerciseAttempt.exercise_index).all()
    assert [(a.exercise_index, a.is_correct, a.user_answer) for a in attempts] == [
        (0, True, "hola"),
        (1, False, "adios"),
    ]
    row = engine.lesson_row(learner.id, course.id, 1, 1)
    assert row.score == 80
    assert row.xp_earned == 50


def test_streak_grows_across_consecutive_days_and_resets_after_gap(db, learner):
    course = make_course(db, learner.id, lessons_per_unit=(4,))
    clock = Clock(DAY)
    engine = ProgressEngine(db, today=clock)

    engine.complete_lesson(learner.id, course.id, 1, 1)
    clock.today = DAY + timedelta(days=1)
    assert engine.complete_lesson(learner.id, course.id, 1, 2).current_streak == 2

    clock.today = DAY + timedelta(days=4)
    assert engine.complete_lesson(learner.id, course.id, 1, 3).current_streak == 1

    stats = _stats(db, learner.id, course.id)
    assert stats.current_streak == 1
    assert stats.longest_streak == 2
    assert stats.last_activity_date == DAY + timedelta(days=4)


def test_lesson_xp_reward_comes_from_course_tree(db, learner):
    course = make_course(db, learner.id, xp=75)
    engine = ProgressEngine(db, today=Clock(DAY))

    assert engine.complete_lesson(learner.id, course.id, 1, 1).xp_earned == 75


def test_unknown_lesson_is_not_found(db, learner):
    course = make_course(db, learner.id)
    engine = ProgressEngine(db, today=Clock(DAY))

    with pytest.raises(LessonNotFound):
        engine.complete_lesson(learner.id, course.id, 1, 9)
    with pytest.raises(LessonNotFound):
        engine.complete_lesson(learner.id, course.id, 7, 1)


def test_other_learners_course_is_not_found(db, learner, other_learner):
    course = make_course(db, learner.id)
    engine = ProgressEngine(db, today=Clock(DAY))

    with pytest.raises(CourseNotFound):
        engine.complete_lesson(other_learner.id, course.id, 1, 1)


def test_inactive_course_is_not_found(db, learner):
    course = make_course(db, learner.id)
    course.is_active = False
    db.commit()

    with pytest.raises(CourseNotFound):
        ProgressEngine(db, today=Clock(DAY)).complete_lesson(learner.id, course.id, 1, 1)


# ---------------------------------------------------------------------------
# Lock state
# ---------------------------------------------------------------------------

def _lock_state(engine, learner_id, course_id):
    units = engine.course_progress(learner_id, course_id)["course"]["units"]
    return [
        (unit["isUnlocked"], [lesson["isUnlocked"] for lesson in unit["lessons"]])
        for unit in units
    ]


def test_lessons_become_reachable_in_order(db, learner):
    course = make_course(db, learner.id, lessons_per_unit=(2, 2))
    engine = ProgressEngine(db, today=Clock(DAY))

    assert _lock_state(engine, learner.id, course.id) == [(True, [True, False]), (False, [False, False])]

    engine.complete_lesson(learner.id, course.id, 1, 1)
    assert _lock_state(engine, learner.id, course.id) == [(True, [True, True]), (False, [False, False])]

    engine.complete_lesson(learner.id, course.id, 1, 2)
    assert _lock_state(engine, learner.id, course.id) == [(True, [True, True]), (True, [True, False])]


def test_course_summaries_report_progress_percentage(db, learner):
    course = make_course(db, learner.id, lessons_per_unit=(2, 1))
    engine = ProgressEngine(db, today=Clock(DAY))
    engine.complete_lesson(learner.id, course.id, 1, 1)

    [summary] = engine.course_summaries(learner.id)
    assert summary["id"] == course.id
    assert summary["totalLessons"] == 3
    assert summary["progress"]["lessonsCompleted"] == 1
    assert summary["progress"]["progressPercentage"] == 33.3
