"""
Progress engine: lesson completion, unit unlocking, XP and streaks.

One ProgressEngine is built per request around that request's session and a
clock. complete_lesson runs as a single transaction:

  1. ensure + lock the (learner, course) stats row, which serialises
     concurrent completions for the same course
  2. conditional upsert of the lesson row (fails if already completed)
  3. append exercise attempts
  4. unit completion / next unit unlock
  5. stats increments and streak

Any error rolls the whole thing back.
"""
from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from fluentify.core.clock import isoformat, utc_now, utc_today
from fluentify.core.config import DEFAULT_LESSON_SCORE
from fluentify.core.errors import LessonAlreadyCompleted, LessonNotFound
from fluentify.courses.models import Course
from fluentify.courses.queries import load_course
from fluentify.db.upsert import insert_ignore, upsert
from fluentify.progress.models import (
    ExerciseAttempt, LessonProgress, UnitProgress, UserStats,
    lesson_progress_to_dict, stats_to_dict,
)
from fluentify.progress.streaks import next_streak
from fluentify.progress.views import FIRST_UNIT_ID, build_course_view, progress_percentage


@dataclass(frozen=True)
class ExerciseResult:
    is_correct: bool = False
    user_answer: str = ""


@dataclass(frozen=True)
class LessonCompletion:
    xp_earned: int
    unit_completed: bool
    unit_id: int
    lesson_id: int
    next_unit_id: int | None = None
    current_streak: int = 0


class ProgressEngine:
    def __init__(self, db: Session, today: Callable[[], date] = utc_today):
        self.db = db
        self._today = today

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def initialize_course(self, learner_id: int, course_id: int, commit: bool = True) -> None:
        """Unlock the first unit and create a zeroed stats row. Safe to call twice."""
        insert_ignore(
            self.db,
            UnitProgress,
            {
                "learner_id": learner_id,
                "course_id": course_id,
                "unit_id": FIRST_UNIT_ID,
                "is_unlocked": True,
                "is_completed": False,
            },
            ["learner_id", "course_id", "unit_id"],
        )
        self._ensure_stats_row(learner_id, course_id)
        if commit:
            self.db.commit()

    def complete_lesson(
        self,
        learner_id: int,
        course_id: int,
        unit_id: int,
        lesson_id: int,
        score: int = DEFAULT_LESSON_SCORE,
        exercise_results: Iterable[ExerciseResult] = (),
    ) -> LessonCompletion:
        db = self.db
        _course, structure = load_course(db, learner_id, course_id)

        unit = structure.find_unit(unit_id)
        lesson = unit.find_lesson(lesson_id) if unit else None
        if lesson is None:
            raise LessonNotFound()

        xp_earned = lesson.xp_reward
        today = self._today()
        now = utc_now()

        try:
            stats = self._lock_stats(learner_id, course_id)

            completed = upsert(
                db,
                LessonProgress,
                {
                    "learner_id": learner_id,
                    "course_id": course_id,
                    "unit_id": unit_id,
                    "lesson_id": lesson_id,
                    "is_completed": True,
                    "score": score,
                    "xp_earned": xp_earned,
                    "completed_at": now,
                },
                ["learner_id", "course_id", "unit_id", "lesson_id"],
                update={
                    "is_completed": True,
                    "score": score,
                    "xp_earned": xp_earned,
                    "completed_at": now,
                },
                where=LessonProgress.is_completed.is_(False),
            )
            if completed == 0:
                raise LessonAlreadyCompleted()

            for index, result in enumerate(exercise_results):
                db.add(ExerciseAttempt(
                    learner_id=learner_id,
                    course_id=course_id,
                    unit_id=unit_id,
                    lesson_id=lesson_id,
                    exercise_index=index,
                    is_correct=bool(result.is_correct),
                    user_answer=result.user_answer or "",
                ))
            db.flush()

            unit_completed = False
            next_unit_id = None
            done = self._count_completed_lessons(learner_id, course_id, unit_id)
            if done >= unit.lesson_count:
                self._mark_unit_complete(learner_id, course_id, unit_id, now)
                next_unit_id = structure.next_unit_id(unit_id)
                if next_unit_id is not None:
                    self._unlock_unit(learner_id, course_id, next_unit_id)
                unit_completed = True

            new_streak = next_streak(stats.last_activity_date, stats.current_streak, today)
            db.execute(
                update(UserStats)
                .where(UserStats.id == stats.id)
                .values(
                    total_xp=UserStats.total_xp + xp_earned,
                    lessons_completed=UserStats.lessons_completed + 1,
                    units_completed=UserStats.units_completed + (1 if unit_completed else 0),
                    current_streak=new_streak,
                    longest_streak=max(stats.longest_streak, new_streak),
                    last_activity_date=today,
                    updated_at=func.now(),
                )
                .execution_options(synchronize_session=False)
            )

            db.commit()
        except Exception:
            db.rollback()
            raise

        print(
            f"[PROGRESS] lesson completed learner_id={learner_id} course_id={course_id} "
            f"unit={unit_id} lesson={lesson_id} xp={xp_earned} unit_completed={unit_completed} "
            f"streak={new_streak}",
            flush=True,
        )
        if next_unit_id is not None:
            print(f"[PROGRESS] unit unlocked learner_id={learner_id} course_id={course_id} unit={next_unit_id}", flush=True)

        return LessonCompletion(
            xp_earned=xp_earned,
            unit_completed=unit_completed,
            unit_id=unit_id,
            lesson_id=lesson_id,
            next_unit_id=next_unit_id,
            current_streak=new_streak,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def unit_rows(self, learner_id: int, course_id: int) -> list[UnitProgress]:
        return (
            self.db.query(UnitProgress)
            .filter(UnitProgress.learner_id == learner_id, UnitProgress.course_id == course_id)
            .order_by(UnitProgress.unit_id)
            .all()
        )

    def lesson_rows(self, learner_id: int, course_id: int) -> list[LessonProgress]:
        return (
            self.db.query(LessonProgress)
            .filter(LessonProgress.learner_id == learner_id, LessonProgress.course_id == course_id)
            .order_by(LessonProgress.unit_id, LessonProgress.lesson_id)
            .all()
        )

    def lesson_row(self, learner_id: int, course_id: int, unit_id: int, lesson_id: int) -> LessonProgress | None:
        return (
            self.db.query(LessonProgress)
            .filter(
                LessonProgress.learner_id == learner_id,
                LessonProgress.course_id == course_id,
                LessonProgress.unit_id == unit_id,
                LessonProgress.lesson_id == lesson_id,
            )
            .first()
        )

    def stats(self, learner_id: int, course_id: int) -> UserStats | None:
        return (
            self.db.query(UserStats)
            .filter(UserStats.learner_id == learner_id, UserStats.course_id == course_id)
            .first()
        )

    def course_progress(self, learner_id: int, course_id: int) -> dict:
        """Course tree annotated with lock state plus stats (zeros when absent)."""
        course, structure = load_course(self.db, learner_id, course_id)
        unit_rows = self.unit_rows(learner_id, course_id)
        lesson_rows = self.lesson_rows(learner_id, course_id)
        return {
            "course": {
                "id": course.id,
                "language": course.language,
                "title": structure.title or course.title,
                "duration": structure.duration,
                "units": build_course_view(structure, unit_rows, lesson_rows),
            },
            "unitProgress": [
                {"unitId": row.unit_id, "isUnlocked": row.is_unlocked, "isCompleted": row.is_completed}
                for row in unit_rows
            ],
            "lessonProgress": [lesson_progress_to_dict(row) for row in lesson_rows],
            "stats": stats_to_dict(self.stats(learner_id, course_id)),
        }

    def course_summaries(self, learner_id: int) -> list[dict]:
        """Active courses of a learner, newest first, with their stats and completion percentage."""
        rows = (
            self.db.query(Course, UserStats)
            .outerjoin(
                UserStats,
                (UserStats.course_id == Course.id) & (UserStats.learner_id == Course.learner_id),
            )
            .filter(Course.learner_id == learner_id, Course.is_active.is_(True))
            .order_by(Course.created_at.desc(), Course.id.desc())
            .all()
        )

        summaries = []
        for course, stats in rows:
            progress = stats_to_dict(stats)
            progress["progressPercentage"] = progress_percentage(
                progress["lessonsCompleted"], course.total_lessons
            )
            summaries.append({
                "id": course.id,
                "language": course.language,
                "title": course.title or f"{course.language} Course",
                "expectedDuration": course.expected_duration,
                "totalUnits": course.total_units,
                "totalLessons": course.total_lessons,
                "createdAt": isoformat(course.created_at),
                "progress": progress,
            })
        return summaries

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_stats_row(self, learner_id: int, course_id: int) -> None:
        insert_ignore(
            self.db,
            UserStats,
            {
                "learner_id": learner_id,
                "course_id": course_id,
                "total_xp": 0,
                "lessons_completed": 0,
                "units_completed": 0,
                "current_streak": 0,
                "longest_streak": 0,
            },
            ["learner_id", "course_id"],
        )

    def _lock_stats(self, learner_id: int, course_id: int) -> UserStats:
        self._ensure_stats_row(learner_id, course_id)
        return (
            self.db.query(UserStats)
            .filter(UserStats.learner_id == learner_id, UserStats.course_id == course_id)
            .populate_existing()
            .with_for_update()
            .one()
        )

    def _count_completed_lessons(self, learner_id: int, course_id: int, unit_id: int) -> int:
        return (
            self.db.query(func.count(LessonProgress.id))
            .filter(
                LessonProgress.learner_id == learner_id,
                LessonProgress.course_id == course_id,
                LessonProgress.unit_id == unit_id,
                LessonProgress.is_completed.is_(True),
            )
            .scalar()
        ) or 0

    def _mark_unit_complete(self, learner_id: int, course_id: int, unit_id: int, now) -> None:
        upsert(
            self.db,
            UnitProgress,
            {
                "learner_id": learner_id,
                "course_id": course_id,
                "unit_id": unit_id,
                "is_unlocked": True,
                "is_completed": True,
                "completed_at": now,
            },
            ["learner_id", "course_id", "unit_id"],
            update={"is_unlocked": True, "is_completed": True, "completed_at": now},
        )

    def _unlock_unit(self, learner_id: int, course_id: int, unit_id: int) -> None:
        upsert(
            self.db,
            UnitProgress,
            {
                "learner_id": learner_id,
                "course_id": course_id,
                "unit_id": unit_id,
                "is_unlocked": True,
                "is_completed": False,
            },
            ["learner_id", "course_id", "unit_id"],
            update={"is_unlocked": True},
        )
