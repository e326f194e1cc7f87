"""
Per-learner progress tables.

unit_progress / lesson_progress / user_stats are keyed by natural unique tuples
so completion and unlocking can be done with ON CONFLICT upserts.
exercise_attempts is append-only.
"""
from sqlalchemy import (
    Column, Integer, Text, Boolean, Date, DateTime, ForeignKey, UniqueConstraint,
)
from sqlalchemy.sql import func

from fluentify.core.clock import isoformat
from fluentify.db.base import Base


class UnitProgress(Base):
    __tablename__ = "unit_progress"

    id = Column(Integer, primary_key=True, index=True)

    learner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    unit_id = Column(Integer, nullable=False)  # ordinal inside the course structure

    is_unlocked = Column(Boolean, nullable=False, default=False)
    is_completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("learner_id", "course_id", "unit_id", name="uq_unit_progress"),
    )


class LessonProgress(Base):
    __tablename__ = "lesson_progress"

    id = Column(Integer, primary_key=True, index=True)

    learner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    unit_id = Column(Integer, nullable=False)
    lesson_id = Column(Integer, nullable=False)

    is_completed = Column(Boolean, nullable=False, default=False)
    score = Column(Integer, nullable=False, default=0)
    xp_earned = Column(Integer, nullable=False, default=0)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("learner_id", "course_id", "unit_id", "lesson_id", name="uq_lesson_progress"),
    )


class ExerciseAttempt(Base):
    __tablename__ = "exercise_attempts"

    id = Column(Integer, primary_key=True, index=True)

    learner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    unit_id = Column(Integer, nullable=False)
    lesson_id = Column(Integer, nullable=False)

    exercise_index = Column(Integer, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)
    user_answer = Column(Text, nullable=True)

    attempted_at = Column(DateTime(timezone=True), server_default=func.now())


class UserStats(Base):
    __tablename__ = "user_stats"

    id = Column(Integer, primary_key=True, index=True)

    learner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)

    total_xp = Column(Integer, nullable=False, default=0)
    lessons_completed = Column(Integer, nullable=False, default=0)
    units_completed = Column(Integer, nullable=False, default=0)
    current_streak = Column(Integer, nullable=False, default=0)
    longest_streak = Column(Integer, nullable=False, default=0)
    last_activity_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("learner_id", "course_id", name="uq_user_stats"),
    )


def stats_to_dict(stats: "UserStats | None") -> dict:
    if stats is None:
        return {
            "totalXp": 0,
            "lessonsCompleted": 0,
            "unitsCompleted": 0,
            "currentStreak": 0,
            "longestStreak": 0,
            "lastActivityDate": None,
        }
    return {
        "totalXp": stats.total_xp,
        "lessonsCompleted": stats.lessons_completed,
        "unitsCompleted": stats.units_completed,
        "currentStreak": stats.current_streak,
        "longestStreak": stats.longest_streak,
        "lastActivityDate": stats.last_activity_date.isoformat() if stats.last_activity_date else None,
    }


def lesson_progress_to_dict(row: "LessonProgress | None") -> dict | None:
    if row is None:
        return None
    return {
        "unitId": row.unit_id,
        "lessonId": row.lesson_id,
        "isCompleted": row.is_completed,
        "score": row.score,
        "xpEarned": row.xp_earned,
        "completedAt": isoformat(row.completed_at),
    }
