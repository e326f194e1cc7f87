from sqlalchemy import (
    Column, Integer, String, Text, Boolean, Float, DateTime, ForeignKey, JSON, UniqueConstraint, false,
)
from sqlalchemy.sql import func

from fluentify.db.base import Base


class Contest(Base):
    __tablename__ = "contests"

    id = Column(Integer, primary_key=True, index=True)

    admin_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, default="")

    language = Column(String(100), nullable=False, index=True)
    difficulty_level = Column(String(50), nullable=False)
    contest_type = Column(String(20), nullable=False)  # mcq | one-liner | mix

    # List of question dicts, each tagged with "type"
    questions = Column(JSON, nullable=False)
    total_questions = Column(Integer, nullable=False, default=0)

    max_attempts = Column(Integer, nullable=False, default=1)
    time_limit = Column(Integer, nullable=True)  # minutes
    reward_points = Column(Integer, nullable=False, default=100)

    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)

    is_published = Column(Boolean, nullable=False, default=False, server_default=false())
    is_ai_generated = Column(Boolean, nullable=False, default=False, server_default=false())

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class ContestSubmission(Base):
    """One per (contest, learner). The unique constraint is what rejects resubmissions."""
    __tablename__ = "contest_submissions"

    id = Column(Integer, primary_key=True, index=True)

    contest_id = Column(Integer, ForeignKey("contests.id", ondelete="CASCADE"), nullable=False, index=True)
    learner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    answers = Column(JSON, nullable=False)
    score = Column(Integer, nullable=False, default=0)
    total_correct = Column(Integer, nullable=False, default=0)
    total_questions = Column(Integer, nullable=False, default=0)
    percentage = Column(Float, nullable=False, default=0.0)
    time_taken = Column(Integer, nullable=True)  # seconds

    submitted_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("contest_id", "learner_id", name="uq_contest_submission"),
    )
