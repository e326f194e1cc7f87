from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON, true
from sqlalchemy.sql import func

from fluentify.db.base import Base


class Course(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)

    learner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    language = Column(String(100), nullable=False)
    expected_duration = Column(String(100), nullable=False)

    title = Column(String(255), nullable=False)
    description = Column(Text, default="")

    total_units = Column(Integer, nullable=False, default=0)
    total_lessons = Column(Integer, nullable=False, default=0)
    estimated_total_time = Column(Integer, nullable=False, default=0)  # minutes

    # Full generated tree: {"course": {..., "units": [...]}, "metadata": {...}}
    # Never rewritten after generation.
    course_data = Column(JSON, nullable=False)

    # Soft-deactivation only; inactive courses behave as missing
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
