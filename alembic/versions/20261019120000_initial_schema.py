"""initial schema: accounts, courses, progress, contests, chat

Revision ID: 20261019120000
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019120000'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def _learner_fk() -> sa.Column:
    return sa.Column(
        'learner_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True
    )


def _course_fk(index: bool = True) -> sa.Column:
    return sa.Column(
        'course_id', sa.Integer(), sa.ForeignKey('courses.id', ondelete='CASCADE'), nullable=False, index=index
    )


def upgrade() -> None:
    """Create every table."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('role', sa.String(32), nullable=False, index=True),
        *_timestamps(),
    )

    op.create_table(
        'learner_preferences',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('learner_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'),
                  nullable=False, unique=True),
        sa.Column('language', sa.String(100), nullable=False),
        sa.Column('expected_duration', sa.String(100), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'courses',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        _learner_fk(),
        sa.Column('language', sa.String(100), nullable=False),
        sa.Column('expected_duration', sa.String(100), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('total_units', sa.Integer(), nullable=False),
        sa.Column('total_lessons', sa.Integer(), nullable=False),
        sa.Column('estimated_total_time', sa.Integer(), nullable=False),
        sa.Column('course_data', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        'unit_progress',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        _learner_fk(),
        _course_fk(),
        sa.Column('unit_id', sa.Integer(), nullable=False),
        sa.Column('is_unlocked', sa.Boolean(), nullable=False),
        sa.Column('is_completed', sa.Boolean(), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('learner_id', 'course_id', 'unit_id', name='uq_unit_progress'),
    )

    op.create_table(
        'lesson_progress',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        _learner_fk(),
        _course_fk(),
        sa.Column('unit_id', sa.Integer(), nullable=False),
        sa.Column('lesson_id', sa.Integer(), nullable=False),
        sa.Column('is_completed', sa.Boolean(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('xp_earned', sa.Integer(), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('learner_id', 'course_id', 'unit_id', 'lesson_id', name='uq_lesson_progress'),
    )

    op.create_table(
        'exercise_attempts',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        _learner_fk(),
        _course_fk(index=False),
        sa.Column('unit_id', sa.Integer(), nullable=False),
        sa.Column('lesson_id', sa.Integer(), nullable=False),
        sa.Column('exercise_index', sa.Integer(), nullable=False),
        sa.Column('is_correct', sa.Boolean(), nullable=False),
        sa.Column('user_answer', sa.Text(), nullable=True),
        sa.Column('attempted_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        'user_stats',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        _learner_fk(),
        _course_fk(),
        sa.Column('total_xp', sa.Integer(), nullable=False),
        sa.Column('lessons_completed', sa.Integer(), nullable=False),
        sa.Column('units_completed', sa.Integer(), nullable=False),
        sa.Column('current_streak', sa.Integer(), nullable=False),
        sa.Column('longest_streak', sa.Integer(), nullable=False),
        sa.Column('last_activity_date', sa.Date(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('learner_id', 'course_id', name='uq_user_stats'),
    )

    op.create_table(
        'contests',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('admin_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'),
                  nullable=True, index=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('language', sa.String(100), nullable=False, index=True),
        sa.Column('difficulty_level', sa.String(50), nullable=False),
        sa.Column('contest_type', sa.String(20), nullable=False),
        sa.Column('questions', sa.JSON(), nullable=False),
        sa.Column('total_questions', sa.Integer(), nullable=False),
        sa.Column('max_attempts', sa.Integer(), nullable=False),
        sa.Column('time_limit', sa.Integer(), nullable=True),
        sa.Column('reward_points', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_ai_generated', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    op.create_table(
        'contest_submissions',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('contest_id', sa.Integer(), sa.ForeignKey('contests.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        _learner_fk(),
        sa.Column('answers', sa.JSON(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('total_correct', sa.Integer(), nullable=False),
        sa.Column('total_questions', sa.Integer(), nullable=False),
        sa.Column('percentage', sa.Float(), nullable=False),
        sa.Column('time_taken', sa.Integer(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('contest_id', 'learner_id', name='uq_contest_submission'),
    )

    op.create_table(
        'chat_sessions',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        _learner_fk(),
        sa.Column('language', sa.String(100), nullable=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('session_token', sa.String(64), nullable=False, unique=True, index=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('message_count', sa.Integer(), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'chat_messages',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('session_id', sa.Integer(), sa.ForeignKey('chat_sessions.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('sender', sa.String(20), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    """Drop every table, children first."""
    for table in (
        'chat_messages',
        'chat_sessions',
        'contest_submissions',
        'contests',
        'user_stats',
        'exercise_attempts',
        'lesson_progress',
        'unit_progress',
        'courses',
        'learner_preferences',
        'users',
    ):
        op.drop_table(table)
