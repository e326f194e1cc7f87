"""
Admin management of learner accounts.

Every route here requires an admin token. Deleting a learner removes every
row the learner owns, child tables first, in one transaction.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from fluentify.db.session import get_db
from fluentify.admin.schemas import UpdateLearnerRequest, ResetPasswordRequest
from fluentify.auth.models import User, ROLE_LEARNER
from fluentify.chat.models import ChatSession, ChatMessage
from fluentify.contests.models import ContestSubmission
from fluentify.courses.models import Course
from fluentify.preferences.models import LearnerPreference
from fluentify.progress.models import UnitProgress, LessonProgress, ExerciseAttempt, UserStats
from fluentify.core.clock import isoformat
from fluentify.core.deps import get_admin
from fluentify.core.errors import EmailAlreadyExists, UserNotFound, ValidationFailed
from fluentify.core.responses import success_response, list_response, updated_response, deleted_response
from fluentify.core.security import hash_password

router = APIRouter(prefix="/api/admin/users", tags=["admin"])


def learner_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "createdAt": isoformat(user.created_at),
        "updatedAt": isoformat(user.updated_at),
    }


def _get_learner(db: Session, learner_id: int) -> User:
    user = db.query(User).filter(User.id == learner_id, User.role == ROLE_LEARNER).first()
    if not user:
        raise UserNotFound()
    return user


def _learner_totals(db: Session, learner_id: int) -> dict:
    xp, lessons, units, best_streak = db.query(
        func.coalesce(func.sum(UserStats.total_xp), 0),
        func.coalesce(func.sum(UserStats.lessons_completed), 0),
        func.coalesce(func.sum(UserStats.units_completed), 0),
        func.coalesce(func.max(UserStats.longest_streak), 0),
    ).filter(UserStats.learner_id == learner_id).one()

    courses = db.query(func.count(Course.id)).filter(Course.learner_id == learner_id).scalar()
    active = (
        db.query(func.count(Course.id))
        .filter(Course.learner_id == learner_id, Course.is_active.is_(True))
        .scalar()
    )
    contests = (
        db.query(func.count(ContestSubmission.id))
        .filter(ContestSubmission.learner_id == learner_id)
        .scalar()
    )
    chats = db.query(func.count(ChatSession.id)).filter(ChatSession.learner_id == learner_id).scalar()

    return {
        "totalCourses": courses,
        "activeCourses": active,
        "totalXp": int(xp),
        "lessonsCompleted": int(lessons),
        "unitsCompleted": int(units),
        "longestStreak": int(best_streak),
        "contestsEntered": contests,
        "chatSessions": chats,
    }


@router.get("")
def list_learners(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str | None = None,
    admin: User = Depends(get_admin),
    db: Session = Depends(get_db),
):
    q = db.query(User).filter(User.role == ROLE_LEARNER)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

    total = q.count()
    users = q.order_by(User.created_at.desc(), User.id.desc()).offset((page - 1) * limit).limit(limit).all()

    meta = {
        "count": len(users),
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": (total + limit - 1) // limit,
    }
    return list_response([learner_to_dict(u) for u in users], "Learners retrieved successfully", meta)


@router.get("/{learner_id}")
def learner_detail(
    learner_id: int,
    admin: User = Depends(get_admin),
    db: Session = Depends(get_db),
):
    user = _get_learner(db, learner_id)
    data = learner_to_dict(user)
    data["stats"] = _learner_totals(db, user.id)
    return success_response({"user": data}, "Learner retrieved successfully")


@router.get("/{learner_id}/courses")
def learner_courses(
    learner_id: int,
    admin: User = Depends(get_admin),
    db: Session = Depends(get_db),
):
    user = _get_learner(db, learner_id)
    rows = (
        db.query(Course, UserStats)
        .outerjoin(UserStats, (UserStats.course_id == Course.id) & (UserStats.learner_id == Course.learner_id))
        .filter(Course.learner_id == user.id)
        .order_by(Course.created_at.desc(), Course.id.desc())
        .all()
    )
    courses = [
        {
            "id": course.id,
            "language": course.language,
            "title": course.title,
            "expectedDuration": course.expected_duration,
            "totalUnits": course.total_units,
            "totalLessons": course.total_lessons,
            "isActive": course.is_active,
            "totalXp": stats.total_xp if stats else 0,
            "lessonsCompleted": stats.lessons_completed if stats else 0,
            "createdAt": isoformat(course.created_at),
        }
        for course, stats in rows
    ]
    return list_response(courses, "Learner courses retrieved successfully")


@router.patch("/{learner_id}")
def update_learner(
    learner_id: int,
    body: UpdateLearnerRequest,
    admin: User = Depends(get_admin),
    db: Session = Depends(get_db),
):
    user = _get_learner(db, learner_id)
    if body.name is None and body.email is None:
        raise ValidationFailed("No valid fields to update")

    if body.email is not None:
        email = body.email.strip().lower()
        taken = db.query(User.id).filter(User.email == email, User.id != user.id).first()
        if taken:
            raise EmailAlreadyExists()
        user.email = email
    if body.name is not None:
        user.name = body.name.strip()

    db.commit()
    db.refresh(user)
    print(f"[ADMIN] admin_id={admin.id} updated learner_id={user.id}", flush=True)
    return updated_response({"user": learner_to_dict(user)}, "Learner updated successfully")


@router.post("/{learner_id}/reset-password")
def reset_password(
    learner_id: int,
    body: ResetPasswordRequest,
    admin: User = Depends(get_admin),
    db: Session = Depends(get_db),
):
    user = _get_learner(db, learner_id)
    user.password_hash = hash_password(body.new_password)
    db.commit()
    print(f"[ADMIN] admin_id={admin.id} reset password for learner_id={user.id}", flush=True)
    return success_response(None, "Password reset successfully")


@router.delete("/{learner_id}")
def delete_learner(
    learner_id: int,
    admin: User = Depends(get_admin),
    db: Session = Depends(get_db),
):
    user = _get_learner(db, learner_id)
    try:
        session_ids = [sid for (sid,) in db.query(ChatSession.id).filter(ChatSession.learner_id == user.id).all()]
        if session_ids:
            db.query(ChatMessage).filter(ChatMessage.session_id.in_(session_ids)).delete(synchronize_session=False)
        for model in (
            ChatSession,
            ContestSubmission,
            ExerciseAttempt,
            LessonProgress,
            UnitProgress,
            UserStats,
            Course,
            LearnerPreference,
        ):
            db.query(model).filter(model.learner_id == user.id).delete(synchronize_session=False)
        db.delete(user)
        db.commit()
    except Exception:
        db.rollback()
        raise

    print(f"[ADMIN] admin_id={admin.id} deleted learner_id={learner_id}", flush=True)
    return deleted_response("Learner and all related data deleted successfully")
