from datetime import timedelta

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from fluentify.db.session import get_db
from fluentify.auth.models import User, ROLE_LEARNER
from fluentify.contests.generator import ContestGenerator
from fluentify.contests.models import Contest, ContestSubmission
from fluentify.contests.schemas import (
    GenerateContestRequest, CreateContestRequest, UpdateContestRequest, SubmitContestRequest,
)
from fluentify.contests.scoring import contest_status, learner_questions, validate_contest_structure
from fluentify.contests.service import ContestSubmissionService
from fluentify.core.clock import as_utc, isoformat, utc_now
from fluentify.core.config import CONTEST_TYPES, DEFAULT_LEADERBOARD_LIMIT
from fluentify.core.deps import get_admin, get_learner, get_current_user
from fluentify.core.errors import ContestNotFound, InvalidContestType, ValidationFailed
from fluentify.core.responses import created_response, success_response, list_response, deleted_response

router = APIRouter(prefix="/api/contests", tags=["contests"])

DEFAULT_CONTEST_WINDOW = timedelta(days=7)

UPDATABLE_FIELDS = (
    "title", "description", "language", "difficulty_level", "contest_type", "questions",
    "max_attempts", "time_limit", "reward_points", "start_date", "end_date", "is_published",
)


def get_contest_generator() -> ContestGenerator:
    return ContestGenerator()


def get_submission_service(db: Session = Depends(get_db)) -> ContestSubmissionService:
    return ContestSubmissionService(db)


def _check_type(contest_type: str) -> None:
    if contest_type not in CONTEST_TYPES:
        raise InvalidContestType()


def _check_window(start, end) -> None:
    if as_utc(end) <= as_utc(start):
        raise ValidationFailed("End date must be after start date")


def contest_to_dict(contest: Contest, participants: int | None = None) -> dict:
    data = {
        "id": contest.id,
        "title": contest.title,
        "description": contest.description,
        "language": contest.language,
        "difficultyLevel": contest.difficulty_level,
        "contestType": contest.contest_type,
        "totalQuestions": contest.total_questions,
        "maxAttempts": contest.max_attempts,
        "timeLimit": contest.time_limit,
        "rewardPoints": contest.reward_points,
        "startDate": isoformat(contest.start_date),
        "endDate": isoformat(contest.end_date),
        "isPublished": contest.is_published,
        "isAiGenerated": contest.is_ai_generated,
        "createdAt": isoformat(contest.created_at),
    }
    if participants is not None:
        data["totalParticipants"] = participants
    return data


def submission_to_dict(submission: ContestSubmission, rank: int | None = None) -> dict:
    return {
        "id": submission.id,
        "score": submission.score,
        "totalCorrect": submission.total_correct,
        "totalQuestions": submission.total_questions,
        "percentage": submission.percentage,
        "timeTaken": submission.time_taken,
        "submittedAt": isoformat(submission.submitted_at),
        "rank": rank,
    }


def _participant_counts(db: Session, contest_ids: list[int]) -> dict[int, int]:
    if not contest_ids:
        return {}
    rows = (
        db.query(ContestSubmission.contest_id, func.count(ContestSubmission.id))
        .filter(ContestSubmission.contest_id.in_(contest_ids))
        .group_by(ContestSubmission.contest_id)
        .all()
    )
    return {contest_id: count for contest_id, count in rows}


def _save_contest(db: Session, contest: Contest) -> Contest:
    db.add(contest)
    db.commit()
    db.refresh(contest)
    print(f"[CONTEST] created contest_id={contest.id} type={contest.contest_type} ai={contest.is_ai_generated}", flush=True)
    return contest


# ================== ADMIN ==================

@router.post("/generate", status_code=201)
def generate_contest(
    body: GenerateContestRequest,
    admin: User = Depends(get_admin),
    db: Session = Depends(get_db),
    generator: ContestGenerator = Depends(get_contest_generator),
):
    _check_type(body.contest_type)

    start = body.start_date or utc_now()
    end = body.end_date or (as_utc(start) + DEFAULT_CONTEST_WINDOW)
    _check_window(start, end)

    generated = generator.generate_contest(
        body.language,
        body.difficulty_level,
        body.contest_type,
        body.question_count,
        body.topic,
    )

    contest = _save_contest(db, Contest(
        admin_id=admin.id,
        title=body.title or generated["title"],
        description=body.description or generated.get("description", ""),
        language=body.language,
        difficulty_level=body.difficulty_level,
        contest_type=body.contest_type,
        questions=generated["questions"],
        total_questions=len(generated["questions"]),
        max_attempts=body.max_attempts,
        time_limit=body.time_limit,
        reward_points=body.reward_points,
        start_date=as_utc(start),
        end_date=as_utc(end),
        is_published=body.is_published,
        is_ai_generated=True,
    ))

    data = contest_to_dict(contest)
    data["questions"] = contest.questions
    return created_response({"contest": data}, "Contest generated successfully using AI")


@router.post("", status_code=201)
def create_contest(
    body: CreateContestRequest,
    admin: User = Depends(get_admin),
    db: Session = Depends(get_db),
):
    _check_type(body.contest_type)
    validate_contest_structure(body.title, body.questions, body.contest_type)
    _check_window(body.start_date, body.end_date)

    contest = _save_contest(db, Contest(
        admin_id=admin.id,
        title=body.title,
        description=body.description or "",
        language=body.language,
        difficulty_level=body.difficulty_level,
        contest_type=body.contest_type,
        questions=body.questions,
        total_questions=len(body.questions),
        max_attempts=body.max_attempts,
        time_limit=body.time_limit,
        reward_points=body.reward_points,
        start_date=as_utc(body.start_date),
        end_date=as_utc(body.end_date),
        is_published=body.is_published,
        is_ai_generated=False,
    ))
    return created_response({"contest": contest_to_dict(contest)}, "Contest created successfully")


@router.get("/admin")
def list_admin_contests(
    language: str | None = None,
    difficulty_level: str | None = None,
    contest_type: str | None = None,
    is_published: bool | None = None,
    admin: User = Depends(get_admin),
    db: Session = Depends(get_db),
):
    q = db.query(Contest).filter(Contest.admin_id == admin.id)
    if language:
        q = q.filter(Contest.language == language)
    if difficulty_level:
        q = q.filter(Contest.difficulty_level == difficulty_level)
    if contest_type:
        q = q.filter(Contest.contest_type == contest_type)
    if is_published is not None:
        q = q.filter(Contest.is_published.is_(is_published))

    contests = q.order_by(Contest.created_at.desc(), Contest.id.desc()).all()
    counts = _participant_counts(db, [c.id for c in contests])
    rows = [contest_to_dict(c, counts.get(c.id, 0)) for c in contests]
    return list_response(rows, "Contests retrieved successfully")


@router.patch("/{contest_id}")
def update_contest(
    contest_id: int,
    body: UpdateContestRequest,
    admin: User = Depends(get_admin),
    service: ContestSubmissionService = Depends(get_submission_service),
):
    db = service.db
    contest = service.get_contest(contest_id)

    changes = {
        key: value
        for key, value in body.model_dump(exclude_unset=True).items()
        if key in UPDATABLE_FIELDS and value is not None
    }
    if not changes:
        raise ValidationFailed("No valid fields to update")

    contest_type = changes.get("contest_type", contest.contest_type)
    _check_type(contest_type)
    if "questions" in changes or "contest_type" in changes:
        questions = changes.get("questions", contest.questions)
        validate_contest_structure(changes.get("title", contest.title), questions, contest_type)
        changes["total_questions"] = len(questions)

    for key in ("start_date", "end_date"):
        if key in changes:
            changes[key] = as_utc(changes[key])
    _check_window(changes.get("start_date", contest.start_date), changes.get("end_date", contest.end_date))

    for key, value in changes.items():
        setattr(contest, key, value)
    db.commit()
    db.refresh(contest)

    print(f"[CONTEST] updated contest_id={contest_id} fields={sorted(changes)}", flush=True)
    return success_response({"contest": contest_to_dict(contest)}, "Contest updated successfully")


@router.delete("/{contest_id}")
def delete_contest(
    contest_id: int,
    admin: User = Depends(get_admin),
    service: ContestSubmissionService = Depends(get_submission_service),
):
    db = service.db
    contest = service.get_contest(contest_id)
    db.query(ContestSubmission).filter(ContestSubmission.contest_id == contest_id).delete(synchronize_session=False)
    db.delete(contest)
    db.commit()
    print(f"[CONTEST] deleted contest_id={contest_id}", flush=True)
    return deleted_response("Contest deleted successfully")


@router.get("/{contest_id}/stats")
def contest_stats(
    contest_id: int,
    admin: User = Depends(get_admin),
    service: ContestSubmissionService = Depends(get_submission_service),
):
    return success_response({"stats": service.statistics(contest_id)}, "Contest statistics retrieved successfully")


# ================== LEARNER ==================

@router.get("")
def list_published_contests(
    language: str | None = None,
    user: User = Depends(get_learner),
    db: Session = Depends(get_db),
):
    q = db.query(Contest).filter(Contest.is_published.is_(True))
    if language:
        q = q.filter(Contest.language == language)
    contests = q.order_by(Contest.start_date.desc(), Contest.id.desc()).all()

    ids = [c.id for c in contests]
    counts = _participant_counts(db, ids)
    submitted = {
        contest_id
        for (contest_id,) in db.query(ContestSubmission.contest_id)
        .filter(ContestSubmission.learner_id == user.id, ContestSubmission.contest_id.in_(ids))
        .all()
    } if ids else set()

    now = utc_now()
    rows = []
    for contest in contests:
        data = contest_to_dict(contest, counts.get(contest.id, 0))
        data["status"] = contest_status(contest, now)
        data["hasSubmitted"] = contest.id in submitted
        rows.append(data)
    return list_response(rows, "Published contests retrieved successfully")


@router.post("/{contest_id}/submit", status_code=201)
def submit_contest(
    contest_id: int,
    body: SubmitContestRequest,
    user: User = Depends(get_learner),
    service: ContestSubmissionService = Depends(get_submission_service),
):
    submission, result = service.submit(contest_id, user.id, body.answers, body.time_taken)
    data = submission_to_dict(submission, service.learner_rank(contest_id, user.id))
    data["results"] = [r.to_dict() for r in result.results]
    return created_response({"submission": data}, "Contest submitted successfully")


@router.get("/{contest_id}/my-submission")
def my_submission(
    contest_id: int,
    user: User = Depends(get_learner),
    service: ContestSubmissionService = Depends(get_submission_service),
):
    submission = service.get_submission(contest_id, user.id)
    if not submission:
        return success_response({"submission": None}, "No submission found")
    rank = service.learner_rank(contest_id, user.id)
    return success_response({"submission": submission_to_dict(submission, rank)}, "Submission retrieved successfully")


# ================== ANY AUTHENTICATED USER ==================

@router.get("/{contest_id}")
def contest_details(
    contest_id: int,
    user: User = Depends(get_current_user),
    service: ContestSubmissionService = Depends(get_submission_service),
):
    contest = service.get_contest(contest_id)
    is_learner = user.role == ROLE_LEARNER

    if is_learner and not contest.is_published:
        raise ContestNotFound()

    data = contest_to_dict(contest, service.participant_count(contest_id))
    data["status"] = contest_status(contest, utc_now())

    if is_learner:
        data["questions"] = learner_questions(contest.questions)
        submission = service.get_submission(contest_id, user.id)
        data["hasSubmitted"] = submission is not None
        data["submission"] = (
            submission_to_dict(submission, service.learner_rank(contest_id, user.id)) if submission else None
        )
    else:
        data["questions"] = contest.questions

    return success_response({"contest": data}, "Contest details retrieved successfully")


@router.get("/{contest_id}/leaderboard")
def leaderboard(
    contest_id: int,
    limit: int = Query(DEFAULT_LEADERBOARD_LIMIT, ge=1, le=500),
    user: User = Depends(get_current_user),
    service: ContestSubmissionService = Depends(get_submission_service),
):
    rows = service.leaderboard(contest_id, limit)
    return list_response(rows, "Leaderboard retrieved successfully")
